#!/usr/bin/env python3
"""Xero token harvester.

Command line entry point: fetch one token, or run the local token server.
"""

import argparse
import json
import sys

from .utils.config import get_config
from .utils.logger import setup_logging


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Sign in to Xero with Playwright and harvest a bearer token"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (overrides LOG_LEVEL env var)"
    )
    parser.add_argument(
        "--env-file",
        type=str,
        help="Path to .env file (default: ./.env)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    token_parser = subparsers.add_parser("token", help="Fetch a token once and print it")
    token_parser.add_argument(
        "--headless",
        action="store_true",
        help="Run browser in headless mode"
    )
    token_parser.add_argument(
        "--timeout-ms",
        type=int,
        help="Token wait deadline (overrides TOKEN_TIMEOUT_MS env var)"
    )
    token_parser.add_argument(
        "--user-data-dir",
        type=str,
        help="Browser profile directory (overrides USER_DATA_DIR env var)"
    )
    token_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the token response as JSON"
    )

    serve_parser = subparsers.add_parser("serve", help="Run the token HTTP server")
    serve_parser.add_argument("--host", type=str, help="Bind address (overrides HOST env var)")
    serve_parser.add_argument("--port", type=int, help="Port (overrides PORT env var)")

    return parser.parse_args(argv)


def run_token(args, config) -> int:
    """Fetch a single token and print it."""
    from .auth.token_fetcher import XeroTokenFetcher
    from .utils.snapshots import SnapshotRecorder

    fetcher = XeroTokenFetcher(
        email=config.email,
        password=config.password,
        totp_secret=config.totp_secret,
        user_data_dir=args.user_data_dir or config.user_data_dir,
        headless=args.headless or config.headless_mode,
        timeout_ms=args.timeout_ms or config.token_timeout_ms,
        policy=config.site_policy,
        snapshots=SnapshotRecorder(config.debug_shots, config.shot_dir),
    )

    try:
        token = fetcher.fetch()
    except Exception as e:
        print(f"✗ Token acquisition failed: {e}")
        return 1

    if args.json:
        print(json.dumps({
            "access_token": token.access_token,
            "token_type": token.token_type,
            "expires_in": token.expires_in,
            "scope": token.scope,
        }, indent=2))
    else:
        print(f"Token: {token.access_token}")
        print(f"Expires in: {token.expires_in} seconds")
    return 0


def run_server(args, config) -> int:
    """Run the token server until interrupted."""
    from .server.app import create_app

    host = args.host or config.host
    port = args.port or config.port
    app = create_app(config)

    print(f"Xero token server listening on http://{host}:{port}")
    if not config.api_key and host not in ("127.0.0.1", "localhost"):
        print("⚠ API_KEY is not set; /token is open to anyone who can reach this port")
    app.run(host=host, port=port, threaded=True)
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = get_config(args.env_file)
        config.validate()
    except ValueError as e:
        print(f"Configuration error: {e}")
        print("\nPlease create a .env file with XERO_EMAIL, XERO_PASSWORD and XERO_TOTP_SECRET")
        return 1

    log_level = args.log_level or config.log_level
    setup_logging(
        log_level=log_level,
        log_to_console=True,
        log_dir=config.log_dir,
        console_level="INFO" if args.command == "serve" else None,
    )

    if args.command == "token":
        return run_token(args, config)
    return run_server(args, config)


if __name__ == "__main__":
    sys.exit(main())
