"""Flask app serving the cached Xero bearer token."""

import logging
import time
from functools import wraps
from typing import Optional

from flask import Flask, g, jsonify, request

from ..auth.models import TokenResponse
from ..auth.token_fetcher import XeroTokenFetcher
from ..utils.config import Config, get_config
from ..utils.snapshots import SnapshotRecorder
from .cache import TokenCache

logger = logging.getLogger(__name__)


def build_token_cache(config: Config) -> TokenCache:
    """TokenCache whose acquisitions run a fresh XeroTokenFetcher each time."""

    def fetch_token() -> TokenResponse:
        fetcher = XeroTokenFetcher(
            email=config.email,
            password=config.password,
            totp_secret=config.totp_secret,
            user_data_dir=config.user_data_dir,
            headless=config.headless_mode,
            timeout_ms=config.token_timeout_ms,
            policy=config.site_policy,
            snapshots=SnapshotRecorder(config.debug_shots, config.shot_dir),
        )
        return fetcher.fetch()

    return TokenCache(fetch_token, expiry_buffer_seconds=config.expiry_buffer_seconds)


def create_app(config: Optional[Config] = None, token_cache: Optional[TokenCache] = None) -> Flask:
    """Create the token server.

    Args:
        config: Application configuration (default: global config)
        token_cache: Cache to serve from (default: one backed by XeroTokenFetcher)

    Returns:
        Flask: Configured application
    """
    config = config or get_config()
    cache = token_cache or build_token_cache(config)
    api_key = config.api_key

    app = Flask(__name__)
    app.config["TOKEN_CACHE"] = cache

    def require_api_key(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if api_key and request.headers.get("x-api-key") != api_key:
                return jsonify({"status": "error", "message": "Unauthorized"}), 401
            return view(*args, **kwargs)
        return wrapper

    @app.before_request
    def start_timer():
        g.started = time.monotonic()

    @app.after_request
    def log_and_cors(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        elapsed_ms = (time.monotonic() - g.get("started", time.monotonic())) * 1000
        logger.info(f"{request.method} {request.path} {response.status_code} - {elapsed_ms:.1f} ms")
        return response

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    @app.get("/token")
    @require_api_key
    def token():
        force = request.args.get("force", "").lower() == "true"
        try:
            result, ttl = cache.get(force=force)
        except Exception as e:
            logger.error(f"Token acquisition failed: {e}")
            return jsonify({"status": "error", "message": str(e) or e.__class__.__name__}), 500
        return jsonify({
            "access_token": result.access_token,
            "token_type": result.token_type or "Bearer",
            "expires_in": ttl,
        })

    return app
