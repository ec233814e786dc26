"""Logging configuration for the Xero token service."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional


# Module path under xero_token -> component
COMPONENTS = {
    'auth': 'auth',
    'utils.snapshots': 'auth',
    'server': 'server',
    'api': 'api',
}

COMPONENT_LOG_FILES = {
    'auth': 'auth.log',
    'server': 'server.log',
    'api': 'api.log',
    'main': 'main.log',
}

# Server logs are appended to for days at a time
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3


def component_for(name: str) -> str:
    """Map a logger name such as 'xero_token.server.cache' to its log file component."""
    prefix, _, module = name.partition('.')
    if prefix != 'xero_token':
        return 'main'
    for path, component in COMPONENTS.items():
        if module == path or module.startswith(path + '.'):
            return component
    return 'main'


class ComponentFilter(logging.Filter):
    """Passes only records whose logger belongs to one component."""

    def __init__(self, component: str):
        super().__init__()
        self.component = component

    def filter(self, record: logging.LogRecord) -> bool:
        return component_for(record.name) == self.component


def setup_logging(
    log_level: str = "INFO",
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
    console_level: Optional[str] = None,
) -> None:
    """Configure console output and one rotating log file per component.

    Acquisitions run on Flask worker threads, so file records carry the
    thread name to keep concurrent requests apart.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_console: Whether to log to stdout
        log_dir: Directory for component log files (default: ./logs)
        console_level: Console threshold; WARNING unless given, DEBUG when log_level is DEBUG
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    file_formatter = logging.Formatter(
        fmt='[%(asctime)s] [%(levelname)s] [%(threadName)s] [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    if log_to_console:
        if numeric_level == logging.DEBUG:
            threshold = logging.DEBUG
        else:
            threshold = getattr(logging, (console_level or "WARNING").upper(), logging.WARNING)
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(threshold)
        console_handler.setFormatter(logging.Formatter(
            fmt='%(asctime)s %(levelname)-7s %(message)s',
            datefmt='%H:%M:%S'
        ))
        root_logger.addHandler(console_handler)

    log_directory = Path(log_dir) if log_dir else Path('./logs')
    log_directory.mkdir(parents=True, exist_ok=True)

    for component, filename in COMPONENT_LOG_FILES.items():
        handler = logging.handlers.RotatingFileHandler(
            log_directory / filename,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding='utf-8',
        )
        handler.setLevel(numeric_level)
        handler.setFormatter(file_formatter)
        handler.addFilter(ComponentFilter(component))
        root_logger.addHandler(handler)

    # Playwright's driver and werkzeug's access log would drown ours out
    for noisy in ("urllib3", "playwright", "werkzeug"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def mask_email(email: Optional[str]) -> Optional[str]:
    """Keep the first two characters of the local part and the domain."""
    if not email:
        return email
    user, _, domain = email.partition('@')
    if not domain:
        return '***'
    return f"{user[:2]}***@{domain}"


def mask_token(token: Optional[str]) -> Optional[str]:
    """Keep the first 12 characters and the length."""
    if not token:
        return token
    return f"{token[:12]}…({len(token)})"
