"""Xero bearer token harvesting via Playwright-driven sign-in."""

from .auth.exceptions import HarvestTimeout, NavigationError, ValidationError, XeroTokenError
from .auth.models import TokenResponse
from .auth.token_fetcher import XeroTokenFetcher, get_access_token

__version__ = "0.1.0"

__all__ = [
    "XeroTokenFetcher",
    "get_access_token",
    "TokenResponse",
    "XeroTokenError",
    "ValidationError",
    "HarvestTimeout",
    "NavigationError",
]
