"""Local HTTP token server."""

from .app import create_app
from .cache import TokenCache

__all__ = ["create_app", "TokenCache"]
