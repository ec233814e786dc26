"""Single-slot token cache with in-flight request collapsing."""

import logging
import math
import threading
import time
from concurrent.futures import Future
from typing import Callable, Optional, Tuple

from ..auth.models import TokenResponse

logger = logging.getLogger(__name__)


class TokenCache:
    """Caches one token and lets concurrent callers share a single acquisition.

    At most one call to ``fetch_token`` runs at a time. Callers that arrive
    while it runs wait on the same Future and get the same token, or the same
    exception.
    """

    def __init__(
        self,
        fetch_token: Callable[[], TokenResponse],
        expiry_buffer_seconds: float = 30,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize cache.

        Args:
            fetch_token: Runs a full token acquisition
            expiry_buffer_seconds: Subtracted from expires_in when caching (Xero issues ~720s tokens)
            clock: Time source in epoch seconds
        """
        self.fetch_token = fetch_token
        self.expiry_buffer_seconds = expiry_buffer_seconds
        self.clock = clock

        self._lock = threading.Lock()
        self._cached: Optional[TokenResponse] = None
        self._expires_at: float = 0
        self._in_flight: Optional[Future] = None

    def _is_valid(self) -> bool:
        return self._cached is not None and self.clock() < self._expires_at

    def ttl(self) -> int:
        """Whole seconds left on the cached token (0 if none)."""
        return max(0, math.floor(self._expires_at - self.clock()))

    def clear(self) -> None:
        with self._lock:
            self._cached = None
            self._expires_at = 0

    def get(self, force: bool = False) -> Tuple[TokenResponse, int]:
        """Return a token and its remaining TTL, fetching one if needed.

        Args:
            force: Skip the cache; still joins an acquisition already in flight

        Returns:
            Tuple of (token, ttl_seconds)
        """
        with self._lock:
            if not force and self._is_valid():
                logger.debug("Serving cached token")
                return self._cached, self.ttl()

            future = self._in_flight
            leader = future is None
            if leader:
                future = Future()
                self._in_flight = future

        if not leader:
            logger.info("Token acquisition already in flight; waiting for it")
            token = future.result()
            return token, self.ttl()

        logger.info("Starting token acquisition" + (" (forced)" if force else ""))
        try:
            token = self.fetch_token()
        except BaseException as e:
            with self._lock:
                self._in_flight = None
            future.set_exception(e)
            raise

        with self._lock:
            self._cached = token
            self._expires_at = self.clock() + max(0, token.expires_in - self.expiry_buffer_seconds)
            self._in_flight = None
        future.set_result(token)
        return token, self.ttl()
