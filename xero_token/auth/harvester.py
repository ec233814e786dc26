"""Capture a bearer token response from the page's own network traffic."""

import logging
import re
import time
from concurrent.futures import Future
from typing import Any, Dict, Optional

from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from ..utils.logger import mask_token
from .exceptions import HarvestTimeout
from .models import TokenResponse, is_bearer_payload

logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = 200

# Responses worth a debug line even when they carry no token
INTERESTING_URL = re.compile(r"xero|identity", re.IGNORECASE)


def read_token_payload(response) -> Optional[Dict[str, Any]]:
    """Parse a response and return its body if it is a bearer token payload.

    Returns:
        The parsed JSON body, or None if the response does not qualify
    """
    try:
        content_type = (response.headers.get("content-type") or "").lower()
        if "application/json" not in content_type:
            return None
        payload = response.json()
    except (PlaywrightError, ValueError):
        # Redirects and aborted requests have no body
        return None
    return payload if is_bearer_payload(payload) else None


class TokenSlot:
    """Write-once holder for the first token payload seen by a listener."""

    def __init__(self):
        self._future: Future = Future()

    def offer(self, payload: Dict[str, Any]) -> bool:
        """Store the payload unless one is already held.

        Returns:
            bool: True if this call filled the slot
        """
        if self._future.done():
            return False
        self._future.set_result(payload)
        return True

    @property
    def filled(self) -> bool:
        return self._future.done()

    def value(self) -> Optional[Dict[str, Any]]:
        return self._future.result() if self._future.done() else None


class TokenHarvester:
    """Races a passive response listener against an explicit response wait.

    The listener must be attached before navigation starts: Xero often issues
    the token while the login sequence is still running, before ``harvest``
    has been called.
    """

    def __init__(self, page, poll_interval_ms: float = POLL_INTERVAL_MS):
        self.page = page
        self.poll_interval_ms = poll_interval_ms
        self.slot = TokenSlot()
        self._attached = False

    def attach(self) -> None:
        """Register the passive response listener."""
        if not self._attached:
            self.page.on("response", self._on_response)
            self._attached = True

    def detach(self) -> None:
        if self._attached:
            self.page.remove_listener("response", self._on_response)
            self._attached = False

    def _on_response(self, response) -> None:
        url = response.url
        if INTERESTING_URL.search(url) and ("/authorize" in url or "/callback" in url):
            logger.debug(f"HTTP response: {response.status} {url}")

        if self.slot.filled:
            return
        payload = read_token_payload(response)
        if payload and self.slot.offer(payload):
            logger.info(
                f"TOKEN: captured via response listener. access_token: {mask_token(payload['access_token'])} "
                f"expires_in: {payload.get('expires_in')}"
            )

    def harvest(self, timeout_ms: float) -> TokenResponse:
        """Block until a bearer token response is seen, or the deadline passes.

        The slot is checked between short ``wait_for_event`` slices. Waiting
        also lets Playwright dispatch events, so the listener keeps filling the
        slot while we block. A payload already in the slot wins because it was
        observed first.

        Args:
            timeout_ms: Overall deadline in milliseconds

        Returns:
            TokenResponse built from the first qualifying payload

        Raises:
            HarvestTimeout: If nothing qualifies before the deadline
        """
        deadline = time.monotonic() + timeout_ms / 1000
        while True:
            if self.slot.filled:
                return TokenResponse.from_payload(self.slot.value())

            remaining_ms = (deadline - time.monotonic()) * 1000
            if remaining_ms <= 0:
                raise HarvestTimeout(timeout_ms)

            try:
                response = self.page.wait_for_event(
                    "response",
                    predicate=lambda r: read_token_payload(r) is not None,
                    timeout=max(1.0, min(self.poll_interval_ms, remaining_ms)),
                )
            except PlaywrightTimeoutError:
                continue

            if self.slot.filled:
                continue
            payload = read_token_payload(response)
            if payload:
                logger.info(
                    f"TOKEN: captured via wait_for_event. access_token: {mask_token(payload['access_token'])} "
                    f"expires_in: {payload.get('expires_in')}"
                )
                return TokenResponse.from_payload(payload)
