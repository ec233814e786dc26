"""Client for the local Xero token service."""

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class TokenServiceClient:
    """Fetches tokens from a running token server and builds authorized sessions."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:3000",
        api_key: Optional[str] = None,
        timeout_seconds: float = 90,
        session: Optional[requests.Session] = None,
    ):
        """Initialize client.

        Args:
            base_url: Token server URL
            api_key: Value for the x-api-key header, if the server requires one
            timeout_seconds: Request timeout; a cold acquisition drives a browser so keep it generous
            session: requests session to use (default: a new one)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout_seconds
        self.session = session or requests.Session()
        if api_key:
            self.session.headers["x-api-key"] = api_key

    def health(self) -> bool:
        """True if the server answers /health with ok."""
        try:
            response = self.session.get(f"{self.base_url}/health", timeout=10)
            response.raise_for_status()
            return bool(response.json().get("ok"))
        except requests.RequestException as e:
            logger.warning(f"Token service health check failed: {e}")
            return False

    def get_token(self, force: bool = False) -> Dict[str, Any]:
        """Fetch the current token.

        Args:
            force: Ask the server to skip its cache

        Returns:
            Dict with access_token, token_type and expires_in

        Raises:
            requests.HTTPError: If the server answers with an error status
        """
        params = {"force": "true"} if force else None
        response = self.session.get(f"{self.base_url}/token", params=params, timeout=self.timeout)
        if not response.ok:
            logger.error(f"Token service returned {response.status_code}: {response.text[:200]}")
        response.raise_for_status()
        data = response.json()
        logger.debug(f"Received token, expires_in={data.get('expires_in')}")
        return data

    def authorized_session(self, force: bool = False) -> requests.Session:
        """New requests session carrying the bearer token in its Authorization header."""
        data = self.get_token(force=force)
        session = requests.Session()
        session.headers["Authorization"] = f"{data.get('token_type') or 'Bearer'} {data['access_token']}"
        return session
