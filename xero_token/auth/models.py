"""Token response model and bearer payload matching."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

BEARER_PATTERN = re.compile(r"bearer", re.IGNORECASE)


def is_bearer_payload(payload: Any) -> bool:
    """Return True if a parsed JSON body looks like an OAuth bearer token response."""
    if not isinstance(payload, dict):
        return False
    if not payload.get("access_token"):
        return False
    return bool(BEARER_PATTERN.search(str(payload.get("token_type") or "")))


@dataclass(frozen=True)
class TokenResponse:
    """A bearer token captured from the application's own network traffic."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 0
    scope: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TokenResponse":
        """Build a TokenResponse from a raw token JSON payload.

        Args:
            payload: Parsed JSON body of the token response

        Returns:
            TokenResponse with defaults applied for missing fields
        """
        try:
            expires_in = int(payload.get("expires_in") or 0)
        except (TypeError, ValueError):
            expires_in = 0
        return cls(
            access_token=payload["access_token"],
            token_type=payload.get("token_type") or "Bearer",
            expires_in=expires_in,
            scope=payload.get("scope"),
            raw=dict(payload),
        )

    def authorization_header(self) -> str:
        """Value for an ``Authorization`` header."""
        return f"{self.token_type} {self.access_token}"
