"""Exception classes for Xero token acquisition."""


class XeroTokenError(Exception):
    """Base exception for token acquisition errors."""
    pass


class ValidationError(XeroTokenError):
    """Raised when required credentials are missing, before any browser work."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"Missing required params: {', '.join(self.missing)}")


class HarvestTimeout(XeroTokenError):
    """Raised when no bearer token response is observed before the deadline."""

    def __init__(self, timeout_ms: float):
        self.timeout_ms = timeout_ms
        super().__init__(f"Timed out waiting for token after {timeout_ms:.0f} ms")


class NavigationError(XeroTokenError):
    """Raised when a browser navigation fails. Callers log it and carry on."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}")
