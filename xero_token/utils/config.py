"""Configuration management for the Xero token service."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..auth.policy import SitePolicy


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self, env_file: Optional[str] = None):
        """Initialize configuration.

        Args:
            env_file: Path to .env file (default: .env in the working directory)
        """
        if env_file:
            load_dotenv(env_file)
        else:
            env_path = Path.cwd() / ".env"
            if env_path.exists():
                load_dotenv(env_path)

    # Xero credentials
    @property
    def email(self) -> str:
        """Xero login email."""
        value = os.getenv("XERO_EMAIL", "")
        if not value:
            raise ValueError("XERO_EMAIL not set in environment")
        return value

    @property
    def password(self) -> str:
        """Xero login password."""
        value = os.getenv("XERO_PASSWORD", "")
        if not value:
            raise ValueError("XERO_PASSWORD not set in environment")
        return value

    @property
    def totp_secret(self) -> str:
        """Base32 shared secret for the authenticator app."""
        value = os.getenv("XERO_TOTP_SECRET", "")
        if not value:
            raise ValueError("XERO_TOTP_SECRET not set in environment")
        return value

    # Browser settings
    @property
    def user_data_dir(self) -> Path:
        """Persistent browser profile; keeps the session between runs."""
        return Path(os.getenv("USER_DATA_DIR", "./xero-profile"))

    @property
    def headless_mode(self) -> bool:
        """Run browser in headless mode (default: False, so the device can be trusted once)."""
        return _env_flag("HEADLESS_MODE", "false")

    @property
    def token_timeout_ms(self) -> int:
        """How long to wait for the token response."""
        return int(os.getenv("TOKEN_TIMEOUT_MS", "60000"))

    @property
    def site_policy(self) -> SitePolicy:
        """Login flow policy with any URL overrides applied."""
        return SitePolicy.from_urls(
            login_url=os.getenv("XERO_LOGIN_URL"),
            app_url=os.getenv("XERO_APP_URL"),
            root_url=os.getenv("XERO_ROOT_URL"),
        )

    # Server settings
    @property
    def host(self) -> str:
        return os.getenv("HOST", "127.0.0.1")

    @property
    def port(self) -> int:
        return int(os.getenv("PORT", "3000"))

    @property
    def api_key(self) -> Optional[str]:
        """Shared secret for the /token endpoint (optional)."""
        return os.getenv("API_KEY") or None

    @property
    def expiry_buffer_seconds(self) -> float:
        """Safety margin subtracted from the token lifetime when caching."""
        return float(os.getenv("EXPIRY_BUFFER_SEC", "30"))

    # Logging and debugging
    @property
    def log_level(self) -> str:
        """Logging level; DEBUG=true forces DEBUG."""
        if _env_flag("DEBUG", "false"):
            return "DEBUG"
        return os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def log_dir(self) -> Path:
        return Path(os.getenv("LOG_DIR", "./logs"))

    @property
    def debug_shots(self) -> bool:
        """Save screenshots at key points of the sign-in flow."""
        return _env_flag("DEBUG_SHOTS", "false")

    @property
    def shot_dir(self) -> Path:
        return Path(os.getenv("SHOT_DIR", "./debug-shots"))

    def validate(self) -> bool:
        """Validate that all required configuration is present.

        Returns:
            bool: True if configuration is valid

        Raises:
            ValueError: If required configuration is missing
        """
        _ = self.email
        _ = self.password
        _ = self.totp_secret
        return True


# Global config instance
_config: Optional[Config] = None


def get_config(env_file: Optional[str] = None) -> Config:
    """Get global configuration instance.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Config: Global configuration instance
    """
    global _config
    if _config is None:
        _config = Config(env_file)
    return _config
