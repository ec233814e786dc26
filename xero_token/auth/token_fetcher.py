"""Playwright-based Xero token acquisition with a persistent browser profile."""

import logging
from pathlib import Path
from typing import Any, Optional, Union

from playwright.sync_api import BrowserContext, Error as PlaywrightError, Page, sync_playwright

from ..utils.logger import mask_email, mask_token
from ..utils.snapshots import SnapshotRecorder
from .exceptions import ValidationError
from .harvester import TokenHarvester
from .login_flow import LoginNavigator
from .mfa_handler import MFAHandler, MFASolver, TOTPMFAHandler
from .models import TokenResponse
from .policy import SitePolicy

logger = logging.getLogger(__name__)


class XeroTokenFetcher:
    """Signs in to Xero in a real browser and captures the bearer token it issues.

    The persistent profile directory is what makes repeat runs cheap: once the
    device is trusted, later runs land on the dashboard without login or MFA.
    """

    def __init__(
        self,
        email: str,
        password: str,
        totp_secret: str,
        user_data_dir: Union[str, Path] = "./xero-profile",
        headless: bool = True,
        timeout_ms: float = 60000,
        policy: Optional[SitePolicy] = None,
        snapshots: Optional[SnapshotRecorder] = None,
        mfa_handler: Optional[MFAHandler] = None,
    ):
        """Initialize fetcher.

        Args:
            email: Xero login email
            password: Xero login password
            totp_secret: Base32 shared secret for one-time codes
            user_data_dir: Persistent browser profile directory
            headless: Run browser in headless mode
            timeout_ms: Deadline for the token response once landed
            policy: Site policy override (default: SitePolicy())
            snapshots: Debug screenshot recorder (default: disabled)
            mfa_handler: Code source override (default: TOTP from totp_secret)
        """
        self.email = email
        self.password = password
        self.totp_secret = totp_secret
        self.user_data_dir = Path(user_data_dir)
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.policy = policy or SitePolicy()
        self.snapshots = snapshots or SnapshotRecorder(enabled=False)
        self.mfa_handler = mfa_handler

        self._playwright: Any = None
        self._context: Optional[BrowserContext] = None

    @property
    def context(self) -> Optional[BrowserContext]:
        """Browser context kept open by an earlier ``fetch(keep_browser_open=True)``."""
        return self._context

    def _validate_credentials(self) -> None:
        missing = [
            name for name, value in (
                ("email", self.email),
                ("password", self.password),
                ("totp_secret", self.totp_secret),
            ) if not value
        ]
        if missing:
            raise ValidationError(missing)

    def _ensure_context(self) -> BrowserContext:
        """Launch the persistent context, or reuse the one kept open."""
        if self._context is not None:
            logger.debug("Reusing open browser context")
            return self._context

        profile = self.user_data_dir.resolve()
        logger.info(f"Launching Chromium with profile {profile} ({'headless' if self.headless else 'headed'})")
        self._playwright = sync_playwright().start()
        try:
            self._context = self._playwright.chromium.launch_persistent_context(
                str(profile),
                headless=self.headless,
                no_viewport=True,
                slow_mo=0 if self.headless else 150,
            )
        except PlaywrightError:
            self._playwright.stop()
            self._playwright = None
            raise
        return self._context

    def close(self) -> None:
        """Close the browser context and stop Playwright if we started them."""
        if self._context is not None:
            try:
                self._context.close()
            except PlaywrightError as e:
                logger.debug(f"Context close error: {e}")
            self._context = None
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except PlaywrightError as e:
                logger.debug(f"Playwright stop error: {e}")
            self._playwright = None

    def __enter__(self) -> "XeroTokenFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _build_navigator(self) -> LoginNavigator:
        code_source = self.mfa_handler or TOTPMFAHandler(self.totp_secret)
        return LoginNavigator(
            email=self.email,
            password=self.password,
            mfa_solver=MFASolver(code_source, self.policy),
            policy=self.policy,
            snapshots=self.snapshots,
        )

    @staticmethod
    def _watch_page(page: Page) -> None:
        def on_frame_navigated(frame):
            if frame == page.main_frame:
                logger.debug(f"NAV main: {frame.url}")

        page.on("framenavigated", on_frame_navigated)
        page.on("console", lambda msg: logger.debug(f"PAGE console: {msg.type} {msg.text}"))

    def fetch(
        self,
        existing_context: Optional[BrowserContext] = None,
        keep_browser_open: bool = False,
    ) -> TokenResponse:
        """Sign in if needed and return the bearer token Xero issues.

        Args:
            existing_context: Caller-owned browser context to run in; never closed here
            keep_browser_open: Leave our own context open for later calls

        Returns:
            TokenResponse: The captured token

        Raises:
            ValidationError: If a credential is missing (before the browser starts)
            HarvestTimeout: If no token response is seen within timeout_ms
        """
        self._validate_credentials()
        logger.info(f"Fetching Xero token for {mask_email(self.email)}")

        owns_context = existing_context is None
        context = existing_context if existing_context is not None else self._ensure_context()

        page = None
        harvester = None
        try:
            page = context.new_page()
            self._watch_page(page)

            # Listen before the first navigation so an early token is not missed
            harvester = TokenHarvester(page)
            harvester.attach()

            self._build_navigator().land_on_dashboard(page)
            token = harvester.harvest(self.timeout_ms)
            logger.info(f"Token acquired: {mask_token(token.access_token)} expires_in: {token.expires_in}")
            return token
        except Exception as e:
            logger.error(f"ERROR in fetch: {e}")
            if page is not None:
                self.snapshots.capture(page, "on-error")
            raise
        finally:
            if harvester is not None:
                try:
                    harvester.detach()
                except PlaywrightError:
                    pass
            if owns_context and not keep_browser_open:
                self.close()
            elif page is not None:
                try:
                    page.close()
                except PlaywrightError as e:
                    logger.debug(f"Page close error: {e}")


def get_access_token(
    email: str,
    password: str,
    totp_secret: str,
    user_data_dir: Union[str, Path] = "./xero-profile",
    headless: bool = True,
    timeout_ms: float = 60000,
    keep_browser_open: bool = False,
    existing_context: Optional[BrowserContext] = None,
    **kwargs: Any,
) -> TokenResponse:
    """One-shot token acquisition.

    With ``keep_browser_open`` the browser is left running and can no longer
    be reached from here; use XeroTokenFetcher directly to reuse it.
    """
    fetcher = XeroTokenFetcher(
        email=email,
        password=password,
        totp_secret=totp_secret,
        user_data_dir=user_data_dir,
        headless=headless,
        timeout_ms=timeout_ms,
        **kwargs,
    )
    return fetcher.fetch(existing_context=existing_context, keep_browser_open=keep_browser_open)
