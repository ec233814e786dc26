"""One-time-password handling for Xero multi-factor authentication."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import pyotp
from playwright.sync_api import Error as PlaywrightError

from .policy import SitePolicy
from .scopes import all_scopes
from .steps import StepOutcome

logger = logging.getLogger(__name__)


class MFAHandler(ABC):
    """Abstract base class for MFA code retrieval."""

    @abstractmethod
    def get_mfa_code(self) -> str:
        """Retrieve MFA code from configured source.

        Returns:
            str: The MFA code

        Raises:
            Exception: If MFA code cannot be retrieved
        """
        pass


class TOTPMFAHandler(MFAHandler):
    """Generate RFC 6238 codes (30 second step) from a shared secret."""

    def __init__(self, secret: str):
        """Initialize TOTP handler.

        Args:
            secret: Base32 shared secret; spaces and case are ignored
        """
        self.totp = pyotp.TOTP(secret.replace(" ", "").upper())

    def get_mfa_code(self) -> str:
        return self.totp.now()


def _is_visible(locator) -> bool:
    try:
        return locator.is_visible()
    except PlaywrightError:
        return False


class MFASolver:
    """Fills a one-time code into whichever scope shows the challenge."""

    def __init__(self, code_source: MFAHandler, policy: SitePolicy):
        self.code_source = code_source
        self.policy = policy
        self.code_selector = ", ".join(policy.mfa_code_selectors)

    def fill_if_present(self, scope: Any) -> StepOutcome:
        """Solve the challenge in one scope if its code input is visible.

        Makes at most ``policy.mfa_max_attempts`` fill attempts, generating a
        fresh code each time, and gives up quietly if the input never goes away.

        Args:
            scope: Playwright page or frame

        Returns:
            StepOutcome: ABSENT if no challenge, DONE if it cleared, FAILED otherwise
        """
        code_input = scope.locator(self.code_selector).first
        visible = _is_visible(code_input)
        logger.debug(f"  MFA visible? {visible} in scope URL: {scope.url}")
        if not visible:
            return StepOutcome.ABSENT

        self._trust_device(scope)

        confirm_name = re.compile(self.policy.mfa_confirm_name, re.IGNORECASE)
        for attempt in range(1, self.policy.mfa_max_attempts + 1):
            code = self.code_source.get_mfa_code()
            logger.info(f"  MFA: filling one-time code (attempt {attempt})")
            try:
                code_input.fill(code)
            except PlaywrightError as e:
                logger.warning(f"  MFA fill error: {e}")

            confirm = scope.get_by_role("button", name=confirm_name).first
            try:
                if confirm.count():
                    confirm.click()
                    logger.info("  MFA: clicked confirm/continue")
            except PlaywrightError as e:
                logger.debug(f"  MFA confirm click failed: {e}")

            try:
                scope.wait_for_load_state("networkidle", timeout=self.policy.mfa_settle_timeout_ms)
            except PlaywrightError as e:
                logger.debug(f"  MFA settle wait ended: {e}")

            still_asking = _is_visible(code_input)
            logger.debug(f"  MFA still asking? {still_asking}")
            if not still_asking:
                return StepOutcome.DONE
            if attempt < self.policy.mfa_max_attempts:
                try:
                    scope.wait_for_timeout(self.policy.mfa_retry_pause_ms)
                except PlaywrightError as e:
                    logger.warning(f"  MFA scope went away before retry: {e}")
                    return StepOutcome.FAILED

        logger.warning("  MFA challenge still showing after final attempt")
        return StepOutcome.FAILED

    def solve_all(self, page) -> StepOutcome:
        """Run the solver on the page and once per child frame."""
        outcomes = []
        for scope in all_scopes(page):
            try:
                outcomes.append(self.fill_if_present(scope))
            except PlaywrightError as e:
                logger.warning(f"  MFA solver error in scope {scope.url}: {e}")
                outcomes.append(StepOutcome.FAILED)
        if StepOutcome.DONE in outcomes:
            return StepOutcome.DONE
        if StepOutcome.FAILED in outcomes:
            return StepOutcome.FAILED
        return StepOutcome.ABSENT

    def _trust_device(self, scope: Any) -> None:
        """Tick the 'Trust this device' checkbox if it is there."""
        text = self.policy.trust_device_text
        try:
            trust = scope.locator('input[type="checkbox"]').filter(
                has=scope.locator(f'xpath=following::*[contains(.,"{text}")]'),
            ).first
            if trust.count():
                trust.check()
                logger.info(f'  MFA: checked "{text}"')
        except PlaywrightError as e:
            logger.debug(f"  MFA trust checkbox skipped: {e}")
