"""Iframe-aware, multi-step Xero sign-in and dashboard landing."""

import logging
from typing import Dict, List, Optional

from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from ..utils.logger import mask_email
from ..utils.snapshots import SnapshotRecorder
from .exceptions import NavigationError
from .mfa_handler import MFASolver
from .policy import SitePolicy
from .scopes import ProbeHit, click_first_if_present, dump_scopes_summary, wait_visible_in_any_scope
from .steps import LoginStep, StepOutcome, run_steps

logger = logging.getLogger(__name__)


def navigate(page, url: str) -> None:
    """Go to a URL and wait for DOMContentLoaded.

    Raises:
        NavigationError: If Playwright fails the navigation
    """
    try:
        page.goto(url, wait_until="domcontentloaded")
    except PlaywrightError as e:
        raise NavigationError(url, str(e)) from e


class LoginNavigator:
    """Drives the Xero login form and lands the page on the dashboard.

    Every step probes for its control with a bounded timeout and is skipped
    when the control never shows up, so single-step and two-step login, with
    or without MFA and the organisation chooser, all go through the same code.
    """

    def __init__(
        self,
        email: str,
        password: str,
        mfa_solver: MFASolver,
        policy: Optional[SitePolicy] = None,
        snapshots: Optional[SnapshotRecorder] = None,
    ):
        """Initialize navigator.

        Args:
            email: Xero login email
            password: Xero login password
            mfa_solver: Solver for the one-time-code challenge
            policy: URLs, selectors and timeouts (default: SitePolicy())
            snapshots: Debug screenshot recorder (default: disabled)
        """
        self.email = email
        self.password = password
        self.mfa_solver = mfa_solver
        self.policy = policy or SitePolicy()
        self.snapshots = snapshots or SnapshotRecorder(enabled=False)

        # Hits shared between steps of one perform_login run
        self._email_hit: Optional[ProbeHit] = None
        self._password_hit: Optional[ProbeHit] = None

    # ------------------------------------------------------------------
    # Login form
    # ------------------------------------------------------------------

    def login_steps(self) -> List[LoginStep]:
        """The login pipeline, in order."""
        return [
            LoginStep("cookies", self.accept_cookies),
            LoginStep("email", self.fill_email),
            LoginStep("continue", self.click_continue),
            LoginStep("password", self.fill_password),
            LoginStep("submit", self.submit),
            LoginStep("mfa", self.mfa_solver.solve_all),
        ]

    def perform_login(self, page) -> Dict[str, StepOutcome]:
        """Fill and submit the login form, then solve MFA if it is shown.

        Returns:
            Dict of step name to outcome
        """
        logger.info(f"LOGIN: start. Email: {mask_email(self.email)}")
        self._email_hit = None
        self._password_hit = None

        outcomes = run_steps(page, self.login_steps())
        self.snapshots.capture(page, "after-login-or-mfa")
        logger.info("LOGIN: " + ", ".join(f"{name}={outcome.value}" for name, outcome in outcomes.items()))
        return outcomes

    def accept_cookies(self, page) -> StepOutcome:
        return click_first_if_present(
            page, self.policy.cookie_selectors, self.policy.cookie_timeout_ms, "cookie banner"
        )

    def fill_email(self, page) -> StepOutcome:
        dump_scopes_summary(page, "before-email")
        hit = wait_visible_in_any_scope(page, self.policy.email_selectors, self.policy.email_timeout_ms, "email")
        if not hit:
            logger.warning("LOGIN: email field NOT found")
            return StepOutcome.ABSENT

        self._email_hit = hit
        try:
            hit.locator.fill(self.email, timeout=self.policy.fill_timeout_ms)
        except PlaywrightError as e:
            logger.warning(f"LOGIN: email fill error: {e}")
            return StepOutcome.FAILED
        logger.info("LOGIN: email filled")
        return StepOutcome.DONE

    def click_continue(self, page) -> StepOutcome:
        """Two-step variant: press Continue/Next after the email."""
        if not self._email_hit:
            return StepOutcome.ABSENT

        outcome = click_first_if_present(
            page, self.policy.continue_selectors, self.policy.continue_timeout_ms, "Continue/Next"
        )
        if outcome is StepOutcome.DONE:
            try:
                self._email_hit.scope.wait_for_load_state(
                    "domcontentloaded", timeout=self.policy.step_load_timeout_ms
                )
            except PlaywrightTimeoutError:
                pass
        return outcome

    def fill_password(self, page) -> StepOutcome:
        dump_scopes_summary(page, "before-password")
        hit = wait_visible_in_any_scope(
            page, self.policy.password_selectors, self.policy.password_timeout_ms, "password"
        )
        if not hit:
            logger.warning("LOGIN: password field NOT found")
            return StepOutcome.ABSENT

        self._password_hit = hit
        try:
            hit.locator.fill(self.password, timeout=self.policy.fill_timeout_ms)
        except PlaywrightError as e:
            logger.warning(f"LOGIN: password fill error: {e}")
            return StepOutcome.FAILED
        logger.info("LOGIN: password filled")
        return StepOutcome.DONE

    def submit(self, page) -> StepOutcome:
        """Click the login button, or press Enter in the password field."""
        outcome = click_first_if_present(
            page, self.policy.submit_selectors, self.policy.submit_timeout_ms, "login button"
        )
        if outcome is not StepOutcome.ABSENT:
            return outcome

        if not self._password_hit:
            logger.warning("LOGIN: no submit button and no password field to press Enter in")
            return StepOutcome.ABSENT
        try:
            self._password_hit.locator.press("Enter")
        except PlaywrightError as e:
            logger.warning(f"LOGIN: Enter on password failed: {e}")
            return StepOutcome.FAILED
        logger.info("LOGIN: pressed Enter on password")
        return StepOutcome.DONE

    # ------------------------------------------------------------------
    # Landing
    # ------------------------------------------------------------------

    def choose_organisation(self, page) -> StepOutcome:
        """Open the first organisation if the chooser is showing."""
        card = page.locator(", ".join(self.policy.org_chooser_selectors)).first
        try:
            count = card.count()
        except PlaywrightError:
            count = 0
        logger.debug(f"ORG chooser candidates count: {count}")
        if not count:
            return StepOutcome.ABSENT

        try:
            card.click(timeout=self.policy.org_click_timeout_ms)
            logger.info("ORG chosen (first card)")
        except PlaywrightError as e:
            logger.warning(f"ORG choose click error: {e}")
            return StepOutcome.FAILED
        try:
            page.wait_for_load_state("domcontentloaded", timeout=self.policy.org_load_timeout_ms)
        except PlaywrightTimeoutError:
            pass
        return StepOutcome.DONE

    def land_on_dashboard(self, page) -> bool:
        """Get the page onto a stable in-app URL, signing in if needed.

        Returns:
            bool: True if the page ended on a recognised in-app URL
        """
        policy = self.policy

        logger.info("LAND: goto dashboard first")
        self._hop(page, policy.app_url)
        logger.info(f"LAND: URL after app hop => {page.url}, 404? {policy.is_not_found(page.url)}")
        if policy.is_landed(page.url):
            logger.info("LAND: profile already signed in; skipping login")
            return True

        logger.info("LAND: goto login page")
        self._hop(page, policy.login_url)
        logger.info(f"LAND: URL at login => {page.url}")
        self.snapshots.capture(page, "at-login")
        self.perform_login(page)

        logger.info("LAND: single hop to app after login")
        self._hop(page, policy.app_url)
        logger.info(f"LAND: URL after hop => {page.url}, 404? {policy.is_not_found(page.url)}")
        self.choose_organisation(page)

        if policy.retry_via_root_on_404 and policy.is_not_found(page.url):
            logger.info("LAND: 404 bounce detected; going root once")
            self._hop(page, policy.root_url)
            logger.info(f"LAND: URL after root => {page.url}, 404? {policy.is_not_found(page.url)}")
            self.choose_organisation(page)

        if policy.wait_for_stabilization:
            try:
                page.wait_for_url(policy.is_landed, timeout=policy.stabilize_timeout_ms)
                logger.info(f"LAND: stabilized at in-app URL: {page.url}")
            except PlaywrightTimeoutError:
                logger.warning(f"LAND: did not stabilize in time. Current URL: {page.url}")
                self.snapshots.capture(page, "failed-stabilize")

        return policy.is_landed(page.url)

    def _hop(self, page, url: str) -> bool:
        try:
            navigate(page, url)
        except NavigationError as e:
            logger.warning(f"NAV error: {e}")
            return False
        return True
