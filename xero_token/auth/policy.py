"""Site policy for the Xero sign-in flow: URLs, selector sets, timeouts and workarounds.

Everything in here is an environment fact about the current Xero UI and is
expected to drift. Override fields on a SitePolicy instance rather than
editing the login flow.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

SelectorSet = Tuple[str, ...]


@dataclass
class SitePolicy:
    """Tunable knobs for the Xero login and landing sequence."""

    # URLs
    login_url: str = "https://login.xero.com/identity/user/login"
    app_url: str = "https://go.xero.com/app"
    root_url: str = "https://go.xero.com/"

    # URL patterns
    in_app_pattern: str = r"^https://go\.xero\.com/"
    not_found_pattern: str = r"https://go\.xero\.com/(?:General/404|app/errors/404)"

    # Selector sets
    cookie_selectors: SelectorSet = (
        'button:has-text("Accept all cookies")',
        'button:has-text("Allow all cookies")',
        'button:has-text("Accept")',
        '[data-automationid="accept-cookies-button"]',
    )
    email_selectors: SelectorSet = (
        'input[type="email"]',
        'input[name="email"]',
        "#xl-form-email",
        'input[autocomplete="username"]',
        '[data-automationid="email"]',
    )
    continue_selectors: SelectorSet = (
        'button:has-text("Continue")',
        'button:has-text("Next")',
        'button[aria-label*="Continue"]',
    )
    password_selectors: SelectorSet = (
        'input[type="password"]',
        "#xl-form-password",
        '[data-automationid="password"]',
    )
    submit_selectors: SelectorSet = (
        'button:has-text("Log in")',
        'button:has-text("Sign in")',
        'button[type="submit"]',
    )
    mfa_code_selectors: SelectorSet = (
        'input[autocomplete="one-time-code"]',
        'input[name="code"]',
        'input[id*="code"]',
        'input[type="tel"]',
        'input[placeholder*="123456"]',
    )
    org_chooser_selectors: SelectorSet = (
        '[data-automationid="organisation-card"]',
        '[data-automationid="org-card"]',
        'button:has-text("Open organisation")',
        'a:has-text("Open organisation")',
        'a[href*="/app/"]',
    )
    mfa_confirm_name: str = r"confirm|continue|verify"
    trust_device_text: str = "Trust this device"

    # Timeouts (ms)
    cookie_timeout_ms: int = 4000
    email_timeout_ms: int = 20000
    continue_timeout_ms: int = 8000
    password_timeout_ms: int = 20000
    submit_timeout_ms: int = 10000
    fill_timeout_ms: int = 7000
    step_load_timeout_ms: int = 8000
    mfa_settle_timeout_ms: int = 5000
    mfa_retry_pause_ms: int = 1000
    org_click_timeout_ms: int = 5000
    org_load_timeout_ms: int = 10000
    stabilize_timeout_ms: int = 45000

    # Workarounds
    mfa_max_attempts: int = 2
    retry_via_root_on_404: bool = True
    wait_for_stabilization: bool = True

    def is_in_app(self, url: str) -> bool:
        return bool(re.search(self.in_app_pattern, url or "", re.IGNORECASE))

    def is_not_found(self, url: str) -> bool:
        return bool(re.search(self.not_found_pattern, url or "", re.IGNORECASE))

    def is_landed(self, url: str) -> bool:
        """True if the URL is a recognised in-app page and not the 404 bounce."""
        return self.is_in_app(url) and not self.is_not_found(url)

    @classmethod
    def from_urls(
        cls,
        login_url: Optional[str] = None,
        app_url: Optional[str] = None,
        root_url: Optional[str] = None,
    ) -> "SitePolicy":
        """Default policy with any of the three URLs overridden."""
        policy = cls()
        if login_url:
            policy.login_url = login_url
        if app_url:
            policy.app_url = app_url
        if root_url:
            policy.root_url = root_url
        return policy
