"""Multi-scope element probing across the page and all of its frames."""

import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from playwright.sync_api import Error as PlaywrightError

from .steps import StepOutcome

logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = 200

# Selectors reported by dump_scopes_summary
SUMMARY_SELECTORS = (
    'input[type="email"]', 'input[name="email"]', "#xl-form-email",
    'input[autocomplete="username"]', '[data-automationid="email"]',
    'input[type="password"]', "#xl-form-password", '[data-automationid="password"]',
    'button:has-text("Continue")', 'button:has-text("Next")',
    'button:has-text("Log in")', 'button:has-text("Sign in")', 'button[type="submit"]',
    'input[autocomplete="one-time-code"]', 'input[name="code"]', 'input[id*="code"]', 'input[type="tel"]',
)


@dataclass
class ProbeHit:
    """A visible element found by the prober."""

    scope: Any
    locator: Any
    selector: str


def all_scopes(page) -> List[Any]:
    """Return the page followed by each of its child frames.

    Frames come and go during sign-in, so this is called fresh on every probe.
    """
    main_frame = page.main_frame
    return [page] + [frame for frame in page.frames if frame is not main_frame]


def find_first_visible(scopes: Sequence[Any], selector: str) -> Optional[ProbeHit]:
    """Single pass: first scope where the selector matches a visible element."""
    for scope in scopes:
        locator = scope.locator(selector).first
        try:
            if locator.count() and locator.is_visible():
                return ProbeHit(scope=scope, locator=locator, selector=selector)
        except PlaywrightError as e:
            # Detached frames raise here
            logger.debug(f"    Probe of '{selector}' failed in {scope.url}: {e}")
    return None


def wait_visible_in_any_scope(
    page,
    selectors: Sequence[str],
    timeout_ms: float = 15000,
    label: str = "",
    poll_interval_ms: float = POLL_INTERVAL_MS,
) -> Optional[ProbeHit]:
    """Poll every scope until one of the selectors is visible.

    Args:
        page: Playwright page whose frames are probed
        selectors: Alternative selectors for the same control
        timeout_ms: Overall deadline
        label: Name used in log lines
        poll_interval_ms: Pause between passes

    Returns:
        ProbeHit for the first visible match, or None once the deadline passes
    """
    label = label or "element"
    deadline = time.monotonic() + timeout_ms / 1000
    while time.monotonic() < deadline:
        for scope in all_scopes(page):
            for selector in selectors:
                hit = find_first_visible([scope], selector)
                if hit:
                    logger.debug(f"  FOUND {label}: {selector} in scope URL: {scope.url}")
                    return hit
        page.wait_for_timeout(poll_interval_ms)

    logger.debug(f"  TIMEOUT waiting for {label} in any scope: {list(selectors)}")
    return None


def click_first_if_present(
    page,
    selectors: Sequence[str],
    timeout_ms: float = 4000,
    label: str = "",
) -> StepOutcome:
    """Probe for a clickable control and click it if it shows up."""
    hit = wait_visible_in_any_scope(page, selectors, timeout_ms, label or "clickable")
    if not hit:
        return StepOutcome.ABSENT
    try:
        hit.locator.click()
        logger.info(f"  Clicked {label or hit.selector}")
    except PlaywrightError as e:
        logger.warning(f"  Click on {label or hit.selector} failed: {e}")
        return StepOutcome.FAILED
    return StepOutcome.DONE


def dump_scopes_summary(page, tag: str) -> None:
    """Log which interesting selectors are present in each scope (DEBUG only)."""
    if not logger.isEnabledFor(logging.DEBUG):
        return

    scopes = all_scopes(page)
    logger.debug(f"[{tag}] Scopes: {len(scopes)} Top URL: {page.url}")
    for scope in scopes:
        present = []
        for selector in SUMMARY_SELECTORS:
            try:
                count = scope.locator(selector).count()
            except PlaywrightError:
                continue
            if count:
                present.append(f"{selector}({count})")
        logger.debug(f"  [scope] {scope.url} => {' | '.join(present) or '(no interesting selectors)'}")
