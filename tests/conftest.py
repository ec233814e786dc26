"""
Test configuration and shared fixtures for xero_token tests

Playwright is replaced by small in-memory fakes: a page is a scope with a dict
of selectors that are present (visible or hidden), frames are child scopes,
and network responses are queued and dispatched to listeners whenever the
page is "pumped" (goto, wait_for_timeout, wait_for_event).
"""
import time
from collections import deque
from dataclasses import replace
from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from xero_token.auth.policy import SitePolicy


class FakeResponse:
    """Stand-in for playwright Response"""

    def __init__(self, body, url="https://identity.xero.com/connect/token",
                 content_type="application/json; charset=utf-8", status=200, broken=False):
        self.url = url
        self.status = status
        self.headers = {"content-type": content_type} if content_type else {}
        self._body = body
        self._broken = broken

    def json(self):
        if self._broken:
            raise PlaywrightError("Response body is unavailable for redirect responses")
        if isinstance(self._body, str):
            raise ValueError("Expecting value")
        return self._body


def token_response(access_token="eyJhbGciOiJSUzI1NiJ9.test-token", token_type="Bearer",
                   expires_in=1800, **kwargs):
    body = {"access_token": access_token, "token_type": token_type, "expires_in": expires_in,
            "scope": "openid profile email accounting.transactions"}
    return FakeResponse(body, **kwargs)


class FakeLocator:
    """Stand-in for playwright Locator; a selector may be a comma-joined list"""

    def __init__(self, scope, selector):
        self.scope = scope
        self.selector = selector

    @property
    def first(self):
        return self

    def _names(self):
        return [part.strip() for part in self.selector.split(", ")]

    def count(self):
        self.scope.check_attached()
        return sum(1 for name in self._names() if name in self.scope.elements)

    def is_visible(self):
        self.scope.check_attached()
        return any(self.scope.elements.get(name) for name in self._names())

    def _act(self, kind, value=None):
        self.scope.check_attached()
        matched = [name for name in self._names() if name in self.scope.elements]
        target = matched[0] if matched else self.selector
        self.scope.actions.append((kind, target, value))
        hook = self.scope.hooks.get((kind, target))
        if hook:
            hook(self.scope, value)

    def fill(self, value, timeout=None):
        self._act("fill", value)

    def click(self, timeout=None):
        self._act("click")

    def press(self, key):
        self._act("press", key)

    def check(self):
        self._act("check")

    def filter(self, has=None):
        return FakeLocator(self.scope, "trust-device")


class FakeFrame:
    """Stand-in for playwright Frame. ``elements`` maps selector -> visible"""

    def __init__(self, url="about:blank", elements=None):
        self.url = url
        self.elements = dict(elements or {})
        self.actions = []
        self.hooks = {}
        self.detached = False

    def check_attached(self):
        if self.detached:
            raise PlaywrightError("Frame was detached")

    def locator(self, selector):
        return FakeLocator(self, selector)

    def get_by_role(self, role, name=None):
        return FakeLocator(self, f"role={role}")

    def wait_for_load_state(self, state=None, timeout=None):
        self.check_attached()

    def wait_for_timeout(self, timeout):
        self.check_attached()
        time.sleep(min(timeout, 20) / 1000)

    def fills(self):
        return [value for kind, _, value in self.actions if kind == "fill"]


class FakePage(FakeFrame):
    """Stand-in for playwright Page with frames, routing, events and a response queue"""

    def __init__(self, url="about:blank", elements=None):
        super().__init__(url, elements)
        self.main_frame = FakeFrame(url)
        self.child_frames = []
        self.routes = {}
        self.visited = []
        self.listeners = {}
        self._queue = deque()
        self.screenshots = []
        self.closed = False

    @property
    def frames(self):
        return [self.main_frame] + list(self.child_frames)

    # events
    def on(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event, handler):
        self.listeners.get(event, []).remove(handler)

    def emit(self, event, payload):
        for handler in list(self.listeners.get(event, [])):
            handler(payload)

    # network
    def schedule_response(self, response, delay_ms=0):
        self._queue.append((time.monotonic() + delay_ms / 1000, response))

    def _due(self):
        now = time.monotonic()
        while self._queue and self._queue[0][0] <= now:
            yield self._queue.popleft()[1]

    def pump(self):
        for response in self._due():
            self.emit("response", response)

    def wait_for_timeout(self, timeout):
        self.pump()
        super().wait_for_timeout(timeout)
        self.pump()

    def wait_for_event(self, event, predicate=None, timeout=None):
        deadline = time.monotonic() + (timeout or 30000) / 1000
        while True:
            for response in self._due():
                self.emit(event, response)
                if predicate is None or predicate(response):
                    return response
            if time.monotonic() >= deadline:
                raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded while waiting for event \"{event}\"")
            time.sleep(0.005)

    # navigation
    def goto(self, url, wait_until=None):
        self.visited.append(url)
        route = self.routes.get(url)
        if isinstance(route, Exception):
            raise route
        self.url = url
        if callable(route):
            route(self)
        self.pump()

    def wait_for_url(self, url, timeout=None):
        matches = url(self.url) if callable(url) else url == self.url
        if not matches:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for URL")

    def screenshot(self, path=None, full_page=False):
        self.screenshots.append(path)

    def close(self):
        self.closed = True


class FakeContext:
    """Stand-in for a persistent BrowserContext"""

    def __init__(self, page):
        self.page = page
        self.close_calls = 0

    def new_page(self):
        return self.page

    def close(self):
        self.close_calls += 1

    @property
    def closed(self):
        return self.close_calls > 0


@pytest.fixture
def fast_policy():
    """Default Xero policy with every wait shrunk for tests"""
    return replace(
        SitePolicy(),
        cookie_timeout_ms=30,
        email_timeout_ms=200,
        continue_timeout_ms=30,
        password_timeout_ms=200,
        submit_timeout_ms=100,
        fill_timeout_ms=100,
        step_load_timeout_ms=10,
        mfa_settle_timeout_ms=10,
        mfa_retry_pause_ms=10,
        org_click_timeout_ms=10,
        org_load_timeout_ms=10,
        stabilize_timeout_ms=10,
    )


@pytest.fixture
def fake_page():
    return FakePage()


@pytest.fixture
def playwright_launcher():
    """Patch sync_playwright in the fetcher module; returns (mock, install)"""
    from unittest.mock import patch

    patcher = patch("xero_token.auth.token_fetcher.sync_playwright")
    sync_playwright = patcher.start()

    def install(context):
        playwright = MagicMock()
        playwright.chromium.launch_persistent_context.return_value = context
        sync_playwright.return_value.start.return_value = playwright
        return playwright

    yield sync_playwright, install
    patcher.stop()


@pytest.fixture
def credentials():
    return {
        "email": "jane.doe@example.com",
        "password": "correct horse battery staple",
        "totp_secret": "JBSWY3DPEHPK3PXP",
    }
