"""
Unit tests for the one-time-password solver
"""
import pyotp
import pytest
from playwright.sync_api import Error as PlaywrightError

from xero_token.auth.mfa_handler import MFAHandler, MFASolver, TOTPMFAHandler
from xero_token.auth.steps import StepOutcome

from .conftest import FakeFrame, FakePage

CODE_INPUT = 'input[autocomplete="one-time-code"]'
SECRET = "JBSWY3DPEHPK3PXP"


class CountingHandler(MFAHandler):
    """Hands out sequential fixed codes"""

    def __init__(self):
        self.calls = 0

    def get_mfa_code(self):
        self.calls += 1
        return f"00000{self.calls}"


@pytest.fixture
def solver(fast_policy):
    return MFASolver(CountingHandler(), fast_policy)


class TestTOTPMFAHandler:
    """Test TOTP code generation"""

    def test_generates_current_code(self):
        code = TOTPMFAHandler(SECRET).get_mfa_code()

        assert len(code) == 6 and code.isdigit()
        assert pyotp.TOTP(SECRET).verify(code, valid_window=1)

    def test_normalises_spaces_and_case(self):
        code = TOTPMFAHandler("jbsw y3dp ehpk 3pxp").get_mfa_code()

        assert pyotp.TOTP(SECRET).verify(code, valid_window=1)


class TestMFASolver:
    """Test challenge detection and retry"""

    def test_no_challenge_is_noop(self, solver):
        page = FakePage()

        assert solver.fill_if_present(page) is StepOutcome.ABSENT
        assert solver.code_source.calls == 0
        assert page.actions == []

    def test_hidden_input_is_noop(self, solver):
        page = FakePage(elements={CODE_INPUT: False})

        assert solver.fill_if_present(page) is StepOutcome.ABSENT

    def test_single_attempt_when_challenge_clears(self, solver):
        page = FakePage(elements={CODE_INPUT: True, "role=button": True})
        page.hooks[("click", "role=button")] = lambda scope, _: scope.elements.update({CODE_INPUT: False})

        outcome = solver.fill_if_present(page)

        assert outcome is StepOutcome.DONE
        assert page.fills() == ["000001"]
        assert ("click", "role=button", None) in page.actions

    def test_retries_exactly_once_when_challenge_persists(self, solver):
        page = FakePage(elements={CODE_INPUT: True, "role=button": True})

        outcome = solver.fill_if_present(page)

        assert outcome is StepOutcome.FAILED
        assert page.fills() == ["000001", "000002"]
        assert solver.code_source.calls == 2

    def test_checks_trust_device_box(self, solver):
        page = FakePage(elements={CODE_INPUT: True, "trust-device": True})
        page.hooks[("fill", CODE_INPUT)] = lambda scope, _: scope.elements.update({CODE_INPUT: False})

        solver.fill_if_present(page)

        assert ("check", "trust-device", None) in page.actions

    def test_solve_all_reaches_challenge_in_frame(self, solver):
        page = FakePage()
        frame = FakeFrame("https://login.xero.com/mfa", {'input[name="code"]': True})
        frame.hooks[("fill", 'input[name="code"]')] = lambda scope, _: scope.elements.update(
            {'input[name="code"]': False}
        )
        page.child_frames.append(frame)

        assert solver.solve_all(page) is StepOutcome.DONE
        assert frame.fills() == ["000001"]
        assert page.fills() == []

    def test_solve_all_continues_past_frame_that_detaches(self, solver):
        page = FakePage()
        leaving = FakeFrame("https://login.xero.com/mfa-old", {CODE_INPUT: True})
        leaving.hooks[("fill", CODE_INPUT)] = lambda scope, _: setattr(scope, "detached", True)
        challenge = FakeFrame("https://login.xero.com/mfa", {CODE_INPUT: True})
        challenge.hooks[("fill", CODE_INPUT)] = lambda scope, _: scope.elements.update({CODE_INPUT: False})
        page.child_frames.extend([leaving, challenge])

        assert solver.solve_all(page) is StepOutcome.DONE
        assert leaving.fills() == ["000001"]
        assert challenge.fills() == ["000002"]

    def test_solve_all_records_failure_and_keeps_going(self, solver, monkeypatch):
        page = FakePage()
        broken = FakeFrame("https://login.xero.com/broken")
        challenge = FakeFrame("https://login.xero.com/mfa", {CODE_INPUT: True})
        challenge.hooks[("fill", CODE_INPUT)] = lambda scope, _: scope.elements.update({CODE_INPUT: False})
        page.child_frames.extend([broken, challenge])

        original = solver.fill_if_present

        def fill_if_present(scope):
            if scope is broken:
                raise PlaywrightError("Target closed")
            return original(scope)

        monkeypatch.setattr(solver, "fill_if_present", fill_if_present)

        assert solver.solve_all(page) is StepOutcome.DONE
        assert challenge.fills() == ["000001"]

    def test_solve_all_absent_everywhere(self, solver):
        page = FakePage()
        page.child_frames.append(FakeFrame("https://example.com/ads"))

        assert solver.solve_all(page) is StepOutcome.ABSENT
