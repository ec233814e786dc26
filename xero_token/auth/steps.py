"""Best-effort step pipeline for the sign-in sequence."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

from playwright.sync_api import Error as PlaywrightError

logger = logging.getLogger(__name__)


class StepOutcome(Enum):
    """Result of a single sign-in step."""
    DONE = "done"
    ABSENT = "absent"
    FAILED = "failed"


@dataclass
class LoginStep:
    """A named step. Optional steps never stop the pipeline."""

    name: str
    action: Callable[[Any], StepOutcome]
    optional: bool = True


def run_steps(page: Any, steps: List[LoginStep]) -> Dict[str, StepOutcome]:
    """Run steps in order and collect their outcomes.

    Playwright errors raised by a step are logged and recorded as FAILED.
    A required step that does not finish with DONE stops the pipeline;
    the remaining steps are not run and are left out of the result.

    Args:
        page: Playwright page passed to every step
        steps: Steps to run, in order

    Returns:
        Dict of step name to outcome, in execution order
    """
    outcomes: Dict[str, StepOutcome] = {}
    for step in steps:
        try:
            outcome = step.action(page)
        except PlaywrightError as e:
            logger.warning(f"  Step '{step.name}' raised: {e}")
            outcome = StepOutcome.FAILED
        outcomes[step.name] = outcome
        logger.debug(f"  Step '{step.name}' -> {outcome.value}")

        if not step.optional and outcome is not StepOutcome.DONE:
            logger.warning(f"  Required step '{step.name}' ended {outcome.value}; skipping remaining steps")
            break
    return outcomes
