# booking_app/pipeline.py
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

OK = "ok"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass
class StepOutcome:
    step: str
    status: str
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OK


@dataclass
class StepLog:
    """Outcomes of the best-effort steps that ran after a critical write."""
    outcomes: List[StepOutcome] = field(default_factory=list)

    def add(self, outcome: StepOutcome) -> StepOutcome:
        self.outcomes.append(outcome)
        return outcome

    def get(self, step: str) -> Optional[StepOutcome]:
        for o in self.outcomes:
            if o.step == step:
                return o
        return None

    def failed(self) -> List[StepOutcome]:
        return [o for o in self.outcomes if o.status == FAILED]


def skipped(step: str, reason: str) -> StepOutcome:
    return StepOutcome(step=step, status=SKIPPED, error=reason)


def run_step(step: str, func: Callable[..., Any], *args, on_error: Callable[[], None] = None, **kwargs) -> StepOutcome:
    """Run one best-effort step. Exceptions are logged and returned as a failed outcome.

    ``on_error`` runs after a failure, e.g. to roll back the session so the next
    step starts clean.
    """
    try:
        value = func(*args, **kwargs)
        return StepOutcome(step=step, status=OK, value=value)
    except Exception as e:
        logger.exception("best-effort step %s failed", step)
        if on_error is not None:
            try:
                on_error()
            except Exception:
                logger.exception("cleanup after step %s failed", step)
        return StepOutcome(step=step, status=FAILED, error=str(e))
