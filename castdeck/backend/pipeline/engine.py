"""Sequential driver for the resolution pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from castdeck.backend.common.errors import CastdeckError
from castdeck.backend.common.logging import get_logger
from castdeck.backend.pipeline.context import PipelineContext

log = get_logger(__name__)


class StageOutcome(str, Enum):
    APPLIED = "applied"
    DECLINED = "declined"
    COMPLETE = "complete"


class StageDeclined(CastdeckError):
    """Raised by a stage to pass the context on untouched."""


StageFn = Callable[[PipelineContext], StageOutcome]


@dataclass
class PipelineReport:
    outcomes: List[Tuple[str, StageOutcome]] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def completed_by(self) -> Optional[str]:
        for name, outcome in self.outcomes:
            if outcome is StageOutcome.COMPLETE:
                return name
        return None

    def outcome_of(self, name: str) -> Optional[StageOutcome]:
        for stage_name, outcome in self.outcomes:
            if stage_name == name:
                return outcome
        return None

    def as_dict(self) -> dict[str, object]:
        return {
            "outcomes": [{"stage": n, "outcome": o.value} for n, o in self.outcomes],
            "failures": [{"stage": n, "error": e} for n, e in self.failures],
        }


def stage_name(stage: StageFn) -> str:
    return getattr(stage, "name", None) or getattr(stage, "__name__", None) or type(stage).__name__


def run(
    stages: Sequence[StageFn],
    context: PipelineContext,
    on_complete: Optional[Callable[[PipelineContext, PipelineReport], None]] = None,
) -> PipelineReport:
    """Run ``stages`` in order against ``context``.

    A stage that raises, or returns anything but a :class:`StageOutcome`,
    counts as declined and the queue is put back as it was before the stage
    ran. Only ``StageOutcome.COMPLETE`` stops the chain early. ``on_complete``
    is invoked exactly once, after the last stage that ran.
    """

    report = PipelineReport()

    for stage in stages:
        name = stage_name(stage)
        before = context.snapshot()
        try:
            outcome = stage(context)
        except StageDeclined as exc:
            context.restore(before)
            log.debug("stage_declined", extra={"stage": name, "reason": str(exc)})
            outcome = StageOutcome.DECLINED
        except Exception as exc:  # noqa: BLE001
            context.restore(before)
            log.warning("stage_failed", extra={"stage": name, "error": str(exc)}, exc_info=True)
            report.failures.append((name, str(exc)))
            outcome = StageOutcome.DECLINED

        if not isinstance(outcome, StageOutcome):
            context.restore(before)
            log.warning("stage_returned_no_outcome", extra={"stage": name, "returned": repr(outcome)})
            outcome = StageOutcome.DECLINED

        report.outcomes.append((name, outcome))
        log.debug("stage_done", extra={"stage": name, "outcome": outcome.value, "queue": len(context.queue)})

        if outcome is StageOutcome.COMPLETE:
            break

    log.info("pipeline_done", extra={"queue": len(context.queue), "completed_by": report.completed_by})
    if on_complete is not None:
        on_complete(context, report)

    return report


__all__ = [
    "PipelineReport",
    "StageDeclined",
    "StageFn",
    "StageOutcome",
    "run",
    "stage_name",
]
