"""
Run lifecycle.

    IDLE ──► RUNNING ──► FINISHED
                 │
                 └─────► ERROR

FINISHED and ERROR are terminal: a new request needs a new run.
"""

from __future__ import annotations

import time
from typing import Dict, Optional, Set

from analystdesk.config.logging_config import get_logger
from analystdesk.core.errors import StateTransitionError
from analystdesk.models.decisions import RunOutcome, RunState
from analystdesk.models.types import ConsolidatedResult

logger = get_logger(__name__)

VALID_TRANSITIONS: Dict[RunState, Set[RunState]] = {
    RunState.IDLE: {RunState.RUNNING},
    RunState.RUNNING: {RunState.FINISHED, RunState.ERROR},
    RunState.FINISHED: set(),
    RunState.ERROR: set(),
}


class AnalysisRun:
    """State and timing of a single coordination run."""

    def __init__(self) -> None:
        self.state = RunState.IDLE
        self.subject_id: Optional[str] = None
        self._started: Optional[float] = None

    @property
    def terminal(self) -> bool:
        return not VALID_TRANSITIONS[self.state]

    @property
    def elapsed_sec(self) -> float:
        if self._started is None:
            return 0.0
        return time.monotonic() - self._started

    def _transition(self, target: RunState) -> None:
        if target not in VALID_TRANSITIONS[self.state]:
            raise StateTransitionError(f"cannot move run from {self.state.value} to {target.value}")
        logger.debug("Run %s: %s → %s", self.subject_id or "-", self.state.value, target.value)
        self.state = target

    def start(self) -> None:
        self._transition(RunState.RUNNING)
        self._started = time.monotonic()

    def finish(self, consolidated: ConsolidatedResult, report: str) -> RunOutcome:
        self._transition(RunState.FINISHED)
        return RunOutcome(
            state=self.state,
            subject_id=self.subject_id,
            consolidated=consolidated,
            report=report,
            contributors=consolidated.contributor_count,
            elapsed_sec=self.elapsed_sec,
        )

    def fail(self, reason: str) -> RunOutcome:
        self._transition(RunState.ERROR)
        return RunOutcome(
            state=self.state,
            subject_id=self.subject_id,
            reason=reason,
            elapsed_sec=self.elapsed_sec,
        )
