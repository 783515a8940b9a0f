from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import ConsolidatedResult


class RunState(str, Enum):
    """Lifecycle of one coordination run."""

    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"
    ERROR = "error"


# ------------------------------------------------------------
# FINAL OUTCOME MODEL
# ------------------------------------------------------------

class RunOutcome(BaseModel):
    """
    What `AnalysisCoordinator.run` hands back to its caller.

    A finished run carries the consolidated decision and the rendered report;
    an errored run carries only the reason. Downstream façades serialise this
    object as-is.
    """

    model_config = ConfigDict(frozen=True)

    state: RunState = Field(..., description="Terminal state of the run.")
    subject_id: Optional[str] = Field(default=None, description="Resolved subject, if any.")
    consolidated: Optional[ConsolidatedResult] = None
    report: Optional[str] = Field(default=None, description="Rendered Markdown report.")
    reason: Optional[str] = Field(default=None, description="Why the run failed.")
    contributors: int = Field(default=0, description="Analysts that contributed a result.")
    elapsed_sec: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is RunState.FINISHED
