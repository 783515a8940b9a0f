from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ------------------------------------------------------------
# CLOSED VOCABULARIES
# ------------------------------------------------------------

class Recommendation(str, Enum):
    """Action an analyst recommends. HOLD is the neutral, no-action verdict."""

    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"

    @classmethod
    def parse(cls, value: Any) -> Optional["Recommendation"]:
        """
        Map free-form verdicts ("Strong Buy", "neutral", "REDUCE") onto the
        closed set. Returns None for anything unrecognised.
        """
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("_", " ").replace("-", " ")
        if not text:
            return None
        for alias, rec in _RECOMMENDATION_ALIASES:
            if alias in text:
                return rec
        return None


_RECOMMENDATION_ALIASES = (
    ("sell", Recommendation.SELL),
    ("reduce", Recommendation.SELL),
    ("underweight", Recommendation.SELL),
    ("bearish", Recommendation.SELL),
    ("buy", Recommendation.BUY),
    ("accumulate", Recommendation.BUY),
    ("overweight", Recommendation.BUY),
    ("bullish", Recommendation.BUY),
    ("hold", Recommendation.HOLD),
    ("neutral", Recommendation.HOLD),
)


class RiskLevel(str, Enum):
    """Ordered risk severity: LOW < MEDIUM < HIGH."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def severity(self) -> int:
        return _RISK_SEVERITY[self]

    @classmethod
    def parse(cls, value: Any) -> Optional["RiskLevel"]:
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for level in cls:
            if text.startswith(level.value):
                return level
        if text.startswith("med") or text == "moderate":
            return cls.MEDIUM
        return None


_RISK_SEVERITY = {RiskLevel.LOW: 1, RiskLevel.MEDIUM: 2, RiskLevel.HIGH: 3}


# ------------------------------------------------------------
# REQUEST
# ------------------------------------------------------------

class AnalysisRequest(BaseModel):
    """
    One coordination request.

    Either `subject_id` is given directly (e.g. "AAPL", "600000.SH") or it is
    extracted from the free-text `query` before dispatch.
    """

    model_config = ConfigDict(frozen=True)

    subject_id: Optional[str] = None
    query: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)


# ------------------------------------------------------------
# PER-ANALYST RESULT
# ------------------------------------------------------------

class AnalysisResult(BaseModel):
    """
    What one analyst produced for one subject.

    The fields are intentionally permissive: a worker may hand back a
    half-filled result and `is_valid()` decides whether it is usable.
    """

    recommendation: Optional[Recommendation] = None
    confidence: Optional[float] = Field(default=None, description="Confidence in [0, 1].")
    risk_level: Optional[RiskLevel] = None
    target_price: Optional[float] = None
    stop_loss_price: Optional[float] = None
    key_points: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    raw_data: Dict[str, Any] = Field(default_factory=dict)

    subject_id: Optional[str] = None
    analysis_type: Optional[str] = None
    conclusion: Optional[str] = None
    analyzed_at: datetime = Field(default_factory=_utcnow)

    def is_valid(self) -> bool:
        """A result counts only with a recommendation and a confidence in [0, 1]."""
        return (
            self.recommendation is not None
            and self.confidence is not None
            and 0.0 <= self.confidence <= 1.0
        )


# ------------------------------------------------------------
# CONSOLIDATED RESULT
# ------------------------------------------------------------

class ConsolidatedResult(BaseModel):
    """
    The single decision derived from every valid, timely analyst result.

    `raw_data` keeps a per-analyst breakdown keyed by worker id so the
    decision can be audited against its inputs.
    """

    model_config = ConfigDict(frozen=True)

    subject_id: str
    analysis_type: str = "multi-analyst consensus"
    recommendation: Recommendation
    confidence: float
    risk_level: RiskLevel
    target_price: Optional[float] = None
    key_points: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    conclusion: str = ""
    contributor_count: int
    raw_data: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    analyzed_at: datetime = Field(default_factory=_utcnow)

    def summary(self) -> str:
        lines = [
            f"Subject: {self.subject_id}",
            f"Recommendation: {self.recommendation.value.upper()}",
            f"Risk: {self.risk_level.value}",
            f"Confidence: {self.confidence * 100:.1f}%",
        ]
        if self.target_price is not None:
            lines.append(f"Target price: {self.target_price:.2f}")
        return "\n".join(lines)
