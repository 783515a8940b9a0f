from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from analystdesk.config.logging_config import get_logger
from analystdesk.core.errors import AggregationError
from analystdesk.core.registry import RegistrySnapshot
from analystdesk.models.types import (
    AnalysisResult,
    ConsolidatedResult,
    Recommendation,
    RiskLevel,
)

logger = get_logger(__name__)

NEUTRAL_RECOMMENDATION = Recommendation.HOLD


class Aggregator:
    """
    Weighted consensus over a frozen set of analyst results.

    Every computation is a sum or a maximum over the set, so the outcome does
    not depend on which analyst finished first. Sums use `math.fsum` so that
    iteration order cannot change the last bit either.
    """

    def __init__(self, neutral: Recommendation = NEUTRAL_RECOMMENDATION):
        self.neutral = neutral

    def aggregate(
        self,
        subject_id: str,
        results: Mapping[str, AnalysisResult],
        snapshot: RegistrySnapshot,
    ) -> ConsolidatedResult:
        if not results:
            raise AggregationError(f"no analyst produced a valid result for {subject_id}")

        # Registration order; anything outside the snapshot goes last, sorted.
        ordered = [(wid, results[wid]) for wid in snapshot.worker_ids if wid in results]
        ordered += sorted((wid, r) for wid, r in results.items() if snapshot.get(wid) is None)
        weighted = [(wid, snapshot.weight_of(wid), r) for wid, r in ordered]

        recommendation = self.vote(weighted)
        consolidated = ConsolidatedResult(
            subject_id=subject_id,
            recommendation=recommendation,
            confidence=weighted_confidence(weighted),
            risk_level=escalate_risk(r for _, _, r in weighted),
            target_price=weighted_target_price(weighted),
            key_points=_tagged(weighted, "key_points"),
            warnings=_tagged(weighted, "warnings"),
            conclusion=_conclusion(subject_id, recommendation, weighted),
            contributor_count=len(weighted),
            raw_data={wid: _breakdown(r) for wid, _, r in weighted},
        )
        logger.info(
            "🧮 Consensus for %s: %s (confidence=%.2f, risk=%s, analysts=%d)",
            subject_id,
            consolidated.recommendation.value,
            consolidated.confidence,
            consolidated.risk_level.value,
            consolidated.contributor_count,
        )
        return consolidated

    def vote(self, weighted: List[Tuple[str, float, AnalysisResult]]) -> Recommendation:
        """
        Each analyst adds weight × confidence to its recommendation's tally.
        A shared maximum, or no recommendation at all, yields the neutral one.
        """
        tallies: Dict[Recommendation, List[float]] = {}
        for _, weight, result in weighted:
            if result.recommendation is None:
                continue
            tallies.setdefault(result.recommendation, []).append(weight * (result.confidence or 0.0))
        if not tallies:
            return self.neutral

        totals = {rec: math.fsum(parts) for rec, parts in tallies.items()}
        best = max(totals.values())
        leaders = [rec for rec, total in totals.items() if math.isclose(total, best, rel_tol=1e-9, abs_tol=1e-12)]
        if len(leaders) > 1:
            logger.info("🤝 Recommendation tie between %s; defaulting to %s",
                        ", ".join(sorted(r.value for r in leaders)), self.neutral.value)
            return self.neutral
        return leaders[0]


# ----------------------------------------------------------
# Individual consensus rules
# ----------------------------------------------------------

def weighted_confidence(weighted: List[Tuple[str, float, AnalysisResult]]) -> float:
    """Σ(wᵢ·cᵢ) / Σwᵢ, or 0.0 when every weight is zero."""
    total_weight = math.fsum(w for _, w, _ in weighted)
    if total_weight <= 0:
        return 0.0
    if len(weighted) == 1:
        return float(weighted[0][2].confidence)
    value = math.fsum(w * r.confidence for _, w, r in weighted) / total_weight
    return min(1.0, max(0.0, value))


def escalate_risk(results: Iterable[AnalysisResult]) -> RiskLevel:
    """Conservative maximum: any HIGH wins, else MEDIUM if present, else LOW."""
    levels = [r.risk_level for r in results if r.risk_level is not None]
    if not levels:
        return RiskLevel.LOW
    return max(levels, key=lambda level: level.severity)


def weighted_target_price(weighted: List[Tuple[str, float, AnalysisResult]]) -> Optional[float]:
    """
    Average of finite, strictly positive target prices, each weighted by the
    analyst's static weight × confidence.
    """
    pairs = [
        (w * r.confidence, r.target_price)
        for _, w, r in weighted
        if r.target_price is not None and math.isfinite(r.target_price) and r.target_price > 0
    ]
    total_weight = math.fsum(pw for pw, _ in pairs)
    if not pairs or total_weight <= 0:
        return None
    return math.fsum(pw * price for pw, price in pairs) / total_weight


def _tagged(weighted: List[Tuple[str, float, AnalysisResult]], field: str) -> List[str]:
    return [
        f"[{wid.upper()}] {item}"
        for wid, _, result in weighted
        for item in getattr(result, field)
    ]


def _breakdown(result: AnalysisResult) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "recommendation": result.recommendation.value if result.recommendation else None,
        "confidence": result.confidence,
        "risk_level": result.risk_level.value if result.risk_level else None,
        "target_price": result.target_price,
        "conclusion": result.conclusion,
    }
    if result.analysis_type:
        entry["analysis_type"] = result.analysis_type
    if result.raw_data:
        entry["details"] = dict(result.raw_data)
    return entry


def _conclusion(
    subject_id: str,
    recommendation: Recommendation,
    weighted: List[Tuple[str, float, AnalysisResult]],
) -> str:
    lines = [
        f"{len(weighted)} analyst(s) assessed {subject_id}; "
        f"consensus recommendation: {recommendation.value.upper()}."
    ]
    for wid, _, result in weighted:
        lines.append(
            f"{wid}: {result.recommendation.value if result.recommendation else 'n/a'} "
            f"(confidence {result.confidence * 100:.1f}%)"
        )
    return "\n".join(lines)
