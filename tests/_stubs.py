"""Stub analysts and result builders shared by the test-suite."""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, List, Optional, Tuple

from analystdesk.models.types import AnalysisResult, Recommendation, RiskLevel


def make_result(
    recommendation: Optional[str] = "buy",
    confidence: Optional[float] = 0.8,
    *,
    risk: Optional[str] = None,
    target_price: Optional[float] = None,
    key_points: Tuple[str, ...] = (),
    warnings: Tuple[str, ...] = (),
    raw_data: Optional[Dict[str, Any]] = None,
    conclusion: Optional[str] = None,
) -> AnalysisResult:
    return AnalysisResult(
        recommendation=Recommendation(recommendation) if recommendation else None,
        confidence=confidence,
        risk_level=RiskLevel(risk) if risk else None,
        target_price=target_price,
        key_points=list(key_points),
        warnings=list(warnings),
        raw_data=raw_data or {},
        conclusion=conclusion,
    )


class StubAnalyst:
    """Returns a canned result, optionally after a delay or a gate."""

    def __init__(
        self,
        result: Any = None,
        *,
        delay: float = 0.0,
        error: Optional[BaseException] = None,
        gate: Optional[threading.Event] = None,
        display_name: Optional[str] = None,
    ) -> None:
        self.result = result if result is not None else make_result()
        self.delay = delay
        self.error = error
        self.gate = gate
        self.started = threading.Event()
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        if display_name:
            self.display_name = display_name

    def perform(self, subject_id: str, parameters: Dict[str, Any]) -> AnalysisResult:
        self.calls.append((subject_id, dict(parameters)))
        self.started.set()
        if self.gate is not None:
            self.gate.wait(10)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class ConcurrencyProbe:
    """Records how many analysts sharing the probe run at the same time."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.active = 0
        self.peak = 0

    def analyst(self, delay: float = 0.05) -> "ProbedAnalyst":
        return ProbedAnalyst(self, delay)


class ProbedAnalyst:
    def __init__(self, probe: ConcurrencyProbe, delay: float) -> None:
        self.probe = probe
        self.delay = delay

    def perform(self, subject_id: str, parameters: Dict[str, Any]) -> AnalysisResult:
        with self.probe._lock:
            self.probe.active += 1
            self.probe.peak = max(self.probe.peak, self.probe.active)
        try:
            time.sleep(self.delay)
        finally:
            with self.probe._lock:
                self.probe.active -= 1
        return make_result()
