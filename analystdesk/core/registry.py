from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Tuple, runtime_checkable

from analystdesk.config.logging_config import get_logger
from analystdesk.models.types import AnalysisResult

logger = get_logger(__name__)

DEFAULT_WEIGHT = 1.0


# ==========================================================
# 1) Worker contract
# ==========================================================

@runtime_checkable
class AnalysisWorker(Protocol):
    """
    Anything that can analyse a subject.

    `perform` may block for a long time and may ignore cancellation; it must
    be safe to call concurrently with other analysts' `perform`.
    """

    def perform(self, subject_id: str, parameters: Dict[str, Any]) -> AnalysisResult:
        ...


# ==========================================================
# 2) Weight table
# ==========================================================

class WeightTable:
    """Static per-analyst influence in [0, 1]."""

    def __init__(self, weights: Optional[Mapping[str, float]] = None, default: float = DEFAULT_WEIGHT):
        self.default = default
        self._weights: Dict[str, float] = {}
        self._lock = threading.Lock()
        for worker_id, weight in (weights or {}).items():
            self.set_weight(worker_id, weight)

    def set_weight(self, worker_id: str, weight: float) -> bool:
        """
        Store `weight` for `worker_id` when it lies in [0, 1].

        Out-of-range or non-numeric weights leave the table untouched and
        return False so the caller can surface the configuration error.
        """
        if not _is_unit_interval(weight):
            logger.warning("⚠️ Rejected weight %r for analyst '%s' (must be within [0, 1])", weight, worker_id)
            return False
        with self._lock:
            self._weights[worker_id] = float(weight)
        return True

    def weight_of(self, worker_id: str) -> float:
        with self._lock:
            return self._weights.get(worker_id, self.default)

    def as_dict(self) -> Dict[str, float]:
        with self._lock:
            return dict(self._weights)


def _is_unit_interval(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value) and 0.0 <= value <= 1.0


# ==========================================================
# 3) Snapshot handed to one run
# ==========================================================

@dataclass(frozen=True)
class WorkerDescriptor:
    worker_id: str
    weight: float
    handle: AnalysisWorker
    weight_configured: bool = True


@dataclass(frozen=True)
class RegistrySnapshot:
    """
    Immutable view of the registry taken at dispatch start.

    Descriptors keep registration order, which is the order contributions
    are listed in the consolidated result.
    """

    descriptors: Tuple[WorkerDescriptor, ...]

    def __iter__(self) -> Iterator[WorkerDescriptor]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)

    @property
    def worker_ids(self) -> List[str]:
        return [d.worker_id for d in self.descriptors]

    def get(self, worker_id: str) -> Optional[WorkerDescriptor]:
        for descriptor in self.descriptors:
            if descriptor.worker_id == worker_id:
                return descriptor
        return None

    def weight_of(self, worker_id: str) -> float:
        descriptor = self.get(worker_id)
        return descriptor.weight if descriptor is not None else DEFAULT_WEIGHT


# ==========================================================
# 4) Worker registry
# ==========================================================

class WorkerRegistry:
    """
    Mutable mapping of analyst id → handle, plus its weight table.

    Runs never read the live maps: they call `snapshot()` once and work on
    the frozen copy, so registrations during a run cannot tear it.
    """

    def __init__(self, weights: Optional[WeightTable] = None):
        self.weights = weights or WeightTable()
        self._workers: Dict[str, AnalysisWorker] = {}
        self._lock = threading.Lock()

    def register(self, worker_id: str, handle: Optional[AnalysisWorker]) -> bool:
        """Insert or replace an analyst. A missing handle is rejected."""
        if handle is None:
            logger.warning("⚠️ Ignoring registration of '%s' without a handle", worker_id)
            return False
        if not isinstance(worker_id, str):
            logger.warning("⚠️ Ignoring registration with a non-string analyst id %r", worker_id)
            return False
        if not worker_id.strip():
            logger.warning("⚠️ Ignoring registration with an empty analyst id")
            return False
        with self._lock:
            replaced = worker_id in self._workers
            self._workers[worker_id] = handle
        logger.info(
            "🧩 %s analyst '%s' (%s)",
            "Replaced" if replaced else "Registered",
            worker_id,
            type(handle).__name__,
        )
        return True

    def unregister(self, worker_id: str) -> bool:
        with self._lock:
            return self._workers.pop(worker_id, None) is not None

    def set_weight(self, worker_id: str, weight: float) -> bool:
        return self.weights.set_weight(worker_id, weight)

    def weight_of(self, worker_id: str) -> float:
        return self.weights.weight_of(worker_id)

    def __contains__(self, worker_id: object) -> bool:
        with self._lock:
            return worker_id in self._workers

    def __len__(self) -> int:
        with self._lock:
            return len(self._workers)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._workers)

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            workers = list(self._workers.items())
        configured = self.weights.as_dict()
        descriptors = tuple(
            WorkerDescriptor(
                worker_id=worker_id,
                weight=configured.get(worker_id, self.weights.default),
                handle=handle,
                weight_configured=worker_id in configured,
            )
            for worker_id, handle in workers
        )

        unweighted = [d.worker_id for d in descriptors if not d.weight_configured]
        if unweighted and len(unweighted) * 2 > len(descriptors):
            logger.warning(
                "⚠️ %d of %d analysts have no configured weight and default to %.2f: %s",
                len(unweighted),
                len(descriptors),
                self.weights.default,
                ", ".join(unweighted),
            )
        return RegistrySnapshot(descriptors=descriptors)
