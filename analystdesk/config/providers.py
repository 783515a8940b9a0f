# analystdesk/config/providers.py
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field

from analystdesk.core.registry import WeightTable, WorkerRegistry

from .defaults import DEFAULT_CONFIG


# ------------------------------------------------------------
#  SETTINGS MODEL
# ------------------------------------------------------------

class CoordinatorSettings(BaseModel):
    """
    Validated view of DEFAULT_CONFIG["coordinator"] plus the weight table.

    Example:
        settings = load_coordinator_settings(timeout_sec=5)
        settings.max_concurrency  # 5
    """
    max_concurrency: int = Field(default=5, ge=1)
    timeout_sec: float = Field(default=30.0, gt=0)
    shutdown_grace_sec: float = Field(default=5.0, ge=0)
    default_weight: float = Field(default=1.0, ge=0, le=1)
    weights: Dict[str, float] = Field(default_factory=dict)
    log_level: str = "INFO"


def load_coordinator_settings(**overrides: Any) -> CoordinatorSettings:
    """
    Build settings from DEFAULT_CONFIG, letting keyword overrides win.

    Weights are not range-checked here; the weight table rejects bad ones
    individually so one typo does not block startup.
    """
    values: Dict[str, Any] = dict(DEFAULT_CONFIG["coordinator"])
    values["weights"] = dict(DEFAULT_CONFIG["weights"])
    values["log_level"] = DEFAULT_CONFIG["log_level"]
    values.update(overrides)
    return CoordinatorSettings(**values)


# ------------------------------------------------------------
#  REGISTRY BUILDER
# ------------------------------------------------------------

def build_worker_registry(
    settings: CoordinatorSettings,
    workers: Optional[Mapping[str, Any]] = None,
) -> WorkerRegistry:
    """
    Assemble a WorkerRegistry with the configured weights and, optionally,
    an initial set of analysts.

    Usage:
        registry = build_worker_registry(settings, build_default_analysts())
    """
    registry = WorkerRegistry(WeightTable(settings.weights, default=settings.default_weight))
    for worker_id, handle in (workers or {}).items():
        registry.register(worker_id, handle)
    return registry
