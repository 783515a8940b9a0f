import logging
import math

import pytest

from analystdesk.config.providers import build_worker_registry, load_coordinator_settings
from analystdesk.core.registry import WeightTable, WorkerRegistry

from _stubs import StubAnalyst


def test_register_rejects_missing_handle() -> None:
    registry = WorkerRegistry()

    assert registry.register("technical", None) is False
    assert "technical" not in registry
    assert len(registry) == 0


@pytest.mark.parametrize("worker_id", ["", "   ", 7, None, ("technical",)])
def test_register_rejects_empty_or_non_string_ids(worker_id) -> None:
    registry = WorkerRegistry()

    assert registry.register(worker_id, StubAnalyst()) is False
    assert len(registry) == 0
    assert len(registry.snapshot()) == 0


def test_register_replaces_existing_handle() -> None:
    registry = WorkerRegistry()
    first, second = StubAnalyst(), StubAnalyst()

    assert registry.register("technical", first)
    assert registry.register("technical", second)

    snapshot = registry.snapshot()
    assert len(snapshot) == 1
    assert snapshot.get("technical").handle is second


def test_unregister() -> None:
    registry = WorkerRegistry()
    registry.register("technical", StubAnalyst())

    assert registry.unregister("technical") is True
    assert registry.unregister("technical") is False


@pytest.mark.parametrize("weight", [0, 0.0, 0.25, 1, 1.0])
def test_set_weight_accepts_unit_interval(weight) -> None:
    table = WeightTable()

    assert table.set_weight("technical", weight) is True
    assert table.weight_of("technical") == float(weight)


@pytest.mark.parametrize("weight", [-0.01, 1.01, 5, math.nan, True, "0.5", None])
def test_set_weight_rejects_out_of_range_without_state_change(weight) -> None:
    table = WeightTable({"technical": 0.4})

    assert table.set_weight("technical", weight) is False
    assert table.weight_of("technical") == 0.4


def test_weight_defaults_to_one() -> None:
    assert WeightTable().weight_of("unknown") == 1.0


def test_snapshot_is_isolated_from_later_changes() -> None:
    registry = WorkerRegistry(WeightTable({"technical": 0.4}))
    original = StubAnalyst()
    registry.register("technical", original)

    snapshot = registry.snapshot()
    registry.register("technical", StubAnalyst())
    registry.register("fundamental", StubAnalyst())
    registry.set_weight("technical", 0.9)

    assert snapshot.worker_ids == ["technical"]
    assert snapshot.get("technical").handle is original
    assert snapshot.weight_of("technical") == 0.4


def test_snapshot_keeps_registration_order() -> None:
    registry = WorkerRegistry()
    for worker_id in ("sentiment", "technical", "fundamental"):
        registry.register(worker_id, StubAnalyst())

    assert registry.snapshot().worker_ids == ["sentiment", "technical", "fundamental"]


def test_snapshot_warns_when_most_analysts_are_unweighted(caplog) -> None:
    registry = WorkerRegistry(WeightTable({"technical": 0.4}))
    for worker_id in ("technical", "fundamental", "sentiment"):
        registry.register(worker_id, StubAnalyst())

    with caplog.at_level(logging.WARNING, logger="analystdesk.core.registry"):
        snapshot = registry.snapshot()

    assert "no configured weight" in caplog.text
    assert snapshot.get("fundamental").weight_configured is False
    assert snapshot.get("technical").weight_configured is True


def test_build_worker_registry_applies_configured_weights() -> None:
    settings = load_coordinator_settings(weights={"technical": 0.4, "fundamental": 0.5, "bogus": 2.0})
    registry = build_worker_registry(settings, {"technical": StubAnalyst()})

    assert registry.ids() == ["technical"]
    assert registry.weight_of("technical") == 0.4
    assert registry.weight_of("fundamental") == 0.5
    assert registry.weight_of("bogus") == 1.0
