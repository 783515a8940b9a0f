"""Pytest configuration shared across the suite."""

import threading

import pytest

from analystdesk.config.providers import load_coordinator_settings
from analystdesk.core.dispatcher import Dispatcher
from analystdesk.services.orchestrator import AnalysisCoordinator


@pytest.fixture(autouse=True)
def _offline_llm(monkeypatch):
    """Never let a test reach a real completion endpoint."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def release():
    """Gate for blocking analysts; always opened so pool threads can exit."""
    gate = threading.Event()
    yield gate
    gate.set()


@pytest.fixture
def settings():
    return load_coordinator_settings(
        max_concurrency=5,
        timeout_sec=1.0,
        shutdown_grace_sec=0.5,
        weights={},
        log_level="DEBUG",
    )


@pytest.fixture
def coordinator(settings):
    desk = AnalysisCoordinator(settings=settings)
    yield desk
    desk.shutdown()


@pytest.fixture
def dispatcher():
    pool = Dispatcher(max_concurrency=4, timeout_sec=0.5, shutdown_grace_sec=0.2)
    yield pool
    pool.shutdown(grace_sec=0)
