from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from analystdesk.config.logging_config import get_logger, setup_logging
from analystdesk.config.providers import (
    CoordinatorSettings,
    build_worker_registry,
    load_coordinator_settings,
)
from analystdesk.core.aggregator import Aggregator
from analystdesk.core.dispatcher import Dispatcher
from analystdesk.core.errors import AggregationError, DispatcherClosedError, InputError
from analystdesk.core.lifecycle import AnalysisRun
from analystdesk.core.registry import AnalysisWorker, WorkerRegistry
from analystdesk.models.decisions import RunOutcome, RunState
from analystdesk.models.types import AnalysisRequest
from analystdesk.services.request_parser import normalize_request
from analystdesk.utils.report_writer import display_name, render_text_report

logger = get_logger(__name__)


class AnalysisCoordinator:
    """
    Main coordinator for multi-analyst consensus.

    Responsibilities:
    - Own the analyst registry and its weight table
    - Fan a request out to every analyst through the bounded dispatcher
    - Aggregate whatever came back in time into one decision
    - Render the report and report the run's terminal state

    Use it as a context manager so the worker pool is always released:

        with AnalysisCoordinator() as desk:
            desk.register_worker("technical", TechnicalAnalyst(...))
            outcome = desk.run(AnalysisRequest(subject_id="AAPL"))
    """

    def __init__(
        self,
        settings: Optional[CoordinatorSettings] = None,
        registry: Optional[WorkerRegistry] = None,
    ):
        self.settings = settings or load_coordinator_settings()
        setup_logging(self.settings.log_level)

        self.registry = registry or build_worker_registry(self.settings)
        self.dispatcher = Dispatcher(
            max_concurrency=self.settings.max_concurrency,
            timeout_sec=self.settings.timeout_sec,
            shutdown_grace_sec=self.settings.shutdown_grace_sec,
        )
        self.aggregator = Aggregator()
        self.last_state = RunState.IDLE

        logger.info(
            "🔧 Coordinator initialized (pool=%d, timeout=%.1fs)",
            self.settings.max_concurrency,
            self.settings.timeout_sec,
        )

    # ─────────────────────────────────────────────────────────────
    # REGISTRY OPERATIONS
    # ─────────────────────────────────────────────────────────────
    def register_worker(self, worker_id: str, handle: Optional[AnalysisWorker]) -> bool:
        return self.registry.register(worker_id, handle)

    def unregister_worker(self, worker_id: str) -> bool:
        return self.registry.unregister(worker_id)

    def set_weight(self, worker_id: str, weight: float) -> bool:
        return self.registry.set_weight(worker_id, weight)

    # ─────────────────────────────────────────────────────────────
    # MAIN ENTRYPOINT
    # ─────────────────────────────────────────────────────────────
    def run(self, request: AnalysisRequest) -> RunOutcome:
        """
        Execute one coordination run.

        Never raises for analysis problems: a missing subject or an empty
        result set comes back as an outcome in the ERROR state with a reason.
        """
        run = AnalysisRun()
        run.start()
        self.last_state = run.state

        try:
            request = normalize_request(request)
            run.subject_id = request.subject_id
            logger.info("🚀 Starting analysis for %s", request.subject_id)

            snapshot = self.registry.snapshot()
            results = self.dispatcher.dispatch(request, snapshot)
            consolidated = self.aggregator.aggregate(request.subject_id, results, snapshot)
            report = render_text_report(
                consolidated,
                results,
                {d.worker_id: display_name(d.worker_id, d.handle) for d in snapshot},
            )
        except InputError as exc:
            logger.warning("⚠️ Rejected request: %s", exc)
            outcome = run.fail(str(exc))
        except (AggregationError, DispatcherClosedError) as exc:
            logger.error("❌ Analysis failed: %s", exc)
            outcome = run.fail(str(exc))
        except Exception as exc:
            logger.exception("❌ Pipeline failed for %s: %s", run.subject_id or "request", exc)
            outcome = run.fail(f"unexpected error: {exc}")
        else:
            outcome = run.finish(consolidated, report)
            logger.info(
                "✅ Final decision for %s: %s (%d analyst(s), %.2fs)",
                outcome.subject_id,
                consolidated.recommendation.value,
                outcome.contributors,
                outcome.elapsed_sec,
            )

        self.last_state = outcome.state
        return outcome

    async def analyze(
        self,
        query_or_subject: str,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> RunOutcome:
        """
        Async entry point for web handlers and scripts.

        `query_or_subject` is either a bare symbol ("AAPL") or a free-text
        request ("weekly outlook for 600000.SH"); the blocking run executes on
        a helper thread so the event loop stays responsive.
        """
        text = (query_or_subject or "").strip()
        if text and not any(ch.isspace() for ch in text):
            request = AnalysisRequest(subject_id=text.upper(), parameters=parameters or {})
        else:
            request = AnalysisRequest(query=text, parameters=parameters or {})
        return await asyncio.to_thread(self.run, request)

    # ─────────────────────────────────────────────────────────────
    # STATUS & TEARDOWN
    # ─────────────────────────────────────────────────────────────
    @property
    def accepting(self) -> bool:
        return self.dispatcher.accepting

    def health(self) -> Dict[str, Any]:
        return {
            "status": "ok" if self.accepting else "stopped",
            "accepting": self.accepting,
            "last_run_state": self.last_state.value,
            "workers": self.registry.ids(),
            "weights": self.registry.weights.as_dict(),
            "max_concurrency": self.dispatcher.max_concurrency,
            "timeout_sec": self.dispatcher.timeout_sec,
        }

    def shutdown(self) -> None:
        """Release the worker pool. Safe to call more than once."""
        self.dispatcher.shutdown()

    def __enter__(self) -> "AnalysisCoordinator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()


# ─────────────────────────────────────────────────────────────
# CLI ENTRY (for testing outside any web façade)
# ─────────────────────────────────────────────────────────────
async def _run_from_cli(argv: Optional[list] = None) -> RunOutcome:
    """
    Run the default analysts from the command line:
    $ python -m analystdesk.services.orchestrator "weekly outlook for AAPL"
    """
    import sys
    from analystdesk.workers.analysts import build_default_analysts

    args = sys.argv[1:] if argv is None else argv
    query = " ".join(args) if args else "AAPL"

    with AnalysisCoordinator() as coordinator:
        for worker_id, analyst in build_default_analysts().items():
            coordinator.register_worker(worker_id, analyst)
        outcome = await coordinator.analyze(query)

    print(outcome.report if outcome.ok else f"Analysis failed: {outcome.reason}")
    return outcome


if __name__ == "__main__":
    asyncio.run(_run_from_cli())
