from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Set

from analystdesk.config.logging_config import get_logger
from analystdesk.core.errors import DispatcherClosedError, WorkerFailure
from analystdesk.core.registry import RegistrySnapshot, WorkerDescriptor
from analystdesk.models.types import AnalysisRequest, AnalysisResult

logger = get_logger(__name__)


# ==========================================================
# 1) PartialResultSet – the only structure written concurrently
# ==========================================================

class PartialResultSet:
    """
    Results of one run, keyed by worker id.

    Every task writes exactly one key it owns. The lock only protects the
    `frozen` flag: once the batch deadline passes, the set is frozen and any
    late write is refused.
    """

    def __init__(self) -> None:
        self._results: Dict[str, AnalysisResult] = {}
        self._lock = threading.Lock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def put(self, worker_id: str, result: AnalysisResult) -> bool:
        with self._lock:
            if self._frozen:
                return False
            self._results[worker_id] = result
            return True

    def freeze(self) -> Mapping[str, AnalysisResult]:
        with self._lock:
            self._frozen = True
            return MappingProxyType(dict(self._results))


# ==========================================================
# 2) Dispatcher – bounded fan-out with one batch deadline
# ==========================================================

class Dispatcher:
    """
    Runs every analyst of a registry snapshot concurrently.

    - fixed-size pool per run: more analysts than threads simply queue
    - one global deadline for the whole batch, not per analyst
    - an analyst that raises, returns garbage or misses the deadline is
      dropped; it never affects the others or the caller
    - every run gets fresh threads, so an analyst stuck in a previous run
      cannot starve the next one
    """

    def __init__(
        self,
        max_concurrency: int = 5,
        timeout_sec: float = 30.0,
        shutdown_grace_sec: float = 5.0,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self.timeout_sec = timeout_sec
        self.shutdown_grace_sec = shutdown_grace_sec

        # Pools of runs still dispatching, and tasks (of any run) still alive.
        self._executors: Set[ThreadPoolExecutor] = set()
        self._inflight: Set[Future] = set()
        # Re-entrant: a future that is already done runs `_forget` inline
        # from `add_done_callback` while `dispatch` still holds the lock.
        self._lock = threading.RLock()
        self._closed = False

    @property
    def accepting(self) -> bool:
        return not self._closed

    # ------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------
    def dispatch(self, request: AnalysisRequest, snapshot: RegistrySnapshot) -> Mapping[str, AnalysisResult]:
        """
        Execute all analysts in `snapshot` against `request.subject_id`.

        Returns a read-only mapping worker id → valid result. The mapping may
        be empty; deciding what an empty batch means is the caller's job.
        """
        results = PartialResultSet()
        futures: Dict[Future, str] = {}

        with self._lock:
            if self._closed:
                raise DispatcherClosedError("worker pool is shut down")
            if not len(snapshot):
                logger.warning("⚠️ No analysts registered; nothing to dispatch")
                return results.freeze()
            executor = ThreadPoolExecutor(
                max_workers=self.max_concurrency,
                thread_name_prefix="analyst",
            )
            self._executors.add(executor)

        try:
            with self._lock:
                for descriptor in snapshot:
                    future = executor.submit(self._run_worker, descriptor, request, results)
                    self._inflight.add(future)
                    future.add_done_callback(self._forget)
                    futures[future] = descriptor.worker_id

            started = time.monotonic()
            done, pending = wait(futures, timeout=self.timeout_sec)
            frozen = results.freeze()

            if pending:
                late = sorted(futures[f] for f in pending)
                logger.warning(
                    "⏱️ Batch deadline %.1fs reached; discarding %d straggler(s): %s",
                    self.timeout_sec,
                    len(pending),
                    ", ".join(late),
                )
                for future in pending:
                    future.cancel()

            logger.info(
                "📥 Dispatch finished in %.2fs: %d/%d analyst(s) contributed",
                time.monotonic() - started,
                len(frozen),
                len(futures),
            )
            return frozen
        finally:
            # Stragglers keep their thread until they return; the pool itself
            # is released now and never reused.
            results.freeze()
            executor.shutdown(wait=False, cancel_futures=True)
            with self._lock:
                self._executors.discard(executor)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._inflight.discard(future)

    def _run_worker(
        self,
        descriptor: WorkerDescriptor,
        request: AnalysisRequest,
        results: PartialResultSet,
    ) -> None:
        worker_id = descriptor.worker_id
        if results.frozen:
            # Queued past the deadline; the run no longer wants this analyst.
            logger.debug("Skipping %s, batch already closed", worker_id)
            return

        try:
            result = self._invoke(descriptor, request)
        except WorkerFailure as exc:
            if exc.cause is not None:
                logger.error("❌ Analyst %s failed: %s", worker_id, exc.cause, exc_info=exc.cause)
            else:
                logger.warning("⚠️ Analyst %s discarded: %s", worker_id, exc)
            return

        if results.put(worker_id, result):
            logger.info("✅ Analyst %s finished (confidence=%.2f)", worker_id, result.confidence)
        else:
            logger.warning("⏱️ Analyst %s finished after the deadline; result discarded", worker_id)

    def _invoke(self, descriptor: WorkerDescriptor, request: AnalysisRequest) -> AnalysisResult:
        worker_id = descriptor.worker_id
        logger.info("▶️ Analyst %s started (subject=%s)", worker_id, request.subject_id)
        try:
            result = descriptor.handle.perform(request.subject_id, dict(request.parameters))
        except Exception as exc:
            raise WorkerFailure(worker_id, "perform() raised", cause=exc) from exc

        if not isinstance(result, AnalysisResult):
            raise WorkerFailure(worker_id, f"returned {type(result).__name__}, expected AnalysisResult")
        if not result.is_valid():
            raise WorkerFailure(
                worker_id,
                f"invalid result (recommendation={result.recommendation}, confidence={result.confidence})",
            )
        return result

    # ------------------------------------------------------
    # Teardown
    # ------------------------------------------------------
    def shutdown(self, grace_sec: Optional[float] = None) -> bool:
        """
        Stop accepting work and drain the runs still in flight.

        Waits up to `grace_sec` for in-flight analysts, then cancels whatever
        is still queued. Threads stuck inside `perform` are abandoned; Python
        cannot terminate them. Returns True when everything drained in time.
        Calling it again is a no-op.
        """
        grace = self.shutdown_grace_sec if grace_sec is None else grace_sec
        with self._lock:
            if self._closed:
                return True
            self._closed = True
            inflight = list(self._inflight)
            executors = list(self._executors)

        _, pending = wait(inflight, timeout=grace)
        if pending:
            logger.warning(
                "⚠️ Worker pool did not drain within %.1fs; force-cancelling %d task(s)",
                grace,
                len(pending),
            )
            for executor in executors:
                executor.shutdown(wait=False, cancel_futures=True)
            for future in pending:
                future.cancel()
            return False

        logger.info("🛑 Worker pool shut down cleanly")
        return True
