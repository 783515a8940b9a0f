"""
Coordinator exceptions.

CoordinatorError (base)
├── InputError             request has no usable subject id
├── WorkerFailure          one analyst raised or returned an invalid result
├── AggregationError       no analyst contributed a valid result
├── DispatcherClosedError  work submitted after shutdown
└── StateTransitionError   illegal run-state transition

Only InputError and AggregationError fail a run in a user-visible way.
WorkerFailure never leaves the dispatcher; batch timeouts and shutdown drain
problems are logged, not raised.
"""

from typing import Optional


class CoordinatorError(Exception):
    """Base class for every error raised by the analyst desk."""


class InputError(CoordinatorError):
    """The request carries no extractable subject identifier."""


class WorkerFailure(CoordinatorError):
    """A single analyst failed; isolated at the dispatcher boundary."""

    def __init__(self, worker_id: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{worker_id}: {message}")
        self.worker_id = worker_id
        self.cause = cause


class AggregationError(CoordinatorError):
    """There is nothing to aggregate."""


class DispatcherClosedError(CoordinatorError):
    """The worker pool has been shut down."""


class StateTransitionError(CoordinatorError):
    """A run tried to move between states the lifecycle does not allow."""
