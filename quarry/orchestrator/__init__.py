"""
Task Orchestrator — Parallel execution framework for quarry

Runs independent units (one file to scan, one batch target) in a worker
pool and hands results back in submission order, whatever order they
completed in.

Usage:
    from quarry.orchestrator import TaskOrchestrator, make_task

    orchestrator = TaskOrchestrator()
    tasks = [make_task(fn=scan_file, args=(path,)) for path in paths]
    results = orchestrator.run_ordered(tasks, cancel=cancel_event)

    # Graceful shutdown
    orchestrator.shutdown()

Configuration via environment variables:
    QUARRY_PARALLEL_ENABLED=true   # Enable/disable parallelization
    QUARRY_WORKERS=8               # Thread pool size
    QUARRY_TASK_TIMEOUT=30         # Per-unit timeout (seconds), 0 = none
    QUARRY_SHUTDOWN_TIMEOUT=10     # Pool shutdown timeout (seconds)
"""

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, wait
from typing import Any, Dict, List, Optional

import structlog

from ..core.errors import Cancelled, InternalError, QuarryError, TaskTimeout
from .config import OrchestratorConfig
from .pools import PoolStats, WorkerPool, execute_task
from .task import (
    Task, TaskStatus, TaskResult,
    make_task, cancelled_result, timed_out_result,
)

log = structlog.get_logger()


class TaskOrchestrator:
    """
    Central coordinator for parallel task execution.

    Manages:
    - A thread worker pool (lazily started)
    - Order-preserving collection of results
    - Cancellation of units that have not started
    - Per-unit timeouts measured from each unit's start

    Thread Safety:
    - All public methods are thread-safe
    - Internal state protected by locks
    """

    def __init__(self, config: Optional[OrchestratorConfig] = None):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration. If None, loads from environment.
        """
        self._config = config or OrchestratorConfig.from_env()
        self._config.validate()

        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False

        self._pool: Optional[WorkerPool] = None

    def _ensure_started(self) -> None:
        """Lazily initialize the pool on first use."""
        if self._started:
            return

        with self._lock:
            if self._started:
                return

            if self._config.enabled:
                self._pool = WorkerPool(self._config)

            self._started = True

    @property
    def enabled(self) -> bool:
        """Check if parallelization is enabled."""
        return self._config.enabled

    @property
    def config(self) -> OrchestratorConfig:
        """Get current configuration."""
        return self._config

    def run_ordered(
        self,
        tasks: List[Task],
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> List[TaskResult]:
        """
        Run tasks in parallel and return their results in task order.

        Every task gets exactly one result:
        - COMPLETED / FAILED once it ran
        - CANCELLED if ``cancel`` was set before it started
        - TIMED_OUT if it ran longer than the timeout (the worker is
          abandoned, siblings are unaffected)

        Args:
            tasks: Units to run
            cancel: Caller's cancellation signal
            timeout: Per-unit timeout in seconds; defaults to the
                configured task timeout

        Returns:
            List of TaskResults, same length and order as ``tasks``
        """
        self._ensure_started()

        if not tasks:
            return []

        if self._shutdown:
            raise RuntimeError("Orchestrator is shut down")

        timeout = timeout if timeout is not None else self._config.task_timeout

        if not self._config.enabled:
            # Sequential fallback; a running unit cannot be interrupted
            return [self._execute_sequential(t, cancel).result() for t in tasks]

        results: List[Optional[TaskResult]] = [None] * len(tasks)
        pending: Dict[Future, int] = {}
        for index, task in enumerate(tasks):
            pending[self._pool.submit(task, cancel)] = index

        while pending:
            done, _ = wait(list(pending), timeout=self._config.poll_interval, return_when=FIRST_COMPLETED)
            for future in done:
                index = pending.pop(future)
                if future.cancelled():
                    results[index] = cancelled_result(tasks[index])
                else:
                    results[index] = future.result()

            if not pending:
                break

            now = time.monotonic()
            for future, index in list(pending.items()):
                task = tasks[index]
                if cancel is not None and cancel.is_set() and future.cancel():
                    results[index] = cancelled_result(task)
                    del pending[future]
                    continue
                started = self._pool.started_at(task.id)
                if timeout is not None and started is not None and now - started > timeout:
                    log.warning("task_timed_out", task=task.name or task.id, timeout=timeout)
                    results[index] = timed_out_result(task, timeout)
                    del pending[future]

        return results

    def get_stats(self) -> Dict[str, Any]:
        """Get orchestrator statistics."""
        self._ensure_started()

        summary: Dict[str, Any] = {"enabled": self._config.enabled, "config": self._config.to_dict()}
        if self._pool:
            summary["pool"] = self._pool.stats().to_dict()
        return summary

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown the orchestrator.

        Args:
            wait: If True, wait for running tasks to complete
        """
        with self._lock:
            if self._shutdown:
                return

            self._shutdown = True

            if self._pool:
                self._pool.shutdown(wait=wait)

    def _execute_sequential(self, task: Task, cancel: Optional[threading.Event] = None) -> Future:
        """
        Execute task sequentially (fallback mode).

        Returns a completed Future for API compatibility.
        """
        future: Future = Future()
        future.set_result(execute_task(task, cancel))
        return future

    def __enter__(self) -> 'TaskOrchestrator':
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)


def outcome_error(
    outcome: TaskResult,
    path: Optional[str] = None,
    address: Optional[str] = None,
) -> QuarryError:
    """
    Structured error for an unsuccessful TaskResult.

    Structured failures raised by the unit are returned as they are;
    anything else is logged with its traceback and wrapped as internal.
    """
    if outcome.status == TaskStatus.CANCELLED:
        return Cancelled(outcome.error or "Cancelled", path=path, address=address)
    if outcome.status == TaskStatus.TIMED_OUT:
        return TaskTimeout(outcome.error or "Timed out", path=path, address=address)
    exc = outcome.exception
    if isinstance(exc, QuarryError):
        return exc
    log.error("task_failed", task_id=outcome.task_id, error=outcome.error, exc_info=exc)
    return InternalError(outcome.error or "Task failed", path=path, address=address)


# Public API exports
__all__ = [
    # Main class
    "TaskOrchestrator",

    # Task types
    "Task",
    "TaskStatus",
    "TaskResult",

    # Factory functions
    "make_task",
    "outcome_error",

    # Configuration
    "OrchestratorConfig",

    # Components (for advanced usage)
    "WorkerPool",
    "PoolStats",
]
