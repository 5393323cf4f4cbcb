"""
WorkerPool — Thread pool execution for parallel work

Design principles:
- ThreadPool for file reads and parsing (I/O releases the GIL, and so
  does tree-sitter while parsing)
- One task's exception becomes its FAILED result, never a sibling's problem
- Start times are recorded so the coordinator can time out a unit
  measured from when it actually began running
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from .config import OrchestratorConfig
from .task import Task, TaskResult, TaskStatus, cancelled_result


@dataclass
class PoolStats:
    """Statistics for pool observability."""
    active_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    total_duration_ms: float = 0.0

    @property
    def avg_duration_ms(self) -> float:
        if self.completed_tasks == 0:
            return 0.0
        return self.total_duration_ms / self.completed_tasks

    def to_dict(self) -> dict:
        return {
            "active_tasks": self.active_tasks,
            "completed_tasks": self.completed_tasks,
            "failed_tasks": self.failed_tasks,
            "avg_duration_ms": round(self.avg_duration_ms, 2)
        }


class WorkerPool:
    """
    ThreadPool for batch units.

    Suitable for: content reads, CST parsing, reference scans.
    Threads share the Symbol Table cache; tree-sitter parsers are kept
    per thread by the registry.
    """

    def __init__(self, config: OrchestratorConfig):
        self._config = config
        self._executor = ThreadPoolExecutor(
            max_workers=config.workers,
            thread_name_prefix="quarry-worker-"
        )
        self._stats = PoolStats()
        self._lock = threading.Lock()
        self._started: Dict[str, float] = {}  # task id -> monotonic start
        self._shutdown = False

    def submit(self, task: Task, cancel: Optional[threading.Event] = None) -> Future:
        """
        Submit a task for execution.

        Returns a Future that resolves to a TaskResult.
        """
        if self._shutdown:
            raise RuntimeError("Pool is shut down")

        with self._lock:
            self._stats.active_tasks += 1

        future = self._executor.submit(self._execute_task, task, cancel)
        future.add_done_callback(lambda f: self._on_complete(f, task))
        return future

    def _execute_task(self, task: Task, cancel: Optional[threading.Event]) -> TaskResult:
        with self._lock:
            self._started[task.id] = time.monotonic()
        return execute_task(task, cancel)

    def started_at(self, task_id: str) -> Optional[float]:
        """Monotonic time the task started running, None while queued."""
        with self._lock:
            return self._started.get(task_id)

    def _on_complete(self, future: Future, task: Task) -> None:
        """Callback when task completes."""
        with self._lock:
            self._stats.active_tasks -= 1
            self._started.pop(task.id, None)

            if future.cancelled():
                return
            result = future.result()
            if result.success:
                self._stats.completed_tasks += 1
                self._stats.total_duration_ms += result.duration_ms or 0
            elif result.failed:
                self._stats.failed_tasks += 1

    def stats(self) -> PoolStats:
        """Get pool statistics."""
        with self._lock:
            return PoolStats(
                active_tasks=self._stats.active_tasks,
                completed_tasks=self._stats.completed_tasks,
                failed_tasks=self._stats.failed_tasks,
                total_duration_ms=self._stats.total_duration_ms
            )

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown the pool.

        Queued tasks are cancelled. With ``wait``, running tasks get up
        to the configured shutdown timeout to finish.
        """
        self._shutdown = True
        self._executor.shutdown(wait=False, cancel_futures=True)
        if not wait:
            return
        deadline = time.monotonic() + self._config.shutdown_timeout
        while self.stats().active_tasks and time.monotonic() < deadline:
            time.sleep(0.01)


def execute_task(task: Task, cancel: Optional[threading.Event] = None) -> TaskResult:
    """
    Run one task, capturing its outcome.

    Used by pool workers and by the sequential fallback. A task whose
    cancel event is already set does not run.
    """
    if cancel is not None and cancel.is_set():
        return cancelled_result(task)

    started_at = datetime.now(timezone.utc)

    try:
        result = task.fn(*task.args, **task.kwargs)

        completed_at = datetime.now(timezone.utc)
        duration_ms = (completed_at - started_at).total_seconds() * 1000

        return TaskResult(
            task_id=task.id,
            status=TaskStatus.COMPLETED,
            result=result,
            started_at=started_at.isoformat(),
            completed_at=completed_at.isoformat(),
            duration_ms=duration_ms
        )

    except Exception as e:
        completed_at = datetime.now(timezone.utc)
        duration_ms = (completed_at - started_at).total_seconds() * 1000

        return TaskResult(
            task_id=task.id,
            status=TaskStatus.FAILED,
            error=str(e),
            exception=e,
            started_at=started_at.isoformat(),
            completed_at=completed_at.isoformat(),
            duration_ms=duration_ms
        )
