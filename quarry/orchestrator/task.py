"""
Task — Unit of parallelizable work

Defines the core abstractions for the orchestrator:
- Task: Unit of work (one file to scan, one batch target to answer)
- TaskStatus: Outcome states
- TaskResult: Outcome of task execution

Design principles:
- Tasks are immutable after creation
- Tasks carry all context needed for execution
- Failures are results, never exceptions escaping a worker
"""

import itertools
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

import xxhash


class TaskStatus(Enum):
    """Task outcome states."""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class Task:
    """
    Unit of parallelizable work.

    Immutable after creation. Carries all context needed for execution.
    """
    # Identity
    id: str = field(default_factory=lambda: _generate_task_id())

    # Execution
    fn: Callable = field(default=None)
    args: tuple = field(default_factory=tuple)
    kwargs: Dict[str, Any] = field(default_factory=dict)

    # Metadata (for observability)
    name: str = ""

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if isinstance(other, Task):
            return self.id == other.id
        return False


@dataclass
class TaskResult:
    """Outcome of task execution."""
    task_id: str
    status: TaskStatus
    result: Any = None
    error: Optional[str] = None
    exception: Optional[BaseException] = None

    # Timing
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_ms: Optional[float] = None

    @property
    def success(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def failed(self) -> bool:
        return self.status == TaskStatus.FAILED


_task_counter = itertools.count()


def _generate_task_id() -> str:
    """Generate unique task ID using xxhash (5x faster than hashlib)."""
    seed = f"{datetime.now(timezone.utc).isoformat()}:{next(_task_counter)}"
    return xxhash.xxh64(seed.encode()).hexdigest()[:12]


def make_task(
    fn: Callable,
    args: tuple = (),
    kwargs: Dict[str, Any] = None,
    name: str = "",
) -> Task:
    """
    Create a task.

    Args:
        fn: Function to execute
        args: Positional arguments tuple for fn
        kwargs: Keyword arguments dict for fn
        name: Optional task name for observability

    Example:
        task = make_task(fn=scan_file, args=("src/app.py",), name="scan:src/app.py")
    """
    return Task(
        fn=fn,
        args=args,
        kwargs=kwargs or {},
        name=name,
    )


def cancelled_result(task: Task) -> TaskResult:
    return TaskResult(task_id=task.id, status=TaskStatus.CANCELLED, error="Cancelled before start")


def timed_out_result(task: Task, timeout: float) -> TaskResult:
    return TaskResult(
        task_id=task.id,
        status=TaskStatus.TIMED_OUT,
        error=f"Exceeded {timeout:g}s timeout",
    )
