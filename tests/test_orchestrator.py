"""
Tests for TaskOrchestrator, WorkerPool and their configuration.
"""

import threading
import time

import pytest

from quarry.core.errors import Cancelled, InternalError, ParseError, TaskTimeout
from quarry.orchestrator import (
    OrchestratorConfig,
    TaskOrchestrator,
    TaskStatus,
    make_task,
    outcome_error,
)
from quarry.orchestrator.pools import execute_task
from quarry.orchestrator.task import timed_out_result


def square(x):
    return x * x


def fail(message):
    raise ValueError(message)


class TestTask:
    """Test task creation and execution."""

    def test_make_task(self):
        task = make_task(fn=square, args=(3,), name="square:3")

        assert task.fn is square
        assert task.args == (3,)
        assert task.kwargs == {}
        assert task.name == "square:3"
        assert len(task.id) == 12

    def test_ids_are_unique(self):
        assert len({make_task(fn=square, args=(1,)).id for _ in range(100)}) == 100

    def test_execute_success(self):
        result = execute_task(make_task(fn=square, args=(4,)))

        assert result.success is True
        assert result.result == 16
        assert result.duration_ms is not None

    def test_execute_failure_is_captured(self):
        result = execute_task(make_task(fn=fail, args=("bad",)))

        assert result.status == TaskStatus.FAILED
        assert result.error == "bad"
        assert isinstance(result.exception, ValueError)

    def test_execute_cancelled(self):
        cancel = threading.Event()
        cancel.set()

        result = execute_task(make_task(fn=square, args=(2,)), cancel)

        assert result.status == TaskStatus.CANCELLED

    def test_every_status_is_an_outcome(self):
        """Each status maps to a result; none describe a task still in flight."""
        assert {s.value for s in TaskStatus} == {"completed", "failed", "cancelled", "timed_out"}


class TestRunOrdered:
    """Test order-preserving parallel execution."""

    def test_results_in_task_order(self, orchestrator):
        def delayed(i):
            time.sleep(0.01 * (5 - i))
            return i

        tasks = [make_task(fn=delayed, args=(i,)) for i in range(5)]
        results = orchestrator.run_ordered(tasks)

        assert [r.result for r in results] == [0, 1, 2, 3, 4]

    def test_empty(self, orchestrator):
        assert orchestrator.run_ordered([]) == []

    def test_failure_does_not_affect_siblings(self, orchestrator):
        tasks = [
            make_task(fn=square, args=(2,)),
            make_task(fn=fail, args=("boom",)),
            make_task(fn=square, args=(3,)),
        ]
        results = orchestrator.run_ordered(tasks)

        assert [r.status for r in results] == [
            TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.COMPLETED,
        ]

    def test_queued_units_cancelled(self):
        """Units still queued when cancel is set never run."""
        orchestrator = TaskOrchestrator(OrchestratorConfig(workers=1))
        cancel = threading.Event()
        ran = []

        def first():
            cancel.set()
            time.sleep(0.1)
            return "first"

        def later(i):
            ran.append(i)
            return i

        tasks = [make_task(fn=first)] + [make_task(fn=later, args=(i,)) for i in range(3)]
        try:
            results = orchestrator.run_ordered(tasks, cancel=cancel)
        finally:
            orchestrator.shutdown()

        assert results[0].result == "first"
        assert all(r.status == TaskStatus.CANCELLED for r in results[1:])
        assert ran == []

    def test_timeout_abandons_only_the_slow_unit(self, orchestrator):
        release = threading.Event()
        tasks = [
            make_task(fn=lambda: release.wait(5)),
            make_task(fn=square, args=(5,)),
        ]
        try:
            results = orchestrator.run_ordered(tasks, timeout=0.1)
        finally:
            release.set()

        assert results[0].status == TaskStatus.TIMED_OUT
        assert "timeout" in results[0].error
        assert results[1].result == 25

    def test_sequential_mode(self):
        orchestrator = TaskOrchestrator(OrchestratorConfig(enabled=False))
        results = orchestrator.run_ordered([make_task(fn=square, args=(i,)) for i in range(3)])

        assert [r.result for r in results] == [0, 1, 4]
        assert orchestrator.get_stats()["enabled"] is False

    def test_shut_down_rejects_work(self):
        orchestrator = TaskOrchestrator(OrchestratorConfig(workers=1))
        orchestrator.shutdown()

        with pytest.raises(RuntimeError):
            orchestrator.run_ordered([make_task(fn=square, args=(1,))])


class TestOutcomeError:
    """Test mapping unsuccessful results to structured errors."""

    def test_structured_error_passes_through(self):
        def unit():
            raise ParseError("bad", path="a.py")

        error = outcome_error(execute_task(make_task(fn=unit)))

        assert isinstance(error, ParseError)
        assert error.path == "a.py"

    def test_other_exceptions_are_internal(self):
        error = outcome_error(execute_task(make_task(fn=fail, args=("x",))), path="a.py")

        assert isinstance(error, InternalError)
        assert error.path == "a.py"

    def test_cancelled_and_timed_out(self):
        cancel = threading.Event()
        cancel.set()
        cancelled = outcome_error(execute_task(make_task(fn=square, args=(1,)), cancel), address="a.py::f")

        assert isinstance(cancelled, Cancelled)
        assert cancelled.address == "a.py::f"

        timed_out = outcome_error(timed_out_result(make_task(fn=square), 2.0))

        assert isinstance(timed_out, TaskTimeout)
        assert timed_out.kind == "timeout"


class TestOrchestratorConfig:
    """Test environment loading and validation."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("QUARRY_PARALLEL_ENABLED", "false")
        monkeypatch.setenv("QUARRY_WORKERS", "3")
        monkeypatch.setenv("QUARRY_TASK_TIMEOUT", "2.5")

        config = OrchestratorConfig.from_env()

        assert config.enabled is False
        assert config.workers == 3
        assert config.task_timeout == 2.5

    def test_defaults_on_bad_values(self, monkeypatch):
        monkeypatch.setenv("QUARRY_WORKERS", "many")
        monkeypatch.delenv("QUARRY_TASK_TIMEOUT", raising=False)

        config = OrchestratorConfig.from_env()

        assert config.workers >= 1
        assert config.task_timeout is None

    @pytest.mark.parametrize("kwargs", [
        {"workers": 0},
        {"task_timeout": -1},
        {"shutdown_timeout": -1},
        {"poll_interval": 0},
    ])
    def test_validate(self, kwargs):
        with pytest.raises(ValueError):
            OrchestratorConfig(**kwargs).validate()
