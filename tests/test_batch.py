"""
Tests for the Batch Coordinator.

Covers plan validation, target classification, request-order results,
per-target failure isolation, pattern expansion, cancellation and
per-unit timeouts.
"""

import threading
import time

import pytest

from quarry.batch import (
    Action,
    BatchCoordinator,
    BatchPlan,
    TargetType,
    classify,
)
from quarry.core.errors import FileNotFound, InvalidRequest, SymbolNotFound
from quarry.core.sources import InMemorySource
from quarry.service import CodeIntel


def echo_unit(action, address, public_only):
    return "echo", {"address": str(address), "public_only": public_only}


def make_coordinator(run_unit, orchestrator, files=None):
    source = InMemorySource(files or {"a.py": "", "b.py": "", "src/x.py": "", "src/y.py": ""})
    return BatchCoordinator(run_unit, source, orchestrator)


# =============================================================================
# Plan
# =============================================================================

class TestClassify:
    @pytest.mark.parametrize("text,expected", [
        ("a.py::foo", TargetType.ADDRESS),
        ("src/**/*.py", TargetType.PATTERN),
        ("src/?.py", TargetType.PATTERN),
        ("src/app.py", TargetType.FILE),
    ])
    def test_classify(self, text, expected):
        assert classify(text) == expected


class TestBatchPlan:
    """Test request-level validation."""

    def test_create(self):
        plan = BatchPlan.create("symbols", ["a.py", "src/*.py", "a.py::foo"], public_only=True)

        assert plan.action == Action.SYMBOLS
        assert [t.target_type for t in plan.targets] == [
            TargetType.FILE, TargetType.PATTERN, TargetType.ADDRESS,
        ]
        assert plan.public_only is True
        assert len(plan) == 3

    def test_unknown_action(self):
        with pytest.raises(InvalidRequest, match="Unknown batch action"):
            BatchPlan.create("rename", ["a.py"])

    @pytest.mark.parametrize("targets", [[], None, "a.py", ["a.py", 3]])
    def test_bad_targets(self, targets):
        with pytest.raises(InvalidRequest):
            BatchPlan.create("symbols", targets)


# =============================================================================
# Coordinator
# =============================================================================

class TestOrdering:
    """Results come back in request order."""

    def test_request_order_despite_completion_order(self, orchestrator):
        def slow_first(action, address, public_only):
            # Earlier targets finish later
            delay = {"a.py": 0.2, "b.py": 0.1}.get(address.path, 0.0)
            time.sleep(delay)
            return "echo", address.path

        coordinator = make_coordinator(slow_first, orchestrator)
        result = coordinator.run(BatchPlan.create("symbols", ["a.py", "b.py", "src/x.py"]))

        assert [o.data for o in result.outcomes] == ["a.py", "b.py", "src/x.py"]

    def test_pattern_children_in_listing_order(self, orchestrator):
        coordinator = make_coordinator(echo_unit, orchestrator)
        result = coordinator.run(BatchPlan.create("symbols", ["src/*.py", "a.py"]))
        pattern = result.outcomes[0]

        assert pattern.type == "pattern"
        assert [c.target for c in pattern.children] == ["src/x.py", "src/y.py"]
        assert pattern.data["matched"] == 2
        assert pattern.data["succeeded"] == 2
        assert result.outcomes[1].data["address"] == "a.py"

    def test_public_only_passed_to_units(self, orchestrator):
        coordinator = make_coordinator(echo_unit, orchestrator)
        result = coordinator.run(BatchPlan.create("symbols", ["a.py"], public_only=True))

        assert result.outcomes[0].data["public_only"] is True


class TestFailureIsolation:
    """One target's failure never affects another's."""

    def test_structured_failure_is_per_item(self, orchestrator):
        def unit(action, address, public_only):
            if address.path == "b.py":
                raise SymbolNotFound("nope", path="b.py", address=str(address))
            return "echo", address.path

        coordinator = make_coordinator(unit, orchestrator)
        result = coordinator.run(BatchPlan.create("context", ["a.py::f", "b.py::g", "a.py::h"]))

        assert [o.success for o in result.outcomes] == [True, False, True]
        assert result.outcomes[1].error.kind == "symbol_not_found"
        assert result.to_dict()["summary"] == {"total": 3, "succeeded": 2, "failed": 1}

    def test_unexpected_exception_becomes_internal(self, orchestrator):
        def unit(action, address, public_only):
            if address.path == "a.py":
                raise RuntimeError("boom")
            return "echo", address.path

        coordinator = make_coordinator(unit, orchestrator)
        result = coordinator.run(BatchPlan.create("symbols", ["a.py", "b.py"]))

        assert result.outcomes[0].to_dict()["kind"] == "internal"
        assert result.outcomes[0].to_dict()["target"] == "a.py"
        assert result.outcomes[1].success is True

    def test_action_rejects_target_type(self, orchestrator):
        coordinator = make_coordinator(echo_unit, orchestrator)
        result = coordinator.run(BatchPlan.create("affected", ["a.py", "src/*.py", "a.py::foo"]))

        kinds = [o.error.kind if o.error else None for o in result.outcomes]
        assert kinds == ["invalid_target", "invalid_target", None]

    def test_pattern_without_matches(self, orchestrator):
        coordinator = make_coordinator(echo_unit, orchestrator)
        result = coordinator.run(BatchPlan.create("symbols", ["docs/**/*.md", "a.py"]))

        assert result.outcomes[0].error.kind == "no_files_matched"
        assert result.outcomes[0].error.path == "docs/**/*.md"
        assert result.outcomes[1].success is True

    def test_malformed_address_in_batch(self, orchestrator):
        coordinator = make_coordinator(echo_unit, orchestrator)
        result = coordinator.run(BatchPlan.create("context", ["a.py::foo..bar", "a.py::foo"]))

        assert result.outcomes[0].error.kind == "address_format"
        assert result.outcomes[1].success is True

    def test_pattern_expands_to_every_listed_match(self, orchestrator):
        """Exclusion rules never filter a pattern the caller named."""
        files = {"src/x.py": "", "src/__pycache__/x.py": "", "src/test_x.py": "", "tests/test_y.py": ""}
        coordinator = make_coordinator(echo_unit, orchestrator, files)
        result = coordinator.run(BatchPlan.create("symbols", ["src/**/*.py", "tests/**/*.py"]))

        assert [c.target for c in result.outcomes[0].children] == [
            "src/__pycache__/x.py", "src/test_x.py", "src/x.py",
        ]
        assert [c.target for c in result.outcomes[1].children] == ["tests/test_y.py"]


class TestCancellationAndTimeout:
    """Test withdrawn and slow units."""

    def test_cancel_before_start(self, orchestrator):
        cancel = threading.Event()
        cancel.set()
        coordinator = make_coordinator(echo_unit, orchestrator)

        result = coordinator.run(BatchPlan.create("symbols", ["a.py", "b.py"]), cancel=cancel)

        assert [o.error.kind for o in result.outcomes] == ["cancelled", "cancelled"]
        assert result.outcomes[0].error.path == "a.py"

    def test_timeout_is_per_unit(self, orchestrator):
        release = threading.Event()

        def unit(action, address, public_only):
            if address.path == "a.py":
                release.wait(5)
            return "echo", address.path

        coordinator = make_coordinator(unit, orchestrator)
        try:
            result = coordinator.run(BatchPlan.create("symbols", ["a.py", "b.py"]), timeout=0.2)
        finally:
            release.set()

        assert result.outcomes[0].error.kind == "timeout"
        assert result.outcomes[1].data == "b.py"


# =============================================================================
# End to end through CodeIntel
# =============================================================================

class TestBulkThroughService:
    """Test batch units answered by the service."""

    def test_mixed_targets(self, intel):
        envelope = intel.bulk("symbols", ["a.py::foo", "missing.py", "lib/*.rs", "a.py"])
        results = envelope.data["results"]

        assert envelope.success is True
        assert envelope.type == "batch"
        assert [r["target"] for r in results] == ["a.py::foo", "missing.py", "lib/*.rs", "a.py"]
        assert results[0]["type"] == "symbol"
        assert results[0]["data"]["qualified_name"] == "foo"
        assert results[1]["kind"] == "file_not_found"
        assert results[2]["data"]["matched"] == 1
        assert results[3]["type"] == "symbols"

    def test_pattern_with_one_bad_file(self, orchestrator):
        """A ten-file pattern with one unparsable file: nine tables, one error."""
        files = {f"src/m{i}.py": f"def f{i}():\n    return {i}\n" for i in range(10)}
        files["src/m3.py"] = b"x = '\xff'\n"
        intel = CodeIntel(InMemorySource(files), orchestrator=orchestrator)

        envelope = intel.bulk("symbols", ["src/*.py"])
        pattern = envelope.data["results"][0]["data"]

        assert pattern["matched"] == 10
        assert pattern["succeeded"] == 9
        assert pattern["failed"] == 1
        failed = [r for r in pattern["results"] if r["error"]]
        assert failed[0]["target"] == "src/m3.py"
        assert failed[0]["kind"] == "parse_error"

    def test_vanished_file(self, orchestrator):
        """A listed file that cannot be read any more fails alone."""
        class VanishingSource(InMemorySource):
            def read(self, path):
                if path == "src/gone.py":
                    raise FileNotFound(f"File not found: {path}", path=path)
                return super().read(path)

        source = VanishingSource({"src/gone.py": "x = 1\n", "src/kept.py": "y = 2\n"})
        intel = CodeIntel(source, orchestrator=orchestrator)

        pattern = intel.bulk("symbols", ["src/*.py"]).data["results"][0]["data"]

        assert [r["error"] and r["kind"] for r in pattern["results"]] == ["file_not_found", False]

    def test_affected_in_batch(self, intel):
        envelope = intel.bulk("affected", ["a.py::foo"])
        data = envelope.data["results"][0]["data"]

        assert [(e["file"], e["count"]) for e in data["affected"]] == [("b.py", 2), ("c.py", 1)]

    def test_invalid_request_fails_whole_call(self, intel):
        envelope = intel.bulk("symbols", [])

        assert envelope.success is False
        assert envelope.error.kind == "invalid_request"

    def test_test_files_reachable_by_pattern(self, orchestrator):
        """Patterns over tests/ and tmp/ agree with the files listing."""
        source = InMemorySource({
            "src/a.py": "def foo():\n    return 1\n",
            "src/tmp/helper.py": "from src.a import foo\n\nfoo()\n",
            "tests/test_a.py": "from src.a import foo\n\nfoo()\n",
        })
        intel = CodeIntel(source, orchestrator=orchestrator)

        bulk = intel.bulk("symbols", ["tests/**/*.py"]).data["results"][0]
        every = intel.symbols("**/*.py").data["results"][0]["data"]
        listed = [f["path"] for f in intel.files("**/*.py").data["files"]]

        assert bulk["error"] is False
        assert [r["target"] for r in bulk["data"]["results"]] == ["tests/test_a.py"]
        assert every["matched"] == 3
        assert [r["target"] for r in every["results"]] == listed
