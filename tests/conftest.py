"""
Shared pytest fixtures for the quarry test suite.

Provides a grammar registry, an extractor and an in-memory sample
repository covering every supported language, plus a CodeIntel service
wired to a parallel orchestrator.

Usage in tests:
    def test_something(intel):
        envelope = intel.symbols("a.py")
        assert envelope.success

    def test_with_extractor(extractor):
        table = extractor.extract("x.py", b"def f():\\n    pass\\n")
"""

import pytest

from quarry.core.cache import SymbolCache, TableLoader
from quarry.core.parsing import TreeSitterExtractor, default_registry
from quarry.core.sources import InMemorySource
from quarry.orchestrator import OrchestratorConfig, TaskOrchestrator
from quarry.service import CodeIntel
from tests.samples import SAMPLE_FILES


@pytest.fixture
def registry():
    """Registry with every built-in language."""
    return default_registry()


@pytest.fixture
def extractor(registry):
    return TreeSitterExtractor(registry)


@pytest.fixture
def sample_source():
    """In-memory repository with Python, Rust, JavaScript and TypeScript files."""
    return InMemorySource(SAMPLE_FILES)


@pytest.fixture
def cache():
    return SymbolCache()


@pytest.fixture
def loader(sample_source, extractor, cache):
    return TableLoader(sample_source, extractor, cache)


@pytest.fixture
def orchestrator():
    """Parallel orchestrator, shut down after the test."""
    orch = TaskOrchestrator(OrchestratorConfig(enabled=True, workers=4))
    yield orch
    orch.shutdown(wait=True)


@pytest.fixture
def intel(sample_source, cache, registry, orchestrator):
    """CodeIntel over the sample repository."""
    return CodeIntel(sample_source, cache=cache, registry=registry, orchestrator=orchestrator)
