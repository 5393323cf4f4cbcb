"""
quarry — Code intelligence for agents and tools

Symbol tables, minimal usage context and "who depends on this" analysis
across Python, Rust, JavaScript and TypeScript, answered from content
supplied by the caller.

Usage:
    from quarry import CodeIntel, DirectorySource

    intel = CodeIntel(DirectorySource("."))
    intel.symbols("src/app.py")
    intel.context("src/app.py::Greeter.greet")
    intel.affected("src/app.py::Greeter.greet")
    intel.bulk("symbols", ["src/**/*.py"])
"""

__version__ = "0.1.0"

# Core layer (data)
from .core.errors import QuarryError
from .core.envelope import Envelope
from .core.symbols import Span, Symbol, SymbolKind, SymbolTable
from .core.address import SymbolAddress
from .core.sources import ContentSource, DirectorySource, FileContent, InMemorySource
from .core.cache import SymbolCache
from .core.logging import configure_logging

# Execution layer
from .orchestrator import TaskOrchestrator, OrchestratorConfig

# Services layer
from .batch import BatchPlan, BatchResult, BatchCoordinator
from .service import CodeIntel

# Config (stays at root)
from .config import Config, ConfigManager, get_config, setup

__all__ = [
    # Core
    'QuarryError', 'Envelope',
    'Span', 'Symbol', 'SymbolKind', 'SymbolTable', 'SymbolAddress',
    'ContentSource', 'DirectorySource', 'FileContent', 'InMemorySource',
    'SymbolCache', 'configure_logging',
    # Execution
    'TaskOrchestrator', 'OrchestratorConfig',
    # Services
    'BatchPlan', 'BatchResult', 'BatchCoordinator', 'CodeIntel',
    # Config
    'Config', 'ConfigManager', 'get_config', 'setup',
]
