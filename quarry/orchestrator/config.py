"""
OrchestratorConfig — Configuration for parallel execution

Loads parallelization settings from environment variables.
Provides sensible defaults that work on any machine.

Environment variables:
- QUARRY_PARALLEL_ENABLED: Enable/disable parallelization (default: true)
- QUARRY_WORKERS: Thread pool size (default: min(8, CPU_COUNT + 4))
- QUARRY_TASK_TIMEOUT: Per-unit timeout in seconds, 0 disables (default: 0)
- QUARRY_SHUTDOWN_TIMEOUT: Pool shutdown timeout in seconds (default: 10)
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class OrchestratorConfig:
    """
    Configuration for the task orchestrator.

    Loaded from environment variables with sensible defaults.
    """

    # Feature toggle
    enabled: bool = True

    # Worker pool size (threads: reads are I/O-bound, tree-sitter
    # parsing releases the GIL)
    workers: int = 4

    # Timeouts
    task_timeout: Optional[float] = None   # Per-unit timeout (seconds), None = unbounded
    shutdown_timeout: float = 10.0         # Pool shutdown timeout (seconds)

    # How often the coordinator re-checks cancellation and timeouts
    poll_interval: float = 0.05

    @classmethod
    def from_env(cls) -> 'OrchestratorConfig':
        """
        Load configuration from environment variables.

        Uses sensible defaults that work on any machine:
        - Workers: CPU count + 4, capped at 8
        - No per-unit timeout
        """
        cpu_count = os.cpu_count() or 1
        timeout = _get_float_env("QUARRY_TASK_TIMEOUT", 0.0)

        return cls(
            enabled=_get_bool_env("QUARRY_PARALLEL_ENABLED", True),
            workers=_get_int_env("QUARRY_WORKERS", min(8, cpu_count + 4)),
            task_timeout=timeout if timeout > 0 else None,
            shutdown_timeout=_get_float_env("QUARRY_SHUTDOWN_TIMEOUT", 10.0),
        )

    def validate(self) -> None:
        """Validate configuration values."""
        if self.workers < 1:
            raise ValueError("QUARRY_WORKERS must be >= 1")
        if self.task_timeout is not None and self.task_timeout <= 0:
            raise ValueError("QUARRY_TASK_TIMEOUT must be > 0")
        if self.shutdown_timeout < 0:
            raise ValueError("QUARRY_SHUTDOWN_TIMEOUT must be >= 0")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

    def to_dict(self) -> dict:
        """Serialize for display/logging."""
        return {
            "enabled": self.enabled,
            "workers": self.workers,
            "task_timeout": self.task_timeout,
            "shutdown_timeout": self.shutdown_timeout,
        }


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean from environment variable."""
    value = os.environ.get(key, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.environ.get(key, "")
    if value:
        try:
            return int(value)
        except ValueError:
            pass
    return default


def _get_float_env(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.environ.get(key, "")
    if value:
        try:
            return float(value)
        except ValueError:
            pass
    return default
