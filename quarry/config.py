"""
Configuration — Centralized settings management

Config layers (later layers override earlier ones):
  1. Defaults
  2. User config (~/.quarry/config.yaml)
  3. Project config (.quarry/config.yaml)
  4. Environment variables (QUARRY_LOG_LEVEL, QUARRY_LOG_JSON,
     QUARRY_MAX_FILE_SIZE, QUARRY_INCLUDE_TESTS)

Worker-pool settings are read from the environment by
``OrchestratorConfig.from_env``.

``setup`` loads the layers and applies the logging section.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml

from .core.logging import configure_logging, is_valid_level
from .core.parsing.exclusions import ExclusionConfig

log = structlog.get_logger()

DEFAULT_MAX_FILE_SIZE = 1_000_000


@dataclass
class ScanConfig:
    """What gets parsed and scanned."""
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    include_tests: bool = True        # Scan test files for references
    exclude: List[str] = field(default_factory=list)  # Extra glob patterns

    def exclusions(self) -> ExclusionConfig:
        """Exclusion rules for this scan configuration."""
        return ExclusionConfig(include_tests=self.include_tests, extra=self.exclude)

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if not isinstance(self.max_file_size, int) or self.max_file_size <= 0:
            return f"max_file_size must be a positive integer, got {self.max_file_size!r}"
        for pattern in self.exclude:
            if not isinstance(pattern, str) or not pattern:
                return f"Invalid exclude pattern: {pattern!r}"
        return None


@dataclass
class LoggingConfig:
    """Log level and renderer."""
    level: str = "INFO"
    json: bool = False

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if not is_valid_level(self.level):
            return f"Unknown log level '{self.level}'. Valid: DEBUG, INFO, WARNING, ERROR"
        return None

    def apply(self, stream=None) -> None:
        """Configure structlog with this level and renderer."""
        configure_logging(level=self.level, json_format=self.json, stream=stream)


@dataclass
class Config:
    """Application configuration."""
    scan: ScanConfig = field(default_factory=ScanConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> Optional[str]:
        """First section error, or None if every section is valid."""
        for section in (self.scan, self.logging):
            error = section.validate()
            if error:
                return error
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "scan": {
                "max_file_size": self.scan.max_file_size,
                "include_tests": self.scan.include_tests,
                "exclude": list(self.scan.exclude),
            },
            "logging": {
                "level": self.logging.level,
                "json": self.logging.json,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create from dictionary."""
        scan_data = data.get("scan") or {}
        logging_data = data.get("logging") or {}

        return cls(
            scan=ScanConfig(
                max_file_size=scan_data.get("max_file_size", DEFAULT_MAX_FILE_SIZE),
                include_tests=bool(scan_data.get("include_tests", True)),
                exclude=list(scan_data.get("exclude") or []),
            ),
            logging=LoggingConfig(
                level=str(logging_data.get("level", "INFO")).upper(),
                json=bool(logging_data.get("json", False)),
            ),
        )


class ConfigManager:
    """
    Loads and persists configuration.

    Usage:
        manager = ConfigManager(project_dir)
        config = manager.load()
        manager.set("logging.level", "DEBUG")
    """

    USER_CONFIG_DIR = Path.home() / ".quarry"
    USER_CONFIG_FILE = USER_CONFIG_DIR / "config.yaml"
    PROJECT_CONFIG_DIR = ".quarry"
    PROJECT_CONFIG_FILE = "config.yaml"

    def __init__(self, project_dir: Optional[Path] = None, user_config_path: Optional[Path] = None):
        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self._user_config_path = Path(user_config_path) if user_config_path else self.USER_CONFIG_FILE
        self._config: Optional[Config] = None

    @property
    def project_config_path(self) -> Path:
        return self.project_dir / self.PROJECT_CONFIG_DIR / self.PROJECT_CONFIG_FILE

    @property
    def user_config_path(self) -> Path:
        return self._user_config_path

    def load(self) -> Config:
        """
        Load configuration from all layers.

        Raises:
            ValueError: If the merged configuration is invalid
        """
        if self._config is not None:
            return self._config

        config_data: Dict[str, Any] = {}

        # Layer 1: User config
        config_data = self._merge(config_data, self._read_yaml(self.user_config_path))

        # Layer 2: Project config (higher priority)
        config_data = self._merge(config_data, self._read_yaml(self.project_config_path))

        # Layer 3: Environment overrides
        self._apply_env(config_data)

        config = Config.from_dict(config_data)
        error = config.validate()
        if error:
            raise ValueError(error)

        self._config = config
        return self._config

    def _read_yaml(self, path: Path) -> Dict[str, Any]:
        """Parsed YAML mapping, or {} when missing or malformed."""
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            log.warning("config_unreadable", path=str(path), error=str(e))
            return {}
        if not isinstance(data, dict):
            log.warning("config_not_a_mapping", path=str(path))
            return {}
        return data

    def _apply_env(self, config_data: Dict[str, Any]) -> None:
        if os.environ.get("QUARRY_LOG_LEVEL"):
            config_data.setdefault("logging", {})["level"] = os.environ["QUARRY_LOG_LEVEL"]
        if os.environ.get("QUARRY_LOG_JSON"):
            config_data.setdefault("logging", {})["json"] = _is_true(os.environ["QUARRY_LOG_JSON"])
        if os.environ.get("QUARRY_MAX_FILE_SIZE"):
            try:
                size = int(os.environ["QUARRY_MAX_FILE_SIZE"])
            except ValueError:
                raise ValueError(
                    f"QUARRY_MAX_FILE_SIZE must be an integer, got {os.environ['QUARRY_MAX_FILE_SIZE']!r}"
                )
            config_data.setdefault("scan", {})["max_file_size"] = size
        if os.environ.get("QUARRY_INCLUDE_TESTS"):
            config_data.setdefault("scan", {})["include_tests"] = _is_true(os.environ["QUARRY_INCLUDE_TESTS"])

    def save_project(self, config: Config) -> None:
        """Save configuration to project config file."""
        self.project_config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.project_config_path, 'w') as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False)

        self._config = config

    def save_user(self, config: Config) -> None:
        """Save configuration to user config file."""
        self.user_config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.user_config_path, 'w') as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False)

        self._config = config

    def set(self, key: str, value: str, scope: str = "project") -> Optional[str]:
        """
        Set a configuration value.

        Args:
            key: Dot-separated key (e.g., "logging.level")
            value: Value to set
            scope: "project" or "user"

        Returns:
            Error message or None if successful
        """
        config = self.load()

        parts = key.split(".")
        if len(parts) != 2:
            return f"Invalid key format: {key}. Use 'section.setting' (e.g., 'logging.level')"

        section, setting = parts

        if section == "scan":
            if setting == "max_file_size":
                try:
                    config.scan.max_file_size = int(value)
                except ValueError:
                    return f"max_file_size must be an integer, got {value!r}"
            elif setting == "include_tests":
                config.scan.include_tests = _is_true(value)
            elif setting == "exclude":
                config.scan.exclude = [p.strip() for p in value.split(",") if p.strip()]
            else:
                return f"Unknown scan setting: {setting}. Valid: max_file_size, include_tests, exclude"
            error = config.scan.validate()
            if error:
                return error

        elif section == "logging":
            if setting == "level":
                config.logging.level = value.upper()
            elif setting == "json":
                config.logging.json = _is_true(value)
            else:
                return f"Unknown logging setting: {setting}. Valid: level, json"
            error = config.logging.validate()
            if error:
                return error
        else:
            return f"Unknown section: {section}. Valid: scan, logging"

        if scope == "project":
            self.save_project(config)
        else:
            self.save_user(config)

        return None

    def get(self, key: str) -> Optional[str]:
        """Get a configuration value as a string."""
        data = self.load().to_dict()

        parts = key.split(".")
        if len(parts) != 2:
            return None

        section, setting = parts
        value = data.get(section, {}).get(setting)
        if value is None:
            return None
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, list):
            return ",".join(value)
        return str(value)

    def _merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dicts, override wins."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge(result[key], value)
            else:
                result[key] = value
        return result


def _is_true(value: str) -> bool:
    return str(value).lower() in ('true', '1', 'yes')


def get_config(project_dir: Optional[Path] = None) -> Config:
    """Load configuration for a project directory."""
    return ConfigManager(project_dir).load()


def setup(project_dir: Optional[Path] = None, stream=None) -> Config:
    """
    Load configuration and apply its logging section.

    The one place applications turn ``logging.level`` and
    ``logging.json`` into structlog configuration.
    """
    config = get_config(project_dir)
    config.logging.apply(stream=stream)
    return config
