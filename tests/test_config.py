"""
Tests for layered configuration.
"""

import io
import logging

import orjson
import pytest
import structlog
import yaml

from quarry.config import Config, ConfigManager, LoggingConfig, ScanConfig, setup


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("QUARRY_LOG_LEVEL", "QUARRY_LOG_JSON", "QUARRY_MAX_FILE_SIZE", "QUARRY_INCLUDE_TESTS"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def manager(tmp_path, clean_env):
    return ConfigManager(tmp_path / "project", user_config_path=tmp_path / "home" / "config.yaml")


def write_yaml(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data))


class TestConfigSections:
    """Test dataclass validation and conversion."""

    def test_defaults_are_valid(self):
        config = Config()

        assert config.validate() is None
        assert config.scan.max_file_size == 1_000_000
        assert config.scan.include_tests is True
        assert config.logging.level == "INFO"

    @pytest.mark.parametrize("section", [
        ScanConfig(max_file_size=0),
        ScanConfig(exclude=[""]),
        LoggingConfig(level="LOUD"),
    ])
    def test_invalid_sections(self, section):
        assert section.validate() is not None

    def test_round_trip_through_dict(self):
        config = Config(scan=ScanConfig(include_tests=True, exclude=["**/gen/*"]))

        assert Config.from_dict(config.to_dict()) == config

    def test_from_dict_normalizes_level(self):
        assert Config.from_dict({"logging": {"level": "debug"}}).logging.level == "DEBUG"

    def test_scan_exclusions(self):
        exclusions = ScanConfig(include_tests=True, exclude=["**/gen/*"]).exclusions()

        assert exclusions.include_tests_enabled() is True
        assert exclusions.is_excluded("src/gen/api.py") is True


class TestConfigManager:
    """Test layer loading and persistence."""

    def test_no_files_gives_defaults(self, manager):
        assert manager.load() == Config()

    def test_project_overrides_user(self, manager):
        write_yaml(manager.user_config_path, {"logging": {"level": "DEBUG"}, "scan": {"max_file_size": 10}})
        write_yaml(manager.project_config_path, {"scan": {"max_file_size": 20}})

        config = manager.load()

        assert config.scan.max_file_size == 20
        assert config.logging.level == "DEBUG"

    def test_environment_wins(self, manager, clean_env):
        write_yaml(manager.project_config_path, {"logging": {"level": "ERROR"}})
        clean_env.setenv("QUARRY_LOG_LEVEL", "warning")
        clean_env.setenv("QUARRY_INCLUDE_TESTS", "no")

        config = manager.load()

        assert config.logging.level == "WARNING"
        assert config.scan.include_tests is False

    def test_bad_env_value(self, manager, clean_env):
        clean_env.setenv("QUARRY_MAX_FILE_SIZE", "huge")

        with pytest.raises(ValueError):
            manager.load()

    def test_invalid_merged_config(self, manager):
        write_yaml(manager.project_config_path, {"scan": {"max_file_size": -1}})

        with pytest.raises(ValueError):
            manager.load()

    def test_malformed_yaml_is_skipped(self, manager):
        manager.project_config_path.parent.mkdir(parents=True)
        manager.project_config_path.write_text("scan: [unclosed\n")

        assert manager.load() == Config()

    def test_non_mapping_is_skipped(self, manager):
        write_yaml(manager.project_config_path, ["not", "a", "mapping"])

        assert manager.load() == Config()

    def test_set_and_get(self, manager):
        assert manager.set("logging.level", "debug") is None
        assert manager.set("scan.exclude", "**/gen/*, **/vendor/*") is None
        assert manager.set("scan.include_tests", "true") is None

        assert manager.get("logging.level") == "DEBUG"
        assert manager.get("scan.exclude") == "**/gen/*,**/vendor/*"
        assert manager.get("scan.include_tests") == "true"
        assert manager.get("scan.nothing") is None

        saved = yaml.safe_load(manager.project_config_path.read_text())
        assert saved["logging"]["level"] == "DEBUG"

    def test_set_user_scope(self, manager):
        assert manager.set("scan.max_file_size", "500", scope="user") is None

        assert yaml.safe_load(manager.user_config_path.read_text())["scan"]["max_file_size"] == 500

    @pytest.mark.parametrize("key,value", [
        ("level", "DEBUG"),
        ("output.color", "true"),
        ("scan.depth", "3"),
        ("scan.max_file_size", "big"),
        ("logging.level", "LOUD"),
    ])
    def test_set_errors(self, manager, key, value):
        assert manager.set(key, value) is not None

    def test_merge_is_deep(self, manager):
        merged = manager._merge({"scan": {"a": 1, "b": 2}}, {"scan": {"b": 3}})

        assert merged == {"scan": {"a": 1, "b": 3}}


class TestLoggingSetup:
    """Test that the logging section reaches structlog."""

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        yield
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def test_apply(self):
        stream = io.StringIO()
        LoggingConfig(level="WARNING", json=True).apply(stream=stream)

        structlog.get_logger().info("scan_started")
        structlog.get_logger().warning("scan_slow", files=4)

        lines = [orjson.loads(line) for line in stream.getvalue().splitlines()]
        assert [line["event"] for line in lines] == ["scan_slow"]

    def test_setup_loads_layers_and_applies_logging(self, tmp_path, clean_env):
        clean_env.setattr(ConfigManager, "USER_CONFIG_FILE", tmp_path / "home" / "config.yaml")
        write_yaml(tmp_path / "project" / ".quarry" / "config.yaml", {"logging": {"level": "ERROR"}})
        clean_env.setenv("QUARRY_LOG_JSON", "true")
        stream = io.StringIO()

        config = setup(tmp_path / "project", stream=stream)
        structlog.get_logger().warning("hidden")
        structlog.get_logger().error("shown")

        assert config.logging.level == "ERROR"
        assert config.logging.json is True
        lines = [orjson.loads(line) for line in stream.getvalue().splitlines()]
        assert [line["event"] for line in lines] == ["shown"]
