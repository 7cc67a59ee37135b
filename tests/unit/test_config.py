"""
Unit tests for Config (environment) and ConfigManager (YAML tunables).
"""

import pytest

from studyforge.core.config.config import Config, Environment
from studyforge.core.config.manager import ConfigManager


@pytest.mark.unit
class TestConfigManager:
    def test_packaged_defaults(self):
        manager = ConfigManager()
        manager.initialize()

        assert manager.get_int("forge.idle.max_seconds", 0) == 86_400
        assert manager.get_int("forge.activity_log.max_entries", 0) == 10
        assert manager.get_int("forge.streak.booster_threshold", 0) == 3
        assert manager.get_bool("core.event.metrics_enabled", False) is True

    def test_overrides_win(self):
        manager = ConfigManager(overrides={"forge": {"idle": {"max_seconds": 60}}})
        manager.initialize()

        assert manager.get_int("forge.idle.max_seconds", 0) == 60
        assert manager.get_int("forge.activity_log.max_entries", 0) == 10

    def test_config_dir_is_merged_over_defaults(self, tmp_path):
        # Arrange
        (tmp_path / "tuning.yaml").write_text(
            "forge:\n  streak:\n    booster_threshold: 5\n", encoding="utf-8"
        )
        manager = ConfigManager(config_dir=tmp_path)

        # Act
        manager.initialize()

        # Assert
        assert manager.get_int("forge.streak.booster_threshold", 0) == 5
        assert manager.get_int("forge.idle.max_seconds", 0) == 86_400
        assert manager.get_metrics()["yaml_files_loaded"] == 2

    def test_malformed_yaml_is_skipped(self, tmp_path):
        (tmp_path / "broken.yaml").write_text("forge: [unclosed\n", encoding="utf-8")
        manager = ConfigManager(config_dir=tmp_path)

        manager.initialize()

        assert manager.get_metrics()["yaml_errors"] == 1
        assert manager.get_int("forge.idle.max_seconds", 0) == 86_400

    def test_missing_keys_use_default(self):
        manager = ConfigManager(include_packaged_defaults=False)
        manager.initialize()

        assert manager.get("forge.idle.max_seconds") is None
        assert manager.get_int("forge.idle.max_seconds", 123) == 123
        assert manager.get_metrics()["misses"] == 2

    def test_wrong_types_use_default(self):
        manager = ConfigManager(
            overrides={"forge": {"idle": {"max_seconds": "forever"}}, "flag": "yes"}
        )
        manager.initialize()

        assert manager.get_int("forge.idle.max_seconds", 99) == 99
        assert manager.get_bool("flag", False) is False

    def test_values_are_copies(self):
        manager = ConfigManager(overrides={"nested": {"values": [1, 2]}})
        manager.initialize()

        manager.get("nested")["values"].append(3)

        assert manager.get("nested.values") == [1, 2]

    def test_lazy_initialization(self):
        manager = ConfigManager()

        assert manager.get_int("forge.activity_log.max_entries", 0) == 10


@pytest.mark.unit
class TestEnvironmentConfig:
    def test_environment_parsing(self):
        assert Environment.from_string("PRODUCTION") is Environment.PRODUCTION
        assert Environment.from_string("nonsense") is Environment.DEVELOPMENT

    def test_load_reads_environment(self, monkeypatch, tmp_path):
        # Arrange
        monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/x.db")
        monkeypatch.setenv("DATABASE_POOL_SIZE", "12")
        monkeypatch.setenv("DATABASE_ECHO", "on")

        # Act
        Config.load()

        # Assert
        try:
            assert Config.DATABASE_URL.endswith("/x.db")
            assert Config.DATABASE_POOL_SIZE == 12
            assert Config.DATABASE_ECHO is True
            assert Config.is_testing()
        finally:
            monkeypatch.undo()
            Config.load()

    def test_invalid_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("DATABASE_POOL_SIZE", "0")
        monkeypatch.setenv("DATABASE_ECHO", "maybe")

        Config.load()

        try:
            assert Config.DATABASE_POOL_SIZE == 5
            assert Config.DATABASE_ECHO is False
            assert Config.get_config_summary()["load_metrics"]["validation_errors"] == 2
        finally:
            monkeypatch.undo()
            Config.load()
