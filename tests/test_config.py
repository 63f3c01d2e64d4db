"""
Tests for settings resolution and logging setup.
"""

import json
import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from knockout.core.config import DEFAULT_SETTINGS, load_settings
from knockout.logging_setup import JSONFormatter, setup_logging


@pytest.fixture
def missing_config(tmp_path):
    return tmp_path / "absent.yaml"


class TestLoadSettings:
    def test_defaults(self, missing_config):
        settings = load_settings(missing_config, environ={})

        assert settings.user_id == DEFAULT_SETTINGS["user_id"]
        assert settings.empty_weight_policy == "zero"
        assert settings.grow_planned_sets is False
        assert settings.log_format == "text"
        assert settings.db_path == Path("~/.knockout/knockout.db").expanduser()

    def test_yaml_overrides_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "user_id: carol\n"
            "empty_weight_policy: reject\n"
            "grow_planned_sets: true\n"
            "unknown_key: ignored\n"
        )
        settings = load_settings(path, environ={})

        assert settings.user_id == "carol"
        assert settings.empty_weight_policy == "reject"
        assert settings.grow_planned_sets is True

    def test_env_overrides_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("user_id: carol\nlog_format: text\n")
        env = {
            "KNOCKOUT_USER_ID": "dave",
            "KNOCKOUT_DB_PATH": str(tmp_path / "x.db"),
            "KNOCKOUT_LOG_FORMAT": "json",
            "KNOCKOUT_LOG_LEVEL": "debug",
            "KNOCKOUT_GROW_PLANNED_SETS": "yes",
        }
        settings = load_settings(path, environ=env)

        assert settings.user_id == "dave"
        assert settings.db_path == tmp_path / "x.db"
        assert settings.log_format == "json"
        assert settings.log_level == "DEBUG"
        assert settings.grow_planned_sets is True

    def test_empty_env_values_are_ignored(self, missing_config):
        settings = load_settings(missing_config, environ={"KNOCKOUT_USER_ID": ""})
        assert settings.user_id == "local"

    def test_invalid_yaml_warns_and_falls_back(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("user_id: [broken\n")
        with pytest.warns(UserWarning):
            settings = load_settings(path, environ={})
        assert settings.user_id == "local"

    def test_invalid_policy_rejected(self, missing_config):
        with pytest.raises(ValueError):
            load_settings(missing_config, environ={"KNOCKOUT_EMPTY_WEIGHT": "guess"})

    def test_invalid_log_format_rejected(self, missing_config):
        with pytest.raises(ValueError):
            load_settings(missing_config, environ={"KNOCKOUT_LOG_FORMAT": "xml"})


class TestLogging:
    def teardown_method(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)

    def test_text_uses_rich(self):
        setup_logging("text", logging.INFO)
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], RichHandler)

    def test_json_formatter(self):
        setup_logging("json", "DEBUG")
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, JSONFormatter)

        record = logging.LogRecord(
            "knockout.test", logging.WARNING, __file__, 1, "saved %d sets", (3,), None
        )
        entry = json.loads(handler.formatter.format(record))
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "knockout.test"
        assert entry["message"] == "saved 3 sets"

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging("text")
        setup_logging("json")
        assert len(logging.getLogger().handlers) == 1
