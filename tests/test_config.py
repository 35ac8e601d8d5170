"""Config module tests.

Tests SHELL_TASK_* environment variable parsing and configuration management.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest import mock

import pytest

from shell_task.config import (
    DEFAULT_READ_SIZE,
    MAX_READ_SIZE,
    Config,
    get_config,
    load_config,
    reload_config,
)


class TestReadSize:
    """SHELL_TASK_READ_SIZE parsing."""

    def test_default(self):
        config = load_config()
        assert config.read_size == DEFAULT_READ_SIZE == 4096

    def test_custom_value(self):
        with mock.patch.dict(os.environ, {"SHELL_TASK_READ_SIZE": "65536"}, clear=False):
            assert load_config().read_size == 65536

    def test_clamped_low(self):
        with mock.patch.dict(os.environ, {"SHELL_TASK_READ_SIZE": "0"}, clear=False):
            assert load_config().read_size == 1

    def test_clamped_high(self):
        with mock.patch.dict(os.environ, {"SHELL_TASK_READ_SIZE": "999999999"}, clear=False):
            assert load_config().read_size == MAX_READ_SIZE

    def test_invalid_falls_back(self):
        with mock.patch.dict(os.environ, {"SHELL_TASK_READ_SIZE": "lots"}, clear=False):
            assert load_config().read_size == DEFAULT_READ_SIZE


class TestBoolParsing:
    """Boolean environment variables."""

    @pytest.mark.parametrize("value", ["true", "True", "TRUE", "1", "yes", "Yes", "on"])
    def test_log_launch_true_values(self, value: str):
        with mock.patch.dict(os.environ, {"SHELL_TASK_LOG_LAUNCH": value}, clear=False):
            assert load_config().log_launch is True

    @pytest.mark.parametrize("value", ["false", "False", "FALSE", "0", "no", "No", "off", ""])
    def test_log_launch_false_values(self, value: str):
        with mock.patch.dict(os.environ, {"SHELL_TASK_LOG_LAUNCH": value}, clear=False):
            assert load_config().log_launch is False

    def test_log_launch_default(self):
        assert load_config().log_launch is True


class TestLogDebug:
    """SHELL_TASK_LOG_DEBUG handling."""

    def test_disabled_by_default(self):
        config = load_config()
        assert config.log_debug is False
        assert config.log_file is None

    def test_enabled_sets_log_file(self):
        with mock.patch.dict(os.environ, {"SHELL_TASK_LOG_DEBUG": "1"}, clear=False):
            config = load_config()

        assert config.log_debug is True
        assert config.log_file is not None
        log_file = Path(config.log_file)
        assert log_file.parent.name == "shell-task"
        assert log_file.parent.is_dir()
        assert log_file.name.startswith("shell_task_debug_")


class TestEncoding:
    """SHELL_TASK_ENCODING handling."""

    def test_default(self):
        assert load_config().encoding == "utf-8"

    def test_normalized(self):
        with mock.patch.dict(os.environ, {"SHELL_TASK_ENCODING": "Latin-1"}, clear=False):
            assert load_config().encoding == "iso8859-1"

    def test_unknown_falls_back(self):
        with mock.patch.dict(os.environ, {"SHELL_TASK_ENCODING": "no-such-codec"}, clear=False):
            assert load_config().encoding == "utf-8"


class TestGlobalConfig:
    """Cached configuration instance."""

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reload_picks_up_changes(self):
        first = get_config()
        with mock.patch.dict(os.environ, {"SHELL_TASK_READ_SIZE": "128"}, clear=False):
            reloaded = reload_config()

        assert reloaded is not first
        assert reloaded.read_size == 128
        assert get_config() is reloaded

    def test_repr(self):
        text = repr(Config())
        assert text.startswith("Config(read_size=4096")
        assert "encoding='utf-8'" in text
