"""Tests for pipecollect.util.config module."""
import logging
from logging.handlers import TimedRotatingFileHandler

import pytest
from testutils import monkeypatched_env

from pipecollect.util.config import (
    configure_logger, get_config, get_int_setting, parse_key_value_str, reset_config
)


class TestGetConfig:
    """Test cases for loading configuration."""

    def test_missing_file_gives_empty_config(self):
        assert get_config() == {}

    def test_reads_toml_file(self, tmp_path):
        (tmp_path / ".pipecollect.toml").write_text('parallel_chunks = 6\nlogger_levels = "root:INFO"\n')
        config = get_config()
        assert config["parallel_chunks"] == 6
        assert config["logger_levels"] == "root:INFO"

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "other.toml"
        path.write_text("parallel_max_concurrency = 2\n")
        assert get_config(path=str(path))["parallel_max_concurrency"] == 2

    def test_environment_overrides_file(self, tmp_path, monkeypatched_env):
        (tmp_path / ".pipecollect.toml").write_text("parallel_chunks = 6\n")
        monkeypatched_env({"PIPECOLLECT_PARALLEL_CHUNKS": "9"})
        assert get_config()["parallel_chunks"] == "9"

    def test_ignore_env(self, monkeypatched_env):
        monkeypatched_env({"PIPECOLLECT_PARALLEL_CHUNKS": "9"})
        assert "parallel_chunks" not in get_config(ignore_env=True)

    def test_config_is_cached_until_reset(self, tmp_path):
        assert get_config() == {}
        (tmp_path / ".pipecollect.toml").write_text("parallel_chunks = 3\n")
        assert get_config() == {}
        assert get_config(reload=True)["parallel_chunks"] == 3
        (tmp_path / ".pipecollect.toml").write_text("parallel_chunks = 5\n")
        reset_config()
        assert get_config()["parallel_chunks"] == 5


class TestGetIntSetting:
    """Test cases for integer settings."""

    def test_default_when_missing(self):
        assert get_int_setting("parallel_chunks") is None
        assert get_int_setting("parallel_chunks", 7) == 7

    def test_coerces_environment_strings(self, monkeypatched_env):
        monkeypatched_env({"PIPECOLLECT_PARALLEL_CHUNKS": "12"})
        assert get_int_setting("parallel_chunks") == 12

    def test_rejects_non_integers(self, tmp_path):
        (tmp_path / ".pipecollect.toml").write_text('parallel_chunks = "lots"\nparallel_max_concurrency = true\n')
        with pytest.raises(ValueError, match="parallel_chunks"):
            get_int_setting("parallel_chunks")
        with pytest.raises(ValueError, match="parallel_max_concurrency"):
            get_int_setting("parallel_max_concurrency")


def test_parse_key_value_str():
    assert parse_key_value_str("a:1, b:two") == {"a": "1", "b": "two"}
    assert parse_key_value_str("address.city") == {"address.city": "city"}
    assert parse_key_value_str("log:/tmp/x.log") == {"log": "/tmp/x.log"}
    with pytest.raises(ValueError):
        parse_key_value_str("root", require_value=True)


@pytest.fixture
def scratch_logger():
    name = "pipecollect.tests.scratch"
    yield name
    configured = logging.getLogger(name)
    for handler in list(configured.handlers):
        handler.close()
        configured.removeHandler(handler)
    configured.setLevel(logging.NOTSET)


def test_configure_logger_levels(scratch_logger):
    configure_logger(f"{scratch_logger}:debug")
    configured = logging.getLogger(scratch_logger)
    assert configured.level == logging.DEBUG
    assert len(configured.handlers) == 1
    assert isinstance(configured.handlers[0], logging.StreamHandler)


def test_configure_logger_from_config(scratch_logger, monkeypatched_env):
    monkeypatched_env({"PIPECOLLECT_LOGGER_LEVELS": f"{scratch_logger}:ERROR"})
    configure_logger()
    assert logging.getLogger(scratch_logger).level == logging.ERROR


def test_configure_logger_files(scratch_logger, tmp_path):
    log_path = tmp_path / "pipecollect.log"
    configure_logger(f"{scratch_logger}:INFO", logger_files=f"{scratch_logger}:{log_path}")
    configured = logging.getLogger(scratch_logger)
    file_handlers = [h for h in configured.handlers if isinstance(h, TimedRotatingFileHandler)]
    assert len(file_handlers) == 1
    configured.info("written to file")
    file_handlers[0].flush()
    assert "written to file" in log_path.read_text()
