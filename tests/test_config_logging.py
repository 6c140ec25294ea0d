"""Tests for YAML config loading and the logging setup (console + FlightLogger)."""

import logging
from pathlib import Path

import pytest

from captioner.core.config import DEFAULT_DATABASE_URL, ConfigLoader, get_config, reset_config
from captioner.core.logging import FlightLogger, get_flight_logger, setup_logging

pytestmark = [pytest.mark.fast]


def test_defaults_when_config_file_missing():
    cfg = get_config()
    assert cfg.database_url == DEFAULT_DATABASE_URL
    assert cfg.max_images == 100
    assert cfg.max_image_size_mb == 20
    assert cfg.thumbnail_size == 400
    assert cfg.log_level == "WARNING"


def test_get_config_is_cached_until_reset():
    first = get_config()
    assert get_config() is first
    reset_config()
    assert get_config() is not first


def test_load_from_yaml_and_env_override(tmp_path):
    cfg_path = tmp_path / "captioner.yml"
    cfg_path.write_text("database_url: sqlite:///from-yaml.db\nlog_level: debug\nunknown_key: 1\n")
    loader = ConfigLoader(env={"CAPTIONER_CONFIG": str(cfg_path), "CAPTIONER_DATABASE_URL": "sqlite:///env.db"})

    cfg = loader.load_default()

    assert cfg.database_url == "sqlite:///env.db"
    assert cfg.log_level == "DEBUG"


def test_explicit_config_path_ignores_env_override(tmp_path, monkeypatch):
    cfg_path = tmp_path / "captioner.yml"
    cfg_path.write_text("database_url: sqlite:///explicit.db\n")
    monkeypatch.setenv("CAPTIONER_DATABASE_URL", "sqlite:///env.db")

    assert get_config(cfg_path).database_url == "sqlite:///explicit.db"


def test_env_override_without_config_file(monkeypatch):
    monkeypatch.setenv("CAPTIONER_DATABASE_URL", "sqlite:///env-only.db")
    assert get_config().database_url == "sqlite:///env-only.db"


def test_missing_explicit_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_config(tmp_path / "absent.yml")


def test_empty_yaml_gives_defaults(tmp_path):
    cfg_path = tmp_path / "captioner.yml"
    cfg_path.write_text("")
    assert get_config(cfg_path).max_images == 100


def test_flight_logger_keeps_last_records_and_dumps(tmp_path):
    handler = FlightLogger(capacity=3, forensics_dir=tmp_path / "forensics")
    logger = logging.getLogger("captioner.test.flight")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        for i in range(5):
            logger.debug("record %s", i)
    finally:
        logger.removeHandler(handler)

    assert len(handler) == 3
    path = handler.dump("run-1")
    lines = Path(path).read_text().splitlines()
    assert [line.rsplit(" ", 1)[-1] for line in lines] == ["2", "3", "4"]
    assert "run-1_" in path


def test_setup_logging_installs_console_and_flight_handlers(tmp_path):
    cfg_path = tmp_path / "captioner.yml"
    cfg_path.write_text(f"log_level: info\nforensics_dir: {tmp_path / 'f'}\n")
    get_config(cfg_path)
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        setup_logging()
        flight = get_flight_logger()
        assert flight is not None
        assert flight in root.handlers
        console = [h for h in root.handlers if not isinstance(h, FlightLogger)]
        assert len(console) == 1
        assert console[0].level == logging.INFO

        setup_logging(verbose=True)
        assert len(root.handlers) == 2
        console = [h for h in root.handlers if not isinstance(h, FlightLogger)]
        assert console[0].level == logging.DEBUG
    finally:
        for h in root.handlers[:]:
            root.removeHandler(h)
        for h in saved[0]:
            root.addHandler(h)
        root.setLevel(saved[1])
