import logging

import pytest

from config import DEFAULT_CONFIG, configure_logging, load_config


def test_defaults_without_environment(monkeypatch):
    for name in ("BUBBLE_SAFE_ZONE_ROWS", "BUBBLE_PATH_PRECISION", "BUBBLE_SAFE_ZONE_SHRINK",
                 "BUBBLE_FIT_MAX_ITERATIONS", "BUBBLE_EXPORT_SCALE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    assert load_config() == DEFAULT_CONFIG


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("BUBBLE_SAFE_ZONE_ROWS", "40")
    monkeypatch.setenv("BUBBLE_EXPORT_SCALE", "1.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    cfg = load_config()
    assert cfg.safe_zone_rows == 40
    assert cfg.export_scale == 1.5
    assert cfg.log_level == "DEBUG"


def test_invalid_number_is_reported(monkeypatch):
    monkeypatch.setenv("BUBBLE_PATH_PRECISION", "lots")
    with pytest.raises(RuntimeError, match="BUBBLE_PATH_PRECISION"):
        load_config()


def test_configure_logging_sets_root_level():
    root = logging.getLogger()
    old = root.level
    try:
        configure_logging("debug")
        assert root.level == logging.DEBUG
        configure_logging("chatty")
        assert root.level == logging.INFO
    finally:
        root.setLevel(old)
