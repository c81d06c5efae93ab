import logging

import pytest

from onyx_store.logging_config import setup_logging

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


@pytest.fixture(autouse=True)
def _restore_uvicorn_levels():
    saved = {name: logging.getLogger(name).level for name in UVICORN_LOGGERS}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


def test_level_defaults_to_env(monkeypatch):
    monkeypatch.setenv("ONYX_LOG_LEVEL", "debug")
    assert setup_logging() == logging.DEBUG
    assert all(logging.getLogger(name).level == logging.DEBUG for name in UVICORN_LOGGERS)


def test_explicit_level_wins_over_env(monkeypatch):
    monkeypatch.setenv("ONYX_LOG_LEVEL", "DEBUG")
    assert setup_logging("warning") == logging.WARNING
    assert logging.getLogger("uvicorn.access").level == logging.WARNING


def test_unknown_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("ONYX_LOG_LEVEL", "chatty")
    assert setup_logging() == logging.INFO
