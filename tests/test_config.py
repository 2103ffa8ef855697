"""
Tests for worker settings.
"""

import pytest
from pydantic import ValidationError

from sincpro_deferred_worker.config import WorkerSettings, get_settings, reset_settings


@pytest.fixture(autouse=True)
def clean_settings():
    reset_settings()
    yield
    reset_settings()


def test_defaults():
    settings = WorkerSettings()

    assert settings.pool_size == 4
    assert settings.queue_limit is None
    assert settings.use_uvloop is True
    assert settings.enforce_completion is True
    assert settings.shutdown_timeout == 5.0
    assert settings.thread_name_prefix == "DeferredWorker"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEFERRED_WORKER_POOL_SIZE", "8")
    monkeypatch.setenv("DEFERRED_WORKER_QUEUE_LIMIT", "16")
    monkeypatch.setenv("DEFERRED_WORKER_USE_UVLOOP", "false")

    settings = WorkerSettings()

    assert settings.pool_size == 8
    assert settings.queue_limit == 16
    assert settings.use_uvloop is False


@pytest.mark.parametrize(
    "field,value",
    [("pool_size", 0), ("queue_limit", -1), ("shutdown_timeout", 0), ("thread_name_prefix", "")],
)
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ValidationError):
        WorkerSettings(**{field: value})


def test_get_settings_is_cached_until_reset(monkeypatch):
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("DEFERRED_WORKER_POOL_SIZE", "2")
    reset_settings()

    assert get_settings() is not first
    assert get_settings().pool_size == 2
