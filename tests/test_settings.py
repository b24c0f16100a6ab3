"""Tests for environment-driven settings."""

import pytest

from rentaly.infra.settings import DEFAULT_NOTIFY_TIMEOUT, Settings, load_settings


def test_defaults_from_empty_env():
    assert load_settings({}) == Settings()


def test_all_values_read():
    settings = load_settings(
        {
            "RENTALY_STORE_BACKEND": "Postgres",
            "DATABASE_URL": "postgres://u:p@h/db",
            "RENTALY_NOTIFY_WEBHOOK_URL": "https://hooks.example.test/rentaly",
            "RENTALY_NOTIFY_TIMEOUT": "2.5",
            "RENTALY_RESOURCES_FILE": "/etc/rentaly/fleet.json",
        }
    )
    assert settings.store_backend == "postgres"
    assert settings.database_url == "postgres://u:p@h/db"
    assert settings.notify_webhook_url == "https://hooks.example.test/rentaly"
    assert settings.notify_timeout == 2.5
    assert settings.resources_file == "/etc/rentaly/fleet.json"


def test_unknown_backend_falls_back_to_memory():
    assert load_settings({"RENTALY_STORE_BACKEND": "redis"}).store_backend == "memory"


@pytest.mark.parametrize("raw", ["soon", "0", "-1"])
def test_bad_timeout_falls_back(raw):
    assert load_settings({"RENTALY_NOTIFY_TIMEOUT": raw}).notify_timeout == DEFAULT_NOTIFY_TIMEOUT


def test_empty_strings_are_unset():
    settings = load_settings({"DATABASE_URL": "", "RENTALY_NOTIFY_WEBHOOK_URL": ""})
    assert settings.database_url is None
    assert settings.notify_webhook_url is None


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("RENTALY_STORE_BACKEND", "postgres")
    assert load_settings().store_backend == "postgres"
