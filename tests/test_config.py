"""Tests for configuration helpers."""

import pytest
from pydantic import ValidationError

from conftest import BASE_ENV
from land_workflow_bot import config


def _seed_env(monkeypatch, **overrides):
    for key, value in {**BASE_ENV, **overrides}.items():
        monkeypatch.setenv(key, value)
    config.get_settings.cache_clear()


def test_get_settings_parses_expected_fields(monkeypatch):
    _seed_env(monkeypatch, ADMIN_USER_IDS="U1, U2 ,U3", TRELLO_BOARD_IDS="b1,b2")

    settings = config.get_settings()

    assert settings.bot_token == "xoxb-test"
    assert settings.admin_user_ids == ["U1", "U2", "U3"]
    assert settings.trello_board_ids == ["b1", "b2"]
    assert settings.land_submissions_channel_id == "CLAND"
    assert settings.trello_active_list_id == "641e10486e814e91bb2f6d31"
    assert settings.trello_intake_list_id == "6420a5767b2828fea92316e6"
    assert settings.traces_sample_rate == 1.0
    assert settings.trace_console_export is False
    config.get_settings.cache_clear()


def test_settings_are_cached(monkeypatch):
    _seed_env(monkeypatch)

    assert config.get_settings() is config.get_settings()
    config.get_settings.cache_clear()


def test_missing_environment_variables_raise_runtime_error():
    with pytest.raises(RuntimeError) as excinfo:
        config.load_settings({"SLACK_BOT_TOKEN": "token"})

    message = str(excinfo.value)
    assert message.startswith("Missing required environment variables:")
    for name in ("SLACK_SIGNING_SECRET", "DATABASE_URL", "TRELLO_KEY", "SUPPORT_TICKETS_CHANNEL_ID"):
        assert name in message
    assert "SLACK_BOT_TOKEN" not in message


@pytest.mark.parametrize(
    "overrides",
    [{"TRACES_SAMPLE_RATE": "1.5"}, {"TRELLO_TIMEOUT_SECONDS": "0"}],
)
def test_invalid_values_raise_runtime_error(overrides):
    with pytest.raises(RuntimeError) as excinfo:
        config.load_settings({**BASE_ENV, **overrides})

    assert str(excinfo.value).startswith("Invalid configuration")


def test_settings_are_immutable(settings):
    with pytest.raises(ValidationError):
        settings.bot_token = "other"
