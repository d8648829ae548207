"""Pydantic-based configuration for the land workflow bot."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


def _split_csv(value: str | list[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [item.strip() for item in value if item and item.strip()]
    return [item.strip() for item in value.split(",") if item.strip()]


class AppSettings(BaseModel):
    """Static settings loaded once at start and passed into every component."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bot_token: str = Field(..., alias="SLACK_BOT_TOKEN")
    signing_secret: str = Field(..., alias="SLACK_SIGNING_SECRET")
    database_url: str = Field(..., alias="DATABASE_URL")

    trello_key: str = Field(..., alias="TRELLO_KEY")
    trello_token: str = Field(..., alias="TRELLO_TOKEN")
    trello_api_base: str = Field("https://api.trello.com/1", alias="TRELLO_API_BASE")
    trello_board_ids: List[str] = Field(["641e058f71db0c8ed6abecd7"], alias="TRELLO_BOARD_IDS")
    trello_active_list_id: str = Field("641e10486e814e91bb2f6d31", alias="TRELLO_ACTIVE_LIST_ID")
    trello_intake_list_id: str = Field("6420a5767b2828fea92316e6", alias="TRELLO_INTAKE_LIST_ID")
    trello_timeout_seconds: float = Field(10.0, alias="TRELLO_TIMEOUT_SECONDS")

    land_submissions_channel_id: str = Field(..., alias="LAND_SUBMISSIONS_CHANNEL_ID")
    support_tickets_channel_id: str = Field(..., alias="SUPPORT_TICKETS_CHANNEL_ID")
    deadline_channel_id: str | None = Field(None, alias="DEADLINE_CHANNEL_ID")
    deadline_mention: str | None = Field(None, alias="DEADLINE_MENTION")

    admin_user_ids: List[str] = Field([], alias="ADMIN_USER_IDS")
    districts_file: str | None = Field(None, alias="DISTRICTS_FILE")

    service_name: str = Field("land-workflow-bot", alias="SERVICE_NAME")
    traces_sample_rate: float = Field(1.0, alias="TRACES_SAMPLE_RATE")
    trace_console_export: bool = Field(False, alias="TRACE_CONSOLE_EXPORT")

    @field_validator("admin_user_ids", "trello_board_ids", mode="before")
    @classmethod
    def _split_ids(cls, value: str | list[str] | None) -> list[str]:
        return _split_csv(value)

    @field_validator("traces_sample_rate")
    @classmethod
    def _ensure_rate(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("TRACES_SAMPLE_RATE must be between 0 and 1")
        return value

    @field_validator("trello_timeout_seconds")
    @classmethod
    def _ensure_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("TRELLO_TIMEOUT_SECONDS must be greater than zero")
        return value


def _format_missing(fields: Iterable[str]) -> str:
    """Return a comma-separated list of missing env vars without repeats."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


def load_settings(environ: dict[str, str] | None = None) -> AppSettings:
    """Validate settings from *environ* (defaults to the process environment)."""

    source = dict(os.environ if environ is None else environ)
    try:
        return AppSettings.model_validate(source)
    except ValidationError as exc:
        missing = [str(error["loc"][0]) for error in exc.errors() if error["type"] == "missing"]
        if not missing:
            raise RuntimeError(f"Invalid configuration: {exc}") from exc
        raise RuntimeError(
            "Missing required environment variables: " f"{_format_missing(missing)}"
        ) from exc


@lru_cache()
def get_settings() -> AppSettings:
    """Fetch and cache settings from environment variables."""

    return load_settings()
