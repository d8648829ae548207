"""Utilities for publishing land workflow messages to Slack channels."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import structlog

from land_workflow_bot.errors import NotificationFailed
from land_workflow_bot.slack_client import SlackClient


def publish_announcement(
    slack_client: SlackClient,
    *,
    channel: str,
    payload: Mapping[str, Any],
) -> str | None:
    """Post an announcement payload and return the ts Slack assigned to it."""

    log = structlog.get_logger(__name__).bind(channel=channel)
    response = slack_client.post_message(
        channel=channel,
        text=payload["text"],
        blocks=payload.get("blocks"),
        attachments=payload.get("attachments"),
    )
    ts = response.get("ts")
    if not ts:
        log.warning("announcement_missing_ts", response_keys=list(response.keys()))
        return None
    log.info("announcement_posted", ts=ts)
    return ts


def update_announcement(
    slack_client: SlackClient,
    *,
    channel: str,
    ts: str,
    payload: Mapping[str, Any],
) -> None:
    """Rewrite an existing announcement in place."""

    slack_client.update_message(
        channel=channel,
        ts=ts,
        text=payload["text"],
        blocks=payload["blocks"],
        attachments=payload.get("attachments"),
    )
    structlog.get_logger(__name__).info("announcement_updated", channel=channel, ts=ts)


def open_direct_channel(slack_client: SlackClient, user_id: str) -> str | None:
    """Return the DM channel with *user_id*, or None when Slack refuses to open one."""

    try:
        return slack_client.open_dm(user_id)
    except NotificationFailed as exc:
        structlog.get_logger(__name__).info("direct_channel_unavailable", user_id=user_id, error=exc.error)
        return None


def send_direct_message(
    slack_client: SlackClient,
    *,
    channel: str,
    text: str,
    attachments: Sequence[Mapping[str, Any]] | None = None,
) -> None:
    slack_client.post_message(channel=channel, text=text, attachments=attachments)
