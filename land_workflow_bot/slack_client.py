"""Thin wrapper around the Slack WebClient used by the workflows."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import structlog
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from land_workflow_bot.errors import NotificationFailed


def _error_code(exc: SlackApiError) -> str:
    response = getattr(exc, "response", None)
    if response is None:
        return str(exc)
    try:
        return response.get("error") or str(exc)
    except AttributeError:
        return str(exc)


class SlackClient:
    """Encapsulate Slack WebClient interactions; Slack errors become NotificationFailed."""

    def __init__(self, *, token: str | None = None, client: WebClient | None = None) -> None:
        if client is None and token is None:
            raise ValueError("Either an instantiated client or a bot token must be provided.")

        self._client = client or WebClient(token=token)
        self._log = structlog.get_logger(__name__)

    @property
    def client(self) -> WebClient:
        return self._client

    def post_message(
        self,
        *,
        channel: str,
        text: str,
        blocks: Sequence[Mapping[str, Any]] | None = None,
        attachments: Sequence[Mapping[str, Any]] | None = None,
    ) -> Mapping[str, Any]:
        kwargs: dict[str, Any] = {"channel": channel, "text": text}
        if blocks is not None:
            kwargs["blocks"] = list(blocks)
        if attachments is not None:
            kwargs["attachments"] = list(attachments)
        return self._call("chat_postMessage", **kwargs)

    def update_message(
        self,
        *,
        channel: str,
        ts: str,
        text: str,
        blocks: Sequence[Mapping[str, Any]],
        attachments: Sequence[Mapping[str, Any]] | None = None,
    ) -> Mapping[str, Any]:
        kwargs: dict[str, Any] = {"channel": channel, "ts": ts, "text": text, "blocks": list(blocks)}
        if attachments is not None:
            kwargs["attachments"] = list(attachments)
        return self._call("chat_update", **kwargs)

    def fetch_message(self, *, channel: str, ts: str) -> Mapping[str, Any] | None:
        """Return the message posted at *ts* in *channel*, or None if it is gone."""

        try:
            response = self._client.conversations_history(
                channel=channel, latest=ts, oldest=ts, inclusive=True, limit=1
            )
        except SlackApiError as exc:
            if _error_code(exc) in {"channel_not_found", "message_not_found"}:
                return None
            self._log.error("slack_call_failed", operation="conversations_history", error=_error_code(exc))
            raise NotificationFailed("conversations_history", _error_code(exc)) from exc

        for message in response.get("messages") or []:
            if message.get("ts") == ts:
                return message
        return None

    def open_dm(self, user_id: str) -> str | None:
        """Open (or reuse) the DM channel with *user_id* and return its id."""

        response = self._call("conversations_open", users=user_id)
        channel = response.get("channel") or {}
        return channel.get("id")

    def open_view(self, *, trigger_id: str, view: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._call("views_open", trigger_id=trigger_id, view=dict(view))

    def _call(self, operation: str, **kwargs: Any) -> Mapping[str, Any]:
        try:
            return getattr(self._client, operation)(**kwargs)
        except SlackApiError as exc:
            self._log.error("slack_call_failed", operation=operation, error=_error_code(exc))
            raise NotificationFailed(operation, _error_code(exc)) from exc
