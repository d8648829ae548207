"""Inbound Slack events normalised for the workflows and the envelope."""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping
from uuid import uuid4

from land_workflow_bot.errors import ResponseAlreadySent

Responder = Callable[[str], Any]

COMMAND = "command"
BUTTON = "button"
MODAL_SUBMIT = "modal_submit"


class InboundEvent:
    """One inbound Slack interaction and its single terminal response channel."""

    def __init__(
        self,
        *,
        kind: str,
        event_id: str,
        user_id: str,
        user_name: str = "",
        channel_id: str | None = None,
        custom_id: str | None = None,
        command_name: str | None = None,
        trigger_id: str | None = None,
        message: Mapping[str, Any] | None = None,
        responder: Responder | None = None,
    ) -> None:
        self.kind = kind
        self.event_id = event_id
        self.user_id = user_id
        self.user_name = user_name
        self.channel_id = channel_id
        self.custom_id = custom_id
        self.command_name = command_name
        self.trigger_id = trigger_id
        self.message = dict(message) if message else {}
        self._responder = responder
        self._responded = False

    @property
    def can_reply(self) -> bool:
        return self._responder is not None

    @property
    def responded(self) -> bool:
        return self._responded

    def reply(self, text: str) -> None:
        """Send the one terminal response for this event."""

        if self._responder is None:
            raise ResponseAlreadySent(f"Event {self.event_id} does not accept replies")
        if self._responded:
            raise ResponseAlreadySent(f"Event {self.event_id} already sent its response")
        self._responder(text)
        self._responded = True

    def attributes(self) -> Dict[str, str]:
        data = {
            "interaction.id": self.event_id,
            "interaction.type": self.kind,
            "user.id": self.user_id,
            "user.name": self.user_name or "unknown",
            "channel.id": self.channel_id or "DM",
        }
        if self.custom_id:
            data["interaction.customId"] = self.custom_id
        if self.command_name:
            data["interaction.commandName"] = self.command_name
        return data

    @classmethod
    def from_command(cls, command: Mapping[str, Any], responder: Responder | None = None) -> "InboundEvent":
        return cls(
            kind=COMMAND,
            event_id=command.get("trigger_id") or str(uuid4()),
            user_id=command.get("user_id", ""),
            user_name=command.get("user_name", ""),
            channel_id=command.get("channel_id"),
            command_name=command.get("command"),
            trigger_id=command.get("trigger_id"),
            responder=responder,
        )

    @classmethod
    def from_action(cls, body: Mapping[str, Any], responder: Responder | None = None) -> "InboundEvent":
        actions = body.get("actions") or [{}]
        user = body.get("user") or {}
        return cls(
            kind=BUTTON,
            event_id=body.get("trigger_id") or str(uuid4()),
            user_id=user.get("id", ""),
            user_name=user.get("username") or user.get("name", ""),
            channel_id=(body.get("channel") or {}).get("id"),
            custom_id=actions[0].get("action_id"),
            trigger_id=body.get("trigger_id"),
            message=body.get("message"),
            responder=responder,
        )

    @classmethod
    def from_view_submission(cls, body: Mapping[str, Any], responder: Responder | None = None) -> "InboundEvent":
        view = body.get("view") or {}
        user = body.get("user") or {}
        return cls(
            kind=MODAL_SUBMIT,
            event_id=view.get("id") or str(uuid4()),
            user_id=user.get("id", ""),
            user_name=user.get("username") or user.get("name", ""),
            custom_id=view.get("callback_id"),
            trigger_id=body.get("trigger_id"),
            responder=responder,
        )
