"""Parsers for the text of the roster and deadline slash commands."""

from __future__ import annotations

from dataclasses import dataclass

from land_workflow_bot.actions import parse_submitter_mention
from land_workflow_bot.errors import CorrelationParseError

NEW_MANAGER_USAGE = "Usage: /new-manager @user <district> <trello member id>"
REMOVE_MANAGER_USAGE = "Usage: /remove-manager @user <district>"
DEADLINE_USAGE = "Usage: /land-deadline <deadline date>"


@dataclass(frozen=True)
class ManagerCommand:
    user_id: str
    district: str
    trello_member_id: str | None = None


def parse_manager_command(text: str, *, with_trello_id: bool) -> ManagerCommand:
    """Parse ``<@user> <district> [trello id]``.

    District names may contain spaces, so the district is everything between
    the mention and the optional trailing Trello member id.
    """

    tokens = (text or "").split()
    if not tokens:
        raise ValueError("A user mention is required.")

    try:
        user_id = parse_submitter_mention(tokens[0])
    except CorrelationParseError as exc:
        raise ValueError("The first argument must mention a user.") from exc

    rest = tokens[1:]
    trello_member_id = None
    if with_trello_id:
        if len(rest) < 2:
            raise ValueError("A district and a Trello member id are required.")
        trello_member_id = rest[-1]
        rest = rest[:-1]

    district = " ".join(rest)
    if not district:
        raise ValueError("A district is required.")
    return ManagerCommand(user_id=user_id, district=district, trello_member_id=trello_member_id)


def parse_deadline(text: str) -> str:
    deadline = (text or "").strip()
    if not deadline:
        raise ValueError("A deadline is required.")
    return deadline
