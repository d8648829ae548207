"""Recover workflow state from rendered Slack artifacts.

There is no separate store for property requests: the record id travels in
interactive control ids (``<action>-<record id>``) and the submitter is the
user mentioned in the announcement text.
"""

from __future__ import annotations

import re
from typing import Iterable

from land_workflow_bot.errors import CorrelationParseError

APPROVE_REQUEST_BUTTON = "approve-property-request"
DECLINE_REQUEST_BUTTON = "decline-property-request"
APPROVE_REQUEST_MODAL = "approve-request-modal"
DECLINE_REQUEST_MODAL = "decline-request-modal"

_MENTION_PATTERN = re.compile(r"<@([UW][A-Z0-9]+)(?:\|[^>]*)?>")


def build_correlation_id(action: str, record_id: str) -> str:
    if not record_id:
        raise CorrelationParseError("Record id must not be empty.")
    return f"{action}-{record_id}"


def parse_correlation_id(custom_id: str | None, action: str) -> str:
    """Return the record id embedded in ``<action>-<record id>``."""

    prefix = f"{action}-"
    if not custom_id or not custom_id.startswith(prefix):
        raise CorrelationParseError(f"Control id {custom_id!r} does not belong to {action}.")
    record_id = custom_id[len(prefix):]
    if not record_id or record_id.strip() != record_id:
        raise CorrelationParseError(f"Control id {custom_id!r} carries no record id.")
    return record_id


def parse_submitter_mention(text: str | None) -> str:
    """Return the first Slack user mentioned in *text*."""

    match = _MENTION_PATTERN.search(text or "")
    if match is None:
        raise CorrelationParseError("No user mention found in message text.")
    return match.group(1)


def is_user_authorized(user_id: str, allowed_ids: Iterable[str]) -> bool:
    """Return True when the user is in the configured allow list."""

    normalized = {item.strip() for item in allowed_ids if item}
    return user_id in normalized
