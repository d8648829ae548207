"""Submission lifecycle: INTAKE -> PENDING -> APPROVED | DECLINED."""

from __future__ import annotations

import enum
from typing import Any, Mapping

from land_workflow_bot.errors import AlreadyResolved, StatusTransitionError

from .messages import DECISION_BLOCK_ID, APPROVED_FOOTER_PREFIX, DECLINED_FOOTER_PREFIX


class SubmissionState(str, enum.Enum):
    INTAKE = "INTAKE"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"


TERMINAL_STATES = frozenset({SubmissionState.APPROVED, SubmissionState.DECLINED})

_ALLOWED_TRANSITIONS = {
    SubmissionState.INTAKE: {SubmissionState.PENDING},
    SubmissionState.PENDING: {SubmissionState.APPROVED, SubmissionState.DECLINED},
    SubmissionState.APPROVED: set(),
    SubmissionState.DECLINED: set(),
}


def ensure_transition(current: SubmissionState, target: SubmissionState) -> None:
    """Raise unless *current* may move to *target*."""

    if target in _ALLOWED_TRANSITIONS.get(current, set()):
        return
    if current in TERMINAL_STATES:
        raise AlreadyResolved(f"Submission is already {current.value.lower()}")
    raise StatusTransitionError(f"Cannot transition from {current.value} to {target.value}")


def announcement_state(message: Mapping[str, Any]) -> SubmissionState:
    """Derive a property request's state from its rendered announcement.

    The announcement is PENDING while its decision controls are present;
    once resolved the controls are gone and the footer names the outcome.
    """

    for block in message.get("blocks") or []:
        if block.get("type") == "actions" and block.get("block_id") == DECISION_BLOCK_ID:
            return SubmissionState.PENDING

    for attachment in message.get("attachments") or []:
        footer = attachment.get("footer") or ""
        if footer.startswith(APPROVED_FOOTER_PREFIX):
            return SubmissionState.APPROVED
        if footer.startswith(DECLINED_FOOTER_PREFIX):
            return SubmissionState.DECLINED

    return SubmissionState.INTAKE
