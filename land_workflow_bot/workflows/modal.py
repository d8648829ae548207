"""Slack modal payloads for the land workflows."""

from __future__ import annotations

from typing import Dict, List, Sequence

from land_workflow_bot.actions import (
    APPROVE_REQUEST_MODAL,
    DECLINE_REQUEST_MODAL,
    build_correlation_id,
)

LAND_REQUEST_MODAL = "request-modal"
ACTIVITY_MODAL = "activity-modal"
PROPERTY_REQUEST_MODAL = "property-request-modal"

MAX_TITLE_LENGTH = 24
MAX_LABEL_LENGTH = 75


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "..."


def _text_input(
    name: str,
    label: str,
    *,
    placeholder: str | None = None,
    multiline: bool = False,
    optional: bool = False,
    max_length: int | None = None,
) -> Dict:
    element: Dict[str, object] = {"type": "plain_text_input", "action_id": name}
    if placeholder:
        element["placeholder"] = {"type": "plain_text", "text": placeholder}
    if multiline:
        element["multiline"] = True
    if max_length:
        element["max_length"] = max_length
    return {
        "type": "input",
        "block_id": name,
        "label": {"type": "plain_text", "text": _truncate(label, MAX_LABEL_LENGTH), "emoji": True},
        "element": element,
        "optional": optional,
    }


def _static_select(name: str, label: str, options: Sequence[str]) -> Dict:
    return {
        "type": "input",
        "block_id": name,
        "label": {"type": "plain_text", "text": _truncate(label, MAX_LABEL_LENGTH), "emoji": True},
        "element": {
            "type": "static_select",
            "action_id": name,
            "placeholder": {"type": "plain_text", "text": "Select a district"},
            "options": [
                {"text": {"type": "plain_text", "text": option}, "value": option} for option in options
            ],
        },
        "optional": False,
    }


def _modal(callback_id: str, title: str, blocks: List[Dict]) -> Dict:
    return {
        "type": "modal",
        "callback_id": callback_id,
        "title": {"type": "plain_text", "text": _truncate(title, MAX_TITLE_LENGTH), "emoji": True},
        "submit": {"type": "plain_text", "text": "Submit", "emoji": True},
        "close": {"type": "plain_text", "text": "Cancel", "emoji": True},
        "blocks": blocks,
    }


def build_land_request_modal() -> Dict:
    return _modal(
        LAND_REQUEST_MODAL,
        "Land Request",
        [
            _text_input("business_permit", "Business Permit", placeholder="Link to your business permit"),
            _text_input("business_group", "Business Group", placeholder="Link to your business group"),
            _text_input(
                "properties_before",
                "How many properties do you already own?",
                placeholder="0",
                max_length=3,
            ),
            _text_input("requested_land", "Requested Land", placeholder="Trello card link of the property"),
            _text_input(
                "property_use",
                "What will the property be used for?",
                multiline=True,
            ),
        ],
    )


def build_activity_modal(districts: Sequence[str]) -> Dict:
    return _modal(
        ACTIVITY_MODAL,
        "Land Activity",
        [
            _text_input("business_name", "Business Name", placeholder="Name on the property card"),
            _static_select("property_district", "Property District", districts),
            _text_input("property_activity", "Property Activity", multiline=True),
            _text_input(
                "additional_information",
                "Additional Information",
                multiline=True,
                optional=True,
            ),
        ],
    )


def build_property_request_modal() -> Dict:
    return _modal(
        PROPERTY_REQUEST_MODAL,
        "Property Request",
        [
            _text_input("land_permit", "Land Permit", placeholder="Link to your land permit"),
            _text_input("property_intentions", "Property Intentions", multiline=True),
            _text_input("further_information", "Further Information", multiline=True, optional=True),
        ],
    )


def build_decision_modal(*, approve: bool, record_id: str) -> Dict:
    """Modal opened by the Approve/Decline buttons; the callback id carries the record id."""

    if approve:
        return _modal(
            build_correlation_id(APPROVE_REQUEST_MODAL, record_id),
            "Approve Request",
            [_text_input("property_file_url", "Property File", placeholder="https://")],
        )
    return _modal(
        build_correlation_id(DECLINE_REQUEST_MODAL, record_id),
        "Decline Request",
        [_text_input("decline_reason", "Reason for declining", multiline=True)],
    )
