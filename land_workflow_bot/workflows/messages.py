"""Slack message payloads and Trello card texts for the land workflows."""

from __future__ import annotations

import time
from datetime import datetime
from email.utils import format_datetime
from typing import Any, Dict, List, Sequence

from land_workflow_bot.actions import APPROVE_REQUEST_BUTTON, DECLINE_REQUEST_BUTTON

DECISION_BLOCK_ID = "property_request_decision"
ACTIVITY_BUTTON_ACTION_ID = "activity-button"
APPROVED_FOOTER_PREFIX = "Approved by"
DECLINED_FOOTER_PREFIX = "Declined by"
FOOTER_TEXT = "Bureau of Land Management"

EMBED_COLORS = {
    "activity": "#3498DB",
    "mgmt": "#5865F2",
    "success": "#2ECC71",
    "error": "#E74C3C",
}

_MISSING_VALUE = "N/A"


def utc_string(moment: datetime) -> str:
    """Render *moment* like ``Mon, 19 Oct 2026 19:20:00 GMT``."""

    return format_datetime(moment, usegmt=True)


def splice_username(display_name: str) -> str:
    """Return the last word of a display name ("Officer Jane Doe" -> "Doe")."""

    parts = (display_name or "").split(" ")
    return parts[-1] if parts else ""


def mention(user_id: str) -> str:
    return f"<@{user_id}>"


def mention_all(user_ids: Sequence[str]) -> str:
    return " ".join(mention(user_id) for user_id in user_ids)


def _field(title: str, value: str | None, *, short: bool = False) -> Dict[str, Any]:
    return {"title": title, "value": value or _MISSING_VALUE, "short": short}


def _summary_attachment(title: str, fields: List[Dict[str, Any]], *, color: str, author: str | None = None) -> Dict[str, Any]:
    attachment: Dict[str, Any] = {
        "color": EMBED_COLORS[color],
        "title": title,
        "fields": fields,
        "footer": FOOTER_TEXT,
        "ts": int(time.time()),
    }
    if author:
        attachment["author_name"] = author
    return attachment


def _link_button(label: str, url: str) -> Dict[str, Any]:
    return {
        "type": "actions",
        "elements": [
            {
                "type": "button",
                "text": {"type": "plain_text", "text": label, "emoji": True},
                "url": url,
                "action_id": "open_trello_card",
            }
        ],
    }


def _section(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def land_request_card_description(
    *,
    submitted_at: datetime,
    submitter: str,
    district: str,
    properties_before: str,
    business_permit: str,
    business_group: str,
    requested_land: str,
    property_use: str,
) -> str:
    return (
        "#Land Request\n\n"
        "---\n\n"
        f"**Submitted at**: {utc_string(submitted_at)}\n"
        f"**Submitter**: {submitter}\n"
        f"**Property District**: {district}\n"
        f"**Property Number**: {properties_before}\n\n"
        "---\n\n"
        f"**Business Permit**: {business_permit}\n"
        f"**Business Group**: {business_group}\n"
        f"**Requested Property**: {requested_land}\n\n"
        "---\n\n"
        f"**Property Use**: {property_use}"
    )


def activity_comment(
    *,
    submitted_at: datetime,
    submitter: str,
    district: str,
    activity: str,
    additional_information: str,
) -> str:
    return (
        "##Land Activity\n\n"
        f"**Submitted at**: {utc_string(submitted_at)}\n"
        f"**Submitter**: {submitter}\n\n"
        f"**Property District**: {district}\n"
        f"**Property Activity**: {activity}\n\n"
        f"**Additional Information**: {additional_information or _MISSING_VALUE}"
    )


def build_land_request_announcement(
    *,
    manager_ids: Sequence[str],
    author: str,
    submitter: str,
    district: str,
    requested_land: str,
    card_url: str,
) -> Dict[str, Any]:
    mentions = mention_all(manager_ids)
    return {
        "text": mentions,
        "blocks": [_section(mentions), _link_button("Request", card_url)],
        "attachments": [
            _summary_attachment(
                "New Property Request Submission",
                [
                    _field("Roblox Name", submitter),
                    _field("Property District", district),
                    _field("Requested Land", requested_land),
                    _field("Trello Link", card_url),
                ],
                color="activity",
                author=author,
            )
        ],
    }


def build_activity_announcement(
    *,
    manager_ids: Sequence[str],
    author: str,
    business_name: str,
    submitter: str,
    district: str,
    card_url: str,
) -> Dict[str, Any]:
    mentions = mention_all(manager_ids)
    return {
        "text": mentions,
        "blocks": [_section(mentions), _link_button("Property Card", card_url)],
        "attachments": [
            _summary_attachment(
                "New Property Activity Submission",
                [
                    _field("Business", business_name, short=True),
                    _field("Roblox Name", submitter, short=True),
                    _field("District", district, short=True),
                    _field("Trello Card", f"<{card_url}|Link>"),
                ],
                color="activity",
                author=author,
            )
        ],
    }


def _decision_buttons() -> Dict[str, Any]:
    return {
        "type": "actions",
        "block_id": DECISION_BLOCK_ID,
        "elements": [
            {
                "type": "button",
                "text": {"type": "plain_text", "text": "Approve", "emoji": True},
                "style": "primary",
                "action_id": APPROVE_REQUEST_BUTTON,
            },
            {
                "type": "button",
                "text": {"type": "plain_text", "text": "Decline", "emoji": True},
                "style": "danger",
                "action_id": DECLINE_REQUEST_BUTTON,
            },
        ],
    }


def build_property_request_announcement(
    *,
    submitter_id: str,
    submitter: str,
    land_permit: str,
    property_intentions: str,
    further_information: str,
) -> Dict[str, Any]:
    text = f"New property request by: {mention(submitter_id)}"
    return {
        "text": text,
        "blocks": [_section(text), _decision_buttons()],
        "attachments": [
            _summary_attachment(
                "New Property Request",
                [
                    _field("Submitted By", submitter),
                    _field("Land Permit", land_permit),
                    _field("Property Intentions", property_intentions),
                    _field("Further Information", further_information),
                ],
                color="mgmt",
            )
        ],
    }


def attachment_field(message: Dict[str, Any], title: str) -> str | None:
    for attachment in message.get("attachments") or []:
        for field in attachment.get("fields") or []:
            if field.get("title") == title:
                return field.get("value")
    return None


def build_decision_update(
    message: Dict[str, Any],
    *,
    approved: bool,
    moderator_id: str,
    moderator_name: str,
    reason: str | None = None,
) -> Dict[str, Any]:
    """Resolved copy of a property request announcement: no controls, recoloured, footer."""

    verb = "approved" if approved else "declined"
    text = f"This property request has been {verb} by {mention(moderator_id)}."
    footer_prefix = APPROVED_FOOTER_PREFIX if approved else DECLINED_FOOTER_PREFIX

    attachments: List[Dict[str, Any]] = []
    for original in message.get("attachments") or []:
        attachment = {key: value for key, value in original.items() if key not in {"id", "fallback"}}
        attachment["fields"] = list(original.get("fields") or [])
        if reason is not None:
            attachment["fields"].append(_field("Decline Reason", reason))
        attachment["color"] = EMBED_COLORS["success" if approved else "error"]
        attachment["footer"] = f"{footer_prefix} {moderator_name}"
        attachment["ts"] = int(time.time())
        attachments.append(attachment)

    return {"text": text, "blocks": [_section(text)], "attachments": attachments}


def build_deadline_announcement(*, deadline: str, author: str, mention_text: str | None) -> Dict[str, Any]:
    body = (
        "Attention Land Owners,"
        "\n\nWe want to inform you that the deadline for submitting your activity reports is quickly approaching. "
        f"To ensure compliance, we kindly request all landowners to submit their activity reports by *{deadline}*. "
        "Your prompt cooperation will greatly assist us in maintaining accurate records and making informed decisions."
        "\n\nPlease click the green button or use the /new-activity command to submit notice of activity."
        "\n\nThank you for your attention to this matter."
        "\n\nSincerely,\n\nBureau of Land Management"
    )
    text = mention_text or "Notice of Deadline for Activity Reports"
    return {
        "text": text,
        "blocks": [
            _section(text),
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "Submit Activity", "emoji": True},
                        "style": "primary",
                        "action_id": ACTIVITY_BUTTON_ACTION_ID,
                    }
                ],
            },
        ],
        "attachments": [
            {
                "color": EMBED_COLORS["mgmt"],
                "title": "Notice of Deadline for Activity Reports",
                "text": body,
                "author_name": author,
                "footer": FOOTER_TEXT,
                "ts": int(time.time()),
            }
        ],
    }
