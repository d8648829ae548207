"""Tests for the land request and activity report workflows."""

import pytest
from opentelemetry.trace import StatusCode

from conftest import ACTIVE_LIST_ID, REDWOOD_LIST_ID, make_event
from land_workflow_bot.errors import StoreUnavailable, TicketCreateFailed
from land_workflow_bot.models import ManagerAssignment
from land_workflow_bot.tracing import GENERIC_FAILURE_MESSAGE
from land_workflow_bot.trello import ExternalTicket
from land_workflow_bot.workflows.models import ActivityReportForm, LandRequestForm
from land_workflow_bot.workflows.orchestrator import (
    CARD_FETCH_FAILED_MESSAGE,
    DISTRICT_NOT_FOUND_MESSAGE,
    FIELD_MISSING_MESSAGE,
    INVALID_LINK_MESSAGE,
)

TRIUMPH_STADIUM_LIST_ID = "641e16219cd033f2188ff043"
ARBORFIELD_LIST_ID = "641e108a923770039e58f70b"


def _land_form(**overrides):
    values = {
        "business_permit": "https://permits.example/123",
        "business_group": "https://groups.example/bakers",
        "properties_before": "1",
        "requested_land": "https://trello.com/c/abc123/12-redwood-lot",
        "property_use": "A bakery with outdoor seating",
    }
    values.update(overrides)
    return LandRequestForm(**values)


def _source_card(list_id, card_id="abc123"):
    return ExternalTicket(id=card_id, url=f"https://trello.com/c/{card_id}", list_id=list_id)


def _submit_land(envelope, orchestrator, form, replies):
    event = make_event(replies=replies, custom_id="request-modal")
    return envelope.run(
        event,
        "Land Request Modal",
        "ui.modal.submit",
        lambda trace: orchestrator.submit_land_request(event, trace, form),
    )


def test_land_request_creates_card_and_notifies_managers(envelope, orchestrator, trello, slack_web, tracing):
    trello.cards["abc123"] = _source_card(REDWOOD_LIST_ID)
    replies = []

    _submit_land(envelope, orchestrator, _land_form(), replies)

    assert replies == ["Your submission was received successfully! <https://trello.com/c/new1|Trello Card>"]
    assert len(trello.created) == 1
    created = trello.created[0]
    assert created["title"] == "Doe"
    assert created["labels"] == ["641e0d6a7c2b18c899627dcf"]
    assert created["member_ids"] == ["tm-1", "tm-2"]
    assert created["description"].startswith("#Land Request")
    assert "**Property District**: Redwood" in created["description"]
    assert "**Property Use**: A bakery with outdoor seating" in created["description"]

    assert len(slack_web.posted) == 1
    announcement = slack_web.posted[0]
    assert announcement["channel"] == "CLAND"
    assert announcement["text"] == "<@UMGR1> <@UMGR2>"

    root = [span for span in tracing.exporter.get_finished_spans() if span.name == "Land Request Modal"][0]
    assert root.status.status_code is StatusCode.OK
    assert root.attributes["command.status"] == "success"
    assert root.attributes["district"] == "Redwood"


def test_land_request_resolves_child_area_to_parent_district(envelope, orchestrator, trello, roster):
    roster.assignments.append(
        ManagerAssignment(slack_user_id="UPROM", district="Prominence", trello_member_id="tm-p")
    )
    trello.cards["abc123"] = _source_card(TRIUMPH_STADIUM_LIST_ID)
    replies = []

    _submit_land(envelope, orchestrator, _land_form(), replies)

    assert ("managers_for", "Prominence") in roster.calls
    assert trello.created[0]["labels"] == ["641e0d512e15ff6a3be2b6ba"]
    assert trello.created[0]["member_ids"] == ["tm-p"]


def test_land_request_missing_field_replies_once_without_calls(envelope, orchestrator, trello, roster, tracing):
    replies = []

    _submit_land(envelope, orchestrator, _land_form(property_use="   "), replies)

    assert replies == [FIELD_MISSING_MESSAGE]
    assert trello.calls == []
    assert roster.calls == []
    root = tracing.exporter.get_finished_spans()[-1]
    assert root.attributes["command.status"] == "failed"
    assert root.attributes["command.status_reason"] == "missing_fields"


def test_land_request_rejects_non_trello_link(envelope, orchestrator, trello):
    replies = []

    _submit_land(envelope, orchestrator, _land_form(requested_land="https://example.com/lot"), replies)

    assert replies == [INVALID_LINK_MESSAGE]
    assert trello.calls == []


def test_land_request_unknown_card(envelope, orchestrator, trello):
    replies = []

    _submit_land(envelope, orchestrator, _land_form(), replies)

    assert replies == [CARD_FETCH_FAILED_MESSAGE]
    assert trello.created == []


def test_land_request_card_outside_known_lists(envelope, orchestrator, trello, roster):
    trello.cards["abc123"] = _source_card("unknown-list")
    replies = []

    _submit_land(envelope, orchestrator, _land_form(), replies)

    assert replies == [DISTRICT_NOT_FOUND_MESSAGE]
    assert roster.calls == []


def test_land_request_without_managers(envelope, orchestrator, trello, slack_web):
    trello.cards["abc123"] = _source_card(ARBORFIELD_LIST_ID)
    replies = []

    _submit_land(envelope, orchestrator, _land_form(), replies)

    assert len(replies) == 1
    assert replies[0].startswith("Unable to find district manager for Arborfield")
    assert trello.created == []
    assert slack_web.posted == []


def test_roster_outage_yields_one_generic_reply_and_one_report(envelope, orchestrator, trello, roster, reporter, tracing):
    trello.cards["abc123"] = _source_card(REDWOOD_LIST_ID)
    roster.fail = True
    replies = []

    with pytest.raises(StoreUnavailable):
        _submit_land(envelope, orchestrator, _land_form(), replies)

    assert replies == [GENERIC_FAILURE_MESSAGE]
    assert len(reporter.captured) == 1
    assert isinstance(reporter.captured[0][0], StoreUnavailable)
    assert trello.created == []

    spans = {span.name: span for span in tracing.exporter.get_finished_spans()}
    assert spans["Land Request Modal"].status.status_code is StatusCode.ERROR
    assert spans["roster.managers_for"].status.status_code is StatusCode.ERROR


def test_card_creation_failure_propagates(envelope, orchestrator, trello, reporter):
    trello.cards["abc123"] = _source_card(REDWOOD_LIST_ID)

    def failing_create(*args, **kwargs):
        raise TicketCreateFailed("boom", status_code=500)

    trello.create = failing_create
    replies = []

    with pytest.raises(TicketCreateFailed):
        _submit_land(envelope, orchestrator, _land_form(), replies)

    assert replies == [GENERIC_FAILURE_MESSAGE]
    assert len(reporter.captured) == 1


def _activity_form(**overrides):
    values = {
        "business_name": "Bakery",
        "property_district": "Redwood",
        "property_activity": "Hosted a grand opening",
        "additional_information": "",
    }
    values.update(overrides)
    return ActivityReportForm(**values)


def _submit_activity(envelope, orchestrator, form, replies):
    event = make_event(replies=replies, custom_id="activity-modal")
    return envelope.run(
        event,
        "Land Activity Modal",
        "ui.modal.submit",
        lambda trace: orchestrator.submit_activity_report(event, trace, form),
    )


def test_activity_report_comments_on_matching_card(envelope, orchestrator, trello, slack_web):
    trello.search_result = ExternalTicket(id="c9", url="https://trello.com/c/c9", list_id=ACTIVE_LIST_ID)
    replies = []

    _submit_activity(envelope, orchestrator, _activity_form(), replies)

    assert replies == ["Success! Activity added to <https://trello.com/c/c9|Trello Card>."]
    assert ("search", "Redwood Bakery") in trello.calls
    assert len(trello.comments) == 1
    card_id, text = trello.comments[0]
    assert card_id == "c9"
    assert text.startswith("##Land Activity")
    assert "**Property Activity**: Hosted a grand opening" in text
    assert "**Additional Information**: N/A" in text
    assert slack_web.posted[0]["channel"] == "CLAND"
    assert slack_web.posted[0]["text"] == "<@UMGR1> <@UMGR2>"


def test_activity_report_rejects_unknown_district(envelope, orchestrator, roster, trello):
    replies = []

    _submit_activity(envelope, orchestrator, _activity_form(property_district="Atlantis"), replies)

    assert len(replies) == 1
    assert replies[0].startswith("Invalid district")
    assert "Redwood, Arborfield, Prominence, Unincorporated" in replies[0]
    assert roster.calls == []
    assert trello.calls == []


def test_activity_report_without_matching_card(envelope, orchestrator, trello, slack_web):
    replies = []

    _submit_activity(envelope, orchestrator, _activity_form(), replies)

    assert replies == [
        "Unable to find a Trello card with the query `Redwood Bakery`. "
        "Please ensure the business name is correct."
    ]
    assert trello.comments == []
    assert slack_web.posted == []


def test_activity_report_card_removed_before_comment(envelope, orchestrator, trello, slack_web):
    trello.search_result = ExternalTicket(id="c9", url="https://trello.com/c/c9", list_id=ACTIVE_LIST_ID)
    trello.comment_missing = True
    replies = []

    _submit_activity(envelope, orchestrator, _activity_form(), replies)

    assert len(replies) == 1
    assert replies[0].startswith("Unable to find a Trello card")
    assert slack_web.posted == []


def test_activity_report_missing_fields(envelope, orchestrator, roster, trello):
    replies = []

    _submit_activity(envelope, orchestrator, _activity_form(business_name=""), replies)

    assert replies == [FIELD_MISSING_MESSAGE]
    assert roster.calls == []
    assert trello.calls == []


def test_activity_report_roster_outage_yields_one_generic_reply(envelope, orchestrator, trello, roster, reporter):
    roster.fail = True
    replies = []

    with pytest.raises(StoreUnavailable):
        _submit_activity(envelope, orchestrator, _activity_form(), replies)

    assert replies == [GENERIC_FAILURE_MESSAGE]
    assert len(reporter.captured) == 1
    assert isinstance(reporter.captured[0][0], StoreUnavailable)
    assert trello.calls == []
