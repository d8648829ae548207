"""Tests for reading modal state into form models."""

from land_workflow_bot.workflows.models import ActivityReportForm, LandRequestForm
from land_workflow_bot.workflows.modal import build_activity_modal, build_decision_modal, build_land_request_modal
from land_workflow_bot.workflows.requests import extract_view_values, is_valid_http_url, parse_form


def _view(values):
    return {"state": {"values": values}}


def test_extract_view_values_reads_text_and_select_inputs():
    view = _view(
        {
            "business_name": {"business_name": {"type": "plain_text_input", "value": "Bakery"}},
            "property_district": {
                "property_district": {"type": "static_select", "selected_option": {"value": "Redwood"}}
            },
            "additional_information": {"additional_information": {"type": "plain_text_input", "value": None}},
        }
    )

    assert extract_view_values(view) == {
        "business_name": "Bakery",
        "property_district": "Redwood",
        "additional_information": None,
    }


def test_parse_form_strips_and_defaults():
    view = _view(
        {
            "business_name": {"business_name": {"value": "  Bakery  "}},
            "property_district": {"property_district": {"selected_option": None}},
            "property_activity": {"property_activity": {"value": "Opened"}},
        }
    )

    form = parse_form(view, ActivityReportForm)

    assert form.business_name == "Bakery"
    assert form.property_district == ""
    assert form.additional_information == ""
    assert form.missing_fields() == ["property_district"]


def test_land_request_form_reports_all_missing_fields():
    form = parse_form(_view({}), LandRequestForm)

    assert form.missing_fields() == [
        "business_permit",
        "business_group",
        "properties_before",
        "requested_land",
        "property_use",
    ]


def test_land_request_modal_inputs_match_form_fields():
    view = build_land_request_modal()

    assert view["callback_id"] == "request-modal"
    assert [block["block_id"] for block in view["blocks"]] == list(LandRequestForm.model_fields)


def test_activity_modal_offers_districts():
    view = build_activity_modal(("Redwood", "Arborfield"))
    select = view["blocks"][1]["element"]

    assert select["type"] == "static_select"
    assert [option["value"] for option in select["options"]] == ["Redwood", "Arborfield"]
    assert view["blocks"][3]["optional"] is True


def test_decision_modal_callback_carries_record_id():
    assert build_decision_modal(approve=True, record_id="17.5")["callback_id"] == "approve-request-modal-17.5"
    assert build_decision_modal(approve=False, record_id="17.5")["callback_id"] == "decline-request-modal-17.5"


def test_is_valid_http_url():
    assert is_valid_http_url("https://files.example/p.pdf")
    assert is_valid_http_url("http://files.example")
    assert not is_valid_http_url("ftp://files.example")
    assert not is_valid_http_url("https://")
    assert not is_valid_http_url(None)
