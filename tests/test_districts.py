"""Tests for the district reference table."""

import json

import pytest
from pydantic import ValidationError

from land_workflow_bot.districts import DistrictTable, load_district_table


@pytest.fixture
def table():
    return DistrictTable.default()


@pytest.mark.parametrize(
    "list_id, district",
    [
        ("641e1077958b7e7aeb847a48", "Redwood"),
        ("641e108a923770039e58f70b", "Arborfield"),
        ("641e15dc99f278f73fcfbb9e", "Unincorporated"),
        ("641e174a2bdd24d0cb8ac85f", "Unincorporated"),
        ("641e16219cd033f2188ff043", "Prominence"),
        ("64c99bd2e6ac1002eda1ae5b", "Prominence"),
    ],
)
def test_resolve_from_list_id(table, list_id, district):
    assert table.resolve_from_list_id(list_id) == district


def test_child_areas_never_resolve_to_their_own_name(table):
    resolved = {table.resolve_from_list_id(list_id) for list_id in table.list_ids_for("Prominence")}

    assert resolved == {"Prominence"}
    assert "Triumph Stadium" not in table.districts


@pytest.mark.parametrize("list_id", ["", None, "unknown", "641E1077958B7E7AEB847A48"])
def test_unknown_list_ids_resolve_to_none(table, list_id):
    assert table.resolve_from_list_id(list_id) is None


def test_labels_and_list_ids(table):
    assert table.labels_for("Redwood") == ("641e0d6a7c2b18c899627dcf",)
    assert table.labels_for("Atlantis") == ()
    assert set(table.list_ids_for("Unincorporated")) == {
        "641e15dc99f278f73fcfbb9e",
        "641e174a2bdd24d0cb8ac85f",
        "641e17536f76c164213b94b0",
    }


def test_parse_district_is_exact(table):
    assert table.parse_district("Redwood") == "Redwood"
    assert table.parse_district("redwood") is None
    assert table.parse_district("Greendale") is None
    assert table.parse_district(None) is None


def test_load_district_table_from_file(tmp_path):
    path = tmp_path / "districts.json"
    path.write_text(
        json.dumps(
            {
                "districts": ["North"],
                "areas": {"North": {"list_id": "L1"}, "Harbour": {"list_id": "L2", "parent": "North"}},
                "labels": {"North": ["LBL1"]},
            }
        ),
        encoding="utf-8",
    )

    table = load_district_table(str(path))

    assert table.districts == ("North",)
    assert table.resolve_from_list_id("L2") == "North"
    assert table.labels_for("North") == ("LBL1",)


def test_district_file_rejects_unknown_parent(tmp_path):
    path = tmp_path / "districts.json"
    path.write_text(
        json.dumps({"districts": ["North"], "areas": {"Harbour": {"list_id": "L2", "parent": "South"}}, "labels": {}}),
        encoding="utf-8",
    )

    with pytest.raises(ValidationError):
        load_district_table(str(path))


def test_load_district_table_defaults():
    assert load_district_table(None).districts == ("Redwood", "Arborfield", "Prominence", "Unincorporated")
