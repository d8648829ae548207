"""Static district reference data: Trello list ids and label ids per district."""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

from pydantic import BaseModel, model_validator


class AreaDefinition(BaseModel):
    list_id: str
    parent: str | None = None


class DistrictTableDefinition(BaseModel):
    """Validated shape of a district table, as stored in ``DISTRICTS_FILE``."""

    districts: List[str]
    areas: Dict[str, AreaDefinition]
    labels: Dict[str, List[str]]

    @model_validator(mode="after")
    def check_references(self):
        known = set(self.districts)
        if not known:
            raise ValueError("at least one district is required")
        for name, area in self.areas.items():
            if area.parent is None and name not in known:
                raise ValueError(f"area '{name}' must be a district or name a parent district")
            if area.parent is not None and area.parent not in known:
                raise ValueError(f"area '{name}' has unknown parent '{area.parent}'")
        for name in self.labels:
            if name not in known:
                raise ValueError(f"labels given for unknown district '{name}'")
        return self


DEFAULT_DISTRICTS: Dict[str, object] = {
    "districts": ["Redwood", "Arborfield", "Prominence", "Unincorporated"],
    "areas": {
        "Redwood": {"list_id": "641e1077958b7e7aeb847a48"},
        "Arborfield": {"list_id": "641e108a923770039e58f70b"},
        "Prominence": {"list_id": "641e108172f11b32b2cd1d7a"},
        "Unincorporated": {"list_id": "641e15dc99f278f73fcfbb9e"},
        "Greendale": {"list_id": "641e174a2bdd24d0cb8ac85f", "parent": "Unincorporated"},
        "Hillview": {"list_id": "641e17536f76c164213b94b0", "parent": "Unincorporated"},
        # Stadium lots
        "Triumph Stadium": {"list_id": "641e16219cd033f2188ff043", "parent": "Prominence"},
        "Lunar Arena": {"list_id": "64c99bd2e6ac1002eda1ae5b", "parent": "Prominence"},
    },
    "labels": {
        "Prominence": ["641e0d512e15ff6a3be2b6ba"],
        "Redwood": ["641e0d6a7c2b18c899627dcf"],
        "Arborfield": ["641e0d784e470de8bccd151e"],
        "Unincorporated": ["6423ba519eaba3c931bd402f"],
    },
}


class DistrictTable:
    """Read-only lookups between districts, Trello lists, and Trello labels."""

    def __init__(self, definition: DistrictTableDefinition) -> None:
        self._districts: Tuple[str, ...] = tuple(definition.districts)
        # (area name, own list id, resolved district) in declaration order
        self._areas: Tuple[Tuple[str, str, str], ...] = tuple(
            (name, area.list_id, area.parent or name) for name, area in definition.areas.items()
        )
        self._labels: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {name: tuple(ids) for name, ids in definition.labels.items()}
        )

    @classmethod
    def default(cls) -> "DistrictTable":
        return cls(DistrictTableDefinition.model_validate(DEFAULT_DISTRICTS))

    @classmethod
    def from_file(cls, file_path: Path | str) -> "DistrictTable":
        with Path(file_path).open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        return cls(DistrictTableDefinition.model_validate(data))

    @property
    def districts(self) -> Tuple[str, ...]:
        return self._districts

    def resolve_from_list_id(self, list_id: str | None) -> str | None:
        """Return the district owning *list_id*, or None when it is not configured.

        Child areas such as stadium lots resolve to their parent district.
        """

        if not list_id:
            return None
        for _name, own_id, district in self._areas:
            if own_id == list_id:
                return district
        return None

    def list_ids_for(self, district: str) -> Tuple[str, ...]:
        return tuple(own_id for _name, own_id, owner in self._areas if owner == district)

    def labels_for(self, district: str) -> Tuple[str, ...]:
        return self._labels.get(district, ())

    def parse_district(self, value: str | None) -> str | None:
        """Return *value* when it names one of the enumerated districts."""

        if value is None:
            return None
        return value if value in self._districts else None


def load_district_table(file_path: str | None = None) -> DistrictTable:
    if file_path:
        return DistrictTable.from_file(file_path)
    return DistrictTable.default()
