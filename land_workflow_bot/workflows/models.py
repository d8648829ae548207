"""Pydantic models describing the forms users submit through Slack modals."""

from __future__ import annotations

from typing import ClassVar, List, Tuple

from pydantic import BaseModel, field_validator


class FormModel(BaseModel):
    """Base for modal forms: values are stripped, absent values become ''."""

    required_fields: ClassVar[Tuple[str, ...]] = ()

    @field_validator("*", mode="before")
    @classmethod
    def _strip(cls, value):
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        return value

    def missing_fields(self) -> List[str]:
        return [name for name in self.required_fields if not getattr(self, name)]


class LandRequestForm(FormModel):
    required_fields: ClassVar[Tuple[str, ...]] = (
        "business_permit",
        "business_group",
        "properties_before",
        "requested_land",
        "property_use",
    )

    business_permit: str = ""
    business_group: str = ""
    properties_before: str = ""
    requested_land: str = ""
    property_use: str = ""


class ActivityReportForm(FormModel):
    required_fields: ClassVar[Tuple[str, ...]] = ("business_name", "property_district", "property_activity")

    business_name: str = ""
    property_district: str = ""
    property_activity: str = ""
    additional_information: str = ""


class PropertyRequestForm(FormModel):
    required_fields: ClassVar[Tuple[str, ...]] = ("land_permit", "property_intentions")

    land_permit: str = ""
    property_intentions: str = ""
    further_information: str = ""


class ApprovalForm(FormModel):
    required_fields: ClassVar[Tuple[str, ...]] = ("property_file_url",)

    property_file_url: str = ""


class DeclineForm(FormModel):
    required_fields: ClassVar[Tuple[str, ...]] = ("decline_reason",)

    decline_reason: str = ""
