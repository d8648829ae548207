"""Land workflows: forms, message builders, state, and the orchestrator."""

from .messages import DECISION_BLOCK_ID, build_decision_update, build_property_request_announcement
from .modal import (
    ACTIVITY_MODAL,
    LAND_REQUEST_MODAL,
    PROPERTY_REQUEST_MODAL,
    build_activity_modal,
    build_decision_modal,
    build_land_request_modal,
    build_property_request_modal,
)
from .models import ActivityReportForm, ApprovalForm, DeclineForm, LandRequestForm, PropertyRequestForm
from .orchestrator import WorkflowOrchestrator
from .state import SubmissionState, announcement_state, ensure_transition

__all__ = [
    "ACTIVITY_MODAL",
    "LAND_REQUEST_MODAL",
    "PROPERTY_REQUEST_MODAL",
    "DECISION_BLOCK_ID",
    "ActivityReportForm",
    "ApprovalForm",
    "DeclineForm",
    "LandRequestForm",
    "PropertyRequestForm",
    "SubmissionState",
    "WorkflowOrchestrator",
    "announcement_state",
    "build_activity_modal",
    "build_decision_modal",
    "build_decision_update",
    "build_land_request_modal",
    "build_property_request_announcement",
    "build_property_request_modal",
    "ensure_transition",
]
