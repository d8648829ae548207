"""Request, activity, and property decision workflows.

Every public method runs inside ``ObservabilityEnvelope.run`` and receives the
event and its ``TraceContext``. Validation failures and lookup misses reply to
the originator and return; dependency failures propagate to the envelope,
which sends the single generic failure notice.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Mapping

from land_workflow_bot.actions import (
    APPROVE_REQUEST_MODAL,
    DECLINE_REQUEST_MODAL,
    is_user_authorized,
    parse_correlation_id,
    parse_submitter_mention,
)
from land_workflow_bot.config import AppSettings
from land_workflow_bot.districts import DistrictTable
from land_workflow_bot.errors import (
    AlreadyResolved,
    CorrelationParseError,
    InvalidLink,
    StatusTransitionError,
    TicketNotFound,
)
from land_workflow_bot.events import InboundEvent
from land_workflow_bot.roster import ManagerRoster, RosterResult
from land_workflow_bot.slack_client import SlackClient
from land_workflow_bot.tracing import TraceContext
from land_workflow_bot.trello import TrelloGateway, parse_card_link

from .commands import (
    DEADLINE_USAGE,
    NEW_MANAGER_USAGE,
    REMOVE_MANAGER_USAGE,
    parse_deadline,
    parse_manager_command,
)
from .messages import (
    activity_comment,
    attachment_field,
    build_activity_announcement,
    build_decision_update,
    build_deadline_announcement,
    build_land_request_announcement,
    build_property_request_announcement,
    land_request_card_description,
    mention,
    splice_username,
)
from .modal import build_decision_modal
from .models import ActivityReportForm, ApprovalForm, DeclineForm, LandRequestForm, PropertyRequestForm
from .notifications import (
    open_direct_channel,
    publish_announcement,
    send_direct_message,
    update_announcement,
)
from .requests import is_valid_http_url
from .state import SubmissionState, announcement_state, ensure_transition

FIELD_MISSING_MESSAGE = "You did not fill in the field correctly."
INVALID_LINK_MESSAGE = "You did not specify a trello link."
CARD_FETCH_FAILED_MESSAGE = "Unable to fetch Trello card data."
DISTRICT_NOT_FOUND_MESSAGE = "Unable to find district."
SUBMISSION_RECEIVED_MESSAGE = "Your submission was received successfully!"
MESSAGE_NOT_FOUND_MESSAGE = "Original message not found."
SUBMITTER_NOT_FOUND_MESSAGE = "Could not extract submitter ID from message content."
DM_UNAVAILABLE_MESSAGE = "Could not create DM channel with the submitter."
ALREADY_RESOLVED_MESSAGE = "This property request has already been resolved."
NOT_PENDING_MESSAGE = "This property request is not awaiting a decision."
INVALID_FILE_URL_MESSAGE = "Please provide a valid http(s) link to the property file."
NOT_AUTHORIZED_MESSAGE = "You are not authorized to use this command."
DEADLINE_POSTED_MESSAGE = "The activity report deadline notice has been posted."

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _no_managers_message(district: str) -> str:
    return f"Unable to find district manager for {district}. Please contact a moderator."


def _no_matching_card_message(query: str) -> str:
    return (
        f"Unable to find a Trello card with the query `{query}`. "
        "Please ensure the business name is correct."
    )


class WorkflowOrchestrator:
    """Coordinates districts, the manager roster, Trello, and Slack for each workflow."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        districts: DistrictTable,
        roster: ManagerRoster,
        trello: TrelloGateway,
        slack: SlackClient,
        clock: Clock | None = None,
    ) -> None:
        self._settings = settings
        self._districts = districts
        self._roster = roster
        self._trello = trello
        self._slack = slack
        self._clock = clock or _utc_now

    @property
    def districts(self) -> DistrictTable:
        return self._districts

    def _invalid_district_message(self) -> str:
        return "Invalid district. Please choose one of: " + ", ".join(self._districts.districts) + "."

    def _reject(self, event: InboundEvent, trace: TraceContext, reason: str, message: str, **fields) -> None:
        trace.fail(reason, **fields)
        event.reply(message)

    def _managers(self, trace: TraceContext, district: str):
        with trace.step("roster.managers_for", "db.query", district=district):
            managers = self._roster.managers_for(district)
        trace.set("district.managers.count", len(managers))
        return managers

    # -- modals ---------------------------------------------------------

    def open_modal(self, event: InboundEvent, trace: TraceContext, view: Mapping) -> None:
        if not event.trigger_id:
            raise ValueError("Cannot open a modal without a trigger id")
        with trace.step("slack.views_open", "http.client", callback_id=view.get("callback_id")):
            self._slack.open_view(trigger_id=event.trigger_id, view=view)
        trace.succeed(callback_id=view.get("callback_id"))

    # -- submit-request -------------------------------------------------

    def submit_land_request(self, event: InboundEvent, trace: TraceContext, form: LandRequestForm) -> None:
        missing = form.missing_fields()
        if missing:
            self._reject(event, trace, "missing_fields", FIELD_MISSING_MESSAGE, missing=missing)
            return

        try:
            card_id = parse_card_link(form.requested_land)
        except InvalidLink:
            self._reject(event, trace, "invalid_link", INVALID_LINK_MESSAGE)
            return
        trace.set("trello.source_card_id", card_id)

        with trace.step("trello.get_card", "http.client", card_id=card_id):
            source_card = self._trello.get_card(card_id)
        if source_card is None:
            self._reject(event, trace, "card_not_found", CARD_FETCH_FAILED_MESSAGE, card_id=card_id)
            return

        district = self._districts.resolve_from_list_id(source_card.list_id)
        if district is None:
            self._reject(
                event, trace, "district_not_found", DISTRICT_NOT_FOUND_MESSAGE, list_id=source_card.list_id
            )
            return
        trace.set("district", district)

        managers = self._managers(trace, district)
        if not managers:
            trace.log.info("district_managers_missing", district=district)
            self._reject(event, trace, "no_managers", _no_managers_message(district), district=district)
            return

        submitter = splice_username(event.user_name)
        description = land_request_card_description(
            submitted_at=self._clock(),
            submitter=submitter,
            district=district,
            properties_before=form.properties_before,
            business_permit=form.business_permit,
            business_group=form.business_group,
            requested_land=form.requested_land,
            property_use=form.property_use,
        )
        with trace.step("trello.create_card", "http.client", district=district):
            ticket = self._trello.create(
                submitter,
                description,
                self._districts.labels_for(district),
                [manager.trello_member_id for manager in managers],
            )
        trace.set("trello.card_id", ticket.id)
        trace.log.info("land_request_created", card_id=ticket.id, district=district)

        payload = build_land_request_announcement(
            manager_ids=[manager.slack_user_id for manager in managers],
            author=event.user_name or event.user_id,
            submitter=submitter,
            district=district,
            requested_land=form.requested_land,
            card_url=ticket.url,
        )
        with trace.step("slack.post_announcement", "http.client"):
            publish_announcement(self._slack, channel=self._settings.land_submissions_channel_id, payload=payload)

        trace.succeed(card_id=ticket.id, district=district)
        event.reply(f"{SUBMISSION_RECEIVED_MESSAGE} <{ticket.url}|Trello Card>")

    # -- submit-activity ------------------------------------------------

    def submit_activity_report(self, event: InboundEvent, trace: TraceContext, form: ActivityReportForm) -> None:
        missing = form.missing_fields()
        if missing:
            self._reject(event, trace, "missing_fields", FIELD_MISSING_MESSAGE, missing=missing)
            return

        district = self._districts.parse_district(form.property_district)
        if district is None:
            self._reject(
                event, trace, "invalid_district", self._invalid_district_message(), value=form.property_district
            )
            return
        trace.set("district", district)

        managers = self._managers(trace, district)
        if not managers:
            trace.log.info("district_managers_missing", district=district)
            self._reject(event, trace, "no_managers", _no_managers_message(district), district=district)
            return

        query = f"{district} {form.business_name}"
        trace.set("trello.query", query)
        with trace.step("trello.search", "http.client"):
            ticket = self._trello.search(query)
        if ticket is None:
            self._reject(event, trace, "no_matching_card", _no_matching_card_message(query), query=query)
            return
        trace.set("trello.card_id", ticket.id)

        submitter = splice_username(event.user_name)
        text = activity_comment(
            submitted_at=self._clock(),
            submitter=submitter,
            district=district,
            activity=form.property_activity,
            additional_information=form.additional_information,
        )
        try:
            with trace.step("trello.comment", "http.client", card_id=ticket.id):
                self._trello.comment(ticket.id, text)
        except TicketNotFound:
            self._reject(event, trace, "card_vanished", _no_matching_card_message(query), card_id=ticket.id)
            return
        trace.log.info("activity_comment_added", card_id=ticket.id, district=district)

        payload = build_activity_announcement(
            manager_ids=[manager.slack_user_id for manager in managers],
            author=event.user_name or event.user_id,
            business_name=form.business_name,
            submitter=submitter,
            district=district,
            card_url=ticket.url,
        )
        with trace.step("slack.post_announcement", "http.client"):
            publish_announcement(self._slack, channel=self._settings.land_submissions_channel_id, payload=payload)

        trace.succeed(card_id=ticket.id, district=district)
        event.reply(f"Success! Activity added to <{ticket.url}|Trello Card>.")

    # -- property requests ----------------------------------------------

    def submit_property_request(self, event: InboundEvent, trace: TraceContext, form: PropertyRequestForm) -> None:
        missing = form.missing_fields()
        if missing:
            self._reject(event, trace, "missing_fields", FIELD_MISSING_MESSAGE, missing=missing)
            return

        payload = build_property_request_announcement(
            submitter_id=event.user_id,
            submitter=event.user_name or event.user_id,
            land_permit=form.land_permit,
            property_intentions=form.property_intentions,
            further_information=form.further_information,
        )
        with trace.step("slack.post_announcement", "http.client"):
            ts = publish_announcement(
                self._slack, channel=self._settings.support_tickets_channel_id, payload=payload
            )
        trace.set("record.id", ts)

        trace.succeed(record_id=ts)
        event.reply(SUBMISSION_RECEIVED_MESSAGE)

    def open_decision_form(self, event: InboundEvent, trace: TraceContext, *, approve: bool) -> None:
        """Open the approve/decline modal for the announcement the button sits on."""

        message = event.message
        try:
            submitter_id = parse_submitter_mention(message.get("text"))
        except CorrelationParseError:
            self._reject(event, trace, "submitter_not_found", SUBMITTER_NOT_FOUND_MESSAGE)
            return
        trace.set("submitter.id", submitter_id)

        if not self._check_pending(event, trace, message, approve=approve):
            return

        record_id = message.get("ts")
        if not record_id:
            self._reject(event, trace, "record_id_missing", MESSAGE_NOT_FOUND_MESSAGE)
            return
        trace.set("record.id", record_id)

        self.open_modal(event, trace, build_decision_modal(approve=approve, record_id=record_id))

    def approve_property_request(self, event: InboundEvent, trace: TraceContext, form: ApprovalForm) -> None:
        if form.missing_fields():
            self._reject(event, trace, "missing_fields", FIELD_MISSING_MESSAGE)
            return
        if not is_valid_http_url(form.property_file_url):
            self._reject(event, trace, "invalid_file_url", INVALID_FILE_URL_MESSAGE)
            return

        self._resolve_property_request(
            event,
            trace,
            approve=True,
            action=APPROVE_REQUEST_MODAL,
            direct_message=(
                f"Your property submission has been approved by {mention(event.user_id)}."
                f"\n\nProperty file: {form.property_file_url}"
            ),
            reason=None,
        )

    def decline_property_request(self, event: InboundEvent, trace: TraceContext, form: DeclineForm) -> None:
        if form.missing_fields():
            self._reject(event, trace, "missing_fields", FIELD_MISSING_MESSAGE)
            return

        self._resolve_property_request(
            event,
            trace,
            approve=False,
            action=DECLINE_REQUEST_MODAL,
            direct_message=(
                f"Your property request has been declined by {mention(event.user_id)} "
                f"for the following reason:\n\n{form.decline_reason}"
            ),
            reason=form.decline_reason,
        )

    def _check_pending(self, event: InboundEvent, trace: TraceContext, message: Mapping, *, approve: bool) -> bool:
        target = SubmissionState.APPROVED if approve else SubmissionState.DECLINED
        current = announcement_state(message)
        trace.set("submission.state", current.value)
        try:
            ensure_transition(current, target)
        except AlreadyResolved:
            self._reject(event, trace, "already_resolved", ALREADY_RESOLVED_MESSAGE, state=current.value)
            return False
        except StatusTransitionError:
            self._reject(event, trace, "not_pending", NOT_PENDING_MESSAGE, state=current.value)
            return False
        return True

    def _resolve_property_request(
        self,
        event: InboundEvent,
        trace: TraceContext,
        *,
        approve: bool,
        action: str,
        direct_message: str,
        reason: str | None,
    ) -> None:
        channel = self._settings.support_tickets_channel_id
        try:
            record_id = parse_correlation_id(event.custom_id, action)
        except CorrelationParseError:
            self._reject(event, trace, "correlation_parse_failed", MESSAGE_NOT_FOUND_MESSAGE)
            return
        trace.set("record.id", record_id)

        with trace.step("slack.fetch_message", "http.client", channel=channel):
            message = self._slack.fetch_message(channel=channel, ts=record_id)
        if message is None:
            self._reject(event, trace, "message_not_found", MESSAGE_NOT_FOUND_MESSAGE, record_id=record_id)
            return

        if not self._check_pending(event, trace, message, approve=approve):
            return

        try:
            submitter_id = parse_submitter_mention(message.get("text"))
        except CorrelationParseError:
            self._reject(event, trace, "submitter_not_found", SUBMITTER_NOT_FOUND_MESSAGE)
            return
        trace.set("submitter.id", submitter_id)

        with trace.step("slack.open_dm", "http.client"):
            dm_channel = open_direct_channel(self._slack, submitter_id)
        if not dm_channel:
            self._reject(event, trace, "dm_unavailable", DM_UNAVAILABLE_MESSAGE, submitter_id=submitter_id)
            return

        with trace.step("slack.send_dm", "http.client"):
            send_direct_message(
                self._slack,
                channel=dm_channel,
                text=direct_message,
                attachments=message.get("attachments") or None,
            )

        update = build_decision_update(
            message,
            approved=approve,
            moderator_id=event.user_id,
            moderator_name=event.user_name or event.user_id,
            reason=reason,
        )
        with trace.step("slack.update_announcement", "http.client"):
            update_announcement(self._slack, channel=channel, ts=record_id, payload=update)

        verb = "approved" if approve else "declined"
        permit = attachment_field(message, "Land Permit") or "N/A"
        trace.log.info(f"property_request_{verb}", record_id=record_id, submitter_id=submitter_id)
        trace.succeed(record_id=record_id, decision=verb)
        event.reply(f"You have {verb} the property request for {permit}.")

    # -- roster commands ------------------------------------------------

    def _require_admin(self, event: InboundEvent, trace: TraceContext) -> bool:
        if is_user_authorized(event.user_id, self._settings.admin_user_ids):
            return True
        trace.log.warning("unauthorized_roster_command", user_id=event.user_id)
        self._reject(event, trace, "unauthorized", NOT_AUTHORIZED_MESSAGE)
        return False

    def list_managers(self, event: InboundEvent, trace: TraceContext, text: str) -> None:
        district = self._districts.parse_district((text or "").strip())
        if district is None:
            self._reject(event, trace, "invalid_district", self._invalid_district_message(), value=text)
            return

        managers = self._managers(trace, district)
        if not managers:
            self._reject(event, trace, "no_managers", f"No managers are assigned to {district}.", district=district)
            return

        lines = "\n".join(mention(manager.slack_user_id) for manager in managers)
        trace.succeed(district=district, count=len(managers))
        event.reply(f"*{district} Managers*\n{lines}")

    def add_manager(self, event: InboundEvent, trace: TraceContext, text: str) -> None:
        if not self._require_admin(event, trace):
            return
        try:
            command = parse_manager_command(text, with_trello_id=True)
        except ValueError as exc:
            self._reject(event, trace, "invalid_arguments", NEW_MANAGER_USAGE, error=str(exc))
            return
        district = self._districts.parse_district(command.district)
        if district is None:
            self._reject(event, trace, "invalid_district", self._invalid_district_message(), value=command.district)
            return

        with trace.step("roster.add_manager", "db.insert", district=district):
            result = self._roster.add_manager(command.user_id, district, command.trello_member_id)

        trace.succeed(district=district, result=result.value)
        if result is RosterResult.ALREADY_ASSIGNED:
            event.reply(f"Manager {mention(command.user_id)} is already assigned to district {district}.")
            return
        event.reply(
            f"Manager {mention(command.user_id)} has been successfully added to district {district} "
            f"with Trello ID {command.trello_member_id}."
        )

    def remove_manager(self, event: InboundEvent, trace: TraceContext, text: str) -> None:
        if not self._require_admin(event, trace):
            return
        try:
            command = parse_manager_command(text, with_trello_id=False)
        except ValueError as exc:
            self._reject(event, trace, "invalid_arguments", REMOVE_MANAGER_USAGE, error=str(exc))
            return
        district = self._districts.parse_district(command.district)
        if district is None:
            self._reject(event, trace, "invalid_district", self._invalid_district_message(), value=command.district)
            return

        with trace.step("roster.remove_manager", "db.delete", district=district):
            result = self._roster.remove_manager(command.user_id, district)

        trace.succeed(district=district, result=result.value)
        if result is RosterResult.NOT_ASSIGNED:
            event.reply(f"Manager {mention(command.user_id)} is not assigned to district {district}.")
            return
        event.reply(f"Manager {mention(command.user_id)} has been successfully removed from district {district}.")

    # -- deadline -------------------------------------------------------

    def announce_deadline(self, event: InboundEvent, trace: TraceContext, text: str) -> None:
        if not self._require_admin(event, trace):
            return
        try:
            deadline = parse_deadline(text)
        except ValueError:
            self._reject(event, trace, "invalid_arguments", DEADLINE_USAGE)
            return

        channel = self._settings.deadline_channel_id or self._settings.land_submissions_channel_id
        payload = build_deadline_announcement(
            deadline=deadline,
            author=event.user_name or event.user_id,
            mention_text=self._settings.deadline_mention,
        )
        with trace.step("slack.post_announcement", "http.client", channel=channel):
            publish_announcement(self._slack, channel=channel, payload=payload)

        trace.succeed(deadline=deadline)
        event.reply(DEADLINE_POSTED_MESSAGE)
