"""Application entry point for the land workflow bot."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, Callable, Type
from uuid import uuid4

from flask import Flask, jsonify, request, copy_current_request_context
from slack_bolt import App as SlackApp
from slack_bolt.adapter.flask import SlackRequestHandler
from sqlalchemy import text
import structlog

from land_workflow_bot import __version__
from land_workflow_bot.actions import (
    APPROVE_REQUEST_BUTTON,
    APPROVE_REQUEST_MODAL,
    DECLINE_REQUEST_BUTTON,
    DECLINE_REQUEST_MODAL,
)
from land_workflow_bot.background import run_async
from land_workflow_bot.config import AppSettings, get_settings
from land_workflow_bot.db import Database
from land_workflow_bot.districts import load_district_table
from land_workflow_bot.events import InboundEvent
from land_workflow_bot.logging_config import configure_logging
from land_workflow_bot.roster import ManagerRoster
from land_workflow_bot.security import (
    SLACK_SIGNATURE_HEADER,
    SLACK_TIMESTAMP_HEADER,
    is_valid_slack_request,
)
from land_workflow_bot.slack_client import SlackClient
from land_workflow_bot.tracing import ObservabilityEnvelope, configure_tracing
from land_workflow_bot.trello import TrelloGateway
from land_workflow_bot.workflows import (
    ACTIVITY_MODAL,
    LAND_REQUEST_MODAL,
    PROPERTY_REQUEST_MODAL,
    ActivityReportForm,
    ApprovalForm,
    DeclineForm,
    LandRequestForm,
    PropertyRequestForm,
    WorkflowOrchestrator,
    build_activity_modal,
    build_land_request_modal,
    build_property_request_modal,
)
from land_workflow_bot.workflows.messages import ACTIVITY_BUTTON_ACTION_ID
from land_workflow_bot.workflows.models import FormModel
from land_workflow_bot.workflows.requests import parse_form

COMMAND_OPERATION = "ui.command"
CLICK_OPERATION = "ui.click"
MODAL_OPERATION = "ui.modal.submit"


@dataclass
class WorkflowServices:
    settings: AppSettings
    database: Database
    orchestrator: WorkflowOrchestrator
    envelope: ObservabilityEnvelope


def _build_services(settings: AppSettings, *, slack: SlackClient | None = None) -> WorkflowServices:
    database = Database(settings.database_url)
    orchestrator = WorkflowOrchestrator(
        settings=settings,
        districts=load_district_table(settings.districts_file),
        roster=ManagerRoster(database),
        trello=TrelloGateway.from_settings(settings),
        slack=slack or SlackClient(token=settings.bot_token),
    )
    return WorkflowServices(
        settings=settings,
        database=database,
        orchestrator=orchestrator,
        envelope=ObservabilityEnvelope(),
    )


def _create_bolt_app(settings: AppSettings) -> SlackApp:
    """Initialise the Slack Bolt application using validated settings."""

    return SlackApp(
        token=settings.bot_token,
        signing_secret=settings.signing_secret,
        token_verification_enabled=False,
    )


def _register_error_handlers(flask_app: Flask) -> None:
    """Register a JSON error handler that attaches a trace identifier."""

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        trace_id = str(uuid4())
        structlog.get_logger().error("unhandled_application_error", trace_id=trace_id, exc_info=error)
        response = jsonify({"error": "internal_server_error", "trace_id": trace_id})
        response.status_code = 500
        return response


def _command_event(command: dict, respond) -> InboundEvent:
    return InboundEvent.from_command(
        command,
        responder=lambda reply: respond(text=reply, response_type="ephemeral"),
    )


def _button_event(body: dict, respond) -> InboundEvent:
    return InboundEvent.from_action(
        body,
        responder=lambda reply: respond(text=reply, response_type="ephemeral", replace_original=False),
    )


def _view_event(body: dict, client) -> InboundEvent:
    user_id = (body.get("user") or {}).get("id")
    return InboundEvent.from_view_submission(
        body,
        responder=lambda reply: client.chat_postMessage(channel=user_id, text=reply),
    )


def _handle_form_command(ack, command, respond, services: WorkflowServices, *, span_name: str, view_builder: Callable[[], dict]):
    ack()
    event = _command_event(command, respond)
    services.envelope.run(
        event,
        span_name,
        COMMAND_OPERATION,
        lambda trace: services.orchestrator.open_modal(event, trace, view_builder()),
    )


def _handle_text_command(ack, command, respond, services: WorkflowServices, *, span_name: str, workflow: Callable[..., Any]):
    ack()
    event = _command_event(command, respond)
    command_text = command.get("text") or ""
    services.envelope.run(
        event,
        span_name,
        COMMAND_OPERATION,
        lambda trace: workflow(event, trace, command_text),
    )


def _handle_decision_button(ack, body, respond, services: WorkflowServices, *, approve: bool):
    ack()
    event = _button_event(body, respond)
    services.envelope.run(
        event,
        "Approve Property Request Button" if approve else "Decline Property Request Button",
        CLICK_OPERATION,
        lambda trace: services.orchestrator.open_decision_form(event, trace, approve=approve),
    )


def _handle_activity_button(ack, body, respond, services: WorkflowServices):
    ack()
    event = _button_event(body, respond)
    districts = services.orchestrator.districts.districts
    services.envelope.run(
        event,
        "Submit Activity Button",
        CLICK_OPERATION,
        lambda trace: services.orchestrator.open_modal(event, trace, build_activity_modal(districts)),
    )


def _handle_form_submission(
    ack,
    body,
    client,
    services: WorkflowServices,
    *,
    span_name: str,
    form_type: Type[FormModel],
    workflow: Callable[..., Any],
):
    ack()
    event = _view_event(body, client)
    view = body.get("view") or {}
    services.envelope.run(
        event,
        span_name,
        MODAL_OPERATION,
        lambda trace: workflow(event, trace, parse_form(view, form_type)),
    )


def _register_slash_handlers(bolt_app: SlackApp, services: WorkflowServices) -> None:
    orchestrator = services.orchestrator

    @bolt_app.command("/land-request")
    def handle_land_request(ack, command, respond):
        _handle_form_command(
            ack, command, respond, services, span_name="Land Request Command", view_builder=build_land_request_modal
        )

    @bolt_app.command("/new-activity")
    def handle_new_activity(ack, command, respond):
        _handle_form_command(
            ack,
            command,
            respond,
            services,
            span_name="New Activity Command",
            view_builder=lambda: build_activity_modal(orchestrator.districts.districts),
        )

    @bolt_app.command("/property-request")
    def handle_property_request(ack, command, respond):
        _handle_form_command(
            ack,
            command,
            respond,
            services,
            span_name="Property Request Command",
            view_builder=build_property_request_modal,
        )

    @bolt_app.command("/get-managers")
    def handle_get_managers(ack, command, respond):
        _handle_text_command(
            ack, command, respond, services, span_name="Get Managers Command", workflow=orchestrator.list_managers
        )

    @bolt_app.command("/new-manager")
    def handle_new_manager(ack, command, respond):
        _handle_text_command(
            ack, command, respond, services, span_name="New Manager Command", workflow=orchestrator.add_manager
        )

    @bolt_app.command("/remove-manager")
    def handle_remove_manager(ack, command, respond):
        _handle_text_command(
            ack, command, respond, services, span_name="Remove Manager Command", workflow=orchestrator.remove_manager
        )

    @bolt_app.command("/land-deadline")
    def handle_land_deadline(ack, command, respond):
        _handle_text_command(
            ack,
            command,
            respond,
            services,
            span_name="Deadline Announcement Command",
            workflow=orchestrator.announce_deadline,
        )


def _register_action_handlers(bolt_app: SlackApp, services: WorkflowServices) -> None:
    @bolt_app.action(APPROVE_REQUEST_BUTTON)
    def handle_approve(ack, body, respond):
        _handle_decision_button(ack, body, respond, services, approve=True)

    @bolt_app.action(DECLINE_REQUEST_BUTTON)
    def handle_decline(ack, body, respond):
        _handle_decision_button(ack, body, respond, services, approve=False)

    @bolt_app.action(ACTIVITY_BUTTON_ACTION_ID)
    def handle_activity_button(ack, body, respond):
        _handle_activity_button(ack, body, respond, services)

    # link buttons still deliver an interaction payload
    @bolt_app.action("open_trello_card")
    def handle_link_button(ack):
        ack()


def _register_view_handlers(bolt_app: SlackApp, services: WorkflowServices) -> None:
    orchestrator = services.orchestrator

    @bolt_app.view(LAND_REQUEST_MODAL)
    def handle_land_request_submission(ack, body, client):
        _handle_form_submission(
            ack,
            body,
            client,
            services,
            span_name="Land Request Modal",
            form_type=LandRequestForm,
            workflow=orchestrator.submit_land_request,
        )

    @bolt_app.view(ACTIVITY_MODAL)
    def handle_activity_submission(ack, body, client):
        _handle_form_submission(
            ack,
            body,
            client,
            services,
            span_name="Land Activity Modal",
            form_type=ActivityReportForm,
            workflow=orchestrator.submit_activity_report,
        )

    @bolt_app.view(PROPERTY_REQUEST_MODAL)
    def handle_property_request_submission(ack, body, client):
        _handle_form_submission(
            ack,
            body,
            client,
            services,
            span_name="Property Request Modal",
            form_type=PropertyRequestForm,
            workflow=orchestrator.submit_property_request,
        )

    @bolt_app.view(re.compile(rf"^{re.escape(APPROVE_REQUEST_MODAL)}-"))
    def handle_approve_submission(ack, body, client):
        _handle_form_submission(
            ack,
            body,
            client,
            services,
            span_name="Approve Request Modal",
            form_type=ApprovalForm,
            workflow=orchestrator.approve_property_request,
        )

    @bolt_app.view(re.compile(rf"^{re.escape(DECLINE_REQUEST_MODAL)}-"))
    def handle_decline_submission(ack, body, client):
        _handle_form_submission(
            ack,
            body,
            client,
            services,
            span_name="Decline Request Modal",
            form_type=DeclineForm,
            workflow=orchestrator.decline_property_request,
        )


_LOGGING_CONFIGURED = False
_TRACING_CONFIGURED = False


def create_app(services: WorkflowServices | None = None) -> Flask:
    """Create and configure the Flask application."""

    global _LOGGING_CONFIGURED, _TRACING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        configure_logging()
        _LOGGING_CONFIGURED = True

    settings = get_settings()
    if not _TRACING_CONFIGURED:
        configure_tracing(settings, version=__version__)
        _TRACING_CONFIGURED = True

    services = services or _build_services(settings)
    services.database.create_schema()

    bolt_app = _create_bolt_app(settings)
    handler = SlackRequestHandler(bolt_app)

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = __version__
    flask_app.extensions["land_workflow_bot"] = services
    flask_app.logger.setLevel("INFO")

    _register_error_handlers(flask_app)
    _register_slash_handlers(bolt_app, services)
    _register_action_handlers(bolt_app, services)
    _register_view_handlers(bolt_app, services)

    @flask_app.route("/slack/events", methods=["POST"])
    def slack_events():
        raw_body = request.get_data(as_text=True)
        timestamp = request.headers.get(SLACK_TIMESTAMP_HEADER, "")
        signature = request.headers.get(SLACK_SIGNATURE_HEADER, "")

        if not is_valid_slack_request(
            signing_secret=settings.signing_secret,
            timestamp=timestamp,
            body=raw_body,
            signature=signature,
        ):
            structlog.get_logger().warning("slack_signature_rejected")
            response = jsonify({"error": "invalid_signature"})
            response.status_code = 401
            return response

        @copy_current_request_context
        def process_request():
            handler.handle(request)

        run_async(process_request, event_id=str(uuid4()))
        return "", 200

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        health: dict[str, object] = {"ok": True}
        health["version"] = flask_app.config.get("APP_VERSION", "unknown")

        try:
            get_settings()
            health["config"] = "valid"
        except RuntimeError as exc:
            health["config"] = "invalid"
            health["config_error"] = str(exc)
            health["ok"] = False

        try:
            with services.database.session_scope() as session:
                session.execute(text("SELECT 1"))
            health["db"] = "up"
        except Exception as exc:
            health["db"] = "down"
            health["db_error"] = str(exc)
            health["ok"] = False

        status = 200 if health["ok"] else 503
        return jsonify(health), status

    return flask_app


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    application = create_app()
    application.run(host="0.0.0.0", port=3000, debug=True)
