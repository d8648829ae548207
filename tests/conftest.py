"""Shared fixtures and fakes for the land workflow bot tests."""

from __future__ import annotations

from pathlib import Path
import sys
from types import SimpleNamespace

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover - import-time guard
    sys.path.insert(0, str(ROOT))

from land_workflow_bot.config import load_settings  # noqa: E402
from land_workflow_bot.districts import DistrictTable  # noqa: E402
from land_workflow_bot.errors import StoreUnavailable, TicketNotFound  # noqa: E402
from land_workflow_bot.events import MODAL_SUBMIT, InboundEvent  # noqa: E402
from land_workflow_bot.models import ManagerAssignment  # noqa: E402
from land_workflow_bot.roster import RosterResult  # noqa: E402
from land_workflow_bot.slack_client import SlackClient  # noqa: E402
from land_workflow_bot.tracing import ObservabilityEnvelope  # noqa: E402
from land_workflow_bot.trello import ExternalTicket  # noqa: E402
from land_workflow_bot.workflows.orchestrator import WorkflowOrchestrator  # noqa: E402

REDWOOD_LIST_ID = "641e1077958b7e7aeb847a48"
ACTIVE_LIST_ID = "641e10486e814e91bb2f6d31"

BASE_ENV = {
    "SLACK_BOT_TOKEN": "xoxb-test",
    "SLACK_SIGNING_SECRET": "secret",
    "DATABASE_URL": "sqlite://",
    "TRELLO_KEY": "trello-key",
    "TRELLO_TOKEN": "trello-token",
    "LAND_SUBMISSIONS_CHANNEL_ID": "CLAND",
    "SUPPORT_TICKETS_CHANNEL_ID": "CSUPPORT",
    "ADMIN_USER_IDS": "UADMIN",
}


@pytest.fixture
def settings():
    return load_settings(dict(BASE_ENV))


@pytest.fixture
def tracing():
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return SimpleNamespace(tracer=provider.get_tracer("tests"), exporter=exporter)


class RecordingReporter:
    def __init__(self):
        self.captured = []

    def capture_exception(self, exc, *, trace_context, event):
        self.captured.append((exc, event.event_id))


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def envelope(tracing, reporter):
    return ObservabilityEnvelope(tracer=tracing.tracer, reporter=reporter)


class FakeRoster:
    """In-memory roster recording every call; ``fail`` simulates a store outage."""

    def __init__(self, assignments=None):
        self.assignments = list(assignments or [])
        self.calls = []
        self.fail = False

    def managers_for(self, district):
        self.calls.append(("managers_for", district))
        if self.fail:
            raise StoreUnavailable("database is down")
        return [row for row in self.assignments if row.district == district]

    def add_manager(self, user_id, district, trello_member_id):
        self.calls.append(("add_manager", user_id, district))
        if self.fail:
            raise StoreUnavailable("database is down")
        for row in self.assignments:
            if row.slack_user_id == user_id and row.district == district:
                return RosterResult.ALREADY_ASSIGNED
        self.assignments.append(
            ManagerAssignment(slack_user_id=user_id, district=district, trello_member_id=trello_member_id)
        )
        return RosterResult.ADDED

    def remove_manager(self, user_id, district):
        self.calls.append(("remove_manager", user_id, district))
        for row in list(self.assignments):
            if row.slack_user_id == user_id and row.district == district:
                self.assignments.remove(row)
                return RosterResult.REMOVED
        return RosterResult.NOT_ASSIGNED


class FakeTrello:
    def __init__(self):
        self.cards = {}
        self.search_result = None
        self.comment_missing = False
        self.calls = []
        self.created = []
        self.comments = []

    def get_card(self, card_id):
        self.calls.append(("get_card", card_id))
        return self.cards.get(card_id)

    def search(self, query, board_ids=None):
        self.calls.append(("search", query))
        return self.search_result

    def create(self, title, description, labels=(), member_ids=()):
        self.calls.append(("create", title))
        ticket = ExternalTicket(
            id=f"card{len(self.created) + 1}",
            url=f"https://trello.com/c/new{len(self.created) + 1}",
            list_id="6420a5767b2828fea92316e6",
            name=title,
        )
        self.created.append(
            {"title": title, "description": description, "labels": list(labels), "member_ids": list(member_ids)}
        )
        return ticket

    def comment(self, ticket_id, text):
        self.calls.append(("comment", ticket_id))
        if self.comment_missing:
            raise TicketNotFound("gone", status_code=404)
        self.comments.append((ticket_id, text))


class DummySlackWebClient:
    """Stands in for slack_sdk.WebClient; keeps posted messages so they can be fetched back."""

    def __init__(self):
        self.posted = []
        self.updates = []
        self.opened_dms = []
        self.views = []
        self.messages = {}
        self._next_ts = 1700000000

    def chat_postMessage(self, **kwargs):
        self._next_ts += 1
        ts = f"{self._next_ts}.000100"
        self.posted.append(kwargs)
        self.messages[(kwargs["channel"], ts)] = {
            "ts": ts,
            "text": kwargs.get("text"),
            "blocks": kwargs.get("blocks") or [],
            "attachments": kwargs.get("attachments") or [],
        }
        return {"ok": True, "channel": kwargs["channel"], "ts": ts}

    def chat_update(self, **kwargs):
        self.updates.append(kwargs)
        key = (kwargs["channel"], kwargs["ts"])
        self.messages[key] = {
            "ts": kwargs["ts"],
            "text": kwargs.get("text"),
            "blocks": kwargs.get("blocks") or [],
            "attachments": kwargs.get("attachments") or [],
        }
        return {"ok": True}

    def conversations_history(self, **kwargs):
        message = self.messages.get((kwargs["channel"], kwargs["latest"]))
        return {"ok": True, "messages": [message] if message else []}

    def conversations_open(self, **kwargs):
        self.opened_dms.append(kwargs["users"])
        return {"ok": True, "channel": {"id": f"D{kwargs['users']}"}}

    def views_open(self, **kwargs):
        self.views.append(kwargs)
        return {"ok": True}

    def dm_texts(self):
        return [call["text"] for call in self.posted if call["channel"].startswith("D")]


@pytest.fixture
def slack_web():
    return DummySlackWebClient()


@pytest.fixture
def roster():
    return FakeRoster(
        [
            ManagerAssignment(slack_user_id="UMGR1", district="Redwood", trello_member_id="tm-1"),
            ManagerAssignment(slack_user_id="UMGR2", district="Redwood", trello_member_id="tm-2"),
        ]
    )


@pytest.fixture
def trello():
    return FakeTrello()


@pytest.fixture
def orchestrator(settings, roster, trello, slack_web):
    return WorkflowOrchestrator(
        settings=settings,
        districts=DistrictTable.default(),
        roster=roster,
        trello=trello,
        slack=SlackClient(client=slack_web),
    )


def make_event(kind=MODAL_SUBMIT, *, replies=None, user_id="U100", user_name="Officer Jane Doe", **kwargs):
    replies = replies if replies is not None else []
    return InboundEvent(
        kind=kind,
        event_id=kwargs.pop("event_id", "evt-1"),
        user_id=user_id,
        user_name=user_name,
        responder=replies.append,
        **kwargs,
    )

