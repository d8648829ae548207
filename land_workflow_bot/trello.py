"""Trello REST client exposing the card operations the workflows rely on."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Sequence

import httpx
import structlog

from land_workflow_bot.errors import (
    InvalidLink,
    TicketCreateFailed,
    TicketNotFound,
    TicketServiceError,
)

CARD_LINK_MARKER = "trello.com/c/"
SEARCH_CARD_FIELDS = "name,shortUrl,closed,idList"
SEARCH_CARDS_LIMIT = 5


@dataclass(frozen=True)
class ExternalTicket:
    """A Trello card as seen by the workflows."""

    id: str
    url: str
    list_id: str | None
    closed: bool = False
    name: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ExternalTicket":
        return cls(
            id=str(payload.get("id") or ""),
            url=str(payload.get("shortUrl") or payload.get("url") or ""),
            list_id=payload.get("idList"),
            closed=bool(payload.get("closed", False)),
            name=str(payload.get("name") or ""),
        )


def parse_card_link(link: str) -> str:
    """Return the card short id from a ``https://trello.com/c/<id>/<slug>`` link."""

    if not link or CARD_LINK_MARKER not in link:
        raise InvalidLink("Link does not point at a Trello card.")
    _, _, tail = link.partition("/c/")
    card_id = tail.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0].strip()
    if not card_id:
        raise InvalidLink("Trello card link is missing the card id.")
    return card_id


def select_active_card(cards: Iterable[Mapping[str, Any]], active_list_id: str) -> ExternalTicket | None:
    """Pick the first open card that sits in the active list."""

    for card in cards:
        if card.get("idList") == active_list_id and not card.get("closed"):
            return ExternalTicket.from_payload(card)
    return None


class TrelloGateway:
    """Search, create, and comment on Trello cards with key/token credentials."""

    def __init__(
        self,
        *,
        key: str,
        token: str,
        active_list_id: str,
        intake_list_id: str,
        board_ids: Sequence[str] = (),
        base_url: str = "https://api.trello.com/1",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._credentials = {"key": key, "token": token}
        self._active_list_id = active_list_id
        self._intake_list_id = intake_list_id
        self._board_ids = tuple(board_ids)
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self._log = structlog.get_logger(__name__)

    @classmethod
    def from_settings(cls, settings, *, client: httpx.Client | None = None) -> "TrelloGateway":
        return cls(
            key=settings.trello_key,
            token=settings.trello_token,
            active_list_id=settings.trello_active_list_id,
            intake_list_id=settings.trello_intake_list_id,
            board_ids=settings.trello_board_ids,
            base_url=settings.trello_api_base,
            timeout=settings.trello_timeout_seconds,
            client=client,
        )

    @property
    def board_ids(self) -> tuple[str, ...]:
        return self._board_ids

    def close(self) -> None:
        self._client.close()

    def get_card(self, card_id: str) -> ExternalTicket | None:
        """Fetch a card by id; None when Trello does not know it."""

        try:
            response = self._request("GET", f"/cards/{card_id}", headers={"Accept": "application/json"})
        except TicketNotFound:
            return None
        return ExternalTicket.from_payload(response.json())

    def search(self, query: str, board_ids: Sequence[str] | None = None) -> ExternalTicket | None:
        """Return the first open card in the active list matching *query*."""

        boards = list(board_ids if board_ids is not None else self._board_ids)
        params: Dict[str, Any] = {
            "query": query,
            "modelTypes": "cards",
            "card_fields": SEARCH_CARD_FIELDS,
            "cards_limit": SEARCH_CARDS_LIMIT,
        }
        if boards:
            params["idBoards"] = ",".join(boards)

        response = self._request("GET", "/search", params=params)
        cards = response.json().get("cards") or []
        ticket = select_active_card(cards, self._active_list_id)
        self._log.info(
            "trello_search_completed",
            query=query,
            results=len(cards),
            matched=ticket.id if ticket else None,
        )
        return ticket

    def create(
        self,
        title: str,
        description: str,
        labels: Sequence[str] = (),
        member_ids: Sequence[str] = (),
    ) -> ExternalTicket:
        """File a new card in the intake list."""

        payload: Dict[str, Any] = {
            "name": title,
            "desc": description,
            "idList": self._intake_list_id,
        }
        if labels:
            payload["idLabels"] = list(labels)
        if member_ids:
            payload["idMembers"] = list(member_ids)
        try:
            response = self._request("POST", "/cards", json=payload)
        except TicketServiceError as exc:
            raise TicketCreateFailed(exc, status_code=exc.status_code) from exc

        ticket = ExternalTicket.from_payload(response.json())
        self._log.info("trello_card_created", card_id=ticket.id, url=ticket.url)
        return ticket

    def comment(self, ticket_id: str, text: str) -> None:
        """Append a comment to a card; raises TicketNotFound for unknown cards."""

        try:
            self._request("POST", f"/cards/{ticket_id}/actions/comments", json={"text": text})
        except TicketNotFound:
            raise
        except TicketServiceError as exc:
            raise TicketCreateFailed(exc, status_code=exc.status_code) from exc

        self._log.info("trello_comment_added", card_id=ticket_id)

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        params = dict(kwargs.pop("params", None) or {})
        params.update(self._credentials)
        try:
            response = self._client.request(method, path, params=params, **kwargs)
        except httpx.HTTPError as exc:
            self._log.error("trello_request_failed", method=method, path=path, error=str(exc))
            raise TicketServiceError(f"Trello {method} {path} failed: {exc}") from exc

        if response.status_code == 404:
            raise TicketNotFound(f"Trello {method} {path} returned 404", status_code=404)
        if response.is_error:
            self._log.error(
                "trello_request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise TicketServiceError(
                f"Trello {method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response
