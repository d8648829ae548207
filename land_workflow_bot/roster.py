"""Query and command gateway over the district manager roster."""

from __future__ import annotations

import enum
from typing import List

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from land_workflow_bot.db import Database
from land_workflow_bot.errors import StoreUnavailable
from land_workflow_bot.models import ManagerAssignment


class RosterResult(str, enum.Enum):
    ADDED = "added"
    ALREADY_ASSIGNED = "already_assigned"
    REMOVED = "removed"
    NOT_ASSIGNED = "not_assigned"


class ManagerRoster:
    """Typed access to manager assignments.

    Every call re-reads the store; assignments may be edited by administrators
    while a workflow is running. Store failures surface as ``StoreUnavailable``.
    """

    def __init__(self, database: Database) -> None:
        self._database = database
        self._log = structlog.get_logger(__name__)

    def managers_for(self, district: str) -> List[ManagerAssignment]:
        """Return the managers assigned to *district*; empty when there are none."""

        try:
            with self._database.session_scope() as session:
                rows = list(
                    session.execute(
                        select(ManagerAssignment)
                        .where(ManagerAssignment.district == district)
                        .order_by(ManagerAssignment.assigned_at, ManagerAssignment.id)
                    ).scalars()
                )
                session.expunge_all()
                return rows
        except SQLAlchemyError as exc:
            self._log.error("roster_query_failed", district=district, error=str(exc))
            raise StoreUnavailable(f"Unable to load managers for {district}") from exc

    def add_manager(self, user_id: str, district: str, trello_member_id: str) -> RosterResult:
        try:
            with self._database.session_scope() as session:
                existing = self._find(session, user_id, district)
                if existing is not None:
                    return RosterResult.ALREADY_ASSIGNED

                session.add(
                    ManagerAssignment(
                        slack_user_id=user_id,
                        district=district,
                        trello_member_id=trello_member_id,
                    )
                )
                session.flush()
        except IntegrityError:
            # another writer inserted the same pair between our read and insert
            self._log.info("roster_insert_raced", user_id=user_id, district=district)
            return RosterResult.ALREADY_ASSIGNED
        except SQLAlchemyError as exc:
            self._log.error("roster_insert_failed", user_id=user_id, district=district, error=str(exc))
            raise StoreUnavailable(f"Unable to add manager to {district}") from exc

        self._log.info("roster_manager_added", user_id=user_id, district=district)
        return RosterResult.ADDED

    def remove_manager(self, user_id: str, district: str) -> RosterResult:
        try:
            with self._database.session_scope() as session:
                existing = self._find(session, user_id, district)
                if existing is None:
                    return RosterResult.NOT_ASSIGNED
                session.delete(existing)
        except SQLAlchemyError as exc:
            self._log.error("roster_delete_failed", user_id=user_id, district=district, error=str(exc))
            raise StoreUnavailable(f"Unable to remove manager from {district}") from exc

        self._log.info("roster_manager_removed", user_id=user_id, district=district)
        return RosterResult.REMOVED

    @staticmethod
    def _find(session, user_id: str, district: str) -> ManagerAssignment | None:
        return session.execute(
            select(ManagerAssignment).where(
                ManagerAssignment.slack_user_id == user_id,
                ManagerAssignment.district == district,
            )
        ).scalar_one_or_none()
