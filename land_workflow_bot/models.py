"""SQLAlchemy models for the district manager roster."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from land_workflow_bot.db import Base


class ManagerAssignment(Base):
    """Assigns a Slack user to a district together with their Trello member id."""

    __tablename__ = "district_managers"
    __table_args__ = (
        UniqueConstraint("slack_user_id", "district", name="uq_district_managers_user_district"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slack_user_id: Mapped[str] = mapped_column(String(32), nullable=False)
    district: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    trello_member_id: Mapped[str] = mapped_column(String(64), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    def __repr__(self) -> str:
        return (
            f"ManagerAssignment(slack_user_id={self.slack_user_id!r}, "
            f"district={self.district!r}, trello_member_id={self.trello_member_id!r})"
        )
