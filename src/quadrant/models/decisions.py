"""Talent decision and notification models."""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from quadrant.models.base import Base, CreatedAtMixin, TimestampMixin, id_column

OPEN_DECISION_STATUSES = ("proposed", "approved")
CLOSED_DECISION_STATUSES = ("implemented", "rejected")


class TalentDecision(Base, TimestampMixin):
    """A people decision (promote, role change, monitor risk, ...)."""

    __tablename__ = "talent_decisions"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # promote | lateral_move | role_change | develop | monitor_risk | no_action
    type: Mapped[str] = mapped_column(String, nullable=False)
    # proposed | approved | implemented | rejected
    status: Mapped[str] = mapped_column(String, nullable=False, default="proposed")
    priority: Mapped[str] = mapped_column(String, nullable=False, default="medium")
    # pilot | report | meeting | manual
    source_type: Mapped[str] = mapped_column(String, nullable=False, default="manual")
    source_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    rationale: Mapped[str] = mapped_column(String, nullable=False, default="")
    risks: Mapped[str | None] = mapped_column(String, nullable=True)
    timeframe: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by_user_id: Mapped[str] = mapped_column(String(36), nullable=False)


class Notification(Base, CreatedAtMixin):
    """In-app notification for one user."""

    __tablename__ = "notifications"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    body: Mapped[str] = mapped_column(String, nullable=False, default="")
    entity_type: Mapped[str | None] = mapped_column(String, nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    url: Mapped[str | None] = mapped_column(String, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[str | None] = mapped_column(String(32), nullable=True)
    expires_at: Mapped[str | None] = mapped_column(String(32), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
