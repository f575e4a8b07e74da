"""Development quest models."""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from quadrant.models.base import Base, TimestampMixin, id_column
from quadrant.timeutil import now_iso


class Quest(Base, TimestampMixin):
    """A development quest made of ordered steps."""

    __tablename__ = "quests"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False, default="")
    # draft | active | completed | archived
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    owner_employee_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    related_team_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    goal_type: Mapped[str] = mapped_column(String, nullable=False, default="upskill")
    priority: Mapped[str] = mapped_column(String, nullable=False, default="medium")


class QuestStep(Base):
    __tablename__ = "quest_steps"

    id: Mapped[str] = id_column()
    quest_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("quests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False, default="")
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    related_skill_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    suggested_artifacts_count: Mapped[int | None] = mapped_column(Integer, nullable=True)


class QuestAssignment(Base):
    """A quest assigned to one employee (invited → in_progress → completed)."""

    __tablename__ = "quest_assignments"

    id: Mapped[str] = id_column()
    quest_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("quests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mentor_employee_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="invited")
    assigned_at: Mapped[str] = mapped_column(String(32), nullable=False, default=now_iso)
    started_at: Mapped[str | None] = mapped_column(String(32), nullable=True)
    completed_at: Mapped[str | None] = mapped_column(String(32), nullable=True)


class QuestStepProgress(Base):
    __tablename__ = "quest_step_progress"

    id: Mapped[str] = id_column()
    quest_assignment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("quest_assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("quest_steps.id", ondelete="CASCADE"),
        nullable=False,
    )
    # not_started | in_progress | done
    status: Mapped[str] = mapped_column(String, nullable=False, default="not_started")
    notes: Mapped[str | None] = mapped_column(String, nullable=True)
    updated_at: Mapped[str] = mapped_column(String(32), nullable=False, default=now_iso)
