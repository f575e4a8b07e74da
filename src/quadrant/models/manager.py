"""Models behind the manager workflows: 1:1s, goals, feedback, meetings, reports."""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from quadrant.models.base import Base, CreatedAtMixin, TimestampMixin, id_column


class OneOnOne(Base, TimestampMixin):
    """A scheduled 1:1 between a manager (user) and an employee."""

    __tablename__ = "one_on_ones"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    manager_user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    scheduled_at: Mapped[str] = mapped_column(String(32), nullable=False)
    # scheduled | rescheduled | completed | cancelled
    status: Mapped[str] = mapped_column(String, nullable=False, default="scheduled")
    notes: Mapped[str | None] = mapped_column(String, nullable=True)


class DevelopmentGoal(Base, TimestampMixin):
    __tablename__ = "development_goals"

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
    title: Mapped[str] = mapped_column(String, nullable=False)
    # active | completed | cancelled
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    # 1 high, 2 medium, 3 low
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    due_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_by_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class DevelopmentGoalCheckin(Base, CreatedAtMixin):
    __tablename__ = "development_goal_checkins"

    id: Mapped[str] = id_column()
    goal_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("development_goals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    note: Mapped[str | None] = mapped_column(String, nullable=True)


class FeedbackSurvey(Base, TimestampMixin):
    __tablename__ = "feedback_surveys"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    # draft | active | closed
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    end_date: Mapped[str | None] = mapped_column(String(32), nullable=True)


class FeedbackResponse(Base, TimestampMixin):
    """A survey response slot; ``respondent_id`` is an employee or user id."""

    __tablename__ = "feedback_responses"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    survey_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("feedback_surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    respondent_id: Mapped[str] = mapped_column(String(36), nullable=False)
    # pending | in_progress | submitted
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    submitted_at: Mapped[str | None] = mapped_column(String(32), nullable=True)


class MeetingAgenda(Base, TimestampMixin):
    __tablename__ = "meeting_agendas"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    # team | pilot_review | other
    type: Mapped[str] = mapped_column(String, nullable=False, default="other")
    scheduled_at: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_by_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class MeetingAgendaItem(Base):
    __tablename__ = "meeting_agenda_items"

    id: Mapped[str] = id_column()
    agenda_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("meeting_agendas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String, nullable=False, default="")
    related_team_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    related_pilot_run_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class QuarterlyReport(Base, TimestampMixin):
    """Per-quarter people and skills report (one per workspace and quarter)."""

    __tablename__ = "quarterly_reports"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    quarter: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    notes: Mapped[str | None] = mapped_column(String, nullable=True)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    generated_at: Mapped[str | None] = mapped_column(String(32), nullable=True)
    generated_by_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    __table_args__ = (
        UniqueConstraint("workspace_id", "year", "quarter", name="uq_quarterly_report_period"),
    )
