"""Pilot run models."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from quadrant.models.base import Base, CreatedAtMixin, TimestampMixin, id_column


class PilotRun(Base, TimestampMixin):
    """A time-boxed trial engagement with an ordered step checklist."""

    __tablename__ = "pilot_runs"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    # draft | planned | active | completed | cancelled | archived
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    owner_user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # manual | template
    origin: Mapped[str] = mapped_column(String, nullable=False, default="manual")
    target_cycle_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("assessment_cycles.id", ondelete="SET NULL"),
        nullable=True,
    )
    start_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    end_date: Mapped[str | None] = mapped_column(String(32), nullable=True)


class PilotRunTeam(Base):
    __tablename__ = "pilot_run_teams"

    pilot_run_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("pilot_runs.id", ondelete="CASCADE"),
        primary_key=True,
    )
    team_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tracks.id", ondelete="CASCADE"),
        primary_key=True,
    )


class PilotRunStep(Base):
    """One checklist step of a pilot run (not_started → in_progress → done)."""

    __tablename__ = "pilot_run_steps"

    id: Mapped[str] = id_column()
    pilot_run_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("pilot_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    key: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="not_started")
    due_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    completed_at: Mapped[str | None] = mapped_column(String(32), nullable=True)


class PilotRunParticipant(Base, CreatedAtMixin):
    __tablename__ = "pilot_run_participants"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    pilot_run_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("pilot_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("pilot_run_id", "employee_id", name="uq_pilot_participant"),
    )


class PilotRunNote(Base, CreatedAtMixin):
    """Free-form note on a pilot run (meeting, insight, risk, decision)."""

    __tablename__ = "pilot_run_notes"

    id: Mapped[str] = id_column()
    pilot_run_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("pilot_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False, default="insight")
    title: Mapped[str] = mapped_column(String, nullable=False)
    body: Mapped[str] = mapped_column(String, nullable=False)
    related_team_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    related_scenario_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
