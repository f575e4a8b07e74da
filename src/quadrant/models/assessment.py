"""Assessment cycle models."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from quadrant.models.base import Base, TimestampMixin, id_column


class AssessmentCycle(Base, TimestampMixin):
    """A time-boxed self/manager/final rating workflow (draft → active → closed)."""

    __tablename__ = "assessment_cycles"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    starts_at: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ends_at: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_by_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class AssessmentCycleTeam(Base):
    __tablename__ = "assessment_cycle_teams"

    cycle_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("assessment_cycles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    team_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tracks.id", ondelete="CASCADE"),
        primary_key=True,
    )


class AssessmentCycleParticipant(Base, TimestampMixin):
    """An employee taking part in a cycle, with independent sub-statuses."""

    __tablename__ = "assessment_cycle_participants"

    id: Mapped[str] = id_column()
    cycle_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("assessment_cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    manager_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    # not_started | in_progress | submitted
    self_status: Mapped[str] = mapped_column(String, nullable=False, default="not_started")
    # not_assigned | in_progress | approved
    manager_status: Mapped[str] = mapped_column(String, nullable=False, default="not_assigned")
    # not_started | in_progress | completed
    final_status: Mapped[str] = mapped_column(String, nullable=False, default="not_started")

    __table_args__ = (
        UniqueConstraint("cycle_id", "employee_id", name="uq_cycle_participant"),
    )


class SkillAssessment(Base, TimestampMixin):
    """Self, manager and final level of one skill for one employee in a cycle."""

    __tablename__ = "skill_assessments"

    id: Mapped[str] = id_column()
    cycle_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("assessment_cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    skill_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("skills.id", ondelete="CASCADE"),
        nullable=False,
    )
    self_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    manager_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    final_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    self_comment: Mapped[str | None] = mapped_column(String, nullable=True)
    manager_comment: Mapped[str | None] = mapped_column(String, nullable=True)
    # not_started | self_submitted | manager_review | finalized
    status: Mapped[str] = mapped_column(String, nullable=False, default="not_started")

    __table_args__ = (
        UniqueConstraint("cycle_id", "employee_id", "skill_id", name="uq_skill_assessment"),
    )

    @property
    def effective_level(self) -> int | None:
        """Final level, else manager level, else self level."""
        for level in (self.final_level, self.manager_level, self.self_level):
            if level is not None:
                return level
        return None
