"""Move scenario models."""

from __future__ import annotations

from sqlalchemy import Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quadrant.models.base import Base, CreatedAtMixin, TimestampMixin, id_column

MOVE_ACTION_TYPES = ("hire", "develop", "reassign", "promote", "backfill")
MOVE_SCENARIO_STATUSES = ("draft", "review", "approved", "archived")


class MoveScenario(Base, TimestampMixin):
    """A proposed set of hire/develop/promote actions."""

    __tablename__ = "move_scenarios"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    created_by_user_id: Mapped[str] = mapped_column(String(36), nullable=False)

    actions: Mapped[list[MoveScenarioAction]] = relationship(
        back_populates="scenario",
        cascade="all, delete-orphan",
        order_by="MoveScenarioAction.position",
    )


class MoveScenarioAction(Base, CreatedAtMixin):
    __tablename__ = "move_scenario_actions"

    id: Mapped[str] = id_column()
    scenario_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("move_scenarios.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String, nullable=False, default="develop")
    team_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    from_employee_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    to_employee_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    job_role_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    skill_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    priority: Mapped[str] = mapped_column(String, nullable=False, default="medium")
    estimated_time_months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    estimated_cost_hire: Mapped[float | None] = mapped_column(Float, nullable=True)
    estimated_cost_develop: Mapped[float | None] = mapped_column(Float, nullable=True)
    impact_on_risk: Mapped[str | None] = mapped_column(String, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    scenario: Mapped[MoveScenario] = relationship(back_populates="actions")
