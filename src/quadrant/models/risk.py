"""Risk case model."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from quadrant.models.base import Base, TimestampMixin, id_column
from quadrant.timeutil import now_iso

RISK_LEVELS = ("low", "medium", "high")
RISK_STATUSES = ("open", "monitoring", "resolved")
OPEN_RISK_STATUSES = ("open", "monitoring")
RISK_LEVEL_RANK = {"low": 1, "medium": 2, "high": 3}


class RiskCase(Base, TimestampMixin):
    """Tracked attrition or coverage risk for one employee."""

    __tablename__ = "risk_cases"

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
    level: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")
    source: Mapped[str] = mapped_column(String, nullable=False, default="manual")
    title: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    recommendation: Mapped[str | None] = mapped_column(String, nullable=True)
    pilot_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("pilot_runs.id", ondelete="SET NULL"),
        nullable=True,
    )
    owner_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    created_by_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    detected_at: Mapped[str] = mapped_column(String(32), nullable=False, default=now_iso)
    resolved_at: Mapped[str | None] = mapped_column(String(32), nullable=True)
    resolution_note: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("level IN ('low', 'medium', 'high')", name="risk_case_level_check"),
        CheckConstraint(
            "status IN ('open', 'monitoring', 'resolved')",
            name="risk_case_status_check",
        ),
    )
