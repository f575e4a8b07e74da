"""Role profiles, skill ratings and job roles."""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quadrant.models.base import Base, CreatedAtMixin, TimestampMixin, id_column
from quadrant.timeutil import now_iso


class RoleProfile(Base, TimestampMixin):
    """A named role used as the target of skill gap computation."""

    __tablename__ = "role_profiles"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    requirements: Mapped[list[RoleProfileSkillRequirement]] = relationship(
        back_populates="role_profile",
        cascade="all, delete-orphan",
    )


class RoleProfileSkillRequirement(Base, CreatedAtMixin):
    """Required level for one skill in a role profile.

    ``skill_code`` is either a skill id or a skill name.
    """

    __tablename__ = "role_profile_skill_requirements"

    id: Mapped[str] = id_column()
    role_profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("role_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    skill_code: Mapped[str] = mapped_column(String, nullable=False)
    level_required: Mapped[int] = mapped_column(Integer, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=1)

    role_profile: Mapped[RoleProfile] = relationship(back_populates="requirements")


class EmployeeRoleAssignment(Base):
    """Links an employee to a role profile; at most one is primary."""

    __tablename__ = "employee_role_assignments"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role_profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("role_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    assigned_at: Mapped[str] = mapped_column(String(32), nullable=False, default=now_iso)


class EmployeeSkillRating(Base):
    """A rating of one skill for one employee from one source."""

    __tablename__ = "employee_skill_ratings"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    skill_code: Mapped[str] = mapped_column(String, nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String, nullable=False)
    rated_at: Mapped[str] = mapped_column(String(32), nullable=False, default=now_iso)

    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "employee_id", "skill_code", "source",
            name="uq_employee_skill_rating_source",
        ),
        CheckConstraint(
            "source IN ('self', 'manager', 'system')",
            name="employee_skill_rating_source_check",
        ),
    )


class JobRole(Base, TimestampMixin):
    """A role the move scenario generator can hire or develop for."""

    __tablename__ = "job_roles"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    level_band: Mapped[str | None] = mapped_column(String, nullable=True)
    is_leadership: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    requirements: Mapped[list[JobRoleSkillRequirement]] = relationship(
        back_populates="job_role",
        cascade="all, delete-orphan",
    )


class JobRoleSkillRequirement(Base):
    __tablename__ = "job_role_skill_requirements"

    id: Mapped[str] = id_column()
    job_role_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("job_roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    skill_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("skills.id", ondelete="CASCADE"),
        nullable=False,
    )
    required_level: Mapped[int] = mapped_column(Integer, nullable=False)
    importance: Mapped[str] = mapped_column(String, nullable=False, default="must_have")

    job_role: Mapped[JobRole] = relationship(back_populates="requirements")

    __table_args__ = (
        CheckConstraint(
            "importance IN ('must_have', 'nice_to_have')",
            name="job_role_requirement_importance_check",
        ),
    )
