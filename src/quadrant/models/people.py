"""Employee, team (track) and skill models."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quadrant.models.base import Base, CreatedAtMixin, TimestampMixin, id_column

EMPLOYEE_LEVELS = ("Junior", "Middle", "Senior")
SKILL_TYPES = ("hard", "soft", "product", "data")


class Track(Base, CreatedAtMixin):
    """A team and its leveling ladder.

    ``manager_user_id`` names the user who manages the team; a manager's team
    is resolved through this key only.
    """

    __tablename__ = "tracks"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    manager_user_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    levels: Mapped[list[TrackLevel]] = relationship(
        back_populates="track",
        order_by="TrackLevel.order_index",
        cascade="all, delete-orphan",
    )


class TrackLevel(Base):
    """One rung of a track's leveling ladder."""

    __tablename__ = "track_levels"

    id: Mapped[str] = id_column()
    track_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tracks.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    track: Mapped[Track] = relationship(back_populates="levels")


class Employee(Base, TimestampMixin):
    """Employee record."""

    __tablename__ = "employees"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[str | None] = mapped_column(String, nullable=True)
    level: Mapped[str] = mapped_column(String, nullable=False, default="Junior")
    primary_track_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("tracks.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    track_level_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("track_levels.id", ondelete="SET NULL"),
        nullable=True,
    )
    user_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            "level IN ('Junior', 'Middle', 'Senior')",
            name="employee_level_check",
        ),
    )


class Skill(Base, CreatedAtMixin):
    """A skill tracked in a workspace."""

    __tablename__ = "skills"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False, default="hard")

    __table_args__ = (
        CheckConstraint(
            "type IN ('hard', 'soft', 'product', 'data')",
            name="skill_type_check",
        ),
    )


class EmployeeSkill(Base):
    """Employee to skill assignment with a 1-5 level."""

    __tablename__ = "employee_skills"

    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        primary_key=True,
    )
    skill_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("skills.id", ondelete="CASCADE"),
        primary_key=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("level BETWEEN 1 AND 5", name="employee_skill_level_check"),
    )


class Artifact(Base, CreatedAtMixin):
    """Evidence of work (document, repository, talk) linked to skills and people."""

    __tablename__ = "artifacts"

    id: Mapped[str] = id_column()
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    url: Mapped[str | None] = mapped_column(String, nullable=True)


class ArtifactAssignee(Base):
    __tablename__ = "artifact_assignees"

    artifact_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("artifacts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        primary_key=True,
    )


class ArtifactSkill(Base):
    __tablename__ = "artifact_skills"

    artifact_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("artifacts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    skill_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("skills.id", ondelete="CASCADE"),
        primary_key=True,
    )
