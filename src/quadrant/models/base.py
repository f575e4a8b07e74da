"""Base model class for SQLAlchemy ORM."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from quadrant.timeutil import now_iso


def new_id() -> str:
    """Generate a primary key."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        str: String,
    }

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary keyed by attribute name."""
        return {
            attr.key: getattr(self, attr.key)
            for attr in self.__mapper__.column_attrs
        }


def id_column() -> Mapped[str]:
    return mapped_column(String(36), primary_key=True, default=new_id)


class CreatedAtMixin:
    """Mixin for models with an ISO created_at timestamp."""

    created_at: Mapped[str] = mapped_column(String(32), default=now_iso, nullable=False)


class TimestampMixin(CreatedAtMixin):
    """Mixin for models with ISO created_at and updated_at timestamps."""

    updated_at: Mapped[str] = mapped_column(
        String(32),
        default=now_iso,
        onupdate=now_iso,
        nullable=False,
    )
