"""Schema capability checks.

A deployment may run against a database where optional tables have not been
provisioned yet, or an operator may switch an area off with
``QUADRANT_DISABLED_FEATURES``. Services ask :class:`SchemaCapabilities`
before touching optional tables instead of catching database errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Tables each optional feature needs
FEATURE_TABLES: dict[str, tuple[str, ...]] = {
    "risk_center": ("risk_cases",),
    "artifacts": ("artifacts", "artifact_skills"),
    "meetings": ("meeting_agendas", "meeting_agenda_items"),
    "feedback": ("feedback_surveys", "feedback_responses"),
    "pilots": ("pilot_runs", "pilot_run_steps", "pilot_run_teams"),
    "decisions": ("talent_decisions",),
    "one_on_ones": ("one_on_ones",),
    "goals": ("development_goals", "development_goal_checkins"),
}


@dataclass(frozen=True)
class SchemaCapabilities:
    """Which optional features are usable for the current database."""

    tables: frozenset[str]
    disabled_features: frozenset[str] = frozenset()

    def supports(self, feature: str) -> bool:
        if feature in self.disabled_features:
            return False
        required = FEATURE_TABLES.get(feature)
        if required is None:
            raise KeyError(f"Unknown feature: {feature}")
        return all(table in self.tables for table in required)

    @classmethod
    def all_enabled(cls) -> SchemaCapabilities:
        """Capabilities for a fully provisioned schema."""
        tables = {table for group in FEATURE_TABLES.values() for table in group}
        return cls(tables=frozenset(tables))


async def inspect_capabilities(
    session: AsyncSession,
    settings: Settings | None = None,
) -> SchemaCapabilities:
    """Inspect the live connection for table presence."""
    settings = settings or get_settings()

    def _table_names(sync_session) -> list[str]:
        return inspect(sync_session.connection()).get_table_names()

    tables = frozenset(await session.run_sync(_table_names))
    capabilities = SchemaCapabilities(
        tables=tables,
        disabled_features=settings.disabled_features,
    )
    missing = [f for f in FEATURE_TABLES if not capabilities.supports(f)]
    if missing:
        logger.debug("Optional features unavailable: %s", ", ".join(sorted(missing)))
    return capabilities
