"""Talent decisions about individual employees."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import Employee, MeetingAgenda, PilotRun, QuarterlyReport, TalentDecision, Track
from quadrant.models.decisions import OPEN_DECISION_STATUSES
from quadrant.services.notification_service import NotificationService
from quadrant.timeutil import now_iso

logger = logging.getLogger(__name__)

UNKNOWN_EMPLOYEE = "Unknown"


@dataclass
class DecisionFilters:
    employee_id: str | None = None
    statuses: list[str] | None = None
    types: list[str] | None = None
    team_id: str | None = None
    only_open: bool = False
    source_type: str | None = None
    source_id: str | None = None


@dataclass
class DecisionView:
    """A decision joined with its employee, team and source label."""

    decision: TalentDecision
    employee_name: str
    employee_role: str | None
    team_id: str | None
    team_name: str | None
    source_label: str | None = None


class TalentDecisionService:
    def __init__(self, session: AsyncSession, notifications: NotificationService | None = None):
        self.session = session
        self.notifications = notifications or NotificationService(session)

    def _base_query(self, workspace_id: str):
        return (
            select(
                TalentDecision,
                Employee.name,
                Employee.position,
                Employee.primary_track_id,
                Track.name,
            )
            .outerjoin(Employee, TalentDecision.employee_id == Employee.id)
            .outerjoin(Track, Employee.primary_track_id == Track.id)
            .where(TalentDecision.workspace_id == workspace_id)
        )

    async def _source_labels(self, decisions: list[TalentDecision]) -> dict[tuple[str, str], str]:
        wanted: dict[str, list[str]] = {}
        for decision in decisions:
            if decision.source_id:
                wanted.setdefault(decision.source_type, []).append(decision.source_id)

        labels: dict[tuple[str, str], str] = {}
        sources = (
            ("pilot", PilotRun.id, PilotRun.name),
            ("report", QuarterlyReport.id, QuarterlyReport.title),
            ("meeting", MeetingAgenda.id, MeetingAgenda.title),
        )
        for source_type, id_column, label_column in sources:
            ids = wanted.get(source_type)
            if not ids:
                continue
            result = await self.session.execute(select(id_column, label_column).where(id_column.in_(ids)))
            for source_id, label in result.all():
                labels[(source_type, source_id)] = label
        return labels

    async def _views(self, rows) -> list[DecisionView]:
        labels = await self._source_labels([row[0] for row in rows])
        return [
            DecisionView(
                decision=decision,
                employee_name=employee_name or UNKNOWN_EMPLOYEE,
                employee_role=employee_role,
                team_id=team_id,
                team_name=team_name,
                source_label=labels.get((decision.source_type, decision.source_id)),
            )
            for decision, employee_name, employee_role, team_id, team_name in rows
        ]

    async def get_decision(self, workspace_id: str, decision_id: str) -> DecisionView | None:
        result = await self.session.execute(
            self._base_query(workspace_id).where(TalentDecision.id == decision_id).limit(1)
        )
        rows = result.all()
        if not rows:
            return None
        return (await self._views(rows))[0]

    async def list_decisions(self, workspace_id: str, filters: DecisionFilters | None = None) -> list[DecisionView]:
        """Decisions newest first; explicit statuses win over ``only_open``."""
        filters = filters or DecisionFilters()
        query = self._base_query(workspace_id)
        if filters.employee_id:
            query = query.where(TalentDecision.employee_id == filters.employee_id)
        if filters.statuses:
            query = query.where(TalentDecision.status.in_(filters.statuses))
        elif filters.only_open:
            query = query.where(TalentDecision.status.in_(OPEN_DECISION_STATUSES))
        if filters.types:
            query = query.where(TalentDecision.type.in_(filters.types))
        if filters.team_id:
            query = query.where(Employee.primary_track_id == filters.team_id)
        if filters.source_type:
            query = query.where(TalentDecision.source_type == filters.source_type)
        if filters.source_id:
            query = query.where(TalentDecision.source_id == filters.source_id)
        result = await self.session.execute(query.order_by(TalentDecision.created_at.desc()))
        return await self._views(result.all())

    async def create_decision(
        self,
        workspace_id: str,
        created_by_user_id: str,
        employee_id: str,
        type: str,
        title: str,
        rationale: str = "",
        source_type: str = "manual",
        source_id: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        risks: str | None = None,
        timeframe: str | None = None,
    ) -> DecisionView:
        employee = await self.session.get(Employee, employee_id)
        if employee is None or employee.workspace_id != workspace_id:
            raise ServiceError(ErrorCode.EMPLOYEE_NOT_FOUND)

        decision = TalentDecision(
            workspace_id=workspace_id,
            employee_id=employee_id,
            type=type,
            status=status or "proposed",
            priority=priority or "medium",
            source_type=source_type,
            source_id=source_id,
            title=title,
            rationale=rationale,
            risks=risks,
            timeframe=timeframe,
            created_by_user_id=created_by_user_id,
        )
        self.session.add(decision)
        await self.session.flush()
        view = await self.get_decision(workspace_id, decision.id)

        if type == "monitor_risk":
            try:
                async with self.session.begin_nested():
                    await self.notifications.create(
                        workspace_id=workspace_id,
                        user_id=created_by_user_id,
                        type="risk_employee",
                        title=f"Employee at risk: {view.employee_name}",
                        body=title,
                        entity_type="employee",
                        entity_id=employee_id,
                        url=f"/app/employee/{employee_id}",
                    )
            except Exception:
                logger.warning("decision_notification_failed decision=%s", decision.id, exc_info=True)
        return view

    async def update_status(self, workspace_id: str, decision_id: str, status: str) -> DecisionView:
        decision = await self.session.scalar(
            select(TalentDecision).where(
                TalentDecision.id == decision_id,
                TalentDecision.workspace_id == workspace_id,
            )
        )
        if decision is None:
            raise ServiceError(ErrorCode.TALENT_DECISION_NOT_FOUND)
        decision.status = status
        decision.updated_at = now_iso()
        await self.session.flush()
        return await self.get_decision(workspace_id, decision_id)
