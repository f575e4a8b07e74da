"""Manager command center snapshot."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.capabilities import SchemaCapabilities
from quadrant.config import AgendaPolicy, get_settings
from quadrant.models import Employee, PilotRun, PilotRunStep, RiskCase
from quadrant.models.risk import OPEN_RISK_STATUSES, RISK_LEVEL_RANK
from quadrant.numbers import round_half_up
from quadrant.services.agenda_service import OPEN_STEP_STATUSES, AgendaService
from quadrant.services.notification_service import NotificationService
from quadrant.services.risk_case_service import RiskCaseService
from quadrant.services.types import (
    CommandCenterCounters,
    CommandCenterSnapshot,
    NotificationPreview,
    PilotHighlight,
    RiskHighlight,
    UpcomingItem,
)
from quadrant.timeutil import start_of_day, to_iso, utc_now

logger = logging.getLogger(__name__)

ACTIVE_PILOT_STATUSES = ("draft", "planned", "active")

UPCOMING_KIND = {
    "pilot_review": "pilot_step",
    "meeting": "one_on_one",
    "decision_deadline": "report_deadline",
    "risk_check": "report_deadline",
}


class CommandCenterService:
    """Counters, upcoming items, risks, pilots and notifications for a manager."""

    def __init__(
        self,
        session: AsyncSession,
        capabilities: SchemaCapabilities | None = None,
        policy: AgendaPolicy | None = None,
    ):
        self.session = session
        self.capabilities = capabilities or SchemaCapabilities.all_enabled()
        self.policy = policy or get_settings().agenda
        self.agenda = AgendaService(session, capabilities=self.capabilities, policy=self.policy)
        self.risk_cases = RiskCaseService(session, capabilities=self.capabilities)
        self.notifications = NotificationService(session)

    async def get_snapshot(
        self,
        workspace_id: str,
        manager_user_id: str,
        lookahead_days: int | None = None,
        now: datetime | None = None,
    ) -> CommandCenterSnapshot:
        now = now or utc_now()
        days = max(1, lookahead_days if lookahead_days is not None else self.policy.default_lookahead_days)
        start = start_of_day(now)
        return CommandCenterSnapshot(
            summary=await self._summary(workspace_id, manager_user_id, now),
            upcoming=await self._upcoming(workspace_id, manager_user_id, start, start + timedelta(days=days), now),
            risks=await self._risks(workspace_id, manager_user_id),
            pilots=await self._pilots(workspace_id, manager_user_id),
            notifications=await self._notifications(workspace_id, manager_user_id),
        )

    async def _owned_pilots(self, workspace_id: str, manager_user_id: str) -> list[PilotRun]:
        if not self.capabilities.supports("pilots"):
            return []
        result = await self.session.execute(
            select(PilotRun).where(
                PilotRun.workspace_id == workspace_id,
                PilotRun.owner_user_id == manager_user_id,
                PilotRun.status != "archived",
            )
        )
        return list(result.scalars())

    async def _summary(self, workspace_id: str, manager_user_id: str, now: datetime) -> CommandCenterCounters:
        employees_total = await self.session.scalar(
            select(func.count()).select_from(Employee).where(Employee.workspace_id == workspace_id)
        )

        employees_at_risk = 0
        if self.risk_cases.available:
            employees_at_risk = await self.session.scalar(
                select(func.count())
                .select_from(RiskCase)
                .where(
                    RiskCase.workspace_id == workspace_id,
                    RiskCase.owner_user_id == manager_user_id,
                    RiskCase.status.in_(OPEN_RISK_STATUSES),
                )
            )

        pilots = await self._owned_pilots(workspace_id, manager_user_id)
        active = [pilot for pilot in pilots if pilot.status in ACTIVE_PILOT_STATUSES]

        overdue_steps = 0
        if pilots:
            overdue_steps = await self.session.scalar(
                select(func.count())
                .select_from(PilotRunStep)
                .join(PilotRun, PilotRunStep.pilot_run_id == PilotRun.id)
                .where(
                    PilotRun.workspace_id == workspace_id,
                    PilotRun.owner_user_id == manager_user_id,
                    PilotRunStep.due_date < to_iso(now),
                    PilotRunStep.status.in_(OPEN_STEP_STATUSES),
                )
            )

        return CommandCenterCounters(
            employees_total=employees_total or 0,
            employees_at_risk=employees_at_risk or 0,
            pilots_active=len(active),
            pilots_from_templates=sum(1 for pilot in active if pilot.origin == "template"),
            pilot_steps_overdue=overdue_steps or 0,
        )

    async def _upcoming(
        self,
        workspace_id: str,
        manager_user_id: str,
        start: datetime,
        end: datetime,
        now: datetime,
    ) -> list[UpcomingItem]:
        days = await self.agenda.get_manager_agenda(workspace_id, manager_user_id, start, end, now=now)
        items = [
            UpcomingItem(
                id=item.id,
                kind=UPCOMING_KIND.get(item.kind, "custom"),
                title=item.title,
                due_date=day.date,
                employee_id=item.employee_id,
                employee_name=item.employee_name,
                url=item.url,
            )
            for day in days
            for item in day.items
        ]
        items.sort(key=lambda item: item.due_date)
        return items[:20]

    async def _risks(self, workspace_id: str, manager_user_id: str) -> list[RiskHighlight]:
        page = await self.risk_cases.list_cases(
            workspace_id,
            statuses=list(OPEN_RISK_STATUSES),
            owner_user_id=manager_user_id,
            limit=5,
        )
        cases = sorted(page.items, key=lambda case: case.detected_at, reverse=True)
        cases.sort(key=lambda case: RISK_LEVEL_RANK.get(case.level, 0), reverse=True)
        return [
            RiskHighlight(
                case_id=case.id,
                employee_id=case.employee_id,
                employee_name=case.employee_name,
                level=case.level,
                status=case.status,
                title=case.title,
                detected_at=case.detected_at,
                url=f"/app/risk-center?caseId={case.id}",
            )
            for case in cases[:5]
        ]

    async def _pilots(self, workspace_id: str, manager_user_id: str) -> list[PilotHighlight]:
        pilots = await self._owned_pilots(workspace_id, manager_user_id)
        if not pilots:
            return []
        result = await self.session.execute(
            select(PilotRunStep.pilot_run_id, PilotRunStep.status).where(
                PilotRunStep.pilot_run_id.in_([pilot.id for pilot in pilots])
            )
        )
        totals: dict[str, list[int]] = {}
        for pilot_id, status in result.all():
            counts = totals.setdefault(pilot_id, [0, 0])
            counts[0] += 1
            if status == "done":
                counts[1] += 1

        pilots.sort(key=lambda pilot: pilot.updated_at or "", reverse=True)
        highlights = []
        for pilot in pilots[:5]:
            total, done = totals.get(pilot.id, (0, 0))
            highlights.append(
                PilotHighlight(
                    pilot_id=pilot.id,
                    title=pilot.name,
                    status=pilot.status,
                    progress_percent=int(round_half_up(done / total * 100, 0)) if total else None,
                    is_from_template=pilot.origin == "template",
                    url=f"/app/pilot/{pilot.id}",
                    end_date=pilot.end_date,
                )
            )
        return highlights

    async def _notifications(self, workspace_id: str, user_id: str) -> list[NotificationPreview]:
        page = await self.notifications.list_for_user(workspace_id, user_id, limit=10)
        return [
            NotificationPreview(
                id=item.id,
                type=item.type,
                title=item.title,
                created_at=item.created_at,
                is_read=item.is_read,
                url=item.url,
            )
            for item in page.items
        ]
