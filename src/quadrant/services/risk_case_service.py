"""Risk case store.

Per-employee risk records with an idempotent upsert that escalates an open
case instead of duplicating it. High-level cases and resolutions notify the
case owner (or the workspace owner); notification failures are logged and
never reach the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.capabilities import SchemaCapabilities
from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import Employee, PilotRun, RiskCase, Workspace
from quadrant.models.risk import OPEN_RISK_STATUSES, RISK_LEVEL_RANK
from quadrant.services.notification_service import NotificationService
from quadrant.timeutil import now_iso

logger = logging.getLogger(__name__)

DEFAULT_EMPLOYEE_NAME = "Employee"
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50


@dataclass
class RiskCaseSummary:
    """A risk case joined with the employee it concerns."""

    id: str
    workspace_id: str
    employee_id: str
    employee_name: str
    employee_role: str | None
    level: str
    status: str
    source: str
    title: str
    reason: str | None
    recommendation: str | None
    pilot_id: str | None
    owner_user_id: str | None
    detected_at: str
    updated_at: str
    resolved_at: str | None = None
    resolution_note: str | None = None


@dataclass
class RiskCaseList:
    items: list[RiskCaseSummary]
    total: int
    open_count: int
    high_count: int


def _summary(case: RiskCase, employee_name: str | None, employee_role: str | None) -> RiskCaseSummary:
    return RiskCaseSummary(
        id=case.id,
        workspace_id=case.workspace_id,
        employee_id=case.employee_id,
        employee_name=employee_name or DEFAULT_EMPLOYEE_NAME,
        employee_role=employee_role,
        level=case.level,
        status=case.status,
        source=case.source,
        title=case.title,
        reason=case.reason,
        recommendation=case.recommendation,
        pilot_id=case.pilot_id,
        owner_user_id=case.owner_user_id,
        detected_at=case.detected_at,
        updated_at=case.updated_at,
        resolved_at=case.resolved_at,
        resolution_note=case.resolution_note,
    )


def _case_query():
    return select(RiskCase, Employee.name, Employee.position).outerjoin(
        Employee, RiskCase.employee_id == Employee.id
    )


class RiskCaseService:
    """CRUD and idempotent upsert of risk cases."""

    def __init__(
        self,
        session: AsyncSession,
        notifications: NotificationService | None = None,
        capabilities: SchemaCapabilities | None = None,
    ):
        self.session = session
        self.notifications = notifications or NotificationService(session)
        self.capabilities = capabilities or SchemaCapabilities.all_enabled()

    @property
    def available(self) -> bool:
        return self.capabilities.supports("risk_center")

    def _require_available(self) -> None:
        if not self.available:
            raise ServiceError(ErrorCode.RISK_CASES_NOT_AVAILABLE)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def _resolve_owner(self, workspace_id: str, provided: str | None = None) -> str | None:
        if provided:
            return provided
        workspace = await self.session.get(Workspace, workspace_id)
        return workspace.owner_user_id if workspace else None

    async def _safe_notify(self, workspace_id: str, user_id: str, type: str, title: str, body: str, url: str) -> None:
        try:
            async with self.session.begin_nested():
                await self.notifications.create(
                    workspace_id=workspace_id,
                    user_id=user_id,
                    type=type,
                    title=title,
                    body=body,
                    entity_type="risk_case",
                    url=url,
                )
        except Exception:
            logger.warning(
                "risk_case_notification_failed workspace=%s user=%s type=%s",
                workspace_id,
                user_id,
                type,
                exc_info=True,
            )

    async def _notify_high_risk(self, case: RiskCaseSummary) -> None:
        if case.level != "high":
            return
        recipient = await self._resolve_owner(case.workspace_id, case.owner_user_id)
        if not recipient:
            return
        await self._safe_notify(
            case.workspace_id,
            recipient,
            "risk_employee",
            f"High-risk: {case.employee_name}",
            case.title,
            f"/app/risk-center?caseId={case.id}",
        )

    async def _notify_resolved(self, case: RiskCaseSummary) -> None:
        if case.status != "resolved":
            return
        recipient = await self._resolve_owner(case.workspace_id, case.owner_user_id)
        if not recipient:
            return
        await self._safe_notify(
            case.workspace_id,
            recipient,
            "risk_case_resolved",
            f"Case closed: {case.title}",
            case.reason or "Case marked as resolved",
            f"/app/risk-center?caseId={case.id}",
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_case(self, workspace_id: str, case_id: str) -> RiskCaseSummary:
        """Raises RISK_CASE_NOT_FOUND or RISK_CASES_NOT_AVAILABLE."""
        self._require_available()
        result = await self.session.execute(
            _case_query().where(RiskCase.workspace_id == workspace_id, RiskCase.id == case_id)
        )
        row = result.first()
        if row is None:
            raise ServiceError(ErrorCode.RISK_CASE_NOT_FOUND)
        return _summary(*row)

    async def find_active_case(
        self,
        workspace_id: str,
        employee_id: str,
        level: str | None = None,
    ) -> RiskCaseSummary | None:
        """Newest open or monitoring case of an employee, optionally at a level."""
        if not self.available:
            return None
        query = _case_query().where(
            RiskCase.workspace_id == workspace_id,
            RiskCase.employee_id == employee_id,
            RiskCase.status.in_(OPEN_RISK_STATUSES),
        )
        if level:
            query = query.where(RiskCase.level == level)
        result = await self.session.execute(query.order_by(RiskCase.detected_at.desc()).limit(1))
        row = result.first()
        return _summary(*row) if row else None

    async def list_cases(
        self,
        workspace_id: str,
        statuses: list[str] | None = None,
        levels: list[str] | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
        owner_user_id: str | None = None,
    ) -> RiskCaseList:
        """Filtered page of cases, newest detection first.

        Defaults to open and monitoring cases. ``open_count`` and
        ``high_count`` cover the whole workspace regardless of filters.
        """
        if not self.available:
            return RiskCaseList(items=[], total=0, open_count=0, high_count=0)

        conditions = [
            RiskCase.workspace_id == workspace_id,
            RiskCase.status.in_(statuses or OPEN_RISK_STATUSES),
        ]
        if levels:
            conditions.append(RiskCase.level.in_(levels))
        if owner_user_id:
            conditions.append(RiskCase.owner_user_id == owner_user_id)
        if search:
            term = f"%{search.lower()}%"
            conditions.append(
                or_(
                    func.lower(Employee.name).like(term),
                    func.lower(RiskCase.title).like(term),
                    func.lower(RiskCase.reason).like(term),
                )
            )

        page_size = min(MAX_PAGE_SIZE, max(0, limit or DEFAULT_PAGE_SIZE))
        start = max(0, offset or 0)
        result = await self.session.execute(
            _case_query()
            .where(*conditions)
            .order_by(RiskCase.detected_at.desc())
            .limit(page_size)
            .offset(start)
        )
        items = [_summary(*row) for row in result.all()]

        total = await self.session.scalar(
            select(func.count())
            .select_from(RiskCase)
            .outerjoin(Employee, RiskCase.employee_id == Employee.id)
            .where(*conditions)
        )
        open_filter = (
            RiskCase.workspace_id == workspace_id,
            RiskCase.status.in_(OPEN_RISK_STATUSES),
        )
        open_count = await self.session.scalar(
            select(func.count()).select_from(RiskCase).where(*open_filter)
        )
        high_count = await self.session.scalar(
            select(func.count()).select_from(RiskCase).where(*open_filter, RiskCase.level == "high")
        )
        return RiskCaseList(
            items=items,
            total=total or 0,
            open_count=open_count or 0,
            high_count=high_count or 0,
        )

    async def get_cases_for_employee(
        self,
        workspace_id: str,
        employee_id: str,
        only_open: bool = False,
    ) -> list[RiskCaseSummary]:
        if not self.available:
            return []
        query = _case_query().where(
            RiskCase.workspace_id == workspace_id,
            RiskCase.employee_id == employee_id,
        )
        if only_open:
            query = query.where(RiskCase.status.in_(OPEN_RISK_STATUSES))
        result = await self.session.execute(query.order_by(RiskCase.detected_at.desc()))
        return [_summary(*row) for row in result.all()]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_case(
        self,
        workspace_id: str,
        employee_id: str,
        level: str,
        source: str,
        title: str,
        reason: str | None = None,
        recommendation: str | None = None,
        owner_user_id: str | None = None,
        created_by_user_id: str | None = None,
    ) -> RiskCaseSummary:
        """Open a new case; a high-level case notifies its owner once."""
        self._require_available()
        employee = await self.session.get(Employee, employee_id)
        if employee is None or employee.workspace_id != workspace_id:
            raise ServiceError(ErrorCode.EMPLOYEE_NOT_FOUND)

        timestamp = now_iso()
        case = RiskCase(
            workspace_id=workspace_id,
            employee_id=employee_id,
            level=level,
            status="open",
            source=source,
            title=title,
            reason=reason,
            recommendation=recommendation,
            owner_user_id=await self._resolve_owner(workspace_id, owner_user_id),
            created_by_user_id=created_by_user_id,
            detected_at=timestamp,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self.session.add(case)
        await self.session.flush()
        logger.info("Risk case %s opened for employee %s (%s)", case.id, employee_id, level)

        summary = _summary(case, employee.name, employee.position)
        await self._notify_high_risk(summary)
        return summary

    async def ensure_case(
        self,
        workspace_id: str,
        employee_id: str,
        level: str,
        source: str,
        title: str,
        reason: str | None = None,
        recommendation: str | None = None,
        owner_user_id: str | None = None,
        created_by_user_id: str | None = None,
    ) -> RiskCaseSummary:
        """Return, escalate or create the employee's active case.

        - an active case at the same level is returned unchanged
        - an active case at a higher level is returned unchanged
        - an active case at a lower level is upgraded in place
        - otherwise a new case is opened
        """
        self._require_available()
        same_level = await self.find_active_case(workspace_id, employee_id, level)
        if same_level is not None:
            return same_level

        existing = await self.find_active_case(workspace_id, employee_id)
        if existing is None:
            return await self.create_case(
                workspace_id=workspace_id,
                employee_id=employee_id,
                level=level,
                source=source,
                title=title,
                reason=reason,
                recommendation=recommendation,
                owner_user_id=owner_user_id,
                created_by_user_id=created_by_user_id,
            )
        if RISK_LEVEL_RANK[level] <= RISK_LEVEL_RANK[existing.level]:
            return existing

        case = await self.session.get(RiskCase, existing.id)
        case.level = level
        case.reason = reason if reason is not None else existing.reason
        case.recommendation = recommendation if recommendation is not None else existing.recommendation
        case.source = source
        case.updated_at = now_iso()
        await self.session.flush()
        logger.info("Risk case %s escalated %s -> %s", case.id, existing.level, level)

        upgraded = await self.get_case(workspace_id, case.id)
        await self._notify_high_risk(upgraded)
        return upgraded

    async def update_status(
        self,
        workspace_id: str,
        case_id: str,
        status: str,
        resolution_note: str | None = None,
    ) -> RiskCaseSummary:
        """Change status; resolving stamps ``resolved_at`` and notifies."""
        self._require_available()
        case = await self.session.get(RiskCase, case_id)
        if case is None or case.workspace_id != workspace_id:
            raise ServiceError(ErrorCode.RISK_CASE_NOT_FOUND)

        timestamp = now_iso()
        case.status = status
        case.updated_at = timestamp
        if status == "resolved":
            case.resolved_at = timestamp
            if resolution_note is not None:
                case.resolution_note = resolution_note
        else:
            case.resolved_at = None
            if resolution_note is not None:
                case.resolution_note = resolution_note
        await self.session.flush()

        updated = await self.get_case(workspace_id, case_id)
        await self._notify_resolved(updated)
        return updated

    async def attach_pilot(self, workspace_id: str, case_id: str, pilot_id: str) -> RiskCaseSummary:
        self._require_available()
        case = await self.session.get(RiskCase, case_id)
        if case is None or case.workspace_id != workspace_id:
            raise ServiceError(ErrorCode.RISK_CASE_NOT_FOUND)
        pilot = await self.session.get(PilotRun, pilot_id)
        if pilot is None or pilot.workspace_id != workspace_id:
            raise ServiceError(ErrorCode.PILOT_NOT_FOUND)

        case.pilot_id = pilot_id
        case.updated_at = now_iso()
        await self.session.flush()
        return await self.get_case(workspace_id, case_id)
