"""Quarterly people and skills reports and the decisions CSV export."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.capabilities import SchemaCapabilities
from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import Employee, PilotRun, QuarterlyReport, TalentDecision, Track
from quadrant.services.risk_case_service import RiskCaseService
from quadrant.timeutil import QuarterlyPeriod, derive_quarter, now_iso, quarter_date_range, to_iso

logger = logging.getLogger(__name__)

CSV_HEADER = "employeeName,teamName,type,status,title,createdAt,updatedAt"
MOVE_TYPES = ("promote", "role_change", "lateral_move")
TOP_ITEMS = 5


def report_title(year: int, quarter: int) -> str:
    return f"Q{quarter} {year} — People & Skills Report"


@dataclass
class QuarterlyMetrics:
    period: QuarterlyPeriod
    pilots_total: int = 0
    pilots_completed: int = 0
    pilots_in_progress: int = 0
    employees_touched: int = 0
    employees_at_risk: int = 0
    promotions_count: int = 0
    lateral_moves_count: int = 0
    decisions_total: int = 0
    decisions_proposed: int = 0
    decisions_approved: int = 0
    decisions_implemented: int = 0
    decisions_rejected: int = 0


@dataclass
class ReportRisk:
    employee_id: str
    employee_name: str
    team_name: str | None
    reason: str


@dataclass
class ReportWin:
    employee_id: str
    label: str
    description: str


@dataclass
class QuarterlyReportView:
    report: QuarterlyReport
    period: QuarterlyPeriod
    metrics: QuarterlyMetrics
    top_risks: list[ReportRisk] = field(default_factory=list)
    top_wins: list[ReportWin] = field(default_factory=list)
    recommended_next_steps: list[str] = field(default_factory=list)


def decisions_csv(rows: list[tuple[TalentDecision, str | None, str | None]]) -> str:
    """Render (decision, employee name, team name) rows as CSV.

    Every data field is double quoted; quotes inside titles become single quotes.
    Rows are joined by newlines with no trailing newline.
    """
    output = io.StringIO()
    output.write(CSV_HEADER + "\n")
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for decision, employee_name, team_name in rows:
        writer.writerow(
            [
                employee_name or "",
                team_name or "",
                decision.type,
                decision.status,
                (decision.title or "").replace('"', "'"),
                decision.created_at,
                decision.updated_at or decision.created_at,
            ]
        )
    return output.getvalue().removesuffix("\n")


class QuarterlyReportService:
    def __init__(
        self,
        session: AsyncSession,
        capabilities: SchemaCapabilities | None = None,
        risk_cases: RiskCaseService | None = None,
    ):
        self.session = session
        self.capabilities = capabilities or SchemaCapabilities.all_enabled()
        self.risk_cases = risk_cases or RiskCaseService(session, capabilities=self.capabilities)

    async def _find(self, workspace_id: str, year: int, quarter: int) -> QuarterlyReport | None:
        return await self.session.scalar(
            select(QuarterlyReport).where(
                QuarterlyReport.workspace_id == workspace_id,
                QuarterlyReport.year == year,
                QuarterlyReport.quarter == quarter,
            )
        )

    async def _decisions(self, workspace_id: str) -> list[TalentDecision]:
        result = await self.session.execute(
            select(TalentDecision)
            .where(TalentDecision.workspace_id == workspace_id)
            .order_by(TalentDecision.created_at.desc())
        )
        return list(result.scalars())

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def get_or_create(
        self,
        workspace_id: str,
        year: int | None = None,
        quarter: int | None = None,
    ) -> QuarterlyReportView:
        """Report for the quarter (current by default) with live metrics."""
        period = QuarterlyPeriod(year, quarter) if year and quarter else derive_quarter()
        report = await self._find(workspace_id, period.year, period.quarter)
        if report is None:
            report = QuarterlyReport(
                workspace_id=workspace_id,
                year=period.year,
                quarter=period.quarter,
                title=report_title(period.year, period.quarter),
                is_locked=False,
            )
            self.session.add(report)
            await self.session.flush()
        return await self._view(report, period)

    async def create_or_update(
        self,
        workspace_id: str,
        year: int,
        quarter: int,
        title: str | None = None,
        notes: str | None = None,
        lock: bool | None = None,
        user_id: str | None = None,
    ) -> QuarterlyReportView:
        report = await self._find(workspace_id, year, quarter)
        now = now_iso()
        if report is None:
            report = QuarterlyReport(
                workspace_id=workspace_id,
                year=year,
                quarter=quarter,
                title=title or report_title(year, quarter),
                notes=notes,
                is_locked=bool(lock),
            )
            self.session.add(report)
        else:
            if title is not None:
                report.title = title
            if notes is not None:
                report.notes = notes
            if lock is not None:
                report.is_locked = lock
            report.updated_at = now
        report.generated_at = now
        report.generated_by_user_id = user_id or report.generated_by_user_id
        await self.session.flush()
        return await self._view(report, QuarterlyPeriod(year, quarter))

    async def update_metadata(
        self,
        workspace_id: str,
        report_id: str,
        title: str | None = None,
        notes: str | None = None,
        is_locked: bool | None = None,
    ) -> QuarterlyReportView:
        report = await self.session.scalar(
            select(QuarterlyReport).where(
                QuarterlyReport.id == report_id,
                QuarterlyReport.workspace_id == workspace_id,
            )
        )
        if report is None:
            raise ServiceError(ErrorCode.REPORT_NOT_FOUND)
        if title is not None:
            report.title = title
        if notes is not None:
            report.notes = notes
        if is_locked is not None:
            report.is_locked = is_locked
        report.updated_at = now_iso()
        await self.session.flush()
        return await self._view(report, QuarterlyPeriod(report.year, report.quarter))

    async def _view(self, report: QuarterlyReport, period: QuarterlyPeriod) -> QuarterlyReportView:
        metrics = await self.compute_metrics(report.workspace_id, period.year, period.quarter)
        risks, wins = await self._top_risks_and_wins(report.workspace_id, period)
        await self._sync_risk_cases(report.workspace_id, risks)
        return QuarterlyReportView(
            report=report,
            period=period,
            metrics=metrics,
            top_risks=risks,
            top_wins=wins,
            recommended_next_steps=recommended_next_steps(metrics),
        )

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    async def compute_metrics(self, workspace_id: str, year: int, quarter: int) -> QuarterlyMetrics:
        start, end = quarter_date_range(year, quarter)
        lower, upper = to_iso(start), to_iso(end)

        def in_period(value: str | None) -> bool:
            return value is not None and lower <= value <= upper

        result = await self.session.execute(
            select(PilotRun.status).where(
                PilotRun.workspace_id == workspace_id,
                PilotRun.created_at >= lower,
                PilotRun.created_at <= upper,
            )
        )
        pilot_statuses = list(result.scalars())

        decisions = await self._decisions(workspace_id)
        created = [d for d in decisions if in_period(d.created_at)]
        implemented = [
            d for d in decisions if d.status == "implemented" and in_period(d.updated_at or d.created_at)
        ]
        return QuarterlyMetrics(
            period=QuarterlyPeriod(year, quarter),
            pilots_total=len(pilot_statuses),
            pilots_completed=sum(1 for status in pilot_statuses if status == "completed"),
            pilots_in_progress=sum(1 for status in pilot_statuses if status in ("active", "planned")),
            employees_touched=len({d.employee_id for d in created}),
            employees_at_risk=len({d.employee_id for d in created if d.type == "monitor_risk"}),
            promotions_count=sum(1 for d in implemented if d.type == "promote"),
            lateral_moves_count=sum(1 for d in implemented if d.type in ("lateral_move", "role_change")),
            decisions_total=len(created),
            decisions_proposed=sum(1 for d in created if d.status == "proposed"),
            decisions_approved=sum(1 for d in created if d.status == "approved"),
            decisions_implemented=len(implemented),
            decisions_rejected=sum(1 for d in created if d.status == "rejected"),
        )

    async def _top_risks_and_wins(
        self, workspace_id: str, period: QuarterlyPeriod
    ) -> tuple[list[ReportRisk], list[ReportWin]]:
        start, end = quarter_date_range(period.year, period.quarter)
        lower, upper = to_iso(start), to_iso(end)
        result = await self.session.execute(
            select(Employee.id, Employee.name, Track.name)
            .outerjoin(Track, Employee.primary_track_id == Track.id)
            .where(Employee.workspace_id == workspace_id)
        )
        people = {employee_id: (name, team) for employee_id, name, team in result.all()}

        risks: list[ReportRisk] = []
        wins: list[ReportWin] = []
        for decision in await self._decisions(workspace_id):
            name, team = people.get(decision.employee_id, ("Employee", None))
            if decision.type == "monitor_risk" and lower <= decision.created_at <= upper:
                risks.append(ReportRisk(decision.employee_id, name, team, decision.title or "Employee risk"))
            changed = decision.updated_at or decision.created_at
            if decision.type in MOVE_TYPES and decision.status == "implemented" and lower <= changed <= upper:
                wins.append(ReportWin(decision.employee_id, decision.title, f"{name} · {decision.type}"))
        return risks[:TOP_ITEMS], wins[:TOP_ITEMS]

    async def _sync_risk_cases(self, workspace_id: str, risks: list[ReportRisk]) -> None:
        """Open a high risk case for every top report risk that has none."""
        if not self.risk_cases.available:
            return
        for risk in risks:
            try:
                async with self.session.begin_nested():
                    await self.risk_cases.ensure_case(
                        workspace_id=workspace_id,
                        employee_id=risk.employee_id,
                        level="high",
                        source="report",
                        title=risk.reason,
                        reason=f"Report: {risk.reason}",
                        recommendation="Assign an owner and an action plan following the report.",
                    )
            except Exception:
                logger.warning(
                    "risk_case_report_sync_failed workspace=%s employee=%s",
                    workspace_id,
                    risk.employee_id,
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # CSV export
    # ------------------------------------------------------------------

    async def export_decisions_csv(self, workspace_id: str, year: int, quarter: int) -> str:
        """Decisions created inside the quarter, oldest first."""
        start, end = quarter_date_range(year, quarter)
        result = await self.session.execute(
            select(TalentDecision, Employee.name, Track.name)
            .outerjoin(Employee, TalentDecision.employee_id == Employee.id)
            .outerjoin(Track, Employee.primary_track_id == Track.id)
            .where(
                TalentDecision.workspace_id == workspace_id,
                TalentDecision.created_at >= to_iso(start),
                TalentDecision.created_at <= to_iso(end),
            )
            .order_by(TalentDecision.created_at)
        )
        return decisions_csv([tuple(row) for row in result.all()])


def recommended_next_steps(metrics: QuarterlyMetrics) -> list[str]:
    steps = []
    if metrics.decisions_total > 0 and metrics.decisions_implemented < metrics.decisions_total / 2:
        open_count = metrics.decisions_total - metrics.decisions_implemented
        steps.append(f"Focus on closing {open_count} open people decisions.")
    if metrics.pilots_in_progress > 0:
        steps.append(f"Finish {metrics.pilots_in_progress} active pilots and collect their reports.")
    if metrics.employees_at_risk > 0:
        steps.append(f"Reduce risk for {metrics.employees_at_risk} employees (coaching, tasks, backups).")
    if not steps:
        steps.append("Keep monitoring skills and decisions regularly.")
    return steps
