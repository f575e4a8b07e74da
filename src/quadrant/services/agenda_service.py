"""Manager agenda builders.

Everything here is read-only aggregation: meetings, decisions, pilot steps,
1:1s, development goals, quarterly reports, surveys and skill gaps are pulled
into agenda rows and a weekly snapshot. Sources whose feature is switched off
or whose tables are absent are skipped.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.capabilities import SchemaCapabilities
from quadrant.config import AgendaPolicy, get_settings
from quadrant.models import (
    DevelopmentGoal,
    DevelopmentGoalCheckin,
    Employee,
    EmployeeRoleAssignment,
    FeedbackResponse,
    FeedbackSurvey,
    MeetingAgenda,
    OneOnOne,
    PilotRun,
    PilotRunParticipant,
    PilotRunStep,
    QuarterlyReport,
    RoleProfile,
    TalentDecision,
)
from quadrant.models.decisions import OPEN_DECISION_STATUSES
from quadrant.numbers import percent, round_half_up
from quadrant.services.manager_team import resolve_manager_team
from quadrant.services.skill_gap_service import SkillGapService
from quadrant.services.types import (
    AgendaDay,
    AgendaItem,
    AgendaSnapshot,
    CompletedGoal,
    CriticalSkill,
    EmployeeGapHighlight,
    GoalSummary,
    OverdueOneOnOne,
    SurveyProgress,
    TeamCounters,
    UpcomingOneOnOne,
)
from quadrant.timeutil import (
    day_key,
    days_between,
    derive_quarter,
    parse_iso,
    quarter_date_range,
    start_of_day,
    to_iso,
    utc_now,
)

logger = logging.getLogger(__name__)

PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}
OPEN_STEP_STATUSES = ("not_started", "in_progress")
OPEN_ONE_ON_ONE_STATUSES = ("scheduled", "rescheduled")


def sort_by_priority(items: list[AgendaItem]) -> list[AgendaItem]:
    return sorted(items, key=lambda item: PRIORITY_RANK.get(item.priority, len(PRIORITY_RANK)))


def _same_day_or_between(moment: datetime, start: datetime, end: datetime) -> bool:
    day = start_of_day(moment)
    return start_of_day(start) <= day <= start_of_day(end)


class AgendaService:
    """Builds manager agendas and the weekly agenda snapshot."""

    def __init__(
        self,
        session: AsyncSession,
        capabilities: SchemaCapabilities | None = None,
        policy: AgendaPolicy | None = None,
        skill_gaps: SkillGapService | None = None,
    ):
        self.session = session
        self.capabilities = capabilities or SchemaCapabilities.all_enabled()
        self.policy = policy or get_settings().agenda
        self.skill_gaps = skill_gaps or SkillGapService(session)

    def _enabled(self, feature: str) -> bool:
        if self.capabilities.supports(feature):
            return True
        logger.debug("Agenda source %s skipped", feature)
        return False

    async def _employee_names(self, workspace_id: str) -> dict[str, str]:
        result = await self.session.execute(
            select(Employee.id, Employee.name).where(Employee.workspace_id == workspace_id)
        )
        return {employee_id: name or employee_id for employee_id, name in result.all()}

    # ------------------------------------------------------------------
    # Day-by-day agenda
    # ------------------------------------------------------------------

    async def get_manager_agenda(
        self,
        workspace_id: str,
        user_id: str,
        start: datetime,
        end: datetime,
        now: datetime | None = None,
    ) -> list[AgendaDay]:
        """Meetings, open decisions and owned pilot steps grouped by day.

        Every day between ``start`` and ``end`` is present, even when empty.
        Items inside a day are ordered high, medium, low.
        """
        now = now or utc_now()
        first, last = start_of_day(start), start_of_day(end)
        days: dict[str, AgendaDay] = {}
        cursor = first
        while cursor <= last:
            days[day_key(cursor)] = AgendaDay(date=day_key(cursor))
            cursor += timedelta(days=1)

        def push(moment: datetime, item: AgendaItem) -> None:
            day = days.get(day_key(moment))
            if day is not None:
                day.items.append(item)

        names = await self._employee_names(workspace_id)

        if self._enabled("meetings"):
            result = await self.session.execute(
                select(MeetingAgenda).where(
                    MeetingAgenda.workspace_id == workspace_id,
                    MeetingAgenda.scheduled_at >= to_iso(first),
                    MeetingAgenda.scheduled_at <= to_iso(last + timedelta(days=1)),
                )
            )
            for meeting in result.scalars():
                scheduled = parse_iso(meeting.scheduled_at)
                if scheduled is None or not _same_day_or_between(scheduled, first, last):
                    continue
                push(
                    scheduled,
                    AgendaItem(
                        id=meeting.id,
                        kind="meeting",
                        title=meeting.title or "Meeting",
                        date=meeting.scheduled_at,
                        priority="medium",
                        source="meetings",
                        entity_id=meeting.id,
                        url=f"/app/meetings/{meeting.id}",
                    ),
                )

        if self._enabled("decisions"):
            result = await self.session.execute(
                select(TalentDecision).where(
                    TalentDecision.workspace_id == workspace_id,
                    TalentDecision.status.in_(OPEN_DECISION_STATUSES),
                )
            )
            for decision in result.scalars():
                moment = parse_iso(decision.updated_at or decision.created_at)
                if moment is None or not _same_day_or_between(moment, first, last):
                    continue
                push(
                    moment,
                    AgendaItem(
                        id=decision.id,
                        kind="decision_deadline",
                        title=decision.title,
                        date=to_iso(moment),
                        priority=decision.priority if decision.priority in ("high", "low") else "medium",
                        source="decisions",
                        employee_id=decision.employee_id,
                        employee_name=names.get(decision.employee_id),
                        entity_id=decision.id,
                        url=f"/app/decisions?focus={decision.id}",
                    ),
                )

        if self._enabled("pilots"):
            result = await self.session.execute(
                select(PilotRunStep, PilotRun)
                .join(PilotRun, PilotRunStep.pilot_run_id == PilotRun.id)
                .where(PilotRun.workspace_id == workspace_id, PilotRun.owner_user_id == user_id)
            )
            today = start_of_day(now)
            for step, pilot in result.all():
                due = parse_iso(step.due_date)
                if due is None or not _same_day_or_between(due, first, last):
                    continue
                overdue = due < today and step.status in OPEN_STEP_STATUSES
                push(
                    due,
                    AgendaItem(
                        id=step.id,
                        kind="pilot_review",
                        title=f"Pilot {pilot.name}: {step.title}" if step.title else f"Pilot {pilot.name}",
                        date=to_iso(due),
                        priority="high" if overdue else "medium",
                        source="pilots",
                        entity_id=pilot.id,
                        url=f"/app/pilot/{pilot.id}",
                    ),
                )

        ordered = [days[key] for key in sorted(days)]
        for day in ordered:
            day.items = sort_by_priority(day.items)
        return ordered

    # ------------------------------------------------------------------
    # Prioritized agenda list
    # ------------------------------------------------------------------

    async def build_agenda_for_manager(
        self,
        workspace_id: str,
        manager_user_id: str,
        from_date: datetime,
        to_date: datetime,
        now: datetime | None = None,
    ) -> list[AgendaItem]:
        """Goals, pilots, quarterly report, skill gaps, surveys and 1:1s.

        Items dated between ``from_date`` and 30 days after ``to_date`` are
        kept, ordered by priority and then by date.
        """
        now = now or utc_now()
        start = start_of_day(from_date)
        end = start_of_day(to_date) + timedelta(days=1) - timedelta(milliseconds=1)
        team = await resolve_manager_team(self.session, workspace_id, manager_user_id)
        names = {employee.id: employee.name for employee in team.employees}
        items: list[AgendaItem] = []

        if team.employee_ids and self._enabled("goals"):
            items.extend(await self._goal_items(workspace_id, team.employee_ids, names, start, end, now))
        if self._enabled("pilots"):
            items.extend(await self._pilot_items(workspace_id, manager_user_id, start, end))
        items.extend(await self._quarterly_report_items(workspace_id, end, now))
        items.extend(await self._skill_gap_items(workspace_id, start))
        if self._enabled("feedback"):
            items.extend(await self._feedback_items(workspace_id, manager_user_id, start))
        if self._enabled("one_on_ones"):
            items.extend(await self._one_on_one_items(workspace_id, manager_user_id, start, end, now))

        horizon = end + timedelta(days=30)
        kept = []
        for item in items:
            moment = parse_iso(item.date)
            if moment is not None and start <= moment <= horizon:
                kept.append(item)
        kept.sort(key=lambda item: (PRIORITY_RANK[item.priority], item.date))
        return kept

    async def _latest_checkins(self, goal_ids: list[str]) -> dict[str, datetime]:
        if not goal_ids:
            return {}
        result = await self.session.execute(
            select(DevelopmentGoalCheckin.goal_id, func.max(DevelopmentGoalCheckin.created_at))
            .where(DevelopmentGoalCheckin.goal_id.in_(goal_ids))
            .group_by(DevelopmentGoalCheckin.goal_id)
        )
        latest = {}
        for goal_id, created_at in result.all():
            parsed = parse_iso(created_at)
            if parsed is not None:
                latest[goal_id] = parsed
        return latest

    async def _goal_items(
        self,
        workspace_id: str,
        employee_ids: list[str],
        names: dict[str, str],
        start: datetime,
        end: datetime,
        now: datetime,
    ) -> list[AgendaItem]:
        result = await self.session.execute(
            select(DevelopmentGoal).where(
                DevelopmentGoal.workspace_id == workspace_id,
                DevelopmentGoal.employee_id.in_(employee_ids),
                DevelopmentGoal.status == "active",
            )
        )
        goals = list(result.scalars())
        checkins = await self._latest_checkins([goal.id for goal in goals])
        stale_after = timedelta(days=self.policy.stale_goal_days)

        items = []
        for goal in goals:
            due = parse_iso(goal.due_date)
            due_in_range = due is not None and start <= due <= end + timedelta(days=self.policy.medium_priority_days)
            overdue = due is not None and due < start
            last_checkin = checkins.get(goal.id)
            stale = last_checkin is None or now - last_checkin > stale_after
            if not (due_in_range or overdue or stale or goal.priority == 1):
                continue
            if goal.priority == 1 or overdue:
                priority = "high"
            elif due is not None:
                priority = self.policy.priority_for_days(days_between(now, due))
            else:
                priority = "medium"
            items.append(
                AgendaItem(
                    id=f"goal-{goal.id}",
                    kind="development_goal_review",
                    title="Review development plan",
                    date=to_iso(due or start),
                    priority=priority,
                    source="development_goals",
                    description=goal.title,
                    employee_id=goal.employee_id,
                    employee_name=names.get(goal.employee_id),
                    entity_id=goal.id,
                )
            )
        return items

    async def _pilot_items(
        self,
        workspace_id: str,
        manager_user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[AgendaItem]:
        result = await self.session.execute(
            select(PilotRun).where(
                PilotRun.workspace_id == workspace_id,
                PilotRun.owner_user_id == manager_user_id,
                PilotRun.status == "active",
            )
        )
        pilots = list(result.scalars())
        if not pilots:
            return []
        result = await self.session.execute(
            select(PilotRunParticipant.pilot_run_id, func.count())
            .where(
                PilotRunParticipant.workspace_id == workspace_id,
                PilotRunParticipant.pilot_run_id.in_([pilot.id for pilot in pilots]),
            )
            .group_by(PilotRunParticipant.pilot_run_id)
        )
        participants = dict(result.all())

        items = []
        for pilot in pilots:
            end_date = parse_iso(pilot.end_date)
            if end_date is not None and end_date <= end + timedelta(days=30):
                items.append(
                    AgendaItem(
                        id=f"pilot-{pilot.id}",
                        kind="pilot_review",
                        title=f"Prepare a review of pilot {pilot.name}",
                        date=to_iso(end_date),
                        priority="medium",
                        source="pilots",
                        description=pilot.description,
                        entity_id=pilot.id,
                        url=f"/app/pilot/{pilot.id}",
                    )
                )
            if not participants.get(pilot.id):
                items.append(
                    AgendaItem(
                        id=f"pilot-participants-{pilot.id}",
                        kind="pilot_review",
                        title=f"Add participants to pilot {pilot.name}",
                        date=to_iso(start),
                        priority="medium",
                        source="pilots",
                        description="No participants yet.",
                        entity_id=pilot.id,
                        url=f"/app/pilot/{pilot.id}",
                    )
                )
        return items

    async def _quarterly_report_items(
        self,
        workspace_id: str,
        end: datetime,
        now: datetime,
    ) -> list[AgendaItem]:
        period = derive_quarter(now)
        _, quarter_end = quarter_date_range(period.year, period.quarter)
        report = await self.session.scalar(
            select(QuarterlyReport).where(
                QuarterlyReport.workspace_id == workspace_id,
                QuarterlyReport.year == period.year,
                QuarterlyReport.quarter == period.quarter,
            )
        )
        if report is None or report.generated_at is None:
            review_date = quarter_end - timedelta(days=7)
            if review_date > end + timedelta(days=self.policy.quarter_report_lead_days):
                return []
            return [
                AgendaItem(
                    id=f"qr-{period.year}-{period.quarter}",
                    kind="quarterly_report_review",
                    title=f"Prepare the quarterly report for {period.label}",
                    date=to_iso(review_date),
                    priority="high",
                    source="quarterly_reports",
                )
            ]
        return [
            AgendaItem(
                id=f"qr-review-{report.id}",
                kind="quarterly_report_review",
                title=f"Review the {period.label} report",
                date=to_iso(quarter_end),
                priority="medium",
                source="quarterly_reports",
                entity_id=report.id,
            )
        ]

    async def _skill_gap_items(self, workspace_id: str, start: datetime) -> list[AgendaItem]:
        result = await self.session.execute(
            select(RoleProfile)
            .where(RoleProfile.workspace_id == workspace_id)
            .order_by(RoleProfile.created_at, RoleProfile.id)
            .limit(2)
        )
        roles = list(result.scalars())
        if not roles:
            return []
        result = await self.session.execute(
            select(EmployeeRoleAssignment.role_profile_id, func.count())
            .where(
                EmployeeRoleAssignment.workspace_id == workspace_id,
                EmployeeRoleAssignment.role_profile_id.in_([role.id for role in roles]),
            )
            .group_by(EmployeeRoleAssignment.role_profile_id)
        )
        counts = dict(result.all())
        return [
            AgendaItem(
                id=f"skill-gap-{role.id}",
                kind="skill_gap_review",
                title=f"Discuss skill gaps for role {role.name}",
                date=to_iso(start),
                priority="low",
                source="manual",
                description=f"Employees: {counts.get(role.id, 0)}",
                entity_id=role.id,
            )
            for role in roles
        ]

    async def _feedback_items(
        self,
        workspace_id: str,
        manager_user_id: str,
        start: datetime,
    ) -> list[AgendaItem]:
        result = await self.session.execute(
            select(FeedbackResponse, FeedbackSurvey)
            .outerjoin(FeedbackSurvey, FeedbackResponse.survey_id == FeedbackSurvey.id)
            .where(
                FeedbackResponse.workspace_id == workspace_id,
                FeedbackResponse.respondent_id == manager_user_id,
                FeedbackResponse.status == "in_progress",
            )
            .limit(5)
        )
        items = []
        for response, survey in result.all():
            due = parse_iso(survey.end_date) if survey else None
            items.append(
                AgendaItem(
                    id=f"feedback-{response.id}",
                    kind="feedback",
                    title=f"Complete survey: {survey.title if survey else 'Survey'}",
                    date=to_iso(due or start),
                    priority="medium",
                    source="feedback",
                    entity_id=response.id,
                )
            )
        return items

    async def _one_on_one_items(
        self,
        workspace_id: str,
        manager_user_id: str,
        start: datetime,
        end: datetime,
        now: datetime,
    ) -> list[AgendaItem]:
        result = await self.session.execute(
            select(OneOnOne).where(
                OneOnOne.workspace_id == workspace_id,
                OneOnOne.manager_user_id == manager_user_id,
                OneOnOne.scheduled_at >= to_iso(start),
                OneOnOne.scheduled_at <= to_iso(end),
            )
        )
        items = []
        for meeting in result.scalars():
            scheduled = parse_iso(meeting.scheduled_at)
            if scheduled is None:
                continue
            days_left = days_between(now, scheduled)
            items.append(
                AgendaItem(
                    id=f"1on1-{meeting.id}",
                    kind="one_on_one",
                    title="1:1 with employee",
                    date=meeting.scheduled_at,
                    priority="high" if days_left <= 1 else self.policy.priority_for_days(days_left),
                    source="one_on_ones",
                    employee_id=meeting.employee_id,
                    entity_id=meeting.id,
                    url=f"/app/one-on-ones/{meeting.id}",
                )
            )
        return items

    # ------------------------------------------------------------------
    # Weekly snapshot
    # ------------------------------------------------------------------

    async def get_agenda_snapshot(
        self,
        workspace_id: str,
        manager_user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        now: datetime | None = None,
    ) -> AgendaSnapshot:
        now = now or utc_now()
        start = start or now
        end = end or start + timedelta(days=self.policy.default_lookahead_days)
        start_iso, end_iso = to_iso(start), to_iso(end)

        team = await resolve_manager_team(self.session, workspace_id, manager_user_id)
        employee_ids = team.employee_ids
        names = {employee.id: employee.name for employee in team.employees}
        snapshot = AgendaSnapshot(
            manager_user_id=manager_user_id,
            workspace_id=workspace_id,
            period_start=start_iso,
            period_end=end_iso,
            team=TeamCounters(
                team_size=len(employee_ids),
                employees_without_recent_one_on_one=len(employee_ids),
                employees_without_goals=len(employee_ids),
            ),
        )
        if not employee_ids:
            return snapshot

        if self._enabled("one_on_ones"):
            result = await self.session.execute(
                select(OneOnOne).where(
                    OneOnOne.workspace_id == workspace_id,
                    OneOnOne.manager_user_id == manager_user_id,
                )
            )
            meetings = list(result.scalars())
            recent_since = to_iso(now - timedelta(days=self.policy.recent_one_on_one_days))
            for meeting in meetings:
                name = names.get(meeting.employee_id, meeting.employee_id)
                if start_iso <= meeting.scheduled_at <= end_iso and meeting.status in OPEN_ONE_ON_ONE_STATUSES:
                    snapshot.upcoming_one_on_ones.append(
                        UpcomingOneOnOne(
                            id=meeting.id,
                            employee_id=meeting.employee_id,
                            employee_name=name,
                            scheduled_at=meeting.scheduled_at,
                            status=meeting.status,
                        )
                    )
                elif meeting.status == "scheduled" and meeting.scheduled_at < start_iso:
                    scheduled = parse_iso(meeting.scheduled_at)
                    snapshot.overdue_one_on_ones.append(
                        OverdueOneOnOne(
                            id=meeting.id,
                            employee_id=meeting.employee_id,
                            employee_name=name,
                            scheduled_at=meeting.scheduled_at,
                            days_overdue=math.ceil(days_between(scheduled, start)) if scheduled else 0,
                        )
                    )
            recently_met = {
                meeting.employee_id for meeting in meetings if meeting.scheduled_at >= recent_since
            }
            snapshot.team.employees_without_recent_one_on_one = sum(
                1 for employee_id in employee_ids if employee_id not in recently_met
            )

        if self._enabled("goals"):
            result = await self.session.execute(
                select(DevelopmentGoal).where(
                    DevelopmentGoal.workspace_id == workspace_id,
                    DevelopmentGoal.employee_id.in_(employee_ids),
                )
            )
            completed_since = to_iso(now - timedelta(days=self.policy.completed_goal_days))
            with_active_goal = set()
            for goal in result.scalars():
                name = names.get(goal.employee_id, goal.employee_id)
                if goal.status == "active":
                    with_active_goal.add(goal.employee_id)
                    due = parse_iso(goal.due_date)
                    snapshot.active_goals.append(
                        GoalSummary(
                            id=goal.id,
                            employee_id=goal.employee_id,
                            employee_name=name,
                            title=goal.title,
                            target_date=goal.due_date,
                            status="overdue" if due is not None and due < now else "active",
                        )
                    )
                elif goal.status == "completed" and goal.updated_at > completed_since:
                    snapshot.completed_goals.append(
                        CompletedGoal(
                            id=goal.id,
                            employee_id=goal.employee_id,
                            employee_name=name,
                            title=goal.title,
                            completed_at=goal.updated_at,
                        )
                    )
            snapshot.team.employees_without_goals = len(set(employee_ids) - with_active_goal)

        if self._enabled("feedback"):
            snapshot.active_surveys = await self._survey_progress(workspace_id, employee_ids)

        await self._collect_skill_gaps(snapshot, workspace_id, employee_ids, names)
        return snapshot

    async def _survey_progress(self, workspace_id: str, employee_ids: list[str]) -> list[SurveyProgress]:
        result = await self.session.execute(
            select(FeedbackSurvey).where(
                FeedbackSurvey.workspace_id == workspace_id,
                FeedbackSurvey.status == "active",
            )
        )
        surveys = list(result.scalars())
        if not surveys:
            return []
        result = await self.session.execute(
            select(FeedbackResponse).where(
                FeedbackResponse.workspace_id == workspace_id,
                FeedbackResponse.survey_id.in_([survey.id for survey in surveys]),
                FeedbackResponse.respondent_id.in_(employee_ids),
            )
        )
        responses = list(result.scalars())
        progress = []
        for survey in surveys:
            team_responses = [r for r in responses if r.survey_id == survey.id]
            submitted = sum(1 for r in team_responses if r.status == "submitted")
            progress.append(
                SurveyProgress(
                    survey_id=survey.id,
                    title=survey.title,
                    due_date=survey.end_date,
                    response_rate=percent(submitted, len(team_responses)) if team_responses else None,
                )
            )
        return progress

    async def _collect_skill_gaps(
        self,
        snapshot: AgendaSnapshot,
        workspace_id: str,
        employee_ids: list[str],
        names: dict[str, str],
    ) -> None:
        """Worst gap per employee and the skills with the lowest average gap."""
        aggregated: dict[str, dict] = {}
        highlights: list[EmployeeGapHighlight] = []
        for employee_id in employee_ids[: self.policy.max_gap_employees]:
            profile = await self.skill_gaps.compute_skill_profile_for_employee(workspace_id, employee_id)
            rated = [gap for gap in profile.skills if gap.gap is not None]
            shortfalls = sorted((gap for gap in rated if gap.gap < 0), key=lambda gap: gap.gap)
            if shortfalls:
                worst = shortfalls[0]
                highlights.append(
                    EmployeeGapHighlight(
                        employee_id=employee_id,
                        employee_name=names.get(employee_id, employee_id),
                        top_skill_name=worst.skill_name or worst.skill_code,
                        gap=worst.gap,
                    )
                )
            for gap in rated:
                entry = aggregated.setdefault(
                    gap.skill_code,
                    {"name": gap.skill_name or gap.skill_code, "total": 0, "count": 0, "affected": 0},
                )
                entry["total"] += gap.gap
                entry["count"] += 1
                if gap.gap < 0:
                    entry["affected"] += 1

        critical = [
            CriticalSkill(
                skill_code=code,
                skill_name=entry["name"],
                avg_gap=round_half_up(entry["total"] / entry["count"]) if entry["count"] else 0,
                affected_employees=entry["affected"],
            )
            for code, entry in aggregated.items()
        ]
        critical.sort(key=lambda skill: skill.avg_gap)
        snapshot.critical_skills = critical[:5]
        snapshot.employees_with_high_gap = highlights[:5]
