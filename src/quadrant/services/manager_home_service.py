"""Manager home page: team summary, employee cards, meetings and action items.

Action items that need attention also raise a notification for the manager
unless an unread one for the same entity is already pending. Those
notifications are best effort.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.capabilities import SchemaCapabilities
from quadrant.config import AgendaPolicy, get_settings
from quadrant.models import (
    DevelopmentGoal,
    DevelopmentGoalCheckin,
    FeedbackResponse,
    FeedbackSurvey,
    MeetingAgenda,
    MeetingAgendaItem,
    OneOnOne,
    PilotRun,
    PilotRunParticipant,
    PilotRunTeam,
    QuarterlyReport,
    TalentDecision,
    User,
)
from quadrant.models.decisions import CLOSED_DECISION_STATUSES
from quadrant.services.agenda_service import PRIORITY_RANK
from quadrant.services.manager_team import ManagerTeam, resolve_manager_team
from quadrant.services.notification_service import NotificationService
from quadrant.services.types import ActionItem, EmployeeCard, HomeMeeting, HomeSummary, ManagerHome
from quadrant.timeutil import derive_quarter, parse_iso, quarter_date_range, to_iso, utc_now

logger = logging.getLogger(__name__)

ACTIVE_PILOT_STATUSES = ("active", "planned")
GOAL_PRIORITY_LABEL = {1: "high", 2: "medium", 3: "low"}


def _is_open(decision: TalentDecision) -> bool:
    return decision.status not in CLOSED_DECISION_STATUSES


class ManagerHomeService:
    """Builds the manager home view from live rows."""

    def __init__(
        self,
        session: AsyncSession,
        capabilities: SchemaCapabilities | None = None,
        policy: AgendaPolicy | None = None,
        notifications: NotificationService | None = None,
    ):
        self.session = session
        self.capabilities = capabilities or SchemaCapabilities.all_enabled()
        self.policy = policy or get_settings().agenda
        self.notifications = notifications or NotificationService(session)

    async def _notify(self, workspace_id: str, user_id: str, **fields) -> None:
        try:
            async with self.session.begin_nested():
                await self.notifications.create_if_absent(workspace_id=workspace_id, user_id=user_id, **fields)
        except Exception:
            logger.warning(
                "manager_home_notification_failed workspace=%s user=%s type=%s",
                workspace_id,
                user_id,
                fields.get("type"),
                exc_info=True,
            )

    async def get_home(self, workspace_id: str, user_id: str, now: datetime | None = None) -> ManagerHome:
        now = now or utc_now()
        user = await self.session.get(User, user_id)
        manager_name = (user.name or user.email) if user else "Manager"

        team = await resolve_manager_team(self.session, workspace_id, user_id)
        if not team.tracks:
            return ManagerHome(
                summary=HomeSummary(
                    manager_user_id=user_id,
                    manager_name=manager_name,
                    team_id=None,
                    team_name=None,
                )
            )

        pilots = await self._team_pilots(workspace_id, team)
        decisions = await self._team_decisions(workspace_id, team)
        meetings = await self._upcoming_meetings(workspace_id, user_id, team, now)

        completed_since = to_iso(now - timedelta(days=self.policy.pilot_completed_window_days))
        active_pilots = [pilot for pilot in pilots if pilot.status in ACTIVE_PILOT_STATUSES]
        at_risk_ids = {
            d.employee_id for d in decisions if d.type == "monitor_risk" and _is_open(d)
        }
        summary = HomeSummary(
            manager_user_id=user_id,
            manager_name=manager_name,
            team_id=team.team_id,
            team_name=team.team_name,
            headcount=len(team.employees),
            pilots_total=len(pilots),
            pilots_active=len(active_pilots),
            pilots_completed=sum(
                1
                for pilot in pilots
                if pilot.status == "completed" and (pilot.updated_at or pilot.created_at) >= completed_since
            ),
            employees_at_risk=len(at_risk_ids),
            open_decisions=sum(1 for d in decisions if _is_open(d)),
            upcoming_meetings_count=len(meetings),
        )

        pilot_counts = await self._active_pilot_counts(workspace_id, team)
        cards = []
        for employee in team.employees:
            own = [d for d in decisions if d.employee_id == employee.id]
            cards.append(
                EmployeeCard(
                    employee_id=employee.id,
                    employee_name=employee.name,
                    role_title=employee.position,
                    team_name=team.team_name,
                    is_at_risk=employee.id in at_risk_ids,
                    is_high_potential=any(
                        d.type in ("promote", "role_change") and d.status != "rejected" for d in own
                    ),
                    in_active_pilots_count=pilot_counts.get(employee.id, 0),
                    open_decisions_count=sum(1 for d in own if _is_open(d)),
                )
            )

        for meeting in meetings:
            scheduled = parse_iso(meeting.date)
            if scheduled - now <= timedelta(days=self.policy.meeting_notify_days):
                await self._notify(
                    workspace_id,
                    user_id,
                    type="meeting_upcoming",
                    title=f"Meeting: {meeting.title}",
                    body=f"Scheduled for {meeting.date}",
                    entity_type="meeting_agenda",
                    entity_id=meeting.meeting_id,
                    url=f"/app/meetings/{meeting.meeting_id}",
                    priority=2,
                )

        actions = self._team_actions(cards, decisions, pilots, now)
        actions.extend(await self._goal_actions(workspace_id, user_id, team, cards, now))
        actions.extend(await self._pilot_actions(workspace_id, user_id, now))
        actions.extend(await self._quarterly_report_actions(workspace_id, now))
        actions.extend(await self._one_on_one_actions(workspace_id, user_id, now))
        actions.extend(await self._feedback_actions(workspace_id, user_id))
        actions.sort(key=lambda action: PRIORITY_RANK[action.priority])

        return ManagerHome(summary=summary, employees=cards, upcoming_meetings=meetings, actions=actions)

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    async def _team_pilots(self, workspace_id: str, team: ManagerTeam) -> list[PilotRun]:
        if not self.capabilities.supports("pilots"):
            return []
        result = await self.session.execute(
            select(PilotRun)
            .join(PilotRunTeam, PilotRunTeam.pilot_run_id == PilotRun.id)
            .where(PilotRun.workspace_id == workspace_id, PilotRunTeam.team_id.in_(team.team_ids))
            .distinct()
        )
        return list(result.scalars())

    async def _active_pilot_counts(self, workspace_id: str, team: ManagerTeam) -> dict[str, int]:
        """Active pilots each team member takes part in."""
        if not team.employee_ids or not self.capabilities.supports("pilots"):
            return {}
        result = await self.session.execute(
            select(PilotRunParticipant.employee_id, func.count(func.distinct(PilotRunParticipant.pilot_run_id)))
            .join(PilotRun, PilotRunParticipant.pilot_run_id == PilotRun.id)
            .where(
                PilotRunParticipant.workspace_id == workspace_id,
                PilotRunParticipant.employee_id.in_(team.employee_ids),
                PilotRun.status.in_(ACTIVE_PILOT_STATUSES),
            )
            .group_by(PilotRunParticipant.employee_id)
        )
        return dict(result.all())

    async def _team_decisions(self, workspace_id: str, team: ManagerTeam) -> list[TalentDecision]:
        if not team.employee_ids or not self.capabilities.supports("decisions"):
            return []
        result = await self.session.execute(
            select(TalentDecision)
            .where(
                TalentDecision.workspace_id == workspace_id,
                TalentDecision.employee_id.in_(team.employee_ids),
            )
            .order_by(TalentDecision.created_at)
        )
        return list(result.scalars())

    async def _upcoming_meetings(
        self,
        workspace_id: str,
        user_id: str,
        team: ManagerTeam,
        now: datetime,
    ) -> list[HomeMeeting]:
        """Meetings in the window that the manager created or that touch the team."""
        if not self.capabilities.supports("meetings"):
            return []
        window_end = to_iso(now + timedelta(days=self.policy.meeting_window_days))
        result = await self.session.execute(
            select(MeetingAgenda, MeetingAgendaItem.related_team_id)
            .outerjoin(MeetingAgendaItem, MeetingAgendaItem.agenda_id == MeetingAgenda.id)
            .where(
                MeetingAgenda.workspace_id == workspace_id,
                MeetingAgenda.scheduled_at >= to_iso(now),
                MeetingAgenda.scheduled_at < window_end,
            )
        )
        meetings: dict[str, HomeMeeting] = {}
        for meeting, related_team_id in result.all():
            owned = meeting.created_by_user_id == user_id
            team_related = related_team_id in team.team_ids
            if not (owned or team_related) or meeting.id in meetings:
                continue
            if meeting.type == "pilot_review":
                kind = "pilot_review"
            elif related_team_id:
                kind = "team"
            else:
                kind = "other"
            meetings[meeting.id] = HomeMeeting(
                meeting_id=meeting.id,
                title=meeting.title,
                date=meeting.scheduled_at,
                type=kind,
            )
        return sorted(meetings.values(), key=lambda meeting: meeting.date)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _team_actions(
        self,
        cards: list[EmployeeCard],
        decisions: list[TalentDecision],
        pilots: list[PilotRun],
        now: datetime,
    ) -> list[ActionItem]:
        actions = [
            ActionItem(
                id=f"1on1-{card.employee_id}",
                kind="schedule_one_to_one",
                priority="high",
                label=f"Schedule a 1:1 with {card.employee_name}",
                description="The employee is at risk; plan a conversation this week.",
                employee_id=card.employee_id,
            )
            for card in cards
            if card.is_at_risk
        ]
        actions.extend(
            ActionItem(
                id=f"dec-{decision.id}",
                kind="close_decision",
                priority="high",
                label=f"Close the decision: {decision.title}",
                description=f"Open decision in status {decision.status}",
                employee_id=decision.employee_id,
                entity_id=decision.id,
            )
            for decision in decisions
            if _is_open(decision)
        )

        review_before = to_iso(now - timedelta(days=self.policy.pilot_review_after_days))
        actions.extend(
            ActionItem(
                id=f"pilot-{pilot.id}",
                kind="review_pilot",
                priority="medium",
                label=f"Review the progress of pilot {pilot.name}",
                description="The pilot has been running for more than four weeks.",
                entity_id=pilot.id,
                url=f"/app/pilots/{pilot.id}",
            )
            for pilot in pilots
            if pilot.status in ACTIVE_PILOT_STATUSES and pilot.created_at < review_before
        )

        for card in cards:
            if card.is_at_risk:
                actions.append(
                    ActionItem(
                        id=f"risk-{card.employee_id}",
                        kind="check_risk",
                        priority="high",
                        label=f"Check retention risk for {card.employee_name}",
                        description="Confirm the plan to reduce retention risk.",
                        employee_id=card.employee_id,
                    )
                )
            elif card.is_high_potential:
                actions.append(
                    ActionItem(
                        id=f"skills-{card.employee_id}",
                        kind="update_skills",
                        priority="medium",
                        label=f"Refresh the growth plan for {card.employee_name}",
                        description="High potential: update goals and skills.",
                        employee_id=card.employee_id,
                    )
                )
        return actions

    async def _goal_actions(
        self,
        workspace_id: str,
        user_id: str,
        team: ManagerTeam,
        cards: list[EmployeeCard],
        now: datetime,
    ) -> list[ActionItem]:
        if not team.employee_ids or not self.capabilities.supports("goals"):
            return []
        result = await self.session.execute(
            select(DevelopmentGoal).where(
                DevelopmentGoal.workspace_id == workspace_id,
                DevelopmentGoal.employee_id.in_(team.employee_ids),
                DevelopmentGoal.status == "active",
            )
        )
        goals = list(result.scalars())
        if not goals:
            return []
        result = await self.session.execute(
            select(DevelopmentGoalCheckin.goal_id, func.max(DevelopmentGoalCheckin.created_at))
            .where(DevelopmentGoalCheckin.goal_id.in_([goal.id for goal in goals]))
            .group_by(DevelopmentGoalCheckin.goal_id)
        )
        latest_checkin = dict(result.all())
        names = {card.employee_id: card.employee_name for card in cards}
        due_soon_window = timedelta(days=self.policy.medium_priority_days)
        stale_after = timedelta(days=self.policy.stale_goal_days)

        actions = []
        for goal in goals:
            due = parse_iso(goal.due_date)
            checked_in = parse_iso(latest_checkin.get(goal.id))
            due_soon = due is not None and due - now <= due_soon_window
            overdue = due is not None and due < now
            stale = due is None and (checked_in is None or now - checked_in > stale_after)
            if not (due_soon or overdue or stale):
                continue
            employee_name = names.get(goal.employee_id, "Employee")
            url = f"/app/skills/employee/{goal.employee_id}"
            actions.append(
                ActionItem(
                    id=f"devgoal-{goal.id}",
                    kind="development_goal",
                    priority=GOAL_PRIORITY_LABEL.get(goal.priority, "medium"),
                    label=f"Discuss development plan: {employee_name}, {goal.title}",
                    description=f"Due {goal.due_date}" if goal.due_date else "No due date and no recent updates",
                    employee_id=goal.employee_id,
                    entity_id=goal.id,
                    url=url,
                )
            )
            await self._notify(
                workspace_id,
                user_id,
                type="development_goal_due" if (overdue or due_soon) else "development_goal_stale",
                title=f"Overdue goal: {goal.title}" if overdue else f"No recent progress: {goal.title}",
                body=f"{employee_name}, priority {goal.priority}",
                entity_type="goal",
                entity_id=goal.id,
                url=url,
                priority=goal.priority,
            )
        return actions

    async def _pilot_actions(self, workspace_id: str, user_id: str, now: datetime) -> list[ActionItem]:
        if not self.capabilities.supports("pilots"):
            return []
        result = await self.session.execute(
            select(PilotRun).where(PilotRun.workspace_id == workspace_id, PilotRun.owner_user_id == user_id)
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
        ending_soon = timedelta(days=self.policy.pilot_ending_soon_days)
        ending_urgent = timedelta(days=self.policy.pilot_ending_urgent_days)

        actions = []
        for pilot in pilots:
            url = f"/app/pilots/{pilot.id}"
            end_date = parse_iso(pilot.end_date)
            if pilot.status in ACTIVE_PILOT_STATUSES and end_date is not None and end_date - now <= ending_soon:
                actions.append(
                    ActionItem(
                        id=f"pilot-review-{pilot.id}",
                        kind="review_pilot",
                        priority="high" if end_date - now <= ending_urgent else "medium",
                        label=f"Prepare a review of pilot {pilot.name}",
                        description=f"Ends {pilot.end_date}",
                        entity_id=pilot.id,
                        url=url,
                    )
                )
                await self._notify(
                    workspace_id,
                    user_id,
                    type="pilot_ending_soon",
                    title=f"Pilot {pilot.name} ends soon",
                    body=f"Ends {pilot.end_date}",
                    entity_type="pilot_run",
                    entity_id=pilot.id,
                    url=url,
                    priority=1,
                )
            if not participants.get(pilot.id) and pilot.status in ("active", "draft"):
                actions.append(
                    ActionItem(
                        id=f"pilot-add-{pilot.id}",
                        kind="pilot_add_participants",
                        priority="medium",
                        label=f"Add participants to pilot {pilot.name}",
                        description="No participants yet.",
                        entity_id=pilot.id,
                        url=f"{url}?focus=participants",
                    )
                )
        return actions

    async def _quarterly_report_actions(self, workspace_id: str, now: datetime) -> list[ActionItem]:
        period = derive_quarter(now)
        _, quarter_end = quarter_date_range(period.year, period.quarter)
        report = await self.session.scalar(
            select(QuarterlyReport).where(
                QuarterlyReport.workspace_id == workspace_id,
                QuarterlyReport.year == period.year,
                QuarterlyReport.quarter == period.quarter,
            )
        )
        if report is not None:
            return [
                ActionItem(
                    id=f"quarterly-review-{report.id}",
                    kind="quarterly_report_review",
                    priority="medium",
                    label=f"Review the quarterly report for {period.label}",
                    entity_id=report.id,
                    url=f"/app/reports/quarterly/{report.id}",
                )
            ]
        if quarter_end - now <= timedelta(days=self.policy.quarter_report_lead_days):
            return [
                ActionItem(
                    id=f"quarterly-prepare-{period.year}-{period.quarter}",
                    kind="quarterly_report_prepare",
                    priority="high",
                    label=f"Prepare the quarterly report for {period.label}",
                    url=f"/app/reports/quarterly?year={period.year}&quarter={period.quarter}",
                )
            ]
        return []

    async def _one_on_one_actions(self, workspace_id: str, user_id: str, now: datetime) -> list[ActionItem]:
        if not self.capabilities.supports("one_on_ones"):
            return []
        result = await self.session.execute(
            select(OneOnOne).where(
                OneOnOne.workspace_id == workspace_id,
                OneOnOne.manager_user_id == user_id,
                OneOnOne.status.in_(("scheduled", "rescheduled")),
                OneOnOne.scheduled_at >= to_iso(now - timedelta(days=1)),
                OneOnOne.scheduled_at < to_iso(now + timedelta(days=1)),
            )
        )
        return [
            ActionItem(
                id=f"1on1-{meeting.id}",
                kind="one_on_one_today",
                priority="high",
                label="1:1 today",
                employee_id=meeting.employee_id,
                entity_id=meeting.id,
                url=f"/app/one-on-ones/{meeting.id}",
            )
            for meeting in result.scalars()
        ]

    async def _feedback_actions(self, workspace_id: str, user_id: str) -> list[ActionItem]:
        if not self.capabilities.supports("feedback"):
            return []
        result = await self.session.execute(
            select(FeedbackResponse, FeedbackSurvey.title)
            .outerjoin(FeedbackSurvey, FeedbackResponse.survey_id == FeedbackSurvey.id)
            .where(
                FeedbackResponse.workspace_id == workspace_id,
                FeedbackResponse.respondent_id == user_id,
                FeedbackResponse.status == "in_progress",
            )
            .limit(5)
        )
        return [
            ActionItem(
                id=f"fb-{response.id}",
                kind="feedback_due",
                priority="medium",
                label=f"Complete survey: {title or 'Survey'}",
                entity_id=response.id,
                url=f"/app/feedback/respond/{response.id}",
            )
            for response, title in result.all()
        ]
