"""Assessment cycles: self review, manager review and final calibration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import (
    AssessmentCycle,
    AssessmentCycleParticipant,
    AssessmentCycleTeam,
    Employee,
    EmployeeSkill,
    Skill,
    SkillAssessment,
    Track,
)
from quadrant.numbers import percent, round_half_up
from quadrant.timeutil import now_iso

logger = logging.getLogger(__name__)


@dataclass
class CycleView:
    cycle: AssessmentCycle
    team_ids: list[str] = field(default_factory=list)


@dataclass
class EmployeeAssessments:
    cycle: CycleView
    assessments: list[SkillAssessment]
    progress: int


@dataclass
class ParticipantAssessments:
    participant: AssessmentCycleParticipant
    employee_name: str
    skills: list[SkillAssessment] = field(default_factory=list)


@dataclass
class TeamAssessmentSummary:
    team_id: str
    team_name: str
    average_gap: float
    finalized_percent: int
    self_submitted_percent: int


@dataclass
class WorkspaceAssessmentSummary:
    cycle_id: str
    participants: int
    average_gap: float
    finalized_percent: int
    self_submitted_percent: int
    teams: list[TeamAssessmentSummary] = field(default_factory=list)


def average_gap(rows: list[SkillAssessment]) -> float:
    """Mean |self - manager| over rows rated by both, to one decimal."""
    gaps = [
        abs(row.self_level - row.manager_level)
        for row in rows
        if row.self_level is not None and row.manager_level is not None
    ]
    if not gaps:
        return 0.0
    return round_half_up(sum(gaps) / len(gaps), 1)


def _completion(participants: list[AssessmentCycleParticipant]) -> tuple[int, int]:
    total = len(participants)
    finalized = sum(1 for p in participants if p.final_status == "completed")
    submitted = sum(1 for p in participants if p.self_status == "submitted")
    return int(percent(finalized, total, 0)), int(percent(submitted, total, 0))


class AssessmentService:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def _team_ids(self, cycle_ids: list[str]) -> dict[str, list[str]]:
        if not cycle_ids:
            return {}
        result = await self.session.execute(
            select(AssessmentCycleTeam).where(AssessmentCycleTeam.cycle_id.in_(cycle_ids))
        )
        grouped: dict[str, list[str]] = {}
        for row in result.scalars():
            grouped.setdefault(row.cycle_id, []).append(row.team_id)
        return grouped

    async def list_cycles(self, workspace_id: str) -> list[CycleView]:
        result = await self.session.execute(
            select(AssessmentCycle)
            .where(AssessmentCycle.workspace_id == workspace_id)
            .order_by(AssessmentCycle.created_at.desc())
        )
        cycles = list(result.scalars())
        teams = await self._team_ids([cycle.id for cycle in cycles])
        return [CycleView(cycle=cycle, team_ids=teams.get(cycle.id, [])) for cycle in cycles]

    async def get_cycle(self, workspace_id: str, cycle_id: str) -> CycleView | None:
        cycle = await self.session.scalar(
            select(AssessmentCycle).where(
                AssessmentCycle.id == cycle_id,
                AssessmentCycle.workspace_id == workspace_id,
            )
        )
        if cycle is None:
            return None
        teams = await self._team_ids([cycle.id])
        return CycleView(cycle=cycle, team_ids=teams.get(cycle.id, []))

    async def _sync_teams(self, cycle_id: str, team_ids: list[str]) -> None:
        await self.session.execute(delete(AssessmentCycleTeam).where(AssessmentCycleTeam.cycle_id == cycle_id))
        for team_id in dict.fromkeys(team_ids):
            self.session.add(AssessmentCycleTeam(cycle_id=cycle_id, team_id=team_id))
        await self.session.flush()

    async def create_cycle(
        self,
        workspace_id: str,
        name: str,
        created_by_user_id: str | None = None,
        description: str | None = None,
        starts_at: str | None = None,
        ends_at: str | None = None,
        team_ids: list[str] | None = None,
    ) -> CycleView:
        cycle = AssessmentCycle(
            workspace_id=workspace_id,
            name=name,
            description=description,
            status="draft",
            starts_at=starts_at,
            ends_at=ends_at,
            created_by_user_id=created_by_user_id,
        )
        self.session.add(cycle)
        await self.session.flush()
        if team_ids:
            await self._sync_teams(cycle.id, team_ids)
        return CycleView(cycle=cycle, team_ids=list(dict.fromkeys(team_ids or [])))

    async def update_cycle(
        self,
        workspace_id: str,
        cycle_id: str,
        name: str | None = None,
        description: str | None = None,
        status: str | None = None,
        starts_at: str | None = None,
        ends_at: str | None = None,
        team_ids: list[str] | None = None,
    ) -> CycleView:
        """Update a cycle; moving it into ``active`` initializes participants once."""
        view = await self.get_cycle(workspace_id, cycle_id)
        if view is None:
            raise ServiceError(ErrorCode.CYCLE_NOT_FOUND)
        cycle = view.cycle
        previous_status = cycle.status
        if name is not None:
            cycle.name = name
        if description is not None:
            cycle.description = description
        if status is not None:
            cycle.status = status
        if starts_at is not None:
            cycle.starts_at = starts_at
        if ends_at is not None:
            cycle.ends_at = ends_at
        cycle.updated_at = now_iso()
        if team_ids is not None:
            await self._sync_teams(cycle.id, team_ids)
            view.team_ids = list(dict.fromkeys(team_ids))
        await self.session.flush()

        if previous_status != "active" and cycle.status == "active":
            await self.initialize_cycle(view)
        return view

    async def initialize_cycle(self, view: CycleView) -> int:
        """Create participants and empty skill assessments for employees in scope.

        Scope is the cycle's teams, or the whole workspace when it has none.
        Employees that already participate are left untouched. Returns the
        number of participants created.
        """
        cycle = view.cycle
        query = select(Employee).where(Employee.workspace_id == cycle.workspace_id)
        if view.team_ids:
            query = query.where(Employee.primary_track_id.in_(view.team_ids))
        employees = list((await self.session.execute(query)).scalars())
        if not employees:
            return 0

        existing = set(
            (
                await self.session.execute(
                    select(AssessmentCycleParticipant.employee_id).where(
                        AssessmentCycleParticipant.cycle_id == cycle.id
                    )
                )
            ).scalars()
        )
        managers = dict(
            (
                await self.session.execute(
                    select(Track.id, Track.manager_user_id).where(Track.workspace_id == cycle.workspace_id)
                )
            ).all()
        )
        result = await self.session.execute(
            select(EmployeeSkill.employee_id, EmployeeSkill.skill_id)
            .join(Skill, EmployeeSkill.skill_id == Skill.id)
            .where(
                Skill.workspace_id == cycle.workspace_id,
                EmployeeSkill.employee_id.in_([employee.id for employee in employees]),
            )
        )
        skills_by_employee: dict[str, list[str]] = {}
        for employee_id, skill_id in result.all():
            skills_by_employee.setdefault(employee_id, []).append(skill_id)

        created = 0
        for employee in employees:
            if employee.id in existing:
                continue
            self.session.add(
                AssessmentCycleParticipant(
                    cycle_id=cycle.id,
                    employee_id=employee.id,
                    manager_user_id=managers.get(employee.primary_track_id),
                    self_status="not_started",
                    manager_status="not_assigned",
                    final_status="not_started",
                )
            )
            for skill_id in skills_by_employee.get(employee.id, []):
                self.session.add(
                    SkillAssessment(
                        cycle_id=cycle.id,
                        employee_id=employee.id,
                        skill_id=skill_id,
                        status="not_started",
                    )
                )
            created += 1
        await self.session.flush()
        logger.info("Assessment cycle %s initialized with %d participants", cycle.id, created)
        return created

    # ------------------------------------------------------------------
    # Self and manager reviews
    # ------------------------------------------------------------------

    async def _rows_for(self, cycle_id: str, employee_id: str) -> list[SkillAssessment]:
        result = await self.session.execute(
            select(SkillAssessment).where(
                SkillAssessment.cycle_id == cycle_id,
                SkillAssessment.employee_id == employee_id,
            )
        )
        return list(result.scalars())

    async def _participant(self, cycle_id: str, employee_id: str) -> AssessmentCycleParticipant | None:
        return await self.session.scalar(
            select(AssessmentCycleParticipant).where(
                AssessmentCycleParticipant.cycle_id == cycle_id,
                AssessmentCycleParticipant.employee_id == employee_id,
            )
        )

    async def _require_row(self, workspace_id: str, cycle_id: str, employee_id: str, skill_id: str) -> SkillAssessment:
        if await self.get_cycle(workspace_id, cycle_id) is None:
            raise ServiceError(ErrorCode.CYCLE_NOT_FOUND)
        row = await self.session.scalar(
            select(SkillAssessment).where(
                SkillAssessment.cycle_id == cycle_id,
                SkillAssessment.employee_id == employee_id,
                SkillAssessment.skill_id == skill_id,
            )
        )
        if row is None:
            raise ServiceError(ErrorCode.SKILL_ASSESSMENT_NOT_FOUND)
        return row

    async def get_employee_assessments(
        self, workspace_id: str, cycle_id: str, employee_id: str
    ) -> EmployeeAssessments | None:
        view = await self.get_cycle(workspace_id, cycle_id)
        if view is None:
            return None
        rows = await self._rows_for(cycle_id, employee_id)
        participant = await self._participant(cycle_id, employee_id)
        if participant is not None and participant.self_status == "submitted":
            progress = 100
        else:
            rated = sum(1 for row in rows if row.self_level is not None)
            progress = int(round_half_up(rated / (len(rows) or 1) * 100, 0))
        return EmployeeAssessments(cycle=view, assessments=rows, progress=progress)

    async def update_self_assessment(
        self,
        workspace_id: str,
        cycle_id: str,
        employee_id: str,
        skill_id: str,
        self_level: int,
        self_comment: str | None = None,
        submit: bool = False,
    ) -> SkillAssessment:
        row = await self._require_row(workspace_id, cycle_id, employee_id, skill_id)
        row.self_level = self_level
        row.self_comment = self_comment
        if submit:
            row.status = "self_submitted"
        row.updated_at = now_iso()
        await self.session.flush()

        if submit:
            participant = await self._participant(cycle_id, employee_id)
            if participant is not None:
                rows = await self._rows_for(cycle_id, employee_id)
                all_submitted = all(item.status != "not_started" for item in rows)
                participant.self_status = "submitted" if all_submitted else "in_progress"
                participant.updated_at = now_iso()
                await self.session.flush()
        return row

    async def get_manager_assessments(
        self, workspace_id: str, cycle_id: str, manager_user_id: str
    ) -> list[ParticipantAssessments]:
        """Participants reviewed by the manager, with their skill rows."""
        if await self.get_cycle(workspace_id, cycle_id) is None:
            return []
        result = await self.session.execute(
            select(AssessmentCycleParticipant, Employee.name)
            .join(Employee, AssessmentCycleParticipant.employee_id == Employee.id)
            .where(
                AssessmentCycleParticipant.cycle_id == cycle_id,
                AssessmentCycleParticipant.manager_user_id == manager_user_id,
            )
            .order_by(Employee.name)
        )
        participants = result.all()
        if not participants:
            return []
        result = await self.session.execute(
            select(SkillAssessment).where(
                SkillAssessment.cycle_id == cycle_id,
                SkillAssessment.employee_id.in_([p.employee_id for p, _ in participants]),
            )
        )
        rows: dict[str, list[SkillAssessment]] = {}
        for row in result.scalars():
            rows.setdefault(row.employee_id, []).append(row)
        return [
            ParticipantAssessments(participant=p, employee_name=name, skills=rows.get(p.employee_id, []))
            for p, name in participants
        ]

    async def update_manager_assessment(
        self,
        workspace_id: str,
        cycle_id: str,
        employee_id: str,
        skill_id: str,
        manager_level: int,
        manager_comment: str | None = None,
        finalize: bool = False,
    ) -> SkillAssessment:
        row = await self._require_row(workspace_id, cycle_id, employee_id, skill_id)
        row.manager_level = manager_level
        row.manager_comment = manager_comment
        if finalize:
            row.final_level = manager_level
        row.status = "finalized" if finalize else "manager_review"
        row.updated_at = now_iso()
        await self.session.flush()

        participant = await self._participant(cycle_id, employee_id)
        if participant is not None:
            if finalize:
                rows = await self._rows_for(cycle_id, employee_id)
                all_final = all(item.status == "finalized" for item in rows)
                participant.final_status = "completed" if all_final else "in_progress"
                participant.manager_status = "approved" if all_final else "in_progress"
            else:
                participant.manager_status = "in_progress"
            participant.updated_at = now_iso()
            await self.session.flush()
        return row

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    async def get_team_summary(self, cycle_id: str, team_id: str) -> TeamAssessmentSummary | None:
        team = await self.session.get(Track, team_id)
        if team is None:
            return None
        employee_ids = list(
            (await self.session.execute(select(Employee.id).where(Employee.primary_track_id == team_id))).scalars()
        )
        if not employee_ids:
            return TeamAssessmentSummary(team_id, team.name, 0.0, 0, 0)

        participants = list(
            (
                await self.session.execute(
                    select(AssessmentCycleParticipant).where(
                        AssessmentCycleParticipant.cycle_id == cycle_id,
                        AssessmentCycleParticipant.employee_id.in_(employee_ids),
                    )
                )
            ).scalars()
        )
        rows = list(
            (
                await self.session.execute(
                    select(SkillAssessment).where(
                        SkillAssessment.cycle_id == cycle_id,
                        SkillAssessment.employee_id.in_(employee_ids),
                    )
                )
            ).scalars()
        )
        finalized, submitted = _completion(participants)
        return TeamAssessmentSummary(
            team_id=team_id,
            team_name=team.name,
            average_gap=average_gap(rows),
            finalized_percent=finalized,
            self_submitted_percent=submitted,
        )

    async def get_workspace_summary(self, workspace_id: str, cycle_id: str) -> WorkspaceAssessmentSummary | None:
        view = await self.get_cycle(workspace_id, cycle_id)
        if view is None:
            return None
        participants = list(
            (
                await self.session.execute(
                    select(AssessmentCycleParticipant).where(AssessmentCycleParticipant.cycle_id == cycle_id)
                )
            ).scalars()
        )
        rows = list(
            (await self.session.execute(select(SkillAssessment).where(SkillAssessment.cycle_id == cycle_id))).scalars()
        )
        teams = []
        for team_id in view.team_ids:
            summary = await self.get_team_summary(cycle_id, team_id)
            if summary is not None:
                teams.append(summary)
        finalized, submitted = _completion(participants)
        return WorkspaceAssessmentSummary(
            cycle_id=cycle_id,
            participants=len(participants),
            average_gap=average_gap(rows),
            finalized_percent=finalized,
            self_submitted_percent=submitted,
            teams=teams,
        )
