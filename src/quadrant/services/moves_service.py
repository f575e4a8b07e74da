"""Job roles and move scenarios.

The generator combines team risk summaries with role gaps and turns them
into hire, develop and promote actions. Costs and timings come from
:class:`~quadrant.config.MoveHeuristics`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quadrant.config import MoveHeuristics, get_settings
from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import (
    AssessmentCycle,
    Employee,
    EmployeeSkill,
    JobRole,
    JobRoleSkillRequirement,
    MoveScenario,
    MoveScenarioAction,
    SkillAssessment,
)
from quadrant.services.skill_map_service import SkillMapService
from quadrant.services.types import (
    GapForRole,
    KeySkill,
    NamedRef,
    RoleNeed,
    SkillLevelGap,
    TeamRiskHiringSummary,
    TeamSummaryMetrics,
)
from quadrant.timeutil import now_iso

logger = logging.getLogger(__name__)

SCENARIO_DESCRIPTION = (
    "Generated from team risks, role needs and internal candidate gaps."
)


@dataclass
class RequirementSpec:
    skill_id: str
    required_level: int
    importance: str = "must_have"


@dataclass
class ActionSpec:
    type: str = "develop"
    team_id: str | None = None
    from_employee_id: str | None = None
    to_employee_id: str | None = None
    job_role_id: str | None = None
    skill_id: str | None = None
    priority: str = "medium"
    estimated_time_months: int | None = None
    estimated_cost_hire: float | None = None
    estimated_cost_develop: float | None = None
    impact_on_risk: str | None = None


class MovesService:
    """Job role catalogue, role gaps and move scenarios."""

    def __init__(
        self,
        session: AsyncSession,
        heuristics: MoveHeuristics | None = None,
        skill_map: SkillMapService | None = None,
    ):
        self.session = session
        self.heuristics = heuristics or get_settings().moves
        self.skill_map = skill_map or SkillMapService(session)

    # ------------------------------------------------------------------
    # Job roles
    # ------------------------------------------------------------------

    async def list_job_roles(self, workspace_id: str) -> list[JobRole]:
        result = await self.session.execute(
            select(JobRole)
            .where(JobRole.workspace_id == workspace_id)
            .options(selectinload(JobRole.requirements))
            .order_by(JobRole.created_at, JobRole.id)
        )
        return list(result.scalars())

    async def get_job_role(self, workspace_id: str, job_role_id: str) -> JobRole | None:
        result = await self.session.execute(
            select(JobRole)
            .where(JobRole.id == job_role_id, JobRole.workspace_id == workspace_id)
            .options(selectinload(JobRole.requirements))
        )
        return result.scalar_one_or_none()

    async def create_job_role(
        self,
        workspace_id: str,
        name: str,
        requirements: list[RequirementSpec],
        description: str | None = None,
        level_band: str | None = None,
        is_leadership: bool = False,
    ) -> JobRole:
        role = JobRole(
            workspace_id=workspace_id,
            name=name,
            description=description,
            level_band=level_band,
            is_leadership=is_leadership,
        )
        role.requirements = [
            JobRoleSkillRequirement(
                skill_id=req.skill_id,
                required_level=req.required_level,
                importance=req.importance,
            )
            for req in requirements
        ]
        self.session.add(role)
        await self.session.flush()
        return role

    async def update_job_role(
        self,
        workspace_id: str,
        job_role_id: str,
        name: str | None = None,
        description: str | None = None,
        level_band: str | None = None,
        is_leadership: bool | None = None,
        requirements: list[RequirementSpec] | None = None,
    ) -> JobRole:
        role = await self.get_job_role(workspace_id, job_role_id)
        if role is None:
            raise ServiceError(ErrorCode.ROLE_NOT_FOUND)
        if name is not None:
            role.name = name
        if description is not None:
            role.description = description
        if level_band is not None:
            role.level_band = level_band
        if is_leadership is not None:
            role.is_leadership = is_leadership
        if requirements is not None:
            role.requirements.clear()
            for req in requirements:
                role.requirements.append(
                    JobRoleSkillRequirement(
                        skill_id=req.skill_id,
                        required_level=req.required_level,
                        importance=req.importance,
                    )
                )
        role.updated_at = now_iso()
        await self.session.flush()
        return role

    # ------------------------------------------------------------------
    # Gaps
    # ------------------------------------------------------------------

    async def _skill_levels(
        self,
        workspace_id: str,
        employee_id: str,
        cycle_id: str | None = None,
    ) -> dict[str, int]:
        """Current levels from a cycle, the latest closed cycle, or the profile."""
        if cycle_id is None:
            cycle_id = await self.session.scalar(
                select(AssessmentCycle.id)
                .where(
                    AssessmentCycle.workspace_id == workspace_id,
                    AssessmentCycle.status == "closed",
                )
                .order_by(AssessmentCycle.updated_at.desc())
                .limit(1)
            )

        levels: dict[str, int] = {}
        if cycle_id is not None:
            result = await self.session.execute(
                select(SkillAssessment).where(
                    SkillAssessment.cycle_id == cycle_id,
                    SkillAssessment.employee_id == employee_id,
                )
            )
            for row in result.scalars():
                if row.effective_level is not None:
                    levels[row.skill_id] = row.effective_level

        if not levels:
            result = await self.session.execute(
                select(EmployeeSkill.skill_id, EmployeeSkill.level).where(
                    EmployeeSkill.employee_id == employee_id
                )
            )
            levels = {skill_id: level for skill_id, level in result.all()}
        return levels

    async def compute_employee_role_gap(
        self,
        workspace_id: str,
        employee_id: str,
        job_role_id: str,
        cycle_id: str | None = None,
    ) -> GapForRole:
        """gap = required - current (current defaults to 0).

        Raises:
            ServiceError: ROLE_NOT_FOUND if the role is not in the workspace.
        """
        role = await self.get_job_role(workspace_id, job_role_id)
        if role is None:
            raise ServiceError(ErrorCode.ROLE_NOT_FOUND)
        return await self._role_gap(workspace_id, employee_id, role, cycle_id)

    async def _role_gap(
        self,
        workspace_id: str,
        employee_id: str,
        role: JobRole,
        cycle_id: str | None = None,
    ) -> GapForRole:
        levels = await self._skill_levels(workspace_id, employee_id, cycle_id)
        skills: list[SkillLevelGap] = []
        score = 0
        for req in role.requirements:
            current = levels.get(req.skill_id, 0)
            gap = req.required_level - current
            skills.append(
                SkillLevelGap(
                    skill_id=req.skill_id,
                    required_level=req.required_level,
                    current_level=current,
                    gap=gap,
                )
            )
            if req.importance == "must_have":
                score += max(0, gap)
        return GapForRole(
            employee_id=employee_id,
            job_role_id=role.id,
            skills=skills,
            aggregated_gap_score=score,
        )

    async def _internal_candidates(
        self,
        workspace_id: str,
        employee_ids: list[str],
        role: JobRole,
        cycle_id: str | None = None,
    ) -> list[GapForRole]:
        threshold = self.heuristics.internal_candidate_gap_threshold
        candidates = []
        for employee_id in employee_ids:
            gap = await self._role_gap(workspace_id, employee_id, role, cycle_id)
            if gap.aggregated_gap_score <= threshold:
                candidates.append(gap)
        return candidates

    async def _team_employee_ids(self, workspace_id: str, team_id: str) -> list[str]:
        result = await self.session.execute(
            select(Employee.id)
            .where(Employee.workspace_id == workspace_id, Employee.primary_track_id == team_id)
            .order_by(Employee.created_at, Employee.id)
        )
        return list(result.scalars())

    async def compute_team_needs_summary(
        self,
        workspace_id: str,
        team_id: str,
        cycle_id: str | None = None,
    ) -> TeamRiskHiringSummary | None:
        """Key risk skills and per-role hiring needs of one team."""
        snapshot = await self.skill_map.load_snapshot(workspace_id)
        team = next((track for track in snapshot.tracks if track.id == team_id), None)
        if team is None:
            return None

        team_employee_ids = [e.id for e in snapshot.employees if e.primary_track_id == team_id]
        member_ids = set(team_employee_ids)

        owners_by_skill: dict[str, list[NamedRef]] = {}
        skill_names: dict[str, str] = {}
        for row in snapshot.assignments:
            if row.employee_id not in member_ids:
                continue
            owners_by_skill.setdefault(row.skill_id, []).append(
                NamedRef(id=row.employee_id, name=row.employee_name)
            )
            skill_names[row.skill_id] = row.skill_name

        h = self.heuristics
        key_skills = [
            KeySkill(
                skill_id=skill_id,
                skill_name=skill_names[skill_id],
                risk_score=h.single_owner_risk_score if len(owners) <= 1 else h.dual_owner_risk_score,
                bus_factor=len(owners),
                owners=owners,
                is_single_point_of_failure=len(owners) == 1,
            )
            for skill_id, owners in owners_by_skill.items()
            if len(owners) <= h.key_skill_max_owners
        ]

        roles: list[RoleNeed] = []
        for role in await self.list_job_roles(workspace_id):
            candidates = await self._internal_candidates(workspace_id, team_employee_ids, role, cycle_id)
            roles.append(
                RoleNeed(
                    job_role_id=role.id,
                    job_role_name=role.name,
                    is_leadership=role.is_leadership,
                    internal_candidates_count=len(candidates),
                    min_gap_score_among_candidates=min(
                        (c.aggregated_gap_score for c in candidates), default=None
                    ),
                    hire_required=not candidates,
                    primary_skills_for_role=[
                        req.skill_id for req in role.requirements if req.importance == "must_have"
                    ],
                )
            )

        hires = sum(1 for role in roles if role.hire_required)
        return TeamRiskHiringSummary(
            team_id=team_id,
            team_name=team.name,
            key_skills=key_skills,
            roles=roles,
            summary_metrics=TeamSummaryMetrics(
                total_risk_skills_count=len(key_skills),
                single_point_of_failure_count=sum(
                    1 for skill in key_skills if skill.is_single_point_of_failure
                ),
                roles_without_internal_candidates_count=hires,
                suggested_hire_count=hires,
                suggested_develop_count=len(roles) - hires,
            ),
        )

    # ------------------------------------------------------------------
    # Scenarios
    # ------------------------------------------------------------------

    async def list_scenarios(self, workspace_id: str) -> list[MoveScenario]:
        result = await self.session.execute(
            select(MoveScenario)
            .where(MoveScenario.workspace_id == workspace_id)
            .options(selectinload(MoveScenario.actions))
            .order_by(MoveScenario.created_at.desc())
        )
        return list(result.scalars())

    async def get_scenario(self, workspace_id: str, scenario_id: str) -> MoveScenario | None:
        result = await self.session.execute(
            select(MoveScenario)
            .where(MoveScenario.id == scenario_id, MoveScenario.workspace_id == workspace_id)
            .options(selectinload(MoveScenario.actions))
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _action(spec: ActionSpec, position: int) -> MoveScenarioAction:
        return MoveScenarioAction(
            type=spec.type,
            team_id=spec.team_id,
            from_employee_id=spec.from_employee_id,
            to_employee_id=spec.to_employee_id,
            job_role_id=spec.job_role_id,
            skill_id=spec.skill_id,
            priority=spec.priority,
            estimated_time_months=spec.estimated_time_months,
            estimated_cost_hire=spec.estimated_cost_hire,
            estimated_cost_develop=spec.estimated_cost_develop,
            impact_on_risk=spec.impact_on_risk,
            position=position,
        )

    async def save_scenario(
        self,
        workspace_id: str,
        created_by_user_id: str,
        title: str,
        actions: list[ActionSpec],
        description: str | None = None,
    ) -> MoveScenario:
        scenario = MoveScenario(
            workspace_id=workspace_id,
            title=title,
            description=description,
            created_by_user_id=created_by_user_id,
            status="draft",
        )
        scenario.actions = [self._action(spec, i) for i, spec in enumerate(actions)]
        self.session.add(scenario)
        await self.session.flush()
        return scenario

    async def update_scenario_status(self, workspace_id: str, scenario_id: str, status: str) -> MoveScenario:
        scenario = await self.get_scenario(workspace_id, scenario_id)
        if scenario is None:
            raise ServiceError(ErrorCode.SCENARIO_NOT_FOUND)
        scenario.status = status
        scenario.updated_at = now_iso()
        await self.session.flush()
        return scenario

    async def add_action(self, workspace_id: str, scenario_id: str, action: ActionSpec) -> MoveScenario:
        scenario = await self.get_scenario(workspace_id, scenario_id)
        if scenario is None:
            raise ServiceError(ErrorCode.SCENARIO_NOT_FOUND)
        scenario.actions.append(self._action(action, len(scenario.actions)))
        scenario.updated_at = now_iso()
        await self.session.flush()
        return scenario

    async def suggest_from_risks(
        self,
        workspace_id: str,
        created_by_user_id: str,
        team_id: str | None = None,
        cycle_id: str | None = None,
    ) -> MoveScenario:
        """Draft a scenario that addresses team risks.

        Roles without internal candidates get a hire action; otherwise the
        best candidates get develop actions (promote for leadership roles).

        Raises:
            ServiceError: INSUFFICIENT_DATA when no team or action qualifies.
        """
        h = self.heuristics
        summaries: list[TeamRiskHiringSummary] = []
        if team_id:
            summary = await self.compute_team_needs_summary(workspace_id, team_id, cycle_id)
            if summary is not None:
                summaries.append(summary)
        else:
            skill_map = await self.skill_map.get_workspace_skill_map(workspace_id)
            for team in skill_map.teams[: h.max_teams_per_scenario]:
                if not team.team_id:
                    continue
                summary = await self.compute_team_needs_summary(workspace_id, team.team_id, cycle_id)
                if summary is not None:
                    summaries.append(summary)

        if not summaries:
            raise ServiceError(ErrorCode.INSUFFICIENT_DATA, "Not enough data to build a scenario")

        roles_by_id = {role.id: role for role in await self.list_job_roles(workspace_id)}
        actions: list[ActionSpec] = []
        for summary in summaries:
            has_single_point = summary.summary_metrics.single_point_of_failure_count > 0
            for need in summary.roles:
                urgent = need.is_leadership or has_single_point
                priority = "high" if urgent else "medium"
                if need.hire_required:
                    actions.append(
                        ActionSpec(
                            type="hire",
                            team_id=summary.team_id,
                            job_role_id=need.job_role_id,
                            skill_id=need.primary_skills_for_role[0] if need.primary_skills_for_role else None,
                            priority=priority,
                            estimated_cost_hire=h.hire_cost(need.is_leadership, urgent),
                        )
                    )
                    continue

                role = roles_by_id[need.job_role_id]
                team_employee_ids = await self._team_employee_ids(workspace_id, summary.team_id)
                candidates = await self._internal_candidates(workspace_id, team_employee_ids, role, cycle_id)
                candidates.sort(key=lambda c: c.aggregated_gap_score)
                for candidate in candidates[: h.max_candidates_per_role]:
                    months = h.development_months(candidate.aggregated_gap_score)
                    if not months:
                        continue
                    actions.append(
                        ActionSpec(
                            type="promote" if need.is_leadership else "develop",
                            team_id=summary.team_id,
                            from_employee_id=candidate.employee_id,
                            job_role_id=need.job_role_id,
                            priority=priority,
                            estimated_time_months=months,
                            estimated_cost_develop=h.development_cost(months),
                        )
                    )

        if not actions:
            raise ServiceError(ErrorCode.INSUFFICIENT_DATA, "Not enough data to build a scenario")

        if team_id:
            title = f"Risk mitigation scenario for team {summaries[0].team_name}"
        else:
            title = "Workspace key risk mitigation scenario"
        scenario = await self.save_scenario(
            workspace_id=workspace_id,
            created_by_user_id=created_by_user_id,
            title=title,
            description=SCENARIO_DESCRIPTION,
            actions=actions,
        )
        logger.info("Suggested scenario %s with %d actions", scenario.id, len(actions))
        return scenario
