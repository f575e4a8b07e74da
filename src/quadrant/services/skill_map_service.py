"""Skill snapshot loading and the workspace skill map.

Coverage, bus factor and key holders per skill, plus per-team profiles with
dominant skills and the riskiest skills of each team.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.capabilities import SchemaCapabilities
from quadrant.models import (
    Artifact,
    ArtifactAssignee,
    ArtifactSkill,
    Employee,
    EmployeeSkill,
    Skill,
    Track,
)
from quadrant.numbers import percent, round_half_up
from quadrant.services.types import (
    AffectedEmployee,
    DominantSkill,
    KeyHolder,
    RiskItem,
    SkillAssignmentRow,
    SkillSummary,
    TeamSkillProfile,
    WorkspaceSkillMap,
)
from quadrant.timeutil import now_iso

UNASSIGNED_TEAM_NAME = "Общий пул"

LEVEL_ORDER = {"Junior": 0, "Middle": 1, "Senior": 2}
SEVERITY_WEIGHT = {"high": 3, "medium": 2, "low": 1}


def resolve_risk_level(bus_factor: int) -> str:
    """high for at most one holder, medium for two, low otherwise."""
    if bus_factor <= 1:
        return "high"
    if bus_factor == 2:
        return "medium"
    return "low"


def risk_score(bus_factor: int) -> int:
    if bus_factor == 0:
        return 100
    return int(round_half_up(100 / bus_factor, 0))


@dataclass
class WorkspaceSkillSnapshot:
    """Everything the skill analytics need, loaded in one pass."""

    workspace_id: str
    employees: list[Employee]
    skills: list[Skill]
    tracks: list[Track]
    assignments: list[SkillAssignmentRow]
    artifact_count_by_employee: dict[str, int] = field(default_factory=dict)


class SkillMapService:
    """Builds the workspace skill map from live rows."""

    def __init__(self, session: AsyncSession, capabilities: SchemaCapabilities | None = None):
        self.session = session
        self.capabilities = capabilities or SchemaCapabilities.all_enabled()

    async def load_snapshot(self, workspace_id: str) -> WorkspaceSkillSnapshot:
        employees = list(
            (
                await self.session.execute(
                    select(Employee)
                    .where(Employee.workspace_id == workspace_id)
                    .order_by(Employee.created_at, Employee.id)
                )
            ).scalars()
        )
        skills = list(
            (
                await self.session.execute(
                    select(Skill)
                    .where(Skill.workspace_id == workspace_id)
                    .order_by(Skill.created_at, Skill.id)
                )
            ).scalars()
        )
        tracks = list(
            (
                await self.session.execute(
                    select(Track).where(Track.workspace_id == workspace_id)
                )
            ).scalars()
        )

        result = await self.session.execute(
            select(
                Employee.id,
                Employee.name,
                Employee.position,
                Employee.level,
                Employee.primary_track_id,
                Skill.id,
                Skill.name,
                Skill.type,
                EmployeeSkill.level,
            )
            .select_from(EmployeeSkill)
            .join(Employee, EmployeeSkill.employee_id == Employee.id)
            .join(Skill, EmployeeSkill.skill_id == Skill.id)
            .where(Employee.workspace_id == workspace_id)
        )
        assignments = [SkillAssignmentRow(*row) for row in result.all()]

        artifact_counts: dict[str, int] = {}
        if self.capabilities.supports("artifacts"):
            rows = await self.session.execute(
                select(
                    ArtifactAssignee.employee_id,
                    func.count(func.distinct(ArtifactAssignee.artifact_id)),
                )
                .join(Artifact, ArtifactAssignee.artifact_id == Artifact.id)
                .where(Artifact.workspace_id == workspace_id)
                .group_by(ArtifactAssignee.employee_id)
            )
            artifact_counts = {employee_id: int(total or 0) for employee_id, total in rows.all()}

        return WorkspaceSkillSnapshot(
            workspace_id=workspace_id,
            employees=employees,
            skills=skills,
            tracks=tracks,
            assignments=assignments,
            artifact_count_by_employee=artifact_counts,
        )

    async def _artifact_count_by_skill(self, workspace_id: str) -> dict[str, int]:
        if not self.capabilities.supports("artifacts"):
            return {}
        rows = await self.session.execute(
            select(
                ArtifactSkill.skill_id,
                func.count(func.distinct(ArtifactSkill.artifact_id)),
            )
            .join(Artifact, ArtifactSkill.artifact_id == Artifact.id)
            .where(Artifact.workspace_id == workspace_id)
            .group_by(ArtifactSkill.skill_id)
        )
        return {skill_id: int(total or 0) for skill_id, total in rows.all()}

    async def get_workspace_skill_map(self, workspace_id: str) -> WorkspaceSkillMap:
        snapshot = await self.load_snapshot(workspace_id)
        artifact_by_skill = await self._artifact_count_by_skill(workspace_id)
        total_employees = len(snapshot.employees)

        holders_by_skill: dict[str, list[SkillAssignmentRow]] = defaultdict(list)
        for row in snapshot.assignments:
            holders_by_skill[row.skill_id].append(row)

        summaries = [
            self._summarize_skill(
                skill,
                holders_by_skill.get(skill.id, []),
                total_employees,
                artifact_by_skill.get(skill.id, 0),
            )
            for skill in snapshot.skills
        ]
        # Stable sort keeps load order for equal coverage
        summaries.sort(key=lambda s: s.coverage, reverse=True)

        return WorkspaceSkillMap(
            workspace_id=workspace_id,
            total_employees=total_employees,
            total_skills=len(snapshot.skills),
            skills=summaries,
            teams=build_team_profiles(snapshot),
            generated_at=now_iso(),
        )

    @staticmethod
    def _summarize_skill(
        skill: Skill,
        holders: list[SkillAssignmentRow],
        total_employees: int,
        artifact_count: int,
    ) -> SkillSummary:
        people_count = len(holders)
        average = (
            round_half_up(sum(h.skill_level for h in holders) / people_count)
            if people_count
            else 0
        )
        key_holders = sorted(
            holders,
            key=lambda h: (h.skill_level, LEVEL_ORDER.get(h.employee_level, 0)),
            reverse=True,
        )[:3]
        return SkillSummary(
            skill_id=skill.id,
            name=skill.name,
            type=skill.type,
            average_level=average,
            people_count=people_count,
            coverage=percent(people_count, total_employees),
            bus_factor=people_count,
            risk_level=resolve_risk_level(people_count),
            risk_score=risk_score(people_count),
            artifact_count=artifact_count,
            key_holders=[
                KeyHolder(
                    employee_id=h.employee_id,
                    name=h.employee_name,
                    position=h.employee_position,
                    level=h.employee_level,
                    skill_level=h.skill_level,
                )
                for h in key_holders
            ],
        )

    async def get_team_profiles(self, workspace_id: str) -> list[TeamSkillProfile]:
        snapshot = await self.load_snapshot(workspace_id)
        return build_team_profiles(snapshot)


@dataclass
class _TeamAccumulator:
    team_id: str | None
    team_name: str
    employee_ids: set[str] = field(default_factory=set)
    # keyed by skill_id
    skill_levels: dict[str, int] = field(default_factory=dict)
    skill_owners: dict[str, set[str]] = field(default_factory=dict)


def build_team_profiles(snapshot: WorkspaceSkillSnapshot) -> list[TeamSkillProfile]:
    """Group employees by primary track and profile each team."""
    if not snapshot.employees:
        return []

    track_names = {track.id: track.name for track in snapshot.tracks}
    employees = {employee.id: employee for employee in snapshot.employees}
    skills = {skill.id: skill for skill in snapshot.skills}

    teams: dict[str, _TeamAccumulator] = {}

    def team_for(track_id: str | None) -> _TeamAccumulator:
        key = track_id or "unassigned"
        if key not in teams:
            teams[key] = _TeamAccumulator(
                team_id=track_id,
                team_name=track_names.get(track_id, UNASSIGNED_TEAM_NAME)
                if track_id
                else UNASSIGNED_TEAM_NAME,
            )
        return teams[key]

    for employee in snapshot.employees:
        team_for(employee.primary_track_id).employee_ids.add(employee.id)

    for row in snapshot.assignments:
        team = team_for(row.employee_track_id)
        team.employee_ids.add(row.employee_id)
        team.skill_levels[row.skill_id] = team.skill_levels.get(row.skill_id, 0) + row.skill_level
        team.skill_owners.setdefault(row.skill_id, set()).add(row.employee_id)

    profiles: list[TeamSkillProfile] = []
    for team in teams.values():
        headcount = len(team.employee_ids)
        if headcount == 0:
            continue

        dominant: list[DominantSkill] = []
        risks: list[RiskItem] = []
        for skill_id, owners in team.skill_owners.items():
            skill = skills.get(skill_id)
            if skill is None:
                continue
            owner_count = len(owners)
            coverage = percent(owner_count, headcount)
            dominant.append(
                DominantSkill(
                    skill_id=skill_id,
                    name=skill.name,
                    coverage=coverage,
                    average_level=round_half_up(team.skill_levels[skill_id] / owner_count),
                )
            )

            severity = resolve_risk_level(owner_count)
            if severity == "low" and coverage > 30:
                continue
            if severity == "low":
                severity = "medium"
            if owner_count <= 1:
                description = f"Only {owner_count} person on the team has {skill.name}"
            else:
                description = f"Only {coverage}% of the team covers {skill.name}"
            risks.append(
                RiskItem(
                    id=f"team-{team.team_id or 'unassigned'}-{skill_id}",
                    kind="skill",
                    severity=severity,
                    title=f"Skill risk: {skill.name}",
                    description=description,
                    metric_value=owner_count,
                    metric_label="bus factor",
                    team_id=team.team_id,
                    affected_skills=[skill_id],
                    affected_employees=[
                        AffectedEmployee(
                            employee_id=owner_id,
                            name=employees[owner_id].name if owner_id in employees else "Employee",
                            position=employees[owner_id].position if owner_id in employees else "",
                        )
                        for owner_id in sorted(owners)
                    ],
                )
            )

        dominant.sort(key=lambda s: s.coverage, reverse=True)
        risks.sort(key=lambda r: SEVERITY_WEIGHT[r.severity], reverse=True)
        profiles.append(
            TeamSkillProfile(
                team_id=team.team_id,
                team_name=team.team_name,
                headcount=headcount,
                dominant_skills=dominant[:5],
                risks=risks[:3],
            )
        )

    profiles.sort(key=lambda p: p.headcount, reverse=True)
    return profiles
