"""Tests for the workspace skill map."""

import pytest

from quadrant.capabilities import SchemaCapabilities
from quadrant.models import Employee, EmployeeSkill, Skill, Track
from quadrant.services.skill_map_service import (
    UNASSIGNED_TEAM_NAME,
    SkillMapService,
    WorkspaceSkillSnapshot,
    build_team_profiles,
    resolve_risk_level,
    risk_score,
)
from quadrant.services.types import SkillAssignmentRow


class TestRiskLevel:
    @pytest.mark.parametrize(
        ("bus_factor", "expected"),
        [(0, "high"), (1, "high"), (2, "medium"), (3, "low"), (10, "low")],
    )
    def test_risk_level_follows_bus_factor(self, bus_factor, expected):
        assert resolve_risk_level(bus_factor) == expected

    def test_risk_score(self):
        assert risk_score(0) == 100
        assert risk_score(1) == 100
        assert risk_score(3) == 33


class TestWorkspaceSkillMap:
    async def test_single_holder_skill(self, session, seed):
        """Three employees, GoLang held by Alice only at level 4."""
        skill_map = await SkillMapService(session).get_workspace_skill_map(seed.workspace.id)

        assert skill_map.total_employees == 3
        assert skill_map.total_skills == 3
        golang = next(s for s in skill_map.skills if s.name == "GoLang")
        assert golang.coverage == 33.3
        assert golang.bus_factor == 1
        assert golang.risk_level == "high"
        assert golang.average_level == 4
        assert [h.employee_id for h in golang.key_holders] == [seed.employees[0].id]

    async def test_unheld_skill(self, session, seed):
        skill_map = await SkillMapService(session).get_workspace_skill_map(seed.workspace.id)

        kafka = next(s for s in skill_map.skills if s.name == "Kafka")
        assert kafka.people_count == 0
        assert kafka.average_level == 0
        assert kafka.risk_level == "high"
        assert kafka.coverage == 0
        assert kafka.key_holders == []

    async def test_risk_level_matches_bus_factor_for_every_skill(self, session, seed):
        skill_map = await SkillMapService(session).get_workspace_skill_map(seed.workspace.id)

        for summary in skill_map.skills:
            assert summary.risk_level == resolve_risk_level(summary.bus_factor)

    async def test_sorted_by_coverage(self, session, seed):
        skill_map = await SkillMapService(session).get_workspace_skill_map(seed.workspace.id)

        coverages = [s.coverage for s in skill_map.skills]
        assert coverages == sorted(coverages, reverse=True)
        assert skill_map.skills[0].name == "Python"
        assert skill_map.skills[0].average_level == 4

    async def test_empty_workspace(self, session, workspace):
        skill_map = await SkillMapService(session).get_workspace_skill_map(workspace.id)

        assert skill_map.total_employees == 0
        assert skill_map.skills == []
        assert skill_map.teams == []

    async def test_artifacts_disabled(self, session, seed):
        capabilities = SchemaCapabilities(
            tables=SchemaCapabilities.all_enabled().tables,
            disabled_features=frozenset({"artifacts"}),
        )
        skill_map = await SkillMapService(session, capabilities).get_workspace_skill_map(seed.workspace.id)

        assert all(s.artifact_count == 0 for s in skill_map.skills)


class TestTeamProfiles:
    async def test_team_risks(self, session, seed):
        teams = await SkillMapService(session).get_team_profiles(seed.workspace.id)

        assert len(teams) == 1
        platform = teams[0]
        assert platform.team_id == seed.team.id
        assert platform.headcount == 3

        risky = {risk.affected_skills[0]: risk for risk in platform.risks}
        golang = risky[seed.skills["GoLang"].id]
        assert golang.severity == "high"
        assert [e.name for e in golang.affected_employees] == ["Alice"]
        assert risky[seed.skills["Python"].id].severity == "medium"


def _team_snapshot(team_size, owners_by_skill, track_id="t-data"):
    """One team of ``team_size`` people; each skill is held by the first N of them."""
    employees = [
        Employee(
            id=f"e{i}",
            workspace_id="w",
            name=f"Person {i}",
            position="Engineer",
            level="Middle",
            primary_track_id=track_id,
        )
        for i in range(team_size)
    ]
    assignments = [
        SkillAssignmentRow(e.id, e.name, e.position, e.level, track_id, name, name, "hard", 3)
        for name, count in owners_by_skill.items()
        for e in employees[:count]
    ]
    return WorkspaceSkillSnapshot(
        workspace_id="w",
        employees=employees,
        skills=[Skill(id=name, workspace_id="w", name=name, type="hard") for name in owners_by_skill],
        tracks=[Track(id="t-data", workspace_id="w", name="Data")],
        assignments=assignments,
    )


class TestTeamRiskRules:
    def test_low_severity_with_wide_coverage_is_dropped(self):
        [team] = build_team_profiles(_team_snapshot(10, {"Spark": 4}))

        assert team.team_name == "Data"
        assert team.risks == []
        assert [s.coverage for s in team.dominant_skills] == [40.0]

    def test_low_severity_with_narrow_coverage_becomes_medium(self):
        [team] = build_team_profiles(_team_snapshot(10, {"Airflow": 3}))

        [risk] = team.risks
        assert risk.severity == "medium"
        assert risk.description == "Only 30.0% of the team covers Airflow"
        assert len(risk.affected_employees) == 3

    def test_risks_ordered_by_severity(self):
        [team] = build_team_profiles(_team_snapshot(10, {"Airflow": 3, "Spark": 2, "Go": 1}))

        assert [(r.affected_skills[0], r.severity) for r in team.risks] == [
            ("Go", "high"),
            ("Airflow", "medium"),
            ("Spark", "medium"),
        ]

    def test_employees_without_track_form_the_shared_pool(self):
        [team] = build_team_profiles(_team_snapshot(2, {"Go": 1}, track_id=None))

        assert team.team_id is None
        assert team.team_name == UNASSIGNED_TEAM_NAME == "Общий пул"
        assert team.headcount == 2
        assert [r.id for r in team.risks] == ["team-unassigned-Go"]


class TestKeyHolders:
    async def test_ordered_by_skill_then_seniority_and_capped(self, session, seed):
        kafka = seed.skills["Kafka"]
        newcomers = [
            Employee(workspace_id=seed.workspace.id, name="Dan", level="Middle", primary_track_id=seed.team.id),
            Employee(workspace_id=seed.workspace.id, name="Eve", level="Senior", primary_track_id=seed.team.id),
            Employee(workspace_id=seed.workspace.id, name="Fay", level="Junior", primary_track_id=seed.team.id),
        ]
        session.add_all(newcomers)
        await session.flush()
        levels = {"Dan": 4, "Eve": 4, "Fay": 5}
        session.add_all(
            [EmployeeSkill(employee_id=e.id, skill_id=kafka.id, level=levels[e.name]) for e in newcomers]
            + [EmployeeSkill(employee_id=seed.employees[2].id, skill_id=kafka.id, level=2)]
        )
        await session.flush()

        skill_map = await SkillMapService(session).get_workspace_skill_map(seed.workspace.id)

        summary = next(s for s in skill_map.skills if s.name == "Kafka")
        assert summary.people_count == 4
        # Carol (level 2) is the fourth holder and is cut
        assert [h.name for h in summary.key_holders] == ["Fay", "Eve", "Dan"]
