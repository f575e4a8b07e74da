"""Tests for job roles, team needs and move scenarios."""

import pytest

from quadrant.config import MoveHeuristics
from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import AssessmentCycle, SkillAssessment
from quadrant.services.moves_service import ActionSpec, MovesService, RequirementSpec


@pytest.fixture
async def lead_role(session, seed):
    """Leadership role needing GoLang 5 and Python 5."""
    return await MovesService(session, heuristics=MoveHeuristics()).create_job_role(
        seed.workspace.id,
        name="Backend lead",
        is_leadership=True,
        requirements=[
            RequirementSpec(skill_id=seed.skills["GoLang"].id, required_level=5),
            RequirementSpec(skill_id=seed.skills["Python"].id, required_level=5),
            RequirementSpec(skill_id=seed.skills["Kafka"].id, required_level=3, importance="nice_to_have"),
        ],
    )


class TestHeuristics:
    def test_hire_cost(self):
        h = MoveHeuristics()
        assert h.hire_cost(is_leadership=False, high_priority=False) == 50000
        assert h.hire_cost(is_leadership=True, high_priority=True) == 90000

    def test_development_months(self):
        h = MoveHeuristics()
        assert h.development_months(3) == 6
        assert h.development_months(7) == 12
        assert h.development_months(8) is None

    def test_rejects_inconsistent_values(self):
        with pytest.raises(ValueError):
            MoveHeuristics(short_gap_max=9, long_gap_max=7)


class TestRoleGaps:
    async def test_gap_from_profile(self, session, seed, lead_role):
        gap = await MovesService(session, heuristics=MoveHeuristics()).compute_employee_role_gap(
            seed.workspace.id, seed.employees[1].id, lead_role.id
        )

        by_skill = {item.skill_id: item for item in gap.skills}
        assert by_skill[seed.skills["GoLang"].id].current_level == 0
        assert by_skill[seed.skills["Python"].id].gap == 2
        # nice-to-have skills do not count
        assert gap.aggregated_gap_score == 7

    async def test_closed_cycle_levels_win(self, session, seed, lead_role):
        bob = seed.employees[1]
        cycle = AssessmentCycle(workspace_id=seed.workspace.id, name="H1", status="closed")
        session.add(cycle)
        await session.flush()
        session.add(
            SkillAssessment(
                cycle_id=cycle.id,
                employee_id=bob.id,
                skill_id=seed.skills["Python"].id,
                status="finalized",
                manager_level=4,
                final_level=5,
            )
        )
        await session.flush()

        gap = await MovesService(session, heuristics=MoveHeuristics()).compute_employee_role_gap(
            seed.workspace.id, bob.id, lead_role.id
        )

        assert gap.aggregated_gap_score == 5

    async def test_unknown_role(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await MovesService(session, heuristics=MoveHeuristics()).compute_employee_role_gap(
                seed.workspace.id, seed.employees[0].id, "missing"
            )
        assert exc_info.value.code == ErrorCode.ROLE_NOT_FOUND

    async def test_update_replaces_requirements(self, session, seed, lead_role):
        service = MovesService(session, heuristics=MoveHeuristics())

        role = await service.update_job_role(
            seed.workspace.id,
            lead_role.id,
            name="Staff engineer",
            requirements=[RequirementSpec(skill_id=seed.skills["Kafka"].id, required_level=2)],
        )

        assert role.name == "Staff engineer"
        assert [req.skill_id for req in role.requirements] == [seed.skills["Kafka"].id]


class TestTeamNeeds:
    async def test_summary(self, session, seed, lead_role):
        summary = await MovesService(session, heuristics=MoveHeuristics()).compute_team_needs_summary(
            seed.workspace.id, seed.team.id
        )

        key = {skill.skill_name: skill for skill in summary.key_skills}
        assert key["GoLang"].is_single_point_of_failure is True
        assert key["GoLang"].risk_score == 90
        assert key["Python"].bus_factor == 2
        assert key["Python"].risk_score == 65
        assert summary.summary_metrics.single_point_of_failure_count == 1

        [need] = summary.roles
        # Alice (gap 1) qualifies, Bob (gap 7) and Carol do not
        assert need.internal_candidates_count == 1
        assert need.min_gap_score_among_candidates == 1
        assert need.hire_required is False
        assert summary.summary_metrics.suggested_develop_count == 1

    async def test_unknown_team(self, session, seed):
        summary = await MovesService(session, heuristics=MoveHeuristics()).compute_team_needs_summary(
            seed.workspace.id, "missing"
        )
        assert summary is None


class TestScenarios:
    async def test_suggest_promotes_internal_candidate(self, session, seed, lead_role):
        scenario = await MovesService(session, heuristics=MoveHeuristics()).suggest_from_risks(
            seed.workspace.id, seed.owner.id, team_id=seed.team.id
        )

        assert scenario.status == "draft"
        assert scenario.title == "Risk mitigation scenario for team Platform"
        [action] = scenario.actions
        assert action.type == "promote"
        assert action.from_employee_id == seed.employees[0].id
        assert action.priority == "high"
        assert action.estimated_time_months == 6
        assert action.estimated_cost_develop == 18000

    async def test_suggest_hires_without_candidates(self, session, seed, lead_role):
        strict = MoveHeuristics(internal_candidate_gap_threshold=0)

        scenario = await MovesService(session, heuristics=strict).suggest_from_risks(
            seed.workspace.id, seed.owner.id
        )

        assert scenario.title == "Workspace key risk mitigation scenario"
        [action] = scenario.actions
        assert action.type == "hire"
        assert action.skill_id in {seed.skills["GoLang"].id, seed.skills["Python"].id}
        assert action.estimated_cost_hire == 90000

    async def test_suggest_without_data(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await MovesService(session, heuristics=MoveHeuristics()).suggest_from_risks(
                seed.workspace.id, seed.owner.id, team_id="missing"
            )
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_DATA

    async def test_save_and_extend(self, session, seed):
        service = MovesService(session, heuristics=MoveHeuristics())
        scenario = await service.save_scenario(
            seed.workspace.id,
            seed.owner.id,
            "Manual plan",
            [ActionSpec(type="hire", team_id=seed.team.id)],
        )

        extended = await service.add_action(
            seed.workspace.id, scenario.id, ActionSpec(type="develop", from_employee_id=seed.employees[1].id)
        )

        assert [action.position for action in extended.actions] == [0, 1]
        updated = await service.update_scenario_status(seed.workspace.id, scenario.id, "review")
        assert updated.status == "review"

    async def test_missing_scenario(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await MovesService(session, heuristics=MoveHeuristics()).update_scenario_status(
                seed.workspace.id, "missing", "review"
            )
        assert exc_info.value.code == ErrorCode.SCENARIO_NOT_FOUND
