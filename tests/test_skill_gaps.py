"""Tests for role profiles, ratings and the skill gap engine."""

import pytest

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import Workspace
from quadrant.services.skill_gap_service import (
    UNRATED_AVG_GAP,
    RatingInput,
    RequirementInput,
    SkillGapService,
)


@pytest.fixture
async def backend_role(session, seed):
    """Role profile needing GoLang 4 (weight 3) and Kafka 3."""
    return await SkillGapService(session).upsert_role_profile(
        seed.workspace.id,
        name="Backend engineer",
        requirements=[
            RequirementInput(skill_code="GoLang", level_required=4, weight=3),
            RequirementInput(skill_code="Kafka", level_required=3),
        ],
    )


class TestRoleProfiles:
    async def test_upsert_replaces_requirements(self, session, seed, backend_role):
        service = SkillGapService(session)

        updated = await service.upsert_role_profile(
            seed.workspace.id,
            name="Backend engineer II",
            requirements=[RequirementInput(skill_code="Python", level_required=5)],
            role_id=backend_role.id,
        )

        assert updated.id == backend_role.id
        assert updated.name == "Backend engineer II"
        assert [r.skill_code for r in updated.requirements] == ["Python"]
        assert updated.requirements[0].weight == 1

    async def test_default_flag_is_exclusive(self, session, seed, backend_role):
        service = SkillGapService(session)
        await service.upsert_role_profile(seed.workspace.id, "First", [], is_default=True)
        second = await service.upsert_role_profile(seed.workspace.id, "Second", [], is_default=True)

        roles = await service.list_role_profiles(seed.workspace.id)
        defaults = [role.id for role in roles if role.is_default]
        assert defaults == [second.id]

    async def test_assign_unknown_employee(self, session, seed, backend_role):
        with pytest.raises(ServiceError) as exc_info:
            await SkillGapService(session).assign_role_to_employee(seed.workspace.id, "missing", backend_role.id)
        assert exc_info.value.code == ErrorCode.EMPLOYEE_NOT_FOUND

    async def test_assign_unknown_role(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await SkillGapService(session).assign_role_to_employee(
                seed.workspace.id, seed.employees[0].id, "missing"
            )
        assert exc_info.value.code == ErrorCode.ROLE_PROFILE_NOT_FOUND
        assert exc_info.value.http_status == 404

    async def test_primary_assignment_demotes_others(self, session, seed, backend_role):
        service = SkillGapService(session)
        other = await service.upsert_role_profile(seed.workspace.id, "QA", [])
        alice = seed.employees[0]

        first = await service.assign_role_to_employee(seed.workspace.id, alice.id, backend_role.id)
        second = await service.assign_role_to_employee(seed.workspace.id, alice.id, other.id)

        assert second.is_primary is True
        await session.refresh(first)
        assert first.is_primary is False

        again = await service.assign_role_to_employee(seed.workspace.id, alice.id, other.id)
        assert again.id == second.id


class TestSkillGaps:
    async def test_gap_is_none_without_rating(self, session, seed, backend_role):
        service = SkillGapService(session)
        alice = seed.employees[0]
        await service.assign_role_to_employee(seed.workspace.id, alice.id, backend_role.id)
        await service.upsert_skill_ratings(
            seed.workspace.id,
            alice.id,
            source="manager",
            ratings=[RatingInput(skill_code="GoLang", level=3)],
        )

        result = await service.get_skill_gap_for_employee(seed.workspace.id, alice.id)

        assert result.primary_role.id == backend_role.id
        gaps = {gap.skill_code: gap for gap in result.skills}
        assert gaps["GoLang"].current_level == 3
        assert gaps["GoLang"].gap == -1
        assert gaps["Kafka"].current_level is None
        assert gaps["Kafka"].gap is None

    async def test_latest_rating_wins_across_sources(self, session, seed, backend_role):
        service = SkillGapService(session)
        alice = seed.employees[0]
        await service.assign_role_to_employee(seed.workspace.id, alice.id, backend_role.id)
        await service.upsert_skill_ratings(
            seed.workspace.id,
            alice.id,
            "self",
            [RatingInput(skill_code="GoLang", level=2, rated_at="2024-01-01T00:00:00.000Z")],
        )
        await service.upsert_skill_ratings(
            seed.workspace.id,
            alice.id,
            "manager",
            [RatingInput(skill_code="GoLang", level=5, rated_at="2024-02-01T00:00:00.000Z")],
        )

        result = await service.get_skill_gap_for_employee(seed.workspace.id, alice.id)

        golang = next(gap for gap in result.skills if gap.skill_code == "GoLang")
        assert golang.current_level == 5
        assert golang.gap == 1

    async def test_rating_upsert_is_unique_per_source(self, session, seed):
        service = SkillGapService(session)
        alice = seed.employees[0]
        first = await service.upsert_skill_ratings(
            seed.workspace.id, alice.id, "manager", [RatingInput(skill_code="Kafka", level=1)]
        )
        second = await service.upsert_skill_ratings(
            seed.workspace.id, alice.id, "manager", [RatingInput(skill_code="Kafka", level=4)]
        )

        assert first[0].id == second[0].id
        levels = await service.get_employee_skill_levels(seed.workspace.id, [alice.id])
        assert [(level.skill_code, level.level) for level in levels] == [("Kafka", 4)]

    async def test_employee_without_role(self, session, seed):
        result = await SkillGapService(session).get_skill_gap_for_employee(
            seed.workspace.id, seed.employees[2].id
        )
        assert result.primary_role is None
        assert result.skills == []

    async def test_compute_gaps_for_role(self, session, seed, backend_role):
        service = SkillGapService(session)
        alice, bob, _ = seed.employees
        for employee in (alice, bob):
            await service.assign_role_to_employee(seed.workspace.id, employee.id, backend_role.id)
        await service.upsert_skill_ratings(
            seed.workspace.id, alice.id, "manager", [RatingInput(skill_code="GoLang", level=4)]
        )

        role_gaps = await service.compute_gaps_for_role(seed.workspace.id, backend_role.id)

        assert len(role_gaps.gaps) == 4
        assert {ref.name for ref in role_gaps.employees} == {"Alice", "Bob"}
        assert {ref.id for ref in role_gaps.skills} == {"GoLang", "Kafka"}
        rated = [gap for gap in role_gaps.gaps if gap.gap is not None]
        assert [(gap.employee_name, gap.skill_code, gap.gap) for gap in rated] == [("Alice", "GoLang", 0)]

    async def test_role_from_another_workspace_has_no_requirements(self, session, seed):
        other = Workspace(name="Globex", owner_user_id=seed.owner.id)
        session.add(other)
        await session.flush()
        foreign_role = await SkillGapService(session).upsert_role_profile(
            other.id,
            name="Data engineer",
            requirements=[RequirementInput(skill_code="Spark", level_required=4)],
        )

        role_gaps = await SkillGapService(session).compute_gaps_for_role(
            seed.workspace.id, foreign_role.id, employee_ids=[seed.employees[0].id]
        )

        assert role_gaps.role_id == foreign_role.id
        assert role_gaps.gaps == []
        assert role_gaps.employees == []

    async def test_top_gaps_order(self, session, seed, backend_role):
        service = SkillGapService(session)
        alice, bob, _ = seed.employees
        for employee in (alice, bob):
            await service.assign_role_to_employee(seed.workspace.id, employee.id, backend_role.id)
        await service.upsert_skill_ratings(
            seed.workspace.id, alice.id, "manager", [RatingInput(skill_code="GoLang", level=2)]
        )

        top = await service.compute_top_gaps_for_role(seed.workspace.id, backend_role.id)

        # GoLang has the higher weight, Kafka is rated by nobody
        assert [gap.skill_code for gap in top] == ["GoLang", "Kafka"]
        assert top[0].avg_gap == -2
        assert top[0].affected_employees == 2
        assert top[1].avg_gap == UNRATED_AVG_GAP

    async def test_skill_profile(self, session, seed, backend_role):
        service = SkillGapService(session)
        bob = seed.employees[1]
        await service.assign_role_to_employee(seed.workspace.id, bob.id, backend_role.id)

        profile = await service.compute_skill_profile_for_employee(seed.workspace.id, bob.id)

        assert profile.role_id == backend_role.id
        assert profile.role_name == "Backend engineer"
        assert all(skill.gap is None for skill in profile.skills)
