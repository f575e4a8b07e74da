"""Tests for assessment cycles."""

import pytest

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import SkillAssessment
from quadrant.services.assessment_service import AssessmentService, average_gap


@pytest.fixture
async def active_cycle(session, seed):
    service = AssessmentService(session)
    view = await service.create_cycle(seed.workspace.id, "H1 review", team_ids=[seed.team.id])
    return await service.update_cycle(seed.workspace.id, view.cycle.id, status="active")


class TestAverageGap:
    def test_ignores_half_rated_rows(self):
        rows = [
            SkillAssessment(self_level=4, manager_level=2),
            SkillAssessment(self_level=3, manager_level=4),
            SkillAssessment(self_level=5, manager_level=None),
        ]
        assert average_gap(rows) == 1.5

    def test_empty(self):
        assert average_gap([]) == 0.0


class TestCycles:
    async def test_create_is_draft(self, session, seed):
        view = await AssessmentService(session).create_cycle(seed.workspace.id, "Q3", team_ids=[seed.team.id])

        assert view.cycle.status == "draft"
        assert view.team_ids == [seed.team.id]

    async def test_activation_initializes_participants(self, session, seed, active_cycle):
        service = AssessmentService(session)
        alice, bob, carol = seed.employees

        alice_rows = await service.get_employee_assessments(seed.workspace.id, active_cycle.cycle.id, alice.id)
        carol_rows = await service.get_employee_assessments(seed.workspace.id, active_cycle.cycle.id, carol.id)

        assert {row.skill_id for row in alice_rows.assessments} == {
            seed.skills["GoLang"].id,
            seed.skills["Python"].id,
        }
        assert all(row.status == "not_started" for row in alice_rows.assessments)
        assert alice_rows.progress == 0
        assert carol_rows.assessments == []

        summary = await service.get_workspace_summary(seed.workspace.id, active_cycle.cycle.id)
        assert summary.participants == 3

    async def test_reactivation_does_not_duplicate(self, session, seed, active_cycle):
        created = await AssessmentService(session).initialize_cycle(active_cycle)

        assert created == 0

    async def test_update_missing_cycle(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await AssessmentService(session).update_cycle(seed.workspace.id, "missing", status="active")
        assert exc_info.value.code == ErrorCode.CYCLE_NOT_FOUND


class TestReviews:
    async def test_self_submission(self, session, seed, active_cycle):
        service = AssessmentService(session)
        cycle_id = active_cycle.cycle.id
        alice = seed.employees[0]
        golang, python = seed.skills["GoLang"].id, seed.skills["Python"].id

        await service.update_self_assessment(seed.workspace.id, cycle_id, alice.id, golang, 4, submit=True)
        partial = await service.get_employee_assessments(seed.workspace.id, cycle_id, alice.id)
        assert partial.progress == 50

        await service.update_self_assessment(seed.workspace.id, cycle_id, alice.id, python, 5, submit=True)
        done = await service.get_employee_assessments(seed.workspace.id, cycle_id, alice.id)
        assert done.progress == 100

        summary = await service.get_team_summary(cycle_id, seed.team.id)
        # one of three participants submitted
        assert summary.self_submitted_percent == 33

    async def test_manager_finalization(self, session, seed, active_cycle):
        service = AssessmentService(session)
        cycle_id = active_cycle.cycle.id
        bob = seed.employees[1]
        python = seed.skills["Python"].id

        await service.update_self_assessment(seed.workspace.id, cycle_id, bob.id, python, 4, submit=True)
        row = await service.update_manager_assessment(
            seed.workspace.id, cycle_id, bob.id, python, 2, finalize=True
        )

        assert row.status == "finalized"
        assert row.final_level == 2
        reviews = await service.get_manager_assessments(seed.workspace.id, cycle_id, seed.manager.id)
        assert [review.employee_name for review in reviews] == ["Alice", "Bob", "Carol"]
        bob_review = next(review for review in reviews if review.employee_name == "Bob")
        assert bob_review.participant.final_status == "completed"
        assert bob_review.participant.manager_status == "approved"

        summary = await service.get_workspace_summary(seed.workspace.id, cycle_id)
        assert summary.average_gap == 2.0
        assert summary.finalized_percent == 33
        assert [team.team_name for team in summary.teams] == ["Platform"]

    async def test_unknown_skill_row(self, session, seed, active_cycle):
        with pytest.raises(ServiceError) as exc_info:
            await AssessmentService(session).update_self_assessment(
                seed.workspace.id, active_cycle.cycle.id, seed.employees[2].id, seed.skills["Kafka"].id, 3
            )
        assert exc_info.value.code == ErrorCode.SKILL_ASSESSMENT_NOT_FOUND

    async def test_other_manager_sees_nothing(self, session, seed, active_cycle):
        reviews = await AssessmentService(session).get_manager_assessments(
            seed.workspace.id, active_cycle.cycle.id, seed.owner.id
        )
        assert reviews == []
