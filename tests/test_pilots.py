"""Tests for pilot runs."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import Notification, PilotRunStep
from quadrant.services.pilot_service import PILOT_PLAYBOOK_STEPS, PilotService, build_progress


async def _notification_types(session, user_id):
    result = await session.execute(
        select(Notification.type).where(Notification.user_id == user_id).order_by(Notification.type)
    )
    return list(result.scalars())


class TestProgress:
    def test_empty(self):
        progress = build_progress([])
        assert progress.total_steps == 0
        assert progress.percent == 0

    def test_counts_done_and_late(self):
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        steps = [PilotRunStep(status="done", due_date="2024-05-01") for _ in range(3)]
        steps.append(PilotRunStep(status="in_progress", due_date="2024-05-20"))
        steps.append(PilotRunStep(status="not_started", due_date="2024-07-01"))
        steps.extend(PilotRunStep(status="not_started", due_date=None) for _ in range(3))

        progress = build_progress(steps, now=now)

        assert progress.total_steps == 8
        assert progress.completed_steps == 3
        # 37.5 rounds half up
        assert progress.percent == 38
        assert progress.late_steps_count == 1


class TestPilotRuns:
    @pytest.fixture
    async def run(self, session, seed):
        return await PilotService(session).create_run(
            seed.workspace.id,
            name="Backend bench",
            owner_user_id=seed.manager.id,
            team_ids=[seed.team.id, seed.team.id],
        )

    async def test_create_seeds_playbook(self, session, seed, run):
        assert run.run.status == "draft"
        assert [step.key for step in run.steps] == [key for key, _, _ in PILOT_PLAYBOOK_STEPS]
        assert len(run.steps) == 8
        assert all(step.status == "not_started" for step in run.steps)
        assert [team.name for team in run.teams] == ["Platform"]
        assert run.progress.percent == 0
        assert await _notification_types(session, seed.manager.id) == ["pilot_created"]

    async def test_completion_notifies_once(self, session, seed, run):
        service = PilotService(session)

        await service.update_meta(seed.workspace.id, run.run.id, status="active")
        completed = await service.update_meta(seed.workspace.id, run.run.id, status="completed")
        await service.update_meta(seed.workspace.id, run.run.id, status="completed", name="Backend bench v2")

        assert completed.run.status == "completed"
        assert await _notification_types(session, seed.manager.id) == ["pilot_created", "pilot_status"]

    async def test_step_status(self, session, seed, run):
        service = PilotService(session)
        first = run.steps[0]

        step = await service.update_step_status(seed.workspace.id, run.run.id, first.id, "done")
        assert step.completed_at is not None

        view = await service.get_run(seed.workspace.id, run.run.id)
        assert view.progress.completed_steps == 1
        assert view.progress.percent == 13

        step = await service.update_step_status(seed.workspace.id, run.run.id, first.id, "in_progress")
        assert step.completed_at is None

    async def test_unknown_step(self, session, seed, run):
        with pytest.raises(ServiceError) as exc_info:
            await PilotService(session).update_step_status(seed.workspace.id, run.run.id, "missing", "done")
        assert exc_info.value.code == ErrorCode.PILOT_STEP_NOT_FOUND

    async def test_participants_are_unique(self, session, seed, run):
        service = PilotService(session)
        alice = seed.employees[0]

        first = await service.add_participant(seed.workspace.id, run.run.id, alice.id, "mentor")
        second = await service.add_participant(seed.workspace.id, run.run.id, alice.id, "lead")

        assert second.id == first.id
        participants = await service.list_participants(seed.workspace.id, run.run.id)
        assert [(p.role, name) for p, name in participants] == [("lead", "Alice")]

    async def test_notes(self, session, seed, run):
        service = PilotService(session)
        await service.add_note(seed.workspace.id, run.run.id, seed.manager.id, "Kickoff", "Went well")

        notes = await service.list_notes(seed.workspace.id, run.run.id)

        assert [note.title for note in notes] == ["Kickoff"]
        assert await service.list_notes(seed.workspace.id, "missing") == []

    async def test_missing_run(self, session, seed):
        service = PilotService(session)
        assert await service.get_run(seed.workspace.id, "missing") is None
        with pytest.raises(ServiceError) as exc_info:
            await service.update_meta(seed.workspace.id, "missing", name="x")
        assert exc_info.value.code == ErrorCode.PILOT_RUN_NOT_FOUND
