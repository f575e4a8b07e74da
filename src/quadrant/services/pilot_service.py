"""Pilot runs: a time-boxed engagement with a fixed playbook checklist."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import (
    Employee,
    PilotRun,
    PilotRunNote,
    PilotRunParticipant,
    PilotRunStep,
    PilotRunTeam,
    Track,
)
from quadrant.numbers import round_half_up
from quadrant.services.notification_service import NotificationService
from quadrant.services.types import NamedRef
from quadrant.timeutil import now_iso, parse_iso, utc_now

logger = logging.getLogger(__name__)

PILOT_PLAYBOOK_STEPS: tuple[tuple[str, str, str], ...] = (
    (
        "define_scope",
        "Define the pilot teams and goals",
        "Agree which teams and roles take part and which business questions the pilot answers.",
    ),
    (
        "import_people",
        "Import employees and teams",
        "Check that every pilot employee and team exists and is linked to a manager.",
    ),
    (
        "configure_roles",
        "Configure roles and skill requirements",
        "Describe the target job roles and their key skill requirements.",
    ),
    (
        "launch_assessment",
        "Launch the skill assessment",
        "Start an assessment cycle: self review, manager review, final calibration.",
    ),
    (
        "review_results",
        "Review the assessment results",
        "Go through the skill map, risks and the strengths of teams and key people.",
    ),
    (
        "create_moves_scenario",
        "Generate a hiring and development scenario",
        "Decide whom to develop, promote or hire.",
    ),
    (
        "assign_quests",
        "Assign quests and mini projects",
        "Assign development quests based on the scenario and role gaps.",
    ),
    (
        "final_report",
        "Prepare the final pilot report",
        "Collect insights, decisions and a three to six month plan for leadership.",
    ),
)


@dataclass
class PilotProgress:
    total_steps: int
    completed_steps: int
    percent: int
    late_steps_count: int


@dataclass
class PilotRunView:
    """A pilot run with its teams, ordered steps and progress."""

    run: PilotRun
    teams: list[NamedRef] = field(default_factory=list)
    steps: list[PilotRunStep] = field(default_factory=list)
    progress: PilotProgress | None = None


def build_progress(steps: list[PilotRunStep], now: datetime | None = None) -> PilotProgress:
    now = now or utc_now()
    completed = sum(1 for step in steps if step.status == "done")
    late = 0
    for step in steps:
        due = parse_iso(step.due_date)
        if step.status != "done" and due is not None and due < now:
            late += 1
    return PilotProgress(
        total_steps=len(steps),
        completed_steps=completed,
        percent=int(round_half_up(completed / len(steps) * 100, 0)) if steps else 0,
        late_steps_count=late,
    )


class PilotService:
    def __init__(self, session: AsyncSession, notifications: NotificationService | None = None):
        self.session = session
        self.notifications = notifications or NotificationService(session)

    async def _safe_notify(self, run: PilotRun, type: str, title: str, body: str) -> None:
        try:
            async with self.session.begin_nested():
                await self.notifications.create(
                    workspace_id=run.workspace_id,
                    user_id=run.owner_user_id,
                    type=type,
                    title=title,
                    body=body,
                    entity_type="pilot_run",
                    entity_id=run.id,
                    url=f"/app/pilot/{run.id}",
                )
        except Exception:
            logger.warning(
                "pilot_notification_failed pilot=%s type=%s",
                run.id,
                type,
                exc_info=True,
            )

    async def _find_run(self, workspace_id: str, run_id: str) -> PilotRun | None:
        return await self.session.scalar(
            select(PilotRun).where(PilotRun.id == run_id, PilotRun.workspace_id == workspace_id)
        )

    async def _require_run(self, workspace_id: str, run_id: str) -> PilotRun:
        run = await self._find_run(workspace_id, run_id)
        if run is None:
            raise ServiceError(ErrorCode.PILOT_RUN_NOT_FOUND)
        return run

    async def _hydrate(self, run: PilotRun) -> PilotRunView:
        result = await self.session.execute(
            select(Track.id, Track.name)
            .join(PilotRunTeam, PilotRunTeam.team_id == Track.id)
            .where(PilotRunTeam.pilot_run_id == run.id)
            .order_by(Track.name)
        )
        teams = [NamedRef(id=team_id, name=name) for team_id, name in result.all()]
        result = await self.session.execute(
            select(PilotRunStep)
            .where(PilotRunStep.pilot_run_id == run.id)
            .order_by(PilotRunStep.order_index)
        )
        steps = list(result.scalars())
        return PilotRunView(run=run, teams=teams, steps=steps, progress=build_progress(steps))

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def list_runs(self, workspace_id: str) -> list[PilotRunView]:
        result = await self.session.execute(
            select(PilotRun)
            .where(PilotRun.workspace_id == workspace_id)
            .order_by(PilotRun.created_at.desc())
        )
        return [await self._hydrate(run) for run in result.scalars()]

    async def get_run(self, workspace_id: str, run_id: str) -> PilotRunView | None:
        run = await self._find_run(workspace_id, run_id)
        return await self._hydrate(run) if run else None

    async def create_run(
        self,
        workspace_id: str,
        name: str,
        owner_user_id: str,
        team_ids: list[str] | None = None,
        description: str | None = None,
        origin: str = "manual",
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> PilotRunView:
        """Create a draft run with the playbook steps and notify the owner."""
        run = PilotRun(
            workspace_id=workspace_id,
            name=name,
            description=description,
            status="draft",
            owner_user_id=owner_user_id,
            origin=origin,
            start_date=start_date,
            end_date=end_date,
        )
        self.session.add(run)
        await self.session.flush()

        for team_id in dict.fromkeys(team_ids or []):
            self.session.add(PilotRunTeam(pilot_run_id=run.id, team_id=team_id))
        for index, (key, title, step_description) in enumerate(PILOT_PLAYBOOK_STEPS):
            self.session.add(
                PilotRunStep(
                    pilot_run_id=run.id,
                    key=key,
                    title=title,
                    description=step_description,
                    order_index=index,
                    status="not_started",
                )
            )
        await self.session.flush()
        logger.info("Pilot run %s created in workspace %s", run.id, workspace_id)

        await self._safe_notify(
            run,
            "pilot_created",
            f"Pilot created: {name}",
            "Keep an eye on the playbook steps and their due dates.",
        )
        return await self._hydrate(run)

    async def update_meta(
        self,
        workspace_id: str,
        run_id: str,
        name: str | None = None,
        description: str | None = None,
        status: str | None = None,
        target_cycle_id: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> PilotRunView:
        """Update run fields; the first move to completed notifies the owner."""
        run = await self._require_run(workspace_id, run_id)
        previous_status = run.status
        if name is not None:
            run.name = name
        if description is not None:
            run.description = description
        if status is not None:
            run.status = status
        if target_cycle_id is not None:
            run.target_cycle_id = target_cycle_id
        if start_date is not None:
            run.start_date = start_date
        if end_date is not None:
            run.end_date = end_date
        run.updated_at = now_iso()
        await self.session.flush()

        if status == "completed" and previous_status != "completed":
            await self._safe_notify(
                run,
                "pilot_status",
                f"Pilot completed: {run.name}",
                "Collect the final report and agree on the rollout.",
            )
        return await self._hydrate(run)

    async def update_step_status(
        self,
        workspace_id: str,
        run_id: str,
        step_id: str,
        status: str,
        due_date: str | None = None,
    ) -> PilotRunStep:
        await self._require_run(workspace_id, run_id)
        step = await self.session.scalar(
            select(PilotRunStep).where(PilotRunStep.id == step_id, PilotRunStep.pilot_run_id == run_id)
        )
        if step is None:
            raise ServiceError(ErrorCode.PILOT_STEP_NOT_FOUND)
        step.status = status
        step.completed_at = now_iso() if status == "done" else None
        if due_date is not None:
            step.due_date = due_date
        await self.session.flush()
        return step

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    async def add_participant(
        self,
        workspace_id: str,
        run_id: str,
        employee_id: str,
        role: str | None = None,
    ) -> PilotRunParticipant:
        await self._require_run(workspace_id, run_id)
        employee = await self.session.get(Employee, employee_id)
        if employee is None or employee.workspace_id != workspace_id:
            raise ServiceError(ErrorCode.EMPLOYEE_NOT_FOUND)

        existing = await self.session.scalar(
            select(PilotRunParticipant).where(
                PilotRunParticipant.pilot_run_id == run_id,
                PilotRunParticipant.employee_id == employee_id,
            )
        )
        if existing is not None:
            existing.role = role or existing.role
            await self.session.flush()
            return existing

        participant = PilotRunParticipant(
            workspace_id=workspace_id,
            pilot_run_id=run_id,
            employee_id=employee_id,
            role=role,
        )
        self.session.add(participant)
        await self.session.flush()
        return participant

    async def list_participants(self, workspace_id: str, run_id: str) -> list[tuple[PilotRunParticipant, str]]:
        """Participants with employee names, alphabetical."""
        result = await self.session.execute(
            select(PilotRunParticipant, Employee.name)
            .join(Employee, PilotRunParticipant.employee_id == Employee.id)
            .where(
                PilotRunParticipant.workspace_id == workspace_id,
                PilotRunParticipant.pilot_run_id == run_id,
            )
            .order_by(Employee.name)
        )
        return [(participant, name) for participant, name in result.all()]

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def add_note(
        self,
        workspace_id: str,
        run_id: str,
        author_user_id: str,
        title: str,
        body: str,
        type: str = "insight",
        related_team_id: str | None = None,
        related_scenario_id: str | None = None,
    ) -> PilotRunNote:
        await self._require_run(workspace_id, run_id)
        note = PilotRunNote(
            pilot_run_id=run_id,
            author_user_id=author_user_id,
            type=type,
            title=title,
            body=body,
            related_team_id=related_team_id,
            related_scenario_id=related_scenario_id,
        )
        self.session.add(note)
        await self.session.flush()
        return note

    async def list_notes(self, workspace_id: str, run_id: str) -> list[PilotRunNote]:
        if await self._find_run(workspace_id, run_id) is None:
            return []
        result = await self.session.execute(
            select(PilotRunNote)
            .where(PilotRunNote.pilot_run_id == run_id)
            .order_by(PilotRunNote.created_at.desc())
        )
        return list(result.scalars())
