"""Pilot run endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, status

from quadrant.api.dependencies import DbSession, UserId, WorkspaceId
from quadrant.api.schemas import (
    ErrorResponse,
    PilotCreate,
    PilotNoteCreate,
    PilotNoteResponse,
    PilotParticipantCreate,
    PilotParticipantResponse,
    PilotRunViewResponse,
    PilotStepResponse,
    PilotStepUpdate,
    PilotUpdate,
    ok,
)
from quadrant.errors import ErrorCode, ServiceError
from quadrant.services.pilot_service import PilotService
from quadrant.services.state_machine import PilotRunStateMachine

router = APIRouter(prefix="/pilots", tags=["pilots"])


# ============================================================================
# Pilot runs
# ============================================================================


@router.get("")
async def list_pilots(db: DbSession, workspace_id: WorkspaceId) -> dict:
    runs = await PilotService(db).list_runs(workspace_id)
    return ok(pilots=[PilotRunViewResponse.model_validate(run) for run in runs])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_pilot(db: DbSession, workspace_id: WorkspaceId, user_id: UserId, payload: PilotCreate) -> dict:
    """Create a draft pilot with the standard playbook steps."""
    view = await PilotService(db).create_run(
        workspace_id,
        name=payload.name,
        owner_user_id=user_id,
        team_ids=payload.team_ids,
        description=payload.description,
        origin=payload.origin,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    await db.commit()
    return ok(pilot=PilotRunViewResponse.model_validate(view))


@router.get("/{pilot_id}", responses={404: {"model": ErrorResponse}})
async def get_pilot(db: DbSession, workspace_id: WorkspaceId, pilot_id: Annotated[str, Path()]) -> dict:
    view = await PilotService(db).get_run(workspace_id, pilot_id)
    if view is None:
        raise ServiceError(ErrorCode.PILOT_RUN_NOT_FOUND)
    return ok(pilot=PilotRunViewResponse.model_validate(view))


@router.patch(
    "/{pilot_id}",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_pilot(
    db: DbSession,
    workspace_id: WorkspaceId,
    pilot_id: Annotated[str, Path()],
    payload: PilotUpdate,
) -> dict:
    service = PilotService(db)
    if payload.status is not None:
        current = await service.get_run(workspace_id, pilot_id)
        if current is None:
            raise ServiceError(ErrorCode.PILOT_RUN_NOT_FOUND)
        PilotRunStateMachine.validate_transition(current.run.status, payload.status)

    view = await service.update_meta(workspace_id, pilot_id, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return ok(pilot=PilotRunViewResponse.model_validate(view))


@router.patch("/{pilot_id}/steps/{step_id}", responses={404: {"model": ErrorResponse}})
async def update_pilot_step(
    db: DbSession,
    workspace_id: WorkspaceId,
    pilot_id: Annotated[str, Path()],
    step_id: Annotated[str, Path()],
    payload: PilotStepUpdate,
) -> dict:
    step = await PilotService(db).update_step_status(
        workspace_id, pilot_id, step_id, payload.status, due_date=payload.due_date
    )
    await db.commit()
    return ok(step=PilotStepResponse.model_validate(step))


# ============================================================================
# Participants and notes
# ============================================================================


@router.get("/{pilot_id}/participants")
async def list_participants(db: DbSession, workspace_id: WorkspaceId, pilot_id: Annotated[str, Path()]) -> dict:
    rows = await PilotService(db).list_participants(workspace_id, pilot_id)
    return ok(
        participants=[
            PilotParticipantResponse(
                id=participant.id,
                employee_id=participant.employee_id,
                employee_name=name,
                role=participant.role,
            )
            for participant, name in rows
        ]
    )


@router.post(
    "/{pilot_id}/participants",
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def add_participant(
    db: DbSession,
    workspace_id: WorkspaceId,
    pilot_id: Annotated[str, Path()],
    payload: PilotParticipantCreate,
) -> dict:
    participant = await PilotService(db).add_participant(
        workspace_id, pilot_id, payload.employee_id, role=payload.role
    )
    await db.commit()
    return ok(participant={"id": participant.id, "employee_id": participant.employee_id, "role": participant.role})


@router.get("/{pilot_id}/notes")
async def list_notes(db: DbSession, workspace_id: WorkspaceId, pilot_id: Annotated[str, Path()]) -> dict:
    notes = await PilotService(db).list_notes(workspace_id, pilot_id)
    return ok(notes=[PilotNoteResponse.model_validate(note) for note in notes])


@router.post(
    "/{pilot_id}/notes",
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def add_note(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    pilot_id: Annotated[str, Path()],
    payload: PilotNoteCreate,
) -> dict:
    note = await PilotService(db).add_note(
        workspace_id,
        pilot_id,
        author_user_id=user_id,
        title=payload.title,
        body=payload.body,
        type=payload.type,
        related_team_id=payload.related_team_id,
        related_scenario_id=payload.related_scenario_id,
    )
    await db.commit()
    return ok(note=PilotNoteResponse.model_validate(note))
