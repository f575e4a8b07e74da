"""Assessment cycle endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, status

from quadrant.api.dependencies import DbSession, UserId, WorkspaceId
from quadrant.api.schemas import (
    CycleCreate,
    CycleUpdate,
    CycleViewResponse,
    EmployeeAssessmentsResponse,
    ErrorResponse,
    ManagerAssessmentUpdate,
    ParticipantAssessmentsResponse,
    SelfAssessmentUpdate,
    SkillAssessmentResponse,
    ok,
)
from quadrant.errors import ErrorCode, ServiceError
from quadrant.services.assessment_service import AssessmentService
from quadrant.services.state_machine import CycleStateMachine

router = APIRouter(prefix="/assessments", tags=["assessments"])


# ============================================================================
# Cycles
# ============================================================================


@router.get("/cycles")
async def list_cycles(db: DbSession, workspace_id: WorkspaceId) -> dict:
    cycles = await AssessmentService(db).list_cycles(workspace_id)
    return ok(cycles=[CycleViewResponse.model_validate(view) for view in cycles])


@router.post("/cycles", status_code=status.HTTP_201_CREATED)
async def create_cycle(db: DbSession, workspace_id: WorkspaceId, user_id: UserId, payload: CycleCreate) -> dict:
    view = await AssessmentService(db).create_cycle(
        workspace_id,
        name=payload.name,
        created_by_user_id=user_id,
        description=payload.description,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        team_ids=payload.team_ids,
    )
    await db.commit()
    return ok(cycle=CycleViewResponse.model_validate(view))


@router.get("/cycles/{cycle_id}", responses={404: {"model": ErrorResponse}})
async def get_cycle(db: DbSession, workspace_id: WorkspaceId, cycle_id: Annotated[str, Path()]) -> dict:
    view = await AssessmentService(db).get_cycle(workspace_id, cycle_id)
    if view is None:
        raise ServiceError(ErrorCode.CYCLE_NOT_FOUND)
    return ok(cycle=CycleViewResponse.model_validate(view))


@router.patch(
    "/cycles/{cycle_id}",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_cycle(
    db: DbSession,
    workspace_id: WorkspaceId,
    cycle_id: Annotated[str, Path()],
    payload: CycleUpdate,
) -> dict:
    """Update a cycle; activation creates participants and assessment rows."""
    service = AssessmentService(db)
    if payload.status is not None:
        current = await service.get_cycle(workspace_id, cycle_id)
        if current is None:
            raise ServiceError(ErrorCode.CYCLE_NOT_FOUND)
        CycleStateMachine.validate_transition(current.cycle.status, payload.status)

    view = await service.update_cycle(workspace_id, cycle_id, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return ok(cycle=CycleViewResponse.model_validate(view))


@router.get("/cycles/{cycle_id}/summary", responses={404: {"model": ErrorResponse}})
async def get_cycle_summary(db: DbSession, workspace_id: WorkspaceId, cycle_id: Annotated[str, Path()]) -> dict:
    summary = await AssessmentService(db).get_workspace_summary(workspace_id, cycle_id)
    if summary is None:
        raise ServiceError(ErrorCode.CYCLE_NOT_FOUND)
    return ok(summary=summary)


@router.get("/cycles/{cycle_id}/teams/{team_id}/summary", responses={404: {"model": ErrorResponse}})
async def get_team_summary(
    db: DbSession,
    workspace_id: WorkspaceId,
    cycle_id: Annotated[str, Path()],
    team_id: Annotated[str, Path()],
) -> dict:
    service = AssessmentService(db)
    if await service.get_cycle(workspace_id, cycle_id) is None:
        raise ServiceError(ErrorCode.CYCLE_NOT_FOUND)
    summary = await service.get_team_summary(cycle_id, team_id)
    if summary is None:
        raise ServiceError(ErrorCode.TEAM_NOT_FOUND)
    return ok(summary=summary)


# ============================================================================
# Self and manager reviews
# ============================================================================


@router.get("/cycles/{cycle_id}/employees/{employee_id}", responses={404: {"model": ErrorResponse}})
async def get_employee_assessments(
    db: DbSession,
    workspace_id: WorkspaceId,
    cycle_id: Annotated[str, Path()],
    employee_id: Annotated[str, Path()],
) -> dict:
    result = await AssessmentService(db).get_employee_assessments(workspace_id, cycle_id, employee_id)
    if result is None:
        raise ServiceError(ErrorCode.CYCLE_NOT_FOUND)
    return ok(assessments=EmployeeAssessmentsResponse.model_validate(result))


@router.put(
    "/cycles/{cycle_id}/employees/{employee_id}/skills/{skill_id}/self",
    responses={404: {"model": ErrorResponse}},
)
async def update_self_assessment(
    db: DbSession,
    workspace_id: WorkspaceId,
    cycle_id: Annotated[str, Path()],
    employee_id: Annotated[str, Path()],
    skill_id: Annotated[str, Path()],
    payload: SelfAssessmentUpdate,
) -> dict:
    row = await AssessmentService(db).update_self_assessment(
        workspace_id,
        cycle_id,
        employee_id,
        skill_id,
        self_level=payload.self_level,
        self_comment=payload.self_comment,
        submit=payload.submit,
    )
    await db.commit()
    return ok(assessment=SkillAssessmentResponse.model_validate(row))


@router.get("/cycles/{cycle_id}/manager")
async def get_manager_assessments(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    cycle_id: Annotated[str, Path()],
) -> dict:
    """Participants the calling manager reviews."""
    participants = await AssessmentService(db).get_manager_assessments(workspace_id, cycle_id, user_id)
    return ok(participants=[ParticipantAssessmentsResponse.model_validate(p) for p in participants])


@router.put(
    "/cycles/{cycle_id}/employees/{employee_id}/skills/{skill_id}/manager",
    responses={404: {"model": ErrorResponse}},
)
async def update_manager_assessment(
    db: DbSession,
    workspace_id: WorkspaceId,
    cycle_id: Annotated[str, Path()],
    employee_id: Annotated[str, Path()],
    skill_id: Annotated[str, Path()],
    payload: ManagerAssessmentUpdate,
) -> dict:
    row = await AssessmentService(db).update_manager_assessment(
        workspace_id,
        cycle_id,
        employee_id,
        skill_id,
        manager_level=payload.manager_level,
        manager_comment=payload.manager_comment,
        finalize=payload.finalize,
    )
    await db.commit()
    return ok(assessment=SkillAssessmentResponse.model_validate(row))
