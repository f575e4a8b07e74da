"""Talent decision endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from quadrant.api.dependencies import DbSession, UserId, WorkspaceId
from quadrant.api.schemas import (
    DecisionCreate,
    DecisionSource,
    DecisionStatus,
    DecisionStatusUpdate,
    DecisionType,
    DecisionViewResponse,
    ErrorResponse,
    ok,
)
from quadrant.errors import ErrorCode, ServiceError
from quadrant.services.talent_decision_service import DecisionFilters, TalentDecisionService

router = APIRouter(prefix="/decisions", tags=["decisions"])


@router.get("")
async def list_decisions(
    db: DbSession,
    workspace_id: WorkspaceId,
    employee_id: Annotated[str | None, Query()] = None,
    statuses: Annotated[list[DecisionStatus] | None, Query(alias="status")] = None,
    types: Annotated[list[DecisionType] | None, Query(alias="type")] = None,
    team_id: Annotated[str | None, Query()] = None,
    only_open: Annotated[bool, Query()] = False,
    source_type: Annotated[DecisionSource | None, Query()] = None,
    source_id: Annotated[str | None, Query()] = None,
) -> dict:
    """Decisions newest first."""
    filters = DecisionFilters(
        employee_id=employee_id,
        statuses=list(statuses) if statuses else None,
        types=list(types) if types else None,
        team_id=team_id,
        only_open=only_open,
        source_type=source_type,
        source_id=source_id,
    )
    views = await TalentDecisionService(db).list_decisions(workspace_id, filters)
    return ok(decisions=[DecisionViewResponse.model_validate(view) for view in views])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def create_decision(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    payload: DecisionCreate,
) -> dict:
    view = await TalentDecisionService(db).create_decision(
        workspace_id,
        created_by_user_id=user_id,
        **payload.model_dump(),
    )
    await db.commit()
    return ok(decision=DecisionViewResponse.model_validate(view))


@router.get("/{decision_id}", responses={404: {"model": ErrorResponse}})
async def get_decision(db: DbSession, workspace_id: WorkspaceId, decision_id: Annotated[str, Path()]) -> dict:
    view = await TalentDecisionService(db).get_decision(workspace_id, decision_id)
    if view is None:
        raise ServiceError(ErrorCode.TALENT_DECISION_NOT_FOUND)
    return ok(decision=DecisionViewResponse.model_validate(view))


@router.patch("/{decision_id}/status", responses={404: {"model": ErrorResponse}})
async def update_decision_status(
    db: DbSession,
    workspace_id: WorkspaceId,
    decision_id: Annotated[str, Path()],
    payload: DecisionStatusUpdate,
) -> dict:
    view = await TalentDecisionService(db).update_status(workspace_id, decision_id, payload.status)
    await db.commit()
    return ok(decision=DecisionViewResponse.model_validate(view))
