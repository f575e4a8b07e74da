"""Risk case and notification endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from quadrant.api.dependencies import Capabilities, DbSession, UserId, WorkspaceId
from quadrant.api.schemas import (
    AttachPilotRequest,
    ErrorResponse,
    NotificationResponse,
    RiskCaseCreate,
    RiskCaseResponse,
    RiskCaseStatusUpdate,
    RiskLevel,
    RiskStatus,
    ok,
)
from quadrant.services.notification_service import NotificationService
from quadrant.services.risk_case_service import RiskCaseService

router = APIRouter(prefix="/risk-cases", tags=["risk-cases"])
notifications_router = APIRouter(prefix="/notifications", tags=["notifications"])


# ============================================================================
# Risk cases
# ============================================================================


@router.get("", responses={503: {"model": ErrorResponse}})
async def list_risk_cases(
    db: DbSession,
    workspace_id: WorkspaceId,
    capabilities: Capabilities,
    statuses: Annotated[list[RiskStatus] | None, Query(alias="status")] = None,
    levels: Annotated[list[RiskLevel] | None, Query(alias="level")] = None,
    search: Annotated[str | None, Query(max_length=200)] = None,
    owner_user_id: Annotated[str | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
    offset: Annotated[int | None, Query(ge=0)] = None,
) -> dict:
    """Filtered page of cases, newest detection first."""
    page = await RiskCaseService(db, capabilities=capabilities).list_cases(
        workspace_id,
        statuses=list(statuses) if statuses else None,
        levels=list(levels) if levels else None,
        search=search,
        limit=limit,
        offset=offset,
        owner_user_id=owner_user_id,
    )
    return ok(
        items=[RiskCaseResponse.model_validate(item) for item in page.items],
        total=page.total,
        open_count=page.open_count,
        high_count=page.high_count,
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def create_risk_case(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    capabilities: Capabilities,
    payload: RiskCaseCreate,
) -> dict:
    """Return, escalate or open the employee's active case."""
    case = await RiskCaseService(db, capabilities=capabilities).ensure_case(
        workspace_id,
        employee_id=payload.employee_id,
        level=payload.level,
        source=payload.source,
        title=payload.title,
        reason=payload.reason,
        recommendation=payload.recommendation,
        owner_user_id=payload.owner_user_id,
        created_by_user_id=user_id,
    )
    await db.commit()
    return ok(case=RiskCaseResponse.model_validate(case))


@router.get("/employees/{employee_id}")
async def list_employee_cases(
    db: DbSession,
    workspace_id: WorkspaceId,
    capabilities: Capabilities,
    employee_id: Annotated[str, Path()],
    only_open: Annotated[bool, Query()] = False,
) -> dict:
    cases = await RiskCaseService(db, capabilities=capabilities).get_cases_for_employee(
        workspace_id, employee_id, only_open=only_open
    )
    return ok(items=[RiskCaseResponse.model_validate(case) for case in cases])


@router.get("/{case_id}", responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}})
async def get_risk_case(
    db: DbSession,
    workspace_id: WorkspaceId,
    capabilities: Capabilities,
    case_id: Annotated[str, Path()],
) -> dict:
    case = await RiskCaseService(db, capabilities=capabilities).get_case(workspace_id, case_id)
    return ok(case=RiskCaseResponse.model_validate(case))


@router.patch("/{case_id}/status", responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}})
async def update_risk_case_status(
    db: DbSession,
    workspace_id: WorkspaceId,
    capabilities: Capabilities,
    case_id: Annotated[str, Path()],
    payload: RiskCaseStatusUpdate,
) -> dict:
    case = await RiskCaseService(db, capabilities=capabilities).update_status(
        workspace_id, case_id, payload.status, resolution_note=payload.resolution_note
    )
    await db.commit()
    return ok(case=RiskCaseResponse.model_validate(case))


@router.post("/{case_id}/pilot", responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}})
async def attach_pilot(
    db: DbSession,
    workspace_id: WorkspaceId,
    capabilities: Capabilities,
    case_id: Annotated[str, Path()],
    payload: AttachPilotRequest,
) -> dict:
    case = await RiskCaseService(db, capabilities=capabilities).attach_pilot(
        workspace_id, case_id, payload.pilot_id
    )
    await db.commit()
    return ok(case=RiskCaseResponse.model_validate(case))


# ============================================================================
# Notifications
# ============================================================================


@notifications_router.get("")
async def list_notifications(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    only_unread: Annotated[bool, Query()] = False,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict:
    page = await NotificationService(db).list_for_user(
        workspace_id, user_id, only_unread=only_unread, limit=limit, offset=offset
    )
    return ok(
        items=[NotificationResponse.model_validate(item) for item in page.items],
        total=page.total,
        unread_count=page.unread_count,
    )


@notifications_router.get("/unread-count")
async def count_unread(db: DbSession, workspace_id: WorkspaceId, user_id: UserId) -> dict:
    return ok(unread_count=await NotificationService(db).count_unread(workspace_id, user_id))


@notifications_router.post("/read-all")
async def mark_all_read(db: DbSession, workspace_id: WorkspaceId, user_id: UserId) -> dict:
    await NotificationService(db).mark_all_read(workspace_id, user_id)
    await db.commit()
    return ok()


@notifications_router.post("/{notification_id}/read", responses={404: {"model": ErrorResponse}})
async def mark_read(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    notification_id: Annotated[str, Path()],
) -> dict:
    notification = await NotificationService(db).mark_read(workspace_id, user_id, notification_id)
    await db.commit()
    return ok(notification=NotificationResponse.model_validate(notification))


@notifications_router.post("/{notification_id}/archive", responses={404: {"model": ErrorResponse}})
async def archive(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    notification_id: Annotated[str, Path()],
) -> dict:
    notification = await NotificationService(db).archive(workspace_id, user_id, notification_id)
    await db.commit()
    return ok(notification=NotificationResponse.model_validate(notification))
