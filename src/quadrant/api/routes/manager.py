"""Manager agenda, command center and home endpoints."""

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Query

from quadrant.api.dependencies import AppSettings, Capabilities, DbSession, UserId, WorkspaceId
from quadrant.api.schemas import ErrorResponse, ok
from quadrant.errors import ErrorCode, ServiceError
from quadrant.services.agenda_service import AgendaService
from quadrant.services.command_center_service import CommandCenterService
from quadrant.services.manager_home_service import ManagerHomeService
from quadrant.timeutil import utc_now

router = APIRouter(prefix="/manager", tags=["manager"])

MAX_AGENDA_DAYS = 62


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _window(start: datetime | None, end: datetime | None, default_days: int) -> tuple[datetime, datetime]:
    start = _aware(start) or utc_now()
    end = _aware(end) or start + timedelta(days=default_days)
    if end < start:
        raise ServiceError(ErrorCode.VALIDATION_ERROR, "end must not be before start")
    if end - start > timedelta(days=MAX_AGENDA_DAYS):
        raise ServiceError(ErrorCode.VALIDATION_ERROR, f"window is limited to {MAX_AGENDA_DAYS} days")
    return start, end


@router.get("/agenda", responses={400: {"model": ErrorResponse}})
async def get_agenda(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    settings: AppSettings,
    capabilities: Capabilities,
    start: Annotated[datetime | None, Query()] = None,
    end: Annotated[datetime | None, Query()] = None,
) -> dict:
    """Day-by-day agenda of the calling manager."""
    start, end = _window(start, end, settings.agenda.default_lookahead_days)
    service = AgendaService(db, capabilities=capabilities, policy=settings.agenda)
    days = await service.get_manager_agenda(workspace_id, user_id, start, end)
    return ok(days=days)


@router.get("/agenda/items", responses={400: {"model": ErrorResponse}})
async def get_agenda_items(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    settings: AppSettings,
    capabilities: Capabilities,
    start: Annotated[datetime | None, Query()] = None,
    end: Annotated[datetime | None, Query()] = None,
) -> dict:
    start, end = _window(start, end, settings.agenda.default_lookahead_days)
    service = AgendaService(db, capabilities=capabilities, policy=settings.agenda)
    items = await service.build_agenda_for_manager(workspace_id, user_id, start, end)
    return ok(items=items)


@router.get("/agenda/snapshot", responses={400: {"model": ErrorResponse}})
async def get_agenda_snapshot(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    settings: AppSettings,
    capabilities: Capabilities,
    start: Annotated[datetime | None, Query()] = None,
    end: Annotated[datetime | None, Query()] = None,
) -> dict:
    start, end = _window(start, end, settings.agenda.default_lookahead_days)
    service = AgendaService(db, capabilities=capabilities, policy=settings.agenda)
    snapshot = await service.get_agenda_snapshot(workspace_id, user_id, start=start, end=end)
    return ok(snapshot=snapshot)


@router.get("/command-center")
async def get_command_center(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    settings: AppSettings,
    capabilities: Capabilities,
    lookahead_days: Annotated[int | None, Query(ge=1, le=MAX_AGENDA_DAYS)] = None,
) -> dict:
    service = CommandCenterService(db, capabilities=capabilities, policy=settings.agenda)
    snapshot = await service.get_snapshot(workspace_id, user_id, lookahead_days=lookahead_days)
    return ok(snapshot=snapshot)


@router.get("/home")
async def get_home(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    settings: AppSettings,
    capabilities: Capabilities,
) -> dict:
    """Summary, team cards, meetings and prioritized action items."""
    service = ManagerHomeService(db, capabilities=capabilities, policy=settings.agenda)
    home = await service.get_home(workspace_id, user_id)
    await db.commit()
    return ok(home=home)
