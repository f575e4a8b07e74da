"""Workspace membership endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, status

from quadrant.api.dependencies import DbSession, UserId, WorkspaceId
from quadrant.api.schemas import ErrorResponse, MemberCreate, MemberResponse, MemberRoleUpdate, ok
from quadrant.services.workspace_service import WorkspaceService

router = APIRouter(prefix="/members", tags=["members"])

ADMIN_ROLES = ("owner", "admin")


@router.get("", responses={403: {"model": ErrorResponse}})
async def list_members(db: DbSession, workspace_id: WorkspaceId, user_id: UserId) -> dict:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, user_id)
    rows = await service.list_members(workspace_id)
    return ok(
        members=[
            MemberResponse(user_id=member.user_id, email=user.email, name=user.name, role=member.role)
            for member, user in rows
        ]
    )


@router.post("", status_code=status.HTTP_201_CREATED, responses={403: {"model": ErrorResponse}})
async def add_member(db: DbSession, workspace_id: WorkspaceId, user_id: UserId, payload: MemberCreate) -> dict:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, user_id, roles=ADMIN_ROLES)
    member = await service.add_member(workspace_id, payload.user_id, payload.role)
    await db.commit()
    return ok(member=MemberResponse(user_id=member.user_id, role=member.role))


@router.patch(
    "/{member_user_id}",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def change_member_role(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    member_user_id: Annotated[str, Path()],
    payload: MemberRoleUpdate,
) -> dict:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, user_id, roles=ADMIN_ROLES)
    member = await service.change_role(workspace_id, member_user_id, payload.role)
    await db.commit()
    return ok(member=MemberResponse(user_id=member.user_id, role=member.role))


@router.delete(
    "/{member_user_id}",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def remove_member(
    db: DbSession,
    workspace_id: WorkspaceId,
    user_id: UserId,
    member_user_id: Annotated[str, Path()],
) -> dict:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, user_id, roles=ADMIN_ROLES)
    await service.remove_member(workspace_id, member_user_id)
    await db.commit()
    return ok()
