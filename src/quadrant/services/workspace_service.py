"""Workspace membership and role checks."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import User, Workspace, WorkspaceMember

logger = logging.getLogger(__name__)

MEMBER_ROLES = ("owner", "admin", "manager", "member")


class WorkspaceService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_workspace(self, name: str, owner_user_id: str) -> Workspace:
        """Create a workspace with its creator as the first owner."""
        workspace = Workspace(name=name, owner_user_id=owner_user_id)
        self.session.add(workspace)
        await self.session.flush()
        self.session.add(WorkspaceMember(workspace_id=workspace.id, user_id=owner_user_id, role="owner"))
        await self.session.flush()
        logger.info("Workspace %s created by %s", workspace.id, owner_user_id)
        return workspace

    async def get_member(self, workspace_id: str, user_id: str) -> WorkspaceMember | None:
        return await self.session.scalar(
            select(WorkspaceMember).where(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.user_id == user_id,
            )
        )

    async def require_member(
        self,
        workspace_id: str,
        user_id: str,
        roles: Iterable[str] | None = None,
    ) -> WorkspaceMember:
        """Membership of the user, optionally restricted to ``roles``."""
        member = await self.get_member(workspace_id, user_id)
        if member is None:
            raise ServiceError(ErrorCode.ACCESS_DENIED)
        if roles is not None and member.role not in set(roles):
            raise ServiceError(ErrorCode.ACCESS_DENIED, details={"role": member.role})
        return member

    async def list_members(self, workspace_id: str) -> list[tuple[WorkspaceMember, User]]:
        result = await self.session.execute(
            select(WorkspaceMember, User)
            .join(User, WorkspaceMember.user_id == User.id)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.created_at)
        )
        return [(member, user) for member, user in result.all()]

    async def add_member(self, workspace_id: str, user_id: str, role: str = "member") -> WorkspaceMember:
        if role not in MEMBER_ROLES:
            raise ServiceError(ErrorCode.VALIDATION_ERROR, f"Unknown role: {role}")
        existing = await self.get_member(workspace_id, user_id)
        if existing is not None:
            return existing
        member = WorkspaceMember(workspace_id=workspace_id, user_id=user_id, role=role)
        self.session.add(member)
        await self.session.flush()
        return member

    async def _owner_count(self, workspace_id: str) -> int:
        count = await self.session.scalar(
            select(func.count())
            .select_from(WorkspaceMember)
            .where(WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.role == "owner")
        )
        return count or 0

    async def _require_target(self, workspace_id: str, user_id: str) -> WorkspaceMember:
        member = await self.get_member(workspace_id, user_id)
        if member is None:
            raise ServiceError(ErrorCode.MEMBER_NOT_FOUND)
        return member

    async def change_role(self, workspace_id: str, user_id: str, role: str) -> WorkspaceMember:
        if role not in MEMBER_ROLES:
            raise ServiceError(ErrorCode.VALIDATION_ERROR, f"Unknown role: {role}")
        member = await self._require_target(workspace_id, user_id)
        if member.role == "owner" and role != "owner" and await self._owner_count(workspace_id) <= 1:
            raise ServiceError(ErrorCode.CANNOT_REMOVE_LAST_OWNER)
        member.role = role
        await self.session.flush()
        return member

    async def remove_member(self, workspace_id: str, user_id: str) -> None:
        member = await self._require_target(workspace_id, user_id)
        if member.role == "owner" and await self._owner_count(workspace_id) <= 1:
            raise ServiceError(ErrorCode.CANNOT_REMOVE_LAST_OWNER)
        await self.session.delete(member)
        await self.session.flush()
