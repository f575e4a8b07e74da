"""Tests for workspace membership rules."""

import pytest

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import User
from quadrant.services.workspace_service import WorkspaceService


class TestMembership:
    async def test_create_workspace_adds_owner(self, session, owner):
        service = WorkspaceService(session)

        workspace = await service.create_workspace("Beta", owner.id)

        member = await service.get_member(workspace.id, owner.id)
        assert member.role == "owner"

    async def test_require_member_roles(self, session, seed):
        service = WorkspaceService(session)

        member = await service.require_member(seed.workspace.id, seed.manager.id)
        assert member.role == "manager"

        with pytest.raises(ServiceError) as exc_info:
            await service.require_member(seed.workspace.id, seed.manager.id, roles=("owner", "admin"))
        assert exc_info.value.code == ErrorCode.ACCESS_DENIED
        assert exc_info.value.http_status == 403

    async def test_non_member_denied(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await WorkspaceService(session).require_member(seed.workspace.id, "stranger")
        assert exc_info.value.code == ErrorCode.ACCESS_DENIED

    async def test_add_member_is_idempotent(self, session, seed):
        service = WorkspaceService(session)
        user = User(email="new@example.com", name="Nina New")
        session.add(user)
        await session.flush()

        first = await service.add_member(seed.workspace.id, user.id, "member")
        second = await service.add_member(seed.workspace.id, user.id, "admin")

        assert second.id == first.id
        assert second.role == "member"
        members = await service.list_members(seed.workspace.id)
        assert "Nina New" in {u.name for _, u in members}

    async def test_unknown_role(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await WorkspaceService(session).add_member(seed.workspace.id, seed.manager.id, "superuser")
        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR


class TestLastOwner:
    async def test_cannot_demote_last_owner(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await WorkspaceService(session).change_role(seed.workspace.id, seed.owner.id, "admin")
        assert exc_info.value.code == ErrorCode.CANNOT_REMOVE_LAST_OWNER
        assert exc_info.value.http_status == 409

    async def test_cannot_remove_last_owner(self, session, seed):
        with pytest.raises(ServiceError) as exc_info:
            await WorkspaceService(session).remove_member(seed.workspace.id, seed.owner.id)
        assert exc_info.value.code == ErrorCode.CANNOT_REMOVE_LAST_OWNER

    async def test_second_owner_allows_demotion(self, session, seed):
        service = WorkspaceService(session)
        await service.change_role(seed.workspace.id, seed.manager.id, "owner")

        demoted = await service.change_role(seed.workspace.id, seed.owner.id, "member")

        assert demoted.role == "member"

    async def test_remove_member(self, session, seed):
        service = WorkspaceService(session)

        await service.remove_member(seed.workspace.id, seed.manager.id)

        assert await service.get_member(seed.workspace.id, seed.manager.id) is None
        with pytest.raises(ServiceError) as exc_info:
            await service.remove_member(seed.workspace.id, seed.manager.id)
        assert exc_info.value.code == ErrorCode.MEMBER_NOT_FOUND
