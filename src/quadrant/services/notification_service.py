"""In-app notifications."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.errors import ErrorCode, ServiceError
from quadrant.models import Notification
from quadrant.timeutil import now_iso

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 2


@dataclass
class NotificationPage:
    items: list[Notification]
    total: int
    unread_count: int


class NotificationService:
    """Create, list and acknowledge notifications for one user."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        workspace_id: str,
        user_id: str,
        type: str,
        title: str,
        body: str = "",
        entity_type: str | None = None,
        entity_id: str | None = None,
        url: str | None = None,
        priority: int | None = None,
        expires_at: str | None = None,
    ) -> Notification:
        notification = Notification(
            workspace_id=workspace_id,
            user_id=user_id,
            type=type,
            title=title,
            body=body,
            entity_type=entity_type,
            entity_id=entity_id,
            url=url,
            is_read=False,
            is_archived=False,
            expires_at=expires_at,
            priority=priority if priority is not None else DEFAULT_PRIORITY,
        )
        self.session.add(notification)
        await self.session.flush()
        logger.debug("Notification %s (%s) created for user %s", notification.id, type, user_id)
        return notification

    async def create_if_absent(
        self,
        workspace_id: str,
        user_id: str,
        type: str,
        title: str,
        body: str = "",
        entity_type: str | None = None,
        entity_id: str | None = None,
        url: str | None = None,
        priority: int | None = None,
        expires_at: str | None = None,
    ) -> Notification | None:
        """Create unless an unread notification for the same entity exists.

        Returns the new notification, or None when one was already pending.
        """
        query = select(Notification.id).where(
            Notification.workspace_id == workspace_id,
            Notification.user_id == user_id,
            Notification.type == type,
            Notification.is_read.is_(False),
        )
        if entity_id is None:
            query = query.where(Notification.entity_id.is_(None))
        else:
            query = query.where(Notification.entity_id == entity_id)
        existing = await self.session.scalar(query.limit(1))
        if existing is not None:
            return None
        return await self.create(
            workspace_id=workspace_id,
            user_id=user_id,
            type=type,
            title=title,
            body=body,
            entity_type=entity_type,
            entity_id=entity_id,
            url=url,
            priority=priority,
            expires_at=expires_at,
        )

    def _active_filter(self, workspace_id: str, user_id: str):
        now = now_iso()
        return (
            Notification.workspace_id == workspace_id,
            Notification.user_id == user_id,
            Notification.is_archived.is_(False),
            or_(Notification.expires_at.is_(None), Notification.expires_at >= now),
        )

    async def list_for_user(
        self,
        workspace_id: str,
        user_id: str,
        only_unread: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> NotificationPage:
        """Active notifications, highest priority value first, then newest."""
        active = self._active_filter(workspace_id, user_id)
        unread = Notification.is_read.is_(False)
        conditions = (*active, unread) if only_unread else active

        total = await self.session.scalar(
            select(func.count()).select_from(Notification).where(*conditions)
        )
        unread_count = await self.session.scalar(
            select(func.count()).select_from(Notification).where(*active, unread)
        )

        query = (
            select(Notification)
            .where(*conditions)
            .order_by(Notification.priority.desc(), Notification.created_at.desc())
        )
        if limit:
            query = query.limit(limit).offset(offset)
        result = await self.session.execute(query)
        return NotificationPage(
            items=list(result.scalars()),
            total=total or 0,
            unread_count=unread_count or 0,
        )

    async def count_unread(self, workspace_id: str, user_id: str) -> int:
        total = await self.session.scalar(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.workspace_id == workspace_id,
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return total or 0

    async def _get_owned(self, workspace_id: str, user_id: str, notification_id: str) -> Notification:
        notification = await self.session.get(Notification, notification_id)
        if (
            notification is None
            or notification.workspace_id != workspace_id
            or notification.user_id != user_id
        ):
            raise ServiceError(ErrorCode.NOTIFICATION_NOT_FOUND)
        return notification

    async def mark_read(self, workspace_id: str, user_id: str, notification_id: str) -> Notification:
        notification = await self._get_owned(workspace_id, user_id, notification_id)
        notification.is_read = True
        notification.read_at = now_iso()
        await self.session.flush()
        return notification

    async def mark_all_read(self, workspace_id: str, user_id: str) -> None:
        await self.session.execute(
            update(Notification)
            .where(
                Notification.workspace_id == workspace_id,
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=now_iso())
            .execution_options(synchronize_session="fetch")
        )

    async def archive(self, workspace_id: str, user_id: str, notification_id: str) -> Notification:
        notification = await self._get_owned(workspace_id, user_id, notification_id)
        notification.is_archived = True
        await self.session.flush()
        return notification
