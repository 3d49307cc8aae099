"""
Notifications Service

The notification sink used by the application lifecycle, and the student
inbox operations.

create_notification opens its own session: it runs after the triggering
transaction has committed, never inside it.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.database import async_session_maker
from bursary.core.errors import NotFoundError
from bursary.modules.notifications import repository
from bursary.modules.notifications.models import Notification, NotificationType

logger = logging.getLogger(__name__)


async def create_notification(
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    metadata: dict | None = None,
) -> None:
    """Persist a notification in a dedicated session."""
    async with async_session_maker() as db:
        await repository.create(
            db,
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            metadata=metadata,
        )
        await db.commit()
    logger.info(f"Notification '{type.value}' created for user {user_id}")


async def list_notifications(
    db: AsyncSession,
    user_id: UUID,
    *,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    limit = min(max(1, limit), 100)
    skip = max(0, skip)
    notifications, total = await repository.list_for_user(
        db, user_id, unread_only=unread_only, skip=skip, limit=limit
    )
    return {"notifications": notifications, "total": total, "skip": skip, "limit": limit}


async def get_unread_count(db: AsyncSession, user_id: UUID) -> int:
    return await repository.count_unread(db, user_id)


async def mark_as_read(db: AsyncSession, user_id: UUID, notification_id: UUID) -> Notification:
    """
    Mark one notification as read.

    Raises:
        NotFoundError: If the notification does not exist or belongs to someone else
    """
    notification = await repository.get_for_user(db, user_id, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found", "NOTIFICATION_NOT_FOUND")

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(UTC)
        await db.commit()
    return notification


async def mark_all_as_read(db: AsyncSession, user_id: UUID) -> int:
    updated = await repository.mark_all_read(db, user_id)
    await db.commit()
    logger.info(f"Marked {updated} notification(s) read for user {user_id}")
    return updated
