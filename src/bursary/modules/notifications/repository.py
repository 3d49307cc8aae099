"""
Notifications Repository

Database operations for in-app notifications.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Notification, NotificationType


async def create(
    db: AsyncSession,
    *,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    metadata: dict | None = None,
) -> Notification:
    """Add a notification to the session and flush it."""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        extra=metadata,
    )
    db.add(notification)
    await db.flush()
    return notification


async def list_for_user(
    db: AsyncSession,
    user_id: UUID,
    *,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Notification], int]:
    """Newest-first notifications for a user plus the total matching count."""
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    result = await db.execute(
        query.order_by(Notification.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


async def count_unread(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    )
    return result.scalar() or 0


async def get_for_user(db: AsyncSession, user_id: UUID, notification_id: UUID) -> Notification | None:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def mark_all_read(db: AsyncSession, user_id: UUID) -> int:
    """Mark every unread notification of a user as read. Returns rows changed."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True, read_at=datetime.now(UTC))
    )
    return result.rowcount or 0
