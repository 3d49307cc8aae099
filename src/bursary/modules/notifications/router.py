"""
Notifications Router

Student inbox endpoints.

Endpoints:
- GET /student/notifications - List notifications (newest first)
- GET /student/notifications/unread-count - Count unread notifications
- PATCH /student/notifications/read-all - Mark all as read
- PATCH /student/notifications/{id}/read - Mark one as read
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.auth import CurrentUser, get_current_student
from bursary.core.database import get_db
from bursary.core.errors import ServiceError, internal_server_error, raise_http_error
from bursary.modules.notifications import service
from bursary.modules.notifications.schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=NotificationListResponse, summary="List Notifications")
async def list_notifications(
    unread_only: bool = Query(False, description="Only return unread notifications"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> NotificationListResponse:
    result = await service.list_notifications(
        db, student.id, unread_only=unread_only, skip=skip, limit=limit
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in result["notifications"]],
        total=result["total"],
        skip=result["skip"],
        limit=result["limit"],
    )


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Unread Count")
async def unread_count(
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> UnreadCountResponse:
    return UnreadCountResponse(unread=await service.get_unread_count(db, student.id))


@router.patch("/read-all", response_model=MarkAllReadResponse, summary="Mark All Read")
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=await service.mark_all_as_read(db, student.id))


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark Notification Read",
)
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> NotificationResponse:
    try:
        notification = await service.mark_as_read(db, student.id, notification_id)
        return NotificationResponse.model_validate(notification)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error marking notification {notification_id} read: {e}")
        raise internal_server_error() from e
