"""
Unit tests for the notifications service.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from bursary.core.errors import NotFoundError
from bursary.modules.notifications.models import Notification, NotificationType
from bursary.modules.notifications.service import (
    create_notification,
    list_notifications,
    mark_all_as_read,
    mark_as_read,
)

MODULE = "bursary.modules.notifications.service"


def _notification(is_read: bool = False) -> Notification:
    notification = MagicMock(spec=Notification)
    notification.id = uuid4()
    notification.is_read = is_read
    notification.read_at = None
    return notification


class TestCreateNotification:
    """Tests for create_notification."""

    @pytest.mark.asyncio
    async def test_uses_its_own_session(self, mock_db):
        session_cm = MagicMock()
        session_cm.__aenter__ = AsyncMock(return_value=mock_db)
        session_cm.__aexit__ = AsyncMock(return_value=False)
        user_id = uuid4()

        with (
            patch(f"{MODULE}.async_session_maker", MagicMock(return_value=session_cm)),
            patch(f"{MODULE}.repository") as mock_repo,
        ):
            mock_repo.create = AsyncMock()

            await create_notification(
                user_id=user_id,
                type=NotificationType.STATUS_CHANGE,
                title="Application BUR-2026-00001 Updated",
                message="Your application status has been changed to APPROVED.",
                metadata={"status": "APPROVED"},
            )

            assert mock_repo.create.call_args.kwargs["user_id"] == user_id
            assert mock_repo.create.call_args.kwargs["metadata"] == {"status": "APPROVED"}

        mock_db.commit.assert_awaited_once()


class TestInbox:
    """Tests for the student inbox operations."""

    @pytest.mark.asyncio
    async def test_list_clamps_paging(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.list_for_user = AsyncMock(return_value=([], 0))

            result = await list_notifications(mock_db, uuid4(), skip=-5, limit=500)

        assert result["skip"] == 0
        assert result["limit"] == 100

    @pytest.mark.asyncio
    async def test_mark_as_read(self, mock_db):
        notification = _notification()
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_for_user = AsyncMock(return_value=notification)

            result = await mark_as_read(mock_db, uuid4(), notification.id)

        assert result.is_read is True
        assert result.read_at is not None
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_mark_as_read_is_idempotent(self, mock_db):
        notification = _notification(is_read=True)
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_for_user = AsyncMock(return_value=notification)

            await mark_as_read(mock_db, uuid4(), notification.id)

        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_someone_elses_notification(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_for_user = AsyncMock(return_value=None)

            with pytest.raises(NotFoundError):
                await mark_as_read(mock_db, uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_mark_all(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.mark_all_read = AsyncMock(return_value=3)

            assert await mark_all_as_read(mock_db, uuid4()) == 3

        mock_db.commit.assert_awaited_once()
