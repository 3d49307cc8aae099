"""
Unit tests for the application periods service.

These tests cover:
- The application window gate
- Academic year labels
- Single-active-period activation and its rollback
- Deletion rules
"""

from datetime import UTC, date, datetime, timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from pydantic import ValidationError

from bursary.core.errors import ValidationFailedError
from bursary.modules.periods.models import ApplicationPeriod
from bursary.modules.periods.schemas import PeriodCreate, PeriodUpdate
from bursary.modules.periods.service import (
    ActivePeriodDeletionError,
    PeriodNotFoundError,
    activate_period,
    compute_academic_year,
    create_period,
    delete_period,
    get_window_state,
    update_period,
)

REPOSITORY = "bursary.modules.periods.service.repository"


def _period(start: datetime, end: datetime, is_active: bool = True) -> ApplicationPeriod:
    return ApplicationPeriod(
        id=uuid4(),
        title="2026 Bursary Intake",
        academic_year="2025/26",
        start_date=start,
        end_date=end,
        is_active=is_active,
    )


class TestAcademicYear:
    """Tests for compute_academic_year."""

    def test_september_starts_a_new_year(self):
        assert compute_academic_year(date(2026, 9, 1)) == "2026/27"
        assert compute_academic_year(date(2026, 12, 31)) == "2026/27"

    def test_before_september_belongs_to_previous_year(self):
        assert compute_academic_year(date(2026, 1, 15)) == "2025/26"
        assert compute_academic_year(date(2026, 8, 31)) == "2025/26"


class TestWindowState:
    """Tests for get_window_state."""

    @pytest.mark.asyncio
    async def test_active_period_decides(self, mock_db):
        now = datetime(2026, 3, 1, tzinfo=UTC)
        period = _period(now - timedelta(days=10), now + timedelta(days=10))
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_active = AsyncMock(return_value=period)

            open_state = await get_window_state(mock_db, now)
            closed_state = await get_window_state(mock_db, now + timedelta(days=30))

        assert open_state.is_open is True
        assert open_state.active_period is period
        assert closed_state.is_open is False

    @pytest.mark.asyncio
    async def test_falls_back_to_setting_without_active_period(self, mock_db):
        with (
            patch(REPOSITORY) as mock_repo,
            patch("bursary.modules.periods.service.settings") as mock_settings,
        ):
            mock_repo.get_active = AsyncMock(return_value=None)
            mock_settings.application_window_open = False

            state = await get_window_state(mock_db)

        assert state.is_open is False
        assert state.active_period is None


class TestCreatePeriod:
    """Tests for create_period."""

    def test_schema_rejects_reversed_dates(self):
        start = datetime(2026, 6, 1, tzinfo=UTC)
        with pytest.raises(ValueError):
            PeriodCreate(
                title="Mid-year intake",
                academic_year="2025/26",
                start_date=start,
                end_date=start - timedelta(days=1),
            )

    @pytest.mark.asyncio
    async def test_start_must_precede_end(self, mock_db):
        start = datetime(2026, 6, 1, tzinfo=UTC)
        data = PeriodCreate.model_construct(
            title="Mid-year intake",
            academic_year="2025/26",
            start_date=start,
            end_date=start,
            description=None,
        )
        with patch(REPOSITORY) as mock_repo:
            mock_repo.create = AsyncMock()

            with pytest.raises(ValidationFailedError):
                await create_period(mock_db, data, uuid4())

            mock_repo.create.assert_not_called()


class TestUpdatePeriod:
    """Tests for update_period."""

    @pytest.mark.parametrize("field", ["start_date", "end_date", "title", "academic_year"])
    def test_required_fields_cannot_be_cleared(self, field):
        with pytest.raises(ValidationError, match="cannot be cleared"):
            PeriodUpdate.model_validate({field: None})

    @pytest.mark.asyncio
    async def test_merged_dates_are_checked(self, mock_db):
        now = datetime(2026, 2, 1, tzinfo=UTC)
        period = _period(now, now + timedelta(days=30))
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=period)

            with pytest.raises(ValidationFailedError):
                await update_period(
                    mock_db,
                    period.id,
                    PeriodUpdate(end_date=now - timedelta(days=1)),
                    uuid4(),
                )

        assert period.end_date == now + timedelta(days=30)
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_partial_update(self, mock_db):
        now = datetime(2026, 2, 1, tzinfo=UTC)
        period = _period(now, now + timedelta(days=30))
        new_end = now + timedelta(days=60)
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=period)

            result = await update_period(
                mock_db, period.id, PeriodUpdate(end_date=new_end, description=None), uuid4()
            )

        assert result.end_date == new_end
        assert result.start_date == now
        assert result.description is None
        mock_db.commit.assert_awaited_once()


class TestActivatePeriod:
    """Tests for activate_period."""

    @pytest.mark.asyncio
    async def test_deactivates_all_then_activates(self, mock_db):
        now = datetime.now(UTC)
        period = _period(now, now + timedelta(days=30), is_active=False)
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=period)
            mock_repo.deactivate_all = AsyncMock()
            mock_repo.set_active = AsyncMock()

            await activate_period(mock_db, period.id, uuid4())

            mock_repo.deactivate_all.assert_awaited_once_with(mock_db)
            mock_repo.set_active.assert_awaited_once_with(mock_db, period.id)

        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_rolls_back_both_steps(self, mock_db):
        now = datetime.now(UTC)
        period = _period(now, now + timedelta(days=30), is_active=False)
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=period)
            mock_repo.deactivate_all = AsyncMock()
            mock_repo.set_active = AsyncMock(side_effect=RuntimeError("connection lost"))

            with pytest.raises(RuntimeError):
                await activate_period(mock_db, period.id, uuid4())

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_period(self, mock_db):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(PeriodNotFoundError):
                await activate_period(mock_db, uuid4(), uuid4())


class TestDeletePeriod:
    """Tests for delete_period."""

    @pytest.mark.asyncio
    async def test_active_period_cannot_be_deleted(self, mock_db):
        now = datetime.now(UTC)
        period = _period(now, now + timedelta(days=30), is_active=True)
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=period)
            mock_repo.delete = AsyncMock()

            with pytest.raises(ActivePeriodDeletionError) as exc_info:
                await delete_period(mock_db, period.id, uuid4())

            mock_repo.delete.assert_not_called()

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_inactive_period_is_deleted(self, mock_db):
        now = datetime.now(UTC)
        period = _period(now, now + timedelta(days=30), is_active=False)
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=period)
            mock_repo.delete = AsyncMock()

            await delete_period(mock_db, period.id, uuid4())

            mock_repo.delete.assert_awaited_once_with(mock_db, period)

        mock_db.commit.assert_awaited_once()
