"""
Application Periods Service Layer

Period administration and the application-window gate consulted by the
eligibility checker.

Activation is a two-step "deactivate all, then activate target" sequence
executed inside one transaction, so a crash between the steps leaves the
previously active period in place.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.config import settings
from bursary.core.errors import ConflictError, NotFoundError, ValidationFailedError
from bursary.modules.periods import repository
from bursary.modules.periods.models import ApplicationPeriod
from bursary.modules.periods.schemas import PeriodCreate, PeriodUpdate

logger = logging.getLogger(__name__)


class PeriodNotFoundError(NotFoundError):
    def __init__(self, period_id: UUID | None = None):
        message = f"Application period {period_id} not found" if period_id else "Application period not found"
        super().__init__(message, "PERIOD_NOT_FOUND")


class ActivePeriodDeletionError(ConflictError):
    def __init__(self):
        super().__init__(
            "Cannot delete the active application period. Activate another period first.",
            "PERIOD_ACTIVE",
        )


@dataclass
class WindowState:
    """Whether new applications may be started right now, and why."""

    is_open: bool
    active_period: ApplicationPeriod | None


def compute_academic_year(today: date) -> str:
    """
    Academic year label for a calendar date.

    Sep-Dec belongs to the year starting now (2026 -> "2026/27");
    Jan-Aug to the year that started last September (2026 -> "2025/26").
    """
    year = today.year
    if today.month >= 9:
        return f"{year}/{str(year + 1)[-2:]}"
    return f"{year - 1}/{str(year)[-2:]}"


async def get_window_state(db: AsyncSession, now: datetime | None = None) -> WindowState:
    """
    Resolve the application window.

    The active period decides when one exists; otherwise the
    APPLICATION_WINDOW_OPEN setting does.
    """
    now = now or datetime.now(UTC)
    active = await repository.get_active(db)
    if active is None:
        return WindowState(is_open=settings.application_window_open, active_period=None)
    return WindowState(is_open=active.is_open_at(now), active_period=active)


async def get_portal_config(db: AsyncSession) -> dict:
    """Public configuration consumed by the student portal."""
    now = datetime.now(UTC)
    window = await get_window_state(db, now)
    period = window.active_period

    return {
        "academic_year": period.academic_year if period else compute_academic_year(now.date()),
        "application_window_open": window.is_open,
        "application_deadline": period.end_date if period else None,
        "organization_name": settings.organization_name,
        "support_email": settings.support_email,
        "max_file_size": settings.max_upload_size_bytes,
        "allowed_file_types": settings.allowed_upload_types_list,
        "active_period": period,
    }


# ============================================
# Admin Service Functions
# ============================================


async def list_periods(db: AsyncSession) -> list[ApplicationPeriod]:
    return await repository.list_all(db)


async def get_period(db: AsyncSession, period_id: UUID) -> ApplicationPeriod:
    period = await repository.get_by_id(db, period_id)
    if period is None:
        raise PeriodNotFoundError(period_id)
    return period


def _check_date_order(start_date: datetime, end_date: datetime) -> None:
    if start_date >= end_date:
        raise ValidationFailedError("Start date must be before end date")


async def create_period(db: AsyncSession, data: PeriodCreate, admin_id: UUID) -> ApplicationPeriod:
    """
    Create an inactive period.

    Raises:
        ValidationFailedError: If start_date is not before end_date
    """
    _check_date_order(data.start_date, data.end_date)

    try:
        period = await repository.create(
            db,
            title=data.title,
            description=data.description,
            academic_year=data.academic_year,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Admin {admin_id} created application period {period.id} ({period.title})")
    return period


async def update_period(
    db: AsyncSession,
    period_id: UUID,
    data: PeriodUpdate,
    admin_id: UUID,
) -> ApplicationPeriod:
    """
    Update a period. Date order is validated against the merged values.

    Raises:
        PeriodNotFoundError: If the period does not exist
        ValidationFailedError: If the resulting start_date is not before end_date
    """
    period = await get_period(db, period_id)
    changes = data.model_dump(exclude_unset=True)

    _check_date_order(
        changes.get("start_date", period.start_date),
        changes.get("end_date", period.end_date),
    )

    try:
        for key, value in changes.items():
            setattr(period, key, value)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(period)
    logger.info(f"Admin {admin_id} updated application period {period_id}: {sorted(changes)}")
    return period


async def delete_period(db: AsyncSession, period_id: UUID, admin_id: UUID) -> None:
    """
    Delete an inactive period.

    Raises:
        PeriodNotFoundError: If the period does not exist
        ActivePeriodDeletionError: If the period is the active one
    """
    period = await get_period(db, period_id)
    if period.is_active:
        logger.warning(f"Admin {admin_id} tried to delete active period {period_id}")
        raise ActivePeriodDeletionError()

    try:
        await repository.delete(db, period)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Admin {admin_id} deleted application period {period_id}")


async def activate_period(db: AsyncSession, period_id: UUID, admin_id: UUID) -> ApplicationPeriod:
    """
    Make a period the single active one.

    Both updates run in the same transaction; any failure rolls back to the
    previously active period.

    Raises:
        PeriodNotFoundError: If the period does not exist
    """
    period = await get_period(db, period_id)

    try:
        await repository.deactivate_all(db)
        await repository.set_active(db, period_id)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Activation of period {period_id} rolled back: {e}")
        raise

    await db.refresh(period)
    logger.info(f"Admin {admin_id} activated application period {period_id}")
    return period
