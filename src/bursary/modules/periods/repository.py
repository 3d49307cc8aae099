"""
Application Periods Repository

Database operations for application periods. Writes are flushed, never
committed; the service owns the transaction.
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ApplicationPeriod


async def get_by_id(db: AsyncSession, period_id: UUID) -> ApplicationPeriod | None:
    return await db.get(ApplicationPeriod, period_id)


async def get_active(db: AsyncSession) -> ApplicationPeriod | None:
    result = await db.execute(select(ApplicationPeriod).where(ApplicationPeriod.is_active.is_(True)))
    return result.scalar_one_or_none()


async def list_all(db: AsyncSession) -> list[ApplicationPeriod]:
    """All periods, most recent start first."""
    result = await db.execute(select(ApplicationPeriod).order_by(ApplicationPeriod.start_date.desc()))
    return list(result.scalars().all())


async def create(db: AsyncSession, **fields) -> ApplicationPeriod:
    period = ApplicationPeriod(is_active=False, **fields)
    db.add(period)
    await db.flush()
    return period


async def delete(db: AsyncSession, period: ApplicationPeriod) -> None:
    await db.delete(period)
    await db.flush()


async def deactivate_all(db: AsyncSession) -> None:
    """Clear is_active on every period."""
    await db.execute(
        update(ApplicationPeriod)
        .where(ApplicationPeriod.is_active.is_(True))
        .values(is_active=False)
    )


async def set_active(db: AsyncSession, period_id: UUID) -> None:
    await db.execute(
        update(ApplicationPeriod).where(ApplicationPeriod.id == period_id).values(is_active=True)
    )
