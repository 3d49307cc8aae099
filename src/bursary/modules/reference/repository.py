"""
Reference Data Repository

Lookups used when validating profile locations.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import SubCounty, Ward


async def location_chain_is_valid(
    db: AsyncSession,
    county_id: UUID,
    sub_county_id: UUID,
    ward_id: UUID,
) -> bool:
    """Check that the ward lies in the sub-county and the sub-county in the county."""
    result = await db.execute(
        select(Ward.id)
        .join(SubCounty, Ward.sub_county_id == SubCounty.id)
        .where(
            Ward.id == ward_id,
            SubCounty.id == sub_county_id,
            SubCounty.county_id == county_id,
        )
    )
    return result.scalar_one_or_none() is not None
