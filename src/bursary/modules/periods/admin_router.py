"""
Application Periods Admin Router

Endpoints:
- GET /admin/periods - List periods (latest start first)
- POST /admin/periods - Create a period (inactive)
- GET /admin/periods/{id} - Get a period
- PUT /admin/periods/{id} - Update a period
- DELETE /admin/periods/{id} - Delete an inactive period
- POST /admin/periods/{id}/activate - Make a period the single active one
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.auth import CurrentUser, get_current_admin
from bursary.core.database import get_db
from bursary.core.errors import ServiceError, internal_server_error, raise_http_error
from bursary.modules.periods import service
from bursary.modules.periods.schemas import (
    PeriodCreate,
    PeriodDeleteResponse,
    PeriodResponse,
    PeriodUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[PeriodResponse], summary="List Application Periods")
async def list_periods(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> list[PeriodResponse]:
    periods = await service.list_periods(db)
    return [PeriodResponse.model_validate(p) for p in periods]


@router.post(
    "",
    response_model=PeriodResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Application Period",
)
async def create_period(
    data: PeriodCreate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> PeriodResponse:
    try:
        period = await service.create_period(db, data, admin.id)
        return PeriodResponse.model_validate(period)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error creating period: {e}")
        raise internal_server_error() from e


@router.get("/{period_id}", response_model=PeriodResponse, summary="Get Application Period")
async def get_period(
    period_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> PeriodResponse:
    try:
        return PeriodResponse.model_validate(await service.get_period(db, period_id))
    except ServiceError as e:
        raise_http_error(e)


@router.put("/{period_id}", response_model=PeriodResponse, summary="Update Application Period")
async def update_period(
    period_id: UUID,
    data: PeriodUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> PeriodResponse:
    try:
        period = await service.update_period(db, period_id, data, admin.id)
        return PeriodResponse.model_validate(period)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error updating period {period_id}: {e}")
        raise internal_server_error() from e


@router.delete(
    "/{period_id}",
    response_model=PeriodDeleteResponse,
    summary="Delete Application Period",
)
async def delete_period(
    period_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> PeriodDeleteResponse:
    try:
        await service.delete_period(db, period_id, admin.id)
        return PeriodDeleteResponse(id=period_id, message="Application period deleted")
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error deleting period {period_id}: {e}")
        raise internal_server_error() from e


@router.post(
    "/{period_id}/activate",
    response_model=PeriodResponse,
    summary="Activate Application Period",
    description="""
Make this period the only active one.

All other periods are deactivated in the same transaction.

**Access:** Admin only
""",
)
async def activate_period(
    period_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> PeriodResponse:
    try:
        period = await service.activate_period(db, period_id, admin.id)
        return PeriodResponse.model_validate(period)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error activating period {period_id}: {e}")
        raise internal_server_error() from e
