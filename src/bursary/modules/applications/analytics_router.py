"""
Admin Analytics Router

Read-only reporting over applications and student profiles.

Endpoints:
- GET /admin/analytics/summary - Dashboard statistics with the monthly submission trend
- GET /admin/analytics/by-county - Status counts and disbursement per county
- GET /admin/analytics/by-institution - Busiest institutions with approvals and disbursement
- GET /admin/analytics/disbursement - Disbursement totals, per month and per education level
- GET /admin/analytics/gender - Submitted, approved and rejected per gender
- GET /admin/analytics/funnel - Lifecycle conversion funnel
- GET /admin/analytics/time-to-decision - Days from submission to each review milestone
- GET /admin/analytics/demographics - Profiles by orphan status, disability, income and age
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.auth import CurrentUser, get_current_admin
from bursary.core.database import get_db
from bursary.core.errors import internal_server_error
from bursary.modules.applications import admin_service
from bursary.modules.applications.schemas import (
    AnalyticsSummary,
    CountyAnalytics,
    DemographicsAnalytics,
    DisbursementAnalytics,
    FunnelAnalytics,
    GenderAnalytics,
    InstitutionAnalytics,
    TimeToDecisionAnalytics,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/summary", response_model=AnalyticsSummary, summary="Analytics Summary")
async def get_summary(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> AnalyticsSummary:
    try:
        return AnalyticsSummary(**await admin_service.get_analytics_summary(db))
    except Exception as e:
        logger.exception(f"Error computing analytics summary: {e}")
        raise internal_server_error() from e


@router.get("/by-county", response_model=list[CountyAnalytics], summary="Analytics by County")
async def get_by_county(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> list[CountyAnalytics]:
    try:
        rows = await admin_service.get_county_analytics(db)
        return [CountyAnalytics(**row) for row in rows]
    except Exception as e:
        logger.exception(f"Error computing county analytics: {e}")
        raise internal_server_error() from e


@router.get(
    "/by-institution",
    response_model=list[InstitutionAnalytics],
    summary="Analytics by Institution",
)
async def get_by_institution(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> list[InstitutionAnalytics]:
    try:
        rows = await admin_service.get_institution_analytics(db)
        return [InstitutionAnalytics(**row) for row in rows]
    except Exception as e:
        logger.exception(f"Error computing institution analytics: {e}")
        raise internal_server_error() from e


@router.get(
    "/disbursement",
    response_model=DisbursementAnalytics,
    summary="Disbursement Analytics",
)
async def get_disbursement(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> DisbursementAnalytics:
    try:
        return DisbursementAnalytics(**await admin_service.get_disbursement_analytics(db))
    except Exception as e:
        logger.exception(f"Error computing disbursement analytics: {e}")
        raise internal_server_error() from e


@router.get("/gender", response_model=list[GenderAnalytics], summary="Gender Analytics")
async def get_gender(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> list[GenderAnalytics]:
    try:
        rows = await admin_service.get_gender_analytics(db)
        return [GenderAnalytics(**row) for row in rows]
    except Exception as e:
        logger.exception(f"Error computing gender analytics: {e}")
        raise internal_server_error() from e


@router.get("/funnel", response_model=FunnelAnalytics, summary="Funnel Analytics")
async def get_funnel(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> FunnelAnalytics:
    try:
        return FunnelAnalytics(**await admin_service.get_funnel_analytics(db))
    except Exception as e:
        logger.exception(f"Error computing funnel analytics: {e}")
        raise internal_server_error() from e


@router.get(
    "/time-to-decision",
    response_model=TimeToDecisionAnalytics,
    summary="Time-to-Decision Analytics",
    description="""
Days between submission and each review milestone (UNDER_REVIEW, APPROVED,
REJECTED, DISBURSED), measured from the status history.
""",
)
async def get_time_to_decision(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> TimeToDecisionAnalytics:
    try:
        return TimeToDecisionAnalytics(**await admin_service.get_time_to_decision_analytics(db))
    except Exception as e:
        logger.exception(f"Error computing time-to-decision analytics: {e}")
        raise internal_server_error() from e


@router.get(
    "/demographics",
    response_model=DemographicsAnalytics,
    summary="Demographics Analytics",
)
async def get_demographics(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> DemographicsAnalytics:
    try:
        return DemographicsAnalytics(**await admin_service.get_demographics_analytics(db))
    except Exception as e:
        logger.exception(f"Error computing demographics analytics: {e}")
        raise internal_server_error() from e
