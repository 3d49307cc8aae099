"""
Admin Applications Router

Reviewer endpoints for bursary applications.

Endpoints:
- GET /admin/applications - List with filters, sorting and pagination
- GET /admin/applications/stats - Dashboard statistics
- GET /admin/applications/scoring-rubric - Scoring criteria and weights
- POST /admin/applications/bulk-update - Move many applications at once
- GET /admin/applications/export - Filtered applications as a CSV download
- PUT /admin/applications/notes/{note_id} - Edit own note
- DELETE /admin/applications/notes/{note_id} - Delete own note
- GET /admin/applications/{id} - Full detail
- GET /admin/applications/{id}/history - Status history
- PUT /admin/applications/{id}/status - Transition status
- POST /admin/applications/{id}/scores - Submit or replace own score
- GET /admin/applications/{id}/scores - All scores with the average
- POST /admin/applications/{id}/notes - Add a note

All endpoints require the admin role. Mutating endpoints are rate limited
per admin.
"""

import logging
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.auth import CurrentUser, get_current_admin
from bursary.core.database import get_db
from bursary.core.errors import ServiceError, internal_server_error, raise_http_error
from bursary.core.rate_limit import enforce_admin_rate_limit
from bursary.modules.applications import admin_service
from bursary.modules.applications.models import ApplicationStatus
from bursary.modules.applications.schemas import (
    AdminApplicationDetailResponse,
    ApplicationListItem,
    ApplicationListResponse,
    ApplicationResponse,
    BulkStatusUpdateRequest,
    BulkUpdateResponse,
    DashboardStats,
    NoteCreateRequest,
    NoteResponse,
    NoteUpdateRequest,
    RubricCriterion,
    ScoreRequest,
    ScoreResponse,
    ScoresSummaryResponse,
    ScoringRubricResponse,
    StatusHistoryResponse,
    StatusUpdateRequest,
)
from bursary.modules.profiles.models import EducationLevel

logger = logging.getLogger(__name__)

router = APIRouter()

# Rate limits per admin: (requests, window seconds)
STATUS_RATE_LIMIT = (60, 60)
BULK_RATE_LIMIT = (10, 60)
SCORE_RATE_LIMIT = (60, 60)
NOTE_RATE_LIMIT = (60, 60)
EXPORT_RATE_LIMIT = (10, 60)


def _scores_summary(result: dict) -> ScoresSummaryResponse:
    return ScoresSummaryResponse(
        scores=[ScoreResponse.model_validate(s) for s in result["scores"]],
        average_score=result["average_score"],
        total_reviewers=result["total_reviewers"],
    )


# ============================================
# List, Stats and Rubric
# ============================================


@router.get("", response_model=ApplicationListResponse, summary="List Applications")
async def list_applications(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    education_level: EducationLevel | None = Query(None),
    county_id: UUID | None = Query(None),
    search: str | None = Query(None, max_length=100),
    submitted_from: datetime | None = Query(None),
    submitted_to: datetime | None = Query(None),
    sort_by: str = Query("submitted_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> ApplicationListResponse:
    try:
        result = await admin_service.list_applications(
            db,
            status=status_filter,
            education_level=education_level,
            county_id=county_id,
            search=search,
            submitted_from=submitted_from,
            submitted_to=submitted_to,
            sort_by=sort_by,
            sort_order=sort_order,
            skip=skip,
            limit=limit,
        )
        return ApplicationListResponse(
            applications=[ApplicationListItem.model_validate(a) for a in result["applications"]],
            total=result["total"],
            skip=result["skip"],
            limit=result["limit"],
        )
    except Exception as e:
        logger.exception(f"Error listing applications: {e}")
        raise internal_server_error() from e


@router.get("/stats", response_model=DashboardStats, summary="Dashboard Statistics")
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> DashboardStats:
    try:
        return DashboardStats(**await admin_service.get_dashboard_stats(db))
    except Exception as e:
        logger.exception(f"Error computing dashboard stats: {e}")
        raise internal_server_error() from e


@router.get("/scoring-rubric", response_model=ScoringRubricResponse, summary="Scoring Rubric")
async def get_scoring_rubric(
    admin: CurrentUser = Depends(get_current_admin),
) -> ScoringRubricResponse:
    return ScoringRubricResponse(
        criteria=[RubricCriterion(**c) for c in admin_service.get_scoring_rubric()]
    )


@router.post("/bulk-update", response_model=BulkUpdateResponse, summary="Bulk Status Update")
async def bulk_update(
    data: BulkStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> BulkUpdateResponse:
    await enforce_admin_rate_limit(admin.id, "bulk-update", *BULK_RATE_LIMIT)
    try:
        result = await admin_service.bulk_update_status(
            db,
            admin.id,
            data.application_ids,
            data.status,
            notes=data.notes,
            disbursed_amount=data.disbursed_amount,
        )
        return BulkUpdateResponse(**result)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error in bulk update by admin {admin.id}: {e}")
        raise internal_server_error() from e


# ============================================
# Export
# ============================================


@router.get(
    "/export",
    response_class=Response,
    summary="Export Applications (CSV)",
    responses={200: {"content": {"text/csv": {}}}},
)
async def export_applications(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    education_level: EducationLevel | None = Query(None),
    county_id: UUID | None = Query(None),
    search: str | None = Query(None, max_length=100),
    submitted_from: datetime | None = Query(None),
    submitted_to: datetime | None = Query(None),
    min_balance: Decimal | None = Query(None, ge=0),
    max_balance: Decimal | None = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> Response:
    await enforce_admin_rate_limit(admin.id, "export", *EXPORT_RATE_LIMIT)
    try:
        result = await admin_service.export_applications(
            db,
            status=status_filter,
            education_level=education_level,
            county_id=county_id,
            search=search,
            submitted_from=submitted_from,
            submitted_to=submitted_to,
            min_balance=min_balance,
            max_balance=max_balance,
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error exporting applications for admin {admin.id}: {e}")
        raise internal_server_error() from e

    logger.info(f"Admin {admin.id} exported {result['count']} applications")
    return Response(
        content=result["csv"],
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{result["filename"]}"',
            "X-Total-Count": str(result["count"]),
        },
    )


# ============================================
# Notes (by note id)
# ============================================


@router.put("/notes/{note_id}", response_model=NoteResponse, summary="Edit Note")
async def update_note(
    note_id: UUID,
    data: NoteUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> NoteResponse:
    await enforce_admin_rate_limit(admin.id, "note", *NOTE_RATE_LIMIT)
    try:
        note = await admin_service.update_note(db, note_id, admin.id, data)
        return NoteResponse.model_validate(note)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error editing note {note_id}: {e}")
        raise internal_server_error() from e


@router.delete(
    "/notes/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Note",
)
async def delete_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> None:
    await enforce_admin_rate_limit(admin.id, "note", *NOTE_RATE_LIMIT)
    try:
        await admin_service.delete_note(db, note_id, admin.id)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error deleting note {note_id}: {e}")
        raise internal_server_error() from e


# ============================================
# Single Application
# ============================================


@router.get(
    "/{application_id}",
    response_model=AdminApplicationDetailResponse,
    summary="Get Application Detail",
)
async def get_application_detail(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> AdminApplicationDetailResponse:
    try:
        result = await admin_service.get_application_detail(db, application_id)
        detail = AdminApplicationDetailResponse.model_validate(result["application"])
        detail.history = [StatusHistoryResponse.model_validate(h) for h in result["history"]]
        detail.scores = _scores_summary(result["scores"])
        detail.notes = [NoteResponse.model_validate(n) for n in result["notes"]]
        return detail
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error loading application {application_id}: {e}")
        raise internal_server_error() from e


@router.get(
    "/{application_id}/history",
    response_model=list[StatusHistoryResponse],
    summary="Application Status History",
)
async def get_history(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> list[StatusHistoryResponse]:
    try:
        history = await admin_service.get_history(db, application_id)
        return [StatusHistoryResponse.model_validate(h) for h in history]
    except ServiceError as e:
        raise_http_error(e)


@router.put(
    "/{application_id}/status",
    response_model=ApplicationResponse,
    summary="Update Application Status",
    description="""
Move an application along the lifecycle:
PENDING -> UNDER_REVIEW -> APPROVED | REJECTED, APPROVED -> DISBURSED.

DISBURSED requires a positive `disbursed_amount`.
""",
)
async def update_status(
    application_id: UUID,
    data: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> ApplicationResponse:
    await enforce_admin_rate_limit(admin.id, "status", *STATUS_RATE_LIMIT)
    try:
        application = await admin_service.transition_application(
            db,
            application_id,
            data.status,
            admin.id,
            notes=data.notes,
            disbursed_amount=data.disbursed_amount,
        )
        return ApplicationResponse.model_validate(application)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error updating status of application {application_id}: {e}")
        raise internal_server_error() from e


@router.post("/{application_id}/scores", response_model=ScoreResponse, summary="Submit Score")
async def submit_score(
    application_id: UUID,
    data: ScoreRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> ScoreResponse:
    await enforce_admin_rate_limit(admin.id, "score", *SCORE_RATE_LIMIT)
    try:
        score = await admin_service.submit_score(db, application_id, admin.id, data)
        return ScoreResponse.model_validate(score)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error scoring application {application_id}: {e}")
        raise internal_server_error() from e


@router.get(
    "/{application_id}/scores",
    response_model=ScoresSummaryResponse,
    summary="Get Scores",
)
async def get_scores(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> ScoresSummaryResponse:
    try:
        return _scores_summary(await admin_service.get_scores(db, application_id))
    except ServiceError as e:
        raise_http_error(e)


@router.post(
    "/{application_id}/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Note",
)
async def add_note(
    application_id: UUID,
    data: NoteCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> NoteResponse:
    await enforce_admin_rate_limit(admin.id, "note", *NOTE_RATE_LIMIT)
    try:
        note = await admin_service.add_note(db, application_id, admin.id, data)
        return NoteResponse.model_validate(note)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error adding note to application {application_id}: {e}")
        raise internal_server_error() from e
