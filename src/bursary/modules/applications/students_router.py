"""
Admin Students Router

Reviewer lookup of students across their profile and applications.

Endpoints:
- GET /admin/students/search - Search by name, ID, institution, email or phone
- GET /admin/students/{profile_id} - Profile, account details and application counts
- GET /admin/students/{profile_id}/documents - Profile and application documents
- GET /admin/students/{profile_id}/timeline - Everything that happened, newest first
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.auth import CurrentUser, get_current_admin
from bursary.core.database import get_db
from bursary.core.errors import ServiceError, internal_server_error, raise_http_error
from bursary.modules.applications import admin_service
from bursary.modules.applications.schemas import (
    ApplicationDocumentResponse,
    ApplicationListItem,
    StudentApplicationDocument,
    StudentDocumentsResponse,
    StudentOverviewResponse,
    StudentSearchItem,
    StudentSearchResponse,
    TimelineEvent,
)
from bursary.modules.profiles.schemas import ProfileDocumentResponse, ProfileResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/search", response_model=StudentSearchResponse, summary="Search Students")
async def search_students(
    q: str = Query(..., min_length=2, max_length=100),
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> StudentSearchResponse:
    try:
        result = await admin_service.search_students(db, q, skip=skip, limit=limit)
        return StudentSearchResponse(
            students=[StudentSearchItem(**s) for s in result["students"]],
            total=result["total"],
            skip=result["skip"],
            limit=result["limit"],
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error searching students: {e}")
        raise internal_server_error() from e


@router.get("/{profile_id}", response_model=StudentOverviewResponse, summary="Student Overview")
async def get_student_overview(
    profile_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> StudentOverviewResponse:
    try:
        result = await admin_service.get_student_overview(db, profile_id)
        return StudentOverviewResponse(
            **{
                **result,
                "profile": ProfileResponse.model_validate(result["profile"]),
                "applications": [
                    ApplicationListItem.model_validate(a) for a in result["applications"]
                ],
            }
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error loading student {profile_id}: {e}")
        raise internal_server_error() from e


@router.get(
    "/{profile_id}/documents",
    response_model=StudentDocumentsResponse,
    summary="Student Documents",
)
async def get_student_documents(
    profile_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> StudentDocumentsResponse:
    try:
        result = await admin_service.get_student_documents(db, profile_id)
        return StudentDocumentsResponse(
            profile_documents=[
                ProfileDocumentResponse.model_validate(d) for d in result["profile_documents"]
            ],
            application_documents=[
                StudentApplicationDocument(
                    **ApplicationDocumentResponse.model_validate(item["document"]).model_dump(),
                    application_id=item["document"].application_id,
                    application_number=item["application_number"],
                    application_status=item["application_status"],
                )
                for item in result["application_documents"]
            ],
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error loading documents of student {profile_id}: {e}")
        raise internal_server_error() from e


@router.get(
    "/{profile_id}/timeline",
    response_model=list[TimelineEvent],
    summary="Student Timeline",
)
async def get_student_timeline(
    profile_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin),
) -> list[TimelineEvent]:
    try:
        events = await admin_service.get_student_timeline(db, profile_id)
        return [TimelineEvent(**event) for event in events]
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error building timeline of student {profile_id}: {e}")
        raise internal_server_error() from e
