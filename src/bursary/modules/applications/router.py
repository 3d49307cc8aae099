"""
Student Applications Router

Endpoints:
- GET /student/applications/eligibility - Can the caller start an application?
- POST /student/applications/draft - Create a draft
- GET /student/applications - List own applications
- GET /student/applications/active - The active application, if any
- GET /student/applications/{id} - Application detail with public reviewer notes
- PUT /student/applications/{id} - Update a draft
- POST /student/applications/{id}/documents - Upload application evidence (multipart)
- DELETE /student/applications/{id}/documents/{document_id} - Remove evidence
- POST /student/applications/{id}/link-profile-document - Link a profile document
- DELETE /student/applications/{id}/link-profile-document/{profile_document_id} - Unlink
- POST /student/applications/{id}/submit - Submit for review
- GET /student/applications/{id}/history - Status history
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.auth import CurrentUser, get_current_student
from bursary.core.database import get_db
from bursary.core.errors import ServiceError, internal_server_error, raise_http_error
from bursary.core.storage import save_upload
from bursary.modules.applications import service
from bursary.modules.applications.models import ApplicationDocumentType
from bursary.modules.applications.schemas import (
    ApplicationDocumentResponse,
    ApplicationListItem,
    ApplicationResponse,
    DraftCreate,
    DraftUpdate,
    LinkProfileDocumentRequest,
    NoteResponse,
    ProfileDocumentLinkResponse,
    StatusHistoryResponse,
    StudentApplicationDetailResponse,
)
from bursary.modules.profiles import service as profile_service
from bursary.modules.profiles.schemas import EligibilityResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/eligibility", response_model=EligibilityResponse, summary="Check Eligibility")
async def check_eligibility(
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> EligibilityResponse:
    result = await profile_service.check_eligibility(db, student.id)
    return EligibilityResponse.model_validate(result)


@router.post(
    "/draft",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Draft Application",
)
async def create_draft(
    data: DraftCreate,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> ApplicationResponse:
    try:
        application = await service.create_draft(db, student.id, data)
        return ApplicationResponse.model_validate(application)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error creating draft for user {student.id}: {e}")
        raise internal_server_error() from e


@router.get("", response_model=list[ApplicationListItem], summary="List My Applications")
async def list_applications(
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> list[ApplicationListItem]:
    applications = await service.list_applications(db, student.id)
    return [ApplicationListItem.model_validate(a) for a in applications]


@router.get(
    "/active",
    response_model=ApplicationResponse | None,
    summary="Get Active Application",
)
async def get_active_application(
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> ApplicationResponse | None:
    application = await service.get_active_application(db, student.id)
    return ApplicationResponse.model_validate(application) if application else None


@router.get(
    "/{application_id}",
    response_model=StudentApplicationDetailResponse,
    summary="Get Application",
)
async def get_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> StudentApplicationDetailResponse:
    try:
        result = await service.get_application(db, student.id, application_id)
        detail = StudentApplicationDetailResponse.model_validate(result["application"])
        detail.notes = [NoteResponse.model_validate(n) for n in result["notes"]]
        return detail
    except ServiceError as e:
        raise_http_error(e)


@router.put("/{application_id}", response_model=ApplicationResponse, summary="Update Draft")
async def update_draft(
    application_id: UUID,
    data: DraftUpdate,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> ApplicationResponse:
    try:
        application = await service.update_draft(db, student.id, application_id, data)
        return ApplicationResponse.model_validate(application)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error updating draft {application_id}: {e}")
        raise internal_server_error() from e


# ============================================
# Documents and Links
# ============================================


@router.post(
    "/{application_id}/documents",
    response_model=ApplicationDocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Application Document",
)
async def upload_document(
    application_id: UUID,
    document_type: ApplicationDocumentType = Form(...),
    description: str | None = Form(None, max_length=500),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> ApplicationDocumentResponse:
    try:
        await service.ensure_editable_draft(db, student.id, application_id)
        stored = await save_upload(file, f"applications/{application_id}")
        document = await service.upload_application_document(
            db, student.id, application_id, document_type, stored, description
        )
        return ApplicationDocumentResponse.model_validate(document)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error uploading document to application {application_id}: {e}")
        raise internal_server_error() from e


@router.delete(
    "/{application_id}/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Application Document",
)
async def delete_document(
    application_id: UUID,
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> None:
    try:
        await service.delete_application_document(db, student.id, application_id, document_id)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error deleting document {document_id}: {e}")
        raise internal_server_error() from e


@router.post(
    "/{application_id}/link-profile-document",
    response_model=ProfileDocumentLinkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Link Profile Document",
)
async def link_profile_document(
    application_id: UUID,
    data: LinkProfileDocumentRequest,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> ProfileDocumentLinkResponse:
    try:
        link = await service.link_profile_document(
            db, student.id, application_id, data.profile_document_id
        )
        return ProfileDocumentLinkResponse.model_validate(link)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error linking document to application {application_id}: {e}")
        raise internal_server_error() from e


@router.delete(
    "/{application_id}/link-profile-document/{profile_document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unlink Profile Document",
)
async def unlink_profile_document(
    application_id: UUID,
    profile_document_id: UUID,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> None:
    try:
        await service.unlink_profile_document(db, student.id, application_id, profile_document_id)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error unlinking document from application {application_id}: {e}")
        raise internal_server_error() from e


# ============================================
# Submission and History
# ============================================


@router.post(
    "/{application_id}/submit",
    response_model=ApplicationResponse,
    summary="Submit Application",
    description="Freeze the profile snapshot and send the application for review.",
)
async def submit_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> ApplicationResponse:
    try:
        application = await service.submit_application(db, student.id, application_id)
        return ApplicationResponse.model_validate(application)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error submitting application {application_id}: {e}")
        raise internal_server_error() from e


@router.get(
    "/{application_id}/history",
    response_model=list[StatusHistoryResponse],
    summary="Application Status History",
)
async def get_history(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> list[StatusHistoryResponse]:
    try:
        history = await service.get_history(db, student.id, application_id)
        return [StatusHistoryResponse.model_validate(h) for h in history]
    except ServiceError as e:
        raise_http_error(e)
