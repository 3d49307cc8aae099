"""
Student Profile Router

Endpoints:
- GET /student/profile - Get own profile
- POST /student/profile - Create own profile
- PUT /student/profile - Update own profile (locked while an application is in review)
- GET /student/profile/completeness - Completeness percentage and missing items
- GET /student/profile/documents - List profile documents
- POST /student/profile/documents - Upload or replace a profile document (multipart)
- DELETE /student/profile/documents/{id} - Delete a profile document
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.auth import CurrentUser, get_current_student
from bursary.core.database import get_db
from bursary.core.errors import ServiceError, internal_server_error, raise_http_error
from bursary.core.storage import save_upload
from bursary.modules.profiles import service
from bursary.modules.profiles.models import ProfileDocumentType
from bursary.modules.profiles.schemas import (
    CompletenessResponse,
    ProfileCreate,
    ProfileDocumentResponse,
    ProfileResponse,
    ProfileUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ProfileResponse, summary="Get My Profile")
async def get_profile(
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> ProfileResponse:
    try:
        return ProfileResponse.model_validate(await service.get_profile(db, student.id))
    except ServiceError as e:
        raise_http_error(e)


@router.post(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create My Profile",
)
async def create_profile(
    data: ProfileCreate,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> ProfileResponse:
    try:
        profile = await service.create_profile(db, student.id, data)
        return ProfileResponse.model_validate(profile)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error creating profile for user {student.id}: {e}")
        raise internal_server_error() from e


@router.put("", response_model=ProfileResponse, summary="Update My Profile")
async def update_profile(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> ProfileResponse:
    try:
        profile = await service.update_profile(db, student.id, data)
        return ProfileResponse.model_validate(profile)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error updating profile for user {student.id}: {e}")
        raise internal_server_error() from e


@router.get("/completeness", response_model=CompletenessResponse, summary="Profile Completeness")
async def get_completeness(
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> CompletenessResponse:
    result = await service.get_completeness(db, student.id)
    return CompletenessResponse.model_validate(result)


# ============================================
# Profile Documents
# ============================================


@router.get(
    "/documents",
    response_model=list[ProfileDocumentResponse],
    summary="List Profile Documents",
)
async def list_documents(
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> list[ProfileDocumentResponse]:
    try:
        documents = await service.list_profile_documents(db, student.id)
        return [ProfileDocumentResponse.model_validate(d) for d in documents]
    except ServiceError as e:
        raise_http_error(e)


@router.post(
    "/documents",
    response_model=ProfileDocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Profile Document",
    description="Upload a profile document. An existing document of the same type is replaced.",
)
async def upload_document(
    document_type: ProfileDocumentType = Form(...),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> ProfileDocumentResponse:
    try:
        # Fail fast before writing anything to disk
        await service.get_profile(db, student.id)
        stored = await save_upload(file, f"profiles/{student.id}")
        document = await service.upsert_profile_document(db, student.id, document_type, stored)
        return ProfileDocumentResponse.model_validate(document)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error uploading profile document for user {student.id}: {e}")
        raise internal_server_error() from e


@router.delete(
    "/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Profile Document",
)
async def delete_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    student: CurrentUser = Depends(get_current_student),
) -> None:
    try:
        await service.delete_profile_document(db, student.id, document_id)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error deleting profile document {document_id}: {e}")
        raise internal_server_error() from e
