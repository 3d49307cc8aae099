"""
Student Profiles Repository

Database operations for student profiles and their reusable documents.
Writes are flushed, never committed; the service owns the transaction.
"""

from uuid import UUID

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.storage import StoredFile
from bursary.modules.applications.models import (
    ACTIVE_STATUSES,
    IN_REVIEW_STATUSES,
    Application,
    ApplicationProfileDocumentLink,
)

from .models import ProfileDocument, ProfileDocumentType, StudentProfile

# ============================================
# Profiles
# ============================================


async def get_by_user_id(db: AsyncSession, user_id: UUID) -> StudentProfile | None:
    result = await db.execute(select(StudentProfile).where(StudentProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def get_by_id(db: AsyncSession, profile_id: UUID) -> StudentProfile | None:
    return await db.get(StudentProfile, profile_id)


async def find_identity_conflict(
    db: AsyncSession,
    *,
    national_id_number: str | None,
    passport_number: str | None,
    exclude_profile_id: UUID | None = None,
) -> StudentProfile | None:
    """
    Find another profile already holding the given national ID or passport.

    Returns:
        The clashing profile, or None when both identifiers are free
    """
    conditions = []
    if national_id_number:
        conditions.append(StudentProfile.national_id_number == national_id_number)
    if passport_number:
        conditions.append(StudentProfile.passport_number == passport_number)
    if not conditions:
        return None

    query = select(StudentProfile).where(or_(*conditions))
    if exclude_profile_id is not None:
        query = query.where(StudentProfile.id != exclude_profile_id)

    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def create(db: AsyncSession, user_id: UUID, **fields) -> StudentProfile:
    profile = StudentProfile(user_id=user_id, is_complete=False, **fields)
    db.add(profile)
    await db.flush()
    return profile


async def get_application_in_statuses(
    db: AsyncSession,
    profile_id: UUID,
    statuses: frozenset,
) -> Application | None:
    """Most recent application of the profile whose status is in `statuses`."""
    result = await db.execute(
        select(Application)
        .where(
            Application.student_profile_id == profile_id,
            Application.status.in_(statuses),
        )
        .order_by(Application.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_active_application(db: AsyncSession, profile_id: UUID) -> Application | None:
    """The DRAFT, PENDING or UNDER_REVIEW application of the profile, if any."""
    return await get_application_in_statuses(db, profile_id, ACTIVE_STATUSES)


async def get_in_review_application(db: AsyncSession, profile_id: UUID) -> Application | None:
    return await get_application_in_statuses(db, profile_id, IN_REVIEW_STATUSES)


# ============================================
# Profile Documents
# ============================================


async def list_documents(db: AsyncSession, profile_id: UUID) -> list[ProfileDocument]:
    """Documents of a profile, queried fresh rather than via the relationship."""
    result = await db.execute(
        select(ProfileDocument)
        .where(ProfileDocument.profile_id == profile_id)
        .order_by(ProfileDocument.created_at)
    )
    return list(result.scalars().all())


async def get_document(
    db: AsyncSession, profile_id: UUID, document_id: UUID
) -> ProfileDocument | None:
    """A document by id, only if it belongs to the given profile."""
    result = await db.execute(
        select(ProfileDocument).where(
            ProfileDocument.id == document_id,
            ProfileDocument.profile_id == profile_id,
        )
    )
    return result.scalar_one_or_none()


async def get_document_by_type(
    db: AsyncSession, profile_id: UUID, document_type: ProfileDocumentType
) -> ProfileDocument | None:
    result = await db.execute(
        select(ProfileDocument).where(
            ProfileDocument.profile_id == profile_id,
            ProfileDocument.document_type == document_type,
        )
    )
    return result.scalar_one_or_none()


async def upsert_document(
    db: AsyncSession,
    profile_id: UUID,
    document_type: ProfileDocumentType,
    stored: StoredFile,
) -> ProfileDocument:
    """
    Insert or replace the document of a given type.

    A replacement keeps the row id and clears any previous verification.
    """
    document = await get_document_by_type(db, profile_id, document_type)
    if document is None:
        document = ProfileDocument(profile_id=profile_id, document_type=document_type)
        db.add(document)

    document.original_filename = stored.original_filename
    document.stored_filename = stored.stored_filename
    document.file_path = stored.file_path
    document.file_size = stored.file_size
    document.mime_type = stored.mime_type
    document.is_verified = False
    document.verified_by = None
    document.verified_at = None

    await db.flush()
    return document


async def delete_document(db: AsyncSession, document: ProfileDocument) -> None:
    await db.delete(document)
    await db.flush()


async def is_document_linked_to_in_review_application(db: AsyncSession, document_id: UUID) -> bool:
    """True when a PENDING or UNDER_REVIEW application links the document."""
    query = select(
        exists().where(
            and_(
                ApplicationProfileDocumentLink.profile_document_id == document_id,
                ApplicationProfileDocumentLink.application_id == Application.id,
                Application.status.in_(IN_REVIEW_STATUSES),
            )
        )
    )
    result = await db.execute(query)
    return bool(result.scalar())
