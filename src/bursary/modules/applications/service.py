"""
Bursary Applications Service Layer (student side)

Business logic for the student's own applications:
1. Draft creation, gated by the eligibility check
2. Draft editing, application documents and profile-document links (DRAFT only)
3. Submission: fee-structure check, profile snapshot, DRAFT -> PENDING
4. Read access to the student's applications and their status history

Every mutating operation flushes through the repository and ends in a single
commit; any failure rolls the whole unit back. Notifications and emails are
dispatched only after the commit.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.config import settings
from bursary.core.errors import ConflictError, NotFoundError, ValidationFailedError
from bursary.core.storage import StoredFile
from bursary.modules.applications import repository
from bursary.modules.applications.models import (
    Application,
    ApplicationDocument,
    ApplicationDocumentType,
    ApplicationProfileDocumentLink,
    ApplicationStatus,
    ApplicationStatusHistory,
)
from bursary.modules.applications.schemas import DraftCreate, DraftUpdate
from bursary.modules.applications.side_effects import notify_submitted
from bursary.modules.applications.snapshot import apply_snapshot, build_snapshot
from bursary.modules.periods.service import get_window_state
from bursary.modules.profiles import repository as profile_repository
from bursary.modules.profiles import service as profile_service
from bursary.modules.profiles.completeness import evaluate
from bursary.modules.profiles.models import StudentProfile

logger = logging.getLogger(__name__)


# ============================================
# Custom Exceptions
# ============================================


class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id: UUID | None = None):
        message = f"Application {application_id} not found" if application_id else "Application not found"
        super().__init__(message, "APPLICATION_NOT_FOUND")


class ActiveApplicationExistsError(ConflictError):
    def __init__(self, message: str = "You already have an active application."):
        super().__init__(message, "ACTIVE_APPLICATION_EXISTS")


class ApplicationNotEditableError(ConflictError):
    """Raised when a non-DRAFT application is edited."""

    def __init__(self, status: ApplicationStatus):
        super().__init__(
            f"Only draft applications can be modified. Current status: {status.value}.",
            "INVALID_APPLICATION_STATE",
        )


class NotEligibleError(ValidationFailedError):
    def __init__(self, reason: str):
        super().__init__(reason, "APPLICATION_NOT_ELIGIBLE")


class RequiredDocumentMissingError(ValidationFailedError):
    def __init__(self, message: str):
        super().__init__(message, "REQUIRED_DOCUMENT_MISSING")


class DocumentNotFoundError(NotFoundError):
    def __init__(self, message: str = "Document not found"):
        super().__init__(message, "DOCUMENT_NOT_FOUND")


# ============================================
# Helper Functions
# ============================================


async def _get_owned_application(
    db: AsyncSession,
    user_id: UUID,
    application_id: UUID,
) -> tuple[StudentProfile, Application]:
    """Resolve the caller's profile and one of its applications."""
    profile = await profile_service.get_profile(db, user_id)
    application = await repository.get_for_profile(db, application_id, profile.id)
    if application is None:
        raise ApplicationNotFoundError(application_id)
    return profile, application


def _require_draft(application: Application) -> None:
    if application.status != ApplicationStatus.DRAFT:
        logger.warning(
            f"Rejected edit of application {application.application_number} in {application.status.value}"
        )
        raise ApplicationNotEditableError(application.status)


# ============================================
# Drafts
# ============================================


async def create_draft(db: AsyncSession, user_id: UUID, data: DraftCreate) -> Application:
    """
    Start a new DRAFT application for the caller.

    Raises:
        NotEligibleError: If the profile is missing or incomplete, or the
            application window is closed
        ActiveApplicationExistsError: If a DRAFT/PENDING/UNDER_REVIEW
            application already exists (including a concurrent insert)
    """
    eligibility = await profile_service.check_eligibility(db, user_id)
    if not eligibility.can_apply:
        logger.warning(f"User {user_id} not eligible for a new application: {eligibility.reason}")
        if eligibility.has_active_application:
            raise ActiveApplicationExistsError(eligibility.reason)
        raise NotEligibleError(eligibility.reason)

    profile = await profile_repository.get_by_user_id(db, user_id)
    window = await get_window_state(db)
    period_id = window.active_period.id if window.active_period else None

    try:
        number = await repository.next_application_number(
            db, settings.application_number_prefix, datetime.now(UTC).year
        )
        application = await repository.create(
            db,
            profile_id=profile.id,
            application_number=number,
            period_id=period_id,
            **data.model_dump(exclude_none=True),
        )
        await repository.add_history(
            db,
            application_id=application.id,
            previous_status=None,
            new_status=ApplicationStatus.DRAFT,
            changed_by=user_id,
            reason="Application draft created",
            is_auto_generated=True,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Concurrent draft creation for profile {profile.id}: {e.orig}")
        raise ActiveApplicationExistsError() from e
    except Exception:
        await db.rollback()
        raise

    await db.refresh(application)
    logger.info(f"Created draft application {application.application_number} for profile {profile.id}")
    return application


async def update_draft(
    db: AsyncSession,
    user_id: UUID,
    application_id: UUID,
    data: DraftUpdate,
) -> Application:
    """
    Update working fields of a DRAFT application.

    Raises:
        ApplicationNotFoundError: If the application is not the caller's
        ApplicationNotEditableError: If it is no longer a DRAFT
    """
    _, application = await _get_owned_application(db, user_id, application_id)
    _require_draft(application)

    changes = data.model_dump(exclude_unset=True)
    try:
        for key, value in changes.items():
            setattr(application, key, value)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(application)
    logger.info(f"Updated draft {application.application_number}: {sorted(changes)}")
    return application


# ============================================
# Read Access
# ============================================


async def list_applications(db: AsyncSession, user_id: UUID) -> list[Application]:
    profile = await profile_repository.get_by_user_id(db, user_id)
    if profile is None:
        return []
    return await repository.list_for_profile(db, profile.id)


async def get_active_application(db: AsyncSession, user_id: UUID) -> Application | None:
    profile = await profile_repository.get_by_user_id(db, user_id)
    if profile is None:
        return None
    return await profile_repository.get_active_application(db, profile.id)


async def get_application(db: AsyncSession, user_id: UUID, application_id: UUID) -> dict:
    """
    One of the caller's applications, with reviewer notes marked public.

    Returns:
        Dict with the application and its non-private notes
    """
    _, application = await _get_owned_application(db, user_id, application_id)
    notes = await repository.list_notes(db, application.id, include_private=False)
    return {"application": application, "notes": notes}


async def get_history(
    db: AsyncSession, user_id: UUID, application_id: UUID
) -> list[ApplicationStatusHistory]:
    _, application = await _get_owned_application(db, user_id, application_id)
    return await repository.list_history(db, application.id)


# ============================================
# Application Documents and Links
# ============================================


async def ensure_editable_draft(db: AsyncSession, user_id: UUID, application_id: UUID) -> None:
    """Ownership and DRAFT check, used before a file is written to storage."""
    _, application = await _get_owned_application(db, user_id, application_id)
    _require_draft(application)


async def upload_application_document(
    db: AsyncSession,
    user_id: UUID,
    application_id: UUID,
    document_type: ApplicationDocumentType,
    stored: StoredFile,
    description: str | None = None,
) -> ApplicationDocument:
    """
    Attach submission-specific evidence to a DRAFT application.

    Raises:
        ApplicationNotFoundError: If the application is not the caller's
        ApplicationNotEditableError: If it is no longer a DRAFT
    """
    _, application = await _get_owned_application(db, user_id, application_id)
    _require_draft(application)

    try:
        document = await repository.add_document(
            db, application.id, document_type, stored, description
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(document)
    logger.info(
        f"Uploaded {document_type.value} document {document.id} to {application.application_number}"
    )
    return document


async def delete_application_document(
    db: AsyncSession, user_id: UUID, application_id: UUID, document_id: UUID
) -> None:
    _, application = await _get_owned_application(db, user_id, application_id)
    _require_draft(application)

    document = await repository.get_document(db, application.id, document_id)
    if document is None:
        raise DocumentNotFoundError(f"Application document {document_id} not found")

    try:
        await repository.delete_document(db, document)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Deleted document {document_id} from {application.application_number}")


async def link_profile_document(
    db: AsyncSession,
    user_id: UUID,
    application_id: UUID,
    profile_document_id: UUID,
) -> ApplicationProfileDocumentLink:
    """
    Link one of the owner's profile documents to a DRAFT application.

    Raises:
        ApplicationNotFoundError: If the application is not the caller's
        ApplicationNotEditableError: If it is no longer a DRAFT
        DocumentNotFoundError: If the document is not on the owning profile
        ConflictError: If the document is already linked
    """
    profile, application = await _get_owned_application(db, user_id, application_id)
    _require_draft(application)

    document = await profile_repository.get_document(db, profile.id, profile_document_id)
    if document is None:
        raise DocumentNotFoundError(f"Profile document {profile_document_id} not found")

    if await repository.get_link(db, application.id, profile_document_id) is not None:
        raise ConflictError("This document is already linked to the application.")

    try:
        link = await repository.create_link(db, application.id, profile_document_id)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("This document is already linked to the application.") from e
    except Exception:
        await db.rollback()
        raise

    await db.refresh(link)
    logger.info(f"Linked profile document {profile_document_id} to {application.application_number}")
    return link


async def unlink_profile_document(
    db: AsyncSession,
    user_id: UUID,
    application_id: UUID,
    profile_document_id: UUID,
) -> None:
    _, application = await _get_owned_application(db, user_id, application_id)
    _require_draft(application)

    link = await repository.get_link(db, application.id, profile_document_id)
    if link is None:
        raise DocumentNotFoundError("Profile document is not linked to this application")

    try:
        await repository.delete_link(db, link)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Unlinked profile document {profile_document_id} from {application.application_number}")


# ============================================
# Submission
# ============================================


async def submit_application(db: AsyncSession, user_id: UUID, application_id: UUID) -> Application:
    """
    Submit a DRAFT application for review.

    Freezes the profile snapshot, moves the application to PENDING and
    appends a system-generated history row, all in one transaction.

    Raises:
        ApplicationNotFoundError: If the application is not the caller's
        ApplicationNotEditableError: If it is not a DRAFT
        RequiredDocumentMissingError: If no FEE_STRUCTURE document is attached
        NotEligibleError: If the profile is incomplete
    """
    profile = await profile_service.get_profile(db, user_id)

    try:
        application = await repository.get_by_id_for_update(db, application_id)
        if application is None or application.student_profile_id != profile.id:
            raise ApplicationNotFoundError(application_id)
        _require_draft(application)

        if not await repository.has_document_of_type(
            db, application.id, ApplicationDocumentType.FEE_STRUCTURE
        ):
            raise RequiredDocumentMissingError(
                "Please upload the current fee structure document before submitting"
            )

        documents = await profile_repository.list_documents(db, profile.id)
        if not evaluate(profile, documents).is_complete:
            raise NotEligibleError(
                "Profile is incomplete. Please complete all required fields "
                "and upload required documents."
            )

        snapshot = build_snapshot(profile, profile.user)
        apply_snapshot(application, snapshot, datetime.now(UTC))
        application.status = ApplicationStatus.PENDING
        await repository.add_history(
            db,
            application_id=application.id,
            previous_status=ApplicationStatus.DRAFT,
            new_status=ApplicationStatus.PENDING,
            changed_by=user_id,
            reason="Application submitted for review",
            is_auto_generated=True,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(application)
    logger.info(f"Application {application.application_number} submitted by user {user_id}")

    try:
        notify_submitted(application)
    except Exception as e:
        logger.error(
            f"Failed to queue submission notifications for {application.application_number}: {e}",
            exc_info=True,
        )
    return application
