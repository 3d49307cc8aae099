"""
Student Profiles Service Layer

Business logic for student profiles, their reusable documents, the cached
completeness flag, and the eligibility check that gates new applications.

Rules:
- One profile per user; national ID and passport numbers are globally unique
- Exactly one of national ID / passport is held at any time
- The profile is locked while an application is PENDING or UNDER_REVIEW
- is_complete is recomputed after every profile or document change
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.errors import ConflictError, NotFoundError, ValidationFailedError
from bursary.core.storage import StoredFile
from bursary.modules.applications.models import ApplicationStatus
from bursary.modules.periods.service import get_window_state
from bursary.modules.profiles import repository
from bursary.modules.profiles.completeness import PROFILE_MISSING_LABEL, CompletenessResult, evaluate
from bursary.modules.profiles.helpers import get_age_range
from bursary.modules.profiles.models import ProfileDocument, ProfileDocumentType, StudentProfile
from bursary.modules.profiles.schemas import ProfileCreate, ProfileUpdate
from bursary.modules.reference.repository import location_chain_is_valid

logger = logging.getLogger(__name__)


# ============================================
# Custom Exceptions
# ============================================


class ProfileNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Profile not found. Please create a profile first.", "PROFILE_NOT_FOUND")


class ProfileAlreadyExistsError(ConflictError):
    def __init__(self):
        super().__init__("A profile already exists for this account.", "DUPLICATE_RESOURCE")


class DuplicateIdentityError(ConflictError):
    """Raised when a national ID or passport number is already registered."""

    def __init__(self):
        super().__init__(
            "This national ID or passport number is already registered to another profile.",
            "DUPLICATE_RESOURCE",
        )


class ProfileLockedError(ConflictError):
    def __init__(self, status: ApplicationStatus):
        super().__init__(
            f"Profile cannot be edited while an application is {status.value}.",
            "PROFILE_LOCKED",
        )


class ProfileDocumentNotFoundError(NotFoundError):
    def __init__(self, document_id: UUID):
        super().__init__(f"Profile document {document_id} not found", "DOCUMENT_NOT_FOUND")


class DocumentInUseError(ConflictError):
    def __init__(self):
        super().__init__(
            "This document is attached to an application under review and cannot be deleted.",
            "DOCUMENT_IN_USE",
        )


@dataclass
class EligibilityResult:
    can_apply: bool
    reason: str
    profile_completeness: int
    missing_fields: list[str] = field(default_factory=list)
    has_active_application: bool = False
    active_application_id: UUID | None = None
    active_application_status: ApplicationStatus | None = None


# ============================================
# Helper Functions
# ============================================


async def _get_profile_or_raise(db: AsyncSession, user_id: UUID) -> StudentProfile:
    profile = await repository.get_by_user_id(db, user_id)
    if profile is None:
        raise ProfileNotFoundError()
    return profile


async def _check_identity_available(
    db: AsyncSession,
    national_id_number: str | None,
    passport_number: str | None,
    exclude_profile_id: UUID | None = None,
) -> None:
    clash = await repository.find_identity_conflict(
        db,
        national_id_number=national_id_number,
        passport_number=passport_number,
        exclude_profile_id=exclude_profile_id,
    )
    if clash is not None:
        logger.warning(f"Identity number clash with profile {clash.id}")
        raise DuplicateIdentityError()


async def _check_location(
    db: AsyncSession,
    county_id: UUID | None,
    sub_county_id: UUID | None,
    ward_id: UUID | None,
) -> None:
    """Validate the county > sub-county > ward chain once all three are set."""
    if county_id is None or sub_county_id is None or ward_id is None:
        return
    if not await location_chain_is_valid(db, county_id, sub_county_id, ward_id):
        raise ValidationFailedError(
            "The selected ward does not belong to the selected sub-county and county."
        )


async def refresh_completeness(db: AsyncSession, profile: StudentProfile) -> CompletenessResult:
    """Recompute and cache is_complete from a fresh document query."""
    documents = await repository.list_documents(db, profile.id)
    result = evaluate(profile, documents)
    profile.is_complete = result.is_complete
    return result


# ============================================
# Profile Operations
# ============================================


async def get_profile(db: AsyncSession, user_id: UUID) -> StudentProfile:
    """
    Get the caller's profile.

    Raises:
        ProfileNotFoundError: If the user has no profile yet
    """
    return await _get_profile_or_raise(db, user_id)


async def create_profile(db: AsyncSession, user_id: UUID, data: ProfileCreate) -> StudentProfile:
    """
    Create the caller's profile.

    Raises:
        ProfileAlreadyExistsError: If the user already has one
        DuplicateIdentityError: If the ID/passport number is taken
        ValidationFailedError: If the location chain is inconsistent
    """
    if await repository.get_by_user_id(db, user_id) is not None:
        raise ProfileAlreadyExistsError()

    await _check_identity_available(db, data.national_id_number, data.passport_number)
    await _check_location(db, data.county_id, data.sub_county_id, data.ward_id)

    fields = data.model_dump(exclude_none=True)
    fields["age_range"] = get_age_range(data.date_of_birth)

    try:
        profile = await repository.create(db, user_id, **fields)
        await refresh_completeness(db, profile)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Profile creation for user {user_id} hit a unique constraint: {e.orig}")
        raise DuplicateIdentityError() from e
    except Exception:
        await db.rollback()
        raise

    await db.refresh(profile)
    logger.info(f"Created profile {profile.id} for user {user_id}")
    return profile


async def update_profile(db: AsyncSession, user_id: UUID, data: ProfileUpdate) -> StudentProfile:
    """
    Apply a partial update to the caller's profile.

    Raises:
        ProfileNotFoundError: If the user has no profile
        ProfileLockedError: If an application is PENDING or UNDER_REVIEW
        ValidationFailedError: If the merged profile would hold zero or two
            identity numbers, or the location chain is inconsistent
        DuplicateIdentityError: If a new ID/passport number is taken
    """
    profile = await _get_profile_or_raise(db, user_id)

    in_review = await repository.get_in_review_application(db, profile.id)
    if in_review is not None:
        logger.warning(f"Blocked edit of profile {profile.id}: application {in_review.id} is {in_review.status.value}")
        raise ProfileLockedError(in_review.status)

    changes = data.model_dump(exclude_unset=True)

    national_id = changes.get("national_id_number", profile.national_id_number)
    passport = changes.get("passport_number", profile.passport_number)
    if bool(national_id) == bool(passport):
        raise ValidationFailedError("Provide exactly one of national_id_number or passport_number")

    if "national_id_number" in changes or "passport_number" in changes:
        await _check_identity_available(db, national_id, passport, exclude_profile_id=profile.id)

    if {"county_id", "sub_county_id", "ward_id"} & changes.keys():
        await _check_location(
            db,
            changes.get("county_id", profile.county_id),
            changes.get("sub_county_id", profile.sub_county_id),
            changes.get("ward_id", profile.ward_id),
        )

    try:
        for key, value in changes.items():
            setattr(profile, key, value)
        if "date_of_birth" in changes:
            profile.age_range = get_age_range(profile.date_of_birth)
        await refresh_completeness(db, profile)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateIdentityError() from e
    except Exception:
        await db.rollback()
        raise

    await db.refresh(profile)
    logger.info(f"Updated profile {profile.id}: {sorted(changes)}")
    return profile


async def get_completeness(db: AsyncSession, user_id: UUID) -> CompletenessResult:
    """Completeness of the caller's profile; a missing profile scores zero."""
    profile = await repository.get_by_user_id(db, user_id)
    if profile is None:
        return evaluate(None)
    documents = await repository.list_documents(db, profile.id)
    return evaluate(profile, documents)


async def check_eligibility(
    db: AsyncSession,
    user_id: UUID,
    now: datetime | None = None,
) -> EligibilityResult:
    """
    Decide whether the caller may start a new application.

    Checks run in order and the first failure wins: profile exists, profile
    complete, no active application, application window open. Read-only.
    """
    profile = await repository.get_by_user_id(db, user_id)
    if profile is None:
        return EligibilityResult(
            can_apply=False,
            reason="Profile not found. Please create a profile first.",
            profile_completeness=0,
            missing_fields=[PROFILE_MISSING_LABEL],
        )

    documents = await repository.list_documents(db, profile.id)
    completeness = evaluate(profile, documents)
    if not completeness.is_complete:
        return EligibilityResult(
            can_apply=False,
            reason=(
                "Profile is incomplete. Please complete all required fields "
                "and upload required documents."
            ),
            profile_completeness=completeness.percentage,
            missing_fields=completeness.missing_fields
            + [doc_type.value for doc_type in completeness.missing_documents],
        )

    active = await repository.get_active_application(db, profile.id)
    if active is not None:
        return EligibilityResult(
            can_apply=False,
            reason=f"You already have an active application in {active.status.value} status.",
            profile_completeness=completeness.percentage,
            has_active_application=True,
            active_application_id=active.id,
            active_application_status=active.status,
        )

    window = await get_window_state(db, now)
    if not window.is_open:
        return EligibilityResult(
            can_apply=False,
            reason="The application window is currently closed.",
            profile_completeness=completeness.percentage,
        )

    return EligibilityResult(
        can_apply=True,
        reason="You are eligible to submit a new application.",
        profile_completeness=completeness.percentage,
    )


# ============================================
# Profile Documents
# ============================================


async def list_profile_documents(db: AsyncSession, user_id: UUID) -> list[ProfileDocument]:
    profile = await _get_profile_or_raise(db, user_id)
    return await repository.list_documents(db, profile.id)


async def upsert_profile_document(
    db: AsyncSession,
    user_id: UUID,
    document_type: ProfileDocumentType,
    stored: StoredFile,
) -> ProfileDocument:
    """
    Store a profile document, replacing any existing one of the same type.

    The file is already on disk; only metadata is written here.

    Raises:
        ProfileNotFoundError: If the user has no profile
    """
    profile = await _get_profile_or_raise(db, user_id)

    try:
        document = await repository.upsert_document(db, profile.id, document_type, stored)
        await refresh_completeness(db, profile)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(document)
    logger.info(f"Stored {document_type.value} document {document.id} for profile {profile.id}")
    return document


async def delete_profile_document(db: AsyncSession, user_id: UUID, document_id: UUID) -> None:
    """
    Delete one of the caller's profile documents.

    Raises:
        ProfileNotFoundError: If the user has no profile
        ProfileDocumentNotFoundError: If the document is not the caller's
        DocumentInUseError: If a PENDING or UNDER_REVIEW application links it
    """
    profile = await _get_profile_or_raise(db, user_id)

    document = await repository.get_document(db, profile.id, document_id)
    if document is None:
        raise ProfileDocumentNotFoundError(document_id)

    if await repository.is_document_linked_to_in_review_application(db, document_id):
        logger.warning(f"Refused to delete document {document_id}: linked to an application in review")
        raise DocumentInUseError()

    try:
        await repository.delete_document(db, document)
        await refresh_completeness(db, profile)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Deleted {document.document_type.value} document {document_id} from profile {profile.id}")
