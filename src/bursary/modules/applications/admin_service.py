"""
Bursary Applications Admin Service

Reviewer-side operations:
- Status transitions along the lifecycle graph, single and bulk
- Review scoring (one score set per reviewer, upserted)
- Admin notes (add, edit own, soft-delete own)
- Listing, detail and dashboard statistics
- Reporting analytics and CSV export
- Student lookup: search, overview, documents and timeline

Transitions lock the application row for the duration of the transaction
so two reviewers acting at once are serialised; the second one re-reads the
committed status and fails the edge check.
"""

import csv
import io
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ServiceError,
    ValidationFailedError,
)
from bursary.modules.applications import repository
from bursary.modules.applications.helpers import compute_overall_score, percentage, start_of_month
from bursary.modules.applications.models import AdminNote, Application, ApplicationStatus, ReviewScore
from bursary.modules.applications.repository import InvalidStatusTransitionError
from bursary.modules.applications.schemas import NoteCreateRequest, NoteUpdateRequest, ScoreRequest
from bursary.modules.applications.service import ApplicationNotFoundError
from bursary.modules.applications.side_effects import notify_status_change
from bursary.modules.profiles import repository as profile_repository
from bursary.modules.profiles.models import EducationLevel, StudentProfile

logger = logging.getLogger(__name__)

SCORING_RUBRIC: list[dict] = [
    {
        "key": "financial_need",
        "name": "Financial Need",
        "description": "Severity of the outstanding fee balance relative to household income.",
        "weight": 0.25,
    },
    {
        "key": "academic_merit",
        "name": "Academic Merit",
        "description": "Academic record and commitment to the programme of study.",
        "weight": 0.25,
    },
    {
        "key": "community_impact",
        "name": "Community Impact",
        "description": "Community involvement and plans to give back.",
        "weight": 0.25,
    },
    {
        "key": "vulnerability",
        "name": "Vulnerability",
        "description": "Orphan status, disability, dependants and other hardship factors.",
        "weight": 0.25,
    },
]

SCORE_FIELDS = ("financial_need", "academic_merit", "community_impact", "vulnerability")


# ============================================
# Custom Exceptions
# ============================================


class DisbursementAmountRequiredError(ValidationFailedError):
    def __init__(self):
        super().__init__(
            "A positive disbursed_amount is required to mark an application as DISBURSED.",
            "DISBURSEMENT_AMOUNT_REQUIRED",
        )


class NoteNotFoundError(NotFoundError):
    def __init__(self, note_id: UUID):
        super().__init__(f"Note {note_id} not found", "NOTE_NOT_FOUND")


class StudentProfileNotFoundError(NotFoundError):
    def __init__(self, profile_id: UUID):
        super().__init__(f"Student profile {profile_id} not found", "PROFILE_NOT_FOUND")


# ============================================
# Status Transitions
# ============================================


async def transition_application(
    db: AsyncSession,
    application_id: UUID,
    target_status: ApplicationStatus,
    actor_id: UUID,
    notes: str | None = None,
    disbursed_amount: Decimal | None = None,
) -> Application:
    """
    Move an application to target_status on behalf of a reviewer.

    Args:
        db: Database session
        application_id: Application to move
        target_status: Requested status
        actor_id: Admin performing the change
        notes: Free-text reason stored on the history row
        disbursed_amount: Required (positive) when target_status is DISBURSED

    Returns:
        The updated application

    Raises:
        DisbursementAmountRequiredError: DISBURSED without a positive amount;
            raised before anything is read or written
        ApplicationNotFoundError: If the application does not exist
        InvalidTransitionError: If the edge is not in the lifecycle graph or
            the application is still a DRAFT
    """
    if target_status == ApplicationStatus.DISBURSED and (
        disbursed_amount is None or disbursed_amount <= 0
    ):
        raise DisbursementAmountRequiredError()

    try:
        application = await repository.get_by_id_for_update(db, application_id)
        if application is None:
            raise ApplicationNotFoundError(application_id)

        previous_status = application.status
        # DRAFT -> PENDING belongs to student submission
        if previous_status == ApplicationStatus.DRAFT:
            raise InvalidTransitionError(
                f"Application {application.application_number} is a draft; "
                "only the student can submit it."
            )
        await repository.apply_status_change(
            db,
            application,
            target_status,
            actor_id,
            notes=notes,
            disbursed_amount=disbursed_amount,
        )
        await db.commit()
    except InvalidStatusTransitionError as e:
        await db.rollback()
        logger.warning(f"Admin {actor_id} attempted invalid transition on {application_id}: {e}")
        raise InvalidTransitionError(str(e)) from e
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Admin {actor_id} moved {application.application_number} "
        f"{previous_status.value} -> {target_status.value}"
    )

    try:
        notify_status_change(application, target_status)
    except Exception as e:
        logger.error(
            f"Failed to queue status notifications for {application.application_number}: {e}",
            exc_info=True,
        )
    return application


async def bulk_update_status(
    db: AsyncSession,
    actor_id: UUID,
    application_ids: list[UUID],
    target_status: ApplicationStatus,
    notes: str | None = None,
    disbursed_amount: Decimal | None = None,
) -> dict:
    """
    Apply the same transition to many applications, one at a time.

    Each item commits or rolls back on its own; a failure is recorded and
    the loop continues.

    Returns:
        Dict with success (no failures), updated, failed, and errors
        (one {application_id, error} per failed item)
    """
    updated = 0
    errors: list[dict] = []

    for application_id in application_ids:
        try:
            await transition_application(
                db,
                application_id,
                target_status,
                actor_id,
                notes=notes,
                disbursed_amount=disbursed_amount,
            )
            updated += 1
        except ServiceError as e:
            errors.append({"application_id": application_id, "error": e.message})
        except Exception as e:
            logger.error(f"Bulk update of {application_id} failed unexpectedly: {e}", exc_info=True)
            errors.append({"application_id": application_id, "error": "Unexpected error"})

    logger.info(
        f"Admin {actor_id} bulk update to {target_status.value}: "
        f"{updated} updated, {len(errors)} failed"
    )
    return {
        "success": not errors,
        "updated": updated,
        "failed": len(errors),
        "errors": errors,
    }


# ============================================
# Review Scoring
# ============================================


def get_scoring_rubric() -> list[dict]:
    return [dict(criterion) for criterion in SCORING_RUBRIC]


async def submit_score(
    db: AsyncSession,
    application_id: UUID,
    reviewer_id: UUID,
    data: ScoreRequest,
) -> ReviewScore:
    """
    Record a reviewer's scores, replacing any they gave earlier.

    Raises:
        ValidationFailedError: If a sub-score is outside 1-5
        ApplicationNotFoundError: If the application does not exist
        ConflictError: If the application is still a DRAFT
    """
    values = [getattr(data, name) for name in SCORE_FIELDS]
    for name, value in zip(SCORE_FIELDS, values):
        if not 1 <= value <= 5:
            raise ValidationFailedError(f"{name} must be between 1 and 5")

    application = await repository.get_by_id(db, application_id)
    if application is None:
        raise ApplicationNotFoundError(application_id)
    if application.status == ApplicationStatus.DRAFT:
        raise ConflictError(
            "Draft applications cannot be scored.",
            "INVALID_APPLICATION_STATE",
        )

    try:
        score = await repository.upsert_score(
            db,
            application_id=application_id,
            reviewer_id=reviewer_id,
            financial_need=data.financial_need,
            academic_merit=data.academic_merit,
            community_impact=data.community_impact,
            vulnerability=data.vulnerability,
            overall_score=compute_overall_score(*values),
            comments=data.comments,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Reviewer {reviewer_id} scored {application.application_number}: {score.overall_score}"
    )
    return score


async def get_scores(db: AsyncSession, application_id: UUID) -> dict:
    """
    All reviewer scores for an application.

    Returns:
        Dict with scores, average_score (mean of overall scores, None when
        nobody has scored yet) and total_reviewers
    """
    if await repository.get_by_id(db, application_id) is None:
        raise ApplicationNotFoundError(application_id)

    scores = await repository.list_scores(db, application_id)
    average = None
    if scores:
        total = sum((Decimal(s.overall_score) for s in scores), Decimal("0"))
        average = (total / len(scores)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    return {"scores": scores, "average_score": average, "total_reviewers": len(scores)}


# ============================================
# Admin Notes
# ============================================


async def add_note(
    db: AsyncSession,
    application_id: UUID,
    admin_id: UUID,
    data: NoteCreateRequest,
) -> AdminNote:
    if await repository.get_by_id(db, application_id) is None:
        raise ApplicationNotFoundError(application_id)

    try:
        note = await repository.create_note(
            db,
            application_id=application_id,
            admin_id=admin_id,
            note_text=data.note_text,
            section=data.section,
            is_private=data.is_private,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(note)
    logger.info(f"Admin {admin_id} added {data.section.value} note {note.id} to {application_id}")
    return note


async def _get_own_note(db: AsyncSession, note_id: UUID, admin_id: UUID) -> AdminNote:
    note = await repository.get_note(db, note_id)
    if note is None:
        raise NoteNotFoundError(note_id)
    if note.admin_id != admin_id:
        logger.warning(f"Admin {admin_id} tried to modify note {note_id} owned by {note.admin_id}")
        raise ForbiddenError("You can only modify your own notes.")
    return note


async def update_note(
    db: AsyncSession,
    note_id: UUID,
    admin_id: UUID,
    data: NoteUpdateRequest,
) -> AdminNote:
    """
    Edit one of the caller's own notes.

    Raises:
        NoteNotFoundError: If the note does not exist or was deleted
        ForbiddenError: If another admin wrote the note
    """
    note = await _get_own_note(db, note_id, admin_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    try:
        for key, value in changes.items():
            setattr(note, key, value)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(note)
    logger.info(f"Admin {admin_id} edited note {note_id}: {sorted(changes)}")
    return note


async def delete_note(db: AsyncSession, note_id: UUID, admin_id: UUID) -> None:
    """Soft-delete one of the caller's own notes."""
    note = await _get_own_note(db, note_id, admin_id)

    try:
        note.deleted_at = datetime.now(UTC)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Admin {admin_id} deleted note {note_id}")


# ============================================
# Listing, Detail and Statistics
# ============================================


async def list_applications(
    db: AsyncSession,
    *,
    status: ApplicationStatus | None = None,
    education_level: EducationLevel | None = None,
    county_id: UUID | None = None,
    search: str | None = None,
    submitted_from: datetime | None = None,
    submitted_to: datetime | None = None,
    sort_by: str = "submitted_at",
    sort_order: str = "desc",
    skip: int = 0,
    limit: int = 20,
) -> dict:
    limit = min(max(1, limit), 100)
    skip = max(0, skip)
    search = search.strip() if search else None

    applications, total = await repository.list_for_admin(
        db,
        status=status,
        education_level=education_level,
        county_id=county_id,
        search=search or None,
        submitted_from=submitted_from,
        submitted_to=submitted_to,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=skip,
        limit=limit,
    )
    return {"applications": applications, "total": total, "skip": skip, "limit": limit}


async def get_application_detail(db: AsyncSession, application_id: UUID) -> dict:
    """
    Application with history, scores and all live notes.

    Raises:
        ApplicationNotFoundError: If the application does not exist
    """
    application = await repository.get_by_id(db, application_id)
    if application is None:
        raise ApplicationNotFoundError(application_id)

    return {
        "application": application,
        "history": await repository.list_history(db, application_id),
        "scores": await get_scores(db, application_id),
        "notes": await repository.list_notes(db, application_id, include_private=True),
    }


async def get_history(db: AsyncSession, application_id: UUID) -> list:
    if await repository.get_by_id(db, application_id) is None:
        raise ApplicationNotFoundError(application_id)
    return await repository.list_history(db, application_id)


async def get_dashboard_stats(db: AsyncSession) -> dict:
    return await repository.get_dashboard_stats(db)


# ============================================
# Analytics
# ============================================

# Months of history shown in the submission and disbursement trends
SUBMISSION_TREND_MONTHS = 6
DISBURSEMENT_TREND_MONTHS = 12


async def get_analytics_summary(db: AsyncSession) -> dict:
    """Dashboard statistics plus monthly submissions for the last six months."""
    stats = await repository.get_dashboard_stats(db)
    since = start_of_month(datetime.now(UTC), SUBMISSION_TREND_MONTHS - 1)
    stats["applications_trend"] = await repository.monthly_submissions(db, since)
    return stats


async def get_county_analytics(db: AsyncSession) -> list[dict]:
    return await repository.get_county_breakdown(db)


async def get_institution_analytics(db: AsyncSession) -> list[dict]:
    return await repository.get_institution_breakdown(db)


async def get_disbursement_analytics(db: AsyncSession) -> dict:
    since = start_of_month(datetime.now(UTC), DISBURSEMENT_TREND_MONTHS - 1)
    return await repository.get_disbursement_breakdown(db, since)


async def get_gender_analytics(db: AsyncSession) -> list[dict]:
    rows = await repository.get_gender_breakdown(db)
    return [{**row, "gender": row["gender"].value if row["gender"] else None} for row in rows]


async def get_funnel_analytics(db: AsyncSession) -> dict:
    """
    How far applications got through the lifecycle.

    Every stage counts the applications that reached it or went past it.
    Submitted is a share of all applications; later stages are shares of
    submitted ones. Rejected applications reached review but no further.
    """
    by_status = await repository.count_by_status(db)
    draft = by_status[ApplicationStatus.DRAFT.value]
    under_review = by_status[ApplicationStatus.UNDER_REVIEW.value]
    approved = by_status[ApplicationStatus.APPROVED.value]
    rejected = by_status[ApplicationStatus.REJECTED.value]
    disbursed = by_status[ApplicationStatus.DISBURSED.value]

    submitted = sum(by_status.values()) - draft
    reviewed = under_review + approved + rejected + disbursed
    funded = approved + disbursed

    stages = [
        ("Started", draft + submitted, 100 if draft + submitted else 0),
        ("Submitted", submitted, percentage(submitted, draft + submitted)),
        ("Under Review", reviewed, percentage(reviewed, submitted)),
        ("Approved", funded, percentage(funded, submitted)),
        ("Disbursed", disbursed, percentage(disbursed, submitted)),
    ]
    return {
        "stages": [
            {"stage": name, "count": count, "percentage": share} for name, count, share in stages
        ]
    }


async def get_time_to_decision_analytics(db: AsyncSession) -> dict:
    """Days from submission to each review milestone, in lifecycle order."""
    rows = {row["status"]: row for row in await repository.get_decision_times(db)}

    milestones = []
    for status in repository.REVIEW_MILESTONES:
        row = rows.get(status)
        if row is None:
            continue
        milestones.append(
            {
                "status": status,
                "transitions": row["transitions"],
                **{
                    key: round(float(row[key] or 0), 1)
                    for key in ("average_days", "median_days", "min_days", "max_days")
                },
            }
        )
    return {"milestones": milestones}


async def get_demographics_analytics(db: AsyncSession) -> dict:
    breakdowns = await repository.get_demographics(db)
    return {
        name: [
            {"value": value.value if isinstance(value, Enum) else value, "count": count}
            for value, count in pairs
        ]
        for name, pairs in breakdowns.items()
    }


# ============================================
# Export
# ============================================

EXPORT_COLUMNS: list[tuple[str, Callable[[Application], object]]] = [
    ("Application Number", lambda a: a.application_number),
    ("Full Name", lambda a: a.snapshot_full_name),
    ("National ID", lambda a: a.snapshot_national_id),
    ("Passport Number", lambda a: a.snapshot_passport_number),
    ("Email", lambda a: a.snapshot_email),
    ("Phone", lambda a: a.snapshot_phone),
    ("Gender", lambda a: a.snapshot_gender),
    ("Institution", lambda a: a.snapshot_institution),
    ("Programme", lambda a: a.snapshot_programme),
    ("Education Level", lambda a: a.snapshot_education_level),
    ("County", lambda a: a.snapshot_county),
    ("Sub-County", lambda a: a.snapshot_sub_county),
    ("Ward", lambda a: a.snapshot_ward),
    ("Year of Study", lambda a: a.current_year_of_study),
    ("Outstanding Fees (KES)", lambda a: a.outstanding_fees_balance),
    ("Total Annual Fee (KES)", lambda a: a.total_annual_fee_amount),
    ("Status", lambda a: a.status),
    ("Submitted At", lambda a: a.submitted_at),
    ("Disbursed Amount (KES)", lambda a: a.disbursed_amount),
    ("Disbursed At", lambda a: a.disbursed_at),
    ("Guardian Name", lambda a: a.profile.guardian_name),
    ("Guardian Phone", lambda a: a.profile.guardian_phone),
    ("Guardian Occupation", lambda a: a.profile.guardian_occupation),
    ("Household Income", lambda a: a.profile.household_income_range),
    ("Orphan Status", lambda a: a.profile.orphan_status),
    ("Disability", lambda a: "Yes" if a.profile.disability_status else "No"),
    ("Who Lives With", lambda a: a.profile.who_lives_with),
    ("Siblings", lambda a: a.profile.number_of_siblings),
    ("Siblings in School", lambda a: a.profile.siblings_in_school),
    ("KCSE Grade", lambda a: a.profile.kcse_grade),
    ("Other Scholarships", lambda a: "Yes" if a.applied_to_other_scholarships else "No"),
    ("Career Aspirations", lambda a: a.career_aspirations),
]


def _csv_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def build_export_csv(applications: list[Application]) -> str:
    """One header row, then one row per application in EXPORT_COLUMNS order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for header, _ in EXPORT_COLUMNS])
    for application in applications:
        writer.writerow([_csv_cell(getter(application)) for _, getter in EXPORT_COLUMNS])
    return buffer.getvalue()


async def export_applications(
    db: AsyncSession,
    *,
    status: ApplicationStatus | None = None,
    education_level: EducationLevel | None = None,
    county_id: UUID | None = None,
    search: str | None = None,
    submitted_from: datetime | None = None,
    submitted_to: datetime | None = None,
    min_balance: Decimal | None = None,
    max_balance: Decimal | None = None,
) -> dict:
    """
    Applications matching the admin filters as a CSV document.

    Returns:
        Dict with csv (the document text), count (data rows) and filename

    Raises:
        ValidationFailedError: If min_balance is greater than max_balance
    """
    if min_balance is not None and max_balance is not None and min_balance > max_balance:
        raise ValidationFailedError("min_balance cannot be greater than max_balance")

    search = search.strip() if search else None
    applications = await repository.list_for_export(
        db,
        status=status,
        education_level=education_level,
        county_id=county_id,
        search=search or None,
        submitted_from=submitted_from,
        submitted_to=submitted_to,
        min_balance=min_balance,
        max_balance=max_balance,
    )
    today = datetime.now(UTC).date().isoformat()
    return {
        "csv": build_export_csv(applications),
        "count": len(applications),
        "filename": f"bursary-applications-{today}.csv",
    }


# ============================================
# Student Lookup
# ============================================


async def _get_profile_or_raise(db: AsyncSession, profile_id: UUID) -> StudentProfile:
    profile = await profile_repository.get_by_id(db, profile_id)
    if profile is None:
        raise StudentProfileNotFoundError(profile_id)
    return profile


async def search_students(db: AsyncSession, query: str, skip: int = 0, limit: int = 10) -> dict:
    """
    Find students by name, ID or passport number, institution, or account
    email and phone.

    Raises:
        ValidationFailedError: If the query is shorter than two characters
    """
    query = query.strip()
    if len(query) < 2:
        raise ValidationFailedError("Search query must be at least 2 characters")
    limit = min(max(1, limit), 100)
    skip = max(0, skip)

    matches, total = await repository.search_profiles(db, query, skip=skip, limit=limit)
    students = [
        {
            "id": profile.id,
            "full_name": profile.full_name,
            "national_id_number": profile.national_id_number,
            "passport_number": profile.passport_number,
            "institution_name": profile.institution_name,
            "institution_type": profile.institution_type,
            "email": profile.user.email if profile.user else None,
            "phone": profile.user.phone if profile.user else None,
            "is_complete": profile.is_complete,
            "application_count": application_count,
        }
        for profile, application_count in matches
    ]
    return {"students": students, "total": total, "skip": skip, "limit": limit}


async def get_student_overview(db: AsyncSession, profile_id: UUID) -> dict:
    """
    A student's profile with account details and per-status application counts.

    Raises:
        StudentProfileNotFoundError: If the profile does not exist
    """
    profile = await _get_profile_or_raise(db, profile_id)
    user = profile.user
    return {
        "profile": profile,
        "email": user.email if user else None,
        "phone": user.phone if user else None,
        "account_active": user.is_active if user else None,
        "registered_at": user.created_at if user else None,
        "application_stats": await repository.count_by_status(db, profile_id),
        "applications": await repository.list_for_profile(db, profile_id),
    }


async def get_student_documents(db: AsyncSession, profile_id: UUID) -> dict:
    """Profile documents plus every application document the student uploaded."""
    await _get_profile_or_raise(db, profile_id)
    application_documents = [
        {
            "document": document,
            "application_number": application_number,
            "application_status": application_status,
        }
        for document, application_number, application_status in (
            await repository.list_documents_for_profile(db, profile_id)
        )
    ]
    return {
        "profile_documents": await profile_repository.list_documents(db, profile_id),
        "application_documents": application_documents,
    }


async def get_student_timeline(db: AsyncSession, profile_id: UUID) -> list[dict]:
    """
    Everything that happened to a student, newest first.

    Draft creation and submission come from the application rows; the
    ledger's automatic rows for those two steps are skipped so each shows
    once. Private and public notes both appear, without their text.

    Raises:
        StudentProfileNotFoundError: If the profile does not exist
    """
    profile = await _get_profile_or_raise(db, profile_id)
    events: list[dict] = [
        {
            "type": "PROFILE_CREATED",
            "timestamp": profile.created_at,
            "description": "Student profile created",
        }
    ]

    applications = await repository.list_for_profile(db, profile_id)
    numbers = {application.id: application.application_number for application in applications}
    for application in applications:
        events.append(
            {
                "type": "APPLICATION_CREATED",
                "timestamp": application.created_at,
                "description": f"Application {application.application_number} created",
                "application_id": application.id,
            }
        )
        if application.submitted_at:
            events.append(
                {
                    "type": "APPLICATION_SUBMITTED",
                    "timestamp": application.submitted_at,
                    "description": f"Application {application.application_number} submitted",
                    "application_id": application.id,
                }
            )

    for entry in await repository.list_history_for_profile(db, profile_id):
        if entry.is_auto_generated or entry.previous_status is None:
            continue
        events.append(
            {
                "type": "STATUS_CHANGED",
                "timestamp": entry.changed_at,
                "description": (
                    f"Application {numbers.get(entry.application_id, entry.application_id)} "
                    f"moved from {entry.previous_status.value} to {entry.new_status.value}"
                ),
                "application_id": entry.application_id,
                "reason": entry.reason,
            }
        )

    for note in await repository.list_notes_for_profile(db, profile_id):
        events.append(
            {
                "type": "NOTE_ADDED",
                "timestamp": note.created_at,
                "description": f"{note.section.value.title()} note added",
                "application_id": note.application_id,
            }
        )

    events.sort(key=lambda event: event["timestamp"], reverse=True)
    return events
