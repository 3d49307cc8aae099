"""
Bursary Applications Repository

Database operations for applications, their documents and profile-document
links, the status history ledger, review scores, admin notes, and the
reporting aggregates behind the admin dashboard and student lookup.

Writes are flushed, never committed; the service owns the transaction.
"""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    ColumnElement,
    ScalarSelect,
    Select,
    and_,
    asc,
    case,
    desc,
    extract,
    func,
    literal_column,
    or_,
    select,
)
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.storage import StoredFile
from bursary.modules.profiles.models import EducationLevel, StudentProfile
from bursary.modules.users.models import User

from .helpers import format_application_number
from .models import (
    AdminNote,
    Application,
    ApplicationDocument,
    ApplicationDocumentType,
    ApplicationProfileDocumentLink,
    ApplicationStatus,
    ApplicationStatusHistory,
    NoteSection,
    ReviewScore,
    application_number_seq,
)

# Valid status transitions. Terminal states map to an empty set and
# nothing ever transitions back into DRAFT.
VALID_STATUS_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: {
        ApplicationStatus.PENDING,  # Student submitted
    },
    ApplicationStatus.PENDING: {
        ApplicationStatus.UNDER_REVIEW,  # Reviewer picked it up
    },
    ApplicationStatus.UNDER_REVIEW: {
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.APPROVED: {
        ApplicationStatus.DISBURSED,  # Funds paid out
    },
    ApplicationStatus.REJECTED: set(),
    ApplicationStatus.DISBURSED: set(),
}

DECISION_STATUSES = (ApplicationStatus.APPROVED, ApplicationStatus.REJECTED)


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        current_status: ApplicationStatus,
        new_status: ApplicationStatus,
    ):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def is_valid_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    """Same-status moves are never valid."""
    return target in VALID_STATUS_TRANSITIONS.get(current, set())


# ============================================
# Applications
# ============================================


async def next_application_number(db: AsyncSession, prefix: str, year: int) -> str:
    """Draw the next value from the database sequence and format it."""
    sequence = await db.scalar(select(application_number_seq.next_value()))
    return format_application_number(prefix, year, int(sequence))


async def create(
    db: AsyncSession,
    *,
    profile_id: UUID,
    application_number: str,
    period_id: UUID | None,
    **fields,
) -> Application:
    application = Application(
        student_profile_id=profile_id,
        application_number=application_number,
        application_period_id=period_id,
        status=ApplicationStatus.DRAFT,
        **fields,
    )
    db.add(application)
    await db.flush()
    return application


async def get_by_id(db: AsyncSession, application_id: UUID) -> Application | None:
    return await db.get(Application, application_id)


async def get_for_profile(
    db: AsyncSession, application_id: UUID, profile_id: UUID
) -> Application | None:
    """An application by id, only if it belongs to the given profile."""
    result = await db.execute(
        select(Application).where(
            Application.id == application_id,
            Application.student_profile_id == profile_id,
        )
    )
    return result.scalar_one_or_none()


async def get_by_id_for_update(db: AsyncSession, application_id: UUID) -> Application | None:
    """
    Load an application with a row lock held until commit or rollback.

    populate_existing makes a waiting transaction see the status committed
    by the one that held the lock, not a stale identity-map copy.
    """
    result = await db.execute(
        select(Application)
        .where(Application.id == application_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_for_profile(db: AsyncSession, profile_id: UUID) -> list[Application]:
    result = await db.execute(
        select(Application)
        .where(Application.student_profile_id == profile_id)
        .order_by(Application.created_at.desc())
    )
    return list(result.scalars().all())


# ============================================
# Status History
# ============================================


async def add_history(
    db: AsyncSession,
    *,
    application_id: UUID,
    previous_status: ApplicationStatus | None,
    new_status: ApplicationStatus,
    changed_by: UUID,
    reason: str | None = None,
    is_auto_generated: bool = False,
) -> ApplicationStatusHistory:
    """Append one row to the status ledger."""
    entry = ApplicationStatusHistory(
        application_id=application_id,
        previous_status=previous_status,
        new_status=new_status,
        changed_by=changed_by,
        changed_at=datetime.now(UTC),
        reason=reason,
        is_auto_generated=is_auto_generated,
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_history(db: AsyncSession, application_id: UUID) -> list[ApplicationStatusHistory]:
    """Ledger rows for an application, oldest first."""
    result = await db.execute(
        select(ApplicationStatusHistory)
        .where(ApplicationStatusHistory.application_id == application_id)
        .order_by(ApplicationStatusHistory.changed_at.asc())
    )
    return list(result.scalars().all())


async def apply_status_change(
    db: AsyncSession,
    application: Application,
    target_status: ApplicationStatus,
    actor_id: UUID,
    *,
    notes: str | None = None,
    disbursed_amount: Decimal | None = None,
) -> ApplicationStatusHistory:
    """
    Move a locked application along one edge and record it in the ledger.

    Raises:
        InvalidStatusTransitionError: If target_status is not reachable from
            the current status
    """
    current_status = application.status
    if not is_valid_transition(current_status, target_status):
        raise InvalidStatusTransitionError(current_status, target_status)

    now = datetime.now(UTC)
    application.status = target_status
    application.reviewed_at = now
    application.reviewed_by = actor_id

    if target_status == ApplicationStatus.DISBURSED:
        application.disbursed_amount = disbursed_amount
        application.disbursed_at = now
        application.disbursement_notes = notes

    return await add_history(
        db,
        application_id=application.id,
        previous_status=current_status,
        new_status=target_status,
        changed_by=actor_id,
        reason=notes,
        is_auto_generated=False,
    )


# ============================================
# Application Documents
# ============================================


async def add_document(
    db: AsyncSession,
    application_id: UUID,
    document_type: ApplicationDocumentType,
    stored: StoredFile,
    description: str | None = None,
) -> ApplicationDocument:
    document = ApplicationDocument(
        application_id=application_id,
        document_type=document_type,
        description=description,
        original_filename=stored.original_filename,
        stored_filename=stored.stored_filename,
        file_path=stored.file_path,
        file_size=stored.file_size,
        mime_type=stored.mime_type,
    )
    db.add(document)
    await db.flush()
    return document


async def get_document(
    db: AsyncSession, application_id: UUID, document_id: UUID
) -> ApplicationDocument | None:
    result = await db.execute(
        select(ApplicationDocument).where(
            ApplicationDocument.id == document_id,
            ApplicationDocument.application_id == application_id,
        )
    )
    return result.scalar_one_or_none()


async def delete_document(db: AsyncSession, document: ApplicationDocument) -> None:
    await db.delete(document)
    await db.flush()


async def has_document_of_type(
    db: AsyncSession, application_id: UUID, document_type: ApplicationDocumentType
) -> bool:
    result = await db.execute(
        select(func.count(ApplicationDocument.id)).where(
            ApplicationDocument.application_id == application_id,
            ApplicationDocument.document_type == document_type,
        )
    )
    return (result.scalar() or 0) > 0


# ============================================
# Profile Document Links
# ============================================


async def get_link(
    db: AsyncSession, application_id: UUID, profile_document_id: UUID
) -> ApplicationProfileDocumentLink | None:
    result = await db.execute(
        select(ApplicationProfileDocumentLink).where(
            ApplicationProfileDocumentLink.application_id == application_id,
            ApplicationProfileDocumentLink.profile_document_id == profile_document_id,
        )
    )
    return result.scalar_one_or_none()


async def create_link(
    db: AsyncSession, application_id: UUID, profile_document_id: UUID
) -> ApplicationProfileDocumentLink:
    link = ApplicationProfileDocumentLink(
        application_id=application_id,
        profile_document_id=profile_document_id,
        linked_at=datetime.now(UTC),
    )
    db.add(link)
    await db.flush()
    return link


async def delete_link(db: AsyncSession, link: ApplicationProfileDocumentLink) -> None:
    await db.delete(link)
    await db.flush()


# ============================================
# Review Scores
# ============================================


async def upsert_score(
    db: AsyncSession,
    *,
    application_id: UUID,
    reviewer_id: UUID,
    financial_need: int,
    academic_merit: int,
    community_impact: int,
    vulnerability: int,
    overall_score: Decimal,
    comments: str | None,
) -> ReviewScore:
    """
    Insert a reviewer's score, or overwrite their existing one.

    A single INSERT ... ON CONFLICT DO UPDATE keyed on
    (application_id, reviewer_id).
    """
    values = {
        "financial_need": financial_need,
        "academic_merit": academic_merit,
        "community_impact": community_impact,
        "vulnerability": vulnerability,
        "overall_score": overall_score,
        "comments": comments,
    }
    stmt = (
        pg_insert(ReviewScore)
        .values(application_id=application_id, reviewer_id=reviewer_id, **values)
        .on_conflict_do_update(
            constraint="uq_review_scores_application_reviewer",
            set_={**values, "updated_at": func.now()},
        )
        .returning(ReviewScore)
    )
    result = await db.execute(stmt, execution_options={"populate_existing": True})
    return result.scalar_one()


async def list_scores(db: AsyncSession, application_id: UUID) -> list[ReviewScore]:
    result = await db.execute(
        select(ReviewScore)
        .where(ReviewScore.application_id == application_id)
        .order_by(ReviewScore.created_at.asc())
    )
    return list(result.scalars().all())


# ============================================
# Admin Notes
# ============================================


async def create_note(
    db: AsyncSession,
    *,
    application_id: UUID,
    admin_id: UUID,
    note_text: str,
    section: NoteSection,
    is_private: bool,
) -> AdminNote:
    note = AdminNote(
        application_id=application_id,
        admin_id=admin_id,
        note_text=note_text,
        section=section,
        is_private=is_private,
    )
    db.add(note)
    await db.flush()
    return note


async def get_note(db: AsyncSession, note_id: UUID) -> AdminNote | None:
    """A note that has not been soft-deleted."""
    result = await db.execute(
        select(AdminNote).where(AdminNote.id == note_id, AdminNote.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def list_notes(
    db: AsyncSession, application_id: UUID, *, include_private: bool
) -> list[AdminNote]:
    query = select(AdminNote).where(
        AdminNote.application_id == application_id,
        AdminNote.deleted_at.is_(None),
    )
    if not include_private:
        query = query.where(AdminNote.is_private.is_(False))
    result = await db.execute(query.order_by(AdminNote.created_at.asc()))
    return list(result.scalars().all())


# ============================================
# Admin Listing and Statistics
# ============================================

SORTABLE_COLUMNS = {
    "submitted_at": Application.submitted_at,
    "created_at": Application.created_at,
    "application_number": Application.application_number,
    "outstanding_fees_balance": Application.outstanding_fees_balance,
}


def _admin_query(
    *,
    status: ApplicationStatus | None = None,
    education_level: EducationLevel | None = None,
    county_id: UUID | None = None,
    search: str | None = None,
    submitted_from: datetime | None = None,
    submitted_to: datetime | None = None,
    min_balance: Decimal | None = None,
    max_balance: Decimal | None = None,
) -> Select:
    """Applications joined to their profile with the admin filters applied."""
    query = select(Application).join(
        StudentProfile, Application.student_profile_id == StudentProfile.id
    )

    if status:
        query = query.where(Application.status == status)
    if education_level:
        query = query.where(StudentProfile.institution_type == education_level)
    if county_id:
        query = query.where(StudentProfile.county_id == county_id)
    if submitted_from:
        query = query.where(Application.submitted_at >= submitted_from)
    if submitted_to:
        query = query.where(Application.submitted_at <= submitted_to)
    if min_balance is not None:
        query = query.where(Application.outstanding_fees_balance >= min_balance)
    if max_balance is not None:
        query = query.where(Application.outstanding_fees_balance <= max_balance)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Application.application_number.ilike(pattern),
                Application.snapshot_full_name.ilike(pattern),
                Application.snapshot_email.ilike(pattern),
                StudentProfile.full_name.ilike(pattern),
            )
        )
    return query


async def list_for_admin(
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
) -> tuple[list[Application], int]:
    """
    Filtered, sorted, paginated applications for the admin dashboard.

    Education level and county filter on the owning profile. Search matches
    application number, snapshot name and email, and the profile name
    (case-insensitive).

    Returns:
        Tuple of (applications on this page, total count matching filters)
    """
    query = _admin_query(
        status=status,
        education_level=education_level,
        county_id=county_id,
        search=search,
        submitted_from=submitted_from,
        submitted_to=submitted_to,
    )

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    sort_column = SORTABLE_COLUMNS.get(sort_by, Application.submitted_at)
    order = desc(sort_column) if sort_order.lower() == "desc" else asc(sort_column)
    query = query.order_by(order.nulls_last()).offset(skip).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all()), total


async def list_for_export(
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
) -> list[Application]:
    """Every application matching the admin filters, latest submission first."""
    query = _admin_query(
        status=status,
        education_level=education_level,
        county_id=county_id,
        search=search,
        submitted_from=submitted_from,
        submitted_to=submitted_to,
        min_balance=min_balance,
        max_balance=max_balance,
    ).order_by(Application.submitted_at.desc().nulls_last(), Application.created_at.desc())

    result = await db.execute(query)
    return list(result.scalars().all())


async def count_by_status(db: AsyncSession, profile_id: UUID | None = None) -> dict[str, int]:
    """Application count per status, every status present (zero when unused)."""
    query = select(Application.status, func.count(Application.id)).group_by(Application.status)
    if profile_id is not None:
        query = query.where(Application.student_profile_id == profile_id)

    result = await db.execute(query)
    by_status = {s.value: 0 for s in ApplicationStatus}
    for status, count in result.all():
        by_status[status.value] = count
    return by_status


async def get_dashboard_stats(db: AsyncSession) -> dict:
    """
    Aggregates for the admin dashboard.

    Returns:
        Dict with a per-status count map, total, total_disbursed,
        average_fee_balance and avg_days_to_decision (None when no data)
    """
    by_status = await count_by_status(db)

    totals_result = await db.execute(
        select(
            func.coalesce(
                func.sum(
                    case(
                        (
                            Application.status == ApplicationStatus.DISBURSED,
                            Application.disbursed_amount,
                        ),
                    )
                ),
                0,
            ).label("total_disbursed"),
            func.avg(
                case(
                    (
                        Application.status != ApplicationStatus.DRAFT,
                        Application.outstanding_fees_balance,
                    ),
                )
            ).label("average_fee_balance"),
        )
    )
    totals = totals_result.one()

    # Submission to the first APPROVED/REJECTED ledger row, per application
    first_decision = (
        select(
            ApplicationStatusHistory.application_id.label("application_id"),
            func.min(ApplicationStatusHistory.changed_at).label("decided_at"),
        )
        .where(ApplicationStatusHistory.new_status.in_(DECISION_STATUSES))
        .group_by(ApplicationStatusHistory.application_id)
        .subquery()
    )
    avg_days_result = await db.execute(
        select(
            func.avg(extract("epoch", first_decision.c.decided_at - Application.submitted_at) / 86400)
        ).where(
            and_(
                Application.id == first_decision.c.application_id,
                Application.submitted_at.is_not(None),
            )
        )
    )
    avg_days = avg_days_result.scalar()

    return {
        "by_status": by_status,
        "total": sum(by_status.values()),
        "total_disbursed": Decimal(totals.total_disbursed or 0),
        "average_fee_balance": (
            round(Decimal(totals.average_fee_balance), 2)
            if totals.average_fee_balance is not None
            else None
        ),
        "avg_days_to_decision": round(float(avg_days), 1) if avg_days is not None else None,
    }


# ============================================
# Analytics
# ============================================

# Ledger statuses measured from submission in the time-to-decision report
REVIEW_MILESTONES = (
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.DISBURSED,
)

# Rendered inline so the GROUP BY expression matches the selected one
_MONTH_FORMAT = literal_column("'YYYY-MM'")


def _count_where(condition) -> ColumnElement:
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def _disbursed_sum() -> ColumnElement:
    return func.coalesce(
        func.sum(
            case(
                (
                    Application.status == ApplicationStatus.DISBURSED,
                    Application.disbursed_amount,
                ),
            )
        ),
        0,
    )


async def monthly_submissions(db: AsyncSession, since: datetime) -> list[dict]:
    """Submitted applications per calendar month (YYYY-MM), oldest first."""
    month = func.to_char(Application.submitted_at, _MONTH_FORMAT)
    result = await db.execute(
        select(month.label("period"), func.count(Application.id).label("count"))
        .where(Application.submitted_at >= since)
        .group_by(month)
        .order_by(month)
    )
    return [{"period": row.period, "count": row.count} for row in result.all()]


async def get_county_breakdown(db: AsyncSession) -> list[dict]:
    """Per snapshot county: status counts and the amount disbursed, busiest first."""
    result = await db.execute(
        select(
            Application.snapshot_county.label("county"),
            func.count(Application.id).label("total"),
            _count_where(Application.status == ApplicationStatus.PENDING).label("pending"),
            _count_where(Application.status == ApplicationStatus.UNDER_REVIEW).label("under_review"),
            _count_where(Application.status == ApplicationStatus.APPROVED).label("approved"),
            _count_where(Application.status == ApplicationStatus.REJECTED).label("rejected"),
            _count_where(Application.status == ApplicationStatus.DISBURSED).label("disbursed"),
            _disbursed_sum().label("disbursed_amount"),
        )
        .where(Application.snapshot_county.is_not(None))
        .group_by(Application.snapshot_county)
        .order_by(desc("total"), Application.snapshot_county)
    )
    return [dict(row._mapping) for row in result.all()]


async def get_institution_breakdown(db: AsyncSession, limit: int = 20) -> list[dict]:
    """
    Per snapshot institution and education level, busiest first.

    approved counts APPROVED and DISBURSED applications.
    """
    result = await db.execute(
        select(
            Application.snapshot_institution.label("institution"),
            Application.snapshot_education_level.label("education_level"),
            func.count(Application.id).label("total"),
            _count_where(
                Application.status.in_((ApplicationStatus.APPROVED, ApplicationStatus.DISBURSED))
            ).label("approved"),
            _disbursed_sum().label("disbursed_amount"),
        )
        .where(Application.snapshot_institution.is_not(None))
        .group_by(Application.snapshot_institution, Application.snapshot_education_level)
        .order_by(desc("total"), Application.snapshot_institution)
        .limit(limit)
    )
    return [dict(row._mapping) for row in result.all()]


async def get_disbursement_breakdown(db: AsyncSession, since: datetime) -> dict:
    """
    Disbursed applications in total, per month since `since`, and per
    snapshot education level.

    Returns:
        Dict with total_disbursed, total_beneficiaries, average_disbursement
        (None when nothing was disbursed), by_month and by_education_level
    """
    disbursed = Application.status == ApplicationStatus.DISBURSED

    totals_result = await db.execute(
        select(
            func.coalesce(func.sum(Application.disbursed_amount), 0).label("total"),
            func.count(Application.id).label("beneficiaries"),
            func.avg(Application.disbursed_amount).label("average"),
        ).where(disbursed)
    )
    totals = totals_result.one()

    month = func.to_char(Application.disbursed_at, _MONTH_FORMAT)
    monthly_result = await db.execute(
        select(
            month.label("month"),
            func.coalesce(func.sum(Application.disbursed_amount), 0).label("amount"),
            func.count(Application.id).label("count"),
        )
        .where(disbursed, Application.disbursed_at >= since)
        .group_by(month)
        .order_by(month)
    )

    level_result = await db.execute(
        select(
            Application.snapshot_education_level,
            func.coalesce(func.sum(Application.disbursed_amount), 0),
            func.count(Application.id),
        )
        .where(disbursed, Application.snapshot_education_level.is_not(None))
        .group_by(Application.snapshot_education_level)
    )
    by_level = {level.value: {"amount": Decimal(0), "count": 0} for level in EducationLevel}
    for level, amount, count in level_result.all():
        by_level[level.value] = {"amount": Decimal(amount), "count": count}

    return {
        "total_disbursed": Decimal(totals.total),
        "total_beneficiaries": totals.beneficiaries,
        "average_disbursement": (
            round(Decimal(totals.average), 2) if totals.average is not None else None
        ),
        "by_month": [
            {"month": row.month, "amount": Decimal(row.amount), "count": row.count}
            for row in monthly_result.all()
        ],
        "by_education_level": by_level,
    }


async def get_gender_breakdown(db: AsyncSession) -> list[dict]:
    """Submitted applications per applicant gender (from the profile)."""
    result = await db.execute(
        select(
            StudentProfile.gender.label("gender"),
            func.count(Application.id).label("total"),
            _count_where(
                Application.status.in_((ApplicationStatus.APPROVED, ApplicationStatus.DISBURSED))
            ).label("approved"),
            _count_where(Application.status == ApplicationStatus.REJECTED).label("rejected"),
        )
        .select_from(Application)
        .join(StudentProfile, Application.student_profile_id == StudentProfile.id)
        .where(Application.status != ApplicationStatus.DRAFT)
        .group_by(StudentProfile.gender)
    )
    return [dict(row._mapping) for row in result.all()]


async def get_decision_times(db: AsyncSession) -> list[dict]:
    """
    Days from submission to each review milestone, read from the status ledger.

    Returns:
        One dict per milestone status reached at least once, with
        transitions, average_days, median_days, min_days and max_days
    """
    elapsed_days = (
        extract("epoch", ApplicationStatusHistory.changed_at - Application.submitted_at) / 86400
    )
    result = await db.execute(
        select(
            ApplicationStatusHistory.new_status.label("status"),
            func.count(ApplicationStatusHistory.id).label("transitions"),
            func.avg(elapsed_days).label("average_days"),
            func.percentile_cont(0.5).within_group(elapsed_days).label("median_days"),
            func.min(elapsed_days).label("min_days"),
            func.max(elapsed_days).label("max_days"),
        )
        .join(Application, Application.id == ApplicationStatusHistory.application_id)
        .where(
            Application.submitted_at.is_not(None),
            ApplicationStatusHistory.new_status.in_(REVIEW_MILESTONES),
        )
        .group_by(ApplicationStatusHistory.new_status)
    )
    return [dict(row._mapping) for row in result.all()]


async def get_demographics(db: AsyncSession) -> dict[str, list[tuple]]:
    """
    Student profiles counted by vulnerability and household attributes.

    Returns:
        Dict of attribute name to (value, count) pairs; orphan status,
        household income and age range skip profiles that left them blank
    """
    breakdowns = {
        "orphan_status": StudentProfile.orphan_status,
        "disability": StudentProfile.disability_status,
        "household_income": StudentProfile.household_income_range,
        "age_range": StudentProfile.age_range,
    }
    demographics: dict[str, list[tuple]] = {}
    for name, column in breakdowns.items():
        query = select(column, func.count(StudentProfile.id)).group_by(column).order_by(column)
        if name != "disability":
            query = query.where(column.is_not(None))
        result = await db.execute(query)
        demographics[name] = [tuple(row) for row in result.all()]
    return demographics


# ============================================
# Student Lookup
# ============================================


def _application_count() -> ScalarSelect:
    return (
        select(func.count(Application.id))
        .where(Application.student_profile_id == StudentProfile.id)
        .correlate(StudentProfile)
        .scalar_subquery()
    )


async def search_profiles(
    db: AsyncSession, query: str, *, skip: int = 0, limit: int = 10
) -> tuple[list[tuple[StudentProfile, int]], int]:
    """
    Profiles matching the query on name, national ID, passport, institution,
    or account email and phone (case-insensitive).

    Returns:
        Tuple of ((profile, application count) pairs on this page, total matches)
    """
    pattern = f"%{query}%"
    base = (
        select(StudentProfile)
        .join(User, StudentProfile.user_id == User.id)
        .where(
            or_(
                StudentProfile.full_name.ilike(pattern),
                StudentProfile.national_id_number.ilike(pattern),
                StudentProfile.passport_number.ilike(pattern),
                StudentProfile.institution_name.ilike(pattern),
                User.email.ilike(pattern),
                User.phone.ilike(pattern),
            )
        )
    )

    total_result = await db.execute(select(func.count()).select_from(base.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(
        base.add_columns(_application_count().label("application_count"))
        .order_by(StudentProfile.full_name, StudentProfile.id)
        .offset(skip)
        .limit(limit)
    )
    return [(profile, count) for profile, count in result.all()], total


async def list_history_for_profile(
    db: AsyncSession, profile_id: UUID
) -> list[ApplicationStatusHistory]:
    """Ledger rows across all of a profile's applications, oldest first."""
    result = await db.execute(
        select(ApplicationStatusHistory)
        .join(Application, Application.id == ApplicationStatusHistory.application_id)
        .where(Application.student_profile_id == profile_id)
        .order_by(ApplicationStatusHistory.changed_at.asc())
    )
    return list(result.scalars().all())


async def list_notes_for_profile(db: AsyncSession, profile_id: UUID) -> list[AdminNote]:
    """Live (not soft-deleted) notes across all of a profile's applications."""
    result = await db.execute(
        select(AdminNote)
        .join(Application, Application.id == AdminNote.application_id)
        .where(
            Application.student_profile_id == profile_id,
            AdminNote.deleted_at.is_(None),
        )
        .order_by(AdminNote.created_at.asc())
    )
    return list(result.scalars().all())


async def list_documents_for_profile(
    db: AsyncSession, profile_id: UUID
) -> list[tuple[ApplicationDocument, str, ApplicationStatus]]:
    """
    Application documents across a profile's applications, newest first.

    Returns:
        (document, application number, application status) tuples
    """
    result = await db.execute(
        select(ApplicationDocument, Application.application_number, Application.status)
        .join(Application, Application.id == ApplicationDocument.application_id)
        .where(Application.student_profile_id == profile_id)
        .order_by(ApplicationDocument.created_at.desc())
    )
    return [tuple(row) for row in result.all()]
