"""
Bursary Application Models

Applications, their documents and profile-document links, the append-only
status history ledger, reviewer scores, and admin notes.
"""

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Sequence,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from bursary.core.database import Base
from bursary.modules.profiles.models import EducationLevel
from bursary.modules.shared import BaseModel

if TYPE_CHECKING:
    from bursary.modules.periods.models import ApplicationPeriod
    from bursary.modules.profiles.models import ProfileDocument, StudentProfile


class ApplicationStatus(str, enum.Enum):
    """Lifecycle status of a bursary application."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DISBURSED = "DISBURSED"


# An application in one of these statuses blocks a new one for the same profile
ACTIVE_STATUSES: frozenset[ApplicationStatus] = frozenset(
    {ApplicationStatus.DRAFT, ApplicationStatus.PENDING, ApplicationStatus.UNDER_REVIEW}
)

# Statuses during which the submitted record is being considered
IN_REVIEW_STATUSES: frozenset[ApplicationStatus] = frozenset(
    {ApplicationStatus.PENDING, ApplicationStatus.UNDER_REVIEW}
)


class ApplicationDocumentType(str, enum.Enum):
    """Submission-specific evidence."""

    FEE_STRUCTURE = "FEE_STRUCTURE"
    BALANCE_STATEMENT = "BALANCE_STATEMENT"
    SUPPORT_LETTER = "SUPPORT_LETTER"
    OTHER_EVIDENCE = "OTHER_EVIDENCE"


class NoteSection(str, enum.Enum):
    FINANCIAL = "FINANCIAL"
    ACADEMIC = "ACADEMIC"
    VULNERABILITY = "VULNERABILITY"
    GENERAL = "GENERAL"


class SnapshotFrozenError(ValueError):
    """Raised on an attempt to overwrite a populated snapshot column."""


application_number_seq = Sequence("application_number_seq", start=1, metadata=Base.metadata)

SNAPSHOT_COLUMNS: tuple[str, ...] = (
    "snapshot_full_name",
    "snapshot_date_of_birth",
    "snapshot_gender",
    "snapshot_national_id",
    "snapshot_passport_number",
    "snapshot_institution",
    "snapshot_programme",
    "snapshot_education_level",
    "snapshot_county",
    "snapshot_sub_county",
    "snapshot_ward",
    "snapshot_phone",
    "snapshot_email",
)


class Application(BaseModel):
    """
    Bursary application.

    Working fields are editable only while status is DRAFT. Snapshot fields
    stay NULL until submission and are write-once afterwards.
    """

    __tablename__ = "applications"

    student_profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("student_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    application_period_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("application_periods.id", ondelete="SET NULL"),
        nullable=True,
    )
    application_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status"),
        nullable=False,
        default=ApplicationStatus.DRAFT,
    )

    # Working fields (DRAFT only)
    outstanding_fees_balance: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total_annual_fee_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    hardship_narrative: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_year_of_study: Mapped[str | None] = mapped_column(String(50), nullable=True)
    current_fee_situation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    mode_of_sponsorship: Mapped[list | None] = mapped_column(JSON, nullable=True)
    how_supporting_education: Mapped[list | None] = mapped_column(JSON, nullable=True)
    difficulties_faced: Mapped[list | None] = mapped_column(JSON, nullable=True)
    is_fees_affecting_studies: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    has_been_sent_home: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    has_missed_exams_or_classes: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    goal_for_academic_year: Mapped[str | None] = mapped_column(Text, nullable=True)
    referral_source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    career_aspirations: Mapped[str | None] = mapped_column(Text, nullable=True)
    community_involvement: Mapped[str | None] = mapped_column(Text, nullable=True)
    giving_back_plan: Mapped[str | None] = mapped_column(Text, nullable=True)
    applied_to_other_scholarships: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    other_scholarships_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Snapshot (write-once at submission)
    snapshot_full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    snapshot_date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    snapshot_gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    snapshot_national_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    snapshot_passport_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    snapshot_institution: Mapped[str | None] = mapped_column(String(200), nullable=True)
    snapshot_programme: Mapped[str | None] = mapped_column(String(200), nullable=True)
    snapshot_education_level: Mapped[EducationLevel | None] = mapped_column(
        Enum(EducationLevel, name="education_level"), nullable=True
    )
    snapshot_county: Mapped[str | None] = mapped_column(String(100), nullable=True)
    snapshot_sub_county: Mapped[str | None] = mapped_column(String(100), nullable=True)
    snapshot_ward: Mapped[str | None] = mapped_column(String(100), nullable=True)
    snapshot_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    snapshot_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Review bookkeeping
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    disbursed_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    disbursed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    disbursement_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    profile: Mapped["StudentProfile"] = relationship("StudentProfile", lazy="selectin")
    period: Mapped["ApplicationPeriod | None"] = relationship("ApplicationPeriod", lazy="selectin")
    documents: Mapped[list["ApplicationDocument"]] = relationship(
        "ApplicationDocument",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    profile_document_links: Mapped[list["ApplicationProfileDocumentLink"]] = relationship(
        "ApplicationProfileDocumentLink",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_applications_status", "status"),
        Index("ix_applications_student_profile_id", "student_profile_id"),
        Index("ix_applications_submitted_at", "submitted_at"),
        # One DRAFT/PENDING/UNDER_REVIEW application per profile
        Index(
            "uq_applications_one_active_per_profile",
            "student_profile_id",
            unique=True,
            postgresql_where=text("status IN ('DRAFT', 'PENDING', 'UNDER_REVIEW')"),
        ),
    )

    @validates(*SNAPSHOT_COLUMNS)
    def _validate_snapshot_write_once(self, key: str, value):
        current = getattr(self, key)
        if current is not None and value != current:
            raise SnapshotFrozenError(f"{key} is frozen for application {self.application_number}")
        return value

    @property
    def is_draft(self) -> bool:
        return self.status == ApplicationStatus.DRAFT

    def __repr__(self) -> str:
        return f"<Application(number={self.application_number}, status={self.status})>"


class ApplicationDocument(BaseModel):
    """Evidence uploaded for one application only."""

    __tablename__ = "application_documents"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_type: Mapped[ApplicationDocumentType] = mapped_column(
        Enum(ApplicationDocumentType, name="application_document_type"), nullable=False
    )
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    stored_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)

    application: Mapped["Application"] = relationship("Application", back_populates="documents")

    __table_args__ = (Index("ix_application_documents_application_id", "application_id"),)


class ApplicationProfileDocumentLink(Base):
    """Attaches a reusable profile document to an application for review."""

    __tablename__ = "application_profile_document_links"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    profile_document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profile_documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    linked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    application: Mapped["Application"] = relationship(
        "Application", back_populates="profile_document_links"
    )
    profile_document: Mapped["ProfileDocument"] = relationship("ProfileDocument", lazy="selectin")

    __table_args__ = (
        UniqueConstraint(
            "application_id",
            "profile_document_id",
            name="uq_application_profile_document_links_pair",
        ),
        Index("ix_application_profile_document_links_profile_document_id", "profile_document_id"),
    )


class ApplicationStatusHistory(Base):
    """
    Append-only status ledger.

    One row per status change including initial DRAFT creation. Rows are
    never updated or deleted.
    """

    __tablename__ = "application_status_history"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    previous_status: Mapped[ApplicationStatus | None] = mapped_column(
        Enum(ApplicationStatus, name="application_status"), nullable=True
    )
    new_status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status"), nullable=False
    )
    changed_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_auto_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_application_status_history_application_changed", "application_id", "changed_at"),
    )


class ReviewScore(BaseModel):
    """One reviewer's scores for one application."""

    __tablename__ = "review_scores"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    financial_need: Mapped[int] = mapped_column(Integer, nullable=False)
    academic_merit: Mapped[int] = mapped_column(Integer, nullable=False)
    community_impact: Mapped[int] = mapped_column(Integer, nullable=False)
    vulnerability: Mapped[int] = mapped_column(Integer, nullable=False)
    overall_score: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("application_id", "reviewer_id", name="uq_review_scores_application_reviewer"),
        CheckConstraint("financial_need BETWEEN 1 AND 5", name="ck_review_scores_financial_need"),
        CheckConstraint("academic_merit BETWEEN 1 AND 5", name="ck_review_scores_academic_merit"),
        CheckConstraint("community_impact BETWEEN 1 AND 5", name="ck_review_scores_community_impact"),
        CheckConstraint("vulnerability BETWEEN 1 AND 5", name="ck_review_scores_vulnerability"),
    )


class AdminNote(BaseModel):
    """Reviewer note on an application. Soft-deleted via deleted_at."""

    __tablename__ = "admin_notes"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    admin_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    note_text: Mapped[str] = mapped_column(Text, nullable=False)
    section: Mapped[NoteSection] = mapped_column(
        Enum(NoteSection, name="note_section"), nullable=False, default=NoteSection.GENERAL
    )
    # Private notes are never shown to the student
    is_private: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_admin_notes_application_id", "application_id"),)
