"""
Student Profile Models

A student's reusable personal record and the documents attached to it.
Applications copy from the profile at submission time; the profile itself
stays editable until an application is under consideration.
"""

import enum
import uuid
from datetime import date, datetime
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
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bursary.modules.shared import BaseModel

if TYPE_CHECKING:
    from bursary.modules.reference.models import County, Institution, SubCounty, Ward
    from bursary.modules.users.models import User


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class EducationLevel(str, enum.Enum):
    """Level of the institution the student attends."""

    HIGH_SCHOOL = "HIGH_SCHOOL"
    COLLEGE = "COLLEGE"
    UNIVERSITY = "UNIVERSITY"


class WhoLivesWith(str, enum.Enum):
    BOTH_PARENTS = "BOTH_PARENTS"
    SINGLE_MOTHER = "SINGLE_MOTHER"
    SINGLE_FATHER = "SINGLE_FATHER"
    GUARDIAN = "GUARDIAN"
    GRANDPARENT = "GRANDPARENT"
    ORPHANAGE = "ORPHANAGE"
    SELF = "SELF"
    OTHER = "OTHER"


class HouseholdIncomeRange(str, enum.Enum):
    BELOW_5K = "BELOW_5K"
    FROM_5K_TO_15K = "FROM_5K_TO_15K"
    FROM_15K_TO_30K = "FROM_15K_TO_30K"
    ABOVE_30K = "ABOVE_30K"


class OrphanStatus(str, enum.Enum):
    BOTH_PARENTS_ALIVE = "BOTH_PARENTS_ALIVE"
    SINGLE_ORPHAN = "SINGLE_ORPHAN"
    DOUBLE_ORPHAN = "DOUBLE_ORPHAN"


class ProfileDocumentType(str, enum.Enum):
    """Reusable documents kept on the profile."""

    NATIONAL_ID = "NATIONAL_ID"
    PASSPORT = "PASSPORT"
    KCSE_CERT = "KCSE_CERT"
    ADMISSION_LETTER = "ADMISSION_LETTER"
    STUDENT_ID = "STUDENT_ID"
    TRANSCRIPT = "TRANSCRIPT"


class StudentProfile(BaseModel):
    """
    Student profile, one per user.

    Exactly one of national_id_number / passport_number is set; each is
    globally unique. is_complete is a cached result of the completeness
    evaluator and is refreshed after every profile or document change.
    """

    __tablename__ = "student_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    # Identity
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[Gender | None] = mapped_column(Enum(Gender, name="gender"), nullable=True)
    national_id_number: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    passport_number: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    age_range: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Location
    county_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("counties.id", ondelete="SET NULL"), nullable=True
    )
    sub_county_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("sub_counties.id", ondelete="SET NULL"), nullable=True
    )
    ward_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("wards.id", ondelete="SET NULL"), nullable=True
    )
    current_residence: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Institution
    institution_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("institutions.id", ondelete="SET NULL"), nullable=True
    )
    institution_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    institution_type: Mapped[EducationLevel | None] = mapped_column(
        Enum(EducationLevel, name="education_level"), nullable=True
    )
    programme_or_course: Mapped[str | None] = mapped_column(String(200), nullable=True)
    admission_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    year_of_study: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Contact
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    emergency_contact_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    emergency_contact_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Family
    who_lives_with: Mapped[WhoLivesWith | None] = mapped_column(
        Enum(WhoLivesWith, name="who_lives_with"), nullable=True
    )
    who_lives_with_other: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guardian_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guardian_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    guardian_occupation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    household_income_range: Mapped[HouseholdIncomeRange | None] = mapped_column(
        Enum(HouseholdIncomeRange, name="household_income_range"), nullable=True
    )
    number_of_dependents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    number_of_siblings: Mapped[int | None] = mapped_column(Integer, nullable=True)
    siblings_in_school: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Vulnerability and background
    orphan_status: Mapped[OrphanStatus | None] = mapped_column(
        Enum(OrphanStatus, name="orphan_status"), nullable=True
    )
    disability_status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    disability_type: Mapped[str | None] = mapped_column(String(200), nullable=True)
    kcse_grade: Mapped[str | None] = mapped_column(String(5), nullable=True)
    previous_scholarship: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    previous_scholarship_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Cached completeness
    is_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="profile", lazy="selectin")
    county: Mapped["County | None"] = relationship("County", lazy="selectin")
    sub_county: Mapped["SubCounty | None"] = relationship("SubCounty", lazy="selectin")
    ward: Mapped["Ward | None"] = relationship("Ward", lazy="selectin")
    institution: Mapped["Institution | None"] = relationship("Institution", lazy="selectin")
    documents: Mapped[list["ProfileDocument"]] = relationship(
        "ProfileDocument",
        back_populates="profile",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "(national_id_number IS NULL) <> (passport_number IS NULL)",
            name="ck_student_profiles_one_identity_document",
        ),
    )

    def __repr__(self) -> str:
        return f"<StudentProfile(id={self.id}, user_id={self.user_id}, complete={self.is_complete})>"


class ProfileDocument(BaseModel):
    """
    A reusable document on a profile.

    One row per (profile, document_type). Uploading the same type again
    updates the row in place and clears its verification.
    """

    __tablename__ = "profile_documents"

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("student_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_type: Mapped[ProfileDocumentType] = mapped_column(
        Enum(ProfileDocumentType, name="profile_document_type"), nullable=False
    )

    # File metadata (bytes live in file storage)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    stored_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)

    # Verification
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verified_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    profile: Mapped["StudentProfile"] = relationship("StudentProfile", back_populates="documents")

    __table_args__ = (
        UniqueConstraint("profile_id", "document_type", name="uq_profile_documents_profile_type"),
        Index("ix_profile_documents_profile_id", "profile_id"),
    )
