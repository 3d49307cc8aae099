"""
Student Profile Schemas

Pydantic schemas for profile requests, document uploads, completeness and
eligibility responses.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bursary.modules.applications.models import ApplicationStatus
from bursary.modules.profiles.helpers import NATIONAL_ID_PATTERN, is_valid_phone, normalize_phone
from bursary.modules.profiles.models import (
    EducationLevel,
    Gender,
    HouseholdIncomeRange,
    OrphanStatus,
    ProfileDocumentType,
    WhoLivesWith,
)


def _max_admission_year() -> int:
    return datetime.now().year + 1


class _ProfileFields(BaseModel):
    """Fields shared by create and update. Everything optional here."""

    full_name: str | None = Field(None, min_length=2, max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None
    national_id_number: str | None = None
    passport_number: str | None = Field(None, min_length=6, max_length=20)

    # Location
    county_id: UUID | None = None
    sub_county_id: UUID | None = None
    ward_id: UUID | None = None
    current_residence: str | None = Field(None, max_length=200)

    # Institution
    institution_id: UUID | None = None
    institution_name: str | None = Field(None, min_length=2, max_length=200)
    institution_type: EducationLevel | None = None
    programme_or_course: str | None = Field(None, min_length=2, max_length=200)
    admission_year: int | None = Field(None, ge=2000)
    year_of_study: int | None = Field(None, ge=1, le=10)

    # Family & guardian
    who_lives_with: WhoLivesWith | None = None
    who_lives_with_other: str | None = Field(None, max_length=200)
    guardian_name: str | None = Field(None, max_length=100)
    guardian_phone: str | None = Field(None, max_length=20)
    guardian_occupation: str | None = Field(None, max_length=100)
    household_income_range: HouseholdIncomeRange | None = None
    number_of_dependents: int | None = Field(None, ge=0, le=50)
    number_of_siblings: int | None = Field(None, ge=0, le=30)
    siblings_in_school: int | None = Field(None, ge=0, le=30)

    # Contact
    phone_number: str | None = Field(None, max_length=20)
    emergency_contact_name: str | None = Field(None, max_length=100)
    emergency_contact_phone: str | None = Field(None, max_length=20)

    # Vulnerability & background
    orphan_status: OrphanStatus | None = None
    disability_status: bool | None = None
    disability_type: str | None = Field(None, max_length=200)
    kcse_grade: str | None = Field(None, max_length=5)
    previous_scholarship: bool | None = None
    previous_scholarship_details: str | None = Field(None, max_length=500)

    @field_validator("passport_number", "national_id_number", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("national_id_number")
    @classmethod
    def validate_national_id(cls, v: str | None) -> str | None:
        if v is not None and not NATIONAL_ID_PATTERN.match(v):
            raise ValueError("National ID must be exactly 8 digits")
        return v

    @field_validator("phone_number", "emergency_contact_phone", "guardian_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not is_valid_phone(v):
            raise ValueError("Invalid Kenyan phone number format. Use 07XXXXXXXX or 01XXXXXXXX")
        return normalize_phone(v)

    @field_validator("admission_year")
    @classmethod
    def validate_admission_year(cls, v: int | None) -> int | None:
        if v is not None and v > _max_admission_year():
            raise ValueError(f"admission_year cannot be later than {_max_admission_year()}")
        return v

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: date | None) -> date | None:
        if v is not None and v >= date.today():
            raise ValueError("date_of_birth must be in the past")
        return v


class ProfileCreate(_ProfileFields):
    """Request body for POST /student/profile."""

    full_name: str = Field(..., min_length=2, max_length=100)
    date_of_birth: date
    gender: Gender
    county_id: UUID
    sub_county_id: UUID
    ward_id: UUID
    institution_name: str = Field(..., min_length=2, max_length=200)
    institution_type: EducationLevel
    programme_or_course: str = Field(..., min_length=2, max_length=200)
    admission_year: int = Field(..., ge=2000)

    @model_validator(mode="after")
    def validate_identity_document(self) -> "ProfileCreate":
        """Exactly one of national ID and passport."""
        if bool(self.national_id_number) == bool(self.passport_number):
            raise ValueError("Provide exactly one of national_id_number or passport_number")
        return self


class ProfileUpdate(_ProfileFields):
    """
    Request body for PUT /student/profile.

    Only fields present in the body are changed. The one-identity rule is
    checked against the merged profile by the service.
    """

    @model_validator(mode="after")
    def validate_full_name_not_cleared(self) -> "ProfileUpdate":
        if "full_name" in self.model_fields_set and self.full_name is None:
            raise ValueError("full_name cannot be cleared")
        return self


class ProfileDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_type: ProfileDocumentType
    original_filename: str
    file_size: int
    mime_type: str
    is_verified: bool
    verified_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ProfileResponse(BaseModel):
    """A student profile with its documents."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    full_name: str
    date_of_birth: date | None = None
    age_range: str | None = None
    gender: Gender | None = None
    national_id_number: str | None = None
    passport_number: str | None = None

    county_id: UUID | None = None
    sub_county_id: UUID | None = None
    ward_id: UUID | None = None
    current_residence: str | None = None

    institution_id: UUID | None = None
    institution_name: str | None = None
    institution_type: EducationLevel | None = None
    programme_or_course: str | None = None
    admission_year: int | None = None
    year_of_study: int | None = None

    who_lives_with: WhoLivesWith | None = None
    who_lives_with_other: str | None = None
    guardian_name: str | None = None
    guardian_phone: str | None = None
    guardian_occupation: str | None = None
    household_income_range: HouseholdIncomeRange | None = None
    number_of_dependents: int | None = None
    number_of_siblings: int | None = None
    siblings_in_school: int | None = None

    phone_number: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None

    orphan_status: OrphanStatus | None = None
    disability_status: bool = False
    disability_type: str | None = None
    kcse_grade: str | None = None
    previous_scholarship: bool = False
    previous_scholarship_details: str | None = None

    is_complete: bool
    documents: list[ProfileDocumentResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class CompletenessResponse(BaseModel):
    """Response for GET /student/profile/completeness."""

    model_config = ConfigDict(from_attributes=True)

    is_complete: bool
    percentage: int = Field(..., ge=0, le=100)
    missing_fields: list[str]
    missing_documents: list[ProfileDocumentType]
    required_documents: list[ProfileDocumentType]
    uploaded_documents: list[ProfileDocumentType]


class EligibilityResponse(BaseModel):
    """Response for GET /student/applications/eligibility."""

    model_config = ConfigDict(from_attributes=True)

    can_apply: bool
    reason: str
    profile_completeness: int = Field(..., ge=0, le=100)
    missing_fields: list[str] = Field(default_factory=list)
    has_active_application: bool = False
    active_application_id: UUID | None = None
    active_application_status: ApplicationStatus | None = None
