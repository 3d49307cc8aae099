"""
Bursary Applications Schemas

Pydantic schemas for student draft/submission requests, admin review
actions, and response serialization.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bursary.modules.applications.helpers import (
    MAX_FEE_BALANCE,
    MAX_HARDSHIP_WORDS,
    MIN_FEE_BALANCE,
    MIN_HARDSHIP_WORDS,
    count_words,
)
from bursary.modules.applications.models import (
    ApplicationDocumentType,
    ApplicationStatus,
    NoteSection,
)
from bursary.modules.profiles.models import EducationLevel, ProfileDocumentType
from bursary.modules.profiles.schemas import ProfileDocumentResponse, ProfileResponse

# Required on DraftCreate or NOT NULL in the table; a draft update may change but not clear them
DRAFT_NON_CLEARABLE_FIELDS = (
    "outstanding_fees_balance",
    "hardship_narrative",
    "current_year_of_study",
    "mode_of_sponsorship",
    "applied_to_other_scholarships",
)

# ============================================
# Student Request Schemas
# ============================================


class _DraftFields(BaseModel):
    """Working fields of a draft. Everything optional here."""

    outstanding_fees_balance: Decimal | None = Field(None, gt=0, decimal_places=2)
    total_annual_fee_amount: Decimal | None = Field(None, gt=0, decimal_places=2)
    hardship_narrative: str | None = Field(None, min_length=10)
    current_year_of_study: str | None = Field(None, min_length=1, max_length=50)
    current_fee_situation: str | None = Field(None, max_length=100)
    mode_of_sponsorship: list[str] | None = Field(None, min_length=1)
    how_supporting_education: list[str] | None = None
    difficulties_faced: list[str] | None = None
    is_fees_affecting_studies: bool | None = None
    has_been_sent_home: bool | None = None
    has_missed_exams_or_classes: bool | None = None
    goal_for_academic_year: str | None = Field(None, max_length=1000)
    referral_source: str | None = Field(None, max_length=100)
    career_aspirations: str | None = Field(None, max_length=2000)
    community_involvement: str | None = Field(None, max_length=2000)
    giving_back_plan: str | None = Field(None, max_length=2000)
    applied_to_other_scholarships: bool | None = None
    other_scholarships_details: str | None = Field(None, max_length=500)

    @field_validator("outstanding_fees_balance")
    @classmethod
    def validate_fee_balance(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and not (MIN_FEE_BALANCE <= v <= MAX_FEE_BALANCE):
            raise ValueError("Fee balance must be between 1,000 and 10,000,000 KES")
        return v

    @field_validator("hardship_narrative")
    @classmethod
    def validate_hardship_narrative(cls, v: str | None) -> str | None:
        if v is None:
            return v
        words = count_words(v)
        if not (MIN_HARDSHIP_WORDS <= words <= MAX_HARDSHIP_WORDS):
            raise ValueError(
                f"Hardship narrative must be between {MIN_HARDSHIP_WORDS} and "
                f"{MAX_HARDSHIP_WORDS} words (got {words})"
            )
        return v.strip()


class DraftCreate(_DraftFields):
    """Request body for POST /student/applications/draft."""

    outstanding_fees_balance: Decimal = Field(..., gt=0, decimal_places=2)
    hardship_narrative: str = Field(..., min_length=10)
    current_year_of_study: str = Field(..., min_length=1, max_length=50)
    mode_of_sponsorship: list[str] = Field(..., min_length=1)


class DraftUpdate(_DraftFields):
    """Request body for PUT /student/applications/{id}. Only sent fields change."""

    @model_validator(mode="after")
    def validate_required_not_cleared(self) -> "DraftUpdate":
        cleared = sorted(
            name
            for name in DRAFT_NON_CLEARABLE_FIELDS
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"These fields cannot be cleared: {', '.join(cleared)}")
        return self


class LinkProfileDocumentRequest(BaseModel):
    profile_document_id: UUID


# ============================================
# Admin Request Schemas
# ============================================


class StatusUpdateRequest(BaseModel):
    """Request body for PUT /admin/applications/{id}/status."""

    status: ApplicationStatus
    notes: str | None = Field(None, max_length=2000)
    disbursed_amount: Decimal | None = Field(None, gt=0, decimal_places=2)


class BulkStatusUpdateRequest(BaseModel):
    """Request body for POST /admin/applications/bulk-update."""

    application_ids: list[UUID] = Field(..., min_length=1, max_length=100)
    status: ApplicationStatus
    notes: str | None = Field(None, max_length=2000)
    disbursed_amount: Decimal | None = Field(None, gt=0, decimal_places=2)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "BulkStatusUpdateRequest":
        if len(set(self.application_ids)) != len(self.application_ids):
            raise ValueError("application_ids must not contain duplicates")
        return self


class ScoreRequest(BaseModel):
    """Request body for POST /admin/applications/{id}/scores."""

    financial_need: int = Field(..., ge=1, le=5)
    academic_merit: int = Field(..., ge=1, le=5)
    community_impact: int = Field(..., ge=1, le=5)
    vulnerability: int = Field(..., ge=1, le=5)
    comments: str | None = Field(None, max_length=2000)


class NoteCreateRequest(BaseModel):
    note_text: str = Field(..., min_length=1, max_length=5000)
    section: NoteSection = NoteSection.GENERAL
    is_private: bool = True


class NoteUpdateRequest(BaseModel):
    note_text: str | None = Field(None, min_length=1, max_length=5000)
    section: NoteSection | None = None
    is_private: bool | None = None


# ============================================
# Response Schemas
# ============================================


class ApplicationDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_type: ApplicationDocumentType
    description: str | None = None
    original_filename: str
    file_size: int
    mime_type: str
    created_at: datetime


class LinkedProfileDocument(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_type: ProfileDocumentType
    original_filename: str
    is_verified: bool


class ProfileDocumentLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    profile_document_id: UUID
    linked_at: datetime
    profile_document: LinkedProfileDocument | None = None


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    previous_status: ApplicationStatus | None = None
    new_status: ApplicationStatus
    changed_by: UUID
    changed_at: datetime
    reason: str | None = None
    is_auto_generated: bool


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    admin_id: UUID
    note_text: str
    section: NoteSection
    is_private: bool
    created_at: datetime
    updated_at: datetime


class ScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    reviewer_id: UUID
    financial_need: int
    academic_merit: int
    community_impact: int
    vulnerability: int
    overall_score: Decimal
    comments: str | None = None
    created_at: datetime
    updated_at: datetime


class ScoresSummaryResponse(BaseModel):
    scores: list[ScoreResponse]
    average_score: Decimal | None = None
    total_reviewers: int = Field(..., ge=0)


class RubricCriterion(BaseModel):
    key: str
    name: str
    description: str
    weight: float
    min_score: int = 1
    max_score: int = 5


class ScoringRubricResponse(BaseModel):
    criteria: list[RubricCriterion]


class ApplicationResponse(BaseModel):
    """Full application as seen by its owner."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_number: str
    status: ApplicationStatus
    student_profile_id: UUID
    application_period_id: UUID | None = None

    outstanding_fees_balance: Decimal | None = None
    total_annual_fee_amount: Decimal | None = None
    hardship_narrative: str | None = None
    current_year_of_study: str | None = None
    current_fee_situation: str | None = None
    mode_of_sponsorship: list[str] | None = None
    how_supporting_education: list[str] | None = None
    difficulties_faced: list[str] | None = None
    is_fees_affecting_studies: bool | None = None
    has_been_sent_home: bool | None = None
    has_missed_exams_or_classes: bool | None = None
    goal_for_academic_year: str | None = None
    referral_source: str | None = None
    career_aspirations: str | None = None
    community_involvement: str | None = None
    giving_back_plan: str | None = None
    applied_to_other_scholarships: bool = False
    other_scholarships_details: str | None = None

    snapshot_full_name: str | None = None
    snapshot_date_of_birth: date | None = None
    snapshot_gender: str | None = None
    snapshot_national_id: str | None = None
    snapshot_passport_number: str | None = None
    snapshot_institution: str | None = None
    snapshot_programme: str | None = None
    snapshot_education_level: EducationLevel | None = None
    snapshot_county: str | None = None
    snapshot_sub_county: str | None = None
    snapshot_ward: str | None = None
    snapshot_phone: str | None = None
    snapshot_email: str | None = None
    submitted_at: datetime | None = None

    reviewed_at: datetime | None = None
    disbursed_amount: Decimal | None = None
    disbursed_at: datetime | None = None

    documents: list[ApplicationDocumentResponse] = Field(default_factory=list)
    profile_document_links: list[ProfileDocumentLinkResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class StudentApplicationDetailResponse(ApplicationResponse):
    """Owner's view including non-private reviewer notes."""

    notes: list[NoteResponse] = Field(default_factory=list)


class ApplicationListItem(BaseModel):
    """Application summary for list views."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_number: str
    status: ApplicationStatus
    snapshot_full_name: str | None = None
    snapshot_institution: str | None = None
    snapshot_education_level: EducationLevel | None = None
    snapshot_county: str | None = None
    outstanding_fees_balance: Decimal | None = None
    submitted_at: datetime | None = None
    reviewed_at: datetime | None = None
    created_at: datetime


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationListItem]
    total: int = Field(..., ge=0)
    skip: int = Field(..., ge=0)
    limit: int = Field(..., ge=1, le=100)


class AdminApplicationDetailResponse(ApplicationResponse):
    """Everything a reviewer needs on one page."""

    reviewed_by: UUID | None = None
    disbursement_notes: str | None = None
    history: list[StatusHistoryResponse] = Field(default_factory=list)
    scores: ScoresSummaryResponse | None = None
    notes: list[NoteResponse] = Field(default_factory=list)


class DashboardStats(BaseModel):
    by_status: dict[str, int]
    total: int = Field(..., ge=0)
    total_disbursed: Decimal
    average_fee_balance: Decimal | None = None
    avg_days_to_decision: float | None = None


class BulkUpdateError(BaseModel):
    application_id: UUID
    error: str


class BulkUpdateResponse(BaseModel):
    success: bool
    updated: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    errors: list[BulkUpdateError] = Field(default_factory=list)


# ============================================
# Analytics
# ============================================


class MonthlyCount(BaseModel):
    period: str = Field(..., description="Calendar month, YYYY-MM")
    count: int = Field(..., ge=0)


class AnalyticsSummary(DashboardStats):
    applications_trend: list[MonthlyCount] = Field(default_factory=list)


class CountyAnalytics(BaseModel):
    county: str
    total: int = Field(..., ge=0)
    pending: int = Field(..., ge=0)
    under_review: int = Field(..., ge=0)
    approved: int = Field(..., ge=0)
    rejected: int = Field(..., ge=0)
    disbursed: int = Field(..., ge=0)
    disbursed_amount: Decimal


class InstitutionAnalytics(BaseModel):
    institution: str
    education_level: EducationLevel | None = None
    total: int = Field(..., ge=0)
    approved: int = Field(..., ge=0)
    disbursed_amount: Decimal


class DisbursementMonth(BaseModel):
    month: str
    amount: Decimal
    count: int = Field(..., ge=0)


class DisbursementLevel(BaseModel):
    amount: Decimal
    count: int = Field(..., ge=0)


class DisbursementAnalytics(BaseModel):
    total_disbursed: Decimal
    total_beneficiaries: int = Field(..., ge=0)
    average_disbursement: Decimal | None = None
    by_month: list[DisbursementMonth]
    by_education_level: dict[str, DisbursementLevel]


class GenderAnalytics(BaseModel):
    gender: str | None = None
    total: int = Field(..., ge=0)
    approved: int = Field(..., ge=0)
    rejected: int = Field(..., ge=0)


class FunnelStage(BaseModel):
    stage: str
    count: int = Field(..., ge=0)
    percentage: int = Field(..., ge=0, le=100)


class FunnelAnalytics(BaseModel):
    stages: list[FunnelStage]


class DecisionTime(BaseModel):
    """Days from submission until applications reached a status."""

    status: ApplicationStatus
    transitions: int = Field(..., ge=0)
    average_days: float
    median_days: float
    min_days: float
    max_days: float


class TimeToDecisionAnalytics(BaseModel):
    milestones: list[DecisionTime]


class CategoryCount(BaseModel):
    value: str | bool | None = None
    count: int = Field(..., ge=0)


class DemographicsAnalytics(BaseModel):
    orphan_status: list[CategoryCount]
    disability: list[CategoryCount]
    household_income: list[CategoryCount]
    age_range: list[CategoryCount]


# ============================================
# Student Lookup
# ============================================


class StudentSearchItem(BaseModel):
    id: UUID
    full_name: str
    national_id_number: str | None = None
    passport_number: str | None = None
    institution_name: str | None = None
    institution_type: EducationLevel | None = None
    email: str | None = None
    phone: str | None = None
    is_complete: bool
    application_count: int = Field(..., ge=0)


class StudentSearchResponse(BaseModel):
    students: list[StudentSearchItem]
    total: int = Field(..., ge=0)
    skip: int = Field(..., ge=0)
    limit: int = Field(..., ge=1, le=100)


class StudentOverviewResponse(BaseModel):
    """A student's profile, account contact details and application record."""

    profile: ProfileResponse
    email: str | None = None
    phone: str | None = None
    account_active: bool | None = None
    registered_at: datetime | None = None
    application_stats: dict[str, int]
    applications: list[ApplicationListItem]


class StudentApplicationDocument(ApplicationDocumentResponse):
    application_id: UUID
    application_number: str
    application_status: ApplicationStatus


class StudentDocumentsResponse(BaseModel):
    profile_documents: list[ProfileDocumentResponse]
    application_documents: list[StudentApplicationDocument]


class TimelineEvent(BaseModel):
    type: str
    timestamp: datetime
    description: str
    application_id: UUID | None = None
    reason: str | None = None
