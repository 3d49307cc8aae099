"""
Application Period Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

ACADEMIC_YEAR_PATTERN = r"^\d{4}/\d{2}$"


class PeriodCreate(BaseModel):
    """Request body for POST /admin/periods."""

    title: str = Field(..., min_length=3, max_length=100)
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN, examples=["2025/26"])
    start_date: datetime
    end_date: datetime
    description: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def validate_dates(self) -> "PeriodCreate":
        if self.start_date >= self.end_date:
            raise ValueError("Start date must be before end date")
        return self


class PeriodUpdate(BaseModel):
    """Request body for PUT /admin/periods/{id}. Date order is checked on the merged result."""

    title: str | None = Field(None, min_length=3, max_length=100)
    academic_year: str | None = Field(None, pattern=ACADEMIC_YEAR_PATTERN)
    start_date: datetime | None = None
    end_date: datetime | None = None
    description: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def validate_required_not_cleared(self) -> "PeriodUpdate":
        cleared = sorted(
            name
            for name in ("title", "academic_year", "start_date", "end_date")
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"These fields cannot be cleared: {', '.join(cleared)}")
        return self


class PeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    academic_year: str
    start_date: datetime
    end_date: datetime
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PeriodDeleteResponse(BaseModel):
    id: UUID
    message: str


class ActivePeriodSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    start_date: datetime
    end_date: datetime


class PortalConfigResponse(BaseModel):
    """Public portal configuration for the student frontend."""

    academic_year: str
    application_window_open: bool
    application_deadline: datetime | None = None
    organization_name: str
    support_email: str
    max_file_size: int
    allowed_file_types: list[str]
    active_period: ActivePeriodSummary | None = None
