"""
Shared fixtures for bursary portal tests.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from bursary.modules.applications.models import Application, ApplicationStatus
from bursary.modules.periods.models import ApplicationPeriod
from bursary.modules.profiles.models import (
    EducationLevel,
    Gender,
    ProfileDocument,
    ProfileDocumentType,
    StudentProfile,
)
from bursary.modules.reference.models import County  # noqa: F401 - needed for relationship resolution
from bursary.modules.users.models import User


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def sample_user():
    user = MagicMock(spec=User)
    user.id = uuid4()
    user.email = "wanjiku@student.test"
    user.phone = "0711000000"
    user.first_name = "Wanjiku"
    user.last_name = "Kamau"
    return user


@pytest.fixture
def complete_profile(sample_user):
    """A profile with every required field filled in."""
    profile = MagicMock(spec=StudentProfile)
    profile.id = uuid4()
    profile.user_id = sample_user.id
    profile.user = sample_user
    profile.full_name = "Wanjiku Kamau"
    profile.date_of_birth = date(2004, 5, 17)
    profile.gender = Gender.FEMALE
    profile.national_id_number = "12345678"
    profile.passport_number = None
    profile.county_id = uuid4()
    profile.sub_county_id = uuid4()
    profile.ward_id = uuid4()
    profile.county = MagicMock(name="county")
    profile.county.name = "Kisumu"
    profile.sub_county = MagicMock(name="sub_county")
    profile.sub_county.name = "Kisumu Central"
    profile.ward = MagicMock(name="ward")
    profile.ward.name = "Kondele"
    profile.institution_name = "Maseno University"
    profile.institution_type = EducationLevel.UNIVERSITY
    profile.programme_or_course = "BSc Nursing"
    profile.admission_year = 2023
    profile.phone_number = "0722000000"
    profile.emergency_contact_name = "Akinyi Otieno"
    profile.emergency_contact_phone = "0733000000"
    profile.is_complete = True
    return profile


def _document(document_type: ProfileDocumentType, profile_id=None):
    doc = MagicMock(spec=ProfileDocument)
    doc.id = uuid4()
    doc.profile_id = profile_id or uuid4()
    doc.document_type = document_type
    return doc


@pytest.fixture
def required_documents(complete_profile):
    """The documents a profile needs to be complete."""
    return [
        _document(ProfileDocumentType.NATIONAL_ID, complete_profile.id),
        _document(ProfileDocumentType.ADMISSION_LETTER, complete_profile.id),
    ]


@pytest.fixture
def make_application(complete_profile):
    """Factory for application mocks in a given status."""

    def _make(status: ApplicationStatus = ApplicationStatus.DRAFT, **overrides):
        app = MagicMock(spec=Application)
        app.id = uuid4()
        app.student_profile_id = complete_profile.id
        app.profile = complete_profile
        app.application_number = "BUR-2026-00042"
        app.status = status
        app.outstanding_fees_balance = Decimal("45000.00")
        app.submitted_at = None if status == ApplicationStatus.DRAFT else datetime.now(UTC)
        app.snapshot_email = None
        app.snapshot_full_name = None
        app.reviewed_at = None
        app.reviewed_by = None
        app.disbursed_amount = None
        app.disbursed_at = None
        app.disbursement_notes = None
        for key, value in overrides.items():
            setattr(app, key, value)
        return app

    return _make


@pytest.fixture
def active_period():
    period = MagicMock(spec=ApplicationPeriod)
    period.id = uuid4()
    period.title = "2026 Bursary Intake"
    period.academic_year = "2025/26"
    period.start_date = datetime(2026, 1, 1, tzinfo=UTC)
    period.end_date = datetime(2026, 12, 31, tzinfo=UTC)
    period.is_active = True
    return period
