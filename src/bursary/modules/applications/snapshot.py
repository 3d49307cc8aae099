"""
Submission Snapshot

Freezes the reviewed identity, location, institution and contact values
from the profile onto the application at submission. Once written, the
snapshot columns never change, whatever happens to the profile later.
"""

from datetime import datetime

from bursary.modules.applications.models import SNAPSHOT_COLUMNS, Application, SnapshotFrozenError
from bursary.modules.profiles.models import StudentProfile
from bursary.modules.users.models import User


def _enum_value(value):
    return value.value if value is not None and hasattr(value, "value") else value


def build_snapshot(profile: StudentProfile, user: User) -> dict:
    """
    Collect snapshot values from a profile and its account.

    Location names come from the related reference rows. The profile phone
    wins over the account phone.
    """
    return {
        "snapshot_full_name": profile.full_name,
        "snapshot_date_of_birth": profile.date_of_birth,
        "snapshot_gender": _enum_value(profile.gender),
        "snapshot_national_id": profile.national_id_number,
        "snapshot_passport_number": profile.passport_number,
        "snapshot_institution": profile.institution_name,
        "snapshot_programme": profile.programme_or_course,
        "snapshot_education_level": profile.institution_type,
        "snapshot_county": profile.county.name if profile.county else None,
        "snapshot_sub_county": profile.sub_county.name if profile.sub_county else None,
        "snapshot_ward": profile.ward.name if profile.ward else None,
        "snapshot_phone": profile.phone_number or user.phone,
        "snapshot_email": user.email,
    }


def apply_snapshot(application: Application, snapshot: dict, submitted_at: datetime) -> None:
    """
    Write the snapshot and submitted_at onto an application.

    Raises:
        SnapshotFrozenError: If the application was already submitted
    """
    if application.submitted_at is not None:
        raise SnapshotFrozenError(
            f"Application {application.application_number} already has a submission snapshot"
        )

    for column in SNAPSHOT_COLUMNS:
        setattr(application, column, snapshot.get(column))
    application.submitted_at = submitted_at
