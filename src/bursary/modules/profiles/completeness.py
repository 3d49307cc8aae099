"""
Profile Completeness Evaluator

Decides whether a profile and its documents meet the prerequisites for
applying. Pure: no database access, no mutation. Callers persist the
resulting is_complete flag themselves.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from bursary.modules.profiles.models import ProfileDocumentType

# Ordered (attribute, label) pairs; labels are what students see
REQUIRED_PROFILE_FIELDS: tuple[tuple[str, str], ...] = (
    ("full_name", "Full Name"),
    ("date_of_birth", "Date of Birth"),
    ("gender", "Gender"),
    ("county_id", "County"),
    ("sub_county_id", "Sub-County"),
    ("ward_id", "Ward"),
    ("institution_name", "Institution Name"),
    ("institution_type", "Education Level"),
    ("programme_or_course", "Programme/Course"),
    ("admission_year", "Admission Year"),
    ("phone_number", "Phone Number"),
    ("emergency_contact_name", "Emergency Contact Name"),
    ("emergency_contact_phone", "Emergency Contact Phone"),
)

IDENTIFICATION_LABEL = "National ID or Passport"

REQUIRED_DOCUMENT_TYPES: tuple[ProfileDocumentType, ...] = (
    ProfileDocumentType.NATIONAL_ID,
    ProfileDocumentType.ADMISSION_LETTER,
)

PROFILE_MISSING_LABEL = "Profile not created"


@dataclass
class CompletenessResult:
    is_complete: bool
    percentage: int
    missing_fields: list[str] = field(default_factory=list)
    missing_documents: list[ProfileDocumentType] = field(default_factory=list)
    required_documents: list[ProfileDocumentType] = field(default_factory=list)
    uploaded_documents: list[ProfileDocumentType] = field(default_factory=list)


def _is_present(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def _document_types(documents: Iterable[object]) -> list[ProfileDocumentType]:
    types: list[ProfileDocumentType] = []
    for doc in documents:
        doc_type = doc if isinstance(doc, ProfileDocumentType) else doc.document_type
        if doc_type not in types:
            types.append(doc_type)
    return types


def evaluate(profile: object | None, documents: Iterable[object] = ()) -> CompletenessResult:
    """
    Evaluate profile completeness.

    Args:
        profile: A StudentProfile (or any object with the same attributes), or None
        documents: ProfileDocument rows or bare ProfileDocumentType values

    Returns:
        CompletenessResult; percentage is satisfied / total requirements,
        rounded to the nearest integer
    """
    required_documents = list(REQUIRED_DOCUMENT_TYPES)

    if profile is None:
        return CompletenessResult(
            is_complete=False,
            percentage=0,
            missing_fields=[PROFILE_MISSING_LABEL],
            missing_documents=required_documents,
            required_documents=required_documents,
            uploaded_documents=[],
        )

    missing_fields = [
        label for attr, label in REQUIRED_PROFILE_FIELDS if not _is_present(getattr(profile, attr, None))
    ]

    has_identification = _is_present(getattr(profile, "national_id_number", None)) or _is_present(
        getattr(profile, "passport_number", None)
    )
    if not has_identification:
        missing_fields.append(IDENTIFICATION_LABEL)

    uploaded = _document_types(documents)
    missing_documents = [t for t in required_documents if t not in uploaded]

    total = len(REQUIRED_PROFILE_FIELDS) + 1 + len(required_documents)
    satisfied = total - len(missing_fields) - len(missing_documents)
    # half-up rounding
    percentage = int(satisfied * 100 / total + 0.5)

    return CompletenessResult(
        is_complete=not missing_fields and not missing_documents,
        percentage=percentage,
        missing_fields=missing_fields,
        missing_documents=missing_documents,
        required_documents=required_documents,
        uploaded_documents=uploaded,
    )
