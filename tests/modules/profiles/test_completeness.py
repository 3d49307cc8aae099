"""
Unit tests for the profile completeness evaluator.
"""

from bursary.modules.profiles.completeness import (
    IDENTIFICATION_LABEL,
    PROFILE_MISSING_LABEL,
    REQUIRED_DOCUMENT_TYPES,
    evaluate,
)
from bursary.modules.profiles.models import ProfileDocumentType


class TestEvaluate:
    """Tests for evaluate()."""

    def test_complete_profile_scores_full_marks(self, complete_profile, required_documents):
        result = evaluate(complete_profile, required_documents)

        assert result.is_complete is True
        assert result.percentage == 100
        assert result.missing_fields == []
        assert result.missing_documents == []
        assert result.uploaded_documents == [
            ProfileDocumentType.NATIONAL_ID,
            ProfileDocumentType.ADMISSION_LETTER,
        ]

    def test_missing_field_and_document_gives_fractional_credit(
        self, complete_profile, required_documents
    ):
        """14 of 16 requirements met rounds to 88%."""
        complete_profile.emergency_contact_phone = None

        result = evaluate(complete_profile, required_documents[:1])

        assert result.is_complete is False
        assert result.percentage == 88
        assert result.missing_fields == ["Emergency Contact Phone"]
        assert result.missing_documents == [ProfileDocumentType.ADMISSION_LETTER]

    def test_no_profile_scores_zero(self):
        result = evaluate(None)

        assert result.is_complete is False
        assert result.percentage == 0
        assert result.missing_fields == [PROFILE_MISSING_LABEL]
        assert result.missing_documents == list(REQUIRED_DOCUMENT_TYPES)
        assert result.uploaded_documents == []

    def test_passport_satisfies_identification(self, complete_profile, required_documents):
        complete_profile.national_id_number = None
        complete_profile.passport_number = "AK123456"

        result = evaluate(complete_profile, required_documents)

        assert IDENTIFICATION_LABEL not in result.missing_fields
        assert result.is_complete is True

    def test_missing_identification_is_reported(self, complete_profile, required_documents):
        complete_profile.national_id_number = None
        complete_profile.passport_number = None

        result = evaluate(complete_profile, required_documents)

        assert result.missing_fields == [IDENTIFICATION_LABEL]
        assert result.is_complete is False

    def test_whitespace_only_value_counts_as_missing(self, complete_profile, required_documents):
        complete_profile.institution_name = "   "

        result = evaluate(complete_profile, required_documents)

        assert "Institution Name" in result.missing_fields

    def test_accepts_bare_document_types(self, complete_profile):
        result = evaluate(
            complete_profile,
            [
                ProfileDocumentType.NATIONAL_ID,
                ProfileDocumentType.ADMISSION_LETTER,
                ProfileDocumentType.NATIONAL_ID,
            ],
        )

        assert result.is_complete is True
        assert result.uploaded_documents == [
            ProfileDocumentType.NATIONAL_ID,
            ProfileDocumentType.ADMISSION_LETTER,
        ]

    def test_does_not_mutate_profile(self, complete_profile):
        complete_profile.is_complete = True

        evaluate(complete_profile, [])

        assert complete_profile.is_complete is True
