"""
Unit tests for bursary application helpers and draft schemas.
"""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from bursary.modules.applications.helpers import (
    compute_overall_score,
    count_words,
    format_application_number,
    percentage,
    start_of_month,
)
from bursary.modules.applications.schemas import BulkStatusUpdateRequest, DraftCreate, ScoreRequest


def _narrative(words: int) -> str:
    return " ".join(["hardship"] * words)


class TestHelpers:
    """Tests for the pure helper functions."""

    def test_count_words(self):
        assert count_words(None) == 0
        assert count_words("  fees   are due\nnow ") == 4

    def test_application_number_is_zero_padded(self):
        assert format_application_number("BUR", 2026, 7) == "BUR-2026-00007"
        assert format_application_number("BUR", 2026, 123456) == "BUR-2026-123456"

    def test_overall_score_is_mean_to_two_places(self):
        assert compute_overall_score(4, 3, 5, 4) == Decimal("4.00")
        assert compute_overall_score(5, 4, 4, 4) == Decimal("4.25")
        assert compute_overall_score(1, 2, 2, 2) == Decimal("1.75")

    def test_start_of_month_crosses_year_boundary(self):
        moment = datetime(2026, 3, 15, 9, 30, tzinfo=UTC)

        assert start_of_month(moment) == datetime(2026, 3, 1, tzinfo=UTC)
        assert start_of_month(moment, 5) == datetime(2025, 10, 1, tzinfo=UTC)
        assert start_of_month(moment, 15) == datetime(2024, 12, 1, tzinfo=UTC)

    def test_percentage_rounds_half_up(self):
        assert percentage(1, 8) == 13
        assert percentage(1, 3) == 33
        assert percentage(5, 0) == 0


class TestDraftCreate:
    """Tests for DraftCreate validation."""

    def _payload(self, **overrides) -> dict:
        payload = {
            "outstanding_fees_balance": "45000",
            "hardship_narrative": _narrative(60),
            "current_year_of_study": "Year 2",
            "mode_of_sponsorship": ["SELF", "GUARDIAN"],
        }
        payload.update(overrides)
        return payload

    def test_valid_draft(self):
        draft = DraftCreate(**self._payload())
        assert draft.outstanding_fees_balance == Decimal("45000")

    def test_narrative_word_limits(self):
        DraftCreate(**self._payload(hardship_narrative=_narrative(50)))
        DraftCreate(**self._payload(hardship_narrative=_narrative(120)))
        with pytest.raises(ValidationError):
            DraftCreate(**self._payload(hardship_narrative=_narrative(49)))
        with pytest.raises(ValidationError):
            DraftCreate(**self._payload(hardship_narrative=_narrative(121)))

    def test_fee_balance_range(self):
        with pytest.raises(ValidationError):
            DraftCreate(**self._payload(outstanding_fees_balance="999"))
        with pytest.raises(ValidationError):
            DraftCreate(**self._payload(outstanding_fees_balance="10000001"))


class TestReviewerSchemas:
    """Tests for reviewer request schemas."""

    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            ScoreRequest(financial_need=6, academic_merit=3, community_impact=3, vulnerability=3)
        with pytest.raises(ValidationError):
            ScoreRequest(financial_need=0, academic_merit=3, community_impact=3, vulnerability=3)

    def test_bulk_rejects_duplicate_ids(self):
        application_id = uuid4()
        with pytest.raises(ValidationError):
            BulkStatusUpdateRequest(
                application_ids=[application_id, application_id], status="UNDER_REVIEW"
            )
