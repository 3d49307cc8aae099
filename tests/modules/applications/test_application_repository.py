"""
Unit tests for the bursary applications repository layer.

These tests focus on the lifecycle state machine and the status-change
bookkeeping applied to a locked application.
"""

from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from bursary.modules.applications.models import ApplicationStatus, ApplicationStatusHistory
from bursary.modules.applications.repository import (
    VALID_STATUS_TRANSITIONS,
    InvalidStatusTransitionError,
    apply_status_change,
    is_valid_transition,
    next_application_number,
)


class TestStatusTransitions:
    """Tests for the status transition state machine."""

    def test_draft_only_moves_to_pending(self):
        assert VALID_STATUS_TRANSITIONS[ApplicationStatus.DRAFT] == {ApplicationStatus.PENDING}

    def test_pending_must_go_through_review(self):
        valid = VALID_STATUS_TRANSITIONS[ApplicationStatus.PENDING]
        assert ApplicationStatus.UNDER_REVIEW in valid
        # Invalid transitions
        assert ApplicationStatus.APPROVED not in valid
        assert ApplicationStatus.REJECTED not in valid

    def test_under_review_decisions(self):
        assert VALID_STATUS_TRANSITIONS[ApplicationStatus.UNDER_REVIEW] == {
            ApplicationStatus.APPROVED,
            ApplicationStatus.REJECTED,
        }

    def test_only_approved_can_be_disbursed(self):
        for status, targets in VALID_STATUS_TRANSITIONS.items():
            if status == ApplicationStatus.APPROVED:
                assert ApplicationStatus.DISBURSED in targets
            else:
                assert ApplicationStatus.DISBURSED not in targets

    def test_terminal_states_have_no_transitions(self):
        assert VALID_STATUS_TRANSITIONS[ApplicationStatus.REJECTED] == set()
        assert VALID_STATUS_TRANSITIONS[ApplicationStatus.DISBURSED] == set()

    def test_nothing_returns_to_draft(self):
        for targets in VALID_STATUS_TRANSITIONS.values():
            assert ApplicationStatus.DRAFT not in targets

    def test_all_statuses_are_in_transition_map(self):
        for status in ApplicationStatus:
            assert status in VALID_STATUS_TRANSITIONS

    def test_same_status_is_not_a_transition(self):
        for status in ApplicationStatus:
            assert is_valid_transition(status, status) is False


class TestInvalidStatusTransitionError:
    """Tests for InvalidStatusTransitionError."""

    def test_error_message_lists_valid_targets(self):
        error = InvalidStatusTransitionError(ApplicationStatus.PENDING, ApplicationStatus.APPROVED)

        assert "PENDING -> APPROVED" in str(error)
        assert "UNDER_REVIEW" in str(error)
        assert error.current_status == ApplicationStatus.PENDING
        assert error.new_status == ApplicationStatus.APPROVED


class TestApplyStatusChange:
    """Tests for apply_status_change."""

    @pytest.mark.asyncio
    async def test_skipping_review_leaves_application_untouched(self, mock_db, make_application):
        application = make_application(ApplicationStatus.PENDING)

        with pytest.raises(InvalidStatusTransitionError):
            await apply_status_change(
                mock_db, application, ApplicationStatus.APPROVED, uuid4(), notes="Looks good"
            )

        assert application.status == ApplicationStatus.PENDING
        assert application.reviewed_by is None
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_decision_records_reviewer_and_history(self, mock_db, make_application):
        application = make_application(ApplicationStatus.UNDER_REVIEW)
        admin_id = uuid4()

        entry = await apply_status_change(
            mock_db, application, ApplicationStatus.APPROVED, admin_id, notes="Strong need"
        )

        assert application.status == ApplicationStatus.APPROVED
        assert application.reviewed_by == admin_id
        assert application.reviewed_at is not None
        assert application.disbursed_amount is None

        assert isinstance(entry, ApplicationStatusHistory)
        assert entry.previous_status == ApplicationStatus.UNDER_REVIEW
        assert entry.new_status == ApplicationStatus.APPROVED
        assert entry.changed_by == admin_id
        assert entry.reason == "Strong need"
        assert entry.is_auto_generated is False
        mock_db.add.assert_called_once_with(entry)
        mock_db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disbursement_records_amount(self, mock_db, make_application):
        application = make_application(ApplicationStatus.APPROVED)

        await apply_status_change(
            mock_db,
            application,
            ApplicationStatus.DISBURSED,
            uuid4(),
            notes="Paid to institution",
            disbursed_amount=Decimal("25000.00"),
        )

        assert application.status == ApplicationStatus.DISBURSED
        assert application.disbursed_amount == Decimal("25000.00")
        assert application.disbursed_at is not None
        assert application.disbursement_notes == "Paid to institution"


class TestNextApplicationNumber:
    """Tests for next_application_number."""

    @pytest.mark.asyncio
    async def test_formats_sequence_value(self, mock_db):
        mock_db.scalar = AsyncMock(return_value=42)

        number = await next_application_number(mock_db, "BUR", 2026)

        assert number == "BUR-2026-00042"
