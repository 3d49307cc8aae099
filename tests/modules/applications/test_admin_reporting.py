"""
Unit tests for admin reporting, export and student lookup.

These tests cover:
- The lifecycle funnel and its percentages
- Time-to-decision milestones built from the status ledger
- Analytics summary trend window
- CSV export content and filter validation
- Student search, overview and timeline
"""

import csv
import io
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from bursary.core.errors import ValidationFailedError
from bursary.modules.applications.admin_service import (
    EXPORT_COLUMNS,
    StudentProfileNotFoundError,
    build_export_csv,
    export_applications,
    get_analytics_summary,
    get_demographics_analytics,
    get_funnel_analytics,
    get_gender_analytics,
    get_student_overview,
    get_student_timeline,
    get_time_to_decision_analytics,
    search_students,
)
from bursary.modules.applications.models import (
    AdminNote,
    ApplicationStatus,
    ApplicationStatusHistory,
    NoteSection,
)
from bursary.modules.profiles.models import (
    EducationLevel,
    Gender,
    HouseholdIncomeRange,
    OrphanStatus,
    WhoLivesWith,
)

MODULE = "bursary.modules.applications.admin_service"


def _counts(**overrides) -> dict[str, int]:
    counts = {s.value: 0 for s in ApplicationStatus}
    counts.update(overrides)
    return counts


def _history(application_id, previous, new, changed_at, auto=False, reason=None):
    entry = MagicMock(spec=ApplicationStatusHistory)
    entry.id = uuid4()
    entry.application_id = application_id
    entry.previous_status = previous
    entry.new_status = new
    entry.changed_at = changed_at
    entry.is_auto_generated = auto
    entry.reason = reason
    return entry


class TestFunnel:
    """Tests for get_funnel_analytics."""

    @pytest.mark.asyncio
    async def test_stages_count_everything_that_got_that_far(self, mock_db):
        counts = _counts(
            DRAFT=20, PENDING=30, UNDER_REVIEW=10, APPROVED=15, REJECTED=15, DISBURSED=10
        )
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.count_by_status = AsyncMock(return_value=counts)

            result = await get_funnel_analytics(mock_db)

        stages = {s["stage"]: (s["count"], s["percentage"]) for s in result["stages"]}
        assert stages == {
            "Started": (100, 100),
            "Submitted": (80, 80),
            "Under Review": (50, 63),
            "Approved": (25, 31),
            "Disbursed": (10, 13),
        }

    @pytest.mark.asyncio
    async def test_no_applications(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.count_by_status = AsyncMock(return_value=_counts())

            result = await get_funnel_analytics(mock_db)

        assert all(s["count"] == 0 and s["percentage"] == 0 for s in result["stages"])


class TestTimeToDecision:
    """Tests for get_time_to_decision_analytics."""

    @pytest.mark.asyncio
    async def test_milestones_in_lifecycle_order_and_rounded(self, mock_db):
        rows = [
            {
                "status": ApplicationStatus.REJECTED,
                "transitions": 4,
                "average_days": 12.345,
                "median_days": 11.96,
                "min_days": 3.04,
                "max_days": 20.0,
            },
            {
                "status": ApplicationStatus.UNDER_REVIEW,
                "transitions": 9,
                "average_days": Decimal("1.25"),
                "median_days": 1.0,
                "min_days": 0.02,
                "max_days": 4.44,
            },
        ]
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.REVIEW_MILESTONES = (
                ApplicationStatus.UNDER_REVIEW,
                ApplicationStatus.APPROVED,
                ApplicationStatus.REJECTED,
                ApplicationStatus.DISBURSED,
            )
            mock_repo.get_decision_times = AsyncMock(return_value=rows)

            result = await get_time_to_decision_analytics(mock_db)

        milestones = result["milestones"]
        assert [m["status"] for m in milestones] == [
            ApplicationStatus.UNDER_REVIEW,
            ApplicationStatus.REJECTED,
        ]
        assert milestones[0]["average_days"] == 1.2
        assert milestones[1] == {
            "status": ApplicationStatus.REJECTED,
            "transitions": 4,
            "average_days": 12.3,
            "median_days": 12.0,
            "min_days": 3.0,
            "max_days": 20.0,
        }


class TestAnalyticsBreakdowns:
    """Tests for the summary, gender and demographics analytics."""

    @pytest.mark.asyncio
    async def test_summary_trend_starts_on_a_month_boundary(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_dashboard_stats = AsyncMock(return_value={"total": 3})
            mock_repo.monthly_submissions = AsyncMock(
                return_value=[{"period": "2026-05", "count": 3}]
            )

            result = await get_analytics_summary(mock_db)

            since = mock_repo.monthly_submissions.await_args.args[1]

        assert result["applications_trend"] == [{"period": "2026-05", "count": 3}]
        assert (since.day, since.hour, since.minute) == (1, 0, 0)
        assert datetime.now(UTC) - since < timedelta(days=31 * 6)

    @pytest.mark.asyncio
    async def test_gender_values_are_plain_strings(self, mock_db):
        rows = [
            {"gender": Gender.FEMALE, "total": 5, "approved": 2, "rejected": 1},
            {"gender": None, "total": 1, "approved": 0, "rejected": 0},
        ]
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_gender_breakdown = AsyncMock(return_value=rows)

            result = await get_gender_analytics(mock_db)

        assert [r["gender"] for r in result] == ["FEMALE", None]

    @pytest.mark.asyncio
    async def test_demographics(self, mock_db):
        breakdowns = {
            "orphan_status": [(OrphanStatus.SINGLE_ORPHAN, 4)],
            "disability": [(False, 10), (True, 2)],
            "household_income": [(HouseholdIncomeRange.BELOW_5K, 7)],
            "age_range": [("18-24", 11)],
        }
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.get_demographics = AsyncMock(return_value=breakdowns)

            result = await get_demographics_analytics(mock_db)

        assert result["orphan_status"] == [{"value": "SINGLE_ORPHAN", "count": 4}]
        assert result["disability"] == [
            {"value": False, "count": 10},
            {"value": True, "count": 2},
        ]
        assert result["household_income"] == [{"value": "BELOW_5K", "count": 7}]
        assert result["age_range"] == [{"value": "18-24", "count": 11}]


class TestExport:
    """Tests for the CSV export."""

    def _submitted(self, make_application):
        application = make_application(
            ApplicationStatus.DISBURSED,
            snapshot_full_name='Wanjiku "Shiku" Kamau',
            snapshot_national_id="12345678",
            snapshot_passport_number=None,
            snapshot_email="wanjiku@student.test",
            snapshot_phone="+254711000000",
            snapshot_gender="FEMALE",
            snapshot_institution="Maseno University",
            snapshot_programme="BSc Nursing",
            snapshot_education_level=EducationLevel.UNIVERSITY,
            snapshot_county="Kisumu",
            snapshot_sub_county="Kisumu Central",
            snapshot_ward="Kondele",
            current_year_of_study="Year 2",
            total_annual_fee_amount=Decimal("120000.00"),
            submitted_at=datetime(2026, 2, 3, 10, 0, tzinfo=UTC),
            disbursed_amount=Decimal("30000.00"),
            disbursed_at=datetime(2026, 3, 1, 9, 0, tzinfo=UTC),
            applied_to_other_scholarships=False,
            career_aspirations="Community nurse, then midwife",
        )
        profile = application.profile
        profile.guardian_name = "Akinyi Otieno"
        profile.guardian_phone = "0733000000"
        profile.guardian_occupation = "Farmer"
        profile.household_income_range = HouseholdIncomeRange.BELOW_5K
        profile.orphan_status = OrphanStatus.SINGLE_ORPHAN
        profile.disability_status = False
        profile.who_lives_with = WhoLivesWith.SINGLE_MOTHER
        profile.number_of_siblings = 4
        profile.siblings_in_school = 2
        profile.kcse_grade = "B+"
        return application

    def test_csv_has_header_and_one_row_per_application(self, make_application):
        application = self._submitted(make_application)

        rows = list(csv.reader(io.StringIO(build_export_csv([application]))))

        assert rows[0] == [header for header, _ in EXPORT_COLUMNS]
        assert len(rows) == 2
        row = dict(zip(rows[0], rows[1]))
        assert row["Full Name"] == 'Wanjiku "Shiku" Kamau'
        assert row["Passport Number"] == ""
        assert row["Education Level"] == "UNIVERSITY"
        assert row["Status"] == "DISBURSED"
        assert row["Outstanding Fees (KES)"] == "45000.00"
        assert row["Disbursed At"] == "2026-03-01T09:00:00+00:00"
        assert row["Orphan Status"] == "SINGLE_ORPHAN"
        assert row["Disability"] == "No"
        assert row["Career Aspirations"] == "Community nurse, then midwife"

    def test_empty_export_is_header_only(self):
        rows = list(csv.reader(io.StringIO(build_export_csv([]))))

        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_filters_are_passed_through(self, mock_db, make_application):
        application = self._submitted(make_application)
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.list_for_export = AsyncMock(return_value=[application])

            result = await export_applications(
                mock_db,
                status=ApplicationStatus.DISBURSED,
                search="  kamau ",
                min_balance=Decimal("1000"),
            )

            kwargs = mock_repo.list_for_export.await_args.kwargs

        assert kwargs["status"] == ApplicationStatus.DISBURSED
        assert kwargs["search"] == "kamau"
        assert kwargs["min_balance"] == Decimal("1000")
        assert result["count"] == 1
        assert result["filename"].startswith("bursary-applications-")
        assert result["filename"].endswith(".csv")

    @pytest.mark.asyncio
    async def test_inverted_balance_range_is_rejected(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.list_for_export = AsyncMock()

            with pytest.raises(ValidationFailedError):
                await export_applications(
                    mock_db, min_balance=Decimal("5000"), max_balance=Decimal("1000")
                )

            mock_repo.list_for_export.assert_not_called()


class TestStudentLookup:
    """Tests for student search, overview and timeline."""

    @pytest.mark.asyncio
    async def test_search_requires_two_characters(self, mock_db):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.search_profiles = AsyncMock()

            with pytest.raises(ValidationFailedError):
                await search_students(mock_db, " k ")

            mock_repo.search_profiles.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_flattens_account_contacts(self, mock_db, complete_profile):
        with patch(f"{MODULE}.repository") as mock_repo:
            mock_repo.search_profiles = AsyncMock(return_value=([(complete_profile, 2)], 1))

            result = await search_students(mock_db, "Wanjiku", limit=500)

            mock_repo.search_profiles.assert_awaited_once_with(
                mock_db, "Wanjiku", skip=0, limit=100
            )

        assert result["total"] == 1
        student = result["students"][0]
        assert student["email"] == "wanjiku@student.test"
        assert student["application_count"] == 2

    @pytest.mark.asyncio
    async def test_unknown_profile(self, mock_db):
        with patch(f"{MODULE}.profile_repository") as mock_profiles:
            mock_profiles.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(StudentProfileNotFoundError) as exc_info:
                await get_student_overview(mock_db, uuid4())

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_overview(self, mock_db, complete_profile, make_application):
        complete_profile.user.is_active = True
        complete_profile.user.created_at = datetime(2025, 11, 1, tzinfo=UTC)
        application = make_application(ApplicationStatus.PENDING)
        counts = _counts(PENDING=1, REJECTED=1)
        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.profile_repository") as mock_profiles,
        ):
            mock_profiles.get_by_id = AsyncMock(return_value=complete_profile)
            mock_repo.count_by_status = AsyncMock(return_value=counts)
            mock_repo.list_for_profile = AsyncMock(return_value=[application])

            result = await get_student_overview(mock_db, complete_profile.id)

            mock_repo.count_by_status.assert_awaited_once_with(mock_db, complete_profile.id)

        assert result["profile"] is complete_profile
        assert result["email"] == "wanjiku@student.test"
        assert result["account_active"] is True
        assert result["application_stats"] == counts
        assert result["applications"] == [application]

    @pytest.mark.asyncio
    async def test_timeline_is_newest_first_without_automatic_rows(
        self, mock_db, complete_profile, make_application
    ):
        start = datetime(2026, 1, 10, 8, 0, tzinfo=UTC)
        complete_profile.created_at = start
        application = make_application(
            ApplicationStatus.UNDER_REVIEW,
            created_at=start + timedelta(days=1),
            submitted_at=start + timedelta(days=2),
        )
        history = [
            _history(
                application.id,
                None,
                ApplicationStatus.DRAFT,
                start + timedelta(days=1),
                auto=True,
            ),
            _history(
                application.id,
                ApplicationStatus.DRAFT,
                ApplicationStatus.PENDING,
                start + timedelta(days=2),
                auto=True,
            ),
            _history(
                application.id,
                ApplicationStatus.PENDING,
                ApplicationStatus.UNDER_REVIEW,
                start + timedelta(days=5),
                reason="Picked up",
            ),
        ]
        note = MagicMock(spec=AdminNote)
        note.application_id = application.id
        note.section = NoteSection.FINANCIAL
        note.created_at = start + timedelta(days=6)

        with (
            patch(f"{MODULE}.repository") as mock_repo,
            patch(f"{MODULE}.profile_repository") as mock_profiles,
        ):
            mock_profiles.get_by_id = AsyncMock(return_value=complete_profile)
            mock_repo.list_for_profile = AsyncMock(return_value=[application])
            mock_repo.list_history_for_profile = AsyncMock(return_value=history)
            mock_repo.list_notes_for_profile = AsyncMock(return_value=[note])

            events = await get_student_timeline(mock_db, complete_profile.id)

        assert [e["type"] for e in events] == [
            "NOTE_ADDED",
            "STATUS_CHANGED",
            "APPLICATION_SUBMITTED",
            "APPLICATION_CREATED",
            "PROFILE_CREATED",
        ]
        status_event = events[1]
        assert status_event["description"] == (
            "Application BUR-2026-00042 moved from PENDING to UNDER_REVIEW"
        )
        assert status_event["reason"] == "Picked up"
        assert events[0]["description"] == "Financial note added"
