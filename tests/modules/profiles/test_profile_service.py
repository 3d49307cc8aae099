"""
Unit tests for the student profiles service layer.

These tests cover:
- Eligibility checks and the order they run in
- The edit lock while an application is in review
- The one-identity rule on partial updates
- Profile document upsert and deletion
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from bursary.core.errors import ValidationFailedError
from bursary.core.storage import StoredFile
from bursary.modules.applications.models import ApplicationStatus
from bursary.modules.periods.service import WindowState
from bursary.modules.profiles.models import ProfileDocumentType
from bursary.modules.profiles.schemas import ProfileCreate, ProfileUpdate
from bursary.modules.profiles.service import (
    DocumentInUseError,
    DuplicateIdentityError,
    ProfileAlreadyExistsError,
    ProfileDocumentNotFoundError,
    ProfileLockedError,
    ProfileNotFoundError,
    check_eligibility,
    create_profile,
    delete_profile_document,
    get_profile,
    update_profile,
    upsert_profile_document,
)

REPOSITORY = "bursary.modules.profiles.service.repository"
WINDOW = "bursary.modules.profiles.service.get_window_state"


def _stored_file() -> StoredFile:
    return StoredFile(
        original_filename="id-scan.pdf",
        stored_filename="3f1c.pdf",
        file_path="profiles/abc/3f1c.pdf",
        file_size=2048,
        mime_type="application/pdf",
    )


class TestCheckEligibility:
    """Tests for check_eligibility."""

    @pytest.mark.asyncio
    async def test_no_profile(self, mock_db):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=None)

            result = await check_eligibility(mock_db, uuid4())

        assert result.can_apply is False
        assert result.reason == "Profile not found. Please create a profile first."
        assert result.profile_completeness == 0
        assert result.missing_fields == ["Profile not created"]

    @pytest.mark.asyncio
    async def test_incomplete_profile_stops_before_active_check(
        self, mock_db, complete_profile, required_documents
    ):
        complete_profile.emergency_contact_phone = None
        with patch(REPOSITORY) as mock_repo, patch(WINDOW) as mock_window:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.list_documents = AsyncMock(return_value=required_documents[:1])
            mock_repo.get_active_application = AsyncMock()

            result = await check_eligibility(mock_db, complete_profile.user_id)

            mock_repo.get_active_application.assert_not_called()
            mock_window.assert_not_called()

        assert result.can_apply is False
        assert result.reason.startswith("Profile is incomplete.")
        assert result.profile_completeness == 88
        assert "Emergency Contact Phone" in result.missing_fields
        assert "ADMISSION_LETTER" in result.missing_fields

    @pytest.mark.asyncio
    async def test_active_application_blocks(
        self, mock_db, complete_profile, required_documents, make_application
    ):
        active = make_application(ApplicationStatus.PENDING)
        with patch(REPOSITORY) as mock_repo, patch(WINDOW) as mock_window:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.list_documents = AsyncMock(return_value=required_documents)
            mock_repo.get_active_application = AsyncMock(return_value=active)

            result = await check_eligibility(mock_db, complete_profile.user_id)

            mock_window.assert_not_called()

        assert result.can_apply is False
        assert result.has_active_application is True
        assert result.active_application_id == active.id
        assert result.active_application_status == ApplicationStatus.PENDING
        assert "PENDING" in result.reason

    @pytest.mark.asyncio
    async def test_closed_window_blocks(self, mock_db, complete_profile, required_documents):
        with (
            patch(REPOSITORY) as mock_repo,
            patch(WINDOW, AsyncMock(return_value=WindowState(is_open=False, active_period=None))),
        ):
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.list_documents = AsyncMock(return_value=required_documents)
            mock_repo.get_active_application = AsyncMock(return_value=None)

            result = await check_eligibility(mock_db, complete_profile.user_id)

        assert result.can_apply is False
        assert result.reason == "The application window is currently closed."
        assert result.profile_completeness == 100

    @pytest.mark.asyncio
    async def test_eligible(self, mock_db, complete_profile, required_documents, active_period):
        with (
            patch(REPOSITORY) as mock_repo,
            patch(
                WINDOW,
                AsyncMock(return_value=WindowState(is_open=True, active_period=active_period)),
            ),
        ):
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.list_documents = AsyncMock(return_value=required_documents)
            mock_repo.get_active_application = AsyncMock(return_value=None)

            result = await check_eligibility(mock_db, complete_profile.user_id)

        assert result.can_apply is True
        assert result.has_active_application is False
        mock_db.commit.assert_not_called()


class TestGetAndCreateProfile:
    """Tests for get_profile and create_profile."""

    @pytest.mark.asyncio
    async def test_get_profile_missing(self, mock_db):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=None)

            with pytest.raises(ProfileNotFoundError) as exc_info:
                await get_profile(mock_db, uuid4())

        assert exc_info.value.error_code == "PROFILE_NOT_FOUND"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_create_profile_twice(self, mock_db, complete_profile):
        data = ProfileCreate(
            full_name="Wanjiku Kamau",
            date_of_birth="2004-05-17",
            gender="FEMALE",
            national_id_number="12345678",
            county_id=uuid4(),
            sub_county_id=uuid4(),
            ward_id=uuid4(),
            institution_name="Maseno University",
            institution_type="UNIVERSITY",
            programme_or_course="BSc Nursing",
            admission_year=2023,
        )
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)

            with pytest.raises(ProfileAlreadyExistsError):
                await create_profile(mock_db, complete_profile.user_id, data)

    def test_create_requires_exactly_one_identity(self):
        with pytest.raises(ValueError):
            ProfileCreate(
                full_name="Wanjiku Kamau",
                date_of_birth="2004-05-17",
                gender="FEMALE",
                national_id_number="12345678",
                passport_number="AK123456",
                county_id=uuid4(),
                sub_county_id=uuid4(),
                ward_id=uuid4(),
                institution_name="Maseno University",
                institution_type="UNIVERSITY",
                programme_or_course="BSc Nursing",
                admission_year=2023,
            )


class TestUpdateProfile:
    """Tests for update_profile."""

    @pytest.mark.asyncio
    async def test_locked_while_application_in_review(
        self, mock_db, complete_profile, make_application
    ):
        in_review = make_application(ApplicationStatus.UNDER_REVIEW)
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.get_in_review_application = AsyncMock(return_value=in_review)

            with pytest.raises(ProfileLockedError) as exc_info:
                await update_profile(
                    mock_db,
                    complete_profile.user_id,
                    ProfileUpdate(programme_or_course="BSc Public Health"),
                )

        assert exc_info.value.error_code == "PROFILE_LOCKED"
        assert "UNDER_REVIEW" in exc_info.value.message
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_applies_changes_and_refreshes_completeness(
        self, mock_db, complete_profile, required_documents
    ):
        complete_profile.is_complete = False
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.get_in_review_application = AsyncMock(return_value=None)
            mock_repo.list_documents = AsyncMock(return_value=required_documents)

            result = await update_profile(
                mock_db,
                complete_profile.user_id,
                ProfileUpdate(programme_or_course="BSc Public Health", phone_number="+254722111222"),
            )

        assert result.programme_or_course == "BSc Public Health"
        assert result.phone_number == "0722111222"
        assert result.is_complete is True
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_clearing_the_only_identity_is_rejected(self, mock_db, complete_profile):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.get_in_review_application = AsyncMock(return_value=None)

            with pytest.raises(ValidationFailedError):
                await update_profile(
                    mock_db,
                    complete_profile.user_id,
                    ProfileUpdate(national_id_number=""),
                )

        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_switching_to_passport_checks_uniqueness(self, mock_db, complete_profile):
        clash = MagicMock()
        clash.id = uuid4()
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.get_in_review_application = AsyncMock(return_value=None)
            mock_repo.find_identity_conflict = AsyncMock(return_value=clash)

            with pytest.raises(DuplicateIdentityError):
                await update_profile(
                    mock_db,
                    complete_profile.user_id,
                    ProfileUpdate(national_id_number=None, passport_number="AK123456"),
                )

            mock_repo.find_identity_conflict.assert_awaited_once_with(
                mock_db,
                national_id_number=None,
                passport_number="AK123456",
                exclude_profile_id=complete_profile.id,
            )


class TestProfileDocuments:
    """Tests for profile document upsert and delete."""

    @pytest.mark.asyncio
    async def test_upsert_replaces_by_type(self, mock_db, complete_profile, required_documents):
        stored = _stored_file()
        document = required_documents[0]
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.upsert_document = AsyncMock(return_value=document)
            mock_repo.list_documents = AsyncMock(return_value=required_documents)

            result = await upsert_profile_document(
                mock_db, complete_profile.user_id, ProfileDocumentType.NATIONAL_ID, stored
            )

            mock_repo.upsert_document.assert_awaited_once_with(
                mock_db, complete_profile.id, ProfileDocumentType.NATIONAL_ID, stored
            )

        assert result is document
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_refused_while_linked_to_application_in_review(
        self, mock_db, complete_profile, required_documents
    ):
        document = required_documents[0]
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.get_document = AsyncMock(return_value=document)
            mock_repo.is_document_linked_to_in_review_application = AsyncMock(return_value=True)
            mock_repo.delete_document = AsyncMock()

            with pytest.raises(DocumentInUseError) as exc_info:
                await delete_profile_document(mock_db, complete_profile.user_id, document.id)

            mock_repo.delete_document.assert_not_called()

        assert exc_info.value.error_code == "DOCUMENT_IN_USE"
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_delete_recomputes_completeness(
        self, mock_db, complete_profile, required_documents
    ):
        document = required_documents[1]
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.get_document = AsyncMock(return_value=document)
            mock_repo.is_document_linked_to_in_review_application = AsyncMock(return_value=False)
            mock_repo.delete_document = AsyncMock()
            mock_repo.list_documents = AsyncMock(return_value=required_documents[:1])

            await delete_profile_document(mock_db, complete_profile.user_id, document.id)

            mock_repo.delete_document.assert_awaited_once_with(mock_db, document)

        assert complete_profile.is_complete is False
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_unknown_document(self, mock_db, complete_profile):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_user_id = AsyncMock(return_value=complete_profile)
            mock_repo.get_document = AsyncMock(return_value=None)

            with pytest.raises(ProfileDocumentNotFoundError):
                await delete_profile_document(mock_db, complete_profile.user_id, uuid4())
