"""
Unit tests for post-commit lifecycle side effects.
"""

from unittest.mock import MagicMock, patch

from bursary.modules.applications.models import ApplicationStatus
from bursary.modules.applications.side_effects import notify_status_change, notify_submitted
from bursary.modules.notifications.models import NotificationType

MODULE = "bursary.modules.applications.side_effects"


class TestNotifyStatusChange:
    """Tests for notify_status_change."""

    def test_dispatches_notification_and_email(self, make_application):
        application = make_application(ApplicationStatus.APPROVED)

        with (
            patch(f"{MODULE}.dispatch") as mock_dispatch,
            patch(f"{MODULE}.create_notification", MagicMock()) as mock_notify,
            patch(f"{MODULE}.send_application_status_email", MagicMock()) as mock_email,
        ):
            notify_status_change(application, ApplicationStatus.APPROVED)

            names = [c.kwargs["name"] for c in mock_dispatch.call_args_list]
            assert names == ["notify-status-BUR-2026-00042", "email-status-BUR-2026-00042"]

            # Run the queued factories against the patched sinks
            for c in mock_dispatch.call_args_list:
                c.args[0]()

        kwargs = mock_notify.call_args.kwargs
        assert kwargs["type"] == NotificationType.STATUS_CHANGE
        assert kwargs["title"] == "Application BUR-2026-00042 Updated"
        assert kwargs["message"] == "Your application status has been changed to APPROVED."
        assert kwargs["user_id"] == application.profile.user.id
        assert mock_email.call_args.kwargs["to_email"] == "wanjiku@student.test"
        assert mock_email.call_args.kwargs["new_status"] == "APPROVED"

    def test_snapshot_email_wins(self, make_application):
        application = make_application(
            ApplicationStatus.UNDER_REVIEW, snapshot_email="frozen@student.test"
        )

        with (
            patch(f"{MODULE}.dispatch") as mock_dispatch,
            patch(f"{MODULE}.send_application_status_email", MagicMock()) as mock_email,
        ):
            notify_status_change(application, ApplicationStatus.UNDER_REVIEW)
            mock_dispatch.call_args_list[1].args[0]()

        assert mock_email.call_args.kwargs["to_email"] == "frozen@student.test"


class TestNotifySubmitted:
    """Tests for notify_submitted."""

    def test_dispatches_received_notification(self, make_application):
        application = make_application(ApplicationStatus.PENDING)

        with (
            patch(f"{MODULE}.dispatch") as mock_dispatch,
            patch(f"{MODULE}.create_notification", MagicMock()) as mock_notify,
        ):
            notify_submitted(application)
            mock_dispatch.call_args_list[0].args[0]()

        assert mock_dispatch.call_count == 2
        assert mock_notify.call_args.kwargs["type"] == NotificationType.APPLICATION_RECEIVED
