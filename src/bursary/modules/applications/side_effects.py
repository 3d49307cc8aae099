"""
Application Lifecycle Side Effects

In-app notifications and emails sent after a submission or status change
has committed. Everything here is best-effort: it is scheduled through
core.dispatch and a failure never affects the committed change.
"""

import logging
from uuid import UUID

from bursary.core.dispatch import dispatch
from bursary.core.email import send_application_status_email, send_application_submitted_email
from bursary.modules.applications.models import Application, ApplicationStatus
from bursary.modules.notifications.models import NotificationType
from bursary.modules.notifications.service import create_notification

logger = logging.getLogger(__name__)


def _recipient(application: Application) -> tuple[UUID, str | None, str]:
    """(user_id, email, display name) of the application's owner."""
    profile = application.profile
    user = profile.user
    email = application.snapshot_email or user.email
    name = application.snapshot_full_name or profile.full_name
    return user.id, email, name


def notify_status_change(application: Application, new_status: ApplicationStatus) -> None:
    """Queue the STATUS_CHANGE notification and the status email."""
    user_id, email, name = _recipient(application)
    number = application.application_number

    dispatch(
        lambda: create_notification(
            user_id=user_id,
            type=NotificationType.STATUS_CHANGE,
            title=f"Application {number} Updated",
            message=f"Your application status has been changed to {new_status.value}.",
            metadata={
                "application_id": str(application.id),
                "application_number": number,
                "status": new_status.value,
            },
        ),
        name=f"notify-status-{number}",
    )

    if email:
        dispatch(
            lambda: send_application_status_email(
                to_email=email,
                student_name=name,
                application_number=number,
                new_status=new_status.value,
            ),
            name=f"email-status-{number}",
        )
    else:
        logger.warning(f"No email address for application {number}; status email skipped")


def notify_submitted(application: Application) -> None:
    """Queue the APPLICATION_RECEIVED notification and the confirmation email."""
    user_id, email, name = _recipient(application)
    number = application.application_number

    dispatch(
        lambda: create_notification(
            user_id=user_id,
            type=NotificationType.APPLICATION_RECEIVED,
            title="Application Received",
            message=(
                f"Your application {number} has been submitted and is awaiting review."
            ),
            metadata={"application_id": str(application.id), "application_number": number},
        ),
        name=f"notify-submitted-{number}",
    )

    if email:
        dispatch(
            lambda: send_application_submitted_email(
                to_email=email,
                student_name=name,
                application_number=number,
            ),
            name=f"email-submitted-{number}",
        )
