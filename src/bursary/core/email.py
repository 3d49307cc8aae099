"""
Email Service using Resend

Handles transactional emails for the bursary application lifecycle.
All senders return a bool and never raise; callers dispatch them after the
triggering transaction has committed.
"""

import asyncio
import logging
import os
from html import escape

import resend

from bursary.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Resend with API key
resend.api_key = os.getenv("RESEND_API_KEY")

# Configurations
EMAIL_FROM = os.getenv("EMAIL_FROM", f"{settings.organization_name} <noreply@bursary.local>")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

STATUS_MESSAGES: dict[str, str] = {
    "UNDER_REVIEW": "is now under review by our team.",
    "APPROVED": "has been approved! Further instructions will follow.",
    "REJECTED": "was not approved at this time. Please contact us for more information.",
    "DISBURSED": "funds have been disbursed.",
}

_BASE_STYLE = """
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: #14532d; margin-bottom: 24px; }}
            .status-box {{ background-color: #f0fdf4; border: 1px solid #22c55e; padding: 16px; border-radius: 8px; margin: 16px 0; }}
            .button {{ display: inline-block; background-color: #14532d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
"""


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def status_message(new_status: str) -> str:
    """Human-readable sentence fragment for a status change."""
    return STATUS_MESSAGES.get(new_status, f"status has been updated to {new_status}.")


async def send_application_status_email(
    to_email: str,
    student_name: str,
    application_number: str,
    new_status: str,
) -> bool:
    """Notify a student that their application changed status."""
    safe_name = escape(student_name)
    safe_number = escape(application_number)
    message = escape(status_message(new_status))

    dashboard_url = f"{FRONTEND_URL}/student/applications"
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{_BASE_STYLE.format()}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">Application Update</h1>

            <p>Hello {safe_name},</p>

            <div class="status-box">
                Your bursary application <strong>{safe_number}</strong> {message}
            </div>

            <p>You can follow your application at any time from your dashboard:</p>

            <a href="{dashboard_url}" class="button">View Application</a>

            <div class="footer">
                <p>Questions? Contact us at {escape(settings.support_email)}.</p>
                <p>{escape(settings.organization_name)}</p>
            </div>
        </div>
    </body>
    </html>
    """

    return await send_email(
        to_email=to_email,
        subject=f"Bursary application {safe_number} updated",
        html_content=html_content,
    )


async def send_application_submitted_email(
    to_email: str,
    student_name: str,
    application_number: str,
) -> bool:
    """Confirm to a student that their application was received."""
    safe_name = escape(student_name)
    safe_number = escape(application_number)

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{_BASE_STYLE.format()}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">Application Received</h1>

            <p>Hello {safe_name},</p>

            <div class="status-box">
                We have received your bursary application <strong>{safe_number}</strong>.
                It is now pending review.
            </div>

            <p>The details you submitted have been recorded exactly as they were at submission.
            Later changes to your profile will not affect this application.</p>

            <div class="footer">
                <p>Questions? Contact us at {escape(settings.support_email)}.</p>
                <p>{escape(settings.organization_name)}</p>
            </div>
        </div>
    </body>
    </html>
    """

    return await send_email(
        to_email=to_email,
        subject=f"Bursary application {safe_number} received",
        html_content=html_content,
    )
