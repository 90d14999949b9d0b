"""
Grant notification e-mail.

Sending is synchronous SMTP; callers in async code run it in a worker
thread. A failed send is logged and reported as ``False``, never raised.
"""

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional
import logging

from core.access.levels import JobPermissionLevel
from core.config import settings

logger = logging.getLogger(__name__)


LEVEL_DESCRIPTIONS: dict[JobPermissionLevel, str] = {
    JobPermissionLevel.VIEWER: "view candidates and their evaluations",
    JobPermissionLevel.INTERVIEWER: "view candidates and submit interview feedback",
    JobPermissionLevel.MANAGER: "manage candidates and move them through the pipeline",
    JobPermissionLevel.ADMIN: "fully manage the job, its candidates and its team",
}


class EmailService:
    """
    SMTP sender.

    Unset arguments fall back to the SMTP settings.
    """

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        use_tls: Optional[bool] = None,
    ):
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls

    def send_email(self, to_email: str, subject: str, body: str, html: bool = False) -> bool:
        """
        Send a single message.

        Returns:
            True if the SMTP server accepted the message
        """
        msg = MIMEMultipart()
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'html' if html else 'plain'))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, from_addr=self.from_email, to_addrs=[to_email])
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send '{subject}' to {to_email}: {e}")
            return False

        logger.info(f"Email sent: {subject}")
        return True

    def send_job_permission_granted(
        self,
        to_email: str,
        recipient_name: str,
        granter_name: str,
        job_title: str,
        level: JobPermissionLevel,
        job_url: str,
    ) -> bool:
        """Tell a user they were given access to a job."""
        template = EmailTemplates.job_permission_granted(
            recipient_name=recipient_name,
            granter_name=granter_name,
            job_title=job_title,
            level=level,
            job_url=job_url,
        )
        return self.send_email(to_email, template['subject'], template['body'], html=template['html'])


class EmailTemplates:

    @staticmethod
    def job_permission_granted(
        recipient_name: str,
        granter_name: str,
        job_title: str,
        level: JobPermissionLevel,
        job_url: str,
    ) -> dict:
        capability = LEVEL_DESCRIPTIONS.get(level, "access the job")
        return {
            'subject': f'You have been given {level.value} access to {job_title}',
            'body': f"""
                <html>
                <body>
                    <h2>Hi {escape(recipient_name)},</h2>
                    <p>{escape(granter_name)} gave you <strong>{level.value}</strong> access
                    to the job <strong>{escape(job_title)}</strong>.</p>
                    <p>You can now {capability}.</p>
                    <p>Open the job here: <a href="{escape(job_url)}">{escape(job_url)}</a></p>
                </body>
                </html>
            """,
            'html': True,
        }


def job_url(job_id: str) -> str:
    """Front-end URL of a job."""
    return f"{settings.app_base_url.rstrip('/')}/dashboard/jobs/{job_id}"


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Shared EmailService built from settings."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
