"""
Outgoing email through fastapi-mail
"""
import logging
from typing import List

from fastapi_mail import FastMail, ConnectionConfig, MessageSchema, MessageType
from pydantic import SecretStr

from app.config import settings

logger = logging.getLogger(__name__)


def build_mail_config() -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
        MAIL_PORT=settings.MAIL_PORT,
        MAIL_SERVER=settings.MAIL_SERVER,
        MAIL_USERNAME=settings.MAIL_USERNAME,
        MAIL_PASSWORD=SecretStr(settings.MAIL_PASSWORD),
        MAIL_STARTTLS=settings.MAIL_STARTTLS,
        MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
        USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
        VALIDATE_CERTS=settings.MAIL_STARTTLS or settings.MAIL_SSL_TLS,
        SUPPRESS_SEND=1 if settings.MAIL_SUPPRESS_SEND else 0,
    )


class EmailService:
    """Sends account emails; meant to run inside FastAPI background tasks"""

    def __init__(self):
        self.mailer = FastMail(build_mail_config())

    async def send(self, recipients: List[str], subject: str, html_content: str) -> bool:
        try:
            message = MessageSchema(
                subject=subject,
                recipients=recipients,
                body=html_content,
                subtype=MessageType.html,
            )
            await self.mailer.send_message(message)
            logger.info(f"Email sent to {recipients} with subject {subject}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email to {recipients}: {str(e)}")
            return False

    async def send_password_reset(self, email: str, username: str, token: str, migrated: bool = False) -> bool:
        link = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"
        note = ""
        if migrated:
            note = "<p>Your account has been upgraded to our new sign-in system. Choose a new password to finish.</p>"

        html_content = f"""
        <p>Hi {username},</p>
        {note}
        <p>We received a request to reset your {settings.APP_NAME} password.</p>
        <p><a href="{link}">Reset your password</a></p>
        <p>This link expires in {settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES} minutes.
        If you did not request it, you can ignore this email.</p>
        """
        return await self.send([email], f"Reset your {settings.APP_NAME} password", html_content)


# Global instance
email_service = EmailService()
