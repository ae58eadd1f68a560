"""
Outgoing forum mail over SMTP.

Delivery failures raise ``MailingFailedError``; callers decide the order of
mail and database writes (password restore mails first so a failed send
leaves the old password in place).
"""
import logging
from email.mime.text import MIMEText

import aiosmtplib

from forum.config import settings
from forum.exceptions import MailingFailedError
from forum.models import Post, PrivateMessage, User

logger = logging.getLogger(__name__)


class MailService:
    """Plain-text notification mails for account and messaging events."""

    def __init__(self) -> None:
        self.enabled = settings.MAIL_ENABLED

    async def send(self, to_email: str, subject: str, text: str) -> None:
        if not self.enabled:
            logger.info("Mail disabled, skipping %r to %s", subject, to_email)
            return

        message = MIMEText(text, "plain", "utf-8")
        message["From"] = settings.MAIL_FROM
        message["To"] = to_email
        message["Subject"] = subject

        try:
            await aiosmtplib.send(
                message,
                hostname=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                username=settings.SMTP_USER or None,
                password=settings.SMTP_PASSWORD or None,
                start_tls=settings.SMTP_USE_TLS,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send %r to %s: %s", subject, to_email, exc)
            raise MailingFailedError(str(exc), recipient=to_email) from exc

        logger.info("Sent %r to %s", subject, to_email)

    async def send_account_activation_mail(self, user: User) -> None:
        link = f"{settings.FORUM_URL}/api/v1/users/activate/{user.uuid}"
        await self.send(
            user.email,
            "Account activation",
            f"Dear {user.username},\n\n"
            f"To activate your account follow the link below within "
            f"{settings.ACCOUNT_ACTIVATION_TTL_HOURS} hours:\n{link}\n",
        )

    async def send_password_recovery_mail(self, user: User, new_password: str) -> None:
        await self.send(
            user.email,
            "Password recovery",
            f"Dear {user.username},\n\n"
            f"Your password has been reset. Your new password is: {new_password}\n",
        )

    async def send_received_private_message_notification(
        self, recipient: User, message: PrivateMessage
    ) -> None:
        link = f"{settings.FORUM_URL}/api/v1/messages/{message.id}"
        await self.send(
            recipient.email,
            "New private message",
            f"Dear {recipient.username},\n\n"
            f"You have received a new private message \"{message.title}\":\n{link}\n",
        )

    async def send_user_mentioned_notification(self, user: User, post: Post) -> None:
        link = f"{settings.FORUM_URL}/api/v1/topics/{post.topic_id}/posts"
        await self.send(
            user.email,
            "You were mentioned",
            f"Dear {user.username},\n\n"
            f"You were mentioned in post #{post.id}:\n{link}\n",
        )


# Module-level singleton; tests toggle ``enabled`` or patch ``send``.
mail_service = MailService()
