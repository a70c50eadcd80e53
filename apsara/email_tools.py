"""Email delivery over SMTP (Gmail app passwords by default)."""

import asyncio
import base64
import binascii
import html
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Optional

from apsara.config import Settings

logger = logging.getLogger(__name__)


class Mailer:
    """Sends messages to the configured recipient."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def build_message(
        self,
        message: str,
        sender_info: str = "",
        attachment_base64: Optional[str] = None,
        filename: str = "attachment.bin",
        mime_type: str = "application/octet-stream",
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.settings.email_user
        msg["To"] = self.settings.email_recipient or self.settings.email_user
        msg["Subject"] = "Message from Apsara Live Assistant"
        msg["Message-ID"] = make_msgid(domain="apsara.local")

        sent_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        msg.set_content(
            f"{message}\n\n{f'Context: {sender_info}' if sender_info else ''}\nSent at: {sent_at}"
        )
        context = f"<p><strong>Context:</strong> {html.escape(sender_info)}</p>" if sender_info else ""
        msg.add_alternative(
            "<h2>New message from Apsara Live</h2>"
            f"<p><strong>Message:</strong> {html.escape(message)}</p>"
            f"{context}"
            f"<p><em>Sent at: {sent_at}</em></p>",
            subtype="html",
        )

        if attachment_base64:
            data = base64.b64decode(attachment_base64, validate=False)
            maintype, _, subtype = (mime_type or "application/octet-stream").partition("/")
            msg.add_attachment(
                data,
                maintype=maintype or "application",
                subtype=subtype or "octet-stream",
                filename=filename,
            )
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=30) as server:
            server.starttls()
            server.login(self.settings.email_user, self.settings.email_app_password)
            server.send_message(msg)

    async def send(
        self,
        message: str,
        sender_info: str = "",
        attachment_base64: Optional[str] = None,
        filename: str = "attachment.bin",
        mime_type: str = "application/octet-stream",
    ) -> dict[str, Any]:
        """Send an email. Failures are returned as ``success: False``."""
        if not self.settings.email_configured:
            return {
                "success": False,
                "error": "Email is not configured. Set EMAIL_USER and EMAIL_APP_PASSWORD.",
            }
        if not message:
            return {"success": False, "error": "Missing required argument: message"}

        try:
            msg = self.build_message(message, sender_info, attachment_base64, filename, mime_type)
        except (binascii.Error, ValueError) as e:
            return {"success": False, "error": f"Invalid attachment: {e}"}

        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email error: {type(e).__name__}: {e}")
            return {"success": False, "error": str(e)}

        message_id = msg["Message-ID"]
        logger.info("Email sent to %s", msg["To"])
        return {"success": True, "messageId": message_id, "recipient": msg["To"]}
