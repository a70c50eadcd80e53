"""Tests for apsara/email_tools.py with smtplib patched out."""

import base64
import smtplib
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from apsara.email_tools import Mailer


@pytest.fixture
def smtp():
    with patch("apsara.email_tools.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        smtp_cls.return_value.__enter__.return_value = server
        yield smtp_cls, server


class TestBuildMessage:

    def test_headers(self, settings):
        msg = Mailer(settings).build_message("Call me back")

        assert msg["From"] == "assistant@example.com"
        assert msg["To"] == "owner@example.com"
        assert msg["Subject"] == "Message from Apsara Live Assistant"
        assert msg["Message-ID"]

    def test_html_body_is_escaped(self, settings):
        msg = Mailer(settings).build_message("<script>alert(1)</script>")

        html_part = msg.get_body(preferencelist=("html",))
        assert "&lt;script&gt;" in html_part.get_content()

    def test_attachment(self, settings):
        payload = base64.b64encode(b"PNGDATA").decode()

        msg = Mailer(settings).build_message("see attached", "", payload, "shot.png", "image/png")

        attachments = list(msg.iter_attachments())
        assert len(attachments) == 1
        assert attachments[0].get_filename() == "shot.png"
        assert attachments[0].get_content_type() == "image/png"
        assert attachments[0].get_content() == b"PNGDATA"

    def test_recipient_defaults_to_sender(self, settings):
        msg = Mailer(replace(settings, email_recipient="")).build_message("hi")

        assert msg["To"] == "assistant@example.com"


class TestSend:

    @pytest.mark.asyncio
    async def test_send_uses_starttls_and_login(self, settings, smtp):
        smtp_cls, server = smtp

        result = await Mailer(settings).send("Hello from the assistant", "Alice")

        assert result["success"] is True
        assert result["recipient"] == "owner@example.com"
        assert result["messageId"]
        smtp_cls.assert_called_once_with("smtp.gmail.com", 587, timeout=30)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("assistant@example.com", "app-password")
        server.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_not_configured(self, settings, smtp):
        smtp_cls, _ = smtp

        result = await Mailer(replace(settings, email_app_password="")).send("hi")

        assert result["success"] is False
        assert "not configured" in result["error"]
        smtp_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_message(self, settings, smtp):
        result = await Mailer(settings).send("")

        assert result["success"] is False

    @pytest.mark.asyncio
    async def test_smtp_failure_is_returned(self, settings, smtp):
        _, server = smtp
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")

        result = await Mailer(settings).send("hi")

        assert result["success"] is False
        assert "bad credentials" in result["error"]

    @pytest.mark.asyncio
    async def test_connection_failure_is_returned(self, settings, smtp):
        smtp_cls, _ = smtp
        smtp_cls.side_effect = ConnectionRefusedError("connection refused")

        result = await Mailer(settings).send("hi")

        assert result == {"success": False, "error": "connection refused"}
