import pytest
from fastapi import HTTPException

from cinetime.services import email_service
from cinetime.services.email_service import EmailService


class RecordingSMTP:
    sent = []

    def __init__(self, host, port):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False

    def ehlo(self):
        pass

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def send_message(self, message):
        RecordingSMTP.sent.append(message)


def test_unconfigured_mailer_raises_500():
    mailer = EmailService(host=None, from_email=None)

    with pytest.raises(HTTPException) as exc:
        mailer.send_otp_email("ada@example.com", "123456")

    assert exc.value.status_code == 500
    assert exc.value.detail == "Email service is not configured"


def test_otp_email_contains_code(monkeypatch):
    RecordingSMTP.sent = []
    monkeypatch.setattr(email_service.smtplib, "SMTP", RecordingSMTP)
    mailer = EmailService(host="smtp.test", port=25, from_email="noreply@cinetime.test", use_tls=False)

    mailer.send_otp_email("ada@example.com", "123456")

    message = RecordingSMTP.sent[0]
    assert message["To"] == "ada@example.com"
    assert "123456" in message.get_content()


def test_smtp_failure_is_a_500(monkeypatch):
    class BrokenSMTP(RecordingSMTP):
        def send_message(self, message):
            raise OSError("connection reset")

    monkeypatch.setattr(email_service.smtplib, "SMTP", BrokenSMTP)
    mailer = EmailService(host="smtp.test", port=25, from_email="noreply@cinetime.test", use_tls=False)

    with pytest.raises(HTTPException) as exc:
        mailer.send_password_reset_email("ada@example.com", "http://frontend/reset-password/abc")

    assert exc.value.detail == "Unable to send email at this time"


def test_reset_email_states_configured_expiry(monkeypatch):
    RecordingSMTP.sent = []
    monkeypatch.setattr(email_service.smtplib, "SMTP", RecordingSMTP)
    mailer = EmailService(host="smtp.test", port=25, from_email="noreply@cinetime.test", use_tls=False)

    mailer.send_password_reset_email("ada@example.com", "http://frontend/reset-password/abc", ttl_minutes=15)

    content = RecordingSMTP.sent[0].get_content()
    assert "expire in 15 minutes" in content
    assert "1 hour" not in content
