import logging
import os
import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import Optional
from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class EmailService:
    """SMTP-based sender for OTP and password reset emails."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_email: Optional[str] = None,
        use_tls: bool = True,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.use_tls = use_tls

    @classmethod
    def from_env(cls) -> "EmailService":
        return cls(
            host=os.getenv("SMTP_HOST"),
            port=int(os.getenv("SMTP_PORT", "587")),
            username=os.getenv("SMTP_USERNAME"),
            password=os.getenv("SMTP_PASSWORD"),
            from_email=os.getenv("EMAIL_FROM"),
            use_tls=os.getenv("SMTP_USE_TLS", "true").lower() == "true",
        )

    def send_otp_email(self, recipient: str, otp: str, ttl_minutes: int = 10) -> None:
        subject = "CINETIME - Email Verification OTP"
        body = (
            "Welcome to CINETIME!\n\n"
            "Your OTP for email verification is:\n\n"
            f"    {otp}\n\n"
            f"This OTP will expire in {ttl_minutes} minutes.\n"
            "If you didn't request this, please ignore this email.\n"
        )
        self._send_email(recipient, subject, body)

    def send_password_reset_email(self, recipient: str, reset_link: str, ttl_minutes: int = 60) -> None:
        """Send password reset instructions to the specified recipient."""
        subject = "CINETIME - Password Reset Request"
        body = (
            "Hi there,\n\n"
            "You requested to reset your CINETIME password.\n"
            "Open the link below to choose a new password:\n\n"
            f"{reset_link}\n\n"
            f"This link will expire in {ttl_minutes} minutes. If you didn't request this, "
            "you can safely ignore this email.\n\n"
            f"(c) {datetime.now().year} CINETIME"
        )
        self._send_email(recipient, subject, body)
        logger.info(f"Password reset email sent to {recipient}")

    def _send_email(self, recipient: str, subject: str, body: str) -> None:
        if not self.host or not self.from_email:
            logger.error("SMTP_HOST and EMAIL_FROM must be configured for email sending")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Email service is not configured",
            )

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = f"CINETIME <{self.from_email}>"
        message["To"] = recipient
        message.set_content(body)

        try:
            with smtplib.SMTP(self.host, self.port) as server:
                server.ehlo()
                if self.use_tls:
                    server.starttls()
                    server.ehlo()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(message)
        except Exception as exc:  # pragma: no cover - network failures are runtime concerns
            logger.exception("Failed to send email via SMTP: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Unable to send email at this time",
            )
