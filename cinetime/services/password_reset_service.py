import os
from datetime import timedelta
from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional

from cinetime.models.user import User
from cinetime.services.email_service import EmailService
from cinetime.utils.security import (
    ensure_aware,
    generate_reset_token,
    hash_password,
    hash_token,
    utcnow,
)

RESET_TOKEN_TTL_MINUTES = int(os.getenv("RESET_TOKEN_TTL_MINUTES", "60"))
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")


class PasswordResetService:
    """Handles password reset token issuance and validation."""

    @staticmethod
    def _build_reset_link(raw_token: str) -> str:
        base = FRONTEND_URL.rstrip("/")
        return f"{base}/reset-password/{raw_token}"

    @staticmethod
    def _find_user_by_token(db: Session, raw_token: str) -> User:
        user = (
            db.query(User)
            .filter(User.reset_password_token == hash_token(raw_token))
            .first()
        )
        if (
            user is None
            or user.reset_password_expires is None
            or ensure_aware(user.reset_password_expires) <= utcnow()
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired token",
            )
        return user

    @classmethod
    def request_reset(cls, db: Session, email: str, mailer: EmailService) -> Optional[str]:
        """
        Issue a reset token and email the link.

        Returns the raw token (callers only expose it in development), or
        None when no account matches; the caller must not reveal which.
        """
        user = db.query(User).filter(User.email == email).first()
        if not user:
            return None

        raw_token = generate_reset_token()
        user.reset_password_token = hash_token(raw_token)
        user.reset_password_expires = utcnow() + timedelta(minutes=RESET_TOKEN_TTL_MINUTES)
        # Stored before sending; a mail failure does not revoke the token
        db.commit()

        mailer.send_password_reset_email(
            user.email, cls._build_reset_link(raw_token), RESET_TOKEN_TTL_MINUTES
        )
        return raw_token

    @classmethod
    def verify_token(cls, db: Session, token: str) -> User:
        return cls._find_user_by_token(db, token)

    @classmethod
    def reset_password(cls, db: Session, token: str, new_password: str) -> None:
        user = cls._find_user_by_token(db, token)

        user.password_hash = hash_password(new_password)
        # Single use
        user.reset_password_token = None
        user.reset_password_expires = None
        db.commit()
