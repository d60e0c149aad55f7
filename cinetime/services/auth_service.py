from sqlalchemy.orm import Session
from cinetime.models.user import User, Role, ApprovalStatus
from cinetime.schemas.auth import UserRegister, UserLogin, OTPVerify
from cinetime.services.email_service import EmailService
from cinetime.utils.security import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    generate_otp,
    utcnow,
    ensure_aware,
)
from fastapi import HTTPException, status
from datetime import timedelta
import os
import logging

logger = logging.getLogger(__name__)
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 30))
OTP_TTL_MINUTES = int(os.getenv("OTP_TTL_MINUTES", "10"))


class AuthService:
    @staticmethod
    def _issue_otp(db: Session, user: User, mailer: EmailService) -> None:
        """
        Persist a fresh OTP, then email it.

        The commit happens first: if sending fails the request errors but
        the stored code stays valid.
        """
        user.otp = generate_otp()
        user.otp_expires = utcnow() + timedelta(minutes=OTP_TTL_MINUTES)
        db.commit()
        mailer.send_otp_email(user.email, user.otp, OTP_TTL_MINUTES)

    @staticmethod
    def register_user(db: Session, user_data: UserRegister, mailer: EmailService) -> User:
        # Check existing email
        existing_user = db.query(User).filter(User.email == user_data.email).first()
        if existing_user:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

        new_user = User(
            firstname=user_data.firstname,
            lastname=user_data.lastname,
            email=user_data.email,
            password_hash=hash_password(user_data.password),
            roles=[Role.USER],
            approved=ApprovalStatus.APPROVED,
            is_email_verified=False,
        )
        db.add(new_user)
        db.flush()
        AuthService._issue_otp(db, new_user, mailer)
        db.refresh(new_user)
        logger.info(f"Registered user {new_user.email}")
        return new_user

    @staticmethod
    def verify_otp(db: Session, data: OTPVerify) -> None:
        user = db.query(User).filter(User.email == data.email).first()
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        if user.is_email_verified:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already verified")

        if not user.otp or user.otp != data.otp:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OTP")

        if user.otp_expires is None or utcnow() > ensure_aware(user.otp_expires):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="OTP expired")

        user.is_email_verified = True
        user.otp = None
        user.otp_expires = None
        db.commit()

    @staticmethod
    def resend_otp(db: Session, email: str, mailer: EmailService) -> None:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        if user.is_email_verified:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already verified")
        AuthService._issue_otp(db, user, mailer)

    @staticmethod
    def _token_claims(user: User) -> dict:
        return {"sub": user.email, "user_id": user.id, "roles": list(user.roles or [])}

    @staticmethod
    def login_user(db: Session, credentials: UserLogin) -> dict:
        user = db.query(User).filter(User.email == credentials.email).first()

        if not user:
            logger.warning(f"Login failed: User not found with email {credentials.email}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

        if not user.is_email_verified:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Please verify your email first")

        if not verify_password(credentials.password, str(user.password_hash)):
            logger.warning(f"Login failed: Incorrect password for email {credentials.email}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

        if user.approved != ApprovalStatus.APPROVED:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account pending approval")

        claims = AuthService._token_claims(user)
        return {
            "email": user.email,
            "roles": list(user.roles or []),
            "access_token": create_access_token(
                data=claims,
                expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
            ),
            "refresh_token": create_refresh_token(data=claims),
            "token_type": "bearer",
            "expires_in": ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        }

    @staticmethod
    def refresh_access_token(db: Session, token: str) -> dict:
        payload = decode_refresh_token(token)
        if payload is None:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")

        user = db.query(User).filter(User.id == payload.get("user_id")).first()
        if not user:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid refresh token")

        return {
            "access_token": create_access_token(data=AuthService._token_claims(user)),
            "token_type": "bearer",
        }
