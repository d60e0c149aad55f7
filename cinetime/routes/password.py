import os
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from cinetime.database import get_db
from cinetime.schemas.auth import (
    EmailRequest,
    PasswordResetRequestResponse,
    ResetTokenStatus,
    ResetPasswordRequest,
    MessageResponse,
)
from cinetime.services.email_service import EmailService
from cinetime.services.password_reset_service import PasswordResetService
from cinetime.utils.dependencies import get_mailer

router = APIRouter(prefix="/api/v1/password", tags=["Password Reset"])

GENERIC_RESET_MESSAGE = "If an account exists with this email, you will receive a password reset link"


@router.post("/request", response_model=PasswordResetRequestResponse, response_model_exclude_none=True)
def request_password_reset(
    payload: EmailRequest,
    db: Session = Depends(get_db),
    mailer: EmailService = Depends(get_mailer)
):
    """Request a password reset link."""
    token = PasswordResetService.request_reset(db, payload.email, mailer)
    response = {"message": GENERIC_RESET_MESSAGE}
    if token and os.getenv("ENVIRONMENT") == "development":
        response["token"] = token
    return response


@router.get("/verify/{token}", response_model=ResetTokenStatus)
def verify_reset_token(token: str, db: Session = Depends(get_db)):
    user = PasswordResetService.verify_token(db, token)
    return {"message": "Token is valid", "email": user.email}


@router.post("/reset/{token}", response_model=MessageResponse)
def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db)
):
    """Complete password reset with a valid token."""
    PasswordResetService.reset_password(db, token, payload.password)
    return {"message": "Password reset successful. You can now log in with your new password."}
