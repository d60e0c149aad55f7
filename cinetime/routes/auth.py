from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from cinetime.database import get_db
from cinetime.schemas.auth import (
    UserRegister,
    OTPVerify,
    EmailRequest,
    UserLogin,
    RefreshRequest,
    RegisterResponse,
    UserResponse,
    LoginResponse,
    AccessTokenResponse,
    MessageResponse,
)
from cinetime.services.auth_service import AuthService
from cinetime.services.email_service import EmailService
from cinetime.utils.dependencies import get_current_user, get_mailer
from cinetime.models.user import User

# Define router
router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

# Register a new user
@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    mailer: EmailService = Depends(get_mailer)
):
    """Register a new user and email a verification code"""
    return AuthService.register_user(db, user_data, mailer)


@router.post("/verify-otp", response_model=MessageResponse)
def verify_otp(data: OTPVerify, db: Session = Depends(get_db)):
    """Verify email with the 6-digit code"""
    AuthService.verify_otp(db, data)
    return {"message": "Email verified successfully"}


@router.post("/resend-otp", response_model=MessageResponse)
def resend_otp(
    data: EmailRequest,
    db: Session = Depends(get_db),
    mailer: EmailService = Depends(get_mailer)
):
    AuthService.resend_otp(db, data.email, mailer)
    return {"message": "OTP sent successfully"}

# Login endpoint
@router.post("/login", response_model=LoginResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Login with email and password"""
    return AuthService.login_user(db, credentials)


@router.post("/refresh", response_model=AccessTokenResponse)
def refresh(data: RefreshRequest, db: Session = Depends(get_db)):
    """Exchange a refresh token for a new access token"""
    return AuthService.refresh_access_token(db, data.token)

# Get current authenticated user
@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user"""
    return current_user
