from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from datetime import datetime
from typing import List, Optional


def normalize_email(value: str) -> str:
    return value.strip().lower()


# Schema for user registration
class UserRegister(BaseModel):
    firstname: str = Field(..., min_length=1, max_length=100)
    lastname: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v):
        return normalize_email(v)


class OTPVerify(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6, pattern=r'^\d{6}$')

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v):
        return normalize_email(v)


class EmailRequest(BaseModel):
    email: EmailStr

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v):
        return normalize_email(v)


# Schema for user login
class UserLogin(BaseModel):
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v):
        return normalize_email(v)


class RefreshRequest(BaseModel):
    token: str = Field(..., min_length=1)


class RegisterResponse(BaseModel):
    id: int
    email: str
    roles: List[str]
    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    id: int
    firstname: str
    lastname: str
    email: str
    roles: List[str]
    approved: str
    is_email_verified: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    email: str
    roles: List[str]
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class PasswordResetRequestResponse(BaseModel):
    message: str
    token: Optional[str] = None  # only echoed in development


class ResetTokenStatus(BaseModel):
    message: str
    email: str


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=6, max_length=72)


class MessageResponse(BaseModel):
    message: str
