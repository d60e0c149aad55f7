from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cinetime.database import Base


class Role:
    ADMIN = "ADMIN"
    AUTHOR = "AUTHOR"
    USER = "USER"


class ApprovalStatus:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firstname = Column(String(100), nullable=False)
    lastname = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    roles = Column(JSON, nullable=False, default=lambda: [Role.USER])
    approved = Column(String(20), nullable=False, default=ApprovalStatus.APPROVED)

    # Email verification
    otp = Column(String(6), nullable=True)
    otp_expires = Column(DateTime(timezone=True), nullable=True)
    is_email_verified = Column(Boolean, default=False, nullable=False)

    # Password reset (sha256 of the emailed token)
    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_expires = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    media_items = relationship("Media", back_populates="user", cascade="all, delete-orphan")
    episodes = relationship("Episode", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
