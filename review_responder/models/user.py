"""User and linked Google account models"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import timedelta
import uuid
from review_responder.database import Base
from review_responder.utils.time_utils import utc_now


class User(Base):
    """Business owner account"""

    __tablename__ = "users"

    # Identity
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)  # Nullable for Google-only users
    display_name = Column(String(255), nullable=True)
    photo_url = Column(Text, nullable=True)

    # Billing
    stripe_customer_id = Column(String(255), unique=True, nullable=True)

    # Status
    created_at = Column(DateTime, default=utc_now, nullable=False)
    last_login = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    google_account = relationship("GoogleAccount", back_populates="user", cascade="all, delete-orphan", uselist=False)
    locations = relationship("Location", back_populates="user", cascade="all, delete-orphan")
    subscriptions = relationship("Subscription", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class GoogleAccount(Base):
    """
    Stored Google OAuth credential for a user.

    The access token is short-lived; the refresh token is what lets the
    nightly sync act on the user's behalf without them being signed in.
    """

    __tablename__ = "google_accounts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)

    google_user_id = Column(String(255), nullable=True)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)  # naive UTC
    token_type = Column(String(50), nullable=True)
    scope = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = relationship("User", back_populates="google_account")

    def is_access_token_expired(self, margin_seconds: int = 0) -> bool:
        """Check whether the cached access token is expired (or about to be)"""
        if not self.access_token:
            return True
        if self.expires_at is None:
            return False
        return self.expires_at - timedelta(seconds=margin_seconds) <= utc_now()

    def __repr__(self):
        return f"<GoogleAccount(user_id={self.user_id}, expires_at={self.expires_at})>"
