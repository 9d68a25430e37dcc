"""Subscription model (Stripe, one per location)"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from review_responder.database import Base
from review_responder.utils.time_utils import utc_now


class Subscription(Base):
    """Stripe subscription state for a single location"""

    __tablename__ = "subscriptions"

    # Statuses that keep a location synced and its widget served
    ACTIVE_STATUSES = ("active", "trialing")

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(UUID(as_uuid=True), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)

    # Stripe identifiers
    stripe_subscription_id = Column(String(255), unique=True, nullable=False, index=True)
    stripe_price_id = Column(String(255), nullable=True)

    # State mirrored from Stripe webhooks
    status = Column(String(50), nullable=False)  # active, trialing, past_due, canceled, incomplete, ...
    current_period_start = Column(DateTime, nullable=True)
    current_period_end = Column(DateTime, nullable=True)
    trial_end = Column(DateTime, nullable=True)
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships
    user = relationship("User", back_populates="subscriptions")
    location = relationship("Location", back_populates="subscription")

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    def __repr__(self):
        return f"<Subscription(id={self.id}, location_id={self.location_id}, status={self.status})>"
