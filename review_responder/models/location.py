"""Business location and widget settings models"""
from sqlalchemy import Column, String, Boolean, DateTime, Float, Integer, ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from review_responder.database import Base
from review_responder.utils.time_utils import utc_now


class Location(Base):
    """A Google Business Profile location owned by a user"""

    __tablename__ = "locations"
    __table_args__ = (
        UniqueConstraint("user_id", "google_account_id", "google_location_id", name="uq_location_user_account_location"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Google identifiers ("accounts/{google_account_id}/locations/{google_location_id}")
    google_account_id = Column(String(100), nullable=False)
    google_account_name = Column(String(255), nullable=True)
    google_location_id = Column(String(100), nullable=False)

    # Business info
    title = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(500), nullable=True)
    maps_uri = Column(String(500), nullable=True)

    # Cached aggregates, refreshed by review sync
    average_rating = Column(Float, nullable=True)
    total_reviews = Column(Integer, default=0, nullable=False)
    last_synced_at = Column(DateTime, nullable=True)

    # Driven by the subscription state
    is_active = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships
    user = relationship("User", back_populates="locations")
    reviews = relationship("Review", back_populates="location", cascade="all, delete-orphan")
    subscription = relationship("Subscription", back_populates="location", cascade="all, delete-orphan", uselist=False)
    widget_settings = relationship("WidgetSettings", back_populates="location", cascade="all, delete-orphan", uselist=False)

    @property
    def has_active_subscription(self) -> bool:
        return self.subscription is not None and self.subscription.is_active

    @property
    def subscription_status(self):
        return self.subscription.status if self.subscription is not None else None

    def __repr__(self):
        return f"<Location(id={self.id}, title={self.title}, active={self.is_active})>"


class WidgetSettings(Base):
    """Display configuration for a location's public review widget"""

    __tablename__ = "widget_settings"

    # In-memory defaults for locations that never saved settings
    DEFAULTS = {
        "layout": "list",
        "theme": "light",
        "accent_color": "#3B82F6",
        "max_reviews": 10,
        "min_stars": 1,
        "auto_publish": False,
        "auto_publish_stars": 4,
        "show_date": True,
        "show_reviewer_name": True,
        "show_reviewer_photo": True,
        "show_rating": True,
        "show_reply": False,
        "show_summary": True,
        "show_badge": True,
        "show_review_link": False,
        "google_review_url": None,
    }

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    location_id = Column(UUID(as_uuid=True), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)

    # Layout & display
    layout = Column(String(20), default="list", nullable=False)  # list, grid, carousel
    theme = Column(String(20), default="light", nullable=False)  # light, dark, auto
    accent_color = Column(String(7), default="#3B82F6", nullable=False)
    max_reviews = Column(Integer, default=10, nullable=False)

    # Filtering / auto-publish rule
    min_stars = Column(Integer, default=1, nullable=False)
    auto_publish = Column(Boolean, default=False, nullable=False)
    auto_publish_stars = Column(Integer, default=4, nullable=False)

    # Visibility toggles
    show_date = Column(Boolean, default=True, nullable=False)
    show_reviewer_name = Column(Boolean, default=True, nullable=False)
    show_reviewer_photo = Column(Boolean, default=True, nullable=False)
    show_rating = Column(Boolean, default=True, nullable=False)
    show_reply = Column(Boolean, default=False, nullable=False)
    show_summary = Column(Boolean, default=True, nullable=False)
    show_badge = Column(Boolean, default=True, nullable=False)

    # Review link
    show_review_link = Column(Boolean, default=False, nullable=False)
    google_review_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    location = relationship("Location", back_populates="widget_settings")

    def to_dict(self) -> dict:
        return {key: getattr(self, key) for key in self.DEFAULTS}

    def __repr__(self):
        return f"<WidgetSettings(location_id={self.location_id}, layout={self.layout})>"
