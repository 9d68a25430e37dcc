"""Review model"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from review_responder.database import Base
from review_responder.utils.time_utils import utc_now


class Review(Base):
    """A Google review synced into a location"""

    __tablename__ = "reviews"
    __table_args__ = (
        # Upsert key for review sync
        UniqueConstraint("location_id", "google_review_id", name="uq_review_location_google_review"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    location_id = Column(UUID(as_uuid=True), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)
    google_review_id = Column(String(255), nullable=False)

    # Upstream content
    reviewer_name = Column(String(255), default="Anonymous", nullable=False)
    reviewer_photo = Column(Text, nullable=True)
    star_rating = Column(Integer, nullable=False)  # 1-5
    comment = Column(Text, nullable=True)
    review_reply = Column(Text, nullable=True)
    reply_time = Column(DateTime, nullable=True)
    google_created_at = Column(DateTime, nullable=True)
    google_updated_at = Column(DateTime, nullable=True)

    # Local widget flags (owner controlled, never overwritten by sync)
    is_published = Column(Boolean, default=False, nullable=False, index=True)
    published_at = Column(DateTime, nullable=True)
    is_featured = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    location = relationship("Location", back_populates="reviews")

    def publish(self):
        self.is_published = True
        self.published_at = utc_now()

    @property
    def location_title(self):
        return self.location.title if self.location else None

    def __repr__(self):
        return f"<Review(id={self.id}, location_id={self.location_id}, stars={self.star_rating})>"
