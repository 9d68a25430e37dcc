"""Schemas for review endpoints"""
from pydantic import BaseModel, Field, field_validator, field_serializer
from typing import Dict, Optional, List, Literal
from datetime import datetime
import uuid

from review_responder.utils.time_utils import to_utc_isoformat

BulkAction = Literal["publish_all", "unpublish_all", "publish_by_stars", "publish_selected", "unpublish_selected"]


class ReviewResponse(BaseModel):
    """A synced review with its local widget flags"""
    id: str
    location_id: str
    google_review_id: str
    reviewer_name: str
    reviewer_photo: Optional[str] = None
    star_rating: int
    comment: Optional[str] = None
    review_reply: Optional[str] = None
    reply_time: Optional[datetime] = None
    google_created_at: Optional[datetime] = None
    google_updated_at: Optional[datetime] = None
    is_published: bool
    published_at: Optional[datetime] = None
    is_featured: bool
    created_at: datetime
    updated_at: datetime

    @field_validator('id', 'location_id', mode='before')
    @classmethod
    def convert_uuid_to_str(cls, v):
        """Convert UUID objects to strings"""
        if isinstance(v, uuid.UUID):
            return str(v)
        return v

    @field_serializer('reply_time', 'google_created_at', 'google_updated_at', 'published_at', 'created_at', 'updated_at')
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        return to_utc_isoformat(value)

    class Config:
        from_attributes = True


class ReviewStats(BaseModel):
    total: int
    published: int
    unpublished: int
    featured: int


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]
    stats: ReviewStats
    location_name: str


class InboxReviewResponse(ReviewResponse):
    location_title: Optional[str] = None


class InboxStats(BaseModel):
    """Stats over the user's reviews (or one location's), ignoring rating and reply filters"""
    total_reviews: int
    average_rating: float
    rating_breakdown: Dict[int, int]
    unreplied: int


class ReviewInboxResponse(BaseModel):
    reviews: List[InboxReviewResponse]
    stats: InboxStats


class ReviewFlagsUpdate(BaseModel):
    """Toggle publish/feature flags (omitted fields are left unchanged)"""
    is_published: Optional[bool] = None
    is_featured: Optional[bool] = None


class BulkPublishRequest(BaseModel):
    location_id: uuid.UUID
    action: BulkAction
    min_stars: Optional[int] = None
    review_ids: Optional[List[uuid.UUID]] = None


class BulkPublishResponse(BaseModel):
    success: bool
    action: str
    updated_count: int


class ReplyRequest(BaseModel):
    comment: str = Field(..., min_length=1, max_length=4096)

    @field_validator('comment')
    @classmethod
    def strip_comment(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Reply comment cannot be empty")
        return v


class ReplyResponse(BaseModel):
    success: bool
    message: str
    review: ReviewResponse
