"""Schemas for widget settings and the public widget feed"""
from pydantic import BaseModel, field_validator, field_serializer
from typing import Optional, List, Dict
from datetime import datetime
import uuid

from review_responder.utils.time_utils import to_utc_isoformat


class WidgetSettingsData(BaseModel):
    """Full widget configuration"""
    layout: str
    theme: str
    accent_color: str
    max_reviews: int
    min_stars: int
    auto_publish: bool
    auto_publish_stars: int
    show_date: bool
    show_reviewer_name: bool
    show_reviewer_photo: bool
    show_rating: bool
    show_reply: bool
    show_summary: bool
    show_badge: bool
    show_review_link: bool
    google_review_url: Optional[str] = None

    class Config:
        from_attributes = True


class WidgetSettingsUpdate(BaseModel):
    """
    Incoming settings. Omitted or invalid values fall back to defaults and
    numbers are clamped to their allowed range.
    """
    layout: Optional[str] = None
    theme: Optional[str] = None
    accent_color: Optional[str] = None
    max_reviews: Optional[int] = None
    min_stars: Optional[int] = None
    auto_publish: Optional[bool] = None
    auto_publish_stars: Optional[int] = None
    show_date: Optional[bool] = None
    show_reviewer_name: Optional[bool] = None
    show_reviewer_photo: Optional[bool] = None
    show_rating: Optional[bool] = None
    show_reply: Optional[bool] = None
    show_summary: Optional[bool] = None
    show_badge: Optional[bool] = None
    show_review_link: Optional[bool] = None
    google_review_url: Optional[str] = None


class WidgetSettingsResponse(BaseModel):
    settings: WidgetSettingsData
    embed_code: str
    iframe_code: str
    location_id: str
    business_name: str


class WidgetSettingsUpdateResponse(BaseModel):
    success: bool
    settings: WidgetSettingsData
    auto_published: int = 0


class WidgetLocation(BaseModel):
    id: str
    title: str
    average_rating: Optional[float] = None
    total_reviews: int = 0
    maps_uri: Optional[str] = None

    @field_validator('id', mode='before')
    @classmethod
    def convert_uuid_to_str(cls, v):
        """Convert UUID objects to strings"""
        if isinstance(v, uuid.UUID):
            return str(v)
        return v

    class Config:
        from_attributes = True


class WidgetReview(BaseModel):
    """A published review as shown in the widget"""
    id: str
    reviewer_name: str
    reviewer_photo: Optional[str] = None
    star_rating: int
    comment: Optional[str] = None
    review_reply: Optional[str] = None
    google_created_at: Optional[datetime] = None
    is_featured: bool = False

    @field_validator('id', mode='before')
    @classmethod
    def convert_uuid_to_str(cls, v):
        """Convert UUID objects to strings"""
        if isinstance(v, uuid.UUID):
            return str(v)
        return v

    @field_serializer('google_created_at')
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        return to_utc_isoformat(value)

    class Config:
        from_attributes = True


class WidgetSummary(BaseModel):
    business_name: str
    average_rating: Optional[float] = None
    total_reviews: int = 0
    distribution: Dict[str, int]


class PublicWidgetResponse(BaseModel):
    location: WidgetLocation
    settings: WidgetSettingsData
    reviews: List[WidgetReview]
    summary: Optional[WidgetSummary] = None
