"""Schemas for location endpoints"""
from pydantic import BaseModel, field_validator, field_serializer
from typing import Optional, List
from datetime import datetime
import uuid

from review_responder.utils.time_utils import to_utc_isoformat


class LocationResponse(BaseModel):
    """A stored Google Business Profile location"""
    id: str
    google_account_id: str
    google_account_name: Optional[str] = None
    google_location_id: str
    title: str
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    maps_uri: Optional[str] = None
    average_rating: Optional[float] = None
    total_reviews: int = 0
    last_synced_at: Optional[datetime] = None
    is_active: bool
    subscription_status: Optional[str] = None
    created_at: datetime

    @field_validator('id', mode='before')
    @classmethod
    def convert_uuid_to_str(cls, v):
        """Convert UUID objects to strings"""
        if isinstance(v, uuid.UUID):
            return str(v)
        return v

    @field_serializer('last_synced_at', 'created_at')
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        return to_utc_isoformat(value)

    class Config:
        from_attributes = True


class LocationListResponse(BaseModel):
    locations: List[LocationResponse]
    total: int


class LocationSyncResponse(BaseModel):
    """Result of importing locations from Google"""
    locations: List[LocationResponse]
    synced: int
    total_found: int
    accounts_checked: int
    message: str


class ReviewSyncRequest(BaseModel):
    """Manual review sync; all of the user's locations when empty"""
    location_ids: Optional[List[uuid.UUID]] = None
