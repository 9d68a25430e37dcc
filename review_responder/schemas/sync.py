"""Schemas for review sync reports"""
from pydantic import BaseModel, Field
from typing import List, Optional


class LocationSyncResult(BaseModel):
    """Outcome of syncing one location"""
    location: str = Field(..., description="Location title")
    location_id: Optional[str] = None
    new_reviews: int = 0
    total_synced: int = 0
    error: Optional[str] = None


class SyncReport(BaseModel):
    """Aggregated result of a review sync run"""
    message: str
    total_synced: int = 0
    total_new: int = 0
    locations_processed: int = 0
    results: List[LocationSyncResult] = []
