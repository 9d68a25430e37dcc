"""Schemas for authentication endpoints"""
from pydantic import BaseModel, EmailStr, Field, field_validator, field_serializer
from typing import Optional
from datetime import datetime
import uuid

from review_responder.utils.time_utils import to_utc_isoformat


class RegisterRequest(BaseModel):
    """Schema for email/password registration"""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: Optional[str] = Field(None, max_length=255)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """Current user with Google link status"""
    id: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None
    has_google_account: bool = False
    has_valid_token: bool = False

    @field_validator('id', mode='before')
    @classmethod
    def convert_uuid_to_str(cls, v):
        """Convert UUID objects to strings"""
        if isinstance(v, uuid.UUID):
            return str(v)
        return v

    @field_serializer('created_at', 'last_login')
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        return to_utc_isoformat(value)

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class GoogleConnectRequest(BaseModel):
    """OAuth authorization code from the Google consent redirect"""
    code: str = Field(..., min_length=1)
    redirect_uri: str = Field(..., min_length=1)


class GoogleConnectResponse(BaseModel):
    success: bool
    message: str
    has_google_account: bool
    has_valid_token: bool
