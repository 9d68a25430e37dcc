"""FastAPI dependencies"""
import uuid
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from review_responder.core.security import decode_access_token
from review_responder.database import get_db
from review_responder.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the authenticated user from the bearer JWT"""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise _unauthorized()

    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise _unauthorized()

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        raise _unauthorized()

    return user


async def get_review_sync_service(db: Session = Depends(get_db)):
    """Review sync driver wired with the production Google and email clients"""
    from review_responder.services.review_sync_service import build_review_sync_service
    service = build_review_sync_service(db)
    try:
        yield service
    finally:
        await service.close()


async def get_review_service(db: Session = Depends(get_db)):
    """Review service for one request; its Google client is closed afterwards"""
    from review_responder.services.review_service import ReviewService
    service = ReviewService(db)
    try:
        yield service
    finally:
        await service.close()


async def get_location_service(db: Session = Depends(get_db)):
    """Location service for one request; its Google client is closed afterwards"""
    from review_responder.services.location_service import LocationService
    service = LocationService(db)
    try:
        yield service
    finally:
        await service.close()
