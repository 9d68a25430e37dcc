"""Scheduled job trigger endpoints"""
import logging
import secrets
from fastapi import APIRouter, Depends, Header, HTTPException, status
from typing import Optional

from review_responder.config import settings
from review_responder.core.dependencies import get_review_sync_service
from review_responder.services.review_sync_service import ReviewSyncService
from review_responder.schemas.sync import SyncReport

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def verify_cron_secret(authorization: Optional[str] = Header(None)):
    """Require `Authorization: Bearer <CRON_SECRET>`; an unset secret rejects everything"""
    expected = settings.CRON_SECRET
    if not expected or not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    if not secrets.compare_digest(authorization.encode("utf-8"), f"Bearer {expected}".encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.get(
    "/sync-reviews",
    response_model=SyncReport,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_cron_secret)]
)
async def sync_reviews(
    sync_service: ReviewSyncService = Depends(get_review_sync_service)
):
    """
    Nightly review sync

    Syncs reviews for every location with an active or trialing
    subscription and emails each owner a digest of new reviews.
    """
    try:
        return await sync_service.run_sync()

    except Exception as e:
        logger.error(f"Review sync failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
