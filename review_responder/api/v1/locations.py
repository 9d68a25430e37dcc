"""Location API endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional
import uuid

from review_responder.core.dependencies import get_current_user, get_location_service, get_review_service, get_review_sync_service
from review_responder.core.exceptions import AccessDeniedError, GoogleAuthExpiredError, GooglePermissionError, NotFoundError
from review_responder.models.user import User
from review_responder.services.location_service import LocationService
from review_responder.services.review_service import ReviewService
from review_responder.services.review_sync_service import ReviewSyncService
from review_responder.schemas.location import (
    LocationListResponse,
    LocationResponse,
    LocationSyncResponse,
    ReviewSyncRequest
)
from review_responder.schemas.review import ReviewListResponse
from review_responder.schemas.sync import SyncReport

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("", response_model=LocationListResponse)
def list_locations(
    available: bool = Query(False, description="Only locations without an active subscription"),
    active: bool = Query(False, description="Only locations with an active subscription"),
    current_user: User = Depends(get_current_user),
    service: LocationService = Depends(get_location_service)
):
    """List the current user's locations"""
    locations = service.list_locations(current_user.id, available=available, active=active)

    return LocationListResponse(
        locations=[LocationResponse.model_validate(loc) for loc in locations],
        total=len(locations)
    )


@router.post("/sync", response_model=LocationSyncResponse)
async def sync_locations(
    account_id: Optional[str] = Query(None, description="Only import this Google account's locations"),
    current_user: User = Depends(get_current_user),
    service: LocationService = Depends(get_location_service)
):
    """
    Import locations from Google Business Profile

    Lists every Google account the user can access (or just **account_id**)
    and upserts their locations. New locations start inactive until they
    are subscribed.
    """
    try:
        result = await service.sync_locations(current_user.id, account_id=account_id)

        return LocationSyncResponse(
            locations=[LocationResponse.model_validate(loc) for loc in result["locations"]],
            synced=result["synced"],
            total_found=result["total_found"],
            accounts_checked=result["accounts_checked"],
            message=result["message"]
        )

    except GoogleAuthExpiredError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )
    except GooglePermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error syncing locations: {str(e)}"
        )


@router.post("/sync-reviews", response_model=SyncReport, response_model_exclude_none=True)
async def sync_reviews(
    request: ReviewSyncRequest,
    current_user: User = Depends(get_current_user),
    sync_service: ReviewSyncService = Depends(get_review_sync_service)
):
    """
    Sync reviews now for the user's locations (all, or **location_ids**)

    Unlike the nightly run, no notification email is sent.
    """
    try:
        return await sync_service.sync_locations_for_user(current_user.id, request.location_ids)

    except GoogleAuthExpiredError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error syncing reviews: {str(e)}"
        )


@router.get("/{location_id}/reviews", response_model=ReviewListResponse)
def list_location_reviews(
    location_id: uuid.UUID,
    review_status: Optional[str] = Query(None, alias="status", pattern="^(published|unpublished)$"),
    min_stars: Optional[int] = Query(None, ge=1, le=5),
    sort_by: str = Query("google_created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    """
    List a location's reviews with publish stats

    - **status**: published or unpublished (default: all)
    - **min_stars**: Minimum star rating
    - **sort_by**: google_created_at, star_rating, reviewer_name, published_at, created_at
    - **sort_order**: asc or desc
    """
    try:
        return service.list_reviews(
            location_id,
            current_user.id,
            status=review_status,
            min_stars=min_stars,
            sort_by=sort_by,
            sort_order=sort_order
        )

    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except AccessDeniedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
