"""Review API endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional
import uuid

from review_responder.core.dependencies import get_current_user, get_review_service
from review_responder.core.exceptions import AccessDeniedError, GoogleAuthExpiredError, GooglePermissionError, NotFoundError
from review_responder.models.user import User
from review_responder.services.review_service import ReviewService
from review_responder.schemas.review import (
    ReviewInboxResponse,
    ReviewResponse,
    ReviewFlagsUpdate,
    BulkPublishRequest,
    BulkPublishResponse,
    ReplyRequest,
    ReplyResponse
)

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("", response_model=ReviewInboxResponse)
def list_reviews(
    location_id: Optional[uuid.UUID] = Query(None, description="Only this location's reviews"),
    rating: Optional[int] = Query(None, ge=1, le=5, description="Exact star rating"),
    replied: Optional[bool] = Query(None, description="true: answered reviews, false: unanswered"),
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    """
    Review inbox across all of the user's locations, newest first

    Stats (total, average, per-star breakdown, unreplied) cover the user's
    reviews, or one location's when **location_id** is given.
    """
    try:
        return service.list_inbox(current_user.id, location_id=location_id, rating=rating, replied=replied)

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


@router.patch("/{review_id}", response_model=ReviewResponse)
def update_review_flags(
    review_id: uuid.UUID,
    request: ReviewFlagsUpdate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    """
    Publish, unpublish, feature or unfeature a review

    Featuring an unpublished review also publishes it.
    """
    try:
        review = service.update_flags(
            review_id,
            current_user.id,
            is_published=request.is_published,
            is_featured=request.is_featured
        )
        return ReviewResponse.model_validate(review)

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


@router.post("/bulk-publish", response_model=BulkPublishResponse)
def bulk_publish(
    request: BulkPublishRequest,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    """
    Publish or unpublish many reviews of a location

    Actions:
    - **publish_all** / **unpublish_all**
    - **publish_by_stars**: requires min_stars (1-5)
    - **publish_selected** / **unpublish_selected**: requires review_ids
    """
    try:
        updated = service.bulk_publish(
            request.location_id,
            current_user.id,
            request.action,
            min_stars=request.min_stars,
            review_ids=request.review_ids
        )
        return BulkPublishResponse(success=True, action=request.action, updated_count=updated)

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


@router.post("/{review_id}/reply", response_model=ReplyResponse)
async def post_reply(
    review_id: uuid.UUID,
    request: ReplyRequest,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    """Post or replace the owner reply on Google"""
    try:
        review = await service.post_reply(review_id, current_user.id, request.comment)
        return ReplyResponse(
            success=True,
            message=f"Reply posted to review on \"{review.location.title}\"",
            review=ReviewResponse.model_validate(review)
        )

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except GoogleAuthExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google authentication expired. Please sign out and sign in again."
        )
    except GooglePermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error posting reply: {str(e)}"
        )


@router.delete("/{review_id}/reply", response_model=ReplyResponse)
async def delete_reply(
    review_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    """Delete the owner reply on Google"""
    try:
        review = await service.delete_reply(review_id, current_user.id)
        return ReplyResponse(
            success=True,
            message="Reply deleted",
            review=ReviewResponse.model_validate(review)
        )

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except GoogleAuthExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google authentication expired. Please sign out and sign in again."
        )
    except GooglePermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error deleting reply: {str(e)}"
        )
