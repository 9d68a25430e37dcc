"""Review moderation and owner replies"""
import logging
import uuid
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from review_responder.core.exceptions import AccessDeniedError, NotFoundError
from review_responder.models.location import Location
from review_responder.models.review import Review
from review_responder.services.google_auth_service import GoogleAuthService
from review_responder.services.google_business_service import GoogleBusinessService
from review_responder.services.location_service import get_owned_location
from review_responder.utils.time_utils import parse_rfc3339, utc_now

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "google_created_at": Review.google_created_at,
    "star_rating": Review.star_rating,
    "reviewer_name": Review.reviewer_name,
    "published_at": Review.published_at,
    "created_at": Review.created_at,
}


class ReviewService:
    """Service for listing, publishing and replying to reviews"""

    def __init__(
        self,
        db: Session,
        token_provider: Optional[GoogleAuthService] = None,
        business_client: Optional[GoogleBusinessService] = None
    ):
        self.db = db
        self.token_provider = token_provider or GoogleAuthService(db)
        self.business_client = business_client or GoogleBusinessService()

    async def close(self):
        """Release the Google Business Profile HTTP client"""
        await self.business_client.close()

    def get_owned_review(self, review_id: uuid.UUID, user_id: uuid.UUID) -> Review:
        """
        Raises:
            NotFoundError: No such review
            AccessDeniedError: Review's location belongs to someone else
        """
        review = self.db.query(Review).filter(Review.id == review_id).first()
        if review is None:
            raise NotFoundError("Review not found")
        if review.location.user_id != user_id:
            raise AccessDeniedError("You don't have access to this review")
        return review

    def get_stats(self, location_id: uuid.UUID) -> Dict[str, int]:
        rows = self.db.query(Review.is_published, func.count(Review.id)).filter(
            Review.location_id == location_id
        ).group_by(Review.is_published).all()
        counts = {bool(published): count for published, count in rows}

        featured = self.db.query(func.count(Review.id)).filter(
            Review.location_id == location_id,
            Review.is_featured == True  # noqa: E712
        ).scalar() or 0

        published = counts.get(True, 0)
        unpublished = counts.get(False, 0)
        return {
            "total": published + unpublished,
            "published": published,
            "unpublished": unpublished,
            "featured": featured,
        }

    def list_reviews(
        self,
        location_id: uuid.UUID,
        user_id: uuid.UUID,
        status: Optional[str] = None,
        min_stars: Optional[int] = None,
        sort_by: str = "google_created_at",
        sort_order: str = "desc"
    ) -> Dict[str, Any]:
        """
        List a location's reviews with publish stats

        Args:
            status: "published", "unpublished" or None for all
            min_stars: Only reviews with at least this many stars
            sort_by: One of SORT_FIELDS
            sort_order: "asc" or "desc"
        """
        location = get_owned_location(self.db, location_id, user_id)

        if sort_by not in SORT_FIELDS:
            raise ValueError(f"Invalid sort field: {sort_by}")
        if sort_order not in ("asc", "desc"):
            raise ValueError(f"Invalid sort order: {sort_order}")

        query = self.db.query(Review).filter(Review.location_id == location.id)
        if status == "published":
            query = query.filter(Review.is_published == True)  # noqa: E712
        elif status == "unpublished":
            query = query.filter(Review.is_published == False)  # noqa: E712
        if min_stars is not None:
            query = query.filter(Review.star_rating >= min_stars)

        column = SORT_FIELDS[sort_by]
        query = query.order_by(column.desc() if sort_order == "desc" else column.asc())

        return {
            "reviews": query.all(),
            "stats": self.get_stats(location.id),
            "location_name": location.title,
        }

    def list_inbox(
        self,
        user_id: uuid.UUID,
        location_id: Optional[uuid.UUID] = None,
        rating: Optional[int] = None,
        replied: Optional[bool] = None
    ) -> Dict[str, Any]:
        """
        List reviews across all of the user's locations, newest first

        Args:
            location_id: Only this location (must belong to the user)
            rating: Only reviews with exactly this many stars
            replied: True for answered reviews, False for unanswered

        Stats cover the user's (or the location's) reviews regardless of
        the rating and replied filters.
        """
        scope = [Location.user_id == user_id]
        if location_id is not None:
            location = get_owned_location(self.db, location_id, user_id)
            scope.append(Review.location_id == location.id)

        query = self.db.query(Review).join(Location, Review.location_id == Location.id).options(
            joinedload(Review.location)
        ).filter(*scope)
        if rating is not None:
            query = query.filter(Review.star_rating == rating)
        if replied is True:
            query = query.filter(Review.review_reply.isnot(None))
        elif replied is False:
            query = query.filter(Review.review_reply.is_(None))

        reviews = query.order_by(Review.google_created_at.desc()).all()
        return {"reviews": reviews, "stats": self.get_inbox_stats(scope)}

    def get_inbox_stats(self, scope: List[Any]) -> Dict[str, Any]:
        rows = self.db.query(Review.star_rating, func.count(Review.id)).join(
            Location, Review.location_id == Location.id
        ).filter(*scope).group_by(Review.star_rating).all()
        breakdown = {stars: count for stars, count in rows}

        total = sum(breakdown.values())
        weighted = sum(stars * count for stars, count in breakdown.items())
        average = round(weighted / total, 1) if total else 0

        unreplied = self.db.query(func.count(Review.id)).join(
            Location, Review.location_id == Location.id
        ).filter(*scope, Review.review_reply.is_(None)).scalar() or 0

        return {
            "total_reviews": total,
            "average_rating": average,
            "rating_breakdown": breakdown,
            "unreplied": unreplied,
        }

    def update_flags(
        self,
        review_id: uuid.UUID,
        user_id: uuid.UUID,
        is_published: Optional[bool] = None,
        is_featured: Optional[bool] = None
    ) -> Review:
        """Set publish/feature flags. Featuring an unpublished review publishes it."""
        review = self.get_owned_review(review_id, user_id)

        if is_published is True and not review.is_published:
            review.publish()
        elif is_published is False:
            review.is_published = False
            review.published_at = None

        if is_featured is not None:
            review.is_featured = is_featured
            if is_featured and not review.is_published:
                review.publish()

        self.db.commit()
        self.db.refresh(review)
        return review

    def bulk_publish(
        self,
        location_id: uuid.UUID,
        user_id: uuid.UUID,
        action: str,
        min_stars: Optional[int] = None,
        review_ids: Optional[List[uuid.UUID]] = None
    ) -> int:
        """
        Publish or unpublish many reviews of one location

        Returns:
            Number of reviews updated
        """
        location = get_owned_location(self.db, location_id, user_id)
        query = self.db.query(Review).filter(Review.location_id == location.id)
        publish_values = {Review.is_published: True, Review.published_at: utc_now()}
        unpublish_values = {Review.is_published: False, Review.published_at: None, Review.is_featured: False}

        if action == "publish_all":
            query = query.filter(Review.is_published == False)  # noqa: E712
            values = publish_values
        elif action == "unpublish_all":
            values = unpublish_values
        elif action == "publish_by_stars":
            if min_stars is None or not 1 <= min_stars <= 5:
                raise ValueError("Invalid min_stars (1-5)")
            query = query.filter(Review.star_rating >= min_stars, Review.is_published == False)  # noqa: E712
            values = publish_values
        elif action in ("publish_selected", "unpublish_selected"):
            if not review_ids:
                raise ValueError("Review IDs required")
            query = query.filter(Review.id.in_(review_ids))
            if action == "publish_selected":
                query = query.filter(Review.is_published == False)  # noqa: E712
                values = publish_values
            else:
                values = unpublish_values
        else:
            raise ValueError(f"Invalid action: {action}")

        updated = query.update(values, synchronize_session=False)
        self.db.commit()

        logger.info(f"Bulk {action} on location {location.id}: {updated} reviews updated")
        return updated

    async def post_reply(self, review_id: uuid.UUID, user_id: uuid.UUID, comment: str) -> Review:
        """
        Post (or replace) the owner reply on Google, then store it locally

        Raises:
            GoogleAuthExpiredError: Google credential unusable
            GoogleAPIError: Google rejected the reply; nothing is stored
        """
        review = self.get_owned_review(review_id, user_id)
        location = review.location

        access_token = await self.token_provider.get_valid_access_token(user_id)
        result = await self.business_client.reply_to_review(
            location.google_account_id,
            location.google_location_id,
            review.google_review_id,
            comment,
            access_token
        )

        review.review_reply = comment
        review.reply_time = parse_rfc3339(result.get("updateTime")) or utc_now()
        self.db.commit()
        self.db.refresh(review)

        logger.info(f"Reply posted to review {review.id} on {location.title}")
        return review

    async def delete_reply(self, review_id: uuid.UUID, user_id: uuid.UUID) -> Review:
        """Delete the owner reply on Google, then clear it locally"""
        review = self.get_owned_review(review_id, user_id)
        location = review.location

        access_token = await self.token_provider.get_valid_access_token(user_id)
        await self.business_client.delete_reply(
            location.google_account_id,
            location.google_location_id,
            review.google_review_id,
            access_token
        )

        review.review_reply = None
        review.reply_time = None
        self.db.commit()
        self.db.refresh(review)

        logger.info(f"Reply deleted from review {review.id}")
        return review
