"""
Review synchronization

ReviewReconciler merges a fetched review list into the local store by
(location, google review id). ReviewSyncService drives the nightly run over
every location with an active or trialing subscription.
"""
import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from review_responder.models.location import Location
from review_responder.models.review import Review
from review_responder.models.subscription import Subscription
from review_responder.schemas.sync import LocationSyncResult, SyncReport
from review_responder.services.email_templates import NewReviewSummary
from review_responder.services.google_auth_service import GoogleAuthService
from review_responder.services.google_business_service import GoogleBusinessService, GoogleReview, ReviewListResult
from review_responder.services.notification_service import NotificationService
from review_responder.services.widget_service import WidgetService
from review_responder.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

TOKEN_ERROR_MESSAGE = "Failed to get Google access token"


@dataclass
class LocationSyncOutcome:
    """What reconciling one location produced"""
    synced: int = 0
    new_reviews: List[NewReviewSummary] = field(default_factory=list)


class ReviewReconciler:
    """Upserts fetched reviews and refreshes a location's cached aggregates"""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, location_id: uuid.UUID, google_review_id: str) -> Optional[Review]:
        return self.db.query(Review).filter(
            Review.location_id == location_id,
            Review.google_review_id == google_review_id
        ).first()

    @staticmethod
    def _apply(review: Review, upstream: GoogleReview):
        """Copy upstream fields; local publish/feature flags are left alone"""
        review.reviewer_name = upstream.reviewer_name
        review.reviewer_photo = upstream.reviewer_photo
        review.star_rating = upstream.star_rating
        review.comment = upstream.comment
        review.review_reply = upstream.reply_comment
        review.reply_time = upstream.reply_time if upstream.reply_comment else None
        review.google_created_at = upstream.create_time
        review.google_updated_at = upstream.update_time

    @staticmethod
    def should_auto_publish(location: Location, star_rating: int) -> bool:
        """
        Publish rule for newly seen reviews

        New reviews are published unless the location's auto-publish
        threshold is on and the rating falls below it. Stored and default
        settings are read the same way.
        """
        widget_settings = WidgetService.settings_dict(location)
        if widget_settings["auto_publish"]:
            return star_rating >= widget_settings["auto_publish_stars"]
        return True

    def upsert_review(self, location: Location, upstream: GoogleReview) -> bool:
        """
        Insert or update one review and commit

        Returns:
            True if the review was not stored before
        """
        existing = self._find(location.id, upstream.review_id)
        if existing is not None:
            self._apply(existing, upstream)
            self.db.commit()
            return False

        review = Review(location_id=location.id, google_review_id=upstream.review_id)
        self._apply(review, upstream)
        if self.should_auto_publish(location, upstream.star_rating):
            review.publish()
        self.db.add(review)

        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent run inserted it first; fall back to an update
            self.db.rollback()
            existing = self._find(location.id, upstream.review_id)
            if existing is None:
                raise
            self._apply(existing, upstream)
            self.db.commit()
            return False

        return True

    def update_location_stats(self, location: Location, result: ReviewListResult):
        """Store Google's aggregates, or compute them from the fetched reviews"""
        if result.total_review_count is not None:
            location.total_reviews = result.total_review_count
        else:
            location.total_reviews = len(result.reviews)

        if result.average_rating is not None:
            location.average_rating = result.average_rating
        elif result.reviews:
            total_stars = sum(r.star_rating for r in result.reviews)
            location.average_rating = round(total_stars / len(result.reviews), 2)
        else:
            location.average_rating = None

        location.last_synced_at = utc_now()
        self.db.commit()

    def reconcile(self, location: Location, result: ReviewListResult) -> LocationSyncOutcome:
        """Merge a location's fetched reviews into the database"""
        outcome = LocationSyncOutcome()
        location_title = location.title

        for upstream in result.reviews:
            is_new = self.upsert_review(location, upstream)
            outcome.synced += 1
            if is_new:
                outcome.new_reviews.append(NewReviewSummary(
                    location_title=location_title,
                    reviewer_name=upstream.reviewer_name,
                    star_rating=upstream.star_rating,
                    comment=upstream.comment
                ))

        self.update_location_stats(location, result)
        return outcome


class ReviewSyncService:
    """
    Sync driver for the scheduled review sync.

    Locations are processed one user at a time so the token provider is hit
    once per user. A failed token fails only that user's locations; a failed
    location fails only itself. Nothing is retried within a run.
    """

    def __init__(
        self,
        db: Session,
        token_provider: GoogleAuthService,
        review_source: GoogleBusinessService,
        notifier: NotificationService,
        reconciler: Optional[ReviewReconciler] = None
    ):
        self.db = db
        self.token_provider = token_provider
        self.review_source = review_source
        self.notifier = notifier
        self.reconciler = reconciler or ReviewReconciler(db)

    async def close(self):
        """Release the Google review source HTTP client"""
        await self.review_source.close()

    def get_syncable_locations(self) -> List[Location]:
        """Active locations whose subscription is active or trialing"""
        return self.db.query(Location).join(
            Subscription, Subscription.location_id == Location.id
        ).options(
            joinedload(Location.user)
        ).filter(
            Location.is_active == True,  # noqa: E712
            Subscription.status.in_(Subscription.ACTIVE_STATUSES)
        ).order_by(Location.title).all()

    @staticmethod
    def group_by_user(locations: Iterable[Location]) -> "OrderedDict[uuid.UUID, List[Location]]":
        grouped: "OrderedDict[uuid.UUID, List[Location]]" = OrderedDict()
        for location in locations:
            grouped.setdefault(location.user_id, []).append(location)
        return grouped

    async def sync_location(self, location: Location, access_token: str) -> LocationSyncOutcome:
        """Fetch and reconcile one location"""
        result = await self.review_source.list_all_reviews(
            location.google_account_id,
            location.google_location_id,
            access_token
        )
        return self.reconciler.reconcile(location, result)

    async def _sync_locations(
        self,
        locations: List[Location],
        access_token: str
    ) -> Tuple[List[LocationSyncResult], List[NewReviewSummary]]:
        results: List[LocationSyncResult] = []
        new_reviews: List[NewReviewSummary] = []

        for location in locations:
            title = location.title
            location_id = str(location.id)
            try:
                outcome = await self.sync_location(location, access_token)
            except Exception as e:
                logger.error(f"Review sync: error syncing {title}: {str(e)}")
                self.db.rollback()
                results.append(LocationSyncResult(location=title, location_id=location_id, error=str(e)))
                continue

            results.append(LocationSyncResult(
                location=title,
                location_id=location_id,
                new_reviews=len(outcome.new_reviews),
                total_synced=outcome.synced
            ))
            new_reviews.extend(outcome.new_reviews)
            logger.info(f"Review sync: {title} - {outcome.synced} synced, {len(outcome.new_reviews)} new")

        return results, new_reviews

    async def _sync_user(self, user_id: uuid.UUID, locations: List[Location]) -> List[LocationSyncResult]:
        user = locations[0].user
        email = user.email if user else None
        name = user.display_name if user else None

        try:
            access_token = await self.token_provider.get_valid_access_token(user_id)
        except Exception as e:
            logger.error(f"Review sync: failed to get access token for user {user_id}: {str(e)}")
            self.db.rollback()
            return [
                LocationSyncResult(location=loc.title, location_id=str(loc.id), error=TOKEN_ERROR_MESSAGE)
                for loc in locations
            ]

        results, new_reviews = await self._sync_locations(locations, access_token)

        if new_reviews and email:
            try:
                await self.notifier.notify_new_reviews(email, name, new_reviews)
            except Exception as e:
                logger.error(f"Review sync: failed to notify {email}: {str(e)}")

        return results

    @staticmethod
    def _build_report(results: List[LocationSyncResult], locations_processed: int) -> SyncReport:
        total_new = sum(r.new_reviews for r in results)
        total_synced = sum(r.total_synced for r in results)
        return SyncReport(
            message=f"Synced {total_synced} reviews across {locations_processed} locations ({total_new} new)",
            total_synced=total_synced,
            total_new=total_new,
            locations_processed=locations_processed,
            results=results
        )

    async def run_sync(self) -> SyncReport:
        """
        Sync every eligible location and email each user a digest of new reviews.

        Only a failure to load the locations propagates; everything else ends
        up as an error entry in the report.
        """
        logger.info("Review sync: starting")

        locations = self.get_syncable_locations()
        logger.info(f"Review sync: found {len(locations)} active locations to sync")

        if not locations:
            return SyncReport(message="No active locations to sync")

        results: List[LocationSyncResult] = []
        for user_id, user_locations in self.group_by_user(locations).items():
            results.extend(await self._sync_user(user_id, user_locations))

        report = self._build_report(results, len(locations))
        logger.info(f"Review sync: complete - {report.message}")
        return report

    async def sync_locations_for_user(
        self,
        user_id: uuid.UUID,
        location_ids: Optional[List[uuid.UUID]] = None
    ) -> SyncReport:
        """
        On-demand sync of a user's own locations (no notification email)

        Raises:
            ValueError: The user has no matching locations
            GoogleAuthExpiredError: The user's Google credential is unusable
        """
        query = self.db.query(Location).filter(Location.user_id == user_id)
        if location_ids:
            query = query.filter(Location.id.in_(location_ids))
        locations = query.order_by(Location.title).all()

        if not locations:
            raise ValueError("No locations found. Please sync locations first.")

        access_token = await self.token_provider.get_valid_access_token(user_id)
        results, _ = await self._sync_locations(locations, access_token)
        return self._build_report(results, len(locations))


def build_review_sync_service(db: Session) -> ReviewSyncService:
    """Wire the sync driver with its production collaborators"""
    return ReviewSyncService(
        db=db,
        token_provider=GoogleAuthService(db),
        review_source=GoogleBusinessService(),
        notifier=NotificationService()
    )
