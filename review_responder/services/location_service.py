"""Location import from Google and ownership checks"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from review_responder.core.exceptions import AccessDeniedError, NotFoundError
from review_responder.models.location import Location
from review_responder.models.subscription import Subscription
from review_responder.services.google_auth_service import GoogleAuthService
from review_responder.services.google_business_service import (
    GoogleBusinessService,
    extract_account_id,
    extract_location_id,
    format_address,
)

logger = logging.getLogger(__name__)


def get_owned_location(db: Session, location_id: uuid.UUID, user_id: uuid.UUID) -> Location:
    """
    Load a location and check it belongs to the user

    Raises:
        NotFoundError: No such location
        AccessDeniedError: Location belongs to someone else
    """
    location = db.query(Location).filter(Location.id == location_id).first()
    if location is None:
        raise NotFoundError("Location not found")
    if location.user_id != user_id:
        raise AccessDeniedError("You don't have access to this location")
    return location


class LocationService:
    """Service for importing and listing a user's locations"""

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

    def list_locations(self, user_id: uuid.UUID, available: bool = False, active: bool = False) -> List[Location]:
        """
        List the user's locations

        Args:
            available: Only locations without an active or trialing subscription
            active: Only locations with an active or trialing subscription
        """
        query = self.db.query(Location).outerjoin(
            Subscription, Subscription.location_id == Location.id
        ).filter(Location.user_id == user_id)

        if available:
            query = query.filter(or_(
                Subscription.id.is_(None),
                Subscription.status.notin_(Subscription.ACTIVE_STATUSES)
            ))
        elif active:
            query = query.filter(Subscription.status.in_(Subscription.ACTIVE_STATUSES))

        return query.order_by(Location.title).all()

    async def _collect_google_locations(
        self,
        accounts: List[Dict[str, Any]],
        account_id: Optional[str],
        access_token: str
    ) -> List[Tuple[Dict[str, Any], str, Optional[str]]]:
        """(raw location, account id, account name) for every listed location"""
        if account_id:
            account = next((a for a in accounts if extract_account_id(a.get("name", "")) == account_id), None)
            if account is None:
                raise ValueError(f"Google account {account_id} is not accessible with this login")
            targets = [account]
        else:
            targets = accounts

        found = []
        for account in targets:
            acc_id = extract_account_id(account.get("name", ""))
            acc_name = account.get("accountName")
            try:
                raw_locations = await self.business_client.list_locations(acc_id, access_token)
            except Exception as e:
                if account_id:
                    raise
                logger.error(f"Error fetching locations for account \"{acc_name}\" ({acc_id}): {str(e)}")
                continue

            logger.info(f"Account \"{acc_name}\" ({acc_id}) returned {len(raw_locations)} locations")
            found.extend((raw, acc_id, acc_name) for raw in raw_locations)

        return found

    def upsert_location(
        self,
        user_id: uuid.UUID,
        account_id: str,
        account_name: Optional[str],
        raw: Dict[str, Any]
    ) -> Location:
        """Insert or update one location keyed by (user, account, location id)"""
        google_location_id = extract_location_id(raw.get("name", ""))

        location = self.db.query(Location).filter(
            Location.user_id == user_id,
            Location.google_account_id == account_id,
            Location.google_location_id == google_location_id
        ).first()

        if location is None:
            location = Location(
                user_id=user_id,
                google_account_id=account_id,
                google_location_id=google_location_id,
                is_active=False
            )
            self.db.add(location)

        location.google_account_name = account_name
        location.title = raw.get("title") or google_location_id
        location.address = format_address(raw.get("storefrontAddress"))
        location.phone = (raw.get("phoneNumbers") or {}).get("primaryPhone")
        location.website = raw.get("websiteUri")
        location.maps_uri = (raw.get("metadata") or {}).get("mapsUri")

        self.db.commit()
        self.db.refresh(location)
        return location

    async def sync_locations(self, user_id: uuid.UUID, account_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Import the user's locations from Google

        Every location is stored under the account it was listed from.

        Raises:
            GoogleAuthExpiredError: Google credential unusable
            ValueError: account_id is not one of the user's accounts
        """
        access_token = await self.token_provider.get_valid_access_token(user_id)
        accounts = await self.business_client.list_accounts(access_token)
        logger.info(f"Google returned {len(accounts)} accounts for user {user_id}")

        google_locations = await self._collect_google_locations(accounts, account_id, access_token)

        synced: List[Location] = []
        for raw, acc_id, acc_name in google_locations:
            try:
                synced.append(self.upsert_location(user_id, acc_id, acc_name, raw))
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Error upserting location \"{raw.get('title')}\": {str(e)}")

        logger.info(f"Synced {len(synced)} of {len(google_locations)} locations for user {user_id}")

        return {
            "locations": synced,
            "synced": len(synced),
            "total_found": len(google_locations),
            "accounts_checked": len(accounts),
            "message": f"Synced {len(synced)} locations from {len(accounts)} Google accounts",
        }
