"""
Google Business Profile API client

The Business Profile APIs are split across three hosts:
1. Account Management: mybusinessaccountmanagement.googleapis.com (v1)
2. Business Information (locations): mybusinessbusinessinformation.googleapis.com (v1)
3. Reviews: mybusiness.googleapis.com (still v4)
"""
import httpx
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from review_responder.config import settings
from review_responder.core.exceptions import GoogleAPIError, GoogleAuthExpiredError, GooglePermissionError
from review_responder.utils.time_utils import parse_rfc3339

logger = logging.getLogger(__name__)

API_URLS = {
    "account_management": "https://mybusinessaccountmanagement.googleapis.com/v1",
    "business_information": "https://mybusinessbusinessinformation.googleapis.com/v1",
    "mybusiness": "https://mybusiness.googleapis.com/v4",
}

LOCATION_READ_MASK = "name,title,storefrontAddress,websiteUri,phoneNumbers,metadata"

STAR_RATINGS = {
    "ONE": 1,
    "TWO": 2,
    "THREE": 3,
    "FOUR": 4,
    "FIVE": 5,
}

_REVIEW_ID_RE = re.compile(r"reviews/(.+)$")
_LOCATION_ID_RE = re.compile(r"locations/([^/]+)")


def star_rating_to_int(rating: str) -> int:
    """Map Google's star rating enum (ONE..FIVE) to 1..5"""
    try:
        return STAR_RATINGS[rating]
    except KeyError:
        raise ValueError(f"Unknown star rating: {rating!r}")


def extract_review_id(name: str) -> str:
    """"accounts/x/locations/y/reviews/z" -> "z" """
    match = _REVIEW_ID_RE.search(name)
    return match.group(1) if match else name


def extract_account_id(name: str) -> str:
    """"accounts/123456" -> "123456" """
    return name.replace("accounts/", "", 1)


def extract_location_id(name: str) -> str:
    """"locations/789012" or "accounts/x/locations/789012" -> "789012" """
    match = _LOCATION_ID_RE.search(name)
    return match.group(1) if match else name


def format_address(address: Optional[Dict[str, Any]]) -> Optional[str]:
    """Flatten a storefrontAddress into a single line"""
    if not address:
        return None
    parts = list(address.get("addressLines") or [])
    parts += [address.get("locality"), address.get("administrativeArea"), address.get("postalCode")]
    formatted = ", ".join(p for p in parts if p)
    return formatted or None


@dataclass
class GoogleReview:
    """A review normalized from the v4 reviews API"""
    review_id: str
    star_rating: int
    reviewer_name: str = "Anonymous"
    reviewer_photo: Optional[str] = None
    comment: Optional[str] = None
    reply_comment: Optional[str] = None
    reply_time: Optional[datetime] = None
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "GoogleReview":
        reviewer = raw.get("reviewer") or {}
        reply = raw.get("reviewReply") or {}
        return cls(
            review_id=extract_review_id(raw["name"]),
            star_rating=star_rating_to_int(raw.get("starRating")),
            reviewer_name=reviewer.get("displayName") or "Anonymous",
            reviewer_photo=reviewer.get("profilePhotoUrl") or None,
            comment=raw.get("comment") or None,
            reply_comment=reply.get("comment") or None,
            reply_time=parse_rfc3339(reply.get("updateTime")),
            create_time=parse_rfc3339(raw.get("createTime")),
            update_time=parse_rfc3339(raw.get("updateTime")),
        )


@dataclass
class ReviewListResult:
    """All reviews of a location plus the aggregates Google reports"""
    reviews: List[GoogleReview] = field(default_factory=list)
    average_rating: Optional[float] = None
    total_review_count: Optional[int] = None


class GoogleBusinessService:
    """Client for the Google Business Profile review and location APIs"""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.page_size = settings.GOOGLE_REVIEWS_PAGE_SIZE
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=settings.GOOGLE_HTTP_TIMEOUT)
            self._owns_client = True
        return self._client

    async def close(self):
        """Close the HTTP client if this service created it"""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        url: str,
        access_token: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Make an authenticated request and map error responses

        Raises:
            GoogleAuthExpiredError: 401 from Google
            GooglePermissionError: 403 from Google
            GoogleAPIError: Any other failure
        """
        client = await self._get_client()
        try:
            response = await client.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {access_token}"}
            )
        except httpx.RequestError as e:
            logger.error(f"Google API request error [{method} {url}]: {str(e)}")
            raise GoogleAPIError(f"Failed to connect to Google: {str(e)}")

        if response.is_success:
            if not response.content:
                return {}
            return response.json()

        try:
            error = response.json().get("error", {})
        except ValueError:
            error = {}
        message = error.get("message") or "Unknown error"

        logger.error(f"Google API error [{response.status_code}] {method} {url}: {message}")

        if response.status_code == 401:
            raise GoogleAuthExpiredError()
        if response.status_code == 403:
            raise GooglePermissionError(f"Google permission denied: {message}")
        raise GoogleAPIError(f"Google API error ({response.status_code}): {message}", status_code=response.status_code)

    # ============================================
    # Accounts - Account Management API
    # ============================================

    async def list_accounts(self, access_token: str) -> List[Dict[str, Any]]:
        """List all Business Profile accounts the user can access"""
        url = f"{API_URLS['account_management']}/accounts"
        accounts: List[Dict[str, Any]] = []
        page_token = None

        while True:
            params = {"pageToken": page_token} if page_token else None
            data = await self._request("GET", url, access_token, params=params)
            accounts.extend(data.get("accounts", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        return accounts

    # ============================================
    # Locations - Business Information API
    # ============================================

    async def list_locations(self, account_id: str, access_token: str) -> List[Dict[str, Any]]:
        """List locations of one account (the readMask parameter is required)"""
        url = f"{API_URLS['business_information']}/accounts/{account_id}/locations"
        locations: List[Dict[str, Any]] = []
        page_token = None

        while True:
            params = {"readMask": LOCATION_READ_MASK, "pageSize": 100}
            if page_token:
                params["pageToken"] = page_token
            data = await self._request("GET", url, access_token, params=params)
            locations.extend(data.get("locations", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        return locations

    # ============================================
    # Reviews - My Business API (v4)
    # ============================================

    def _reviews_url(self, account_id: str, location_id: str) -> str:
        return f"{API_URLS['mybusiness']}/accounts/{account_id}/locations/{location_id}/reviews"

    async def list_reviews(
        self,
        account_id: str,
        location_id: str,
        access_token: str,
        page_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Fetch a single page of raw reviews"""
        params: Dict[str, Any] = {"pageSize": self.page_size}
        if page_token:
            params["pageToken"] = page_token

        return await self._request("GET", self._reviews_url(account_id, location_id), access_token, params=params)

    async def list_all_reviews(self, account_id: str, location_id: str, access_token: str) -> ReviewListResult:
        """
        Fetch every review of a location, following pagination

        Args:
            account_id: Google account id (without the "accounts/" prefix)
            location_id: Google location id (without the "locations/" prefix)
            access_token: Valid OAuth access token

        Returns:
            ReviewListResult with normalized reviews and Google's aggregates
            (None when Google doesn't report them)

        Raises:
            GoogleAuthExpiredError: The token was rejected
            GoogleAPIError: Any other failure, with the location in the message
        """
        result = ReviewListResult()
        page_token = None
        context = f"accounts/{account_id}/locations/{location_id}"

        try:
            while True:
                page = await self.list_reviews(account_id, location_id, access_token, page_token)

                for raw in page.get("reviews", []):
                    try:
                        result.reviews.append(GoogleReview.from_api(raw))
                    except ValueError as e:
                        logger.warning(f"Skipping review {raw.get('name')} of {context}: {str(e)}")

                if page.get("averageRating") is not None:
                    result.average_rating = float(page["averageRating"])
                if page.get("totalReviewCount") is not None:
                    result.total_review_count = int(page["totalReviewCount"])

                page_token = page.get("nextPageToken")
                if not page_token:
                    break
        except GoogleAuthExpiredError:
            raise
        except GooglePermissionError as e:
            raise GooglePermissionError(f"Failed to fetch reviews for {context}: {str(e)}") from e
        except GoogleAPIError as e:
            raise GoogleAPIError(f"Failed to fetch reviews for {context}: {str(e)}", status_code=e.status_code) from e

        return result

    async def reply_to_review(
        self,
        account_id: str,
        location_id: str,
        review_id: str,
        comment: str,
        access_token: str
    ) -> Dict[str, Any]:
        """Create or replace the owner reply; returns {"comment", "updateTime"}"""
        url = f"{self._reviews_url(account_id, location_id)}/{review_id}/reply"
        return await self._request("PUT", url, access_token, json={"comment": comment})

    async def delete_reply(self, account_id: str, location_id: str, review_id: str, access_token: str) -> None:
        """Delete the owner reply of a review"""
        url = f"{self._reviews_url(account_id, location_id)}/{review_id}/reply"
        await self._request("DELETE", url, access_token)
