"""Google OAuth credential storage and access token refresh"""
import httpx
import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from review_responder.config import settings
from review_responder.core.exceptions import GoogleAPIError, GoogleAuthExpiredError
from review_responder.models.user import GoogleAccount
from review_responder.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

GOOGLE_SCOPES = [
    "openid",
    "email",
    "profile",
    "https://www.googleapis.com/auth/business.manage",
]


class GoogleAuthService:
    """
    Token provider for the Google Business Profile APIs.

    Hands out a usable access token for a user, refreshing it with the stored
    refresh token when it's expired or within the expiry margin.
    """

    def __init__(self, db: Session, http_client: Optional[httpx.AsyncClient] = None):
        self.db = db
        self.client_id = settings.GOOGLE_CLIENT_ID
        self.client_secret = settings.GOOGLE_CLIENT_SECRET
        self.token_url = settings.GOOGLE_TOKEN_URL
        self.expiry_margin = settings.GOOGLE_TOKEN_EXPIRY_MARGIN_SECONDS
        self._http_client = http_client

    def get_google_account(self, user_id: uuid.UUID) -> Optional[GoogleAccount]:
        return self.db.query(GoogleAccount).filter(GoogleAccount.user_id == user_id).first()

    def get_link_status(self, user_id: uuid.UUID) -> Dict[str, bool]:
        """Whether the user has linked Google and has a token on file"""
        account = self.get_google_account(user_id)
        return {
            "has_google_account": account is not None,
            "has_valid_token": bool(account and account.access_token),
        }

    async def _post_token_request(self, data: Dict[str, str]) -> httpx.Response:
        try:
            if self._http_client is not None:
                return await self._http_client.post(self.token_url, data=data)
            async with httpx.AsyncClient(timeout=settings.GOOGLE_HTTP_TIMEOUT) as client:
                return await client.post(self.token_url, data=data)
        except httpx.RequestError as e:
            logger.error(f"Google token endpoint request error: {str(e)}")
            raise GoogleAPIError(f"Failed to reach Google token endpoint: {str(e)}")

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Exchange a refresh token for a new access token

        Raises:
            GoogleAuthExpiredError: If Google rejects the refresh token
        """
        response = await self._post_token_request({
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        })

        if response.status_code != 200:
            logger.error(f"Token refresh failed: {response.status_code} - {response.text}")
            raise GoogleAuthExpiredError("Token refresh failed. Please re-authenticate.")

        return response.json()

    async def get_valid_access_token(self, user_id: uuid.UUID) -> str:
        """
        Get a valid Google access token for a user, refreshing if expired

        Raises:
            GoogleAuthExpiredError: No linked account, no refresh token, or refresh rejected
        """
        account = self.get_google_account(user_id)
        if account is None:
            raise GoogleAuthExpiredError("No Google account linked. Please connect your Google account.")

        if not account.is_access_token_expired(margin_seconds=self.expiry_margin):
            return account.access_token

        if not account.refresh_token:
            raise GoogleAuthExpiredError("No refresh token available. Please re-authenticate.")

        logger.info(f"Access token expired for user {user_id}, refreshing...")
        tokens = await self.refresh_access_token(account.refresh_token)

        access_token = tokens.get("access_token")
        if not access_token:
            raise GoogleAuthExpiredError("Token refresh returned no access token. Please re-authenticate.")

        account.access_token = access_token
        account.expires_at = utc_now() + timedelta(seconds=int(tokens.get("expires_in", 3600)))
        if tokens.get("refresh_token"):
            account.refresh_token = tokens["refresh_token"]
        self.db.commit()

        return access_token

    async def exchange_code(self, user_id: uuid.UUID, code: str, redirect_uri: str) -> GoogleAccount:
        """
        Exchange an OAuth authorization code and store the credential

        Google only returns a refresh token on the first consent, so an
        existing refresh token is kept when the response has none.
        """
        response = await self._post_token_request({
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        })

        if response.status_code != 200:
            logger.error(f"OAuth code exchange failed: {response.status_code} - {response.text}")
            raise ValueError("Google authorization failed. Please try connecting again.")

        tokens = response.json()

        account = self.get_google_account(user_id)
        if account is None:
            account = GoogleAccount(user_id=user_id)
            self.db.add(account)

        account.access_token = tokens.get("access_token")
        account.expires_at = utc_now() + timedelta(seconds=int(tokens.get("expires_in", 3600)))
        account.token_type = tokens.get("token_type")
        account.scope = tokens.get("scope")
        if tokens.get("refresh_token"):
            account.refresh_token = tokens["refresh_token"]

        self.db.commit()
        self.db.refresh(account)

        logger.info(f"Stored Google credential for user {user_id}")
        return account
