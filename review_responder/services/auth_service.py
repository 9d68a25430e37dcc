"""Account registration and login"""
import logging
from typing import Optional
from sqlalchemy.orm import Session

from review_responder.core.security import create_access_token, get_password_hash, verify_password
from review_responder.models.user import User
from review_responder.schemas.auth import TokenResponse, UserResponse
from review_responder.services.email_service import EmailService
from review_responder.services.email_templates import BRAND_NAME, render_welcome_email
from review_responder.services.google_auth_service import GoogleAuthService
from review_responder.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class AuthService:
    """Service for email/password accounts"""

    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        self.db = db
        self.email_service = email_service or EmailService()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    async def register(self, email: str, password: str, name: Optional[str] = None) -> User:
        """
        Create an account and send the welcome email

        Raises:
            ValueError: Email already registered
        """
        email = email.strip().lower()
        if self.get_user_by_email(email):
            raise ValueError("An account with this email already exists")

        user = User(
            email=email,
            password_hash=get_password_hash(password),
            display_name=name or email.split("@")[0],
            last_login=utc_now()
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Registered new user {user.id}")

        try:
            await self.email_service.send_email(
                to=user.email,
                subject=f"Welcome to {BRAND_NAME}",
                html=render_welcome_email(user.display_name),
                to_name=user.display_name
            )
        except Exception as e:
            logger.error(f"Failed to send welcome email to {user.email}: {str(e)}")

        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the user if the credentials match, else None"""
        user = self.get_user_by_email(email)
        if user is None or not user.is_active:
            return None
        if not verify_password(password, user.password_hash):
            return None

        user.last_login = utc_now()
        self.db.commit()
        return user

    def build_user_response(self, user: User) -> UserResponse:
        link_status = GoogleAuthService(self.db).get_link_status(user.id)
        response = UserResponse.model_validate(user)
        response.has_google_account = link_status["has_google_account"]
        response.has_valid_token = link_status["has_valid_token"]
        return response

    def build_token_response(self, user: User) -> TokenResponse:
        return TokenResponse(
            access_token=create_access_token(str(user.id)),
            user=self.build_user_response(user)
        )
