"""Shared fixtures: in-memory database, model factories and fake collaborators"""
import os

os.environ["DATABASE_URI"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ["SENDGRID_API_KEY"] = ""
os.environ["CRON_SECRET"] = ""
os.environ["REVIEW_SYNC_SCHEDULE_ENABLED"] = "false"

from datetime import timedelta  # noqa: E402
from typing import Dict, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from review_responder import models  # noqa: E402,F401
from review_responder.database import Base  # noqa: E402
from review_responder.models import GoogleAccount, Location, Review, Subscription, User, WidgetSettings  # noqa: E402
from review_responder.services.google_business_service import GoogleReview, ReviewListResult  # noqa: E402
from review_responder.utils.time_utils import utc_now  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# ============================================
# Factories
# ============================================

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(email: Optional[str] = None, name: Optional[str] = "Owner", with_google: bool = True) -> User:
        counter["n"] += 1
        user = User(email=email or f"owner{counter['n']}@example.com", display_name=name)
        db.add(user)
        db.commit()
        if with_google:
            db.add(GoogleAccount(
                user_id=user.id,
                access_token=f"token-{counter['n']}",
                refresh_token=f"refresh-{counter['n']}",
                expires_at=utc_now() + timedelta(hours=1)
            ))
            db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_location(db):
    counter = {"n": 0}

    def _make(
        user: User,
        title: str = "Main Street Bakery",
        account_id: str = "1111",
        google_location_id: Optional[str] = None,
        subscription_status: Optional[str] = "active",
        widget: Optional[Dict] = None
    ) -> Location:
        counter["n"] += 1
        location = Location(
            user_id=user.id,
            google_account_id=account_id,
            google_location_id=google_location_id or f"loc-{counter['n']}",
            title=title,
            is_active=subscription_status in Subscription.ACTIVE_STATUSES
        )
        db.add(location)
        db.commit()

        if subscription_status is not None:
            db.add(Subscription(
                user_id=user.id,
                location_id=location.id,
                stripe_subscription_id=f"sub_{counter['n']}",
                status=subscription_status
            ))
        if widget is not None:
            db.add(WidgetSettings(location_id=location.id, **widget))
        db.commit()
        db.refresh(location)
        return location

    return _make


@pytest.fixture
def make_review(db):
    def _make(location: Location, google_review_id: str, stars: int = 5, **kwargs) -> Review:
        review = Review(
            location_id=location.id,
            google_review_id=google_review_id,
            reviewer_name=kwargs.pop("reviewer_name", "Pat"),
            star_rating=stars,
            **kwargs
        )
        db.add(review)
        db.commit()
        db.refresh(review)
        return review

    return _make


def google_review(review_id: str, stars: int = 5, name: str = "Pat", comment: Optional[str] = "Great!", **kwargs) -> GoogleReview:
    return GoogleReview(review_id=review_id, star_rating=stars, reviewer_name=name, comment=comment, **kwargs)


# ============================================
# Fake collaborators
# ============================================

class FakeTokenProvider:
    """Returns a canned token per user, or raises the canned exception"""

    def __init__(self, tokens: Optional[Dict] = None, default: Optional[str] = "good-token"):
        self.tokens = tokens or {}
        self.default = default
        self.calls: List = []

    async def get_valid_access_token(self, user_id):
        self.calls.append(user_id)
        value = self.tokens.get(user_id, self.default)
        if isinstance(value, Exception):
            raise value
        return value


class FakeReviewSource:
    """Serves ReviewListResults keyed by (account id, location id)"""

    def __init__(self, results: Optional[Dict[Tuple[str, str], object]] = None):
        self.results = results or {}
        self.calls: List[Tuple[str, str, str]] = []
        self.closed = False

    async def list_all_reviews(self, account_id, location_id, access_token):
        self.calls.append((account_id, location_id, access_token))
        value = self.results.get((account_id, location_id), ReviewListResult())
        if isinstance(value, Exception):
            raise value
        return value

    async def close(self):
        self.closed = True


class FakeNotifier:
    def __init__(self, error: Optional[Exception] = None):
        self.calls: List = []
        self.error = error

    async def notify_new_reviews(self, email, name, new_reviews):
        self.calls.append((email, name, list(new_reviews)))
        if self.error is not None:
            raise self.error
        return True


# ============================================
# API client
# ============================================

@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from review_responder.database import get_db
    from review_responder.main import app

    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user: User) -> Dict[str, str]:
    from review_responder.core.security import create_access_token
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}
