"""Tests for review moderation and replies"""
import uuid
from datetime import datetime

import pytest

from conftest import FakeTokenProvider, auth_headers
from review_responder.core.exceptions import AccessDeniedError, GoogleAPIError, NotFoundError
from review_responder.models import Review
from review_responder.services.review_service import ReviewService


class FakeBusinessClient:
    def __init__(self, error=None):
        self.error = error
        self.replies = []
        self.deleted = []
        self.closed = False

    async def reply_to_review(self, account_id, location_id, review_id, comment, access_token):
        if self.error is not None:
            raise self.error
        self.replies.append((account_id, location_id, review_id, comment, access_token))
        return {"comment": comment, "updateTime": "2024-06-01T12:00:00Z"}

    async def delete_reply(self, account_id, location_id, review_id, access_token):
        if self.error is not None:
            raise self.error
        self.deleted.append((account_id, location_id, review_id))

    async def close(self):
        self.closed = True


def service_for(db, business_client=None):
    return ReviewService(db, token_provider=FakeTokenProvider(), business_client=business_client or FakeBusinessClient())


@pytest.fixture
def owner_location(make_user, make_location, make_review):
    user = make_user()
    location = make_location(user, title="Corner Deli", google_location_id="L9")
    make_review(location, "r1", stars=5, google_created_at=datetime(2024, 1, 3))
    make_review(location, "r2", stars=4, google_created_at=datetime(2024, 1, 2))
    make_review(location, "r3", stars=2, google_created_at=datetime(2024, 1, 1))
    return user, location


def review_by_id(db, google_review_id):
    return db.query(Review).filter(Review.google_review_id == google_review_id).one()


# ============================================
# Listing
# ============================================

def test_list_reviews_newest_first_with_stats(db, owner_location):
    user, location = owner_location

    result = service_for(db).list_reviews(location.id, user.id)

    assert [r.google_review_id for r in result["reviews"]] == ["r1", "r2", "r3"]
    assert result["location_name"] == "Corner Deli"
    assert result["stats"] == {"total": 3, "published": 0, "unpublished": 3, "featured": 0}


def test_list_reviews_filters_and_sorting(db, owner_location):
    user, location = owner_location
    service = service_for(db)
    service.update_flags(review_by_id(db, "r2").id, user.id, is_published=True)

    published = service.list_reviews(location.id, user.id, status="published")
    high = service.list_reviews(location.id, user.id, min_stars=4, sort_by="star_rating", sort_order="asc")

    assert [r.google_review_id for r in published["reviews"]] == ["r2"]
    assert [r.google_review_id for r in high["reviews"]] == ["r2", "r1"]


def test_list_reviews_rejects_unknown_sort_field(db, owner_location):
    user, location = owner_location

    with pytest.raises(ValueError):
        service_for(db).list_reviews(location.id, user.id, sort_by="comment")


def test_other_users_location_is_denied(db, owner_location, make_user):
    _, location = owner_location
    intruder = make_user()

    with pytest.raises(AccessDeniedError):
        service_for(db).list_reviews(location.id, intruder.id)


def test_unknown_review_is_not_found(db, owner_location):
    user, _ = owner_location

    with pytest.raises(NotFoundError):
        service_for(db).get_owned_review(uuid.uuid4(), user.id)


# ============================================
# Flags
# ============================================

def test_unpublish_keeps_featured_flag(db, owner_location):
    user, _ = owner_location
    service = service_for(db)
    review_id = review_by_id(db, "r1").id

    service.update_flags(review_id, user.id, is_featured=True)
    review = service.update_flags(review_id, user.id, is_published=False)

    assert review.is_published is False
    assert review.published_at is None
    assert review.is_featured is True


def test_featuring_unpublished_review_publishes_it(db, owner_location):
    user, _ = owner_location

    review = service_for(db).update_flags(review_by_id(db, "r3").id, user.id, is_featured=True)

    assert review.is_featured is True
    assert review.is_published is True
    assert review.published_at is not None


def test_republish_keeps_original_published_at(db, owner_location):
    user, _ = owner_location
    service = service_for(db)
    review_id = review_by_id(db, "r1").id

    first = service.update_flags(review_id, user.id, is_published=True).published_at
    second = service.update_flags(review_id, user.id, is_published=True).published_at

    assert first == second


# ============================================
# Bulk actions
# ============================================

def test_publish_by_stars_only_touches_matching_reviews(db, owner_location):
    user, location = owner_location

    updated = service_for(db).bulk_publish(location.id, user.id, "publish_by_stars", min_stars=4)

    assert updated == 2
    assert review_by_id(db, "r1").is_published is True
    assert review_by_id(db, "r3").is_published is False


def test_publish_all_counts_only_changed_reviews(db, owner_location):
    user, location = owner_location
    service = service_for(db)
    service.update_flags(review_by_id(db, "r1").id, user.id, is_published=True)

    assert service.bulk_publish(location.id, user.id, "publish_all") == 2
    assert service.bulk_publish(location.id, user.id, "publish_all") == 0


def test_unpublish_all_clears_featured(db, owner_location):
    user, location = owner_location
    service = service_for(db)
    service.update_flags(review_by_id(db, "r1").id, user.id, is_featured=True)

    service.bulk_publish(location.id, user.id, "unpublish_all")

    review = review_by_id(db, "r1")
    assert (review.is_published, review.is_featured, review.published_at) == (False, False, None)


def test_publish_selected(db, owner_location):
    user, location = owner_location
    selected = [review_by_id(db, "r2").id, review_by_id(db, "r3").id]

    assert service_for(db).bulk_publish(location.id, user.id, "publish_selected", review_ids=selected) == 2
    assert review_by_id(db, "r1").is_published is False


@pytest.mark.parametrize("action, kwargs", [
    ("publish_by_stars", {}),
    ("publish_by_stars", {"min_stars": 6}),
    ("publish_selected", {}),
    ("delete_all", {}),
])
def test_invalid_bulk_requests(db, owner_location, action, kwargs):
    user, location = owner_location

    with pytest.raises(ValueError):
        service_for(db).bulk_publish(location.id, user.id, action, **kwargs)


# ============================================
# Replies
# ============================================

async def test_post_reply_writes_through_to_google(db, owner_location):
    user, _ = owner_location
    client = FakeBusinessClient()

    review = await service_for(db, client).post_reply(review_by_id(db, "r3").id, user.id, "Sorry to hear that")

    assert client.replies == [("1111", "L9", "r3", "Sorry to hear that", "good-token")]
    assert review.review_reply == "Sorry to hear that"
    assert review.reply_time == datetime(2024, 6, 1, 12, 0, 0)


async def test_failed_reply_is_not_stored(db, owner_location):
    user, _ = owner_location
    client = FakeBusinessClient(error=GoogleAPIError("Failed to reply", status_code=500))

    with pytest.raises(GoogleAPIError):
        await service_for(db, client).post_reply(review_by_id(db, "r3").id, user.id, "Thanks")

    assert review_by_id(db, "r3").review_reply is None


async def test_delete_reply_clears_local_reply(db, owner_location):
    user, _ = owner_location
    service = service_for(db)
    review_id = review_by_id(db, "r1").id
    await service.post_reply(review_id, user.id, "Thanks!")

    review = await service.delete_reply(review_id, user.id)

    assert review.review_reply is None
    assert review.reply_time is None


# ============================================
# Inbox
# ============================================

@pytest.fixture
def inbox(owner_location, make_location, make_review, make_user):
    user, deli = owner_location
    cafe = make_location(user, title="Side Cafe", google_location_id="L10")
    make_review(cafe, "c1", stars=5, google_created_at=datetime(2024, 1, 5), review_reply="Thank you!")
    make_review(cafe, "c2", stars=1, google_created_at=datetime(2024, 1, 4))
    make_review(make_location(make_user(), title="Not Mine"), "x1", stars=1, google_created_at=datetime(2024, 1, 9))
    return user, deli, cafe


def test_inbox_spans_all_owned_locations(db, inbox):
    user, _, _ = inbox

    result = service_for(db).list_inbox(user.id)

    assert [r.google_review_id for r in result["reviews"]] == ["c1", "c2", "r1", "r2", "r3"]
    assert result["reviews"][0].location_title == "Side Cafe"
    assert result["stats"] == {
        "total_reviews": 5,
        "average_rating": 3.4,
        "rating_breakdown": {5: 2, 4: 1, 2: 1, 1: 1},
        "unreplied": 4,
    }


def test_inbox_filters_leave_stats_alone(db, inbox):
    user, _, _ = inbox
    service = service_for(db)

    five_star = service.list_inbox(user.id, rating=5)
    answered = service.list_inbox(user.id, replied=True)
    unanswered = service.list_inbox(user.id, replied=False)

    assert [r.google_review_id for r in five_star["reviews"]] == ["c1", "r1"]
    assert [r.google_review_id for r in answered["reviews"]] == ["c1"]
    assert len(unanswered["reviews"]) == 4
    assert five_star["stats"]["total_reviews"] == 5


def test_inbox_for_one_location(db, inbox, make_user):
    user, deli, _ = inbox
    service = service_for(db)

    result = service.list_inbox(user.id, location_id=deli.id)

    assert [r.google_review_id for r in result["reviews"]] == ["r1", "r2", "r3"]
    assert result["stats"]["average_rating"] == 3.7
    assert result["stats"]["unreplied"] == 3
    with pytest.raises(AccessDeniedError):
        service.list_inbox(make_user().id, location_id=deli.id)


def test_empty_inbox_averages_zero(db, make_user):
    result = service_for(db).list_inbox(make_user().id)

    assert result["reviews"] == []
    assert result["stats"] == {"total_reviews": 0, "average_rating": 0, "rating_breakdown": {}, "unreplied": 0}

# ============================================
# API
# ============================================

def test_flags_endpoint(client, db, owner_location, make_user):
    user, _ = owner_location
    review_id = review_by_id(db, "r2").id

    denied = client.patch(f"/api/v1/reviews/{review_id}", json={"is_published": True}, headers=auth_headers(make_user()))
    allowed = client.patch(f"/api/v1/reviews/{review_id}", json={"is_featured": True}, headers=auth_headers(user))
    missing = client.patch(f"/api/v1/reviews/{uuid.uuid4()}", json={"is_featured": True}, headers=auth_headers(user))

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["is_published"] is True
    assert allowed.json()["published_at"].endswith("Z")
    assert missing.status_code == 404


def test_bulk_publish_endpoint(client, owner_location):
    user, location = owner_location

    response = client.post(
        "/api/v1/reviews/bulk-publish",
        json={"location_id": str(location.id), "action": "publish_by_stars", "min_stars": 5},
        headers=auth_headers(user)
    )
    invalid = client.post(
        "/api/v1/reviews/bulk-publish",
        json={"location_id": str(location.id), "action": "publish_by_stars"},
        headers=auth_headers(user)
    )

    assert response.json() == {"success": True, "action": "publish_by_stars", "updated_count": 1}
    assert invalid.status_code == 400


def test_inbox_endpoint(client, inbox, make_user):
    user, deli, _ = inbox

    response = client.get("/api/v1/reviews", params={"replied": "false", "rating": 1}, headers=auth_headers(user))
    scoped = client.get("/api/v1/reviews", params={"location_id": str(deli.id)}, headers=auth_headers(user))
    denied = client.get("/api/v1/reviews", params={"location_id": str(deli.id)}, headers=auth_headers(make_user()))
    invalid = client.get("/api/v1/reviews", params={"rating": 6}, headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert [(r["google_review_id"], r["location_title"]) for r in body["reviews"]] == [("c2", "Side Cafe")]
    assert body["stats"]["rating_breakdown"] == {"5": 2, "4": 1, "2": 1, "1": 1}
    assert body["stats"]["average_rating"] == 3.4
    assert scoped.json()["stats"]["total_reviews"] == 3
    assert denied.status_code == 403
    assert invalid.status_code == 422
