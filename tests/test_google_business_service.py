"""Tests for the Google Business Profile client"""
import httpx
import pytest

from review_responder.core.exceptions import GoogleAPIError, GoogleAuthExpiredError, GooglePermissionError
from review_responder.services.google_business_service import (
    GoogleBusinessService,
    GoogleReview,
    extract_account_id,
    extract_location_id,
    extract_review_id,
    format_address,
    star_rating_to_int,
)


def raw_review(review_id, stars="FIVE", **extra):
    raw = {
        "name": f"accounts/1111/locations/2222/reviews/{review_id}",
        "reviewId": review_id,
        "starRating": stars,
        "reviewer": {"displayName": "Jordan", "profilePhotoUrl": "https://photo.example/j.png"},
        "comment": "Lovely staff",
        "createTime": "2024-05-01T10:00:00.123456789Z",
        "updateTime": "2024-05-02T11:30:00Z",
    }
    raw.update(extra)
    return raw


def client_for(handler):
    return GoogleBusinessService(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.parametrize("value, expected", [("ONE", 1), ("TWO", 2), ("THREE", 3), ("FOUR", 4), ("FIVE", 5)])
def test_star_rating_mapping(value, expected):
    assert star_rating_to_int(value) == expected


@pytest.mark.parametrize("value", ["STAR_RATING_UNSPECIFIED", "SIX", None])
def test_unknown_star_rating_raises(value):
    with pytest.raises(ValueError):
        star_rating_to_int(value)


def test_resource_name_helpers():
    assert extract_review_id("accounts/1/locations/2/reviews/AbC-9") == "AbC-9"
    assert extract_review_id("AbC-9") == "AbC-9"
    assert extract_account_id("accounts/123") == "123"
    assert extract_location_id("locations/789") == "789"
    assert extract_location_id("accounts/1/locations/789") == "789"


def test_format_address():
    address = {
        "addressLines": ["12 High St", "Unit 3"],
        "locality": "Springfield",
        "administrativeArea": "IL",
        "postalCode": "62701",
    }
    assert format_address(address) == "12 High St, Unit 3, Springfield, IL, 62701"
    assert format_address({}) is None
    assert format_address(None) is None


def test_review_from_api_normalizes_fields():
    review = GoogleReview.from_api(raw_review(
        "r1",
        stars="FOUR",
        reviewReply={"comment": "Thanks!", "updateTime": "2024-05-03T08:00:00Z"}
    ))

    assert review.review_id == "r1"
    assert review.star_rating == 4
    assert review.reviewer_name == "Jordan"
    assert review.reply_comment == "Thanks!"
    assert review.create_time.microsecond == 123456
    assert review.reply_time.day == 3


def test_review_without_reviewer_is_anonymous():
    raw = raw_review("r1")
    raw.pop("reviewer")
    raw.pop("comment")

    review = GoogleReview.from_api(raw)

    assert review.reviewer_name == "Anonymous"
    assert review.comment is None


async def test_list_all_reviews_follows_pagination():
    seen_tokens = []

    def handler(request):
        assert request.headers["Authorization"] == "Bearer tok"
        token = request.url.params.get("pageToken")
        seen_tokens.append(token)
        if token is None:
            return httpx.Response(200, json={
                "reviews": [raw_review("r1"), raw_review("r2")],
                "nextPageToken": "page-2",
            })
        return httpx.Response(200, json={
            "reviews": [raw_review("r3", stars="TWO")],
            "averageRating": 4.1,
            "totalReviewCount": 3,
        })

    result = await client_for(handler).list_all_reviews("1111", "2222", "tok")

    assert seen_tokens == [None, "page-2"]
    assert [r.review_id for r in result.reviews] == ["r1", "r2", "r3"]
    assert result.average_rating == 4.1
    assert result.total_review_count == 3


async def test_list_all_reviews_skips_unknown_ratings():
    def handler(request):
        return httpx.Response(200, json={"reviews": [raw_review("ok"), raw_review("bad", stars="STAR_RATING_UNSPECIFIED")]})

    result = await client_for(handler).list_all_reviews("1111", "2222", "tok")

    assert [r.review_id for r in result.reviews] == ["ok"]
    assert result.average_rating is None
    assert result.total_review_count is None


async def test_empty_review_page():
    result = await client_for(lambda request: httpx.Response(200, json={})).list_all_reviews("1111", "2222", "tok")

    assert result.reviews == []


async def test_unauthorized_maps_to_auth_expired():
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "Request had invalid authentication credentials."}})

    with pytest.raises(GoogleAuthExpiredError):
        await client_for(handler).list_all_reviews("1111", "2222", "tok")


async def test_forbidden_maps_to_permission_error_with_context():
    def handler(request):
        return httpx.Response(403, json={"error": {"message": "The caller does not have permission"}})

    with pytest.raises(GooglePermissionError) as exc_info:
        await client_for(handler).list_all_reviews("1111", "2222", "tok")

    assert "accounts/1111/locations/2222" in str(exc_info.value)


async def test_server_error_includes_location_in_message():
    def handler(request):
        return httpx.Response(500, json={"error": {"message": "Backend error"}})

    with pytest.raises(GoogleAPIError) as exc_info:
        await client_for(handler).list_all_reviews("1111", "2222", "tok")

    assert "Failed to fetch reviews for accounts/1111/locations/2222" in str(exc_info.value)
    assert exc_info.value.status_code == 500


async def test_list_locations_sends_read_mask_and_paginates():
    calls = []

    def handler(request):
        calls.append(request.url)
        assert request.url.path == "/v1/accounts/1111/locations"
        assert request.url.params["readMask"]
        if "pageToken" not in request.url.params:
            return httpx.Response(200, json={"locations": [{"name": "locations/1"}], "nextPageToken": "n"})
        return httpx.Response(200, json={"locations": [{"name": "locations/2"}]})

    locations = await client_for(handler).list_locations("1111", "tok")

    assert [loc["name"] for loc in locations] == ["locations/1", "locations/2"]
    assert len(calls) == 2


async def test_reply_and_delete_reply():
    requests = []

    def handler(request):
        requests.append((request.method, request.url.path))
        if request.method == "PUT":
            return httpx.Response(200, json={"comment": "Thanks", "updateTime": "2024-06-01T00:00:00Z"})
        return httpx.Response(200)

    client = client_for(handler)
    result = await client.reply_to_review("1111", "2222", "r1", "Thanks", "tok")
    await client.delete_reply("1111", "2222", "r1", "tok")

    assert result["comment"] == "Thanks"
    assert requests == [
        ("PUT", "/v4/accounts/1111/locations/2222/reviews/r1/reply"),
        ("DELETE", "/v4/accounts/1111/locations/2222/reviews/r1/reply"),
    ]
