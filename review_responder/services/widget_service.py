"""Widget settings and the public review feed"""
import logging
import re
import uuid
from typing import Any, Dict, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from review_responder.config import settings
from review_responder.core.exceptions import AccessDeniedError, NotFoundError
from review_responder.models.location import Location, WidgetSettings
from review_responder.models.review import Review
from review_responder.services.location_service import get_owned_location
from review_responder.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

VALID_LAYOUTS = ("list", "grid", "carousel")
VALID_THEMES = ("light", "dark", "auto")
_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _clamp(value: Optional[int], default: int, low: int, high: int) -> int:
    if not value:
        value = default
    return min(max(int(value), low), high)


def normalize_settings(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn an untrusted settings payload into a complete, valid settings dict
    """
    defaults = WidgetSettings.DEFAULTS
    accent_color = payload.get("accent_color")

    return {
        "layout": payload.get("layout") if payload.get("layout") in VALID_LAYOUTS else defaults["layout"],
        "theme": payload.get("theme") if payload.get("theme") in VALID_THEMES else defaults["theme"],
        "accent_color": accent_color if accent_color and _HEX_COLOR_RE.match(accent_color) else defaults["accent_color"],
        "max_reviews": _clamp(payload.get("max_reviews"), defaults["max_reviews"], 1, 50),
        "min_stars": _clamp(payload.get("min_stars"), defaults["min_stars"], 1, 5),
        "auto_publish": bool(payload.get("auto_publish")),
        "auto_publish_stars": _clamp(payload.get("auto_publish_stars"), defaults["auto_publish_stars"], 1, 5),
        # Opt-out toggles: anything but an explicit False keeps them on
        "show_date": payload.get("show_date") is not False,
        "show_reviewer_name": payload.get("show_reviewer_name") is not False,
        "show_reviewer_photo": payload.get("show_reviewer_photo") is not False,
        "show_rating": payload.get("show_rating") is not False,
        "show_summary": payload.get("show_summary") is not False,
        "show_badge": payload.get("show_badge") is not False,
        # Opt-in toggles
        "show_reply": bool(payload.get("show_reply")),
        "show_review_link": bool(payload.get("show_review_link")),
        "google_review_url": payload.get("google_review_url") or None,
    }


def build_embed_codes(location_id: uuid.UUID) -> Dict[str, str]:
    """Script and iframe snippets for embedding a location's widget"""
    base_url = settings.APP_BASE_URL.rstrip("/")
    embed_code = (
        f'<div id="lrr-reviews" data-location="{location_id}"></div>\n'
        f'<script src="{base_url}/widget.js" async></script>'
    )
    iframe_code = (
        f'<iframe\n'
        f'  src="{base_url}/embed/{location_id}"\n'
        f'  width="100%"\n'
        f'  height="600"\n'
        f'  frameborder="0"\n'
        f'  style="border: none; max-width: 100%;">\n'
        f'</iframe>'
    )
    return {"embed_code": embed_code, "iframe_code": iframe_code}


class WidgetService:
    """Service for widget configuration and the public widget feed"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def settings_dict(location: Location) -> Dict[str, Any]:
        """Stored settings, or the defaults for a location that never saved any"""
        if location.widget_settings is not None:
            return location.widget_settings.to_dict()
        return dict(WidgetSettings.DEFAULTS)

    def get_settings(self, location_id: uuid.UUID, user_id: uuid.UUID) -> Dict[str, Any]:
        location = get_owned_location(self.db, location_id, user_id)
        return {
            "settings": self.settings_dict(location),
            "location_id": str(location.id),
            "business_name": location.title,
            **build_embed_codes(location.id),
        }

    def update_settings(self, location_id: uuid.UUID, user_id: uuid.UUID, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate and save settings. With auto-publish on, existing unpublished
        reviews at or above the threshold are published too.
        """
        location = get_owned_location(self.db, location_id, user_id)
        values = normalize_settings(payload)

        widget_settings = location.widget_settings
        if widget_settings is None:
            widget_settings = WidgetSettings(location_id=location.id)
            self.db.add(widget_settings)
            location.widget_settings = widget_settings

        for key, value in values.items():
            setattr(widget_settings, key, value)

        auto_published = 0
        if values["auto_publish"]:
            auto_published = self.db.query(Review).filter(
                Review.location_id == location.id,
                Review.star_rating >= values["auto_publish_stars"],
                Review.is_published == False  # noqa: E712
            ).update(
                {Review.is_published: True, Review.published_at: utc_now()},
                synchronize_session=False
            )

        self.db.commit()
        self.db.refresh(widget_settings)

        if auto_published:
            logger.info(f"Auto-published {auto_published} reviews for location {location.id}")

        return {
            "success": True,
            "settings": widget_settings.to_dict(),
            "auto_published": auto_published,
        }

    def get_star_distribution(self, location_id: uuid.UUID) -> Dict[str, int]:
        rows = self.db.query(Review.star_rating, func.count(Review.id)).filter(
            Review.location_id == location_id
        ).group_by(Review.star_rating).all()
        distribution = {str(stars): 0 for stars in range(1, 6)}
        for stars, count in rows:
            if str(stars) in distribution:
                distribution[str(stars)] = count
        return distribution

    def get_public_widget(self, location_id: uuid.UUID) -> Dict[str, Any]:
        """
        Public feed for the embedded widget

        Raises:
            NotFoundError: Unknown location
            AccessDeniedError: Location has no active or trialing subscription
        """
        location = self.db.query(Location).filter(Location.id == location_id).first()
        if location is None:
            raise NotFoundError("Location not found")
        if not location.has_active_subscription:
            raise AccessDeniedError("No active subscription")

        widget_settings = self.settings_dict(location)

        reviews = self.db.query(Review).filter(
            Review.location_id == location.id,
            Review.is_published == True,  # noqa: E712
            Review.star_rating >= widget_settings["min_stars"]
        ).order_by(
            Review.is_featured.desc(),
            Review.google_created_at.desc()
        ).limit(widget_settings["max_reviews"]).all()

        summary = None
        if widget_settings["show_summary"]:
            summary = {
                "business_name": location.title,
                "average_rating": location.average_rating,
                "total_reviews": location.total_reviews,
                "distribution": self.get_star_distribution(location.id),
            }

        return {
            "location": location,
            "settings": widget_settings,
            "reviews": reviews,
            "summary": summary,
        }
