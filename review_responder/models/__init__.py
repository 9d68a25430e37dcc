"""Database models"""
from review_responder.models.user import User, GoogleAccount
from review_responder.models.location import Location, WidgetSettings
from review_responder.models.review import Review
from review_responder.models.subscription import Subscription

__all__ = [
    "User",
    "GoogleAccount",
    "Location",
    "WidgetSettings",
    "Review",
    "Subscription",
]
