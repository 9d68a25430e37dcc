"""Business logic services"""
from review_responder.services.auth_service import AuthService
from review_responder.services.review_sync_service import ReviewSyncService

__all__ = ["AuthService", "ReviewSyncService"]
