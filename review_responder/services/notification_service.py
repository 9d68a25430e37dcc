"""New review digest notifications"""
import logging
from typing import List, Optional

from review_responder.services.email_service import EmailService
from review_responder.services.email_templates import (
    NewReviewSummary,
    new_reviews_subject,
    render_new_reviews_email,
)

logger = logging.getLogger(__name__)


class NotificationService:
    """Sends one digest email per user for reviews found during a sync"""

    def __init__(self, email_service: Optional[EmailService] = None):
        self.email_service = email_service or EmailService()

    async def notify_new_reviews(
        self,
        email: str,
        name: Optional[str],
        new_reviews: List[NewReviewSummary]
    ) -> bool:
        """
        Render and send the digest. Best effort: returns False on any failure.
        """
        if not new_reviews:
            return False

        try:
            html = render_new_reviews_email(name, new_reviews)
            sent = await self.email_service.send_email(
                to=email,
                subject=new_reviews_subject(len(new_reviews)),
                html=html,
                to_name=name
            )
        except Exception as e:
            logger.error(f"Failed to send new review notification to {email}: {str(e)}")
            return False

        if sent:
            logger.info(f"Sent new review notification to {email} ({len(new_reviews)} new reviews)")
        return sent
