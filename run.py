"""
Quick start script for running the Local Review Responder backend
"""
import uvicorn
from review_responder.config import settings


def _configured(value: str) -> str:
    return "configured" if value else "not configured"


def review_sync_summary() -> str:
    """How the nightly review sync gets triggered on this instance"""
    triggers = []
    if settings.REVIEW_SYNC_SCHEDULE_ENABLED:
        triggers.append(f"in-process daily at {settings.REVIEW_SYNC_HOUR:02d}:{settings.REVIEW_SYNC_MINUTE:02d} UTC")
    if settings.CRON_SECRET:
        triggers.append("cron endpoint /api/v1/cron/sync-reviews")
    return ", ".join(triggers) if triggers else "disabled (no schedule, no CRON_SECRET)"


if __name__ == "__main__":
    print("=" * 70)
    print("Local Review Responder API")
    print("=" * 70)
    print(f"Listening: http://{settings.HOST}:{settings.PORT} (docs at /docs)")
    print(f"Database: {settings.DATABASE_HOST}/{settings.DATABASE_NAME}")
    print(f"Review sync: {review_sync_summary()}")
    print(f"Digest email (SendGrid): {_configured(settings.SENDGRID_API_KEY)}")
    print(f"Billing (Stripe): {_configured(settings.STRIPE_SECRET_KEY)}")
    print("=" * 70)

    uvicorn.run(
        "review_responder.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
