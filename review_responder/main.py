"""
Local Review Responder API - Main Application
"""
import logging
import sys
import traceback
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from review_responder.config import settings
from review_responder.api.v1 import api_router
from review_responder.core.rate_limit import limiter
from review_responder.database import init_db

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Google review sync, moderation and embeddable widgets for local businesses",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    redirect_slashes=False
)

# Initialize rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Global exception handler for unhandled exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler that:
    - In DEBUG mode: returns detailed error info for development
    - In PRODUCTION mode: returns generic error message, logs details server-side
    """
    error_id = str(uuid.uuid4())[:8]

    logger.error(
        f"[ERROR_ID: {error_id}] Unhandled exception on {request.method} {request.url.path}",
        exc_info=True
    )

    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={
                "detail": str(exc),
                "error_id": error_id,
                "type": type(exc).__name__,
                "path": str(request.url.path),
                "traceback": traceback.format_exc()
            }
        )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An internal server error occurred. Please try again later.",
            "error_id": error_id
        }
    )


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Initialize database and scheduler on startup"""
    logger.info("Starting Local Review Responder API...")
    logger.info(f"Database: {settings.DATABASE_HOST}:{settings.DATABASE_PORT}/{settings.DATABASE_NAME}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    if not settings.CRON_SECRET:
        logger.warning("CRON_SECRET is not set; the review sync endpoint will reject every request")
    if not settings.SENDGRID_API_KEY:
        logger.warning("SENDGRID_API_KEY is not set; emails will be skipped")

    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)

    from review_responder.scheduler import start_scheduler
    start_scheduler()

    logger.info(f"API running at http://{settings.HOST}:{settings.PORT} (docs at /docs)")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down Local Review Responder API...")

    from review_responder.scheduler import stop_scheduler
    stop_scheduler()


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "local-review-responder-api",
        "version": "1.0.0"
    }


# Include API routes
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Welcome to Local Review Responder API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "features": [
            "Google Business Profile location import",
            "Nightly review sync with email digests",
            "Review moderation and replies",
            "Embeddable review widget",
            "Per-location Stripe subscriptions"
        ]
    }


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Local Review Responder API")
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload on file changes"
    )
    args = parser.parse_args()

    uvicorn.run(
        "review_responder.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=not args.no_reload
    )
