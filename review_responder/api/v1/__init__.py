"""API v1 routes"""
from fastapi import APIRouter
from review_responder.api.v1 import auth, locations, reviews, widget, billing, cron

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(locations.router)
api_router.include_router(reviews.router)
api_router.include_router(widget.router)
api_router.include_router(billing.router)
api_router.include_router(cron.router)
