"""Widget API endpoints (owner settings and the public feed)"""
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session
import uuid

from review_responder.config import settings
from review_responder.database import get_db
from review_responder.core.dependencies import get_current_user
from review_responder.core.exceptions import AccessDeniedError, NotFoundError
from review_responder.core.rate_limit import limiter
from review_responder.models.user import User
from review_responder.services.widget_service import WidgetService
from review_responder.schemas.widget import (
    WidgetSettingsResponse,
    WidgetSettingsUpdate,
    WidgetSettingsUpdateResponse,
    PublicWidgetResponse
)

router = APIRouter(prefix="/widget", tags=["widget"])

PUBLIC_HEADERS = {"Access-Control-Allow-Origin": "*"}


@router.get("/settings/{location_id}", response_model=WidgetSettingsResponse)
def get_widget_settings(
    location_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get widget settings (defaults if never saved) and embed snippets"""
    service = WidgetService(db)
    try:
        return service.get_settings(location_id, current_user.id)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.put("/settings/{location_id}", response_model=WidgetSettingsUpdateResponse)
def update_widget_settings(
    location_id: uuid.UUID,
    request: WidgetSettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Save widget settings

    Invalid values fall back to defaults and numbers are clamped. With
    **auto_publish** on, existing reviews at or above **auto_publish_stars**
    are published.
    """
    service = WidgetService(db)
    try:
        return service.update_settings(location_id, current_user.id, request.model_dump())

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error saving widget settings: {str(e)}"
        )


@router.get("/{location_id}", response_model=PublicWidgetResponse)
@limiter.limit(settings.WIDGET_RATE_LIMIT)
def get_public_widget(
    request: Request,
    response: Response,
    location_id: uuid.UUID,
    db: Session = Depends(get_db)
):
    """
    Public review feed for the embedded widget

    No authentication. Only served for locations with an active or trialing
    subscription.
    """
    service = WidgetService(db)
    try:
        data = service.get_public_widget(location_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e), headers=PUBLIC_HEADERS)
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e), headers=PUBLIC_HEADERS)

    response.headers["Cache-Control"] = (
        f"public, max-age={settings.WIDGET_CACHE_SECONDS}, "
        f"s-maxage={settings.WIDGET_CACHE_SECONDS}, stale-while-revalidate=60"
    )
    response.headers.update(PUBLIC_HEADERS)
    return data
