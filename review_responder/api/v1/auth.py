"""Authentication API endpoints"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from review_responder.database import get_db
from review_responder.core.dependencies import get_current_user
from review_responder.models.user import User
from review_responder.services.auth_service import AuthService
from review_responder.services.google_auth_service import GoogleAuthService
from review_responder.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    TokenResponse,
    UserResponse,
    GoogleConnectRequest,
    GoogleConnectResponse
)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Create an account with email and password

    - **email**: Account email (must be unique)
    - **password**: At least 8 characters
    - **name**: Optional display name

    Sends a welcome email and returns an access token.
    """
    service = AuthService(db)
    try:
        user = await service.register(request.email, request.password, request.name)
        return service.build_token_response(user)

    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating account: {str(e)}"
        )


@router.post("/login", response_model=TokenResponse)
def login(
    request: LoginRequest,
    db: Session = Depends(get_db)
):
    """Log in with email and password"""
    service = AuthService(db)
    user = service.authenticate(request.email, request.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    return service.build_token_response(user)


@router.get("/me", response_model=UserResponse)
def get_me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the current user and whether a Google account is linked"""
    return AuthService(db).build_user_response(current_user)


@router.post("/google/connect", response_model=GoogleConnectResponse)
async def connect_google(
    request: GoogleConnectRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Link a Google account

    Exchanges the OAuth authorization code from the consent redirect and
    stores the credential used for location import and review sync.
    """
    service = GoogleAuthService(db)
    try:
        await service.exchange_code(current_user.id, request.code, request.redirect_uri)
        link_status = service.get_link_status(current_user.id)

        return GoogleConnectResponse(
            success=True,
            message="Google account connected",
            **link_status
        )

    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error connecting Google account: {str(e)}"
        )
