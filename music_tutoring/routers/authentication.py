"""
Authentication router handling email/password sign up and login, token refresh,
logout, and the account endpoints of the logged in user.
Implements JWT token based authentication with access and refresh tokens.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
from music_tutoring.auth_tools import get_current_user
from music_tutoring.config import get_settings
from music_tutoring.database.database import get_db
from music_tutoring.schemas.authentication_schema import (
    RegisterRequest, LoginRequest, RefreshRequest, SetRoleRequest, UpdateAccountRequest,
    LoggedInResponse, TokenResponse, RoleSetResponse, CurrentUserResponse, LoggedOutResponse,
    UserResponse, DecodedAccessToken
)
from music_tutoring.services import auth_service

router = APIRouter(prefix='/auth')

# Add rate limiting
limiter = Limiter(key_func=get_remote_address, enabled=get_settings().rate_limit_enabled)
AUTH_RATE_LIMIT = get_settings().auth_rate_limit

@router.post("/register", response_model=LoggedInResponse, status_code=201)
@limiter.limit(AUTH_RATE_LIMIT)
def register(request: Request, data: RegisterRequest, db: Session = Depends(get_db)):
    """
    Sign up with email and password.

    Returns:
    - LoggedInResponse: The new user with an access and a refresh token

    Raises:
    - 409 EMAIL_EXISTS: If the email is already registered
    """
    return auth_service.register(db, data)

@router.post("/login", response_model=LoggedInResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def login(request: Request, data: LoginRequest, db: Session = Depends(get_db)):
    """
    Login endpoint.

    Raises:
    - 401 INVALID_CREDENTIALS: Unknown email or wrong password
    """
    return auth_service.login(db, data)

@router.post("/refresh", response_model=TokenResponse)
def refresh_token(data: RefreshRequest, db: Session = Depends(get_db)):
    """Endpoint to refresh an expired access token using refresh token"""
    return auth_service.refresh(db, data.refresh_token)

@router.post("/logout", response_model=LoggedOutResponse)
def logout(user: DecodedAccessToken = Depends(get_current_user)):
    return auth_service.logout(user)

@router.get("/me", response_model=CurrentUserResponse)
def me(user: DecodedAccessToken = Depends(get_current_user), db: Session = Depends(get_db)):
    """The logged in user, their role specific profile and whether onboarding is done."""
    return auth_service.get_me(db, user.sub)

@router.patch("/role", response_model=RoleSetResponse)
def set_role(data: SetRoleRequest, user: DecodedAccessToken = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Set the role of the logged in user (student or teacher).

    The returned access token carries the new role and replaces the old one.
    """
    return auth_service.set_role(db, user, data.role)

@router.patch("/profile", response_model=UserResponse)
def update_profile(data: UpdateAccountRequest, user: DecodedAccessToken = Depends(get_current_user), db: Session = Depends(get_db)):
    return auth_service.update_account(db, user.sub, data)
