from typing import Any, List
from datetime import datetime, timezone
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from music_tutoring.config import get_settings
from music_tutoring.database.database import UserRole
from music_tutoring.errors import ForbiddenError, UnauthorizedError
from music_tutoring.logger import logger
from music_tutoring.schemas.authentication_schema import DecodedAccessToken, DecodedRefreshToken

# CONSTANTS
SECRET_KEY = get_settings().secret_key
ALGORITHM = get_settings().hash_algorithm

# security scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")

def decode_token(token: str) -> dict[str, Any]:
    """Decode and verify a token signed by this server. Raises UnauthorizedError."""
    try:
        payload: dict[str, Any] = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.error(f"Error decoding token: {str(e)}")
        raise UnauthorizedError("Invalid token. Could not decode token.", code='INVALID_TOKEN')

    if not payload.get("sub"):
        raise UnauthorizedError("Invalid token. Missing user ID.", code='INVALID_TOKEN')

    # Check if token has expired
    if payload.get("exp", 0) < int(datetime.now(timezone.utc).timestamp()):
        raise UnauthorizedError("Token has expired.", code='TOKEN_EXPIRED')

    return payload

##################################
### AUTHORIZATION DEPENDENCIES ###
##################################

def get_current_user(token: str = Depends(oauth2_scheme)) -> DecodedAccessToken:
    """
    Get the current user from the token.

    Args:
    - token (str): The user's access token

    Returns:
    - DecodedAccessToken: The user's data
    """
    payload = decode_token(token)

    if payload.get("refresh"):
        raise UnauthorizedError("Invalid token. Refresh token provided.", code='INVALID_TOKEN')

    return DecodedAccessToken(**payload)

def parse_refresh_token(token: str) -> DecodedRefreshToken:
    """Decode a refresh token, rejecting access tokens."""
    payload = decode_token(token)

    if not payload.get("refresh"):
        raise UnauthorizedError("Invalid token. Not a refresh token.", code='INVALID_TOKEN')

    return DecodedRefreshToken(**payload)

def verify_user_role(user: DecodedAccessToken, allowed_roles: List[UserRole]) -> DecodedAccessToken:
    """
    Verify that the user has the required role.

    Args:
    - user (DecodedAccessToken): The user's data
    - allowed_roles (list): List of allowed roles

    Returns:
    - DecodedAccessToken: The same user, if allowed
    """
    allowed = [role.value for role in allowed_roles]
    if not user or user.role not in allowed:
        raise ForbiddenError(f"User must have one of these roles: {allowed}", code='FORBIDDEN')

    return user

def require_roles(*roles: UserRole):
    def dependency(current_user: DecodedAccessToken = Depends(get_current_user)) -> DecodedAccessToken:
        return verify_user_role(current_user, list(roles))
    return dependency

def student_only(current_user: DecodedAccessToken = Depends(get_current_user)) -> DecodedAccessToken:
    """Verify that the user is a student"""
    return verify_user_role(current_user, [UserRole.STUDENT])

def tutor_only(current_user: DecodedAccessToken = Depends(get_current_user)) -> DecodedAccessToken:
    """Verify that the user is a tutor"""
    return verify_user_role(current_user, [UserRole.TEACHER])
