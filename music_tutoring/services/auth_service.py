"""
Email/password accounts and JWT based sessions.

Every login hands out an access token and a refresh token. The refresh token is
remembered server side (Redis when enabled, an in-memory store otherwise) under
its token id, and the access token carries that id so logout can revoke it.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from jose import jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from music_tutoring.accounts import StudentAccount, TutorAccount, resolve_account
from music_tutoring.config import get_settings
from music_tutoring.database.database import User, UserRole, AuthProvider, StudentProfile, TutorProfile
from music_tutoring.database.redis import redis_client
from music_tutoring.errors import ConflictError, NotFoundError, UnauthorizedError
from music_tutoring.logger import logger, audit_logger
from music_tutoring.auth_tools import parse_refresh_token
from music_tutoring.schemas.authentication_schema import RegisterRequest, LoginRequest, UpdateAccountRequest, DecodedAccessToken
from music_tutoring.services.student_service import format_student
from music_tutoring.services.tutor_service import format_tutor

# Check if we should use Redis
USE_REDIS = get_settings().use_redis

SECRET_KEY = get_settings().secret_key
ALGORITHM = get_settings().hash_algorithm
TOKEN_EXPIRE_MINUTES = get_settings().access_token_expire_minutes
REFRESH_TOKEN_EXPIRE_DAYS = get_settings().refresh_token_expire_days

# Refresh tokens by token id, used when Redis is off
refresh_token_store = {}

def create_access_token(user: User, refresh_token_id: Optional[str], expires_in: int = TOKEN_EXPIRE_MINUTES) -> str:
    """Create a new access token with configurable expiration"""
    to_encode = {
        "sub": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role.value if user.role else None,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_in),
        "refresh_token_id": refresh_token_id
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def create_refresh_token(user_id: str) -> Tuple[str, str]:
    """Create and store a refresh token. Returns the token and the token id"""
    token_id = str(uuid.uuid4())
    to_encode = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
        "refresh": True,
        "token_id": token_id
    }
    refresh_token = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    if USE_REDIS:
        redis_client.set_refresh_token(refresh_token, token_id, REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60) # Expiration in seconds
    else:
        refresh_token_store[token_id] = refresh_token

    return refresh_token, token_id

def _stored_refresh_token(token_id: str) -> Optional[str]:
    if USE_REDIS:
        return redis_client.get_refresh_token(token_id)
    return refresh_token_store.get(token_id)

def revoke_refresh_token(token_id: Optional[str]):
    if not token_id:
        return
    if USE_REDIS:
        redis_client.delete_refresh_token(token_id)
    else:
        refresh_token_store.pop(token_id, None)

def has_completed_onboarding(user: User) -> bool:
    """Only tutors have an onboarding step; everybody else counts as done."""
    if user.role == UserRole.TEACHER:
        return bool(user.tutor_profile and user.tutor_profile.onboarding_complete)
    return True

def _session_for(user: User) -> dict:
    refresh_token, refresh_token_id = create_refresh_token(user.id)
    access_token = create_access_token(user, refresh_token_id)
    return {
        "user": user,
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "has_completed_onboarding": has_completed_onboarding(user),
    }

def register(db: Session, data: RegisterRequest) -> dict:
    """Create an email/password account and log it in. The role is picked afterwards."""
    if db.query(User).filter(User.email == data.email).first():
        raise ConflictError("Email already registered", code='EMAIL_EXISTS')

    user = User(email=data.email, name=data.name, auth_provider=AuthProvider.EMAIL)
    user.set_password(data.password)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already registered", code='EMAIL_EXISTS')
    db.refresh(user)

    audit_logger.log_security_event("register", user.id, {"email": user.email})
    logger.info(f"Registered user {user.id}")
    return _session_for(user)

def login(db: Session, data: LoginRequest) -> dict:
    user = db.query(User).filter(User.email == data.email).first()
    if not user:
        audit_logger.log_security_event("login_failed", None, {"email": data.email, "reason": "unknown_email"})
        raise UnauthorizedError("Invalid email or password", code='INVALID_CREDENTIALS')

    if not user.password_hash:
        raise UnauthorizedError(
            "This account uses social login. Please sign in with Google, Apple, or Facebook.",
            code='SOCIAL_LOGIN_REQUIRED'
        )

    if not user.check_password(data.password):
        audit_logger.log_security_event("login_failed", user.id, {"reason": "bad_password"})
        raise UnauthorizedError("Invalid email or password", code='INVALID_CREDENTIALS')

    audit_logger.log_security_event("login", user.id, {})
    logger.info(f"Success. User {user.id} logged in.")
    return _session_for(user)

def refresh(db: Session, token: str) -> dict:
    """Issue a new access token for a refresh token that is still on record."""
    payload = parse_refresh_token(token)

    stored = _stored_refresh_token(payload.token_id)
    if not stored or stored != token:
        raise UnauthorizedError("Invalid refresh token. The refresh token may have expired.", code='INVALID_REFRESH_TOKEN')

    user = User.get_by_id(db, payload.sub)
    if not user:
        revoke_refresh_token(payload.token_id)
        raise UnauthorizedError("User not found", code='USER_NOT_FOUND')

    return {
        "access_token": create_access_token(user, payload.token_id),
        "refresh_token": token,
        "token_type": "bearer",
    }

def logout(user: DecodedAccessToken) -> dict:
    revoke_refresh_token(user.refresh_token_id)
    audit_logger.log_security_event("logout", user.sub, {})
    return {"message": "Logged out successfully. Refresh token invalidated.", "status": "logged_out"}

def get_me(db: Session, user_id: str) -> dict:
    """The logged in user together with the profile of their role."""
    account = resolve_account(db, user_id)

    profile = None
    if isinstance(account, TutorAccount):
        profile = format_tutor(account.profile, private=True)
    elif isinstance(account, StudentAccount):
        profile = format_student(account.profile)

    return {
        "user": account.user,
        "profile": profile,
        "has_completed_onboarding": has_completed_onboarding(account.user),
    }

def set_role(db: Session, current_user: DecodedAccessToken, role: str) -> dict:
    """
    Pick student or teacher, creating the matching empty profile.

    The role travels inside the access token, so a fresh token is returned that
    replaces the one the client holds.
    """
    user = User.get_by_id(db, current_user.sub)
    if not user:
        raise NotFoundError("User not found", code='USER_NOT_FOUND')

    previous_role = user.role
    user.role = UserRole(role)

    if user.role == UserRole.STUDENT and not user.student_profile:
        user.student_profile = StudentProfile()
    elif user.role == UserRole.TEACHER and not user.tutor_profile:
        user.tutor_profile = TutorProfile()

    db.commit()
    db.refresh(user)

    audit_logger.log_security_event("role_set", user.id, {
        "from": previous_role.value if previous_role else None,
        "to": user.role.value,
    })
    return {
        "user": user,
        "access_token": create_access_token(user, current_user.refresh_token_id),
        "token_type": "bearer",
    }

def update_account(db: Session, user_id: str, data: UpdateAccountRequest) -> User:
    user = User.get_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found", code='USER_NOT_FOUND')

    for field, value in data.model_dump(exclude_unset=True).items():
        if field == 'name' and value is None:
            continue
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return user
