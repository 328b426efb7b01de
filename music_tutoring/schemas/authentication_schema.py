from pydantic import BaseModel, EmailStr, Field, StringConstraints, field_validator
from typing import Annotated, Literal, Optional, Union
from datetime import datetime
from music_tutoring.database.database import UserRole, AuthProvider
from music_tutoring.schemas.base_schema import CamelModel, sanitize_text
from music_tutoring.schemas.student_schema import StudentProfileResponse
from music_tutoring.schemas.tutor_schema import TutorPrivateResponse

############################
### USER ACCOUNT SCHEMAS ###
############################

class RegisterRequest(CamelModel):
    """Email/password sign up"""
    email: EmailStr
    password: Annotated[str, StringConstraints(min_length=8, max_length=100)]
    name: Annotated[str, StringConstraints(min_length=2, max_length=255, strip_whitespace=True)]

    @field_validator('email', mode='before')
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator('name', mode='before')
    def sanitize_name(cls, v):
        return sanitize_text(v)

class LoginRequest(CamelModel):
    """Email/password login"""
    email: EmailStr
    password: Annotated[str, StringConstraints(min_length=1)]

    @field_validator('email', mode='before')
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

class RefreshRequest(CamelModel):
    refresh_token: str

class SetRoleRequest(CamelModel):
    """Role picked after signing up. Admins are never self-assigned."""
    role: Literal['student', 'teacher']

class UpdateAccountRequest(CamelModel):
    """Name and photo of the logged in user"""
    name: Optional[Annotated[str, StringConstraints(min_length=2, max_length=255, strip_whitespace=True)]] = None
    photo_url: Optional[Annotated[str, StringConstraints(max_length=2048, pattern=r'^https?://')]] = None

    @field_validator('name', mode='before')
    def sanitize_name(cls, v):
        return sanitize_text(v)

class UserResponse(CamelModel):
    """Public safe view of a user, never includes the password hash"""
    id: str
    email: str
    name: str
    photo_url: Optional[str] = None
    role: Optional[UserRole] = None
    auth_provider: AuthProvider
    created_at: datetime

###########################
##### TOKEN SCHEMAS #######
###########################

class LoggedInResponse(CamelModel):
    """Authentication response data"""
    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    has_completed_onboarding: bool = True

class TokenResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class RoleSetResponse(CamelModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"

class CurrentUserResponse(CamelModel):
    """The logged in user with the profile that matches their role"""
    user: UserResponse
    # A student profile has no location, so trying the tutor shape first is unambiguous
    profile: Optional[Annotated[Union[TutorPrivateResponse, StudentProfileResponse], Field(union_mode='left_to_right')]] = None
    has_completed_onboarding: bool

class LoggedOutResponse(BaseModel):
    """Logout response data"""
    message: str
    status: str

class DecodedAccessToken(BaseModel):
    """
    Decoded access token data
        Args:
        - sub (str): User ID
        - name (str): User name
        - email (str): User email
        - role (str): User role, None until the user picks one
        - exp (int): Token expiration time
        - refresh_token_id (str): Refresh token issued together with this token
    """
    sub: str
    name: str
    email: str
    role: Optional[str] = None
    exp: int
    refresh_token_id: Optional[str] = None

class DecodedRefreshToken(BaseModel):
    """
    Decoded refresh token data
        Args:
        - sub (str): User ID
        - exp (int): Token expiration time
        - token_id (str): Token ID
        - refresh (bool): Refresh token status
    """
    sub: str
    exp: int
    token_id: str
    refresh: bool
