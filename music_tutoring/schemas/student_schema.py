from pydantic import Field, StringConstraints, field_validator
from typing import Annotated, List, Optional
from datetime import datetime
from music_tutoring.database.database import StudentLevel
from music_tutoring.schemas.base_schema import CamelModel, sanitize_text

class StudentProfileUpdate(CamelModel):
    """Student profile data, only the fields the client sent are applied"""
    level: Optional[StudentLevel] = None
    preferred_instruments: Optional[Annotated[List[Annotated[str, StringConstraints(min_length=1, max_length=100, strip_whitespace=True)]], Field(max_length=10)]] = None
    bio: Optional[Annotated[str, StringConstraints(max_length=500)]] = None

    @field_validator('bio', mode='before')
    def sanitize_bio(cls, v):
        return sanitize_text(v)

class StudentProfileResponse(CamelModel):
    """Student profile response. id is the student's user id."""
    id: str
    name: str
    email: str
    photo_url: Optional[str] = None
    level: Optional[StudentLevel] = None
    preferred_instruments: List[str] = []
    bio: Optional[str] = None
    created_at: datetime
    updated_at: datetime
