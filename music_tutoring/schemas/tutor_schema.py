from pydantic import BaseModel, EmailStr, Field, StringConstraints, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from typing import Annotated, List, Literal, Optional
from datetime import datetime
import re
from music_tutoring.database.database import ProficiencyLevel, ContactMode
from music_tutoring.schemas.base_schema import CamelModel, PaginationResponse, sanitize_text

# IANA time zones accepted for time zone availability (Americas + Europe).
ALLOWED_TIME_ZONES = [
    'America/New_York',
    'America/Chicago',
    'America/Denver',
    'America/Los_Angeles',
    'America/Phoenix',
    'America/Toronto',
    'America/Vancouver',
    'America/Mexico_City',
    'America/Sao_Paulo',
    'America/Buenos_Aires',
    'Europe/London',
    'Europe/Paris',
    'Europe/Berlin',
    'Europe/Madrid',
    'Europe/Rome',
    'Europe/Amsterdam',
    'Europe/Vienna',
    'Europe/Athens',
    'Europe/Moscow',
    'UTC',
]

TIME_PATTERN = r'^([01]?[0-9]|2[0-3]):[0-5][0-9]$'
PHONE_PATTERN = re.compile(r'^[\d\s+\-()]{7,30}$')

DayOfWeek = Literal['mon', 'tue', 'wed', 'thu', 'fri', 'sat', 'sun']
TimeOfDay = Annotated[str, StringConstraints(pattern=TIME_PATTERN)]
ShortText = Annotated[str, StringConstraints(max_length=100, strip_whitespace=True)]

_email_adapter = TypeAdapter(EmailStr)

############################
##### SLOT SCHEMAS #########
############################

class AvailabilitySlot(CamelModel):
    """Weekly slot, e.g. mon 09:00-17:00"""
    day: DayOfWeek
    start_time: TimeOfDay
    end_time: TimeOfDay

class TimeZoneSlot(CamelModel):
    """Slot expressed in a time zone, e.g. 08:00-09:00 America/New_York"""
    time_zone: str
    start_time: TimeOfDay
    end_time: TimeOfDay

    @field_validator('time_zone')
    def validate_time_zone(cls, v):
        if v not in ALLOWED_TIME_ZONES:
            raise ValueError(f"Time zone must be one of: {', '.join(ALLOWED_TIME_ZONES)}")
        return v

############################
##### PROFILE SCHEMAS ######
############################

class TutorProfileFields(CamelModel):
    """
    Writable tutor profile fields.

    rating and reviewCount are not writable here; they are derived from the
    tutor's reviews and ignored if a client sends them.
    """
    instrument: Optional[Annotated[str, StringConstraints(min_length=1, max_length=100, strip_whitespace=True)]] = None
    proficiency_level: Optional[ProficiencyLevel] = None
    hourly_rate: Optional[Annotated[float, Field(gt=0, le=1000)]] = None
    city: Optional[ShortText] = None
    state: Optional[ShortText] = None
    country: Optional[ShortText] = None
    bio: Optional[Annotated[str, StringConstraints(min_length=1, max_length=2000, strip_whitespace=True)]] = None
    availability: Optional[List[AvailabilitySlot]] = None
    time_zone_availability: Optional[List[TimeZoneSlot]] = None
    preferred_contact_mode: Optional[ContactMode] = None
    preferred_contact_value: Optional[Annotated[str, StringConstraints(max_length=255, strip_whitespace=True)]] = None
    is_online: Optional[bool] = None
    years_of_experience: Optional[Annotated[int, Field(ge=0, lt=100)]] = None

    @field_validator('bio', 'city', 'state', 'country', 'instrument', mode='before')
    def sanitize_free_text(cls, v):
        return sanitize_text(v)

    @model_validator(mode='after')
    def validate_preferred_contact(self):
        if not self.preferred_contact_mode:
            return self
        value = self.preferred_contact_value
        valid = False
        if value:
            if self.preferred_contact_mode == ContactMode.EMAIL:
                try:
                    _email_adapter.validate_python(value)
                    valid = True
                except PydanticValidationError:
                    valid = False
            else:
                valid = bool(PHONE_PATTERN.match(value))
        if not valid:
            raise ValueError('When preferred contact is set, provide a valid email or phone number')
        return self

class TutorProfileCreate(TutorProfileFields):
    """Onboarding: instrument is required, lists and flags get defaults"""
    instrument: Annotated[str, StringConstraints(min_length=1, max_length=100, strip_whitespace=True)]
    availability: List[AvailabilitySlot] = []
    time_zone_availability: List[TimeZoneSlot] = []
    is_online: bool = False
    years_of_experience: Annotated[int, Field(ge=0, lt=100)] = 0

class TutorProfileUpdate(TutorProfileFields):
    """Partial update, only the fields the client sent are applied"""
    pass

class AvailabilityUpdate(CamelModel):
    availability: Annotated[List[AvailabilitySlot], Field(min_length=1)]

class OnlineStatusUpdate(CamelModel):
    is_online: Annotated[bool, Field(strict=True)]

class TutorFilters(BaseModel):
    """Filters accepted by GET /tutors"""
    instrument: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    min_rate: Optional[float] = None
    max_rate: Optional[float] = None
    proficiency_level: Optional[ProficiencyLevel] = None
    is_online: Optional[bool] = None
    is_verified: Optional[bool] = None
    page: int = 1
    limit: int = 20
    sort_by: Literal['rating', 'hourlyRate', 'yearsOfExperience', 'createdAt'] = 'rating'
    sort_order: Literal['asc', 'desc'] = 'desc'

############################
##### RESPONSE SCHEMAS #####
############################

class LocationResponse(CamelModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

class ContactResponse(CamelModel):
    mode: ContactMode
    value: str

class TutorPublicResponse(CamelModel):
    """Tutor as shown to everyone. id is the tutor's user id."""
    id: str
    name: Optional[str] = None
    photo_url: Optional[str] = None
    email: Optional[str] = None
    instrument: Optional[str] = None
    proficiency_level: Optional[ProficiencyLevel] = None
    location: LocationResponse
    hourly_rate: Optional[float] = None
    rating: float = 0
    review_count: int = 0
    bio: Optional[str] = None
    availability: List[AvailabilitySlot] = []
    time_zone_availability: List[TimeZoneSlot] = []
    is_online: bool = False
    is_verified: bool = False
    years_of_experience: Optional[int] = None

class TutorPrivateResponse(TutorPublicResponse):
    """Tutor profile as seen by its owner"""
    preferred_contact_mode: Optional[ContactMode] = None
    preferred_contact_value: Optional[str] = None
    onboarding_complete: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class TutorListResponse(CamelModel):
    tutors: List[TutorPublicResponse]
    pagination: PaginationResponse

class AvailabilityResponse(CamelModel):
    availability: List[AvailabilitySlot]

class OnlineStatusResponse(CamelModel):
    is_online: bool
    message: str
