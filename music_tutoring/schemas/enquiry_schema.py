from pydantic import BaseModel, Field, StringConstraints, field_validator
from typing import Annotated, List, Literal, Optional
from datetime import datetime
from music_tutoring.database.database import StudentLevel, PreferredTime, EnquiryStatus
from music_tutoring.schemas.base_schema import CamelModel, PaginationResponse, sanitize_text
from music_tutoring.schemas.tutor_schema import DayOfWeek, ContactResponse

class EnquiryCreate(CamelModel):
    """Enquiry request data. An enquiry is a student asking a tutor to get in touch."""
    tutor_id: Annotated[str, StringConstraints(pattern=r'^[0-9a-fA-F-]{36}$')]
    message: Annotated[str, StringConstraints(min_length=10, max_length=1000)]
    student_level: StudentLevel
    preferred_days: Annotated[List[DayOfWeek], Field(min_length=1, max_length=7)]
    preferred_time: PreferredTime

    @field_validator('message', mode='before')
    def sanitize_message(cls, v):
        return sanitize_text(v)

class EnquiryStatusUpdate(CamelModel):
    """Tutor's answer to an enquiry"""
    status: Literal['accepted', 'declined']

class EnquiryFilters(BaseModel):
    status: Optional[EnquiryStatus] = None
    sort_by: Literal['createdAt', 'status'] = 'createdAt'
    sort_order: Literal['asc', 'desc'] = 'desc'
    page: int = 1
    limit: int = 20

class LocationSummary(CamelModel):
    city: Optional[str] = None
    state: Optional[str] = None

class EnquiryResponse(CamelModel):
    """
    Enquiry response data.

    The student and tutor fields are filled depending on who is looking: a
    student sees the tutor, a tutor sees the student. tutor_contact is only
    present for the student of an accepted enquiry.
    """
    id: str
    student_id: str
    tutor_id: str
    message: str
    student_level: StudentLevel
    preferred_days: List[DayOfWeek]
    preferred_time: PreferredTime
    status: EnquiryStatus
    created_at: datetime
    responded_at: Optional[datetime] = None

    tutor_name: Optional[str] = None
    tutor_photo_url: Optional[str] = None
    tutor_instrument: Optional[str] = None
    tutor_location: Optional[LocationSummary] = None
    tutor_contact: Optional[ContactResponse] = None

    student_name: Optional[str] = None
    student_email: Optional[str] = None
    student_photo_url: Optional[str] = None
    student_profile_level: Optional[StudentLevel] = None

class EnquiryListResponse(CamelModel):
    enquiries: List[EnquiryResponse]
    pagination: PaginationResponse

class EnquiryStatusResponse(CamelModel):
    id: str
    status: EnquiryStatus
    responded_at: Optional[datetime] = None
    message: str

class EnquiryStatsResponse(CamelModel):
    pending: int
    accepted: int
    declined: int
    total: int
