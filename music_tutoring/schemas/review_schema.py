from pydantic import Field, field_validator
from typing import Annotated, List, Optional
from datetime import datetime
from music_tutoring.schemas.base_schema import CamelModel, PaginationResponse, sanitize_text

MIN_RATING = 1
MAX_RATING = 5
# ~50 words
MAX_REVIEW_LENGTH = 350

class ReviewSubmit(CamelModel):
    """Body for POST /tutors/{tutorId}/reviews. The tutor comes from the path and the student from the token."""
    rating: Annotated[int, Field(strict=True, ge=MIN_RATING, le=MAX_RATING)]
    review_text: Annotated[str, Field(max_length=MAX_REVIEW_LENGTH)] = ''

    @field_validator('review_text', mode='before')
    def sanitize_review_text(cls, v):
        if v is None:
            return ''
        return sanitize_text(v)

class ReviewResponse(CamelModel):
    """A stored review"""
    id: str
    tutor_id: str
    student_id: str
    rating: int
    review_text: str
    created_at: datetime
    updated_at: datetime

class ReviewListItem(ReviewResponse):
    """A review as shown on a tutor's page"""
    student_name: Optional[str] = None

class ReviewListResponse(CamelModel):
    """Reviews for a tutor, newest first"""
    reviews: List[ReviewListItem]
    pagination: PaginationResponse
