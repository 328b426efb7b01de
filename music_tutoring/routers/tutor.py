"""
Tutor router: public tutor directory, the tutor's own profile, and tutor reviews.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Literal, Optional
from music_tutoring.auth_tools import student_only, tutor_only
from music_tutoring.database.database import get_db, ProficiencyLevel
from music_tutoring.schemas.authentication_schema import DecodedAccessToken
from music_tutoring.schemas.review_schema import ReviewSubmit, ReviewResponse, ReviewListResponse
from music_tutoring.schemas.tutor_schema import (
    TutorFilters, TutorProfileCreate, TutorProfileUpdate, AvailabilityUpdate, OnlineStatusUpdate,
    TutorPublicResponse, TutorPrivateResponse, TutorListResponse, AvailabilityResponse, OnlineStatusResponse
)
from music_tutoring.services import review_service, tutor_service
from music_tutoring.utilities import DEFAULT_PAGE_SIZE

router = APIRouter(prefix='/tutors')

@router.get('', response_model=TutorListResponse)
def list_tutors(
    instrument: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    min_rate: Optional[float] = Query(None, alias='minRate', ge=0),
    max_rate: Optional[float] = Query(None, alias='maxRate', ge=0),
    proficiency_level: Optional[ProficiencyLevel] = Query(None, alias='proficiencyLevel'),
    is_online: Optional[bool] = Query(None, alias='isOnline'),
    is_verified: Optional[bool] = Query(None, alias='isVerified'),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    sort_by: Literal['rating', 'hourlyRate', 'yearsOfExperience', 'createdAt'] = Query('rating', alias='sortBy'),
    sort_order: Literal['asc', 'desc'] = Query('desc', alias='sortOrder'),
    db: Session = Depends(get_db)
):
    """
    Search onboarded tutors.

    Parameters:
    - instrument, city, state: case-insensitive partial match
    - minRate, maxRate: hourly rate bounds
    - proficiencyLevel, isOnline, isVerified: exact match
    - sortBy, sortOrder: defaults to highest rated first
    - page, limit: limit is capped at 50
    """
    filters = TutorFilters(
        instrument=instrument, city=city, state=state,
        min_rate=min_rate, max_rate=max_rate,
        proficiency_level=proficiency_level, is_online=is_online, is_verified=is_verified,
        page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
    )
    return tutor_service.list_tutors(db, filters)

@router.post('', response_model=TutorPrivateResponse, status_code=201)
def create_profile(data: TutorProfileCreate, current_user: DecodedAccessToken = Depends(tutor_only), db: Session = Depends(get_db)):
    """Tutor onboarding. Saves the full profile and marks onboarding as complete."""
    return tutor_service.create_or_update_tutor_profile(db, current_user.sub, data)

@router.patch('', response_model=TutorPrivateResponse)
def update_profile(data: TutorProfileUpdate, current_user: DecodedAccessToken = Depends(tutor_only), db: Session = Depends(get_db)):
    return tutor_service.create_or_update_tutor_profile(db, current_user.sub, data)

@router.patch('/availability', response_model=AvailabilityResponse)
def update_availability(data: AvailabilityUpdate, current_user: DecodedAccessToken = Depends(tutor_only), db: Session = Depends(get_db)):
    return tutor_service.update_availability(db, current_user.sub, data.availability)

@router.patch('/online-status', response_model=OnlineStatusResponse)
def update_online_status(data: OnlineStatusUpdate, current_user: DecodedAccessToken = Depends(tutor_only), db: Session = Depends(get_db)):
    return tutor_service.update_online_status(db, current_user.sub, data.is_online)

@router.get('/{tutor_id}', response_model=TutorPublicResponse)
def get_tutor(tutor_id: str, db: Session = Depends(get_db)):
    """
    Public profile of a tutor, identified by the tutor's user id.

    Raises:
    - 404 TUTOR_NOT_FOUND: No tutor with this id
    """
    return tutor_service.get_tutor_by_id(db, tutor_id)

@router.post('/{tutor_id}/reviews', response_model=ReviewResponse, status_code=201)
def submit_review(tutor_id: str, data: ReviewSubmit, current_user: DecodedAccessToken = Depends(student_only), db: Session = Depends(get_db)):
    """
    Rate a tutor. A student has one review per tutor; submitting again replaces it.

    Parameters:
    - tutor_id: The tutor's user id
    - data: rating (1-5) and optional reviewText (up to 350 characters)
    - current_user: Authenticated student

    Returns:
    - ReviewResponse: The stored review

    Raises:
    - 400 VALIDATION_ERROR: Invalid rating or review text
    - 403 FORBIDDEN: The caller is not a student
    - 404 TUTOR_NOT_FOUND / STUDENT_NOT_FOUND
    """
    return review_service.submit_review(db, tutor_id, current_user.sub, data.rating, data.review_text)

@router.get('/{tutor_id}/reviews', response_model=ReviewListResponse)
def list_reviews(
    tutor_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db)
):
    """Reviews of a tutor, newest first. limit is capped at 50."""
    return review_service.list_reviews_for_tutor(db, tutor_id, page=page, limit=limit)
