"""
Enquiry router. Students send enquiries to tutors, tutors accept or decline them.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Literal, Optional
from music_tutoring.auth_tools import require_roles, student_only, tutor_only
from music_tutoring.database.database import get_db, UserRole, EnquiryStatus
from music_tutoring.schemas.authentication_schema import DecodedAccessToken
from music_tutoring.schemas.enquiry_schema import (
    EnquiryCreate, EnquiryStatusUpdate, EnquiryFilters,
    EnquiryResponse, EnquiryListResponse, EnquiryStatusResponse, EnquiryStatsResponse
)
from music_tutoring.services import enquiry_service
from music_tutoring.utilities import DEFAULT_PAGE_SIZE

router = APIRouter(prefix='/enquiries')

@router.post('', response_model=EnquiryResponse, status_code=201)
def create_enquiry(data: EnquiryCreate, current_user: DecodedAccessToken = Depends(student_only), db: Session = Depends(get_db)):
    """
    Send an enquiry to a tutor.

    Raises:
    - 404 TUTOR_NOT_FOUND: The tutor does not exist
    - 409 DUPLICATE_ENQUIRY: There is already a pending enquiry with this tutor
    """
    return enquiry_service.create_enquiry(db, current_user.sub, data)

@router.get('', response_model=EnquiryListResponse)
def list_enquiries(
    status: Optional[EnquiryStatus] = None,
    sort_by: Literal['createdAt', 'status'] = Query('createdAt', alias='sortBy'),
    sort_order: Literal['asc', 'desc'] = Query('desc', alias='sortOrder'),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    current_user: DecodedAccessToken = Depends(require_roles(UserRole.STUDENT, UserRole.TEACHER)),
    db: Session = Depends(get_db)
):
    """Students see the enquiries they sent, tutors the ones they received."""
    filters = EnquiryFilters(status=status, sort_by=sort_by, sort_order=sort_order, page=page, limit=limit)
    if current_user.role == UserRole.STUDENT.value:
        return enquiry_service.list_student_enquiries(db, current_user.sub, filters)
    return enquiry_service.list_teacher_enquiries(db, current_user.sub, filters)

@router.get('/stats', response_model=EnquiryStatsResponse)
def enquiry_stats(current_user: DecodedAccessToken = Depends(tutor_only), db: Session = Depends(get_db)):
    """Counts per status for the tutor dashboard"""
    return enquiry_service.get_teacher_enquiry_stats(db, current_user.sub)

@router.get('/{enquiry_id}', response_model=EnquiryResponse)
def get_enquiry(
    enquiry_id: str,
    current_user: DecodedAccessToken = Depends(require_roles(UserRole.STUDENT, UserRole.TEACHER)),
    db: Session = Depends(get_db)
):
    return enquiry_service.get_enquiry_by_id(db, enquiry_id, current_user.sub)

@router.patch('/{enquiry_id}', response_model=EnquiryStatusResponse)
def respond_to_enquiry(enquiry_id: str, data: EnquiryStatusUpdate, current_user: DecodedAccessToken = Depends(tutor_only), db: Session = Depends(get_db)):
    """
    Accept or decline an enquiry.

    Raises:
    - 400 ALREADY_RESPONDED: The enquiry is no longer pending
    - 403 FORBIDDEN: The enquiry was sent to another tutor
    - 404 ENQUIRY_NOT_FOUND
    """
    return enquiry_service.update_enquiry_status(db, enquiry_id, current_user.sub, data.status)
