from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from music_tutoring.auth_tools import student_only
from music_tutoring.database.database import get_db
from music_tutoring.schemas.authentication_schema import DecodedAccessToken
from music_tutoring.schemas.student_schema import StudentProfileUpdate, StudentProfileResponse
from music_tutoring.services import student_service

router = APIRouter(prefix='/students')

@router.get('/profile', response_model=StudentProfileResponse)
def get_profile(current_user: DecodedAccessToken = Depends(student_only), db: Session = Depends(get_db)):
    """Profile of the logged in student"""
    return student_service.get_student_profile(db, current_user.sub)

@router.patch('/profile', response_model=StudentProfileResponse)
def update_profile(data: StudentProfileUpdate, current_user: DecodedAccessToken = Depends(student_only), db: Session = Depends(get_db)):
    """
    Updates the profile of the logged in student.

    Parameters:
    - data: level, preferredInstruments and bio, all optional
    - current_user: Authenticated student

    Returns:
    - StudentProfileResponse: The updated profile
    """
    return student_service.update_student_profile(db, current_user.sub, data)
