from sqlalchemy.orm import Session
from music_tutoring.database.database import User, UserRole, StudentProfile
from music_tutoring.errors import NotFoundError
from music_tutoring.logger import logger
from music_tutoring.schemas.student_schema import StudentProfileUpdate

def format_student(profile: StudentProfile) -> dict:
    user = profile.user
    return {
        "id": profile.user_id,
        "name": user.name,
        "email": user.email,
        "photo_url": user.photo_url,
        "level": profile.level,
        "preferred_instruments": profile.preferred_instruments or [],
        "bio": profile.bio,
        "created_at": profile.created_at,
        "updated_at": profile.updated_at,
    }

def get_student_profile(db: Session, user_id: str) -> dict:
    profile = (
        db.query(StudentProfile)
        .join(User, User.id == StudentProfile.user_id)
        .filter(StudentProfile.user_id == user_id, User.role == UserRole.STUDENT)
        .first()
    )
    if not profile:
        raise NotFoundError("Student profile not found", code='PROFILE_NOT_FOUND')
    return format_student(profile)

def update_student_profile(db: Session, user_id: str, data: StudentProfileUpdate) -> dict:
    """
    Apply the fields the student sent to their profile.

    A student who lost their profile row (role set before profiles existed) gets a
    new one here instead of an error.
    """
    user = User.get_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found", code='USER_NOT_FOUND')

    values = data.model_dump(exclude_unset=True)

    profile = db.query(StudentProfile).filter(StudentProfile.user_id == user_id).first()
    if not profile:
        profile = StudentProfile(user_id=user_id)
        db.add(profile)

    for field, value in values.items():
        if value is None and field == 'preferred_instruments':
            value = []
        setattr(profile, field, value)

    db.commit()
    db.refresh(profile)

    logger.info(f"[Mock Email] Student profile updated for {user.email}")
    return format_student(profile)
