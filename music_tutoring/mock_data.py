# mock_data.py

from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from music_tutoring.database.database import (
    SessionLocal, init_db, User, UserRole, StudentProfile, TutorProfile, Enquiry,
    StudentLevel, ProficiencyLevel, PreferredTime, EnquiryStatus, ContactMode
)
from music_tutoring.logger import logger
from music_tutoring.services.review_service import submit_review

# Every demo account logs in with this password
MOCK_PASSWORD = "password123"

mock_users = [
    {"email": "admin@musictutor.com", "name": "Admin User", "role": UserRole.ADMIN, "photo_url": "https://i.pravatar.cc/300?u=admin"},
    {"email": "guru.raghunath@musictutor.com", "name": "Guru Raghunath Sharma", "role": UserRole.TEACHER, "photo_url": "https://i.pravatar.cc/300?u=guru1"},
    {"email": "priya.venkatesh@musictutor.com", "name": "Priya Venkatesh", "role": UserRole.TEACHER, "photo_url": "https://i.pravatar.cc/300?u=priya2"},
    {"email": "karthik.s@musictutor.com", "name": "Karthik Subramanian", "role": UserRole.TEACHER, "photo_url": "https://i.pravatar.cc/300?u=karthik3"},
    {"email": "alex.johnson@gmail.com", "name": "Alex Johnson", "role": UserRole.STUDENT, "photo_url": "https://i.pravatar.cc/300?u=student1"},
    {"email": "maya.patel@gmail.com", "name": "Maya Patel", "role": UserRole.STUDENT, "photo_url": "https://i.pravatar.cc/300?u=maya101"},
]

mock_student_profiles = [
    {"email": "alex.johnson@gmail.com", "level": StudentLevel.BEGINNER, "preferred_instruments": ["Mridangam"], "bio": "Eager to learn traditional percussion!"},
    {"email": "maya.patel@gmail.com", "level": StudentLevel.INTERMEDIATE, "preferred_instruments": ["Mridangam", "Tabla"], "bio": "Two years of learning, looking to advance."},
]

mock_tutor_profiles = [
    {
        "email": "guru.raghunath@musictutor.com", "instrument": "Mridangam", "proficiency_level": ProficiencyLevel.EXPERT,
        "hourly_rate": 75.0, "city": "Chennai", "state": "Tamil Nadu", "years_of_experience": 25,
        "is_online": True, "is_verified": True,
        "bio": "Over 25 years of Carnatic percussion, combining the guru-shishya tradition with modern teaching.",
        "availability": [
            {"day": "mon", "startTime": "09:00", "endTime": "12:00"},
            {"day": "wed", "startTime": "09:00", "endTime": "12:00"},
            {"day": "sat", "startTime": "10:00", "endTime": "16:00"},
        ],
        "preferred_contact_mode": ContactMode.EMAIL, "preferred_contact_value": "guru.raghunath@musictutor.com",
    },
    {
        "email": "priya.venkatesh@musictutor.com", "instrument": "Mridangam", "proficiency_level": ProficiencyLevel.ADVANCED,
        "hourly_rate": 55.0, "city": "Bangalore", "state": "Karnataka", "years_of_experience": 12,
        "is_online": True, "is_verified": True,
        "bio": "Patient teacher who makes complex talas accessible to beginners.",
        "availability": [
            {"day": "tue", "startTime": "10:00", "endTime": "13:00"},
            {"day": "sun", "startTime": "09:00", "endTime": "12:00"},
        ],
        "preferred_contact_mode": ContactMode.PHONE, "preferred_contact_value": "+919800000002",
    },
    {
        "email": "karthik.s@musictutor.com", "instrument": "Mridangam", "proficiency_level": ProficiencyLevel.EXPERT,
        "hourly_rate": 65.0, "city": "Hyderabad", "state": "Telangana", "years_of_experience": 18,
        "is_online": False, "is_verified": True,
        "bio": "Award-winning percussionist and composer blending classical and contemporary styles.",
        "availability": [
            {"day": "mon", "startTime": "17:00", "endTime": "21:00"},
            {"day": "fri", "startTime": "17:00", "endTime": "21:00"},
        ],
        "preferred_contact_mode": ContactMode.EMAIL, "preferred_contact_value": "karthik.s@musictutor.com",
    },
]

mock_enquiries = [
    {
        "student": "alex.johnson@gmail.com", "tutor": "guru.raghunath@musictutor.com",
        "message": "I would love to learn the basics of Mridangam. I have no prior experience but am very eager to learn.",
        "student_level": StudentLevel.BEGINNER, "preferred_days": ["mon", "wed", "fri"], "preferred_time": PreferredTime.EVENING,
        "status": EnquiryStatus.PENDING, "days_ago": 2,
    },
    {
        "student": "alex.johnson@gmail.com", "tutor": "priya.venkatesh@musictutor.com",
        "message": "Interested in weekend classes if available.",
        "student_level": StudentLevel.BEGINNER, "preferred_days": ["sat", "sun"], "preferred_time": PreferredTime.MORNING,
        "status": EnquiryStatus.ACCEPTED, "days_ago": 5,
    },
    {
        "student": "maya.patel@gmail.com", "tutor": "karthik.s@musictutor.com",
        "message": "Looking for an expert teacher to help me prepare for upcoming performances.",
        "student_level": StudentLevel.ADVANCED, "preferred_days": ["mon", "fri"], "preferred_time": PreferredTime.EVENING,
        "status": EnquiryStatus.ACCEPTED, "days_ago": 10,
    },
]

mock_reviews = [
    {"student": "alex.johnson@gmail.com", "tutor": "priya.venkatesh@musictutor.com", "rating": 5, "review_text": "Clear explanations & lots of patience."},
    {"student": "maya.patel@gmail.com", "tutor": "karthik.s@musictutor.com", "rating": 4, "review_text": "Great for performance preparation."},
    {"student": "maya.patel@gmail.com", "tutor": "guru.raghunath@musictutor.com", "rating": 5, "review_text": ""},
]

def _seed_users(db: Session) -> dict:
    users = {}
    for data in mock_users:
        user = db.query(User).filter(User.email == data["email"]).first()
        if user is None:
            user = User(**data)
            user.set_password(MOCK_PASSWORD)
            db.add(user)
        users[data["email"]] = user
    db.flush()
    return users

def _seed_profiles(db: Session, users: dict):
    for data in mock_student_profiles:
        fields = dict(data)
        user = users[fields.pop("email")]
        if db.query(StudentProfile).filter(StudentProfile.user_id == user.id).first() is None:
            db.add(StudentProfile(user_id=user.id, **fields))

    for data in mock_tutor_profiles:
        fields = dict(data)
        user = users[fields.pop("email")]
        if db.query(TutorProfile).filter(TutorProfile.user_id == user.id).first() is None:
            db.add(TutorProfile(user_id=user.id, country="India", onboarding_complete=True, **fields))

def _seed_enquiries(db: Session, users: dict):
    now = datetime.now()
    for data in mock_enquiries:
        student = users[data["student"]]
        tutor = users[data["tutor"]]
        exists = (
            db.query(Enquiry)
            .filter(Enquiry.student_id == student.id, Enquiry.tutor_id == tutor.id)
            .first()
        )
        if exists:
            continue
        created_at = now - timedelta(days=data["days_ago"])
        db.add(Enquiry(
            student_id=student.id,
            tutor_id=tutor.id,
            message=data["message"],
            student_level=data["student_level"],
            preferred_days=data["preferred_days"],
            preferred_time=data["preferred_time"],
            status=data["status"],
            created_at=created_at,
            responded_at=created_at + timedelta(days=1) if data["status"] != EnquiryStatus.PENDING else None,
        ))

def seed_mock_data(db: Session) -> dict:
    """
    Insert the demo accounts, profiles, enquiries and reviews.

    Safe to run more than once: existing accounts are reused and nothing is duplicated.
    Reviews go through the review service so every tutor's rating matches their reviews.

    Returns:
        dict: email -> User for every demo account
    """
    users = _seed_users(db)
    _seed_profiles(db, users)
    _seed_enquiries(db, users)
    db.commit()

    for data in mock_reviews:
        submit_review(db, users[data["tutor"]].id, users[data["student"]].id, data["rating"], data["review_text"])

    logger.info(f"Seeded {len(mock_users)} demo accounts (password: {MOCK_PASSWORD})")
    return users

if __name__ == '__main__':
    init_db()
    db = SessionLocal()
    try:
        seed_mock_data(db)
    finally:
        db.close()
