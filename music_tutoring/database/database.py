from sqlalchemy import create_engine, Column, Integer, String, Numeric, Text, DateTime, Boolean, ForeignKey, Enum, Index, CheckConstraint, UniqueConstraint, JSON
from sqlalchemy.orm import relationship, declarative_base, sessionmaker
from passlib.context import CryptContext
from datetime import datetime
import uuid
from music_tutoring.config import get_settings
import enum
from typing import Optional

"""
Database models for the music tutor marketplace.
Includes models for users, student and tutor profiles, enquiries and tutor reviews.
Uses SQLAlchemy ORM with PostgreSQL/SQLite backend.
"""

# Base class for ORM models
Base = declarative_base()

# Password hashing
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Enum for user roles. A user has no role until they pick one after signing up.
class UserRole(enum.Enum):
    ADMIN = "admin"
    STUDENT = "student"
    TEACHER = "teacher"

class AuthProvider(enum.Enum):
    EMAIL = "email"
    GOOGLE = "google"
    APPLE = "apple"
    FACEBOOK = "facebook"

class StudentLevel(enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

class ProficiencyLevel(enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"
    MASTER = "master"

class ContactMode(enum.Enum):
    EMAIL = "email"
    PHONE = "phone"

class PreferredTime(enum.Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    FLEXIBLE = "flexible"

class EnquiryStatus(enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"

def _values(enum_cls):
    """Persist enums by value ("teacher") rather than by member name ("TEACHER")."""
    return [member.value for member in enum_cls]

def is_valid_uuid(uuid_str: str) -> bool:
    """Validate UUID string format."""
    if not uuid_str:
        return False
    try:
        # Validate length and format
        if len(uuid_str) != 36:
            return False
        # Try to parse as UUID to validate format
        uuid_obj = uuid.UUID(uuid_str)
        return str(uuid_obj) == uuid_str.lower()
    except (ValueError, AttributeError, TypeError):
        return False

def generate_uuid() -> str:
    """Generate a string UUID."""
    return str(uuid.uuid4()).lower()

# User Model
class User(Base):
    """User account. Role specific data lives on the matching profile."""
    __tablename__ = 'users'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)  # Nullable for social login accounts
    name = Column(String(255), nullable=False)
    photo_url = Column(Text, nullable=True)
    role = Column(Enum(UserRole, values_callable=_values, name='user_role'), nullable=True, index=True)
    auth_provider = Column(Enum(AuthProvider, values_callable=_values, name='auth_provider'), nullable=False, default=AuthProvider.EMAIL)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    # Relationships
    student_profile = relationship("StudentProfile", back_populates="user", uselist=False, cascade='all, delete-orphan')
    tutor_profile = relationship("TutorProfile", back_populates="user", uselist=False, cascade='all, delete-orphan')

    @classmethod
    def get_by_id(cls, db, user_id: str) -> Optional['User']:
        """Get user by UUID string."""
        if not is_valid_uuid(user_id):
            return None
        return db.query(cls).filter(cls.id == user_id).first()

    def set_password(self, password: str):
        """Hash and set the user's password."""
        self.password_hash = pwd_context.hash(password)

    def check_password(self, password: str) -> bool:
        """Verify the user's password. Accounts created through social login have none."""
        if not self.password_hash:
            return False
        return pwd_context.verify(password, self.password_hash)

    def __repr__(self):
        """String representation of the User object."""
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

# Student Profile Model
class StudentProfile(Base):
    """Student profile: level, instruments of interest and a short bio."""
    __tablename__ = 'student_profiles'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    level = Column(Enum(StudentLevel, values_callable=_values, name='student_level'), nullable=True, default=StudentLevel.BEGINNER)
    preferred_instruments = Column(JSON, nullable=False, default=list)
    bio = Column(Text)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    # Relationships
    user = relationship("User", back_populates="student_profile", lazy='joined')

    def __repr__(self):
        """String representation of the StudentProfile object."""
        return f"<StudentProfile(id={self.id}, user_id={self.user_id}, level={self.level})>"

# Tutor Profile Model
class TutorProfile(Base):
    """
    Tutor profile. Looked up by user_id everywhere; the row's own id is never exposed.

    rating and review_count are a cached projection of the tutor_reviews rows and
    are written only by services.review_service.
    """
    __tablename__ = 'tutor_profiles'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    instrument = Column(String(100), nullable=True, index=True)
    proficiency_level = Column(Enum(ProficiencyLevel, values_callable=_values, name='proficiency_level'), nullable=True, index=True)
    hourly_rate = Column(Numeric(10, 2, asdecimal=False), nullable=True, index=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True, default='India')
    bio = Column(Text, nullable=True)
    availability = Column(JSON, nullable=False, default=list)  # [{day, startTime, endTime}]
    time_zone_availability = Column(JSON, nullable=False, default=list)  # [{timeZone, startTime, endTime}]
    is_online = Column(Boolean, default=False, nullable=False, index=True)
    is_verified = Column(Boolean, default=False, nullable=False, index=True)
    years_of_experience = Column(Integer, default=0, nullable=True)
    rating = Column(Numeric(2, 1, asdecimal=False), default=0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    onboarding_complete = Column(Boolean, default=False, nullable=False, index=True)
    preferred_contact_mode = Column(Enum(ContactMode, values_callable=_values, name='contact_mode'), nullable=True)
    preferred_contact_value = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    # Table-level constraints
    __table_args__ = (
        CheckConstraint('hourly_rate >= 0', name='check_hourly_rate_positive'),
        CheckConstraint('rating >= 0 AND rating <= 5', name='check_rating_range'),
        CheckConstraint('review_count >= 0', name='check_review_count_positive'),
        Index('idx_tutor_city_state', 'city', 'state'),
    )

    # Relationships
    user = relationship("User", back_populates="tutor_profile", lazy='joined')

    def __repr__(self):
        """String representation of the TutorProfile object."""
        return f"<TutorProfile(id={self.id}, user_id={self.user_id}, instrument={self.instrument})>"

# Enquiry Model
class Enquiry(Base):
    """A contact request from a student to a tutor, answered with accept or decline."""
    __tablename__ = 'enquiries'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    student_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    tutor_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    message = Column(Text, nullable=False)
    student_level = Column(Enum(StudentLevel, values_callable=_values, name='enquiry_student_level'), nullable=False)
    preferred_days = Column(JSON, nullable=False, default=list)
    preferred_time = Column(Enum(PreferredTime, values_callable=_values, name='preferred_time'), nullable=False, default=PreferredTime.FLEXIBLE)
    status = Column(Enum(EnquiryStatus, values_callable=_values, name='enquiry_status'), nullable=False, default=EnquiryStatus.PENDING, index=True)
    responded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    # Relationships
    student = relationship("User", foreign_keys=[student_id], lazy='joined')
    tutor = relationship("User", foreign_keys=[tutor_id], lazy='joined')

    def __repr__(self):
        """String representation of the Enquiry object."""
        return f"<Enquiry(id={self.id}, student_id={self.student_id}, tutor_id={self.tutor_id}, status={self.status})>"

# Tutor Review Model
class TutorReview(Base):
    """A student's rating of a tutor. At most one row per (tutor, student) pair."""
    __tablename__ = 'tutor_reviews'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    tutor_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    review_text = Column(Text, nullable=False, default='')
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    __table_args__ = (
        UniqueConstraint('tutor_id', 'student_id', name='uq_tutor_review_pair'),
        CheckConstraint('rating >= 1 AND rating <= 5', name='check_review_rating_range'),
    )

    # Relationships
    tutor = relationship("User", foreign_keys=[tutor_id])
    student = relationship("User", foreign_keys=[student_id])

    def __repr__(self):
        """String representation of the TutorReview object."""
        return f"<TutorReview(id={self.id}, tutor_id={self.tutor_id}, student_id={self.student_id}, rating={self.rating})>"

# Add indexes for frequently queried columns
Index('idx_tutor_rating', TutorProfile.rating)
Index('idx_enquiry_tutor_status', Enquiry.tutor_id, Enquiry.status)
Index('idx_enquiry_student_status', Enquiry.student_id, Enquiry.status)
Index('idx_review_tutor_created', TutorReview.tutor_id, TutorReview.created_at)

def build_engine(db_url: str, echo: bool = False):
    """Create an engine; SQLite needs cross-thread access and a busy timeout, other backends get a pool."""
    if db_url.startswith("sqlite"):
        return create_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30}
        )
    return create_engine(
        db_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_pre_ping=True
    )

# Database setup
DATABASE_URL = get_settings().db_url
engine = build_engine(DATABASE_URL, echo=get_settings().db_echo)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_db(bind=None):
    """Create all tables that don't exist yet."""
    Base.metadata.create_all(bind=bind or engine)

# Dependency to get DB session
def get_db():
    """Provides a transactional scope around a series of operations."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
