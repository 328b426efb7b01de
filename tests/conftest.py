import os
import tempfile

# Settings are read once, so the environment has to be in place before the app is imported
_db_dir = tempfile.mkdtemp(prefix="music_tutoring_tests_")
os.environ["DB_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["LOG_TO_FILE"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["USE_REDIS"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from music_tutoring.main import app
from music_tutoring.database.database import Base, get_db, build_engine, User, UserRole, StudentProfile, TutorProfile
from music_tutoring.services import auth_service

# Create a test database
engine = build_engine(os.environ["DB_URL"])
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Override the get_db dependency to use the test database
def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

@pytest.fixture(autouse=True)
def clean_database():
    """Every test starts from empty tables and no stored refresh tokens."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    auth_service.refresh_token_store.clear()
    yield

@pytest.fixture
def client():
    return TestClient(app)

@pytest.fixture
def session_factory():
    return TestingSessionLocal

@pytest.fixture
def test_db():
    db = TestingSessionLocal()
    yield db
    db.close()

@pytest.fixture
def make_user(test_db):
    counter = {"n": 0}

    def _make_user(role=None, name=None, email=None, password=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"user{n}@example.com",
            name=name or f"User {n}",
            role=role,
        )
        if password:
            user.set_password(password)
        test_db.add(user)
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make_user

@pytest.fixture
def make_student(test_db, make_user):
    def _make_student(name=None, **kwargs):
        user = make_user(role=UserRole.STUDENT, name=name, **kwargs)
        test_db.add(StudentProfile(user_id=user.id))
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make_student

@pytest.fixture
def make_tutor(test_db, make_user):
    def _make_tutor(name=None, email=None, password=None, **profile_fields):
        user = make_user(role=UserRole.TEACHER, name=name, email=email, password=password)
        profile_fields.setdefault("instrument", "Piano")
        profile_fields.setdefault("onboarding_complete", True)
        test_db.add(TutorProfile(user_id=user.id, **profile_fields))
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make_tutor

@pytest.fixture
def auth_headers():
    """Bearer header for a user, as issued by login."""
    def _auth_headers(user):
        token = auth_service.create_access_token(user, refresh_token_id=None)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
