from music_tutoring.database.database import User, UserRole, StudentProfile, TutorProfile, Enquiry, TutorReview
from music_tutoring.mock_data import seed_mock_data, mock_users, mock_enquiries, mock_reviews, MOCK_PASSWORD

def test_seed_creates_demo_accounts(test_db):
    users = seed_mock_data(test_db)

    assert test_db.query(User).count() == len(mock_users)
    assert test_db.query(StudentProfile).count() == 2
    assert test_db.query(TutorProfile).filter(TutorProfile.onboarding_complete.is_(True)).count() == 3
    assert test_db.query(Enquiry).count() == len(mock_enquiries)
    assert test_db.query(TutorReview).count() == len(mock_reviews)
    assert users["admin@musictutor.com"].role == UserRole.ADMIN
    assert users["alex.johnson@gmail.com"].check_password(MOCK_PASSWORD)

def test_seed_ratings_match_reviews(test_db):
    users = seed_mock_data(test_db)

    test_db.expire_all()
    guru = test_db.query(TutorProfile).filter(TutorProfile.user_id == users["guru.raghunath@musictutor.com"].id).one()
    karthik = test_db.query(TutorProfile).filter(TutorProfile.user_id == users["karthik.s@musictutor.com"].id).one()
    assert (guru.rating, guru.review_count) == (5.0, 1)
    assert (karthik.rating, karthik.review_count) == (4.0, 1)

def test_seed_is_idempotent(test_db):
    seed_mock_data(test_db)
    seed_mock_data(test_db)

    assert test_db.query(User).count() == len(mock_users)
    assert test_db.query(Enquiry).count() == len(mock_enquiries)
    assert test_db.query(TutorReview).count() == len(mock_reviews)

def test_seeded_accounts_can_log_in(client, test_db):
    seed_mock_data(test_db)

    response = client.post("/api/auth/login", json={"email": "guru.raghunath@musictutor.com", "password": MOCK_PASSWORD})

    assert response.status_code == 200
    assert response.json()["user"]["role"] == "teacher"
    listed = client.get("/api/tutors").json()
    assert listed["pagination"]["total"] == 3
