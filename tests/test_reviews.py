from datetime import datetime, timedelta
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from music_tutoring.database.database import TutorProfile, TutorReview
from music_tutoring.errors import ConflictError, InternalError, NotFoundError, ValidationError
from music_tutoring.services import review_service
from music_tutoring.services.review_service import (
    submit_review, recalculate_tutor_stats, list_reviews_for_tutor, tutor_stats
)

def _profile(db, tutor):
    db.expire_all()
    return db.query(TutorProfile).filter(TutorProfile.user_id == tutor.id).one()

def _review_count(db, tutor):
    return db.query(TutorReview).filter(TutorReview.tutor_id == tutor.id).count()

############################
##### AGGREGATE MATH #######
############################

@pytest.mark.parametrize("ratings, expected", [
    ([], (0.0, 0)),
    ([5], (5.0, 1)),
    ([5, 4, 3], (4.0, 3)),
    ([5, 4, 3, 2], (3.5, 4)),
    ([4, 5, 5], (4.7, 3)),
    ([1, 2], (1.5, 2)),
    ([4, 4, 5, 5, 5, 5, 5, 5], (4.8, 8)),
])
def test_tutor_stats(ratings, expected):
    assert tutor_stats(sum(ratings), len(ratings)) == expected

def test_tutor_stats_rounds_half_up():
    # 4.25 and 4.75 sit exactly on the boundary
    assert tutor_stats(17, 4) == (4.3, 4)
    assert tutor_stats(19, 4) == (4.8, 4)

############################
##### SUBMIT (SERVICE) #####
############################

def test_first_review_creates_row_and_sets_stats(test_db, make_tutor, make_student):
    tutor = make_tutor()
    student = make_student()

    review = submit_review(test_db, tutor.id, student.id, 4, "Patient and clear")

    assert review.id
    assert review.rating == 4
    assert review.review_text == "Patient and clear"
    profile = _profile(test_db, tutor)
    assert profile.rating == 4.0
    assert profile.review_count == 1

def test_resubmission_overwrites_existing_review(test_db, make_tutor, make_student):
    tutor = make_tutor()
    student = make_student()

    first = submit_review(test_db, tutor.id, student.id, 2, "Meh")
    second = submit_review(test_db, tutor.id, student.id, 5, "Much better now")

    assert second.id == first.id
    assert _review_count(test_db, tutor) == 1
    stored = test_db.query(TutorReview).filter(TutorReview.id == first.id).one()
    assert stored.rating == 5
    assert stored.review_text == "Much better now"
    profile = _profile(test_db, tutor)
    assert profile.rating == 5.0
    assert profile.review_count == 1

def test_aggregate_follows_each_submission(test_db, make_tutor, make_student):
    tutor = make_tutor()
    students = [make_student() for _ in range(4)]

    for student, rating in zip(students[:3], [5, 4, 3]):
        submit_review(test_db, tutor.id, student.id, rating)
    profile = _profile(test_db, tutor)
    assert (profile.rating, profile.review_count) == (4.0, 3)

    submit_review(test_db, tutor.id, students[3].id, 2)
    profile = _profile(test_db, tutor)
    assert (profile.rating, profile.review_count) == (3.5, 4)

def test_review_text_defaults_to_empty(test_db, make_tutor, make_student):
    tutor = make_tutor()
    student = make_student()

    review = submit_review(test_db, tutor.id, student.id, 3, None)

    assert review.review_text == ""

@pytest.mark.parametrize("rating", [0, 6, -1, 3.5, "4", True, None])
def test_invalid_rating_is_rejected_before_persistence(test_db, make_tutor, make_student, rating):
    tutor = make_tutor()
    student = make_student()

    with pytest.raises(ValidationError):
        submit_review(test_db, tutor.id, student.id, rating)

    assert _review_count(test_db, tutor) == 0
    profile = _profile(test_db, tutor)
    assert profile.rating == 0
    assert profile.review_count == 0

def test_review_text_longer_than_limit_is_rejected(test_db, make_tutor, make_student):
    tutor = make_tutor()
    student = make_student()

    with pytest.raises(ValidationError):
        submit_review(test_db, tutor.id, student.id, 4, "x" * 351)

    assert _review_count(test_db, tutor) == 0

def test_review_text_at_limit_is_accepted(test_db, make_tutor, make_student):
    tutor = make_tutor()
    student = make_student()

    review = submit_review(test_db, tutor.id, student.id, 4, "x" * 350)

    assert len(review.review_text) == 350

def test_unknown_tutor_is_not_found(test_db, make_student):
    student = make_student()

    with pytest.raises(NotFoundError) as exc:
        submit_review(test_db, "00000000-0000-4000-8000-000000000000", student.id, 4)

    assert exc.value.code == 'TUTOR_NOT_FOUND'

def test_student_must_be_a_student(test_db, make_tutor):
    tutor = make_tutor()
    other_tutor = make_tutor()

    with pytest.raises(NotFoundError) as exc:
        submit_review(test_db, tutor.id, other_tutor.id, 4)

    assert exc.value.code == 'STUDENT_NOT_FOUND'
    assert _review_count(test_db, tutor) == 0

############################
##### STORAGE FAILURES #####
############################

def _disk_error(*args, **kwargs):
    raise OperationalError("UPDATE tutor_profiles", {}, Exception("disk I/O error"))

def _duplicate_pair(*args, **kwargs):
    raise IntegrityError("INSERT INTO tutor_reviews", {}, Exception("UNIQUE constraint failed: tutor_reviews.tutor_id, tutor_reviews.student_id"))

def test_failed_recompute_rolls_back_new_review(test_db, make_tutor, make_student, monkeypatch):
    tutor = make_tutor()
    student = make_student()
    monkeypatch.setattr(review_service, "_apply_tutor_stats", _disk_error)

    with pytest.raises(InternalError):
        submit_review(test_db, tutor.id, student.id, 5, "Never stored")

    assert _review_count(test_db, tutor) == 0
    profile = _profile(test_db, tutor)
    assert profile.rating == 0
    assert profile.review_count == 0

def test_failed_recompute_keeps_previous_review(test_db, make_tutor, make_student, monkeypatch):
    tutor = make_tutor()
    student = make_student()
    submit_review(test_db, tutor.id, student.id, 4, "Solid basics")
    monkeypatch.setattr(review_service, "_apply_tutor_stats", _disk_error)

    with pytest.raises(InternalError):
        submit_review(test_db, tutor.id, student.id, 1, "Changed my mind")

    test_db.expire_all()
    review = test_db.query(TutorReview).filter(TutorReview.tutor_id == tutor.id).one()
    assert review.rating == 4
    assert review.review_text == "Solid basics"
    profile = _profile(test_db, tutor)
    assert profile.rating == 4.0
    assert profile.review_count == 1

def test_duplicate_pair_on_flush_is_a_conflict(test_db, make_tutor, make_student, monkeypatch):
    tutor = make_tutor()
    student = make_student()
    monkeypatch.setattr(test_db, "flush", _duplicate_pair)

    with pytest.raises(ConflictError) as exc:
        submit_review(test_db, tutor.id, student.id, 3)

    monkeypatch.undo()
    assert exc.value.code == 'REVIEW_CONFLICT'
    assert _review_count(test_db, tutor) == 0
    assert _profile(test_db, tutor).review_count == 0

############################
##### RECALCULATE ##########
############################

def test_recalculate_repairs_drifted_stats(test_db, make_tutor, make_student):
    tutor = make_tutor()
    for rating in [5, 4]:
        submit_review(test_db, tutor.id, make_student().id, rating)

    profile = _profile(test_db, tutor)
    profile.rating = 1.0
    profile.review_count = 17
    test_db.commit()

    recalculate_tutor_stats(test_db, tutor.id)

    profile = _profile(test_db, tutor)
    assert (profile.rating, profile.review_count) == (4.5, 2)

def test_recalculate_is_idempotent(test_db, make_tutor, make_student):
    tutor = make_tutor()
    for rating in [5, 3, 3]:
        submit_review(test_db, tutor.id, make_student().id, rating)

    recalculate_tutor_stats(test_db, tutor.id)
    first = (_profile(test_db, tutor).rating, _profile(test_db, tutor).review_count)
    recalculate_tutor_stats(test_db, tutor.id)
    second = (_profile(test_db, tutor).rating, _profile(test_db, tutor).review_count)

    assert first == second == (3.7, 3)

def test_recalculate_without_reviews_is_zero(test_db, make_tutor):
    tutor = make_tutor()

    recalculate_tutor_stats(test_db, tutor.id)

    profile = _profile(test_db, tutor)
    assert (profile.rating, profile.review_count) == (0, 0)

def test_recalculate_unknown_tutor(test_db):
    with pytest.raises(NotFoundError):
        recalculate_tutor_stats(test_db, "00000000-0000-4000-8000-000000000000")

############################
##### LIST (SERVICE) #######
############################

def test_list_reviews_newest_first_with_student_name(test_db, make_tutor, make_student):
    tutor = make_tutor()
    alice = make_student(name="Alice")
    bob = make_student(name="Bob")
    submit_review(test_db, tutor.id, alice.id, 5, "Great")
    submit_review(test_db, tutor.id, bob.id, 3, "Fine")

    # Make Alice's review clearly the older one
    older = test_db.query(TutorReview).filter(TutorReview.student_id == alice.id).one()
    older.created_at = datetime.now() - timedelta(days=1)
    test_db.commit()

    result = list_reviews_for_tutor(test_db, tutor.id)

    assert [r["student_name"] for r in result["reviews"]] == ["Bob", "Alice"]
    assert result["pagination"]["total"] == 2
    assert result["pagination"]["total_pages"] == 1

def test_list_reviews_pages_through_large_sets(test_db, make_tutor, make_student):
    tutor = make_tutor()
    for i in range(120):
        submit_review(test_db, tutor.id, make_student().id, (i % 5) + 1)

    page_one = list_reviews_for_tutor(test_db, tutor.id, page=1, limit=50)
    page_three = list_reviews_for_tutor(test_db, tutor.id, page=3, limit=50)

    assert len(page_one["reviews"]) == 50
    assert page_one["pagination"]["total"] == 120
    assert page_one["pagination"]["total_pages"] == 3
    assert len(page_three["reviews"]) == 20

    profile = _profile(test_db, tutor)
    assert profile.review_count == 120
    assert profile.rating == 3.0

def test_list_reviews_clamps_limit(test_db, make_tutor, make_student):
    tutor = make_tutor()
    for _ in range(3):
        submit_review(test_db, tutor.id, make_student().id, 4)

    result = list_reviews_for_tutor(test_db, tutor.id, page=1, limit=500)

    assert result["pagination"]["limit"] == 50
    assert len(result["reviews"]) == 3

def test_list_reviews_page_past_the_end_is_empty(test_db, make_tutor, make_student):
    tutor = make_tutor()
    submit_review(test_db, tutor.id, make_student().id, 4)

    result = list_reviews_for_tutor(test_db, tutor.id, page=5, limit=10)

    assert result["reviews"] == []
    assert result["pagination"]["total"] == 1

def test_list_reviews_for_tutor_without_reviews(test_db, make_tutor):
    tutor = make_tutor()

    result = list_reviews_for_tutor(test_db, tutor.id)

    assert result["reviews"] == []
    assert result["pagination"]["total"] == 0
    assert result["pagination"]["total_pages"] == 0

def test_list_reviews_rejects_non_positive_page(test_db, make_tutor):
    tutor = make_tutor()

    with pytest.raises(ValidationError):
        list_reviews_for_tutor(test_db, tutor.id, page=0)

############################
##### HTTP ENDPOINTS #######
############################

def test_post_review_returns_created_review(client, make_tutor, make_student, auth_headers):
    tutor = make_tutor()
    student = make_student()

    response = client.post(
        f"/api/tutors/{tutor.id}/reviews",
        json={"rating": 5, "reviewText": "Wonderful teacher"},
        headers=auth_headers(student)
    )

    assert response.status_code == 201
    body = response.json()
    assert body["tutorId"] == tutor.id
    assert body["studentId"] == student.id
    assert body["rating"] == 5
    assert body["reviewText"] == "Wonderful teacher"
    assert "createdAt" in body and "updatedAt" in body

def test_post_review_updates_public_tutor_rating(client, make_tutor, make_student, auth_headers):
    tutor = make_tutor()
    for rating in [5, 4]:
        client.post(f"/api/tutors/{tutor.id}/reviews", json={"rating": rating}, headers=auth_headers(make_student()))

    response = client.get(f"/api/tutors/{tutor.id}")

    assert response.status_code == 200
    assert response.json()["rating"] == 4.5
    assert response.json()["reviewCount"] == 2

def test_post_review_strips_html(client, make_tutor, make_student, auth_headers):
    tutor = make_tutor()
    student = make_student()

    response = client.post(
        f"/api/tutors/{tutor.id}/reviews",
        json={"rating": 4, "reviewText": "<script>alert(1)</script>Good lessons"},
        headers=auth_headers(student)
    )

    assert response.status_code == 201
    assert "<script>" not in response.json()["reviewText"]
    assert response.json()["reviewText"].endswith("Good lessons")

def test_post_review_keeps_ampersands_and_comparisons(client, test_db, make_tutor, make_student, auth_headers):
    tutor = make_tutor()
    student = make_student()

    response = client.post(
        f"/api/tutors/{tutor.id}/reviews",
        json={"rating": 5, "reviewText": "Rock & roll, 5 > 3"},
        headers=auth_headers(student)
    )

    assert response.status_code == 201
    assert response.json()["reviewText"] == "Rock & roll, 5 > 3"
    stored = test_db.query(TutorReview).filter(TutorReview.tutor_id == tutor.id).one()
    assert stored.review_text == "Rock & roll, 5 > 3"

def test_post_review_limit_counts_typed_characters(client, test_db, make_tutor, make_student, auth_headers):
    tutor = make_tutor()
    student = make_student()
    text = "Scales & arpeggios, 5 > 3 "
    text = text + "x" * (350 - len(text))

    response = client.post(
        f"/api/tutors/{tutor.id}/reviews",
        json={"rating": 4, "reviewText": text},
        headers=auth_headers(student)
    )

    assert response.status_code == 201
    assert response.json()["reviewText"] == text
    stored = test_db.query(TutorReview).filter(TutorReview.tutor_id == tutor.id).one()
    assert len(stored.review_text) == 350

def test_post_review_storage_failure_is_internal_error(client, test_db, make_tutor, make_student, auth_headers, monkeypatch):
    tutor = make_tutor()
    monkeypatch.setattr(review_service, "_apply_tutor_stats", _disk_error)

    response = client.post(f"/api/tutors/{tutor.id}/reviews", json={"rating": 5}, headers=auth_headers(make_student()))

    assert response.status_code == 500
    assert response.json()["code"] == 'INTERNAL_ERROR'
    assert _review_count(test_db, tutor) == 0

def test_post_review_concurrent_insert_is_conflict(client, test_db, make_tutor, make_student, auth_headers, monkeypatch):
    tutor = make_tutor()
    monkeypatch.setattr(review_service, "_apply_tutor_stats", _duplicate_pair)

    response = client.post(f"/api/tutors/{tutor.id}/reviews", json={"rating": 5}, headers=auth_headers(make_student()))

    assert response.status_code == 409
    assert response.json()["code"] == 'REVIEW_CONFLICT'
    assert _review_count(test_db, tutor) == 0

@pytest.mark.parametrize("payload", [
    {"rating": 0},
    {"rating": 6},
    {"rating": "five"},
    {"rating": 4.5},
    {},
    {"rating": 4, "reviewText": "x" * 351},
])
def test_post_review_rejects_invalid_body(client, test_db, make_tutor, make_student, auth_headers, payload):
    tutor = make_tutor()
    student = make_student()

    response = client.post(f"/api/tutors/{tutor.id}/reviews", json=payload, headers=auth_headers(student))

    assert response.status_code == 400
    assert response.json()["code"] == 'VALIDATION_ERROR'
    assert _review_count(test_db, tutor) == 0

def test_post_review_requires_authentication(client, make_tutor):
    tutor = make_tutor()

    response = client.post(f"/api/tutors/{tutor.id}/reviews", json={"rating": 4})

    assert response.status_code == 401
    assert response.json()["code"] == 'UNAUTHORIZED'

def test_post_review_forbidden_for_tutors(client, make_tutor, auth_headers):
    tutor = make_tutor()
    other_tutor = make_tutor()

    response = client.post(f"/api/tutors/{tutor.id}/reviews", json={"rating": 4}, headers=auth_headers(other_tutor))

    assert response.status_code == 403
    assert response.json()["code"] == 'FORBIDDEN'

def test_post_review_unknown_tutor(client, make_student, auth_headers):
    student = make_student()

    response = client.post(
        "/api/tutors/00000000-0000-4000-8000-000000000000/reviews",
        json={"rating": 4},
        headers=auth_headers(student)
    )

    assert response.status_code == 404
    assert response.json()["code"] == 'TUTOR_NOT_FOUND'

def test_get_reviews_pagination_block(client, test_db, make_tutor, make_student):
    tutor = make_tutor()
    for i in range(120):
        submit_review(test_db, tutor.id, make_student().id, (i % 5) + 1)

    response = client.get(f"/api/tutors/{tutor.id}/reviews", params={"page": 1, "limit": 50})

    assert response.status_code == 200
    body = response.json()
    assert len(body["reviews"]) == 50
    assert body["pagination"]["page"] == 1
    assert body["pagination"]["limit"] == 50
    assert body["pagination"]["total"] == 120
    assert body["pagination"]["totalPages"] == 3
    assert "studentName" in body["reviews"][0]

def test_get_reviews_defaults_and_clamping(client, test_db, make_tutor, make_student):
    tutor = make_tutor()
    submit_review(test_db, tutor.id, make_student().id, 4)

    default = client.get(f"/api/tutors/{tutor.id}/reviews").json()
    clamped = client.get(f"/api/tutors/{tutor.id}/reviews", params={"limit": 1000}).json()

    assert default["pagination"]["limit"] == 20
    assert clamped["pagination"]["limit"] == 50

@pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"page": "first"}])
def test_get_reviews_rejects_bad_paging(client, make_tutor, params):
    tutor = make_tutor()

    response = client.get(f"/api/tutors/{tutor.id}/reviews", params=params)

    assert response.status_code == 400

def test_get_reviews_is_public_and_empty_for_new_tutor(client, make_tutor):
    tutor = make_tutor()

    response = client.get(f"/api/tutors/{tutor.id}/reviews")

    assert response.status_code == 200
    assert response.json()["reviews"] == []
    assert response.json()["pagination"]["total"] == 0
