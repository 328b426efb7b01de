"""
Tutor reviews and the rating aggregate cached on each tutor profile.

TutorProfile.rating and TutorProfile.review_count are a projection of the
tutor_reviews rows for that tutor. They are written only here, and always in
the same transaction as the review write that changed them.

Recomputation is a read-then-write (read every review, write the profile), so
two submissions for the same tutor must not interleave. Each submission holds
the per-tutor lock for the whole transaction and locks the profile row with
SELECT ... FOR UPDATE, which also serializes writers running in other
processes. Submissions for different tutors never wait on each other.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, lazyload
from music_tutoring.accounts import require_student, require_tutor
from music_tutoring.database.database import TutorProfile, TutorReview, User
from music_tutoring.errors import ApiError, ConflictError, InternalError, NotFoundError, ValidationError
from music_tutoring.locks import tutor_stats_lock
from music_tutoring.logger import logger
from music_tutoring.schemas.review_schema import MIN_RATING, MAX_RATING, MAX_REVIEW_LENGTH
from music_tutoring.services.tutor_service import invalidate_tutor_cache
from music_tutoring.utilities import page_window, pagination_meta, DEFAULT_PAGE_SIZE

ONE_DECIMAL = Decimal('0.1')

def tutor_stats(rating_sum: int, review_count: int) -> Tuple[float, int]:
    """Average rating rounded half-up to one decimal, and the count. (0, 0) when there are no reviews."""
    if not review_count:
        return 0.0, 0
    average = (Decimal(rating_sum) / Decimal(review_count)).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
    return float(average), review_count

def _validate_submission(rating, review_text: Optional[str]) -> str:
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    if review_text is None:
        review_text = ''
    if not isinstance(review_text, str) or len(review_text) > MAX_REVIEW_LENGTH:
        raise ValidationError(f"Review must be 50 words or less (~{MAX_REVIEW_LENGTH} characters)")
    return review_text

def _lock_tutor_profile(db: Session, tutor_id: str) -> TutorProfile:
    """Load the tutor's profile fresh from the database with its row locked until commit."""
    profile = (
        db.query(TutorProfile)
        .options(lazyload(TutorProfile.user))
        .filter(TutorProfile.user_id == tutor_id)
        .populate_existing()
        .with_for_update()
        .one_or_none()
    )
    if profile is None:
        raise NotFoundError("Tutor not found", code='TUTOR_NOT_FOUND')
    return profile

def _apply_tutor_stats(db: Session, profile: TutorProfile):
    """Recompute the aggregate from the review rows and stage it on the profile. Caller commits."""
    review_count, rating_sum = (
        db.query(func.count(TutorReview.id), func.coalesce(func.sum(TutorReview.rating), 0))
        .filter(TutorReview.tutor_id == profile.user_id)
        .one()
    )
    profile.rating, profile.review_count = tutor_stats(int(rating_sum), int(review_count))

def _storage_failure(db: Session, action: str, tutor_id: str, error: Exception):
    db.rollback()
    if isinstance(error, IntegrityError):
        logger.warning(f"Conflict while trying to {action} for tutor {tutor_id}: {error.orig}")
        return ConflictError("The review was modified concurrently, please try again", code='REVIEW_CONFLICT')
    logger.error(f"Failed to {action} for tutor {tutor_id}: {str(error)}")
    return InternalError(f"Could not {action}")

def submit_review(db: Session, tutor_id: str, student_id: str, rating: int, review_text: str = '') -> TutorReview:
    """
    Create or overwrite the student's review of a tutor, then refresh the tutor's rating.

    There is at most one review per (tutor, student); a second submission replaces the
    rating and text of the first. The review write and the aggregate refresh commit
    together or not at all.

    Raises:
        ValidationError: rating outside 1..5 or text longer than 350 characters
        NotFoundError: tutor or student does not exist
        ConflictError: the pair was inserted concurrently by another process
        InternalError: the database rejected the write
    """
    review_text = _validate_submission(rating, review_text)
    require_tutor(db, tutor_id)
    require_student(db, student_id)

    with tutor_stats_lock.hold(tutor_id):
        try:
            profile = _lock_tutor_profile(db, tutor_id)

            review = (
                db.query(TutorReview)
                .filter(TutorReview.tutor_id == tutor_id, TutorReview.student_id == student_id)
                .populate_existing()
                .one_or_none()
            )
            if review is None:
                review = TutorReview(tutor_id=tutor_id, student_id=student_id, rating=rating, review_text=review_text)
                db.add(review)
                action = "created"
            else:
                review.rating = rating
                review.review_text = review_text
                review.updated_at = datetime.now()
                action = "updated"

            db.flush()
            _apply_tutor_stats(db, profile)
            db.commit()
        except ApiError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            raise _storage_failure(db, "save review", tutor_id, e)

    db.refresh(review)
    invalidate_tutor_cache(tutor_id)
    logger.info(f"Review {review.id} {action} by student {student_id} for tutor {tutor_id} (rating {rating})")
    return review

def recalculate_tutor_stats(db: Session, tutor_id: str) -> None:
    """
    Recompute rating and review_count for a tutor from their reviews and persist them.

    Idempotent: running it twice with no review writes in between stores the same values.
    """
    with tutor_stats_lock.hold(tutor_id):
        try:
            profile = _lock_tutor_profile(db, tutor_id)
            _apply_tutor_stats(db, profile)
            db.commit()
        except ApiError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            raise _storage_failure(db, "recalculate tutor stats", tutor_id, e)

    invalidate_tutor_cache(tutor_id)

def _review_item(review: TutorReview, student_name: Optional[str]) -> dict:
    return {
        "id": review.id,
        "tutor_id": review.tutor_id,
        "student_id": review.student_id,
        "student_name": student_name,
        "rating": review.rating,
        "review_text": review.review_text,
        "created_at": review.created_at,
        "updated_at": review.updated_at,
    }

def list_reviews_for_tutor(db: Session, tutor_id: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> dict:
    """Reviews for a tutor, newest first, each with the reviewing student's name."""
    page, limit, offset = page_window(page, limit)

    total = db.query(func.count(TutorReview.id)).filter(TutorReview.tutor_id == tutor_id).scalar()
    rows = (
        db.query(TutorReview, User.name)
        .join(User, User.id == TutorReview.student_id)
        .filter(TutorReview.tutor_id == tutor_id)
        .order_by(TutorReview.created_at.desc(), TutorReview.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    return {
        "reviews": [_review_item(review, student_name) for review, student_name in rows],
        "pagination": pagination_meta(page, limit, total),
    }
