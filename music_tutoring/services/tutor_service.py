import json
import redis
from typing import List, Union
from sqlalchemy.orm import Session
from music_tutoring.accounts import require_tutor
from music_tutoring.config import get_settings
from music_tutoring.database.database import User, UserRole, TutorProfile
from music_tutoring.database.redis import redis_client
from music_tutoring.errors import NotFoundError
from music_tutoring.logger import logger
from music_tutoring.schemas.tutor_schema import TutorFilters, TutorProfileCreate, TutorProfileUpdate, TutorPublicResponse, AvailabilitySlot
from music_tutoring.utilities import page_window, pagination_meta

SORT_COLUMNS = {
    'rating': TutorProfile.rating,
    'hourlyRate': TutorProfile.hourly_rate,
    'yearsOfExperience': TutorProfile.years_of_experience,
    'createdAt': TutorProfile.created_at,
}

def tutor_cache_key(tutor_id: str) -> str:
    return f"tutor_{tutor_id}"

def invalidate_tutor_cache(tutor_id: str):
    """Drop the cached public page of a tutor after their profile or rating changed."""
    if not get_settings().use_redis:
        return
    try:
        redis_client.delete_cache(tutor_cache_key(tutor_id))
    except redis.RedisError as e:
        logger.warning(f"Could not invalidate cache for tutor {tutor_id}: {str(e)}")

def format_tutor(profile: TutorProfile, private: bool = False) -> dict:
    """Shape a tutor profile for the API. The tutor is identified by their user id."""
    user = profile.user
    data = {
        "id": profile.user_id,
        "name": user.name if user else None,
        "photo_url": user.photo_url if user else None,
        "email": user.email if user else None,
        "instrument": profile.instrument,
        "proficiency_level": profile.proficiency_level,
        "location": {
            "city": profile.city,
            "state": profile.state,
            "country": profile.country,
        },
        "hourly_rate": profile.hourly_rate,
        "rating": profile.rating or 0,
        "review_count": profile.review_count or 0,
        "bio": profile.bio,
        "availability": profile.availability or [],
        "time_zone_availability": profile.time_zone_availability or [],
        "is_online": profile.is_online,
        "is_verified": profile.is_verified,
        "years_of_experience": profile.years_of_experience,
    }
    if private:
        data.update({
            "preferred_contact_mode": profile.preferred_contact_mode,
            "preferred_contact_value": profile.preferred_contact_value,
            "onboarding_complete": profile.onboarding_complete,
            "created_at": profile.created_at,
            "updated_at": profile.updated_at,
        })
    return data

def list_tutors(db: Session, filters: TutorFilters) -> dict:
    """List onboarded tutors with filtering, sorting and pagination."""
    page, limit, offset = page_window(filters.page, filters.limit)

    query = (
        db.query(TutorProfile)
        .join(User, User.id == TutorProfile.user_id)
        .filter(User.role == UserRole.TEACHER, TutorProfile.onboarding_complete.is_(True))
    )

    if filters.instrument:
        query = query.filter(TutorProfile.instrument.ilike(f"%{filters.instrument}%"))
    if filters.city:
        query = query.filter(TutorProfile.city.ilike(f"%{filters.city}%"))
    if filters.state:
        query = query.filter(TutorProfile.state.ilike(f"%{filters.state}%"))
    if filters.proficiency_level:
        query = query.filter(TutorProfile.proficiency_level == filters.proficiency_level)
    if filters.is_online is not None:
        query = query.filter(TutorProfile.is_online.is_(filters.is_online))
    if filters.is_verified is not None:
        query = query.filter(TutorProfile.is_verified.is_(filters.is_verified))
    if filters.min_rate is not None:
        query = query.filter(TutorProfile.hourly_rate >= filters.min_rate)
    if filters.max_rate is not None:
        query = query.filter(TutorProfile.hourly_rate <= filters.max_rate)

    total = query.count()

    column = SORT_COLUMNS.get(filters.sort_by, TutorProfile.rating)
    order = column.asc() if filters.sort_order == 'asc' else column.desc()
    profiles = query.order_by(order, TutorProfile.id).offset(offset).limit(limit).all()

    return {
        "tutors": [format_tutor(profile) for profile in profiles],
        "pagination": pagination_meta(page, limit, total),
    }

def get_tutor_by_id(db: Session, tutor_id: str) -> dict:
    """Public view of a single tutor. Served from Redis when caching is enabled and Redis answers."""
    use_redis = get_settings().use_redis
    if use_redis:
        try:
            cached_data = redis_client.get_cache(tutor_cache_key(tutor_id))
        except redis.RedisError as e:
            logger.warning(f"Could not read cache for tutor {tutor_id}: {str(e)}")
            cached_data = None
        if cached_data:
            return json.loads(cached_data)

    account = require_tutor(db, tutor_id)
    data = format_tutor(account.profile)

    if use_redis:
        payload = TutorPublicResponse.model_validate(data).model_dump(mode='json')
        try:
            redis_client.set_cache(tutor_cache_key(tutor_id), json.dumps(payload), expiration=get_settings().tutor_cache_seconds)
        except redis.RedisError as e:
            logger.warning(f"Could not cache tutor {tutor_id}: {str(e)}")

    return data

def _dump_profile_fields(data: Union[TutorProfileCreate, TutorProfileUpdate]) -> dict:
    # Onboarding leaves unset optional fields to the column defaults, edits only touch what was sent
    if isinstance(data, TutorProfileCreate):
        values = data.model_dump(exclude_none=True)
    else:
        values = data.model_dump(exclude_unset=True)
    # Slots are stored the way the API sends them (camelCase keys)
    if "availability" in values and data.availability is not None:
        values["availability"] = [slot.model_dump(by_alias=True) for slot in data.availability]
    if "time_zone_availability" in values and data.time_zone_availability is not None:
        values["time_zone_availability"] = [slot.model_dump(by_alias=True) for slot in data.time_zone_availability]
    return values

def create_or_update_tutor_profile(db: Session, user_id: str, data: Union[TutorProfileCreate, TutorProfileUpdate]) -> dict:
    """
    Onboarding and later edits of a tutor profile.

    A TutorProfileCreate applies every field (with defaults), a TutorProfileUpdate
    applies only the fields the client sent. Either way the profile is marked as
    onboarded.
    """
    user = User.get_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found", code='USER_NOT_FOUND')

    values = _dump_profile_fields(data)

    profile = db.query(TutorProfile).filter(TutorProfile.user_id == user_id).first()
    if not profile:
        profile = TutorProfile(user_id=user_id)
        db.add(profile)

    for field, value in values.items():
        setattr(profile, field, value)
    profile.onboarding_complete = True

    db.commit()
    db.refresh(profile)
    invalidate_tutor_cache(user_id)

    logger.info(f"[Mock Email] Tutor profile updated for {user.email}")
    return format_tutor(profile, private=True)

def update_availability(db: Session, user_id: str, availability: List[AvailabilitySlot]) -> dict:
    profile = db.query(TutorProfile).filter(TutorProfile.user_id == user_id).first()
    if not profile:
        raise NotFoundError("Tutor profile not found", code='PROFILE_NOT_FOUND')

    profile.availability = [slot.model_dump(by_alias=True) for slot in availability]
    db.commit()
    invalidate_tutor_cache(user_id)
    return {"availability": profile.availability}

def update_online_status(db: Session, user_id: str, is_online: bool) -> dict:
    profile = db.query(TutorProfile).filter(TutorProfile.user_id == user_id).first()
    if not profile:
        raise NotFoundError("Tutor profile not found", code='PROFILE_NOT_FOUND')

    profile.is_online = is_online
    db.commit()
    invalidate_tutor_cache(user_id)
    return {"is_online": profile.is_online, "message": f"You are now {'online' if is_online else 'offline'}"}
