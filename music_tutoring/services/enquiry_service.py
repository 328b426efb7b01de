from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from music_tutoring.accounts import require_tutor
from music_tutoring.database.database import Enquiry, EnquiryStatus, User
from music_tutoring.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from music_tutoring.logger import logger
from music_tutoring.schemas.enquiry_schema import EnquiryCreate, EnquiryFilters
from music_tutoring.utilities import page_window, pagination_meta

def _tutor_contact(tutor: Optional[User]) -> Optional[dict]:
    profile = tutor.tutor_profile if tutor else None
    if profile and profile.preferred_contact_mode and profile.preferred_contact_value:
        return {"mode": profile.preferred_contact_mode, "value": profile.preferred_contact_value}
    return None

def _base_fields(enquiry: Enquiry) -> dict:
    return {
        "id": enquiry.id,
        "student_id": enquiry.student_id,
        "tutor_id": enquiry.tutor_id,
        "message": enquiry.message,
        "student_level": enquiry.student_level,
        "preferred_days": enquiry.preferred_days or [],
        "preferred_time": enquiry.preferred_time,
        "status": enquiry.status,
        "created_at": enquiry.created_at,
        "responded_at": enquiry.responded_at,
    }

def _student_view(enquiry: Enquiry) -> dict:
    """What the student who sent the enquiry sees: the tutor, and their contact once accepted."""
    data = _base_fields(enquiry)
    tutor = enquiry.tutor
    profile = tutor.tutor_profile if tutor else None
    data.update({
        "tutor_name": tutor.name if tutor else None,
        "tutor_photo_url": tutor.photo_url if tutor else None,
        "tutor_instrument": profile.instrument if profile else None,
        "tutor_location": {"city": profile.city, "state": profile.state} if profile else None,
    })
    if enquiry.status == EnquiryStatus.ACCEPTED:
        data["tutor_contact"] = _tutor_contact(tutor)
    return data

def _tutor_view(enquiry: Enquiry) -> dict:
    data = _base_fields(enquiry)
    student = enquiry.student
    profile = student.student_profile if student else None
    data.update({
        "student_name": student.name if student else None,
        "student_email": student.email if student else None,
        "student_photo_url": student.photo_url if student else None,
        "student_profile_level": profile.level if profile else None,
    })
    return data

def create_enquiry(db: Session, student_id: str, data: EnquiryCreate) -> dict:
    """A student asks a tutor to get in touch. Only one pending enquiry per student and tutor."""
    tutor = require_tutor(db, data.tutor_id).user

    existing = (
        db.query(Enquiry)
        .filter(
            Enquiry.student_id == student_id,
            Enquiry.tutor_id == data.tutor_id,
            Enquiry.status == EnquiryStatus.PENDING,
        )
        .first()
    )
    if existing:
        raise ConflictError("You already have a pending enquiry with this tutor", code='DUPLICATE_ENQUIRY')

    enquiry = Enquiry(
        student_id=student_id,
        tutor_id=data.tutor_id,
        message=data.message,
        student_level=data.student_level,
        preferred_days=list(data.preferred_days),
        preferred_time=data.preferred_time,
        status=EnquiryStatus.PENDING,
    )
    db.add(enquiry)
    db.commit()
    db.refresh(enquiry)

    logger.info(f"[Mock Email] New enquiry notification sent to {tutor.email} from {enquiry.student.name}: {data.message[:50]}...")
    return _student_view(enquiry)

def _list_enquiries(db: Session, owner_column, owner_id: str, filters: EnquiryFilters, view) -> dict:
    page, limit, offset = page_window(filters.page, filters.limit)

    query = db.query(Enquiry).filter(owner_column == owner_id)
    if filters.status:
        query = query.filter(Enquiry.status == filters.status)

    total = query.count()

    column = Enquiry.status if filters.sort_by == 'status' else Enquiry.created_at
    order = column.asc() if filters.sort_order == 'asc' else column.desc()
    enquiries = query.order_by(order, Enquiry.id).offset(offset).limit(limit).all()

    return {
        "enquiries": [view(enquiry) for enquiry in enquiries],
        "pagination": pagination_meta(page, limit, total),
    }

def list_student_enquiries(db: Session, student_id: str, filters: EnquiryFilters) -> dict:
    return _list_enquiries(db, Enquiry.student_id, student_id, filters, _student_view)

def list_teacher_enquiries(db: Session, tutor_id: str, filters: EnquiryFilters) -> dict:
    return _list_enquiries(db, Enquiry.tutor_id, tutor_id, filters, _tutor_view)

def get_enquiry_by_id(db: Session, enquiry_id: str, user_id: str) -> dict:
    """Single enquiry, visible to the student who sent it and the tutor who received it."""
    enquiry = db.query(Enquiry).filter(Enquiry.id == enquiry_id).first()
    if not enquiry:
        raise NotFoundError("Enquiry not found", code='ENQUIRY_NOT_FOUND')

    if enquiry.student_id == user_id:
        return _student_view(enquiry)
    if enquiry.tutor_id == user_id:
        return _tutor_view(enquiry)
    raise ForbiddenError("Access denied", code='FORBIDDEN')

def update_enquiry_status(db: Session, enquiry_id: str, tutor_id: str, status: str) -> dict:
    """
    Accept or decline an enquiry.

    Only the receiving tutor may answer, and only once: an enquiry that is no
    longer pending is rejected with ALREADY_RESPONDED.
    """
    enquiry = db.query(Enquiry).filter(Enquiry.id == enquiry_id).first()
    if not enquiry:
        raise NotFoundError("Enquiry not found", code='ENQUIRY_NOT_FOUND')

    if enquiry.tutor_id != tutor_id:
        raise ForbiddenError("Access denied", code='FORBIDDEN')

    if enquiry.status != EnquiryStatus.PENDING:
        raise ValidationError("This enquiry has already been responded to", code='ALREADY_RESPONDED')

    enquiry.status = EnquiryStatus(status)
    enquiry.responded_at = datetime.now()
    db.commit()
    db.refresh(enquiry)

    logger.info(f"[Mock Email] Enquiry {status} notification sent to {enquiry.student.email} (tutor: {enquiry.tutor.name})")
    return {
        "id": enquiry.id,
        "status": enquiry.status,
        "responded_at": enquiry.responded_at,
        "message": "Enquiry accepted successfully" if enquiry.status == EnquiryStatus.ACCEPTED else "Enquiry declined",
    }

def get_teacher_enquiry_stats(db: Session, tutor_id: str) -> dict:
    counts = dict(
        db.query(Enquiry.status, func.count(Enquiry.id))
        .filter(Enquiry.tutor_id == tutor_id)
        .group_by(Enquiry.status)
        .all()
    )
    stats = {status.value: counts.get(status, 0) for status in EnquiryStatus}
    stats["total"] = sum(counts.values())
    return stats
