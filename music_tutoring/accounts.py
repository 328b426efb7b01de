"""
Accounts resolved by role.

A user row carries a nullable role and two optional profile relationships. The
rest of the code never inspects that combination directly: it asks for an
`Account`, which is exactly one of the variants below, each holding only the
profile that belongs to its role.
"""
from dataclasses import dataclass
from typing import Union
from sqlalchemy.orm import Session
from music_tutoring.database.database import User, UserRole, StudentProfile, TutorProfile
from music_tutoring.errors import NotFoundError

@dataclass(frozen=True)
class StudentAccount:
    user: User
    profile: StudentProfile
    role = UserRole.STUDENT

@dataclass(frozen=True)
class TutorAccount:
    user: User
    profile: TutorProfile
    role = UserRole.TEACHER

@dataclass(frozen=True)
class AdminAccount:
    user: User
    role = UserRole.ADMIN

@dataclass(frozen=True)
class UnassignedAccount:
    """Signed up but has not picked a role yet."""
    user: User
    role = None

Account = Union[StudentAccount, TutorAccount, AdminAccount, UnassignedAccount]

def account_for(user: User) -> Account:
    """Wrap a loaded user in the variant that matches its role."""
    if user.role == UserRole.STUDENT and user.student_profile is not None:
        return StudentAccount(user=user, profile=user.student_profile)
    if user.role == UserRole.TEACHER and user.tutor_profile is not None:
        return TutorAccount(user=user, profile=user.tutor_profile)
    if user.role == UserRole.ADMIN:
        return AdminAccount(user=user)
    return UnassignedAccount(user=user)

def resolve_account(db: Session, user_id: str) -> Account:
    user = User.get_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found", code='USER_NOT_FOUND')
    return account_for(user)

def require_student(db: Session, user_id: str) -> StudentAccount:
    user = User.get_by_id(db, user_id)
    account = account_for(user) if user else None
    if not isinstance(account, StudentAccount):
        raise NotFoundError("Student not found", code='STUDENT_NOT_FOUND')
    return account

def require_tutor(db: Session, user_id: str) -> TutorAccount:
    user = User.get_by_id(db, user_id)
    account = account_for(user) if user else None
    if not isinstance(account, TutorAccount):
        raise NotFoundError("Tutor not found", code='TUTOR_NOT_FOUND')
    return account
