import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campusconnect.core.config import Settings
from campusconnect.core.errors import ConflictError, NotFoundError, UnauthorizedError
from campusconnect.core.security import create_access_token, hash_password, verify_password
from campusconnect.models.registrations import Registration
from campusconnect.models.users import User, UserRole
from campusconnect.schemas.users import LoginRequest, ProfileUpdate, SignupRequest

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(func.lower(User.email) == email.lower()))


def _roll_number_taken(db: Session, roll_number: str, *, exclude_user_id: int | None = None) -> bool:
    stmt = select(User.id).where(User.roll_number == roll_number)
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    return db.scalar(stmt) is not None


def signup(db: Session, settings: Settings, payload: SignupRequest) -> tuple[User, str]:
    if get_user_by_email(db, payload.email):
        raise ConflictError("User with this email already exists")
    if payload.roll_number and _roll_number_taken(db, payload.roll_number):
        raise ConflictError("Roll number already registered")

    user = User(
        email=payload.email.lower(),
        password_hash=hash_password(payload.password),
        name=payload.name,
        role=UserRole.USER.value,
        roll_number=payload.roll_number,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User with this email or roll number already exists")
    db.refresh(user)
    logger.info("User %s signed up", user.id)

    return user, create_access_token(user.id, user.role, settings)


def login(db: Session, settings: Settings, payload: LoginRequest) -> tuple[User, str]:
    user = get_user_by_email(db, payload.email)
    if not user or not verify_password(user.password_hash, payload.password):
        raise UnauthorizedError("Invalid credentials")
    return user, create_access_token(user.id, user.role, settings)


def update_profile(db: Session, user: User, payload: ProfileUpdate) -> User:
    if payload.roll_number and _roll_number_taken(db, payload.roll_number, exclude_user_id=user.id):
        raise ConflictError("Roll number already registered")

    user.name = payload.name
    user.roll_number = payload.roll_number
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Roll number already registered")
    db.refresh(user)
    return user


def update_user_role(db: Session, user_id: int, role: UserRole) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    user.role = role.value
    db.commit()
    db.refresh(user)
    logger.info("User %s role changed to %s", user.id, user.role)
    return user


def list_users_with_counts(db: Session) -> list[dict]:
    """All users, newest first, with how many events each registered for."""
    stmt = (
        select(User, func.count(Registration.id))
        .outerjoin(Registration, Registration.user_id == User.id)
        .group_by(User.id)
        .order_by(User.created_at.desc(), User.id.desc())
    )
    return [
        {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "role": user.role,
            "roll_number": user.roll_number,
            "created_at": user.created_at,
            "registration_count": int(count),
        }
        for user, count in db.execute(stmt).all()
    ]
