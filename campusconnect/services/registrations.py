"""
Registration ledger and attendance verification.

A registration ties one user to one event and carries the opaque pass token
printed in its QR code. The only state change after creation is the one-way
``attended`` transition performed when an admin scans the pass.
"""
import logging

import redis
from sqlalchemy import Select, delete, insert, literal, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from campusconnect.core.config import Settings
from campusconnect.core.datetime_utils import epoch_millis, utcnow
from campusconnect.core.errors import CapacityExceededError, ConflictError, ForbiddenError, NotFoundError
from campusconnect.core.locks import event_lock
from campusconnect.core.qr import build_qr_payload, render_qr_data_uri
from campusconnect.models.events import Event
from campusconnect.models.registrations import Registration
from campusconnect.models.users import User
from campusconnect.services.capacity import registered_count_subquery
from campusconnect.services.events import get_event

logger = logging.getLogger(__name__)


def _registration_query() -> Select:
    return select(Registration).options(selectinload(Registration.event), selectinload(Registration.user))


def find_registration(db: Session, *, user_id: int, event_id: int) -> Registration | None:
    return db.scalar(
        select(Registration).where(Registration.user_id == user_id, Registration.event_id == event_id)
    )


def create_registration(
    db: Session, redis_client: redis.Redis, settings: Settings, *, user_id: int, event_id: int
) -> Registration:
    """
    Register a user for an event.

    The capacity check and the insert are a single conditional statement run
    under the per-event lock, so concurrent requests can never push the
    registration count past the event's capacity.
    """
    get_event(db, event_id)
    if find_registration(db, user_id=user_id, event_id=event_id):
        raise ConflictError("Already registered for this event")

    token = build_qr_payload(settings.qr_prefix, user_id, event_id, epoch_millis())
    qr_image = render_qr_data_uri(token)

    # the guarded insert must not run inside a transaction opened by the reads above
    db.rollback()

    with event_lock(redis_client, event_id, settings):
        seat = (
            select(literal(user_id), literal(event_id), literal(token), literal(qr_image), literal(False))
            .select_from(Event)
            .where(Event.id == event_id, registered_count_subquery(event_id) < Event.capacity)
        )
        stmt = insert(Registration).from_select(
            ["user_id", "event_id", "qr_code_data", "qr_code", "attended"], seat
        )
        try:
            res = db.execute(stmt)
        except IntegrityError:
            db.rollback()
            raise ConflictError("Already registered for this event")

        if res.rowcount != 1:  # type: ignore
            db.rollback()
            logger.info("Event %s is full; rejected user %s", event_id, user_id)
            raise CapacityExceededError("Event is full")
        db.commit()

    registration = db.scalar(_registration_query().where(Registration.qr_code_data == token))
    logger.info("Registration %s created for user %s on event %s", registration.id, user_id, event_id)
    return registration


def cancel_registration(db: Session, *, registration_id: int, actor: User) -> None:
    registration = db.get(Registration, registration_id)
    if not registration:
        raise NotFoundError("Registration not found")
    if registration.user_id != actor.id and not actor.is_admin:
        raise ForbiddenError("Access denied")
    if registration.attended:
        raise ConflictError("Cannot cancel a registration after attendance")

    # attended is re-checked in the statement in case the pass was scanned meanwhile
    res = db.execute(
        delete(Registration)
        .where(Registration.id == registration_id, Registration.attended.is_(False))
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:  # type: ignore
        db.rollback()
        raise ConflictError("Cannot cancel a registration after attendance")
    db.commit()
    logger.info("Registration %s cancelled by user %s", registration_id, actor.id)


def verify_registration(db: Session, token: str) -> tuple[Registration, bool]:
    """
    Mark the registration behind ``token`` as attended.

    Returns the registration and whether this call performed the check-in.
    Scanning an already verified pass is not an error and changes nothing.
    """
    registration_id = db.scalar(select(Registration.id).where(Registration.qr_code_data == token))
    if registration_id is None:
        raise NotFoundError("Invalid QR code")

    res = db.execute(
        update(Registration)
        .where(Registration.id == registration_id, Registration.attended.is_(False))
        .values(attended=True, attended_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    checked_in = res.rowcount == 1  # type: ignore
    db.commit()

    registration = db.scalar(_registration_query().where(Registration.id == registration_id))
    if registration is None:
        # cancelled between the lookup and the update
        raise NotFoundError("Invalid QR code")

    if checked_in:
        logger.info("Registration %s checked in", registration_id)
    else:
        logger.info("Registration %s was already checked in", registration_id)

    return registration, checked_in


def get_registration(db: Session, *, registration_id: int, actor: User) -> Registration:
    registration = db.scalar(_registration_query().where(Registration.id == registration_id))
    if not registration:
        raise NotFoundError("Registration not found")
    if registration.user_id != actor.id and not actor.is_admin:
        raise ForbiddenError("Access denied")
    return registration


def list_user_registrations(db: Session, user_id: int) -> list[Registration]:
    stmt = (
        select(Registration)
        .options(selectinload(Registration.event))
        .where(Registration.user_id == user_id)
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
    )
    return list(db.scalars(stmt))
