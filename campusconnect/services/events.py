import logging
import math

import redis
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from campusconnect.core.config import Settings
from campusconnect.core.datetime_utils import utcnow
from campusconnect.core.errors import ConflictError, NotFoundError, ValidationError
from campusconnect.core.locks import event_lock
from campusconnect.models.events import Event
from campusconnect.models.registrations import Registration
from campusconnect.schemas.events import EventCreate, EventUpdate
from campusconnect.services.capacity import is_full, registered_count

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = {"image_url", "category", "organizer"}
LISTING_FILTERS = ("upcoming", "past", "all")


def _event_status(event: Event, count: int, is_registered: bool) -> dict:
    data = {column.key: getattr(event, column.key) for column in Event.__table__.columns}
    data.update(
        registered_count=count,
        is_registered=is_registered,
        is_full=is_full(count, event.capacity),
    )
    return data


def get_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found")
    return event


def create_event(db: Session, payload: EventCreate) -> Event:
    event = Event(**payload.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Event %s created (capacity=%s)", event.id, event.capacity)
    return event


def update_event(
    db: Session, redis_client: redis.Redis, settings: Settings, event_id: int, payload: EventUpdate
) -> Event:
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key in NULLABLE_FIELDS
    }
    event = get_event(db, event_id)

    if "capacity" not in changes:
        return _apply_event_changes(db, event, changes)

    # capacity changes race with registrations, so they take the same lock
    with event_lock(redis_client, event_id, settings):
        count = registered_count(db, event_id)
        if changes["capacity"] < count:
            db.rollback()
            raise ConflictError(f"Capacity cannot be lower than current registrations ({count})")
        return _apply_event_changes(db, event, changes)


def _apply_event_changes(db: Session, event: Event, changes: dict) -> Event:
    for key, value in changes.items():
        setattr(event, key, value)
    db.commit()
    db.refresh(event)
    logger.info("Event %s updated: %s", event.id, ", ".join(sorted(changes)) or "no changes")
    return event


def delete_event(db: Session, event_id: int) -> None:
    event = get_event(db, event_id)
    db.delete(event)
    db.commit()
    logger.info("Event %s deleted", event_id)


def get_event_with_status(db: Session, event_id: int, user_id: int) -> dict:
    event = get_event(db, event_id)
    count = registered_count(db, event_id)
    registered = db.scalar(
        select(Registration.id).where(Registration.event_id == event_id, Registration.user_id == user_id)
    )
    return _event_status(event, count, registered is not None)


def list_events(
    db: Session,
    *,
    user_id: int,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    when: str = "all",
) -> dict:
    """
    Paginated event listing ordered by date.

    ``search`` matches title, description or venue case-insensitively and
    ``when`` narrows to upcoming or past events.
    """
    if when not in LISTING_FILTERS:
        raise ValidationError(f"filter must be one of: {', '.join(LISTING_FILTERS)}")
    if page < 1 or not 1 <= limit <= 100:
        raise ValidationError("page must be >= 1 and limit between 1 and 100")

    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(Event.title.ilike(pattern), Event.description.ilike(pattern), Event.venue.ilike(pattern))
        )
    now = utcnow()
    if when == "upcoming":
        filters.append(Event.date >= now)
    elif when == "past":
        filters.append(Event.date < now)

    total_events = int(db.scalar(select(func.count(Event.id)).where(*filters)) or 0)

    counts = (
        select(Registration.event_id, func.count(Registration.id).label("registered_count"))
        .group_by(Registration.event_id)
        .subquery()
    )
    stmt = (
        select(Event, func.coalesce(counts.c.registered_count, 0))
        .outerjoin(counts, counts.c.event_id == Event.id)
        .where(*filters)
        .order_by(Event.date.asc(), Event.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = db.execute(stmt).all()

    event_ids = [event.id for event, _ in rows]
    registered_ids = set()
    if event_ids:
        registered_ids = set(
            db.scalars(
                select(Registration.event_id).where(
                    Registration.user_id == user_id, Registration.event_id.in_(event_ids)
                )
            )
        )

    return {
        "events": [_event_status(event, int(count), event.id in registered_ids) for event, count in rows],
        "metadata": {
            "total_events": total_events,
            "total_pages": math.ceil(total_events / limit),
            "current_page": page,
            "limit": limit,
        },
    }
