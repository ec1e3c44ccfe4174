from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.expression import ScalarSelect

from campusconnect.models.registrations import Registration


def registered_count_subquery(event_id: int) -> ScalarSelect[int]:
    return (
        select(func.count(Registration.id))
        .where(Registration.event_id == event_id)
        .correlate(None)
        .scalar_subquery()
    )


def registered_count(db: Session, event_id: int) -> int:
    """Current number of registrations; never cached, always counted."""
    return int(db.scalar(select(func.count(Registration.id)).where(Registration.event_id == event_id)) or 0)


def is_full(count: int, capacity: int) -> bool:
    return count >= capacity
