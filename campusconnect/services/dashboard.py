from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from campusconnect.core.datetime_utils import utcnow
from campusconnect.models.events import Event
from campusconnect.models.registrations import Registration
from campusconnect.models.users import User
from campusconnect.services.events import get_event


def attendance_rate(attended: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(attended / total, 4)


def get_dashboard_stats(db: Session, *, recent_limit: int = 10, popular_limit: int = 5) -> dict:
    """
    Aggregate figures for the admin dashboard.

    Each figure is its own query, so a registration landing in between may be
    counted by one and not another.
    """
    total_users = db.scalar(select(func.count(User.id)))
    total_events = db.scalar(select(func.count(Event.id)))
    total_registrations = int(db.scalar(select(func.count(Registration.id))) or 0)
    upcoming_events = db.scalar(select(func.count(Event.id)).where(Event.date >= utcnow()))
    attended_count = int(
        db.scalar(select(func.count(Registration.id)).where(Registration.attended.is_(True))) or 0
    )

    recent = db.scalars(
        select(Registration)
        .options(selectinload(Registration.user), selectinload(Registration.event))
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
        .limit(recent_limit)
    )

    registration_count = func.count(Registration.id).label("registration_count")
    popular = db.execute(
        select(Event, registration_count)
        .outerjoin(Registration, Registration.event_id == Event.id)
        .group_by(Event.id)
        .order_by(registration_count.desc(), Event.id.asc())
        .limit(popular_limit)
    ).all()

    return {
        "total_users": int(total_users or 0),
        "total_events": int(total_events or 0),
        "total_registrations": total_registrations,
        "upcoming_events": int(upcoming_events or 0),
        "attended_count": attended_count,
        "attendance_rate": attendance_rate(attended_count, total_registrations),
        "recent_registrations": [
            {
                "id": registration.id,
                "attended": registration.attended,
                "registered_at": registration.registered_at,
                "user": {"name": registration.user.name, "email": registration.user.email},
                "event": {"title": registration.event.title, "date": registration.event.date},
            }
            for registration in recent
        ],
        "popular_events": [
            {
                **{column.key: getattr(event, column.key) for column in Event.__table__.columns},
                "registration_count": int(count),
            }
            for event, count in popular
        ],
    }


def get_event_registrations(db: Session, event_id: int) -> dict:
    """Roster of one event with attended/pending totals."""
    event = get_event(db, event_id)
    registrations = list(
        db.scalars(
            select(Registration)
            .options(selectinload(Registration.user))
            .where(Registration.event_id == event_id)
            .order_by(Registration.registered_at.desc(), Registration.id.desc())
        )
    )
    attended = sum(1 for registration in registrations if registration.attended)

    return {
        "event": event,
        "registrations": registrations,
        "stats": {
            "total": len(registrations),
            "attended": attended,
            "pending": len(registrations) - attended,
        },
    }
