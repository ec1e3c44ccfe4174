"""
Populate a database with demo accounts and sample events.

    campusconnect-seed

Accounts are created only when missing; the sample events only when the
catalog is empty, so running it twice is harmless.
"""
import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from campusconnect.core.config import get_settings
from campusconnect.core.log_config import configure_logging
from campusconnect.core.security import hash_password
from campusconnect.database.db import Base, build_engine, build_session_factory
from campusconnect.models.events import Event
from campusconnect.models.registrations import Registration  # noqa: F401
from campusconnect.models.users import User, UserRole
from campusconnect.services.users import get_user_by_email

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        "email": "admin@campusconnect.com",
        "password": "admin123",
        "name": "Admin User",
        "role": UserRole.ADMIN.value,
        "roll_number": "ADMIN001",
    },
    {
        "email": "student1@example.com",
        "password": "user123",
        "name": "John Doe",
        "role": UserRole.USER.value,
        "roll_number": "CS2021001",
    },
    {
        "email": "student2@example.com",
        "password": "user123",
        "name": "Jane Smith",
        "role": UserRole.USER.value,
        "roll_number": "CS2021002",
    },
]

DEMO_EVENTS = [
    {
        "title": "Tech Fest 2025",
        "description": "Annual technology festival featuring workshops, competitions, and guest lectures "
        "from industry experts.",
        "venue": "Main Auditorium",
        "date": datetime(2025, 3, 15),
        "time": "10:00 AM",
        "capacity": 200,
        "category": "Technical",
        "organizer": "Computer Science Department",
        "image_url": "https://images.unsplash.com/photo-1540575467063-178a50c2df87?w=800",
    },
    {
        "title": "Cultural Night",
        "description": "Performances from cultural groups: dance, music, drama and traditional cuisine.",
        "venue": "Open Air Theatre",
        "date": datetime(2025, 3, 20),
        "time": "6:00 PM",
        "capacity": 500,
        "category": "Cultural",
        "organizer": "Cultural Committee",
        "image_url": "https://images.unsplash.com/photo-1492684223066-81342ee5ff30?w=800",
    },
    {
        "title": "Startup Summit",
        "description": "Meet entrepreneurs, learn about the startup ecosystem and pitch your ideas to investors.",
        "venue": "Conference Hall",
        "date": datetime(2025, 3, 25),
        "time": "9:00 AM",
        "capacity": 150,
        "category": "Business",
        "organizer": "Entrepreneurship Cell",
        "image_url": "https://images.unsplash.com/photo-1475721027785-f74eccf877e2?w=800",
    },
    {
        "title": "Sports Day",
        "description": "Inter-department competition featuring cricket, football, basketball and athletics.",
        "venue": "Sports Complex",
        "date": datetime(2025, 4, 5),
        "time": "8:00 AM",
        "capacity": 300,
        "category": "Sports",
        "organizer": "Sports Committee",
        "image_url": "https://images.unsplash.com/photo-1461896836934-ffe607ba8211?w=800",
    },
    {
        "title": "AI & Machine Learning Workshop",
        "description": "Hands-on workshop: build your first ML model. Laptops required.",
        "venue": "Computer Lab A",
        "date": datetime(2025, 4, 10),
        "time": "2:00 PM",
        "capacity": 50,
        "category": "Workshop",
        "organizer": "AI Club",
        "image_url": "https://images.unsplash.com/photo-1555949963-aa79dcee981c?w=800",
    },
]


def seed(db: Session) -> None:
    for data in DEMO_USERS:
        if get_user_by_email(db, data["email"]):
            continue
        db.add(
            User(
                email=data["email"],
                password_hash=hash_password(data["password"]),
                name=data["name"],
                role=data["role"],
                roll_number=data["roll_number"],
            )
        )
        logger.info("Created user %s", data["email"])

    if not db.scalar(select(func.count(Event.id))):
        db.add_all(Event(**data) for data in DEMO_EVENTS)
        logger.info("Created %d sample events", len(DEMO_EVENTS))

    db.commit()


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    engine = build_engine(settings)
    Base.metadata.create_all(bind=engine)
    db = build_session_factory(engine)()
    try:
        seed(db)
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    main()
