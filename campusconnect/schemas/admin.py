from datetime import datetime

from pydantic import BaseModel

from campusconnect.schemas.events import EventOut
from campusconnect.schemas.registrations import RegistrationWithUserOut


class RecentRegistrationUser(BaseModel):
    name: str
    email: str


class RecentRegistrationEvent(BaseModel):
    title: str
    date: datetime


class RecentRegistrationOut(BaseModel):
    id: int
    attended: bool
    registered_at: datetime | None = None
    user: RecentRegistrationUser
    event: RecentRegistrationEvent


class PopularEventOut(EventOut):
    registration_count: int


class DashboardOut(BaseModel):
    total_users: int
    total_events: int
    total_registrations: int
    upcoming_events: int
    attended_count: int
    attendance_rate: float
    recent_registrations: list[RecentRegistrationOut]
    popular_events: list[PopularEventOut]


class RosterStats(BaseModel):
    total: int
    attended: int
    pending: int


class EventRosterOut(BaseModel):
    event: EventOut
    registrations: list[RegistrationWithUserOut]
    stats: RosterStats
