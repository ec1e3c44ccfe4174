from datetime import date as date_type
from datetime import datetime, timezone
from datetime import time as time_type
from typing import Annotated

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field


def _coerce_event_date(value):
    """Accept YYYY-MM-DD as midnight, anything else is left to pydantic."""
    if isinstance(value, str) and len(value) == 10:
        return datetime.combine(date_type.fromisoformat(value), time_type.min)
    return value


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _blank_url_is_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_url(value: str | None) -> str | None:
    if value is None:
        return value
    if len(value) > 500 or not value.startswith(("http://", "https://")):
        raise ValueError("Image URL must be an http(s) URL of at most 500 characters")
    return value


EventDate = Annotated[datetime, BeforeValidator(_coerce_event_date), AfterValidator(_to_naive_utc)]
ImageUrl = Annotated[str | None, BeforeValidator(_blank_url_is_none), AfterValidator(_check_url)]


# ---------- Event ----------
class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    venue: str = Field(min_length=1, max_length=200)
    date: EventDate
    time: str = Field(min_length=1, max_length=50)
    capacity: int = Field(gt=0)
    image_url: ImageUrl = None
    category: str | None = Field(default=None, max_length=100)
    organizer: str = Field(min_length=1, max_length=200)


class EventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1)
    venue: str | None = Field(default=None, min_length=1, max_length=200)
    date: EventDate | None = None
    time: str | None = Field(default=None, min_length=1, max_length=50)
    capacity: int | None = Field(default=None, gt=0)
    image_url: ImageUrl = None
    category: str | None = Field(default=None, max_length=100)
    organizer: str | None = Field(default=None, min_length=1, max_length=200)


class EventOut(BaseModel):
    id: int
    title: str
    description: str
    venue: str
    date: datetime
    time: str
    capacity: int
    image_url: str | None = None
    category: str | None = None
    organizer: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class EventWithStatusOut(EventOut):
    registered_count: int
    is_registered: bool
    is_full: bool


class EventListMetadata(BaseModel):
    total_events: int
    total_pages: int
    current_page: int
    limit: int


class EventListOut(BaseModel):
    events: list[EventWithStatusOut]
    metadata: EventListMetadata
