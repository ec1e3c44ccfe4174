from typing import Literal

import redis
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campusconnect.core.config import Settings
from campusconnect.database.db import get_db, get_redis, get_settings
from campusconnect.models.users import User
from campusconnect.routes.deps import get_current_user, require_admin
from campusconnect.schemas.events import EventCreate, EventListOut, EventOut, EventUpdate, EventWithStatusOut
from campusconnect.schemas.registrations import MessageOut, RegistrationDetailOut
from campusconnect.services import events as event_service
from campusconnect.services.registrations import create_registration

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=EventListOut)
def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, max_length=200),
    filter: Literal["upcoming", "past", "all"] = Query("all"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return event_service.list_events(db, user_id=user.id, page=page, limit=limit, search=search, when=filter)


@router.get("/{event_id}", response_model=EventWithStatusOut)
def get_event(event_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return event_service.get_event_with_status(db, event_id, user.id)


@router.post("/{event_id}/register", response_model=RegistrationDetailOut, status_code=201)
def register_for_event(
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
):
    return create_registration(db, redis_client, settings, user_id=user.id, event_id=event_id)


@router.post("", response_model=EventOut, status_code=201)
def create_event(payload: EventCreate, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    return event_service.create_event(db, payload)


@router.put("/{event_id}", response_model=EventOut)
def update_event(
    event_id: int,
    payload: EventUpdate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
):
    return event_service.update_event(db, redis_client, settings, event_id, payload)


@router.delete("/{event_id}", response_model=MessageOut)
def delete_event(event_id: int, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    event_service.delete_event(db, event_id)
    return {"message": "Event deleted successfully"}
