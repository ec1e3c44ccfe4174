from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campusconnect.database.db import get_db
from campusconnect.routes.deps import require_admin
from campusconnect.schemas.admin import DashboardOut, EventRosterOut
from campusconnect.schemas.users import RoleUpdate, UserOut, UserWithCountOut
from campusconnect.services.dashboard import get_dashboard_stats, get_event_registrations
from campusconnect.services.users import list_users_with_counts, update_user_role

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/stats", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db)):
    """Aggregate report across users, events and registrations."""
    return get_dashboard_stats(db)


@router.get("/events/{event_id}/registrations", response_model=EventRosterOut)
def event_roster(event_id: int, db: Session = Depends(get_db)):
    return get_event_registrations(db, event_id)


@router.get("/users", response_model=list[UserWithCountOut])
def list_users(db: Session = Depends(get_db)):
    return list_users_with_counts(db)


@router.patch("/users/{user_id}/role", response_model=UserOut)
def change_role(user_id: int, payload: RoleUpdate, db: Session = Depends(get_db)):
    return update_user_role(db, user_id, payload.role)
