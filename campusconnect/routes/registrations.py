from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campusconnect.database.db import get_db
from campusconnect.models.users import User
from campusconnect.routes.deps import get_current_user, require_admin
from campusconnect.schemas.registrations import (
    MessageOut,
    RegistrationDetailOut,
    RegistrationWithEventOut,
    VerifyOut,
)
from campusconnect.services import registrations as registration_service

router = APIRouter(prefix="/registrations", tags=["registrations"])


@router.get("/my", response_model=list[RegistrationWithEventOut])
def my_registrations(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return registration_service.list_user_registrations(db, user.id)


@router.get("/verify/{token}", response_model=VerifyOut)
def verify_pass(token: str, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Scan a pass: the first scan checks the holder in, later scans are no-ops."""
    registration, checked_in = registration_service.verify_registration(db, token)
    message = "Check-in successful" if checked_in else "Already checked in"
    return {"message": message, "registration": registration}


@router.get("/{registration_id}", response_model=RegistrationDetailOut)
def get_registration(registration_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return registration_service.get_registration(db, registration_id=registration_id, actor=user)


@router.delete("/{registration_id}", response_model=MessageOut)
def cancel_registration(
    registration_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    registration_service.cancel_registration(db, registration_id=registration_id, actor=user)
    return {"message": "Registration cancelled successfully"}
