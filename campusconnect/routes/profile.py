from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campusconnect.database.db import get_db
from campusconnect.models.users import User
from campusconnect.routes.deps import get_current_user
from campusconnect.schemas.users import ProfileUpdate, UserOut
from campusconnect.services.users import update_profile

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=UserOut)
def read_profile(user: User = Depends(get_current_user)):
    return user


@router.put("", response_model=UserOut)
def edit_profile(payload: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return update_profile(db, user, payload)
