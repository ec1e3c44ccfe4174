from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campusconnect.core.config import Settings
from campusconnect.database.db import get_db, get_settings
from campusconnect.schemas.users import AuthOut, LoginRequest, SignupRequest
from campusconnect.services import users as user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=AuthOut, status_code=201)
def signup(payload: SignupRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    user, token = user_service.signup(db, settings, payload)
    return {"message": "User registered successfully", "token": token, "user": user}


@router.post("/login", response_model=AuthOut)
def login(payload: LoginRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    user, token = user_service.login(db, settings, payload)
    return {"message": "Login successful", "token": token, "user": user}
