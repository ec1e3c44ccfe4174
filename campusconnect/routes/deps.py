from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from campusconnect.core.config import Settings
from campusconnect.core.errors import ForbiddenError, UnauthorizedError
from campusconnect.core.security import decode_access_token
from campusconnect.database.db import get_db, get_settings
from campusconnect.models.users import User

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    if credentials is None:
        raise UnauthorizedError("Access token required")

    payload = decode_access_token(credentials.credentials, settings)
    user = db.get(User, int(payload["sub"]))
    if not user:
        raise UnauthorizedError("User not found")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    # the stored role is authoritative, so a demotion applies to live tokens
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user
