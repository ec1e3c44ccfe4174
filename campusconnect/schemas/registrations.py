from datetime import datetime

from pydantic import BaseModel

from campusconnect.schemas.events import EventOut
from campusconnect.schemas.users import UserSummary


class RegistrationOut(BaseModel):
    id: int
    user_id: int
    event_id: int
    qr_code: str
    qr_code_data: str
    attended: bool
    attended_at: datetime | None = None
    registered_at: datetime | None = None

    class Config:
        from_attributes = True


class RegistrationDetailOut(RegistrationOut):
    event: EventOut
    user: UserSummary


class RegistrationWithEventOut(RegistrationOut):
    event: EventOut


class RegistrationWithUserOut(RegistrationOut):
    user: UserSummary


class VerifyOut(BaseModel):
    message: str
    registration: RegistrationDetailOut


class MessageOut(BaseModel):
    message: str
