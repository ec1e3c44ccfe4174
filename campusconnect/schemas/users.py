from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from campusconnect.models.users import UserRole


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    role: str
    roll_number: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    roll_number: str | None = None

    class Config:
        from_attributes = True


class UserWithCountOut(UserOut):
    registration_count: int


class ProfileUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    roll_number: str | None = Field(default=None, max_length=50)

    @field_validator("roll_number")
    @classmethod
    def blank_roll_number_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class RoleUpdate(BaseModel):
    role: UserRole


# ---------- Auth ----------
class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=1, max_length=200)
    roll_number: str | None = Field(default=None, max_length=50)

    @field_validator("roll_number")
    @classmethod
    def blank_roll_number_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AuthOut(BaseModel):
    message: str
    token: str
    user: UserOut
