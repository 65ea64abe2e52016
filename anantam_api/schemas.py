from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .shared.validators import validate_email, validate_required_text


class SignupRequest(BaseModel):
    name: str
    email: str
    password: str = Field(..., min_length=8, max_length=72)  # bcrypt reads at most 72 bytes

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "name")

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        return validate_email(validate_required_text(v, "email"))


class SigninRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserSummaryResponse(BaseModel):
    id: int
    name: str
    email: str


class SigninResponse(BaseModel):
    token: str
    user: UserSummaryResponse


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    auth_method: str
    is_email_verified: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    # Email is read-only; only the display name can change
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "Name")


class ProfileResponse(BaseModel):
    data: UserResponse
    message: Optional[str] = None


class ActivityData(BaseModel):
    workshopsAttended: int


class ActivityResponse(BaseModel):
    data: ActivityData


class MessageResponse(BaseModel):
    message: str
