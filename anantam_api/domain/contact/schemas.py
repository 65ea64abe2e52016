"""Contact form schemas"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_phone, validate_required_text


class ContactRequest(BaseModel):
    firstName: str
    lastName: str
    email: str
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: str

    @field_validator("firstName", "lastName", "message")
    @classmethod
    def validate_text(cls, v: str, info) -> str:
        return validate_required_text(v, info.field_name)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        return validate_email(validate_required_text(v, "email"))

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return validate_phone(v)


class ContactResponse(BaseModel):
    message: str
    success: bool
