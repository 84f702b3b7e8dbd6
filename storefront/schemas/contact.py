from typing import Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field, field_validator

# An empty string stands for "no email" (or "clear it" on an explicit update)
OptionalEmail = Optional[Union[EmailStr, Literal[""]]]


def strip_value(value):
    if isinstance(value, str):
        return value.strip()
    return value


class ContactInfo(BaseModel):
    """Raw contact details as supplied by a checkout or an admin."""
    name: Optional[str] = Field(None, max_length=255)
    email: OptionalEmail = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v):
        return strip_value(v)
