"""Pydantic models for the /identify wire contract."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticCustomError

if TYPE_CHECKING:
    from identipy.domain.reconciliation import ConsolidatedView

_EMAIL: Final[TypeAdapter[str]] = TypeAdapter(EmailStr)


class IdentifyRequest(BaseModel):
    """Incoming fragment: an email and/or a phone number."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    email: str | None = None
    phone_number: str | None = Field(default=None, alias="phoneNumber")

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        # Only validated: the address is stored exactly as submitted, not normalised.
        try:
            _EMAIL.validate_python(value)
        except ValidationError as exc:
            raise PydanticCustomError("email_format", "Invalid email format") from exc
        return value

    @field_validator("phone_number", mode="before")
    @classmethod
    def _coerce_phone_number(cls, value: object) -> object:
        # JSON clients send phone numbers as numbers too.
        if isinstance(value, bool):
            raise PydanticCustomError("phone_type", "phoneNumber must be a string or a number")
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, int | float):
            return str(value)
        return value

    @model_validator(mode="after")
    def _require_one_field(self) -> Self:
        if not self.email and not self.phone_number:
            raise PydanticCustomError(
                "missing_fragment",
                "At least one of email or phoneNumber must be provided",
            )
        return self


class ContactPayload(BaseModel):
    """Consolidated contact as exposed on the wire.

    ``primaryContatctId`` is misspelled on purpose: existing clients depend on it.
    """

    model_config = ConfigDict(populate_by_name=True)

    primary_contact_id: int = Field(alias="primaryContatctId")
    emails: list[str] = Field(default_factory=list)
    phone_numbers: list[str] = Field(default_factory=list, alias="phoneNumbers")
    secondary_contact_ids: list[int] = Field(default_factory=list, alias="secondaryContactIds")

    @classmethod
    def from_view(cls, view: ConsolidatedView) -> ContactPayload:
        return cls(
            primary_contact_id=view.primary_contact_id,
            emails=list(view.emails),
            phone_numbers=list(view.phone_numbers),
            secondary_contact_ids=list(view.secondary_contact_ids),
        )


class IdentifyResponse(BaseModel):
    contact: ContactPayload

    @classmethod
    def from_view(cls, view: ConsolidatedView) -> IdentifyResponse:
        return cls(contact=ContactPayload.from_view(view))


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str
    message: str
    status_code: int = Field(alias="statusCode")
