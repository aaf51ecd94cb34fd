"""Step validation rules for the check-in wizard."""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from checkin_wizard.domain.steps import Step

MIN_PHONE_DIGITS = 10
INVENTORY_REQUIRED_MESSAGE = (
    "Please add inventory items or confirm you are not leaving anything in inventory."
)
PET_REQUIRED_MESSAGE = "Please add at least one pet before continuing."

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_FIELD_MESSAGES = {
    "phone": "Please enter a valid phone number.",
    "name": "Please enter your name.",
    "email": "Please enter a valid email address.",
    "petName": "Please enter the pet's name.",
    "petType": "Please select the type of pet.",
    "petAge": "Please enter the birth date as YYYY-MM-DD.",
    "petWeight": "Please enter the weight as a number.",
}


@dataclass(frozen=True)
class ValidationIssue:
    """A user-facing message attached to a form field."""

    field: str
    message: str


def sanitize_phone(raw: str) -> str:
    """Keep only the digits of a phone number."""
    return re.sub(r"\D", "", raw)


def format_phone(raw: str) -> str:
    """Format a ten digit phone number as ``(555) 123-4567``."""
    digits = sanitize_phone(raw)
    if len(digits) != MIN_PHONE_DIGITS:
        return raw
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


class OwnerRequirements(BaseModel):
    """Owner fields required to leave the owner step."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    phone: str
    name: str
    email: str

    @field_validator("phone")
    @classmethod
    def _phone_digits(cls, value: str) -> str:
        if len(sanitize_phone(value)) < MIN_PHONE_DIGITS:
            raise ValueError("too few digits")
        return value

    @field_validator("name")
    @classmethod
    def _name_present(cls, value: str) -> str:
        if not value:
            raise ValueError("empty")
        return value

    @field_validator("email")
    @classmethod
    def _email_shape(cls, value: str) -> str:
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("malformed")
        return value


class PetRequirements(BaseModel):
    """Pet fields required to leave the pet step."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    petName: str  # noqa: N815
    petType: str  # noqa: N815
    petAge: str = ""  # noqa: N815
    petWeight: str = ""  # noqa: N815

    @field_validator("petName", "petType")
    @classmethod
    def _present(cls, value: str) -> str:
        if not value:
            raise ValueError("empty")
        return value

    @field_validator("petAge")
    @classmethod
    def _birth_date(cls, value: str) -> str:
        if value:
            date.fromisoformat(value)
        return value

    @field_validator("petWeight")
    @classmethod
    def _weight(cls, value: str) -> str:
        if value and float(value) < 0:
            raise ValueError("negative")
        return value


def validate_owner(document: Mapping[str, Any]) -> list[ValidationIssue]:
    return _issues(OwnerRequirements, document["user"]["info"])


def validate_pets(document: Mapping[str, Any]) -> list[ValidationIssue]:
    pets = document["pets"]
    if not pets:
        return [ValidationIssue(field="pets", message=PET_REQUIRED_MESSAGE)]
    issues: list[ValidationIssue] = []
    for index, pet in enumerate(pets):
        issues.extend(
            ValidationIssue(field=f"pets.{index}.{issue.field}", message=issue.message)
            for issue in _issues(PetRequirements, pet["info"])
        )
    return issues


def validate_step(step: Step, document: Mapping[str, Any]) -> list[ValidationIssue]:
    """Return the issues that block leaving ``step``."""
    if step is Step.OWNER_INFO:
        return validate_owner(document)
    if step is Step.PET_INFO:
        return validate_pets(document)
    return []


def _issues(model: type[BaseModel], data: Mapping[str, Any]) -> list[ValidationIssue]:
    try:
        model.model_validate(data)
    except ValidationError as exc:
        seen: dict[str, ValidationIssue] = {}
        for error in exc.errors():
            name = str(error["loc"][0])
            seen.setdefault(
                name,
                ValidationIssue(
                    field=name,
                    message=_FIELD_MESSAGES.get(name, "This field is required."),
                ),
            )
        return list(seen.values())
    return []
