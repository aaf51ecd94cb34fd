"""Domain models for the check-in document stored in the client cookie."""

import random
import string
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from checkin_wizard.domain.merge import deep_merge

SCHEMA_VERSION = 1

_ID_ALPHABET = string.digits + string.ascii_lowercase


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(tz=UTC).isoformat()


def _local_id(prefix: str) -> str:
    millis = int(datetime.now(tz=UTC).timestamp() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))  # noqa: S311
    return f"{prefix}_{millis}_{suffix}"


def generate_checkin_id() -> str:
    """Generate a session-scoped check-in id."""
    return _local_id("checkin")


def generate_pet_id() -> str:
    """Generate a local pet id, replaced by the backend id after submission."""
    return _local_id("pet")


class DayTime(StrEnum):
    """Moments of the day used by feeding and medication schedules."""

    MORNING = "morning"
    NOON = "noon"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class ScheduleKind(StrEnum):
    """Which schedule list of a pet an entry belongs to."""

    FEEDING = "feeding"
    MEDICATION = "medication"


class CheckInStatus(StrEnum):
    """Lifecycle status of a check-in document."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class OwnerInfo(_CamelModel):
    """Owner contact details. ``phone`` is the backend lookup key."""

    phone: str = ""
    name: str = ""
    email: str = ""
    address: str = ""
    city: str = ""
    zip: str = ""


class EmergencyContact(_CamelModel):
    """Emergency contact for the owner."""

    name: str = ""
    phone: str = ""


class OwnerSection(_CamelModel):
    """Owner section of the document."""

    info: OwnerInfo = Field(default_factory=OwnerInfo)
    emergency_contact: EmergencyContact = Field(default_factory=EmergencyContact)


class PetInfo(_CamelModel):
    """Descriptive pet fields as entered in the pet step."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    pet_name: str = ""
    pet_color: str = ""
    pet_type: str = ""
    pet_breed: str = ""
    pet_age: str = ""
    pet_weight: str = ""
    pet_gender: str = ""
    pet_spayed: str = ""


class PetHealth(_CamelModel):
    """Health notes for a pet."""

    unusual_health_behavior: bool = False
    health_behaviors: str = ""
    warnings: str = ""


class ScheduleEntry(BaseModel):
    """A feeding or medication entry."""

    model_config = ConfigDict(extra="ignore")

    day_time: DayTime
    feeding_med_details: str


class Pet(_CamelModel):
    """A pet owned by exactly one check-in document."""

    id: str | None = None
    info: PetInfo = Field(default_factory=PetInfo)
    health: PetHealth = Field(default_factory=PetHealth)
    feeding: list[ScheduleEntry] = Field(default_factory=list)
    medication: list[ScheduleEntry] = Field(default_factory=list)
    last_updated: str | None = None


class Grooming(_CamelModel):
    """Grooming services keyed by name, plus an optional appointment day."""

    model_config = ConfigDict(extra="allow")
    __pydantic_extra__: dict[str, bool] = Field(init=False)

    bath: bool = False
    nails: bool = False
    grooming: bool = False
    appointment_day: str | None = None


class EditingMode(_CamelModel):
    """Marks a document as an edit of an already submitted check-in."""

    enabled: bool = False
    check_in_id: int | None = None
    original_data: dict[str, Any] | None = None


class CheckInDocument(_CamelModel):
    """The check-in aggregate persisted in the client cookie."""

    v: int = SCHEMA_VERSION
    id: str = Field(default_factory=generate_checkin_id)
    date: str = Field(default_factory=utc_now_iso)
    last_updated: str | None = None
    auto_saved_at: str | None = None
    completed_at: str | None = None
    status: CheckInStatus = CheckInStatus.IN_PROGRESS
    user: OwnerSection = Field(default_factory=OwnerSection)
    pets: list[Pet] = Field(default_factory=list)
    grooming: Grooming = Field(default_factory=Grooming)
    grooming_details: str = ""
    inventory: list[str] = Field(default_factory=list)
    inventory_complete: bool = False
    grooming_acknowledged: bool = False
    terms_accepted: bool = False
    editing_mode: EditingMode | None = None


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def new_document() -> dict[str, Any]:
    """Return a fresh, empty check-in document."""
    return _dump(CheckInDocument())


def new_pet(info: Mapping[str, Any]) -> dict[str, Any]:
    """Return a pet built from the default template and the given info fields."""
    pet = deep_merge(_dump(Pet()), {"info": dict(info)})
    pet["id"] = generate_pet_id()
    pet["lastUpdated"] = utc_now_iso()
    return pet


def normalize_document(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a raw document against the schema and return its wire form.

    Unknown keys are dropped and missing ones take their defaults. Raises
    ``pydantic.ValidationError`` when a known field has the wrong shape.
    """
    return _dump(CheckInDocument.model_validate(raw))
