"""Request bodies accepted by the wizard API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from checkin_wizard.domain.checkin import DayTime, ScheduleKind


class _Partial(BaseModel):
    model_config = ConfigDict(extra="ignore")

    def fields_set(self) -> dict[str, Any]:
        """Return only the fields the client sent."""
        return self.model_dump(mode="json", exclude_unset=True)


class OwnerInfoRequest(_Partial):
    phone: str | None = None
    name: str | None = None
    email: str | None = None
    address: str | None = None
    city: str | None = None
    zip: str | None = None
    emergencyContactName: str | None = None  # noqa: N815
    emergencyContactPhone: str | None = None  # noqa: N815


class PetInfoRequest(_Partial):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    petName: str | None = None  # noqa: N815
    petColor: str | None = None  # noqa: N815
    petType: str | None = None  # noqa: N815
    petBreed: str | None = None  # noqa: N815
    petAge: str | None = None  # noqa: N815
    petWeight: str | None = None  # noqa: N815
    petGender: str | None = None  # noqa: N815
    petSpayed: str | None = None  # noqa: N815


class PetHealthRequest(_Partial):
    unusualHealthBehavior: bool | None = None  # noqa: N815
    healthBehaviors: str | None = None  # noqa: N815
    warnings: str | None = None


class ScheduleEntryRequest(BaseModel):
    kind: ScheduleKind
    day_time: DayTime
    feeding_med_details: str = Field(min_length=1)
    apply_to_all: bool = False

    def entry(self) -> dict[str, str]:
        return {
            "day_time": self.day_time.value,
            "feeding_med_details": self.feeding_med_details,
        }


class ScheduleItemUpdateRequest(_Partial):
    day_time: DayTime | None = None
    feeding_med_details: str | None = None


class InventoryItemRequest(BaseModel):
    text: str = Field(min_length=1)


class InventoryCompleteRequest(BaseModel):
    complete: bool


class GroomingRequest(BaseModel):
    services: dict[str, bool] = Field(default_factory=dict)
    details: str | None = None
    appointmentDay: str | None = None  # noqa: N815


class TermsRequest(BaseModel):
    accepted: bool


class EditRequest(BaseModel):
    checkInId: int  # noqa: N815
    sessionData: dict[str, Any] = Field(default_factory=dict)  # noqa: N815


class CheckUserRequest(BaseModel):
    phone: str = Field(min_length=1)
