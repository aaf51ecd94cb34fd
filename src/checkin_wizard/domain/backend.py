"""Models exchanged with the boarding backend."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BackendResponse(BaseModel):
    """Envelope returned by every check-in endpoint."""

    model_config = ConfigDict(extra="ignore")

    success: bool = False
    message: str = ""
    data: dict[str, Any] | None = None


class UserLookupResult(BaseModel):
    """Answer of the ``/check-user`` lookup."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    user_exists: bool = False
    has_check_in: bool = False
    user_id: int | None = None
    user_name: str | None = None
    user_email: str | None = None
    user_address: str | None = None


@dataclass(frozen=True)
class PetSubmission:
    """Backend ids assigned to one submitted pet."""

    local_id: str | None
    pet_id: int | str
    checkin_id: int | str


@dataclass(frozen=True)
class SubmissionResult:
    """Ids threaded through a completed submission."""

    user_id: int | str
    pets: list[PetSubmission]
