"""Sequenced submission of a check-in document to the backend."""

import logging
from collections.abc import Awaitable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError

from checkin_wizard.adapters.backend_client import CheckInBackendClient
from checkin_wizard.domain.backend import (
    BackendResponse,
    PetSubmission,
    SubmissionResult,
)
from checkin_wizard.services.data_manager import DataManager

NO_DATA_MESSAGE = "No check-in data found. Please complete the form first."
INCOMPLETE_MESSAGE = "Please complete owner information and add at least one pet."
IN_PROGRESS_MESSAGE = "A submission is already in progress."
PRECHECK_STEP = 0

_logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """Raised when a submission step fails. Earlier steps are not rolled back."""

    def __init__(self, step: int, message: str) -> None:
        super().__init__(f"Submission step {step} failed: {message}")
        self.step = step
        self.message = message


def idempotency_key(document_id: str, step: int, pet_index: int | None = None) -> str:
    """Build the key that lets the backend recognize a retried step."""
    if pet_index is None:
        return f"{document_id}:{step}"
    return f"{document_id}:{step}:{pet_index}"


@dataclass
class SubmissionOrchestrator:
    """Drains the check-in document to the backend in five dependent calls.

    The owner is posted once, then pet info, health, check-in data and extras
    are posted for each pet in document order. Ids returned by one call are
    passed to the next. The first failure raises ``SubmissionError`` and the
    document is kept for a retry; on success it is cleared. ``in_flight`` may
    be shared between orchestrators to reject a duplicate submission of the
    same document.
    """

    client: CheckInBackendClient
    data_manager: DataManager
    in_flight: set[str] = field(default_factory=set)

    @property
    def submitting(self) -> bool:
        return bool(self.in_flight)

    async def submit(
        self, document: Mapping[str, Any] | None = None
    ) -> SubmissionResult:
        resolved = self._resolve(document)
        _check_minimum_data(resolved)
        with self._claim(resolved["id"]):
            result = await self._run(resolved)
        self.data_manager.clear_document()
        _logger.info(
            "Submitted check-in %s for user %s with %s pet(s)",
            resolved["id"],
            result.user_id,
            len(result.pets),
        )
        return result

    async def submit_legacy(
        self, document: Mapping[str, Any] | None = None
    ) -> BackendResponse:
        """Post the whole document to the single-call endpoint."""
        resolved = self._resolve(document)
        _check_minimum_data(resolved)
        with self._claim(resolved["id"]):
            response = await _checked(
                PRECHECK_STEP, self.client.submit_checkin(dict(resolved))
            )
        self.data_manager.clear_document()
        return response

    def _resolve(self, document: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
        return document if document is not None else self.data_manager.get_document()

    @contextmanager
    def _claim(self, document_id: str) -> Iterator[None]:
        if document_id in self.in_flight:
            raise SubmissionError(PRECHECK_STEP, IN_PROGRESS_MESSAGE)
        self.in_flight.add(document_id)
        try:
            yield
        finally:
            self.in_flight.discard(document_id)

    async def _run(self, document: Mapping[str, Any]) -> SubmissionResult:
        document_id = document["id"]
        user = document["user"]
        response = await _checked(
            1,
            self.client.post_user_info(
                {**user["info"], "emergencyContact": user["emergencyContact"]},
                idempotency_key(document_id, 1),
            ),
        )
        user_id = _required_id(1, response, "user_id")
        submitted = [
            await self._submit_pet(document, index, pet, user_id)
            for index, pet in enumerate(document["pets"])
        ]
        return SubmissionResult(user_id=user_id, pets=submitted)

    async def _submit_pet(
        self,
        document: Mapping[str, Any],
        index: int,
        pet: Mapping[str, Any],
        user_id: int | str,
    ) -> PetSubmission:
        document_id = document["id"]
        response = await _checked(
            2,
            self.client.post_pet_info(
                user_id, pet["info"], idempotency_key(document_id, 2, index)
            ),
        )
        pet_id = _required_id(2, response, "pet_id")
        await _checked(
            3,
            self.client.post_pet_health(
                pet_id,
                pet["health"],
                pet["feeding"],
                pet["medication"],
                idempotency_key(document_id, 3, index),
            ),
        )
        editing = document.get("editingMode") or {}
        checkin_data = {
            "id": document_id,
            "date": document["date"],
            "inventoryComplete": document["inventoryComplete"],
            "groomingAcknowledged": document["groomingAcknowledged"],
            "termsAccepted": document["termsAccepted"],
            "checkInId": editing.get("checkInId"),
        }
        response = await _checked(
            4,
            self.client.post_checkin_data(
                pet_id, checkin_data, idempotency_key(document_id, 4, index)
            ),
        )
        checkin_id = _required_id(4, response, "checkin_id")
        await _checked(
            5,
            self.client.post_extra_info(
                checkin_id,
                {
                    "inventory": document["inventory"],
                    "grooming": document["grooming"],
                    "groomingDetails": document["groomingDetails"],
                },
                idempotency_key(document_id, 5, index),
            ),
        )
        return PetSubmission(
            local_id=pet.get("id"), pet_id=pet_id, checkin_id=checkin_id
        )


def _check_minimum_data(document: Mapping[str, Any] | None) -> None:
    if document is None:
        raise SubmissionError(PRECHECK_STEP, NO_DATA_MESSAGE)
    if not document["user"]["info"].get("phone") or not document["pets"]:
        raise SubmissionError(PRECHECK_STEP, INCOMPLETE_MESSAGE)


async def _checked(step: int, call: Awaitable[BackendResponse]) -> BackendResponse:
    try:
        response = await call
    except httpx.HTTPError as exc:
        _logger.warning("Submission step %s failed: %s", step, exc)
        raise SubmissionError(
            step, "An error occurred while submitting. Please try again."
        ) from exc
    except ValidationError as exc:
        raise SubmissionError(step, "Unexpected response from the server.") from exc
    if not response.success:
        _logger.warning("Submission step %s rejected: %s", step, response.message)
        raise SubmissionError(step, response.message or f"Step {step} was rejected.")
    return response


def _required_id(step: int, response: BackendResponse, key: str) -> int | str:
    value = (response.data or {}).get(key)
    if value is None:
        raise SubmissionError(step, f"Missing {key} in the server response.")
    return value
