"""Boarding backend API client."""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from checkin_wizard.domain.backend import BackendResponse, UserLookupResult

_logger = logging.getLogger(__name__)


class CheckInBackendClient(Protocol):
    """Interface for the boarding backend check-in endpoints."""

    async def post_user_info(
        self, user_info: dict[str, Any], idempotency_key: str | None = None
    ) -> BackendResponse:
        """Create or update the owner. Returns ``data.user_id``."""

    async def post_pet_info(
        self,
        user_id: int | str,
        pet_info: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        """Create a pet for the owner. Returns ``data.pet_id``."""

    async def post_pet_health(  # noqa: PLR0913
        self,
        pet_id: int | str,
        health_data: dict[str, Any],
        feeding_data: list[dict[str, Any]],
        medication_data: list[dict[str, Any]],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        """Store health, feeding and medication data for a pet."""

    async def post_checkin_data(
        self,
        pet_id: int | str,
        checkin_data: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        """Create the check-in record. Returns ``data.checkin_id``."""

    async def post_extra_info(
        self,
        checkin_id: int | str,
        extra_data: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        """Store inventory and grooming choices for a check-in."""

    async def submit_checkin(self, checkin_data: dict[str, Any]) -> BackendResponse:
        """Submit a whole check-in document in one call."""

    async def check_user(self, phone: str) -> UserLookupResult:
        """Look up an owner by phone number."""


@dataclass
class HttpxCheckInBackendClient(CheckInBackendClient):
    """HTTPX-backed boarding backend client."""

    base_url: str
    csrf_token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, csrf_token: str = "") -> "HttpxCheckInBackendClient":
        """Create a backend client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            csrf_token=csrf_token,
            http_client=httpx.AsyncClient(),
        )

    async def post_user_info(
        self, user_info: dict[str, Any], idempotency_key: str | None = None
    ) -> BackendResponse:
        return await self._post(
            "/checkin/step1/user-info", {"user_info": user_info}, idempotency_key
        )

    async def post_pet_info(
        self,
        user_id: int | str,
        pet_info: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        return await self._post(
            "/checkin/step2/pet-info",
            {"user_id": user_id, "pet_info": pet_info},
            idempotency_key,
        )

    async def post_pet_health(  # noqa: PLR0913
        self,
        pet_id: int | str,
        health_data: dict[str, Any],
        feeding_data: list[dict[str, Any]],
        medication_data: list[dict[str, Any]],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        return await self._post(
            "/checkin/step3/pet-health",
            {
                "pet_id": pet_id,
                "health_data": health_data,
                "feeding_data": feeding_data,
                "medication_data": medication_data,
            },
            idempotency_key,
        )

    async def post_checkin_data(
        self,
        pet_id: int | str,
        checkin_data: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        return await self._post(
            "/checkin/step4/checkin-data",
            {"pet_id": pet_id, "checkin_data": checkin_data},
            idempotency_key,
        )

    async def post_extra_info(
        self,
        checkin_id: int | str,
        extra_data: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        return await self._post(
            "/checkin/step5/extra-info",
            {"checkin_id": checkin_id, "extra_data": extra_data},
            idempotency_key,
        )

    async def submit_checkin(self, checkin_data: dict[str, Any]) -> BackendResponse:
        return await self._post("/checkin/submit", {"checkin_data": checkin_data})

    async def check_user(self, phone: str) -> UserLookupResult:
        response = await self.http_client.post(
            f"{self.base_url}/check-user",
            json={"phone": phone},
            headers=self._headers(),
            timeout=10,
        )
        response.raise_for_status()
        return UserLookupResult.model_validate(response.json())

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _post(
        self,
        path: str,
        payload: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        headers = self._headers()
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        response = await self.http_client.post(
            f"{self.base_url}{path}", json=payload, headers=headers, timeout=15
        )
        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            _logger.warning("Non-JSON response from %s", path)
            return BackendResponse(message=f"Unexpected response from {path}")
        return BackendResponse.model_validate(body)

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "X-CSRF-TOKEN": self.csrf_token}
