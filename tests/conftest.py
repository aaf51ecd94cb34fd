"""Shared test fixtures."""

from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest

from checkin_wizard.adapters.backend_client import CheckInBackendClient
from checkin_wizard.adapters.cookie_store import CookieStore
from checkin_wizard.config import Settings
from checkin_wizard.containers import AppContainer
from checkin_wizard.domain.backend import BackendResponse, UserLookupResult
from checkin_wizard.services.data_manager import DataManager
from checkin_wizard.services.user_lookup import UserLookupService

COOKIE_NAME = "pl_checkin_data"


@dataclass
class FakeBackendClient(CheckInBackendClient):
    """Fake backend that records every call and hands out sequential ids."""

    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    idempotency_keys: list[str | None] = field(default_factory=list)
    fail_step: int | None = None
    fail_message: str = "Backend rejected the request"
    raise_step: int | None = None
    lookup_result: UserLookupResult = field(default_factory=UserLookupResult)
    lookups: list[str] = field(default_factory=list)
    pets_created: int = 0
    checkins_created: int = 0

    async def post_user_info(
        self, user_info: dict[str, Any], idempotency_key: str | None = None
    ) -> BackendResponse:
        return self._record(
            1, "user-info", {"user_info": user_info}, idempotency_key, {"user_id": 7}
        )

    async def post_pet_info(
        self,
        user_id: int | str,
        pet_info: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        self.pets_created += 1
        return self._record(
            2,
            "pet-info",
            {"user_id": user_id, "pet_info": pet_info},
            idempotency_key,
            {"pet_id": 100 + self.pets_created},
        )

    async def post_pet_health(  # noqa: PLR0913
        self,
        pet_id: int | str,
        health_data: dict[str, Any],
        feeding_data: list[dict[str, Any]],
        medication_data: list[dict[str, Any]],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        return self._record(
            3,
            "pet-health",
            {
                "pet_id": pet_id,
                "health_data": health_data,
                "feeding_data": feeding_data,
                "medication_data": medication_data,
            },
            idempotency_key,
            {},
        )

    async def post_checkin_data(
        self,
        pet_id: int | str,
        checkin_data: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        self.checkins_created += 1
        return self._record(
            4,
            "checkin-data",
            {"pet_id": pet_id, "checkin_data": checkin_data},
            idempotency_key,
            {"checkin_id": 500 + self.checkins_created},
        )

    async def post_extra_info(
        self,
        checkin_id: int | str,
        extra_data: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BackendResponse:
        return self._record(
            5,
            "extra-info",
            {"checkin_id": checkin_id, "extra_data": extra_data},
            idempotency_key,
            {},
        )

    async def submit_checkin(self, checkin_data: dict[str, Any]) -> BackendResponse:
        return self._record(
            0, "submit", {"checkin_data": checkin_data}, None, {"checkin_id": 900}
        )

    async def check_user(self, phone: str) -> UserLookupResult:
        self.lookups.append(phone)
        return self.lookup_result

    async def close(self) -> None:
        return None

    def endpoints(self) -> list[str]:
        return [name for name, _ in self.calls]

    def _record(  # noqa: PLR0913
        self,
        step: int,
        name: str,
        payload: dict[str, Any],
        idempotency_key: str | None,
        data: dict[str, Any],
    ) -> BackendResponse:
        self.calls.append((name, payload))
        self.idempotency_keys.append(idempotency_key)
        if self.raise_step == step:
            raise httpx.ConnectError("backend unreachable")
        if self.fail_step == step:
            return BackendResponse(success=False, message=self.fail_message)
        return BackendResponse(success=True, message="ok", data=data)


@dataclass
class RecordingSignal:
    """Counts change notifications."""

    count: int = 0

    def trigger_check(self) -> None:
        self.count += 1


def fill_checkin(manager: DataManager) -> None:
    """Bring a document to the point where it can leave the inventory step."""
    manager.create_initial_document()
    manager.update_user_info(
        {"phone": "5551234567", "name": "Jane", "email": "j@example.com"}
    )
    manager.add_pet({"petName": "Rex", "petType": "dog"})
    manager.add_feeding_or_medication(
        0, "feeding", {"day_time": "morning", "feeding_med_details": "1 cup kibble"}
    )
    manager.set_inventory_complete(True)
    manager.set_grooming_acknowledged(True)
    manager.set_terms_accepted(True)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        backend_base_url="http://backend.test",
        csrf_token="csrf-token",
    )


@pytest.fixture
def store() -> CookieStore:
    return CookieStore.from_mapping({})


@pytest.fixture
def signal() -> RecordingSignal:
    return RecordingSignal()


@pytest.fixture
def data_manager(store: CookieStore, signal: RecordingSignal) -> DataManager:
    return DataManager(store=store, cookie_name=COOKIE_NAME, signal=signal)


@pytest.fixture
def backend_client() -> FakeBackendClient:
    return FakeBackendClient()


@pytest.fixture
def container(settings: Settings, backend_client: FakeBackendClient) -> AppContainer:
    async def close_resources() -> None:
        await backend_client.close()

    return AppContainer(
        settings=settings,
        backend_client=backend_client,
        user_lookup_service=UserLookupService(backend_client),
        in_flight_submissions=set(),
        close_resources=close_resources,
    )
