"""Tests for phone lookup routing."""

import asyncio

from checkin_wizard.domain.backend import UserLookupResult
from checkin_wizard.services.user_lookup import (
    LookupRoute,
    UserLookupService,
    route_for,
)
from tests.conftest import FakeBackendClient


def test_route_for_lookup_results() -> None:
    assert route_for(UserLookupResult(user_exists=False)) is LookupRoute.NEW_USER
    assert (
        route_for(UserLookupResult(user_exists=True, has_check_in=False))
        is LookupRoute.RESUME_EXISTING
    )
    assert (
        route_for(UserLookupResult(user_exists=True, has_check_in=True))
        is LookupRoute.ALREADY_CHECKED_IN
    )


def test_lookup_sanitizes_phone_and_builds_next_url(
    backend_client: FakeBackendClient,
) -> None:
    service = UserLookupService(backend_client)

    decision = asyncio.run(service.lookup("(555) 123-4567"))

    assert backend_client.lookups == ["5551234567"]
    assert decision.route is LookupRoute.NEW_USER
    assert decision.next_url == "/checkin?phone=5551234567"


def test_already_checked_in_goes_to_confirmation(
    backend_client: FakeBackendClient,
) -> None:
    backend_client.lookup_result = UserLookupResult(user_exists=True, has_check_in=True)
    service = UserLookupService(backend_client)

    decision = asyncio.run(service.lookup("5551234567"))

    assert decision.next_url == "/checkin/confirmation?phone=5551234567"


def test_prefill_uses_known_owner_fields(backend_client: FakeBackendClient) -> None:
    backend_client.lookup_result = UserLookupResult(
        user_exists=True, user_name="Jane", user_email="j@example.com"
    )
    service = UserLookupService(backend_client)

    decision = asyncio.run(service.lookup("5551234567"))

    assert decision.route is LookupRoute.RESUME_EXISTING
    assert decision.prefill() == {
        "user": {
            "info": {"phone": "5551234567", "name": "Jane", "email": "j@example.com"}
        }
    }
