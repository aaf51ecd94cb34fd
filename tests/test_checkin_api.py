"""Tests for the check-in wizard endpoints."""

from fastapi.testclient import TestClient

from checkin_wizard.api.app import create_app
from checkin_wizard.api.checkin import SAVE_FAILED_MESSAGE
from checkin_wizard.domain.backend import UserLookupResult
from tests.conftest import COOKIE_NAME, FakeBackendClient


def _fill_wizard(client: TestClient) -> None:
    client.get("/checkin")
    client.put(
        "/checkin/owner",
        json={"phone": "5551234567", "name": "Jane", "email": "j@example.com"},
    )
    client.post("/checkin/pets?step=2", json={"petName": "Rex", "petType": "dog"})
    client.post(
        "/checkin/pets/0/schedule?step=3",
        json={
            "kind": "feeding",
            "day_time": "morning",
            "feeding_med_details": "1 cup kibble",
        },
    )
    client.put("/checkin/inventory/complete?step=5", json={"complete": True})


def test_health_endpoint(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_open_wizard_sets_cookie(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/checkin")

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["step"] == 1
    assert data["document"]["id"].startswith("checkin_")
    assert COOKIE_NAME in response.cookies
    assert "Max-Age=604800" in response.headers["set-cookie"]


def test_owner_update_is_projected_on_owner_step(container) -> None:
    client = TestClient(create_app(container))
    client.get("/checkin")

    response = client.put(
        "/checkin/owner?step=1",
        json={"name": "Jane", "emergencyContactName": "Sam"},
    )

    data = response.json()
    assert data["document"]["user"]["info"]["name"] == "Jane"
    assert data["document"]["user"]["emergencyContact"]["name"] == "Sam"
    assert data["view"]["owner_form"]["fields"]["emergencyContactName"] == "Sam"


def test_document_persists_across_requests(container) -> None:
    client = TestClient(create_app(container))
    client.put("/checkin/owner", json={"name": "Jane"})

    response = client.get("/checkin?step=1")

    assert response.json()["document"]["user"]["info"]["name"] == "Jane"


def test_added_pet_is_selected(container) -> None:
    client = TestClient(create_app(container))
    client.post("/checkin/pets?step=2", json={"petName": "Rex", "petType": "dog"})

    response = client.post(
        "/checkin/pets?step=2", json={"petName": "Tom", "petType": "cat"}
    )

    pills = response.json()["view"]["pet_pills"]
    assert [(pill["label"], pill["selected"]) for pill in pills] == [
        ("Rex", False),
        ("Tom", True),
    ]


def test_schedule_entry_can_apply_to_all_pets(container) -> None:
    client = TestClient(create_app(container))
    client.post("/checkin/pets", json={"petName": "Rex"})
    client.post("/checkin/pets", json={"petName": "Tom"})

    response = client.post(
        "/checkin/pets/0/schedule?step=3",
        json={
            "kind": "feeding",
            "day_time": "night",
            "feeding_med_details": "kibble",
            "apply_to_all": True,
        },
    )

    pets = response.json()["document"]["pets"]
    assert [len(pet["feeding"]) for pet in pets] == [1, 1]
    assert len(response.json()["view"]["feeding_schedule"]["night"]) == 2


def test_schedule_for_all_pets_without_pets_is_rejected(container) -> None:
    client = TestClient(create_app(container))
    client.get("/checkin")

    response = client.post(
        "/checkin/pets/0/schedule",
        json={
            "kind": "feeding",
            "day_time": "night",
            "feeding_med_details": "kibble",
            "apply_to_all": True,
        },
    )

    assert response.status_code == 400
    assert response.json()["document"]["pets"] == []


def test_out_of_range_update_is_rejected(container) -> None:
    client = TestClient(create_app(container))
    client.get("/checkin")

    response = client.put("/checkin/pets/4", json={"petName": "Max"})

    assert response.status_code == 400
    assert response.json()["ok"] is False
    assert response.json()["navigation"]["message"] == SAVE_FAILED_MESSAGE


def test_invalid_schedule_body_is_rejected(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/checkin/pets/0/schedule",
        json={"kind": "snacks", "day_time": "morning", "feeding_med_details": "x"},
    )

    assert response.status_code == 422


def test_inventory_routes(container) -> None:
    client = TestClient(create_app(container))
    client.post("/checkin/inventory", json={"text": "leash"})
    client.post("/checkin/inventory", json={"text": "bed"})
    client.put("/checkin/inventory/0", json={"text": "red leash"})

    response = client.delete("/checkin/inventory/1?step=5")

    data = response.json()
    assert data["document"]["inventory"] == ["red leash"]
    assert data["view"]["inventory"]["complete_visible"] is False
    assert data["view"]["next_button"]["enabled"] is True


def test_next_from_inventory_opens_grooming_then_terms(container) -> None:
    client = TestClient(create_app(container))
    _fill_wizard(client)

    blocked = client.post("/checkin/next?step=5").json()
    assert blocked["ok"] is False
    assert blocked["navigation"]["popup"] == "grooming"

    groomed = client.post(
        "/checkin/grooming?step=5",
        json={"services": {"bath": True}, "appointmentDay": "Friday"},
    ).json()
    assert groomed["navigation"]["popup"] == "terms"
    assert groomed["step"] == 5

    accepted = client.post("/checkin/terms?step=5", json={"accepted": True}).json()
    assert accepted["navigation"]["popup"] is None
    assert accepted["document"]["termsAccepted"] is True


def test_full_wizard_submits_and_shows_receipt(
    container, backend_client: FakeBackendClient
) -> None:
    client = TestClient(create_app(container))
    _fill_wizard(client)
    client.post("/checkin/grooming?step=5", json={"services": {}})
    client.post("/checkin/terms?step=5", json={"accepted": True})

    response = client.post("/checkin/next?step=5")

    data = response.json()
    assert data["ok"] is True
    assert data["step"] == 6
    assert data["submission"]["user_id"] == 7
    assert data["view"]["receipt"]["sections"][0]["title"] == "Owner Information"
    assert data["view"]["next_button"]["visible"] is False
    assert data["document"]["status"] == "completed"
    assert backend_client.endpoints() == [
        "user-info",
        "pet-info",
        "pet-health",
        "checkin-data",
        "extra-info",
    ]
    assert backend_client.calls[0][1]["user_info"]["phone"] == "5551234567"
    assert backend_client.calls[1][1]["pet_info"]["petName"] == "Rex"
    assert COOKIE_NAME not in client.cookies


def test_failed_submission_keeps_document(
    container, backend_client: FakeBackendClient
) -> None:
    backend_client.fail_step = 2
    backend_client.fail_message = "Pet could not be saved"
    client = TestClient(create_app(container))
    _fill_wizard(client)
    client.post("/checkin/grooming?step=5", json={"services": {}})
    client.post("/checkin/terms?step=5", json={"accepted": True})

    data = client.post("/checkin/next?step=5").json()

    assert data["step"] == 5
    assert data["navigation"]["message"] == "Pet could not be saved"
    assert data["document"]["pets"][0]["info"]["petName"] == "Rex"


def test_previous_step(container) -> None:
    client = TestClient(create_app(container))

    data = client.post("/checkin/prev?step=3").json()

    assert data["step"] == 2
    assert data["stepName"] == "pet-info"


def test_editing_flow(container) -> None:
    client = TestClient(create_app(container))
    started = client.post(
        "/checkin/edit",
        json={
            "checkInId": 12,
            "sessionData": {
                "user": {"info": {"phone": "5551234567", "name": "Jane"}},
                "inventory": ["leash"],
            },
        },
    )
    assert started.json()["document"]["editingMode"]["checkInId"] == 12

    unchanged = client.get("/checkin/edit/changes").json()
    assert unchanged["editing"] is True
    assert unchanged["changed"] is False

    client.put("/checkin/owner", json={"name": "Janet"})
    changed = client.get("/checkin/edit/changes").json()
    assert changed["changed"] is True
    assert changed["changes"]["userInfo"] is True

    reset = client.post("/checkin/edit/reset").json()
    assert reset["document"]["user"]["info"]["name"] == "Jane"

    stopped = client.delete("/checkin/edit").json()
    assert "editingMode" not in stopped["document"]


def test_phone_guard_replaces_stale_document(container) -> None:
    client = TestClient(create_app(container))
    first = client.get("/checkin?phone=5551234567").json()

    second = client.get("/checkin?phone=5559990000").json()

    assert second["document"]["id"] != first["document"]["id"]
    assert second["document"]["user"]["info"]["phone"] == "5559990000"


def test_check_user_prefills_existing_owner(
    container, backend_client: FakeBackendClient
) -> None:
    backend_client.lookup_result = UserLookupResult(
        user_exists=True, has_check_in=False, user_name="Jane"
    )
    client = TestClient(create_app(container))

    response = client.post("/check-user", json={"phone": "(555) 123-4567"})

    data = response.json()
    assert data["route"] == "resume_existing"
    assert data["nextUrl"] == "/checkin?phone=5551234567"
    assert data["userExists"] is True
    document = client.get("/checkin").json()["document"]
    assert document["user"]["info"]["name"] == "Jane"
    assert document["user"]["info"]["phone"] == "5551234567"


def test_check_user_already_checked_in(
    container, backend_client: FakeBackendClient
) -> None:
    backend_client.lookup_result = UserLookupResult(user_exists=True, has_check_in=True)
    client = TestClient(create_app(container))

    data = client.post("/check-user", json={"phone": "5551234567"}).json()

    assert data["route"] == "already_checked_in"
    assert COOKIE_NAME not in client.cookies
    confirmation = client.get(data["nextUrl"]).json()
    assert confirmation["phone"] == "5551234567"


def test_legacy_submit(container, backend_client: FakeBackendClient) -> None:
    client = TestClient(create_app(container))
    _fill_wizard(client)

    data = client.post("/checkin/submit").json()

    assert data["ok"] is True
    assert data["step"] == 6
    assert data["result"] == {"checkin_id": 900}
    assert data["document"]["status"] == "completed"
    assert backend_client.endpoints() == ["submit"]


def test_legacy_submit_without_pets(container) -> None:
    client = TestClient(create_app(container))
    client.get("/checkin")

    response = client.post("/checkin/submit")

    assert response.status_code == 400
    assert response.json()["ok"] is False


def test_clear_checkin(container) -> None:
    client = TestClient(create_app(container))
    client.get("/checkin")

    response = client.delete("/checkin")

    assert response.json()["document"] is None
    assert COOKIE_NAME not in client.cookies
