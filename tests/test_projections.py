"""Tests for view projections."""

from checkin_wizard.adapters.cookie_store import CookieStore
from checkin_wizard.domain.steps import Step
from checkin_wizard.domain.views import FormRegion, PetSelection, WizardView
from checkin_wizard.services.data_manager import DataManager
from checkin_wizard.services.projections import ViewProjector, build_receipt
from checkin_wizard.services.reactivity import ReactivityBroker
from tests.conftest import COOKIE_NAME, fill_checkin


def _filled_document(data_manager: DataManager) -> dict:
    fill_checkin(data_manager)
    data_manager.add_pet({"petName": "Tom", "petType": "cat"})
    data_manager.add_feeding_or_medication(
        1, "medication", {"day_time": "morning", "feeding_med_details": "pill"}
    )
    return data_manager.get_document()


def test_form_fill_never_overwrites_input() -> None:
    region = FormRegion(fields={"name": "Typed"}, active={"email"})

    assert region.fill("name", "Stored") is False
    assert region.fill("email", "stored@example.com") is False
    assert region.fill("phone", "") is False
    assert region.fill("phone", "5551234567") is True
    assert region.fields == {"name": "Typed", "phone": "5551234567"}


def test_owner_step_only_fills_owner_form(data_manager: DataManager) -> None:
    document = _filled_document(data_manager)
    projector = ViewProjector(step=Step.OWNER_INFO)

    view = projector.render(document)

    assert view.owner_form.fields["name"] == "Jane"
    assert view.owner_form.fields["phone"] == "5551234567"
    assert view.pet_pills == []
    assert view.receipt is None


def test_pet_step_renders_pills_and_selected_pet(data_manager: DataManager) -> None:
    document = _filled_document(data_manager)
    projector = ViewProjector(
        step=Step.PET_INFO, view=WizardView(selection=PetSelection(1))
    )

    view = projector.render(document)

    assert [(pill.label, pill.selected) for pill in view.pet_pills] == [
        ("Rex", False),
        ("Tom", True),
    ]
    assert view.pet_form.fields["petName"] == "Tom"
    assert view.pet_form.fields["petType"] == "cat"


def test_selection_out_of_range_leaves_pet_form_empty(
    data_manager: DataManager,
) -> None:
    document = _filled_document(data_manager)
    projector = ViewProjector(
        step=Step.PET_INFO, view=WizardView(selection=PetSelection(9))
    )

    view = projector.render(document)

    assert view.pet_form.fields == {}
    assert not any(pill.selected for pill in view.pet_pills)


def test_feeding_schedule_groups_by_moment(data_manager: DataManager) -> None:
    document = _filled_document(data_manager)
    projector = ViewProjector(step=Step.FEEDING_MEDICATION)

    view = projector.render(document)

    morning = view.feeding_schedule["morning"]
    assert [(line.pet_name, line.kind, line.details) for line in morning] == [
        ("Rex", "feeding", "1 cup kibble"),
        ("Tom", "medication", "pill"),
    ]
    assert "night" not in view.feeding_schedule
    assert view.same_feeding_available is True


def test_health_form_for_selected_pet(data_manager: DataManager) -> None:
    fill_checkin(data_manager)
    data_manager.update_pet_health(
        0, {"unusualHealthBehavior": True, "warnings": "bites"}
    )
    projector = ViewProjector(
        step=Step.HEALTH_INFO, view=WizardView(selection=PetSelection(0))
    )

    view = projector.render(data_manager.get_document())

    assert view.health_form.fields == {
        "unusualHealthBehavior": "yes",
        "warnings": "bites",
    }


def test_inventory_step_renders_checkbox_and_next_button(
    data_manager: DataManager,
) -> None:
    data_manager.create_initial_document()
    projector = ViewProjector(step=Step.INVENTORY)

    empty = projector.render(data_manager.get_document())
    assert empty.inventory.complete_visible is True
    assert empty.next_button.label == "Complete Inventory"
    assert empty.next_button.enabled is False

    data_manager.add_inventory_item("leash")
    filled = projector.render(data_manager.get_document())
    assert filled.inventory.items == ["leash"]
    assert filled.inventory.complete_visible is False
    assert filled.next_button.enabled is True


def test_grooming_summary_lists_chosen_services(data_manager: DataManager) -> None:
    data_manager.update_grooming(
        {"bath": True, "nails": True}, details="gentle", appointment_day="Friday"
    )
    projector = ViewProjector(step=Step.INVENTORY)

    summary = projector.render(data_manager.get_document()).grooming_summary

    assert summary.services == ["bath", "nails"]
    assert summary.appointment_day == "Friday"
    assert summary.details == "gentle"


def test_receipt_sections(data_manager: DataManager) -> None:
    document = _filled_document(data_manager)
    data_manager.update_user_info({"emergencyContactName": "Sam"})
    data_manager.add_inventory_item("leash")
    document = data_manager.get_document()

    receipt = build_receipt(document)

    titles = [section.title for section in receipt.sections]
    assert titles == [
        "Owner Information",
        "Emergency Contact",
        "Rex (dog)",
        "Tom (cat)",
        "Items to Store (1 item)",
    ]
    assert "Feeding Morning: 1 cup kibble" in receipt.sections[2].lines
    assert receipt.receipt_id == document["id"]
    assert receipt.submit_enabled is True


def test_receipt_without_inventory(data_manager: DataManager) -> None:
    data_manager.create_initial_document()

    receipt = build_receipt(data_manager.get_document())

    assert receipt.sections[-1].lines == ["No items to store"]
    assert receipt.sections[0].lines[0] == "Name: Not provided"
    assert receipt.submit_enabled is False


def test_thanks_step_hides_next_button(data_manager: DataManager) -> None:
    fill_checkin(data_manager)
    projector = ViewProjector(step=Step.THANKS)

    view = projector.render(data_manager.get_document())

    assert view.receipt is not None
    assert view.next_button.visible is False
    assert view.inventory.items == []


def test_projector_follows_broker_updates(store: CookieStore) -> None:
    broker = ReactivityBroker(store=store, key=COOKIE_NAME)
    projector = ViewProjector(step=Step.OWNER_INFO)
    projector.attach(broker)
    broker.start()
    manager = DataManager(store=store, cookie_name=COOKIE_NAME, signal=broker)
    projector.view.owner_form.active.add("email")

    manager.update_user_info({"name": "Jane", "email": "j@example.com"})

    assert projector.view.owner_form.fields == {"name": "Jane"}


def test_render_of_missing_document_uses_empty_one() -> None:
    view = ViewProjector(step=Step.INVENTORY).render(None)

    assert view.inventory.items == []
    assert view.receipt.sections[0].title == "Owner Information"
