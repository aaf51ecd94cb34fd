"""Projections of the check-in document onto wizard view regions."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from pydantic import ValidationError

from checkin_wizard.domain.checkin import DayTime, new_document, normalize_document
from checkin_wizard.domain.steps import Step
from checkin_wizard.domain.views import (
    GroomingSummary,
    InventoryList,
    PetPill,
    ReceiptSection,
    ScheduleLine,
    SummaryReceipt,
    WizardView,
)
from checkin_wizard.services.navigation import next_button_state

_logger = logging.getLogger(__name__)

Document = dict[str, Any]
Projection = Callable[[WizardView, Document], None]

_OWNER_FIELDS = ("phone", "name", "email", "address", "city", "zip")
_PET_FIELDS = (
    "petName",
    "petColor",
    "petType",
    "petBreed",
    "petAge",
    "petWeight",
    "petGender",
    "petSpayed",
)
_PET_DETAIL_LABELS = (
    ("petColor", "Color"),
    ("petBreed", "Breed"),
    ("petAge", "Birth date"),
    ("petWeight", "Weight"),
    ("petGender", "Gender"),
    ("petSpayed", "Spayed/Neutered"),
)
_NOT_PROVIDED = "Not provided"


class ListenerRegistry(Protocol):
    """Anything projections can subscribe to."""

    def add_listener(self, listener: Callable[[object | None], None]) -> None:
        """Register a change listener."""


def project_owner_form(view: WizardView, document: Document) -> None:
    """Fill empty owner fields, including the flat emergency contact fields."""
    info = document["user"]["info"]
    for name in _OWNER_FIELDS:
        view.owner_form.fill(name, info.get(name))
    contact = document["user"]["emergencyContact"]
    view.owner_form.fill("emergencyContactName", contact.get("name"))
    view.owner_form.fill("emergencyContactPhone", contact.get("phone"))


def project_pet_pills(view: WizardView, document: Document) -> None:
    pets = document["pets"]
    selected = view.selection.resolve(len(pets))
    view.pet_pills = [
        PetPill(
            index=index,
            label=pet["info"].get("petName") or f"Pet {index + 1}",
            selected=index == selected,
        )
        for index, pet in enumerate(pets)
    ]


def project_pet_form(view: WizardView, document: Document) -> None:
    selected = view.selection.resolve(len(document["pets"]))
    if selected is None:
        return
    info = document["pets"][selected]["info"]
    for name in _PET_FIELDS:
        view.pet_form.fill(name, info.get(name))


def project_health_form(view: WizardView, document: Document) -> None:
    selected = view.selection.resolve(len(document["pets"]))
    if selected is None:
        return
    health = document["pets"][selected]["health"]
    view.health_form.fill(
        "unusualHealthBehavior", "yes" if health.get("unusualHealthBehavior") else ""
    )
    view.health_form.fill("healthBehaviors", health.get("healthBehaviors"))
    view.health_form.fill("warnings", health.get("warnings"))


def project_feeding_schedule(view: WizardView, document: Document) -> None:
    """Group every pet's feeding and medication entries by moment of the day."""
    schedule: dict[str, list[ScheduleLine]] = {moment.value: [] for moment in DayTime}
    for pet_index, pet in enumerate(document["pets"]):
        pet_name = pet["info"].get("petName") or "Pet"
        for kind in ("feeding", "medication"):
            for item_index, entry in enumerate(pet[kind]):
                schedule[entry["day_time"]].append(
                    ScheduleLine(
                        pet_index=pet_index,
                        pet_name=pet_name,
                        kind=kind,
                        details=entry["feeding_med_details"],
                        item_index=item_index,
                    )
                )
    view.feeding_schedule = {
        moment: lines for moment, lines in schedule.items() if lines
    }
    view.same_feeding_available = len(document["pets"]) > 1


def project_inventory(view: WizardView, document: Document) -> None:
    """Show the "nothing to leave" checkbox only while the list is empty."""
    items = list(document["inventory"])
    view.inventory = InventoryList(
        items=items,
        complete_visible=not items,
        complete_checked=not items and document["inventoryComplete"],
    )


def project_grooming_summary(view: WizardView, document: Document) -> None:
    grooming = document["grooming"]
    view.grooming_summary = GroomingSummary(
        services=[
            name
            for name, chosen in grooming.items()
            if name != "appointmentDay" and chosen
        ],
        details=document["groomingDetails"],
        appointment_day=grooming.get("appointmentDay"),
        acknowledged=document["groomingAcknowledged"],
    )


def project_receipt(view: WizardView, document: Document) -> None:
    view.receipt = build_receipt(document)


def build_receipt(document: Document) -> SummaryReceipt:
    """Build the receipt-style summary shown before and after submission."""
    sections = [_owner_section(document["user"]["info"])]
    contact = document["user"]["emergencyContact"]
    if contact.get("name") or contact.get("phone"):
        sections.append(
            ReceiptSection(
                title="Emergency Contact",
                lines=[
                    f"Name: {contact.get('name') or _NOT_PROVIDED}",
                    f"Phone: {contact.get('phone') or _NOT_PROVIDED}",
                ],
            )
        )
    sections.extend(_pet_section(pet) for pet in document["pets"])
    if document["groomingDetails"]:
        sections.append(
            ReceiptSection(
                title="Grooming Instructions", lines=[document["groomingDetails"]]
            )
        )
    sections.append(_inventory_section(document["inventory"]))
    return SummaryReceipt(
        receipt_id=document["id"],
        checkin_date=_display_date(document["date"]),
        sections=sections,
        terms_accepted=document["termsAccepted"],
        submit_enabled=document["termsAccepted"],
    )


STEP_PROJECTIONS: dict[Step, tuple[Projection, ...]] = {
    Step.OWNER_INFO: (project_owner_form,),
    Step.PET_INFO: (project_pet_pills, project_pet_form),
    Step.FEEDING_MEDICATION: (project_pet_pills, project_feeding_schedule),
    Step.HEALTH_INFO: (project_pet_pills, project_health_form),
    Step.INVENTORY: (project_inventory, project_grooming_summary, project_receipt),
    Step.THANKS: (project_receipt,),
}


@dataclass
class ViewProjector:
    """Keeps a ``WizardView`` in sync with the document for one step.

    Registered as a broker listener, it runs only the projections of its
    step, so regions of other steps are left untouched.
    """

    step: Step
    view: WizardView = field(default_factory=WizardView)

    def attach(self, broker: ListenerRegistry) -> None:
        broker.add_listener(self)

    def __call__(self, document: object | None) -> None:
        self.render(document)

    def render(self, document: object | None) -> WizardView:
        resolved = _as_document(document)
        for projection in STEP_PROJECTIONS[self.step]:
            projection(self.view, resolved)
        self.view.next_button = next_button_state(self.step, resolved)
        return self.view


def _as_document(raw: object | None) -> Document:
    if isinstance(raw, Mapping):
        try:
            return normalize_document(raw)
        except ValidationError:
            _logger.warning("Rendering an empty check-in for an invalid document")
    return new_document()


def _owner_section(info: Mapping[str, str]) -> ReceiptSection:
    lines = [
        f"Name: {info.get('name') or _NOT_PROVIDED}",
        f"Phone: {info.get('phone') or _NOT_PROVIDED}",
        f"Email: {info.get('email') or _NOT_PROVIDED}",
    ]
    if info.get("address"):
        lines.append(f"Address: {info['address']}")
    if info.get("city") and info.get("zip"):
        lines.append(f"Location: {info['city']}, {info['zip']}")
    return ReceiptSection(title="Owner Information", lines=lines)


def _pet_section(pet: Mapping[str, Any]) -> ReceiptSection:
    info = pet["info"]
    name = info.get("petName") or "Unnamed"
    title = f"{name} ({info.get('petType') or 'Unknown type'})"
    lines = []
    for key, label in _PET_DETAIL_LABELS:
        value = info.get(key)
        if not value:
            continue
        suffix = " lbs" if key == "petWeight" else ""
        lines.append(f"{label}: {value}{suffix}")
    for kind, label in (("feeding", "Feeding"), ("medication", "Medication")):
        lines.extend(
            f"{label} {moment.capitalize()}: {', '.join(details)}"
            for moment, details in _group_by_moment(pet[kind]).items()
        )
    health = pet["health"]
    if health.get("unusualHealthBehavior"):
        lines.append("Health: Unusual behavior reported")
    if health.get("healthBehaviors"):
        lines.append(f"Health: Behavior: {health['healthBehaviors']}")
    if health.get("warnings"):
        lines.append(f"Health: Warnings: {health['warnings']}")
    return ReceiptSection(title=title, lines=lines)


def _group_by_moment(entries: list[Mapping[str, str]]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for entry in entries:
        grouped.setdefault(entry["day_time"], []).append(entry["feeding_med_details"])
    return grouped


def _inventory_section(inventory: list[str]) -> ReceiptSection:
    if not inventory:
        return ReceiptSection(title="Items to Store", lines=["No items to store"])
    plural = "s" if len(inventory) > 1 else ""
    return ReceiptSection(
        title=f"Items to Store ({len(inventory)} item{plural})", lines=list(inventory)
    )


def _display_date(value: str) -> str:
    try:
        return datetime.fromisoformat(value).date().isoformat()
    except ValueError:
        return value
