"""Step transitions and gates of the check-in wizard."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from checkin_wizard.domain.backend import SubmissionResult
from checkin_wizard.domain.checkin import CheckInStatus, new_document, utc_now_iso
from checkin_wizard.domain.merge import deep_merge
from checkin_wizard.domain.steps import Popup, Step
from checkin_wizard.domain.views import NextButtonState
from checkin_wizard.services.data_manager import DataManager
from checkin_wizard.services.submission import SubmissionError, SubmissionOrchestrator
from checkin_wizard.services.validation import (
    INVENTORY_REQUIRED_MESSAGE,
    ValidationIssue,
    validate_step,
)

GROOMING_REQUIRED_MESSAGE = "Please review the grooming options before continuing."
TERMS_REQUIRED_MESSAGE = "Please accept the terms and conditions to continue."

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationOutcome:
    """Where the wizard is after a navigation request, and why."""

    step: Step
    advanced: bool
    popup: Popup | None = None
    message: str | None = None
    submission: SubmissionResult | None = None
    submitted_document: dict[str, Any] | None = None
    errors: list[ValidationIssue] = field(default_factory=list)


def next_button_state(step: Step, document: Mapping[str, Any]) -> NextButtonState:
    """Return the label and availability of the next control for a step."""
    if step is Step.THANKS:
        return NextButtonState(label="", enabled=False, visible=False)
    if step is Step.INVENTORY:
        ready = bool(document["inventory"]) or bool(document["inventoryComplete"])
        return NextButtonState(label="Complete Inventory", enabled=ready)
    return NextButtonState(label="Next", enabled=True)


def inventory_gate(document: Mapping[str, Any]) -> tuple[Popup | None, str | None]:
    """Return the first unmet condition for leaving the inventory step.

    Inventory comes first, then grooming, then terms.
    """
    if not document["inventory"] and not document["inventoryComplete"]:
        return None, INVENTORY_REQUIRED_MESSAGE
    if not document["groomingAcknowledged"]:
        return Popup.GROOMING, GROOMING_REQUIRED_MESSAGE
    if not document["termsAccepted"]:
        return Popup.TERMS, TERMS_REQUIRED_MESSAGE
    return None, None


@dataclass
class StepNavigator:
    """Moves the wizard between steps once the current step is satisfied."""

    data_manager: DataManager
    orchestrator: SubmissionOrchestrator

    async def advance(self, current: Step) -> NavigationOutcome:
        """Leave ``current`` for the next step, submitting after the inventory."""
        if current is Step.THANKS:
            return NavigationOutcome(step=current, advanced=False)
        document = self._document()
        errors = validate_step(current, document)
        if errors:
            return NavigationOutcome(
                step=current, advanced=False, message=errors[0].message, errors=errors
            )
        if current is Step.INVENTORY:
            return await self._leave_inventory(document)
        return NavigationOutcome(step=current.next(), advanced=True)

    def go_back(self, current: Step) -> NavigationOutcome:
        return NavigationOutcome(step=current.previous(), advanced=False)

    def confirm_grooming(
        self,
        services: Mapping[str, bool],
        details: str | None = None,
        appointment_day: str | None = None,
    ) -> NavigationOutcome:
        """Store grooming choices and check what still blocks the inventory step."""
        self.data_manager.update_grooming(
            services, details, appointment_day, acknowledged=True
        )
        return self.evaluate_gates()

    def accept_terms(self, accepted: bool) -> NavigationOutcome:
        self.data_manager.set_terms_accepted(accepted)
        return self.evaluate_gates()

    def evaluate_gates(self) -> NavigationOutcome:
        """Report the next unmet inventory condition without moving."""
        popup, message = inventory_gate(self._document())
        return NavigationOutcome(
            step=Step.INVENTORY, advanced=False, popup=popup, message=message
        )

    async def _leave_inventory(self, document: Mapping[str, Any]) -> NavigationOutcome:
        popup, message = inventory_gate(document)
        if message is not None:
            return NavigationOutcome(
                step=Step.INVENTORY, advanced=False, popup=popup, message=message
            )
        try:
            result = await self.orchestrator.submit(document)
        except SubmissionError as exc:
            _logger.warning("Check-in submission failed at step %s", exc.step)
            return NavigationOutcome(
                step=Step.INVENTORY, advanced=False, message=exc.message
            )
        return NavigationOutcome(
            step=Step.THANKS,
            advanced=True,
            submission=result,
            submitted_document=deep_merge(
                document,
                {
                    "status": CheckInStatus.COMPLETED.value,
                    "completedAt": utc_now_iso(),
                },
            ),
        )

    def _document(self) -> dict[str, Any]:
        return self.data_manager.get_document() or new_document()
