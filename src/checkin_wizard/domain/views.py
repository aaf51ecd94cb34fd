"""View regions the wizard projects the check-in document onto."""

from dataclasses import dataclass, field


@dataclass
class FormRegion:
    """Editable form fields of one step.

    Fields named in ``active`` are being edited by the user and are never
    written by a projection.
    """

    fields: dict[str, str] = field(default_factory=dict)
    active: set[str] = field(default_factory=set)

    def fill(self, name: str, value: str | None) -> bool:
        """Set a field only when it is empty and not being edited."""
        if not value or name in self.active or self.fields.get(name):
            return False
        self.fields[name] = value
        return True


@dataclass(frozen=True)
class PetPill:
    """Selectable pet tab."""

    index: int
    label: str
    selected: bool


@dataclass(frozen=True)
class ScheduleLine:
    """One feeding or medication entry shown under a moment of the day."""

    pet_index: int
    pet_name: str
    kind: str
    details: str
    item_index: int


@dataclass
class InventoryList:
    """Inventory items plus the "nothing to leave" checkbox state."""

    items: list[str] = field(default_factory=list)
    complete_visible: bool = True
    complete_checked: bool = False


@dataclass(frozen=True)
class GroomingSummary:
    """Grooming choices as shown on the receipt."""

    services: list[str]
    details: str
    appointment_day: str | None
    acknowledged: bool


@dataclass(frozen=True)
class ReceiptSection:
    """Titled block of the check-in receipt."""

    title: str
    lines: list[str]


@dataclass(frozen=True)
class SummaryReceipt:
    """Receipt-style summary of the whole check-in."""

    receipt_id: str
    checkin_date: str
    sections: list[ReceiptSection]
    terms_accepted: bool
    submit_enabled: bool


@dataclass(frozen=True)
class NextButtonState:
    """Label and availability of the wizard's next control."""

    label: str
    enabled: bool
    visible: bool = True


@dataclass
class PetSelection:
    """The pet currently selected in the UI. Never persisted."""

    index: int | None = None

    def resolve(self, pet_count: int) -> int | None:
        if self.index is None or not 0 <= self.index < pet_count:
            return None
        return self.index


@dataclass
class WizardView:
    """All regions a wizard page renders."""

    selection: PetSelection = field(default_factory=PetSelection)
    owner_form: FormRegion = field(default_factory=FormRegion)
    pet_form: FormRegion = field(default_factory=FormRegion)
    health_form: FormRegion = field(default_factory=FormRegion)
    pet_pills: list[PetPill] = field(default_factory=list)
    feeding_schedule: dict[str, list[ScheduleLine]] = field(default_factory=dict)
    same_feeding_available: bool = False
    inventory: InventoryList = field(default_factory=InventoryList)
    grooming_summary: GroomingSummary | None = None
    receipt: SummaryReceipt | None = None
    next_button: NextButtonState | None = None
