"""Wizard steps and popups."""

from enum import IntEnum, StrEnum


class Step(IntEnum):
    """Ordered wizard steps, numbered as they appear in the ``step`` query value."""

    OWNER_INFO = 1
    PET_INFO = 2
    FEEDING_MEDICATION = 3
    HEALTH_INFO = 4
    INVENTORY = 5
    THANKS = 6

    @classmethod
    def first(cls) -> "Step":
        return cls.OWNER_INFO

    @classmethod
    def from_query(cls, raw: str | int | None) -> "Step":
        """Resolve the step from a query value, falling back to the first step."""
        if raw is None:
            return cls.first()
        try:
            return cls(int(str(raw).strip()))
        except ValueError:
            return cls.first()

    @property
    def slug(self) -> str:
        return self.name.lower().replace("_", "-")

    def next(self) -> "Step":
        return Step(min(self.value + 1, Step.THANKS.value))

    def previous(self) -> "Step":
        return Step(max(self.value - 1, Step.OWNER_INFO.value))


class Popup(StrEnum):
    """Blocking popups shown before leaving the inventory step."""

    GROOMING = "grooming"
    TERMS = "terms"
