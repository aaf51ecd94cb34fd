"""Mutation API over the check-in document."""

import copy
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import ValidationError

from checkin_wizard.domain.checkin import (
    CheckInStatus,
    ScheduleEntry,
    ScheduleKind,
    new_document,
    new_pet,
    normalize_document,
    utc_now_iso,
)
from checkin_wizard.domain.merge import deep_merge, without_keys
from checkin_wizard.domain.storage import CookieOptions
from checkin_wizard.services.validation import sanitize_phone

DEFAULT_COOKIE_NAME = "pl_checkin_data"

# Bookkeeping keys that never count as a user change.
_UNTRACKED_KEYS = {
    "v",
    "id",
    "date",
    "lastUpdated",
    "autoSavedAt",
    "completedAt",
    "status",
    "editingMode",
}
_EMERGENCY_FIELDS = {"emergencyContactName": "name", "emergencyContactPhone": "phone"}
_PET_SECTIONS = {"info", "health", "feeding", "medication"}

_logger = logging.getLogger(__name__)

Document = dict[str, Any]


class DocumentStore(Protocol):
    """Key-value storage for serialized documents."""

    def write(
        self,
        key: str,
        value: object,
        ttl_days: float = 1,
        options: CookieOptions | None = None,
    ) -> bool:
        """Store a value, returning whether the write happened."""

    def read(self, key: str, options: CookieOptions | None = None) -> object | None:
        """Return a stored value, if present."""

    def delete(self, key: str) -> bool:
        """Remove a stored value."""

    def exists(self, key: str) -> bool:
        """Return whether a value is stored under the key."""

    def can_write(
        self, key: str, value: object, options: CookieOptions | None = None
    ) -> bool:
        """Return whether the value fits in the store."""


class ChangeSignal(Protocol):
    """Receives a notification after every successful write."""

    def trigger_check(self) -> None:
        """Re-read the store and notify listeners of a change."""


@dataclass
class DataManager:
    """Reads and mutates the single check-in document held by the store.

    Every mutation loads the document (creating it when absent), deep-merges
    a partial update, stamps ``lastUpdated``, validates the result, checks the
    size ceiling and writes it back. Failures are logged and reported as
    ``False``; nothing raises to the caller.
    """

    store: DocumentStore
    cookie_name: str = DEFAULT_COOKIE_NAME
    ttl_days: float = 7
    options: CookieOptions = field(default_factory=CookieOptions)
    max_pets: int = 10
    signal: ChangeSignal | None = None

    def get_document(self) -> Document | None:
        """Return the current document, or None when absent or unreadable."""
        raw = self.store.read(self.cookie_name, self.options)
        if raw is None:
            return None
        if not isinstance(raw, Mapping):
            _logger.warning("Ignoring check-in cookie that is not a JSON object")
            return None
        try:
            return normalize_document(raw)
        except ValidationError:
            _logger.warning("Ignoring check-in cookie that fails validation")
            return None

    def create_initial_document(self) -> Document | None:
        """Create an empty document unless one already exists."""
        existing = self.get_document()
        if existing is not None:
            return existing
        document = new_document()
        if not self._commit(document):
            return None
        _logger.info("Created check-in document %s", document["id"])
        return document

    def update_document(self, updates: Mapping[str, Any]) -> bool:
        """Deep-merge a partial update into the document."""
        return self._mutate(lambda _: updates)

    def clear_document(self) -> bool:
        """Remove the document from the store."""
        deleted = self.store.delete(self.cookie_name)
        if deleted:
            self._publish()
        return deleted

    def update_user_info(self, partial: Mapping[str, Any]) -> bool:
        """Merge owner fields, nesting flat emergency contact fields."""
        info = {
            key: value for key, value in partial.items() if key not in _EMERGENCY_FIELDS
        }
        contact = {
            nested: partial[flat]
            for flat, nested in _EMERGENCY_FIELDS.items()
            if flat in partial
        }
        user: dict[str, Any] = {"info": info}
        if contact:
            user["emergencyContact"] = contact
        return self.update_document({"user": user})

    def add_pet(self, info: Mapping[str, Any]) -> bool:
        """Append a pet built from the default template and ``info``."""

        def build(document: Document) -> Mapping[str, Any] | None:
            pets = document["pets"]
            if len(pets) >= self.max_pets:
                _logger.warning("Cannot add pet: limit of %s reached", self.max_pets)
                return None
            return {"pets": [*pets, new_pet(info)]}

        return self._mutate(build)

    def update_pet(self, index: int, partial: Mapping[str, Any]) -> bool:
        """Merge fields into the pet at ``index``.

        ``partial`` may carry ``info`` fields directly, nested sections
        (``info``, ``health``, ``feeding``, ``medication``) or both. Keys
        outside those sections are treated as ``info`` fields.
        """
        updates: Document = {}
        flat: Document = {}
        for key, value in partial.items():
            if key in _PET_SECTIONS:
                updates[key] = value
            else:
                flat[key] = value
        if flat:
            updates["info"] = {**dict(updates.get("info") or {}), **flat}
        return self._update_pet(index, lambda pet: deep_merge(pet, updates))

    def update_pet_health(self, index: int, partial: Mapping[str, Any]) -> bool:
        """Merge health fields into the pet at ``index``."""
        return self._update_pet(
            index, lambda pet: deep_merge(pet, {"health": dict(partial)})
        )

    def remove_pet(self, index: int) -> bool:
        """Remove the pet at ``index``."""

        def build(document: Document) -> Mapping[str, Any] | None:
            pets = document["pets"]
            if not _in_range(index, pets):
                _logger.warning("Cannot remove pet %s: index out of range", index)
                return None
            return {"pets": [pet for i, pet in enumerate(pets) if i != index]}

        return self._mutate(build)

    def add_feeding_or_medication(
        self, pet_index: int, kind: str, entry: Mapping[str, Any]
    ) -> bool:
        """Append a feeding or medication entry to a pet."""
        resolved = _schedule_kind(kind)
        item = _schedule_item(entry, kind, pet_index)
        if resolved is None or item is None:
            return False
        return self._update_pet(
            pet_index,
            lambda pet: {**pet, resolved.value: [*pet[resolved.value], item]},
        )

    def add_feeding_or_medication_to_all(
        self, kind: str, entry: Mapping[str, Any]
    ) -> bool:
        """Append the same entry to every pet in a single write."""
        resolved = _schedule_kind(kind)
        item = _schedule_item(entry, kind, "all")
        if resolved is None or item is None:
            return False

        def build(document: Document) -> Mapping[str, Any] | None:
            if not document["pets"]:
                _logger.warning("Cannot add %s entry: no pets", kind)
                return None
            stamp = utc_now_iso()
            return {
                "pets": [
                    {
                        **pet,
                        resolved.value: [*pet[resolved.value], dict(item)],
                        "lastUpdated": stamp,
                    }
                    for pet in document["pets"]
                ]
            }

        return self._mutate(build)

    def update_feeding_medication_item(
        self,
        pet_index: int,
        kind: str,
        item_index: int,
        partial: Mapping[str, Any],
    ) -> bool:
        """Merge fields into one feeding or medication entry."""
        resolved = _schedule_kind(kind)
        if resolved is None:
            return False

        def apply(pet: Document) -> Document | None:
            items = pet[resolved.value]
            if not _in_range(item_index, items):
                _logger.warning(
                    "Cannot update %s item %s of pet %s: index out of range",
                    kind,
                    item_index,
                    pet_index,
                )
                return None
            updated = list(items)
            updated[item_index] = deep_merge(items[item_index], partial)
            return {**pet, resolved.value: updated}

        return self._update_pet(pet_index, apply)

    def remove_feeding_medication_item(
        self, pet_index: int, kind: str, item_index: int
    ) -> bool:
        """Remove one feeding or medication entry."""
        resolved = _schedule_kind(kind)
        if resolved is None:
            return False

        def apply(pet: Document) -> Document | None:
            items = pet[resolved.value]
            if not _in_range(item_index, items):
                _logger.warning(
                    "Cannot remove %s item %s of pet %s: index out of range",
                    kind,
                    item_index,
                    pet_index,
                )
                return None
            return {
                **pet,
                resolved.value: [
                    item for i, item in enumerate(items) if i != item_index
                ],
            }

        return self._update_pet(pet_index, apply)

    def add_inventory_item(self, text: str) -> bool:
        cleaned = text.strip()
        if not cleaned:
            _logger.warning("Ignoring empty inventory item")
            return False
        return self._mutate(
            lambda document: {"inventory": [*document["inventory"], cleaned]}
        )

    def remove_inventory_item(self, index: int) -> bool:
        def build(document: Document) -> Mapping[str, Any] | None:
            items = document["inventory"]
            if not _in_range(index, items):
                _logger.warning("Cannot remove inventory item %s: out of range", index)
                return None
            return {"inventory": [item for i, item in enumerate(items) if i != index]}

        return self._mutate(build)

    def update_inventory_item(self, index: int, text: str) -> bool:
        def build(document: Document) -> Mapping[str, Any] | None:
            items = document["inventory"]
            if not _in_range(index, items):
                _logger.warning("Cannot update inventory item %s: out of range", index)
                return None
            updated = list(items)
            updated[index] = text
            return {"inventory": updated}

        return self._mutate(build)

    def set_inventory_complete(self, complete: bool) -> bool:
        return self.update_document({"inventoryComplete": complete})

    def set_terms_accepted(self, accepted: bool) -> bool:
        return self.update_document({"termsAccepted": accepted})

    def set_grooming_acknowledged(self, acknowledged: bool) -> bool:
        return self.update_document({"groomingAcknowledged": acknowledged})

    def update_grooming(
        self,
        services: Mapping[str, bool],
        details: str | None = None,
        appointment_day: str | None = None,
        acknowledged: bool | None = None,
    ) -> bool:
        """Store grooming choices in one write."""
        grooming: dict[str, Any] = {
            name: bool(value) for name, value in services.items()
        }
        if appointment_day is not None:
            grooming["appointmentDay"] = appointment_day
        updates: dict[str, Any] = {"grooming": grooming}
        if details is not None:
            updates["groomingDetails"] = details
        if acknowledged is not None:
            updates["groomingAcknowledged"] = acknowledged
        return self.update_document(updates)

    def mark_autosaved(self) -> bool:
        return self.update_document({"autoSavedAt": utc_now_iso()})

    def finalize_checkin(self) -> Document | None:
        """Mark the document completed and return it.

        Returns None when the document has no pets or cannot be written.
        """
        document = self.get_document()
        if document is None or not document["pets"]:
            _logger.warning("Cannot finalize a check-in without pets")
            return None
        finalized = deep_merge(
            document,
            {"status": CheckInStatus.COMPLETED.value, "completedAt": utc_now_iso()},
        )
        if not self._commit(finalized):
            return None
        return self.get_document()

    def merge_session_data(self, session_data: Mapping[str, Any]) -> bool:
        """Merge pre-fill data without letting it touch ``editingMode``."""

        def build(document: Document) -> Mapping[str, Any]:
            return {k: v for k, v in session_data.items() if k != "editingMode"}

        return self._mutate(build)

    def enable_editing_mode(
        self, check_in_id: int | None, snapshot: Mapping[str, Any] | None = None
    ) -> bool:
        """Mark the document as an edit and store a snapshot for diffing.

        Without an explicit snapshot the current document is used.
        """
        document = self._load_or_create()
        if document is None:
            return False
        source = snapshot if snapshot is not None else document
        try:
            original = without_keys(normalize_document(source), {"editingMode"})
        except ValidationError:
            _logger.warning("Rejected invalid editing snapshot for %s", check_in_id)
            return False
        document["editingMode"] = {
            "enabled": True,
            "checkInId": check_in_id,
            "originalData": original,
        }
        return self._commit(document)

    def disable_editing_mode(self) -> bool:
        document = self.get_document()
        if document is None:
            return False
        document.pop("editingMode", None)
        return self._commit(document)

    def is_editing_mode(self) -> bool:
        document = self.get_document()
        return bool(document and document.get("editingMode", {}).get("enabled"))

    def get_original_data(self) -> Document | None:
        """Return a copy of the editing snapshot, if any."""
        document = self.get_document()
        if not document or not document.get("editingMode", {}).get("enabled"):
            return None
        original = document["editingMode"].get("originalData")
        return copy.deepcopy(original) if original else None

    def has_data_changed(self) -> bool:
        """Compare the document with the editing snapshot, ignoring bookkeeping."""
        document = self.get_document()
        original = self.get_original_data()
        if document is None or original is None:
            return False
        return without_keys(document, _UNTRACKED_KEYS) != without_keys(
            normalize_document(original), _UNTRACKED_KEYS
        )

    def get_change_summary(self) -> dict[str, bool] | None:
        """Return which sections differ from the editing snapshot."""
        document = self.get_document()
        original = self.get_original_data()
        if document is None or original is None:
            return None
        original = normalize_document(original)
        return {
            "userInfo": document["user"] != original["user"],
            "pets": document["pets"] != original["pets"],
            "grooming": document["grooming"] != original["grooming"],
            "inventory": document["inventory"] != original["inventory"],
            "groomingDetails": document["groomingDetails"]
            != original["groomingDetails"],
        }

    def reset_to_original(self) -> bool:
        """Restore the snapshot while staying in editing mode."""
        document = self.get_document()
        original = self.get_original_data()
        if document is None or original is None:
            _logger.warning("Not in editing mode, nothing to reset")
            return False
        restored = {
            **without_keys(original, _UNTRACKED_KEYS),
            "id": document["id"],
            "date": document["date"],
            "lastUpdated": utc_now_iso(),
            "editingMode": document["editingMode"],
        }
        return self._commit(restored)

    def ensure_document_for_phone(self, phone: str | None) -> Document | None:
        """Drop a stale document that belongs to another phone number.

        The document is kept in editing mode. When the stored phone is empty
        the given phone is filled in.
        """
        wanted = sanitize_phone(phone or "")
        document = self.get_document()
        if document is not None and wanted:
            stored = sanitize_phone(document["user"]["info"]["phone"])
            editing = document.get("editingMode", {}).get("enabled", False)
            if stored and stored != wanted and not editing:
                _logger.info("Clearing check-in document left by another phone")
                self.clear_document()
        document = self.create_initial_document()
        if document is not None and wanted and not document["user"]["info"]["phone"]:
            self.update_user_info({"phone": wanted})
            document = self.get_document()
        return document

    def _update_pet(
        self, index: int, apply: Callable[[Document], Document | None]
    ) -> bool:
        def build(document: Document) -> Mapping[str, Any] | None:
            pets = document["pets"]
            if not _in_range(index, pets):
                _logger.warning("Cannot update pet %s: index out of range", index)
                return None
            updated_pet = apply(copy.deepcopy(pets[index]))
            if updated_pet is None:
                return None
            updated_pet["lastUpdated"] = utc_now_iso()
            updated = list(pets)
            updated[index] = updated_pet
            return {"pets": updated}

        return self._mutate(build)

    def _mutate(
        self, build_updates: Callable[[Document], Mapping[str, Any] | None]
    ) -> bool:
        document = self._load_or_create()
        if document is None:
            return False
        updates = build_updates(document)
        if updates is None:
            return False
        merged = deep_merge(document, updates)
        merged["lastUpdated"] = utc_now_iso()
        if "editingMode" in document:
            merged["editingMode"] = document["editingMode"]
        else:
            merged.pop("editingMode", None)
        return self._commit(merged)

    def _load_or_create(self) -> Document | None:
        document = self.get_document()
        if document is not None:
            return document
        if self.create_initial_document() is None:
            _logger.error("Unable to create the check-in document")
            return None
        document = self.get_document()
        if document is None:
            _logger.error("Check-in document missing after creation")
        return document

    def _commit(self, document: Mapping[str, Any]) -> bool:
        try:
            normalized = normalize_document(document)
        except ValidationError:
            _logger.warning("Rejected check-in update that fails validation")
            return False
        if not self.store.can_write(self.cookie_name, normalized, self.options):
            _logger.error("Check-in document too large for the cookie, not saved")
            return False
        if not self.store.write(
            self.cookie_name, normalized, self.ttl_days, self.options
        ):
            return False
        self._publish()
        return True

    def _publish(self) -> None:
        if self.signal is not None:
            self.signal.trigger_check()


def _in_range(index: int, items: list[Any]) -> bool:
    return 0 <= index < len(items)


def _schedule_kind(kind: str) -> ScheduleKind | None:
    try:
        return ScheduleKind(kind)
    except ValueError:
        _logger.warning("Unknown schedule kind %s", kind)
        return None


def _schedule_item(
    entry: Mapping[str, Any], kind: str, pet_index: int | str
) -> dict[str, Any] | None:
    try:
        return ScheduleEntry.model_validate(entry).model_dump(mode="json")
    except ValidationError:
        _logger.warning("Rejected invalid %s entry for pet %s", kind, pet_index)
        return None
