"""Change notification for the stored check-in document."""

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

_logger = logging.getLogger(__name__)

Listener = Callable[[object | None], None]


class ReadableStore(Protocol):
    """Store the broker watches."""

    def read(self, key: str) -> object | None:
        """Return a stored value, if present."""


@dataclass
class ReactivityBroker:
    """Notifies listeners when the stored value under ``key`` changes.

    Writers call ``trigger_check`` after every successful write. The broker
    re-reads the store, compares the value with the last one it saw and calls
    each listener in registration order with the new value. A failing
    listener is logged and the remaining listeners still run.
    """

    store: ReadableStore
    key: str
    listeners: list[Listener] = field(default_factory=list)
    last_known_value: object | None = None
    running: bool = False

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        self.last_known_value = copy.deepcopy(self.store.read(self.key))

    def stop(self) -> None:
        self.running = False
        self.listeners.clear()

    def add_listener(self, listener: Listener) -> None:
        if listener not in self.listeners:
            self.listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def trigger_check(self) -> None:
        """Check for a change right away."""
        if not self.running:
            return
        self.check_for_changes()

    def check_for_changes(self) -> bool:
        """Notify listeners if the stored value differs from the last one seen."""
        current = self.store.read(self.key)
        if current == self.last_known_value:
            return False
        self.last_known_value = copy.deepcopy(current)
        for listener in list(self.listeners):
            try:
                listener(copy.deepcopy(current))
            except Exception:
                _logger.exception("Check-in listener %r failed", listener)
        return True
