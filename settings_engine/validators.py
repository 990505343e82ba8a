"""Write-time validators and post-commit change listeners."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .errors import ValidationError

if TYPE_CHECKING:
    from .resolver import StateView

logger = logging.getLogger(__name__)

# Raise ValidationError, or return an error message; None means valid.
Validator = Callable[[Any, "StateView"], "str | None"]
ChangeListener = Callable[[Any, Any], None]


class ValidatorSet:
    """Per-key validators, run in registration order on every write."""

    def __init__(self) -> None:
        self._validators: dict[str, list[Validator]] = {}
        self._lock = threading.Lock()

    def add(self, full_key: str, validator: Validator) -> None:
        with self._lock:
            self._validators.setdefault(str(full_key), []).append(validator)

    def for_key(self, full_key: str) -> list[Validator]:
        return list(self._validators.get(str(full_key), ()))

    def run(self, full_key: str, value: Any, state: StateView) -> None:
        """
        Run every validator registered for ``full_key``.

        Raises:
            ValidationError: From the first validator that rejects the value
        """
        for validator in self.for_key(full_key):
            error = validator(value, state)
            if error:
                raise ValidationError(str(error))


class ChangeListeners:
    """Callbacks notified with (old_value, new_value) after a write commits."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[ChangeListener]] = {}
        self._lock = threading.Lock()

    def add(self, full_key: str, listener: ChangeListener) -> None:
        with self._lock:
            self._listeners.setdefault(str(full_key), []).append(listener)

    def fire(self, full_key: str, old_value: Any, new_value: Any) -> None:
        for listener in list(self._listeners.get(str(full_key), ())):
            try:
                listener(old_value, new_value)
            except Exception:
                # Write already committed; keep notifying the remaining listeners
                logger.exception(f"Change listener for '{full_key}' failed")
