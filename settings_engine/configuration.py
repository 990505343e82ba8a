"""Administrative configuration: locks and initializer overrides."""

from __future__ import annotations

import threading
from typing import Any


class LockSet:
    """Set of full keys frozen against writes."""

    def __init__(self) -> None:
        self._keys: set[str] = set()
        self._lock = threading.Lock()

    def add(self, full_key: str) -> None:
        with self._lock:
            self._keys.add(str(full_key))

    def discard(self, full_key: str) -> None:
        with self._lock:
            self._keys.discard(str(full_key))

    def __contains__(self, full_key: object) -> bool:
        return str(full_key) in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def keys(self) -> list[str]:
        return sorted(self._keys)


class Configuration:
    """
    Code-level settings configuration, applied through ``EngineContext.configure``.

    Usage:
        def configure_settings(config):
            config.lock("auth.registration_mode")
            config.override("auth.password_min_length", 12)

        context.configure(configure_settings)
    """

    def __init__(self) -> None:
        self.locks = LockSet()
        self._overrides: dict[str, Any] = {}

    def lock(self, full_key: str) -> None:
        """Lock a setting: still readable, but every write raises LockedSettingError."""
        self.locks.add(full_key)

    def unlock(self, full_key: str) -> None:
        self.locks.discard(full_key)

    def locked(self, full_key: str) -> bool:
        return full_key in self.locks

    def locked_keys(self) -> list[str]:
        return self.locks.keys()

    def override(self, full_key: str, value: Any) -> None:
        """Set an initializer value, used when the store holds no override."""
        self._overrides[str(full_key)] = value

    def initializer_value(self, full_key: str) -> Any | None:
        return self._overrides.get(str(full_key))
