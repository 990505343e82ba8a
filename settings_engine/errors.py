"""Settings engine error classes.

All write-side failures surface as one of these exceptions; the read path
never raises for a missing key.
"""

from __future__ import annotations


class SettingsError(Exception):
    """Base exception for settings engine errors."""

    pass


class UnknownSettingError(SettingsError):
    """Raised when no definition is registered for a full key."""

    pass


class LockedSettingError(SettingsError):
    """Raised when a write targets a locked setting."""

    pass


class ValidationError(SettingsError):
    """Raised when a value fails casting, enum membership, or a validator veto."""

    pass


class InvalidDefinitionError(SettingsError):
    """Raised when a schema or definition is malformed."""

    pass


class DependencyCycleError(InvalidDefinitionError):
    """Raised when depends_on edges form a cycle across the registry."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__("Dependency cycle between settings: " + " -> ".join(cycle))


class StoreUnavailableError(SettingsError):
    """Raised when the value store backend cannot be reached."""

    pass
