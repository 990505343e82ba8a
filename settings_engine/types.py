"""Value types shared across the settings engine.

Defines setting types, field states, the parsed full key, and the enum
source variants used by definitions.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

KEY_SEPARATOR = "."


class SettingType(Enum):
    """Supported setting value types."""

    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ENUM = "enum"

    @classmethod
    def coerce(cls, value: SettingType | str) -> SettingType | None:
        """Return the matching member for a member or its name/value, else None."""
        if isinstance(value, SettingType):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None


class FieldState(Enum):
    """Computed editability of a setting."""

    EDITABLE = "editable"
    LOCKED = "locked"
    DISABLED_BY_DEPENDENCY = "disabled_by_dependency"


@dataclass(frozen=True)
class FullKey:
    """
    A parsed ``category.key`` identifier.

    Only the first separator is significant: ``auth.credentials.email.enabled``
    has category ``auth`` and key ``credentials.email.enabled``. The key part
    is kept as an opaque string and never split again.
    """

    category: str
    key: str

    @classmethod
    def parse(cls, text: str | FullKey) -> FullKey | None:
        """
        Parse a dotted full key.

        Returns:
            FullKey, or None if the text has no separator or an empty part
        """
        if isinstance(text, FullKey):
            return text
        category, sep, key = str(text).partition(KEY_SEPARATOR)
        if not sep or not category or not key:
            return None
        return cls(category=category, key=key)

    def __str__(self) -> str:
        return f"{self.category}{KEY_SEPARATOR}{self.key}"


class EnumSource:
    """Base class for the allowed-values source of an enum setting."""

    def resolve(self) -> list[Any]:
        raise NotImplementedError

    @staticmethod
    def from_value(value: EnumSource | Sequence[Any] | Callable[[], Sequence[Any]] | None) -> EnumSource | None:
        """Wrap a list, tuple, or zero-argument callable in the matching variant."""
        if value is None or isinstance(value, EnumSource):
            return value
        if callable(value):
            return DynamicEnum(value)
        if isinstance(value, (list, tuple)):
            return StaticEnum(tuple(value))
        raise TypeError(f"Enum source must be a list, tuple, or callable, got {type(value).__name__}")


@dataclass(frozen=True)
class StaticEnum(EnumSource):
    """A fixed, ordered list of allowed values."""

    values: tuple[Any, ...]

    def resolve(self) -> list[Any]:
        return list(self.values)


@dataclass(frozen=True)
class DynamicEnum(EnumSource):
    """
    Allowed values produced by a provider function.

    The provider is called on every resolve so that data sources registered
    after the schema (themes, credential types, ...) are picked up.
    """

    provider: Callable[[], Sequence[Any]]

    def resolve(self) -> list[Any]:
        return list(self.provider())
