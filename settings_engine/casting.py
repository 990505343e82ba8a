"""Type casting and truthiness primitives.

Raw values arrive as text (form submissions, database rows, environment
variables). Every conversion goes through the explicit table here; nothing
relies on implicit coercion.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .errors import ValidationError
from .types import SettingType

if TYPE_CHECKING:
    from .schema import Definition

FALSY_STRINGS = frozenset({"", "false", "0"})


def truthy(value: Any) -> bool:
    """
    Shared truthiness predicate used wherever enablement is checked.

    False for None, False, 0, blank strings, and "false"/"0" (case-insensitive).
    True for everything else.
    """
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and value == 0:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in FALSY_STRINGS
    return True


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value} is not a whole number")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f"cannot convert {type(value).__name__} to integer")


def _match_enum(value: Any, choices: list[Any]) -> Any | None:
    """Return the choice equal to value (compared as text), or None."""
    text = "" if value is None else str(value)
    for choice in choices:
        if choice == value or str(choice) == text:
            return choice
    return None


def cast_for_write(value: Any, definition: Definition) -> Any:
    """
    Cast a proposed raw value for persistence.

    Raises:
        ValidationError: If the value cannot be cast, is outside the integer
            bounds, or is not a member of the resolved enum list
    """
    setting_type = definition.type

    if setting_type == SettingType.BOOLEAN:
        return truthy(value)

    if setting_type == SettingType.INTEGER:
        try:
            typed = _parse_int(value)
        except (ValueError, TypeError) as e:
            raise ValidationError(f"'{definition.key}' must be an integer, got {value!r}") from e
        if definition.min_value is not None and typed < definition.min_value:
            raise ValidationError(f"'{definition.key}': value {typed} below minimum {definition.min_value}")
        if definition.max_value is not None and typed > definition.max_value:
            raise ValidationError(f"'{definition.key}': value {typed} above maximum {definition.max_value}")
        return typed

    if definition.enum is not None:
        choices = definition.enum.resolve()
        match = _match_enum(value, choices)
        if match is None:
            raise ValidationError(f"'{definition.key}': {value!r} is not one of {choices}")
        return match

    if setting_type == SettingType.ENUM:
        raise ValidationError(f"'{definition.key}' has no allowed values")

    return "" if value is None else str(value)


def cast_for_read(raw: Any, definition: Definition) -> Any:
    """
    Cast a stored raw value for reading.

    Unparsable integers fall back to the definition default. Enum values are
    returned as stored; membership is only enforced on write.
    """
    setting_type = definition.type

    if setting_type == SettingType.BOOLEAN:
        return truthy(raw)
    if setting_type == SettingType.INTEGER:
        try:
            return _parse_int(raw)
        except (ValueError, TypeError):
            return definition.default
    if raw is None:
        return definition.default
    return raw if isinstance(raw, str) else str(raw)


def serialize(value: Any) -> str:
    """Render a cast value as the text form handed to the value store."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def values_equal(current: Any, proposed: Any, setting_type: SettingType) -> bool:
    """
    Type-aware equality between a resolved value and a submitted raw value.

    Booleans compare by truthiness, integers numerically (unparsable input is
    never equal), everything else as text.
    """
    if setting_type == SettingType.BOOLEAN:
        return truthy(current) == truthy(proposed)
    if setting_type == SettingType.INTEGER:
        try:
            return _parse_int(current) == _parse_int(proposed)
        except (ValueError, TypeError):
            return False
    return serialize(current) == serialize(proposed)
