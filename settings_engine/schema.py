"""Setting definitions and the schema builder.

A Schema is the ordered set of settings one module declares under a single
category. Modules build schemas incrementally and hand them to the Registry.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import InvalidDefinitionError
from .types import KEY_SEPARATOR, EnumSource, SettingType


@dataclass(frozen=True)
class Definition:
    """
    Static metadata for one typed setting.

    Attributes:
        key: Key relative to the schema category; may contain separators
            (e.g., "credentials.email_password.enabled")
        type: The setting's value type
        default: Typed default used when no override exists
        group: Display grouping label; None renders as "General"
        description: Human-readable description
        depends_on: Full key of a boolean-interpreted setting gating this one
        enum: Allowed values source, evaluated at the point of use
        label: Display name
        min_value: Minimum allowed value (integer settings)
        max_value: Maximum allowed value (integer settings)
    """

    key: str
    type: SettingType
    default: Any = None
    group: str | None = None
    description: str = ""
    depends_on: str | None = None
    enum: EnumSource | None = None
    label: str | None = None
    min_value: int | None = None
    max_value: int | None = None

    def full_key(self, category: str) -> str:
        return f"{category}{KEY_SEPARATOR}{self.key}"

    def problems(self, category: str) -> list[str]:
        """
        Check this definition against the schema rules.

        Returns:
            List of error messages, empty if valid
        """
        errors: list[str] = []
        if not self.key:
            errors.append("setting key must not be empty")
        if not isinstance(self.type, SettingType):
            errors.append(f"'{self.key}': unsupported type {self.type!r}")
        if self.depends_on is not None and self.depends_on == self.full_key(category):
            errors.append(f"'{self.key}': a setting cannot depend on itself")
        if self.type == SettingType.ENUM and self.enum is None:
            errors.append(f"'{self.key}': enum settings need allowed values")
        return errors


class Schema:
    """
    Ordered, named collection of definitions for one category.

    Usage:
        schema = Schema("auth")
        schema.setting("registration_mode", "string", default="open",
                       enum=["open", "invite_only", "disabled"], group="Registration")
        schema.setting("account_enabled", "boolean", default=True)

        # or with a builder function
        Schema("auth", build=lambda s: s.setting("mode", "string", default="open"))
    """

    def __init__(
        self,
        category: str,
        build: Callable[[Schema], Any] | None = None,
        definitions: Sequence[Definition] | None = None,
    ):
        if not category or KEY_SEPARATOR in category:
            raise InvalidDefinitionError(f"Invalid schema category: {category!r}")
        self.category = category
        self._definitions: list[Definition] = list(definitions or [])
        if build is not None:
            build(self)

    def __repr__(self) -> str:
        return f"Schema({self.category!r}, keys={self.keys()!r})"

    def __iter__(self) -> Iterator[Definition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    @property
    def definitions(self) -> list[Definition]:
        return list(self._definitions)

    def setting(
        self,
        key: str,
        type: SettingType | str,
        default: Any = None,
        group: str | None = None,
        description: str = "",
        depends_on: str | None = None,
        enum: EnumSource | Sequence[Any] | Callable[[], Sequence[Any]] | None = None,
        label: str | None = None,
        min_value: int | None = None,
        max_value: int | None = None,
    ) -> Schema:
        """
        Append a setting definition.

        Returns:
            This schema, for chaining

        Raises:
            InvalidDefinitionError: If the key is empty or duplicated, the type
                is unsupported, the setting depends on itself, or an enum
                setting has no allowed values
        """
        setting_type = SettingType.coerce(type)
        if setting_type is None:
            raise InvalidDefinitionError(f"'{key}': unsupported setting type {type!r}")
        try:
            enum_source = EnumSource.from_value(enum)
        except TypeError as e:
            raise InvalidDefinitionError(f"'{key}': {e}") from e

        definition = Definition(
            key=str(key) if key is not None else "",
            type=setting_type,
            default=default,
            group=group,
            description=description,
            depends_on=depends_on,
            enum=enum_source,
            label=label,
            min_value=min_value,
            max_value=max_value,
        )
        problems = definition.problems(self.category)
        if problems:
            raise InvalidDefinitionError(f"Invalid setting in '{self.category}': " + "; ".join(problems))
        if self.find(definition.key) is not None:
            raise InvalidDefinitionError(f"Duplicate setting '{definition.full_key(self.category)}'")

        self._definitions.append(definition)
        return self

    def keys(self) -> list[str]:
        return [d.key for d in self._definitions]

    def defaults(self) -> dict[str, Any]:
        return {d.key: d.default for d in self._definitions}

    def find(self, key: str) -> Definition | None:
        for definition in self._definitions:
            if definition.key == key:
                return definition
        return None

    def is_valid(self) -> bool:
        """Re-validate every definition; returns False instead of raising."""
        seen: set[str] = set()
        for definition in self._definitions:
            if definition.problems(self.category) or definition.key in seen:
                return False
            seen.add(definition.key)
        return True

    def merge(self, other: Schema) -> Schema:
        """
        Combine two schemas of the same category into a new one.

        A definition from ``other`` with an existing key replaces it in place;
        new keys are appended in their original order.
        """
        if other.category != self.category:
            raise InvalidDefinitionError(
                f"Cannot merge schema '{other.category}' into '{self.category}'"
            )

        merged = list(self._definitions)
        positions = {d.key: i for i, d in enumerate(merged)}
        for definition in other:
            if definition.key in positions:
                merged[positions[definition.key]] = definition
            else:
                positions[definition.key] = len(merged)
                merged.append(definition)
        return Schema(self.category, definitions=merged)
