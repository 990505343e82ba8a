"""Atomic multi-key setting updates."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .casting import truthy, values_equal
from .errors import UnknownSettingError
from .resolver import Resolver
from .schema import Definition
from .types import FieldState, FullKey

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of a committed batch, as full keys."""

    applied: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped_locked: list[str] = field(default_factory=list)
    skipped_disabled: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)


class BatchTransaction:
    """
    Apply proposed values all-or-nothing.

    Pairs are processed in order. When a category is given (the admin form
    case) every key must belong to it. Locked settings are ignored, and so
    are settings whose gate is off. A gate submitted in the same batch is
    judged by its submitted value, so the payload order of a gate and its
    dependents does not matter. Values equal to the current one are not
    rewritten, and the rest go through ``Resolver.set``, so validators see
    the writes made earlier in the same batch. If any write fails, the store
    rolls back every write of the batch and the resolver drops its whole
    cache before the error propagates.

    Usage:
        result = BatchTransaction(resolver, [
            ("auth.account_enabled", "false"),
            ("auth.account_deletion_enabled", "true"),
        ], category="auth").commit()
    """

    def __init__(
        self,
        resolver: Resolver,
        pairs: Mapping[str, Any] | Iterable[tuple[str, Any]],
        category: str | None = None,
    ):
        self.resolver = resolver
        self.category = category
        self.pairs = list(pairs.items()) if isinstance(pairs, Mapping) else list(pairs)

    def _resolve_items(self) -> list[tuple[str, Definition, Any]]:
        registry = self.resolver.registry
        if self.category is not None and registry.for_category(self.category) is None:
            raise UnknownSettingError(f"Unknown settings category: '{self.category}'")

        items: list[tuple[str, Definition, Any]] = []
        for full_key, raw_value in self.pairs:
            parsed = FullKey.parse(full_key)
            if parsed is None:
                raise UnknownSettingError(f"Malformed setting key: '{full_key}'")
            if self.category is not None and parsed.category != self.category:
                raise UnknownSettingError(f"Setting '{full_key}' is not part of category '{self.category}'")
            definition = registry.find_definition(parsed)
            if definition is None:
                raise UnknownSettingError(f"Unknown setting: '{full_key}'")
            items.append((str(parsed), definition, raw_value))
        return items

    def _gate_open(self, definition: Definition, state: FieldState, proposed: dict[str, Any]) -> bool:
        gate = definition.depends_on
        if gate in proposed and self.resolver.field_state(gate) == FieldState.EDITABLE:
            return truthy(proposed[gate])
        return state != FieldState.DISABLED_BY_DEPENDENCY

    @property
    def scope(self) -> str:
        return f"'{self.category}'" if self.category else "settings"

    def commit(self) -> BatchResult:
        """
        Run the batch.

        A dependent is judged by its gate's submitted value when the gate is
        in the same batch, so it can be applied while the stored gate is off.

        Raises:
            UnknownSettingError: If the category or any key is not registered;
                raised before anything is written
            ValidationError: If any value is rejected; nothing from the batch
                is persisted or cached
        """
        items = self._resolve_items()
        proposed = {full_key: raw_value for full_key, _, raw_value in items}
        result = BatchResult()
        resolver = self.resolver

        def apply() -> None:
            for full_key, definition, raw_value in items:
                state = resolver.field_state(full_key)
                if state == FieldState.LOCKED:
                    result.skipped_locked.append(full_key)
                    continue
                if definition.depends_on and not self._gate_open(definition, state, proposed):
                    result.skipped_disabled.append(full_key)
                    continue

                if values_equal(resolver.get(full_key), raw_value, definition.type):
                    result.unchanged.append(full_key)
                    continue

                resolver.set(full_key, raw_value)
                result.applied.append(full_key)

        try:
            resolver.run_in_transaction(apply)
        except Exception as e:
            logger.warning(f"Batch update of {self.scope} rolled back: {e}")
            raise

        logger.info(
            f"Batch update of {self.scope}: {len(result.applied)} applied, "
            f"{len(result.unchanged)} unchanged, "
            f"{len(result.skipped_locked) + len(result.skipped_disabled)} skipped"
        )
        return result
