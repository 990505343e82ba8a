"""
Resolver - live values, writes, and field states for registered settings.

Resolution order for a read:
    1. Cached value
    2. Value store override (cast per type)
    3. Initializer override from Configuration
    4. Environment variable (SETTINGS_<CATEGORY>_<KEY>)
    5. Definition default
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from typing import Any, TypeVar

from .cache import MISSING, ResolvedValueCache
from .casting import cast_for_read, cast_for_write, serialize, truthy, values_equal
from .configuration import Configuration
from .errors import DependencyCycleError, LockedSettingError, UnknownSettingError
from .registry import Registry
from .schema import Definition
from .store import ValueStore
from .types import FieldState, FullKey
from .validators import ChangeListeners, ValidatorSet

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateView:
    """Read-only view of resolved settings handed to validators."""

    def __init__(self, resolver: Resolver):
        self._resolver = resolver

    def get(self, full_key: str) -> Any:
        return self._resolver.get(full_key)

    def __getitem__(self, full_key: str) -> Any:
        return self._resolver.get(full_key)

    def truthy(self, full_key: str) -> bool:
        return truthy(self._resolver.get(full_key))

    def locked(self, full_key: str) -> bool:
        return self._resolver.configuration.locked(full_key)


class Resolver:
    """Computes, memoizes, and writes setting values."""

    def __init__(
        self,
        registry: Registry,
        configuration: Configuration,
        store: ValueStore,
        validators: ValidatorSet | None = None,
        listeners: ChangeListeners | None = None,
        cache: ResolvedValueCache | None = None,
        env_prefix: str | None = "SETTINGS",
    ):
        self.registry = registry
        self.configuration = configuration
        self.store = store
        self.validators = validators if validators is not None else ValidatorSet()
        self.listeners = listeners if listeners is not None else ChangeListeners()
        self.cache = cache if cache is not None else ResolvedValueCache()
        self.env_prefix = env_prefix
        self._write_lock = threading.RLock()
        self._pending_changes: list[tuple[str, Any, Any]] | None = None

    # ------------------------------------------------------------------ #
    #  Reads                                                             #
    # ------------------------------------------------------------------ #
    def get(self, full_key: str | FullKey) -> Any:
        """
        Resolve the live value of a setting.

        Returns:
            The typed value, or None if no definition is registered for the key
        """
        key = str(full_key)
        cached = self.cache.lookup(key)
        if cached is not MISSING:
            return cached

        definition = self.registry.find_definition(key)
        if definition is None:
            return None

        generation = self.cache.generation
        value = self._resolve(key, definition)
        self.cache.put_if_current(key, value, generation)
        return value

    def _env_key(self, key: str) -> str:
        # auth.credentials.email.enabled -> SETTINGS_AUTH_CREDENTIALS_EMAIL_ENABLED
        return f"{self.env_prefix}_{key}".upper().replace(".", "_").replace("-", "_")

    def _resolve(self, key: str, definition: Definition) -> Any:
        raw = self.store.get_raw(key)
        if raw is not None:
            return cast_for_read(raw, definition)

        init_value = self.configuration.initializer_value(key)
        if init_value is not None:
            return init_value

        if self.env_prefix:
            env_value = os.environ.get(self._env_key(key))
            if env_value:
                return cast_for_read(env_value, definition)

        return definition.default

    def for_category(self, category: str) -> dict[str, Any]:
        """Resolved values of every setting in a category, in schema order."""
        schema = self.registry.for_category(category)
        if schema is None:
            return {}
        return {d.key: self.get(d.full_key(category)) for d in schema}

    def field_state(self, full_key: str | FullKey) -> FieldState:
        """
        Compute whether a setting can currently be edited.

        Raises:
            UnknownSettingError: If no definition is registered for the key
            DependencyCycleError: If the setting's depends_on chain loops
        """
        key = str(full_key)
        definition = self.registry.find_definition(key)
        if definition is None:
            raise UnknownSettingError(f"Unknown setting: '{key}'")

        if self.configuration.locked(key):
            return FieldState.LOCKED

        if definition.depends_on:
            cycle = self.registry.find_dependency_cycle(key)
            if cycle:
                raise DependencyCycleError(cycle)
            if not truthy(self.get(definition.depends_on)):
                return FieldState.DISABLED_BY_DEPENDENCY

        return FieldState.EDITABLE

    def field_states(self, category: str) -> dict[str, FieldState]:
        schema = self.registry.for_category(category)
        if schema is None:
            return {}
        return {d.key: self.field_state(d.full_key(category)) for d in schema}

    # ------------------------------------------------------------------ #
    #  Writes                                                            #
    # ------------------------------------------------------------------ #
    def run_in_transaction(self, fn: Callable[[], T]) -> T:
        """
        Run ``fn`` under the write lock inside one durable store transaction.

        Change listeners for writes made by ``fn`` fire only after the
        outermost transaction commits. If ``fn`` raises, the store rolls back
        and every cached value is dropped, since writes made before the
        failure were already cached.
        """
        with self._write_lock:
            if self._pending_changes is not None:
                return fn()

            self._pending_changes = []
            try:
                result = self.store.run_in_transaction(fn)
                changes = self._pending_changes
            except BaseException:
                self.invalidate()
                raise
            finally:
                self._pending_changes = None

        for key, old_value, new_value in changes:
            self.listeners.fire(key, old_value, new_value)
        return result

    def set(self, full_key: str | FullKey, raw_value: Any) -> Any:
        """
        Validate and persist a new value for a setting.

        Returns:
            The cast value now in effect

        Raises:
            UnknownSettingError: If no definition is registered for the key
            LockedSettingError: If the setting is locked
            ValidationError: If casting fails or a validator vetoes the value
        """
        key = str(full_key)
        definition = self.registry.find_definition(key)
        if definition is None:
            raise UnknownSettingError(f"Unknown setting: '{key}'")
        if self.configuration.locked(key):
            raise LockedSettingError(f"Setting '{key}' is locked")

        typed_value = cast_for_write(raw_value, definition)

        def write() -> Any:
            old_value = self.get(key)
            if values_equal(old_value, typed_value, definition.type):
                logger.debug(f"Setting '{key}' unchanged, skipping write")
                return old_value

            self.validators.run(key, typed_value, StateView(self))
            self.store.set_raw(key, serialize(typed_value))
            self.cache.put(key, typed_value)
            if self._pending_changes is not None:
                self._pending_changes.append((key, old_value, typed_value))
            logger.info(f"Updated setting '{key}'")
            return typed_value

        return self.run_in_transaction(write)

    def invalidate(self, full_key: str | FullKey | None = None) -> None:
        """Drop one cached value, or every cached value when no key is given."""
        if full_key is None:
            self.cache.clear()
        else:
            self.cache.discard(str(full_key))
