"""
EngineContext - the public surface of the settings engine.

One context is created by the application's bootstrap sequence and passed to
every module that registers or reads settings.

Usage:
    context = EngineContext.bootstrap()

    # Module registration (any order, idempotent merge per category)
    context.registry.define("auth", build_auth_settings)

    # Administrative configuration
    context.configure(lambda config: config.lock("auth.registration_mode"))

    # Reads and writes
    mode = context.get("auth.registration_mode")
    context.set("auth.password_min_length", "12")
    context.batch_update({"auth.account_enabled": "false"}, category="auth")
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pocketbase import PocketBase

from .batch import BatchResult, BatchTransaction
from .builtin import BUILTIN_SCHEMAS
from .cache import ResolvedValueCache
from .casting import truthy
from .configuration import Configuration
from .errors import DependencyCycleError, StoreUnavailableError
from .registry import Registry
from .resolver import Resolver
from .settings import EngineSettings, get_settings
from .store import InMemoryValueStore, PocketBaseValueStore, ValueStore
from .types import FieldState, FullKey
from .validators import ChangeListener, ChangeListeners, Validator, ValidatorSet

logger = logging.getLogger(__name__)


class EngineContext:
    """Owns the registry, configuration, validators, value store, and cache."""

    def __init__(
        self,
        store: ValueStore | None = None,
        cache_ttl_seconds: float | None = None,
        env_prefix: str | None = "SETTINGS",
        seed_builtins: bool = True,
    ):
        self.store = store if store is not None else InMemoryValueStore()
        self._cache_ttl = cache_ttl_seconds
        self._env_prefix = env_prefix
        self._seed_builtins = seed_builtins
        self._build_state()

    def _build_state(self) -> None:
        self.registry = Registry()
        self.configuration = Configuration()
        self.validators = ValidatorSet()
        self.listeners = ChangeListeners()
        self.resolver = Resolver(
            registry=self.registry,
            configuration=self.configuration,
            store=self.store,
            validators=self.validators,
            listeners=self.listeners,
            cache=ResolvedValueCache(ttl_seconds=self._cache_ttl),
            env_prefix=self._env_prefix,
        )
        if self._seed_builtins:
            for build in BUILTIN_SCHEMAS:
                self.registry.register(build())

    @classmethod
    def bootstrap(
        cls,
        settings: EngineSettings | None = None,
        store: ValueStore | None = None,
        pb_client: PocketBase | None = None,
    ) -> EngineContext:
        """
        Create a context from EngineSettings.

        Uses the PocketBase store when a URL is configured (or a client is
        passed) and an in-memory store otherwise.
        """
        settings = settings or get_settings()

        if store is None:
            if pb_client is not None or settings.uses_pocketbase:
                pb = pb_client or cls._create_pb_client(settings)
                store = PocketBaseValueStore(pb, collection=settings.pocketbase_collection)
            else:
                store = InMemoryValueStore()

        context = cls(
            store=store,
            cache_ttl_seconds=settings.cache_ttl_seconds,
            env_prefix=settings.env_override_prefix if settings.env_overrides_enabled else None,
        )
        logger.info(f"Settings engine bootstrapped with {type(store).__name__}")
        return context

    @staticmethod
    def _create_pb_client(settings: EngineSettings) -> PocketBase:
        """Create and authenticate a PocketBase client."""
        pb = PocketBase(settings.pocketbase_url)
        if settings.pocketbase_admin_email and settings.pocketbase_admin_password:
            try:
                pb.collection("_superusers").auth_with_password(
                    settings.pocketbase_admin_email, settings.pocketbase_admin_password
                )
            except Exception as e:
                # Store calls will surface StoreUnavailableError if this matters
                logger.warning(f"Failed to authenticate with PocketBase: {e}")
        return pb

    # ------------------------------------------------------------------ #
    #  Reads                                                             #
    # ------------------------------------------------------------------ #
    def get(self, full_key: str | FullKey) -> Any:
        """Resolved value for a setting, or None if it is not registered."""
        return self.resolver.get(full_key)

    def for_category(self, category: str) -> dict[str, Any]:
        return self.resolver.for_category(category)

    def field_state(self, full_key: str | FullKey) -> FieldState:
        return self.resolver.field_state(full_key)

    def field_states(self, category: str) -> dict[str, FieldState]:
        return self.resolver.field_states(category)

    truthy = staticmethod(truthy)

    # ------------------------------------------------------------------ #
    #  Writes                                                            #
    # ------------------------------------------------------------------ #
    def set(self, full_key: str | FullKey, raw_value: Any) -> Any:
        return self.resolver.set(full_key, raw_value)

    def batch_update(
        self,
        pairs: Mapping[str, Any] | Iterable[tuple[str, Any]],
        category: str | None = None,
    ) -> BatchResult:
        """Apply proposed values all-or-nothing, optionally restricted to one category."""
        return BatchTransaction(self.resolver, pairs, category=category).commit()

    def add_validator(self, full_key: str, validator: Validator) -> None:
        """Register a write-time check; it receives (new_value, state_view)."""
        self.validators.add(full_key, validator)

    def on_change(self, full_key: str, listener: ChangeListener) -> None:
        """Register a callback receiving (old_value, new_value) after a write commits."""
        self.listeners.add(full_key, listener)

    # ------------------------------------------------------------------ #
    #  Configuration & cache                                             #
    # ------------------------------------------------------------------ #
    def configure(self, fn: Callable[[Configuration], Any]) -> None:
        """Apply locks and initializer overrides."""
        fn(self.configuration)
        # Initializer overrides take part in resolution
        self.resolver.invalidate()

    def lock(self, full_key: str) -> None:
        self.configuration.lock(full_key)

    def locked(self, full_key: str) -> bool:
        return self.configuration.locked(full_key)

    def invalidate_cache(self) -> None:
        """Drop every cached value; later reads recompute from the store."""
        self.resolver.invalidate()

    def reset(self, clear_store: bool = False) -> None:
        """
        Restore an empty registry, locks, validators, and cache, plus built-ins.

        For test isolation only.
        """
        if clear_store:
            self.store.clear()
        self._build_state()
        logger.debug("Settings engine reset")

    # ------------------------------------------------------------------ #
    #  Diagnostics                                                       #
    # ------------------------------------------------------------------ #
    def health_check(self) -> dict[str, Any]:
        """
        Check the store connection and registered schemas.

        Returns:
            Dict with status, store connectivity, cache stats, and any issues
        """
        result: dict[str, Any] = {
            "status": "healthy",
            "store": type(self.store).__name__,
            "store_connected": False,
            "categories": self.registry.categories(),
            "locked_keys": self.configuration.locked_keys(),
            "cache": self.resolver.cache.get_stats(),
            "issues": [],
        }

        try:
            self.store.all_raw()
            result["store_connected"] = True
        except StoreUnavailableError as e:
            result["status"] = "unhealthy"
            result["issues"].append(f"Value store unavailable: {e}")

        reported: set[str] = set()
        for schema in self.registry.all():
            if not schema.is_valid():
                result["issues"].append(f"Schema '{schema.category}' has invalid definitions")
            for definition in schema:
                full_key = definition.full_key(schema.category)
                if not definition.depends_on or full_key in reported:
                    continue
                cycle = self.registry.find_dependency_cycle(full_key)
                if cycle:
                    reported.update(cycle)
                    result["issues"].append(str(DependencyCycleError(cycle)))

        if result["issues"] and result["status"] == "healthy":
            result["status"] = "degraded"
        return result
