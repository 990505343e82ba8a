"""
Pluggable setting registry and resolution engine.

Application modules declare typed settings under a category; the engine
resolves live values (stored override, else default), enforces locks,
gates settings on other settings through depends_on, and applies batches of
changes atomically with validators that can veto them.

Usage:
    from settings_engine import EngineContext, Schema

    context = EngineContext.bootstrap()

    context.registry.define("auth", lambda s: (
        s.setting("account_enabled", "boolean", default=True)
         .setting("account_deletion_enabled", "boolean", default=True,
                  depends_on="auth.account_enabled")
    ))

    context.get("auth.account_enabled")          # True
    context.set("auth.account_enabled", "false")
    context.field_state("auth.account_deletion_enabled")  # FieldState.DISABLED_BY_DEPENDENCY
"""

from __future__ import annotations

from .batch import BatchResult, BatchTransaction
from .casting import truthy
from .configuration import Configuration, LockSet
from .engine import EngineContext
from .errors import (
    DependencyCycleError,
    InvalidDefinitionError,
    LockedSettingError,
    SettingsError,
    StoreUnavailableError,
    UnknownSettingError,
    ValidationError,
)
from .registry import Registry
from .resolver import Resolver, StateView
from .schema import Definition, Schema
from .settings import EngineSettings, get_settings
from .store import InMemoryValueStore, PocketBaseValueStore, ValueStore
from .types import DynamicEnum, EnumSource, FieldState, FullKey, SettingType, StaticEnum

__all__ = [
    # Engine
    "EngineContext",
    "EngineSettings",
    "get_settings",
    # Schema
    "Definition",
    "Schema",
    "Registry",
    "SettingType",
    "FieldState",
    "FullKey",
    "EnumSource",
    "StaticEnum",
    "DynamicEnum",
    # Resolution
    "Resolver",
    "StateView",
    "BatchTransaction",
    "BatchResult",
    "Configuration",
    "LockSet",
    "truthy",
    # Stores
    "ValueStore",
    "InMemoryValueStore",
    "PocketBaseValueStore",
    # Error classes
    "SettingsError",
    "UnknownSettingError",
    "LockedSettingError",
    "ValidationError",
    "InvalidDefinitionError",
    "DependencyCycleError",
    "StoreUnavailableError",
]
