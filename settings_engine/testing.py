"""Helpers for tests that register or override settings."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from .errors import SettingsError
from .schema import Schema
from .types import SettingType

if TYPE_CHECKING:
    from .engine import EngineContext


def infer_type(default: Any) -> SettingType:
    """Pick a setting type from a Python default value."""
    if isinstance(default, bool):
        return SettingType.BOOLEAN
    if isinstance(default, int):
        return SettingType.INTEGER
    return SettingType.STRING


def register_test_schema(context: EngineContext, category: str, **defaults: Any) -> Schema:
    """
    Register a category quickly, inferring each type from its default.

    Usage:
        register_test_schema(context, "test", mode="open", count=10, enabled=True)
    """

    def build(schema: Schema) -> None:
        for key, default in defaults.items():
            schema.setting(key, infer_type(default), default=default)

    return context.registry.define(category, build)


@contextmanager
def with_settings(context: EngineContext, overrides: Mapping[str, Any]) -> Iterator[None]:
    """
    Temporarily override stored settings within a block.

    Keys that had no stored override before the block have it removed
    afterwards, so they fall back to their defaults again.
    """
    originals: dict[str, str | None] = {}
    for key in overrides:
        originals[key] = context.store.get_raw(key)

    try:
        for key, value in overrides.items():
            context.set(key, value)
        yield
    finally:
        for key, raw in originals.items():
            try:
                if raw is None:
                    context.store.delete_raw(key)
                else:
                    context.store.set_raw(key, raw)
            finally:
                context.resolver.invalidate(key)


def reset_context(context: EngineContext) -> None:
    """Reset a context and clear its store between tests."""
    try:
        context.reset(clear_store=True)
    except NotImplementedError as e:
        raise SettingsError(f"Cannot reset {type(context.store).__name__} between tests") from e
