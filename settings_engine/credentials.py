"""
Per-credential-type settings for the auth category.

For every credential type an application offers (email/password, phone,
username, ...) this registers an ``enabled`` switch plus settings gated on
it, and validators that keep the combination consistent:

- at least one credential type must remain enabled
- ``auto_verify_on_signup`` and ``verification_required`` cannot both be on
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .casting import truthy
from .schema import Schema

if TYPE_CHECKING:
    from .engine import EngineContext
    from .resolver import StateView

CATEGORY = "auth"
GROUP = "Credential Types"


@dataclass(frozen=True)
class CredentialType:
    """A sign-in method offered by the application."""

    key: str
    label: str


def enabled_key(credential_key: str) -> str:
    return f"{CATEGORY}.credentials.{credential_key}.enabled"


def build_credential_schema(credential_types: Sequence[CredentialType]) -> Schema:
    schema = Schema(CATEGORY)
    for ctype in credential_types:
        prefix = f"credentials.{ctype.key}"
        gate = enabled_key(ctype.key)
        schema.setting(
            f"{prefix}.enabled",
            "boolean",
            default=True,
            group=GROUP,
            label=ctype.label,
            description=f"Enable or disable {ctype.label} as a sign-in method",
        )
        schema.setting(
            f"{prefix}.verification_required",
            "boolean",
            default=True,
            group=GROUP,
            label=f"{ctype.label}: Verification Required",
            depends_on=gate,
            description=f"Require verification before login for {ctype.label}",
        )
        schema.setting(
            f"{prefix}.auto_verify_on_signup",
            "boolean",
            default=False,
            group=GROUP,
            label=f"{ctype.label}: Auto-verify on Signup",
            depends_on=gate,
            description=f"Auto-verify credentials at registration time for {ctype.label}",
        )
        schema.setting(
            f"{prefix}.allow_login_unverified",
            "boolean",
            default=False,
            group=GROUP,
            label=f"{ctype.label}: Allow Login Unverified",
            depends_on=gate,
            description=f"Allow login without verification for {ctype.label}",
        )
        schema.setting(
            f"{prefix}.registerable",
            "boolean",
            default=True,
            group=GROUP,
            label=f"{ctype.label}: Self-registration",
            depends_on=gate,
            description=f"Allow self-registration for {ctype.label}",
        )
    return schema


def registered_enabled_keys(context: EngineContext) -> list[str]:
    """Enabled switches of every credential type registered so far."""
    schema = context.registry.for_category(CATEGORY)
    if schema is None:
        return []
    return [
        d.full_key(CATEGORY) for d in schema if d.key.startswith("credentials.") and d.key.endswith(".enabled")
    ]


def _last_enabled_validator(context: EngineContext, ctype: CredentialType) -> Any:
    own_key = enabled_key(ctype.key)

    def validate(new_value: Any, state: StateView) -> str | None:
        if truthy(new_value):
            return None
        others_enabled = [key for key in registered_enabled_keys(context) if key != own_key and state.truthy(key)]
        if not others_enabled:
            return f"Cannot disable {ctype.label}: at least one credential type must remain enabled."
        return None

    return validate


def _exclusive_validator(ctype: CredentialType, enabling: str, other: str) -> Any:
    other_key = f"{CATEGORY}.credentials.{ctype.key}.{other}"

    def validate(new_value: Any, state: StateView) -> str | None:
        if truthy(new_value) and state.truthy(other_key):
            return f"Cannot enable {enabling} when {other} is enabled for {ctype.label}. Disable {other} first."
        return None

    return validate


def register_credential_settings(context: EngineContext, credential_types: Sequence[CredentialType]) -> Schema | None:
    """
    Register credential settings and their validators.

    Call again with credential types that load later: the schema merges
    into the existing auth category and the last-enabled check covers
    every registered type.

    Returns:
        The registered schema, or None if there are no credential types
    """
    if not credential_types:
        return None

    schema = build_credential_schema(credential_types)
    context.registry.register(schema)

    for ctype in credential_types:
        prefix = f"{CATEGORY}.credentials.{ctype.key}"
        context.add_validator(enabled_key(ctype.key), _last_enabled_validator(context, ctype))
        context.add_validator(
            f"{prefix}.auto_verify_on_signup",
            _exclusive_validator(ctype, "auto_verify_on_signup", "verification_required"),
        )
        context.add_validator(
            f"{prefix}.verification_required",
            _exclusive_validator(ctype, "verification_required", "auto_verify_on_signup"),
        )
    return schema
