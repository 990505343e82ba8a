"""Tests for atomic batch updates.

Covers the admin form flow: several submitted values applied all-or-nothing,
with locked and dependency-disabled settings ignored.
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from settings_engine.errors import UnknownSettingError, ValidationError


@pytest.fixture
def auth_context(context):
    def build(schema):
        schema.setting("registration_mode", "enum", default="open", enum=["open", "invite_only", "disabled"])
        schema.setting("password_min_length", "integer", default=8, min_value=6)
        schema.setting("account_enabled", "boolean", default=True)
        schema.setting("account_deletion_enabled", "boolean", default=True, depends_on="auth.account_enabled")

    context.registry.define("auth", build)
    return context


class TestBatchApply:
    """Test successful batches."""

    def test_applies_changed_values(self, auth_context, store):
        result = auth_context.batch_update(
            {"auth.registration_mode": "invite_only", "auth.password_min_length": "12"},
            category="auth",
        )

        assert result.applied == ["auth.registration_mode", "auth.password_min_length"]
        assert result.changed
        assert store.all_raw() == {"auth.registration_mode": "invite_only", "auth.password_min_length": "12"}

    def test_unchanged_values_not_written(self, auth_context, store):
        result = auth_context.batch_update(
            [("auth.registration_mode", "open"), ("auth.account_enabled", "1")],
            category="auth",
        )

        assert result.unchanged == ["auth.registration_mode", "auth.account_enabled"]
        assert not result.changed
        assert store.all_raw() == {}

    def test_locked_keys_skipped(self, auth_context, store):
        auth_context.lock("auth.registration_mode")

        result = auth_context.batch_update(
            {"auth.registration_mode": "disabled", "auth.password_min_length": "10"},
            category="auth",
        )

        assert result.skipped_locked == ["auth.registration_mode"]
        assert result.applied == ["auth.password_min_length"]
        assert store.get_raw("auth.registration_mode") is None

    def test_batch_without_category_spans_categories(self, auth_context):
        auth_context.batch_update({"auth.password_min_length": "10", "seo.app_name": "Acme"})

        assert auth_context.get("auth.password_min_length") == 10
        assert auth_context.get("seo.app_name") == "Acme"

    def test_listeners_fire_once_after_commit(self, auth_context):
        listener = Mock()
        auth_context.on_change("auth.password_min_length", listener)

        auth_context.batch_update({"auth.password_min_length": "10"}, category="auth")

        listener.assert_called_once_with(8, 10)


class TestDependencyGating:
    """Test that a gate submitted in the same batch decides its dependents."""

    def test_disabling_gate_skips_dependent(self, gated_context, store):
        result = gated_context.batch_update([("A.enabled", "false"), ("B.value", "x")])

        assert result.applied == ["A.enabled"]
        assert result.skipped_disabled == ["B.value"]
        assert gated_context.get("B.value") == "b"
        assert store.get_raw("B.value") is None

    def test_gate_order_does_not_matter(self, gated_context, store):
        """A dependent submitted before the gate that disables it is still skipped."""
        result = gated_context.batch_update([("B.value", "x"), ("A.enabled", "false")])

        assert result.applied == ["A.enabled"]
        assert result.skipped_disabled == ["B.value"]
        assert store.get_raw("B.value") is None

    def test_enabling_gate_unlocks_dependent(self, gated_context, store):
        store.set_raw("A.enabled", "false")

        result = gated_context.batch_update({"A.value": "new", "A.enabled": "true"}, category="A")

        assert result.applied == ["A.value", "A.enabled"]
        assert gated_context.get("A.value") == "new"

    def test_locked_gate_keeps_current_state(self, gated_context):
        """A submitted value for a locked gate is ignored, so it cannot close its dependents."""
        gated_context.lock("A.enabled")

        result = gated_context.batch_update([("A.enabled", "false"), ("B.value", "x")])

        assert result.skipped_locked == ["A.enabled"]
        assert result.applied == ["B.value"]

    def test_dependent_of_closed_gate_skipped(self, gated_context, store):
        store.set_raw("A.enabled", "false")

        result = gated_context.batch_update({"A.value": "new"}, category="A")

        assert result.skipped_disabled == ["A.value"]
        assert gated_context.get("A.value") == "initial"


class TestBatchAtomicity:
    """Test all-or-nothing behaviour and cache coherence on failure."""

    def test_failure_rolls_back_earlier_writes(self, auth_context, store):
        with pytest.raises(ValidationError):
            auth_context.batch_update(
                [("auth.registration_mode", "invite_only"), ("auth.password_min_length", "2")],
                category="auth",
            )

        assert store.all_raw() == {}
        assert auth_context.get("auth.registration_mode") == "open"

    def test_cache_not_left_with_rolled_back_value(self, auth_context):
        """A value cached by an earlier write in the failed batch must not survive."""
        assert auth_context.get("auth.registration_mode") == "open"

        with pytest.raises(ValidationError):
            auth_context.batch_update(
                [("auth.registration_mode", "invite_only"), ("auth.password_min_length", "2")],
                category="auth",
            )

        assert "auth.registration_mode" not in auth_context.resolver.cache
        assert auth_context.get("auth.registration_mode") == "open"

    def test_validator_veto_rolls_back(self, auth_context, store):
        auth_context.add_validator("auth.account_enabled", lambda value, state: None if value else "Must stay on")

        with pytest.raises(ValidationError, match="Must stay on"):
            auth_context.batch_update(
                {"auth.password_min_length": "10", "auth.account_enabled": "false"},
                category="auth",
            )

        assert store.all_raw() == {}
        assert auth_context.get("auth.password_min_length") == 8

    def test_listeners_not_fired_on_rollback(self, auth_context):
        listener = Mock()
        auth_context.on_change("auth.registration_mode", listener)

        with pytest.raises(ValidationError):
            auth_context.batch_update(
                [("auth.registration_mode", "invite_only"), ("auth.password_min_length", "2")],
                category="auth",
            )

        listener.assert_not_called()


class TestBatchKeys:
    """Test key checks made before anything is written."""

    def test_unknown_category(self, auth_context):
        with pytest.raises(UnknownSettingError, match="Unknown settings category"):
            auth_context.batch_update({"billing.plan": "pro"}, category="billing")

    def test_key_outside_category(self, auth_context, store):
        with pytest.raises(UnknownSettingError, match="not part of category 'auth'"):
            auth_context.batch_update(
                {"auth.password_min_length": "10", "seo.app_name": "Acme"},
                category="auth",
            )
        assert store.all_raw() == {}

    def test_unknown_key_raises_before_any_write(self, auth_context, store):
        with pytest.raises(UnknownSettingError, match="auth.nope"):
            auth_context.batch_update(
                [("auth.password_min_length", "10"), ("auth.nope", "x")],
                category="auth",
            )
        assert store.all_raw() == {}

    def test_malformed_key(self, auth_context):
        with pytest.raises(UnknownSettingError, match="Malformed setting key"):
            auth_context.batch_update({"nodot": "x"})
