"""Tests for EngineContext: bootstrap, reset, configuration, and health checks."""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest

from settings_engine import EngineContext, EngineSettings
from settings_engine.errors import LockedSettingError, StoreUnavailableError
from settings_engine.store import InMemoryValueStore, PocketBaseValueStore


class TestBootstrap:
    """Test building a context from EngineSettings."""

    def test_in_memory_without_url(self):
        context = EngineContext.bootstrap(settings=EngineSettings(pocketbase_url=""))
        assert isinstance(context.store, InMemoryValueStore)

    def test_pocketbase_with_client(self, mock_pocketbase):
        settings = EngineSettings(pocketbase_collection="app_settings")
        context = EngineContext.bootstrap(settings=settings, pb_client=mock_pocketbase)

        assert isinstance(context.store, PocketBaseValueStore)
        assert context.store.collection_name == "app_settings"

    def test_pocketbase_client_created_from_url(self, mock_pocketbase):
        settings = EngineSettings(
            pocketbase_url="http://localhost:8090/",
            pocketbase_admin_email="admin@example.com",
            pocketbase_admin_password="secret",
        )

        with patch("settings_engine.engine.PocketBase", return_value=mock_pocketbase) as pb_class:
            context = EngineContext.bootstrap(settings=settings)

        pb_class.assert_called_once_with("http://localhost:8090")
        mock_pocketbase.collection.return_value.auth_with_password.assert_called_once_with(
            "admin@example.com", "secret"
        )
        assert isinstance(context.store, PocketBaseValueStore)

    def test_failed_authentication_is_logged(self, mock_pocketbase, caplog):
        mock_pocketbase.collection.return_value.auth_with_password.side_effect = RuntimeError("bad credentials")
        settings = EngineSettings(
            pocketbase_url="http://localhost:8090",
            pocketbase_admin_email="admin@example.com",
            pocketbase_admin_password="wrong",
        )

        with patch("settings_engine.engine.PocketBase", return_value=mock_pocketbase):
            EngineContext.bootstrap(settings=settings)

        assert "Failed to authenticate with PocketBase" in caplog.text

    def test_cache_ttl_passed_through(self):
        context = EngineContext.bootstrap(settings=EngineSettings(cache_ttl_seconds=30))
        assert context.resolver.cache.get_stats()["ttl_seconds"] == 30

    def test_env_overrides_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("SETTINGS_SEO_APP_NAME", "From env")
        context = EngineContext.bootstrap(settings=EngineSettings(env_overrides_enabled=False))

        assert context.get("seo.app_name") == ""

    def test_custom_env_prefix(self, monkeypatch):
        monkeypatch.setenv("MYAPP_SEO_APP_NAME", "From env")
        context = EngineContext.bootstrap(settings=EngineSettings(env_override_prefix="MYAPP"))

        assert context.get("seo.app_name") == "From env"


class TestBuiltins:
    """Test the schemas seeded into every context."""

    def test_seo_schema_registered(self, context):
        assert "seo" in context.registry.categories()
        assert context.get("seo.title_format") == "%(page_title)s | %(app_name)s"
        assert context.get("seo.auth_indexable") is True

    def test_seo_groups(self, context):
        groups = context.registry.grouped_definitions("seo")
        assert list(groups) == ["General", "Open Graph", "Robots", "Script Injection"]

    def test_no_builtins_when_disabled(self, store):
        context = EngineContext(store=store, seed_builtins=False)
        assert context.registry.categories() == []


class TestReset:
    """Test restoring a clean context between tests."""

    def test_reset_clears_registry_locks_and_validators(self, context):
        context.registry.define("auth", lambda s: s.setting("mode", "string", default="open"))
        context.lock("seo.app_name")
        validator = Mock(return_value=None)
        context.add_validator("seo.og_image_url", validator)

        context.reset()

        assert context.registry.categories() == ["seo"]
        assert not context.locked("seo.app_name")
        context.set("seo.og_image_url", "https://example.com/og.png")
        validator.assert_not_called()

    def test_reset_keeps_store_by_default(self, context, store):
        context.set("seo.app_name", "Acme")
        context.reset()

        assert store.get_raw("seo.app_name") == "Acme"

    def test_reset_clear_store(self, context, store):
        context.set("seo.app_name", "Acme")
        context.reset(clear_store=True)

        assert store.all_raw() == {}
        assert context.get("seo.app_name") == ""


class TestConfigure:
    """Test code-level configuration."""

    def test_configure_locks(self, context):
        context.configure(lambda config: config.lock("seo.head_tags"))

        with pytest.raises(LockedSettingError):
            context.set("seo.head_tags", "<script></script>")
        assert context.configuration.locked_keys() == ["seo.head_tags"]

    def test_unlock(self, context):
        context.lock("seo.head_tags")
        context.configuration.unlock("seo.head_tags")

        context.set("seo.head_tags", "<meta>")
        assert context.get("seo.head_tags") == "<meta>"

    def test_truthy_exposed(self):
        assert EngineContext.truthy("false") is False
        assert EngineContext.truthy("on") is True


class TestHealthCheck:
    """Test diagnostics output."""

    def test_healthy(self, context):
        context.lock("seo.app_name")
        result = context.health_check()

        assert result["status"] == "healthy"
        assert result["store"] == "InMemoryValueStore"
        assert result["store_connected"] is True
        assert result["categories"] == ["seo"]
        assert result["locked_keys"] == ["seo.app_name"]
        assert result["issues"] == []

    def test_dependency_cycle_degrades(self, context):
        context.registry.define("A", lambda s: s.setting("x", "boolean", depends_on="B.y"))
        context.registry.define("B", lambda s: s.setting("y", "boolean", depends_on="A.x"))

        result = context.health_check()

        assert result["status"] == "degraded"
        assert len(result["issues"]) == 1
        assert "Dependency cycle" in result["issues"][0]

    def test_store_down_is_unhealthy(self, context):
        with patch.object(context.store, "all_raw", side_effect=StoreUnavailableError("connection refused")):
            result = context.health_check()

        assert result["status"] == "unhealthy"
        assert result["store_connected"] is False
        assert "connection refused" in result["issues"][0]
