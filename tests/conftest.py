"""
Root test configuration and fixtures for the settings engine.

Provides an isolated EngineContext per test and a mock PocketBase client
for store adapter tests.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from pocketbase.client import ClientResponseError  # type: ignore[attr-defined]

# Add project root to path to allow imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from settings_engine import EngineContext, InMemoryValueStore  # noqa: E402
from settings_engine.credentials import CredentialType  # noqa: E402


def create_mock_pocketbase():
    """Create a mock PocketBase instance whose collection keeps rows in a dict."""
    mock_pb = Mock()
    rows: dict[str, Mock] = {}
    counter = {"next": 1}

    mock_collection = Mock()
    mock_collection.rows = rows

    def _matching(filter_str: str) -> Mock | None:
        for record in rows.values():
            if f'category = "{record.category}"' in filter_str and f'setting_key = "{record.setting_key}"' in filter_str:
                return record
        return None

    def get_first_list_item(filter_str, *args, **kwargs):
        record = _matching(filter_str)
        if record is None:
            raise ClientResponseError("not found", status=404)
        return record

    def create(body, *args, **kwargs):
        record = Mock()
        record.id = f"rec{counter['next']}"
        counter["next"] += 1
        record.category = body["category"]
        record.setting_key = body["setting_key"]
        record.value = body["value"]
        rows[record.id] = record
        return record

    def update(record_id, body, *args, **kwargs):
        rows[record_id].value = body["value"]
        return rows[record_id]

    def delete(record_id, *args, **kwargs):
        rows.pop(record_id, None)
        return True

    mock_collection.get_first_list_item = Mock(side_effect=get_first_list_item)
    mock_collection.create = Mock(side_effect=create)
    mock_collection.update = Mock(side_effect=update)
    mock_collection.delete = Mock(side_effect=delete)
    mock_collection.get_full_list = Mock(side_effect=lambda *a, **kw: list(rows.values()))
    mock_collection.auth_with_password = Mock(return_value=True)

    mock_pb.collection = Mock(return_value=mock_collection)
    return mock_pb


@pytest.fixture
def mock_pocketbase():
    """Create a mock PocketBase instance for tests that need it."""
    return create_mock_pocketbase()


@pytest.fixture(autouse=True)
def isolate_environment():
    """Keep per-setting environment overrides from leaking into tests."""
    leaked = {k: v for k, v in os.environ.items() if k.startswith("SETTINGS_")}
    with patch.dict("os.environ", {}, clear=False):
        for key in leaked:
            os.environ.pop(key, None)
        yield


@pytest.fixture
def store() -> InMemoryValueStore:
    return InMemoryValueStore()


@pytest.fixture
def context(store) -> EngineContext:
    """A fresh engine context backed by an in-memory store."""
    return EngineContext(store=store)


@pytest.fixture
def gated_context(context) -> EngineContext:
    """Context with a boolean gate and a setting that depends on it."""

    def build(schema):
        schema.setting("enabled", "boolean", default=True, description="Feature switch")
        schema.setting("value", "string", default="initial", depends_on="A.enabled")

    context.registry.define("A", build)
    context.registry.define("B", lambda s: s.setting("value", "string", default="b", depends_on="A.enabled"))
    return context


@pytest.fixture
def credential_types() -> list[CredentialType]:
    return [
        CredentialType(key="email_password", label="Email & Password"),
        CredentialType(key="phone_password", label="Phone & Password"),
    ]
