"""
Value store adapters.

The engine only needs four operations from durable storage: read one raw
value, write one raw value, read everything, and run a block of writes
all-or-nothing. Raw values are always text.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, TypeVar

from pocketbase import PocketBase
from pocketbase.client import ClientResponseError  # type: ignore[attr-defined]

from .errors import StoreUnavailableError
from .types import FullKey

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ValueStore(ABC):
    """Durable full-key to raw-text storage."""

    @abstractmethod
    def get_raw(self, full_key: str) -> str | None:
        """Return the stored raw value, or None if there is no override."""

    @abstractmethod
    def set_raw(self, full_key: str, value: str) -> None:
        """Persist a raw value."""

    @abstractmethod
    def all_raw(self) -> dict[str, str]:
        """Return every stored override keyed by full key."""

    @abstractmethod
    def run_in_transaction(self, fn: Callable[[], T]) -> T:
        """
        Run ``fn`` so that its writes are applied all-or-nothing.

        If ``fn`` raises, every write made inside it is undone and the
        exception propagates. Nested calls join the outer transaction.
        """

    def delete_raw(self, full_key: str) -> None:
        """Remove an override so the setting falls back to its default."""
        raise NotImplementedError

    def clear(self) -> None:
        """Remove every override. Used for test isolation."""
        raise NotImplementedError(f"{type(self).__name__} does not support clear()")


class InMemoryValueStore(ValueStore):
    """Process-local store; transactions snapshot and restore the whole map."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._values: dict[str, str] = dict(initial or {})
        self._lock = threading.RLock()
        self._depth = 0

    def get_raw(self, full_key: str) -> str | None:
        return self._values.get(str(full_key))

    def set_raw(self, full_key: str, value: str) -> None:
        with self._lock:
            self._values[str(full_key)] = value

    def delete_raw(self, full_key: str) -> None:
        with self._lock:
            self._values.pop(str(full_key), None)

    def all_raw(self) -> dict[str, str]:
        return dict(self._values)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def run_in_transaction(self, fn: Callable[[], T]) -> T:
        with self._lock:
            if self._depth:
                return fn()

            snapshot = dict(self._values)
            self._depth += 1
            try:
                return fn()
            except BaseException:
                self._values = snapshot
                logger.debug("In-memory transaction rolled back")
                raise
            finally:
                self._depth -= 1


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class PocketBaseValueStore(ValueStore):
    """
    Store overrides as rows of a PocketBase collection.

    Each row has ``category``, ``setting_key`` and ``value`` text fields, with
    a unique index on (category, setting_key).

    The PocketBase SDK has no client-side transactions, so the adapter keeps
    a journal of each row's prior state while a transaction is open and
    writes the prior state back if the enclosed block raises.
    """

    def __init__(self, pb_client: PocketBase, collection: str = "settings"):
        self.pb = pb_client
        self.collection_name = collection
        self._lock = threading.RLock()
        self._journal: list[tuple[str, str | None, str | None]] | None = None

    def _collection(self) -> Any:
        return self.pb.collection(self.collection_name)

    def _filter(self, full_key: str) -> str:
        parsed = FullKey.parse(full_key)
        if parsed is None:
            raise StoreUnavailableError(f"Malformed setting key '{full_key}'")
        return f"category = {_quote(parsed.category)} && setting_key = {_quote(parsed.key)}"

    def _find_record(self, full_key: str) -> Any | None:
        try:
            return self._collection().get_first_list_item(self._filter(full_key))
        except ClientResponseError as e:
            if getattr(e, "status", None) == 404:
                return None
            raise StoreUnavailableError(f"PocketBase error reading setting '{full_key}': {e}") from e

    def get_raw(self, full_key: str) -> str | None:
        record = self._find_record(full_key)
        if record is None:
            return None
        value = getattr(record, "value", None)
        return None if value is None else str(value)

    def set_raw(self, full_key: str, value: str) -> None:
        parsed = FullKey.parse(full_key)
        if parsed is None:
            raise StoreUnavailableError(f"Malformed setting key '{full_key}'")

        with self._lock:
            record = self._find_record(full_key)
            try:
                if record is None:
                    created = self._collection().create(
                        {"category": parsed.category, "setting_key": parsed.key, "value": value}
                    )
                    self._remember(full_key, getattr(created, "id", None), None)
                else:
                    previous = getattr(record, "value", None)
                    self._collection().update(record.id, {"value": value})
                    self._remember(full_key, record.id, previous)
            except ClientResponseError as e:
                raise StoreUnavailableError(f"PocketBase error writing setting '{full_key}': {e}") from e

        logger.debug(f"Stored setting '{full_key}' in PocketBase")

    def delete_raw(self, full_key: str) -> None:
        with self._lock:
            record = self._find_record(full_key)
            if record is None:
                return
            try:
                self._collection().delete(record.id)
            except ClientResponseError as e:
                raise StoreUnavailableError(f"PocketBase error deleting setting '{full_key}': {e}") from e

    def all_raw(self) -> dict[str, str]:
        try:
            records = self._collection().get_full_list()
        except ClientResponseError as e:
            raise StoreUnavailableError(f"PocketBase error listing settings: {e}") from e

        result: dict[str, str] = {}
        for record in records:
            category = getattr(record, "category", "")
            key = getattr(record, "setting_key", "")
            value = getattr(record, "value", None)
            if category and key and value is not None:
                result[f"{category}.{key}"] = str(value)
        return result

    def _remember(self, full_key: str, record_id: str | None, previous: str | None) -> None:
        if self._journal is None or record_id is None:
            return
        # Only the state before the first write in this transaction matters
        if any(entry[0] == full_key for entry in self._journal):
            return
        self._journal.append((full_key, record_id, previous))

    def _compensate(self, journal: list[tuple[str, str | None, str | None]]) -> None:
        for full_key, record_id, previous in reversed(journal):
            try:
                if previous is None:
                    self._collection().delete(record_id)
                else:
                    self._collection().update(record_id, {"value": previous})
            except ClientResponseError as e:
                logger.error(f"Failed to roll back setting '{full_key}' in PocketBase: {e}")

    def run_in_transaction(self, fn: Callable[[], T]) -> T:
        with self._lock:
            if self._journal is not None:
                return fn()

            self._journal = []
            try:
                return fn()
            except BaseException:
                journal = self._journal
                self._journal = None
                logger.info(f"Rolling back {len(journal)} PocketBase setting write(s)")
                self._compensate(journal)
                raise
            finally:
                self._journal = None
