"""Category registry for setting schemas.

Modules register their schemas during bootstrap, in any order. Registering
a category twice merges the schemas: the later definition of a key wins and
new keys are appended, so UI ordering stays stable.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

import networkx as nx

from .schema import Definition, Schema
from .types import FullKey

logger = logging.getLogger(__name__)

DEFAULT_GROUP = "General"


class Registry:
    """Map of category name to Schema with merge semantics."""

    def __init__(self) -> None:
        self._schemas: dict[str, Schema] = {}
        self._lock = threading.RLock()
        self._graph: nx.DiGraph | None = None

    def register(self, schema: Schema) -> None:
        """
        Register a schema, merging into an existing category if present.

        Raises:
            TypeError: If ``schema`` is not a Schema
        """
        if not isinstance(schema, Schema):
            raise TypeError(f"Expected Schema, got {type(schema).__name__}")

        with self._lock:
            existing = self._schemas.get(schema.category)
            self._graph = None
            if existing is None:
                self._schemas[schema.category] = Schema(schema.category, definitions=schema.definitions)
                logger.debug(f"Registered settings category '{schema.category}' ({len(schema)} settings)")
            else:
                self._schemas[schema.category] = existing.merge(schema)
                logger.debug(f"Merged {len(schema)} settings into category '{schema.category}'")

    def define(self, category: str, build: Callable[[Schema], Any]) -> Schema:
        """Build a fresh schema with ``build`` and register it."""
        schema = Schema(category, build=build)
        self.register(schema)
        return schema

    def categories(self) -> list[str]:
        return list(self._schemas)

    def for_category(self, category: str) -> Schema | None:
        return self._schemas.get(category)

    def all(self) -> list[Schema]:
        return list(self._schemas.values())

    def find_definition(self, full_key: str | FullKey) -> Definition | None:
        """
        Look up a definition by full key.

        Returns:
            The Definition, or None for a malformed or unregistered key
        """
        parsed = FullKey.parse(full_key)
        if parsed is None:
            return None
        schema = self._schemas.get(parsed.category)
        if schema is None:
            return None
        return schema.find(parsed.key)

    def grouped_definitions(self, category: str) -> dict[str, list[Definition]]:
        """
        Definitions of a category grouped by display label.

        Groups appear in first-seen order, with "General" (the label for
        ungrouped settings) moved to the front when present.
        """
        schema = self._schemas.get(category)
        if schema is None:
            return {}

        groups: dict[str, list[Definition]] = {}
        for definition in schema:
            groups.setdefault(definition.group or DEFAULT_GROUP, []).append(definition)

        if DEFAULT_GROUP in groups and next(iter(groups)) != DEFAULT_GROUP:
            general = groups.pop(DEFAULT_GROUP)
            groups = {DEFAULT_GROUP: general, **groups}
        return groups

    def dependency_graph(self) -> nx.DiGraph:
        """Directed graph with an edge from each setting to the key it depends on."""
        graph = self._graph
        if graph is not None:
            return graph
        # register() clears _graph under the same lock
        with self._lock:
            if self._graph is None:
                graph = nx.DiGraph()
                for schema in self._schemas.values():
                    for definition in schema:
                        full_key = definition.full_key(schema.category)
                        graph.add_node(full_key)
                        if definition.depends_on:
                            graph.add_edge(full_key, definition.depends_on)
                self._graph = graph
            return self._graph

    def find_dependency_cycle(self, full_key: str) -> list[str] | None:
        """
        Find a dependency cycle reachable from ``full_key``.

        Returns:
            The keys along the cycle (first key repeated at the end), or None
        """
        graph = self.dependency_graph()
        if full_key not in graph:
            return None
        try:
            edges = nx.find_cycle(graph, source=full_key)
        except nx.NetworkXNoCycle:
            return None
        return [edge[0] for edge in edges] + [edges[-1][1]]
