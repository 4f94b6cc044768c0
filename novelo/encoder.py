#  -*- coding: utf-8 -*-
"""
Graph encoder: live object graph -> JSON text.

The encoder walks the graph in pre-order. Every registered composite value
receives an id ``"<kind name>_<n>"`` (``n`` being the number of values
visited so far) *before* its children are visited, so that a child pointing
back to one of its ancestors is written as ``{"__ref": "<id>"}`` instead of
being encoded again. Output is therefore finite for any cyclic graph and
deterministic for an unchanged one.

Frozen containers (``tuple``, ``frozenset``) are rebuilt from their children,
so a decoder cannot hand them out before their children exist. Their id is
reserved in pre-order but stays pending until the children are written. When
a pending container is reached again from inside itself, it is defined again
under the same id instead of being referenced; the decoder keeps whichever
definition is completed first.

Values whose class is not registered are passed through unchanged and left
to the ``json`` module, exactly as plain ``json.dumps`` would treat them.
"""

from __future__ import annotations

import json
import logging

from novelo.node import (CLASS_KEY, ID_KEY, MANAGED_KEY, METADATA_KEYS, REF_KEY,
                         ITEMS_KEY, VALUES_KEY, ENTRIES_KEY, DATE_KEY,
                         MANAGED_MARKER, make_reference)
from novelo.registry import ClassRegistry, Kind, default_registry, is_primitive

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any


logger = logging.getLogger(__name__)

VisitedTable = dict[int, tuple[str, Any, bool]]


class GraphEncoder:
    """
    Encode object graphs into JSON documents.

    Parameters
    ----------
    registry : ClassRegistry, optional
        Kinds to recognize. Defaults to the process-wide registry.
    indent : int or None
        Passed to ``json.dumps``.

    Examples
    --------
    >>> encoder = GraphEncoder()
    >>> encoder.serialize({1, 2, 3})
    '{"__class": "set", "__id": "set_0", "values": [1, 2, 3]}'
    """

    def __init__(self, registry: ClassRegistry | None = None, indent: int | None = None) -> None:
        self.registry = registry if registry is not None else default_registry
        self.indent = indent

    # ========== ========== ========== ========== ========== private methods
    def _encode_node(self, value: Any, visited: VisitedTable) -> Any:

        if is_primitive(value):
            return value

        entry = visited.get(id(value))

        if entry is not None and not entry[2]:
            return make_reference(entry[0])

        match = self.registry.recipe_of(value)

        if match is None:
            return value

        name, recipe = match

        if entry is None:
            # the source value is kept alive with its id so that the id cannot be
            # recycled by another object while the traversal runs
            node_id = f"{name}_{len(visited)}"
            visited[id(value)] = (node_id, value, recipe.frozen)
        else:
            # pending frozen container reached from inside itself
            node_id = entry[0]

        node: dict[str, Any] = {CLASS_KEY: name, ID_KEY: node_id}

        if recipe.kind is Kind.SEQUENCE:
            node[ITEMS_KEY] = [self._encode_node(item, visited) for item in value]

        elif recipe.kind is Kind.SET:
            node[VALUES_KEY] = [self._encode_node(item, visited) for item in value]

        elif recipe.kind is Kind.MAPPING:
            node[ENTRIES_KEY] = [[self._encode_node(key, visited), self._encode_node(item, visited)]
                                 for key, item in value.items()]

        elif recipe.kind is Kind.TIMESTAMP:
            node[DATE_KEY] = recipe.format(value)

        else:
            for key, attribute in recipe.attributes(value).items():

                if key in METADATA_KEYS or key == REF_KEY:
                    raise ValueError(f"Attribute {key!r} of {name} collides with a reserved node key")

                node[key] = self._encode_node(attribute, visited)

        if recipe.frozen:
            visited[id(value)] = (node_id, value, False)

        if getattr(value, MANAGED_MARKER, False) is True:
            node[MANAGED_KEY] = True

        return node

    @staticmethod
    def _unsupported(obj: Any) -> Any:
        error = f"No serialisation process is implemented for object of " \
                f"type {type(obj).__name__}."
        raise TypeError(error)

    # ========== ========== ========== ========== ========== public methods
    def encode(self, value: Any) -> Any:
        """
        Encode ``value`` into a tree of JSON-compatible nodes.

        Each call owns a fresh visited table, so ids always start at 0.
        """
        visited: VisitedTable = {}
        tree = self._encode_node(value, visited)

        logger.debug("Encoded %d composite values", len(visited))

        return tree

    def serialize(self, value: Any) -> str:
        """
        Encode ``value`` and render it as JSON text.

        Raises
        ------
        TypeError
            If an unregistered, non-JSON value is reached.
        """
        return json.dumps(self.encode(value), indent=self.indent, default=self._unsupported)


def encode(value: Any, registry: ClassRegistry | None = None) -> Any:
    return GraphEncoder(registry).encode(value)


def serialize(value: Any, registry: ClassRegistry | None = None, indent: int | None = None) -> str:
    """Render ``value`` as a JSON graph document."""
    return GraphEncoder(registry, indent=indent).serialize(value)


__all__ = [
    'GraphEncoder',
    'encode',
    'serialize',
]
