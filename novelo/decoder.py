#  -*- coding: utf-8 -*-
"""
Graph decoder: JSON text -> live object graph.

The decoder is the left inverse of :mod:`novelo.encoder`. For every tagged
node it allocates an empty shell of the registered class, records it under
the node's id and only then fills it, so back-references met while filling
(cycles included) resolve to the very object being built.

Nodes whose ``"__class"`` is unknown to the registry are rebuilt as plain
``dict`` records holding the node's own properties. Documents produced by a
newer process with more registered kinds therefore still load, at the cost
of type-specific behavior.
"""

from __future__ import annotations

import json
import logging

from novelo.errors import GraphError, ParseError, DanglingReferenceError
from novelo.node import (CLASS_KEY, ID_KEY, REF_KEY, ITEMS_KEY, VALUES_KEY,
                         ENTRIES_KEY, DATE_KEY, is_reference, own_properties)
from novelo.registry import ClassRegistry, ClassRecipe, Kind, default_registry, check_types

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any


logger = logging.getLogger(__name__)

RefsTable = dict[str, Any]


def _record(refs: RefsTable, node_id: str | None, value: Any) -> None:
    if node_id is None:
        return

    if not isinstance(node_id, str):
        raise ParseError(f"Node id must be a string, got {node_id!r}")

    refs[node_id] = value


class GraphDecoder:
    """
    Decode JSON graph documents into live objects.

    Parameters
    ----------
    registry : ClassRegistry, optional
        Kinds to reconstruct. Defaults to the process-wide registry.

    Notes
    -----
    Instances are allocated with ``cls.__new__(cls)``: ``__init__`` is never
    run and attributes are restored with ``object.__setattr__``. An attribute
    is not restored when the class already provides that name as behavior (a
    method, a property, any non-slot descriptor). This protects the class
    but also means that data stored under such a name is dropped.

    The ``"__managed"`` flag written for managed instances is accepted and
    ignored.
    """

    def __init__(self, registry: ClassRegistry | None = None) -> None:
        self.registry = registry if registry is not None else default_registry

    # ========== ========== ========== ========== ========== private methods
    def _decode_node(self, node: Any, refs: RefsTable) -> Any:

        if isinstance(node, list):
            return [self._decode_node(item, refs) for item in node]

        if not isinstance(node, dict):
            return node

        if is_reference(node):
            try:
                return refs[node[REF_KEY]]
            except (KeyError, TypeError):
                raise DanglingReferenceError(node[REF_KEY]) from None

        name = node.get(CLASS_KEY)
        recipe = self.registry.lookup(name) if isinstance(name, str) else None

        if recipe is None:

            if name is not None:
                logger.debug("Unknown kind %r decoded as a plain record", name)

            return self._decode_record(node, refs)

        return self._decode_tagged(node, recipe, refs)

    def _decode_record(self, node: dict[str, Any], refs: RefsTable) -> dict[str, Any]:
        record: dict[str, Any] = {}

        _record(refs, node.get(ID_KEY), record)

        for key, item in own_properties(node).items():
            record[key] = self._decode_node(item, refs)

        return record

    def _decode_tagged(self, node: dict[str, Any], recipe: ClassRecipe, refs: RefsTable) -> Any:

        try:
            return self._build_tagged(node, recipe, refs)

        except GraphError:
            raise

        except (TypeError, KeyError, ValueError, AttributeError) as error:
            raise ParseError(f"Malformed {node.get(CLASS_KEY)!r} node: {error!r}") from error

    def _build_tagged(self, node: dict[str, Any], recipe: ClassRecipe, refs: RefsTable) -> Any:
        node_id = node.get(ID_KEY)

        # ---------- ---------- built from data: nothing inside can point back before it exists
        if recipe.kind is Kind.TIMESTAMP:
            shell = recipe.allocate(node[DATE_KEY])
            _record(refs, node_id, shell)
            return shell

        if recipe.frozen:
            key = ITEMS_KEY if recipe.kind is Kind.SEQUENCE else VALUES_KEY
            items = [self._decode_node(item, refs) for item in node.get(key, ())]

            # a definition nested in its own children was completed first
            if isinstance(node_id, str) and node_id in refs:
                return refs[node_id]

            shell = recipe.allocate(items)
            _record(refs, node_id, shell)
            return shell

        # ---------- ---------- shell first, then children
        shell = recipe.allocate()
        _record(refs, node_id, shell)

        if recipe.kind is Kind.SEQUENCE:
            for item in node.get(ITEMS_KEY, ()):
                shell.append(self._decode_node(item, refs))

        elif recipe.kind is Kind.SET:
            for item in node.get(VALUES_KEY, ()):
                shell.add(self._decode_node(item, refs))

        elif recipe.kind is Kind.MAPPING:
            for key, item in node.get(ENTRIES_KEY, ()):
                key = self._decode_node(key, refs)
                shell[key] = self._decode_node(item, refs)

        else:
            for key, item in own_properties(node).items():

                # decoded even when skipped: the ids it defines may be referenced later
                value = self._decode_node(item, refs)

                if recipe.supplies_behavior(shell, key):
                    logger.debug("Attribute %r of %s not restored: shadowed by class behavior",
                                 key, node.get(CLASS_KEY))
                    continue

                object.__setattr__(shell, key, value)

        return shell

    # ========== ========== ========== ========== ========== public methods
    def decode(self, tree: Any) -> Any:
        """Rebuild a live graph from an already parsed node tree."""
        refs: RefsTable = {}
        value = self._decode_node(tree, refs)

        logger.debug("Decoded %d identified values", len(refs))

        return value

    def deserialize(self, text: str | bytes | bytearray) -> Any:
        """
        Parse a JSON graph document and rebuild the graph it describes.

        Raises
        ------
        ParseError
            If ``text`` is not well-formed JSON, or a tagged node has a payload
            its kind cannot be built from (missing ``"date"``, non-iterable
            ``"values"``, ...).
        DanglingReferenceError
            If a back-reference points to an id that is not defined before it.
        """
        check_types(text, (str, bytes, bytearray))

        try:
            tree = json.loads(text)

        except json.JSONDecodeError as error:
            raise ParseError(f"Malformed graph document: {error.msg}",
                             lineno=error.lineno, colno=error.colno) from error

        except UnicodeDecodeError as error:
            raise ParseError(f"Malformed graph document: {error.reason}") from error

        return self.decode(tree)


def decode(tree: Any, registry: ClassRegistry | None = None) -> Any:
    return GraphDecoder(registry).decode(tree)


def deserialize(text: str | bytes | bytearray, registry: ClassRegistry | None = None) -> Any:
    """Rebuild the graph described by a JSON graph document."""
    return GraphDecoder(registry).deserialize(text)


__all__ = [
    'GraphDecoder',
    'decode',
    'deserialize',
]
