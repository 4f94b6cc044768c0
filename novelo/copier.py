#  -*- coding: utf-8 -*-
"""
Depth-limited deep copy built on the same walker as the encoder.

``deep_copy(value, depth)`` produces a clone whose composite values are new
objects down to ``depth`` levels below the root; anything deeper is shared
with the source. Identity is tracked exactly as in the encoder, except that
the table maps a source id to the copy already produced for it, so shared
sub-objects stay shared and cycles are reproduced instead of followed
forever.

Depth
-----
``depth < 0`` (``UNLIMITED``)
    Fully detached graph.
``depth == 0``
    New top-level shell; its children are the source's children.
``depth == n``
    Children are copied ``n`` levels down; values at level ``n + 1`` are
    shared with the source.
"""

from __future__ import annotations

import logging

from novelo.registry import ClassRegistry, ClassRecipe, Kind, default_registry, is_primitive, check_types

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar('T')

UNLIMITED = -1
"""Depth value that never runs out"""

SeenTable = dict[int, tuple[Any, Any]]


class DeepCopier:
    """
    Copy object graphs up to a given depth.

    Parameters
    ----------
    registry : ClassRegistry, optional
        Kinds to copy. Values of unregistered classes are shared, never
        copied. Defaults to the process-wide registry.
    """

    def __init__(self, registry: ClassRegistry | None = None) -> None:
        self.registry = registry if registry is not None else default_registry

    # ========== ========== ========== ========== ========== private methods
    def _copy_node(self, value: Any, seen: SeenTable, level: int) -> Any:

        if is_primitive(value):
            return value

        entry = seen.get(id(value))

        if entry is not None:
            return entry[0]

        if level == 0:
            return value

        match = self.registry.recipe_of(value)

        if match is None:
            return value

        _, recipe = match

        next_level = level if level < 0 else level - 1

        if recipe.kind is Kind.TIMESTAMP:
            copy = recipe.clone_timestamp(value)
            seen[id(value)] = (copy, value)
            return copy

        if recipe.frozen:
            return self._copy_frozen(value, recipe, seen, next_level)

        copy = recipe.allocate()
        seen[id(value)] = (copy, value)

        if recipe.kind is Kind.SEQUENCE:
            for item in value:
                copy.append(self._copy_node(item, seen, next_level))

        elif recipe.kind is Kind.SET:
            for item in value:
                copy.add(self._copy_node(item, seen, next_level))

        elif recipe.kind is Kind.MAPPING:
            for key, item in value.items():
                copy[self._copy_node(key, seen, next_level)] = self._copy_node(item, seen, next_level)

        else:
            for key, attribute in recipe.attributes(value).items():

                if recipe.supplies_behavior(copy, key):
                    continue

                object.__setattr__(copy, key, self._copy_node(attribute, seen, next_level))

        return copy

    def _copy_frozen(self, value: Any, recipe: ClassRecipe, seen: SeenTable, level: int) -> Any:
        items = [self._copy_node(item, seen, level) for item in value]

        # the value may have been reached again through a mutable child; that
        # copy already stands for it in the rest of the graph
        entry = seen.get(id(value))

        if entry is not None:
            return entry[0]

        copy = recipe.allocate(items)
        seen[id(value)] = (copy, value)

        return copy

    # ========== ========== ========== ========== ========== public methods
    def copy(self, value: T, depth: int = UNLIMITED, memo: dict[int, Any] | None = None) -> T:
        """
        Copy ``value`` down to ``depth`` levels below it.

        Parameters
        ----------
        value : object
            Root of the graph to copy.
        depth : int, default UNLIMITED
            Number of levels under the root that are detached from the
            source. Negative means unlimited.
        memo : dict, optional
            A :func:`copy.deepcopy` memo. Copies already recorded in it are
            reused, and the copies made here are added to it.

        Returns
        -------
        object
            The copy. Primitives and unregistered values are returned as they
            are.
        """
        check_types(depth, int)

        if isinstance(depth, bool):
            raise TypeError("depth must be an int, not a bool")

        seen: SeenTable = {}

        if memo is not None:
            seen.update((key, (clone, None)) for key, clone in memo.items() if key != id(memo))

        # the root itself always gets a new shell, hence one extra level
        level = UNLIMITED if depth < 0 else depth + 1

        copy = self._copy_node(value, seen, level)

        if memo is not None:
            keep_alive = memo.setdefault(id(memo), [])

            for key, (clone, source) in seen.items():
                if key not in memo:
                    memo[key] = clone
                    keep_alive.append(source)

        logger.debug("Copied %d composite values (depth=%d)", len(seen), depth)

        return copy


def deep_copy(value: T, depth: int = UNLIMITED, registry: ClassRegistry | None = None) -> T:
    """Copy ``value`` down to ``depth`` levels below it; see :class:`DeepCopier`."""
    return DeepCopier(registry).copy(value, depth)


__all__ = [
    'UNLIMITED',
    'DeepCopier',
    'deep_copy',
]
