#  -*- coding: utf-8 -*-
"""
Reserved keys of the encoded node envelope.

A composite value is encoded as a JSON object::

    {
        "__class": "<registry name>",
        "__id": "<registry name>_<visit index>",
        <payload>
    }

where the payload is ``"items"`` for sequences, ``"values"`` for sets,
``"entries"`` (a list of ``[key, value]`` pairs) for maps, ``"date"`` for
timestamps, or the attributes of an instance flattened into the node.
A value that was already encoded earlier in the same document is replaced by
a back-reference ``{"__ref": "<id>"}``.
"""

from __future__ import annotations

from typing import Any


CLASS_KEY = '__class'
ID_KEY = '__id'
REF_KEY = '__ref'
MANAGED_KEY = '__managed'

ITEMS_KEY = 'items'
VALUES_KEY = 'values'
ENTRIES_KEY = 'entries'
DATE_KEY = 'date'

METADATA_KEYS = frozenset({CLASS_KEY, ID_KEY, MANAGED_KEY})

# class attribute carried by managed instances (see novelo.serialization)
MANAGED_MARKER = '__serialized_class__'


def make_reference(node_id: str) -> dict[str, str]:
    return {REF_KEY: node_id}


def is_reference(node: Any) -> bool:
    return isinstance(node, dict) and REF_KEY in node


def own_properties(node: dict[str, Any]) -> dict[str, Any]:
    """Return the node's entries without the envelope metadata."""
    return {k: v for k, v in node.items() if k not in METADATA_KEYS}
