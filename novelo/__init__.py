#  -*- coding: utf-8 -*-
"""
Novelo: graph-aware JSON serialization and deep copy for Python objects.

Plain JSON only knows primitives, objects and arrays. Novelo walks live object
graphs and writes every registered composite value (lists, tuples, sets,
dicts with arbitrary keys, datetimes and tagged class instances) as a tagged
JSON node, replacing values met a second time by back-references. Decoding
rebuilds the same classes and the same sharing topology, cycles included.

Key Features
------------
- **Identity-preserving round trips**: shared sub-objects are decoded as one
  object, cycles terminate and are rebuilt exactly once
- **Pluggable kinds**: a registry maps kind names to construction recipes
- **Forward compatibility**: unknown kinds decode as plain records
- **Depth-limited deep copy** sharing the same identity tracking
- **HDF5 persistence** and **Rich inspection** of graph documents

Modules
-------
registry
    Kinds, construction recipes and the default class registry
encoder / decoder
    Graph <-> JSON text
copier
    Depth-limited deep copy
serialization
    Managed ``Serializable`` base class, ``Persistable`` and ``assign``
display
    ``DisplaySettings``, ``Displayable`` and ``GraphReport``

Examples
--------
>>> import novelo
>>> config = {'name': 'run-7'}
>>> graph = {'a': config, 'b': config}
>>> graph['self'] = graph
>>> clone = novelo.deserialize(novelo.serialize(graph))
>>> clone['a'] is clone['b'], clone['self'] is clone
(True, True)
"""

import logging

from .errors import *
from .registry import *
from .encoder import *
from .decoder import *
from .copier import *
from .serialization import *
from .display import *


logging.getLogger(__name__).addHandler(logging.NullHandler())


__all__ = [
    "GraphError",
    "ParseError",
    "DanglingReferenceError",
    "Kind",
    "ClassRecipe",
    "ClassRegistry",
    "default_registry",
    "register",
    "register_class",
    "lookup",
    "GraphEncoder",
    "GraphDecoder",
    "DeepCopier",
    "serialize",
    "deserialize",
    "encode",
    "decode",
    "deep_copy",
    "UNLIMITED",
    "Serializable",
    "Persistable",
    "assign",
    "load",
    "DisplaySettings",
    "Displayable",
    "GraphReport",
]


try:
    # this will run if novelo is installed
    from importlib.metadata import metadata, PackageNotFoundError

    meta = metadata('novelo')

    __author__ = meta.get('Author-email') or meta.get('Author')
    __license__ = meta.get('License')
    __version__ = meta['Version']

except PackageNotFoundError:
    # this will run during development
    import toml
    from pathlib import Path

    pyproject_filepath = Path(__file__).parent.parent / "pyproject.toml"

    with pyproject_filepath.open() as file:
        pyproject = toml.load(file)

    __version__ = pyproject["project"]["version"]
    __author__ = pyproject["project"]["authors"][0]["name"]
    __license__ = pyproject["project"]["license"]["text"]
