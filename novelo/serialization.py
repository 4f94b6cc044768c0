#  -*- coding: utf-8 -*-
"""
Managed classes and HDF5 persistence on top of the graph serializer.

This module provides:

- ``Serializable``: base class whose subclasses take part in graph
  serialization without explicit registration. Every subclass is registered
  in the default :class:`~novelo.registry.ClassRegistry` under its fully
  qualified name when the class statement runs, and its instances are
  flagged as *managed* in encoded documents (``"__managed": true``).
- ``Persistable``: a ``Serializable`` that saves itself as a graph document
  inside an HDF5 file.
- ``assign``: copy matching fields from plain data onto an existing object.

Managed marker
--------------
The ``"__managed"`` flag is written for consumers of the encoded document
(host frameworks that want to know which nodes are managed view models). The
decoder accepts it and attaches no behavior to it.

Examples
--------
>>> class Probe(Serializable):
...     def __init__(self, name, readings=None):
...         self.name = name
...         self.readings = readings or []
>>> probe = Probe('p-01', [1.5, 2.5])
>>> clone = Serializable.deserialize(probe.serialize())
>>> type(clone) is Probe, clone.readings
(True, [1.5, 2.5])
"""

from __future__ import annotations

import json
import logging

import h5py

from abc import ABCMeta
from pathlib import Path

from novelo.copier import UNLIMITED, DeepCopier, deep_copy
from novelo.decoder import deserialize
from novelo.encoder import serialize
from novelo.errors import ParseError
from novelo.registry import default_registry, get_full_qualified_name, check_types

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Self, Type, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar('T')


# ========== ========== ========== ========== ========== ==========
class SerializableMetatype(ABCMeta):
    """
    Metaclass registering every ``Serializable`` subclass.

    Subclasses are registered in the default registry under their fully
    qualified name, or under the ``registry_name`` class keyword when given::

        class Point(Serializable, registry_name='geometry.Point'):
            ...

    The metaclass also supports:

    - lookup: ``Serializable[name]``
    - membership: ``name in Serializable`` or ``cls in Serializable``
    """

    # ========== ========== ========== ========== ========== special methods
    def __new__(mcs,
                name: str,
                bases: tuple[type, ...],
                namespace: dict[str, Any],
                registry_name: str | None = None,
                **kwargs: Any) -> Type[Serializable]:

        cls = super().__new__(mcs, name, bases, namespace, **kwargs)

        # ---------- ---------- ---------- ---------- ---------- ----------
        if any(isinstance(base, SerializableMetatype) for base in bases):

            if registry_name is None:
                registry_name = get_full_qualified_name(cls)

            default_registry.register(registry_name, cls)

        # ---------- ---------- ---------- ---------- ---------- ----------
        return cls

    def __init__(cls,
                 name: str,
                 bases: tuple[type, ...],
                 namespace: dict[str, Any],
                 registry_name: str | None = None,
                 **kwargs: Any) -> None:
        super().__init__(name, bases, namespace, **kwargs)

    def __getitem__(cls, name: str) -> Type[Serializable]:
        """
        Resolve a registered Serializable subclass by its registry name.

        Raises
        ------
        KeyError
            If no Serializable subclass is registered under ``name``.
        """
        if cls is not Serializable:
            raise KeyError(f'Class {cls.__name__} is not subscriptable')

        recipe = default_registry.lookup(name)

        if recipe is None or not issubclass(recipe.cls, Serializable):
            raise KeyError(name)

        return recipe.cls

    def __contains__(cls, subclass: str | type) -> bool:
        if cls is not Serializable:
            raise NotImplementedError()

        if isinstance(subclass, str):
            try:
                cls[subclass]
            except KeyError:
                return False
            return True

        if isinstance(subclass, type):
            return issubclass(subclass, Serializable) and subclass in default_registry

        raise TypeError('Expected the class registry name or the class itself')

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def serializable_types(cls) -> list[Type[Serializable]]:
        """Serializable subclasses currently registered."""
        return [_type for _type in default_registry.registered_types
                if isinstance(_type, SerializableMetatype) and _type is not Serializable]


class Serializable(metaclass=SerializableMetatype):
    """
    Base class for managed, graph-serializable objects.

    Construction
    ------------
    Serializable(**kwargs)
        Sets each keyword as an instance attribute. Subclasses usually define
        their own ``__init__``; it is never run when an instance is decoded or
        copied.

    Copying
    -------
    ``copy.copy(obj)`` gives a depth-0 copy (new object, shared attribute
    values), ``copy.deepcopy(obj)`` and ``obj.copy()`` a fully detached one.

    See Also
    --------
    Persistable
    novelo.registry.ClassRegistry
    """
    # ========== ========== ========== ========== ========== class attributes
    __serialized_class__: bool = True

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, **kwargs: Any) -> None:
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __copy__(self) -> Self:
        return deep_copy(self, 0)

    def __deepcopy__(self, memo: dict[int, Any]) -> Self:
        return DeepCopier().copy(self, memo=memo)

    # ========== ========== ========== ========== ========== public methods
    def serialize(self, indent: int | None = None) -> str:
        """Encode this object and everything reachable from it as JSON text."""
        return serialize(self, indent=indent)

    @classmethod
    def deserialize(cls, text: str | bytes) -> Any:
        """
        Rebuild an object graph from JSON text.

        When called on a subclass, the decoded root must be an instance of
        that subclass.

        Raises
        ------
        TypeError
            If the root is not an instance of ``cls``.
        """
        value = deserialize(text)

        if cls is not Serializable and not isinstance(value, cls):
            error = f"Expected an encoded {cls.__name__}, " \
                    f"got {type(value).__name__} instead"
            raise TypeError(error)

        return value

    def copy(self, depth: int = UNLIMITED) -> Self:
        """
        Copy this object down to ``depth`` levels below it.

        Parameters
        ----------
        depth : int, default UNLIMITED
            See :func:`novelo.copier.deep_copy`.
        """
        return deep_copy(self, depth)


# ========== ========== ========== ========== ========== ==========
class Persistable(Serializable):
    """
    Serializable that can be persisted to disk using HDF5.

    The graph document produced by :meth:`Serializable.serialize` is stored
    as a UTF-8 string dataset named ``root``. The file attributes identify
    the format so that foreign HDF5 files are rejected on load.

    File extension
    --------------
    The default file extension is stored in the class attribute
    ``extension``. When ``save(..., use_default_extension=True)`` is used,
    the given path is rewritten with this suffix.
    """

    # ========== ========== ========== ========== ========== class attributes
    extension: str = '.hdf5'

    format_name: str = 'novelo-graph'
    format_version: int = 1

    # ========== ========== ========== ========== ========== public methods
    @classmethod
    def save_serialized_data(cls, path: Path | str, text: str) -> None:
        """
        Write a graph document to an HDF5 file.

        Parameters
        ----------
        path : str or Path
            Destination file path. No extension handling is done here.
        text : str
            Graph document as produced by ``serialize``.
        """
        check_types(text, str)

        with h5py.File(Path(path), 'w') as file:
            file.attrs['__format__'] = cls.format_name
            file.attrs['__version__'] = cls.format_version
            file.create_dataset('root', data=text, dtype=h5py.string_dtype(encoding='utf-8'))

        logger.debug("Saved %d characters to %s", len(text), path)

    @classmethod
    def load_serialized_data(cls, path: Path | str) -> str:
        """
        Read a graph document from an HDF5 file.

        Raises
        ------
        FileNotFoundError
            If the path does not exist or is not a file.
        ParseError
            If the file does not hold a graph document.
        """
        path = Path(path)

        if not path.is_file():
            raise FileNotFoundError(f"Path {path} does not exist")

        with h5py.File(path, 'r') as file:

            if file.attrs.get('__format__') != cls.format_name or 'root' not in file:
                raise ParseError(f"{path} does not hold a {cls.format_name} document")

            text = file['root'].asstr()[()]

        logger.debug("Loaded %d characters from %s", len(text), path)

        return text

    def save(self,
             path: Path | str,
             overwrite: bool = True,
             use_default_extension: bool = True) -> Path:
        """
        Serialize and save this instance to an HDF5 file.

        Parameters
        ----------
        path : str or Path
            Output path.
        overwrite : bool, default True
            If False and the file exists, raises FileExistsError.
        use_default_extension : bool, default True
            If True, rewrites the suffix of ``path`` to ``type(self).extension``.

        Returns
        -------
        Path
            The path actually written.
        """
        # ---------- ---------- resolve path
        path = Path(path)

        if use_default_extension:
            path = path.with_suffix(type(self).extension)

        if path.is_file() and not overwrite:
            raise FileExistsError(f"Path {path} already exists")

        # ---------- ---------- save
        self.save_serialized_data(path, self.serialize())

        return path

    @classmethod
    def load(cls, path: Path | str) -> Any:
        """
        Load and deserialize an object graph saved with :meth:`save`.

        The returned object is the concrete class encoded in the document
        (not necessarily ``cls``).
        """
        return deserialize(cls.load_serialized_data(path))


load = Persistable.load


# ========== ========== ========== ========== ========== ==========
def assign(target: T | type[T], source: Any) -> T:
    """
    Copy same-named values from plain data onto an existing object.

    Only fields the target already has are written: attributes present in
    its instance ``__dict__`` or, for a ``dict`` target, its existing keys.
    Nothing is added. When both target and source are lists, the target's
    elements are replaced by the source's first.

    Parameters
    ----------
    target : object or class
        Object to update. A class is instantiated without arguments.
    source : str, bytes, dict or list
        Plain data, or JSON text holding it.

    Returns
    -------
    object
        The updated target.

    Raises
    ------
    ParseError
        If ``source`` is text that is not well-formed JSON.

    Examples
    --------
    >>> class Form:
    ...     def __init__(self):
    ...         self.name = ''
    ...         self.age = 0
    >>> form = assign(Form, '{"name": "Ada", "email": "ada@example.com"}')
    >>> form.name, form.age, hasattr(form, 'email')
    ('Ada', 0, False)
    """
    if isinstance(target, type):
        target = target()

    if isinstance(source, (str, bytes, bytearray)):
        try:
            source = json.loads(source)
        except json.JSONDecodeError as error:
            raise ParseError(f"Malformed JSON: {error.msg}", lineno=error.lineno, colno=error.colno) from error

    if isinstance(target, list) and isinstance(source, list):
        target.clear()
        target.extend(source)

    if not isinstance(source, dict):
        return target

    if isinstance(target, dict):
        for key in list(target):
            if key in source:
                target[key] = source[key]

    else:
        for key in list(getattr(target, '__dict__', {})):
            if key in source:
                setattr(target, key, source[key])

    return target


__all__ = [
    'SerializableMetatype',
    'Serializable',
    'Persistable',
    'load',
    'assign',
]
