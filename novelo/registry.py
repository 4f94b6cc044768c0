#  -*- coding: utf-8 -*-
"""
Registry of the composite kinds the graph walkers know how to handle.

Every composite value the encoder, decoder or copier meets is looked up here
by its runtime class. A hit yields a :class:`ClassRecipe` that tells the
walker which :class:`Kind` of value it is, how to allocate an empty shell of
it and how to enumerate or assign its children. A miss means "plain data":
the encoder and copier pass the value through untouched and the decoder
rebuilds it as a plain ``dict``.

Built-in kinds
--------------
The default registry knows:

=============  =====================  =========  ==========================
name           class                  kind       notes
=============  =====================  =========  ==========================
``list``       ``list``               SEQUENCE
``tuple``      ``tuple``              SEQUENCE   frozen
``set``        ``set``                SET
``frozenset``  ``frozenset``          SET        frozen
``dict``       ``dict``               MAPPING
``datetime``   ``datetime.datetime``  TIMESTAMP  ISO-8601 text
``Timestamp``  ``pandas.Timestamp``   TIMESTAMP  nanosecond ISO-8601 text
=============  =====================  =========  ==========================

Frozen containers cannot be allocated empty and filled afterwards, so they
are built from their already reconstructed children.

Registration
------------
The registry is append-only. Registering a name that already exists replaces
its recipe (last writer wins) and never raises. Registration is expected to
happen at import/startup time, before concurrent use of the walkers begins;
no locking is performed.
"""

from __future__ import annotations

import datetime
import enum
import inspect
import logging
import types

import pandas

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Callable, Iterator, Type, TypeVar


logger = logging.getLogger(__name__)

C = TypeVar('C', bound=type)


# ========== ========== ========== ========== ========== ==========
def get_full_qualified_name(cls: type) -> str:
    """
    Get the fully qualified name of a class.

    Returns the full module path and class name, except for built-in types
    which return only the class name.

    Examples
    --------
    >>> get_full_qualified_name(list)
    'list'

    >>> from pathlib import Path
    >>> get_full_qualified_name(Path)
    'pathlib.Path'
    """
    module = cls.__module__

    if module is None or module == 'builtins':
        return cls.__qualname__

    return f"{module}.{cls.__qualname__}"


def check_types(obj: Any,
                types_: type | tuple[type, ...],
                can_be_none: bool = False,
                raise_error: bool = True) -> bool:
    """
    Check if ``obj`` is an instance of ``types_``.

    Parameters
    ----------
    obj : object
        Object whose type must be checked.
    types_ : type or tuple of types
        Expected types of ``obj``.
    can_be_none : bool
        Whether ``None`` is an acceptable value for ``obj``.
    raise_error : bool
        If True, a mismatch raises :class:`TypeError` instead of returning
        False.

    Returns
    -------
    bool
    """
    if can_be_none:
        if isinstance(types_, tuple):
            types_ = (*types_, type(None))
        else:
            types_ = (types_, type(None))

    result = isinstance(obj, types_)

    if not result and raise_error:

        if isinstance(types_, tuple):
            cls_names = ', '.join(get_full_qualified_name(cls) for cls in types_)
        else:
            cls_names = get_full_qualified_name(types_)

        error_msg = f"Expected instance of one of the following classes: {cls_names}. " \
                    f"Given {get_full_qualified_name(type(obj))} instead"
        raise TypeError(error_msg)

    return result


def is_primitive(value: Any) -> bool:
    """Values that are written to JSON as they are."""
    return value is None or isinstance(value, (bool, int, float, str))


# ========== ========== ========== ========== ========== Kind
class Kind(enum.Enum):
    """The fixed set of composite categories."""

    SEQUENCE = 'sequence'
    SET = 'set'
    MAPPING = 'mapping'
    TIMESTAMP = 'timestamp'
    INSTANCE = 'instance'


# ========== ========== ========== ========== ========== ClassRecipe
class ClassRecipe:
    """
    Construction recipe for one registered class.

    Parameters
    ----------
    cls : type
        The class whose instances this recipe handles. Matching is exact:
        subclasses need their own registration.
    kind : Kind, default Kind.INSTANCE
        Composite category of the class.
    frozen : bool, default False
        Immutable container (``tuple``, ``frozenset``). Frozen values are
        built from their children instead of being filled in place.
    parse : callable, optional
        ``parse(text) -> value``. Required for ``Kind.TIMESTAMP``.
    format : callable, optional
        ``format(value) -> text``. Defaults to ``value.isoformat()``.
    clone : callable, optional
        ``clone(value) -> value``, a new object holding the same instant and
        timezone. Defaults to ``parse(format(value))``, which keeps only the
        UTC offset the text carries.
    """

    __slots__ = ('cls', 'kind', 'frozen', 'parse', 'format', 'clone')

    def __init__(self,
                 cls: type,
                 kind: Kind = Kind.INSTANCE,
                 *,
                 frozen: bool = False,
                 parse: Callable[[str], Any] | None = None,
                 format: Callable[[Any], str] | None = None,
                 clone: Callable[[Any], Any] | None = None) -> None:

        check_types(cls, type)
        check_types(kind, Kind)

        if kind is Kind.TIMESTAMP and parse is None:
            raise ValueError(f"A timestamp recipe for {cls.__qualname__} needs a parse function")

        if frozen and kind not in (Kind.SEQUENCE, Kind.SET):
            raise ValueError("Only sequences and sets can be frozen")

        self.cls = cls
        self.kind = kind
        self.frozen = frozen
        self.parse = parse
        self.format = format if format is not None else (lambda value: value.isoformat())
        self.clone = clone

    def __repr__(self) -> str:
        frozen = ', frozen' if self.frozen else ''
        return f"ClassRecipe({get_full_qualified_name(self.cls)}, {self.kind.name}{frozen})"

    # ========== ========== ========== ========== ========== public methods
    def allocate(self, data: Any = None) -> Any:
        """
        Allocate a shell of this recipe's class.

        For mutable containers and instances the shell is empty and no
        ``__init__`` is run. Timestamps are parsed from ``data`` (ISO text)
        and frozen containers are built from ``data`` (their children).
        """
        if self.kind is Kind.TIMESTAMP:
            return self.parse(data)

        if self.frozen:
            return self.cls(data)

        return self.cls.__new__(self.cls)

    def clone_timestamp(self, value: Any) -> Any:
        """Return a new object holding the same instant as ``value``."""
        if self.clone is not None:
            return self.clone(value)

        return self.parse(self.format(value))

    @staticmethod
    def attributes(value: Any) -> dict[str, Any]:
        """
        Own attributes of an instance: its ``__dict__`` followed by the
        ``__slots__`` that hold a value.
        """
        attributes = dict(getattr(value, '__dict__', {}))

        for base in type(value).__mro__:

            slots = base.__dict__.get('__slots__', ())

            if isinstance(slots, str):
                slots = (slots,)

            for slot in slots:

                if slot in ('__dict__', '__weakref__'):
                    continue

                if slot.startswith('__') and not slot.endswith('__'):
                    slot = f"_{base.__name__.lstrip('_')}{slot}"

                try:
                    attributes[slot] = getattr(value, slot)
                except AttributeError:
                    continue

        return attributes

    @staticmethod
    def supplies_behavior(shell: Any, name: str) -> bool:
        """
        True when the shell's class already provides ``name`` as behavior:
        a method, a property or another descriptor (slots excluded).

        Restoring an attribute of that name would shadow the behavior, so the
        decoder and the copier skip it.
        """
        try:
            attribute = inspect.getattr_static(shell, name)
        except AttributeError:
            return False

        if isinstance(attribute, types.MemberDescriptorType):
            return False

        return callable(attribute) or hasattr(type(attribute), '__get__')


# ========== ========== ========== ========== ========== ClassRegistry
class ClassRegistry:
    """
    Mapping from a kind name to its :class:`ClassRecipe`.

    Parameters
    ----------
    builtins : bool, default True
        Pre-register the built-in kinds.

    Examples
    --------
    >>> registry = ClassRegistry()
    >>> class Point:
    ...     pass
    >>> registry.register('Point', Point)
    >>> registry.lookup('Point').kind
    <Kind.INSTANCE: 'instance'>
    >>> registry.name_of(Point())
    'Point'
    """

    def __init__(self, builtins: bool = True) -> None:
        self._recipes: dict[str, ClassRecipe] = {}
        self._names: dict[type, str] = {}

        if builtins:
            register_builtin_kinds(self)

    def __contains__(self, item: str | type) -> bool:
        if isinstance(item, str):
            return item in self._recipes

        if isinstance(item, type):
            return item in self._names

        raise TypeError('Expected the kind name or the class itself')

    def __len__(self) -> int:
        return len(self._recipes)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._recipes))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(self._recipes)})"

    # ========== ========== ========== ========== ========== public methods
    def register(self, name: str, recipe: ClassRecipe | type) -> None:
        """
        Register (or replace) the recipe stored under ``name``.

        Parameters
        ----------
        name : str
            Tag written to ``"__class"`` in encoded nodes.
        recipe : ClassRecipe or type
            A bare class is registered as a ``Kind.INSTANCE`` recipe.

        Notes
        -----
        When ``recipe.cls`` was registered before under another name, the
        old name keeps decoding but new encodings use ``name``.
        """
        check_types(name, str)

        if isinstance(recipe, type):
            recipe = ClassRecipe(recipe)

        check_types(recipe, ClassRecipe)

        previous = self._recipes.get(name)

        if previous is not None:

            if self._names.get(previous.cls) == name:
                del self._names[previous.cls]

            logger.debug("Kind %r replaced: %r -> %r", name, previous, recipe)

        else:
            logger.debug("Kind %r registered: %r", name, recipe)

        self._recipes[name] = recipe
        self._names[recipe.cls] = name

    def register_class(self, cls: C | None = None, name: str | None = None) -> C | Callable[[C], C]:
        """
        Register ``cls`` as a tagged instance kind.

        The default name is the fully qualified class name. Can be used as a
        class decorator, with or without the ``name`` argument.
        """
        def decorator(_cls: C) -> C:
            self.register(name if name is not None else get_full_qualified_name(_cls), _cls)
            return _cls

        if cls is None:
            return decorator

        return decorator(cls)

    def lookup(self, name: str) -> ClassRecipe | None:
        """Recipe registered under ``name``, or None."""
        return self._recipes.get(name)

    def name_of(self, value: Any) -> str | None:
        """
        Registered name of ``value``'s class, or None.

        The class is read through ``value.__class__`` so that transparent
        proxies (``weakref.proxy`` for instance) resolve to the class of the
        object they stand for.
        """
        return self._names.get(getattr(value, '__class__', type(value)))

    def recipe_of(self, value: Any) -> tuple[str, ClassRecipe] | None:
        """``(name, recipe)`` for ``value``'s class, or None."""
        name = self.name_of(value)

        if name is None:
            return None

        return name, self._recipes[name]

    def copy(self) -> ClassRegistry:
        """Independent registry holding the same entries."""
        other = type(self)(builtins=False)
        other._recipes.update(self._recipes)
        other._names.update(self._names)
        return other

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def names(self) -> list[str]:
        return list(self._recipes)

    @property
    def registered_types(self) -> list[Type]:
        return list(self._names)


def register_builtin_kinds(registry: ClassRegistry) -> None:
    registry.register('list', ClassRecipe(list, Kind.SEQUENCE))
    registry.register('tuple', ClassRecipe(tuple, Kind.SEQUENCE, frozen=True))
    registry.register('set', ClassRecipe(set, Kind.SET))
    registry.register('frozenset', ClassRecipe(frozenset, Kind.SET, frozen=True))
    registry.register('dict', ClassRecipe(dict, Kind.MAPPING))

    registry.register('datetime', ClassRecipe(datetime.datetime, Kind.TIMESTAMP,
                                              parse=datetime.datetime.fromisoformat,
                                              format=datetime.datetime.isoformat,
                                              clone=datetime.datetime.replace))

    registry.register('Timestamp', ClassRecipe(pandas.Timestamp, Kind.TIMESTAMP,
                                               parse=pandas.Timestamp,
                                               format=pandas.Timestamp.isoformat,
                                               clone=pandas.Timestamp.replace))


# ========== ========== ========== ========== ========== default registry
default_registry = ClassRegistry()

register = default_registry.register
register_class = default_registry.register_class
lookup = default_registry.lookup


__all__ = [
    'Kind',
    'ClassRecipe',
    'ClassRegistry',
    'default_registry',
    'register',
    'register_class',
    'lookup',
    'get_full_qualified_name',
    'check_types',
    'is_primitive',
]
