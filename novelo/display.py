#  -*- coding: utf-8 -*-
"""
Rich terminal display for graph documents.

- ``DisplaySettings``: persistent display configuration (a ``Persistable``,
  so themes can be saved to and loaded from ``.disp`` files).
- ``Displayable``: template base class rendering ``_title``/``_content`` in a
  Rich panel.
- ``GraphReport``: inspection of an encoded graph document, listing its
  nodes, their kinds and how often each one is referenced back.
"""

from __future__ import annotations

import json

import pandas

from abc import ABC, abstractmethod
from collections import Counter
from io import StringIO

from rich.markup import escape
from rich.text import Text
from rich.panel import Panel
from rich.console import Console, Group, RenderableType
from rich.table import Table
from rich import box
from rich.align import Align

from novelo.encoder import GraphEncoder
from novelo.errors import ParseError
from novelo.node import (CLASS_KEY, ID_KEY, REF_KEY, MANAGED_KEY, ITEMS_KEY, VALUES_KEY,
                         ENTRIES_KEY, DATE_KEY, is_reference, own_properties)
from novelo.registry import ClassRegistry, default_registry
from novelo.serialization import Persistable

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any


# ========== ========== ========== ========== ========== ==========
class DisplaySettings(Persistable):
    """
    Persistent configuration for terminal display formatting.

    Class Attributes
    ----------------
    extension : str
        File extension for saved settings files ('.disp').

    Attributes
    ----------
    console_width : int
        Maximum console output width in characters. Default 150.
    property_style : str
        Style for property labels in forms. Default 'bold bright_yellow'.
    panel_border_style : str
        Style for panel borders. Default 'bright_cyan'.
    panel_box : str
        Box style name from rich.box. Default 'ROUNDED'.
    panel_title_align : str
        Panel title alignment. Default 'center'.
    table_index_style : str or None
        Style for table index column. Default None.
    table_header_style : str or None
        Style for table headers. Default 'bold bright_yellow'.
    table_spacing : int
        Column spacing in characters. Default 4.
    reference_style : str
        Style for referenced node ids. Default 'italic magenta'.

    Examples
    --------
    Save a theme and load it back::

        settings = DisplaySettings(panel_border_style='green', console_width=120)
        settings.save('my_theme.disp')
        report.display_settings = DisplaySettings.load('my_theme.disp')

    Notes
    -----
    Defaults live on the class; only the values changed on an instance are
    written when it is saved.
    """

    extension = '.disp'

    # ---------- ---------- ---------- ---------- console
    console_width: int = 150

    # ---------- ---------- ---------- ---------- property
    property_style: str = 'bold bright_yellow'

    # ---------- ---------- ---------- ---------- panel
    panel_border_style: str = 'bright_cyan'
    panel_box: str = 'ROUNDED'
    panel_title_align: str = 'center'

    # ---------- ---------- ---------- ---------- table
    table_index_style: str | None = None
    table_header_style: str | None = 'bold bright_yellow'
    table_spacing: int = 4

    # ---------- ---------- ---------- ---------- graph
    reference_style: str = 'italic magenta'

    def __init__(self, **kwargs: Any) -> None:

        unknown = [key for key in kwargs if key not in self.settings()]

        if unknown:
            error = f"There is no display setting with the keys {unknown}"
            raise ValueError(error)

        super().__init__(**kwargs)

    @classmethod
    def settings(cls) -> dict[str, Any]:
        """Names and default values of every setting."""
        return {key: getattr(cls, key) for key in cls.__annotations__}


# ========== ========== ========== ========== ========== ==========
class Displayable(ABC):
    """
    Abstract base for objects with Rich terminal display.

    Subclasses define content through ``_title()`` and ``_content()``; the
    base class handles styling and rendering. Integrates with Rich's protocol
    (``__rich__``) and provides string output (``__str__``).
    """

    # ========== ========== ========== ========== ========== special methods
    def __str__(self) -> str:
        string_io = StringIO()
        console = Console(file=string_io,
                          force_terminal=True,
                          width=self.display_settings.console_width)

        console.print(self._display_panel())

        return string_io.getvalue()

    def __rich__(self) -> RenderableType:
        return self._display_panel()

    # ========== ========== ========== ========== ========== protected methods
    @abstractmethod
    def _title(self) -> Text:
        """Generate panel title."""
        ...

    @abstractmethod
    def _content(self) -> RenderableType:
        """Generate panel body content."""
        ...

    def _display_panel(self) -> Panel:
        return Panel(
            self._content(),
            title=self._title(),
            border_style=self.display_settings.panel_border_style,
            title_align=self.display_settings.panel_title_align,
            expand=False,
            box=getattr(box, self.display_settings.panel_box)
        )

    # ========== ========== ========== ========== ========== public methods
    def format_as_form(self, data: dict[str, Any]) -> Table:
        """
        Format data as a two-column key-value form.

        Keys get ':' appended and use ``property_style``.
        """
        form = Table.grid(padding=(0, 4), expand=False)
        form.add_column(justify='left', style=self.display_settings.property_style)
        form.add_column(justify='left', style=None)

        for prop, value in data.items():
            form.add_row(f'{prop}:', value if isinstance(value, Text) else str(value))

        return form

    def format_as_table(self,
                        frame: pandas.DataFrame,
                        show_index: bool = True,
                        align_header: str = 'center',
                        max_rows: int = 31) -> Table:
        """
        Format a DataFrame as a Rich table.

        Numeric columns are right aligned, everything else left aligned. When
        the frame has more than ``max_rows`` rows, only its head and tail are
        shown around a '...' row.
        """
        header_style = self.display_settings.table_header_style
        index_style = self.display_settings.table_index_style

        _frame = frame.reset_index() if show_index else frame.copy()

        columns = _frame.columns

        # ---------- ---------- ---------- ---------- create table
        table = Table.grid(padding=(0, self.display_settings.table_spacing), expand=False)

        for column in columns:

            if pandas.api.types.is_bool_dtype(_frame[column]):
                table.add_column(justify='left')

            elif pandas.api.types.is_numeric_dtype(_frame[column]):
                table.add_column(justify='right')

            else:
                table.add_column(justify='left')

        table.add_row(*(Align(escape(str(col)), align_header) for col in columns), style=header_style)

        # ---------- ---------- ---------- ---------- populate table
        __frame = _frame.astype(str)

        def add_row(row: pandas.Series) -> None:
            if show_index:
                table.add_row(Text(row.values[0], style=index_style), *row.values[1:])
            else:
                table.add_row(*row.values)

        if len(__frame) <= max_rows:
            for _, row in __frame.iterrows():
                add_row(row)

        else:
            n_rows: int = (max_rows - 1) // 2

            for _, row in __frame.head(n_rows).iterrows():
                add_row(row)

            table.add_row(*(Align.center('...') for _ in columns))

            for _, row in __frame.tail(n_rows).iterrows():
                add_row(row)

        return table

    def to_html(self) -> str:
        """Export display as HTML."""
        console = Console(record=True, file=StringIO(), width=self.display_settings.console_width)
        console.print(self)
        return console.export_html()

    def to_svg(self) -> str:
        """Export display as SVG."""
        console = Console(record=True, file=StringIO(), width=self.display_settings.console_width)
        console.print(self)
        return console.export_svg()

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def display_settings(self) -> DisplaySettings:
        """Settings used to render this object. Created on first access."""
        try:
            return self._display_settings
        except AttributeError:
            self._display_settings = DisplaySettings()
            return self._display_settings

    @display_settings.setter
    def display_settings(self, settings: DisplaySettings) -> None:
        if not isinstance(settings, DisplaySettings):
            raise TypeError(f"Expected DisplaySettings, got {type(settings).__name__}")
        self._display_settings = settings


# ========== ========== ========== ========== ========== ==========
class GraphReport(Displayable):
    """
    Summary of an encoded graph document.

    Parameters
    ----------
    document : str, bytes or object
        Graph document text, or a live value that is encoded first.
    registry : ClassRegistry, optional
        Used to encode live values and to name the kind of each node.

    Attributes
    ----------
    tree : object
        The parsed node tree.
    nodes : pandas.DataFrame
        One row per defined node in document order, indexed by node id, with
        columns ``class``, ``kind``, ``size``, ``references`` (back-references
        pointing at the node) and ``managed``.

    Examples
    --------
    >>> shared = [1, 2]
    >>> report = GraphReport({'a': shared, 'b': shared})
    >>> int(report.nodes.loc['list_1', 'references'])
    1
    >>> print(report)  # doctest: +SKIP
    """

    columns = ['id', 'class', 'kind', 'size', 'references', 'managed']

    def __init__(self, document: Any, registry: ClassRegistry | None = None) -> None:
        self.registry = registry if registry is not None else default_registry

        if isinstance(document, (str, bytes, bytearray)):
            try:
                self.tree = json.loads(document)
            except json.JSONDecodeError as error:
                raise ParseError(f"Malformed graph document: {error.msg}",
                                 lineno=error.lineno, colno=error.colno) from error
        else:
            self.tree = GraphEncoder(self.registry).encode(document)

        rows: dict[str, dict[str, Any]] = {}
        references: Counter[str] = Counter()
        self._collect(self.tree, rows, references)

        frame = pandas.DataFrame(list(rows.values()), columns=self.columns)
        frame['references'] = [references.get(node_id, 0) for node_id in frame['id']]
        self.nodes = frame.set_index('id')

        self.reference_count: int = sum(references.values())
        self.dangling: list[str] = sorted(set(references) - set(frame['id']))

    # ========== ========== ========== ========== ========== private methods
    def _collect(self, node: Any, rows: dict[str, dict[str, Any]], references: Counter) -> None:

        if isinstance(node, list):
            for item in node:
                self._collect(item, rows, references)
            return

        if not isinstance(node, dict):
            return

        if is_reference(node):
            references[str(node[REF_KEY])] += 1
            return

        if ID_KEY in node:
            name = node.get(CLASS_KEY)
            recipe = self.registry.lookup(name) if isinstance(name, str) else None

            node_id = str(node[ID_KEY])

            # frozen containers reached from inside themselves are defined twice
            rows.setdefault(node_id, {
                'id': node_id,
                'class': name,
                'kind': recipe.kind.value if recipe is not None else 'record',
                'size': self._payload_size(node),
                'references': 0,
                'managed': bool(node.get(MANAGED_KEY, False)),
            })

        for item in own_properties(node).values():
            self._collect(item, rows, references)

    @staticmethod
    def _payload_size(node: dict[str, Any]) -> int:
        for key in (ITEMS_KEY, VALUES_KEY, ENTRIES_KEY):
            if isinstance(node.get(key), list):
                return len(node[key])

        if DATE_KEY in node:
            return 1

        return len(own_properties(node))

    # ========== ========== ========== ========== ========== protected methods
    def _title(self) -> Text:
        return Text('Graph document', style='bold')

    def _content(self) -> RenderableType:
        root = self.nodes.index[0] if len(self.nodes) else type(self.tree).__name__

        summary = {
            'Root': root,
            'Nodes': len(self.nodes),
            'Back-references': self.reference_count,
        }

        if self.dangling:
            summary['Dangling references'] = ', '.join(self.dangling)

        if not len(self.nodes):
            return self.format_as_form(summary)

        table = self.format_as_table(self.nodes)

        shared = self.nodes.index[self.nodes['references'].to_numpy() > 0]

        if len(shared):
            summary['Shared nodes'] = Text(', '.join(shared), style=self.display_settings.reference_style)

        return Group(self.format_as_form(summary), Text(''), table)

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def node_count(self) -> int:
        return len(self.nodes)


__all__ = [
    'DisplaySettings',
    'Displayable',
    'GraphReport',
]
