#  -*- coding: utf-8 -*-
"""
Test suite for DisplaySettings, Displayable and GraphReport.

Tests cover:
- DisplaySettings: defaults, validation, persistence
- Displayable: panel rendering, form and table formatting, exports
- GraphReport: node inventory, back-reference counts, dangling references
"""

from __future__ import annotations

import pandas as pd
import pytest

from io import StringIO
from pathlib import Path

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from novelo.display import DisplaySettings, Displayable, GraphReport
from novelo.encoder import serialize
from novelo.errors import ParseError
from novelo.serialization import Persistable, Serializable


class Tagged(Serializable):
    pass


# ========== ========== ========== ========== Fixtures
@pytest.fixture
def custom_settings() -> DisplaySettings:
    return DisplaySettings(console_width=120, panel_border_style='green')


@pytest.fixture
def simple_displayable_class() -> type:
    """A minimal Displayable implementation."""

    class SimpleDisplay(Displayable):
        def __init__(self, title_text: str, body_text: str):
            self.title_text = title_text
            self.body_text = body_text

        def _title(self) -> Text:
            return Text(self.title_text)

        def _content(self) -> str:
            return self.body_text

    return SimpleDisplay


@pytest.fixture
def shared_graph() -> dict:
    shared = [1, 2]
    graph = {'a': shared, 'b': shared, 'when': {3}}
    graph['self'] = graph
    return graph


# ========== ========== ========== ========== Test DisplaySettings
class TestDisplaySettings:

    def test_creates_with_defaults(self) -> None:
        settings = DisplaySettings()

        assert settings.console_width == 150
        assert settings.property_style == 'bold bright_yellow'
        assert settings.panel_border_style == 'bright_cyan'
        assert settings.panel_box == 'ROUNDED'
        assert settings.panel_title_align == 'center'
        assert settings.table_index_style is None
        assert settings.reference_style == 'italic magenta'

    def test_keyword_construction(self, custom_settings: DisplaySettings) -> None:
        assert custom_settings.console_width == 120
        assert custom_settings.panel_border_style == 'green'
        assert custom_settings.panel_box == 'ROUNDED'

    def test_unknown_setting(self) -> None:

        with pytest.raises(ValueError, match='no display setting'):
            DisplaySettings(colour='red')

    def test_settings_listing(self) -> None:
        settings = DisplaySettings.settings()

        assert settings['table_spacing'] == 4
        assert 'extension' not in settings

    def test_extension_is_disp(self) -> None:
        assert DisplaySettings.extension == '.disp'

    def test_is_persistable(self) -> None:
        assert issubclass(DisplaySettings, Persistable)

    def test_save_and_load(self, tmp_path: Path) -> None:
        settings = DisplaySettings(console_width=200)
        settings.panel_border_style = 'magenta'

        path = settings.save(tmp_path / 'theme')

        assert path.suffix == '.disp'

        loaded = DisplaySettings.load(path)

        assert type(loaded) is DisplaySettings
        assert loaded.console_width == 200
        assert loaded.panel_border_style == 'magenta'
        assert loaded.panel_box == 'ROUNDED'


# ========== ========== ========== ========== Test Displayable
class TestDisplayable:

    def test_abstract_methods_required(self) -> None:

        with pytest.raises(TypeError):
            Displayable()

    def test_settings_created_on_first_access(self, simple_displayable_class: type) -> None:
        obj1 = simple_displayable_class('Title', 'Body')
        obj2 = simple_displayable_class('Title', 'Body')

        assert isinstance(obj1.display_settings, DisplaySettings)
        assert obj1.display_settings is obj1.display_settings
        assert obj1.display_settings is not obj2.display_settings

    def test_assign_settings(self, simple_displayable_class: type,
                             custom_settings: DisplaySettings) -> None:
        obj = simple_displayable_class('Title', 'Body')
        obj.display_settings = custom_settings

        assert obj.display_settings.console_width == 120

        with pytest.raises(TypeError):
            obj.display_settings = {'console_width': 80}

    def test_str_contains_title_and_body(self, simple_displayable_class: type) -> None:
        result = str(simple_displayable_class('MyTitle', 'MyContent'))

        assert 'MyTitle' in result
        assert 'MyContent' in result

    def test_rich_protocol(self, simple_displayable_class: type) -> None:
        obj = simple_displayable_class('Title', 'Body')

        assert isinstance(obj.__rich__(), Panel)

        Console(file=StringIO()).print(obj)

    def test_panel_uses_settings(self, simple_displayable_class: type) -> None:
        obj = simple_displayable_class('Title', 'Body')
        obj.display_settings.panel_border_style = 'red'
        obj.display_settings.panel_title_align = 'right'
        obj.display_settings.panel_box = 'DOUBLE'

        panel = obj._display_panel()

        assert panel.border_style == 'red'
        assert panel.title_align == 'right'
        assert panel.box == box.DOUBLE

    def test_format_as_form(self, simple_displayable_class: type) -> None:
        obj = simple_displayable_class('Title', 'Body')

        form = obj.format_as_form({'Name': 'Alice', 'Styled': Text('x', style='bold')})

        assert isinstance(form, Table)
        assert form.row_count == 2

        string_io = StringIO()
        Console(file=string_io).print(form)

        assert 'Name:' in string_io.getvalue()
        assert 'Alice' in string_io.getvalue()

    def test_format_as_table(self, simple_displayable_class: type) -> None:
        obj = simple_displayable_class('Title', 'Body')
        frame = pd.DataFrame({'name': ['a', 'b'], 'size': [1, 2], 'flag': [True, False]})

        table = obj.format_as_table(frame)

        assert table.row_count == 3
        assert len(table.columns) == 4
        assert table.columns[2].justify == 'right'
        assert table.columns[3].justify == 'left'

    def test_format_as_table_truncates(self, simple_displayable_class: type) -> None:
        obj = simple_displayable_class('Title', 'Body')
        frame = pd.DataFrame({'value': range(100)})

        table = obj.format_as_table(frame, max_rows=21)

        assert table.row_count == 1 + 10 + 1 + 10

        string_io = StringIO()
        Console(file=string_io).print(table)
        output = string_io.getvalue()

        assert '...' in output
        assert '99' in output

    def test_exports(self, simple_displayable_class: type) -> None:
        obj = simple_displayable_class('MyTitle', 'MyBody')

        html = obj.to_html()
        svg = obj.to_svg()

        assert 'MyTitle' in html
        assert 'MyBody' in html
        assert '<svg' in svg
        assert '</svg>' in svg


# ========== ========== ========== ========== Test GraphReport
class TestGraphReport:

    def test_from_live_value(self, shared_graph: dict) -> None:
        report = GraphReport(shared_graph)

        assert list(report.nodes.index) == ['dict_0', 'list_1', 'set_2']
        assert report.node_count == 3
        assert report.reference_count == 2
        assert report.dangling == []

    def test_node_columns(self, shared_graph: dict) -> None:
        nodes = GraphReport(shared_graph).nodes

        assert nodes.loc['dict_0', 'kind'] == 'mapping'
        assert nodes.loc['dict_0', 'size'] == 4
        assert nodes.loc['dict_0', 'references'] == 1
        assert nodes.loc['list_1', 'class'] == 'list'
        assert nodes.loc['list_1', 'references'] == 1
        assert nodes.loc['set_2', 'references'] == 0

    def test_from_text(self, shared_graph: dict) -> None:
        from_text = GraphReport(serialize(shared_graph))

        assert from_text.nodes.equals(GraphReport(shared_graph).nodes)

    def test_unknown_kind_and_dangling(self) -> None:
        text = '{"__class": "Martian", "__id": "Martian_0", "x": {"__ref": "list_7"}}'

        report = GraphReport(text)

        assert report.nodes.loc['Martian_0', 'kind'] == 'record'
        assert report.nodes.loc['Martian_0', 'size'] == 1
        assert report.dangling == ['list_7']
        assert 'list_7' in str(report)

    def test_managed_nodes(self) -> None:
        report = GraphReport([Tagged(name='t')])

        managed = report.nodes['managed']

        assert not managed.iloc[0]
        assert managed.iloc[1]
        assert report.nodes['kind'].iloc[1] == 'instance'

    def test_frozen_cycle_listed_once(self) -> None:
        items = []
        frozen = (items,)
        items.append(frozen)

        report = GraphReport(frozen)

        assert list(report.nodes.index) == ['tuple_0', 'list_1']
        assert report.nodes.loc['tuple_0', 'size'] == 1
        assert report.dangling == []

    def test_malformed_text(self) -> None:

        with pytest.raises(ParseError):
            GraphReport('[1, 2')

    def test_primitive_document(self) -> None:
        report = GraphReport(5)

        assert report.node_count == 0
        assert 'Graph document' in str(report)

    def test_render(self, shared_graph: dict) -> None:
        output = str(GraphReport(shared_graph))

        assert 'Graph document' in output
        assert 'list_1' in output
        assert 'Shared nodes' in output
