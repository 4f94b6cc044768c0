#  -*- coding: utf-8 -*-
"""
Test suite for Serializable, Persistable and assign.

Tests cover:
- Automatic registration of Serializable subclasses
- Managed flag in encoded documents
- Serialize/deserialize and copy protocol
- HDF5 persistence: save, load, overwrite protection, foreign files
- assign: updating existing objects from plain data
"""

from __future__ import annotations

import copy
import json

import h5py
import pytest

from pathlib import Path

from novelo.encoder import encode, serialize
from novelo.errors import ParseError
from novelo.registry import default_registry, get_full_qualified_name
from novelo.serialization import Serializable, Persistable, assign, load


class Probe(Serializable):
    pass


class Sensor(Serializable, registry_name='lab.Sensor'):

    def __init__(self, name: str, probes: list[Probe] | None = None) -> None:
        self.name = name
        self.probes = probes if probes is not None else []

    def count(self) -> int:
        return len(self.probes)


class Experiment(Persistable):

    def __init__(self, title: str) -> None:
        self.title = title
        self.sensors: list[Sensor] = []
        self.calibration: dict[str, float] = {}


class Form:

    def __init__(self) -> None:
        self.name = ''
        self.age = 0


# ========== ========== ========== ========== Fixtures
@pytest.fixture
def experiment() -> Experiment:
    shared = Probe(label='thermo', readings=[20.5, 21.0])

    experiment = Experiment('bench')
    experiment.sensors.append(Sensor('s1', [shared]))
    experiment.sensors.append(Sensor('s2', [shared, Probe(label='hygro', readings=[])]))
    experiment.calibration['offset'] = 0.25

    return experiment


# ========== ========== ========== ========== Test registration
class TestRegistration:

    def test_subclasses_are_registered(self) -> None:
        name = get_full_qualified_name(Probe)

        assert default_registry.name_of(Probe()) == name
        assert Serializable[name] is Probe
        assert name in Serializable
        assert Probe in Serializable

    def test_registry_name(self) -> None:
        assert Serializable['lab.Sensor'] is Sensor
        assert default_registry.name_of(Sensor('s')) == 'lab.Sensor'

    def test_unknown_name(self) -> None:

        with pytest.raises(KeyError):
            Serializable['no.such.Class']

        assert 'no.such.Class' not in Serializable

    def test_non_serializable_names(self) -> None:

        with pytest.raises(KeyError):
            Serializable['list']

    def test_base_class_is_not_registered(self) -> None:
        assert Serializable not in default_registry

    def test_serializable_types(self) -> None:
        types = Serializable.serializable_types

        assert Probe in types
        assert Sensor in types
        assert Serializable not in types


# ========== ========== ========== ========== Test Serializable
class TestSerializable:

    def test_keyword_construction(self) -> None:
        probe = Probe(label='a', readings=[1])

        assert (probe.label, probe.readings) == ('a', [1])

    def test_managed_flag(self) -> None:
        tree = encode(Probe(label='a'))

        assert tree['__managed'] is True
        assert tree['__class'] == get_full_qualified_name(Probe)
        assert tree['label'] == 'a'

    def test_roundtrip(self) -> None:
        sensor = Sensor('s', [Probe(label='a')])

        result = Serializable.deserialize(sensor.serialize())

        assert type(result) is Sensor
        assert result.name == 's'
        assert type(result.probes[0]) is Probe
        assert result.count() == 1

    def test_deserialize_on_subclass(self) -> None:
        text = Sensor('s').serialize()

        assert type(Sensor.deserialize(text)) is Sensor

        with pytest.raises(TypeError):
            Sensor.deserialize(serialize([1]))

        with pytest.raises(TypeError):
            Probe.deserialize(text)

    def test_shared_references(self) -> None:
        probe = Probe(label='shared')
        sensor = Sensor('s', [probe, probe])

        result = Sensor.deserialize(sensor.serialize(indent=2))

        assert result.probes[0] is result.probes[1]

    def test_copy(self) -> None:
        sensor = Sensor('s', [Probe(label='a')])

        shallow = copy.copy(sensor)

        assert shallow is not sensor
        assert shallow.probes is sensor.probes

    def test_deepcopy(self) -> None:
        sensor = Sensor('s', [Probe(label='a')])

        deep = copy.deepcopy(sensor)

        assert deep.probes is not sensor.probes
        assert deep.probes[0] is not sensor.probes[0]
        assert deep.probes[0].label == 'a'

    def test_deepcopy_of_enclosing_container(self) -> None:
        holder = {'name': 'bench'}
        sensor = Sensor('s', [Probe(label='a')])
        sensor.owner = holder
        holder['sensor'] = sensor

        result = copy.deepcopy(holder)

        assert result is not holder
        assert result['sensor'] is not sensor
        assert result['sensor'].owner is result

    def test_deepcopy_shares_copies_with_siblings(self) -> None:
        probe = Probe(label='a')
        sensor = Sensor('s', [probe])

        result = copy.deepcopy([probe, sensor])

        assert result[1].probes[0] is result[0]
        assert result[0] is not probe

    def test_copy_depth(self) -> None:
        sensor = Sensor('s', [Probe(label='a')])

        result = sensor.copy(depth=1)

        assert result.probes is not sensor.probes
        assert result.probes[0] is sensor.probes[0]


# ========== ========== ========== ========== Test Persistable
class TestPersistable:

    def test_save_and_load(self, experiment: Experiment, tmp_path: Path) -> None:
        path = experiment.save(tmp_path / 'experiment')

        assert path == tmp_path / 'experiment.hdf5'
        assert path.is_file()

        loaded = Experiment.load(path)

        assert type(loaded) is Experiment
        assert loaded.title == 'bench'
        assert loaded.calibration == {'offset': 0.25}
        assert [sensor.name for sensor in loaded.sensors] == ['s1', 's2']
        assert loaded.sensors[0].probes[0] is loaded.sensors[1].probes[0]
        assert loaded.sensors[1].probes[1].label == 'hygro'

    def test_module_level_load(self, experiment: Experiment, tmp_path: Path) -> None:
        path = experiment.save(tmp_path / 'experiment')

        assert load(path).title == 'bench'

    def test_keep_extension(self, experiment: Experiment, tmp_path: Path) -> None:
        path = experiment.save(tmp_path / 'experiment.h5', use_default_extension=False)

        assert path.name == 'experiment.h5'
        assert path.is_file()

    def test_no_overwrite(self, experiment: Experiment, tmp_path: Path) -> None:
        path = experiment.save(tmp_path / 'experiment')

        with pytest.raises(FileExistsError):
            experiment.save(path, overwrite=False)

        experiment.title = 'changed'
        experiment.save(path)

        assert Experiment.load(path).title == 'changed'

    def test_missing_file(self, tmp_path: Path) -> None:

        with pytest.raises(FileNotFoundError):
            Experiment.load(tmp_path / 'missing.hdf5')

    def test_foreign_file(self, tmp_path: Path) -> None:
        path = tmp_path / 'foreign.hdf5'

        with h5py.File(path, 'w') as file:
            file.create_dataset('values', data=[1, 2, 3])

        with pytest.raises(ParseError):
            Experiment.load(path)

    def test_serialized_data(self, tmp_path: Path) -> None:
        path = tmp_path / 'data.hdf5'
        text = serialize({'ids': {1, 2}, 'note': 'ünïcode'})

        Persistable.save_serialized_data(path, text)

        assert Persistable.load_serialized_data(path) == text

        with h5py.File(path, 'r') as file:
            assert file.attrs['__format__'] == Persistable.format_name


# ========== ========== ========== ========== Test assign
class TestAssign:

    def test_from_text(self) -> None:
        form = assign(Form, '{"name": "Ada", "email": "ada@example.com"}')

        assert isinstance(form, Form)
        assert (form.name, form.age) == ('Ada', 0)
        assert not hasattr(form, 'email')

    def test_existing_instance(self) -> None:
        form = Form()

        result = assign(form, {'age': 36})

        assert result is form
        assert form.age == 36

    def test_dict_target(self) -> None:
        target = {'a': 1, 'b': 2}

        assign(target, {'a': 10, 'c': 3})

        assert target == {'a': 10, 'b': 2}

    def test_list_target(self) -> None:
        target = [1, 2, 3]

        result = assign(target, json.dumps([4, 5]))

        assert result is target
        assert target == [4, 5]

    def test_non_mapping_source(self) -> None:
        form = Form()

        assign(form, [1, 2])

        assert (form.name, form.age) == ('', 0)

    def test_malformed_text(self) -> None:

        with pytest.raises(ParseError):
            assign(Form, '{"name": ')
