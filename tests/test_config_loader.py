import json
import os

import pytest

from complex_ycsb.config_loader import (
    AggregateType, ConfigLoader, ConfigurationError, InsertOrder, Reducer, SecondaryField,
    WorkloadConfig, parse_bool, parse_property_overrides
)


def test_defaults():
    config = WorkloadConfig.from_properties({"recordcount": "100"})
    assert config.field_count == 10
    assert config.field_length == 100
    assert config.read_proportion == 0.95
    assert config.update_proportion == 0.05
    assert config.insert_order is InsertOrder.HASHED
    assert config.complex_reads is True
    assert config.aggregate_type is AggregateType.SIMPLE
    assert config.group_function is Reducer.SUM


def test_properties_are_coerced():
    config = WorkloadConfig.from_properties({
        "recordcount": "1000", "fieldcount": "4", "readallfields": "false",
        "readproportion": "0.5", "complexreadproportion": "0.5", "insertorder": "ordered",
        "secondaryreadfield": "StringKey", "aggregatetype": "complex", "groupfunction": "max",
        "seed": "42",
    })
    assert config.record_count == 1000
    assert config.field_count == 4
    assert config.read_all_fields is False
    assert config.complex_read_proportion == 0.5
    assert config.ordered_inserts
    assert config.secondary_read_field is SecondaryField.STRINGKEY
    assert config.aggregate_type is AggregateType.COMPLEX
    assert config.group_function is Reducer.MAX
    assert config.seed == 42


def test_parse_bool_only_true_is_true():
    assert parse_bool("TRUE") is True
    assert parse_bool("yes") is False
    assert parse_bool(True) is True


@pytest.mark.parametrize("props", [
    {"recordcount": "10", "requestdistribution": "pareto"},
    {"recordcount": "10", "fieldlengthdistribution": "normal"},
    {"recordcount": "10", "scanlengthdistribution": "latest"},
    {"recordcount": "10", "secondarykeydistribution": "hotspot"},
    {"recordcount": "10", "groupfunction": "median"},
    {"recordcount": "10", "aggregatetype": "nested"},
    {"recordcount": "10", "secondaryreadfield": "field0"},
    {"recordcount": "10", "insertorder": "random"},
    {"recordcount": "ten"},
    {"recordcount": "10", "fieldcount": "0"},
    {"recordcount": "10", "readproportion": "-0.1"},
    {"recordcount": "10", "numdistinctdatekeys": "2"},
    {"recordcount": "10", "complexreads": "false", "aggregateproportion": "0.1"},
    {"recordcount": "0", "readproportion": "1"},
])
def test_invalid_configuration(props):
    with pytest.raises(ConfigurationError):
        WorkloadConfig.from_properties(props)


def test_with_overrides_validates():
    config = WorkloadConfig.from_properties({"recordcount": "10"})
    assert config.with_overrides(field_count=2).field_count == 2
    with pytest.raises(ConfigurationError):
        config.with_overrides(max_scan_length=0)


def test_load_properties_file(tmp_path):
    path = tmp_path / "workload.properties"
    path.write_text("# complex workload\n"
                    "recordcount=500\n"
                    "operationcount = 1000\n"
                    "\n"
                    "aggregateproportion=0.2\n"
                    "readproportion=0.8\n"
                    "sqlite.path=bench.db\n")
    loader = ConfigLoader(str(path), overrides={"operationcount": "5"})
    config = loader.load_and_process()
    assert config.record_count == 500
    assert config.operation_count == 5
    assert config.aggregate_proportion == 0.2
    assert loader.get_full_config()["sqlite.path"] == "bench.db"


def test_load_json_file(tmp_path):
    path = tmp_path / "workload.json"
    path.write_text(json.dumps({"recordcount": 20, "readproportion": 1.0, "updateproportion": 0,
                                "complexreads": False}))
    config = ConfigLoader(str(path)).load_and_process()
    assert config.record_count == 20
    assert config.complex_reads is False


def test_malformed_files(tmp_path):
    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{not json")
    with pytest.raises(ConfigurationError):
        ConfigLoader(str(bad_json))

    bad_properties = tmp_path / "bad.properties"
    bad_properties.write_text("recordcount 10\n")
    with pytest.raises(ConfigurationError):
        ConfigLoader(str(bad_properties))

    with pytest.raises(ConfigurationError):
        ConfigLoader(str(tmp_path / "missing.properties"))


def test_parse_property_overrides():
    assert parse_property_overrides(["a=1", "b = x=y"]) == {"a": "1", "b": "x=y"}
    with pytest.raises(ConfigurationError):
        parse_property_overrides(["novalue"])


WORKLOAD_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "workloads")


@pytest.mark.parametrize("name", sorted(os.listdir(WORKLOAD_DIR)))
def test_bundled_workloads_load(name):
    config = ConfigLoader(os.path.join(WORKLOAD_DIR, name)).load_and_process()
    assert config.record_count > 0
