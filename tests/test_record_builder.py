import datetime
import random

import pytest

from complex_ycsb.config_loader import ConfigurationError, InsertOrder, SecondaryField
from complex_ycsb.record_builder import RecordBuilder, build_field_length_generator
from complex_ycsb.ycsb_utils import (
    BASE_DATE, FieldKind, FieldValue, InvariantViolation, days_offset_date, fnv_hash64,
    random_name, random_payload
)


def test_fnv_hash64_is_stable_and_non_negative():
    assert fnv_hash64(0) == fnv_hash64(0)
    hashes = {fnv_hash64(i) for i in range(10_000)}
    assert len(hashes) == 10_000
    assert all(h >= 0 for h in hashes)
    assert fnv_hash64(1) != 1


def test_random_payload_is_printable():
    payload = random_payload(200, random.Random(1))
    assert len(payload) == 200
    assert all(32 <= b <= 126 for b in payload)


def test_random_name_is_deterministic_and_distinct():
    assert random_name(7) == random_name(7)
    assert len({random_name(i) for i in range(500)}) == 500


def test_days_offset_date_splits_around_base_date():
    assert days_offset_date(10, 100) == BASE_DATE + datetime.timedelta(days=10 - 100)
    assert days_offset_date(50, 100) == BASE_DATE + datetime.timedelta(days=50)
    assert days_offset_date(100, 100) == BASE_DATE + datetime.timedelta(days=100)


def test_field_value_lengths():
    assert len(FieldValue.of_bytes(b"abc")) == 3
    assert len(FieldValue.of_text("Mary Smith")) == 10
    assert len(FieldValue.of_int(42)) == 1
    assert FieldValue.of_date(BASE_DATE).kind is FieldKind.DATE


class TestKeyNames:
    def test_ordered_keys_are_identity(self, config_factory):
        builder = RecordBuilder(config_factory(insert_order=InsertOrder.ORDERED), random.Random(1))
        assert builder.build_key_name(0) == "user0"
        assert builder.build_key_name(42) == "user42"

    def test_hashed_keys_are_pure_and_scrambled(self, config_factory):
        builder = RecordBuilder(config_factory(insert_order=InsertOrder.HASHED), random.Random(1))
        other = RecordBuilder(config_factory(insert_order=InsertOrder.HASHED), random.Random(2))
        assert builder.build_key_name(5) == builder.build_key_name(5) == other.build_key_name(5)
        assert builder.build_key_name(5) != "user5"
        keys = {builder.build_key_name(i) for i in range(5_000)}
        assert len(keys) == 5_000
        assert all(key.startswith("user") for key in keys)


class TestValues:
    def test_build_values_with_extended_fields(self, config_factory):
        builder = RecordBuilder(config_factory(), random.Random(3))
        values = builder.build_values()
        assert list(values) == ["intkey", "stringkey", "datekey", "field0", "field1", "field2"]
        assert values["intkey"].kind is FieldKind.INTEGER
        assert 1 <= values["intkey"].value <= 20
        assert values["stringkey"].kind is FieldKind.TEXT
        assert values["datekey"].kind is FieldKind.DATE
        assert all(values[f"field{i}"].kind is FieldKind.BYTES for i in range(3))
        assert all(len(values[f"field{i}"]) == 8 for i in range(3))

    def test_build_values_without_extended_fields(self, config_factory):
        builder = RecordBuilder(config_factory(complex_reads=False), random.Random(4))
        assert list(builder.build_values()) == ["field0", "field1", "field2"]
        with pytest.raises(InvariantViolation):
            builder.secondary_key_value("intkey")

    def test_build_update_has_one_field(self, config_factory):
        builder = RecordBuilder(config_factory(), random.Random(5))
        update = builder.build_update()
        assert len(update) == 1
        assert next(iter(update)) in builder.field_names

    def test_random_field_subset(self, config_factory):
        builder = RecordBuilder(config_factory(), random.Random(6))
        assert builder.random_field_subset(True) is None
        subset = builder.random_field_subset(False)
        assert len(subset) == 1 and subset <= set(builder.field_names)

    def test_date_bounds_stay_in_their_slices(self, config_factory):
        builder = RecordBuilder(config_factory(num_distinct_date_keys=100), random.Random(7))
        lower = {builder.secondary_key_value("lbdatekey").value for _ in range(500)}
        upper = {builder.secondary_key_value("ubdatekey").value for _ in range(500)}
        assert max(lower) < min(upper)
        assert min(lower) >= days_offset_date(1, 100)
        assert max(upper) <= days_offset_date(100, 100)

    def test_secondary_key_value_accepts_enum(self, config_factory):
        builder = RecordBuilder(config_factory(), random.Random(8))
        assert builder.secondary_key_value(SecondaryField.STRINGKEY).kind is FieldKind.TEXT

    def test_unknown_secondary_field(self, config_factory):
        builder = RecordBuilder(config_factory(), random.Random(9))
        with pytest.raises(InvariantViolation):
            builder.secondary_key_value("field0")

    def test_uniform_field_lengths(self, config_factory):
        config = config_factory(field_length_distribution="uniform", field_length=5)
        generator = build_field_length_generator(config, random.Random(10))
        assert {generator.next_int() for _ in range(500)} == {1, 2, 3, 4, 5}

    def test_histogram_field_lengths_need_a_file(self, config_factory, tmp_path):
        config = config_factory(field_length_distribution="histogram",
                                field_length_histogram=str(tmp_path / "none.txt"))
        with pytest.raises(ConfigurationError):
            RecordBuilder(config, random.Random(11))
