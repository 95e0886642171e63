import pytest

from complex_ycsb.config_loader import WorkloadConfig
from complex_ycsb.measurements import Measurements
from complex_ycsb.storage import Status, StorageInterface


class RecordingStorage(StorageInterface):
    """Storage fake that remembers every call and answers OK"""

    def __init__(self, status=Status.OK):
        super().__init__({})
        self.status = status
        self.calls = []
        self.init_calls = 0
        self.cleanup_calls = 0

    def _record(self, name, *args):
        self.calls.append((name,) + args)

    def calls_named(self, name):
        return [call for call in self.calls if call[0] == name]

    def init(self):
        self.init_calls += 1

    def cleanup(self):
        self.cleanup_calls += 1

    def insert(self, table, key, values):
        self._record("insert", table, key, values)
        return self.status

    def complex_insert(self, table, key, values):
        self._record("complex_insert", table, key, values)
        return self.status

    def read(self, table, key, fields=None):
        self._record("read", table, key, fields)
        return self.status, {}

    def secondary_read(self, table, field, value, fields=None):
        self._record("secondary_read", table, field, value, fields)
        return self.status, {}

    def complex_read(self, table, eq_field, eq_value, range_field, lower, upper, fields=None):
        self._record("complex_read", table, eq_field, eq_value, range_field, lower, upper, fields)
        return self.status, {}

    def update(self, table, key, values):
        self._record("update", table, key, values)
        return self.status

    def scan(self, table, start_key, count, fields=None):
        self._record("scan", table, start_key, count, fields)
        return self.status, []

    def secondary_scan(self, table, field, start_value, count, fields=None):
        self._record("secondary_scan", table, field, start_value, count, fields)
        return self.status, []

    def complex_scan(self, table, eq_field, eq_value, range_field, lower, upper, count, fields=None):
        self._record("complex_scan", table, eq_field, eq_value, range_field, lower, upper, count, fields)
        return self.status, []

    def aggregate(self, table, group_field, limit):
        self._record("aggregate", table, group_field, limit)
        return self.status, []

    def complex_aggregate(self, table, match_field, start, end, record_limit, group_field, reducer, top_n):
        self._record("complex_aggregate", table, match_field, start, end, record_limit,
                     group_field, reducer, top_n)
        return self.status, []


ZERO_PROPORTIONS = {
    "read_proportion": 0.0,
    "secondary_read_proportion": 0.0,
    "complex_read_proportion": 0.0,
    "update_proportion": 0.0,
    "insert_proportion": 0.0,
    "scan_proportion": 0.0,
    "secondary_scan_proportion": 0.0,
    "complex_scan_proportion": 0.0,
    "aggregate_proportion": 0.0,
    "read_modify_write_proportion": 0.0,
}


def make_config(**overrides) -> WorkloadConfig:
    """Small config with every proportion zeroed unless given"""
    values = dict(ZERO_PROPORTIONS)
    values.update(record_count=10, operation_count=100, field_count=3, field_length=8,
                  num_distinct_int_keys=20, num_distinct_string_keys=20, num_distinct_date_keys=30)
    values.update(overrides)
    config = WorkloadConfig(**values)
    config.validate()
    return config


@pytest.fixture
def storage():
    return RecordingStorage()


@pytest.fixture
def measurements():
    return Measurements()


@pytest.fixture
def config_factory():
    return make_config
