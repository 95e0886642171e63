"""
Measured storage wrapper
Times every storage call and reports it to the measurement sink under the
operation name (READ, SECONDARYSCAN, COMPLEX-AGGREGATE, ...)
"""

from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .base_storage import Record, Status, StorageInterface
from ..measurements import MeasurementSink
from ..perf_counter import PerfCounter
from ..ycsb_utils import FieldValue


class MeasuredStorage(StorageInterface):
    """Delegates to another adapter; latency and status of each call go to measurements."""

    def __init__(self, storage: StorageInterface, measurements: MeasurementSink):
        super().__init__(storage.properties)
        self.storage = storage
        self.measurements = measurements
        self.perf_counter = PerfCounter.instance()

    def _timed(self, event_name: str, call: Callable, *args) -> Any:
        start = self.perf_counter.perf_counter()
        result = call(*args)
        self.measurements.measure(event_name, self.perf_counter.elapsed_us(start))
        status = result[0] if isinstance(result, tuple) else result
        self.measurements.report_status(event_name, status == Status.OK)
        return result

    def init(self) -> None:
        self.storage.init()

    def cleanup(self) -> None:
        self.storage.cleanup()

    def insert(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        return self._timed("INSERT", self.storage.insert, table, key, values)

    def complex_insert(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        return self._timed("INSERT", self.storage.complex_insert, table, key, values)

    def read(self, table: str, key: str, fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        return self._timed("READ", self.storage.read, table, key, fields)

    def secondary_read(self, table: str, field: str, value: FieldValue,
                       fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        return self._timed("SECONDARYREAD", self.storage.secondary_read, table, field, value, fields)

    def complex_read(self, table: str, eq_field: str, eq_value: FieldValue, range_field: str,
                     lower: FieldValue, upper: FieldValue,
                     fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        return self._timed("COMPLEXREAD", self.storage.complex_read, table, eq_field, eq_value,
                           range_field, lower, upper, fields)

    def update(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        return self._timed("UPDATE", self.storage.update, table, key, values)

    def scan(self, table: str, start_key: str, count: int,
             fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        return self._timed("SCAN", self.storage.scan, table, start_key, count, fields)

    def secondary_scan(self, table: str, field: str, start_value: FieldValue, count: int,
                       fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        return self._timed("SECONDARYSCAN", self.storage.secondary_scan, table, field, start_value,
                           count, fields)

    def complex_scan(self, table: str, eq_field: str, eq_value: FieldValue, range_field: str,
                     lower: FieldValue, upper: FieldValue, count: int,
                     fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        return self._timed("COMPLEXSCAN", self.storage.complex_scan, table, eq_field, eq_value,
                           range_field, lower, upper, count, fields)

    def aggregate(self, table: str, group_field: str, limit: int) -> Tuple[Status, List[Record]]:
        return self._timed("AGGREGATE", self.storage.aggregate, table, group_field, limit)

    def complex_aggregate(self, table: str, match_field: str, start: FieldValue, end: FieldValue,
                          record_limit: int, group_field: str, reducer: str,
                          top_n: int) -> Tuple[Status, List[Record]]:
        return self._timed("COMPLEX-AGGREGATE", self.storage.complex_aggregate, table, match_field,
                           start, end, record_limit, group_field, reducer, top_n)
