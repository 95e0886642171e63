"""
Complex workload

YCSB core workload extended with lookups on secondary fields (intkey,
stringkey, datekey), compound equality plus date range queries, and
aggregations. Every record carries the three extended fields when
complexreads is enabled.
"""

import random
from enum import Enum
from typing import Callable, Dict, Optional

from .base_workload import BaseWorkload
from ..config_loader import AggregateType, WorkloadConfig
from ..generators import (
    AcknowledgedCounterGenerator, CounterGenerator, DiscreteGenerator, ExponentialGenerator,
    HotspotIntegerGenerator, IntegerGenerator, ScrambledZipfianGenerator, SkewedLatestGenerator,
    UniformIntegerGenerator, ZipfianGenerator
)
from ..measurements import MeasurementSink
from ..perf_counter import PerfCounter
from ..storage import Status, StorageInterface
from ..record_builder import RecordBuilder
from ..ycsb_utils import InvariantViolation, derive_rng

READ_MODIFY_WRITE_EVENT = "READ-MODIFY-WRITE"

# Fields used by the compound lookups and the complex aggregate
EQUALITY_FIELD = "intkey"
RANGE_FIELD = "datekey"
GROUP_FIELD_SIMPLE = "intkey"
GROUP_FIELD_COMPLEX = "stringkey"


class OperationType(Enum):
    READ = "READ"
    SECONDARYREAD = "SECONDARYREAD"
    COMPLEXREAD = "COMPLEXREAD"
    UPDATE = "UPDATE"
    INSERT = "INSERT"
    SCAN = "SCAN"
    SECONDARYSCAN = "SECONDARYSCAN"
    COMPLEXSCAN = "COMPLEXSCAN"
    AGGREGATE = "AGGREGATE"
    READMODIFYWRITE = "READMODIFYWRITE"


# Order in which outcomes are added to the operation chooser
OPERATION_PROPORTIONS = (
    (OperationType.READ, "read_proportion"),
    (OperationType.SECONDARYREAD, "secondary_read_proportion"),
    (OperationType.COMPLEXREAD, "complex_read_proportion"),
    (OperationType.UPDATE, "update_proportion"),
    (OperationType.INSERT, "insert_proportion"),
    (OperationType.SCAN, "scan_proportion"),
    (OperationType.SECONDARYSCAN, "secondary_scan_proportion"),
    (OperationType.AGGREGATE, "aggregate_proportion"),
    (OperationType.COMPLEXSCAN, "complex_scan_proportion"),
    (OperationType.READMODIFYWRITE, "read_modify_write_proportion"),
)


class ComplexWorkload(BaseWorkload):
    """
    Workload engine shared by all worker threads of a run.

    Args:
        config: Parsed workload configuration
        measurements: Receives the READ-MODIFY-WRITE timings
        seed: Seeds every generator of the engine; falls back to config.seed,
            and to fresh entropy when both are None
    """

    def __init__(self, config: WorkloadConfig, measurements: Optional[MeasurementSink] = None,
                 seed: Optional[int] = None):
        super().__init__(config, measurements)
        self.seed = seed if seed is not None else config.seed
        seed_source = random.Random(self.seed)

        self.table = config.table
        self.read_all_fields = config.read_all_fields
        self.write_all_fields = config.write_all_fields
        self.complex_reads = config.complex_reads
        self.secondary_read_field = config.secondary_read_field
        self.aggregate_type = config.aggregate_type
        self.group_function = config.group_function
        self.aggregate_record_count = config.aggregate_record_count
        self.aggregate_top_n = config.aggregate_top_n
        self.perf_counter = PerfCounter.instance()

        self.builder = RecordBuilder(config, derive_rng(seed_source))

        # Load phase keys start at insertstart; transaction phase inserts append past recordcount
        self.key_sequence = CounterGenerator(config.insert_start)
        self.transaction_insert_key_sequence = AcknowledgedCounterGenerator(config.record_count)

        self.operation_chooser = DiscreteGenerator(derive_rng(seed_source))
        for operation, attribute in OPERATION_PROPORTIONS:
            self.operation_chooser.add_value(getattr(config, attribute), operation)
        self.operation_chooser.validate()

        self.key_chooser = self._build_key_chooser(config, derive_rng(seed_source))
        self._exponential_keys = isinstance(self.key_chooser, ExponentialGenerator)

        if config.scan_length_distribution == "zipfian":
            self.scan_length = ZipfianGenerator(1, config.max_scan_length, rng=derive_rng(seed_source))
        else:
            self.scan_length = UniformIntegerGenerator(1, config.max_scan_length, rng=derive_rng(seed_source))

        self._handlers: Dict[OperationType, Callable[[StorageInterface], None]] = {
            OperationType.READ: self.do_transaction_read,
            OperationType.SECONDARYREAD: self.do_transaction_secondary_read,
            OperationType.COMPLEXREAD: self.do_transaction_complex_read,
            OperationType.UPDATE: self.do_transaction_update,
            OperationType.INSERT: self.do_transaction_insert,
            OperationType.SCAN: self.do_transaction_scan,
            OperationType.SECONDARYSCAN: self.do_transaction_secondary_scan,
            OperationType.COMPLEXSCAN: self.do_transaction_complex_scan,
            OperationType.AGGREGATE: self.do_transaction_aggregate,
            OperationType.READMODIFYWRITE: self.do_transaction_read_modify_write,
        }
        missing = set(OperationType) - set(self._handlers)
        if missing:
            raise InvariantViolation(f"No handler for {sorted(op.value for op in missing)}")

        self.logger.info(f"Initialized: table={self.table}, recordcount={config.record_count}, "
                         f"keys={self.key_chooser!r}, operations="
                         f"{[op.value for op in self.operation_chooser.outcomes]}, "
                         f"complexreads={self.complex_reads}")

    def _build_key_chooser(self, config: WorkloadConfig, rng: random.Random) -> IntegerGenerator:
        last_key = max(config.record_count - 1, 0)
        distribution = config.request_distribution
        if distribution == "uniform":
            return UniformIntegerGenerator(0, last_key, rng=rng)
        if distribution == "zipfian":
            # Sized for the keys the run is expected to insert, so the popularity
            # of existing keys does not shift as the keyspace grows; draws past
            # the current bound are rejected in next_keynum()
            expected_new_keys = int(config.operation_count * config.insert_proportion * 2.0)
            item_count = max(config.record_count + expected_new_keys, 1)
            return ScrambledZipfianGenerator(0, item_count - 1, config.zipfian_constant, rng=rng)
        if distribution == "latest":
            return SkewedLatestGenerator(self.transaction_insert_key_sequence, config.zipfian_constant, rng=rng)
        if distribution == "hotspot":
            return HotspotIntegerGenerator(0, last_key, config.hotspot_data_fraction,
                                           config.hotspot_opn_fraction, rng=rng)
        if distribution == "exponential":
            value_range = max(config.record_count * config.exponential_frac, 1.0)
            return ExponentialGenerator(config.exponential_percentile, value_range, rng=rng)
        raise InvariantViolation(f"Unhandled request distribution \"{distribution}\"")

    # Key and field selection

    def next_keynum(self) -> int:
        """
        Key number of an existing record, never past the last acknowledged
        transaction insert.
        """
        counter = self.transaction_insert_key_sequence
        if self._exponential_keys:
            while True:
                keynum = counter.last_int() - self.key_chooser.next_int()
                if keynum >= 0:
                    return keynum
        while True:
            keynum = self.key_chooser.next_int()
            if keynum <= counter.last_int():
                return keynum

    def choose_operation(self) -> OperationType:
        return self.operation_chooser.next_value()

    def _field_subset(self):
        return self.builder.random_field_subset(self.read_all_fields)

    def _values_for_write(self):
        if self.write_all_fields:
            return self.builder.build_values()
        return self.builder.build_update()

    # Inserts

    def _insert_record(self, db: StorageInterface, keynum: int) -> Status:
        key = self.builder.build_key_name(keynum)
        values = self.builder.build_values()
        if self.complex_reads:
            return db.complex_insert(self.table, key, values)
        return db.insert(self.table, key, values)

    def do_insert(self, db: StorageInterface) -> bool:
        keynum = self.key_sequence.next_int()
        return self._insert_record(db, keynum) == Status.OK

    def do_transaction(self, db: StorageInterface) -> bool:
        operation = self.choose_operation()
        handler = self._handlers.get(operation, self.do_transaction_read_modify_write)
        handler(db)
        return True

    def do_transaction_insert(self, db: StorageInterface) -> None:
        keynum = self.transaction_insert_key_sequence.next_int()
        try:
            self._insert_record(db, keynum)
        finally:
            # Failed inserts are acknowledged as well
            self.transaction_insert_key_sequence.acknowledge(keynum)

    # Reads

    def do_transaction_read(self, db: StorageInterface) -> None:
        keynum = self.next_keynum()
        key = self.builder.build_key_name(keynum)
        db.read(self.table, key, self._field_subset())

    def do_transaction_secondary_read(self, db: StorageInterface) -> None:
        fields = self._field_subset()
        value = self.builder.secondary_key_value(self.secondary_read_field)
        db.secondary_read(self.table, self.secondary_read_field.value, value, fields)

    def do_transaction_complex_read(self, db: StorageInterface) -> None:
        fields = self._field_subset()
        value = self.builder.secondary_key_value(EQUALITY_FIELD)
        lower = self.builder.secondary_key_value("lbdatekey")
        upper = self.builder.secondary_key_value("ubdatekey")
        db.complex_read(self.table, EQUALITY_FIELD, value, RANGE_FIELD, lower, upper, fields)

    # Writes

    def do_transaction_update(self, db: StorageInterface) -> None:
        keynum = self.next_keynum()
        key = self.builder.build_key_name(keynum)
        db.update(self.table, key, self._values_for_write())

    def do_transaction_read_modify_write(self, db: StorageInterface) -> None:
        keynum = self.next_keynum()
        key = self.builder.build_key_name(keynum)
        fields = self._field_subset()
        values = self._values_for_write()

        start = self.perf_counter.perf_counter()
        db.read(self.table, key, fields)
        db.update(self.table, key, values)
        self.measurements.measure(READ_MODIFY_WRITE_EVENT, self.perf_counter.elapsed_us(start))

    # Scans

    def do_transaction_scan(self, db: StorageInterface) -> None:
        keynum = self.next_keynum()
        start_key = self.builder.build_key_name(keynum)
        length = self.scan_length.next_int()
        db.scan(self.table, start_key, length, self._field_subset())

    def do_transaction_secondary_scan(self, db: StorageInterface) -> None:
        length = self.scan_length.next_int()
        fields = self._field_subset()
        start_value = self.builder.secondary_key_value(self.secondary_read_field)
        db.secondary_scan(self.table, self.secondary_read_field.value, start_value, length, fields)

    def do_transaction_complex_scan(self, db: StorageInterface) -> None:
        length = self.scan_length.next_int()
        fields = self._field_subset()
        value = self.builder.secondary_key_value(EQUALITY_FIELD)
        lower = self.builder.secondary_key_value("lbdatekey")
        upper = self.builder.secondary_key_value("ubdatekey")
        db.complex_scan(self.table, EQUALITY_FIELD, value, RANGE_FIELD, lower, upper, length, fields)

    # Aggregates

    def do_transaction_aggregate(self, db: StorageInterface) -> None:
        if self.aggregate_type is AggregateType.COMPLEX:
            # intkey is a sales amount and stringkey a customer name: reduce sales per customer over a date range
            start = self.builder.secondary_key_value("lbdatekey")
            end = self.builder.secondary_key_value("ubdatekey")
            db.complex_aggregate(self.table, RANGE_FIELD, start, end, self.aggregate_record_count,
                                 GROUP_FIELD_COMPLEX, self.group_function.value, self.aggregate_top_n)
        elif self.aggregate_type is AggregateType.SIMPLE:
            length = self.scan_length.next_int()
            db.aggregate(self.table, GROUP_FIELD_SIMPLE, length)
        else:
            raise InvariantViolation(f"Invalid aggregate type {self.aggregate_type}")
