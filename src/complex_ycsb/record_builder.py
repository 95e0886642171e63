"""
Record builder
Maps key numbers to record keys and synthesizes base and extended field values
"""

import logging
import random
from typing import Any, Dict, Optional, Set

from .config_loader import ConfigurationError, SecondaryField, WorkloadConfig
from .generators import (
    ConstantIntegerGenerator, HistogramGenerator, IntegerGenerator,
    UniformIntegerGenerator, ZipfianGenerator
)
from .ycsb_utils import (
    EXTENDED_FIELDS, FieldValue, InvariantViolation, days_offset_date, derive_rng,
    fnv_hash64, get_key_prefix, random_name, random_payload
)


def build_field_length_generator(config: WorkloadConfig, rng: random.Random) -> IntegerGenerator:
    distribution = config.field_length_distribution
    if distribution == "constant":
        return ConstantIntegerGenerator(config.field_length)
    if distribution == "uniform":
        return UniformIntegerGenerator(1, config.field_length, rng=rng)
    if distribution == "zipfian":
        return ZipfianGenerator(1, config.field_length, rng=rng)
    if distribution == "histogram":
        return HistogramGenerator(config.field_length_histogram, rng=rng)
    raise ConfigurationError(f"Unknown field length distribution \"{distribution}\"")


def _secondary_key_generator(config: WorkloadConfig, num_distinct: int, rng: random.Random) -> IntegerGenerator:
    if config.secondary_key_distribution == "uniform":
        return UniformIntegerGenerator(1, num_distinct, rng=rng)
    if config.secondary_key_distribution == "zipfian":
        return ZipfianGenerator(1, num_distinct, rng=rng)
    raise ConfigurationError(
        f"Distribution \"{config.secondary_key_distribution}\" not allowed for secondary keys")


class RecordBuilder:
    """
    Turns key numbers into record keys and synthesizes field values.

    All generators are created once here and then only drawn from, so a single
    builder is shared by every worker thread.

    Args:
        config (WorkloadConfig): Parsed workload configuration.
        seed_source (random.Random): Source of seeds for the builder's own generators.
    """

    def __init__(self, config: WorkloadConfig, seed_source: Optional[random.Random] = None):
        self.logger = logging.getLogger("RecordBuilder")
        seed_source = seed_source if seed_source is not None else random.Random()

        self.field_count = config.field_count
        self.ordered_inserts = config.ordered_inserts
        self.complex_reads = config.complex_reads
        self.num_distinct_date_keys = config.num_distinct_date_keys

        self.field_names = [f"field{i}" for i in range(config.field_count)]
        self.field_length_generator = build_field_length_generator(config, derive_rng(seed_source))
        self.field_chooser = UniformIntegerGenerator(0, config.field_count - 1, rng=derive_rng(seed_source))
        self.payload_rng = derive_rng(seed_source)

        self._value_builders = {}
        if config.complex_reads:
            n_dates = config.num_distinct_date_keys
            self.int_key_generator = _secondary_key_generator(
                config, config.num_distinct_int_keys, derive_rng(seed_source))
            self.string_key_generator = _secondary_key_generator(
                config, config.num_distinct_string_keys, derive_rng(seed_source))
            self.days_offset_generator = UniformIntegerGenerator(1, n_dates, rng=derive_rng(seed_source))
            # Range bounds come from the bottom and top 40% of the offsets
            self.lb_days_offset_generator = UniformIntegerGenerator(
                1, int(n_dates * 0.40), rng=derive_rng(seed_source))
            self.ub_days_offset_generator = UniformIntegerGenerator(
                int(1 + n_dates * 0.60), n_dates, rng=derive_rng(seed_source))

            self._value_builders = {
                "intkey": lambda: FieldValue.of_int(self.int_key_generator.next_int()),
                "stringkey": lambda: FieldValue.of_text(random_name(self.string_key_generator.next_int())),
                "datekey": lambda: self._date_value(self.days_offset_generator),
                "lbdatekey": lambda: self._date_value(self.lb_days_offset_generator),
                "ubdatekey": lambda: self._date_value(self.ub_days_offset_generator),
            }

    def _date_value(self, generator: IntegerGenerator) -> FieldValue:
        return FieldValue.of_date(days_offset_date(generator.next_int(), self.num_distinct_date_keys))

    def build_key_name(self, keynum: int) -> str:
        if not self.ordered_inserts:
            keynum = fnv_hash64(keynum)
        return f"{get_key_prefix()}{keynum}"

    def random_field_name(self) -> str:
        return self.field_names[self.field_chooser.next_int()]

    def random_field_subset(self, read_all_fields: bool) -> Optional[Set[str]]:
        """None means every field; otherwise a single uniformly chosen base field."""
        if read_all_fields:
            return None
        return {self.random_field_name()}

    def _payload(self) -> FieldValue:
        length = self.field_length_generator.next_int()
        return FieldValue.of_bytes(random_payload(length, self.payload_rng))

    def build_values(self) -> Dict[str, FieldValue]:
        """Full field set: the extended keys (if enabled) followed by field0..fieldN-1."""
        values = {}
        if self.complex_reads:
            for name in EXTENDED_FIELDS:
                values[name] = self._value_builders[name]()
        for name in self.field_names:
            values[name] = self._payload()
        return values

    def build_update(self) -> Dict[str, FieldValue]:
        return {self.random_field_name(): self._payload()}

    def secondary_key_value(self, field: Any) -> FieldValue:
        """
        Draw a lookup value for an extended field.

        Args:
            field: "intkey", "stringkey", "datekey", "lbdatekey", "ubdatekey"
                or a SecondaryField member.

        Raises:
            InvariantViolation: field is not one of the names above, or the
                builder was created without extended fields.
        """
        name = field.value if isinstance(field, SecondaryField) else field
        builder = self._value_builders.get(name)
        if builder is None:
            raise InvariantViolation(f"Invalid secondary field: {field!r}")
        return builder()
