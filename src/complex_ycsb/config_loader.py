import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple
from dataclasses import dataclass, fields, replace
from enum import Enum
import os


# 1. ConfigurationError lives here since every validation happens while loading
class ConfigurationError(Exception):
    """Raised once at startup for an unusable workload configuration."""
    pass


class InsertOrder(Enum):
    ORDERED = "ordered"
    HASHED = "hashed"


class SecondaryField(Enum):
    INTKEY = "intkey"
    STRINGKEY = "stringkey"
    DATEKEY = "datekey"


class AggregateType(Enum):
    SIMPLE = "simple"
    COMPLEX = "complex"


class Reducer(Enum):
    SUM = "sum"
    AVG = "avg"
    FIRST = "first"
    LAST = "last"
    MIN = "min"
    MAX = "max"
    COUNT = "count"


REQUEST_DISTRIBUTIONS = ("uniform", "zipfian", "latest", "hotspot", "exponential")
FIELD_LENGTH_DISTRIBUTIONS = ("constant", "uniform", "zipfian", "histogram")
SCAN_LENGTH_DISTRIBUTIONS = ("uniform", "zipfian")
SECONDARY_KEY_DISTRIBUTIONS = ("uniform", "zipfian")


# 2. Immutable configuration handed to every component at construction
@dataclass(frozen=True)
class WorkloadConfig:
    """Fully parsed and validated workload configuration."""
    table: str = "complextable"
    record_count: int = 0
    operation_count: int = 0
    insert_start: int = 0

    field_count: int = 10
    field_length: int = 100
    field_length_distribution: str = "constant"
    field_length_histogram: str = "hist.txt"
    read_all_fields: bool = True
    write_all_fields: bool = False

    read_proportion: float = 0.95
    secondary_read_proportion: float = 0.0
    complex_read_proportion: float = 0.0
    update_proportion: float = 0.05
    insert_proportion: float = 0.0
    scan_proportion: float = 0.0
    secondary_scan_proportion: float = 0.0
    complex_scan_proportion: float = 0.0
    aggregate_proportion: float = 0.0
    read_modify_write_proportion: float = 0.0

    request_distribution: str = "uniform"
    zipfian_constant: float = 0.99
    hotspot_data_fraction: float = 0.2
    hotspot_opn_fraction: float = 0.8
    exponential_percentile: float = 95.0
    exponential_frac: float = 0.8571428571

    max_scan_length: int = 1000
    scan_length_distribution: str = "uniform"
    insert_order: InsertOrder = InsertOrder.HASHED

    complex_reads: bool = True
    secondary_read_field: SecondaryField = SecondaryField.INTKEY
    aggregate_type: AggregateType = AggregateType.SIMPLE
    aggregate_record_count: int = 1000
    aggregate_top_n: int = 20
    group_function: Reducer = Reducer.SUM
    secondary_key_distribution: str = "uniform"
    num_distinct_int_keys: int = 500
    num_distinct_string_keys: int = 500
    num_distinct_date_keys: int = 500

    seed: Optional[int] = None

    @property
    def ordered_inserts(self) -> bool:
        return self.insert_order is InsertOrder.ORDERED

    def key_targeted_proportion(self) -> float:
        """Total weight of operations that pick an existing record by key number."""
        return (self.read_proportion + self.update_proportion + self.scan_proportion
                + self.read_modify_write_proportion)

    def extended_proportion(self) -> float:
        """Total weight of operations that need the intkey/stringkey/datekey fields."""
        return (self.secondary_read_proportion + self.complex_read_proportion
                + self.secondary_scan_proportion + self.complex_scan_proportion
                + self.aggregate_proportion)

    @classmethod
    def from_properties(cls, props: Dict[str, Any]) -> "WorkloadConfig":
        """
        Build a config from YCSB-style properties ("fieldcount", "readproportion", ...).
        Values may be strings (properties files, -p overrides) or JSON scalars.
        Unknown keys are left for other components (storage adapters, driver).
        """
        values = {}
        for prop_name, (attr, parser) in PROPERTY_PARSERS.items():
            if prop_name not in props:
                continue
            raw = props[prop_name]
            try:
                values[attr] = parser(raw)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid value for '{prop_name}': {raw!r} ({e})")
        config = cls(**values)
        config.validate()
        return config

    def with_overrides(self, **changes) -> "WorkloadConfig":
        config = replace(self, **changes)
        config.validate()
        return config

    def validate(self) -> None:
        if self.request_distribution not in REQUEST_DISTRIBUTIONS:
            raise ConfigurationError(f"Unknown request distribution \"{self.request_distribution}\"")
        if self.field_length_distribution not in FIELD_LENGTH_DISTRIBUTIONS:
            raise ConfigurationError(f"Unknown field length distribution \"{self.field_length_distribution}\"")
        if self.scan_length_distribution not in SCAN_LENGTH_DISTRIBUTIONS:
            raise ConfigurationError(f"Distribution \"{self.scan_length_distribution}\" not allowed for scan length")
        if self.secondary_key_distribution not in SECONDARY_KEY_DISTRIBUTIONS:
            raise ConfigurationError(
                f"Distribution \"{self.secondary_key_distribution}\" not allowed for secondary keys")

        if self.field_count < 1:
            raise ConfigurationError(f"fieldcount must be at least 1, got {self.field_count}")
        if self.field_length < 1:
            raise ConfigurationError(f"fieldlength must be at least 1, got {self.field_length}")
        if self.max_scan_length < 1:
            raise ConfigurationError(f"maxscanlength must be at least 1, got {self.max_scan_length}")
        if self.record_count < 0 or self.operation_count < 0 or self.insert_start < 0:
            raise ConfigurationError("recordcount, operationcount and insertstart must not be negative")
        if self.aggregate_record_count < 1 or self.aggregate_top_n < 1:
            raise ConfigurationError("aggregaterecordcount and aggregatetopn must be at least 1")

        for f in fields(self):
            if f.name.endswith("_proportion") and getattr(self, f.name) < 0:
                raise ConfigurationError(f"{f.name} must not be negative")

        if self.complex_reads:
            if min(self.num_distinct_int_keys, self.num_distinct_string_keys) < 1:
                raise ConfigurationError("numdistinctintkeys and numdistinctstringkeys must be at least 1")
            # lower and upper date bounds each need a non-empty slice of the offsets
            if self.num_distinct_date_keys < 3:
                raise ConfigurationError(
                    f"numdistinctdatekeys must be at least 3, got {self.num_distinct_date_keys}")
        elif self.extended_proportion() > 0:
            raise ConfigurationError(
                "Secondary, complex and aggregate operations require complexreads=true")

        if self.key_targeted_proportion() > 0 and self.record_count < 1:
            raise ConfigurationError("Key based operations require recordcount of at least 1")


def parse_bool(value: Any) -> bool:
    # Same rule as Java's Boolean.parseBoolean: only "true" is true
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("not an integer")
        return int(value)
    return int(str(value).strip())


def parse_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    return float(str(value).strip())


def parse_str(value: Any) -> str:
    return str(value).strip()


def parse_optional_int(value: Any) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    return parse_int(value)


def _enum_parser(enum_cls, what: str) -> Callable[[Any], Enum]:
    def parse(value: Any):
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            raise ConfigurationError(f"Invalid {what} \"{value}\" (expected one of: {allowed})")
    return parse


# property name -> (WorkloadConfig attribute, parser)
PROPERTY_PARSERS: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "table": ("table", parse_str),
    "recordcount": ("record_count", parse_int),
    "operationcount": ("operation_count", parse_int),
    "insertstart": ("insert_start", parse_int),
    "fieldcount": ("field_count", parse_int),
    "fieldlength": ("field_length", parse_int),
    "fieldlengthdistribution": ("field_length_distribution", parse_str),
    "fieldlengthhistogram": ("field_length_histogram", parse_str),
    "readallfields": ("read_all_fields", parse_bool),
    "writeallfields": ("write_all_fields", parse_bool),
    "readproportion": ("read_proportion", parse_float),
    "secondaryreadproportion": ("secondary_read_proportion", parse_float),
    "complexreadproportion": ("complex_read_proportion", parse_float),
    "updateproportion": ("update_proportion", parse_float),
    "insertproportion": ("insert_proportion", parse_float),
    "scanproportion": ("scan_proportion", parse_float),
    "secondaryscanproportion": ("secondary_scan_proportion", parse_float),
    "complexscanproportion": ("complex_scan_proportion", parse_float),
    "aggregateproportion": ("aggregate_proportion", parse_float),
    "readmodifywriteproportion": ("read_modify_write_proportion", parse_float),
    "requestdistribution": ("request_distribution", parse_str),
    "zipfianconstant": ("zipfian_constant", parse_float),
    "hotspotdatafraction": ("hotspot_data_fraction", parse_float),
    "hotspotopnfraction": ("hotspot_opn_fraction", parse_float),
    "exponential.percentile": ("exponential_percentile", parse_float),
    "exponential.frac": ("exponential_frac", parse_float),
    "maxscanlength": ("max_scan_length", parse_int),
    "scanlengthdistribution": ("scan_length_distribution", parse_str),
    "insertorder": ("insert_order", _enum_parser(InsertOrder, "insert order")),
    "complexreads": ("complex_reads", parse_bool),
    "secondaryreadfield": ("secondary_read_field", _enum_parser(SecondaryField, "secondary read field")),
    "aggregatetype": ("aggregate_type", _enum_parser(AggregateType, "aggregate type")),
    "aggregaterecordcount": ("aggregate_record_count", parse_int),
    "aggregatetopn": ("aggregate_top_n", parse_int),
    "groupfunction": ("group_function", _enum_parser(Reducer, "group function")),
    "secondarykeydistribution": ("secondary_key_distribution", parse_str),
    "numdistinctintkeys": ("num_distinct_int_keys", parse_int),
    "numdistinctstringkeys": ("num_distinct_string_keys", parse_int),
    "numdistinctdatekeys": ("num_distinct_date_keys", parse_int),
    "seed": ("seed", parse_optional_int),
}


class ConfigLoader:
    """
    Handles loading and parsing the workload configuration file.

    Two formats are accepted: a JSON object of properties, or a Java style
    properties file (key=value lines, '#' comments). Command line overrides
    are applied on top of the file.
    """
    def __init__(self, config_file_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger("ConfigLoader")
        self.config_file_path = config_file_path
        self.overrides = dict(overrides or {})
        if config_file_path is not None and not os.path.exists(config_file_path):
            raise ConfigurationError(f"Configuration file not found: {config_file_path}")
        self.properties = self._load_properties()

    def _load_properties(self) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        if self.config_file_path is not None:
            if self.config_file_path.endswith(".json"):
                properties.update(self._load_json())
            else:
                properties.update(self._load_properties_file())
        properties.update(self.overrides)
        return properties

    def _load_json(self) -> Dict[str, Any]:
        try:
            with open(self.config_file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Failed to parse configuration file: {self.config_file_path} - {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration file: {self.config_file_path} - {e}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {self.config_file_path} must hold a JSON object")
        return data

    def _load_properties_file(self) -> Dict[str, str]:
        properties = {}
        try:
            with open(self.config_file_path, 'r', encoding='utf-8') as f:
                for line_no, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line or line.startswith("#") or line.startswith("!"):
                        continue
                    if "=" not in line:
                        raise ConfigurationError(
                            f"{self.config_file_path}:{line_no}: expected key=value, got {line!r}")
                    key, value = line.split("=", 1)
                    properties[key.strip()] = value.strip()
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration file: {self.config_file_path} - {e}")
        return properties

    def get_full_config(self) -> Dict[str, Any]:
        """Return every property, including the ones the workload does not read."""
        return dict(self.properties)

    def load_and_process(self) -> WorkloadConfig:
        config = WorkloadConfig.from_properties(self.properties)
        self.logger.info(f"Loaded workload configuration from {self.config_file_path or '<overrides>'}: "
                         f"recordcount={config.record_count}, distribution={config.request_distribution}, "
                         f"complexreads={config.complex_reads}")
        return config


def parse_property_overrides(pairs) -> Dict[str, str]:
    """Turn ["key=value", ...] (the -p command line option) into a dict."""
    overrides = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ConfigurationError(f"Property override must look like key=value, got {pair!r}")
        key, value = pair.split("=", 1)
        overrides[key.strip()] = value.strip()
    return overrides
