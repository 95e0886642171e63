"""
Storage interface
Every backend adapter driven by the workload implements this contract
"""

from abc import ABC, abstractmethod
import datetime
import logging
from enum import IntEnum
from typing import Any, Dict, List, Optional, Set, Tuple

from ..ycsb_utils import FieldKind, FieldValue

Record = Dict[str, Any]


class Status(IntEnum):
    OK = 0
    ERROR = 1
    NOT_FOUND = 2


class StorageInterface(ABC):
    """
    Narrow storage contract.

    Every operation returns a Status (OK is 0); read and scan style calls
    return (Status, result). Adapters catch their driver's exceptions, log
    them and report Status.ERROR instead of raising, so a failing call never
    stops the worker that issued it. A field subset of None means all fields.
    """

    def __init__(self, properties: Optional[Dict[str, Any]] = None):
        self.properties = dict(properties or {})
        self.logger = logging.getLogger(self.__class__.__name__)

    def init(self) -> None:
        """Open connections. Called once per worker before any operation."""
        pass

    def cleanup(self) -> None:
        """Release connections. Called once per worker after its last operation."""
        pass

    @abstractmethod
    def insert(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        pass

    @abstractmethod
    def complex_insert(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        """Insert a record that also carries the typed intkey/stringkey/datekey fields"""
        pass

    @abstractmethod
    def read(self, table: str, key: str, fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        pass

    @abstractmethod
    def secondary_read(self, table: str, field: str, value: FieldValue,
                       fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        pass

    @abstractmethod
    def complex_read(self, table: str, eq_field: str, eq_value: FieldValue, range_field: str,
                     lower: FieldValue, upper: FieldValue,
                     fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        pass

    @abstractmethod
    def update(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        pass

    @abstractmethod
    def scan(self, table: str, start_key: str, count: int,
             fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        pass

    @abstractmethod
    def secondary_scan(self, table: str, field: str, start_value: FieldValue, count: int,
                       fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        pass

    @abstractmethod
    def complex_scan(self, table: str, eq_field: str, eq_value: FieldValue, range_field: str,
                     lower: FieldValue, upper: FieldValue, count: int,
                     fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        pass

    @abstractmethod
    def aggregate(self, table: str, group_field: str, limit: int) -> Tuple[Status, List[Record]]:
        """Distinct group_field values over the first `limit` records, descending"""
        pass

    @abstractmethod
    def complex_aggregate(self, table: str, match_field: str, start: FieldValue, end: FieldValue,
                          record_limit: int, group_field: str, reducer: str,
                          top_n: int) -> Tuple[Status, List[Record]]:
        """
        Filter on start <= match_field <= end, keep at most record_limit
        records, group them by group_field reducing intkey, and return the
        top_n groups by reduced value, descending.
        """
        pass


def to_native(value: FieldValue) -> Any:
    """Python value a driver can bind directly; dates become midnight datetimes."""
    if value.kind is FieldKind.DATE:
        return datetime.datetime.combine(value.value, datetime.time())
    return value.value
