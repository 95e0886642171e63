"""
MongoDB storage adapter (pymongo)

Records are documents keyed by _id. Byte payloads are stored as BSON binary,
dates as BSON datetimes at midnight. Query and pipeline documents are built by
the module level functions so they can be checked without a server.
"""

import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from pymongo import MongoClient, ReadPreference
from pymongo.errors import PyMongoError
from pymongo.write_concern import WriteConcern

from .base_storage import Record, Status, StorageInterface, to_native
from ..config_loader import ConfigurationError, Reducer
from ..ycsb_utils import FieldValue

WRITE_CONCERNS = {
    "errors_ignored": WriteConcern(w=0),
    "unacknowledged": WriteConcern(w=0),
    "acknowledged": WriteConcern(w=1),
    "journaled": WriteConcern(w=1, j=True),
    "replica_acknowledged": WriteConcern(w=2),
    "majority": WriteConcern(w="majority"),
}

READ_PREFERENCES = {
    "primary": ReadPreference.PRIMARY,
    "primary_preferred": ReadPreference.PRIMARY_PREFERRED,
    "secondary": ReadPreference.SECONDARY,
    "secondary_preferred": ReadPreference.SECONDARY_PREFERRED,
    "nearest": ReadPreference.NEAREST,
}

# The reduced field is always intkey (sales amount per customer name)
REDUCED_FIELD = "intkey"


def build_document(key: str, values: Dict[str, FieldValue]) -> Dict[str, Any]:
    document = {"_id": key}
    for name, value in values.items():
        document[name] = to_native(value)
    return document


def build_projection(fields: Optional[Set[str]]) -> Optional[Dict[str, int]]:
    if fields is None:
        return None
    return {name: 1 for name in sorted(fields)}


def build_range_filter(eq_field: str, eq_value: FieldValue, range_field: str,
                       lower: FieldValue, upper: FieldValue) -> Dict[str, Any]:
    return {
        eq_field: to_native(eq_value),
        range_field: {"$gte": to_native(lower), "$lte": to_native(upper)},
    }


def build_simple_aggregate_pipeline(group_field: str, limit: int) -> List[Dict[str, Any]]:
    """Distinct values of group_field within the first `limit` documents, descending"""
    return [
        {"$limit": limit},
        {"$group": {"_id": f"${group_field}"}},
        {"$sort": {"_id": -1}},
    ]


def build_complex_aggregate_pipeline(match_field: str, start: FieldValue, end: FieldValue,
                                     record_limit: int, group_field: str, reducer: Reducer,
                                     top_n: int) -> List[Dict[str, Any]]:
    """
    Match a range of match_field, cap the matched documents, reduce intkey per
    group_field value and keep the top_n groups by reduced value.
    """
    output_name = f"{reducer.value}{REDUCED_FIELD}"
    if reducer is Reducer.COUNT:
        accumulator = {"$sum": 1}
    else:
        accumulator = {f"${reducer.value}": f"${REDUCED_FIELD}"}
    return [
        {"$match": {match_field: {"$gte": to_native(start), "$lte": to_native(end)}}},
        {"$limit": record_limit},
        {"$group": {"_id": f"${group_field}", output_name: accumulator}},
        {"$sort": {output_name: -1}},
        {"$limit": top_n},
    ]


def _decode_document(document: Dict[str, Any]) -> Record:
    record = dict(document)
    value = record.get("datekey")
    if isinstance(value, datetime.datetime):
        record["datekey"] = value.date()
    return record


class MongoStorage(StorageInterface):
    """
    pymongo backed adapter.

    Properties:
        mongodb.url: connection string, "mongodb://localhost:27017" by default
        mongodb.database: database name, "ycsb" by default
        mongodb.writeConcern: one of WRITE_CONCERNS, "acknowledged" by default
        mongodb.readPreference: one of READ_PREFERENCES, "primary" by default
        threadcount: connection pool size
    """

    def __init__(self, properties: Optional[Dict[str, Any]] = None):
        super().__init__(properties)
        self.url = str(self.properties.get("mongodb.url", "mongodb://localhost:27017"))
        self.database_name = str(self.properties.get("mongodb.database", "ycsb"))
        self.pool_size = int(self.properties.get("threadcount", 100))

        write_concern = str(self.properties.get("mongodb.writeConcern", "acknowledged")).lower()
        if write_concern not in WRITE_CONCERNS:
            raise ConfigurationError(f"Invalid writeConcern: '{write_concern}'")
        self.write_concern = WRITE_CONCERNS[write_concern]

        read_preference = str(self.properties.get("mongodb.readPreference", "primary")).lower()
        if read_preference not in READ_PREFERENCES:
            raise ConfigurationError(f"Invalid readPreference: '{read_preference}'")
        self.read_preference = READ_PREFERENCES[read_preference]

        self.client: Optional[MongoClient] = None
        self.database = None

    def init(self) -> None:
        if self.client is not None:
            return
        self.client = MongoClient(self.url, maxPoolSize=self.pool_size)
        self.database = self.client.get_database(
            self.database_name, write_concern=self.write_concern, read_preference=self.read_preference)
        self.logger.info(f"Connected to {self.url}, database {self.database_name}")

    def cleanup(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
            self.database = None

    def _collection(self, table: str):
        return self.database[table]

    def insert(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        try:
            self._collection(table).insert_one(build_document(key, values))
            return Status.OK
        except PyMongoError as e:
            self.logger.error(f"Insert of {key} failed: {e}")
            return Status.ERROR

    def complex_insert(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        return self.insert(table, key, values)

    def update(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        try:
            changes = {name: to_native(value) for name, value in values.items()}
            self._collection(table).update_one({"_id": key}, {"$set": changes})
            return Status.OK
        except PyMongoError as e:
            self.logger.error(f"Update of {key} failed: {e}")
            return Status.ERROR

    def _find_one(self, table: str, query: Dict[str, Any], fields: Optional[Set[str]]) -> Tuple[Status, Record]:
        try:
            document = self._collection(table).find_one(query, build_projection(fields))
        except PyMongoError as e:
            self.logger.error(f"Read {query} failed: {e}")
            return Status.ERROR, {}
        if document is None:
            return Status.NOT_FOUND, {}
        return Status.OK, _decode_document(document)

    def _find(self, table: str, query: Dict[str, Any], count: int,
              fields: Optional[Set[str]]) -> Tuple[Status, List[Record]]:
        try:
            cursor = self._collection(table).find(query, build_projection(fields)).limit(count)
            with cursor:
                return Status.OK, [_decode_document(document) for document in cursor]
        except PyMongoError as e:
            self.logger.error(f"Scan {query} failed: {e}")
            return Status.ERROR, []

    def read(self, table: str, key: str, fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        return self._find_one(table, {"_id": key}, fields)

    def secondary_read(self, table: str, field: str, value: FieldValue,
                       fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        return self._find_one(table, {field: to_native(value)}, fields)

    def complex_read(self, table: str, eq_field: str, eq_value: FieldValue, range_field: str,
                     lower: FieldValue, upper: FieldValue,
                     fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        query = build_range_filter(eq_field, eq_value, range_field, lower, upper)
        return self._find_one(table, query, fields)

    def scan(self, table: str, start_key: str, count: int,
             fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        return self._find(table, {"_id": {"$gte": start_key}}, count, fields)

    def secondary_scan(self, table: str, field: str, start_value: FieldValue, count: int,
                       fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        return self._find(table, {field: {"$gte": to_native(start_value)}}, count, fields)

    def complex_scan(self, table: str, eq_field: str, eq_value: FieldValue, range_field: str,
                     lower: FieldValue, upper: FieldValue, count: int,
                     fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        query = build_range_filter(eq_field, eq_value, range_field, lower, upper)
        return self._find(table, query, count, fields)

    def _aggregate(self, table: str, pipeline: List[Dict[str, Any]]) -> Tuple[Status, List[Record]]:
        try:
            with self._collection(table).aggregate(pipeline, allowDiskUse=True, batchSize=100) as cursor:
                return Status.OK, list(cursor)
        except PyMongoError as e:
            self.logger.error(f"Aggregate on {table} failed: {e}")
            return Status.ERROR, []

    def aggregate(self, table: str, group_field: str, limit: int) -> Tuple[Status, List[Record]]:
        return self._aggregate(table, build_simple_aggregate_pipeline(group_field, limit))

    def complex_aggregate(self, table: str, match_field: str, start: FieldValue, end: FieldValue,
                          record_limit: int, group_field: str, reducer: str,
                          top_n: int) -> Tuple[Status, List[Record]]:
        try:
            reducer = Reducer(reducer)
        except ValueError:
            self.logger.error(f"Invalid accumulator: {reducer}")
            return Status.ERROR, []
        pipeline = build_complex_aggregate_pipeline(match_field, start, end, record_limit,
                                                    group_field, reducer, top_n)
        return self._aggregate(table, pipeline)
