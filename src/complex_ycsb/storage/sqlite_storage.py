"""
SQLite storage adapter (apsw)

One row per record: the record key, the three extended key columns and one
BLOB column per base field. Dates are stored as ISO strings, which order the
same way the dates do.
"""

import datetime
import threading
import time
from typing import Any, Dict, List, Optional, Set, Tuple

import apsw

from .base_storage import Record, Status, StorageInterface
from ..config_loader import Reducer
from ..ycsb_utils import EXTENDED_FIELDS, FieldKind, FieldValue

KEY_COLUMN = "ycsb_key"

# Reduced value expression per reducer; first/last rely on SQLite picking the
# bare intkey column from the row that holds MIN/MAX(rid)
_REDUCER_SQL = {
    Reducer.SUM: "SUM(intkey)",
    Reducer.AVG: "AVG(intkey)",
    Reducer.MIN: "MIN(intkey)",
    Reducer.MAX: "MAX(intkey)",
    Reducer.COUNT: "COUNT(*)",
    Reducer.FIRST: "intkey",
    Reducer.LAST: "intkey",
}
_REDUCER_EXTRA = {
    Reducer.FIRST: ", MIN(rid)",
    Reducer.LAST: ", MAX(rid)",
}


def safe_connect_database_with_retry(db_filename: str, max_retries: int = 5,
                                     retry_delay: float = 1.0) -> apsw.Connection:
    """
    Safely connect to database and retry when encountering locks.
    """
    for attempt in range(max_retries):
        try:
            return apsw.Connection(db_filename)
        except apsw.BusyError:
            if attempt < max_retries - 1:
                time.sleep(retry_delay)
            else:
                raise
    raise RuntimeError(f"Unable to connect to database {db_filename} after {max_retries} attempts.")


def encode_value(value: FieldValue) -> Any:
    if value.kind is FieldKind.DATE:
        return value.value.isoformat()
    return value.value


def decode_row(columns: List[str], row: Tuple) -> Record:
    record = {}
    for name, raw in zip(columns, row):
        if name == "datekey" and raw is not None:
            raw = datetime.date.fromisoformat(raw)
        record[name] = raw
    return record


class SQLiteStorage(StorageInterface):
    """
    apsw backed adapter.

    Properties:
        sqlite.path: database file, ":memory:" by default
        sqlite.journal_mode: journal mode pragma, "WAL" by default
        table, fieldcount: schema created by init()

    A single connection is used per adapter instance and guarded by
    conn_lock, so one instance may be shared by several workers.
    """

    def __init__(self, properties: Optional[Dict[str, Any]] = None):
        super().__init__(properties)
        self.db_path = str(self.properties.get("sqlite.path", ":memory:"))
        self.journal_mode = str(self.properties.get("sqlite.journal_mode", "WAL"))
        self.table = str(self.properties.get("table", "complextable"))
        self.field_count = int(self.properties.get("fieldcount", 10))
        self.field_names = [f"field{i}" for i in range(self.field_count)]
        self.columns = [KEY_COLUMN, *EXTENDED_FIELDS, *self.field_names]
        self._known_columns = set(self.columns)
        self.conn: Optional[apsw.Connection] = None
        self.conn_lock = threading.Lock()

    def init(self) -> None:
        with self.conn_lock:
            if self.conn is not None:
                return
            self.conn = safe_connect_database_with_retry(self.db_path)
            self.conn.cursor().execute("PRAGMA busy_timeout = 5000")
            if self.db_path != ":memory:":
                self.conn.cursor().execute(f"PRAGMA journal_mode = {self.journal_mode}")
            self._create_schema()
        self.logger.info(f"Opened {self.db_path} (table={self.table}, fields={self.field_count})")

    def _create_schema(self) -> None:
        field_definitions = ", ".join(f"{name} BLOB" for name in self.field_names)
        self.conn.cursor().execute(f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                {KEY_COLUMN} TEXT PRIMARY KEY,
                intkey INTEGER,
                stringkey TEXT,
                datekey TEXT,
                {field_definitions}
            )
        """)
        for name in EXTENDED_FIELDS:
            self.conn.cursor().execute(f"CREATE INDEX IF NOT EXISTS idx_{self.table}_{name} ON {self.table} ({name})")

    def cleanup(self) -> None:
        with self.conn_lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

    def _check_columns(self, table: str, names) -> None:
        if table != self.table:
            raise ValueError(f"Unknown table: {table}")
        unknown = [name for name in names if name not in self._known_columns]
        if unknown:
            raise ValueError(f"Unknown column(s): {', '.join(unknown)}")

    def _projection(self, table: str, fields: Optional[Set[str]]) -> List[str]:
        if fields is None:
            return list(self.columns)
        projection = [KEY_COLUMN] + sorted(fields)
        self._check_columns(table, projection)
        return projection

    def _query(self, sql: str, params: Tuple) -> List[Tuple]:
        with self.conn_lock:
            return list(self.conn.cursor().execute(sql, params))

    def _fetch(self, table: str, where: str, params: Tuple, order_by: Optional[str],
               limit: int, fields: Optional[Set[str]]) -> List[Record]:
        projection = self._projection(table, fields)
        sql = f"SELECT {', '.join(projection)} FROM {table} WHERE {where}"
        if order_by:
            sql += f" ORDER BY {order_by}"
        sql += " LIMIT ?"
        rows = self._query(sql, params + (limit,))
        return [decode_row(projection, row) for row in rows]

    # Writes

    def insert(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        try:
            self._check_columns(table, values)
            names = [KEY_COLUMN] + list(values)
            placeholders = ", ".join(["?"] * len(names))
            params = (key,) + tuple(encode_value(v) for v in values.values())
            with self.conn_lock:
                self.conn.cursor().execute(f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders})", params)
            return Status.OK
        except (apsw.Error, ValueError) as e:
            self.logger.error(f"Insert of {key} failed: {e}")
            return Status.ERROR

    def complex_insert(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        return self.insert(table, key, values)

    def update(self, table: str, key: str, values: Dict[str, FieldValue]) -> Status:
        try:
            self._check_columns(table, values)
            assignments = ", ".join(f"{name} = ?" for name in values)
            params = tuple(encode_value(v) for v in values.values()) + (key,)
            with self.conn_lock:
                self.conn.cursor().execute(f"UPDATE {table} SET {assignments} WHERE {KEY_COLUMN} = ?", params)
                changed = self.conn.changes()
            return Status.OK if changed else Status.NOT_FOUND
        except (apsw.Error, ValueError) as e:
            self.logger.error(f"Update of {key} failed: {e}")
            return Status.ERROR

    # Point reads

    def read(self, table: str, key: str, fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        try:
            records = self._fetch(table, f"{KEY_COLUMN} = ?", (key,), None, 1, fields)
        except (apsw.Error, ValueError) as e:
            self.logger.error(f"Read of {key} failed: {e}")
            return Status.ERROR, {}
        if not records:
            return Status.NOT_FOUND, {}
        return Status.OK, records[0]

    def secondary_read(self, table: str, field: str, value: FieldValue,
                       fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        try:
            self._check_columns(table, [field])
            records = self._fetch(table, f"{field} = ?", (encode_value(value),), None, 1, fields)
        except (apsw.Error, ValueError) as e:
            self.logger.error(f"Secondary read on {field} failed: {e}")
            return Status.ERROR, {}
        if not records:
            return Status.NOT_FOUND, {}
        return Status.OK, records[0]

    def complex_read(self, table: str, eq_field: str, eq_value: FieldValue, range_field: str,
                     lower: FieldValue, upper: FieldValue,
                     fields: Optional[Set[str]] = None) -> Tuple[Status, Record]:
        try:
            self._check_columns(table, [eq_field, range_field])
            where = f"{eq_field} = ? AND {range_field} BETWEEN ? AND ?"
            params = (encode_value(eq_value), encode_value(lower), encode_value(upper))
            records = self._fetch(table, where, params, None, 1, fields)
        except (apsw.Error, ValueError) as e:
            self.logger.error(f"Complex read on {eq_field}/{range_field} failed: {e}")
            return Status.ERROR, {}
        if not records:
            return Status.NOT_FOUND, {}
        return Status.OK, records[0]

    # Scans

    def scan(self, table: str, start_key: str, count: int,
             fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        try:
            records = self._fetch(table, f"{KEY_COLUMN} >= ?", (start_key,), KEY_COLUMN, count, fields)
            return Status.OK, records
        except (apsw.Error, ValueError) as e:
            self.logger.error(f"Scan from {start_key} failed: {e}")
            return Status.ERROR, []

    def secondary_scan(self, table: str, field: str, start_value: FieldValue, count: int,
                       fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        try:
            self._check_columns(table, [field])
            records = self._fetch(table, f"{field} >= ?", (encode_value(start_value),),
                                  f"{field}, {KEY_COLUMN}", count, fields)
            return Status.OK, records
        except (apsw.Error, ValueError) as e:
            self.logger.error(f"Secondary scan on {field} failed: {e}")
            return Status.ERROR, []

    def complex_scan(self, table: str, eq_field: str, eq_value: FieldValue, range_field: str,
                     lower: FieldValue, upper: FieldValue, count: int,
                     fields: Optional[Set[str]] = None) -> Tuple[Status, List[Record]]:
        try:
            self._check_columns(table, [eq_field, range_field])
            where = f"{eq_field} = ? AND {range_field} BETWEEN ? AND ?"
            params = (encode_value(eq_value), encode_value(lower), encode_value(upper))
            records = self._fetch(table, where, params, f"{range_field}, {KEY_COLUMN}", count, fields)
            return Status.OK, records
        except (apsw.Error, ValueError) as e:
            self.logger.error(f"Complex scan on {eq_field}/{range_field} failed: {e}")
            return Status.ERROR, []

    # Aggregates

    def aggregate(self, table: str, group_field: str, limit: int) -> Tuple[Status, List[Record]]:
        try:
            self._check_columns(table, [group_field])
            sql = (f"SELECT {group_field} FROM (SELECT {group_field} FROM {table} LIMIT ?) "
                   f"GROUP BY {group_field} ORDER BY {group_field} DESC")
            rows = self._query(sql, (limit,))
            return Status.OK, [{"_id": row[0]} for row in rows]
        except (apsw.Error, ValueError) as e:
            self.logger.error(f"Aggregate on {group_field} failed: {e}")
            return Status.ERROR, []

    def complex_aggregate(self, table: str, match_field: str, start: FieldValue, end: FieldValue,
                          record_limit: int, group_field: str, reducer: str,
                          top_n: int) -> Tuple[Status, List[Record]]:
        try:
            reducer = Reducer(reducer)
            self._check_columns(table, [match_field, group_field])
            output_name = f"{reducer.value}intkey"
            sql = (f"SELECT {group_field}, {_REDUCER_SQL[reducer]} AS reduced{_REDUCER_EXTRA.get(reducer, '')} "
                   f"FROM (SELECT rowid AS rid, {group_field}, intkey FROM {table} "
                   f"WHERE {match_field} BETWEEN ? AND ? LIMIT ?) "
                   f"GROUP BY {group_field} ORDER BY reduced DESC LIMIT ?")
            rows = self._query(sql, (encode_value(start), encode_value(end), record_limit, top_n))
            return Status.OK, [{"_id": row[0], output_name: row[1]} for row in rows]
        except (apsw.Error, ValueError) as e:
            self.logger.error(f"Complex aggregate on {match_field}/{group_field} failed: {e}")
            return Status.ERROR, []

    def count_records(self, table: Optional[str] = None) -> int:
        table = table or self.table
        return self._query(f"SELECT COUNT(*) FROM {table}", ())[0][0]
