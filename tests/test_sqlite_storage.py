import datetime

import pytest

from complex_ycsb.storage import Status, create_storage
from complex_ycsb.storage.sqlite_storage import SQLiteStorage
from complex_ycsb.ycsb_utils import BASE_DATE, FieldValue

TABLE = "complextable"


def record(intkey, name, day_offset, payload=b"xxxx"):
    return {
        "intkey": FieldValue.of_int(intkey),
        "stringkey": FieldValue.of_text(name),
        "datekey": FieldValue.of_date(BASE_DATE + datetime.timedelta(days=day_offset)),
        "field0": FieldValue.of_bytes(payload),
        "field1": FieldValue.of_bytes(payload),
    }


def day(offset):
    return FieldValue.of_date(BASE_DATE + datetime.timedelta(days=offset))


@pytest.fixture
def db():
    storage = SQLiteStorage({"fieldcount": 2, "table": TABLE})
    storage.init()
    yield storage
    storage.cleanup()


@pytest.fixture
def loaded(db):
    rows = [
        ("user1", record(10, "Mary Smith", 1)),
        ("user2", record(20, "Mary Smith", 2)),
        ("user3", record(30, "John Brown", 3)),
        ("user4", record(10, "John Brown", 40)),
        ("user5", record(50, "Linda Lee", 5)),
    ]
    for key, values in rows:
        assert db.complex_insert(TABLE, key, values) == Status.OK
    return db


def test_factory_creates_sqlite_adapter():
    assert isinstance(create_storage("sqlite", {}), SQLiteStorage)


def test_insert_and_read(loaded):
    status, row = loaded.read(TABLE, "user3")
    assert status == Status.OK
    assert row["intkey"] == 30
    assert row["stringkey"] == "John Brown"
    assert row["datekey"] == BASE_DATE + datetime.timedelta(days=3)
    assert row["field0"] == b"xxxx"


def test_read_field_subset(loaded):
    status, row = loaded.read(TABLE, "user1", {"field1"})
    assert status == Status.OK
    assert set(row) == {"ycsb_key", "field1"}


def test_read_missing_key(loaded):
    assert loaded.read(TABLE, "user99") == (Status.NOT_FOUND, {})


def test_duplicate_insert_is_an_error(loaded):
    assert loaded.insert(TABLE, "user1", record(1, "A B", 1)) == Status.ERROR


def test_unknown_column_is_an_error(db):
    assert db.insert(TABLE, "user1", {"field7": FieldValue.of_bytes(b"x")}) == Status.ERROR
    status, _ = db.read(TABLE, "user1", {"nope"})
    assert status == Status.ERROR


def test_update(loaded):
    assert loaded.update(TABLE, "user2", {"field0": FieldValue.of_bytes(b"new")}) == Status.OK
    _, row = loaded.read(TABLE, "user2", {"field0"})
    assert row["field0"] == b"new"
    assert loaded.update(TABLE, "user99", {"field0": FieldValue.of_bytes(b"x")}) == Status.NOT_FOUND


def test_scan_orders_by_key(loaded):
    status, rows = loaded.scan(TABLE, "user2", 2)
    assert status == Status.OK
    assert [r["ycsb_key"] for r in rows] == ["user2", "user3"]


def test_secondary_read_and_scan(loaded):
    status, row = loaded.secondary_read(TABLE, "stringkey", FieldValue.of_text("Linda Lee"))
    assert status == Status.OK and row["ycsb_key"] == "user5"

    status, rows = loaded.secondary_scan(TABLE, "intkey", FieldValue.of_int(20), 10)
    assert status == Status.OK
    assert [r["intkey"] for r in rows] == [20, 30, 50]

    status, rows = loaded.secondary_scan(TABLE, "datekey", day(3), 2)
    assert [r["ycsb_key"] for r in rows] == ["user3", "user5"]


def test_complex_read_and_scan(loaded):
    status, row = loaded.complex_read(TABLE, "intkey", FieldValue.of_int(10), "datekey", day(0), day(10))
    assert status == Status.OK and row["ycsb_key"] == "user1"

    status, rows = loaded.complex_scan(TABLE, "intkey", FieldValue.of_int(10), "datekey", day(0), day(50), 10)
    assert [r["ycsb_key"] for r in rows] == ["user1", "user4"]

    status, _ = loaded.complex_read(TABLE, "intkey", FieldValue.of_int(30), "datekey", day(4), day(10))
    assert status == Status.NOT_FOUND


def test_simple_aggregate(loaded):
    status, groups = loaded.aggregate(TABLE, "intkey", 4)
    assert status == Status.OK
    assert groups == [{"_id": 30}, {"_id": 20}, {"_id": 10}]


@pytest.mark.parametrize("reducer, expected", [
    ("sum", [{"_id": "Mary Smith", "sumintkey": 30}, {"_id": "John Brown", "sumintkey": 30}]),
    ("count", [{"_id": "Mary Smith", "countintkey": 2}, {"_id": "John Brown", "countintkey": 1}]),
    ("max", [{"_id": "John Brown", "maxintkey": 30}, {"_id": "Mary Smith", "maxintkey": 20}]),
    ("first", [{"_id": "John Brown", "firstintkey": 30}, {"_id": "Mary Smith", "firstintkey": 10}]),
    ("last", [{"_id": "John Brown", "lastintkey": 30}, {"_id": "Mary Smith", "lastintkey": 20}]),
])
def test_complex_aggregate(loaded, reducer, expected):
    # user5 (Linda Lee) falls outside the record limit, user4 outside the date range
    status, groups = loaded.complex_aggregate(TABLE, "datekey", day(0), day(10), 3, "stringkey", reducer, 2)
    assert status == Status.OK
    if reducer == "sum":
        assert sorted(groups, key=lambda g: g["_id"]) == sorted(expected, key=lambda g: g["_id"])
    else:
        assert groups == expected


def test_complex_aggregate_unknown_reducer(loaded):
    status, groups = loaded.complex_aggregate(TABLE, "datekey", day(0), day(10), 3, "stringkey", "median", 2)
    assert (status, groups) == (Status.ERROR, [])


def test_count_records(loaded):
    assert loaded.count_records() == 5
