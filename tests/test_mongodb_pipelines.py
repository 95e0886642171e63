import datetime

import pytest

from complex_ycsb.config_loader import ConfigurationError, Reducer
from complex_ycsb.storage import create_storage
from complex_ycsb.storage.mongodb_storage import (
    MongoStorage, build_complex_aggregate_pipeline, build_document, build_projection,
    build_range_filter, build_simple_aggregate_pipeline
)
from complex_ycsb.ycsb_utils import BASE_DATE, FieldValue

MIDNIGHT = datetime.datetime(2012, 2, 1)


def test_build_document_converts_dates():
    document = build_document("user1", {
        "intkey": FieldValue.of_int(3),
        "datekey": FieldValue.of_date(BASE_DATE),
        "field0": FieldValue.of_bytes(b"abc"),
    })
    assert document == {"_id": "user1", "intkey": 3, "datekey": MIDNIGHT, "field0": b"abc"}


def test_build_projection():
    assert build_projection(None) is None
    assert build_projection({"field2", "field0"}) == {"field0": 1, "field2": 1}


def test_build_range_filter():
    lower = FieldValue.of_date(BASE_DATE)
    upper = FieldValue.of_date(BASE_DATE + datetime.timedelta(days=2))
    query = build_range_filter("intkey", FieldValue.of_int(7), "datekey", lower, upper)
    assert query == {
        "intkey": 7,
        "datekey": {"$gte": MIDNIGHT, "$lte": datetime.datetime(2012, 2, 3)},
    }


def test_simple_aggregate_pipeline():
    assert build_simple_aggregate_pipeline("intkey", 50) == [
        {"$limit": 50},
        {"$group": {"_id": "$intkey"}},
        {"$sort": {"_id": -1}},
    ]


def test_complex_aggregate_pipeline():
    start = FieldValue.of_date(BASE_DATE)
    end = FieldValue.of_date(BASE_DATE + datetime.timedelta(days=1))
    pipeline = build_complex_aggregate_pipeline("datekey", start, end, 1000, "stringkey", Reducer.AVG, 20)
    assert pipeline == [
        {"$match": {"datekey": {"$gte": MIDNIGHT, "$lte": datetime.datetime(2012, 2, 2)}}},
        {"$limit": 1000},
        {"$group": {"_id": "$stringkey", "avgintkey": {"$avg": "$intkey"}}},
        {"$sort": {"avgintkey": -1}},
        {"$limit": 20},
    ]


def test_count_pipeline_sums_ones():
    start = end = FieldValue.of_date(BASE_DATE)
    pipeline = build_complex_aggregate_pipeline("datekey", start, end, 10, "stringkey", Reducer.COUNT, 5)
    assert pipeline[2] == {"$group": {"_id": "$stringkey", "countintkey": {"$sum": 1}}}


def test_adapter_settings_are_validated():
    storage = create_storage("mongodb", {"mongodb.writeConcern": "majority", "threadcount": "8"})
    assert isinstance(storage, MongoStorage)
    assert storage.pool_size == 8
    assert storage.client is None
    with pytest.raises(ConfigurationError):
        MongoStorage({"mongodb.writeConcern": "sometimes"})
    with pytest.raises(ConfigurationError):
        MongoStorage({"mongodb.readPreference": "closest"})


def test_unknown_backend():
    with pytest.raises(ConfigurationError):
        create_storage("cassandra")
