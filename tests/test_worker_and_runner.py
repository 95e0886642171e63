import threading

import pytest

from complex_ycsb.config_loader import ConfigurationError, InsertOrder
from complex_ycsb.measurements import Measurements
from complex_ycsb.runner import DEFAULT_SQLITE_PATH, WorkloadRunner, main, split_operations, worker_quotas
from complex_ycsb.storage.sqlite_storage import SQLiteStorage
from complex_ycsb.tps_controller import PreciseTpsController
from complex_ycsb.workload import ComplexWorkload
from complex_ycsb.ycsb_worker import LOAD_PHASE, TRANSACTION_PHASE, YCSBWorker


class FailingReadStorage:
    """Wraps the recording fake; read() raises like a buggy adapter would"""

    def __init__(self, storage):
        self.storage = storage

    def __getattr__(self, name):
        return getattr(self.storage, name)

    def read(self, *args):
        raise RuntimeError("adapter bug")


def test_worker_runs_its_quota(config_factory, storage):
    workload = ComplexWorkload(config_factory(read_proportion=1.0), seed=1)
    measurements = Measurements()
    worker = YCSBWorker("w0", workload, storage, TRANSACTION_PHASE, 25, threading.Event(),
                        measurements=measurements)
    worker.run()
    assert worker.ops_done == 25 and worker.ops_failed == 0
    assert worker.error is None
    assert (storage.init_calls, storage.cleanup_calls) == (1, 1)
    assert measurements.get_stats_and_reset()["TRANSACTION"].operations == 25


def test_load_workers_insert_distinct_keys(config_factory, storage):
    config = config_factory(read_proportion=1.0, record_count=400, insert_order=InsertOrder.ORDERED)
    workload = ComplexWorkload(config, seed=2)
    start_event = threading.Event()
    workers = [YCSBWorker(f"w{i}", workload, storage, LOAD_PHASE, 100, threading.Event(),
                          start_event=start_event) for i in range(4)]
    for worker in workers:
        worker.start()
    start_event.set()
    for worker in workers:
        worker.join()

    keys = [call[2] for call in storage.calls_named("complex_insert")]
    assert sorted(keys) == sorted(f"user{i}" for i in range(400))


def test_stop_event_stops_worker(config_factory, storage):
    workload = ComplexWorkload(config_factory(read_proportion=1.0), seed=3)
    stop_event = threading.Event()
    stop_event.set()
    worker = YCSBWorker("w0", workload, storage, TRANSACTION_PHASE, None, stop_event)
    worker.run()
    assert worker.ops_done == 0
    assert storage.cleanup_calls == 1


def test_zero_quota_runs_nothing(config_factory, storage):
    workload = ComplexWorkload(config_factory(read_proportion=1.0), seed=3)
    worker = YCSBWorker("w0", workload, storage, LOAD_PHASE, 0, threading.Event())
    worker.run()
    assert worker.ops_done == 0
    assert storage.calls_named("complex_insert") == []


def test_worker_records_unexpected_errors(config_factory, storage):
    workload = ComplexWorkload(config_factory(read_proportion=1.0), seed=4)
    worker = YCSBWorker("w0", workload, FailingReadStorage(storage), TRANSACTION_PHASE, 10,
                        threading.Event())
    worker.run()
    assert isinstance(worker.error, RuntimeError)
    assert worker.ops_done == 0
    assert storage.cleanup_calls == 1


def test_unknown_phase(config_factory, storage):
    workload = ComplexWorkload(config_factory(read_proportion=1.0), seed=5)
    with pytest.raises(ValueError):
        YCSBWorker("w0", workload, storage, "warmup", 1, threading.Event())


def test_tps_controller_spaces_operations():
    controller = PreciseTpsController(100, "w0")
    assert controller.enabled
    assert controller.get_remaining_wait_time() == 0.0
    controller.record_completion()
    assert 0.0 < controller.get_remaining_wait_time() <= 0.01
    stats = controller.get_current_stats()
    assert stats.executed_operations == 1 and stats.target_tps == 100

    disabled = PreciseTpsController(0, "w1")
    disabled.record_completion(ok=False)
    assert disabled.get_remaining_wait_time() == 0.0
    assert disabled.get_current_stats().errors == 1


def test_split_operations():
    assert split_operations(10, 3) == [4, 3, 3]
    assert split_operations(2, 4) == [1, 1, 0, 0]


def test_worker_quotas_skip_idle_workers():
    assert worker_quotas(2, 4, time_limited=True) == [1, 1]
    assert worker_quotas(10, 3, time_limited=False) == [4, 3, 3]
    assert worker_quotas(0, 2, time_limited=True) == [None, None]
    assert worker_quotas(0, 2, time_limited=False) == []


def test_load_with_fewer_records_than_threads(config_factory, tmp_path):
    config = config_factory(record_count=2, read_proportion=1.0, insert_order=InsertOrder.ORDERED)
    properties = {"sqlite.path": str(tmp_path / "small.db"), "fieldcount": config.field_count}
    runner = WorkloadRunner(config, properties, "sqlite", thread_count=4, max_execution_time=1.0, seed=8)

    load = runner.run_phase(LOAD_PHASE)
    assert (load.operations, load.failed, load.worker_errors) == (2, 0, 0)
    assert runner.workload.key_sequence.last_int() == 1
    assert runner.workload.transaction_insert_key_sequence.last_int() == 1

    storage = SQLiteStorage(runner.properties)
    storage.init()
    try:
        assert storage.count_records() == 2
    finally:
        storage.cleanup()


def test_runner_defaults_to_shared_sqlite_file(config_factory, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = config_factory(record_count=15, operation_count=20, read_proportion=1.0)
    runner = WorkloadRunner(config, {"fieldcount": config.field_count}, "sqlite", thread_count=2, seed=9)
    assert runner.properties["sqlite.path"] == DEFAULT_SQLITE_PATH

    runner.run_phase(LOAD_PHASE)
    run = runner.run_phase(TRANSACTION_PHASE)
    assert (run.operations, run.worker_errors) == (20, 0)
    assert (tmp_path / DEFAULT_SQLITE_PATH).exists()

    storage = SQLiteStorage(runner.properties)
    storage.init()
    try:
        assert storage.count_records() == 15
    finally:
        storage.cleanup()


def test_runner_load_then_run_on_sqlite(config_factory, tmp_path):
    config = config_factory(record_count=20, operation_count=30, read_proportion=0.5,
                            update_proportion=0.3, insert_proportion=0.2)
    properties = {"sqlite.path": str(tmp_path / "bench.db"), "table": config.table,
                  "fieldcount": config.field_count}
    runner = WorkloadRunner(config, properties, "sqlite", seed=6)

    load = runner.run_phase(LOAD_PHASE)
    assert (load.operations, load.failed, load.worker_errors) == (20, 0, 0)
    run = runner.run_phase(TRANSACTION_PHASE)
    assert (run.operations, run.worker_errors) == (30, 0)
    report = runner.report(run)
    assert report[0].startswith("[OVERALL], RunTime(ms)")

    storage = SQLiteStorage(properties)
    storage.init()
    try:
        assert storage.count_records() == 20 + runner.workload.transaction_insert_key_sequence.last_int() - 19
    finally:
        storage.cleanup()


def test_runner_rejects_zero_threads(config_factory):
    with pytest.raises(ConfigurationError):
        WorkloadRunner(config_factory(read_proportion=1.0), {}, "sqlite", thread_count=0)


def test_main_runs_both_phases(tmp_path, capsys):
    exit_code = main(["-p", "recordcount=10", "-p", "operationcount=20", "-p", "fieldcount=2",
                      "-p", f"sqlite.path={tmp_path / 'cli.db'}", "--seed", "7"])
    assert exit_code == 0
    output = capsys.readouterr().out
    assert "# load phase" in output and "# run phase" in output
    assert "[OVERALL], Throughput(ops/sec)" in output


def test_main_rejects_bad_configuration(capsys):
    assert main(["-p", "requestdistribution=pareto", "-p", "recordcount=10"]) == 2
