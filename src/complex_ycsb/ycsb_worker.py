import logging
import threading
import time
from typing import Optional

from .measurements import MeasurementSink, NullMeasurements
from .perf_counter import PerfCounter
from .storage import StorageInterface
from .tps_controller import PreciseTpsController
from .workload import BaseWorkload

LOAD_PHASE = "load"
TRANSACTION_PHASE = "run"


class YCSBWorker(threading.Thread):
    """
    One simulated client.

    Runs do_insert() (load phase) or do_transaction() (transaction phase) on
    the shared workload until operation_count operations are done or
    stop_event is set. The storage adapter is owned by this worker: init()
    before the first operation and cleanup() after the last one.

    Args:
        worker_id: Thread name and logger suffix
        workload: Workload shared by all workers
        storage: This worker's storage adapter
        phase: LOAD_PHASE or TRANSACTION_PHASE
        operation_count: Operations this worker runs; None runs until stop_event is set
        stop_event: Set by the driver to stop early
        start_event: Optional barrier so that all workers start together
        target_tps: Pacing target for this worker; 0 runs at full speed
        measurements: Receives one event per completed operation
    """

    def __init__(self, worker_id: str, workload: BaseWorkload, storage: StorageInterface,
                 phase: str, operation_count: Optional[int], stop_event: threading.Event,
                 start_event: Optional[threading.Event] = None, target_tps: float = 0,
                 measurements: Optional[MeasurementSink] = None):
        super().__init__(name=worker_id)
        if phase not in (LOAD_PHASE, TRANSACTION_PHASE):
            raise ValueError(f"Unknown phase: {phase}")
        self.worker_id = worker_id
        self.workload = workload
        self.storage = storage
        self.phase = phase
        self.operation_count = operation_count
        self.stop_event = stop_event
        self.start_event = start_event
        self.measurements = measurements if measurements is not None else NullMeasurements()
        self.logger = logging.getLogger(f"YCSBWorker.{worker_id}")
        self.perf_counter = PerfCounter.instance()

        self.tps_controller = None
        if target_tps > 0:
            self.tps_controller = PreciseTpsController(target_tps, worker_id)

        self.ops_done = 0
        self.ops_failed = 0
        self.error: Optional[BaseException] = None

    def _operation(self) -> bool:
        if self.phase == LOAD_PHASE:
            return self.workload.do_insert(self.storage)
        return self.workload.do_transaction(self.storage)

    def _wait_for_slot(self) -> None:
        remaining = self.tps_controller.get_remaining_wait_time()
        while remaining > 0 and not self.stop_event.is_set():
            time.sleep(min(remaining, 0.001))
            remaining = self.tps_controller.get_remaining_wait_time()

    def _should_continue(self) -> bool:
        if self.stop_event.is_set():
            return False
        return self.operation_count is None or self.ops_done < self.operation_count

    def run(self):
        event_name = "LOAD" if self.phase == LOAD_PHASE else "TRANSACTION"
        try:
            self.storage.init()
            if self.start_event is not None:
                self.start_event.wait()
            self.logger.info(f"Starting {self.phase} phase ({'unbounded' if self.operation_count is None else self.operation_count} operations)")

            while self._should_continue():
                if self.tps_controller:
                    self._wait_for_slot()
                    if self.stop_event.is_set():
                        break
                start = self.perf_counter.perf_counter()
                ok = self._operation()
                self.measurements.measure(event_name, self.perf_counter.elapsed_us(start))
                self.measurements.report_status(event_name, ok)
                self.ops_done += 1
                if not ok:
                    self.ops_failed += 1
                if self.tps_controller:
                    self.tps_controller.record_completion(ok)
        except Exception as e:
            # Stops this worker only; the runner reports worker errors
            self.error = e
            self.logger.error(f"Worker stopped after {self.ops_done} operations: {e}", exc_info=True)
        finally:
            self.storage.cleanup()
            self.logger.info(f"Execution finished: {self.ops_done} operations, {self.ops_failed} failed")
