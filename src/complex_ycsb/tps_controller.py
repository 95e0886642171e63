"""
Target throughput pacing for worker threads

A worker with a target rate asks the controller how long to wait before its
next operation and reports each completed operation back.
"""

import logging
from dataclasses import dataclass

from .perf_counter import PerfCounter


@dataclass
class TpsStats:
    """Pacing statistics of one worker"""
    executed_operations: int = 0
    errors: int = 0
    total_time: float = 0.0
    actual_tps: float = 0.0
    target_tps: float = 0.0
    accuracy_percentage: float = 0.0


class PreciseTpsController:
    """
    Keeps the earliest time the next operation may start.

    After each completed operation the start time moves one interval past
    max(now, previous start time). Time lost to a stall is therefore never
    made up with a burst of back-to-back operations.

    Args:
        target_tps: Operations per second for this worker; <= 0 disables pacing
        worker_id: Used in the logger name
    """

    def __init__(self, target_tps: float, worker_id: str):
        self.worker_id = worker_id
        self.logger = logging.getLogger(f"TpsController.{worker_id}")
        self.perf_counter = PerfCounter.instance()
        self.target_tps = 0.0
        self.operation_interval = 0.0
        self.next_allowed_op_time = self.perf_counter.perf_counter()

        self._start_time = None
        self._operations_count = 0
        self._errors_count = 0

        self.update_target_tps(target_tps)

    @property
    def enabled(self) -> bool:
        return self.target_tps > 0

    def update_target_tps(self, new_target_tps: float) -> None:
        self.target_tps = float(new_target_tps)
        self.operation_interval = 1.0 / self.target_tps if self.target_tps > 0 else 0.0
        self.next_allowed_op_time = self.perf_counter.perf_counter()
        self.logger.info(f"Target TPS set to {self.target_tps:g} "
                         f"(interval {self.operation_interval * 1000:.3f} ms)")

    def get_remaining_wait_time(self) -> float:
        """Seconds until the next operation may start, 0.0 when it may start now"""
        if not self.enabled:
            return 0.0
        return max(0.0, self.next_allowed_op_time - self.perf_counter.perf_counter())

    def record_completion(self, ok: bool = True) -> None:
        now = self.perf_counter.perf_counter()
        if self._start_time is None:
            self._start_time = now
        self._operations_count += 1
        if not ok:
            self._errors_count += 1
        if self.enabled:
            self.next_allowed_op_time = max(now, self.next_allowed_op_time) + self.operation_interval

    def get_current_stats(self) -> TpsStats:
        if self._start_time is None:
            return TpsStats(target_tps=self.target_tps)
        elapsed = self.perf_counter.perf_counter() - self._start_time
        actual_tps = self._operations_count / elapsed if elapsed > 0 else 0.0
        accuracy = actual_tps / self.target_tps * 100 if self.target_tps > 0 else 0.0
        return TpsStats(
            executed_operations=self._operations_count,
            errors=self._errors_count,
            total_time=elapsed,
            actual_tps=actual_tps,
            target_tps=self.target_tps,
            accuracy_percentage=accuracy,
        )

    def __str__(self) -> str:
        return f"PreciseTpsController(target={self.target_tps:g}, interval={self.operation_interval * 1000:.3f}ms)"
