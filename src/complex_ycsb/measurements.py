"""
Latency measurement sink

The workload reports named, timed events (READ-MODIFY-WRITE) and the worker
threads report every operation they run. Each event name gets its own
recorder with its own lock, so threads measuring different events never
contend.
"""

import threading
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np


@dataclass
class EventStats:
    """Statistics of one event name over one reporting interval"""
    operations: int = 0
    errors: int = 0
    total_latency_us: float = 0.0
    avg_us: float = 0.0
    min_us: float = 0.0
    max_us: float = 0.0
    p50_us: float = 0.0
    p90_us: float = 0.0
    p95_us: float = 0.0
    p99_us: float = 0.0
    p999_us: float = 0.0


class MeasurementSink(ABC):
    """Receives named, timed events. Fire-and-forget."""

    @abstractmethod
    def measure(self, event_name: str, duration_us: int) -> None:
        pass

    def report_status(self, event_name: str, ok: bool) -> None:
        pass


class NullMeasurements(MeasurementSink):
    """Discards every event"""

    def measure(self, event_name: str, duration_us: int) -> None:
        pass


class _EventRecorder:
    def __init__(self, window_size: Optional[int]):
        self.lock = threading.Lock()
        self.latencies = deque(maxlen=window_size)
        self.operations = 0
        self.errors = 0
        self.total_latency_us = 0.0

    def snapshot_and_reset(self) -> EventStats:
        with self.lock:
            latencies = np.asarray(self.latencies, dtype=np.float64)
            stats = EventStats(operations=self.operations, errors=self.errors,
                               total_latency_us=self.total_latency_us)
            self.latencies.clear()
            self.operations = 0
            self.errors = 0
            self.total_latency_us = 0.0

        if latencies.size:
            p50, p90, p95, p99, p999 = np.percentile(latencies, [50, 90, 95, 99, 99.9])
            stats.avg_us = float(latencies.mean())
            stats.min_us = float(latencies.min())
            stats.max_us = float(latencies.max())
            stats.p50_us, stats.p90_us, stats.p95_us = float(p50), float(p90), float(p95)
            stats.p99_us, stats.p999_us = float(p99), float(p999)
        return stats


class Measurements(MeasurementSink):
    """
    Thread-safe in-process latency recorder.

    Args:
        window_size: Keep only the most recent window_size latencies per event
            for percentile computation. None keeps every sample.
    """

    def __init__(self, window_size: Optional[int] = None):
        self.logger = logging.getLogger("Measurements")
        self.window_size = window_size
        self._recorders: Dict[str, _EventRecorder] = {}
        self._recorders_lock = threading.Lock()

    def _recorder(self, event_name: str) -> _EventRecorder:
        recorder = self._recorders.get(event_name)
        if recorder is None:
            with self._recorders_lock:
                recorder = self._recorders.setdefault(event_name, _EventRecorder(self.window_size))
        return recorder

    def measure(self, event_name: str, duration_us: int) -> None:
        recorder = self._recorder(event_name)
        with recorder.lock:
            recorder.operations += 1
            recorder.total_latency_us += duration_us
            recorder.latencies.append(duration_us)

    def report_status(self, event_name: str, ok: bool) -> None:
        if ok:
            return
        recorder = self._recorder(event_name)
        with recorder.lock:
            recorder.errors += 1

    def event_names(self) -> List[str]:
        with self._recorders_lock:
            return sorted(self._recorders)

    def get_stats_and_reset(self) -> Dict[str, EventStats]:
        """Snapshot every event's statistics and start a new interval"""
        return {name: self._recorder(name).snapshot_and_reset() for name in self.event_names()}

    def summary_lines(self) -> List[str]:
        """YCSB style report lines for the current interval; resets the statistics"""
        lines = []
        for name, stats in self.get_stats_and_reset().items():
            lines.append(f"[{name}], Operations, {stats.operations}")
            lines.append(f"[{name}], AverageLatency(us), {stats.avg_us:.2f}")
            lines.append(f"[{name}], MinLatency(us), {stats.min_us:.0f}")
            lines.append(f"[{name}], MaxLatency(us), {stats.max_us:.0f}")
            lines.append(f"[{name}], 95thPercentileLatency(us), {stats.p95_us:.0f}")
            lines.append(f"[{name}], 99thPercentileLatency(us), {stats.p99_us:.0f}")
            if stats.errors:
                lines.append(f"[{name}], Errors, {stats.errors}")
        return lines
