import heapq
import threading
import logging

from .base_generator import IntegerGenerator


class CounterGenerator(IntegerGenerator):
    """
    Thread-safe monotonic counter.

    next_int() returns the current value and post-increments it; no two
    callers ever receive the same value. The lock covers only the counter
    itself, never the caller's work.
    """

    def __init__(self, start: int):
        super().__init__()
        self.start = start
        self._counter = start
        self._counter_lock = threading.Lock()

    def next_int(self) -> int:
        with self._counter_lock:
            value = self._counter
            self._counter += 1
        return value

    def last_int(self) -> int:
        """Return the most recently issued value (start - 1 before the first call)."""
        with self._counter_lock:
            return self._counter - 1

    def __repr__(self) -> str:
        return f"CounterGenerator(start={self.start}, last={self.last_int()})"


class AcknowledgedCounterGenerator(CounterGenerator):
    """
    Counter whose last_int() only moves past values that have been acknowledged.

    Transaction-phase inserts take their key number from next_int() and call
    acknowledge() once the insert has completed. last_int() is the largest
    value v such that every value in [start, v] was acknowledged, so key
    choosers bounded by it never pick a record that is still being written.
    """

    def __init__(self, start: int):
        super().__init__(start)
        self._limit = start - 1
        self._pending = []  # min-heap of acknowledged values above the limit
        self._pending_set = set()
        self._ack_lock = threading.Lock()
        self.logger = logging.getLogger("AcknowledgedCounterGenerator")

    def acknowledge(self, value: int) -> None:
        with self._ack_lock:
            if value <= self._limit or value in self._pending_set:
                self.logger.warning(f"Value {value} acknowledged twice (limit={self._limit})")
                return
            heapq.heappush(self._pending, value)
            self._pending_set.add(value)
            while self._pending and self._pending[0] == self._limit + 1:
                self._limit = heapq.heappop(self._pending)
                self._pending_set.discard(self._limit)

    def last_int(self) -> int:
        with self._ack_lock:
            return self._limit

    def __repr__(self) -> str:
        return f"AcknowledgedCounterGenerator(start={self.start}, limit={self.last_int()})"
