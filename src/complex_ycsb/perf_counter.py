import time


class PerfCounter:
    """
    Process-wide monotonic clock.

    Operation latencies, read-modify-write timings, phase run times and the
    pacing controller all read the same clock, so their numbers compare.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(PerfCounter, cls).__new__(cls)
            cls._instance.perf_counter = time.perf_counter
        return cls._instance

    @classmethod
    def instance(cls):
        if cls._instance is None:
            cls()
        return cls._instance

    def elapsed_s(self, start: float) -> float:
        """Seconds since start, a value previously read from perf_counter()"""
        return self.perf_counter() - start

    def elapsed_us(self, start: float) -> int:
        """Whole microseconds since start"""
        return int(self.elapsed_s(start) * 1_000_000)
