import math
import random
from typing import Optional

from .base_generator import IntegerGenerator
from ..config_loader import ConfigurationError


class ExponentialGenerator(IntegerGenerator):
    """
    Exponentially distributed offsets.

    Parameterized so that `percentile` percent of the draws fall below
    `value_range`. The workload subtracts the draw from the latest inserted
    key number, which yields a recency bias that decays quickly.
    """

    def __init__(self, percentile: float, value_range: float, rng: Optional[random.Random] = None):
        super().__init__(rng)
        if not 0.0 < percentile < 100.0:
            raise ConfigurationError(f"Exponential percentile must be in (0, 100), got {percentile}")
        if value_range <= 0:
            raise ConfigurationError(f"Exponential range must be positive, got {value_range}")
        self.percentile = percentile
        self.value_range = value_range
        self.gamma = -math.log(1.0 - percentile / 100.0) / value_range

    def next_int(self) -> int:
        # 1 - random() lies in (0, 1], keeping log() finite
        u = 1.0 - self.rng.random()
        return self._set_last(int(-math.log(u) / self.gamma))

    def mean(self) -> float:
        return 1.0 / self.gamma

    def __repr__(self) -> str:
        return f"ExponentialGenerator(percentile={self.percentile}, range={self.value_range})"
