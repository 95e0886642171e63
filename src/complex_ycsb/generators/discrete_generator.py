import random
from typing import Any, List, Optional, Tuple

from ..config_loader import ConfigurationError


class DiscreteGenerator:
    """
    Weighted categorical sampler.

    Outcomes are added once during setup and keep their insertion order, which
    is also the tie-break order when scanning the cumulative weights. Call
    validate() once setup is done. After that the outcome table is never
    mutated, so next_value() is safe to call from any number of threads.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()
        self._values: List[Tuple[float, Any]] = []
        self._total_weight = 0.0
        self._last_value = None

    def add_value(self, weight: float, value: Any) -> None:
        """Register an outcome. Outcomes with a non-positive weight are ignored."""
        if weight <= 0:
            return
        self._values.append((float(weight), value))
        self._total_weight += float(weight)

    @property
    def outcomes(self) -> List[Any]:
        return [value for _, value in self._values]

    def validate(self) -> None:
        if not self._values or self._total_weight <= 0:
            raise ConfigurationError("No outcome with a positive weight was configured.")

    def next_value(self) -> Any:
        threshold = self.rng.random() * self._total_weight
        cumulative = 0.0
        for weight, value in self._values:
            cumulative += weight
            if threshold < cumulative:
                self._last_value = value
                return value
        # Rounding can leave threshold equal to the total; the last outcome owns that edge
        self._last_value = self._values[-1][1]
        return self._last_value

    def last_value(self) -> Any:
        if self._last_value is None:
            return self.next_value()
        return self._last_value

    def __iter__(self):
        return self

    def __next__(self) -> Any:
        return self.next_value()
