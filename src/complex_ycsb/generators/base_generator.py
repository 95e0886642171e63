"""
Base class for integer generators
All keyspace, field length and scan length generators derive from it
"""

from abc import ABC, abstractmethod
import random
from typing import Optional


class IntegerGenerator(ABC):
    """
    An infinite, lazily evaluated sequence of integers.

    Generators are shared by every worker thread of a run, so subclasses keep
    their mutable state down to the last produced value (a single attribute
    assignment) or guard it with a lock owned by the generator itself.
    Instances can be consumed with next_int() or as Python iterators.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()
        self._last_value: Optional[int] = None

    @abstractmethod
    def next_int(self) -> int:
        """Return the next value of the sequence"""
        pass

    def last_int(self) -> int:
        """
        Return the value produced by the most recent next_int() call.
        Dependent generators use it without advancing the sequence.
        """
        if self._last_value is None:
            return self.next_int()
        return self._last_value

    def _set_last(self, value: int) -> int:
        self._last_value = value
        return value

    def __iter__(self):
        return self

    def __next__(self) -> int:
        return self.next_int()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(last={self._last_value})"
