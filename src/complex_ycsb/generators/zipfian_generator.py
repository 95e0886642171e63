"""
Zipfian family generators

ZipfianGenerator draws ranks following the Zipfian rank-frequency law using the
closed-form inverse from Gray et al., "Quickly Generating Billion-Record
Synthetic Databases" (SIGMOD 1994). For item counts small enough to hold an
exact cumulative table the approximate rank is corrected to the exact one.

ScrambledZipfianGenerator spreads popular ranks over the keyspace with a hash,
SkewedLatestGenerator favours the most recently inserted records.
"""

import math
import random
import threading
from collections import namedtuple
from typing import Optional

import numpy as np

from .base_generator import IntegerGenerator
from .counter_generator import CounterGenerator
from ..config_loader import ConfigurationError
from ..ycsb_utils import fnv_hash64

ZIPFIAN_CONSTANT = 0.99

# Item counts up to this size get an exact cumulative probability table
CDF_TABLE_LIMIT = 1 << 20
# Steps the local search may take from the closed-form rank before falling back to bisection
MAX_CORRECTION_STEPS = 32

# zeta() sums this many terms exactly, the rest is estimated
ZETA_EXACT_LIMIT = 10_000_000
ZETA_CHUNK_SIZE = 1_000_000

# Scrambled zipfian draws ranks from a fixed, very large domain so that the
# popularity of a key does not move when the keyspace grows
SCRAMBLED_ITEM_COUNT = 10_000_000_000
SCRAMBLED_ZETAN = 26.46902820178302  # zeta(SCRAMBLED_ITEM_COUNT, 0.99)


def zeta(n: int, theta: float, start: int = 0, initial_sum: float = 0.0) -> float:
    """
    Generalized harmonic number: initial_sum + sum(1 / i**theta for i in start+1..n).

    Passing the zeta of a smaller count as (start, initial_sum) extends it
    incrementally. Terms past ZETA_EXACT_LIMIT are estimated with the
    Euler-Maclaurin midpoint integral.
    """
    if n <= start:
        return initial_sum

    total = initial_sum
    exact_end = min(n, max(start, ZETA_EXACT_LIMIT))
    i = start + 1
    while i <= exact_end:
        j = min(exact_end, i + ZETA_CHUNK_SIZE - 1)
        ranks = np.arange(i, j + 1, dtype=np.float64)
        total += float(np.sum(np.power(ranks, -theta)))
        i = j + 1

    if n > exact_end:
        lo, hi = exact_end + 0.5, n + 0.5
        if math.isclose(theta, 1.0):
            total += math.log(hi / lo)
        else:
            total += (hi ** (1.0 - theta) - lo ** (1.0 - theta)) / (1.0 - theta)
    return total


# Everything a draw needs for one item count; replaced as a whole, never mutated
_ZetaState = namedtuple("_ZetaState", ["item_count", "zetan", "eta"])


class ZipfianGenerator(IntegerGenerator):
    """
    Zipfian distributed integers in [lb, ub]; lb is the most popular value.

    The draw for a fixed item count only reads immutable precomputed data. The
    per-count zeta cache used by next_int(item_count) is swapped as an
    immutable snapshot under a lock private to this generator, so readers
    never block each other.
    """

    def __init__(self, lb: int, ub: int, zipfian_constant: float = ZIPFIAN_CONSTANT,
                 zetan: Optional[float] = None, rng: Optional[random.Random] = None):
        super().__init__(rng)
        if lb > ub:
            raise ConfigurationError(f"Zipfian generator bounds are inverted: [{lb}, {ub}]")
        if zipfian_constant <= 0 or math.isclose(zipfian_constant, 1.0):
            raise ConfigurationError(f"Zipfian constant must be positive and different from 1, got {zipfian_constant}")

        self.lb = lb
        self.ub = ub
        self.items = ub - lb + 1
        self.theta = zipfian_constant
        self.alpha = 1.0 / (1.0 - self.theta)
        self.zeta2theta = zeta(2, self.theta)
        self._zeta_lock = threading.Lock()

        if zetan is None:
            zetan = zeta(self.items, self.theta)
        self.zetan = zetan
        self._state = self._make_state(self.items, zetan)

        self.cdf = None
        if self.items <= CDF_TABLE_LIMIT:
            ranks = np.arange(1, self.items + 1, dtype=np.float64)
            cdf = np.cumsum(np.power(ranks, -self.theta)) / zetan
            cdf.setflags(write=False)
            self.cdf = cdf

    def _make_state(self, item_count: int, zetan: float) -> _ZetaState:
        if item_count < 2:
            return _ZetaState(item_count, zetan, 0.0)
        eta = (1.0 - (2.0 / item_count) ** (1.0 - self.theta)) / (1.0 - self.zeta2theta / zetan)
        return _ZetaState(item_count, zetan, eta)

    def _state_for(self, item_count: int) -> _ZetaState:
        state = self._state
        if state.item_count == item_count:
            return state
        with self._zeta_lock:
            state = self._state
            if state.item_count == item_count:
                return state
            if item_count > state.item_count:
                zetan = zeta(item_count, self.theta, state.item_count, state.zetan)
            else:
                zetan = zeta(item_count, self.theta)
            new_state = self._make_state(item_count, zetan)
            self._state = new_state
            return new_state

    def _correct_rank(self, rank: int, u: float) -> int:
        """Move rank to the exact bracket cdf[rank - 1] <= u < cdf[rank]."""
        cdf = self.cdf
        last = self.items - 1
        for _ in range(MAX_CORRECTION_STEPS):
            if u < cdf[rank]:
                if rank == 0 or u >= cdf[rank - 1]:
                    return rank
                rank -= 1
            else:
                if rank == last:
                    return rank
                rank += 1
        return min(int(np.searchsorted(cdf, u, side='right')), last)

    def next_rank(self, item_count: Optional[int] = None) -> int:
        """Draw a zero-based rank in [0, item_count)."""
        if item_count is None:
            item_count = self.items
        if item_count <= 1:
            return 0

        state = self._state_for(item_count)
        u = self.rng.random()
        uz = u * state.zetan
        if uz < 1.0:
            return 0
        if uz < 1.0 + 0.5 ** self.theta:
            return 1

        rank = int(item_count * ((state.eta * u - state.eta + 1.0) ** self.alpha))
        rank = min(max(rank, 0), item_count - 1)
        if self.cdf is not None and item_count == self.items:
            rank = self._correct_rank(rank, u)
        return rank

    def next_int(self, item_count: Optional[int] = None) -> int:
        return self._set_last(self.lb + self.next_rank(item_count))

    def probability(self, value: int) -> float:
        """Exact probability of value for the construction-time item count."""
        rank = value - self.lb + 1
        if rank < 1 or rank > self.items:
            return 0.0
        return (1.0 / rank ** self.theta) / self.zetan

    def __repr__(self) -> str:
        return f"ZipfianGenerator([{self.lb}, {self.ub}], theta={self.theta})"


class ScrambledZipfianGenerator(IntegerGenerator):
    """
    Zipfian popularity with hot items scattered over [lb, ub].

    Ranks are drawn from a fixed domain of SCRAMBLED_ITEM_COUNT items and
    hashed onto the interval, so the shape of the skew is kept while popular
    items are no longer clustered at the low end.
    """

    def __init__(self, lb: int, ub: int, zipfian_constant: float = ZIPFIAN_CONSTANT,
                 rng: Optional[random.Random] = None):
        super().__init__(rng)
        if lb > ub:
            raise ConfigurationError(f"Scrambled zipfian bounds are inverted: [{lb}, {ub}]")
        self.lb = lb
        self.ub = ub
        self.item_count = ub - lb + 1

        zetan = SCRAMBLED_ZETAN if zipfian_constant == ZIPFIAN_CONSTANT else None
        self.gen = ZipfianGenerator(0, SCRAMBLED_ITEM_COUNT - 1, zipfian_constant, zetan=zetan, rng=self.rng)

    def next_int(self) -> int:
        rank = self.gen.next_int()
        return self._set_last(self.lb + fnv_hash64(rank) % self.item_count)

    def __repr__(self) -> str:
        return f"ScrambledZipfianGenerator([{self.lb}, {self.ub}])"


class SkewedLatestGenerator(IntegerGenerator):
    """Zipfian skew anchored at the latest value issued by a counter"""

    def __init__(self, basis: CounterGenerator, zipfian_constant: float = ZIPFIAN_CONSTANT,
                 rng: Optional[random.Random] = None):
        super().__init__(rng)
        self.basis = basis
        self.zipfian = ZipfianGenerator(0, max(basis.last_int(), 1) - 1, zipfian_constant, rng=self.rng)

    def next_int(self) -> int:
        latest = self.basis.last_int()
        if latest <= 0:
            return self._set_last(0)
        value = latest - self.zipfian.next_rank(latest)
        return self._set_last(max(value, 0))

    def __repr__(self) -> str:
        return f"SkewedLatestGenerator(basis={self.basis!r})"
