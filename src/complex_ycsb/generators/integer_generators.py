"""
Simple integer generators: constant, uniform, hotspot and histogram.
"""

import logging
import os
import random
from typing import Optional

import numpy as np

from .base_generator import IntegerGenerator
from ..config_loader import ConfigurationError


class ConstantIntegerGenerator(IntegerGenerator):
    """Always returns the same value"""

    def __init__(self, value: int):
        super().__init__()
        self.value = value
        self._last_value = value

    def next_int(self) -> int:
        return self.value


class UniformIntegerGenerator(IntegerGenerator):
    """Uniformly distributed integers in [lb, ub], both ends inclusive"""

    def __init__(self, lb: int, ub: int, rng: Optional[random.Random] = None):
        super().__init__(rng)
        if lb > ub:
            raise ConfigurationError(f"Uniform generator bounds are inverted: [{lb}, {ub}]")
        self.lb = lb
        self.ub = ub

    def next_int(self) -> int:
        return self._set_last(self.rng.randint(self.lb, self.ub))

    def __repr__(self) -> str:
        return f"UniformIntegerGenerator([{self.lb}, {self.ub}])"


class HotspotIntegerGenerator(IntegerGenerator):
    """
    Splits [lb, ub] into a hot set at the low end and a cold remainder.

    A fraction hot_opn_fraction of the draws lands uniformly in the hot set,
    which holds hot_data_fraction of the interval; the rest lands uniformly in
    the cold part.
    """

    def __init__(self, lb: int, ub: int, hot_data_fraction: float, hot_opn_fraction: float,
                 rng: Optional[random.Random] = None):
        super().__init__(rng)
        self.logger = logging.getLogger("HotspotIntegerGenerator")
        if lb > ub:
            raise ConfigurationError(f"Hotspot generator bounds are inverted: [{lb}, {ub}]")
        if hot_data_fraction < 0.0 or hot_data_fraction > 1.0:
            self.logger.warning(f"Hotset fraction out of range ({hot_data_fraction}). Setting to 0.0")
            hot_data_fraction = 0.0
        if hot_opn_fraction < 0.0 or hot_opn_fraction > 1.0:
            self.logger.warning(f"Hot operation fraction out of range ({hot_opn_fraction}). Setting to 0.0")
            hot_opn_fraction = 0.0

        self.lb = lb
        self.ub = ub
        self.hot_data_fraction = hot_data_fraction
        self.hot_opn_fraction = hot_opn_fraction

        interval = ub - lb + 1
        self.hot_interval = int(interval * hot_data_fraction)
        self.cold_interval = interval - self.hot_interval

    def next_int(self) -> int:
        draw_hot = self.rng.random() < self.hot_opn_fraction
        if (draw_hot and self.hot_interval > 0) or self.cold_interval == 0:
            value = self.lb + self.rng.randrange(self.hot_interval)
        else:
            value = self.lb + self.hot_interval + self.rng.randrange(self.cold_interval)
        return self._set_last(value)

    def __repr__(self) -> str:
        return (f"HotspotIntegerGenerator([{self.lb}, {self.ub}], hot={self.hot_interval}, "
                f"opn={self.hot_opn_fraction})")


class HistogramGenerator(IntegerGenerator):
    """
    Draws lengths from a histogram file.

    File format (tab separated):
        BlockSize<TAB>n
        <bucket><TAB><count>
        ...
    A draw from bucket i yields (i + 1) * n.
    """

    def __init__(self, histogram_file: str, rng: Optional[random.Random] = None):
        super().__init__(rng)
        if not os.path.exists(histogram_file):
            raise ConfigurationError(f"Couldn't read field length histogram file: {histogram_file}")

        self.histogram_file = histogram_file
        self.block_size, buckets = self._load_histogram(histogram_file)
        if not buckets or sum(buckets) <= 0:
            raise ConfigurationError(f"Histogram file {histogram_file} has no populated buckets")

        self.buckets = np.asarray(buckets, dtype=np.int64)
        # Cumulative counts, searched with binary search on every draw
        self.cumulative = np.cumsum(self.buckets)
        self.cumulative.setflags(write=False)
        self.area = int(self.cumulative[-1])

    @staticmethod
    def _load_histogram(histogram_file: str):
        try:
            with open(histogram_file, 'r', encoding='utf-8') as f:
                lines = [line.rstrip('\n') for line in f if line.strip()]
        except OSError as e:
            raise ConfigurationError(f"Couldn't read field length histogram file: {histogram_file} - {e}")

        if not lines:
            raise ConfigurationError(f"Empty histogram file: {histogram_file}")

        header = lines[0].split('\t')
        if header[0] != "BlockSize" or len(header) < 2:
            raise ConfigurationError(f"First line of histogram {histogram_file} is not the BlockSize")

        try:
            block_size = int(header[1])
            counts = {}
            for line in lines[1:]:
                bucket, count = line.split('\t')[:2]
                counts[int(bucket)] = int(count)
        except ValueError as e:
            raise ConfigurationError(f"Malformed histogram file {histogram_file}: {e}")

        buckets = [0] * (max(counts) + 1 if counts else 0)
        for bucket, count in counts.items():
            buckets[bucket] = count
        return block_size, buckets

    def next_int(self) -> int:
        number = self.rng.randrange(self.area)
        index = int(np.searchsorted(self.cumulative, number, side='right'))
        return self._set_last((index + 1) * self.block_size)

    def mean(self) -> float:
        sizes = (np.arange(len(self.buckets)) + 1) * self.block_size
        return float(np.dot(sizes, self.buckets) / self.area)
