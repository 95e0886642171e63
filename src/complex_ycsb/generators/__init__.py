# Generator module initialization
from .base_generator import IntegerGenerator
from .counter_generator import CounterGenerator, AcknowledgedCounterGenerator
from .discrete_generator import DiscreteGenerator
from .integer_generators import (
    ConstantIntegerGenerator, UniformIntegerGenerator,
    HotspotIntegerGenerator, HistogramGenerator
)
from .zipfian_generator import (
    ZIPFIAN_CONSTANT, ZipfianGenerator, ScrambledZipfianGenerator,
    SkewedLatestGenerator, zeta
)
from .exponential_generator import ExponentialGenerator

__all__ = [
    'IntegerGenerator', 'CounterGenerator', 'AcknowledgedCounterGenerator',
    'DiscreteGenerator', 'ConstantIntegerGenerator', 'UniformIntegerGenerator',
    'HotspotIntegerGenerator', 'HistogramGenerator', 'ZIPFIAN_CONSTANT',
    'ZipfianGenerator', 'ScrambledZipfianGenerator', 'SkewedLatestGenerator',
    'zeta', 'ExponentialGenerator'
]
