"""
complex_ycsb: YCSB workload generator with secondary, compound range and
aggregate operations.
"""

from .config_loader import ConfigLoader, ConfigurationError, WorkloadConfig
from .measurements import Measurements, NullMeasurements
from .record_builder import RecordBuilder
from .storage import Status, StorageInterface, create_storage
from .workload import ComplexWorkload, OperationType, create_workload
from .ycsb_utils import FieldKind, FieldValue, InvariantViolation

__version__ = "0.1.0"

__all__ = [
    'ConfigLoader', 'ConfigurationError', 'WorkloadConfig', 'Measurements', 'NullMeasurements',
    'RecordBuilder', 'Status', 'StorageInterface', 'create_storage', 'ComplexWorkload',
    'OperationType', 'create_workload', 'FieldKind', 'FieldValue', 'InvariantViolation',
]
