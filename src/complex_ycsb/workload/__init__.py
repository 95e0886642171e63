# Workload module initialization
import logging
from typing import Optional

from .base_workload import BaseWorkload
from .complex_workload import ComplexWorkload, OperationType, READ_MODIFY_WRITE_EVENT
from ..config_loader import ConfigurationError, WorkloadConfig
from ..measurements import MeasurementSink

WORKLOADS = {
    "complex": ComplexWorkload,
}


def create_workload(workload_type: str, config: WorkloadConfig,
                    measurements: Optional[MeasurementSink] = None,
                    seed: Optional[int] = None) -> BaseWorkload:
    """
    Factory function to create a workload instance based on workload type

    Args:
        workload_type: Workload type ('complex')
        config: Parsed workload configuration
        measurements: Sink for timing events
        seed: Run seed, overrides config.seed

    Returns:
        Subclass instance of BaseWorkload
    """
    logger = logging.getLogger("WorkloadFactory")
    workload_cls = WORKLOADS.get(workload_type)
    if workload_cls is None:
        raise ConfigurationError(f"Unsupported workload type: {workload_type}")
    logger.debug(f"Creating {workload_cls.__name__}")
    return workload_cls(config, measurements=measurements, seed=seed)

__all__ = ['BaseWorkload', 'ComplexWorkload', 'OperationType', 'READ_MODIFY_WRITE_EVENT',
           'WORKLOADS', 'create_workload']
