"""
Base workload abstract class
The driver only talks to workloads through this interface
"""

from abc import ABC, abstractmethod
import logging
from typing import Optional

from ..config_loader import WorkloadConfig
from ..measurements import MeasurementSink, NullMeasurements
from ..storage import StorageInterface


class BaseWorkload(ABC):
    """
    A workload is built once per run and shared by every worker thread.

    Subclasses must keep do_insert() and do_transaction() free of locks that
    span a whole call; the only shared mutable state is inside generators.
    """

    def __init__(self,
                 config: WorkloadConfig,
                 measurements: Optional[MeasurementSink] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize base workload

        Args:
            config: Parsed workload configuration
            measurements: Sink for named timing events; events are dropped when None
            logger: Logger
        """
        self.config = config
        self.measurements = measurements if measurements is not None else NullMeasurements()
        self.logger = logger if logger is not None else logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def do_insert(self, db: StorageInterface) -> bool:
        """Insert one record of the load phase; returns whether the storage accepted it"""
        pass

    @abstractmethod
    def do_transaction(self, db: StorageInterface) -> bool:
        """Run one operation of the transaction phase"""
        pass

    def cleanup(self) -> None:
        """Called once after every worker has finished"""
        pass
