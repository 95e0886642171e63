"""
Run log file handler

Writes the log of a benchmark run to results/logs/<YYYYMMDD>/<workload>/
in addition to the console.
"""

import logging
import os
from datetime import datetime

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ExperimentFileHandler(logging.FileHandler):
    """File handler that creates its own directory and a timestamped file name"""

    def __init__(self, run_name: str, workload_name: str, base_dir: str = "results/logs"):
        """
        Args:
            run_name: Prefix of the log file name
            workload_name: Subdirectory below the date directory
            base_dir: Log base directory
        """
        self.run_name = run_name
        self.workload_name = workload_name
        self.base_dir = base_dir
        self.log_file_path = self._create_log_file_path()

        super().__init__(self.log_file_path, mode='w', encoding='utf-8')
        self.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

    def _create_log_file_path(self) -> str:
        now = datetime.now()
        log_dir = os.path.join(self.base_dir, now.strftime("%Y%m%d"), self.workload_name)
        os.makedirs(log_dir, exist_ok=True)
        return os.path.join(log_dir, f"{self.run_name}_{now.strftime('%Y%m%d_%H%M%S')}.log")

    def get_log_file_path(self) -> str:
        return self.log_file_path


class DualLoggingHandler:
    """Attach a console handler and a run log file handler to a logger"""

    def __init__(self, logger: logging.Logger, run_name: str, workload_name: str,
                 console_level: int = logging.INFO, file_level: int = logging.DEBUG,
                 base_dir: str = "results/logs"):
        self.logger = logger
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(console_level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))
        self.logger.addHandler(console_handler)

        self.file_handler = ExperimentFileHandler(run_name, workload_name, base_dir)
        self.file_handler.setLevel(file_level)
        self.logger.addHandler(self.file_handler)
        self.logger.setLevel(min(console_level, file_level))

    def get_log_file_path(self) -> str:
        return self.file_handler.get_log_file_path()

    def close(self):
        self.logger.removeHandler(self.file_handler)
        self.file_handler.close()


def setup_logging(level: str = "INFO", run_name: str = None, workload_name: str = "complex",
                  base_dir: str = "results/logs"):
    """
    Configure the root logger for a run.

    Console only unless run_name is given, in which case the log also goes to a
    file and the DualLoggingHandler is returned so the caller can close it.
    """
    console_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    if run_name is None:
        logging.basicConfig(level=console_level, format=LOG_FORMAT)
        return None
    return DualLoggingHandler(root, run_name, workload_name, console_level=console_level,
                              base_dir=base_dir)
