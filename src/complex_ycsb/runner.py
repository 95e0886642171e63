"""
Benchmark driver

Builds the workload once, then runs the load phase and/or the transaction
phase with one YCSBWorker thread per client, each with its own storage
adapter, and prints a YCSB style report.
"""

import argparse
import logging
import sys
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .config_loader import ConfigLoader, ConfigurationError, WorkloadConfig, parse_property_overrides
from .measurements import Measurements
from .perf_counter import PerfCounter
from .storage import MeasuredStorage, STORAGE_BACKENDS, create_storage
from .utils.log_file_handler import setup_logging
from .workload import BaseWorkload, create_workload
from .ycsb_worker import LOAD_PHASE, TRANSACTION_PHASE, YCSBWorker


@dataclass
class PhaseResult:
    phase: str
    operations: int
    failed: int
    elapsed_s: float
    worker_errors: int

    @property
    def throughput(self) -> float:
        return self.operations / self.elapsed_s if self.elapsed_s > 0 else 0.0


DEFAULT_SQLITE_PATH = "complex_ycsb.db"


def split_operations(total: int, workers: int) -> List[int]:
    """Spread total operations over workers; the first total % workers get one more."""
    base, extra = divmod(total, workers)
    return [base + (1 if i < extra else 0) for i in range(workers)]


def worker_quotas(total: int, workers: int, time_limited: bool) -> List[Optional[int]]:
    """
    Per-worker operation counts for one phase.

    Workers whose share would be 0 are not started. A phase with no
    operations runs unbounded workers only when a time limit will stop them.
    """
    if total > 0:
        return [count for count in split_operations(total, workers) if count > 0]
    return [None] * workers if time_limited else []


class WorkloadRunner:
    """
    Runs the phases of one benchmark.

    Args:
        config: Parsed workload configuration
        properties: Full property set, handed to the storage adapters
        backend: Storage backend name
        thread_count: Number of client threads
        target_tps: Total target throughput, split evenly over threads; 0 is unthrottled
        max_execution_time: Stop a phase after this many seconds; 0 means no limit
    """

    def __init__(self, config: WorkloadConfig, properties: Dict[str, Any], backend: str,
                 thread_count: int = 1, target_tps: float = 0, max_execution_time: float = 0,
                 workload_type: str = "complex", seed: Optional[int] = None):
        if thread_count < 1:
            raise ConfigurationError(f"threadcount must be at least 1, got {thread_count}")
        self.logger = logging.getLogger("WorkloadRunner")
        self.config = config
        self.properties = dict(properties)
        if backend == "sqlite":
            # Every phase and worker connection must open the same database
            self.properties.setdefault("sqlite.path", DEFAULT_SQLITE_PATH)
        self.backend = backend
        self.thread_count = thread_count
        self.target_tps = target_tps
        self.max_execution_time = max_execution_time
        self.perf_counter = PerfCounter.instance()
        self.measurements = Measurements()
        self.workload: BaseWorkload = create_workload(workload_type, config, self.measurements, seed=seed)

    def _total_operations(self, phase: str) -> int:
        if phase == LOAD_PHASE:
            return self.config.record_count - self.config.insert_start
        return self.config.operation_count

    def run_phase(self, phase: str) -> PhaseResult:
        total = self._total_operations(phase)
        stop_event = threading.Event()
        start_event = threading.Event()
        per_thread_tps = self.target_tps / self.thread_count if self.target_tps > 0 else 0

        workers = []
        time_limited = phase == TRANSACTION_PHASE and self.max_execution_time > 0
        quotas = worker_quotas(total, self.thread_count, time_limited)
        for i, count in enumerate(quotas):
            storage = MeasuredStorage(create_storage(self.backend, self.properties), self.measurements)
            workers.append(YCSBWorker(f"{phase}-{i}", self.workload, storage, phase, count,
                                      stop_event, start_event=start_event, target_tps=per_thread_tps,
                                      measurements=self.measurements))

        self.logger.info(f"Starting {phase} phase: {max(total, 0)} operations on {len(workers)} thread(s)")
        for worker in workers:
            worker.start()

        timer = None
        if self.max_execution_time > 0:
            timer = threading.Timer(self.max_execution_time, stop_event.set)
            timer.daemon = True
            timer.start()

        start = self.perf_counter.perf_counter()
        start_event.set()
        for worker in workers:
            worker.join()
        elapsed = self.perf_counter.elapsed_s(start)
        if timer is not None:
            timer.cancel()

        result = PhaseResult(
            phase=phase,
            operations=sum(w.ops_done for w in workers),
            failed=sum(w.ops_failed for w in workers),
            elapsed_s=elapsed,
            worker_errors=sum(1 for w in workers if w.error is not None),
        )
        self.logger.info(f"Finished {phase} phase: {result.operations} operations in {elapsed:.2f}s "
                         f"({result.throughput:.1f} ops/sec, {result.failed} failed)")
        return result

    def report(self, result: PhaseResult) -> List[str]:
        lines = [
            f"[OVERALL], RunTime(ms), {result.elapsed_s * 1000:.0f}",
            f"[OVERALL], Throughput(ops/sec), {result.throughput:.2f}",
        ]
        lines.extend(self.measurements.summary_lines())
        return lines


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the complex YCSB workload against a storage backend",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument('-P', '--workload-file', type=str, default=None,
                        help="Workload properties file (.properties or .json)")
    parser.add_argument('-p', '--property', action='append', default=[], metavar='KEY=VALUE',
                        help="Override a workload property; may be repeated")
    parser.add_argument('--phase', choices=[LOAD_PHASE, TRANSACTION_PHASE, 'both'], default='both',
                        help="Which phase(s) to run")
    parser.add_argument('--backend', choices=sorted(STORAGE_BACKENDS), default='sqlite',
                        help="Storage backend")
    parser.add_argument('--threads', type=int, default=1, help="Number of client threads")
    parser.add_argument('--target', type=float, default=0,
                        help="Total target operations per second, 0 for unthrottled")
    parser.add_argument('--max-execution-time', type=float, default=0,
                        help="Stop each phase after this many seconds, 0 for no limit")
    parser.add_argument('--seed', type=int, default=None, help="Seed for every generator")
    parser.add_argument('--log-level', type=str, default="INFO", help="Console log level")
    parser.add_argument('--log-run-name', type=str, default=None,
                        help="Also write the log to results/logs/<date>/complex/<name>_<time>.log")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log_handler = setup_logging(args.log_level, run_name=args.log_run_name)
    logger = logging.getLogger("complex_ycsb")

    try:
        overrides = parse_property_overrides(args.property)
        overrides.setdefault("threadcount", str(args.threads))
        loader = ConfigLoader(args.workload_file, overrides)
        config = loader.load_and_process()
        runner = WorkloadRunner(config, loader.get_full_config(), args.backend,
                                thread_count=args.threads, target_tps=args.target,
                                max_execution_time=args.max_execution_time, seed=args.seed)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        if log_handler is not None:
            log_handler.close()
        return 2

    phases = [LOAD_PHASE, TRANSACTION_PHASE] if args.phase == 'both' else [args.phase]
    exit_code = 0
    try:
        for phase in phases:
            result = runner.run_phase(phase)
            print(f"# {phase} phase")
            print("\n".join(runner.report(result)))
            if result.worker_errors:
                exit_code = 1
    finally:
        runner.workload.cleanup()
        if log_handler is not None:
            log_handler.close()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
