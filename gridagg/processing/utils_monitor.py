#!/usr/bin/env python3

"""
GridAgg Performance Monitoring Utilities

This module provides lightweight timing for the stages of a GridAgg batch run. It implements the PerformanceMonitor class that captures elapsed time for named operations through a context manager, keeps the measurements in memory, and reports each duration when its context exits. Reports go to a GridAggLogger when one is attached and to stdout otherwise, which keeps the monitor usable from both the CLI and interactive scripts.

Classes:
    PerformanceMonitor: Lightweight performance monitoring class providing timing utilities with context manager support.

Version: 1.0.0
"""

from datetime import datetime, timedelta
from typing import Dict, Optional
from contextlib import contextmanager

from .utils_logger import GridAggLogger


class PerformanceMonitor:
    """
    Performance monitoring utilities for measuring and reporting elapsed time of GridAgg operations. Individual timer durations are reported when the context exits, and cumulative summaries can be generated on demand via print_summary().
    """

    def __init__(self, logger: Optional[GridAggLogger] = None) -> None:
        """
        Initialize a new empty performance monitor with storage for operation timing data.

        Parameters:
            logger (Optional[GridAggLogger]): Logger receiving timing reports, None prints to stdout (default: None).

        Returns:
            None
        """
        self.logger = logger
        self.start_times: Dict[str, datetime] = {}
        self.durations: Dict[str, timedelta] = {}

    def _report(self, message: str) -> None:
        if self.logger is not None:
            self.logger.info(message)
        else:
            print(message)

    @contextmanager
    def timer(self, operation_name: str):
        """
        Provide a context manager that measures and reports elapsed time for a named operation. The duration is recorded even when the wrapped block raises, so a failing stage still shows up in the summary.

        Parameters:
            operation_name (str): Descriptive name of the operation being timed.

        Yields:
            None: Control is yielded to the calling code to execute the timed operation.
        """
        start_time = datetime.now()
        self.start_times[operation_name] = start_time

        try:
            yield
        finally:
            end_time = datetime.now()
            duration = end_time - start_time
            self.durations[operation_name] = duration

            self._report(f"{operation_name} completed in {duration.total_seconds():.2f} seconds")

    def get_summary(self) -> Dict[str, float]:
        """
        Return a dictionary mapping operation names to their elapsed execution times in seconds.

        Returns:
            Dict[str, float]: Operation names mapped to durations in seconds.
        """
        return {name: duration.total_seconds()
                for name, duration in self.durations.items()}

    def print_summary(self) -> None:
        """
        Report every measured operation followed by the cumulative total time.

        Returns:
            None
        """
        self._report("=== Performance Summary ===")
        for name, duration in self.durations.items():
            self._report(f"{name}: {duration.total_seconds():.2f} seconds")

        if self.durations:
            total_time = sum(d.total_seconds() for d in self.durations.values())
            self._report(f"Total time: {total_time:.2f} seconds")
