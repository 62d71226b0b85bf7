#!/usr/bin/env python3

"""
GridAgg Logging Utilities

This module provides the logging layer used by every stage of a GridAgg batch run, from tree loading and hierarchy construction through command interpretation and dataset export. It implements the GridAggLogger class as a lightweight wrapper around Python's standard logging module, routing messages to stdout and, optionally, to a persistent log file with a shared timestamped format. The interpreter relies on it to report skipped commands at WARNING level, to emit print and printVerbose output at INFO level, and to trace every dispatched command at DEBUG level, so the chosen level controls how chatty a batch run is.

Classes:
    GridAggLogger: Logging utility wrapper class providing simplified configuration and message routing for GridAgg batch runs.

Version: 1.0.0
"""

import sys
import logging
from pathlib import Path
from typing import Optional


class GridAggLogger:
    """
    Logging utility wrapper for GridAgg batch runs with configurable console and file output handlers. The wrapper owns a named standard-library logger, clears any handlers left by a previous instance with the same name so repeated runs in one process do not duplicate output, and exposes simple forwarding methods for each severity level.
    """

    def __init__(self, name: str = "gridagg", level: int = logging.INFO,
                 log_file: Optional[str] = None, verbose: bool = True) -> None:
        """
        Initialize and configure a GridAgg logging instance with console and optional file output handlers. This constructor creates a named logger, sets the level threshold, clears existing handlers, and attaches a stdout handler when verbose output is requested plus a file handler when a log path is given. The parent directory of the log file is created on demand so a configured log path inside a fresh output directory works on the first run.

        Parameters:
            name (str): Logger name for identification in multi-logger applications (default: "gridagg").
            level (int): Minimum logging level threshold from logging module constants (default: logging.INFO).
            log_file (Optional[str]): Path to a log file for persistent storage, None disables file logging (default: None).
            verbose (bool): Enable the console handler writing to stdout (default: True).

        Returns:
            None
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        self.logger.handlers.clear()
        self.logger.propagate = False

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if verbose:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    def info(self, message: str) -> None:
        """
        Log an informational message at INFO level. Used for stage milestones, configuration summaries and the output of print commands.

        Parameters:
            message (str): Message to log.

        Returns:
            None
        """
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """
        Log a warning message at WARNING level. Recoverable command failures, such as a missing variable name or an unknown command tag, are reported through this method before the interpreter moves on to the next command.

        Parameters:
            message (str): Message to log.

        Returns:
            None
        """
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """
        Log an error message at ERROR level for failures that end the batch run.

        Parameters:
            message (str): Message to log.

        Returns:
            None
        """
        self.logger.error(message)

    def critical(self, message: str) -> None:
        self.logger.critical(message)

    def debug(self, message: str) -> None:
        """
        Log a debug-level message, used for per-command tracing and intermediate geometry details.

        Parameters:
            message (str): Message to log.

        Returns:
            None
        """
        self.logger.debug(message)

    def close(self) -> None:
        """Flush and detach every handler so log files are released."""
        for handler in list(self.logger.handlers):
            handler.flush()
            handler.close()
            self.logger.removeHandler(handler)
