#!/usr/bin/env python3

"""
Command Line Interface for GridAgg Batch Runs

This module drives one GridAgg batch run from the command line. It parses the arguments, optionally loads a YAML configuration file that the command-line options override, configures logging at the requested verbosity, and validates that the input documents exist. It then executes three timed stages: loading the data, hierarchy and commands documents into ConfigNode trees, building the region and field tables, and interpreting the commands in document order. Plots are rendered to PNG files when requested.

Errors are separated into two families. Structural failures (unreadable documents, broken hierarchy references, inconsistent ingestion data) abort the run with exit code 1 and a logged traceback. Failures local to a command are reported and skipped by the interpreter; they only affect the exit code when fail_on_skip is enabled.

Classes:
    GridAggCLI: Command-line driver running one batch.

Functions:
    main: Console-script entry point returning the process exit code.

Version: 1.0.0
"""

import sys
import os
import logging
import traceback
import yaml
from pathlib import Path
from typing import List, Optional

from .constants import REGIONS_NOT_BUILT_MSG
from .exceptions import FatalRunError
from .hierarchy import RegionHierarchyBuilder
from .interpreter import CommandInterpreter, RunContext, RunReport
from .regions import FieldTable, RegionTable
from .utils_config import GridAggConfig
from .utils_logger import GridAggLogger
from .utils_monitor import PerformanceMonitor
from .utils_parser import ArgumentParser
from .utils_tree import ConfigNode, load_tree


class GridAggCLI:
    """
    Command-line driver for GridAgg batch runs. Components are created lazily so that help and version output stay fast.
    """

    def __init__(self) -> None:
        self.logger: Optional[GridAggLogger] = None
        self.perf_monitor: Optional[PerformanceMonitor] = None
        self.config: Optional[GridAggConfig] = None

        self.data_tree: Optional[ConfigNode] = None
        self.hierarchy_tree: Optional[ConfigNode] = None
        self.commands_tree: Optional[ConfigNode] = None

        self.regions: Optional[RegionTable] = None
        self.fields: Optional[FieldTable] = None
        self.context: Optional[RunContext] = None

    def setup_logging(self, config: GridAggConfig) -> GridAggLogger:
        """
        Create the run logger. Quiet mode logs errors only, verbose mode adds per-command debug tracing, and the default is INFO.

        Parameters:
            config (GridAggConfig): Configuration holding the verbosity flags and optional log file.

        Returns:
            GridAggLogger: Configured logger.
        """
        log_level = logging.INFO
        if config.quiet:
            log_level = logging.ERROR
        elif config.verbose:
            log_level = logging.DEBUG

        self.logger = GridAggLogger(
            name="gridagg",
            level=log_level,
            log_file=config.log_file,
            verbose=True
        )
        return self.logger

    def _report_errors(self, errors: List[str]) -> None:
        if self.logger:
            self.logger.error("Configuration validation failed:")
            for error in errors:
                self.logger.error(f"  - {error}")
        else:
            print("Configuration validation failed:")
            for error in errors:
                print(f"  - {error}")

    def validate_config(self, config: GridAggConfig) -> bool:
        """
        Check that the data and commands documents are given and exist, and that the hierarchy document exists when given. A run without a hierarchy document only has leaf regions.

        Parameters:
            config (GridAggConfig): Configuration to validate.

        Returns:
            bool: True when the run can proceed.
        """
        errors = []

        for label, path in (("Data", config.data_file), ("Commands", config.commands_file)):
            if not path:
                errors.append(f"{label} document not specified")
            elif not Path(path).is_file():
                errors.append(f"{label} document not found: {path}")

        if config.hierarchy_file and not Path(config.hierarchy_file).is_file():
            errors.append(f"Hierarchy document not found: {config.hierarchy_file}")

        output_dir = Path(config.output_dir)
        if output_dir.exists() and not output_dir.is_dir():
            errors.append(f"Output path is not a directory: {config.output_dir}")

        if errors:
            self._report_errors(errors)
            return False
        return True

    def load_inputs(self, config: GridAggConfig) -> None:
        """Load the three input documents into ConfigNode trees."""
        self.data_tree = load_tree(config.data_file)
        self.hierarchy_tree = load_tree(config.hierarchy_file) if config.hierarchy_file else None
        self.commands_tree = load_tree(config.commands_file)

        if self.logger:
            self.logger.info(f"Loaded {len(self.commands_tree)} commands from {config.commands_file}")

    def build_regions(self) -> None:
        """Build the region and field tables from the loaded documents."""
        builder = RegionHierarchyBuilder(logger=self.logger)
        self.regions, self.fields, res = builder.build(self.data_tree, self.hierarchy_tree)

        if self.logger:
            self.logger.info(f"Built {len(self.regions)} regions and {len(self.fields)} fields at {res} degree resolution")

    def _create_plotter(self, config: GridAggConfig):
        if not config.save_plots:
            return None

        from ..visualization.grid_plotter import GridPlotter

        return GridPlotter(figsize=config.figure_size, dpi=config.dpi,
                           colormap=config.colormap, verbose=False)

    def run_commands(self, config: GridAggConfig) -> RunReport:
        """
        Interpret the commands document against freshly built tables.

        Parameters:
            config (GridAggConfig): Run configuration.

        Returns:
            RunReport: Executed and skipped commands.
        """
        if self.regions is None or self.fields is None:
            raise RuntimeError(REGIONS_NOT_BUILT_MSG)

        self.context = RunContext(
            regions=self.regions,
            fields=self.fields,
            output_dir=config.output_dir,
            plot_dir=config.resolved_plot_dir,
        )
        interpreter = CommandInterpreter(self.context, logger=self.logger,
                                         plotter=self._create_plotter(config))
        return interpreter.run(self.commands_tree)

    def run_batch(self, config: GridAggConfig) -> RunReport:
        """
        Run the three timed stages of a batch.

        Parameters:
            config (GridAggConfig): Run configuration.

        Returns:
            RunReport: Report of the command stage.

        Raises:
            FatalRunError: If a document cannot be loaded or the hierarchy cannot be built.
        """
        self.perf_monitor = PerformanceMonitor(logger=self.logger)

        with self.perf_monitor.timer("Loading input documents"):
            self.load_inputs(config)

        with self.perf_monitor.timer("Building region hierarchy"):
            self.build_regions()

        with self.perf_monitor.timer("Running commands"):
            report = self.run_commands(config)

        if config.verbose:
            self.perf_monitor.print_summary()

        return report

    def _print_config_summary(self) -> None:
        if self.logger and self.config:
            self.logger.debug("=== Configuration Summary ===")
            for key, value in self.config.to_dict().items():
                if value is not None:
                    self.logger.debug(f"  {key}: {value}")
            self.logger.debug(f"  working directory: {os.getcwd()}")

    def main(self, argv: Optional[List[str]] = None) -> int:
        """
        Parse arguments, run the batch and translate the outcome into an exit code.

        Parameters:
            argv (Optional[List[str]]): Arguments without the program name, None reads sys.argv (default: None).

        Returns:
            int: 0 on success, 1 on a fatal error, invalid configuration or skipped commands with fail_on_skip, 130 when interrupted.
        """
        try:
            parser = ArgumentParser.create_parser()
            args = parser.parse_args(argv)

            base_config = GridAggConfig.load_from_file(args.config) if args.config else None
            self.config = ArgumentParser.parse_args_to_config(args, base_config)

            self.setup_logging(self.config)
            if not self.validate_config(self.config):
                return 1

            self._print_config_summary()
            report = self.run_batch(self.config)

            if report.skipped:
                self.logger.warning(f"{len(report.skipped)} command(s) were skipped")
                if self.config.fail_on_skip:
                    return 1
            return 0

        except KeyboardInterrupt:
            print("\nRun interrupted by user")
            return 130
        except FatalRunError as e:
            self.logger.error(f"Batch run aborted: {e}")
            self.logger.error(traceback.format_exc())
            return 1
        except (OSError, ValueError, yaml.YAMLError) as e:
            if self.logger:
                self.logger.error(f"Error: {e}")
            else:
                print(f"Error: {e}")
            return 1
        finally:
            if self.logger:
                self.logger.close()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Console-script entry point for gridagg.

    Parameters:
        argv (Optional[List[str]]): Arguments without the program name (default: None).

    Returns:
        int: Process exit code.
    """
    cli = GridAggCLI()
    return cli.main(argv)


if __name__ == "__main__":
    sys.exit(main())
