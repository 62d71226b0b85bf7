#!/usr/bin/env python3

"""
GridAgg Command-Line Argument Parser Utilities

This module builds the argparse parser behind the gridagg console script and converts its results into a GridAggConfig. Options are organised into input, output and run-control groups. Every option defaults to None so that, when a YAML configuration file is also given, only the options actually typed on the command line override the file values.

Classes:
    ArgumentParser: Factory for the gridagg parser and its namespace-to-config converter.

Version: 1.0.0
"""

import argparse
import textwrap
from typing import Optional

from .utils_config import GridAggConfig


class ArgumentParser:
    """
    Command-line argument parser factory for GridAgg batch runs.
    """

    @staticmethod
    def create_parser() -> argparse.ArgumentParser:
        """
        Create the gridagg parser with input, output and run-control argument groups and usage examples in the epilog.

        Returns:
            argparse.ArgumentParser: Configured parser.
        """
        from .. import __version__

        parser = argparse.ArgumentParser(
            prog='gridagg',
            description='Gridded region aggregation batch runner',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=textwrap.dedent("""
            Examples:
              # Run a batch
              gridagg --data data.xml --hierarchy hierarchy.xml --commands commands.xml

              # Write exports and plots under ./results
              gridagg --data data.xml --hierarchy hierarchy.xml --commands commands.xml \\
                      --output-dir ./results --save-plots

              # Use configuration file, overriding its output directory
              gridagg --config run.yaml --output-dir ./other
            """)
        )

        parser.add_argument('--config', type=str, help='Configuration file path (YAML format)')
        parser.add_argument('--version', action='version', version=f'GridAgg {__version__}')

        input_group = parser.add_argument_group('Input')
        input_group.add_argument('--data', '--data-file', dest='data_file', type=str,
                                 help='Data document (field metadata and leaf regions), XML or YAML')
        input_group.add_argument('--hierarchy', '--hierarchy-file', dest='hierarchy_file', type=str,
                                 help='Hierarchy document (composite regions by level), XML or YAML')
        input_group.add_argument('--commands', '--commands-file', dest='commands_file', type=str,
                                 help='Commands document, XML or YAML')

        output_group = parser.add_argument_group('Output')
        output_group.add_argument('--output-dir', type=str,
                                  help='Base directory for relative export paths (default: .)')
        output_group.add_argument('--plot-dir', type=str,
                                  help='Directory for plot images (default: output directory)')
        output_group.add_argument('--save-plots', action='store_true', default=None,
                                  help='Render plot commands to PNG files')
        output_group.add_argument('--colormap', type=str,
                                  help='Colormap for plots (default: viridis)')
        output_group.add_argument('--dpi', type=int,
                                  help='Plot resolution (default: 100)')
        output_group.add_argument('--figure-size', type=float, nargs=2,
                                  metavar=('WIDTH', 'HEIGHT'),
                                  help='Figure size in inches (default: 10.0 5.0)')

        run_group = parser.add_argument_group('Run Control')
        run_group.add_argument('--verbose', '-v', action='store_true', default=None,
                               help='Enable debug output, tracing every command')
        run_group.add_argument('--quiet', '-q', action='store_true', default=None,
                               help='Only report errors')
        run_group.add_argument('--log-file', type=str,
                               help='Log file path')
        run_group.add_argument('--fail-on-skip', action='store_true', default=None,
                               help='Exit with status 1 when any command was skipped')

        return parser

    @staticmethod
    def parse_args_to_config(args: argparse.Namespace,
                             base_config: Optional[GridAggConfig] = None) -> GridAggConfig:
        """
        Merge parsed command-line arguments onto a configuration. Options left unset on the command line keep the base configuration's value.

        Parameters:
            args (argparse.Namespace): Namespace returned by create_parser().parse_args().
            base_config (Optional[GridAggConfig]): Configuration loaded from file, None starts from defaults (default: None).

        Returns:
            GridAggConfig: Merged and validated configuration.
        """
        config_dict = base_config.to_dict() if base_config is not None else {}

        arg_mapping = [
            'data_file', 'hierarchy_file', 'commands_file',
            'output_dir', 'plot_dir', 'save_plots',
            'colormap', 'dpi', 'figure_size',
            'verbose', 'quiet', 'log_file', 'fail_on_skip',
        ]

        for key in arg_mapping:
            value = getattr(args, key, None)
            if value is not None:
                config_dict[key] = value

        if args.verbose:
            config_dict['quiet'] = False
        elif args.quiet:
            config_dict['verbose'] = False

        return GridAggConfig.from_dict(config_dict)
