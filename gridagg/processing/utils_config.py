#!/usr/bin/env python3

"""
GridAgg Configuration Management Utilities

This module provides configuration management for GridAgg batch runs including parameter validation, YAML file I/O, and centralised settings storage. It implements the GridAggConfig dataclass that records the three input documents (data, hierarchy, commands), the output locations for exported datasets, plots and logs, logging verbosity, and the plotting options consumed by the grid plotter. Configurations can be written to and restored from YAML so a batch run is reproducible, and command-line options are merged on top of file values by the argument parser.

Classes:
    GridAggConfig: Centralised configuration dataclass for GridAgg runs with validation and file I/O capabilities.

Version: 1.0.0
"""

import yaml
from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass, asdict, fields


@dataclass
class GridAggConfig:
    """
    Configuration class for GridAgg batch runs.

    Attributes:
        Input Parameters:
            data_file (str): Path to the data document (field metadata and leaf regions)
            hierarchy_file (str): Path to the hierarchy document (composite regions by level)
            commands_file (str): Path to the commands document

        Output Parameters:
            output_dir (str): Base directory for relative export paths
            plot_dir (Optional[str]): Directory for PNG plots, defaults to output_dir
            save_plots (bool): Render plot commands to PNG files
            log_file (Optional[str]): Optional persistent log file

        Run Control:
            verbose (bool): Enable debug-level logging
            quiet (bool): Only log errors
            fail_on_skip (bool): Return a failing exit code when any command was skipped

        Visualization Parameters:
            colormap (str): Colormap name for plots
            figure_size (Tuple[float, float]): Figure dimensions in inches
            dpi (int): Output resolution
    """

    data_file: str = ""
    hierarchy_file: str = ""
    commands_file: str = ""

    output_dir: str = "."
    plot_dir: Optional[str] = None
    save_plots: bool = False
    log_file: Optional[str] = None

    verbose: bool = False
    quiet: bool = False
    fail_on_skip: bool = False

    colormap: str = "viridis"
    figure_size: Tuple[float, float] = (10.0, 5.0)
    dpi: int = 100

    def __post_init__(self) -> None:
        """
        Execute post-initialization validation after dataclass instantiation. Rejects non-positive resolutions and figure sizes, and flags a configuration that asks to be both verbose and quiet.

        Returns:
            None
        """
        if self.dpi <= 0:
            raise ValueError(f"dpi must be positive, got {self.dpi}")

        if len(self.figure_size) != 2 or min(self.figure_size) <= 0:
            raise ValueError(f"figure_size must be two positive numbers, got {self.figure_size}")

        if self.verbose and self.quiet:
            raise ValueError("verbose and quiet cannot both be enabled")

    @property
    def resolved_plot_dir(self) -> str:
        """Directory plots are written to."""
        return self.plot_dir if self.plot_dir else self.output_dir

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the configuration object to a dictionary, turning tuple values into lists for YAML export.

        Returns:
            Dict[str, Any]: Dictionary containing all configuration parameters.
        """
        config_dict = asdict(self)
        for key, value in config_dict.items():
            if isinstance(value, tuple):
                config_dict[key] = list(value)
        return config_dict

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'GridAggConfig':
        """
        Construct a new configuration object from a dictionary of parameter values. Unknown keys raise a ValueError naming them, and list-valued figure sizes are converted back to tuples.

        Parameters:
            config_dict (Dict[str, Any]): Dictionary whose keys match GridAggConfig attribute names.

        Returns:
            GridAggConfig: Newly constructed configuration object.
        """
        config_dict = dict(config_dict or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config_dict) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

        if 'figure_size' in config_dict and isinstance(config_dict['figure_size'], list):
            config_dict['figure_size'] = tuple(config_dict['figure_size'])
        return cls(**config_dict)

    def save_to_file(self, filepath: str) -> None:
        """
        Persist the current configuration to a YAML file for reproducibility.

        Parameters:
            filepath (str): Path to the output YAML file.

        Returns:
            None
        """
        config_dict = self.to_dict()

        with open(filepath, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)

        print(f"Configuration saved to: {filepath}")

    @classmethod
    def load_from_file(cls, filepath: str) -> 'GridAggConfig':
        """
        Load configuration parameters from a YAML file using safe loading and construct a validated configuration object.

        Parameters:
            filepath (str): Path to the YAML configuration file.

        Returns:
            GridAggConfig: Loaded and validated configuration object.
        """
        with open(filepath, 'r') as f:
            config_dict = yaml.safe_load(f)

        return cls.from_dict(config_dict)
