#!/usr/bin/env python3

"""
GridAgg Visualization Styling

This module collects the presentation helpers shared by GridAgg plots: geographic tick formatters that label axes with hemisphere suffixes, a magnitude-aware formatter for colorbar ticks, a provenance annotation stamped in the figure corner, and the save routine that writes a figure to one or more file formats. Keeping them in one static class gives every plot the same look regardless of which command produced it.

Classes:
    GridVisualizationStyle: Static styling helpers for GridAgg plots.

Version: 1.0.0
"""

import os
import numpy as np
from datetime import datetime
from matplotlib.figure import Figure
from typing import List


class GridVisualizationStyle:
    """
    Static styling helpers for GridAgg plots.
    """

    @staticmethod
    def format_latitude(value: float, _) -> str:
        """
        Format a latitude tick with a N/S suffix, e.g. "45.0°N". The second argument is required by matplotlib's FuncFormatter and ignored.

        Parameters:
            value (float): Latitude in degrees.
            _ (Any): Unused tick position.

        Returns:
            str: Formatted latitude label.
        """
        direction = 'N' if value >= 0 else 'S'
        return f"{abs(value):.1f}°{direction}"

    @staticmethod
    def format_longitude(value: float, _) -> str:
        """
        Format a longitude tick with an E/W suffix, e.g. "120.0°W". The second argument is required by matplotlib's FuncFormatter and ignored.

        Parameters:
            value (float): Longitude in degrees.
            _ (Any): Unused tick position.

        Returns:
            str: Formatted longitude label.
        """
        direction = 'E' if value >= 0 else 'W'
        return f"{abs(value):.1f}°{direction}"

    @staticmethod
    def format_ticks_dynamic(ticks: List[float]) -> List[str]:
        """
        Format colorbar ticks with a precision suited to their magnitude: scientific notation for very large or very small values, whole numbers for integral ticks and two decimals otherwise.

        Parameters:
            ticks (List[float]): Tick values.

        Returns:
            List[str]: Tick labels.
        """
        if not len(ticks):
            return []

        t = np.asarray(ticks, dtype=float)
        non_zero = t[t != 0]

        if non_zero.size:
            max_abs = np.max(np.abs(non_zero))
            min_abs = np.min(np.abs(non_zero))
            if max_abs >= 1e4 or min_abs < 1e-3:
                return [f'{x:.1e}' for x in t]

        if np.allclose(t, np.round(t), atol=1e-6):
            return [f'{x:.0f}' for x in t]
        return [f'{x:.2f}' for x in t]

    @staticmethod
    def add_timestamp_and_branding(fig: Figure) -> None:
        """Stamp the package version and generation time in the lower-left corner of the figure."""
        if fig is not None:
            from .. import __version__

            timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
            fig.text(0.02, 0.02, f'Generated with GridAgg v{__version__} on: {timestamp}',
                     fontsize=8, alpha=0.7, transform=fig.transFigure)

    @staticmethod
    def save_plot(fig: Figure, output_path: str, formats: List[str], dpi: int,
                  bbox_inches: str = 'tight', pad_inches: float = 0.1) -> List[str]:
        """
        Save a figure in each requested format, creating the output directory when needed.

        Parameters:
            fig (Figure): Figure to save.
            output_path (str): Base path without extension.
            formats (List[str]): File formats such as 'png' or 'pdf'.
            dpi (int): Output resolution.
            bbox_inches (str): Bounding box mode (default: 'tight').
            pad_inches (float): Padding around tight bounding boxes (default: 0.1).

        Returns:
            List[str]: Paths of the written files.

        Raises:
            ValueError: If fig is None.
        """
        if fig is None:
            raise ValueError("No figure to save. Create a plot first.")

        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        written = []
        for fmt in formats:
            full_path = f"{output_path}.{fmt}"
            fig.savefig(full_path, dpi=dpi, bbox_inches=bbox_inches, pad_inches=pad_inches, format=fmt)
            written.append(full_path)
        return written
