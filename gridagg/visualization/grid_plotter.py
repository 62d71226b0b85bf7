#!/usr/bin/env python3

"""
GridAgg Grid Plotter

This module renders the PlotRequest records produced by GridAgg plot commands. Each request carries a stitched latitude/longitude grid with row 0 at the north edge, the value range to map onto the colormap and the geographic box the grid covers, so rendering reduces to an imshow over that box with geographic tick labels, a colorbar and a title naming the variable, its time label and units. NaN cells are left transparent. Figures are produced with the non-interactive Agg backend so batch runs work on headless machines.

Classes:
    GridPlotter: Matplotlib renderer for GridAgg plot requests.

Version: 1.0.0
"""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.ticker import FuncFormatter
from typing import List, Optional, Tuple

from ..processing.plot_request import PlotRequest
from .styling import GridVisualizationStyle


class GridPlotter:
    """
    Matplotlib renderer for GridAgg plot requests.
    """

    def __init__(self, figsize: Tuple[float, float] = (10, 5), dpi: int = 100,
                 colormap: str = "viridis", verbose: bool = True) -> None:
        """
        Initialize the plotter with figure size, output resolution and colormap.

        Parameters:
            figsize (Tuple[float, float]): Figure size in inches (default: (10, 5)).
            dpi (int): Output resolution (default: 100).
            colormap (str): Matplotlib colormap name (default: "viridis").
            verbose (bool): Print saved file paths (default: True).

        Returns:
            None
        """
        self.figsize = figsize
        self.dpi = dpi
        self.colormap = colormap
        self.verbose = verbose
        self.fig: Optional[Figure] = None
        self.ax: Optional[Axes] = None

    @staticmethod
    def _value_range(request: PlotRequest) -> Tuple[float, float]:
        vmin, vmax = request.vmin, request.vmax
        if np.isnan(vmin) or np.isnan(vmax):
            return 0.0, 1.0
        if vmin == vmax:
            return vmin - 0.5, vmax + 0.5
        return vmin, vmax

    def create_grid_plot(self, request: PlotRequest) -> Tuple[Figure, Axes]:
        """
        Draw one request. The grid is shown with imshow over its geographic extent using the request's value range, so plots of related variables can share a scale when their ranges agree. A grid without any valid cell still produces a figure, drawn over a unit range.

        Parameters:
            request (PlotRequest): Grid, value range and geometry to draw.

        Returns:
            Tuple[Figure, Axes]: The created figure and axes.
        """
        self.close_plot()
        self.fig, self.ax = plt.subplots(figsize=self.figsize, dpi=self.dpi)

        vmin, vmax = self._value_range(request)
        cmap = matplotlib.colormaps[self.colormap].copy()
        cmap.set_bad(alpha=0.0)

        image = self.ax.imshow(np.ma.masked_invalid(request.grid), origin='upper',
                               extent=request.extent, cmap=cmap, vmin=vmin, vmax=vmax,
                               interpolation='nearest', aspect='auto')

        self.ax.xaxis.set_major_formatter(FuncFormatter(GridVisualizationStyle.format_longitude))
        self.ax.yaxis.set_major_formatter(FuncFormatter(GridVisualizationStyle.format_latitude))
        self.ax.grid(True, linestyle='--', alpha=0.4)

        colorbar = self.fig.colorbar(image, ax=self.ax, shrink=0.85, pad=0.02)
        ticks = list(colorbar.get_ticks())
        colorbar.set_ticks(ticks)
        colorbar.set_ticklabels(GridVisualizationStyle.format_ticks_dynamic(ticks))
        if request.units:
            colorbar.set_label(request.units)

        title = request.name
        if request.time:
            title = f"{title} (time {request.time})"
        self.ax.set_title(title)

        GridVisualizationStyle.add_timestamp_and_branding(self.fig)
        return self.fig, self.ax

    def save_plot(self, output_path: str, formats: Optional[List[str]] = None) -> List[str]:
        """
        Save the current figure.

        Parameters:
            output_path (str): Base path without extension.
            formats (Optional[List[str]]): Formats to write (default: ['png']).

        Returns:
            List[str]: Written file paths.
        """
        assert self.fig is not None, "Figure must be created before saving"
        written = GridVisualizationStyle.save_plot(self.fig, output_path, formats or ['png'], self.dpi)
        if self.verbose:
            for path in written:
                print(f"Saved plot: {path}")
        return written

    def close_plot(self) -> None:
        """Close the current figure and release its resources."""
        if self.fig is not None:
            plt.close(self.fig)
            self.fig = None
            self.ax = None

    def render(self, request: PlotRequest, output_dir: str) -> List[str]:
        """
        Draw, save and close one request. The file is named after the request and, when present, its time label.

        Parameters:
            request (PlotRequest): Request to render.
            output_dir (str): Directory receiving the image.

        Returns:
            List[str]: Written file paths.
        """
        stem = request.name if not request.time else f"{request.name}_{request.time}"
        safe_stem = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in stem)

        self.create_grid_plot(request)
        try:
            return self.save_plot(str(Path(output_dir) / safe_stem))
        finally:
            self.close_plot()
