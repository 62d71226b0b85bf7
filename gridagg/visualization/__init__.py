#!/usr/bin/env python3

"""
GridAgg Visualization Package

This package renders the grids produced by GridAgg plot commands with matplotlib.

Version: 1.0.0
"""

from gridagg.visualization.styling import GridVisualizationStyle
from gridagg.visualization.grid_plotter import GridPlotter

__all__ = [
    'GridVisualizationStyle',
    'GridPlotter'
]
