#!/usr/bin/env python3

"""
GridAgg - Gridded Region Aggregation Engine

A Python package for ingesting gridded geospatial measurements organised into a
region hierarchy and running batch aggregation commands over them, producing
scalars, derived grids, plots and exported whole-globe datasets.

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "GridAgg Developers"

__all__ = [
    '__version__',
    '__author__'
]
