#!/usr/bin/env python3

"""
GridAgg Geographic and Spatial Utilities

This module provides the spherical geometry used by GridAgg's area-corrected averages and the grid arithmetic used to align regular latitude/longitude blocks with each other. Earth is approximated by its equatorial and polar circumferences: the east-west length of a longitude span shrinks with the cosine of latitude, while the north-south length of a latitude span is constant. A cell's physical area is taken as a trapezoid between the widths of its southern and northern edges, and a region's total area is the sum of those trapezoids over every row of its box, so the per-cell proportions of a fully covered box always add up to one. The module also converts geographic offsets into integer pixel offsets and computes union boxes for stitching.

Classes:
    GridGeographicUtils: Utility class providing static methods for spherical area and grid alignment calculations.

Version: 1.0.0
"""

import math
import numpy as np
from typing import Iterable, Tuple

from .constants import EQUATORIAL_CIRCUMFERENCE_KM, POLAR_CIRCUMFERENCE_KM


Box = Tuple[float, float, float, float]


class GridGeographicUtils:
    """
    Geographic utilities class for regular latitude/longitude grids.

    Boxes are (x, y, w, h) tuples in degrees: west edge, south edge, width and height.
    """

    @staticmethod
    def circumference_at_latitude(lat: float) -> float:
        """
        Return the length in km of the parallel at the given latitude.

        Parameters:
            lat (float): Latitude in degrees.

        Returns:
            float: Circumference of the parallel in km.
        """
        return abs(EQUATORIAL_CIRCUMFERENCE_KM * math.cos(math.radians(lat)))

    @staticmethod
    def span_width_km(lat: float, width_deg: float) -> float:
        """Length in km of a longitude span of width_deg degrees at latitude lat."""
        return GridGeographicUtils.circumference_at_latitude(lat) / (360.0 / width_deg)

    @staticmethod
    def span_height_km(height_deg: float) -> float:
        """Length in km of a latitude span of height_deg degrees."""
        return POLAR_CIRCUMFERENCE_KM / (360.0 / height_deg)

    @staticmethod
    def band_area_km2(south: float, width_deg: float, height_deg: float) -> float:
        """
        Return the trapezoid-rule area of a band between latitude south and south + height_deg spanning width_deg degrees of longitude.

        Parameters:
            south (float): Southern edge latitude in degrees.
            width_deg (float): Longitude span in degrees.
            height_deg (float): Latitude span in degrees.

        Returns:
            float: Approximate band area in km^2.
        """
        low_width = GridGeographicUtils.span_width_km(south, width_deg)
        high_width = GridGeographicUtils.span_width_km(south + height_deg, width_deg)
        return ((low_width + high_width) / 2.0) * GridGeographicUtils.span_height_km(height_deg)

    @staticmethod
    def region_area_km2(y: float, w: float, h: float, res: float) -> float:
        """
        Return the area of a region box as the sum of its row trapezoids. For a single-row region this is exactly the trapezoid between its low and high edge widths.

        Parameters:
            y (float): South edge latitude in degrees.
            w (float): Width in degrees.
            h (float): Height in degrees.
            res (float): Row height in degrees.

        Returns:
            float: Approximate region area in km^2.
        """
        rows = max(int(round(h / res)), 1)
        step = h / rows
        return sum(GridGeographicUtils.band_area_km2(y + k * step, w, step) for k in range(rows))

    @staticmethod
    def cell_areas_km2(y: float, rows: int, cols: int, res: float) -> np.ndarray:
        """
        Return a (rows, cols) array of cell areas for a block whose south edge is y. Row 0 is the northernmost row, matching the storage order of every GridAgg matrix.

        Parameters:
            y (float): South edge latitude of the block in degrees.
            rows (int): Number of rows.
            cols (int): Number of columns.
            res (float): Cell size in degrees.

        Returns:
            np.ndarray: Cell areas in km^2.
        """
        north = y + rows * res
        row_areas = np.array([
            GridGeographicUtils.band_area_km2(north - (i + 1) * res, res, res)
            for i in range(rows)
        ])
        return np.repeat(row_areas[:, np.newaxis], cols, axis=1)

    @staticmethod
    def pixel_offset(a: float, b: float, res: float) -> int:
        """Integer number of cells between coordinates a and b (a - b), rounded to the nearest cell."""
        return int(round((a - b) / res))

    @staticmethod
    def union_box(boxes: Iterable[Box]) -> Box:
        """
        Return the smallest box containing every given box.

        Parameters:
            boxes (Iterable[Box]): Boxes as (x, y, w, h).

        Returns:
            Box: Union box as (x, y, w, h).
        """
        boxes = list(boxes)
        if not boxes:
            raise ValueError("Cannot compute the union of zero boxes")

        west = min(b[0] for b in boxes)
        south = min(b[1] for b in boxes)
        east = max(b[0] + b[2] for b in boxes)
        north = max(b[1] + b[3] for b in boxes)
        return west, south, east - west, north - south
