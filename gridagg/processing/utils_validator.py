#!/usr/bin/env python3

"""
GridAgg Data Validation Utilities

This module provides quality checks applied while a GridAgg run ingests its leaf regions and while it reports on variables. Leaf geometry must describe a whole number of cells at the master resolution inside the globe, weight matrices must hold coverage fractions in [0, 1] (NaN marks uncovered cells), and any numeric grid can be summarised into valid-cell statistics for verbose printing. The DataValidator class offers stateless static methods that return plain dictionaries or issue lists so callers decide whether a problem is fatal, a warning, or just part of a report.

Classes:
    DataValidator: Static utility class providing validation methods for region geometry, weight matrices and gridded data.

Version: 1.0.0
"""

import numpy as np
from typing import Dict, Any, List, Optional

from .constants import LAT_MIN, LAT_MAX, LON_MIN, LON_MAX


class DataValidator:
    """
    Data validation utilities for region geometry, coverage weights and gridded values. All methods are static and side-effect free.
    """

    @staticmethod
    def validate_region_geometry(x: float, y: float, w: float, h: float, res: float) -> List[str]:
        """
        Check that a region box is positive, lies on the globe, and spans a whole number of cells at the given resolution. The check tolerates floating point noise from decimal resolutions such as 0.1 degrees by rounding the cell counts before comparing.

        Parameters:
            x (float): West edge longitude in degrees.
            y (float): South edge latitude in degrees.
            w (float): Width in degrees.
            h (float): Height in degrees.
            res (float): Cell size in degrees.

        Returns:
            List[str]: Human-readable issues, empty when the geometry is valid.
        """
        issues: List[str] = []

        if res <= 0:
            issues.append(f"Resolution must be positive, got {res}")
            return issues

        if w <= 0 or h <= 0:
            issues.append(f"Region size must be positive, got {w}x{h}")

        for label, extent in (("width", w), ("height", h)):
            cells = extent / res
            if abs(cells - round(cells)) > 1e-6:
                issues.append(f"Region {label} {extent} is not a multiple of resolution {res}")

        if x < LON_MIN or x + w > LON_MAX + 1e-9:
            issues.append(f"Longitude span [{x}, {x + w}] outside [{LON_MIN}, {LON_MAX}]")

        if y < LAT_MIN or y + h > LAT_MAX + 1e-9:
            issues.append(f"Latitude span [{y}, {y + h}] outside [{LAT_MIN}, {LAT_MAX}]")

        return issues

    @staticmethod
    def validate_weight_matrix(weight: np.ndarray) -> Dict[str, Any]:
        """
        Validate a partial-coverage weight matrix. Finite weights must lie in [0, 1]; NaN entries are accepted and counted as uncovered cells, while infinite values are reported.

        Parameters:
            weight (np.ndarray): Two-dimensional weight matrix.

        Returns:
            dict: Dictionary with 'valid' (bool), 'issues' (list of str) and 'uncovered' (int, count of NaN weights).
        """
        results: Dict[str, Any] = {
            "valid": True,
            "issues": [],
            "uncovered": int(np.isnan(weight).sum())
        }

        if np.isinf(weight).any():
            results["issues"].append("Weight matrix contains infinite values")

        finite = weight[np.isfinite(weight)]
        if finite.size and (finite.min() < 0.0 or finite.max() > 1.0):
            results["issues"].append(
                f"Weights outside [0, 1]: min {finite.min():.3f}, max {finite.max():.3f}"
            )

        if results["issues"]:
            results["valid"] = False

        return results

    @staticmethod
    def validate_data_array(data: np.ndarray,
                            min_val: Optional[float] = None,
                            max_val: Optional[float] = None) -> Dict[str, Any]:
        """
        Summarise a numerical array with optional threshold checking. NaN cells are absent values in GridAgg grids, so they are counted separately and excluded from the statistics. An array without any valid cell is reported as invalid.

        Parameters:
            data (np.ndarray): Numerical data array, any dimensionality.
            min_val (Optional[float]): Optional lower threshold (default: None).
            max_val (Optional[float]): Optional upper threshold (default: None).

        Returns:
            dict: Dictionary with 'valid' (bool), 'issues' (list of str) and 'stats' (dict with total_points, valid_points, nan_points and, when any cell is valid, min, max, mean and sum).
        """
        results: Dict[str, Any] = {
            "valid": True,
            "issues": [],
            "stats": {}
        }

        data = np.asarray(data, dtype=float)
        finite_mask = np.isfinite(data)
        finite_count = int(np.sum(finite_mask))

        results["stats"]["total_points"] = int(data.size)
        results["stats"]["valid_points"] = finite_count
        results["stats"]["nan_points"] = int(np.isnan(data).sum())

        if finite_count == 0:
            results["valid"] = False
            results["issues"].append("No valid values found")
            return results

        finite_data = data[finite_mask]

        results["stats"]["min"] = float(np.min(finite_data))
        results["stats"]["max"] = float(np.max(finite_data))
        results["stats"]["mean"] = float(np.mean(finite_data))
        results["stats"]["sum"] = float(np.sum(finite_data))

        if min_val is not None and results["stats"]["min"] < min_val:
            results["issues"].append(f"Minimum value {results['stats']['min']:.2f} below expected {min_val}")

        if max_val is not None and results["stats"]["max"] > max_val:
            results["issues"].append(f"Maximum value {results['stats']['max']:.2f} above expected {max_val}")

        if results["issues"]:
            results["valid"] = False

        return results
