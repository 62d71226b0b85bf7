#!/usr/bin/env python3

"""
GridAgg Wrapper Blocks

This module defines the Wrapper, the atomic gridded block every GridAgg computation operates on. A Wrapper couples a two-dimensional float matrix with the geometry of the box it covers on a regular latitude/longitude grid: west longitude, south latitude, width, height and cell resolution, all in degrees. Row 0 of the matrix is the northernmost row and column 0 the westernmost column. Leaf-backed Wrappers also carry the leaf's partial-coverage weight matrix and the leaf name. Wrappers are treated as immutable values: transforms return new Wrappers through with_data() or blank(), and the module-level stitch() function combines several blocks into one matrix addressed at a target box, letting the first block that supplies a cell win.

Classes:
    Wrapper: Immutable gridded block with geometry, optional weight matrix and leaf name.

Functions:
    stitch: Copy several blocks into a NaN-initialised matrix covering a target box.

Version: 1.0.0
"""

import numpy as np
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple

from .utils_geog import GridGeographicUtils


@dataclass(frozen=True, eq=False)
class Wrapper:
    """
    Immutable gridded block with geometry.

    Attributes:
        data (np.ndarray): Two-dimensional float matrix, row 0 at the north edge.
        x (float): West edge longitude in degrees.
        y (float): South edge latitude in degrees.
        w (float): Width in degrees.
        h (float): Height in degrees.
        res (float): Cell size in degrees.
        weight (Optional[np.ndarray]): Partial-coverage weights matching data, None for plain arrays.
        name (Optional[str]): Name of the leaf region the block came from.
    """

    data: np.ndarray
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0
    res: float = 1.0
    weight: Optional[np.ndarray] = None
    name: Optional[str] = None

    @classmethod
    def from_array(cls, array) -> 'Wrapper':
        """
        Wrap a plain array with unit geometry anchored at the origin. Used for data variables, which carry no geographic frame.

        Parameters:
            array (array_like): Scalar, one or two dimensional values.

        Returns:
            Wrapper: Block holding a two-dimensional float copy of the values.
        """
        data = np.array(np.atleast_2d(array), dtype=float)
        rows, cols = data.shape
        return cls(data=data, x=0.0, y=0.0, w=float(cols), h=float(rows), res=1.0)

    @property
    def rows(self) -> int:
        return self.data.shape[0]

    @property
    def cols(self) -> int:
        return self.data.shape[1]

    @property
    def north(self) -> float:
        return self.y + self.h

    @property
    def box(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.w, self.h

    def with_data(self, data) -> 'Wrapper':
        """Return a new Wrapper with the same geometry holding the given matrix."""
        data = np.asarray(data, dtype=float)
        if data.shape != self.data.shape:
            raise ValueError(f"Replacement data shape {data.shape} does not match {self.data.shape}")
        return replace(self, data=data)

    def blank(self) -> 'Wrapper':
        """Return a deep copy with all cells set to NaN."""
        weight = None if self.weight is None else self.weight.copy()
        return replace(self, data=np.full(self.data.shape, np.nan), weight=weight)

    def copy(self) -> 'Wrapper':
        weight = None if self.weight is None else self.weight.copy()
        return replace(self, data=self.data.copy(), weight=weight)

    def same_layout(self, other: 'Wrapper') -> bool:
        return self.data.shape == other.data.shape


def stitch(blocks: Iterable[Tuple[np.ndarray, float, float]],
           x: float, y: float, w: float, h: float, res: float) -> np.ndarray:
    """
    Copy several blocks into a NaN-initialised matrix covering the box (x, y, w, h). Each block is given as (matrix, west, north). A block's row 0 lands on destination row (north_box - north_block) / res and its column 0 on destination column (west_block - x) / res. Cells falling outside the box are dropped, and a destination cell is only written while it is still NaN, so the first block supplying a valid value wins.

    Parameters:
        blocks (Iterable[Tuple[np.ndarray, float, float]]): Source matrices with their west and north edges.
        x (float): West edge of the destination box.
        y (float): South edge of the destination box.
        w (float): Width of the destination box.
        h (float): Height of the destination box.
        res (float): Cell size shared by the destination and every block.

    Returns:
        np.ndarray: Stitched (rows, cols) matrix.
    """
    rows = int(round(h / res))
    cols = int(round(w / res))
    north = y + h
    dest = np.full((rows, cols), np.nan)

    for matrix, west, block_north in blocks:
        row_off = GridGeographicUtils.pixel_offset(north, block_north, res)
        col_off = GridGeographicUtils.pixel_offset(west, x, res)

        r0, r1 = max(0, row_off), min(rows, row_off + matrix.shape[0])
        c0, c1 = max(0, col_off), min(cols, col_off + matrix.shape[1])
        if r0 >= r1 or c0 >= c1:
            continue

        src = matrix[r0 - row_off:r1 - row_off, c0 - col_off:c1 - col_off]
        target = dest[r0:r1, c0:c1]
        dest[r0:r1, c0:c1] = np.where(np.isnan(target), src, target)

    return dest
