#!/usr/bin/env python3

"""
GridAgg Aggregation Algorithms

This module holds the numeric kernels behind every GridAgg command. Each function takes lists of Wrappers (the flattened data of one or more variables) plus plain numbers, never touches the variable table, and returns a new list of Wrappers; single-value results are returned as one 1x1 Wrapper. NaN marks an absent cell everywhere: element-wise arithmetic and thresholds propagate it, while counts, sums, extrema and region averages skip it. The one deliberate exception is avg_variables, which treats NaN inputs as contributing nothing but still divides by the number of variables. Region averages come in a plain form, a coverage-weighted form that looks each cell up in a master weight matrix by geographic offset, and an area-corrected form that weights each cell by its share of the region's spherical area. Extraction re-addresses Wrappers onto the leaves of another region, copying overlapping cells with a first-writer-wins rule.

Functions:
    add, subtract, multiply, divide: Element-wise arithmetic on paired Wrapper lists.
    add_scalar, multiply_scalar, divide_scalar: Element-wise arithmetic with a scalar.
    greater_than, less_than: Threshold against a scalar limit or a per-cell mask.
    count_greater_than, count_less_than, count_elements: Valid-cell counts.
    sum_values, sum_values_weighted, largest_value, smallest_value: Reductions.
    avg_over_region, avg_over_region_weighted, avg_over_region_by_area: Region averages.
    avg_variables: Element-wise mean across several variables.
    weight_values: Linear re-weighting driven by a scale variable.
    extract_region: Re-address Wrappers onto the leaves of a target region.
    aggregate_wrappers: Concatenate the Wrappers of several variables.

Version: 1.0.0
"""

import operator
import numpy as np
from typing import Callable, List, Optional, Sequence, Tuple

from .exceptions import OperandError, ShapeMismatchError
from .regions import RegionTable
from .utils_geog import GridGeographicUtils
from .wrapper import Wrapper, stitch


Box = Tuple[float, float, float, float]


def _single(value: float) -> List[Wrapper]:
    return [Wrapper.from_array(float(value))]


def _check_pairs(first: Sequence[Wrapper], second: Sequence[Wrapper]) -> None:
    if len(first) != len(second):
        raise ShapeMismatchError(
            f"Operands hold {len(first)} and {len(second)} blocks"
        )
    for index, (a, b) in enumerate(zip(first, second)):
        if not a.same_layout(b):
            raise ShapeMismatchError(
                f"Block {index} shapes differ: {a.data.shape} vs {b.data.shape}"
            )


def _elementwise(first: Sequence[Wrapper], second: Sequence[Wrapper],
                 op: Callable[[np.ndarray, np.ndarray], np.ndarray]) -> List[Wrapper]:
    _check_pairs(first, second)
    with np.errstate(divide='ignore', invalid='ignore'):
        return [a.with_data(op(a.data, b.data)) for a, b in zip(first, second)]


def _with_scalar(source: Sequence[Wrapper], scalar: float,
                 op: Callable[[np.ndarray, float], np.ndarray]) -> List[Wrapper]:
    with np.errstate(divide='ignore', invalid='ignore'):
        return [wrapper.with_data(op(wrapper.data, scalar)) for wrapper in source]


def add(first: Sequence[Wrapper], second: Sequence[Wrapper]) -> List[Wrapper]:
    return _elementwise(first, second, operator.add)


def subtract(first: Sequence[Wrapper], second: Sequence[Wrapper]) -> List[Wrapper]:
    return _elementwise(first, second, operator.sub)


def multiply(first: Sequence[Wrapper], second: Sequence[Wrapper]) -> List[Wrapper]:
    return _elementwise(first, second, operator.mul)


def divide(first: Sequence[Wrapper], second: Sequence[Wrapper]) -> List[Wrapper]:
    """Element-wise division. Division by zero follows IEEE rules (inf or NaN)."""
    return _elementwise(first, second, operator.truediv)


def add_scalar(source: Sequence[Wrapper], scalar: float) -> List[Wrapper]:
    return _with_scalar(source, scalar, operator.add)


def multiply_scalar(source: Sequence[Wrapper], scalar: float) -> List[Wrapper]:
    return _with_scalar(source, scalar, operator.mul)


def divide_scalar(source: Sequence[Wrapper], scalar: float) -> List[Wrapper]:
    return _with_scalar(source, scalar, operator.truediv)


def _threshold(values: np.ndarray, limit, passes: Callable) -> np.ndarray:
    limit = np.asarray(limit, dtype=float)
    with np.errstate(invalid='ignore'):
        kept = np.where(passes(values, limit), values, 0.0)
    return np.where(np.isnan(values) | np.isnan(limit), np.nan, kept)


def greater_than(source: Sequence[Wrapper], limit: Optional[float] = None,
                 mask: Optional[Sequence[Wrapper]] = None) -> List[Wrapper]:
    """
    Keep cells strictly greater than a limit and set other valid cells to 0. The limit is either a scalar or, cell by cell, the matching cell of a mask variable; a NaN source or mask cell gives NaN.

    Parameters:
        source (Sequence[Wrapper]): Values to threshold.
        limit (Optional[float]): Scalar limit, used when mask is None.
        mask (Optional[Sequence[Wrapper]]): Per-cell limits with the same layout as source.

    Returns:
        List[Wrapper]: Thresholded blocks.
    """
    return _apply_threshold(source, limit, mask, np.greater)


def less_than(source: Sequence[Wrapper], limit: Optional[float] = None,
              mask: Optional[Sequence[Wrapper]] = None) -> List[Wrapper]:
    """Counterpart of greater_than keeping cells strictly less than the limit."""
    return _apply_threshold(source, limit, mask, np.less)


def _apply_threshold(source, limit, mask, passes) -> List[Wrapper]:
    if mask is not None:
        _check_pairs(source, mask)
        return [s.with_data(_threshold(s.data, m.data, passes)) for s, m in zip(source, mask)]
    if limit is None:
        raise OperandError("Threshold needs either a limit or a mask")
    return [s.with_data(_threshold(s.data, limit, passes)) for s in source]


def _count(source, limit, mask, passes) -> List[Wrapper]:
    total = 0
    if mask is not None:
        _check_pairs(source, mask)
        pairs = [(s.data, m.data) for s, m in zip(source, mask)]
    else:
        if limit is None:
            raise OperandError("Count needs either a limit or a mask")
        pairs = [(s.data, limit) for s in source]

    with np.errstate(invalid='ignore'):
        for values, bound in pairs:
            total += int(np.count_nonzero(~np.isnan(values) & passes(values, bound)))
    return _single(total)


def count_greater_than(source: Sequence[Wrapper], limit: Optional[float] = None,
                       mask: Optional[Sequence[Wrapper]] = None) -> List[Wrapper]:
    return _count(source, limit, mask, np.greater)


def count_less_than(source: Sequence[Wrapper], limit: Optional[float] = None,
                    mask: Optional[Sequence[Wrapper]] = None) -> List[Wrapper]:
    return _count(source, limit, mask, np.less)


def count_elements(source: Sequence[Wrapper]) -> List[Wrapper]:
    return _single(sum(int(np.count_nonzero(~np.isnan(w.data))) for w in source))


def sum_values(source: Sequence[Wrapper]) -> List[Wrapper]:
    return _single(sum(float(np.nansum(w.data)) for w in source))


def _aligned_weight(wrapper: Wrapper, weight: np.ndarray, mask_box: Box) -> np.ndarray:
    """Slice of the master weight matrix covering the wrapper, NaN where the master does not reach."""
    mask_x, mask_y, mask_w, mask_h = mask_box
    return stitch([(weight, mask_x, mask_y + mask_h)], *wrapper.box, wrapper.res)


def _weighted_terms(source: Sequence[Wrapper], weight: np.ndarray,
                    mask_box: Box) -> Tuple[float, int]:
    total = 0.0
    count = 0
    for wrapper in source:
        aligned = _aligned_weight(wrapper, weight, mask_box)
        valid = ~np.isnan(wrapper.data) & ~np.isnan(aligned)
        total += float(np.sum(wrapper.data[valid] * aligned[valid]))
        count += int(np.count_nonzero(valid))
    return total, count


def sum_values_weighted(source: Sequence[Wrapper], weight: np.ndarray,
                        mask_box: Box) -> List[Wrapper]:
    """
    Sum of value times coverage weight over valid cells. Each cell's weight is found in the master weight matrix by geographic offset: row (mask north - block north)/res + iY and column (block west - mask west)/res + iX.

    Parameters:
        source (Sequence[Wrapper]): Blocks to reduce.
        weight (np.ndarray): Master weight matrix.
        mask_box (Box): (x, y, w, h) of the master weight matrix.

    Returns:
        List[Wrapper]: Single 1x1 block.
    """
    total, _ = _weighted_terms(source, weight, mask_box)
    return _single(total)


def _extreme(source: Sequence[Wrapper], pick: Callable) -> List[Wrapper]:
    values = [w.data[~np.isnan(w.data)] for w in source]
    values = [v for v in values if v.size]
    if not values:
        return _single(np.nan)
    return _single(pick(np.concatenate(values)))


def largest_value(source: Sequence[Wrapper]) -> List[Wrapper]:
    return _extreme(source, np.max)


def smallest_value(source: Sequence[Wrapper]) -> List[Wrapper]:
    return _extreme(source, np.min)


def avg_over_region(source: Sequence[Wrapper]) -> List[Wrapper]:
    """Sum of valid cells divided by the number of valid cells; NaN when no cell is valid."""
    total = 0.0
    count = 0
    for wrapper in source:
        valid = ~np.isnan(wrapper.data)
        total += float(np.sum(wrapper.data[valid]))
        count += int(np.count_nonzero(valid))
    return _single(total / count if count else np.nan)


def avg_over_region_weighted(source: Sequence[Wrapper], weight: np.ndarray,
                             mask_box: Box) -> List[Wrapper]:
    """
    Weighted sum of valid cells divided by the unweighted number of valid cells. Cells whose master weight is NaN are not covered and are skipped entirely.

    Parameters:
        source (Sequence[Wrapper]): Blocks to reduce.
        weight (np.ndarray): Master weight matrix.
        mask_box (Box): (x, y, w, h) of the master weight matrix.

    Returns:
        List[Wrapper]: Single 1x1 block.
    """
    total, count = _weighted_terms(source, weight, mask_box)
    return _single(total / count if count else np.nan)


def avg_over_region_by_area(source: Sequence[Wrapper], region_box: Box,
                            weight: Optional[np.ndarray] = None,
                            mask_box: Optional[Box] = None) -> List[Wrapper]:
    """
    Area-corrected average over a region. Each valid cell contributes its value times the ratio of its spherical block area to the total area of the region box. Block areas use the trapezoid between the widths of the cell's southern and northern edges, and the region area is the sum of the row trapezoids over the box, so a constant field covering the whole box averages to exactly that constant whatever its latitude. When a weight matrix is given each value is also multiplied by its coverage weight.

    Parameters:
        source (Sequence[Wrapper]): Blocks to average.
        region_box (Box): (x, y, w, h) of the region whose area normalises the result.
        weight (Optional[np.ndarray]): Master coverage weights (default: None).
        mask_box (Optional[Box]): Box of the weight matrix, defaults to region_box.

    Returns:
        List[Wrapper]: Single 1x1 block.
    """
    if not source:
        return _single(np.nan)

    rx, ry, rw, rh = region_box
    total_area = GridGeographicUtils.region_area_km2(ry, rw, rh, source[0].res)
    acc = 0.0

    for wrapper in source:
        values = wrapper.data
        if weight is not None:
            values = values * _aligned_weight(wrapper, weight, mask_box or region_box)

        areas = GridGeographicUtils.cell_areas_km2(wrapper.y, wrapper.rows, wrapper.cols, wrapper.res)
        valid = ~np.isnan(values)
        acc += float(np.sum(values[valid] * areas[valid])) / total_area

    return _single(acc)


def avg_variables(sources: Sequence[Sequence[Wrapper]]) -> List[Wrapper]:
    """
    Element-wise mean across N variables with identical layouts. Valid contributions are added onto zero and the sum is divided by N. NaN inputs add nothing yet still count in the divisor, and a cell that is NaN in every input comes out as 0.0. This differs from every other reduction here and is kept because results from existing command files depend on it.

    Parameters:
        sources (Sequence[Sequence[Wrapper]]): Flattened data of each variable.

    Returns:
        List[Wrapper]: Blocks with the geometry of the first variable.
    """
    if not sources:
        raise OperandError("avgVariables needs at least one argument")

    first = sources[0]
    for other in sources[1:]:
        _check_pairs(first, other)

    result = []
    for index, template in enumerate(first):
        acc = np.zeros(template.data.shape)
        for source in sources:
            data = source[index].data
            acc += np.where(np.isnan(data), 0.0, data)
        result.append(template.with_data(acc / len(sources)))
    return result


def weight_values(source: Sequence[Wrapper], scale: Sequence[Wrapper],
                  min_value: float, max_value: float,
                  min_weight: float, max_weight: float) -> List[Wrapper]:
    """
    Multiply each cell by a weight interpolated from the matching scale cell. The scale value is clamped to [min_value, max_value] and mapped linearly onto [min_weight, max_weight]. NaN in either operand gives NaN.

    Parameters:
        source (Sequence[Wrapper]): Values to weight.
        scale (Sequence[Wrapper]): Scale values with the same layout as source.
        min_value (float): Scale value mapped to min_weight.
        max_value (float): Scale value mapped to max_weight.
        min_weight (float): Lowest weight.
        max_weight (float): Highest weight.

    Returns:
        List[Wrapper]: Weighted blocks.
    """
    if max_value == min_value:
        raise OperandError(f"weightValues needs distinct minimum and maximum, got {min_value}")

    _check_pairs(source, scale)
    result = []
    for s, t in zip(source, scale):
        clamped = np.clip(t.data, min(min_value, max_value), max(min_value, max_value))
        factor = (clamped - min_value) / (max_value - min_value) * (max_weight - min_weight) + min_weight
        result.append(s.with_data(s.data * factor))
    return result


def extract_region(table: RegionTable, target: str, source: Sequence[Wrapper]) -> List[Wrapper]:
    """
    Re-address source blocks onto the leaves of a target region. For every leaf a NaN block in the leaf's frame is created and each source block copies its overlapping cells into it at row offset (leaf north - source north)/res and column offset (source west - leaf west)/res. A destination cell is only written while still NaN, so the first source block supplying it wins. The resulting blocks carry the leaf geometry, weight matrix and name.

    Parameters:
        table (RegionTable): Region table.
        target (str): Target region name.
        source (Sequence[Wrapper]): Blocks of the source reference variable.

    Returns:
        List[Wrapper]: One block per leaf of the target region.
    """
    result = []
    for leaf in table.leaves(target):
        mismatched = [w for w in source if not np.isclose(w.res, leaf.res)]
        if mismatched:
            raise ShapeMismatchError(
                f"Cannot extract {mismatched[0].res} degree data onto '{leaf.name}' at {leaf.res} degrees",
                leaf.name
            )

        data = stitch(((w.data, w.x, w.north) for w in source), leaf.x, leaf.y, leaf.w, leaf.h, leaf.res)
        result.append(Wrapper(data=data, x=leaf.x, y=leaf.y, w=leaf.w, h=leaf.h, res=leaf.res,
                              weight=leaf.weight, name=leaf.name))
    return result


def aggregate_wrappers(sources: Sequence[Sequence[Wrapper]]) -> List[Wrapper]:
    """Concatenate copies of the blocks of several variables, preserving order."""
    return [wrapper.copy() for source in sources for wrapper in source]
