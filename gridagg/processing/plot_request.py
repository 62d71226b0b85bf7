#!/usr/bin/env python3

"""
GridAgg Plot Requests

The engine never draws anything itself. A plot command produces PlotRequest records holding a stitched grid, its value range and its geometry, which a renderer such as gridagg.visualization.GridPlotter can turn into an image.

Classes:
    PlotRequest: Grid, value range and geometry handed to a renderer.

Functions:
    build_plot_requests: Produce one request per reference variable found in a variable.

Version: 1.0.0
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .algorithms import largest_value, smallest_value
from .exceptions import OperandError
from .variables import Variable, VariableKind


@dataclass(eq=False)
class PlotRequest:
    """Renderable grid with its value range and geometry. Row 0 of grid is the north edge."""

    name: str
    grid: np.ndarray
    vmin: float
    vmax: float
    x: float
    y: float
    w: float
    h: float
    res: float
    units: Optional[str] = None
    time: Optional[str] = None

    @property
    def extent(self) -> Tuple[float, float, float, float]:
        """(west, east, south, north), the order matplotlib's imshow expects."""
        return self.x, self.x + self.w, self.y, self.y + self.h


def build_plot_requests(variable: Variable) -> List[PlotRequest]:
    """
    Produce one PlotRequest per reference variable in a variable. A group contributes one request per reference member, recursively. The value range is the smallest and largest valid value of the variable's blocks.

    Parameters:
        variable (Variable): Reference or group variable.

    Returns:
        List[PlotRequest]: Requests in member order.

    Raises:
        OperandError: If the variable holds no reference data.
    """
    if variable.kind is VariableKind.GROUP:
        requests: List[PlotRequest] = []
        for member in variable.members.values():
            if member.kind is not VariableKind.DATA:
                requests.extend(build_plot_requests(member))
        if not requests:
            raise OperandError(f"Group '{variable.name}' holds no plottable variables", variable.name)
        return requests

    if variable.kind is not VariableKind.REFERENCE:
        raise OperandError(f"Variable '{variable.name}' has no geometry to plot", variable.name)

    blocks = variable.get_data()
    x, y, w, h = variable.bounds
    array = variable.to_dataarray()
    return [PlotRequest(
        name=variable.name,
        grid=array.values,
        vmin=float(smallest_value(blocks)[0].data[0, 0]),
        vmax=float(largest_value(blocks)[0].data[0, 0]),
        x=x, y=y, w=w, h=h, res=variable.res,
        units=array.attrs.get("units"),
        time=array.attrs.get("time")
    )]
