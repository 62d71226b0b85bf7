#!/usr/bin/env python3

"""
GridAgg Variable Model

This module defines the three tagged variable kinds that GridAgg commands read and write, and the name-keyed table they live in. A DataVariable holds a plain 0, 1 or 2 dimensional array without geographic meaning. A ReferenceVariable is bound to a region, a field, a time label and the field's averaging policy, and holds one Wrapper per contributing leaf; its union bounding box, master weight matrix and stitched grid are all derived from those Wrappers. A GroupVariable is an ordered mapping of child variables filled by exactly one strategy (time, subregion or explicit, see group_fill). Every kind offers the same small surface the interpreter dispatches through: get_data() flattens the variable into a list of Wrappers, set_data() stores a list of Wrappers back, get_shape() returns a same-kind, same-geometry variable filled with NaN that shares no arrays with the source, and copy() duplicates it under a new name.

Classes:
    VariableKind: Tag distinguishing data, reference and group variables.
    DataVariable: Plain array variable without geometry.
    ReferenceVariable: Region-bound variable holding one Wrapper per leaf.
    GroupVariable: Ordered collection of child variables.
    VariableTable: Name-keyed table of variables for one batch run.

Functions:
    describe_variable: Render a variable as text for print commands.

Version: 1.0.0
"""

import numpy as np
import xarray as xr
from enum import Enum
from dataclasses import dataclass, field, replace
from typing import ClassVar, Dict, Iterator, List, Optional, Union

from .constants import FILL_EXPLICIT
from .exceptions import OperandError, ShapeMismatchError, VariableNotFoundError
from .regions import FieldInfo, RegionTable
from .utils_geog import GridGeographicUtils
from .utils_validator import DataValidator
from .wrapper import Wrapper, stitch


class VariableKind(Enum):
    DATA = "data"
    REFERENCE = "reference"
    GROUP = "group"


@dataclass(eq=False)
class DataVariable:
    """
    Plain array variable. The array keeps its declared dimensionality; a single-cell result stored through set_data() becomes a 0-D scalar.
    """

    name: str
    data: np.ndarray = field(default_factory=lambda: np.array(np.nan))
    comment: Optional[str] = None
    reference: Optional[str] = None
    units: Optional[str] = None

    kind: ClassVar[VariableKind] = VariableKind.DATA

    @classmethod
    def declare(cls, name: str, dimension: int, size_x: int = 1, size_y: int = 1) -> 'DataVariable':
        """
        Create a NaN-filled variable of the declared dimensionality.

        Parameters:
            name (str): Variable name.
            dimension (int): 0 for a scalar, 1 for a vector of size_x, 2 for a size_y by size_x matrix.
            size_x (int): Number of columns (default: 1).
            size_y (int): Number of rows (default: 1).

        Returns:
            DataVariable: The declared variable.
        """
        if dimension == 0:
            shape = ()
        elif dimension == 1:
            shape = (size_x,)
        elif dimension == 2:
            shape = (size_y, size_x)
        else:
            raise OperandError(f"Data variable '{name}' has unsupported dimension {dimension}", name)
        return cls(name=name, data=np.full(shape, np.nan))

    def get_data(self) -> List[Wrapper]:
        return [Wrapper.from_array(self.data)]

    def set_data(self, wrappers: List[Wrapper]) -> None:
        result = np.array(wrappers[0].data, dtype=float)
        if result.shape == (1, 1):
            self.data = np.array(result[0, 0])
        elif self.data.ndim == 1 and result.shape[0] == 1:
            self.data = result[0]
        else:
            self.data = result

    def get_shape(self, name: str) -> 'DataVariable':
        return DataVariable(name=name, data=np.full(self.data.shape, np.nan))

    def copy(self, name: Optional[str] = None) -> 'DataVariable':
        return replace(self, name=name or self.name, data=self.data.copy())

    def scalar_value(self) -> float:
        """First cell of the variable, used when it serves as a scalar operand."""
        return float(np.atleast_1d(self.data).flat[0])


@dataclass(eq=False)
class ReferenceVariable:
    """
    Region-bound variable. region is None for variables produced by aggregating several regions.
    """

    name: str
    region: Optional[str]
    field_name: str
    time: str
    avg: bool
    data: List[Wrapper] = field(default_factory=list)
    comment: Optional[str] = None
    reference: Optional[str] = None
    units: Optional[str] = None

    kind: ClassVar[VariableKind] = VariableKind.REFERENCE

    @classmethod
    def from_region(cls, name: str, table: RegionTable, region_name: str,
                    info: FieldInfo, time: str) -> 'ReferenceVariable':
        """
        Bind a new variable to a region, field and time label. One Wrapper is produced per leaf under the region, holding a copy of the leaf's matrix (NaN when the leaf has no values for that field and time), its geometry and its weight matrix. Reference text and units are taken from the field metadata.

        Parameters:
            name (str): Variable name.
            table (RegionTable): Region table.
            region_name (str): Region to bind to.
            info (FieldInfo): Metadata of the bound field.
            time (str): Time label.

        Returns:
            ReferenceVariable: The bound variable.
        """
        wrappers = []
        for leaf in table.leaves(region_name):
            matrix = leaf.matrix(info.name, time)
            values = matrix.copy() if matrix is not None else np.full((leaf.rows, leaf.cols), np.nan)
            wrappers.append(Wrapper(
                data=values, x=leaf.x, y=leaf.y, w=leaf.w, h=leaf.h, res=leaf.res,
                weight=leaf.weight, name=leaf.name
            ))

        return cls(name=name, region=region_name, field_name=info.name, time=time,
                   avg=info.avg, data=wrappers, reference=info.reference, units=info.units)

    @property
    def res(self) -> float:
        return self.data[0].res

    @property
    def bounds(self):
        """Union bounding box (x, y, w, h) of the Wrappers."""
        return GridGeographicUtils.union_box(wrapper.box for wrapper in self.data)

    @property
    def x(self) -> float:
        return self.bounds[0]

    @property
    def y(self) -> float:
        return self.bounds[1]

    @property
    def w(self) -> float:
        return self.bounds[2]

    @property
    def h(self) -> float:
        return self.bounds[3]

    @property
    def north(self) -> float:
        x, y, w, h = self.bounds
        return y + h

    @property
    def weight(self) -> np.ndarray:
        """Master weight matrix over the union box, stitched from the Wrapper weights."""
        return stitch(
            ((wrapper.weight, wrapper.x, wrapper.north) for wrapper in self.data if wrapper.weight is not None),
            *self.bounds, self.res
        )

    def build_matrix(self) -> np.ndarray:
        """Stitch every Wrapper into one matrix covering the union box."""
        return stitch(((wrapper.data, wrapper.x, wrapper.north) for wrapper in self.data),
                      *self.bounds, self.res)

    def get_data(self) -> List[Wrapper]:
        return list(self.data)

    def set_data(self, wrappers: List[Wrapper]) -> None:
        if not wrappers:
            raise OperandError(f"Reference variable '{self.name}' cannot hold zero blocks", self.name)
        self.data = list(wrappers)

    def get_shape(self, name: str) -> 'ReferenceVariable':
        return replace(self, name=name, data=[wrapper.blank() for wrapper in self.data])

    def copy(self, name: Optional[str] = None) -> 'ReferenceVariable':
        return replace(self, name=name or self.name, data=[wrapper.copy() for wrapper in self.data])

    def to_dataarray(self) -> xr.DataArray:
        """
        Expose the stitched grid as an xarray DataArray with cell-centre lat and lon coordinates. Latitude decreases along the first dimension, matching the storage order.

        Returns:
            xr.DataArray: Stitched grid with coordinates and field attributes.
        """
        x, y, w, h = self.bounds
        res = self.res
        matrix = self.build_matrix()
        lat = (y + h) - res * (np.arange(matrix.shape[0]) + 0.5)
        lon = x + res * (np.arange(matrix.shape[1]) + 0.5)

        attrs = {
            "field": self.field_name,
            "time": self.time,
            "avg": self.avg,
            "resolution": res,
        }
        if self.units:
            attrs["units"] = self.units
        if self.reference:
            attrs["reference"] = self.reference

        return xr.DataArray(matrix, coords={"lat": lat, "lon": lon}, dims=("lat", "lon"),
                            name=self.name, attrs=attrs)


@dataclass(eq=False)
class GroupVariable:
    """
    Ordered collection of child variables keyed by time label, region name or variable name depending on the fill mode.
    """

    name: str
    fill: str = FILL_EXPLICIT
    members: Dict[str, 'Variable'] = field(default_factory=dict)
    comment: Optional[str] = None
    reference: Optional[str] = None
    units: Optional[str] = None

    kind: ClassVar[VariableKind] = VariableKind.GROUP

    def get_data(self) -> List[Wrapper]:
        wrappers: List[Wrapper] = []
        for member in self.members.values():
            wrappers.extend(member.get_data())
        return wrappers

    def set_data(self, wrappers: List[Wrapper]) -> None:
        """
        Split a flat Wrapper list back over the children, each child taking as many Wrappers as it currently exposes. The block count is checked before any child is touched, so a mismatched list leaves the group unchanged.

        Parameters:
            wrappers (List[Wrapper]): Wrappers in get_data() order.

        Returns:
            None

        Raises:
            ShapeMismatchError: If the list does not hold exactly one Wrapper per child block.
        """
        counts = [len(member.get_data()) for member in self.members.values()]
        if len(wrappers) != sum(counts):
            raise ShapeMismatchError(
                f"Group '{self.name}' holds {sum(counts)} blocks, got {len(wrappers)}", self.name
            )

        offset = 0
        for member, count in zip(self.members.values(), counts):
            member.set_data(wrappers[offset:offset + count])
            offset += count

    def get_shape(self, name: str) -> 'GroupVariable':
        return replace(self, name=name,
                       members={key: member.get_shape(member.name) for key, member in self.members.items()})

    def copy(self, name: Optional[str] = None) -> 'GroupVariable':
        return replace(self, name=name or self.name,
                       members={key: member.copy() for key, member in self.members.items()})


Variable = Union[DataVariable, ReferenceVariable, GroupVariable]


class VariableTable:
    """
    Name-keyed table of variables for one batch run. Re-binding a name replaces the previous variable.
    """

    def __init__(self) -> None:
        self._variables: Dict[str, Variable] = {}

    def get(self, name: str) -> Variable:
        try:
            return self._variables[name]
        except KeyError:
            raise VariableNotFoundError(name) from None

    def put(self, variable: Variable) -> None:
        self._variables[variable.name] = variable

    def __contains__(self, name: str) -> bool:
        return name in self._variables

    def __len__(self) -> int:
        return len(self._variables)

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._variables.values())

    def names(self) -> List[str]:
        return list(self._variables)


def _format_matrix(matrix: np.ndarray) -> str:
    return np.array2string(np.asarray(matrix), precision=6, max_line_width=160, threshold=400)


def describe_variable(variable: Variable, verbose: bool = False, indent: str = "") -> str:
    """
    Render a variable as text. The plain form shows the values; the verbose form also lists kind, binding, geometry, annotations and valid-cell statistics. Groups render each child in turn.

    Parameters:
        variable (Variable): Variable to render.
        verbose (bool): Include metadata and statistics (default: False).
        indent (str): Prefix for every line, used for nested group members (default: "").

    Returns:
        str: Multi-line description.
    """
    lines = [f"{indent}{variable.name}:"]

    if verbose:
        lines.append(f"{indent}  kind: {variable.kind.value}")
        for label in ("comment", "reference", "units"):
            value = getattr(variable, label)
            if value:
                lines.append(f"{indent}  {label}: {value}")

    if variable.kind is VariableKind.GROUP:
        if verbose:
            lines.append(f"{indent}  fill: {variable.fill}")
        for key, member in variable.members.items():
            lines.append(f"{indent}  [{key}]")
            lines.append(describe_variable(member, verbose, indent + "    "))
        return "\n".join(lines)

    if variable.kind is VariableKind.REFERENCE:
        matrix = variable.build_matrix()
        if verbose:
            x, y, w, h = variable.bounds
            lines.append(f"{indent}  region: {variable.region}  field: {variable.field_name}  "
                         f"time: {variable.time}  avg: {variable.avg}")
            lines.append(f"{indent}  bounds: x={x} y={y} w={w} h={h} res={variable.res} "
                         f"blocks={len(variable.data)}")
    else:
        matrix = variable.data

    if verbose:
        stats = DataValidator.validate_data_array(matrix)["stats"]
        summary = ", ".join(f"{key}={value:.6g}" if isinstance(value, float) else f"{key}={value}"
                            for key, value in stats.items())
        lines.append(f"{indent}  stats: {summary}")

    for row in _format_matrix(matrix).splitlines():
        lines.append(f"{indent}  {row}")
    return "\n".join(lines)
