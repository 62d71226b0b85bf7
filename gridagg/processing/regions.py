#!/usr/bin/env python3

"""
GridAgg Region Model

This module defines the region hierarchy that every GridAgg reference variable is bound to. Regions come in two tagged variants: a SubRegion is a leaf that owns its ingested matrices (one per field and time label) together with a mandatory partial-coverage weight matrix, and a SuperRegion is a composite that only records the names of its children, its derived bounding box and the number of leaves underneath it. All regions live in a RegionTable keyed by name, which acts as the arena composites resolve their child names against, so no region ever owns another. Field metadata (averaging policy, reference text and units) is kept separately in a FieldTable that is filled once during ingestion and is read-only afterwards.

Classes:
    RegionKind: Tag distinguishing leaf and composite regions.
    SubRegion: Leaf region owning per-field, per-time matrices and a weight matrix.
    SuperRegion: Composite region holding ordered child names and a derived box.
    RegionTable: Name-keyed arena of regions with leaf and time-label traversal.
    FieldInfo: Immutable averaging policy, reference and units of one field.
    FieldTable: Name-keyed, write-once table of FieldInfo records.

Version: 1.0.0
"""

import numpy as np
from enum import Enum
from dataclasses import dataclass, field
from typing import ClassVar, Dict, Iterator, List, Optional, Union

from .exceptions import HierarchyBuildError, IngestionError, RegionNotFoundError
from .utils_geog import GridGeographicUtils


class RegionKind(Enum):
    LEAF = "leaf"
    COMPOSITE = "composite"


@dataclass(eq=False)
class SubRegion:
    """
    Leaf region. Matrices are stored as fields[field][time] with shape (h/res, w/res), row 0 at the north edge.
    """

    name: str
    x: float
    y: float
    w: float
    h: float
    res: float
    weight: np.ndarray
    fields: Dict[str, Dict[str, np.ndarray]] = field(default_factory=dict)

    kind: ClassVar[RegionKind] = RegionKind.LEAF
    level: ClassVar[int] = 0

    @property
    def num_sub(self) -> int:
        return 1

    @property
    def rows(self) -> int:
        return int(round(self.h / self.res))

    @property
    def cols(self) -> int:
        return int(round(self.w / self.res))

    @property
    def north(self) -> float:
        return self.y + self.h

    def time_labels(self, field_name: str) -> List[str]:
        return list(self.fields.get(field_name, {}).keys())

    def matrix(self, field_name: str, time: str) -> Optional[np.ndarray]:
        return self.fields.get(field_name, {}).get(time)


@dataclass(eq=False)
class SuperRegion:
    """
    Composite region. The bounding box starts empty and grows as children are appended; num_sub accumulates the leaf counts of the children.
    """

    name: str
    level: int
    res: float = 0.0
    children: List[str] = field(default_factory=list)
    x: Optional[float] = None
    y: Optional[float] = None
    w: float = 0.0
    h: float = 0.0
    num_sub: int = 0

    kind: ClassVar[RegionKind] = RegionKind.COMPOSITE

    @property
    def north(self) -> float:
        return self.y + self.h

    def append_child(self, child: 'Region') -> None:
        """
        Append a registered region and grow the bounding box to include it.

        Parameters:
            child (Region): Leaf or composite already registered in the region table.

        Returns:
            None
        """
        self.children.append(child.name)
        self.num_sub += child.num_sub

        if not self.res:
            self.res = child.res

        if self.x is None:
            self.x, self.y, self.w, self.h = child.x, child.y, child.w, child.h
        else:
            self.x, self.y, self.w, self.h = GridGeographicUtils.union_box(
                [(self.x, self.y, self.w, self.h), (child.x, child.y, child.w, child.h)]
            )


Region = Union[SubRegion, SuperRegion]


class RegionTable:
    """
    Arena of regions keyed by name, preserving registration order.
    """

    def __init__(self) -> None:
        self._regions: Dict[str, Region] = {}

    def register(self, region: Region) -> None:
        if region.name in self._regions:
            raise HierarchyBuildError(f"Region '{region.name}' is registered twice")
        self._regions[region.name] = region

    def get(self, name: str) -> Region:
        """
        Look up a region by name.

        Parameters:
            name (str): Region name.

        Returns:
            Region: The registered region.

        Raises:
            RegionNotFoundError: If no region has that name.
        """
        try:
            return self._regions[name]
        except KeyError:
            raise RegionNotFoundError(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self._regions

    def __len__(self) -> int:
        return len(self._regions)

    def __iter__(self) -> Iterator[Region]:
        return iter(self._regions.values())

    def names(self) -> List[str]:
        return list(self._regions)

    def leaves(self, name: str) -> List[SubRegion]:
        """
        Return every leaf under a region in depth-first child order. A leaf returns itself.

        Parameters:
            name (str): Region name.

        Returns:
            List[SubRegion]: Leaves under the region.
        """
        region = self.get(name)
        if region.kind is RegionKind.LEAF:
            return [region]

        found: List[SubRegion] = []
        for child_name in region.children:
            found.extend(self.leaves(child_name))
        return found

    def time_labels(self, name: str, field_name: str) -> List[str]:
        """Time labels of a field under a region, in first-seen order across its leaves."""
        labels: Dict[str, None] = {}
        for leaf in self.leaves(name):
            for label in leaf.time_labels(field_name):
                labels.setdefault(label, None)
        return list(labels)


@dataclass(frozen=True)
class FieldInfo:
    """
    Global metadata of one field. avg selects averaging (True) or summation (False) when the field is aggregated.
    """

    name: str
    avg: bool
    reference: Optional[str] = None
    units: Optional[str] = None


class FieldTable:
    """
    Write-once table of field metadata.
    """

    def __init__(self) -> None:
        self._fields: Dict[str, FieldInfo] = {}

    def register(self, info: FieldInfo) -> None:
        if info.name in self._fields:
            raise IngestionError(f"Field '{info.name}' is declared more than once")
        self._fields[info.name] = info

    def get(self, name: str) -> Optional[FieldInfo]:
        return self._fields.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def names(self) -> List[str]:
        return list(self._fields)
