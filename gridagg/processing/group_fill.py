#!/usr/bin/env python3

"""
GridAgg Group Fill Strategies

This module builds GroupVariable instances for the three supported fill modes. A time fill binds one reference variable per available time label of a field under a region. A subregion fill binds one reference variable per direct child of a composite region, either straight from the region table or, when seeded with an existing reference variable, by extracting that variable's values onto each child. An explicit fill copies listed variables by value. Any unresolved name or incompatible seed raises a recoverable error so the interpreter can report it and skip the group without aborting the run.

Functions:
    fill_by_time: One member per time label of a field under a region.
    fill_by_subregion: One member per direct child of a composite region.
    fill_by_extraction: One member per direct child of a variable's region, extracted from the variable.
    fill_explicit: Copies of named variables.

Version: 1.0.0
"""

from typing import Dict, List

from .algorithms import extract_region
from .constants import FILL_EXPLICIT, FILL_SUBREGION, FILL_TIME
from .exceptions import GroupFillError
from .regions import FieldInfo, RegionKind, RegionTable
from .variables import GroupVariable, ReferenceVariable, Variable, VariableKind, VariableTable


def _require_field(fields, field_name: str) -> FieldInfo:
    info = fields.get(field_name)
    if info is None:
        raise GroupFillError(f"Field '{field_name}' has no metadata", field_name)
    return info


def fill_by_time(name: str, table: RegionTable, fields, region_name: str,
                 field_name: str) -> GroupVariable:
    """
    Build a group with one reference variable per time label of a field under a region. Members are keyed and named by their time label.

    Parameters:
        name (str): Group name.
        table (RegionTable): Region table.
        fields (FieldTable): Field metadata table.
        region_name (str): Region to bind every member to.
        field_name (str): Field to bind every member to.

    Returns:
        GroupVariable: The filled group.
    """
    info = _require_field(fields, field_name)
    labels = table.time_labels(region_name, field_name)
    if not labels:
        raise GroupFillError(
            f"Region '{region_name}' has no time steps for field '{field_name}'", region_name
        )

    members: Dict[str, Variable] = {
        label: ReferenceVariable.from_region(label, table, region_name, info, label)
        for label in labels
    }
    return GroupVariable(name=name, fill=FILL_TIME, members=members)


def _children(table: RegionTable, region_name: str) -> List[str]:
    region = table.get(region_name)
    if region.kind is not RegionKind.COMPOSITE:
        raise GroupFillError(f"Region '{region_name}' is a leaf and has no child regions", region_name)
    return list(region.children)


def fill_by_subregion(name: str, table: RegionTable, fields, region_name: str,
                      field_name: str, time: str) -> GroupVariable:
    """
    Build a group with one reference variable per direct child of a composite region, each bound to the same field and time label. Members are keyed and named by child region name.

    Parameters:
        name (str): Group name.
        table (RegionTable): Region table.
        fields (FieldTable): Field metadata table.
        region_name (str): Composite region whose children become members.
        field_name (str): Field to bind.
        time (str): Time label to bind.

    Returns:
        GroupVariable: The filled group.
    """
    info = _require_field(fields, field_name)
    members: Dict[str, Variable] = {
        child: ReferenceVariable.from_region(child, table, child, info, time)
        for child in _children(table, region_name)
    }
    return GroupVariable(name=name, fill=FILL_SUBREGION, members=members)


def fill_by_extraction(name: str, table: RegionTable, source: Variable) -> GroupVariable:
    """
    Build a group by extracting a reference variable onto each direct child of its bound region. Every member keeps the source's field, time, averaging policy and annotations, and holds one block per leaf of its child region.

    Parameters:
        name (str): Group name.
        table (RegionTable): Region table.
        source (Variable): Seed variable, which must be a region-bound reference variable.

    Returns:
        GroupVariable: The filled group.
    """
    if source.kind is not VariableKind.REFERENCE:
        raise GroupFillError(f"Variable '{source.name}' is not a reference variable", source.name)
    if source.region is None:
        raise GroupFillError(f"Variable '{source.name}' is not bound to a single region", source.name)

    members: Dict[str, Variable] = {}
    for child in _children(table, source.region):
        member = source.get_shape(child)
        member.region = child
        member.set_data(extract_region(table, child, source.get_data()))
        member.comment = source.comment
        members[child] = member
    return GroupVariable(name=name, fill=FILL_SUBREGION, members=members)


def fill_explicit(name: str, variables: VariableTable, names: List[str]) -> GroupVariable:
    """
    Build a group holding copies of existing variables, keyed by their names. Later changes to the originals do not affect the group.

    Parameters:
        name (str): Group name.
        variables (VariableTable): Variable table.
        names (List[str]): Names of the variables to copy.

    Returns:
        GroupVariable: The filled group.
    """
    if not names:
        raise GroupFillError(f"Group '{name}' lists no member variables", name)

    members: Dict[str, Variable] = {}
    for member_name in names:
        members[member_name] = variables.get(member_name).copy()
    return GroupVariable(name=name, fill=FILL_EXPLICIT, members=members)
