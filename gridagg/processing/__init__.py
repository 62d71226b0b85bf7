#!/usr/bin/env python3

"""
GridAgg Processing Package

This package provides the aggregation engine: gridded Wrapper blocks, the region
hierarchy and its builder, the variable model, the aggregation kernels, the
command interpreter and the dataset exporter, plus the logging, configuration,
monitoring, validation and input-tree utilities around them.

Version: 1.0.0
"""

from .wrapper import Wrapper, stitch
from .regions import (FieldInfo, FieldTable, RegionKind, RegionTable,
                      SubRegion, SuperRegion)
from .hierarchy import RegionHierarchyBuilder
from .variables import (DataVariable, GroupVariable, ReferenceVariable,
                        VariableKind, VariableTable, describe_variable)
from .interpreter import CommandInterpreter, RunContext, RunReport
from .exporter import DataSetExporter
from .plot_request import PlotRequest, build_plot_requests
from .utils_geog import GridGeographicUtils
from .utils_config import GridAggConfig
from .utils_logger import GridAggLogger
from .utils_validator import DataValidator
from .utils_monitor import PerformanceMonitor
from .utils_parser import ArgumentParser
from .utils_tree import ConfigNode, load_tree, parse_xml_string, tree_from_mapping
from .cli_unified import GridAggCLI

__all__ = [
    'Wrapper',
    'stitch',
    'FieldInfo',
    'FieldTable',
    'RegionKind',
    'RegionTable',
    'SubRegion',
    'SuperRegion',
    'RegionHierarchyBuilder',
    'DataVariable',
    'GroupVariable',
    'ReferenceVariable',
    'VariableKind',
    'VariableTable',
    'describe_variable',
    'CommandInterpreter',
    'RunContext',
    'RunReport',
    'DataSetExporter',
    'PlotRequest',
    'build_plot_requests',
    'GridGeographicUtils',
    'GridAggConfig',
    'GridAggLogger',
    'DataValidator',
    'PerformanceMonitor',
    'ArgumentParser',
    'ConfigNode',
    'load_tree',
    'parse_xml_string',
    'tree_from_mapping',
    'GridAggCLI'
]
