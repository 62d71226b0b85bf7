#!/usr/bin/env python3

"""
GridAgg Command Interpreter

This module executes a parsed commands document against the region, field and variable tables of one batch run. Commands are processed once, strictly in document order, through a dispatch table that maps each command tag to a handler method. Every handler follows the same pattern: resolve its named operands in the variable table, run the matching kernel from gridagg.processing.algorithms, and store the result in the target through the shared resolver, which mutates an existing variable of that name in place or registers a new one shaped like the first operand (or built by a type-appropriate factory for single-value results). Results are computed before the target is resolved, so a failing command never leaves a half-built target behind.

Problems local to one command, such as an unknown tag, a missing variable or region, a mismatched operand layout or an unwritable export path, raise CommandError subclasses. The run loop reports them as warnings naming the offending identifier, records them in the RunReport and continues with the next command. Nothing raised by a command aborts the run.

Classes:
    RunContext: Process-scoped state of one batch run (tables, output locations, collected plots and exports).
    RunReport: Summary of executed and skipped commands.
    CommandInterpreter: Single-pass dispatcher over a commands tree.

Version: 1.0.0
"""

import numpy as np
from pathlib import Path
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from . import algorithms
from . import group_fill
from .constants import FILL_EXPLICIT, FILL_SUBREGION, FILL_TIME
from .exceptions import CommandError, OperandError, UnknownCommandError
from .exporter import DataSetExporter
from .plot_request import PlotRequest, build_plot_requests
from .regions import FieldTable, RegionTable
from .utils_logger import GridAggLogger
from .utils_tree import ConfigNode
from .variables import (DataVariable, GroupVariable, ReferenceVariable, Variable,
                        VariableKind, VariableTable, describe_variable)
from .wrapper import Wrapper


@dataclass
class RunContext:
    """
    State shared by every command of one batch run. Nothing in it outlives the run.
    """

    regions: RegionTable
    fields: FieldTable
    variables: VariableTable = field(default_factory=VariableTable)
    output_dir: str = "."
    plot_dir: Optional[str] = None
    plots: List[PlotRequest] = field(default_factory=list)
    exports: List[Path] = field(default_factory=list)
    printed: List[str] = field(default_factory=list)


@dataclass
class RunReport:
    """Counts of executed commands and the (tag, message) pairs of skipped ones."""

    executed: int = 0
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.skipped


class CommandInterpreter:
    """
    Single-pass dispatcher over a commands tree.

    A renderer with a render(request, output_dir) method, such as GridPlotter, can be attached to turn plot commands into image files; without one, plot requests are only collected in the run context.
    """

    def __init__(self, context: RunContext, logger: Optional[GridAggLogger] = None,
                 plotter=None, exporter: Optional[DataSetExporter] = None) -> None:
        """
        Initialize the interpreter and its dispatch table.

        Parameters:
            context (RunContext): Tables and output locations of the run.
            logger (Optional[GridAggLogger]): Logger for tracing, print output and skip reports (default: None).
            plotter (Optional[Any]): Renderer for plot commands (default: None).
            exporter (Optional[DataSetExporter]): Dataset writer (default: a new DataSetExporter).

        Returns:
            None
        """
        self.context = context
        self.logger = logger
        self.plotter = plotter
        self.exporter = exporter or DataSetExporter()

        binary = {
            "add": algorithms.add,
            "subtract": algorithms.subtract,
            "multiply": algorithms.multiply,
            "divide": algorithms.divide,
        }
        scalar = {
            "addScalar": algorithms.add_scalar,
            "multiplyScalar": algorithms.multiply_scalar,
            "divideScalar": algorithms.divide_scalar,
        }
        threshold = {
            "parseGreaterThan": algorithms.greater_than,
            "greaterThan": algorithms.greater_than,
            "parseLessThan": algorithms.less_than,
            "lessThan": algorithms.less_than,
        }
        counts = {
            "countGreaterThan": algorithms.count_greater_than,
            "countLessThan": algorithms.count_less_than,
        }

        self._handlers: Dict[str, Callable[[ConfigNode], None]] = {
            "variable": self._cmd_variable,
            "aggregateVariables": self._cmd_aggregate_variables,
            "countElements": self._cmd_count_elements,
            "sumValues": self._cmd_sum_values,
            "largestValue": self._cmd_largest_value,
            "smallestValue": self._cmd_smallest_value,
            "aggregateValues": self._cmd_aggregate_values,
            "avgOverRegion": self._cmd_avg_over_region,
            "avgOverRegionByArea": self._cmd_avg_over_region_by_area,
            "avgVariables": self._cmd_avg_variables,
            "avgVariablesOverRegion": self._cmd_avg_variables_over_region,
            "avgVariablesOverRegionByArea": self._cmd_avg_variables_over_region_by_area,
            "weightValues": self._cmd_weight_values,
            "extractSubRegion": self._cmd_extract_sub_region,
            "getChild": self._cmd_get_child,
            "print": self._cmd_print,
            "printVerbose": self._cmd_print_verbose,
            "plot": self._cmd_plot,
            "createDataSet": self._cmd_create_data_set,
            "comment": self._annotator("comment"),
            "setReference": self._annotator("reference"),
            "setUnits": self._annotator("units"),
        }
        for tag, kernel in binary.items():
            self._handlers[tag] = self._binary_handler(kernel)
        for tag, kernel in scalar.items():
            self._handlers[tag] = self._scalar_handler(kernel)
        for tag, kernel in threshold.items():
            self._handlers[tag] = self._threshold_handler(kernel)
        for tag, kernel in counts.items():
            self._handlers[tag] = self._count_handler(kernel)

    def _log(self, level: str, message: str) -> None:
        if self.logger is not None:
            getattr(self.logger, level)(message)

    def run(self, commands: ConfigNode) -> RunReport:
        """
        Execute every child of the commands root in order. Recoverable failures are logged with the command tag and the offending identifier and recorded in the report; the run always continues with the next command.

        Parameters:
            commands (ConfigNode): Root of the commands document.

        Returns:
            RunReport: Executed count and skipped commands.
        """
        report = RunReport()

        for index, command in enumerate(commands.children, start=1):
            label = command.get("name") or command.get("variable") or ""
            self._log("debug", f"[{index}] <{command.tag}> {label}".rstrip())
            try:
                self.execute(command)
            except CommandError as err:
                message = str(err)
                if err.identifier and err.identifier not in message:
                    message = f"{message} ({err.identifier})"
                self._log("warning", f"Skipping command {index} <{command.tag}>: {message}")
                report.skipped.append((command.tag, message))
            else:
                report.executed += 1

        self._log("info", f"Executed {report.executed} commands, skipped {len(report.skipped)}")
        return report

    def execute(self, command: ConfigNode) -> None:
        """
        Execute a single command.

        Parameters:
            command (ConfigNode): Command element.

        Returns:
            None

        Raises:
            CommandError: If the command cannot be executed.
        """
        handler = self._handlers.get(command.tag)
        if handler is None:
            raise UnknownCommandError(f"Unknown input command -> {command.tag}", command.tag)
        handler(command)

    # operand resolution

    def _variable(self, name: str) -> Variable:
        return self.context.variables.get(name)

    def _operand(self, command: ConfigNode, tag: str = "argument") -> Variable:
        return self._variable(command.child_attr(tag, "name"))

    def _arguments(self, command: ConfigNode, minimum: int = 1) -> List[Variable]:
        nodes = command.children_named("argument")
        if len(nodes) < minimum:
            raise OperandError(
                f"<{command.tag}> needs at least {minimum} <argument> children, got {len(nodes)}",
                command.tag
            )
        return [self._variable(node.require_attr("name")) for node in nodes]

    @staticmethod
    def _reference(variable: Variable) -> ReferenceVariable:
        if variable.kind is not VariableKind.REFERENCE:
            raise OperandError(f"Variable '{variable.name}' is not a reference variable", variable.name)
        return variable

    @staticmethod
    def _float(node: ConfigNode, attr: str = "value") -> float:
        raw = node.require_attr(attr)
        try:
            return float(raw)
        except ValueError:
            raise OperandError(f"<{node.tag}> {attr}={raw!r} is not a number", node.tag) from None

    def _number(self, node: ConfigNode) -> float:
        """Literal value= attribute, or the first cell of the variable named by name=."""
        if node.get("value") is not None:
            return self._float(node)
        variable = self._variable(node.require_attr("name"))
        return float(variable.get_data()[0].data.flat[0])

    def _limit_or_mask(self, command: ConfigNode) -> Tuple[Optional[float], Optional[List[Wrapper]]]:
        """A <limit> child takes precedence over a <mask> child."""
        limit = command.child("limit")
        if limit is not None:
            return self._number(limit), None
        mask = command.child("mask")
        if mask is None:
            raise OperandError(f"<{command.tag}> needs a <limit> or <mask> child", command.tag)
        return None, self._variable(mask.require_attr("name")).get_data()

    def _resolve_target(self, command: ConfigNode, source: Optional[Variable],
                        factory: Optional[Callable[[str], Variable]] = None) -> Variable:
        """
        Return the variable a command writes to. An existing variable with the target name is reused and mutated in place. Otherwise a new one is created, by factory when given or as the NaN-filled shape of source, and registered under the target name.

        Parameters:
            command (ConfigNode): Command holding a <target name=...> child.
            source (Optional[Variable]): Variable whose shape seeds a new target.
            factory (Optional[Callable[[str], Variable]]): Constructor for targets not shaped like source.

        Returns:
            Variable: The target variable.
        """
        name = command.child_attr("target", "name")
        if name in self.context.variables:
            return self.context.variables.get(name)

        target = factory(name) if factory is not None else source.get_shape(name)
        self.context.variables.put(target)
        return target

    def _store(self, command: ConfigNode, source: Optional[Variable], wrappers: List[Wrapper],
               factory: Optional[Callable[[str], Variable]] = None) -> Variable:
        target = self._resolve_target(command, source, factory)
        target.set_data(wrappers)
        return target

    def _store_value(self, command: ConfigNode, wrappers: List[Wrapper]) -> Variable:
        return self._store(command, None, wrappers, factory=lambda name: DataVariable(name=name))

    # variable construction

    def _cmd_variable(self, command: ConfigNode) -> None:
        name = command.require_attr("name")
        kind = command.get("type", "")
        builders = {
            "data": self._new_data_variable,
            "reference": self._new_reference_variable,
            "group": self._new_group_variable,
        }
        builder = builders.get(kind)
        if builder is None:
            raise UnknownCommandError(f"Unknown variable type '{kind}' for '{name}'", kind)

        variable = builder(name, command)
        comment = command.child("comment")
        if comment is not None:
            variable.comment = comment.get("value")
        self.context.variables.put(variable)
        self._log("debug", f"Defined {variable.kind.value} variable '{name}'")

    def _index(self, node: ConfigNode, attr: str, limit: int) -> int:
        value = self._float(node, attr)
        if value != int(value) or not 0 <= value < limit:
            raise OperandError(f"<{node.tag}> {attr}={value} outside 0..{limit - 1}", node.tag)
        return int(value)

    def _new_data_variable(self, name: str, command: ConfigNode) -> DataVariable:
        dimension = int(self._float(command.require_child("dimension")))

        if dimension == 0:
            variable = DataVariable.declare(name, 0)
            data = command.child("data")
            if data is not None:
                variable.data = np.array(self._float(data))
            return variable

        size = command.require_child("size")
        size_x = int(self._float(size, "x"))
        size_y = int(self._float(size, "y")) if dimension == 2 else 1
        variable = DataVariable.declare(name, dimension, size_x, size_y)

        for cell in command.children_named("data"):
            ix = self._index(cell, "x", size_x)
            if dimension == 1:
                variable.data[ix] = self._float(cell)
            else:
                variable.data[self._index(cell, "y", size_y), ix] = self._float(cell)
        return variable

    def _field_info(self, field_name: str):
        info = self.context.fields.get(field_name)
        if info is None:
            raise OperandError(f"Field '{field_name}' has no metadata", field_name)
        return info

    def _new_reference_variable(self, name: str, command: ConfigNode) -> ReferenceVariable:
        region = command.child_attr("region", "value")
        info = self._field_info(command.child_attr("field", "value"))
        time = command.child_attr("time", "value")
        self.context.regions.get(region)
        return ReferenceVariable.from_region(name, self.context.regions, region, info, time)

    def _new_group_variable(self, name: str, command: ConfigNode) -> GroupVariable:
        fill_node = command.child("fill")
        fill = fill_node.get("value", FILL_EXPLICIT) if fill_node is not None else FILL_EXPLICIT
        members = command.require_child("members")

        if fill == FILL_TIME:
            return group_fill.fill_by_time(
                name, self.context.regions, self.context.fields,
                members.child_attr("region", "value"), members.child_attr("field", "value")
            )

        if fill in (FILL_SUBREGION, "subregions"):
            if members.get("variable") is not None:
                return group_fill.fill_by_extraction(
                    name, self.context.regions, self._variable(members.get("variable"))
                )
            return group_fill.fill_by_subregion(
                name, self.context.regions, self.context.fields,
                members.child_attr("region", "value"), members.child_attr("field", "value"),
                members.child_attr("time", "value")
            )

        if fill != FILL_EXPLICIT:
            raise UnknownCommandError(f"Unknown group fill '{fill}' for '{name}'", fill)

        names = [node.require_attr("value") for node in members.children_named("variable")]
        return group_fill.fill_explicit(name, self.context.variables, names)

    def _cmd_aggregate_variables(self, command: ConfigNode) -> None:
        sources = [self._reference(variable) for variable in self._arguments(command)]
        wrappers = algorithms.aggregate_wrappers([source.get_data() for source in sources])

        def factory(name: str) -> ReferenceVariable:
            target = sources[0].get_shape(name)
            target.region = None
            return target

        self._store(command, sources[0], wrappers, factory)

    # element-wise operations

    def _binary_handler(self, kernel):
        def handler(command: ConfigNode) -> None:
            first, second = self._arguments(command, minimum=2)[:2]
            self._store(command, first, kernel(first.get_data(), second.get_data()))
        return handler

    def _scalar_handler(self, kernel):
        def handler(command: ConfigNode) -> None:
            source = self._operand(command)
            scalar = self._number(command.require_child("scalar"))
            self._store(command, source, kernel(source.get_data(), scalar))
        return handler

    def _threshold_handler(self, kernel):
        def handler(command: ConfigNode) -> None:
            source = self._operand(command)
            limit, mask = self._limit_or_mask(command)
            self._store(command, source, kernel(source.get_data(), limit=limit, mask=mask))
        return handler

    def _count_handler(self, kernel):
        def handler(command: ConfigNode) -> None:
            source = self._operand(command)
            limit, mask = self._limit_or_mask(command)
            self._store_value(command, kernel(source.get_data(), limit=limit, mask=mask))
        return handler

    def _cmd_weight_values(self, command: ConfigNode) -> None:
        source = self._operand(command)
        scale_node = command.require_child("scale")
        scale = self._variable(scale_node.require_attr("name"))

        result = algorithms.weight_values(
            source.get_data(), scale.get_data(),
            self._number(scale_node.require_child("minimum")),
            self._number(scale_node.require_child("maximum")),
            self._number(command.require_child("minimumWeight")),
            self._number(command.require_child("maximumWeight"))
        )
        self._store(command, source, result)

    # reductions

    def _cmd_count_elements(self, command: ConfigNode) -> None:
        source = self._operand(command)
        self._store_value(command, algorithms.count_elements(source.get_data()))

    def _cmd_sum_values(self, command: ConfigNode) -> None:
        source = self._operand(command)
        if source.kind is VariableKind.REFERENCE and source.avg:
            result = algorithms.sum_values_weighted(source.get_data(), source.weight, source.bounds)
        else:
            result = algorithms.sum_values(source.get_data())
        self._store_value(command, result)

    def _cmd_largest_value(self, command: ConfigNode) -> None:
        self._store_value(command, algorithms.largest_value(self._operand(command).get_data()))

    def _cmd_smallest_value(self, command: ConfigNode) -> None:
        self._store_value(command, algorithms.smallest_value(self._operand(command).get_data()))

    def _region_average(self, source: Variable, blocks: List[Wrapper]) -> List[Wrapper]:
        if source.kind is VariableKind.REFERENCE and source.avg:
            return algorithms.avg_over_region_weighted(blocks, source.weight, source.bounds)
        return algorithms.avg_over_region(blocks)

    @staticmethod
    def _area_average(source: ReferenceVariable, blocks: List[Wrapper]) -> List[Wrapper]:
        weight = source.weight if source.avg else None
        return algorithms.avg_over_region_by_area(blocks, source.bounds, weight)

    def _cmd_aggregate_values(self, command: ConfigNode) -> None:
        source = self._reference(self._operand(command))
        if source.avg:
            result = algorithms.avg_over_region_weighted(source.get_data(), source.weight, source.bounds)
        else:
            result = algorithms.sum_values(source.get_data())
        self._store_value(command, result)

    def _cmd_avg_over_region(self, command: ConfigNode) -> None:
        source = self._operand(command)
        self._store_value(command, self._region_average(source, source.get_data()))

    def _cmd_avg_over_region_by_area(self, command: ConfigNode) -> None:
        source = self._reference(self._operand(command))
        self._store_value(command, self._area_average(source, source.get_data()))

    def _cmd_avg_variables(self, command: ConfigNode) -> None:
        sources = self._arguments(command)
        result = algorithms.avg_variables([source.get_data() for source in sources])
        self._store(command, sources[0], result)

    def _cmd_avg_variables_over_region(self, command: ConfigNode) -> None:
        sources = self._arguments(command)
        averaged = algorithms.avg_variables([source.get_data() for source in sources])
        self._store_value(command, self._region_average(sources[0], averaged))

    def _cmd_avg_variables_over_region_by_area(self, command: ConfigNode) -> None:
        sources = self._arguments(command)
        first = self._reference(sources[0])
        averaged = algorithms.avg_variables([source.get_data() for source in sources])
        self._store_value(command, self._area_average(first, averaged))

    # region and group access

    def _cmd_extract_sub_region(self, command: ConfigNode) -> None:
        source_tag = "source" if command.child("source") is not None else "argument"
        source = self._reference(self._operand(command, source_tag))
        shape = command.child_attr("shape", "value")
        wrappers = algorithms.extract_region(self.context.regions, shape, source.get_data())

        def factory(name: str) -> ReferenceVariable:
            target = source.get_shape(name)
            target.region = shape
            return target

        self._store(command, source, wrappers, factory)

    def _cmd_get_child(self, command: ConfigNode) -> None:
        source_tag = "source" if command.child("source") is not None else "argument"
        group = self._operand(command, source_tag)
        if group.kind is not VariableKind.GROUP:
            raise OperandError(f"Variable '{group.name}' is not a group variable", group.name)

        key = command.child_attr("child", "value")
        if key not in group.members:
            raise OperandError(f"Group '{group.name}' has no child '{key}'", key)

        member = group.members[key]
        self._store(command, member, member.get_data(), factory=lambda name: member.copy(name))

    # annotations and output

    def _annotator(self, attribute: str):
        def handler(command: ConfigNode) -> None:
            variable = self._variable(command.child_attr("variable", "value"))
            setattr(variable, attribute, command.child_attr("text", "value"))
        return handler

    def _emit(self, command: ConfigNode, verbose: bool) -> None:
        variable = self._variable(command.require_attr("variable"))
        text = describe_variable(variable, verbose=verbose)
        self.context.printed.append(text)
        self._log("info", text)

    def _cmd_print(self, command: ConfigNode) -> None:
        self._emit(command, verbose=False)

    def _cmd_print_verbose(self, command: ConfigNode) -> None:
        self._emit(command, verbose=True)

    def _cmd_plot(self, command: ConfigNode) -> None:
        variable = self._variable(command.require_attr("variable"))
        requests = build_plot_requests(variable)
        self.context.plots.extend(requests)

        if self.plotter is not None:
            plot_dir = self.context.plot_dir or self.context.output_dir
            for request in requests:
                for path in self.plotter.render(request, plot_dir):
                    self._log("info", f"Saved plot: {path}")

    def _cmd_create_data_set(self, command: ConfigNode) -> None:
        source = self._reference(self._operand(command, "source"))
        path = Path(command.child_attr("file", "name"))
        if not path.is_absolute():
            path = Path(self.context.output_dir) / path

        tag = command.child("tag")
        tagged = tag is not None and tag.get("value", "").lower() == "true"
        field_name = time = None
        if tagged:
            field_node = tag.child("fieldName")
            time_node = tag.child("time")
            field_name = field_node.get("value") if field_node is not None else None
            time = time_node.get("value") if time_node is not None else None

        written = self.exporter.write(source, path, tagged=tagged, field_name=field_name, time=time)
        self.context.exports.append(written)
        self._log("info", f"Wrote dataset: {written}")
