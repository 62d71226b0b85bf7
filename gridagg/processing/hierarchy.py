#!/usr/bin/env python3

"""
GridAgg Region Hierarchy Builder

This module builds the region table and the field metadata table from the parsed data and hierarchy documents. Ingestion reads the master resolution and the per-field averaging policy, reference text and units, then builds every leaf region: matrices are allocated from the declared cell counts and filled with NaN (weights default to 0), the sparse (x, y, value) entries are applied, and every additive field is multiplied by the leaf weight so partial coverage is baked into the stored values once. Composite regions are then built strictly by ascending declared level; a composite may only reference leaves or composites of a lower level that are already registered, and anything else aborts the run with HierarchyBuildError.

Classes:
    RegionHierarchyBuilder: Builds FieldTable and RegionTable instances from parsed input trees.

Version: 1.0.0
"""

import numpy as np
from typing import Dict, Optional, Tuple

from .constants import WEIGHT_FIELD, WEIGHT_TIME_LABEL
from .exceptions import HierarchyBuildError, IngestionError
from .regions import FieldInfo, FieldTable, RegionKind, RegionTable, SubRegion, SuperRegion
from .utils_logger import GridAggLogger
from .utils_tree import ConfigNode
from .utils_validator import DataValidator


class RegionHierarchyBuilder:
    """
    Builder turning the data and hierarchy documents into region and field tables.

    Fatal problems raise IngestionError (data document) or HierarchyBuildError (hierarchy document). Suspicious but usable input, such as weights outside [0, 1], is only logged.
    """

    def __init__(self, logger: Optional[GridAggLogger] = None) -> None:
        """
        Initialize the builder.

        Parameters:
            logger (Optional[GridAggLogger]): Logger for progress and data quality messages (default: None).

        Returns:
            None
        """
        self.logger = logger

    def _log(self, level: str, message: str) -> None:
        if self.logger is not None:
            getattr(self.logger, level)(message)

    @staticmethod
    def _number(node: ConfigNode, name: str) -> float:
        raw = node.get(name)
        if raw is None:
            raise IngestionError(f"<{node.tag}> is missing attribute '{name}'")
        try:
            return float(raw)
        except ValueError:
            raise IngestionError(f"<{node.tag}> attribute '{name}' is not a number: {raw!r}") from None

    @staticmethod
    def _index(node: ConfigNode, name: str) -> int:
        value = RegionHierarchyBuilder._number(node, name)
        if value != int(value):
            raise IngestionError(f"<{node.tag}> attribute '{name}' must be an integer, got {value}")
        return int(value)

    def ingest_fields(self, data_tree: ConfigNode) -> FieldTable:
        """
        Read the global field metadata from the variableInfo section of the data document. Each field is declared once with an average flag and optional reference and units texts.

        Parameters:
            data_tree (ConfigNode): Root of the data document.

        Returns:
            FieldTable: Populated field metadata table.
        """
        table = FieldTable()
        info_node = data_tree.child("variableInfo")

        if info_node is None:
            self._log("warning", "Data document has no <variableInfo> section")
            return table

        for node in info_node.children_named("variable"):
            name = node.get("name")
            if not name:
                raise IngestionError("<variable> in <variableInfo> is missing attribute 'name'")

            average = node.child("average")
            reference = node.child("reference")
            units = node.child("units")

            table.register(FieldInfo(
                name=name,
                avg=average is not None and (average.get("value", "").lower() == "true"),
                reference=reference.get("value") if reference is not None else None,
                units=units.get("value") if units is not None else None
            ))

        self._log("debug", f"Ingested metadata for {len(table)} fields: {', '.join(table.names())}")
        return table

    def _fill_times(self, node: ConfigNode, region_name: str, rows: int, cols: int,
                    default: float) -> Dict[str, np.ndarray]:
        matrices: Dict[str, np.ndarray] = {}

        for time_node in node.children_named("time"):
            label = time_node.get("value")
            if label is None:
                raise IngestionError(f"<time> in region '{region_name}' is missing attribute 'value'")

            matrix = matrices.setdefault(label, np.full((rows, cols), default))

            for cell in time_node.children_named("data"):
                ix = self._index(cell, "x")
                iy = self._index(cell, "y")
                if not (0 <= ix < cols and 0 <= iy < rows):
                    raise IngestionError(
                        f"Cell ({ix}, {iy}) outside {cols}x{rows} grid of region '{region_name}'"
                    )
                matrix[iy, ix] = self._number(cell, "value")

        return matrices

    def build_leaf(self, node: ConfigNode, fields: FieldTable, res: float) -> SubRegion:
        """
        Build one leaf region from a <region> element. Matrices are sized sizeY by sizeX cells and default to NaN, while the weight matrix defaults to 0. The weight at time label "0" (or the first listed time) is the leaf's coverage matrix, and every field whose metadata says it is additive is multiplied by it.

        Parameters:
            node (ConfigNode): The <region> element.
            fields (FieldTable): Field metadata from ingest_fields().
            res (float): Master resolution in degrees.

        Returns:
            SubRegion: The constructed leaf.
        """
        name = node.get("name")
        if not name:
            raise IngestionError("<region> is missing attribute 'name'")

        x = self._number(node, "x")
        y = self._number(node, "y")
        cols = self._index(node, "sizeX")
        rows = self._index(node, "sizeY")
        w, h = cols * res, rows * res

        issues = DataValidator.validate_region_geometry(x, y, w, h, res)
        if issues:
            raise IngestionError(f"Region '{name}' has invalid geometry: {'; '.join(issues)}")

        weight_node = node.child(WEIGHT_FIELD)
        weights = self._fill_times(weight_node, name, rows, cols, 0.0) if weight_node is not None else {}
        if WEIGHT_TIME_LABEL in weights:
            weight = weights[WEIGHT_TIME_LABEL]
        elif weights:
            weight = next(iter(weights.values()))
        else:
            self._log("warning", f"Region '{name}' has no weight matrix; all cells get weight 0")
            weight = np.zeros((rows, cols))

        check = DataValidator.validate_weight_matrix(weight)
        if not check["valid"]:
            self._log("warning", f"Region '{name}': {'; '.join(check['issues'])}")

        region_fields: Dict[str, Dict[str, np.ndarray]] = {}
        for field_node in node.children_named("variable"):
            field_name = field_node.get("value")
            if not field_name:
                raise IngestionError(f"<variable> in region '{name}' is missing attribute 'value'")

            info = fields.get(field_name)
            if info is None:
                raise IngestionError(f"Region '{name}' holds field '{field_name}' with no metadata")

            matrices = self._fill_times(field_node, name, rows, cols, np.nan)
            if not info.avg:
                matrices = {label: matrix * weight for label, matrix in matrices.items()}

            region_fields.setdefault(field_name, {}).update(matrices)

        return SubRegion(name=name, x=x, y=y, w=w, h=h, res=res, weight=weight, fields=region_fields)

    def build_leaves(self, data_tree: ConfigNode, fields: FieldTable,
                     table: RegionTable) -> float:
        """
        Build and register every leaf region of the data document.

        Parameters:
            data_tree (ConfigNode): Root of the data document.
            fields (FieldTable): Field metadata.
            table (RegionTable): Table receiving the leaves.

        Returns:
            float: The master resolution.
        """
        res = self._number(data_tree, "res")
        if res <= 0:
            raise IngestionError(f"Master resolution must be positive, got {res}")

        for node in data_tree.children_named("region"):
            leaf = self.build_leaf(node, fields, res)
            try:
                table.register(leaf)
            except HierarchyBuildError as err:
                raise IngestionError(str(err)) from None

        self._log("info", f"Built {len(table)} leaf regions at {res} degree resolution")
        return res

    def build_composites(self, hierarchy_tree: ConfigNode, table: RegionTable) -> None:
        """
        Build composite regions in ascending level order. Within one level, composites are processed in document order. Each child reference must name a region that is already registered and, for composites, was declared at a strictly lower level.

        Parameters:
            hierarchy_tree (ConfigNode): Root of the hierarchy document.
            table (RegionTable): Table holding the leaves and receiving the composites.

        Returns:
            None

        Raises:
            HierarchyBuildError: On any unresolved or out-of-order reference.
        """
        specs = []
        for node in hierarchy_tree.children_named("superRegion"):
            name = node.get("name")
            if not name:
                raise HierarchyBuildError("<superRegion> is missing attribute 'name'")
            try:
                level = int(node.get("level", ""))
            except ValueError:
                raise HierarchyBuildError(
                    f"Composite '{name}' has invalid level {node.get('level')!r}"
                ) from None
            specs.append((level, name, node))

        declared_levels = hierarchy_tree.get("numLevels")
        if declared_levels is not None and specs:
            highest = max(level for level, _, _ in specs)
            if highest > int(declared_levels):
                self._log("warning",
                          f"Hierarchy declares {declared_levels} levels but uses level {highest}")

        for level, name, node in sorted(specs, key=lambda spec: spec[0]):
            composite = SuperRegion(name=name, level=level)

            for child_node in node.children_named("region"):
                child_name = child_node.get("name")
                if child_name not in table:
                    raise HierarchyBuildError(
                        f"Composite '{name}' references unregistered region '{child_name}'"
                    )

                child = table.get(child_name)
                if child.kind is RegionKind.COMPOSITE and child.level >= level:
                    raise HierarchyBuildError(
                        f"Composite '{name}' at level {level} references '{child_name}' "
                        f"at level {child.level}"
                    )
                composite.append_child(child)

            if not composite.children:
                raise HierarchyBuildError(f"Composite '{name}' has no child regions")

            table.register(composite)
            self._log("debug", f"Built composite '{name}' (level {level}, {composite.num_sub} leaves)")

    def build(self, data_tree: ConfigNode,
              hierarchy_tree: Optional[ConfigNode]) -> Tuple[RegionTable, FieldTable, float]:
        """
        Run the full build: field metadata, leaves, then composites.

        Parameters:
            data_tree (ConfigNode): Root of the data document.
            hierarchy_tree (Optional[ConfigNode]): Root of the hierarchy document, None when only leaves are used.

        Returns:
            Tuple[RegionTable, FieldTable, float]: Region table, field table and master resolution.
        """
        fields = self.ingest_fields(data_tree)
        table = RegionTable()
        res = self.build_leaves(data_tree, fields, table)

        if hierarchy_tree is not None:
            self.build_composites(hierarchy_tree, table)

        return table, fields, res
