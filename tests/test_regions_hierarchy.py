#!/usr/bin/env python3
"""
GridAgg Region Hierarchy Unit Tests

This module tests field metadata ingestion, leaf construction and composite
assembly performed by RegionHierarchyBuilder, together with the lookups offered
by RegionTable and FieldTable.

Tests Performed:
    TestFieldIngestion:
        - test_metadata_read: Averaging flag, reference text and units are read per field
        - test_duplicate_field_is_fatal: A field declared twice aborts ingestion
    TestLeafConstruction:
        - test_matrices_follow_row_order: Cell (x, y) lands in row y from the north
        - test_missing_cells_are_nan: Cells without entries stay NaN
        - test_additive_fields_are_weighted: Additive fields are multiplied by the weight
        - test_missing_weight_defaults_to_zero: A leaf without weights gets zero coverage
        - test_unknown_field_is_fatal: Values for undeclared fields abort ingestion
        - test_bad_geometry_is_fatal: Empty or out-of-grid cells abort ingestion
        - test_duplicate_leaf_is_fatal: Two leaves with one name abort ingestion
    TestCompositeAssembly:
        - test_union_box_and_leaf_count: Composite box and num_sub derive from children
        - test_levels_processed_in_order: Higher levels may precede lower ones in the document
        - test_unregistered_reference_is_fatal: Unknown child names abort the build
        - test_same_level_reference_is_fatal: Composites may only use strictly lower levels
    TestRegionTable:
        - test_leaves_depth_first: Nested composites resolve to leaves in child order
        - test_time_labels_first_seen: Time labels merge across leaves in first-seen order
        - test_missing_region: Unknown names raise RegionNotFoundError

Version: 1.0.0
"""

import unittest
import numpy as np

from gridagg.processing.exceptions import (FatalRunError, HierarchyBuildError, IngestionError,
                                           RegionNotFoundError)
from gridagg.processing.regions import RegionKind
from tests.grid_fixtures import (build_tables, data_xml, hierarchy_xml, region_xml,
                                 standard_tables)


class TestFieldIngestion(unittest.TestCase):
    """
    Tests for the variableInfo section of the data document.

    Scope:
        FieldInfo values and duplicate detection.
    """

    def test_metadata_read(self) -> None:
        _, fields, res = standard_tables()

        self.assertEqual(res, 1.0)
        self.assertEqual(fields.names(), ["rain", "temp"])

        rain = fields.get("rain")
        self.assertFalse(rain.avg)
        self.assertEqual(rain.reference, "Gauge network")
        self.assertEqual(rain.units, "mm")

        temp = fields.get("temp")
        self.assertTrue(temp.avg)
        self.assertIsNone(temp.reference)
        self.assertIsNone(fields.get("wind"))

    def test_duplicate_field_is_fatal(self) -> None:
        data = data_xml([], fields=[("rain", False, None, None), ("rain", True, None, None)])
        with self.assertRaises(IngestionError):
            build_tables(data, None)


class TestLeafConstruction(unittest.TestCase):
    """
    Tests for leaf regions built from <region> elements.

    Scope:
        Matrix layout, NaN defaults, weight application and fatal input errors.
    Test data:
        The standard two-leaf layout from tests.grid_fixtures plus small ad hoc documents.
    """

    def test_matrices_follow_row_order(self) -> None:
        regions, _, _ = standard_tables()
        leaf = regions.get("A")

        self.assertIs(leaf.kind, RegionKind.LEAF)
        self.assertEqual((leaf.x, leaf.y, leaf.w, leaf.h), (0.0, 0.0, 2.0, 2.0))
        self.assertEqual(leaf.north, 2.0)
        np.testing.assert_array_equal(leaf.matrix("rain", "t1"), [[1, 2], [3, 4]])
        self.assertIsNone(leaf.matrix("rain", "t9"))

    def test_missing_cells_are_nan(self) -> None:
        data = data_xml([region_xml("D", 0, 0, {"temp": {"t1": [[1.5, None], [None, 2.5]]}})])
        regions, _, _ = build_tables(data, None)

        matrix = regions.get("D").matrix("temp", "t1")
        self.assertEqual(matrix[0, 0], 1.5)
        self.assertTrue(np.isnan(matrix[0, 1]))
        self.assertTrue(np.isnan(matrix[1, 0]))

    def test_additive_fields_are_weighted(self) -> None:
        data = data_xml([region_xml("D", 0, 0, {
            "rain": {"t1": [[4.0, 4.0]]},
            "temp": {"t1": [[4.0, 4.0]]},
        }, weight=[[1.0, 0.5]])])
        regions, _, _ = build_tables(data, None)
        leaf = regions.get("D")

        np.testing.assert_array_equal(leaf.weight, [[1.0, 0.5]])
        np.testing.assert_array_equal(leaf.matrix("rain", "t1"), [[4.0, 2.0]])
        np.testing.assert_array_equal(leaf.matrix("temp", "t1"), [[4.0, 4.0]])

    def test_missing_weight_defaults_to_zero(self) -> None:
        data = ('<data res="1"><variableInfo><variable name="temp"><average value="true"/>'
                '</variable></variableInfo><region name="D" x="0" y="0" sizeX="2" sizeY="1">'
                '<variable value="temp"><time value="t1"><data x="0" y="0" value="3"/></time>'
                '</variable></region></data>')
        regions, _, _ = build_tables(data, None)
        np.testing.assert_array_equal(regions.get("D").weight, [[0.0, 0.0]])

    def test_unknown_field_is_fatal(self) -> None:
        data = data_xml([region_xml("D", 0, 0, {"wind": {"t1": [[1.0]]}})])
        with self.assertRaises(IngestionError):
            build_tables(data, None)

    def test_bad_geometry_is_fatal(self) -> None:
        empty = data_xml([region_xml("D", 0, 0, {"rain": {}}, weight=[[1.0]], size=(0, 1))])
        with self.assertRaises(IngestionError):
            build_tables(empty, None)

        outside = data_xml(['  <region name="D" x="0" y="0" sizeX="1" sizeY="1">'
                            '<weight><time value="0"><data x="3" y="0" value="1"/></time></weight>'
                            '</region>'])
        with self.assertRaises(IngestionError):
            build_tables(outside, None)

    def test_duplicate_leaf_is_fatal(self) -> None:
        leaf = region_xml("D", 0, 0, {"rain": {"t1": [[1.0]]}})
        with self.assertRaises(IngestionError):
            build_tables(data_xml([leaf, leaf]), None)


class TestCompositeAssembly(unittest.TestCase):
    """
    Tests for composite regions built from the hierarchy document.

    Scope:
        Derived geometry, level ordering and fatal reference errors.
    """

    def setUp(self) -> None:
        self.data = data_xml([
            region_xml("A", 0, 0, {"rain": {"t1": [[1.0]]}}),
            region_xml("B", 1, 0, {"rain": {"t1": [[2.0]]}}),
            region_xml("E", 0, 5, {"rain": {"t2": [[3.0]]}}),
        ])

    def test_union_box_and_leaf_count(self) -> None:
        regions, _, _ = standard_tables()
        composite = regions.get("AB")

        self.assertIs(composite.kind, RegionKind.COMPOSITE)
        self.assertEqual(composite.children, ["A", "B"])
        self.assertEqual((composite.x, composite.y, composite.w, composite.h), (0.0, 0.0, 4.0, 2.0))
        self.assertEqual(composite.num_sub, 2)
        self.assertEqual(composite.res, 1.0)

    def test_levels_processed_in_order(self) -> None:
        hierarchy = hierarchy_xml([
            ("World", 2, ["AB", "E"]),
            ("AB", 1, ["A", "B"]),
        ])
        regions, _, _ = build_tables(self.data, hierarchy)

        world = regions.get("World")
        self.assertEqual(world.num_sub, 3)
        self.assertEqual((world.x, world.y, world.w, world.h), (0.0, 0.0, 2.0, 6.0))

    def test_unregistered_reference_is_fatal(self) -> None:
        hierarchy = hierarchy_xml([("AB", 1, ["A", "Z"])])
        with self.assertRaises(HierarchyBuildError) as ctx:
            build_tables(self.data, hierarchy)
        self.assertIn("Z", str(ctx.exception))
        self.assertIsInstance(ctx.exception, FatalRunError)

    def test_same_level_reference_is_fatal(self) -> None:
        hierarchy = hierarchy_xml([("AB", 1, ["A", "B"]), ("Top", 1, ["AB", "E"])])
        with self.assertRaises(HierarchyBuildError):
            build_tables(self.data, hierarchy)


class TestRegionTable(unittest.TestCase):
    """
    Tests for RegionTable lookups.

    Scope:
        Leaf resolution, time label discovery and missing names.
    """

    def setUp(self) -> None:
        data = data_xml([
            region_xml("A", 0, 0, {"rain": {"t1": [[1.0]], "t3": [[1.0]]}}),
            region_xml("B", 1, 0, {"rain": {"t2": [[2.0]], "t1": [[2.0]]}}),
            region_xml("E", 0, 5, {"rain": {"t4": [[3.0]]}}),
        ])
        hierarchy = hierarchy_xml([("AB", 1, ["B", "A"]), ("World", 2, ["E", "AB"])])
        self.regions, _, _ = build_tables(data, hierarchy)

    def test_leaves_depth_first(self) -> None:
        self.assertEqual([leaf.name for leaf in self.regions.leaves("World")], ["E", "B", "A"])
        self.assertEqual([leaf.name for leaf in self.regions.leaves("A")], ["A"])

    def test_time_labels_first_seen(self) -> None:
        self.assertEqual(self.regions.time_labels("AB", "rain"), ["t2", "t1", "t3"])
        self.assertEqual(self.regions.time_labels("AB", "temp"), [])

    def test_missing_region(self) -> None:
        with self.assertRaises(RegionNotFoundError) as ctx:
            self.regions.get("Nowhere")
        self.assertEqual(ctx.exception.identifier, "Nowhere")
        self.assertNotIn("Nowhere", self.regions)


if __name__ == '__main__':
    unittest.main()
