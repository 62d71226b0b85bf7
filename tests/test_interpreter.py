#!/usr/bin/env python3
"""
GridAgg Command Interpreter Tests

This module runs small commands documents through CommandInterpreter against the
standard two-leaf layout of tests.grid_fixtures and checks the resulting
variable table, the run report and the side outputs (printed text, plot
requests and exported files).

Tests Performed:
    TestScenarios:
        - test_two_leaf_scenario: sumValues 36, countElements 8, avgOverRegion 4.5
        - test_greater_than_scenario: Threshold at 5 on a 3x2 grid keeps only 6 and 7
        - test_limit_takes_precedence_over_mask: A <limit> child wins over a <mask> child
        - test_single_cell_extraction: A 1x1 leaf inside a 2x2 leaf receives the offset cell
        - test_uniform_area_average: A constant high-latitude field averages to itself
        - test_avg_variables_asymmetry: NaN inputs still count in the divisor
    TestTargetResolution:
        - test_existing_target_mutated_in_place: Results are stored in an existing variable
        - test_failed_command_creates_no_target: A failing command leaves no target behind
        - test_failed_store_leaves_group_intact: A result that does not fit an existing group changes nothing
        - test_nan_propagates_through_commands: NaN survives element-wise commands
    TestRecoverableErrors:
        - test_skips_and_continues: Unknown tags, missing names and bad types are skipped
        - test_skip_logged_with_identifier: The warning names the offending identifier
    TestReductionsAndCombinations:
        - test_averaging_policy: Additive fields sum, averaged fields take weighted means
        - test_scalars_and_counts: Literal and variable scalars, counts and extrema
        - test_weight_values: Scale-driven weighting
        - test_aggregate_variables: Union of several regions
        - test_avg_variables_over_region: Cross-variable average reduced over a region
    TestGroups:
        - test_time_group_and_get_child: Time fill, group reductions and child access
        - test_subregion_groups: Direct and extraction-based subregion fills
        - test_explicit_group: Explicit fill copies members
        - test_get_child_from_source: getChild also reads the group from a <source> child
    TestOutputs:
        - test_annotations_and_print: comment, setReference, setUnits, print and printVerbose
        - test_create_data_set: Relative export paths land in the output directory
        - test_plot_requests_and_renderer: Plot requests are collected and rendered

Version: 1.0.0
"""

import unittest
import numpy as np
import pytest
from pathlib import Path
from unittest.mock import MagicMock

from gridagg.processing.utils_logger import GridAggLogger
from gridagg.processing.variables import VariableKind
from tests.grid_fixtures import (data_xml, make_context, reference_xml, region_xml,
                                 run_commands, scalar_of, unary_xml)


def data_var_xml(name: str, matrix) -> str:
    """Declare a 2-D data variable, skipping None cells."""
    rows, cols = len(matrix), len(matrix[0])
    cells = "".join(f'<data x="{x}" y="{y}" value="{value}"/>'
                    for y, row in enumerate(matrix) for x, value in enumerate(row) if value is not None)
    return (f'<variable name="{name}" type="data"><dimension value="2"/>'
            f'<size x="{cols}" y="{rows}"/>{cells}</variable>')


def vector_xml(name: str, values) -> str:
    cells = "".join(f'<data x="{x}" value="{value}"/>' for x, value in enumerate(values) if value is not None)
    return (f'<variable name="{name}" type="data"><dimension value="1"/>'
            f'<size x="{len(values)}"/>{cells}</variable>')


class TestScenarios(unittest.TestCase):
    """
    End-to-end scenarios with known answers.

    Scope:
        The reference scenarios for sums, counts, averages, thresholds,
        extraction, area correction and cross-variable averaging.
    """

    def setUp(self) -> None:
        self.context = make_context()

    def test_two_leaf_scenario(self) -> None:
        report = run_commands(self.context, "\n".join([
            reference_xml("r", "AB"),
            unary_xml("sumValues", "total", "r"),
            unary_xml("countElements", "n", "r"),
            unary_xml("avgOverRegion", "mean", "r"),
        ]))

        self.assertTrue(report.ok)
        self.assertEqual(report.executed, 4)
        self.assertEqual(scalar_of(self.context, "total"), 36.0)
        self.assertEqual(scalar_of(self.context, "n"), 8.0)
        self.assertEqual(scalar_of(self.context, "mean"), 4.5)
        self.assertIs(self.context.variables.get("total").kind, VariableKind.DATA)

    def test_greater_than_scenario(self) -> None:
        run_commands(self.context, "\n".join([
            data_var_xml("g", [[1, 2], [3, 4], [6, 7]]),
            data_var_xml("holes", [[None, 9], [1, None]]),
            unary_xml("greaterThan", "h", "g", '<limit value="5"/>'),
            unary_xml("parseGreaterThan", "k", "holes", '<limit value="5"/>'),
        ]))

        np.testing.assert_array_equal(self.context.variables.get("h").data, [[0, 0], [0, 0], [6, 7]])
        k = self.context.variables.get("k").data
        self.assertTrue(np.isnan(k[0, 0]))
        self.assertEqual(k[0, 1], 9.0)
        self.assertEqual(k[1, 0], 0.0)
        self.assertTrue(np.isnan(k[1, 1]))

    def test_limit_takes_precedence_over_mask(self) -> None:
        run_commands(self.context, "\n".join([
            data_var_xml("g", [[1, 2], [3, 4], [6, 7]]),
            data_var_xml("zeros", [[0, 0], [0, 0], [0, 0]]),
            unary_xml("greaterThan", "h", "g", '<limit value="5"/><mask name="zeros"/>'),
            unary_xml("countGreaterThan", "n", "g", '<mask name="zeros"/><limit value="5"/>'),
        ]))

        np.testing.assert_array_equal(self.context.variables.get("h").data, [[0, 0], [0, 0], [6, 7]])
        self.assertEqual(scalar_of(self.context, "n"), 2.0)

    def test_single_cell_extraction(self) -> None:
        report = run_commands(self.context, "\n".join([
            reference_xml("r", "A"),
            '<extractSubRegion><target name="x"/><source name="r"/><shape value="C"/></extractSubRegion>',
        ]))

        self.assertTrue(report.ok)
        extracted = self.context.variables.get("x")
        self.assertEqual(extracted.region, "C")
        self.assertEqual(extracted.bounds, (1.0, 0.0, 1.0, 1.0))
        self.assertEqual(len(extracted.get_data()), 1)
        np.testing.assert_array_equal(extracted.get_data()[0].data, [[4.0]])

    def test_uniform_area_average(self) -> None:
        data = data_xml([
            region_xml("P", 10, 70, {"temp": {"t1": [[5.0] * 3] * 3}}),
            region_xml("Q", 10, -5, {"temp": {"t1": [[5.0] * 3] * 3}}),
        ])
        context = make_context(data, None)

        run_commands(context, "\n".join([
            reference_xml("p", "P", "temp"),
            reference_xml("q", "Q", "temp"),
            unary_xml("avgOverRegionByArea", "p_mean", "p"),
            unary_xml("avgOverRegionByArea", "q_mean", "q"),
        ]))

        self.assertAlmostEqual(scalar_of(context, "p_mean"), 5.0, places=9)
        self.assertAlmostEqual(scalar_of(context, "q_mean"), 5.0, places=9)

    def test_avg_variables_asymmetry(self) -> None:
        # A cell missing in every input averages to 0.0, not NaN.
        run_commands(self.context, "\n".join([
            vector_xml("a", [1.0, None, None]),
            vector_xml("b", [3.0, 5.0, None]),
            '<avgVariables><target name="c"/><argument name="a"/><argument name="b"/></avgVariables>',
        ]))

        np.testing.assert_array_equal(self.context.variables.get("c").data, [2.0, 2.5, 0.0])


class TestTargetResolution(unittest.TestCase):
    """
    Tests for the shared target resolver.

    Scope:
        In-place mutation of existing targets and atomicity of failing commands.
    """

    def setUp(self) -> None:
        self.context = make_context()

    def test_existing_target_mutated_in_place(self) -> None:
        run_commands(self.context, "\n".join([
            data_var_xml("a", [[1, 2]]),
            data_var_xml("b", [[10, 20]]),
            data_var_xml("out", [[0, 0]]),
        ]))
        existing = self.context.variables.get("out")

        run_commands(self.context, '<add><target name="out"/><argument name="a"/><argument name="b"/></add>')

        self.assertIs(self.context.variables.get("out"), existing)
        np.testing.assert_array_equal(existing.data, [[11, 22]])

    def test_failed_command_creates_no_target(self) -> None:
        report = run_commands(self.context, "\n".join([
            reference_xml("r", "AB"),
            data_var_xml("d", [[1, 2]]),
            '<add><target name="broken"/><argument name="r"/><argument name="d"/></add>',
        ]))

        self.assertEqual(report.skipped[0][0], "add")
        self.assertNotIn("broken", self.context.variables)

    def test_failed_store_leaves_group_intact(self) -> None:
        report = run_commands(self.context, "\n".join([
            reference_xml("ra", "A"),
            reference_xml("rb", "B"),
            '<variable name="pair" type="group"><fill value="explicit"/>'
            '<members><variable value="ra"/><variable value="rb"/></members></variable>',
            unary_xml("countElements", "pair", "ra"),
        ]))

        self.assertEqual(report.skipped[0][0], "countElements")
        self.assertIn("pair", report.skipped[0][1])
        first = self.context.variables.get("pair").members["ra"]
        np.testing.assert_array_equal(first.build_matrix(), [[1, 2], [3, 4]])
        self.assertEqual(first.bounds, (0.0, 0.0, 2.0, 2.0))

    def test_nan_propagates_through_commands(self) -> None:
        run_commands(self.context, "\n".join([
            data_var_xml("a", [[1, None], [3, 4]]),
            data_var_xml("b", [[1, 1], [None, 2]]),
            '<multiply><target name="m"/><argument name="a"/><argument name="b"/></multiply>',
            unary_xml("divideScalar", "q", "a", '<scalar value="2"/>'),
        ]))

        m = self.context.variables.get("m").data
        self.assertTrue(np.isnan(m[0, 1]))
        self.assertTrue(np.isnan(m[1, 0]))
        self.assertEqual(m[1, 1], 8.0)
        self.assertTrue(np.isnan(self.context.variables.get("q").data[0, 1]))


class TestRecoverableErrors(unittest.TestCase):
    """
    Tests for the skip-and-continue policy.

    Scope:
        Unknown command and variable type tags, missing variables and regions,
        and the warnings reported for them.
    """

    COMMANDS = "\n".join([
        '<frobnicate/>',
        unary_xml("sumValues", "t", "nope"),
        reference_xml("bad", "Nowhere"),
        '<variable name="odd" type="matrix"/>',
        reference_xml("r", "AB"),
        unary_xml("countElements", "n", "r"),
    ])

    def test_skips_and_continues(self) -> None:
        context = make_context()
        report = run_commands(context, self.COMMANDS)

        self.assertEqual([tag for tag, _ in report.skipped], ["frobnicate", "sumValues", "variable", "variable"])
        self.assertEqual(report.executed, 2)
        self.assertFalse(report.ok)
        self.assertIn("Unknown input command -> frobnicate", report.skipped[0][1])
        self.assertIn("nope", report.skipped[1][1])
        self.assertIn("Nowhere", report.skipped[2][1])
        self.assertIn("matrix", report.skipped[3][1])
        self.assertNotIn("t", context.variables)
        self.assertNotIn("bad", context.variables)
        self.assertEqual(scalar_of(context, "n"), 8.0)


def test_skip_logged_with_identifier(capsys) -> None:
    logger = GridAggLogger(name="gridagg.test.interpreter")
    context = make_context()

    run_commands(context, unary_xml("sumValues", "t", "missing_var"), logger=logger)
    logger.close()

    out = capsys.readouterr().out
    assert "WARNING" in out
    assert "missing_var" in out
    assert "Executed 0 commands, skipped 1" in out


class TestReductionsAndCombinations(unittest.TestCase):
    """
    Tests for reductions and multi-operand commands.

    Scope:
        Averaging policy dispatch, scalar operands, weighting, aggregation and
        cross-variable reductions.
    """

    def setUp(self) -> None:
        self.context = make_context()

    def test_averaging_policy(self) -> None:
        report = run_commands(self.context, "\n".join([
            reference_xml("rain", "AB"),
            reference_xml("temp", "AB", "temp"),
            unary_xml("aggregateValues", "rain_agg", "rain"),
            unary_xml("aggregateValues", "temp_agg", "temp"),
            unary_xml("avgOverRegion", "temp_mean", "temp"),
            unary_xml("sumValues", "temp_sum", "temp"),
        ]))

        self.assertTrue(report.ok)
        self.assertEqual(scalar_of(self.context, "rain_agg"), 36.0)
        self.assertAlmostEqual(scalar_of(self.context, "temp_agg"), 283.5)
        self.assertAlmostEqual(scalar_of(self.context, "temp_mean"), 283.5)
        self.assertAlmostEqual(scalar_of(self.context, "temp_sum"), 2268.0)

    def test_scalars_and_counts(self) -> None:
        report = run_commands(self.context, "\n".join([
            reference_xml("r", "AB"),
            '<variable name="two" type="data"><dimension value="0"/><data value="2"/></variable>',
            unary_xml("addScalar", "plus", "r", '<scalar value="1.5"/>'),
            unary_xml("multiplyScalar", "twice", "r", '<scalar name="two"/>'),
            unary_xml("countGreaterThan", "over4", "r", '<limit value="4"/>'),
            unary_xml("countLessThan", "under3", "r", '<limit name="two"/>'),
            unary_xml("largestValue", "hi", "r"),
            unary_xml("smallestValue", "lo", "twice"),
        ]))

        self.assertTrue(report.ok, report.skipped)
        np.testing.assert_array_equal(self.context.variables.get("plus").build_matrix(),
                                      [[2.5, 3.5, 6.5, 7.5], [4.5, 5.5, 8.5, 9.5]])
        self.assertEqual(self.context.variables.get("twice").region, "AB")
        self.assertEqual(scalar_of(self.context, "over4"), 4.0)
        self.assertEqual(scalar_of(self.context, "under3"), 1.0)
        self.assertEqual(scalar_of(self.context, "hi"), 8.0)
        self.assertEqual(scalar_of(self.context, "lo"), 2.0)

    def test_weight_values(self) -> None:
        report = run_commands(self.context, "\n".join([
            reference_xml("rain", "A"),
            reference_xml("temp", "A", "temp"),
            '<weightValues><target name="w"/><argument name="rain"/>'
            '<scale name="temp"><minimum value="280"/><maximum value="283"/></scale>'
            '<minimumWeight value="0"/><maximumWeight value="1"/></weightValues>',
        ]))

        self.assertTrue(report.ok, report.skipped)
        np.testing.assert_allclose(self.context.variables.get("w").build_matrix(),
                                   [[0.0, 2.0 / 3.0], [2.0, 4.0]])

    def test_aggregate_variables(self) -> None:
        run_commands(self.context, "\n".join([
            reference_xml("ra", "A"),
            reference_xml("rb", "B"),
            '<aggregateVariables><target name="both"/><argument name="ra"/>'
            '<argument name="rb"/></aggregateVariables>',
            unary_xml("sumValues", "total", "both"),
        ]))

        both = self.context.variables.get("both")
        self.assertIsNone(both.region)
        self.assertEqual(both.bounds, (0.0, 0.0, 4.0, 2.0))
        self.assertEqual(scalar_of(self.context, "total"), 36.0)

    def test_avg_variables_over_region(self) -> None:
        report = run_commands(self.context, "\n".join([
            reference_xml("r1", "A", time="t1"),
            reference_xml("r2", "A", time="t2"),
            '<avgVariablesOverRegion><target name="m"/><argument name="r1"/>'
            '<argument name="r2"/></avgVariablesOverRegion>',
            '<avgVariablesOverRegionByArea><target name="ma"/><argument name="r1"/>'
            '<argument name="r1"/></avgVariablesOverRegionByArea>',
        ]))

        self.assertTrue(report.ok, report.skipped)
        self.assertAlmostEqual(scalar_of(self.context, "m"), 13.75)
        self.assertGreater(scalar_of(self.context, "ma"), 2.4)
        self.assertLess(scalar_of(self.context, "ma"), 2.6)


class TestGroups(unittest.TestCase):
    """
    Tests for group variables built and used through commands.

    Scope:
        Every fill mode, group-wide reductions and getChild.
    """

    def setUp(self) -> None:
        self.context = make_context()

    def test_time_group_and_get_child(self) -> None:
        report = run_commands(self.context, "\n".join([
            '<variable name="g" type="group"><fill value="time"/>'
            '<members><region value="AB"/><field value="rain"/></members>'
            '<comment value="rain by time"/></variable>',
            unary_xml("sumValues", "all", "g"),
            unary_xml("getChild", "second", "g", '<child value="t2"/>'),
            unary_xml("sumValues", "second_sum", "second"),
            unary_xml("getChild", "none", "g", '<child value="t9"/>'),
        ]))

        group = self.context.variables.get("g")
        self.assertEqual(list(group.members), ["t1", "t2"])
        self.assertEqual(group.comment, "rain by time")
        self.assertEqual(scalar_of(self.context, "all"), 396.0)
        self.assertEqual(scalar_of(self.context, "second_sum"), 360.0)
        self.assertEqual(self.context.variables.get("second").time, "t2")
        self.assertEqual([tag for tag, _ in report.skipped], ["getChild"])

    def test_get_child_from_source(self) -> None:
        report = run_commands(self.context, "\n".join([
            '<variable name="g" type="group"><fill value="time"/>'
            '<members><region value="AB"/><field value="rain"/></members></variable>',
            '<getChild><target name="second"/><source name="g"/><child value="t2"/></getChild>',
            unary_xml("sumValues", "second_sum", "second"),
        ]))

        self.assertTrue(report.ok)
        self.assertEqual(self.context.variables.get("second").time, "t2")
        self.assertEqual(scalar_of(self.context, "second_sum"), 360.0)

    def test_subregion_groups(self) -> None:
        report = run_commands(self.context, "\n".join([
            '<variable name="parts" type="group"><fill value="subregion"/>'
            '<members><region value="AB"/><field value="rain"/><time value="t2"/></members></variable>',
            reference_xml("r", "AB"),
            unary_xml("multiplyScalar", "r10", "r", '<scalar value="10"/>'),
            '<variable name="split" type="group"><fill value="subregions"/>'
            '<members variable="r10"/></variable>',
            '<variable name="leafy" type="group"><fill value="subregion"/>'
            '<members><region value="A"/><field value="rain"/><time value="t1"/></members></variable>',
        ]))

        self.assertEqual(list(self.context.variables.get("parts").members), ["A", "B"])
        split = self.context.variables.get("split")
        np.testing.assert_array_equal(split.members["B"].build_matrix(), [[50, 60], [70, 80]])
        self.assertEqual([tag for tag, _ in report.skipped], ["variable"])
        self.assertNotIn("leafy", self.context.variables)

    def test_explicit_group(self) -> None:
        run_commands(self.context, "\n".join([
            reference_xml("ra", "A"),
            reference_xml("rb", "B"),
            '<variable name="pair" type="group"><fill value="explicit"/>'
            '<members><variable value="ra"/><variable value="rb"/></members></variable>',
            unary_xml("addScalar", "ra", "ra", '<scalar value="100"/>'),
            unary_xml("countElements", "n", "pair"),
            unary_xml("largestValue", "hi", "pair"),
        ]))

        self.assertEqual(scalar_of(self.context, "n"), 8.0)
        self.assertEqual(scalar_of(self.context, "hi"), 8.0)


class TestOutputs:
    """
    Tests for commands producing side outputs.

    Scope:
        Annotations, print output, dataset export and plot requests.
    Test data:
        Standard layout with exports written below pytest's tmp_path.
    """

    def test_annotations_and_print(self) -> None:
        context = make_context()
        report = run_commands(context, "\n".join([
            reference_xml("r", "A"),
            '<comment><variable value="r"/><text value="first leaf"/></comment>',
            '<setReference><variable value="r"/><text value="Survey 2020"/></setReference>',
            '<setUnits><variable value="r"/><text value="cm"/></setUnits>',
            '<print variable="r"/>',
            '<printVerbose variable="r"/>',
        ]))

        assert report.ok
        variable = context.variables.get("r")
        assert (variable.comment, variable.reference, variable.units) == ("first leaf", "Survey 2020", "cm")
        assert len(context.printed) == 2
        assert context.printed[0].startswith("r:")
        assert "units: cm" in context.printed[1]
        assert "region: A" in context.printed[1]

    def test_create_data_set(self, tmp_path: Path) -> None:
        context = make_context(output_dir=str(tmp_path))
        report = run_commands(context, "\n".join([
            reference_xml("r", "A"),
            '<createDataSet><source name="r"/><file name="out/rain.txt"/>'
            '<tag value="true"><fieldName value="precip"/><time value="2020"/></tag></createDataSet>',
        ]))

        assert report.ok
        written = tmp_path / "out" / "rain.txt"
        assert context.exports == [written]
        lines = written.read_text().splitlines()
        assert lines[:7] == ["precip", "2020", "1.0", "false", "decimal", "mm", "Gauge network"]
        assert len(lines) == 7 + 180

    def test_create_data_set_requires_reference(self, tmp_path: Path) -> None:
        context = make_context(output_dir=str(tmp_path))
        report = run_commands(context, "\n".join([
            data_var_xml("d", [[1.0]]),
            '<createDataSet><source name="d"/><file name="d.txt"/></createDataSet>',
        ]))

        assert [tag for tag, _ in report.skipped] == ["createDataSet"]
        assert not (tmp_path / "d.txt").exists()

    def test_plot_requests_and_renderer(self, tmp_path: Path) -> None:
        context = make_context()
        context.plot_dir = str(tmp_path)
        plotter = MagicMock()
        plotter.render.return_value = [str(tmp_path / "g.png")]

        report = run_commands(context, "\n".join([
            '<variable name="g" type="group"><fill value="time"/>'
            '<members><region value="AB"/><field value="rain"/></members></variable>',
            '<plot variable="g"/>',
        ]), plotter=plotter)

        assert report.ok
        assert [request.time for request in context.plots] == ["t1", "t2"]
        assert context.plots[0].extent == (0.0, 4.0, 0.0, 2.0)
        assert (context.plots[1].vmin, context.plots[1].vmax) == (10.0, 80.0)
        assert plotter.render.call_count == 2
        plotter.render.assert_called_with(context.plots[1], str(tmp_path))

    @pytest.mark.parametrize("tag", ["print", "plot"])
    def test_output_commands_need_variable_attribute(self, tag: str) -> None:
        context = make_context()
        report = run_commands(context, f'<{tag}/>')
        assert [skipped_tag for skipped_tag, _ in report.skipped] == [tag]


if __name__ == '__main__':
    unittest.main()
