#!/usr/bin/env python3
"""
GridAgg Test Suite Runner

This module provides the test runner for the GridAgg test collection. The
suite can be run through pytest (python -m pytest tests) or directly with
python -m tests, in which case the modules below are loaded with unittest,
run with a verbose TextTestRunner and summarised with pass, failure, error
and skip counts.

Tests Performed:
    Test Module Discovery and Execution:
        - test_wrapper_algorithms: Wrapper geometry, stitching and computational kernels
        - test_regions_hierarchy: Field ingestion, leaf construction and composite assembly
        - test_variables: Variable kinds, group fills and the variable table
        - test_interpreter: Command dispatch, target resolution and skip-and-continue runs
        - test_exporter: Whole-globe dataset layout
        - test_visualization: Plot requests and the matplotlib renderer
        - test_utils: Configuration, logging, document loading, validation and the CLI

Expected Results:
    - Every listed module imports and its tests are collected
    - Exit code 0 when all tests pass, 1 when failures or errors occur

Version: 1.0.0
"""

import sys
import unittest

TEST_MODULES = [
    'tests.test_wrapper_algorithms',
    'tests.test_regions_hierarchy',
    'tests.test_variables',
    'tests.test_interpreter',
    'tests.test_exporter',
    'tests.test_visualization',
    'tests.test_utils',
]


def run_all_tests() -> unittest.TestResult:
    """
    Load every GridAgg test module into one suite and run it. Modules that cannot be imported are reported and left out of the suite.

    Returns:
        unittest.TestResult: Results of the run.
    """
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    for module_name in TEST_MODULES:
        try:
            module = __import__(module_name, fromlist=[''])
            suite.addTests(loader.loadTestsFromModule(module))
        except ImportError as e:
            print(f"Warning: Could not import {module_name}: {e}")

    runner = unittest.TextTestRunner(verbosity=2, buffer=True)
    return runner.run(suite)


def print_test_summary(result: unittest.TestResult) -> None:
    """
    Print totals for the run followed by the names of failed, errored and skipped tests and the success rate.

    Parameters:
        result (unittest.TestResult): Results returned by run_all_tests().

    Returns:
        None
    """
    print("\n" + "=" * 60)
    print("TEST SUMMARY")
    print("=" * 60)

    total_tests = result.testsRun
    failures = len(result.failures)
    errors = len(result.errors)
    skipped = len(result.skipped)
    passed = total_tests - failures - errors - skipped

    print(f"Total tests run: {total_tests}")
    print(f"Passed: {passed}")
    print(f"Failed: {failures}")
    print(f"Errors: {errors}")
    print(f"Skipped: {skipped}")

    for title, entries in (("FAILURES", result.failures), ("ERRORS", result.errors)):
        if entries:
            print(f"\n{title}:")
            for test, _ in entries:
                print(f"  - {test}")

    if skipped:
        print("\nSKIPPED:")
        for test, reason in result.skipped:
            print(f"  - {test}: {reason}")

    success_rate = (passed / total_tests) * 100 if total_tests > 0 else 0
    print(f"\nSuccess rate: {success_rate:.1f}%")


def main() -> int:
    print("Running GridAgg Tests")
    print("=" * 50)

    try:
        import numpy
        import xarray
        import yaml
        import matplotlib
        print("Core dependencies available")
    except ImportError as e:
        print(f"Missing core dependency: {e}")
        return 1

    result = run_all_tests()
    print_test_summary(result)
    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(main())
