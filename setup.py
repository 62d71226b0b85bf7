#!/usr/bin/env python3

"""
Legacy setup.py for the GridAgg package

This setup.py file is kept for backward compatibility, but the package
is configured using pyproject.toml.
"""

from setuptools import setup

# All configuration is in pyproject.toml
setup()
