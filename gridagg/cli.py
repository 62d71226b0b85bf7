#!/usr/bin/env python3
"""
GridAgg CLI Entry Point

This module provides the main entry point for the gridagg command-line interface.
"""

import sys

from gridagg.processing.cli_unified import main

if __name__ == "__main__":
    sys.exit(main())
