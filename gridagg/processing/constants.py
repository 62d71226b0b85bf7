#!/usr/bin/env python3

"""
Shared constants for the gridagg.processing package.

Place commonly reused literal messages, earth dimensions and export tokens here
to avoid duplication across modules.
"""

POLAR_CIRCUMFERENCE_KM = 40008.00
EQUATORIAL_CIRCUMFERENCE_KM = 40076.5

WEIGHT_FIELD = "weight"
WEIGHT_TIME_LABEL = "0"

EXPORT_ZERO = "0.0"
EXPORT_DECIMAL_TOKEN = "decimal"
EXPORT_NO_UNIT = "noUnit"
EXPORT_NO_REFERENCE = "no reference"

LAT_MIN = -90.0
LAT_MAX = 90.0
LON_MIN = -180.0
LON_MAX = 180.0

FILL_TIME = "time"
FILL_SUBREGION = "subregion"
FILL_EXPLICIT = "explicit"

SUPPORTED_TREE_SUFFIXES = (".xml", ".yaml", ".yml")

REGIONS_NOT_BUILT_MSG = "Region hierarchy not built. Call build_regions() first."
