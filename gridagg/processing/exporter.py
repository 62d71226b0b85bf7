#!/usr/bin/env python3

"""
GridAgg Dataset Exporter

This module serialises a reference variable into the whole-globe text layout consumed by downstream tools. The layout is a fixed sweep over the globe at the variable's resolution: rows run from latitude +90 down towards -90 and, within a row, columns run from longitude -180 towards +180. Every cell is written as its stitched value followed by a space, and each row ends with a newline. Cells outside the variable's bounding box and cells holding NaN are both written as the literal 0.0, so an exported file cannot tell a true zero from missing data. An optional header block of seven lines records the field name, time label, resolution, averaging flag, the token "decimal", the units and the reference text.

Classes:
    DataSetExporter: Writes reference variables in the whole-globe text layout.

Version: 1.0.0
"""

import numpy as np
from pathlib import Path
from typing import Iterator, List, Optional, Union

from .constants import (EXPORT_DECIMAL_TOKEN, EXPORT_NO_REFERENCE, EXPORT_NO_UNIT,
                        EXPORT_ZERO, LAT_MAX, LAT_MIN, LON_MAX, LON_MIN)
from .exceptions import ExportError
from .variables import ReferenceVariable


class DataSetExporter:
    """
    Exporter for the whole-globe text layout.
    """

    @staticmethod
    def format_value(value: float) -> str:
        """Format one cell, writing NaN as the zero literal."""
        if np.isnan(value):
            return EXPORT_ZERO
        return repr(float(value))

    @staticmethod
    def header_lines(variable: ReferenceVariable, field_name: Optional[str] = None,
                     time: Optional[str] = None) -> List[str]:
        """
        Build the seven header lines in their fixed order.

        Parameters:
            variable (ReferenceVariable): Variable being exported.
            field_name (Optional[str]): Name to record, defaults to the variable name.
            time (Optional[str]): Time label to record, defaults to the variable's time label.

        Returns:
            List[str]: Header lines without line terminators.
        """
        return [
            field_name if field_name else variable.name,
            time if time is not None else variable.time,
            repr(float(variable.res)),
            "true" if variable.avg else "false",
            EXPORT_DECIMAL_TOKEN,
            variable.units if variable.units else EXPORT_NO_UNIT,
            variable.reference if variable.reference else EXPORT_NO_REFERENCE,
        ]

    @staticmethod
    def grid_rows(variable: ReferenceVariable) -> Iterator[str]:
        """
        Yield the rows of the global sweep. Row k covers the cells whose northern edge is at latitude 90 - k*res and column j the cells whose western edge is at longitude -180 + j*res. Positions are computed from integer cell counts so decimal resolutions do not drift.

        Parameters:
            variable (ReferenceVariable): Variable being exported.

        Returns:
            Iterator[str]: Row strings, each ending with a newline.
        """
        res = variable.res
        x, y, w, h = variable.bounds
        north = y + h
        matrix = variable.build_matrix()
        n_rows = int(round((LAT_MAX - LAT_MIN) / res))
        n_cols = int(round((LON_MAX - LON_MIN) / res))
        zero_row = (EXPORT_ZERO + " ") * n_cols + "\n"

        for k in range(n_rows):
            row = int(round((north - (LAT_MAX - k * res)) / res))
            if not 0 <= row < matrix.shape[0]:
                yield zero_row
                continue

            cells = []
            for j in range(n_cols):
                col = int(round(((LON_MIN + j * res) - x) / res))
                if 0 <= col < matrix.shape[1]:
                    cells.append(DataSetExporter.format_value(matrix[row, col]))
                else:
                    cells.append(EXPORT_ZERO)
            yield " ".join(cells) + " \n"

    def write(self, variable: ReferenceVariable, path: Union[str, Path], tagged: bool = False,
              field_name: Optional[str] = None, time: Optional[str] = None) -> Path:
        """
        Write a variable to disk. The file is opened, written and closed within this call; any I/O failure is raised as ExportError and leaves no retry behind.

        Parameters:
            variable (ReferenceVariable): Variable to export.
            path (Union[str, Path]): Output file path.
            tagged (bool): Write the header block first (default: False).
            field_name (Optional[str]): Header field name override (default: None).
            time (Optional[str]): Header time label override (default: None).

        Returns:
            Path: The written path.
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w') as out:
                if tagged:
                    for line in self.header_lines(variable, field_name, time):
                        out.write(line + "\n")
                for row in self.grid_rows(variable):
                    out.write(row)
        except OSError as err:
            raise ExportError(f"Cannot write dataset {path}: {err}", str(path)) from err
        return path
