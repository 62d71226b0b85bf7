#!/usr/bin/env python3

"""
Exceptions raised by the GridAgg processing engine.

This module defines the two error families used throughout a batch run:

- FatalRunError: structural problems that abort the whole run
  (unreadable input trees, broken hierarchy references, bad ingestion data)
- CommandError: problems local to one command, which the interpreter reports
  and skips before continuing with the next command
"""

__all__ = [
    "CommandError",
    "ExportError",
    "FatalRunError",
    "GridAggError",
    "GroupFillError",
    "HierarchyBuildError",
    "IngestionError",
    "InputTreeError",
    "OperandError",
    "RegionNotFoundError",
    "ShapeMismatchError",
    "UnknownCommandError",
    "VariableNotFoundError",
]


class GridAggError(Exception):
    """Base exception for all GridAgg errors."""

    pass


class FatalRunError(GridAggError):
    """Base exception for errors that abort the batch run."""

    pass


class InputTreeError(FatalRunError):
    """Raised when a data, hierarchy or commands tree cannot be loaded or parsed."""

    pass


class HierarchyBuildError(FatalRunError):
    """
    Raised when a composite region cannot be built.

    This covers references to region names that are not yet registered and
    references to composites declared at the same or a higher level.
    """

    pass


class IngestionError(FatalRunError):
    """Raised when the data tree describes fields or leaf regions inconsistently."""

    pass


class CommandError(GridAggError):
    """
    Base exception for recoverable command failures.

    Parameters
    ----------
    message
        Human readable description.
    identifier
        The offending command tag, variable name or region name.
    """

    def __init__(self, message: str, identifier: str = "") -> None:
        super().__init__(message)
        self.identifier = identifier


class UnknownCommandError(CommandError):
    """Raised for an unrecognised command tag or variable type tag."""

    pass


class VariableNotFoundError(CommandError):
    """Raised when a command names a variable that is not in the variable table."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Variable '{name}' does not exist", name)


class RegionNotFoundError(CommandError):
    """Raised when a command names a region that is not in the region table."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Region '{name}' does not exist", name)


class GroupFillError(CommandError):
    """Raised when a group variable cannot be filled from its declared source."""

    pass


class ShapeMismatchError(CommandError):
    """Raised when paired operands do not have matching wrapper layouts."""

    pass


class OperandError(CommandError):
    """Raised for a missing operand child, a wrong variable kind or a bad number."""

    pass


class ExportError(CommandError):
    """Raised when a dataset cannot be written."""

    pass
