"""Exceptions raised by the isoforest package."""

from __future__ import annotations


class IsolationForestError(Exception):
    """Base class for all errors raised by isoforest."""


class InvalidInputError(IsolationForestError, ValueError):
    """
    Raised when a dataset or a configuration value is rejected.
    Attributes:
        parameter: Name of the parameter that failed validation.
    """

    def __init__(self, parameter: str, message: str) -> None:
        self.parameter = parameter
        super().__init__(f"invalid {parameter}: {message}")
