"""Exception hierarchy for seqdecontam.

All exceptions raised by the library derive from :class:`DecontamError`.
Validation errors additionally derive from the builtin ``ValueError`` and
look-up errors from ``KeyError`` so that generic handlers keep working.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class DecontamError(Exception):
    """Base class for exceptions in seqdecontam."""


class ValidationError(DecontamError, ValueError):
    """Raised when an input does not have the expected type or shape.

    Parameters
    ----------
    message : str
        Description of the problem.
    field : str | None
        Name of the offending argument, if known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class DecontamValueError(DecontamError, ValueError):
    """Raised when a parameter has an invalid value.

    Parameters
    ----------
    message : str
        Description of the problem.
    parameter : str | None
        Name of the parameter.
    value : Any
        The rejected value.
    """

    def __init__(self, message: str, parameter: str | None = None, value: Any = None) -> None:
        super().__init__(message)
        self.parameter = parameter
        self.value = value


class DimensionError(DecontamError, ValueError):
    """Raised when a per-sample vector does not match the number of samples."""

    def __init__(
        self,
        message: str,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class AssayNotFoundError(DecontamError, KeyError):
    """Raised when a container has no assay with the requested name."""

    def __init__(self, assay_name: str, available: list[str] | None = None) -> None:
        msg = f"Assay '{assay_name}' not found."
        if available:
            msg += f" Available assays: {', '.join(available)}."
        super().__init__(msg)
        self.assay_name = assay_name

    def __str__(self) -> str:
        return str(self.args[0])


class LayerNotFoundError(DecontamError, KeyError):
    """Raised when an assay has no layer with the requested name."""

    def __init__(self, layer_name: str, assay_name: str, hint: str | None = None) -> None:
        msg = hint or f"Layer '{layer_name}' not found in assay '{assay_name}'."
        super().__init__(msg)
        self.layer_name = layer_name
        self.assay_name = assay_name

    def __str__(self) -> str:
        return str(self.args[0])


class ColumnNotFoundError(DecontamError, KeyError):
    """Raised when a metadata column reference cannot be resolved."""

    def __init__(self, column: str, available: list[str] | None = None) -> None:
        msg = f"'{column}' is not a column of the sample metadata."
        if available is not None:
            msg += f" Available columns: {available}."
        super().__init__(msg)
        self.column = column

    def __str__(self) -> str:
        return str(self.args[0])


class ConfigurationError(DecontamError):
    """Raised for configuration-related errors.

    Attributes
    ----------
    config_path : Path | None
        Path to the configuration file that caused the error.
    """

    def __init__(self, message: str, config_path: Path | None = None) -> None:
        super().__init__(message)
        self.config_path = config_path
