from .diagnostics import ContaminantWarning, DiagnosticEvent, Diagnostics
from .exceptions import (
    AssayNotFoundError,
    ColumnNotFoundError,
    ConfigurationError,
    DecontamError,
    DecontamValueError,
    DimensionError,
    LayerNotFoundError,
    ValidationError,
)
from .structures import AbundanceMatrix, Assay, ProvenanceLog, SampleContainer

__all__ = [
    "SampleContainer",
    "Assay",
    "AbundanceMatrix",
    "ProvenanceLog",
    "Diagnostics",
    "DiagnosticEvent",
    "ContaminantWarning",
    "DecontamError",
    "ValidationError",
    "DecontamValueError",
    "DimensionError",
    "AssayNotFoundError",
    "LayerNotFoundError",
    "ColumnNotFoundError",
    "ConfigurationError",
]
