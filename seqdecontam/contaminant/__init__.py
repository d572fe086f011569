"""Contaminant identification.

Common Usage:
    >>> from seqdecontam.contaminant import is_contaminant, is_not_contaminant
    >>>
    >>> # Frequency-based
    >>> calls = is_contaminant(X, conc=conc, method="frequency", threshold=0.2)
    >>>
    >>> # Prevalence-based, detailed table
    >>> table = is_contaminant(X, neg=neg, method="prevalence", detailed=True)
    >>>
    >>> # Container input with obs column references
    >>> container, result = annotate_contaminants(container, conc="dna_conc", neg="is_control")
"""

from seqdecontam.contaminant.annotate import annotate_contaminants
from seqdecontam.contaminant.batch import BatchPValues, run_batches
from seqdecontam.contaminant.classifier import (
    ClassificationResult,
    ContaminantResult,
    NotContaminantResult,
    classify_contaminants,
    classify_non_contaminants,
    is_contaminant,
    is_not_contaminant,
    normalize_rows,
)

__all__ = [
    "is_contaminant",
    "is_not_contaminant",
    "classify_contaminants",
    "classify_non_contaminants",
    "annotate_contaminants",
    "normalize_rows",
    "run_batches",
    "BatchPValues",
    "ClassificationResult",
    "ContaminantResult",
    "NotContaminantResult",
]
