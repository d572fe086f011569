"""Type aliases shared across seqdecontam.

Matrix Types: Dense/sparse abundance tables
P-value Types: Per-feature and per-batch p-value containers
Option Types: Method and strategy names accepted by the classifier
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

import numpy as np
import scipy.sparse as sp

# =============================================================================
# Matrix Type Aliases
# =============================================================================

type DenseMatrix = np.ndarray
"""Dense NumPy matrix (2D array), samples x features."""

type SparseMatrix = sp.spmatrix | sp.sparray
"""Any scipy sparse matrix format."""

type Matrix = DenseMatrix | SparseMatrix
"""Union of dense and sparse matrix types."""

# =============================================================================
# P-value Type Aliases
# =============================================================================

type PValue = float | None
"""A single p-value. ``None`` marks a p-value that could not be computed."""

type PValueVector = np.ndarray
"""float64 vector of p-values, one per feature. NaN marks an undefined entry."""

type PValueMatrix = np.ndarray
"""float64 matrix of p-values, batches x features. NaN marks an undefined entry."""

# =============================================================================
# Option Type Aliases
# =============================================================================

type ContaminantMethod = Literal["frequency", "prevalence", "combined", "minimum", "independent"]
"""Overall classification method."""

type BatchCombine = Literal["minimum", "product", "fisher"]
"""Rule used to merge per-batch p-values into one p-value per feature."""

type PrevalenceTest = Literal["auto", "fisher", "chisq"]
"""Contingency test used by the prevalence tester."""

type Threshold = float | Sequence[float]
"""Scalar threshold, or a (frequency, prevalence) pair for the independent method."""

CONTAMINANT_METHODS: tuple[str, ...] = (
    "frequency",
    "prevalence",
    "combined",
    "minimum",
    "independent",
)
BATCH_COMBINE_STRATEGIES: tuple[str, ...] = ("minimum", "product", "fisher")
PREVALENCE_TESTS: tuple[str, ...] = ("auto", "fisher", "chisq")

FREQUENCY_METHODS: frozenset[str] = frozenset({"frequency", "combined", "minimum", "independent"})
"""Methods that require the frequency test."""

PREVALENCE_METHODS: frozenset[str] = frozenset({"prevalence", "combined", "minimum", "independent"})
"""Methods that require the prevalence test."""
