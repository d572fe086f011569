"""Per-batch application of the contaminant tests.

Samples are partitioned by batch label, each test is run independently on
every batch, and the resulting batches x features p-value matrices are
reduced to one p-value per feature.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from seqdecontam.stats.combine import combine_batches
from seqdecontam.stats.frequency import frequency_pvalues
from seqdecontam.stats.prevalence import prevalence_pvalues

if TYPE_CHECKING:
    from seqdecontam.core.diagnostics import Diagnostics
    from seqdecontam.core.types import BatchCombine, DenseMatrix, PrevalenceTest, PValueVector

_DEFAULT_BATCH = "1"


@dataclass(frozen=True)
class BatchPValues:
    """Per-feature p-values after combining across batches.

    Attributes
    ----------
    p_freq : PValueVector
        Combined frequency p-values (all NaN if the test was not run).
    p_prev : PValueVector
        Combined prevalence p-values (all NaN if the test was not run).
    """

    p_freq: PValueVector
    p_prev: PValueVector


def batch_levels(batch: np.ndarray | None, n_samples: int) -> tuple[np.ndarray, list[str]]:
    """Return per-sample labels and the sorted list of distinct levels.

    A missing batch assignment puts every sample in one implicit batch.
    """
    if batch is None:
        labels = np.full(n_samples, _DEFAULT_BATCH, dtype=object)
    else:
        labels = np.asarray(batch, dtype=object)
    return labels, sorted(set(labels.tolist()))


def run_batches(
    X: DenseMatrix,
    conc: np.ndarray | None,
    neg: np.ndarray | None,
    batch: np.ndarray | None,
    do_freq: bool,
    do_prev: bool,
    batch_combine: BatchCombine = "minimum",
    prevalence_test: PrevalenceTest = "auto",
    diagnostics: Diagnostics | None = None,
    feature_ids: list[str] | None = None,
) -> BatchPValues:
    """Run the requested tests in every batch and combine across batches.

    Parameters
    ----------
    X : np.ndarray
        Abundance matrix, shape (n_samples, n_features).
    conc : np.ndarray | None
        Concentrations; required when ``do_freq``.
    neg : np.ndarray | None
        Negative-control flags (1.0/0.0/NaN); required when ``do_prev``.
    batch : np.ndarray | None
        Batch label per sample, or None for a single batch.
    do_freq, do_prev : bool
        Which tests to run.
    batch_combine : {"minimum", "product", "fisher"}
        Rule used to merge the per-batch p-values.
    prevalence_test : {"auto", "fisher", "chisq"}
        Contingency test used by the prevalence tester.
    diagnostics : Diagnostics | None
        Sink for non-fatal events.
    feature_ids : list[str] | None
        Feature identifiers for diagnostic context.

    Returns
    -------
    BatchPValues
        Combined p-values.
    """
    n_samples, n_features = X.shape
    labels, levels = batch_levels(batch, n_samples)

    p_freqs = np.full((len(levels), n_features), np.nan, dtype=np.float64)
    p_prevs = np.full((len(levels), n_features), np.nan, dtype=np.float64)

    for i, level in enumerate(levels):
        in_batch = labels == level
        X_batch = X[in_batch]
        if do_freq:
            p_freqs[i] = frequency_pvalues(X_batch, conc[in_batch])
        if do_prev:
            p_prevs[i] = prevalence_pvalues(
                X_batch,
                neg[in_batch],
                method=prevalence_test,
                diagnostics=diagnostics,
                feature_ids=feature_ids,
                batch=level,
            )

    nan_vector = np.full(n_features, np.nan, dtype=np.float64)
    return BatchPValues(
        p_freq=combine_batches(p_freqs, batch_combine) if do_freq else nan_vector,
        p_prev=combine_batches(p_prevs, batch_combine) if do_prev else nan_vector.copy(),
    )
