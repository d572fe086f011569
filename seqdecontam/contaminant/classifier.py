"""Contaminant and non-contaminant classification.

This module is the public entry point of the engine. It validates the
caller's parameters, selects the tests, runs them per batch, combines the
p-values and applies the threshold.

Supported methods:
    - frequency: frequency decreases with DNA concentration
    - prevalence: presence is enriched in negative controls
    - combined: Fisher's method on the frequency and prevalence p-values
    - minimum: the smaller of the frequency and prevalence p-values
    - independent: each p-value is compared to its own threshold

Undefined p-values (NaN) never lead to a positive call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
import polars as pl

from seqdecontam.contaminant.batch import run_batches
from seqdecontam.core.diagnostics import DiagnosticEvent, Diagnostics, emit_events
from seqdecontam.core.exceptions import DecontamValueError, DimensionError, ValidationError
from seqdecontam.core.types import (
    BATCH_COMBINE_STRATEGIES,
    CONTAMINANT_METHODS,
    FREQUENCY_METHODS,
    PREVALENCE_METHODS,
    PREVALENCE_TESTS,
)
from seqdecontam.io.adapter import DEFAULT_ASSAY, ClassifierInputs, as_classifier_inputs
from seqdecontam.stats.combine import combine_methods

if TYPE_CHECKING:
    from seqdecontam.core.types import (
        BatchCombine,
        ContaminantMethod,
        PrevalenceTest,
        Threshold,
    )

logger = logging.getLogger(__name__)

__all__ = [
    "ContaminantResult",
    "NotContaminantResult",
    "classify_contaminants",
    "classify_non_contaminants",
    "is_contaminant",
    "is_not_contaminant",
    "normalize_rows",
]


@dataclass(frozen=True)
class ClassificationResult:
    """
    Per-feature classification with its diagnostic quantities.

    Attributes
    ----------
    feature_ids : list[str]
        Feature identifiers, in input column order.
    freq : np.ndarray
        Mean (normalised) abundance of each feature.
    prev : np.ndarray
        Number of samples in which each feature is present.
    p_freq : np.ndarray
        Frequency p-values combined across batches (NaN where undefined).
    p_prev : np.ndarray
        Prevalence p-values combined across batches (NaN where undefined).
    p : np.ndarray
        Overall p-value used for the decision (NaN for "independent").
    calls : np.ndarray
        Boolean decision per feature.
    method : str
        Method used.
    threshold : tuple[float, ...]
        Threshold(s) applied.
    diagnostics : tuple[DiagnosticEvent, ...]
        Non-fatal events collected during the run.
    """

    call_column: ClassVar[str] = "contaminant"

    feature_ids: list[str]
    freq: np.ndarray
    prev: np.ndarray
    p_freq: np.ndarray
    p_prev: np.ndarray
    p: np.ndarray
    calls: np.ndarray
    method: str
    threshold: tuple[float, ...]
    diagnostics: tuple[DiagnosticEvent, ...] = field(default_factory=tuple)

    @property
    def n_features(self) -> int:
        return len(self.feature_ids)

    @property
    def n_called(self) -> int:
        return int(self.calls.sum())

    def to_dataframe(self) -> pl.DataFrame:
        """
        Convert results to a Polars DataFrame, one row per feature.

        Returns
        -------
        pl.DataFrame
            Columns feature_id, freq, prev, p_freq, p_prev, p and the
            boolean call column. Undefined p-values are NaN.
        """
        return pl.DataFrame(
            {
                "feature_id": self.feature_ids,
                "freq": self.freq,
                "prev": self.prev.astype(np.int64),
                "p_freq": self.p_freq,
                "p_prev": self.p_prev,
                "p": self.p,
                self.call_column: self.calls,
            }
        )


@dataclass(frozen=True)
class ContaminantResult(ClassificationResult):
    """Result of :func:`classify_contaminants`; ``calls`` flags contaminants."""

    call_column: ClassVar[str] = "contaminant"

    @property
    def contaminant(self) -> np.ndarray:
        return self.calls


@dataclass(frozen=True)
class NotContaminantResult(ClassificationResult):
    """Result of :func:`classify_non_contaminants`; ``calls`` flags non-contaminants.

    ``p_freq`` and ``p_prev`` hold complemented p-values (1 - p).
    """

    call_column: ClassVar[str] = "not_contaminant"

    @property
    def not_contaminant(self) -> np.ndarray:
        return self.calls


def normalize_rows(X: np.ndarray) -> np.ndarray:
    """Scale each sample (row) to sum to one.

    Raises
    ------
    ValidationError
        If a sample has no positive abundance.
    """
    totals = np.nansum(X, axis=1)
    empty = np.flatnonzero(totals <= 0)
    if empty.size:
        raise ValidationError(
            f"Cannot normalize samples with zero total abundance (rows {empty.tolist()}).",
            field="seqtab",
        )
    return X / totals[:, None]


def _select_method(method: str | None, conc: Any, neg: Any) -> str:
    if method is None:
        if conc is not None and neg is None:
            return "frequency"
        if conc is None and neg is not None:
            return "prevalence"
        if conc is not None and neg is not None:
            return "combined"
        raise DecontamValueError(
            "Either conc or neg must be provided to identify contaminants.",
            parameter="method",
            value=None,
        )
    if method not in CONTAMINANT_METHODS:
        raise DecontamValueError(
            f"Invalid method '{method}'. Valid methods: {', '.join(CONTAMINANT_METHODS)}.",
            parameter="method",
            value=method,
        )
    return method


def _validate_threshold(threshold: Threshold, method: str, diagnostics: Diagnostics) -> tuple[float, ...]:
    try:
        values = np.atleast_1d(np.asarray(threshold, dtype=np.float64))
    except (TypeError, ValueError) as e:
        raise DecontamValueError(
            "threshold must be a numeric value from 0 to 1 (inclusive).",
            parameter="threshold",
            value=threshold,
        ) from e
    if values.ndim != 1 or values.size == 0 or np.any(np.isnan(values)) or np.any((values < 0) | (values > 1)):
        raise DecontamValueError(
            "threshold must be a numeric value from 0 to 1 (inclusive).",
            parameter="threshold",
            value=threshold,
        )

    if method == "independent":
        if values.size == 1:
            diagnostics.info(
                "threshold_expanded",
                "Using same threshold value for the frequency and prevalence contaminant identification.",
            )
            return (float(values[0]), float(values[0]))
        if values.size != 2:
            raise DecontamValueError(
                "threshold for the independent method must have one or two values.",
                parameter="threshold",
                value=threshold,
            )
        return (float(values[0]), float(values[1]))

    if values.size != 1:
        raise DecontamValueError(
            "threshold should be a single value.",
            parameter="threshold",
            value=threshold,
        )
    return (float(values[0]),)


def _validate_inputs(inputs: ClassifierInputs, do_freq: bool, do_prev: bool) -> None:
    n = inputs.n_samples
    if do_freq:
        if inputs.conc is None:
            raise DecontamValueError(
                "conc must be provided to perform frequency-based contaminant identification.",
                parameter="conc",
            )
        if not np.all(inputs.conc > 0):
            raise DecontamValueError("conc must be positive numeric.", parameter="conc")
        if inputs.conc.shape[0] != n:
            raise DimensionError(
                "The length of conc must match the number of samples (the rows of seqtab).",
                expected=n,
                actual=inputs.conc.shape[0],
            )
    if do_prev:
        if inputs.neg is None:
            raise DecontamValueError(
                "neg must be provided to perform prevalence-based contaminant identification.",
                parameter="neg",
            )
        if inputs.neg.shape[0] != n:
            raise DimensionError(
                "The length of neg must match the number of samples (the rows of seqtab).",
                expected=n,
                actual=inputs.neg.shape[0],
            )


def _below(p: np.ndarray, threshold: float) -> np.ndarray:
    """Strict ``p < threshold`` where undefined p-values always fail."""
    defined = ~np.isnan(p)
    out = np.zeros(p.shape, dtype=bool)
    out[defined] = p[defined] < threshold
    return out


def classify_contaminants(
    seqtab: Any,
    conc: Any = None,
    neg: Any = None,
    method: ContaminantMethod | None = None,
    batch: Any = None,
    batch_combine: BatchCombine = "minimum",
    threshold: Threshold = 0.1,
    normalize: bool = True,
    prevalence_test: PrevalenceTest = "auto",
    assay_name: str = DEFAULT_ASSAY,
    layer_name: str | None = None,
) -> ContaminantResult:
    """Identify contaminant features.

    Parameters
    ----------
    seqtab : np.ndarray | sp.spmatrix | pl.DataFrame | SampleContainer
        Feature table with samples as rows and features as columns.
    conc : array-like | str | None
        Positive DNA concentration per sample. Required by the frequency test.
    neg : array-like | str | None
        True for negative controls, False otherwise, missing to exclude the
        sample from the prevalence test. Required by the prevalence test.
    method : {"frequency", "prevalence", "combined", "minimum", "independent"} | None
        Method; when None, chosen from which of ``conc``/``neg`` were given.
    batch : array-like | str | None
        Batch label per sample. Tests are run independently in each batch.
    batch_combine : {"minimum", "product", "fisher"}, default "minimum"
        How per-batch p-values are merged.
    threshold : float | sequence of float, default 0.1
        p-value threshold (strict). Two values (frequency, prevalence) are
        accepted for the independent method.
    normalize : bool, default True
        Convert each sample to relative frequencies before testing.
    prevalence_test : {"auto", "fisher", "chisq"}, default "auto"
        Contingency test used by the prevalence tester.
    assay_name, layer_name : str
        Assay and layer read from a SampleContainer input.

    Returns
    -------
    ContaminantResult
        Per-feature p-values, decisions and collected diagnostics.

    Raises
    ------
    ValidationError
        If the feature table is not a valid numeric matrix.
    DecontamValueError
        If a parameter value is invalid or a required input is missing.
    DimensionError
        If a per-sample vector does not match the number of samples.

    Examples
    --------
    >>> result = classify_contaminants(X, conc=[10, 10, 31, 5, 140.1], threshold=0.2)
    >>> result.to_dataframe().filter(pl.col("contaminant"))
    """
    diagnostics = Diagnostics()
    inputs = as_classifier_inputs(
        seqtab, conc=conc, neg=neg, batch=batch, assay_name=assay_name, layer_name=layer_name
    )

    method = _select_method(method, conc, neg)
    do_freq = method in FREQUENCY_METHODS
    do_prev = method in PREVALENCE_METHODS
    _validate_inputs(inputs, do_freq, do_prev)
    thresholds = _validate_threshold(threshold, method, diagnostics)

    if inputs.batch is not None and inputs.batch.shape[0] != inputs.n_samples:
        raise DimensionError(
            "The length of batch must match the number of samples (the rows of seqtab).",
            expected=inputs.n_samples,
            actual=inputs.batch.shape[0],
        )
    if batch_combine not in BATCH_COMBINE_STRATEGIES:
        raise DecontamValueError(
            f"Invalid batch_combine value '{batch_combine}'. "
            f"Use one of {', '.join(BATCH_COMBINE_STRATEGIES)}.",
            parameter="batch_combine",
            value=batch_combine,
        )
    if prevalence_test not in PREVALENCE_TESTS:
        raise DecontamValueError(
            f"Invalid prevalence_test '{prevalence_test}'. Use one of {', '.join(PREVALENCE_TESTS)}.",
            parameter="prevalence_test",
            value=prevalence_test,
        )

    X = normalize_rows(inputs.X) if normalize else inputs.X

    pvals = run_batches(
        X,
        conc=inputs.conc,
        neg=inputs.neg,
        batch=inputs.batch,
        do_freq=do_freq,
        do_prev=do_prev,
        batch_combine=batch_combine,
        prevalence_test=prevalence_test,
        diagnostics=diagnostics,
        feature_ids=inputs.feature_ids,
    )

    p = combine_methods(pvals.p_freq, pvals.p_prev, method)
    if method == "independent":
        calls = _below(pvals.p_freq, thresholds[0]) | _below(pvals.p_prev, thresholds[1])
    else:
        calls = _below(p, thresholds[0])

    return ContaminantResult(
        feature_ids=inputs.feature_ids,
        freq=X.mean(axis=0),
        prev=np.sum(X > 0, axis=0),
        p_freq=pvals.p_freq,
        p_prev=pvals.p_prev,
        p=p,
        calls=calls,
        method=method,
        threshold=thresholds,
        diagnostics=tuple(diagnostics),
    )


def classify_non_contaminants(
    seqtab: Any,
    conc: Any = None,
    neg: Any = None,
    method: ContaminantMethod = "prevalence",
    threshold: float = 0.5,
    normalize: bool = True,
    batch: Any = None,
    batch_combine: BatchCombine = "minimum",
    prevalence_test: PrevalenceTest = "auto",
    assay_name: str = DEFAULT_ASSAY,
    layer_name: str | None = None,
) -> NotContaminantResult:
    """Identify non-contaminant features in low-biomass data.

    The null hypothesis is reversed: features are assumed to be
    contaminants, and a feature is called a non-contaminant when the
    complemented prevalence p-value (1 - p) is strictly below ``threshold``.

    Parameters
    ----------
    method : {"prevalence"}, default "prevalence"
        Only the prevalence method is supported.
    threshold : float, default 0.5
        Threshold for the complemented prevalence p-value.

    See :func:`classify_contaminants` for the remaining parameters.

    Returns
    -------
    NotContaminantResult
        Complemented p-values and non-contaminant decisions.
    """
    if method != "prevalence":
        raise DecontamValueError(
            "is_not_contaminant only supports the following methods: prevalence",
            parameter="method",
            value=method,
        )
    result = classify_contaminants(
        seqtab,
        conc=conc,
        neg=neg,
        method=method,
        batch=batch,
        batch_combine=batch_combine,
        threshold=threshold,
        normalize=normalize,
        prevalence_test=prevalence_test,
        assay_name=assay_name,
        layer_name=layer_name,
    )
    p_freq = 1.0 - result.p_freq
    p_prev = 1.0 - result.p_prev
    return NotContaminantResult(
        feature_ids=result.feature_ids,
        freq=result.freq,
        prev=result.prev,
        p_freq=p_freq,
        p_prev=p_prev,
        p=p_prev,
        calls=_below(p_prev, result.threshold[0]),
        method=method,
        threshold=result.threshold,
        diagnostics=result.diagnostics,
    )


def is_contaminant(
    seqtab: Any,
    conc: Any = None,
    neg: Any = None,
    method: ContaminantMethod | None = None,
    batch: Any = None,
    batch_combine: BatchCombine = "minimum",
    threshold: Threshold = 0.1,
    normalize: bool = True,
    detailed: bool = False,
    **kwargs: Any,
) -> np.ndarray | pl.DataFrame:
    """Identify contaminant features.

    Thin wrapper around :func:`classify_contaminants` that surfaces the
    collected diagnostics (warnings through :mod:`warnings`, notices through
    :mod:`logging`) and formats the output.

    Notices, such as the reuse of a scalar threshold for both tests of the
    independent method, are logged at INFO level on the
    ``seqdecontam.contaminant.classifier`` logger. They are only shown when
    logging is configured to display INFO records, e.g.
    ``logging.basicConfig(level=logging.INFO)``. The same events are always
    available on ``classify_contaminants(...).diagnostics``.

    Returns
    -------
    np.ndarray | pl.DataFrame
        Boolean vector (True = contaminant) over features, or the detailed
        table from :meth:`ContaminantResult.to_dataframe` when ``detailed``.

    Examples
    --------
    >>> is_contaminant(X, conc=[10, 10, 31, 5, 140.1], method="frequency", threshold=0.2)
    >>> is_contaminant(X, conc=conc, neg=[True, True, False, True, False], method="minimum")
    """
    result = classify_contaminants(
        seqtab,
        conc=conc,
        neg=neg,
        method=method,
        batch=batch,
        batch_combine=batch_combine,
        threshold=threshold,
        normalize=normalize,
        **kwargs,
    )
    emit_events(result.diagnostics, logger)
    logger.debug(
        "Classified %d of %d features as contaminants (method=%s).",
        result.n_called,
        result.n_features,
        result.method,
    )
    return result.to_dataframe() if detailed else result.calls


def is_not_contaminant(
    seqtab: Any,
    conc: Any = None,
    neg: Any = None,
    method: ContaminantMethod = "prevalence",
    threshold: float = 0.5,
    normalize: bool = True,
    detailed: bool = False,
    **kwargs: Any,
) -> np.ndarray | pl.DataFrame:
    """Identify non-contaminant features.

    Wrapper around :func:`classify_non_contaminants`.

    Returns
    -------
    np.ndarray | pl.DataFrame
        Boolean vector (True = not a contaminant), or the detailed table
        with a ``not_contaminant`` column when ``detailed``.
    """
    result = classify_non_contaminants(
        seqtab,
        conc=conc,
        neg=neg,
        method=method,
        threshold=threshold,
        normalize=normalize,
        **kwargs,
    )
    emit_events(result.diagnostics, logger)
    return result.to_dataframe() if detailed else result.calls
