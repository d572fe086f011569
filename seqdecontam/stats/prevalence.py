"""Prevalence-based contaminant test.

Contaminants tend to be present in a larger fraction of negative controls
than of true samples. For each feature the presence/absence of the feature is
cross-tabulated against negative-control status:

                     present   absent
    negative control    a         b
    true sample         c         d

and a one-sided test asks whether the prevalence in negative controls
(a / (a + b)) exceeds the prevalence in true samples (c / (c + d)).

The approximate two-sample proportions test is used where it is reliable;
when any expected cell count falls below 5 the mid-p variant of Fisher's
exact test is used instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from scipy import stats

from seqdecontam.core.exceptions import DecontamValueError
from seqdecontam.core.types import PREVALENCE_TESTS

if TYPE_CHECKING:
    from numpy.typing import ArrayLike

    from seqdecontam.core.diagnostics import Diagnostics
    from seqdecontam.core.types import DenseMatrix, PrevalenceTest, PValue, PValueVector

# Prevalence p-value assigned to features present in every tested sample.
ALL_PRESENT_PVALUE = 0.5

_MIN_EXPECTED_COUNT = 5.0


def as_negative_flags(neg: ArrayLike) -> np.ndarray:
    """Convert tri-state negative-control flags to a float vector.

    True becomes 1.0, False becomes 0.0 and missing values (None, NaN,
    polars/pandas nulls) become NaN.
    """
    if isinstance(neg, np.ndarray) and neg.dtype.kind in "bf":
        out = neg.astype(np.float64).ravel()
        bad = ~np.isnan(out) & (out != 0.0) & (out != 1.0)
        if bad.any():
            raise DecontamValueError(
                f"Negative-control flags must be boolean or missing, got {out[bad][0]!r}.",
                parameter="neg",
                value=out[bad][0],
            )
        return out

    if hasattr(neg, "to_list"):
        neg = neg.to_list()
    values = np.asarray(neg, dtype=object).ravel()
    out = np.full(values.shape[0], np.nan, dtype=np.float64)
    for i, v in enumerate(values):
        if v is None or (isinstance(v, (float, np.floating)) and np.isnan(v)):
            continue
        ok = isinstance(v, (bool, np.bool_, int, np.integer, float, np.floating))
        if not ok or v not in (0, 1):
            raise DecontamValueError(
                f"Negative-control flags must be boolean or missing, got {v!r}.",
                parameter="neg",
                value=v,
            )
        out[i] = float(v)
    return out


def contingency_table(present: np.ndarray, neg: np.ndarray) -> np.ndarray:
    """Build the 2x2 negative-control x presence table.

    Samples whose flag is NaN are left out. Row 0 counts negative controls,
    row 1 true samples; column 0 counts presence, column 1 absence.
    """
    defined = ~np.isnan(neg)
    is_neg = neg[defined] == 1.0
    is_present = present[defined]
    return np.array(
        [
            [np.sum(is_neg & is_present), np.sum(is_neg & ~is_present)],
            [np.sum(~is_neg & is_present), np.sum(~is_neg & ~is_present)],
        ],
        dtype=np.int64,
    )


def proportions_test_greater(table: np.ndarray) -> tuple[float, bool]:
    """One-sided two-sample proportions test with continuity correction.

    Tests whether the row-0 success rate exceeds the row-1 success rate.

    Parameters
    ----------
    table : np.ndarray
        2x2 table of (successes, failures) per group.

    Returns
    -------
    tuple[float, bool]
        The p-value, and whether the chi-squared approximation is
        unreliable (some expected count below 5).
    """
    observed = np.asarray(table, dtype=np.float64)
    x = observed[:, 0]
    n = observed.sum(axis=1)
    pooled = x.sum() / n.sum()

    estimate = x / n
    delta = estimate[0] - estimate[1]
    yates = min(0.5, abs(delta) / np.sum(1.0 / n))

    expected = np.column_stack([n * pooled, n * (1.0 - pooled)])
    unreliable = bool(np.any(expected < _MIN_EXPECTED_COUNT))

    # A zero pooled rate leaves empty expected cells; the statistic is then NaN.
    with np.errstate(divide="ignore", invalid="ignore"):
        statistic = float(np.sum((np.abs(observed - expected) - yates) ** 2 / expected))
    z = np.sign(delta) * np.sqrt(statistic)
    return float(stats.norm.sf(z)), unreliable


def fisher_midp_greater(table: np.ndarray) -> float:
    """One-sided Fisher exact p-value with half the observed-table mass removed.

    The probability of the observed table is counted in both the "greater"
    and the "less" tails; subtracting half of it gives the mid-p value.
    """
    table = np.asarray(table, dtype=np.int64)
    _, p_greater = stats.fisher_exact(table, alternative="greater")
    _, p_less = stats.fisher_exact(table, alternative="less")
    excess = p_greater + p_less - 1.0
    return float(p_greater - excess / 2.0)


def prevalence_pvalue(
    freq: ArrayLike,
    neg: ArrayLike,
    method: PrevalenceTest = "auto",
    diagnostics: Diagnostics | None = None,
    feature: str | None = None,
    batch: str | None = None,
) -> PValue:
    """Test whether a feature is more prevalent in negative controls.

    Parameters
    ----------
    freq : array-like of float
        Abundance of one feature in each sample. NaN counts as absent.
    neg : array-like
        Negative-control flag per sample (True/False/missing).
    method : {"auto", "fisher", "chisq"}, default "auto"
        "chisq" always uses the proportions test, "fisher" always uses the
        mid-p exact test, "auto" uses the proportions test unless its
        approximation is unreliable.
    diagnostics : Diagnostics | None
        Sink for the warning emitted when a p-value cannot be computed
        despite sufficient data.
    feature, batch : str | None
        Context attached to diagnostic events.

    Returns
    -------
    float | None
        p-value, or None when the feature is present in fewer than two
        samples or the defined flags are all True or all False.
        A feature present in every tested sample gets exactly 0.5.
    """
    if method not in PREVALENCE_TESTS:
        raise DecontamValueError(
            f"Invalid prevalence test '{method}'. Use one of {PREVALENCE_TESTS}.",
            parameter="prevalence_test",
            value=method,
        )

    freq = np.asarray(freq, dtype=np.float64)
    neg = as_negative_flags(neg)
    present = ~np.isnan(freq) & (freq > 0)

    n_neg = int(np.nansum(neg))
    n_defined = int(np.sum(~np.isnan(neg)))
    if present.sum() <= 1 or n_neg == 0 or n_neg >= n_defined:
        return None

    table = contingency_table(present, neg)
    if table[:, 1].sum() == 0:
        return ALL_PRESENT_PVALUE

    if method == "fisher":
        pval = fisher_midp_greater(table)
    else:
        pval, unreliable = proportions_test_greater(table)
        if method == "auto" and unreliable:
            pval = fisher_midp_greater(table)

    if not np.isfinite(pval):
        if diagnostics is not None:
            diagnostics.warning(
                "na_prevalence_pvalue",
                f"NA prevalence p-value calculated for feature {feature!r}.",
                feature=feature,
                batch=batch,
            )
        return None
    return pval


def prevalence_pvalues(
    X: DenseMatrix,
    neg: np.ndarray,
    method: PrevalenceTest = "auto",
    diagnostics: Diagnostics | None = None,
    feature_ids: list[str] | None = None,
    batch: str | None = None,
) -> PValueVector:
    """Apply :func:`prevalence_pvalue` to every column of ``X``.

    Returns
    -------
    np.ndarray
        float64 vector of length n_features; NaN where undefined.
    """
    neg = as_negative_flags(neg)
    out = np.full(X.shape[1], np.nan, dtype=np.float64)
    for j in range(X.shape[1]):
        feature = feature_ids[j] if feature_ids is not None else None
        p = prevalence_pvalue(X[:, j], neg, method, diagnostics, feature=feature, batch=batch)
        if p is not None:
            out[j] = p
    return out
