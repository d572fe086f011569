"""Combination of p-values.

Two kinds of combination are provided:

- across batches (:func:`combine_batches`), reducing a batches x features
  p-value matrix to one p-value per feature with the "minimum", "product"
  or "fisher" rule;
- across the two tests (:func:`combine_methods`), reducing the frequency and
  prevalence p-values to one overall p-value per feature.

NaN marks an undefined p-value throughout.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from scipy import stats

from seqdecontam.core.exceptions import DecontamValueError
from seqdecontam.core.types import BATCH_COMBINE_STRATEGIES, CONTAMINANT_METHODS

if TYPE_CHECKING:
    from numpy.typing import ArrayLike

    from seqdecontam.core.types import BatchCombine, ContaminantMethod, PValueMatrix, PValueVector

# Value substituted for undefined p-values in Fisher's method.
FISHER_NA_REPLACE = 0.5


def fisher_combine(pvalues: ArrayLike, na_replace: float = FISHER_NA_REPLACE) -> float:
    """Fisher's combined probability test.

    Parameters
    ----------
    pvalues : array-like of float
        p-values to combine; NaN entries are replaced with ``na_replace``.
    na_replace : float, default 0.5
        Replacement for undefined p-values.

    Returns
    -------
    float
        Upper-tail chi-squared probability of ``-2 * sum(log(p))`` with
        ``2 * len(pvalues)`` degrees of freedom.

    Raises
    ------
    DecontamValueError
        If any p-value lies outside [0, 1].

    Examples
    --------
    >>> round(fisher_combine([0.5]), 6)
    0.5
    """
    p = np.asarray(pvalues, dtype=np.float64).ravel()
    p = np.where(np.isnan(p), na_replace, p)
    if np.any((p < 0.0) | (p > 1.0)):
        raise DecontamValueError(
            "Fisher combination expects p-values between 0 and 1.",
            parameter="pvalues",
            value=p.tolist(),
        )
    with np.errstate(divide="ignore"):
        statistic = -2.0 * np.sum(np.log(p))
    return float(stats.chi2.sf(statistic, df=2 * p.size))


def combine_batches(pmatrix: PValueMatrix | ArrayLike, strategy: BatchCombine = "minimum") -> PValueVector:
    """Reduce a batches x features p-value matrix to one p-value per feature.

    Parameters
    ----------
    pmatrix : array-like
        p-values of shape (n_batches, n_features), NaN where undefined.
    strategy : {"minimum", "product", "fisher"}, default "minimum"
        - "minimum": smallest defined p-value; NaN if none is defined.
        - "product": product of the defined p-values (1.0 if none).
        - "fisher": :func:`fisher_combine` with NaN replaced by 0.5.

    Returns
    -------
    np.ndarray
        float64 vector of length n_features.
    """
    pmatrix = np.atleast_2d(np.asarray(pmatrix, dtype=np.float64))

    if strategy == "minimum":
        out = np.full(pmatrix.shape[1], np.nan, dtype=np.float64)
        defined = ~np.all(np.isnan(pmatrix), axis=0)
        out[defined] = np.nanmin(pmatrix[:, defined], axis=0)
        return out
    if strategy == "product":
        return np.nanprod(pmatrix, axis=0)
    if strategy == "fisher":
        return np.array([fisher_combine(col) for col in pmatrix.T], dtype=np.float64)

    raise DecontamValueError(
        f"Invalid batch_combine value '{strategy}'. Use one of {BATCH_COMBINE_STRATEGIES}.",
        parameter="batch_combine",
        value=strategy,
    )


def combine_methods(
    p_freq: PValueVector,
    p_prev: PValueVector,
    method: ContaminantMethod,
) -> PValueVector:
    """Compute the overall p-value for each feature.

    "frequency" and "prevalence" pass their own p-values through,
    "minimum" takes the element-wise minimum, "combined" applies Fisher's
    method to the pair (4 degrees of freedom), and "independent" has no
    overall p-value (all NaN). Undefined inputs give undefined outputs.
    """
    if method == "frequency":
        return np.asarray(p_freq, dtype=np.float64)
    if method == "prevalence":
        return np.asarray(p_prev, dtype=np.float64)
    if method == "minimum":
        return np.minimum(p_freq, p_prev)
    if method == "combined":
        with np.errstate(divide="ignore"):
            statistic = -2.0 * np.log(p_freq * p_prev)
        return stats.chi2.sf(statistic, df=4)
    if method == "independent":
        return np.full(len(p_freq), np.nan, dtype=np.float64)

    raise DecontamValueError(
        f"Invalid method '{method}'. Use one of {CONTAMINANT_METHODS}.",
        parameter="method",
        value=method,
    )
