"""Frequency-based contaminant test.

Contaminant DNA is added in roughly constant amounts during sample
processing, so its relative frequency is inversely proportional to the total
DNA concentration of a sample. Genuine community members have a frequency
that does not depend on concentration.

For each feature two log-linear models are fitted on the samples where it is
present:

    contaminant model:      log(f) = -log(c) + k + e
    non-contaminant model:  log(f) = k + e

The p-value is the F(dof, dof) cumulative probability of the residual
sum-of-squares ratio SS1/SS0. A small ratio (the contaminant model fits much
better) yields a small p-value.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from scipy import stats

if TYPE_CHECKING:
    from numpy.typing import ArrayLike

    from seqdecontam.core.types import DenseMatrix, PValue, PValueVector


def frequency_pvalue(freq: ArrayLike, conc: ArrayLike) -> PValue:
    """Test whether a feature's frequency decreases with DNA concentration.

    Parameters
    ----------
    freq : array-like of float
        Abundance (ideally relative frequency) of one feature in each sample.
        NaN entries are ignored.
    conc : array-like of float
        Positive DNA concentration of each sample, aligned with ``freq``.

    Returns
    -------
    float | None
        p-value in [0, 1], or None when the feature is present in fewer
        than two samples or has no variation under either model.

    Examples
    --------
    >>> conc = np.array([10, 10, 31, 5, 140.1])
    >>> frequency_pvalue(0.5 / conc, conc) < 0.01
    True
    """
    freq = np.asarray(freq, dtype=np.float64)
    conc = np.asarray(conc, dtype=np.float64)

    present = ~np.isnan(freq) & (freq > 0)
    n_present = int(present.sum())
    if n_present < 2:
        return None

    logf = np.log(freq[present])
    logc = np.log(conc[present])

    # Intercept-only fits: the slope on -log(c) is fixed at 1 in the offset model.
    offset_resid = logf + logc
    ss1 = float(np.sum((offset_resid - offset_resid.mean()) ** 2))
    ss0 = float(np.sum((logf - logf.mean()) ** 2))

    if ss0 == 0.0:
        return 1.0 if ss1 > 0.0 else None

    dof = n_present - 1
    return float(stats.f.cdf(ss1 / ss0, dof, dof))


def frequency_pvalues(X: DenseMatrix, conc: np.ndarray) -> PValueVector:
    """Apply :func:`frequency_pvalue` to every column of ``X``.

    Parameters
    ----------
    X : np.ndarray
        Abundance matrix of shape (n_samples, n_features).
    conc : np.ndarray
        Concentration vector of length n_samples.

    Returns
    -------
    np.ndarray
        float64 vector of length n_features; NaN where undefined.
    """
    out = np.full(X.shape[1], np.nan, dtype=np.float64)
    for j in range(X.shape[1]):
        p = frequency_pvalue(X[:, j], conc)
        if p is not None:
            out[j] = p
    return out
