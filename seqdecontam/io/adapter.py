"""Input adapter for the contaminant classifiers.

Every supported input shape is converted here, once, into a
:class:`ClassifierInputs` record holding a dense samples x features float
matrix and the per-sample vectors. The statistical core never inspects the
input type again.

Supported feature tables:

- ``np.ndarray`` or scipy sparse matrix (samples x features);
- ``pl.DataFrame`` whose columns are features (all numeric);
- :class:`~seqdecontam.core.structures.SampleContainer`, in which case
  ``conc``, ``neg`` and ``batch`` may be given as names of ``obs`` columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np
import polars as pl
import scipy.sparse as sp

from seqdecontam.core.exceptions import (
    ColumnNotFoundError,
    LayerNotFoundError,
    ValidationError,
)
from seqdecontam.core.structures import SampleContainer
from seqdecontam.stats.prevalence import as_negative_flags

if TYPE_CHECKING:
    from seqdecontam.core.types import DenseMatrix

__all__ = [
    "ClassifierInputs",
    "as_classifier_inputs",
    "as_feature_matrix",
]

DEFAULT_ASSAY = "counts"
DEFAULT_LAYER = "raw"


@dataclass(frozen=True)
class ClassifierInputs:
    """Canonical inputs of the classification engine.

    Attributes
    ----------
    X : np.ndarray
        Abundance matrix, float64, shape (n_samples, n_features).
    sample_ids : list[str]
        Sample identifiers in row order.
    feature_ids : list[str]
        Feature identifiers in column order.
    conc : np.ndarray | None
        DNA concentration per sample, float64.
    neg : np.ndarray | None
        Negative-control flags per sample: 1.0, 0.0, or NaN when unknown.
    batch : np.ndarray | None
        Batch label per sample (str).
    """

    X: np.ndarray
    sample_ids: list[str]
    feature_ids: list[str]
    conc: np.ndarray | None = None
    neg: np.ndarray | None = None
    batch: np.ndarray | None = None

    @property
    def n_samples(self) -> int:
        return self.X.shape[0]

    @property
    def n_features(self) -> int:
        return self.X.shape[1]


def as_feature_matrix(X: Any) -> DenseMatrix:
    """Validate a raw feature table and return it as a dense float64 matrix.

    Raises
    ------
    ValidationError
        If ``X`` is not a non-empty 2-D numeric matrix, or holds negative
        or infinite values.
    """
    if sp.issparse(X):
        X = X.toarray()
    if not isinstance(X, np.ndarray):
        raise ValidationError(
            f"Feature table must be a numeric matrix, got {type(X).__name__}.",
            field="seqtab",
        )
    if X.ndim != 2:
        raise ValidationError(
            f"Feature table must be a 2-D matrix, got {X.ndim}-D.", field="seqtab"
        )
    if X.shape[0] == 0 or X.shape[1] == 0:
        raise ValidationError(
            f"Feature table is empty ({X.shape[0]} samples x {X.shape[1]} features).",
            field="seqtab",
        )
    if X.dtype.kind not in "iuf":
        raise ValidationError(
            f"Feature table must be a numeric matrix, got dtype {X.dtype}.", field="seqtab"
        )

    X = X.astype(np.float64)
    if np.any(np.isinf(X)):
        raise ValidationError("Feature table contains infinite values.", field="seqtab")
    if np.any(X < 0):
        raise ValidationError("Feature table contains negative values.", field="seqtab")
    return X


def _from_polars(df: pl.DataFrame) -> tuple[np.ndarray, list[str]]:
    non_numeric = [name for name, dtype in df.schema.items() if not dtype.is_numeric()]
    if non_numeric:
        raise ValidationError(
            f"Feature table must be a numeric matrix; non-numeric columns: {non_numeric}.",
            field="seqtab",
        )
    return df.to_numpy(), list(df.columns)


def _resolve_reference(value: Any, obs: pl.DataFrame | None, name: str) -> Any:
    """Replace a column-name reference by the column's values."""
    if not isinstance(value, str):
        return value
    if obs is None:
        raise ValidationError(
            f"'{name}' was given as a column name ('{value}'), which requires a "
            "SampleContainer input.",
            field=name,
        )
    if value not in obs.columns:
        raise ColumnNotFoundError(value, available=obs.columns)
    return obs[value].to_list()


def _as_conc(conc: Any) -> np.ndarray:
    if isinstance(conc, pl.Series):
        conc = conc.to_list()
    try:
        out = np.asarray(conc, dtype=np.float64).ravel()
    except (TypeError, ValueError) as e:
        raise ValidationError(f"conc must be numeric: {e}", field="conc") from e
    return out


def _as_batch(batch: Any) -> np.ndarray:
    if isinstance(batch, pl.Series):
        batch = batch.to_list()
    values = list(np.asarray(batch, dtype=object).ravel())
    if any(v is None or (isinstance(v, float) and np.isnan(v)) for v in values):
        raise ValidationError("batch contains missing labels.", field="batch")
    return np.array([str(v) for v in values], dtype=object)


def as_classifier_inputs(
    seqtab: Any,
    conc: Any = None,
    neg: Any = None,
    batch: Any = None,
    assay_name: str = DEFAULT_ASSAY,
    layer_name: str | None = None,
) -> ClassifierInputs:
    """Normalise any supported input into :class:`ClassifierInputs`.

    Parameters
    ----------
    seqtab : np.ndarray | sp.spmatrix | pl.DataFrame | SampleContainer
        Feature table, samples as rows.
    conc, neg, batch : array-like | str | None
        Per-sample vectors, or ``obs`` column names for container input.
    assay_name : str, default "counts"
        Assay to read when ``seqtab`` is a container.
    layer_name : str | None, default None
        Layer to read; "raw" if present, else the first layer.

    Returns
    -------
    ClassifierInputs
        Canonical inputs. Vector lengths are not checked here.
    """
    obs = None
    if isinstance(seqtab, SampleContainer):
        assay = seqtab.get_assay(assay_name)
        if not assay.layers:
            raise LayerNotFoundError(
                layer_name or DEFAULT_LAYER,
                assay_name,
                hint=f"Assay '{assay_name}' has no layers.",
            )
        if layer_name is None:
            layer_name = DEFAULT_LAYER if DEFAULT_LAYER in assay.layers else next(iter(assay.layers))
        if layer_name not in assay.layers:
            available = ", ".join(f"'{k}'" for k in assay.layers.keys())
            raise LayerNotFoundError(
                layer_name,
                assay_name,
                hint=f"Layer '{layer_name}' not found in assay '{assay_name}'. "
                f"Available layers: {available}.",
            )
        obs = seqtab.obs
        X = assay.layers[layer_name].samples_by_features()
        sample_ids = [str(s) for s in seqtab.sample_ids.to_list()]
        feature_ids = [str(f) for f in assay.feature_ids.to_list()]
    elif isinstance(seqtab, pl.DataFrame):
        X, feature_ids = _from_polars(seqtab)
        sample_ids = [f"sample_{i}" for i in range(X.shape[0])]
    else:
        X = seqtab
        sample_ids = feature_ids = None

    X = as_feature_matrix(X)
    if sample_ids is None:
        sample_ids = [f"sample_{i}" for i in range(X.shape[0])]
    if feature_ids is None:
        feature_ids = [f"feature_{j}" for j in range(X.shape[1])]

    conc = _resolve_reference(conc, obs, "conc")
    neg = _resolve_reference(neg, obs, "neg")
    batch = _resolve_reference(batch, obs, "batch")

    return ClassifierInputs(
        X=X,
        sample_ids=sample_ids,
        feature_ids=feature_ids,
        conc=None if conc is None else _as_conc(conc),
        neg=None if neg is None else as_negative_flags(neg),
        batch=None if batch is None else _as_batch(batch),
    )
