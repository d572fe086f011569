from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

import numpy as np
import polars as pl
import scipy.sparse as sp

from seqdecontam.core.exceptions import AssayNotFoundError, DimensionError, ValidationError

if TYPE_CHECKING:
    from seqdecontam.core.types import DenseMatrix, Matrix


@dataclass
class ProvenanceLog:
    """
    Record of operations performed on the container.
    """
    timestamp: str
    action: str
    params: dict[str, Any]
    software_version: str | None = None
    description: str | None = None


@dataclass
class AbundanceMatrix:
    """
    Physical storage of one abundance table.

    Attributes:
        X (np.ndarray | sp.spmatrix): Non-negative abundance values (counts or
                                      relative frequencies). Supports sparse matrix.
                                      Shape: (N_samples, M_features), or
                                      (M_features, N_samples) when ``features_as_rows``.
        features_as_rows (bool): Orientation flag. Defaults to False.
    """
    X: Matrix
    features_as_rows: bool = False

    def __post_init__(self):
        if self.X.ndim != 2:
            raise ValidationError(f"Abundance matrix must be 2-D, got {self.X.ndim}-D.", field="X")
        if not np.issubdtype(self.X.dtype, np.number) or np.issubdtype(self.X.dtype, np.bool_):
            raise ValidationError(
                f"Abundance matrix must be numeric, got dtype {self.X.dtype}.", field="X"
            )
        if not np.issubdtype(self.X.dtype, np.floating):
            self.X = self.X.astype(np.float64)

    @property
    def n_samples(self) -> int:
        return self.X.shape[1] if self.features_as_rows else self.X.shape[0]

    @property
    def n_features(self) -> int:
        return self.X.shape[0] if self.features_as_rows else self.X.shape[1]

    def samples_by_features(self) -> DenseMatrix:
        """
        Return a dense float64 copy oriented samples x features.
        """
        X = self.X.toarray() if sp.issparse(self.X) else np.array(self.X, dtype=np.float64)
        return X.T.copy() if self.features_as_rows else X

    def copy(self) -> AbundanceMatrix:
        return AbundanceMatrix(X=self.X.copy(), features_as_rows=self.features_as_rows)


class Assay:
    """
    Feature space of a container: feature metadata plus one or more abundance layers.
    """
    def __init__(
        self,
        var: pl.DataFrame,
        layers: dict[str, AbundanceMatrix] | None = None,
        feature_id_col: str = "_index"
    ):
        """
        Args:
            var (pl.DataFrame): Feature metadata.
                                MUST contain a unique ID column specified by feature_id_col.
            layers (Dict[str, AbundanceMatrix], optional): Abundance layers. Defaults to None.
            feature_id_col (str): Column name in 'var' that serves as the unique feature identifier.
                                  Defaults to "_index".
        """
        self.feature_id_col = feature_id_col

        if feature_id_col not in var.columns:
            raise ValidationError(f"Feature ID column '{feature_id_col}' not found in var.", field="var")

        if var[feature_id_col].n_unique() != var.height:
            raise ValidationError(f"Feature ID column '{feature_id_col}' is not unique.", field="var")

        self.var: pl.DataFrame = var
        self.layers: dict[str, AbundanceMatrix] = layers if layers is not None else {}

        self._validate()

    def _validate(self):
        """
        Validate that feature dimensions of all layers align with var.
        """
        for name, matrix in self.layers.items():
            if matrix.n_features != self.n_features:
                raise DimensionError(
                    f"Feature dimension mismatch in Layer '{name}': "
                    f"Matrix has {matrix.n_features}, Assay var has {self.n_features}",
                    expected=self.n_features,
                    actual=matrix.n_features,
                )

    @property
    def n_features(self) -> int:
        return self.var.height

    @property
    def feature_ids(self) -> pl.Series:
        return self.var[self.feature_id_col]

    def add_layer(self, name: str, matrix: AbundanceMatrix) -> None:
        """
        Add (or replace) a named abundance layer.
        """
        if matrix.n_features != self.n_features:
            raise DimensionError(
                f"Feature dimension mismatch: Layer has {matrix.n_features}, "
                f"Assay var has {self.n_features}",
                expected=self.n_features,
                actual=matrix.n_features,
            )
        self.layers[name] = matrix

    def with_var(self, var: pl.DataFrame) -> Assay:
        """
        Return a new Assay sharing the layers but with replaced feature metadata.
        """
        return Assay(var=var, layers=dict(self.layers), feature_id_col=self.feature_id_col)

    def __repr__(self) -> str:
        return f"<Assay n_features={self.n_features}, layers={list(self.layers.keys())}>"


class SampleContainer:
    """
    Top-level container: sample metadata (obs) plus one or more feature tables (assays).
    """
    def __init__(
        self,
        obs: pl.DataFrame,
        assays: dict[str, Assay] | None = None,
        history: list[ProvenanceLog] | None = None,
        sample_id_col: str = "_index"
    ):
        """
        Args:
            obs (pl.DataFrame): Sample metadata.
                                MUST contain a unique ID column specified by sample_id_col.
            assays (Dict[str, Assay], optional): Assays registry. Defaults to None.
            history (List[ProvenanceLog], optional): Provenance log. Defaults to None.
            sample_id_col (str): Column name in 'obs' that serves as the unique sample identifier.
                                 Defaults to "_index".
        """
        self.sample_id_col = sample_id_col

        if sample_id_col not in obs.columns:
            raise ValidationError(f"Sample ID column '{sample_id_col}' not found in obs.", field="obs")

        if obs[sample_id_col].n_unique() != obs.height:
            raise ValidationError(f"Sample ID column '{sample_id_col}' is not unique.", field="obs")

        self.obs: pl.DataFrame = obs
        self.assays: dict[str, Assay] = assays if assays is not None else {}
        self.history: list[ProvenanceLog] = history if history is not None else []

        self._validate()

    @property
    def n_samples(self) -> int:
        return self.obs.height

    @property
    def sample_ids(self) -> pl.Series:
        return self.obs[self.sample_id_col]

    def _validate(self):
        """
        Validate that sample dimensions of all assays align with obs.
        """
        for assay_name, assay in self.assays.items():
            self._check_samples(assay_name, assay)

    def _check_samples(self, assay_name: str, assay: Assay) -> None:
        for layer_name, matrix in assay.layers.items():
            if matrix.n_samples != self.n_samples:
                raise DimensionError(
                    f"Sample dimension mismatch in Assay '{assay_name}', Layer '{layer_name}': "
                    f"Matrix has {matrix.n_samples}, Container obs has {self.n_samples}",
                    expected=self.n_samples,
                    actual=matrix.n_samples,
                )

    def get_assay(self, name: str) -> Assay:
        if name not in self.assays:
            raise AssayNotFoundError(name, available=list(self.assays))
        return self.assays[name]

    def add_assay(self, name: str, assay: Assay) -> None:
        """
        Register a new assay.
        """
        if name in self.assays:
            raise ValidationError(f"Assay '{name}' already exists.", field="name")
        self._check_samples(name, assay)
        self.assays[name] = assay

    def log_operation(
        self,
        action: str,
        params: dict[str, Any],
        description: str | None = None,
        software_version: str | None = None,
    ):
        """
        Log an operation to the history.
        """
        log = ProvenanceLog(
            timestamp=datetime.now().isoformat(),
            action=action,
            params=params,
            software_version=software_version,
            description=description
        )
        self.history.append(log)

    def __repr__(self) -> str:
        assays_desc = ", ".join([f"{k}({v.n_features})" for k, v in self.assays.items()])
        return f"<SampleContainer n_samples={self.n_samples}, assays=[{assays_desc}]>"

    def shallow_copy(self) -> SampleContainer:
        """
        Create a shallow copy of the container.
        """
        return SampleContainer(
            obs=self.obs,
            assays=self.assays.copy(),
            history=list(self.history),
            sample_id_col=self.sample_id_col
        )
