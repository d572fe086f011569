"""Tests for SampleContainer, Assay and AbundanceMatrix."""

import numpy as np
import polars as pl
import pytest
import scipy.sparse as sp

from seqdecontam.core import AbundanceMatrix, Assay, SampleContainer
from seqdecontam.core.exceptions import AssayNotFoundError, DimensionError, ValidationError


class TestAbundanceMatrix:
    """Tests for AbundanceMatrix."""

    def test_integer_counts_become_float(self):
        """Integer counts are stored as float64."""
        matrix = AbundanceMatrix(X=np.array([[1, 0], [2, 3]]))
        assert matrix.X.dtype == np.float64

    def test_orientation(self):
        """n_samples and n_features follow the orientation flag."""
        X = np.zeros((3, 5))
        assert (AbundanceMatrix(X=X).n_samples, AbundanceMatrix(X=X).n_features) == (3, 5)
        rows = AbundanceMatrix(X=X, features_as_rows=True)
        assert (rows.n_samples, rows.n_features) == (5, 3)

    def test_samples_by_features_sparse(self):
        """Sparse storage is densified and transposed as needed."""
        X = sp.csr_matrix(np.array([[1.0, 0.0, 2.0], [0.0, 3.0, 0.0]]))
        dense = AbundanceMatrix(X=X, features_as_rows=True).samples_by_features()
        assert isinstance(dense, np.ndarray)
        assert dense.shape == (3, 2)
        assert dense[2, 0] == 2.0

    def test_copy_is_independent(self):
        """copy() does not share the data buffer."""
        matrix = AbundanceMatrix(X=np.ones((2, 2)))
        clone = matrix.copy()
        clone.X[0, 0] = 5.0
        assert matrix.X[0, 0] == 1.0

    def test_invalid_matrices(self):
        """Non-2-D and non-numeric data are rejected."""
        with pytest.raises(ValidationError):
            AbundanceMatrix(X=np.ones(3))
        with pytest.raises(ValidationError):
            AbundanceMatrix(X=np.ones((2, 2), dtype=bool))


class TestAssay:
    """Tests for Assay."""

    def test_requires_unique_ids(self):
        """Duplicate feature ids are rejected."""
        with pytest.raises(ValidationError, match="not unique"):
            Assay(var=pl.DataFrame({"_index": ["a", "a"]}))

    def test_requires_id_column(self):
        """The feature id column must exist."""
        with pytest.raises(ValidationError, match="not found"):
            Assay(var=pl.DataFrame({"name": ["a"]}))

    def test_layer_dimension_mismatch(self, sample_var):
        """Layers must have one column per feature."""
        with pytest.raises(DimensionError):
            Assay(var=sample_var, layers={"raw": AbundanceMatrix(X=np.ones((4, 2)))})

    def test_add_layer(self, sample_var):
        """add_layer validates the feature dimension."""
        assay = Assay(var=sample_var)
        assay.add_layer("raw", AbundanceMatrix(X=np.ones((4, 3))))
        assert list(assay.layers) == ["raw"]
        with pytest.raises(DimensionError):
            assay.add_layer("bad", AbundanceMatrix(X=np.ones((4, 2))))

    def test_with_var_shares_layers(self, sample_container):
        """with_var replaces var and keeps the layers."""
        assay = sample_container.get_assay("counts")
        new = assay.with_var(assay.var.with_columns(pl.lit(1).alias("flag")))
        assert "flag" in new.var.columns
        assert "flag" not in assay.var.columns
        assert new.layers["raw"] is assay.layers["raw"]


class TestSampleContainer:
    """Tests for SampleContainer."""

    def test_sample_dimension_mismatch(self, sample_obs, sample_var):
        """Layers must have one row per sample."""
        assay = Assay(var=sample_var, layers={"raw": AbundanceMatrix(X=np.ones((4, 3)))})
        with pytest.raises(DimensionError):
            SampleContainer(obs=sample_obs, assays={"counts": assay})

    def test_get_assay_missing(self, sample_container):
        """Unknown assay names raise AssayNotFoundError naming the available ones."""
        with pytest.raises(AssayNotFoundError, match="counts"):
            sample_container.get_assay("proteins")

    def test_add_assay_duplicate(self, sample_container):
        """Assay names are unique."""
        with pytest.raises(ValidationError, match="already exists"):
            sample_container.add_assay("counts", sample_container.get_assay("counts"))

    def test_log_operation(self, sample_container):
        """Operations are appended to the history."""
        sample_container.log_operation("test_op", {"k": 1}, description="desc")
        entry = sample_container.history[-1]
        assert entry.action == "test_op"
        assert entry.params == {"k": 1}
        assert entry.timestamp

    def test_shallow_copy_history(self, sample_container):
        """A shallow copy has its own history and assay registry."""
        clone = sample_container.shallow_copy()
        clone.log_operation("only_clone", {})
        clone.assays["other"] = clone.assays["counts"]
        assert sample_container.history == []
        assert "other" not in sample_container.assays
        assert clone.obs is sample_container.obs

    def test_repr(self, sample_container):
        """repr summarises samples and assays."""
        assert repr(sample_container) == "<SampleContainer n_samples=5, assays=[counts(3)]>"
