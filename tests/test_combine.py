"""Tests for p-value combination across batches and across methods."""

import numpy as np
import pytest
from scipy import stats

from seqdecontam.core.exceptions import DecontamValueError
from seqdecontam.stats.combine import combine_batches, combine_methods, fisher_combine


class TestFisherCombine:
    """Tests for fisher_combine."""

    def test_single_pvalue_is_unchanged(self):
        """With one p-value (df=2) Fisher's method returns it unchanged."""
        assert fisher_combine([0.37]) == pytest.approx(0.37)

    def test_nan_replaced_by_half(self):
        """Undefined p-values count as 0.5."""
        assert fisher_combine([np.nan]) == pytest.approx(0.5)
        assert fisher_combine([0.2, np.nan]) == pytest.approx(fisher_combine([0.2, 0.5]))

    def test_matches_chi_squared(self):
        """-2 * sum(log p) against chi-squared with 2k degrees of freedom."""
        p = np.array([0.01, 0.2, 0.6])
        expected = stats.chi2.sf(-2 * np.log(p.prod()), df=6)
        assert fisher_combine(p) == pytest.approx(expected)

    def test_monotonic(self):
        """Lowering any input never raises the combined p-value."""
        base = [0.3, 0.4, 0.5]
        combined = fisher_combine(base)
        for i in range(len(base)):
            lowered = list(base)
            lowered[i] = 0.05
            assert fisher_combine(lowered) <= combined

    def test_zero_pvalue(self):
        """A zero p-value gives a combined p-value of zero."""
        assert fisher_combine([0.0, 0.8]) == 0.0

    def test_out_of_range(self):
        """p-values outside [0, 1] are rejected."""
        with pytest.raises(DecontamValueError):
            fisher_combine([0.5, 1.2])


class TestCombineBatches:
    """Tests for combine_batches."""

    def test_minimum(self):
        """Smallest defined p-value per column."""
        pmatrix = np.array([[0.3, np.nan], [0.01, 0.4]])
        np.testing.assert_allclose(combine_batches(pmatrix, "minimum"), [0.01, 0.4])

    def test_minimum_all_undefined(self):
        """All-undefined columns stay undefined."""
        pmatrix = np.array([[np.nan, 0.2], [np.nan, 0.5]])
        out = combine_batches(pmatrix, "minimum")
        assert np.isnan(out[0])
        assert out[1] == 0.2

    def test_product(self):
        """Product of the defined p-values."""
        pmatrix = np.array([[0.2, 0.2], [0.5, np.nan]])
        np.testing.assert_allclose(combine_batches(pmatrix, "product"), [0.1, 0.2])

    def test_product_all_undefined(self):
        """The empty product is 1."""
        assert combine_batches(np.array([[np.nan], [np.nan]]), "product")[0] == 1.0

    def test_fisher(self):
        """Fisher's method per column, undefined entries counted as 0.5."""
        pmatrix = np.array([[0.01, np.nan], [0.2, 0.3]])
        out = combine_batches(pmatrix, "fisher")
        assert out[0] == pytest.approx(fisher_combine([0.01, 0.2]))
        assert out[1] == pytest.approx(fisher_combine([0.5, 0.3]))

    def test_single_batch_vector(self):
        """A 1-D input is treated as a single batch."""
        np.testing.assert_allclose(combine_batches(np.array([0.1, 0.7]), "minimum"), [0.1, 0.7])

    def test_invalid_strategy(self):
        """Unknown strategies are rejected."""
        with pytest.raises(DecontamValueError):
            combine_batches(np.array([[0.1]]), "mean")


class TestCombineMethods:
    """Tests for combine_methods."""

    p_freq = np.array([0.01, 0.5, np.nan, 1.0])
    p_prev = np.array([0.2, 0.05, 0.3, 1.0])

    def test_single_method_passthrough(self):
        """frequency/prevalence return their own p-values."""
        np.testing.assert_array_equal(combine_methods(self.p_freq, self.p_prev, "frequency"), self.p_freq)
        np.testing.assert_array_equal(combine_methods(self.p_freq, self.p_prev, "prevalence"), self.p_prev)

    def test_minimum_propagates_undefined(self):
        """Element-wise minimum; undefined if either input is undefined."""
        out = combine_methods(self.p_freq, self.p_prev, "minimum")
        np.testing.assert_allclose(out[[0, 1, 3]], [0.01, 0.05, 1.0])
        assert np.isnan(out[2])

    def test_combined(self):
        """Fisher's method on the pair with 4 degrees of freedom."""
        out = combine_methods(self.p_freq, self.p_prev, "combined")
        assert out[0] == pytest.approx(stats.chi2.sf(-2 * np.log(0.01 * 0.2), df=4))
        assert np.isnan(out[2])
        assert out[3] == pytest.approx(1.0)

    def test_independent_has_no_overall_pvalue(self):
        """The independent method leaves the overall p-value undefined."""
        assert np.all(np.isnan(combine_methods(self.p_freq, self.p_prev, "independent")))

    def test_invalid_method(self):
        """Unknown methods are rejected."""
        with pytest.raises(DecontamValueError):
            combine_methods(self.p_freq, self.p_prev, "maximum")
