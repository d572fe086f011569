"""Tests for the prevalence-based contaminant test.

Tests cover:
- prevalence_pvalue: preconditions, the all-present special case, test selection
- proportions_test_greater / fisher_midp_greater: exact values on small tables
- as_negative_flags: tri-state conversion
- diagnostics for undefined p-values
"""

import numpy as np
import polars as pl
import pytest
from scipy import stats

from seqdecontam.core.diagnostics import Diagnostics
from seqdecontam.core.exceptions import DecontamValueError
from seqdecontam.stats.prevalence import (
    ALL_PRESENT_PVALUE,
    as_negative_flags,
    contingency_table,
    fisher_midp_greater,
    prevalence_pvalue,
    prevalence_pvalues,
    proportions_test_greater,
)

# =============================================================================
# Contingency tests
# =============================================================================


class TestFisherMidp:
    """Tests for the mid-p Fisher exact test."""

    def test_present_only_in_controls(self):
        """[[3, 0], [0, 2]]: P(X >= 3) = 0.1, minus half of P(X = 3) = 0.1."""
        assert fisher_midp_greater(np.array([[3, 0], [0, 2]])) == pytest.approx(0.05)

    def test_partial_presence(self):
        """[[2, 1], [0, 2]]: P(X >= 2) = 0.3, minus half of P(X = 2) = 0.3."""
        assert fisher_midp_greater(np.array([[2, 1], [0, 2]])) == pytest.approx(0.15)

    def test_enriched_in_samples(self):
        """[[1, 2], [2, 0]]: P(X >= 1) = 1, minus half of P(X = 1) = 0.3."""
        assert fisher_midp_greater(np.array([[1, 2], [2, 0]])) == pytest.approx(0.85)


class TestProportionsTest:
    """Tests for the continuity-corrected proportions test."""

    def test_complete_separation(self):
        """10 of 10 controls vs 0 of 10 samples: statistic 4 * 4.5^2 / 5."""
        p, unreliable = proportions_test_greater(np.array([[10, 0], [0, 10]]))
        assert not unreliable
        assert p == pytest.approx(stats.norm.sf(np.sqrt(16.2)))

    def test_small_counts_are_unreliable(self):
        """Expected counts below 5 flag the approximation as unreliable."""
        _, unreliable = proportions_test_greater(np.array([[3, 0], [0, 2]]))
        assert unreliable

    def test_direction(self):
        """Higher prevalence in the second group gives p above 0.5."""
        p, _ = proportions_test_greater(np.array([[5, 15], [15, 5]]))
        assert p > 0.5


# =============================================================================
# prevalence_pvalue
# =============================================================================


class TestPrevalencePvalue:
    """Tests for prevalence_pvalue."""

    def test_present_in_all_samples(self, neg):
        """A feature present in every tested sample gets exactly 0.5."""
        assert prevalence_pvalue(np.ones(5), neg) == ALL_PRESENT_PVALUE == 0.5

    def test_present_only_in_controls(self, neg):
        """Presence confined to the controls gives a small p-value."""
        freq = np.array([0.2, 0.1, 0.0, 0.3, 0.0])
        assert prevalence_pvalue(freq, neg) == pytest.approx(0.05)

    def test_large_separation_approaches_zero(self):
        """With many samples, control-only presence gives p near 0."""
        neg = np.array([True] * 10 + [False] * 10)
        freq = np.array([0.1] * 10 + [0.0] * 10)
        p = prevalence_pvalue(freq, neg)
        assert p is not None
        assert p < 1e-3

    def test_single_presence_is_undefined(self, neg):
        """Fewer than two present samples: undefined."""
        assert prevalence_pvalue(np.array([0.0, 1.0, 0.0, 0.0, 0.0]), neg) is None

    def test_no_controls_is_undefined(self):
        """No negative controls: undefined."""
        assert prevalence_pvalue(np.ones(4), np.zeros(4, dtype=bool)) is None

    def test_only_controls_is_undefined(self):
        """Every defined sample a control: undefined."""
        neg = np.array([1.0, 1.0, np.nan, 1.0])
        assert prevalence_pvalue(np.array([1.0, 0.0, 1.0, 1.0]), neg) is None

    def test_unknown_flags_are_excluded(self):
        """Samples with an unknown flag do not enter the table."""
        freq = np.array([0.2, 0.1, 0.0, 0.3, 0.0, 0.5])
        neg = [True, True, False, True, False, None]
        assert prevalence_pvalue(freq, neg) == pytest.approx(0.05)

    def test_fisher_mode(self):
        """method='fisher' uses the exact test even for large counts."""
        neg = np.array([True] * 10 + [False] * 10)
        freq = np.array([0.1] * 10 + [0.0] * 10)
        p = prevalence_pvalue(freq, neg, method="fisher")
        assert p == pytest.approx(fisher_midp_greater(np.array([[10, 0], [0, 10]])))

    def test_chisq_mode(self, neg):
        """method='chisq' uses the approximate test even for small counts."""
        freq = np.array([0.2, 0.1, 0.0, 0.3, 0.0])
        p = prevalence_pvalue(freq, neg, method="chisq")
        expected, _ = proportions_test_greater(np.array([[3, 0], [0, 2]]))
        assert p == pytest.approx(expected)

    def test_invalid_method(self, neg):
        """Unknown test names are rejected."""
        with pytest.raises(DecontamValueError):
            prevalence_pvalue(np.ones(5), neg, method="exact")

    def test_na_pvalue_emits_diagnostic(self):
        """An uncomputable statistic yields None and a warning event."""
        freq = np.array([0.0, 0.0, 0.0, 1.0, 1.0])
        neg = np.array([1.0, 0.0, 0.0, np.nan, np.nan])
        diagnostics = Diagnostics()
        p = prevalence_pvalue(freq, neg, method="chisq", diagnostics=diagnostics, feature="ASV9")
        assert p is None
        assert len(diagnostics.warnings) == 1
        assert diagnostics.warnings[0].code == "na_prevalence_pvalue"
        assert diagnostics.warnings[0].feature == "ASV9"

    def test_auto_mode_falls_back_without_warning(self):
        """The same degenerate table is handled by the exact test in auto mode."""
        freq = np.array([0.0, 0.0, 0.0, 1.0, 1.0])
        neg = np.array([1.0, 0.0, 0.0, np.nan, np.nan])
        diagnostics = Diagnostics()
        p = prevalence_pvalue(freq, neg, diagnostics=diagnostics)
        assert p == pytest.approx(0.5)
        assert len(diagnostics) == 0


class TestPrevalencePvalues:
    """Tests for the column-wise prevalence_pvalues."""

    def test_known_table(self, prevalence_table, neg):
        """Column p-values match the hand-computed values."""
        p = prevalence_pvalues(prevalence_table, neg)
        assert p[0] == pytest.approx(0.05)
        assert p[1] == 0.5
        assert p[2] == pytest.approx(0.85)
        assert np.isnan(p[3])


# =============================================================================
# Helpers
# =============================================================================


class TestNegativeFlags:
    """Tests for as_negative_flags and contingency_table."""

    def test_tristate_list(self):
        """True/False/None become 1/0/NaN."""
        out = as_negative_flags([True, False, None])
        assert out[0] == 1.0
        assert out[1] == 0.0
        assert np.isnan(out[2])

    def test_polars_series_with_nulls(self):
        """Polars nulls become NaN."""
        out = as_negative_flags(pl.Series([True, None, False]))
        assert np.isnan(out[1])
        assert out[2] == 0.0

    def test_invalid_flag(self):
        """Values other than booleans or missing are rejected."""
        with pytest.raises(DecontamValueError):
            as_negative_flags(["yes", "no"])
        with pytest.raises(DecontamValueError):
            as_negative_flags(np.array([0.0, 2.0]))

    def test_contingency_table(self):
        """Rows are controls/samples, columns presence/absence."""
        present = np.array([True, True, False, True, False, True])
        neg = np.array([1.0, 1.0, 0.0, 1.0, 0.0, np.nan])
        table = contingency_table(present, neg)
        np.testing.assert_array_equal(table, [[3, 0], [0, 2]])
