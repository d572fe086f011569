"""Per-feature hypothesis tests and p-value combination.

Common Usage:
    >>> from seqdecontam.stats import frequency_pvalue, prevalence_pvalue
    >>> p_freq = frequency_pvalue(freq, conc)
    >>> p_prev = prevalence_pvalue(freq, neg)
"""

from seqdecontam.stats.combine import combine_batches, combine_methods, fisher_combine
from seqdecontam.stats.frequency import frequency_pvalue, frequency_pvalues
from seqdecontam.stats.prevalence import (
    ALL_PRESENT_PVALUE,
    as_negative_flags,
    contingency_table,
    fisher_midp_greater,
    prevalence_pvalue,
    prevalence_pvalues,
    proportions_test_greater,
)

__all__ = [
    "frequency_pvalue",
    "frequency_pvalues",
    "prevalence_pvalue",
    "prevalence_pvalues",
    "proportions_test_greater",
    "fisher_midp_greater",
    "contingency_table",
    "as_negative_flags",
    "ALL_PRESENT_PVALUE",
    "fisher_combine",
    "combine_batches",
    "combine_methods",
]
