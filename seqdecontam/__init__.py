"""seqdecontam: statistical identification of contaminant sequence features.

Contaminants are DNA sequences introduced during sample processing
(reagents, cross-contamination) rather than present in the sampled
community. seqdecontam flags them in marker-gene or metagenomics feature
tables (samples x features) using two per-feature hypothesis tests:

Key Features:
    - Frequency test: contaminant frequency is inversely proportional to
      the DNA concentration of a sample
    - Prevalence test: contaminants are more prevalent in negative controls
    - Combination of both tests (Fisher's method, minimum, independent)
    - Independent testing per batch (e.g. sequencing run) with minimum,
      product or Fisher combination across batches
    - Reversed-null non-contaminant classifier for low-biomass data
    - Container input with sample-metadata column references

Quick Start:
    >>> import numpy as np
    >>> from seqdecontam import is_contaminant
    >>> conc = np.array([10, 10, 31, 5, 140.1])
    >>> calls = is_contaminant(X, conc=conc, method="frequency", threshold=0.2)
"""

from __future__ import annotations

__version__ = "0.1.0"

from seqdecontam.config import DecontamConfig, load_config
from seqdecontam.contaminant import (
    ContaminantResult,
    NotContaminantResult,
    annotate_contaminants,
    classify_contaminants,
    classify_non_contaminants,
    is_contaminant,
    is_not_contaminant,
)
from seqdecontam.core import (
    AbundanceMatrix,
    Assay,
    AssayNotFoundError,
    ColumnNotFoundError,
    ConfigurationError,
    ContaminantWarning,
    DecontamError,
    DecontamValueError,
    DiagnosticEvent,
    DimensionError,
    LayerNotFoundError,
    ProvenanceLog,
    SampleContainer,
    ValidationError,
)
from seqdecontam.io import as_classifier_inputs, read_feature_table
from seqdecontam.stats import (
    combine_batches,
    combine_methods,
    fisher_combine,
    frequency_pvalue,
    prevalence_pvalue,
)

__all__ = [
    "__version__",
    # Classification
    "is_contaminant",
    "is_not_contaminant",
    "classify_contaminants",
    "classify_non_contaminants",
    "annotate_contaminants",
    "ContaminantResult",
    "NotContaminantResult",
    # Statistics
    "frequency_pvalue",
    "prevalence_pvalue",
    "fisher_combine",
    "combine_batches",
    "combine_methods",
    # Data structures and I/O
    "SampleContainer",
    "Assay",
    "AbundanceMatrix",
    "ProvenanceLog",
    "as_classifier_inputs",
    "read_feature_table",
    # Configuration
    "DecontamConfig",
    "load_config",
    # Diagnostics and errors
    "DiagnosticEvent",
    "ContaminantWarning",
    "DecontamError",
    "ValidationError",
    "DecontamValueError",
    "DimensionError",
    "AssayNotFoundError",
    "LayerNotFoundError",
    "ColumnNotFoundError",
    "ConfigurationError",
]
