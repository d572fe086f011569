"""Input conversion for seqdecontam.

- adapter: normalise feature tables and per-sample vectors for the engine
- csv: read feature tables and sample metadata from delimited text
"""

from seqdecontam.io.adapter import ClassifierInputs, as_classifier_inputs, as_feature_matrix
from seqdecontam.io.csv import read_feature_table

__all__ = [
    "ClassifierInputs",
    "as_classifier_inputs",
    "as_feature_matrix",
    "read_feature_table",
]
