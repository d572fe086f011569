"""Shared pytest fixtures for seqdecontam tests.

Fixtures are organized by input: concentration and negative-control vectors,
feature tables built to have known test outcomes, and containers.
"""

import numpy as np
import polars as pl
import pytest

from seqdecontam.core import AbundanceMatrix, Assay, SampleContainer


@pytest.fixture
def conc() -> np.ndarray:
    """DNA concentrations of 5 samples."""
    return np.array([10.0, 10.0, 31.0, 5.0, 140.1])


@pytest.fixture
def neg() -> np.ndarray:
    """Negative-control flags of 5 samples (3 controls)."""
    return np.array([True, True, False, True, False])


@pytest.fixture
def frequency_table(conc: np.ndarray) -> np.ndarray:
    """Row-normalized table with known frequency-test outcomes.

    Returns
    -------
    np.ndarray
        Shape (5, 3):
        - column 0: frequency exactly 1/conc (contaminant)
        - column 1: constant frequency 0.3 (not a contaminant)
        - column 2: the remainder, increasing with concentration
    """
    contaminant = 1.0 / conc
    constant = np.full(conc.shape, 0.3)
    remainder = 1.0 - contaminant - constant
    return np.column_stack([contaminant, constant, remainder])


@pytest.fixture
def prevalence_table() -> np.ndarray:
    """Count table with known prevalence-test outcomes for :func:`neg`.

    Returns
    -------
    np.ndarray
        Shape (5, 4):
        - column 0: present in all three negative controls only
        - column 1: present in every sample
        - column 2: present in the two true samples and one control
        - column 3: present in a single sample
    """
    return np.array(
        [
            [12.0, 30.0, 0.0, 0.0],
            [8.0, 25.0, 0.0, 3.0],
            [0.0, 40.0, 50.0, 0.0],
            [5.0, 10.0, 2.0, 0.0],
            [0.0, 35.0, 60.0, 0.0],
        ]
    )


@pytest.fixture
def sample_obs(conc: np.ndarray) -> pl.DataFrame:
    """Sample metadata with concentration, control flag (one unknown) and batch."""
    return pl.DataFrame(
        {
            "_index": ["S1", "S2", "S3", "S4", "S5"],
            "dna_conc": conc,
            "is_control": [True, True, False, True, None],
            "run": ["A", "A", "B", "B", "B"],
        }
    )


@pytest.fixture
def sample_var() -> pl.DataFrame:
    """Feature metadata for the 3 features of :func:`frequency_table`."""
    return pl.DataFrame(
        {
            "_index": ["ASV1", "ASV2", "ASV3"],
            "taxon": ["Ralstonia", "Bacteroides", "Prevotella"],
        }
    )


@pytest.fixture
def sample_container(sample_obs, sample_var, frequency_table) -> SampleContainer:
    """Container holding :func:`frequency_table` as counts/raw."""
    assay = Assay(var=sample_var, layers={"raw": AbundanceMatrix(X=frequency_table)})
    return SampleContainer(obs=sample_obs, assays={"counts": assay})
