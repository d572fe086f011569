"""Delimited-text import of feature tables and sample metadata.

Builds a :class:`SampleContainer` from a feature-table CSV/TSV (first column
holds identifiers) and an optional sample-metadata CSV/TSV.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import polars as pl

from seqdecontam.core.exceptions import ValidationError
from seqdecontam.core.structures import AbundanceMatrix, Assay, SampleContainer
from seqdecontam.io.adapter import DEFAULT_ASSAY, DEFAULT_LAYER

__all__ = [
    "read_feature_table",
]

_TRUE_STRINGS = {"true", "t", "yes"}
_FALSE_STRINGS = {"false", "f", "no"}
_NULL_STRINGS = {"", "na", "nan", "null"}


def _separator(path: Path) -> str:
    return "\t" if path.suffix.lower() in (".tsv", ".txt", ".tab") else ","


def _coerce_boolean_columns(df: pl.DataFrame) -> pl.DataFrame:
    """Convert string columns holding only TRUE/FALSE/NA spellings to Boolean."""
    casts = []
    for name, dtype in df.schema.items():
        if dtype != pl.String:
            continue
        lowered = df[name].str.strip_chars().str.to_lowercase()
        values = set(lowered.drop_nulls().unique().to_list())
        non_null = values - _NULL_STRINGS
        if not non_null or not non_null <= (_TRUE_STRINGS | _FALSE_STRINGS):
            continue
        expr = pl.col(name).str.strip_chars().str.to_lowercase()
        casts.append(
            pl.when(expr.is_in(list(_TRUE_STRINGS)))
            .then(True)
            .when(expr.is_in(list(_FALSE_STRINGS)))
            .then(False)
            .otherwise(None)
            .alias(name)
        )
    return df.with_columns(casts) if casts else df


def read_feature_table(
    table_path: str | Path,
    metadata_path: str | Path | None = None,
    *,
    sample_id_col: str | None = None,
    features_as_rows: bool = False,
    assay_name: str = DEFAULT_ASSAY,
) -> SampleContainer:
    """Read a feature table (and sample metadata) into a container.

    Parameters
    ----------
    table_path : str | Path
        Feature table. The first column holds sample identifiers and the
        remaining columns are features, or, with ``features_as_rows``, the
        first column holds feature identifiers and the remaining columns
        are samples.
    metadata_path : str | Path | None
        Sample metadata, one row per sample.
    sample_id_col : str | None
        Identifier column of the metadata; defaults to its first column.
    features_as_rows : bool, default False
        Orientation of the feature table.
    assay_name : str, default "counts"
        Name of the assay to create; the table is stored in layer "raw".

    Returns
    -------
    SampleContainer
        Container with obs (sample metadata, aligned to the table) and one
        assay.

    Raises
    ------
    FileNotFoundError
        If a file does not exist.
    ValidationError
        If the table is not numeric or metadata is missing for a sample.
    """
    table_path = Path(table_path)
    if not table_path.exists():
        raise FileNotFoundError(f"File not found: {table_path}")

    table = pl.read_csv(table_path, separator=_separator(table_path))
    if table.width < 2:
        raise ValidationError(f"Feature table {table_path} has no data columns.", field="table")

    id_col = table.columns[0]
    ids = [str(v) for v in table[id_col].to_list()]
    data = table.drop(id_col)
    non_numeric = [name for name, dtype in data.schema.items() if not dtype.is_numeric()]
    if non_numeric:
        raise ValidationError(
            f"Feature table has non-numeric columns: {non_numeric}.", field="table"
        )
    X = data.fill_null(0).to_numpy().astype(np.float64)

    if features_as_rows:
        feature_ids, sample_ids = ids, list(data.columns)
    else:
        sample_ids, feature_ids = ids, list(data.columns)

    obs = pl.DataFrame({"_index": sample_ids})
    if metadata_path is not None:
        obs = _aligned_metadata(Path(metadata_path), sample_ids, sample_id_col)

    var = pl.DataFrame({"_index": feature_ids})
    assay = Assay(
        var=var,
        layers={DEFAULT_LAYER: AbundanceMatrix(X=X, features_as_rows=features_as_rows)},
    )
    container = SampleContainer(obs=obs, assays={assay_name: assay})
    container.log_operation(
        action="read_feature_table",
        params={
            "table_path": str(table_path),
            "metadata_path": None if metadata_path is None else str(metadata_path),
            "features_as_rows": features_as_rows,
        },
        description=f"Loaded {len(sample_ids)} samples x {len(feature_ids)} features.",
    )
    return container


def _aligned_metadata(
    path: Path, sample_ids: list[str], sample_id_col: str | None
) -> pl.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    meta = pl.read_csv(path, separator=_separator(path), infer_schema_length=None)
    id_col = sample_id_col or meta.columns[0]
    if id_col not in meta.columns:
        raise ValidationError(
            f"Sample ID column '{id_col}' not found in metadata. Available columns: {meta.columns}",
            field="sample_id_col",
        )
    meta = _coerce_boolean_columns(meta).with_columns(pl.col(id_col).cast(pl.String))

    missing = sorted(set(sample_ids) - set(meta[id_col].to_list()))
    if missing:
        raise ValidationError(
            f"Metadata is missing {len(missing)} sample(s) present in the feature table: {missing[:5]}",
            field="metadata",
        )

    order = pl.DataFrame({id_col: sample_ids})
    aligned = order.join(meta, on=id_col, how="left")
    if id_col != "_index":
        aligned = aligned.drop("_index", strict=False).rename({id_col: "_index"})
    return aligned
