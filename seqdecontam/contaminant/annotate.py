"""Container-level contaminant annotation.

Runs the classifier on one layer of a :class:`SampleContainer` and records
the per-feature results in the assay's feature metadata (``var``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import polars as pl

from seqdecontam.contaminant.classifier import classify_contaminants, classify_non_contaminants
from seqdecontam.core.structures import SampleContainer
from seqdecontam.io.adapter import DEFAULT_ASSAY, DEFAULT_LAYER

if TYPE_CHECKING:
    from seqdecontam.contaminant.classifier import ClassificationResult
    from seqdecontam.core.types import BatchCombine, ContaminantMethod, PrevalenceTest, Threshold


def _describe(value: Any) -> Any:
    """Provenance-friendly form of a parameter (column names kept, vectors summarised)."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)) and all(isinstance(v, (int, float)) for v in value):
        return list(value)
    return f"<{type(value).__name__}>"


def annotate_contaminants(
    container: SampleContainer,
    assay_name: str = DEFAULT_ASSAY,
    layer_name: str = DEFAULT_LAYER,
    conc: Any = None,
    neg: Any = None,
    method: ContaminantMethod | None = None,
    batch: Any = None,
    batch_combine: BatchCombine = "minimum",
    threshold: Threshold | None = None,
    normalize: bool = True,
    prevalence_test: PrevalenceTest = "auto",
    not_contaminant: bool = False,
    prefix: str = "contaminant",
) -> tuple[SampleContainer, ClassificationResult]:
    """Classify the features of a container layer and annotate ``var``.

    Parameters
    ----------
    container : SampleContainer
        Input container.
    assay_name : str, default "counts"
        Name of assay containing the layer.
    layer_name : str, default "raw"
        Name of layer to classify.
    conc, neg, batch : array-like | str | None
        Per-sample vectors or ``obs`` column names.
    not_contaminant : bool, default False
        Use the non-contaminant classifier (prevalence method only).
    prefix : str, default "contaminant"
        Prefix of the added ``var`` columns.
    threshold : float | sequence of float | None
        Defaults to 0.1, or 0.5 when ``not_contaminant``.

    See :func:`~seqdecontam.contaminant.classifier.classify_contaminants`
    for the other parameters.

    Returns
    -------
    tuple[SampleContainer, ClassificationResult]
        A new container whose assay ``var`` gains the columns
        ``{prefix}_p_freq``, ``{prefix}_p_prev``, ``{prefix}_p`` and the
        boolean call column (``contaminant`` or ``not_contaminant``), and
        the underlying result.
    """
    common = dict(
        conc=conc,
        neg=neg,
        batch=batch,
        batch_combine=batch_combine,
        normalize=normalize,
        prevalence_test=prevalence_test,
        assay_name=assay_name,
        layer_name=layer_name,
    )
    if not_contaminant:
        result = classify_non_contaminants(
            container,
            method=method or "prevalence",
            threshold=0.5 if threshold is None else threshold,
            **common,
        )
    else:
        result = classify_contaminants(
            container,
            method=method,
            threshold=0.1 if threshold is None else threshold,
            **common,
        )

    assay = container.get_assay(assay_name)
    new_var = assay.var.with_columns(
        pl.Series(f"{prefix}_p_freq", result.p_freq),
        pl.Series(f"{prefix}_p_prev", result.p_prev),
        pl.Series(f"{prefix}_p", result.p),
        pl.Series(result.call_column, result.calls),
    )

    new_container = container.shallow_copy()
    new_container.assays[assay_name] = assay.with_var(new_var)
    new_container.log_operation(
        action="annotate_non_contaminants" if not_contaminant else "annotate_contaminants",
        params={
            "assay": assay_name,
            "layer_name": layer_name,
            "method": result.method,
            "batch_combine": batch_combine,
            "threshold": list(result.threshold),
            "normalize": normalize,
            "prevalence_test": prevalence_test,
            "conc": _describe(conc),
            "neg": _describe(neg),
            "batch": _describe(batch),
        },
        description=f"Flagged {result.n_called} of {result.n_features} features "
        f"as {result.call_column.replace('_', ' ')}s.",
    )
    return new_container, result
