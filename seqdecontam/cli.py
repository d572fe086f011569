"""Command-line interface for seqdecontam.

Usage:
    seqdecontam --table counts.csv --metadata samples.csv --conc dna_conc --neg is_control
    seqdecontam --table counts.tsv --metadata samples.tsv --neg is_control --not-contaminant
    seqdecontam --table counts.csv --metadata samples.csv --config decontam.yaml -o calls.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from seqdecontam import __version__
from seqdecontam.contaminant.annotate import annotate_contaminants
from seqdecontam.config import DecontamConfig, load_config
from seqdecontam.core.exceptions import DecontamError
from seqdecontam.core.types import BATCH_COMBINE_STRATEGIES, CONTAMINANT_METHODS, PREVALENCE_TESTS
from seqdecontam.io.csv import read_feature_table

logger = logging.getLogger("seqdecontam")


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns
    -------
    argparse.Namespace
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        prog="seqdecontam",
        description="Identify contaminant features in marker-gene and metagenomics feature tables.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--table", required=True, type=Path, help="Feature table (CSV/TSV).")
    parser.add_argument("--metadata", type=Path, default=None, help="Sample metadata (CSV/TSV).")
    parser.add_argument("--sample-id-col", default=None, help="Sample ID column of the metadata.")
    parser.add_argument(
        "--features-as-rows",
        action="store_true",
        help="Feature table has features as rows and samples as columns.",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file.")
    parser.add_argument("--conc", default=None, help="Metadata column with DNA concentrations.")
    parser.add_argument("--neg", default=None, help="Metadata column with negative-control flags.")
    parser.add_argument("--batch", default=None, help="Metadata column with batch labels.")
    parser.add_argument("--method", choices=CONTAMINANT_METHODS, default=None)
    parser.add_argument("--batch-combine", choices=BATCH_COMBINE_STRATEGIES, default=None)
    parser.add_argument("--prevalence-test", choices=PREVALENCE_TESTS, default=None)
    parser.add_argument(
        "--threshold",
        type=float,
        nargs="+",
        default=None,
        help="p-value threshold; two values (frequency, prevalence) for the independent method.",
    )
    parser.add_argument(
        "--no-normalize",
        dest="normalize",
        action="store_false",
        default=None,
        help="Do not convert samples to relative frequencies.",
    )
    parser.add_argument(
        "--not-contaminant",
        action="store_true",
        default=None,
        help="Identify non-contaminants (prevalence method, reversed null hypothesis).",
    )
    parser.add_argument(
        "--detailed",
        action="store_true",
        default=None,
        help="Write p-values and summary statistics, not just the calls.",
    )
    parser.add_argument("-o", "--output", type=Path, default=None, help="Output CSV (default: stdout).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output.")
    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> DecontamConfig:
    config = load_config(args.config) if args.config is not None else DecontamConfig()
    threshold = None
    if args.threshold is not None:
        threshold = args.threshold[0] if len(args.threshold) == 1 else list(args.threshold)
    return config.updated(
        conc=args.conc,
        neg=args.neg,
        batch=args.batch,
        method=args.method,
        batch_combine=args.batch_combine,
        prevalence_test=args.prevalence_test,
        threshold=threshold,
        normalize=args.normalize,
        not_contaminant=args.not_contaminant,
        detailed=args.detailed,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns
    -------
    int
        Exit code (0 for success, 1 for failure).
    """
    args = parse_arguments(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        config = _resolve_config(args)
        container = read_feature_table(
            args.table,
            args.metadata,
            sample_id_col=args.sample_id_col,
            features_as_rows=args.features_as_rows,
            assay_name=config.assay_name,
        )
        kwargs = config.to_kwargs()
        kwargs["layer_name"] = kwargs["layer_name"] or "raw"
        _, result = annotate_contaminants(
            container,
            not_contaminant=config.not_contaminant,
            **kwargs,
        )
    except (DecontamError, FileNotFoundError) as e:
        logger.error("%s", e)
        return 1

    for event in result.diagnostics:
        if event.level == "warning":
            logger.warning("%s", event.message)
        else:
            logger.info("%s", event.message)

    logger.info(
        "%d of %d features called %s (method=%s).",
        result.n_called,
        result.n_features,
        result.call_column.replace("_", " "),
        result.method,
    )

    table = result.to_dataframe()
    if not config.detailed:
        table = table.select("feature_id", result.call_column)

    if args.output is None:
        sys.stdout.write(table.write_csv())
    else:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        table.write_csv(args.output)
        logger.info("Results saved to: %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
