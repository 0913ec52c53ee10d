"""Tally the records of a variant file without modifying it."""

import argparse
import logging
import sys
from typing import List, Optional

import pandas as pd

from ..pipeline_core.error_handling import PipelineError
from ..utils import configure_logging, smart_open
from .vcf import QUAL, iter_vcf

logger = logging.getLogger(__name__)

DEFAULT_MIN_QUAL = 20


def summarize_variants(vcf_path: str, min_qual: float = DEFAULT_MIN_QUAL) -> pd.Series:
    """
    Count all records and the records with ``QUAL > min_qual``.

    A missing QUAL (``.``) counts toward the total but never passes the
    threshold.

    Parameters
    ----------
    vcf_path : str
        Plain or gzip-compressed VCF
    min_qual : float
        Strict lower bound on QUAL

    Returns
    -------
    pd.Series
        Indexed by ``total`` and ``qual_gt_<min_qual>``
    """
    quals = []
    with smart_open(vcf_path, "r") as handle:
        for _, fields in iter_vcf(handle, str(vcf_path)):
            if fields:
                quals.append(fields[QUAL])

    qual_values = pd.to_numeric(pd.Series(quals, dtype="object"), errors="coerce")
    passing = int((qual_values > min_qual).sum())
    return pd.Series(
        {"total": len(qual_values), f"qual_gt_{min_qual:g}": passing}, name="count", dtype="int64"
    )


def write_summary(summary: pd.Series, output: str) -> None:
    """Write the counts as a two-column ``metric``/``count`` TSV."""
    table = summary.rename_axis("metric").reset_index(name="count")
    table.to_csv(output, sep="\t", index=False)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the variant summary as a stage tool."""
    parser = argparse.ArgumentParser(description="Summarize a VCF: total and high-QUAL counts.")
    parser.add_argument("input", help="Input VCF (.vcf or .vcf.gz)")
    parser.add_argument("-o", "--output", required=True, help="Summary TSV")
    parser.add_argument(
        "--min-qual",
        type=float,
        default=DEFAULT_MIN_QUAL,
        help="Count records with QUAL strictly greater than this value",
    )
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARN", "ERROR"], default="INFO")
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        summary = summarize_variants(args.input, args.min_qual)
        write_summary(summary, args.output)
    except (PipelineError, OSError) as e:
        logger.error(f"Variant summary failed: {e}")
        return 1

    for metric, count in summary.items():
        logger.info(f"{metric}: {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
