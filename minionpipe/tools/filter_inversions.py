"""Extract PASS inversions from a structural-variant VCF."""

import argparse
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from ..pipeline_core.error_handling import PipelineError
from ..utils import configure_logging, smart_open
from .vcf import FILTER, INFO, info_entries, iter_vcf

logger = logging.getLogger(__name__)


def is_pass_inversion(fields: Sequence[str]) -> bool:
    """True only when the record is both ``SVTYPE=INV`` and ``FILTER == PASS``."""
    return fields[FILTER] == "PASS" and "SVTYPE=INV" in info_entries(fields[INFO])


def filter_inversions(src: str, dst: str) -> Tuple[int, int]:
    """
    Copy the header and the PASS inversion records of ``src`` to ``dst``.

    Returns
    -------
    Tuple[int, int]
        (kept, total) record counts
    """
    kept = total = 0
    with smart_open(src, "r") as reader, open(dst, "w", encoding="utf-8") as writer:
        for line, fields in iter_vcf(reader, str(src)):
            if not fields:
                writer.write(line)
                continue
            total += 1
            if is_pass_inversion(fields):
                kept += 1
                writer.write(line if line.endswith("\n") else line + "\n")
    return kept, total


def main(argv: Optional[List[str]] = None) -> int:
    """Run the inversion filter as a stage tool."""
    parser = argparse.ArgumentParser(description="Keep PASS inversions from an SV VCF.")
    parser.add_argument("input", help="Structural-variant VCF")
    parser.add_argument("-o", "--output", required=True, help="Filtered VCF")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARN", "ERROR"], default="INFO")
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        kept, total = filter_inversions(args.input, args.output)
    except (PipelineError, OSError) as e:
        logger.error(f"Inversion filter failed: {e}")
        return 1

    logger.info(f"Kept {kept} of {total} structural variants (SVTYPE=INV, FILTER=PASS)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
