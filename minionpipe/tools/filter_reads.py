"""Keep FASTQ records whose sequence length meets a closed lower bound."""

import argparse
import logging
import sys
from typing import IO, Iterator, List, Optional, Tuple

from ..pipeline_core.error_handling import FileFormatError, PipelineError
from ..utils import configure_logging, smart_open

logger = logging.getLogger(__name__)

DEFAULT_MIN_LENGTH = 1000

FastqRecord = Tuple[str, str, str, str]


def iter_fastq(handle: IO[str], source: str = "<stream>") -> Iterator[FastqRecord]:
    """
    Yield 4-line FASTQ records as raw lines (newlines included).

    Blank lines between records are skipped.

    Raises
    ------
    FileFormatError
        If a record is truncated or its header/separator lines are malformed
    """
    while True:
        header = handle.readline()
        if not header:
            return
        if not header.strip():
            continue
        seq = handle.readline()
        plus = handle.readline()
        qual = handle.readline()
        if not header.startswith("@") or not plus.startswith("+") or not qual:
            raise FileFormatError(source, "FASTQ with 4-line records")
        yield header, seq, plus, qual


def sequence_length(record: FastqRecord) -> int:
    """Return the length of the record's sequence line."""
    return len(record[1].rstrip("\r\n"))


def filter_reads(src: str, dst: str, min_length: int = DEFAULT_MIN_LENGTH) -> Tuple[int, int]:
    """
    Write the records of ``src`` with ``length >= min_length`` to ``dst``.

    Returns
    -------
    Tuple[int, int]
        (kept, total) record counts
    """
    kept = total = 0
    with smart_open(src, "r") as reader, open(dst, "w", encoding="utf-8") as writer:
        for record in iter_fastq(reader, str(src)):
            total += 1
            if sequence_length(record) < min_length:
                continue
            kept += 1
            header, seq, plus, qual = record
            writer.write(header)
            writer.write(seq)
            writer.write(plus)
            writer.write(qual if qual.endswith("\n") else qual + "\n")
    return kept, total


def main(argv: Optional[List[str]] = None) -> int:
    """Run the length filter as a stage tool."""
    parser = argparse.ArgumentParser(description="Filter FASTQ reads by length.")
    parser.add_argument("input", help="Input FASTQ")
    parser.add_argument("-o", "--output", required=True, help="Filtered FASTQ")
    parser.add_argument(
        "--min-length",
        type=int,
        default=DEFAULT_MIN_LENGTH,
        help="Minimum read length to keep (inclusive)",
    )
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARN", "ERROR"], default="INFO")
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        kept, total = filter_reads(args.input, args.output, args.min_length)
    except (PipelineError, OSError) as e:
        logger.error(f"Read length filter failed: {e}")
        return 1

    logger.info(f"Kept {kept} of {total} reads with length >= {args.min_length}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
