"""Concatenate raw FASTQ parts into a single merged read file."""

import argparse
import logging
import sys
from typing import BinaryIO, List, Optional, Sequence

from ..utils import configure_logging, smart_open

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20


def merge_reads(parts: Sequence[str], out: BinaryIO) -> int:
    """
    Copy every part, in order, to ``out``.

    Gzip-compressed parts are decompressed on the fly. A newline is inserted
    after a part that does not end with one so records never run together.

    Returns
    -------
    int
        Number of bytes written
    """
    written = 0
    for part in parts:
        last = b""
        with smart_open(part, "rb") as handle:
            for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
                out.write(chunk)
                written += len(chunk)
                last = chunk[-1:]
        if last and last != b"\n":
            out.write(b"\n")
            written += 1
        logger.debug(f"Merged {part}")
    return written


def main(argv: Optional[List[str]] = None) -> int:
    """Run the merge as a stage tool; merged reads go to stdout unless -o is given."""
    parser = argparse.ArgumentParser(description="Concatenate FASTQ parts.")
    parser.add_argument("parts", nargs="+", help="FASTQ parts (.fastq or .fastq.gz)")
    parser.add_argument("-o", "--output", help="Output FASTQ (default: stdout)")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARN", "ERROR"], default="INFO")
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        if args.output:
            with open(args.output, "wb") as out:
                written = merge_reads(args.parts, out)
        else:
            written = merge_reads(args.parts, sys.stdout.buffer)
            sys.stdout.buffer.flush()
    except OSError as e:
        logger.error(f"Merging reads failed: {e}")
        return 1

    logger.info(f"Merged {len(args.parts)} part(s), {written} bytes")
    return 0


if __name__ == "__main__":
    sys.exit(main())
