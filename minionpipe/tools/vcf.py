"""Minimal VCF record access shared by the variant tools."""

from typing import IO, Iterator, List, Tuple

from ..pipeline_core.error_handling import FileFormatError

# Fixed VCF columns up to INFO
CHROM, POS, ID, REF, ALT, QUAL, FILTER, INFO = range(8)


def iter_vcf(handle: IO[str], source: str = "<stream>") -> Iterator[Tuple[str, List[str]]]:
    """
    Yield ``(line, fields)`` for every line of a VCF.

    Header lines come back with an empty field list; blank lines are skipped.

    Raises
    ------
    FileFormatError
        If a data line has fewer than the eight fixed columns
    """
    for line in handle:
        if not line.strip():
            continue
        if line.startswith("#"):
            yield line, []
            continue
        fields = line.rstrip("\r\n").split("\t")
        if len(fields) <= INFO:
            raise FileFormatError(source, "VCF data lines with at least 8 tab-separated columns")
        yield line, fields


def info_entries(info: str) -> List[str]:
    """Split an INFO column into its ``KEY=VALUE`` / flag entries."""
    if info in ("", "."):
        return []
    return info.split(";")
