"""Shared pytest fixtures for all test modules."""

from pathlib import Path
from typing import Any, Dict, Iterable

import pytest

from minionpipe.pipeline_core import RunContext


def write_fastq(path: Path, lengths: Iterable[int], prefix: str = "read") -> Path:
    """Write a FASTQ file with one record per requested sequence length."""
    records = []
    for i, length in enumerate(lengths):
        records.append(f"@{prefix}{i}_len{length}\n{'A' * length}\n+\n{'I' * length}\n")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(records))
    return path


def write_reference(path: Path, contig: str = "chr1", length: int = 5000) -> Path:
    """Write a single-contig reference FASTA."""
    sequence = ("ACGT" * (length // 4 + 1))[:length]
    lines = [sequence[i : i + 60] for i in range(0, length, 60)]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f">{contig}\n" + "\n".join(lines) + "\n")
    return path


@pytest.fixture
def run_dir(tmp_path: Path) -> Path:
    """Working directory with two FASTQ parts (500 bp and 1500 bp reads) and a reference."""
    write_fastq(tmp_path / "fastq_pass" / "part_0.fastq", [500], prefix="a")
    write_fastq(tmp_path / "fastq_pass" / "part_1.fastq", [1500], prefix="b")
    write_reference(tmp_path / "reference.fasta")
    return tmp_path


@pytest.fixture
def run_config(run_dir: Path) -> Dict[str, Any]:
    """Configuration mapping pointing at ``run_dir``."""
    return {
        "work_dir": str(run_dir),
        "input_dir": "fastq_pass",
        "input_glob": "*.fastq*",
        "reference": "reference.fasta",
        "threads": 2,
        "sort_memory_per_thread": "1G",
    }


@pytest.fixture
def context(run_config: Dict[str, Any]) -> RunContext:
    """RunContext built from ``run_config``."""
    return RunContext.from_config(run_config)
