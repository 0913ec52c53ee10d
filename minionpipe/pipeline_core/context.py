"""
RunContext - Immutable configuration shared by every pipeline component.

This module provides the RunContext dataclass that is built once from the
loaded configuration and handed explicitly to the runner, the artifact store
and the stage templates. It also owns the fixed artifact file names that
downstream consumers of the pipeline rely on.
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple, Union

from ..memory import ResourceManager
from .error_handling import ConfigError, check_artifact

logger = logging.getLogger(__name__)

# Artifacts supplied by the run configuration rather than produced by a stage
RUN_INPUTS = ("raw_reads", "reference")

# Fixed artifact names, relative to the working directory
ARTIFACT_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "merged_reads": "minion_pass.fastq",
        "filtered_reads": "minion_filtered.fastq",
        "unsorted_alignment": "minion_aligned.sam",
        "sorted_alignment": "minion_sorted.bam",
        "alignment_index": "minion_sorted.bam.bai",
        "coverage_regions": "minion_mosdepth/minion_depth.regions.bed.gz",
        "coverage_summary": "minion_mosdepth/minion_depth.mosdepth.summary.txt",
        "small_variants": "clair3_output/merge_output.vcf.gz",
        "variant_summary": "variant_summary.tsv",
        "structural_variants": "minion_inversion_results.vcf",
        "pass_inversions": "inversions_PASS.vcf",
    }
)

# Index written by samtools faidx next to the configured reference
REFERENCE_INDEX = "reference_index"

# Directory prefixes handed to tools that name their own output files
COVERAGE_PREFIX = "minion_mosdepth/minion_depth"
SMALL_VARIANT_DIR = "clair3_output"
LOG_DIR = "logs"

DEFAULT_TOOLS = {
    "python": sys.executable,
    "samtools": "samtools",
    "minimap2": "minimap2",
    "mosdepth": "mosdepth",
    "clair3": "run_clair3.sh",
    "sniffles": "sniffles",
}

ArtifactValue = Union[Path, Tuple[Path, ...]]


@dataclass(frozen=True)
class RunContext:
    """Read-only run configuration, the single source of settings for a run.

    Attributes
    ----------
    work_dir : Path
        Working directory; every artifact path is relative to it
    input_dir : Path
        Directory holding the raw read parts
    input_glob : str
        Glob matched inside ``input_dir``
    input_files : Tuple[Path, ...]
        Raw read parts, resolved once at construction in sorted order
    reference : Path
        Reference FASTA
    threads : int
        Thread count passed to every multi-threaded tool
    sort_memory : str
        Per-thread memory bound for the coordinate sorter (e.g. ``"2G"``)
    clair3_platform : str
        Platform tag for the small-variant caller
    clair3_model_path : str
        Model directory for the small-variant caller, absolute
    tools : Mapping[str, str]
        Tool role to executable, read-only
    """

    work_dir: Path
    input_dir: Path
    input_glob: str
    input_files: Tuple[Path, ...]
    reference: Path
    threads: int
    sort_memory: str = "2G"
    clair3_platform: str = "ont"
    clair3_model_path: str = "models/r941_prom_sup_g5014"
    tools: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(dict(DEFAULT_TOOLS)))

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "RunContext":
        """Build and validate a RunContext from a configuration mapping.

        Relative ``input_dir``, ``reference`` and ``clair3_model_path`` are
        resolved against ``work_dir``. ``threads`` and
        ``sort_memory_per_thread`` accept ``"auto"``.

        Raises
        ------
        ConfigError
            If the working or input directory is missing, no input file matches
            the glob, the reference is missing or empty, or the thread count is
            not a positive integer.
        """
        work_dir = Path(config.get("work_dir") or ".").expanduser()
        if not work_dir.is_dir():
            raise ConfigError(f"Working directory does not exist: {work_dir}", "work_dir")
        work_dir = work_dir.resolve()

        input_dir = work_dir / Path(config.get("input_dir") or ".").expanduser()
        input_glob = config.get("input_glob") or "*.fastq*"
        if not input_dir.is_dir():
            raise ConfigError(f"Input directory does not exist: {input_dir}", "input_dir")
        input_files = _match_inputs(work_dir, input_dir, input_glob)
        if not input_files:
            raise ConfigError(
                f"No input files matching '{input_glob}' in {input_dir}", "input_glob"
            )

        reference = work_dir / Path(config.get("reference") or "reference.fasta").expanduser()
        problem = check_artifact(reference)
        if problem:
            raise ConfigError(f"Reference FASTA {reference} is {problem}", "reference")

        resources = None
        threads = config.get("threads", 1)
        if threads == "auto":
            resources = ResourceManager(config)
            threads = resources.cpu_cores
        if isinstance(threads, bool):
            raise ConfigError(f"Thread count must be a positive integer, got {threads!r}", "threads")
        try:
            threads = int(threads)
        except (TypeError, ValueError):
            raise ConfigError(f"Thread count must be a positive integer, got {threads!r}", "threads")
        if threads < 1:
            raise ConfigError(f"Thread count must be a positive integer, got {threads}", "threads")

        sort_memory = config.get("sort_memory_per_thread") or "2G"
        if sort_memory == "auto":
            resources = resources or ResourceManager(config)
            sort_memory = resources.sort_memory_per_thread(threads)

        model_path = config.get("clair3_model_path") or cls.clair3_model_path

        tools = dict(DEFAULT_TOOLS)
        for role, executable in (config.get("tools") or {}).items():
            if executable:
                tools[role] = str(executable)

        context = cls(
            work_dir=work_dir,
            input_dir=input_dir,
            input_glob=input_glob,
            input_files=tuple(input_files),
            reference=reference,
            threads=threads,
            sort_memory=str(sort_memory),
            clair3_platform=str(config.get("clair3_platform") or "ont"),
            clair3_model_path=str(work_dir / Path(model_path).expanduser()),
            tools=MappingProxyType(tools),
        )
        logger.debug(f"Run context: {context}")
        return context

    @property
    def log_dir(self) -> Path:
        """Directory receiving one log file per stage."""
        return self.work_dir / LOG_DIR

    def log_path(self, stage_name: str) -> Path:
        """Return the log sink for ``stage_name``."""
        return self.log_dir / f"{stage_name}.log"

    def artifact_path(self, key: str) -> Path:
        """Return the fixed path of a stage-produced artifact.

        The reference index sits beside the configured reference, where
        ``samtools faidx`` writes it.

        Raises
        ------
        KeyError
            If ``key`` is not a known artifact
        """
        if key == REFERENCE_INDEX:
            return Path(f"{self.reference}.fai")
        return self.work_dir / ARTIFACT_NAMES[key]

    def run_inputs(self) -> Dict[str, ArtifactValue]:
        """Return the artifacts supplied by the configuration."""
        return {"raw_reads": self.input_files, "reference": self.reference}

    def params(self) -> Dict[str, str]:
        """Return the scalar values available to command templates."""
        return {
            "threads": str(self.threads),
            "sort_memory": self.sort_memory,
            "clair3_platform": self.clair3_platform,
            "clair3_model_path": self.clair3_model_path,
            "coverage_prefix": str(self.work_dir / COVERAGE_PREFIX),
            "small_variant_dir": str(self.work_dir / SMALL_VARIANT_DIR),
        }

    def tool(self, role: str) -> str:
        """Return the executable configured for ``role``."""
        try:
            return self.tools[role]
        except KeyError:
            raise ConfigError(f"No executable configured for tool '{role}'", "tools")


def _match_inputs(work_dir: Path, input_dir: Path, pattern: str) -> List[Path]:
    """Glob the raw read parts, excluding anything the pipeline itself writes."""
    produced = {(work_dir / name).resolve() for name in ARTIFACT_NAMES.values()}
    matches = []
    for path in sorted(input_dir.glob(pattern)):
        if not path.is_file():
            continue
        if path.resolve() in produced:
            logger.debug(f"Ignoring pipeline artifact matched by input glob: {path}")
            continue
        matches.append(path)
    return matches
