"""
Stage catalog for the ONT variant-calling chain.

The catalog is a fixed, ordered tuple of stages. Each stage reads only run
inputs or artifacts of strictly earlier stages; ``validate_catalog`` enforces
this when the driver is built.

Stages:
- merge: concatenate raw FASTQ parts
- filter: keep reads with length >= 1000 bp
- reference-index: samtools faidx
- align: minimap2 map-ont, secondary alignments disabled
- sort-index: samtools sort + index
- depth: mosdepth in fixed 500 bp windows
- call-small-variants: Clair3
- summarize-variants: total and QUAL > 20 counts
- call-structural-variants: Sniffles
- filter-inversions: SVTYPE=INV records with FILTER=PASS
"""

from typing import Optional, Tuple

from ..pipeline_core.stage import CommandTemplate, Stage, needs

MIN_READ_LENGTH = 1000
MIN_VARIANT_QUAL = 20
DEPTH_WINDOW = 500


def _python_tool(module: str, *args: str, stdout: Optional[str] = None) -> CommandTemplate:
    """Template for a stage tool run as ``python -m minionpipe.tools.<module>``."""
    return CommandTemplate("python", ("-m", f"minionpipe.tools.{module}") + args, stdout=stdout)


def build_catalog() -> Tuple[Stage, ...]:
    """Return the ordered stage definitions."""
    definitions = [
        dict(
            name="merge",
            description="Concatenate raw FASTQ parts",
            inputs=(needs("raw_reads"),),
            outputs=("merged_reads",),
            commands=(_python_tool("merge_reads", "{raw_reads}", stdout="merged_reads"),),
        ),
        dict(
            name="filter",
            description=f"Keep reads of at least {MIN_READ_LENGTH} bp",
            inputs=(needs("merged_reads", "merge"),),
            outputs=("filtered_reads",),
            commands=(
                _python_tool(
                    "filter_reads",
                    "--min-length",
                    str(MIN_READ_LENGTH),
                    "-o",
                    "{filtered_reads}",
                    "{merged_reads}",
                ),
            ),
        ),
        dict(
            name="reference-index",
            description="Index the reference FASTA",
            inputs=(needs("reference"),),
            outputs=("reference_index",),
            commands=(CommandTemplate("samtools", ("faidx", "{reference}")),),
        ),
        dict(
            name="align",
            description="Align filtered reads to the reference",
            inputs=(
                needs("filtered_reads", "filter"),
                needs("reference"),
            ),
            outputs=("unsorted_alignment",),
            commands=(
                CommandTemplate(
                    "minimap2",
                    (
                        "-ax",
                        "map-ont",
                        "--secondary=no",
                        "-t",
                        "{threads}",
                        "{reference}",
                        "{filtered_reads}",
                    ),
                    stdout="unsorted_alignment",
                ),
            ),
        ),
        dict(
            name="sort-index",
            description="Coordinate-sort and index the alignment",
            inputs=(needs("unsorted_alignment", "align"),),
            outputs=("sorted_alignment", "alignment_index"),
            commands=(
                CommandTemplate(
                    "samtools",
                    (
                        "sort",
                        "-@",
                        "{threads}",
                        "-m",
                        "{sort_memory}",
                        "-o",
                        "{sorted_alignment}",
                        "{unsorted_alignment}",
                    ),
                ),
                CommandTemplate("samtools", ("index", "-@", "{threads}", "{sorted_alignment}")),
            ),
        ),
        dict(
            name="depth",
            description=f"Compute coverage in {DEPTH_WINDOW} bp windows",
            inputs=(
                needs("sorted_alignment", "sort-index"),
                needs("alignment_index", "sort-index"),
            ),
            outputs=("coverage_regions", "coverage_summary"),
            commands=(
                CommandTemplate(
                    "mosdepth",
                    (
                        "-t",
                        "{threads}",
                        "-n",
                        "--by",
                        str(DEPTH_WINDOW),
                        "{coverage_prefix}",
                        "{sorted_alignment}",
                    ),
                ),
            ),
        ),
        dict(
            name="call-small-variants",
            description="Call small variants",
            inputs=(
                needs("sorted_alignment", "sort-index"),
                needs("alignment_index", "sort-index"),
                needs("reference"),
                needs("reference_index", "reference-index"),
            ),
            outputs=("small_variants",),
            commands=(
                CommandTemplate(
                    "clair3",
                    (
                        "--bam_fn={sorted_alignment}",
                        "--ref_fn={reference}",
                        "--threads={threads}",
                        "--platform={clair3_platform}",
                        "--model_path={clair3_model_path}",
                        "--output={small_variant_dir}",
                    ),
                ),
            ),
        ),
        dict(
            name="summarize-variants",
            description=f"Count variants and variants with QUAL > {MIN_VARIANT_QUAL}",
            inputs=(needs("small_variants", "call-small-variants"),),
            outputs=("variant_summary",),
            commands=(
                _python_tool(
                    "summarize_variants",
                    "--min-qual",
                    str(MIN_VARIANT_QUAL),
                    "-o",
                    "{variant_summary}",
                    "{small_variants}",
                ),
            ),
        ),
        dict(
            name="call-structural-variants",
            description="Call structural variants",
            inputs=(
                needs("sorted_alignment", "sort-index"),
                needs("alignment_index", "sort-index"),
                needs("reference"),
            ),
            outputs=("structural_variants",),
            commands=(
                CommandTemplate(
                    "sniffles",
                    (
                        "--input",
                        "{sorted_alignment}",
                        "--reference",
                        "{reference}",
                        "--vcf",
                        "{structural_variants}",
                        "--threads",
                        "{threads}",
                    ),
                ),
            ),
        ),
        dict(
            name="filter-inversions",
            description="Extract PASS inversions",
            inputs=(needs("structural_variants", "call-structural-variants"),),
            outputs=("pass_inversions",),
            commands=(
                _python_tool(
                    "filter_inversions", "-o", "{pass_inversions}", "{structural_variants}"
                ),
            ),
        ),
    ]
    return tuple(Stage(ordinal=i, **definition) for i, definition in enumerate(definitions))


STAGE_CATALOG: Tuple[Stage, ...] = build_catalog()

STAGE_NAMES: Tuple[str, ...] = tuple(stage.name for stage in STAGE_CATALOG)

# External executables the catalog invokes, by tool role
EXTERNAL_TOOL_ROLES: Tuple[str, ...] = ("samtools", "minimap2", "mosdepth", "clair3", "sniffles")
