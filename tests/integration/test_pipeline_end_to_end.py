"""End-to-end runs of the full stage catalog against stub external tools."""

import gzip
import json
from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest

from minionpipe import cli
from minionpipe.pipeline import run_pipeline
from minionpipe.pipeline_core import RunStatus
from minionpipe.pipeline_core.context import ARTIFACT_NAMES
from minionpipe.pipeline_core.error_handling import ExternalToolError
from minionpipe.stages import STAGE_NAMES
from tests.conftest import write_reference
from tests.mocks import install_stub_tools

REPO_ROOT = Path(__file__).resolve().parents[2]

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def importable_package(monkeypatch):
    """Let ``python -m minionpipe.tools.*`` children import the package."""
    monkeypatch.setenv("PYTHONPATH", str(REPO_ROOT))


def _config(run_config, run_dir, failing=None):
    config = dict(run_config)
    config["tools"] = install_stub_tools(run_dir / "bin", failing=failing)
    return config


class TestPipelineEndToEnd:
    """Drive every stage through real child processes."""

    def test_complete_run(self, run_config, run_dir):
        """A clean run produces every artifact with the expected content."""
        run = run_pipeline(_config(run_config, run_dir), check_tools=True)

        assert run.status is RunStatus.COMPLETE, run.describe()
        assert list(run.exit_codes) == list(STAGE_NAMES)
        for name in ARTIFACT_NAMES.values():
            path = run_dir / name
            assert path.is_file() and path.stat().st_size > 0, name
        assert (run_dir / "reference.fasta.fai").stat().st_size > 0
        for stage_name in STAGE_NAMES:
            assert (run_dir / "logs" / f"{stage_name}.log").is_file()

        merged = (run_dir / "minion_pass.fastq").read_text().splitlines()
        assert len(merged) == 8
        filtered = (run_dir / "minion_filtered.fastq").read_text().splitlines()
        assert len(filtered) == 4
        assert len(filtered[1]) == 1500

        summary = pd.read_csv(run_dir / "variant_summary.tsv", sep="\t")
        assert dict(zip(summary["metric"], summary["count"])) == {"total": 4, "qual_gt_20": 2}

        records = [
            line
            for line in (run_dir / "inversions_PASS.vcf").read_text().splitlines()
            if not line.startswith("#")
        ]
        assert len(records) == 1
        assert "SVTYPE=INV" in records[0]
        assert records[0].split("\t")[6] == "PASS"

        with gzip.open(run_dir / "minion_mosdepth" / "minion_depth.regions.bed.gz", "rt") as handle:
            assert handle.readline().startswith("chr1")

    def test_custom_reference_name(self, run_config, run_dir):
        """The index is expected beside the configured reference, whatever its name."""
        write_reference(run_dir / "refs" / "genome.fa")
        (run_dir / "reference.fasta").unlink()
        config = _config(run_config, run_dir)
        config["reference"] = "refs/genome.fa"

        run = run_pipeline(config)

        assert run.status is RunStatus.COMPLETE, run.describe()
        assert (run_dir / "refs" / "genome.fa.fai").stat().st_size > 0
        assert not (run_dir / "reference.fasta.fai").exists()
        log = (run_dir / "logs" / "call-small-variants.log").read_text()
        assert f"--ref_fn={(run_dir / 'refs' / 'genome.fa').resolve()}" in log

    def test_tool_failure_halts_run(self, run_config, run_dir):
        """A failing tool stops the chain at its stage with the exit code and log."""
        run = run_pipeline(_config(run_config, run_dir, failing=["mosdepth"]))

        assert run.status is RunStatus.FAILED
        assert run.failed_stage == "depth"
        assert run.exit_codes["depth"] == 3
        assert isinstance(run.cause, ExternalToolError)
        assert "stub tool failure" in run.log_path.read_text()
        assert (run_dir / "minion_sorted.bam").is_file()
        assert not (run_dir / "clair3_output" / "merge_output.vcf.gz").exists()
        assert not (run_dir / "inversions_PASS.vcf").exists()
        assert "call-small-variants" not in run.exit_codes

    def test_all_reads_filtered_out(self, run_config, run_dir):
        """An empty filtered read file fails the filter stage."""
        (run_dir / "fastq_pass" / "part_1.fastq").unlink()

        run = run_pipeline(_config(run_config, run_dir))

        assert run.status is RunStatus.FAILED
        assert run.failed_stage == "filter"
        assert run.cause.reason == "empty"

    def test_cli_with_config_file(self, run_config, run_dir):
        """The CLI runs the chain from a configuration file and exits 0."""
        config_path = run_dir / "run.json"
        config_path.write_text(json.dumps(_config(run_config, run_dir)))

        with patch("minionpipe.cli.signal.signal"):
            assert cli.main(["-c", str(config_path), "--log-level", "DEBUG"]) == 0

        assert (run_dir / "inversions_PASS.vcf").is_file()
