"""Unit tests for StageRunner."""

import subprocess
import sys
from unittest.mock import Mock, patch

import pytest

from minionpipe.pipeline_core import ArtifactStore, CommandTemplate, RunContext, Stage, StageRunner
from minionpipe.pipeline_core.error_handling import (
    ExternalToolError,
    StageInterruptedError,
    StageSetupError,
    ToolNotFoundError,
)


def _script(path, body):
    path.write_text(body)
    return str(path)


def _stage(*commands, outputs=("merged_reads",)):
    return Stage(name="emit", ordinal=0, commands=tuple(commands), outputs=tuple(outputs))


class TestStageRunner:
    """Test suite for StageRunner."""

    @pytest.fixture
    def runner(self):
        """Create a runner with a short termination grace period."""
        return StageRunner(terminate_timeout=0.5)

    @pytest.fixture
    def store(self):
        """Create an empty artifact store."""
        return ArtifactStore()

    def test_stdout_artifact_and_log(self, runner, store, context, tmp_path):
        """Stdout goes to the artifact, stderr and the command line to the log."""
        script = _script(
            tmp_path / "emit.py",
            "import sys\nsys.stdout.write('payload\\n')\nsys.stderr.write('progress\\n')\n",
        )
        stage = _stage(CommandTemplate("python", (script,), stdout="merged_reads"))

        result = runner.run(stage, context, store)

        assert result.exit_code == 0
        assert result.stage == "emit"
        assert result.log_path == context.log_path("emit")
        assert context.artifact_path("merged_reads").read_text() == "payload\n"
        log = result.log_path.read_text()
        assert f"$ {context.tool('python')} {script}" in log
        assert "progress" in log

    def test_runs_in_work_dir(self, runner, store, context, tmp_path):
        """Children start with the working directory as cwd."""
        script = _script(tmp_path / "cwd.py", "import os\nprint(os.getcwd())\n")
        stage = _stage(CommandTemplate("python", (script,), stdout="merged_reads"))

        runner.run(stage, context, store)

        assert context.artifact_path("merged_reads").read_text().strip() == str(context.work_dir)

    def test_nonzero_exit(self, runner, store, context, tmp_path):
        """A non-zero exit raises ExternalToolError and later commands never start."""
        failing = _script(
            tmp_path / "fail.py", "import sys\nsys.stderr.write('boom\\n')\nsys.exit(4)\n"
        )
        marker = tmp_path / "second_ran"
        second = _script(tmp_path / "second.py", f"open({str(marker)!r}, 'w').close()\n")
        stage = _stage(CommandTemplate("python", (failing,)), CommandTemplate("python", (second,)))

        with pytest.raises(ExternalToolError) as exc_info:
            runner.run(stage, context, store)

        error = exc_info.value
        assert error.exit_code == 4
        assert error.stage == "emit"
        assert error.log_path == context.log_path("emit")
        assert "boom" in error.log_path.read_text()
        assert not marker.exists()

    def test_missing_executable(self, runner, store, run_config, tmp_path):
        """An executable that cannot be launched maps to ToolNotFoundError."""
        run_config["tools"] = {"python": str(tmp_path / "no_such_python")}
        context = RunContext.from_config(run_config)
        stage = _stage(CommandTemplate("python", ("-V",)))

        with pytest.raises(ToolNotFoundError) as exc_info:
            runner.run(stage, context, store)

        assert exc_info.value.exit_code == 127
        assert "not found" in context.log_path("emit").read_text()

    def test_interrupt_terminates_child(self, runner, store, context):
        """An interrupt while waiting terminates the child and fails the stage."""
        process = Mock()
        process.wait.side_effect = [KeyboardInterrupt(), 0]
        stage = _stage(CommandTemplate("python", ("-V",)))

        with patch("minionpipe.pipeline_core.runner.subprocess.Popen", return_value=process):
            with pytest.raises(StageInterruptedError) as exc_info:
                runner.run(stage, context, store)

        process.terminate.assert_called_once()
        process.kill.assert_not_called()
        assert exc_info.value.stage == "emit"

    def test_interrupt_kills_stubborn_child(self, runner, store, context):
        """A child that ignores SIGTERM is killed after the grace period."""
        process = Mock()
        process.wait.side_effect = [
            KeyboardInterrupt(),
            subprocess.TimeoutExpired(sys.executable, 0.5),
            -9,
        ]
        stage = _stage(CommandTemplate("python", ("-V",)))

        with patch("minionpipe.pipeline_core.runner.subprocess.Popen", return_value=process):
            with pytest.raises(StageInterruptedError):
                runner.run(stage, context, store)

        process.terminate.assert_called_once()
        process.kill.assert_called_once()

    def test_stdout_artifact_is_directory(self, runner, store, context):
        """An output location that cannot be opened fails the stage without a launch."""
        context.artifact_path("merged_reads").mkdir()
        stage = _stage(CommandTemplate("python", ("-V",), stdout="merged_reads"))

        with patch("minionpipe.pipeline_core.runner.subprocess.Popen") as popen:
            with pytest.raises(StageSetupError) as exc_info:
                runner.run(stage, context, store)

        popen.assert_not_called()
        error = exc_info.value
        assert error.stage == "emit"
        assert error.path == context.artifact_path("merged_reads")
        assert error.log_path == context.log_path("emit")
        assert "cannot open" in error.log_path.read_text()

    def test_log_dir_blocked(self, runner, store, context):
        """A log directory that cannot be created fails the stage."""
        context.log_dir.write_text("not a directory\n")
        stage = _stage(CommandTemplate("python", ("-V",)))

        with pytest.raises(StageSetupError) as exc_info:
            runner.run(stage, context, store)

        assert exc_info.value.stage == "emit"
