"""
StageRunner - Executes one stage's external tools as child processes.

The runner renders a stage's command templates, launches each command with the
working directory as cwd, sends stderr (and stdout unless it is an artifact) to
the stage's log file, and blocks until the process exits. Success is decided by
exit status alone; output validation belongs to the ArtifactStore.
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, List, Optional

from .artifacts import ArtifactStore
from .context import RunContext
from .error_handling import (
    ExternalToolError,
    StageInterruptedError,
    StageSetupError,
    ToolNotFoundError,
)
from .stage import Stage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageResult:
    """Outcome of a stage whose commands all exited 0."""

    stage: str
    exit_code: int
    duration: float
    log_path: Path


class StageRunner:
    """Runs the commands of a stage sequentially, one child process at a time.

    Attributes
    ----------
    terminate_timeout : float
        Seconds to wait after SIGTERM before killing an interrupted child
    """

    def __init__(self, terminate_timeout: float = 10.0):
        """Initialize the stage runner.

        Parameters
        ----------
        terminate_timeout : float
            Grace period for an interrupted child before it is killed
        """
        self.terminate_timeout = terminate_timeout

    def run(self, stage: Stage, context: RunContext, store: ArtifactStore) -> StageResult:
        """Execute ``stage`` and return its result.

        Parameters
        ----------
        stage : Stage
            Stage to execute
        context : RunContext
            Run configuration
        store : ArtifactStore
            Source of the stage's input paths

        Returns
        -------
        StageResult
            Exit code 0, wall-clock duration and log location

        Raises
        ------
        ExternalToolError
            If a command exits non-zero; later commands are not started
        ToolNotFoundError
            If a command's executable cannot be launched
        StageInterruptedError
            If the run is interrupted while a child is running
        StageSetupError
            If the log or an output location cannot be created or opened
        UnresolvedArtifactError
            If an input's producing stage has not completed
        """
        inputs = store.lookup(stage, context)
        commands = stage.render_commands(context, inputs)

        log_path = context.log_path(stage.name)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            for path in stage.output_paths(context).values():
                path.parent.mkdir(parents=True, exist_ok=True)
            log = open(log_path, "w", encoding="utf-8")
        except OSError as e:
            raise StageSetupError(stage.name, e.filename or log_path, e.strerror or str(e))

        start_time = time.time()
        with log:
            for argv, stdout_path in commands:
                self._execute(stage.name, argv, stdout_path, context.work_dir, log, log_path)
        elapsed = time.time() - start_time

        return StageResult(stage=stage.name, exit_code=0, duration=elapsed, log_path=log_path)

    def _execute(
        self,
        stage_name: str,
        argv: List[str],
        stdout_path: Optional[Path],
        cwd: Path,
        log: IO[str],
        log_path: Path,
    ) -> None:
        """Run a single command to completion."""
        command_line = " ".join(argv)
        logger.debug(f"Stage '{stage_name}': running command: {command_line}")
        log.write(f"$ {command_line}\n")
        log.flush()

        try:
            stdout_handle = open(stdout_path, "wb") if stdout_path else None
        except OSError as e:
            log.write(f"cannot open {stdout_path}: {e}\n")
            raise StageSetupError(stage_name, stdout_path, e.strerror or str(e), log_path)

        try:
            try:
                process = subprocess.Popen(
                    argv,
                    cwd=str(cwd),
                    stdin=subprocess.DEVNULL,
                    stdout=stdout_handle if stdout_handle else log,
                    stderr=log,
                )
            except FileNotFoundError:
                log.write(f"executable not found: {argv[0]}\n")
                raise ToolNotFoundError(argv[0], stage_name, log_path)
            except PermissionError:
                log.write(f"executable not runnable: {argv[0]}\n")
                raise ToolNotFoundError(argv[0], stage_name, log_path)

            try:
                exit_code = process.wait()
            except KeyboardInterrupt:
                self._terminate(process, stage_name)
                log.write("interrupted; child process terminated\n")
                raise StageInterruptedError(stage_name, log_path)
        finally:
            if stdout_handle:
                stdout_handle.close()

        if exit_code != 0:
            logger.error(
                f"Stage '{stage_name}': command exited with status {exit_code}: {command_line}"
            )
            raise ExternalToolError(stage_name, exit_code, log_path, Path(argv[0]).name)

    def _terminate(self, process: subprocess.Popen, stage_name: str) -> None:
        """Stop an interrupted child, escalating to SIGKILL after the grace period."""
        logger.warning(f"Stage '{stage_name}': interrupt received, terminating child process")
        process.terminate()
        try:
            process.wait(timeout=self.terminate_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Stage '{stage_name}': child ignored SIGTERM, killing it")
            process.kill()
            process.wait()
