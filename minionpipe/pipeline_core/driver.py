"""
PipelineDriver - Linear state machine that walks the stage catalog.

States are INIT, RUNNING(i), FAILED(i, cause) and COMPLETE. Each call to
``step`` performs exactly one transition; ``run`` steps until a terminal state.
A stage advances only when its process exits 0 *and* every declared output
validates, so success is proven by the artifacts rather than assumed.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .artifacts import ArtifactStore
from .context import RunContext
from .error_handling import (
    ExternalToolError,
    PipelineError,
    StageInterruptedError,
    StageSetupError,
)
from .runner import StageResult, StageRunner
from .stage import Stage, validate_catalog

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    """Lifecycle status of a pipeline run."""

    INIT = "INIT"
    RUNNING = "RUNNING"
    FAILED = "FAILED"
    COMPLETE = "COMPLETE"


@dataclass
class PipelineRun:
    """In-memory record of one run; mutated only by the driver, never persisted.

    Attributes
    ----------
    status : RunStatus
        Current state
    stage_index : int, optional
        Index of the running or failed stage; None in INIT and COMPLETE
    exit_codes : Dict[str, int]
        Exit code per attempted stage, in execution order
    results : List[StageResult]
        Results of stages that completed
    failed_stage : str, optional
        Name of the stage that failed
    cause : PipelineError, optional
        Error that moved the run to FAILED
    """

    status: RunStatus = RunStatus.INIT
    stage_index: Optional[int] = None
    exit_codes: Dict[str, int] = field(default_factory=OrderedDict)
    results: List[StageResult] = field(default_factory=list)
    failed_stage: Optional[str] = None
    cause: Optional[PipelineError] = None
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    @property
    def is_terminal(self) -> bool:
        """True once the run is FAILED or COMPLETE."""
        return self.status in (RunStatus.FAILED, RunStatus.COMPLETE)

    @property
    def log_path(self) -> Optional[Path]:
        """Log of the failed stage, if the cause carries one."""
        return getattr(self.cause, "log_path", None)

    def describe(self) -> str:
        """Return a one-line summary of the run state."""
        if self.status is RunStatus.FAILED:
            exit_code = self.exit_codes.get(self.failed_stage)
            parts = [f"FAILED at stage '{self.failed_stage}'"]
            if exit_code is not None:
                parts.append(f"exit code {exit_code}")
            if self.log_path:
                parts.append(f"log {self.log_path}")
            parts.append(f"{type(self.cause).__name__}: {self.cause}")
            return "; ".join(parts)
        if self.status is RunStatus.RUNNING:
            return f"RUNNING stage {self.stage_index}"
        return self.status.value


class PipelineDriver:
    """Walks the stage catalog one stage at a time, halting on the first failure.

    Parameters
    ----------
    context : RunContext
        Run configuration shared by every stage
    stages : Sequence[Stage]
        Catalog in execution order; validated on construction
    runner : StageRunner, optional
        Executes a stage; inject a fake for tests
    store : ArtifactStore, optional
        Records validated outputs
    """

    def __init__(
        self,
        context: RunContext,
        stages: Sequence[Stage],
        runner: Optional[StageRunner] = None,
        store: Optional[ArtifactStore] = None,
    ):
        validate_catalog(stages, context.params().keys())
        self.context = context
        self.stages = list(stages)
        self.runner = runner or StageRunner()
        self.store = store if store is not None else ArtifactStore()
        self.run_state = PipelineRun()

    @property
    def status(self) -> RunStatus:
        """Current state of the run."""
        return self.run_state.status

    @property
    def current_stage(self) -> Optional[Stage]:
        """Stage that the next ``step`` will execute, or the one that failed."""
        index = self.run_state.stage_index
        if index is None:
            return None
        return self.stages[index]

    def step(self) -> RunStatus:
        """Perform exactly one state transition.

        Returns
        -------
        RunStatus
            State after the transition

        Raises
        ------
        RuntimeError
            If the run is already FAILED or COMPLETE
        """
        run = self.run_state
        if run.is_terminal:
            raise RuntimeError(f"Pipeline run already finished: {run.describe()}")

        if run.status is RunStatus.INIT:
            logger.info(f"Starting pipeline run with {len(self.stages)} stages")
            run.started_at = time.time()
            if not self.stages:
                self._finish(RunStatus.COMPLETE)
            else:
                run.status = RunStatus.RUNNING
                run.stage_index = 0
            return run.status

        index = run.stage_index
        stage = self.stages[index]
        logger.info(f"Executing stage {index + 1}/{len(self.stages)} '{stage.name}'")
        start_time = time.time()
        try:
            self.store.verify_inputs(stage, self.context)
            result = self.runner.run(stage, self.context, self.store)
            run.exit_codes[stage.name] = result.exit_code
            self.store.record(stage.name, stage.output_paths(self.context))
        except ExternalToolError as e:
            run.exit_codes[stage.name] = e.exit_code
            return self._fail(index, e, time.time() - start_time)
        except PipelineError as e:
            return self._fail(index, e, time.time() - start_time)
        except OSError as e:
            cause = StageSetupError(
                stage.name, e.filename or self.context.work_dir, e.strerror or str(e)
            )
            return self._fail(index, cause, time.time() - start_time)
        except KeyboardInterrupt:
            # Interrupt landed outside the child wait (e.g. during validation)
            return self._fail(
                index, StageInterruptedError(stage.name), time.time() - start_time
            )

        run.results.append(result)
        logger.info(f"Stage '{stage.name}' completed successfully in {result.duration:.1f}s")

        if index == len(self.stages) - 1:
            self._finish(RunStatus.COMPLETE)
        else:
            run.stage_index = index + 1
        return run.status

    def run(self) -> PipelineRun:
        """Step until the run is FAILED or COMPLETE.

        Stage failures do not raise; they are reported on the returned run.
        """
        while not self.run_state.is_terminal:
            self.step()

        total_time = self.run_state.finished_at - self.run_state.started_at
        if self.run_state.status is RunStatus.COMPLETE:
            logger.info(f"Pipeline execution completed in {total_time:.1f}s")
        else:
            logger.error(f"Pipeline execution {self.run_state.describe()}")
        self._log_execution_summary()
        return self.run_state

    def _fail(self, index: int, cause: PipelineError, elapsed: float) -> RunStatus:
        stage = self.stages[index]
        logger.error(f"Stage '{stage.name}' failed after {elapsed:.1f}s: {cause}")
        self.run_state.failed_stage = stage.name
        self.run_state.cause = cause
        self._finish(RunStatus.FAILED)
        return self.run_state.status

    def _finish(self, status: RunStatus) -> None:
        self.run_state.status = status
        self.run_state.finished_at = time.time()
        if status is RunStatus.COMPLETE:
            self.run_state.stage_index = None

    def _log_execution_summary(self) -> None:
        """Log summary of stage execution times."""
        results = self.run_state.results
        if not results:
            return

        logger.info("=" * 60)
        logger.info("Stage Execution Summary")
        logger.info("=" * 60)

        total_time = sum(result.duration for result in results)
        for result in sorted(results, key=lambda r: r.duration, reverse=True):
            percentage = (result.duration / total_time) * 100 if total_time > 0 else 0
            logger.info(f"{result.stage:30s} {result.duration:6.1f}s ({percentage:4.1f}%)")

        logger.info("-" * 60)
        logger.info(f"{'Total stage time:':30s} {total_time:6.1f}s")
        logger.info("=" * 60)
