# File: minionpipe/pipeline.py
# Location: minionpipe/minionpipe/pipeline.py

"""
Pipeline entry points.

This module wires the pieces together: configuration -> RunContext ->
stage catalog -> PipelineDriver. The CLI calls into it, and so can any other
program that wants to run the chain in-process.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .pipeline_core import PipelineDriver, PipelineRun, RunContext, Stage, StageRunner
from .pipeline_core.stage import describe_plan
from .stages import EXTERNAL_TOOL_ROLES, STAGE_CATALOG
from .validators import validate_external_tools, validate_work_dir_writable

logger = logging.getLogger("minionpipe")


def build_run_context(cfg: Dict[str, Any]) -> RunContext:
    """Build the immutable run context; raises ConfigError on invalid input."""
    context = RunContext.from_config(cfg)
    logger.info(
        f"Run context: work_dir={context.work_dir}, {len(context.input_files)} input file(s), "
        f"threads={context.threads}"
    )
    return context


def create_driver(
    context: RunContext,
    stages: Optional[Sequence[Stage]] = None,
    runner: Optional[StageRunner] = None,
) -> PipelineDriver:
    """Create a driver over the default catalog unless ``stages`` is given."""
    return PipelineDriver(context, STAGE_CATALOG if stages is None else stages, runner=runner)


def plan_pipeline(
    context: RunContext, stages: Optional[Sequence[Stage]] = None
) -> List[Tuple[str, List[List[str]]]]:
    """Return every stage's rendered commands without executing them."""
    return describe_plan(STAGE_CATALOG if stages is None else stages, context)


def run_pipeline(
    cfg: Dict[str, Any],
    check_tools: bool = False,
    runner: Optional[StageRunner] = None,
    stages: Optional[Sequence[Stage]] = None,
) -> PipelineRun:
    """
    Run the full chain for one working directory.

    Parameters
    ----------
    cfg : dict
        Loaded configuration with any overrides applied
    check_tools : bool
        Verify the external executables are on PATH before starting
    runner : StageRunner, optional
        Stage executor, injectable for tests
    stages : Sequence[Stage], optional
        Alternative catalog

    Returns
    -------
    PipelineRun
        Terminal run state (COMPLETE or FAILED)

    Raises
    ------
    ConfigError
        If the configuration or its input files are invalid
    ToolNotFoundError
        If ``check_tools`` is set and an executable is missing
    """
    context = build_run_context(cfg)
    validate_work_dir_writable(context)
    if check_tools:
        validate_external_tools(context, EXTERNAL_TOOL_ROLES)

    driver = create_driver(context, stages, runner)
    return driver.run()
