# File: minionpipe/validators.py
# Location: minionpipe/minionpipe/validators.py

"""
Validation module for minionpipe.

This module provides pre-flight checks that run after the RunContext is built
and before the first stage starts:
- the working directory accepts new files
- every external tool the catalog invokes can be found

These checks fail early with a clear message instead of letting the first
affected stage fail halfway through a run.
"""

import logging
import shutil
from typing import Iterable

from .pipeline_core.context import RunContext
from .pipeline_core.error_handling import ConfigError, ToolNotFoundError

logger = logging.getLogger("minionpipe")


def validate_work_dir_writable(context: RunContext) -> None:
    """
    Validate that artifacts can be created in the working directory.

    Raises
    ------
    ConfigError
        If a marker file cannot be created and removed.
    """
    marker = context.work_dir / ".minionpipe_write_test"
    try:
        marker.touch()
        marker.unlink()
    except OSError as e:
        raise ConfigError(f"Cannot write to working directory {context.work_dir}: {e}", "work_dir")


def validate_external_tools(context: RunContext, roles: Iterable[str]) -> None:
    """
    Validate that every tool role resolves to an executable.

    Parameters
    ----------
    context : RunContext
        Supplies the executable for each role.
    roles : Iterable[str]
        Tool roles used by the stage catalog.

    Raises
    ------
    ToolNotFoundError
        For the first executable that is not found.
    """
    for role in roles:
        executable = context.tool(role)
        if not shutil.which(executable):
            logger.error(f"Required tool not found in PATH: {executable} ({role})")
            raise ToolNotFoundError(executable)
        logger.debug(f"Found tool for '{role}': {executable}")
