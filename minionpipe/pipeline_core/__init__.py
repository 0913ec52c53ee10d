"""
Pipeline infrastructure for minionpipe.

This package provides the core abstractions of the staged workflow engine:
- RunContext: Immutable run configuration and fixed artifact names
- Stage: Declarative stage definition with command templates
- ArtifactStore: Validates and resolves the files stages hand to each other
- StageRunner: Executes a stage's external tools as child processes
- PipelineDriver: Linear state machine that walks the stage catalog
"""

from .artifacts import Artifact, ArtifactStore
from .context import RunContext
from .driver import PipelineDriver, PipelineRun, RunStatus
from .runner import StageResult, StageRunner
from .stage import CommandTemplate, Requirement, Stage, needs, validate_catalog

__all__ = [
    "Artifact",
    "ArtifactStore",
    "CommandTemplate",
    "PipelineDriver",
    "PipelineRun",
    "Requirement",
    "RunContext",
    "RunStatus",
    "Stage",
    "StageResult",
    "StageRunner",
    "needs",
    "validate_catalog",
]
