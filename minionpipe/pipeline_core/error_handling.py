"""
Error taxonomy for the staged pipeline.

Every error raised by the orchestration core derives from PipelineError and
carries the stage it is attributed to plus a details dictionary. None of these
errors is recovered locally: the driver turns the first one into a FAILED run.
"""

from pathlib import Path
from typing import Dict, Optional, Union


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, stage: Optional[str] = None, details: Optional[Dict] = None):
        """Initialize pipeline error.

        Parameters
        ----------
        message : str
            Error message
        stage : str, optional
            Stage where error occurred
        details : dict, optional
            Additional error details
        """
        super().__init__(message)
        self.stage = stage
        self.details = details or {}


class ConfigError(PipelineError):
    """Raised when the run configuration or its input files are invalid."""

    def __init__(self, message: str, field: Optional[str] = None):
        """Initialize configuration error."""
        super().__init__(message, None, {"field": field} if field else {})
        self.field = field


class ExternalToolError(PipelineError):
    """Raised when an external tool exits with a non-zero status."""

    def __init__(
        self,
        stage: str,
        exit_code: int,
        log_path: Optional[Union[str, Path]] = None,
        tool: Optional[str] = None,
    ):
        """Initialize external tool error."""
        where = f" (see {log_path})" if log_path else ""
        label = f"'{tool}' " if tool else ""
        message = f"Stage '{stage}': tool {label}exited with status {exit_code}{where}"
        super().__init__(
            message,
            stage,
            {"exit_code": exit_code, "log_path": str(log_path) if log_path else None, "tool": tool},
        )
        self.exit_code = exit_code
        self.log_path = Path(log_path) if log_path else None
        self.tool = tool


class ToolNotFoundError(ExternalToolError):
    """Raised when a required external tool cannot be launched."""

    # Shell convention for "command not found"
    EXIT_CODE = 127

    def __init__(
        self,
        tool: str,
        stage: Optional[str] = None,
        log_path: Optional[Union[str, Path]] = None,
    ):
        """Initialize tool not found error."""
        PipelineError.__init__(
            self,
            f"Required tool '{tool}' not found in PATH",
            stage,
            {
                "tool": tool,
                "exit_code": self.EXIT_CODE,
                "log_path": str(log_path) if log_path else None,
            },
        )
        self.exit_code = self.EXIT_CODE
        self.log_path = Path(log_path) if log_path else None
        self.tool = tool


class StageInterruptedError(PipelineError):
    """Raised when a stage's child process is terminated by an interrupt."""

    def __init__(self, stage: str, log_path: Optional[Union[str, Path]] = None):
        """Initialize interruption error."""
        super().__init__(
            f"Stage '{stage}' interrupted; child process terminated",
            stage,
            {"log_path": str(log_path) if log_path else None},
        )
        self.log_path = Path(log_path) if log_path else None


class StageSetupError(PipelineError):
    """Raised when a stage's log or output location cannot be prepared."""

    def __init__(
        self,
        stage: str,
        path: Union[str, Path],
        reason: str,
        log_path: Optional[Union[str, Path]] = None,
    ):
        """Initialize stage setup error."""
        super().__init__(
            f"Stage '{stage}': cannot prepare {path}: {reason}",
            stage,
            {"path": str(path), "reason": reason, "log_path": str(log_path) if log_path else None},
        )
        self.path = Path(path)
        self.reason = reason
        self.log_path = Path(log_path) if log_path else None


class ArtifactValidationError(PipelineError):
    """Raised when a declared artifact is missing or empty."""

    def __init__(self, stage: str, path: Union[str, Path], reason: str):
        """Initialize artifact validation error."""
        super().__init__(
            f"Stage '{stage}': artifact {path} is {reason}",
            stage,
            {"path": str(path), "reason": reason},
        )
        self.path = Path(path)
        self.reason = reason


class UnresolvedArtifactError(PipelineError):
    """Raised when a stage asks for outputs of a stage that has not completed."""

    def __init__(self, stage: Optional[str], requested: str, message: Optional[str] = None):
        """Initialize unresolved artifact error."""
        if message is None:
            message = f"Stage '{stage}' requested outputs of '{requested}', which has not completed"
        super().__init__(message, stage, {"requested": requested})
        self.requested = requested


class FileFormatError(PipelineError):
    """Raised when a file has an invalid format."""

    def __init__(self, file_path: str, expected_format: str, stage: Optional[str] = None):
        """Initialize file format error."""
        message = f"Invalid file format for {file_path}. Expected: {expected_format}"
        super().__init__(message, stage, {"file": file_path, "expected_format": expected_format})


def check_artifact(path: Union[str, Path]) -> Optional[str]:
    """Return why ``path`` fails the artifact predicate, or None if it passes.

    The predicate is: exists, is a regular file, has size > 0.
    """
    path = Path(path)
    if not path.exists():
        return "missing"
    if not path.is_file():
        return "not a regular file"
    if path.stat().st_size == 0:
        return "empty"
    return None
