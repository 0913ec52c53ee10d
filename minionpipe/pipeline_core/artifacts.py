"""
ArtifactStore - Records and resolves the files each stage produces.

Stages communicate only through files. The store accepts a stage's outputs
once they pass the artifact predicate (exists, regular file, size > 0) and hands
them to later stages. Asking for outputs of a stage that has not completed is
an ordering bug and raises UnresolvedArtifactError.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Union

from .error_handling import ArtifactValidationError, UnresolvedArtifactError, check_artifact

if TYPE_CHECKING:
    from .context import ArtifactValue, RunContext
    from .stage import Stage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    """A named file and the stage that produces it.

    ``producer`` is None for files supplied by the run configuration.
    """

    key: str
    path: Path
    producer: Optional[str] = None

    def problem(self) -> Optional[str]:
        """Return why the file fails the artifact predicate, or None."""
        return check_artifact(self.path)


class ArtifactStore:
    """In-memory registry of validated stage outputs for a single run."""

    def __init__(self):
        """Initialize an empty store."""
        self._records: "OrderedDict[str, Dict[str, Artifact]]" = OrderedDict()

    def record(self, stage_name: str, outputs: Mapping[str, Union[str, Path]]) -> Dict[str, Path]:
        """Validate and record the outputs of a stage whose process exited 0.

        Parameters
        ----------
        stage_name : str
            Stage that produced the outputs
        outputs : Mapping[str, Path]
            Artifact key to path for every declared output

        Returns
        -------
        Dict[str, Path]
            The recorded outputs

        Raises
        ------
        ArtifactValidationError
            If any declared output is missing or empty; nothing is recorded
        ValueError
            If the stage was already recorded in this run
        """
        if stage_name in self._records:
            raise ValueError(f"Outputs of stage '{stage_name}' were already recorded")

        artifacts = {
            key: Artifact(key=key, path=Path(path), producer=stage_name)
            for key, path in outputs.items()
        }
        for artifact in artifacts.values():
            problem = artifact.problem()
            if problem:
                raise ArtifactValidationError(stage_name, artifact.path, problem)

        self._records[stage_name] = artifacts
        logger.debug(f"Recorded {len(artifacts)} artifact(s) for stage '{stage_name}'")
        return {key: artifact.path for key, artifact in artifacts.items()}

    def resolve(self, stage_name: str, requester: Optional[str] = None) -> Dict[str, Path]:
        """Return the recorded outputs of a completed stage.

        Raises
        ------
        UnresolvedArtifactError
            If ``stage_name`` has not completed in this run
        """
        if stage_name not in self._records:
            raise UnresolvedArtifactError(requester, stage_name)
        return {key: artifact.path for key, artifact in self._records[stage_name].items()}

    def is_complete(self, stage_name: str) -> bool:
        """Check whether a stage's outputs have been recorded."""
        return stage_name in self._records

    def completed_stages(self) -> List[str]:
        """Return recorded stage names in completion order."""
        return list(self._records)

    def lookup(self, stage: "Stage", context: "RunContext") -> Dict[str, "ArtifactValue"]:
        """Resolve every declared input of ``stage`` to its path(s).

        Run inputs come from the context; produced inputs are resolved through
        :meth:`resolve`, so an input from a stage that has not completed raises
        UnresolvedArtifactError.
        """
        provided = context.run_inputs()
        values: Dict[str, "ArtifactValue"] = {}
        for requirement in stage.inputs:
            if requirement.producer is None:
                values[requirement.key] = provided[requirement.key]
                continue
            outputs = self.resolve(requirement.producer, requester=stage.name)
            if requirement.key not in outputs:
                raise UnresolvedArtifactError(
                    stage.name,
                    requirement.producer,
                    f"Stage '{stage.name}' requested '{requirement.key}', which stage "
                    f"'{requirement.producer}' does not produce",
                )
            values[requirement.key] = outputs[requirement.key]
        return values

    def verify_inputs(self, stage: "Stage", context: "RunContext") -> Dict[str, "ArtifactValue"]:
        """Re-check every required input of ``stage`` right before it launches.

        Raises
        ------
        ArtifactValidationError
            Attributed to ``stage`` if an input went missing or empty after it
            was recorded
        UnresolvedArtifactError
            If an input's producer has not completed
        """
        values = self.lookup(stage, context)
        for key, value in values.items():
            paths = value if isinstance(value, tuple) else (value,)
            for path in paths:
                problem = check_artifact(path)
                if problem:
                    raise ArtifactValidationError(stage.name, path, f"{problem} (input '{key}')")
        return values

    def __len__(self) -> int:
        """Return the number of completed stages."""
        return len(self._records)

    def __repr__(self) -> str:
        """Return string representation of the store."""
        return f"ArtifactStore(completed={self.completed_stages()})"
