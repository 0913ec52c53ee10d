"""
Stage - Declarative definition of one step of the pipeline.

A stage is data, not behaviour: it names the artifacts it needs, the artifacts
it produces and the command templates that turn the former into the latter.
Executing it is the StageRunner's job; ordering it is the PipelineDriver's.
"""

import logging
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .context import RUN_INPUTS, ArtifactValue, RunContext
from .error_handling import UnresolvedArtifactError

logger = logging.getLogger(__name__)

_FORMATTER = string.Formatter()


@dataclass(frozen=True)
class Requirement:
    """A required input artifact and the stage that produces it.

    ``producer`` is None for artifacts supplied by the run configuration.
    """

    key: str
    producer: Optional[str] = None


def needs(key: str, producer: Optional[str] = None) -> Requirement:
    """Shorthand used by the stage catalog."""
    return Requirement(key, producer)


@dataclass(frozen=True)
class CommandTemplate:
    """One external-tool invocation.

    Attributes
    ----------
    tool : str
        Tool role, mapped to an executable by ``RunContext.tools``
    args : Tuple[str, ...]
        Argument tokens; ``{name}`` fields are filled from context parameters
        and artifact paths
    stdout : str, optional
        Artifact key that receives the process's standard output
    """

    tool: str
    args: Tuple[str, ...] = ()
    stdout: Optional[str] = None

    def fields(self) -> Set[str]:
        """Return every placeholder name used by this template."""
        names = set()
        for token in self.args:
            for _, name, _, _ in _FORMATTER.parse(token):
                if name:
                    names.add(name)
        if self.stdout:
            names.add(self.stdout)
        return names

    def render(self, executable: str, values: Mapping[str, object]) -> List[str]:
        """Build the concrete argument vector.

        A token consisting of exactly one placeholder bound to a tuple expands
        into one argument per element.
        """
        argv = [executable]
        for token in self.args:
            parsed = list(_FORMATTER.parse(token))
            if len(parsed) == 1 and parsed[0][0] == "" and parsed[0][1]:
                value = values[parsed[0][1]]
                if isinstance(value, (tuple, list)):
                    argv.extend(str(item) for item in value)
                    continue
            argv.append(token.format_map(values))
        return argv


@dataclass(frozen=True)
class Stage:
    """A single pipeline stage.

    Attributes
    ----------
    name : str
        Unique identifier used in logs, errors and the artifact store
    ordinal : int
        Position in the catalog
    commands : Tuple[CommandTemplate, ...]
        Invocations run in order; the first non-zero exit fails the stage
    inputs : Tuple[Requirement, ...]
        Required input artifacts
    outputs : Tuple[str, ...]
        Artifact keys this stage produces
    description : str
        Human-readable description for logging
    """

    name: str
    ordinal: int
    commands: Tuple[CommandTemplate, ...]
    inputs: Tuple[Requirement, ...] = ()
    outputs: Tuple[str, ...] = ()
    description: str = ""

    @property
    def dependencies(self) -> Set[str]:
        """Stage names that must complete before this stage."""
        return {req.producer for req in self.inputs if req.producer is not None}

    def output_paths(self, context: RunContext) -> Dict[str, Path]:
        """Return artifact key to fixed path for every declared output."""
        return {key: context.artifact_path(key) for key in self.outputs}

    def render_commands(
        self, context: RunContext, inputs: Mapping[str, ArtifactValue]
    ) -> List[Tuple[List[str], Optional[Path]]]:
        """Resolve the templates into argument vectors.

        Parameters
        ----------
        context : RunContext
            Supplies parameters, output paths and executables
        inputs : Mapping[str, ArtifactValue]
            Resolved input artifacts, as returned by ``ArtifactStore.lookup``

        Returns
        -------
        List[Tuple[List[str], Optional[Path]]]
            ``(argv, stdout_path)`` per command, in execution order
        """
        values: Dict[str, object] = dict(context.params())
        values.update(inputs)
        values.update(self.output_paths(context))

        rendered = []
        for command in self.commands:
            argv = command.render(context.tool(command.tool), values)
            stdout_path = context.artifact_path(command.stdout) if command.stdout else None
            rendered.append((argv, stdout_path))
        return rendered

    def __repr__(self) -> str:
        """Return string representation of the stage."""
        deps = f", depends_on={sorted(self.dependencies)}" if self.dependencies else ""
        return f"Stage(name='{self.name}', ordinal={self.ordinal}{deps})"


def validate_catalog(
    stages: Sequence[Stage], param_names: Optional[Iterable[str]] = None
) -> None:
    """Check the ordering invariants of a stage catalog.

    Parameters
    ----------
    stages : Sequence[Stage]
        Catalog in execution order
    param_names : Iterable[str], optional
        Placeholder names supplied by the context; when omitted only artifact
        placeholders are checked

    Raises
    ------
    ValueError
        If stage names repeat or ordinals are not ``0..n-1`` in list order
    UnresolvedArtifactError
        If a stage needs an artifact no strictly earlier stage declares, or a
        template references something the stage neither needs nor produces
    """
    names = [stage.name for stage in stages]
    if len(set(names)) != len(names):
        raise ValueError("Duplicate stage names detected")

    produced_by: Dict[str, str] = {}
    for position, stage in enumerate(stages):
        if stage.ordinal != position:
            raise ValueError(
                f"Stage '{stage.name}' has ordinal {stage.ordinal} but sits at position {position}"
            )
        for req in stage.inputs:
            if req.producer is None:
                if req.key not in RUN_INPUTS:
                    raise UnresolvedArtifactError(
                        stage.name, req.key, f"Stage '{stage.name}' needs unknown run input '{req.key}'"
                    )
                continue
            if produced_by.get(req.key) != req.producer:
                raise UnresolvedArtifactError(
                    stage.name,
                    req.producer,
                    f"Stage '{stage.name}' needs '{req.key}' from '{req.producer}', "
                    f"which is not produced by an earlier stage",
                )

        allowed = {req.key for req in stage.inputs} | set(stage.outputs)
        if param_names is not None:
            allowed |= set(param_names)
            referenced = set()
            for command in stage.commands:
                referenced |= command.fields()
            unknown = referenced - allowed
            if unknown:
                raise UnresolvedArtifactError(
                    stage.name,
                    ", ".join(sorted(unknown)),
                    f"Stage '{stage.name}' references undeclared value(s): {sorted(unknown)}",
                )

        for key in stage.outputs:
            if key in produced_by or key in RUN_INPUTS:
                raise ValueError(f"Artifact '{key}' is produced more than once")
            produced_by[key] = stage.name


def describe_plan(
    stages: Sequence[Stage], context: RunContext
) -> List[Tuple[str, List[List[str]]]]:
    """Render every stage's commands without running anything.

    Inputs are the fixed artifact paths, which is what a successful run would
    record.
    """
    provided = context.run_inputs()
    plan = []
    for stage in stages:
        inputs = {
            req.key: provided[req.key] if req.producer is None else context.artifact_path(req.key)
            for req in stage.inputs
        }
        commands = stage.render_commands(context, inputs)
        plan.append((stage.name, [argv for argv, _ in commands]))
    return plan
