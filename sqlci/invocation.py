"""Stage, build, assemble and run: one cmdlet invocation per call."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Mapping
import threading

from .command_line import CommandLineBuilder
from .command_runner import ProcessRunner, SubprocessProcessRunner
from .console import BuildListener, Console
from .environment import EnvironmentAssembler, HostEnvironment, process_environment
from .errors import (
    InvocationError,
    NonZeroExitError,
    ProcessInterruptedError,
    ProcessLaunchError,
    ResourceStagingError,
)
from .resources import ArchiveResourceBundle, PackageResourceBundle, ResourceStager
from .settings import InvocationSettings


class InvocationState(str, Enum):
    STAGING = "staging"
    BUILDING = "building"
    ASSEMBLING = "assembling"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(str, Enum):
    RESOURCE_STAGING = "resource-staging"
    PROCESS_LAUNCH = "process-launch"
    PROCESS_INTERRUPTED = "process-interrupted"
    NON_ZERO_EXIT = "non-zero-exit"


@dataclass(slots=True, frozen=True)
class InvocationResult:
    """Outcome of a single invocation.

    ``bool(result)`` is ``True`` only when the process exited with code zero.
    ``failed_during`` names the state the pipeline was in when it failed.
    """

    state: InvocationState
    reason: FailureReason | None = None
    failed_during: InvocationState | None = None
    exit_code: int | None = None
    command_line: str | None = None
    message: str = ""
    error: InvocationError | None = field(default=None, compare=False)

    @property
    def succeeded(self) -> bool:
        return self.state is InvocationState.SUCCEEDED

    def __bool__(self) -> bool:
        return self.succeeded

    def raise_for_failure(self) -> None:
        if self.error is not None:
            raise self.error


@dataclass(slots=True)
class HostContext:
    """What the build host supplies to an invocation."""

    workspace: Path
    build_variables: Mapping[str, str] = field(default_factory=dict)
    environment: HostEnvironment = process_environment
    console: BuildListener = field(default_factory=Console)
    interrupt: threading.Event | None = None


class InvocationOrchestrator:
    """Runs the bundled PowerShell runner script with the given parameters."""

    def __init__(
        self,
        settings: InvocationSettings,
        *,
        builder: CommandLineBuilder | None = None,
        assembler: EnvironmentAssembler | None = None,
        stager: ResourceStager | None = None,
        runner: ProcessRunner | None = None,
    ) -> None:
        self._settings = settings
        self._builder = builder or CommandLineBuilder()
        self._assembler = assembler
        self._stager = stager or ResourceStager(self._default_bundle(settings))
        self._runner = runner or SubprocessProcessRunner()

    @staticmethod
    def _default_bundle(settings: InvocationSettings) -> ArchiveResourceBundle | PackageResourceBundle:
        if settings.bundle is not None:
            return ArchiveResourceBundle(settings.bundle)
        return PackageResourceBundle()

    @property
    def settings(self) -> InvocationSettings:
        return self._settings

    def execute(
        self,
        working_dir: Path | None,
        parameters: Iterable[str],
        resources: Iterable[str] | None,
        host: HostContext,
    ) -> InvocationResult:
        console = host.console
        cwd = Path(working_dir) if working_dir is not None else host.workspace
        primary = self._settings.primary_resource
        to_stage: List[str] = list(self._settings.resources if resources is None else resources)
        if primary not in to_stage:
            to_stage.insert(0, primary)

        state = InvocationState.STAGING
        command_line: str | None = None
        try:
            staged: Dict[str, Path] = {}
            for name in to_stage:
                staged[name] = self._stager.stage(cwd, name)
                console.debug(f"Staged {name} to {staged[name]}")

            state = InvocationState.BUILDING
            command_line = self._builder.build(self._settings.interpreter, str(staged[primary]), parameters)
            console.debug(f"Command line: {command_line}")

            state = InvocationState.ASSEMBLING
            assembler = self._assembler or EnvironmentAssembler(console)
            build_variables = {**self._settings.build_variables, **host.build_variables}
            env = assembler.assemble(build_variables, host.environment, self._settings.marker)

            state = InvocationState.RUNNING
            exit_code = self._runner.run(
                command_line,
                env=env,
                cwd=cwd,
                stdout=console.stdout,
                stderr=console.stderr,
                interrupt=host.interrupt,
            )
        except (ResourceStagingError, ProcessLaunchError) as exc:
            reason = (
                FailureReason.RESOURCE_STAGING
                if isinstance(exc, ResourceStagingError)
                else FailureReason.PROCESS_LAUNCH
            )
            message = f"Unexpected I/O exception executing cmdlet: {exc}"
            console.error(message)
            return self._failed(reason, state, command_line, message, exc)
        except ProcessInterruptedError as exc:
            message = "Unexpected thread interruption executing cmdlet"
            console.error(message)
            return self._failed(FailureReason.PROCESS_INTERRUPTED, state, command_line, message, exc)

        if exit_code != 0:
            message = f"Cmdlet exited with code {exit_code}"
            console.error(message)
            return self._failed(
                FailureReason.NON_ZERO_EXIT,
                state,
                command_line,
                message,
                NonZeroExitError(command_line, exit_code),
                exit_code=exit_code,
            )

        return InvocationResult(
            state=InvocationState.SUCCEEDED,
            exit_code=exit_code,
            command_line=command_line,
        )

    @staticmethod
    def _failed(
        reason: FailureReason,
        during: InvocationState,
        command_line: str | None,
        message: str,
        error: InvocationError,
        *,
        exit_code: int | None = None,
    ) -> InvocationResult:
        return InvocationResult(
            state=InvocationState.FAILED,
            reason=reason,
            failed_during=during,
            exit_code=exit_code,
            command_line=command_line,
            message=message,
            error=error,
        )


__all__ = [
    "FailureReason",
    "HostContext",
    "InvocationOrchestrator",
    "InvocationResult",
    "InvocationState",
]
