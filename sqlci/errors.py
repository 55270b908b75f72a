"""Failure taxonomy for cmdlet invocations."""
from __future__ import annotations


class InvocationError(RuntimeError):
    """Base class for failures raised while invoking the external cmdlet."""


class ResourceStagingError(InvocationError):
    """Raised when a bundled resource cannot be copied into the working directory."""

    def __init__(self, resource_name: str, reason: str):
        super().__init__(f"Unable to stage resource '{resource_name}': {reason}")
        self.resource_name = resource_name


class EnvironmentRetrievalError(InvocationError):
    """Raised by host environment providers; always absorbed during assembly."""


class ProcessLaunchError(InvocationError):
    """Raised when the interpreter process cannot be started."""

    def __init__(self, command_line: str, reason: str):
        super().__init__(f"Unable to launch '{command_line}': {reason}")
        self.command_line = command_line


class ProcessInterruptedError(InvocationError):
    """Raised when the thread waiting on the interpreter is interrupted.

    The child process is left running; ``pid`` identifies it for callers that
    want to manage it themselves.
    """

    def __init__(self, pid: int | None):
        super().__init__(f"Interrupted while waiting for process {pid}")
        self.pid = pid


class NonZeroExitError(InvocationError):
    """Attached to a failed :class:`InvocationResult` for a nonzero exit code.

    The orchestrator never raises it; :meth:`InvocationResult.raise_for_failure` does.
    """

    def __init__(self, command_line: str, returncode: int):
        super().__init__(f"Command failed with exit code {returncode}: {command_line}")
        self.command_line = command_line
        self.returncode = returncode


__all__ = [
    "EnvironmentRetrievalError",
    "InvocationError",
    "NonZeroExitError",
    "ProcessInterruptedError",
    "ProcessLaunchError",
    "ResourceStagingError",
]
