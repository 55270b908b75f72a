"""Invoke SQL Change Automation PowerShell cmdlets from build pipeline steps."""

from .command_line import CommandLineBuilder, render_parameter
from .command_runner import ProcessRunner, RecordingProcessRunner, SubprocessProcessRunner
from .console import BuildListener, Console
from .environment import MARKER_VALUE, MARKER_VARIABLE, EnvironmentAssembler
from .errors import (
    EnvironmentRetrievalError,
    InvocationError,
    NonZeroExitError,
    ProcessInterruptedError,
    ProcessLaunchError,
    ResourceStagingError,
)
from .invocation import FailureReason, HostContext, InvocationOrchestrator, InvocationResult, InvocationState
from .parameters import (
    ProductVersionOption,
    SqlChangeAutomationVersionOption,
    add_product_version_parameter,
    construct_package_file_name,
)
from .resources import ArchiveResourceBundle, PackageResourceBundle, ResourceStager
from .settings import InvocationSettings, load_settings, resolve_interpreter

__all__ = [
    "ArchiveResourceBundle",
    "BuildListener",
    "CommandLineBuilder",
    "Console",
    "EnvironmentAssembler",
    "EnvironmentRetrievalError",
    "FailureReason",
    "HostContext",
    "InvocationError",
    "InvocationOrchestrator",
    "InvocationResult",
    "InvocationSettings",
    "InvocationState",
    "MARKER_VALUE",
    "MARKER_VARIABLE",
    "NonZeroExitError",
    "PackageResourceBundle",
    "ProcessInterruptedError",
    "ProcessLaunchError",
    "ProcessRunner",
    "ProductVersionOption",
    "RecordingProcessRunner",
    "ResourceStagingError",
    "SqlChangeAutomationVersionOption",
    "SubprocessProcessRunner",
    "add_product_version_parameter",
    "construct_package_file_name",
    "load_settings",
    "render_parameter",
    "resolve_interpreter",
]
