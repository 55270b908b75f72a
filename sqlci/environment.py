"""Environment assembly for the cmdlet process."""
from __future__ import annotations

from typing import Callable, Dict, Mapping, Tuple, Union
import os

from .console import BuildListener
from .errors import EnvironmentRetrievalError

MARKER_VARIABLE = "REDGATE_FUR_ENVIRONMENT"
MARKER_VALUE = "Jenkins Plugin"

HostEnvironment = Union[Mapping[str, str], Callable[[], Mapping[str, str]], None]
"""Either a ready mapping or a provider that may fail to produce one."""


def process_environment() -> Mapping[str, str]:
    """Provider returning a snapshot of the current process environment."""

    return os.environ.copy()


class EnvironmentAssembler:
    """Merges build variables, host environment and the integration marker."""

    def __init__(self, console: BuildListener | None = None) -> None:
        self._console = console

    def assemble(
        self,
        build_variables: Mapping[str, str] | None,
        host_environment: HostEnvironment,
        marker: Tuple[str, str] = (MARKER_VARIABLE, MARKER_VALUE),
    ) -> Dict[str, str]:
        merged: Dict[str, str] = dict(build_variables or {})
        merged.update(self._retrieve(host_environment))
        key, value = marker
        merged[key] = value
        return merged

    def _retrieve(self, host_environment: HostEnvironment) -> Mapping[str, str]:
        if host_environment is None:
            return {}
        if not callable(host_environment):
            return host_environment
        try:
            return host_environment()
        except (EnvironmentRetrievalError, OSError) as exc:
            if self._console is not None:
                self._console.debug(f"Ignoring host environment: {exc}")
            return {}


__all__ = [
    "EnvironmentAssembler",
    "HostEnvironment",
    "MARKER_VALUE",
    "MARKER_VARIABLE",
    "process_environment",
]
