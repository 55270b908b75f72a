"""Invocation settings resolved once, outside the invocation pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Tuple
import os

from .config_loader import (
    INVOCATION_SECTION,
    PARAMETERS_SECTION,
    VARIABLES_SECTION,
    load_config_file,
    merge_config,
    normalize_string_list,
    normalize_string_mapping,
)
from .environment import MARKER_VALUE, MARKER_VARIABLE
from .parameters import flatten_named_parameters
from .resources import DEFAULT_RESOURCES, PRIMARY_SCRIPT, resolve_archive_format

DEFAULT_INTERPRETER = r"C:\Windows\System32\WindowsPowerShell\v1.0\powershell.exe"
INTERPRETER_ENV_VAR = "PS_HOME"
CONFIG_ENV_VAR = "SQLCI_CONFIG"


@dataclass(slots=True, frozen=True)
class InvocationSettings:
    interpreter: str = DEFAULT_INTERPRETER
    primary_resource: str = PRIMARY_SCRIPT
    resources: Tuple[str, ...] = DEFAULT_RESOURCES
    marker: Tuple[str, str] = (MARKER_VARIABLE, MARKER_VALUE)
    bundle: Path | None = None
    build_variables: Dict[str, str] = field(default_factory=dict)
    parameters: Tuple[str, ...] = ()


def resolve_interpreter(env: Mapping[str, str] | None = None, *, configured: str | None = None) -> str:
    """Return the interpreter path.

    ``PS_HOME`` wins whenever it is set and is used verbatim. Otherwise the
    configured path, then the stock Windows PowerShell location.
    """

    source = os.environ if env is None else env
    override = source.get(INTERPRETER_ENV_VAR)
    if override is not None:
        return override
    return configured or DEFAULT_INTERPRETER


def config_paths_from_env(env: Mapping[str, str] | None = None) -> List[Path]:
    source = os.environ if env is None else env
    value = source.get(CONFIG_ENV_VAR, "")
    return [Path(entry.strip()) for entry in value.split(os.pathsep) if entry.strip()]


def load_settings(
    config_paths: Iterable[Path] = (),
    *,
    root: Path | None = None,
    env: Mapping[str, str] | None = None,
    interpreter: str | None = None,
) -> InvocationSettings:
    """Layer configuration files (later files win) into :class:`InvocationSettings`.

    Relative config and bundle paths are resolved against *root* (the current
    directory when omitted). An explicit *interpreter* beats ``PS_HOME``. A
    bundle whose suffix is not a supported archive format raises
    :class:`ValueError`.
    """

    base = root if root is not None else Path.cwd()
    data: Dict[str, Dict[str, Any]] = {}
    for raw in config_paths:
        path = raw if raw.is_absolute() else base / raw
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file '{path}' does not exist")
        data = merge_config(data, load_config_file(path))

    section = data.get(INVOCATION_SECTION, {})

    configured_interpreter = section.get("interpreter")
    if configured_interpreter is not None and not isinstance(configured_interpreter, str):
        raise TypeError("invocation.interpreter must be a string")
    resolved_interpreter = interpreter or resolve_interpreter(env, configured=configured_interpreter)

    resources = tuple(normalize_string_list(section.get("resources"), field_name="invocation.resources"))
    primary = section.get("primary", PRIMARY_SCRIPT)
    if not isinstance(primary, str) or not primary.strip():
        raise TypeError("invocation.primary must be a non-empty string")

    bundle: Path | None = None
    bundle_value = section.get("bundle")
    if bundle_value is not None:
        if not isinstance(bundle_value, str):
            raise TypeError("invocation.bundle must be a string")
        resolve_archive_format(bundle_value)
        bundle = Path(bundle_value).expanduser()
        if not bundle.is_absolute():
            bundle = base / bundle

    return InvocationSettings(
        interpreter=resolved_interpreter,
        primary_resource=primary.strip(),
        resources=resources or DEFAULT_RESOURCES,
        bundle=bundle,
        build_variables=normalize_string_mapping(data.get(VARIABLES_SECTION), field_name=VARIABLES_SECTION),
        parameters=tuple(flatten_named_parameters(data.get(PARAMETERS_SECTION, {}))),
    )


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_INTERPRETER",
    "INTERPRETER_ENV_VAR",
    "InvocationSettings",
    "config_paths_from_env",
    "load_settings",
    "resolve_interpreter",
]
