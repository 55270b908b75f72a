"""Reading ``sqlci`` configuration files.

A configuration file holds up to three tables:

``[invocation]``
    ``interpreter``, ``primary``, ``resources`` and ``bundle``.
``[variables]``
    Build variables exported to the cmdlet environment.
``[parameters]``
    Named cmdlet parameters, flattened to ``-Name value`` pairs.

Files are layered in order; within a table, later files replace earlier keys.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence

import json
import tomllib

try:  # Optional dependency for YAML support
    import yaml
except ModuleNotFoundError:  # pragma: no cover - exercised when PyYAML absent
    yaml = None


ConfigLoader = Callable[[Any], Mapping[str, Any]]

INVOCATION_SECTION = "invocation"
VARIABLES_SECTION = "variables"
PARAMETERS_SECTION = "parameters"
CONFIG_SECTIONS = (INVOCATION_SECTION, VARIABLES_SECTION, PARAMETERS_SECTION)
INVOCATION_KEYS = ("interpreter", "primary", "resources", "bundle")


def _raise_yaml_missing() -> Mapping[str, Any]:
    raise RuntimeError(
        "PyYAML is required to load YAML configuration files. Install with `pip install sqlci[yaml]`."
    )


FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream) if yaml else _raise_yaml_missing(),
    ".yml": lambda stream: yaml.safe_load(stream) if yaml else _raise_yaml_missing(),
}
"""Mapping of file suffixes to loader callables."""


def _read_mapping(path: Path) -> Mapping[str, Any]:
    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(FILE_LOADERS))
        raise ValueError(f"Unsupported configuration file extension: {suffix}. Supported: {supported}")

    if suffix == ".toml":
        with path.open("rb") as handle:
            data = loader(handle)
    else:
        with path.open("r", encoding="utf-8") as handle:
            data = loader(handle)

    # An empty YAML document decodes to None.
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")
    return data


def load_config_file(path: Path) -> Dict[str, Dict[str, Any]]:
    """Load ``path`` and check it against the ``sqlci`` table layout.

    Unknown tables or ``[invocation]`` keys raise :class:`ValueError` naming
    the file, so a typo does not silently fall back to a default. A known
    table holding something other than a mapping raises :class:`TypeError`.
    """

    data = _read_mapping(path)

    unknown = sorted(str(key) for key in data if key not in CONFIG_SECTIONS)
    if unknown:
        raise ValueError(
            f"Configuration file '{path}' has unknown table(s) {', '.join(unknown)}; "
            f"expected {', '.join(CONFIG_SECTIONS)}"
        )

    sections: Dict[str, Dict[str, Any]] = {}
    for name, table in data.items():
        if not isinstance(table, Mapping):
            raise TypeError(f"'{name}' in '{path}' must be a table")
        sections[name] = dict(table)

    invocation = sections.get(INVOCATION_SECTION, {})
    unknown = sorted(str(key) for key in invocation if key not in INVOCATION_KEYS)
    if unknown:
        raise ValueError(
            f"Configuration file '{path}' has unknown invocation key(s) {', '.join(unknown)}; "
            f"expected {', '.join(INVOCATION_KEYS)}"
        )
    return sections


def merge_config(
    base: Mapping[str, Mapping[str, Any]], overlay: Mapping[str, Mapping[str, Any]]
) -> Dict[str, Dict[str, Any]]:
    """Layer ``overlay`` on ``base`` table by table; values are replaced, never merged."""

    result: Dict[str, Dict[str, Any]] = {name: dict(table) for name, table in base.items()}
    for name, table in overlay.items():
        result.setdefault(name, {}).update(table)
    return result


def normalize_string_list(value: Any, *, field_name: str) -> List[str]:
    """Coerce a string or list of strings into trimmed, non-empty entries."""

    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, Sequence):
        raise TypeError(f"{field_name} must be a string or sequence of strings")

    items: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} entries must be strings")
        if item.strip():
            items.append(item.strip())
    return items


def normalize_string_mapping(value: Any, *, field_name: str) -> Dict[str, str]:
    """Coerce a table of scalars into environment-ready ``str -> str`` pairs."""

    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"{field_name} must be a table of key/value pairs")

    result: Dict[str, str] = {}
    for key, item in value.items():
        if isinstance(item, bool):
            result[str(key)] = "true" if item else "false"
        elif isinstance(item, (str, int, float)):
            result[str(key)] = str(item)
        else:
            raise TypeError(f"{field_name}.{key} must be a scalar value")
    return result


__all__ = [
    "CONFIG_SECTIONS",
    "ConfigLoader",
    "FILE_LOADERS",
    "INVOCATION_KEYS",
    "INVOCATION_SECTION",
    "PARAMETERS_SECTION",
    "VARIABLES_SECTION",
    "load_config_file",
    "merge_config",
    "normalize_string_list",
    "normalize_string_mapping",
]
