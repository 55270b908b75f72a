"""Render cmdlet parameters into a single PowerShell command line."""
from __future__ import annotations

from typing import Iterable, List

FIXED_FLAGS = ("-NonInteractive", "-ExecutionPolicy", "Bypass")
"""Flags placed between the interpreter and ``-File``."""

_ESCAPED_QUOTE = '\\\\\\"'


def render_parameter(parameter: str) -> str:
    """Return the command-line token for a single parameter.

    Quotes are escaped with three backslashes so they survive both the host
    tokenizer and PowerShell's own argument parsing. Wrapping in quotes for
    embedded spaces must happen after the escaping.
    """

    token = parameter.strip()
    if '"' in token:
        token = token.replace('"', _ESCAPED_QUOTE)
    if " " in token:
        token = f'"{token}"'
    return token


class CommandLineBuilder:
    """Builds the interpreter command line for a staged script."""

    def build(self, interpreter: str, script_path: str, parameters: Iterable[str]) -> str:
        parts: List[str] = [
            f'"{interpreter}"',
            *FIXED_FLAGS,
            "-File",
            f'"{script_path}"',
            "-Verbose",
        ]
        command_line = " ".join(parts)
        for parameter in parameters:
            command_line += " " + render_parameter(parameter)
        return command_line


__all__ = ["CommandLineBuilder", "FIXED_FLAGS", "render_parameter"]
