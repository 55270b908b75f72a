"""Launch the interpreter and stream its output to the build log."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import IO, Dict, Iterable, List, Mapping, Sequence, TextIO
import os
import subprocess
import threading

from .errors import ProcessInterruptedError, ProcessLaunchError

_WHITESPACE = " \t"


def tokenize_command_line(command_line: str) -> List[str]:
    """Split *command_line* into argv the way Windows splits a process command line.

    Backslashes are literal unless a run of them ends in a double quote:
    2n backslashes before ``"`` give n backslashes and toggle quoting, 2n+1
    give n backslashes and a literal ``"``. Single quotes are ordinary
    characters. Raises :class:`ValueError` for an unterminated quote.
    """

    tokens: List[str] = []
    current: List[str] = []
    in_token = False
    quoted = False
    index = 0
    length = len(command_line)

    while index < length:
        char = command_line[index]
        if char == "\\":
            end = index
            while end < length and command_line[end] == "\\":
                end += 1
            count = end - index
            if end < length and command_line[end] == '"':
                current.append("\\" * (count // 2))
                if count % 2:
                    current.append('"')
                    end += 1
            else:
                current.append("\\" * count)
            in_token = True
            index = end
            continue

        if char == '"':
            quoted = not quoted
            in_token = True
        elif char in _WHITESPACE and not quoted:
            if in_token:
                tokens.append("".join(current))
                current = []
                in_token = False
        else:
            current.append(char)
            in_token = True
        index += 1

    if quoted:
        raise ValueError("No closing quotation")
    if in_token:
        tokens.append("".join(current))
    return tokens


class ProcessRunner:
    """Abstract process runner interface."""

    def run(
        self,
        command_line: str,
        *,
        env: Mapping[str, str],
        cwd: Path,
        stdout: TextIO,
        stderr: TextIO,
        interrupt: threading.Event | None = None,
    ) -> int:
        raise NotImplementedError

    @staticmethod
    def split_command_line(command_line: str) -> str | List[str]:
        """Return what to hand to the OS for *command_line*.

        Windows receives the string untouched. Elsewhere it is split with
        :func:`tokenize_command_line`, so the child sees the same argv the
        Windows runtime would build: ``\\\\\\"`` from
        :func:`sqlci.command_line.render_parameter` arrives as ``\\"`` and
        other backslashes pass through.
        """

        if os.name == "nt":
            return command_line
        return tokenize_command_line(command_line)


class SubprocessProcessRunner(ProcessRunner):
    """Process runner that executes command lines via :mod:`subprocess`."""

    def __init__(self, *, poll_interval: float = 0.1) -> None:
        self._poll_interval = poll_interval

    def run(
        self,
        command_line: str,
        *,
        env: Mapping[str, str],
        cwd: Path,
        stdout: TextIO,
        stderr: TextIO,
        interrupt: threading.Event | None = None,
    ) -> int:
        try:
            args = self.split_command_line(command_line)
        except ValueError as exc:
            raise ProcessLaunchError(command_line, str(exc)) from exc
        if not args:
            raise ProcessLaunchError(command_line, "empty command line")

        try:
            process = subprocess.Popen(
                args,
                cwd=str(cwd),
                env=dict(env),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            raise ProcessLaunchError(command_line, str(exc)) from exc

        pumps = [
            self._start_pump(process.stdout, stdout),
            self._start_pump(process.stderr, stderr),
        ]
        try:
            returncode = self._wait(process, interrupt)
        except KeyboardInterrupt as exc:
            # The child keeps running; only the wait is abandoned.
            raise ProcessInterruptedError(process.pid) from exc

        for pump in pumps:
            pump.join()
        return returncode

    def _wait(self, process: subprocess.Popen, interrupt: threading.Event | None) -> int:
        if interrupt is None:
            return process.wait()
        while True:
            if interrupt.is_set():
                raise ProcessInterruptedError(process.pid)
            try:
                return process.wait(timeout=self._poll_interval)
            except subprocess.TimeoutExpired:
                continue

    @staticmethod
    def _start_pump(source: IO[bytes] | None, sink: TextIO) -> threading.Thread:
        def forward() -> None:
            if source is None:
                return
            with source:
                for raw in iter(source.readline, b""):
                    sink.write(raw.decode("utf-8", errors="replace"))
                    flush = getattr(sink, "flush", None)
                    if callable(flush):
                        flush()

        thread = threading.Thread(target=forward, daemon=True)
        thread.start()
        return thread


@dataclass(slots=True)
class RecordedCommand:
    command_line: str
    cwd: str
    env: Dict[str, str]


class RecordingProcessRunner(ProcessRunner):
    """Process runner that records command lines instead of executing them."""

    def __init__(self, returncode: int = 0) -> None:
        self.returncode = returncode
        self.commands: List[RecordedCommand] = []

    def run(
        self,
        command_line: str,
        *,
        env: Mapping[str, str],
        cwd: Path,
        stdout: TextIO,
        stderr: TextIO,
        interrupt: threading.Event | None = None,
    ) -> int:
        self.commands.append(RecordedCommand(command_line=command_line, cwd=str(cwd), env=dict(env)))
        return self.returncode

    def iter_commands(self) -> Iterable[RecordedCommand]:
        return iter(self.commands)

    def iter_formatted(self, *, env_keys: Sequence[str] = ()) -> Iterable[str]:
        for record in self.commands:
            parts: List[str] = ["[dry-run]", f"(cwd={record.cwd})"]
            for key in env_keys:
                if key in record.env:
                    parts.append(f"{key}={record.env[key]}")
            parts.append(record.command_line)
            yield " ".join(parts)


__all__ = [
    "ProcessRunner",
    "RecordedCommand",
    "RecordingProcessRunner",
    "SubprocessProcessRunner",
    "tokenize_command_line",
]
