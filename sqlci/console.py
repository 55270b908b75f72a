"""Console output handler used as the build log sink."""
from __future__ import annotations

from typing import Protocol, TextIO, runtime_checkable
import sys


@runtime_checkable
class BuildListener(Protocol):
    """Minimal logging surface required by the invocation pipeline."""

    dry_run: bool

    @property
    def stdout(self) -> TextIO:
        ...

    @property
    def stderr(self) -> TextIO:
        ...

    def info(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def debug(self, message: str) -> None:
        ...

    def dry(self, message: str) -> None:
        ...


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < info < debug
    Default: 'info'. Process output forwarded through :attr:`stdout` and
    :attr:`stderr` is written regardless of level.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    def __init__(
        self,
        level: str = "info",
        dry_run: bool = False,
        *,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        if level not in self.LEVELS:
            supported = ", ".join(self.LEVELS)
            raise ValueError(f"Unknown log level '{level}'. Supported: {supported}")
        self.level_name = level
        self.level = self.LEVELS[level]
        self.dry_run = dry_run
        self._out = out
        self._err = err

    @property
    def stdout(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    @property
    def stderr(self) -> TextIO:
        return self._err if self._err is not None else sys.stderr

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"[INFO] {message}", file=self.stdout)

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"[ERROR] {message}", file=self.stderr)

    def dry(self, message: str) -> None:
        if self.dry_run:
            print(f"[DRY] {message}", file=self.stdout)

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            print(f"[DEBUG] {message}", file=self.stdout)


__all__ = ["BuildListener", "Console"]
