"""Command line interface for running SQL Change Automation cmdlets."""
from __future__ import annotations

from argparse import REMAINDER, ArgumentParser, Namespace
from pathlib import Path
from typing import Dict, Iterable, List
import sys

from .command_runner import ProcessRunner, RecordingProcessRunner, SubprocessProcessRunner
from .console import Console
from .invocation import HostContext, InvocationOrchestrator
from .parameters import (
    SqlChangeAutomationVersionOption,
    add_product_version_parameter,
    construct_package_file_name,
)
from .settings import config_paths_from_env, load_settings


def _make_runner(dry_run: bool) -> SubprocessProcessRunner | RecordingProcessRunner:
    return RecordingProcessRunner() if dry_run else SubprocessProcessRunner()


def _parse_variables(values: Iterable[str]) -> Dict[str, str]:
    variables: Dict[str, str] = {}
    for raw in values:
        key, sep, value = raw.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Build variable '{raw}' must be in KEY=VALUE form")
        variables[key] = value
    return variables


def _strip_separator(values: List[str]) -> List[str]:
    if values and values[0] == "--":
        return values[1:]
    return values


def _emit_dry_run_output(runner: ProcessRunner) -> None:
    if isinstance(runner, RecordingProcessRunner):
        for line in runner.iter_formatted():
            print(line)


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="sqlci", description="Run SQL Change Automation PowerShell cmdlets from a build step")
    subparsers = parser.add_subparsers(dest="command", required=True)

    invoke_parser = subparsers.add_parser("invoke", help="Stage the runner scripts and invoke the cmdlet")
    invoke_parser.add_argument(
        "-w",
        "--workspace",
        type=Path,
        default=None,
        help="Working directory the scripts are staged into (defaults to the current directory)",
    )
    invoke_parser.add_argument(
        "-c",
        "--config",
        dest="config_files",
        action="append",
        default=[],
        type=Path,
        metavar="PATH",
        help="Configuration file (TOML/JSON/YAML); repeat to layer several",
    )
    invoke_parser.add_argument("--interpreter", help="PowerShell executable; overrides PS_HOME and configuration")
    invoke_parser.add_argument(
        "-D",
        "--define",
        dest="variables",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Build variable exported to the cmdlet environment",
    )
    invoke_parser.add_argument(
        "--product-version",
        metavar="VERSION",
        help="Required SQL Change Automation version ('latest' or a specific version)",
    )
    invoke_parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Stage the scripts and print the command line without launching PowerShell",
    )
    invoke_parser.add_argument(
        "--log-level",
        choices=sorted(Console.LEVELS, key=Console.LEVELS.get),
        default="info",
        help="Console verbosity",
    )
    invoke_parser.add_argument("params", nargs=REMAINDER, metavar="PARAM", help="Cmdlet parameters, after '--'")

    name_parser = subparsers.add_parser("package-name", help="Print the NuGet package file name for a build")
    name_parser.add_argument("package")
    name_parser.add_argument("build_number")

    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)

    if args.command == "invoke":
        return _handle_invoke(args)
    if args.command == "package-name":
        print(construct_package_file_name(args.package, args.build_number))
        return 0
    raise ValueError(f"Unknown command: {args.command}")


def _handle_invoke(args: Namespace) -> int:
    workspace = (args.workspace or Path.cwd()).resolve()
    console = Console(args.log_level, dry_run=args.dry_run)

    try:
        settings = load_settings(
            [*config_paths_from_env(), *args.config_files],
            root=Path.cwd(),
            interpreter=args.interpreter,
        )
        variables = _parse_variables(args.variables)

        params: List[str] = list(settings.parameters)
        if args.product_version is not None:
            add_product_version_parameter(params, SqlChangeAutomationVersionOption.parse(args.product_version))
        params.extend(_strip_separator(list(args.params)))

        runner = _make_runner(args.dry_run)
        orchestrator = InvocationOrchestrator(settings, runner=runner)
    except (OSError, TypeError, ValueError, RuntimeError) as exc:
        print(f"Error: {exc}")
        return 2

    host = HostContext(workspace=workspace, build_variables=variables, console=console)

    result = orchestrator.execute(workspace, params, None, host)
    if args.dry_run:
        _emit_dry_run_output(runner)
        console.dry(f"Scripts staged in {workspace}; PowerShell was not launched")
    return 0 if result else 1


__all__ = ["main"]
