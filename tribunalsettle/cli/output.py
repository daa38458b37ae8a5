"""
tribunalsettle/cli/output.py

Terminal helpers shared by every command: ANSI color, aligned rows,
error emission in the selected format.

Exit codes (all commands):
    0  OK
    1  Findings   (claim mismatch, incomplete history)
    2  Error      (missing file, malformed input, invalid arguments)
"""

import json
import sys
from typing import Any, Dict

import click


EXIT_OK       = 0
EXIT_FINDINGS = 1
EXIT_ERROR    = 2


class Color:
    """Minimal ANSI wrapper. Disabled when stdout is not a TTY or --no-color is passed."""
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def _wrap(cls, code: str, s: str) -> str:
        return f"\033[{code}m{s}\033[0m" if cls._on else s

    @classmethod
    def green(cls, s: str) -> str:
        return cls._wrap("32", s)

    @classmethod
    def red(cls, s: str) -> str:
        return cls._wrap("31", s)

    @classmethod
    def yellow(cls, s: str) -> str:
        return cls._wrap("33", s)

    @classmethod
    def cyan(cls, s: str) -> str:
        return cls._wrap("36", s)

    @classmethod
    def bold(cls, s: str) -> str:
        return cls._wrap("1", s)

    @classmethod
    def dim(cls, s: str) -> str:
        return cls._wrap("2", s)


BAR_HEAVY = "═" * 68
BAR_LIGHT = "─" * 68


def row_ok(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}  {Color.green('✅')}  {value}"


def row_fail(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}  {Color.red('❌')}  {value}"


def row_info(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}     {value}"


def banner(title: str) -> None:
    click.echo()
    click.echo(Color.bold(f"  {BAR_HEAVY}"))
    click.echo(Color.bold(f"  TribunalSettle  ·  {title}"))
    click.echo(Color.bold(f"  {BAR_HEAVY}"))
    click.echo()


def emit_json(key: str, payload: Dict[str, Any]) -> None:
    click.echo(json.dumps({key: payload}, indent=2))


def emit_error(msg: str, fmt: str) -> None:
    if fmt == "json":
        click.echo(json.dumps({"error": msg}, indent=2))
    else:
        click.echo(Color.red(f"\n  ❌  {msg}\n"), err=True)


def fail(msg: str, fmt: str) -> None:
    emit_error(msg, fmt)
    sys.exit(EXIT_ERROR)


FORMAT_OPTION = click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format: human (default) or json (CI/automation).",
)

NO_COLOR_OPTION = click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable ANSI color output.",
)
