"""
CLI entry-point.  Run ``vodbot --help``.
"""

from __future__ import annotations

import logging
import os
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from typer import Argument as Arg
from typer import Exit, Option as Opt, colors, secho

from vodbot import __version__
from vodbot.commands import info as info_cmd
from vodbot.commands import init as init_cmd
from vodbot.commands import pull as pull_cmd
from vodbot.commands.pull import PullMode
from vodbot.errors import ExitCode, VodBotError
from vodbot.logger import configure_logging

app = typer.Typer(
    add_completion=False,
    help="Archive Twitch VODs, highlights, uploads, premieres, clips and chat logs.",
    no_args_is_help=True,
)


@dataclass
class State:
    config_path: Optional[Path]
    console: Console


def _version(value: bool) -> None:
    if value:
        typer.echo(f"vodbot {__version__}")
        raise Exit()


def _fail(err: VodBotError) -> NoReturn:
    code = err.exit_code
    secho(f"{err}\nExit code: {code.name} ({int(code)})", fg=colors.RED, err=True)
    raise Exit(int(code))


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = Opt(None, "--config-path", "-c", help="Config file to use instead of the default."),
    verbose: int = Opt(0, "--verbose", "-v", count=True, help="More log output (-v info, -vv debug)."),
    no_color: bool = Opt(False, "--no-color", "-n", help="Disable colored output."),
    log_file: Optional[Path] = Opt(None, "--log-file", help="Also write a DEBUG log to this file."),
    version: bool = Opt(False, "--version", callback=_version, is_eager=True, help="Show the version and exit."),
) -> None:
    """VodBot keeps a local copy of everything a set of channels has published."""
    configure_logging(verbose, log_file=log_file, console=Console(stderr=True, no_color=no_color))
    ctx.obj = State(config_path=config_path, console=Console(no_color=no_color))


@app.command()
def init(
    ctx: typer.Context,
    overwrite_confirm: bool = Opt(False, "-y", help="Confirm overwriting an existing config."),
) -> None:
    """Initialize directories and files for VodBot."""
    state: State = ctx.obj
    try:
        init_cmd.run(state.config_path, overwrite_confirm, state.console)
    except VodBotError as err:
        _fail(err)


@app.command()
def info(
    ctx: typer.Context,
    strings: List[str] = Arg(..., help="Video ids, channel logins, clip slugs or their URLs."),
    as_json: bool = Opt(False, "--json", "-j", help="Print the results as JSON."),
) -> None:
    """Get info about videos, clips, or channels."""
    state: State = ctx.obj
    try:
        info_cmd.run(state.config_path, as_json, strings, state.console)
    except VodBotError as err:
        _fail(err)


@app.command()
def pull(
    ctx: typer.Context,
    mode: PullMode = Arg(PullMode.ALL, case_sensitive=False, help="What to pull."),
) -> None:
    """Pull videos, clips, chat logs, and more."""
    state: State = ctx.obj
    try:
        summary = pull_cmd.run(state.config_path, mode, state.console)
    except VodBotError as err:
        _fail(err)
    if summary.failed:
        raise Exit(int(ExitCode.ITEMS_FAILED))


def _sigint(signum, frame) -> None:
    secho("\nInterrupted!", fg=colors.BLUE, err=True)
    secho(f"Exit code: {ExitCode.INTERRUPTED.name} ({int(ExitCode.INTERRUPTED)})", err=True)
    logging.shutdown()
    # exit without joining worker threads
    os._exit(int(ExitCode.INTERRUPTED))


def cli_entry() -> None:
    signal.signal(signal.SIGINT, _sigint)
    app()


if __name__ == "__main__":
    cli_entry()
