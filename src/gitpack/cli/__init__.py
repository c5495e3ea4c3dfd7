"""
gitpack CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from gitpack import __version__
from gitpack.cli import packages
from gitpack.core.config.env import load_layered_env

app = typer.Typer(
    name="gitpack",
    help="Git-backed declarative package manager",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for gitpack commands.

    Args:
        debug: If True, enable DEBUG level logging (every git command line)
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"gitpack version {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show gitpack version and exit",
    ),
) -> None:
    """
    gitpack - keep git repositories at the versions you declare.

    Packages are declared in .gitpack.json (and ~/.config/gitpack/config.json)
    and cloned into one directory each under the packages root.

    Quick Start:
        gitpack add https://github.com/user/plugin    # Declare and install
        gitpack update                                # Review and apply updates
        gitpack list                                  # See what is installed
    """
    setup_logging(debug)
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    ctx.obj = {"debug": debug}


app.command(name="install")(packages.install)
app.command(name="add")(packages.add)
app.command(name="update")(packages.update)
app.command(name="remove")(packages.remove)
app.command(name="list")(packages.list_packages)


@app.command()
def version() -> None:
    """Show gitpack version and exit."""
    console.print(f"gitpack version {__version__}")


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
