"""
gitpack CLI - Package commands.

Install, add, update, remove and list the packages declared in the
manifest (.gitpack.json plus ~/.config/gitpack/config.json).
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from gitpack.cli.errors import (
    ExitCode,
    print_error,
    print_git_not_found_error,
    print_incompatible_flags_error,
    print_invalid_config_error,
    print_invalid_spec_error,
    print_package_errors,
)
from gitpack.cli.progress import RichProgressCallback
from gitpack.core.config import (
    GitpackConfig,
    add_package_to_project_config,
    load_config,
    remove_package_from_project_config,
)
from gitpack.core.exceptions import (
    ConflictError,
    GitpackError,
    PackageOperationError,
    PreconditionError,
    SpecError,
)
from gitpack.core.packages.service import PackageService
from gitpack.core.packages.spec import normalize_spec, resolve_packages

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Map gitpack exceptions to messages and exit codes."""
    try:
        yield
    except PreconditionError:
        print_git_not_found_error()
        raise typer.Exit(ExitCode.USER_ERROR)
    except ValidationError as e:
        print_invalid_config_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)
    except (SpecError, ConflictError) as e:
        print_invalid_spec_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)
    except PackageOperationError as e:
        print_package_errors(e.operation, str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except GitpackError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Cancelled[/yellow]")
        raise typer.Exit(ExitCode.SIGINT)


def _confirm_install(sources: list[str]) -> bool:
    console.print("These packages will be installed:\n")
    for source in sources:
        console.print(f"  {source}", markup=False, highlight=False)
    console.print()
    return typer.confirm("Proceed?", default=True)


def _build_service(yes: bool = False) -> tuple[GitpackConfig, PackageService]:
    config = load_config()
    service = PackageService(
        config,
        callback=RichProgressCallback(err_console),
        confirm_install=None if yes else _confirm_install,
        project_dir=Path.cwd(),
    )
    return config, service


def install(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Install without asking for confirmation",
    ),
) -> None:
    """
    Install missing packages from the manifest.

    Packages already on disk are left as they are; use `gitpack update`
    to move them to their requested version.

    Examples:
        gitpack install
        gitpack install --yes
    """
    with handle_errors():
        config, service = _build_service(yes)
        if not config.packages:
            console.print("[yellow]No packages in the manifest[/yellow]")
            console.print("[cyan]→ Try:[/cyan] gitpack add SOURCE")
            return
        packages = service.register(config.packages)

    console.print(f"[green]✓[/green] {len(packages)} package(s) ready in {config.packages_root}")


def add(
    source: str = typer.Argument(..., help="Repository to clone (anything `git clone` accepts)"),
    name: str | None = typer.Option(
        None,
        "--name",
        "-n",
        help="Directory name (default: last segment of the source)",
    ),
    version: str | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Branch, tag or commit to check out",
    ),
    version_range: str | None = typer.Option(
        None,
        "--range",
        "-r",
        help="Semver range picking the greatest matching tag, e.g. '^1.2'",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Install without asking for confirmation",
    ),
) -> None:
    """
    Add a package to .gitpack.json and install it.

    Examples:
        gitpack add https://github.com/user/plugin
        gitpack add https://github.com/user/plugin --version main
        gitpack add https://github.com/user/plugin --range '>=1.0.0 <2.0.0'
    """
    if version and version_range:
        print_incompatible_flags_error("--version", "--range")
        raise typer.Exit(ExitCode.USER_ERROR)

    with handle_errors():
        entry: dict[str, Any] = {"source": source}
        if name:
            entry["name"] = name
        if version:
            entry["version"] = version
        elif version_range:
            entry["version"] = {"range": version_range}
        spec = normalize_spec(entry)

        path = add_package_to_project_config(spec)
        console.print(f"[green]✓[/green] Added {spec.name} to {path.name}")

        config, service = _build_service(yes)
        service.register(config.packages)


def update(
    names: list[str] | None = typer.Argument(
        None,
        help="Packages to update (default: every package in the manifest)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Apply updates right away without showing them first",
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Skip fetching; use what was downloaded before",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Answer yes to every confirmation",
    ),
) -> None:
    """
    Download updates, show what changes, and apply them once confirmed.

    Every applied update is appended to the update log.

    Examples:
        gitpack update                 # Review, then confirm
        gitpack update plugin --force  # Update one package right away
        gitpack update --offline       # Re-check without fetching
    """
    with handle_errors():
        config, service = _build_service(yes)
        service.register(config.packages)
        report = service.sync(names or None, auto_apply=force, skip_fetch=offline)
        if not report.states:
            console.print("[yellow]Nothing to update[/yellow]")
            return

        typer.echo(report.render())

        if not force:
            pending = report.pending
            if not pending:
                report.discard()
                console.print("[green]✓[/green] Everything is up to date")
            elif yes or typer.confirm(f"Apply {len(pending)} update(s)?", default=False):
                report.apply()
                console.print(f"[green]✓[/green] Updated {', '.join(pending)}")
            else:
                report.discard()
                console.print("[yellow]Update discarded[/yellow]")

    if report.has_errors:
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def remove(
    names: list[str] = typer.Argument(..., help="Packages to remove"),
    keep_manifest: bool = typer.Option(
        False,
        "--keep-manifest",
        help="Leave the entries in .gitpack.json",
    ),
) -> None:
    """
    Delete packages from disk.

    Examples:
        gitpack remove plugin
        gitpack remove plugin other --keep-manifest
    """
    with handle_errors():
        _, service = _build_service()
        removed = service.remove(names)
        for pkg in removed:
            if not keep_manifest:
                remove_package_from_project_config(pkg.name)
            console.print(f"[green]✓[/green] Removed {pkg.name}")

    if not removed:
        print_error("Nothing to remove", reason=f"Not installed: {', '.join(names)}")
        raise typer.Exit(ExitCode.USER_ERROR)


def list_packages(
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    List packages on disk.

    Packages declared in the manifest come first. Packages without a
    version show the default branch of their remote.

    Examples:
        gitpack list
        gitpack list --json
    """
    with handle_errors():
        config, service = _build_service()
        declared = resolve_packages(config.packages, service.packages_root)
        service.register(pkg.spec for pkg in declared if pkg.path.exists())
        infos = service.list()

    if as_json:
        typer.echo(json.dumps([info.to_dict() for info in infos], indent=2))
        return

    if not infos:
        console.print(f"[yellow]No packages in {service.packages_root}[/yellow]")
        return

    table = Table(title=f"Packages in {service.packages_root}")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Version")
    table.add_column("Source", style="dim")
    table.add_column("Manifest", justify="center")
    for info in infos:
        version = "" if info.spec.version is None else str(info.spec.version)
        table.add_row(info.spec.name, version, info.spec.source, "✓" if info.was_added else "")
    console.print(table)
