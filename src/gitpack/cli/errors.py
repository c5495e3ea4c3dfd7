"""
Standardized error handling and exit codes for the gitpack CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for gitpack CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error, including per-package failures."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "No `git` executable",
        ...     reason="gitpack clones and updates packages with git",
        ...     solution="Install git and make sure it is on PATH",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}", highlight=False)

    if reason:
        # Reasons carry git output verbatim
        console.print(reason, markup=False, highlight=False, style="dim")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_git_not_found_error() -> None:
    """Print error when git is not installed."""
    print_error(
        "Required tool not found: git",
        reason="gitpack clones and updates packages with git, which is not in PATH",
        solution="Install git (https://git-scm.com/downloads)",
    )


def print_invalid_config_error(details: str) -> None:
    """Print error when a config file fails validation."""
    print_error(
        "Invalid configuration",
        reason=details,
        solution="Check .gitpack.json and ~/.config/gitpack/config.json",
    )


def print_invalid_spec_error(details: str) -> None:
    """Print error when a package specification is malformed or conflicting."""
    print_error(
        "Invalid package specification",
        reason=details,
        solution="Fix the entry in .gitpack.json or pass a different --name",
    )


def print_incompatible_flags_error(flag1: str, flag2: str) -> None:
    """Print error when incompatible CLI flags are used together."""
    print_error(
        f"Cannot use {flag1} with {flag2}",
        solution=f"Remove one of the flags: {flag1} or {flag2}",
    )


def print_package_errors(operation: str, details: str) -> None:
    """Print per-package failures collected during an operation."""
    print_error(f"Some packages failed during {operation}", reason=details)
