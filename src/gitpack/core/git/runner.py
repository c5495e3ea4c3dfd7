"""
Process runner for git invocations.

Runs one command line in one working directory and reports what happened.
The runner never raises for a failed command: callers decide whether a
non-zero exit is an error and whether stderr on success is a warning.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Protocol

from gitpack.core.exceptions import PreconditionError
from gitpack.core.git.commands import Command

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = -1
NOT_FOUND_EXIT_CODE = 127


@dataclass
class ProcessResult:
    """
    Outcome of one process run.

    Attributes:
        exit_code: Process exit code (-1 on timeout, 127 if not executable)
        stdout: Standard output without trailing newlines
        stderr: Standard error without trailing newlines
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def is_warning(self) -> bool:
        """Zero exit with text on stderr. Git writes informational text there."""
        return self.ok and self.stderr != ""


class CommandRunner(Protocol):
    """Callable that executes a command with a timeout in seconds."""

    def __call__(self, command: Command, timeout: float | None = None) -> ProcessResult: ...


def _trim(text: str | bytes | None) -> str:
    if text is None:
        return ""
    if isinstance(text, bytes):
        text = text.decode(errors="replace")
    return text.rstrip("\n")


def _build_environment() -> dict[str, str]:
    env = os.environ.copy()
    # Never block on a credential prompt inside a worker
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def run_command(command: Command, timeout: float | None = None) -> ProcessResult:
    """
    Run a command and capture its output.

    Args:
        command: Command to run
        timeout: Wall-clock limit in seconds (None for no limit)

    Returns:
        ProcessResult with trimmed stdout/stderr
    """
    logger.debug("Running %s in %s", command, command.cwd)
    try:
        result = subprocess.run(
            command.argv,
            cwd=command.cwd,
            env=_build_environment(),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        return ProcessResult(
            exit_code=TIMEOUT_EXIT_CODE,
            stdout=_trim(e.stdout),
            stderr=f"Timed out after {timeout}s: {command}",
        )
    except FileNotFoundError as e:
        return ProcessResult(exit_code=NOT_FOUND_EXIT_CODE, stderr=str(e))

    return ProcessResult(
        exit_code=result.returncode,
        stdout=_trim(result.stdout),
        stderr=_trim(result.stderr),
    )


def ensure_git_executable() -> str:
    """
    Check that git can be found on PATH.

    Returns:
        Absolute path to the git executable

    Raises:
        PreconditionError: If git is not installed
    """
    git_path = shutil.which("git")
    if git_path is None:
        raise PreconditionError("No `git` executable")
    return git_path
