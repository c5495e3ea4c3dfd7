"""
Git command building and execution.

Example:
    >>> from gitpack.core.git import Command, commands, run_command
    >>> result = run_command(Command(commands.get_hash("HEAD"), cwd=Path(".")))
    >>> result.stdout
    'abc1234'
"""

from gitpack.core.git import commands
from gitpack.core.git.commands import Command
from gitpack.core.git.runner import (
    CommandRunner,
    ProcessResult,
    ensure_git_executable,
    run_command,
)

__all__ = [
    "Command",
    "CommandRunner",
    "ProcessResult",
    "commands",
    "ensure_git_executable",
    "run_command",
]
