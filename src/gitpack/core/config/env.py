"""
Layered .env loading.

Before config is loaded, variables from .env files are exported into the
process environment so GITPACK_* overrides can live next to a project:

    shell environment > project .env files > user .env file

Variables already exported in the shell are never touched. Among files,
later ones override earlier ones.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values

from gitpack.core.xdg import get_xdg_config_home

logger = logging.getLogger(__name__)


def default_env_files(project_dir: Path) -> list[Path]:
    """User .env first, then the project's .env and .env.local."""
    return [
        get_xdg_config_home() / "gitpack" / ".env",
        project_dir / ".env",
        project_dir / ".env.local",
    ]


def _read_env(path: Path) -> dict[str, str]:
    if not path.is_file():
        return {}
    return {key: value for key, value in dotenv_values(path).items() if value is not None}


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, Path]:
    """
    Export variables from .env files into ``os.environ``.

    Args:
        project_dir: Base directory for the project files (defaults to cwd)
        user_env_paths: Replaces the user .env file
        project_env_paths: Replaces the project .env files

    Returns:
        Each variable taken from a file, mapped to the file that set it
    """
    defaults = default_env_files(project_dir or Path.cwd())
    files = [
        *(defaults[:1] if user_env_paths is None else user_env_paths),
        *(defaults[1:] if project_env_paths is None else project_env_paths),
    ]

    applied: dict[str, Path] = {}
    for path in map(Path, files):
        for key, value in _read_env(path).items():
            if key in os.environ and key not in applied:
                continue
            os.environ[key] = value
            applied[key] = path

    for key in sorted(applied):
        if key.startswith("GITPACK_"):
            logger.debug("%s set from %s", key, applied[key])
    return applied
