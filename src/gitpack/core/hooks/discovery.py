"""
Hook discovery for lifecycle hooks.

Hook scripts are discovered in:
- Global: ~/.config/gitpack/hooks/{event}/
- Project: {project_dir}/.gitpack/hooks/{event}/

Discovery rules:
- Only executable regular files are returned
- Scripts are sorted by filename (for execution order)
- Global hooks run before project hooks
- Hidden files (starting with .) are ignored

Example directory structure:
    .gitpack/hooks/
        post-install/
            01-build.sh
            02-notify.py
        pre-delete/
            cleanup.sh
"""

import os
from pathlib import Path

from gitpack.core.hooks.models import HookConfig
from gitpack.core.xdg import get_xdg_config_home


def discover_hooks(
    hook_name: str,
    project_dir: Path,
    hook_config: HookConfig | None = None,
) -> list[Path]:
    """
    Discover executable hook scripts for a given lifecycle event.

    Args:
        hook_name: Lifecycle event name (pre-install, post-update, etc.)
        project_dir: Project root directory
        hook_config: Optional hook configuration (uses defaults if not provided)

    Returns:
        Executable hook scripts, global before project, each group
        sorted by filename

    Example:
        >>> scripts = discover_hooks("post-install", Path.cwd())
        >>> for script in scripts:
        ...     print(script)
        /home/user/.config/gitpack/hooks/post-install/01-build.sh
        /home/user/project/.gitpack/hooks/post-install/02-notify.py
    """
    if not hook_name:
        raise ValueError("hook_name is required and cannot be empty")

    config = hook_config or HookConfig()

    global_hooks_path = config.get_global_hooks_path()
    if global_hooks_path is None:
        global_hooks_path = get_default_global_hooks_dir()

    all_scripts = _discover_in_directory(global_hooks_path / hook_name)
    all_scripts.extend(
        _discover_in_directory(config.get_project_hooks_path(project_dir) / hook_name)
    )
    return all_scripts


def _discover_in_directory(hook_dir: Path) -> list[Path]:
    if not hook_dir.is_dir():
        return []

    scripts: list[Path] = []
    for entry in sorted(hook_dir.iterdir()):
        if entry.name.startswith("."):
            continue
        if entry.is_file() and os.access(entry, os.X_OK):
            scripts.append(entry)
    return scripts


def get_default_global_hooks_dir() -> Path:
    """
    Get the default global hooks directory path.

    This is typically ~/.config/gitpack/hooks/ on Unix systems.
    """
    return get_xdg_config_home() / "gitpack" / "hooks"
