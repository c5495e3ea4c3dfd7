"""XDG base directory lookups."""

import os
from pathlib import Path


def _xdg_dir(env_var: str, fallback: Path) -> Path:
    if value := os.environ.get(env_var):
        return Path(value)
    return fallback


def get_xdg_config_home() -> Path:
    """Config directory (defaults to ~/.config)."""
    return _xdg_dir("XDG_CONFIG_HOME", Path.home() / ".config")


def get_xdg_data_home() -> Path:
    """Data directory (defaults to ~/.local/share)."""
    return _xdg_dir("XDG_DATA_HOME", Path.home() / ".local" / "share")


def get_xdg_state_home() -> Path:
    """State directory (defaults to ~/.local/state)."""
    return _xdg_dir("XDG_STATE_HOME", Path.home() / ".local" / "state")
