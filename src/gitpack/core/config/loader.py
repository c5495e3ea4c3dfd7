"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

Package manifests are the exception to "higher layer wins": the user's and
the project's ``packages`` lists are concatenated, user first, and
de-duplicated later at registration.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from gitpack.core.config.models import GitpackConfig
from gitpack.core.packages.models import PackageSpec, derive_name
from gitpack.core.xdg import get_xdg_config_home

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".gitpack.json"

# Global cache to avoid reloading config multiple times per session
_config_cache: GitpackConfig | None = None


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/gitpack/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "gitpack" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / PROJECT_CONFIG_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested dicts
    are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 30}})
        {'a': 1, 'b': {'x': 10, 'y': 30}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning("Ignoring config at %s: top level is not an object", path)
            return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        GITPACK_ROOT - overrides packages_root
        GITPACK_CONCURRENCY - overrides concurrency
        GITPACK_TIMEOUT - overrides job_timeout (seconds)
        GITPACK_LOG_FILE - overrides log_file

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if root := os.environ.get("GITPACK_ROOT"):
        result["packages_root"] = root

    if log_file := os.environ.get("GITPACK_LOG_FILE"):
        result["log_file"] = log_file

    if concurrency_str := os.environ.get("GITPACK_CONCURRENCY"):
        try:
            concurrency = int(concurrency_str)
            if concurrency < 1:
                logger.warning("GITPACK_CONCURRENCY must be >= 1, got %d, ignoring", concurrency)
            else:
                result["concurrency"] = concurrency
        except ValueError:
            logger.warning("Invalid GITPACK_CONCURRENCY value '%s', ignoring", concurrency_str)

    if timeout_str := os.environ.get("GITPACK_TIMEOUT"):
        try:
            timeout = float(timeout_str)
            if timeout <= 0:
                logger.warning("GITPACK_TIMEOUT must be > 0, got %s, ignoring", timeout_str)
            else:
                result["job_timeout"] = timeout
        except ValueError:
            logger.warning("Invalid GITPACK_TIMEOUT value '%s', ignoring", timeout_str)

    return result


def _merge_layer(merged: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    packages = list(merged.get("packages", [])) + list(layer.get("packages", []))
    merged = deep_merge(merged, layer)
    merged["packages"] = packages
    return merged


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> GitpackConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (GITPACK_*)
        2. Project config (.gitpack.json)
        3. User config (~/.config/gitpack/config.json)
        4. Defaults

    Args:
        project_dir: Project directory to load .gitpack.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated GitpackConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged: dict[str, Any] = {"packages": []}

    if user_config := load_json_file(get_user_config_path()):
        merged = _merge_layer(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = _merge_layer(merged, project_config)

    merged = apply_env_overrides(merged)

    config = GitpackConfig(**merged)
    _config_cache = config

    return config


def _entry_name(entry: Any) -> str | None:
    if isinstance(entry, str):
        return derive_name(entry)
    if isinstance(entry, dict):
        return entry.get("name") or derive_name(str(entry.get("source", "")))
    return None


def add_package_to_project_config(spec: PackageSpec, project_dir: Path | None = None) -> Path:
    """
    Append a package to the project manifest, creating the file if needed.

    An existing entry with the same name is dropped and the new one appended.

    Returns:
        Path of the written config file
    """
    path = get_project_config_path(project_dir)
    data = load_json_file(path) or {}
    packages = [entry for entry in data.get("packages", []) if _entry_name(entry) != spec.name]
    packages.append(spec.to_dict())
    data["packages"] = packages

    _write_json_atomic(path, data)
    return path


def remove_package_from_project_config(name: str, project_dir: Path | None = None) -> bool:
    """
    Drop a package from the project manifest.

    Returns:
        True if an entry was removed
    """
    path = get_project_config_path(project_dir)
    data = load_json_file(path)
    if not data or not isinstance(data.get("packages"), list):
        return False

    packages = [entry for entry in data["packages"] if _entry_name(entry) != name]
    if len(packages) == len(data["packages"]):
        return False
    data["packages"] = packages
    _write_json_atomic(path, data)
    return True


def _write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    tmp_path.replace(path)
    clear_cache()


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
