"""
Configuration models and loading.

This module provides Pydantic models for gitpack configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    PROJECT_CONFIG_NAME,
    add_package_to_project_config,
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    load_config,
    remove_package_from_project_config,
)
from .models import GitpackConfig

__all__ = [
    # Models
    "GitpackConfig",
    # Loader functions
    "PROJECT_CONFIG_NAME",
    "add_package_to_project_config",
    "clear_cache",
    "get_project_config_path",
    "get_user_config_path",
    "load_config",
    "remove_package_from_project_config",
]
