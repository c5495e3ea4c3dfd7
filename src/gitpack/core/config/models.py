"""
Configuration data models for gitpack.

These models define the structure of .gitpack.json and
~/.config/gitpack/config.json files, with validation via Pydantic.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gitpack.core.hooks.models import HookConfig
from gitpack.core.packages.models import PackageSpec
from gitpack.core.xdg import get_xdg_data_home, get_xdg_state_home


def default_packages_root() -> Path:
    return get_xdg_data_home() / "gitpack" / "packages"


def default_log_file() -> Path:
    return get_xdg_state_home() / "gitpack" / "gitpack.log"


class GitpackConfig(BaseModel):
    """
    Main gitpack configuration.

    Merges user config (~/.config/gitpack/config.json), project config
    (.gitpack.json), and environment variables.

    Example:
        >>> config = GitpackConfig(concurrency=4)
        >>> config.job_timeout
        60.0
    """

    packages_root: Path = Field(
        default_factory=default_packages_root,
        description="Directory holding one subdirectory per package",
    )
    concurrency: int | None = Field(
        default=None,
        ge=1,
        description="Maximum parallel git jobs (default: 2x CPU count)",
    )
    job_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds before a single git command is treated as failed",
    )
    log_file: Path = Field(
        default_factory=default_log_file,
        description="Append-only log of applied updates",
    )
    hooks: HookConfig = Field(
        default_factory=HookConfig,
        description="Lifecycle hook scripts",
    )
    packages: list[PackageSpec] = Field(
        default_factory=list,
        description="Package manifest",
    )

    model_config = ConfigDict(
        validate_assignment=True,
        extra="allow",
    )

    @field_validator("packages", mode="before")
    @classmethod
    def _accept_source_strings(cls, v: Any) -> Any:
        """Allow bare source strings in the manifest."""
        if isinstance(v, list):
            return [{"source": item} if isinstance(item, str) else item for item in v]
        return v

    @field_validator("packages_root", "log_file")
    @classmethod
    def _expand_user(cls, v: Path) -> Path:
        return v.expanduser()
