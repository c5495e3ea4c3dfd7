"""
Hook data models for gitpack.

Defines the lifecycle events emitted around package install, update and
delete, the context passed with each event, and models for hook script
results and configuration.

Context models serialize to JSON and are passed to hook scripts via the
GITPACK_HOOK_CONTEXT environment variable.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class LifecycleEvent(str, Enum):
    """Lifecycle events for a package."""

    PRE_INSTALL = "pre-install"
    POST_INSTALL = "post-install"
    PRE_UPDATE = "pre-update"
    POST_UPDATE = "post-update"
    PRE_DELETE = "pre-delete"
    POST_DELETE = "post-delete"


class PackageEventContext(BaseModel):
    """
    Context for every lifecycle event.

    Carries the resolved package spec and its path on disk.
    """

    event: LifecycleEvent = Field(description="Event being emitted")
    name: str = Field(description="Package name")
    source: str = Field(description="Package source URI")
    version: str | None = Field(default=None, description="Requested version, if any")
    path: str = Field(description="Absolute path of the package directory")
    timestamp: datetime = Field(default_factory=datetime.now, description="When emitted")

    def to_json(self) -> str:
        """Serialize to JSON string for environment variable passing."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, json_str: str) -> "PackageEventContext":
        """Deserialize from JSON string."""
        return cls.model_validate_json(json_str)


class HookResult(BaseModel):
    """
    Result from hook script execution.

    Captures the success/failure status, output, and timing information
    from a hook script invocation.
    """

    success: bool = Field(description="Whether hook executed successfully")
    exit_code: int = Field(default=0, description="Exit code from hook script")
    stdout: str = Field(default="", description="Standard output from hook")
    stderr: str = Field(default="", description="Standard error from hook")
    duration_seconds: float = Field(description="Hook execution duration")
    timestamp: datetime = Field(default_factory=datetime.now, description="When hook was executed")
    error_message: str | None = Field(default=None, description="Error message if execution failed")

    @property
    def failed(self) -> bool:
        """Check if hook execution failed."""
        return not self.success


class HookConfig(BaseModel):
    """
    Configuration for lifecycle hook scripts.

    Defines which hooks are enabled, where to find scripts, and
    execution parameters like timeout.
    """

    enabled: bool = Field(default=True, description="Whether hooks are enabled globally")
    project_hooks_dir: str = Field(
        default=".gitpack/hooks", description="Project-relative hooks directory"
    )
    global_hooks_dir: str | None = Field(
        default=None, description="Global hooks directory (default: ~/.config/gitpack/hooks)"
    )
    timeout_seconds: int = Field(default=30, ge=1, le=300, description="Timeout for hook execution")
    fail_on_error: bool = Field(
        default=False,
        description="Whether a failing hook aborts the operation (default: log and continue)",
    )
    enabled_hooks: list[str] = Field(
        default_factory=lambda: [event.value for event in LifecycleEvent],
        description="List of enabled hook names",
    )

    def is_hook_enabled(self, hook_name: str) -> bool:
        return self.enabled and hook_name in self.enabled_hooks

    def get_project_hooks_path(self, project_dir: Path) -> Path:
        return project_dir / self.project_hooks_dir

    def get_global_hooks_path(self) -> Path | None:
        """
        Get absolute path to global hooks directory.

        Returns:
            Absolute path to global hooks directory, or None if not configured
        """
        if self.global_hooks_dir:
            return Path(self.global_hooks_dir).expanduser()
        return None
