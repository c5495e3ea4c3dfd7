"""
Data models for package specifications and per-call package state.

PackageSpec and VersionRange are validated at the boundary with Pydantic.
ResolvedPackage and SyncState are plain dataclasses: they live for one
orchestration call and are mutated by the sync engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Union

import semantic_version
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_UNSAFE_NAME_CHARS = ("/", "\\", "\0")


@lru_cache(maxsize=256)
def _compile_range(expression: str) -> semantic_version.NpmSpec:
    return semantic_version.NpmSpec(expression)


def parse_tag_version(tag: str) -> semantic_version.Version | None:
    """
    Parse a git tag as a semantic version.

    Accepts an optional leading ``v`` and partial versions (``v1``, ``1.2``).

    Args:
        tag: Tag name

    Returns:
        Parsed version, or None if the tag is not version-like
    """
    text = tag.strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    if not text or not text[0].isdigit():
        return None
    try:
        return semantic_version.Version.coerce(text)
    except ValueError:
        return None


class VersionRange(BaseModel):
    """
    A semantic version constraint, e.g. ``>=1.0.0 <2.0.0`` or ``1.x``.

    Uses npm range syntax. Pre-release versions only satisfy a range when a
    comparator in the range names the same major.minor.patch.

    Example:
        >>> r = VersionRange(">=1.0.0 <2.0.0")
        >>> r.contains_tag("v1.5.2")
        True
    """

    model_config = ConfigDict(frozen=True)

    range: str = Field(description="npm-style semver range expression")

    def __init__(self, range: str | None = None, **data: Any) -> None:
        if range is not None:
            data["range"] = range
        super().__init__(**data)

    @field_validator("range")
    @classmethod
    def _validate_range(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("version range cannot be empty")
        _compile_range(v)
        return v

    @property
    def spec(self) -> semantic_version.NpmSpec:
        return _compile_range(self.range)

    def contains(self, version: semantic_version.Version) -> bool:
        return self.spec.match(version)

    def contains_tag(self, tag: str) -> bool:
        version = parse_tag_version(tag)
        return version is not None and self.contains(version)

    def __str__(self) -> str:
        return self.range


# Unset | branch/tag/commit | semver range
Version = Union[None, str, VersionRange]


def derive_name(source: str) -> str:
    """Derive a package name from the last path segment of its source."""
    trimmed = source.rstrip("/")
    if trimmed.endswith(".git"):
        trimmed = trimmed[: -len(".git")]
    return trimmed.rsplit("/", 1)[-1]


class PackageSpec(BaseModel):
    """
    Specification of one managed package.

    Attributes:
        source: Any URI ``git clone`` accepts
        name: Directory name under the packages root (derived from source)
        version: None for the default branch, a branch/tag/commit string, or
            a VersionRange selecting the greatest matching semver tag
    """

    model_config = ConfigDict(frozen=True)

    source: str = Field(min_length=1, description="URI to clone and fetch from")
    name: str = Field(description="Package directory name")
    version: VersionRange | str | None = Field(
        default=None, description="Branch, tag, commit, or semver range"
    )

    @model_validator(mode="before")
    @classmethod
    def _fill_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and isinstance(data.get("source"), str):
            data = {**data, "name": derive_name(data["source"])}
        return data

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        if not v or v in (".", ".."):
            raise ValueError(f"invalid package name: {v!r}")
        if any(ch in v for ch in _UNSAFE_NAME_CHARS):
            raise ValueError(f"package name is not filesystem-safe: {v!r}")
        return v

    @field_validator("version")
    @classmethod
    def _validate_version(cls, v: VersionRange | str | None) -> VersionRange | str | None:
        if isinstance(v, str) and not v.strip():
            raise ValueError("version string cannot be empty")
        return v

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON config files and ``list --json`` output."""
        data: dict[str, Any] = {"source": self.source, "name": self.name}
        if isinstance(self.version, VersionRange):
            data["version"] = {"range": self.version.range}
        elif self.version is not None:
            data["version"] = self.version
        return data


@dataclass
class ResolvedPackage:
    """A specification bound to its on-disk path."""

    spec: PackageSpec
    path: Path

    @property
    def name(self) -> str:
        return self.spec.name


@dataclass
class SyncState:
    """
    Everything learned about one package during one orchestration call.

    Once ``error`` is non-empty no further work runs for the package.
    """

    package: ResolvedPackage
    head_hash: str | None = None
    target_hash: str | None = None
    version_label: str | None = None
    version_ref: str | None = None
    update_details: str | None = None
    branches: list[str] | None = None
    tags: list[str] | None = None
    current_tags: list[str] | None = None
    origin: str | None = None
    default_branch: str | None = None
    is_tag_or_commit: bool | None = None
    fetched: bool = False
    did_install: bool = False
    stashed: bool = False
    did_checkout: bool = False
    warnings: str = ""
    error: str = ""

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def path(self) -> Path:
        return self.package.path

    @property
    def failed(self) -> bool:
        return self.error != ""

    @property
    def target_ref(self) -> str | None:
        return self.version_ref or self.version_label

    @property
    def has_update(self) -> bool:
        return self.head_hash != self.target_hash

    def add_warning(self, text: str) -> None:
        self.warnings = f"{self.warnings}\n{text}" if self.warnings else text

    def add_error(self, text: str) -> None:
        self.error = f"{self.error}\n{text}" if self.error else text


@dataclass
class PackageInfo:
    """
    Public view of a managed package.

    Attributes:
        spec: Specification with the default version made explicit
        path: Package directory
        was_added: Whether the package is registered in this session
    """

    spec: PackageSpec
    path: Path
    was_added: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"spec": self.spec.to_dict(), "path": str(self.path), "was_added": self.was_added}

