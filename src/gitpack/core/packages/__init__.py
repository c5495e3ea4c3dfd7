"""
Package specifications, session state and the sync engine.

The service lives in ``gitpack.core.packages.service`` and is not imported
here: the config models depend on this package's models.

Example:
    >>> from gitpack.core.packages import PackageSpec, VersionRange
    >>> spec = PackageSpec(source="https://github.com/user/plugin", version=VersionRange("1.x"))
    >>> spec.name
    'plugin'
"""

from gitpack.core.packages.models import (
    PackageInfo,
    PackageSpec,
    ResolvedPackage,
    SyncState,
    VersionRange,
)
from gitpack.core.packages.registry import RegisteredSet
from gitpack.core.packages.spec import normalize_spec, resolve_packages

__all__ = [
    "PackageInfo",
    "PackageSpec",
    "RegisteredSet",
    "ResolvedPackage",
    "SyncState",
    "VersionRange",
    "normalize_spec",
    "resolve_packages",
]
