"""
gitpack - Git-backed declarative package manager

Keeps a set of git repositories on disk at the versions their
specifications ask for, and stages updates for review before applying them.
"""

__version__ = "0.3.0.dev0"

# Re-export core models for convenience
from gitpack.core.packages.models import PackageSpec, VersionRange
from gitpack.core.packages.service import PackageService

__all__ = ["PackageService", "PackageSpec", "VersionRange", "__version__"]
