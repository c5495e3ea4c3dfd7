"""
Git command lines used by gitpack.

Every function here is pure: it maps a logical operation to the argv that
performs it. Nothing is executed. All commands run with ``-c gc.auto=0`` so
git does not print "Auto packing..." to stderr on success.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

REMOTE = "origin"

_GIT_PREFIX = ["git", "-c", "gc.auto=0"]


@dataclass(frozen=True)
class Command:
    """
    A git invocation bound to a working directory.

    Attributes:
        argv: Full command line, starting with ``git``
        cwd: Directory to run in
        label: Short operation name for logs (e.g. "fetch")
    """

    argv: list[str] = field(hash=False)
    cwd: Path
    label: str = ""

    def __str__(self) -> str:
        return " ".join(self.argv)


def _git(*args: str) -> list[str]:
    return [*_GIT_PREFIX, *args]


def clone(source: str, path: Path | str) -> list[str]:
    """Clone ``source`` into ``path`` with a blob filter and submodules.

    Local ``file://`` sources do not support partial clone filters reliably,
    so they are cloned with ``--no-hardlinks`` instead.
    """
    # '--also-filter-submodules' requires git >= 2.36
    opts = ["--filter=blob:none", "--recurse-submodules", "--also-filter-submodules"]
    if source.startswith("file://"):
        opts = ["--no-hardlinks"]
    return _git("clone", "--quiet", *opts, "--origin", REMOTE, source, str(path))


def stash(timestamp: str) -> list[str]:
    message = f"(gitpack) {timestamp} Stash before checkout"
    return _git("stash", "--quiet", "--message", message)


def checkout(target: str) -> list[str]:
    return _git("checkout", "--quiet", target)


def fetch() -> list[str]:
    # '--tags --force' syncs conflicting tags with the remote
    return _git("fetch", "--quiet", "--tags", "--force", "--recurse-submodules=yes", REMOTE)


def get_origin() -> list[str]:
    return _git("remote", "get-url", REMOTE)


def get_default_origin_branch() -> list[str]:
    return _git("rev-parse", "--abbrev-ref", f"{REMOTE}/HEAD")


def get_hash(rev: str) -> list[str]:
    """Commit of ``rev``.

    ``rev-list -1`` gives the commit an annotated tag points to, where
    ``rev-parse`` would give the tag object itself.
    """
    return _git("rev-list", "-1", "--abbrev-commit", rev)


def log(from_rev: str, to_rev: str) -> list[str]:
    """One line per commit between two revisions, decorated with tags only."""
    pretty = "--pretty=format:%m %h │ %s%d"
    return _git(
        "log", pretty, "--topo-order", "--decorate-refs=refs/tags", f"{from_rev}...{to_rev}"
    )


def list_branches() -> list[str]:
    return _git("branch", "--remote", "--list", "--format=%(refname:short)", "--", f"{REMOTE}/**")


def list_tags() -> list[str]:
    return _git("tag", "--list", "--sort=-v:refname")


def list_new_tags(from_rev: str) -> list[str]:
    return _git("tag", "--list", "--sort=-v:refname", "--contains", from_rev)


def list_current_tags(at_rev: str) -> list[str]:
    return _git("tag", "--list", "--points-at", at_rev)
