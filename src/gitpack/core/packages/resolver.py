"""
Version resolution policy.

Turns a package's version constraint plus the live remote state (default
branch, remote branches, tags) into a human label and a git reference to
check out. The functions here do no I/O; the sync engine gathers the git
output and hands it over.
"""

from __future__ import annotations

from dataclasses import dataclass

from gitpack.core.exceptions import ResolutionError
from gitpack.core.git.commands import REMOTE
from gitpack.core.packages.models import VersionRange, parse_tag_version

_REMOTE_PREFIX = f"{REMOTE}/"


@dataclass(frozen=True)
class Resolution:
    """
    Outcome of resolving a version constraint.

    Attributes:
        label: Human-facing version (branch name, tag, or commit)
        ref: Git reference to check out (``origin/<branch>`` for branches)
    """

    label: str
    ref: str


def parse_branches(output: str) -> list[str]:
    """Branch names from ``git branch --remote`` output, without ``origin/``.

    The remote's symbolic HEAD shows up as a bare ``origin`` line and is skipped.
    """
    branches: list[str] = []
    for line in output.splitlines():
        line = line.strip()
        if line.startswith(_REMOTE_PREFIX) and len(line) > len(_REMOTE_PREFIX):
            branches.append(line[len(_REMOTE_PREFIX) :])
    return branches


def parse_lines(output: str) -> list[str]:
    return [line for line in output.splitlines() if line.strip()]


def _list_in_line(title: str, items: list[str]) -> str:
    return f"\n{title}: {', '.join(items)}" if items else ""


def resolve_default(symbolic_head: str) -> Resolution:
    """
    Resolve an unset version to the remote's default branch.

    Args:
        symbolic_head: Output of ``git rev-parse --abbrev-ref origin/HEAD``

    Returns:
        Resolution with the branch name as label and ``origin/<branch>`` as ref
    """
    label = symbolic_head.strip()
    if label.startswith(_REMOTE_PREFIX):
        label = label[len(_REMOTE_PREFIX) :]
    if not label or label == "HEAD":
        raise ResolutionError(f"Could not determine default branch of `{REMOTE}`")
    return Resolution(label=label, ref=f"{_REMOTE_PREFIX}{label}")


def resolve_literal(
    version: str,
    branches: list[str],
    tags: list[str],
    is_tag_or_commit: bool,
) -> Resolution:
    """
    Resolve a branch, tag, or commit hash.

    Branches win over tags and commits with the same name.

    Args:
        version: Requested version string
        branches: Remote branch names
        tags: Tag names (listed on failure)
        is_tag_or_commit: Whether ``git rev-list`` accepted ``version``

    Raises:
        ResolutionError: If ``version`` names nothing in the repository
    """
    if version in branches:
        return Resolution(label=version, ref=f"{_REMOTE_PREFIX}{version}")
    if is_tag_or_commit:
        return Resolution(label=version, ref=version)
    raise ResolutionError(
        f"`{version}` is not a branch/tag/commit. Available:"
        + _list_in_line("Tags", tags)
        + _list_in_line("Branches", branches)
    )


def resolve_range(version_range: VersionRange, tags: list[str], branches: list[str]) -> Resolution:
    """
    Pick the greatest semver tag inside a range.

    Tags are expected in ``--sort=-v:refname`` order; when several tags parse
    to the same version the first one listed wins.

    Raises:
        ResolutionError: If no tag satisfies the range
    """
    best_tag: str | None = None
    best_version = None
    semver_tags: list[str] = []
    for tag in tags:
        parsed = parse_tag_version(tag)
        if parsed is None:
            continue
        semver_tags.append(tag)
        if not version_range.contains(parsed):
            continue
        if best_version is None or parsed > best_version:
            best_tag, best_version = tag, parsed

    if best_tag is None:
        raise ResolutionError(
            "No versions fit constraint. Relax it or switch to branch. Available:"
            + _list_in_line("Versions", semver_tags)
            + _list_in_line("Branches", branches)
        )
    return Resolution(label=best_tag, ref=best_tag)
