"""
Per-package git steps.

A package moves through

    UNRESOLVED -> HEAD_KNOWN -> TARGET_RESOLVED -> UP_TO_DATE | PENDING_UPDATE -> CHECKED_OUT

by running one git command at a time. Each Step knows when it is needed
(from what the SyncState already holds), which command to run and how to
record the result. A Pipeline is an ordered list of steps and provides the
producer/consumer pair a scheduler WorkItem needs: the next command is the
command of the first step that is still needed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from gitpack.core.exceptions import GitpackError, ProcessError
from gitpack.core.git import commands
from gitpack.core.git.commands import Command
from gitpack.core.git.runner import ProcessResult
from gitpack.core.jobs.scheduler import WorkItem
from gitpack.core.packages.models import SyncState, Version, VersionRange
from gitpack.core.packages.resolver import (
    Resolution,
    parse_branches,
    parse_lines,
    resolve_default,
    resolve_literal,
    resolve_range,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Step:
    """
    One git command in a package's state machine.

    Attributes:
        name: Short name used as the command label
        needed: Whether the step still has to run for a state
        command: Builds the argv for a state
        apply: Records a result in the state
        allow_failure: Pass non-zero exits to ``apply`` instead of failing
        cwd: Working directory (defaults to the package directory)
    """

    name: str
    needed: Callable[[SyncState], bool]
    command: Callable[[SyncState], list[str]]
    apply: Callable[[SyncState, ProcessResult], None]
    allow_failure: bool = False
    cwd: Callable[[SyncState], Path] | None = None


def settle_resolution(state: SyncState) -> None:
    """
    Resolve the package version once everything it needs is known.

    Resolution runs at most once per state. Raises ResolutionError when
    the gathered data cannot satisfy the constraint.
    """
    if state.version_label is not None:
        return

    version = state.package.spec.version
    resolution: Resolution | None = None
    if version is None:
        if state.default_branch is not None:
            resolution = resolve_default(state.default_branch)
    elif state.branches is not None and state.tags is not None:
        if isinstance(version, VersionRange):
            resolution = resolve_range(version, state.tags, state.branches)
        elif version in state.branches or state.is_tag_or_commit is not None:
            resolution = resolve_literal(
                version, state.branches, state.tags, bool(state.is_tag_or_commit)
            )

    if resolution is not None:
        state.version_label = resolution.label
        state.version_ref = resolution.ref


def _unresolved(state: SyncState) -> bool:
    return state.version_label is None


def _version(state: SyncState) -> Version:
    return state.package.spec.version


# -- Steps --------------------------------------------------------------------


def _apply_clone(state: SyncState, result: ProcessResult) -> None:
    state.did_install = True


CLONE = Step(
    name="clone",
    needed=lambda s: not s.did_install,
    command=lambda s: commands.clone(s.package.spec.source, s.path),
    apply=_apply_clone,
    cwd=lambda s: s.path.parent,
)


def _apply_fetch(state: SyncState, result: ProcessResult) -> None:
    state.fetched = True


FETCH = Step(
    name="fetch",
    needed=lambda s: not s.fetched,
    command=lambda s: commands.fetch(),
    apply=_apply_fetch,
)


def _apply_origin(state: SyncState, result: ProcessResult) -> None:
    state.origin = result.stdout.strip()


ORIGIN = Step(
    name="origin",
    needed=lambda s: s.origin is None,
    command=lambda s: commands.get_origin(),
    apply=_apply_origin,
)


def _apply_head(state: SyncState, result: ProcessResult) -> None:
    state.head_hash = result.stdout.strip()


HEAD = Step(
    name="head",
    needed=lambda s: s.head_hash is None,
    command=lambda s: commands.get_hash("HEAD"),
    apply=_apply_head,
)


def _apply_default_branch(state: SyncState, result: ProcessResult) -> None:
    state.default_branch = result.stdout.strip()


DEFAULT_BRANCH = Step(
    name="default-branch",
    needed=lambda s: _unresolved(s) and _version(s) is None and s.default_branch is None,
    command=lambda s: commands.get_default_origin_branch(),
    apply=_apply_default_branch,
)


def _apply_branches(state: SyncState, result: ProcessResult) -> None:
    state.branches = parse_branches(result.stdout)


BRANCHES = Step(
    name="branches",
    needed=lambda s: _unresolved(s) and _version(s) is not None and s.branches is None,
    command=lambda s: commands.list_branches(),
    apply=_apply_branches,
)


def _apply_tags(state: SyncState, result: ProcessResult) -> None:
    state.tags = parse_lines(result.stdout)


TAGS = Step(
    name="tags",
    needed=lambda s: _unresolved(s) and _version(s) is not None and s.tags is None,
    command=lambda s: commands.list_tags(),
    apply=_apply_tags,
)


def _apply_verify(state: SyncState, result: ProcessResult) -> None:
    state.is_tag_or_commit = result.ok


def _verify_needed(state: SyncState) -> bool:
    version = _version(state)
    return (
        _unresolved(state)
        and isinstance(version, str)
        and state.branches is not None
        and version not in state.branches
        and state.is_tag_or_commit is None
    )


VERIFY = Step(
    name="verify",
    needed=_verify_needed,
    command=lambda s: commands.get_hash(str(_version(s))),
    apply=_apply_verify,
    allow_failure=True,
)


def _apply_target(state: SyncState, result: ProcessResult) -> None:
    state.target_hash = result.stdout.strip()


TARGET = Step(
    name="target",
    needed=lambda s: not _unresolved(s) and s.target_hash is None,
    command=lambda s: commands.get_hash(s.target_ref or ""),
    apply=_apply_target,
)


def _details_command(state: SyncState) -> list[str]:
    if state.has_update:
        return commands.log(state.head_hash or "", state.target_hash or "")
    return commands.list_new_tags(state.target_hash or "")


def _apply_details(state: SyncState, result: ProcessResult) -> None:
    state.update_details = result.stdout


DETAILS = Step(
    name="details",
    needed=lambda s: s.target_hash is not None and s.update_details is None,
    command=_details_command,
    apply=_apply_details,
)


def _apply_current_tags(state: SyncState, result: ProcessResult) -> None:
    # Tags pointing at the target are not "newer"
    state.current_tags = parse_lines(result.stdout)
    new_tags = [tag for tag in (state.update_details or "").split("\n") if tag]
    state.update_details = "\n".join(tag for tag in new_tags if tag not in state.current_tags)


CURRENT_TAGS = Step(
    name="current-tags",
    needed=lambda s: (
        s.target_hash is not None
        and not s.has_update
        and bool(s.update_details)
        and s.current_tags is None
    ),
    command=lambda s: commands.list_current_tags(s.target_hash or ""),
    apply=_apply_current_tags,
)


def _stash_step(timestamp: str) -> Step:
    def apply(state: SyncState, result: ProcessResult) -> None:
        state.stashed = True

    return Step(
        name="stash",
        needed=lambda s: s.target_hash is not None and not s.stashed,
        command=lambda s: commands.stash(timestamp),
        apply=apply,
    )


def _apply_checkout(state: SyncState, result: ProcessResult) -> None:
    state.did_checkout = True


CHECKOUT = Step(
    name="checkout",
    needed=lambda s: s.stashed and not s.did_checkout,
    command=lambda s: commands.checkout(s.target_hash or ""),
    apply=_apply_checkout,
)

_RESOLVE_STEPS = [HEAD, DEFAULT_BRANCH, BRANCHES, TAGS, VERIFY, TARGET]


# -- Pipelines ----------------------------------------------------------------


class Pipeline:
    """
    An ordered list of steps driving one kind of round.

    The same pipeline serves every package of a round. It keeps no
    per-package data: everything lives in the SyncState.
    """

    def __init__(self, steps: Iterable[Step]):
        self.steps = list(steps)

    def next_step(self, state: SyncState) -> Step | None:
        settle_resolution(state)
        for step in self.steps:
            if step.needed(state):
                return step
        return None

    def produce(self, state: SyncState) -> Command | None:
        step = self.next_step(state)
        if step is None:
            return None
        cwd = step.cwd(state) if step.cwd is not None else state.path
        return Command(step.command(state), cwd=cwd, label=step.name)

    def consume(self, state: SyncState, result: ProcessResult) -> None:
        # State is unchanged since the command was produced
        step = self.next_step(state)
        if step is None:
            return

        if not result.ok and not step.allow_failure:
            raise ProcessError(step.command(state), result.exit_code, result.stderr)

        if result.is_warning:
            logger.warning("%s: %s", state.name, result.stderr)
            state.add_warning(result.stderr)

        step.apply(state, result)
        if step.needed(state):
            raise GitpackError(f"Step `{step.name}` made no progress", package=state.name)

    def work_item(self, state: SyncState) -> WorkItem:
        # Each step runs at most once per round
        return WorkItem(
            state=state,
            producer=self.produce,
            consumer=self.consume,
            max_commands=len(self.steps),
        )


def install_pipeline(timestamp: str) -> Pipeline:
    """clone -> head -> resolve -> target -> stash -> checkout."""
    return Pipeline([CLONE, *_RESOLVE_STEPS, _stash_step(timestamp), CHECKOUT])


def download_pipeline(skip_fetch: bool = False) -> Pipeline:
    """fetch -> head -> resolve -> target -> update details."""
    steps = [] if skip_fetch else [FETCH]
    return Pipeline([*steps, *_RESOLVE_STEPS, DETAILS, CURRENT_TAGS])


def apply_pipeline(timestamp: str) -> Pipeline:
    """stash -> checkout, for states whose target is already known."""
    return Pipeline([_stash_step(timestamp), CHECKOUT])


def inspect_pipeline() -> Pipeline:
    """Origin URL and default branch, for listing packages."""
    return Pipeline([ORIGIN, DEFAULT_BRANCH])
