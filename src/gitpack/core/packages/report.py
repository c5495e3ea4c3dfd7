"""
Textual report of a sync.

The report groups packages into errors, pending updates and unchanged
packages. Output depends only on the package states passed in, so the same
states always render to the same bytes; this is what gets shown for
confirmation and appended to the update log.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from gitpack.core.packages.models import SyncState

HEADER_WIDTH = 80

HEADER_ERROR = "# Error"
HEADER_UPDATE = "# Update"
HEADER_SAME = "# Same"


def _header(title: str) -> str:
    return f"{title} {'─' * (HEADER_WIDTH - 1 - len(title))}"


def _indent(text: str, prefix: str) -> str:
    return prefix + text.replace("\n", "\n" + prefix)


def _version_suffix(state: SyncState) -> str:
    return f" ({state.version_label})" if state.version_label else ""


def _render_warnings(state: SyncState) -> str:
    if not state.warnings:
        return ""
    return "\n\nWarnings:\n" + _indent(state.warnings, "  ")


def render_error(state: SyncState) -> str:
    lines = [
        f"## {state.name}",
        "",
        f"Path:   {state.path}",
        f"Source: {state.package.spec.source}",
        "",
        _indent(state.error, " "),
    ]
    return "\n".join(lines) + _render_warnings(state)


def render_update(state: SyncState) -> str:
    lines = [
        f"## {state.name}",
        "",
        f"Path:         {state.path}",
        f"Source:       {state.package.spec.source}",
        f"State before: {state.head_hash}",
        f"State after:  {state.target_hash}{_version_suffix(state)}",
        "",
        "Pending updates:",
        state.update_details or "",
    ]
    return "\n".join(lines) + _render_warnings(state)


def render_same(state: SyncState) -> str:
    lines = [
        f"## {state.name}",
        "",
        f"Path:   {state.path}",
        f"Source: {state.package.spec.source}",
        f"State:  {state.target_hash}{_version_suffix(state)}",
    ]
    text = "\n".join(lines)
    if state.update_details:
        text += "\n\nAvailable newer tags:\n" + _indent(state.update_details, "• ")
    return text + _render_warnings(state)


def render_report(states: Iterable[SyncState], include_unchanged: bool = True) -> str:
    """
    Render states grouped as Error, Update and Same.

    Args:
        states: Package states in the order they should be listed
        include_unchanged: Whether to include the "Same" bucket

    Returns:
        Report text; empty when there is nothing to show
    """
    errors: list[str] = []
    updates: list[str] = []
    same: list[str] = []
    for state in states:
        if state.failed:
            errors.append(render_error(state))
        elif state.has_update:
            updates.append(render_update(state))
        else:
            same.append(render_same(state))

    blocks: list[str] = []
    groups = [(HEADER_ERROR, errors), (HEADER_UPDATE, updates)]
    if include_unchanged:
        groups.append((HEADER_SAME, same))
    for title, entries in groups:
        if entries:
            blocks.append(_header(title))
            blocks.extend(entries)
    return "\n\n".join(blocks)


def format_timestamp(moment: datetime | None = None) -> str:
    return (moment or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


def append_update_log(log_path: Path, report: str, timestamp: str | None = None) -> None:
    """
    Append a report to the update log.

    Args:
        log_path: Log file (parent directories are created)
        report: Rendered report text
        timestamp: Title timestamp (defaults to now)
    """
    title = f"========== Update {timestamp or format_timestamp()} =========="
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(f"{title}\n{report}\n\n")
