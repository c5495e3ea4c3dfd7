"""
Regeneration of a package's documentation tag index.

Help files under ``doc/`` mark anchors as ``*tag-name*``. After every
checkout the ``doc/tags`` index is rebuilt so it matches the checked-out
files: one ``tag<TAB>file<TAB>/*tag*`` line per anchor, sorted by tag.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path

logger = logging.getLogger(__name__)

TAGS_FILE = "tags"

_TAG_PATTERN = re.compile(r"(?<![^\s|])\*([^\s*|]+)\*(?=\s|$)")


def find_tags(text: str) -> list[str]:
    """Return anchor names marked as ``*name*`` in ``text``."""
    return [m.group(1) for line in text.splitlines() for m in _TAG_PATTERN.finditer(line)]


def regenerate_helptags(
    package_path: Path,
    on_error: Callable[[str], None] | None = None,
) -> Path | None:
    """
    Rebuild ``doc/tags`` for a package.

    A stale index is always removed. A new one is only written when
    ``doc/`` contains help files with anchors. Filesystem errors never
    propagate: they are logged and passed to ``on_error``.

    Args:
        package_path: Package directory
        on_error: Receives a message when the index cannot be rebuilt

    Returns:
        Path of the written index, or None if nothing was written
    """
    doc_dir = package_path / "doc"
    tags_path = doc_dir / TAGS_FILE
    try:
        return _write_index(doc_dir, tags_path)
    except OSError as e:
        logger.warning("Could not regenerate %s: %s", tags_path, e)
        message = f"Could not regenerate {tags_path}: {e}"
        if on_error is not None:
            on_error(message)
        return None


def _write_index(doc_dir: Path, tags_path: Path) -> Path | None:
    if not doc_dir.is_dir():
        return None
    tags_path.unlink(missing_ok=True)

    entries: dict[str, str] = {}
    for help_file in sorted(doc_dir.glob("*.txt")):
        try:
            text = help_file.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Could not read %s: %s", help_file, e)
            continue
        for tag in find_tags(text):
            # First definition wins
            entries.setdefault(tag, help_file.name)

    if not entries:
        return None

    lines = [f"{tag}\t{filename}\t/*{tag}*" for tag, filename in sorted(entries.items())]
    tags_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return tags_path
