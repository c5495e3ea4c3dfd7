"""
Registered package set.

Tracks which packages were added in the current session, in the order they
were added. Only the service's control thread mutates it; the lock lets a
status query read it concurrently.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from pathlib import Path

from gitpack.core.packages.models import ResolvedPackage


class RegisteredSet:
    """
    Packages registered in a session, keyed by path.

    Adding a path that is already registered does nothing: the first
    registration's spec is kept.

    Example:
        >>> registry = RegisteredSet()
        >>> registry.add(pkg)
        True
        >>> registry.add(pkg)
        False
        >>> [p.name for p in registry]
        ['plugin']
    """

    def __init__(self) -> None:
        self._entries: dict[Path, tuple[ResolvedPackage, int]] = {}
        self._counter = 0
        self._lock = threading.Lock()

    def add(self, package: ResolvedPackage) -> bool:
        """Register a package. Returns False if its path was already registered."""
        with self._lock:
            if package.path in self._entries:
                return False
            self._counter += 1
            self._entries[package.path] = (package, self._counter)
            return True

    def remove(self, path: Path) -> bool:
        with self._lock:
            return self._entries.pop(path, None) is not None

    def get(self, path: Path) -> ResolvedPackage | None:
        with self._lock:
            entry = self._entries.get(path)
        return entry[0] if entry else None

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def packages(self) -> list[ResolvedPackage]:
        """Registered packages in insertion order."""
        with self._lock:
            entries = sorted(self._entries.values(), key=lambda entry: entry[1])
        return [pkg for pkg, _ in entries]

    def __iter__(self) -> Iterator[ResolvedPackage]:
        return iter(self.packages())
