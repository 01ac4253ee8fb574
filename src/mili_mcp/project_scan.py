"""Read-only project inspection: directory trees and text search."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_IGNORE: frozenset[str] = frozenset({".git", "node_modules", "dist", "coverage", ".DS_Store", "build", ".next"})
DEFAULT_DEPTH = 2


def _sorted_entries(directory: Path) -> list[Path]:
    """Directories first, then files, each group by case-insensitive name."""
    try:
        entries = [p for p in directory.iterdir() if p.name not in DEFAULT_IGNORE]
    except OSError as exc:
        logger.debug("Cannot list %s: %s", directory, exc)
        return []

    def key(p: Path) -> tuple[int, str, str]:
        try:
            is_dir = p.is_dir()
        except OSError:
            is_dir = False
        return (0 if is_dir else 1, p.name.casefold(), p.name)

    return sorted(entries, key=key)


def get_structure(root: Path, depth: int = DEFAULT_DEPTH) -> str:
    """Render the tree under *root* as indented lines.

    Directories are shown as ``[DIR] name/``. Entries down to nesting level
    *depth* are listed (level 0 is root's direct children). Unreadable
    entries are skipped.
    """
    lines: list[str] = []

    def walk(directory: Path, level: int) -> None:
        indent = "  " * level
        for entry in _sorted_entries(directory):
            try:
                is_dir = entry.is_dir()
            except OSError:
                continue
            if is_dir:
                lines.append(f"{indent}[DIR] {entry.name}/")
                if level < depth and not entry.is_symlink():
                    walk(entry, level + 1)
            else:
                lines.append(f"{indent}{entry.name}")

    walk(root, 0)
    return "\n".join(lines)


def search_files(root: Path, query: str, *, case_sensitive: bool = False) -> list[Path]:
    """Return files under *root* whose text contains *query*.

    Files that cannot be read or decoded as UTF-8 are skipped. Symlinked
    directories are not followed.
    """
    needle = query if case_sensitive else query.casefold()
    matches: list[Path] = []

    def walk(directory: Path) -> None:
        for entry in _sorted_entries(directory):
            try:
                if entry.is_dir():
                    if not entry.is_symlink():
                        walk(entry)
                    continue
                text = entry.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            haystack = text if case_sensitive else text.casefold()
            if needle in haystack:
                matches.append(entry)

    walk(root)
    return matches
