"""Local document source: markdown enumeration and file change events."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from metamind.errors import ParseError

MARKDOWN_SUFFIX = ".md"


@dataclass(frozen=True)
class FileEvent:
    """A change notification for one file.

    ``modified`` covers creation and modification; ``deleted`` means the path
    is gone and its document should be removed.
    """

    kind: Literal["modified", "deleted"]
    path: Path

    @classmethod
    def for_path(cls, path: Path) -> FileEvent:
        """Classify a raw notification by whether *path* still exists."""
        return cls("modified" if path.exists() else "deleted", path)


def is_markdown_file(path: Path) -> bool:
    """True if *path* has a ``.md`` extension (case-insensitive)."""
    return path.suffix.lower() == MARKDOWN_SUFFIX


def scan_directory(root: Path) -> list[Path]:
    """Return every markdown file under *root*, recursing and skipping hidden directories.

    Unreadable directories are skipped. Symlinked directories are followed,
    but each real directory is scanned once, so a link back to an ancestor
    cannot loop. The result is sorted for stable progress reporting.
    """
    return sorted(_scan(root, set()))


def _scan(directory: Path, visited: set[Path]) -> list[Path]:
    try:
        real = directory.resolve()
        entries = list(directory.iterdir())
    except OSError:
        return []
    if real in visited:
        return []
    visited.add(real)

    files: list[Path] = []
    for entry in entries:
        if entry.is_dir():
            if entry.name.startswith("."):
                continue
            files.extend(_scan(entry, visited))
        elif is_markdown_file(entry):
            files.append(entry)
    return files


@dataclass(frozen=True)
class LocalFile:
    """Pipeline item backed by a file on disk."""

    file: Path

    @property
    def path(self) -> str:
        return str(self.file)

    @property
    def label(self) -> str:
        return self.file.name

    def last_modified(self) -> int:
        try:
            return int(self.file.stat().st_mtime)
        except OSError:
            return 0

    def load(self) -> bytes:
        try:
            return self.file.read_bytes()
        except OSError as exc:
            raise ParseError(f"Cannot read {self.file}: {exc}") from exc
