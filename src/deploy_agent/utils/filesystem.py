"""Filesystem access used by the manifest loader, diff reader and env persister.

Callers receive a :class:`FileSystem` instead of touching ``os``/``pathlib``
directly so tests can swap in an in-memory implementation.
"""

from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()


class FileSystem(Protocol):
    """Minimal file access capability."""

    def read_text(self, path: str, errors: str = "strict") -> str:
        """Return file contents decoded as UTF-8 with the given ``errors``
        policy. Raises FileNotFoundError when missing."""
        ...

    def write_text(self, path: str, content: str) -> None:
        ...

    def exists(self, path: str) -> bool:
        ...

    def is_dir(self, path: str) -> bool:
        ...

    def remove(self, path: str) -> None:
        ...


class OSFileSystem:
    """FileSystem backed by the real operating system."""

    def read_text(self, path: str, errors: str = "strict") -> str:
        return Path(path).read_text(encoding="utf-8", errors=errors)

    def write_text(self, path: str, content: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        logger.debug("Wrote file", path=path, bytes=len(content))

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def is_dir(self, path: str) -> bool:
        return Path(path).is_dir()

    def remove(self, path: str) -> None:
        Path(path).unlink()
