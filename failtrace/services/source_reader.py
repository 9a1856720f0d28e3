"""
Source Reader
=============
The boundary through which the engine asks for raw source text.

A reader returns the full text of a file or None ("not found"). It never
raises: an unreadable anchor file degrades the code frame, not the failure.
"""
import logging
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class SourceReader(Protocol):
    def read(self, path: str) -> Optional[str]:
        ...


class FileSourceReader:
    """Reads UTF-8 source files from the local file system, fresh every time."""

    def read(self, path: str) -> Optional[str]:
        if not path or path.startswith("<"):
            return None
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as e:
            logger.warning("Could not read source %s: %s", path, e)
            return None


class InMemorySourceReader:
    """Serves sources from a dict; used for stacks whose files are not on disk."""

    def __init__(self, sources: Optional[dict[str, str]] = None) -> None:
        self.sources = dict(sources or {})

    def read(self, path: str) -> Optional[str]:
        return self.sources.get(path)
