from __future__ import annotations

import logging
import posixpath
import zipfile
from pathlib import Path
from typing import Optional, Union

from .env import text_encoding

logger = logging.getLogger("epubmeta.archive")


class EpubStructureError(Exception):
    """An EPUB is missing something extraction cannot do without."""


class ArchiveEntryNotFound(EpubStructureError, FileNotFoundError):
    pass


def _canonical_member(name: str) -> str:
    normalized = posixpath.normpath((name or "").replace("\\", "/")).lstrip("/")
    while normalized.startswith("../"):
        normalized = normalized[3:]
    return "" if normalized in {"", ".", ".."} else normalized


def resolve_path(base_file: str, href: str) -> str:
    """Resolve ``href`` against the directory holding ``base_file``.

    Paths are anchored at the archive root, so ``..`` never climbs above it:
    ``resolve_path("OEBPS/nav.xhtml", "../text/ch1.xhtml")`` is ``"text/ch1.xhtml"``.
    """

    base_dir = posixpath.dirname(_canonical_member(base_file))
    joined = posixpath.normpath(posixpath.join("/", base_dir, href or ""))
    return joined.lstrip("/")


class EpubArchive:
    """Read-only view over the zip container of an EPUB.

    The zip is opened once and kept open until ``close()``; chapters read
    through it on demand.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._zf = zipfile.ZipFile(self.path, "r")
        self._index: dict[str, str] = {}
        for info in self._zf.infolist():
            if info.is_dir():
                continue
            canonical = _canonical_member(info.filename)
            if canonical and canonical not in self._index:
                self._index[canonical] = info.filename

    def __enter__(self) -> "EpubArchive":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._zf.close()

    @property
    def closed(self) -> bool:
        return self._zf.fp is None

    def names(self) -> list[str]:
        return list(self._index)

    def _locate(self, name: str) -> Optional[str]:
        return self._index.get(_canonical_member(name))

    def has(self, name: str) -> bool:
        return self._locate(name) is not None

    def read_bytes(self, name: str) -> bytes:
        actual = self._locate(name)
        if actual is None:
            raise ArchiveEntryNotFound(f"File not found in archive: {name}")
        return self._zf.read(actual)

    def read_text(self, name: str) -> str:
        return self.read_bytes(name).decode(text_encoding(), errors="replace")
