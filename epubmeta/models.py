from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from .archive import EpubArchive


@dataclass(frozen=True)
class XhtmlToc:
    path: str
    type: str = field(default="xhtml", init=False)


@dataclass(frozen=True)
class NcxToc:
    path: str
    type: str = field(default="ncx", init=False)


TocPointer = Union[XhtmlToc, NcxToc]


@dataclass(frozen=True)
class Chapter:
    path: str
    title: str
    archive: Optional["EpubArchive"] = field(default=None, repr=False, compare=False)

    async def read(self) -> str:
        """Return the chapter's raw text; nothing is cached between calls."""
        if self.archive is None:
            raise RuntimeError(f"Chapter {self.path!r} is not bound to an archive")
        return self.archive.read_text(self.path)


@dataclass
class Metadata:
    identifiers: list[str] = field(default_factory=list)
    primary_identifier: Optional[str] = None
    language: Optional[str] = None
    title: Optional[str] = None
    source: Optional[str] = None
    publisher: Optional[str] = None
    creators: list[str] = field(default_factory=list)
    description: Optional[str] = None
    date: Optional[dt.datetime] = None
    tags: list[str] = field(default_factory=list)
    modified: Optional[dt.datetime] = None
    # calibre custom columns and bookkeeping
    updated: Optional[dt.datetime] = None
    words: Any = None
    authorurl: Any = None
    status: Any = None
    fandom: Any = None
    timestamp: Optional[dt.datetime] = None
    title_sort: Optional[str] = None
    toc_pointer: Optional[TocPointer] = None
    toc: list[Chapter] = field(default_factory=list)
    archive: Optional["EpubArchive"] = field(default=None, repr=False, compare=False)

    def __enter__(self) -> "Metadata":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self.archive is not None:
            self.archive.close()


def _date_to_str(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def chapter_to_dict(chapter: Chapter) -> dict:
    return {
        "path": chapter.path,
        "title": chapter.title,
    }


def toc_pointer_to_dict(pointer: Optional[TocPointer]) -> Optional[dict]:
    if pointer is None:
        return None
    return {"type": pointer.type, "path": pointer.path}


def metadata_to_dict(meta: Metadata) -> dict:
    return {
        "identifiers": list(meta.identifiers),
        "primary_identifier": meta.primary_identifier,
        "language": meta.language,
        "title": meta.title,
        "source": meta.source,
        "publisher": meta.publisher,
        "creators": list(meta.creators),
        "description": meta.description,
        "date": _date_to_str(meta.date),
        "tags": list(meta.tags),
        "modified": _date_to_str(meta.modified),
        "updated": _date_to_str(meta.updated),
        "words": meta.words,
        "authorurl": meta.authorurl,
        "status": meta.status,
        "fandom": meta.fandom,
        "timestamp": _date_to_str(meta.timestamp),
        "title_sort": meta.title_sort,
        "toc_pointer": toc_pointer_to_dict(meta.toc_pointer),
        "toc": [chapter_to_dict(chapter) for chapter in meta.toc],
    }
