from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import unquote

from bs4 import Tag

from .archive import EpubArchive, resolve_path
from .models import Chapter, NcxToc, TocPointer, XhtmlToc
from .namespaces import XmlQuery, read_xml

logger = logging.getLogger("epubmeta.toc")

_HEX_CHAR_REF_RE = re.compile(r"&#[xX]([0-9A-Fa-f]+);")
_DEC_CHAR_REF_RE = re.compile(r"&#([0-9]+);")
# "i. Preface", "ⅱ. Foreword": front matter, not chapters.
_FRONT_MATTER_RE = re.compile(r"^(?:(?:xc|xl|l?x{0,3})(?:ix|iv|v?i{0,3})|[\u2170-\u217f]+)?\. ")
_CHAPTER_NUMBER_RE = re.compile(r"^\d+\. ")


def _char(code: int, original: str) -> str:
    try:
        return chr(code)
    except (ValueError, OverflowError):
        return original


def decode_char_refs(text: str) -> str:
    text = _HEX_CHAR_REF_RE.sub(lambda m: _char(int(m.group(1), 16), m.group(0)), text)
    return _DEC_CHAR_REF_RE.sub(lambda m: _char(int(m.group(1)), m.group(0)), text)


def target_path(base_file: str, href: str) -> str:
    """Archive path a TOC link points at, fragment dropped."""
    return resolve_path(base_file, unquote(href.split("#", 1)[0]))


def clean_xhtml_title(text: str) -> Optional[str]:
    """Title for an XHTML nav entry, or ``None`` when the entry is front matter."""
    title = decode_char_refs(text)
    if _FRONT_MATTER_RE.match(title):
        return None
    return _CHAPTER_NUMBER_RE.sub("", title, count=1)


async def read_xhtml_toc(archive: EpubArchive, path: str) -> list[Chapter]:
    q = await read_xml(archive, path)
    links = q.query(r'nav[epub\:type~="toc"] li a')
    if not links:
        logger.warning("%s has no toc nav entries", path)
    toc: list[Chapter] = []
    for link in links:
        href = link.get("href")
        if href is None:
            continue
        title = clean_xhtml_title(link.get_text().strip())
        if title is None:
            continue
        toc.append(Chapter(target_path(path, str(href)), title, archive))
    return toc


def _nav_label(q: XmlQuery, point: Tag) -> str:
    label = q.first("navLabel text", scope=point)
    return decode_char_refs(label.get_text().strip()) if label is not None else ""


async def read_ncx_toc(archive: EpubArchive, path: str) -> list[Chapter]:
    q = await read_xml(archive, path)
    toc: list[Chapter] = []
    for point in q.query("navPoint"):
        content = q.first("content", scope=point)
        src = content.get("src") if content is not None else None
        if src is None:
            logger.warning("%s: navPoint %s has no content src", path, point.get("id"))
            continue
        toc.append(Chapter(target_path(path, str(src)), _nav_label(q, point), archive))
    return toc


async def read_toc(archive: EpubArchive, pointer: TocPointer) -> list[Chapter]:
    if isinstance(pointer, XhtmlToc):
        return await read_xhtml_toc(archive, pointer.path)
    if isinstance(pointer, NcxToc):
        return await read_ncx_toc(archive, pointer.path)
    raise TypeError(f"unsupported toc pointer: {pointer!r}")
