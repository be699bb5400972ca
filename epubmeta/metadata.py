from __future__ import annotations

import datetime as dt
import json
import logging
import re
from typing import Any, Callable, Optional

from bs4 import Tag

from .archive import EpubArchive, resolve_path
from .models import Metadata, NcxToc, TocPointer, XhtmlToc
from .namespaces import NAMESPACES, XmlQuery, read_xml
from .xmlobject import translate_element

logger = logging.getLogger("epubmeta.metadata")

NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
CALIBRE_VALUE_KEY = "#value#"

_PREFIX_PAIR_RE = re.compile(r"([^\s:]+):\s*(\S+)")
_XMLNS_ATTR_RE = re.compile(r"^xmlns:(.+)$")
_PARTIAL_DATE_RE = re.compile(r"^(\d{4})(?:-(\d{1,2}))?$")


def parse_date(value: Any) -> Optional[dt.datetime]:
    """Parse an OPF date; ``None`` when the value is not a recognizable date."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    try:
        return dt.datetime.fromisoformat(cleaned)
    except ValueError:
        pass
    match = _PARTIAL_DATE_RE.match(cleaned)
    if not match:
        return None
    try:
        return dt.datetime(int(match.group(1)), int(match.group(2) or 1), 1)
    except ValueError:
        return None


def split_tags(values: list[str]) -> list[str]:
    tags: list[str] = []
    seen: set[str] = set()
    for value in values:
        for part in value.split(","):
            tag = part.strip()
            if not tag or tag in seen:
                continue
            seen.add(tag)
            tags.append(tag)
    return tags


def _node_text(node: Tag) -> Optional[str]:
    return node.get_text().strip() or None


def _content(node: Tag) -> Optional[str]:
    value = node.get("content")
    if value is None:
        return _node_text(node)
    return str(value)


def _calibre_value(node: Tag, prop: str) -> Any:
    raw = _content(node)
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("ignoring %s: content is not JSON (%s)", prop, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("ignoring %s: expected a JSON object, got %s", prop, type(data).__name__)
        return None
    return data.get(CALIBRE_VALUE_KEY)


def _dated(field_name: str, value: Any) -> Optional[dt.datetime]:
    parsed = parse_date(value)
    if parsed is None and value is not None and value != "":
        logger.warning("dropping %s: unparseable date %r", field_name, value)
    return parsed


def _set_modified(meta: Metadata, node: Tag, prop: str) -> None:
    meta.modified = _dated("modified", _node_text(node))


def _set_updated(meta: Metadata, node: Tag, prop: str) -> None:
    meta.updated = _dated("updated", _calibre_value(node, prop))


def _set_timestamp(meta: Metadata, node: Tag, prop: str) -> None:
    meta.timestamp = _dated("timestamp", _content(node))


def _set_title_sort(meta: Metadata, node: Tag, prop: str) -> None:
    meta.title_sort = _content(node)


def _calibre_column(field_name: str) -> Callable[[Metadata, Tag, str], None]:
    def handler(meta: Metadata, node: Tag, prop: str) -> None:
        setattr(meta, field_name, _calibre_value(node, prop))

    return handler


PROPERTY_HANDLERS: dict[str, Callable[[Metadata, Tag, str], None]] = {
    "dcterms$modified": _set_modified,
    "calibre$user_metadata:#updated": _set_updated,
    "calibre$user_metadata:#words": _calibre_column("words"),
    "calibre$user_metadata:#authorurl": _calibre_column("authorurl"),
    "calibre$user_metadata:#status": _calibre_column("status"),
    "calibre$user_metadata:#fandom": _calibre_column("fandom"),
    "calibre$timestamp": _set_timestamp,
    "calibre$title_sort": _set_title_sort,
}


def register_prefixes(q: XmlQuery) -> None:
    for canonical in NAMESPACES.values():
        q.prefix(canonical, canonical)

    package = q.first("package")
    declared = str(package.get("prefix") or "") if package is not None else ""
    for name, uri in _PREFIX_PAIR_RE.findall(declared):
        q.prefixes.declare(name, uri)

    metadata = q.first("metadata")
    if metadata is None:
        return
    for attr, uri in metadata.attrs.items():
        match = _XMLNS_ATTR_RE.match(str(attr))
        if match:
            q.prefixes.declare(match.group(1), str(uri))


def _meta_property(q: XmlQuery, node: Tag) -> Optional[str]:
    return q.prefixes.qualify(node.get("property")) or q.prefixes.qualify(node.get("name"))


def apply_meta_properties(q: XmlQuery, meta: Metadata) -> None:
    for node in q.query("meta"):
        prop = _meta_property(q, node)
        handler = PROPERTY_HANDLERS.get(prop or "")
        if handler is None:
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("unhandled meta property %s: %s", prop, translate_element(node))
            continue
        handler(meta, node, prop)


def find_toc_pointer(q: XmlQuery, package_path: str) -> Optional[TocPointer]:
    nav_href = q.attr('item[properties~="nav"]', "href")
    if nav_href:
        return XhtmlToc(resolve_path(package_path, nav_href))
    ncx_href = q.attr(f'item[media-type="{NCX_MEDIA_TYPE}"]', "href")
    if ncx_href:
        return NcxToc(resolve_path(package_path, ncx_href))
    return None


def extract_metadata(q: XmlQuery, package_path: str) -> Metadata:
    meta = Metadata()
    unique_identifier = q.attr("package", "unique-identifier")
    register_prefixes(q)

    identifiers = q.query("dc$identifier")
    meta.identifiers = [node.get_text().strip() for node in identifiers]
    if unique_identifier:
        for node in identifiers:
            if node.get("id") == unique_identifier:
                meta.primary_identifier = node.get_text().strip()
                break

    meta.language = q.text("dc$language")
    meta.title = q.text("dc$title")
    meta.source = q.text("dc$source")
    meta.publisher = q.text("dc$publisher")
    meta.creators = [node.get_text().strip() for node in q.query("dc$creator")]
    meta.description = q.text("dc$description")
    meta.date = _dated("date", q.text("dc$date"))
    meta.tags = split_tags([node.get_text() for node in q.query("dc$subject")])

    apply_meta_properties(q, meta)

    meta.toc_pointer = find_toc_pointer(q, package_path)
    return meta


async def read_metadata(archive: EpubArchive, package_path: str) -> Metadata:
    q = await read_xml(archive, package_path)
    meta = extract_metadata(q, package_path)
    meta.archive = archive
    return meta
