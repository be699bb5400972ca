from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Optional, Union

from bs4 import BeautifulSoup, Tag

if TYPE_CHECKING:
    from .archive import EpubArchive

DC_NS = "http://purl.org/dc/elements/1.1/"
DCTERMS_NS = "http://purl.org/dc/terms/"
CALIBRE_NS = "https://calibre-ebook.com"
CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
FOAF_NS = "http://xmlns.com/foaf/spec/"
OPF_NS = "http://www.idpf.org/2007/opf"
OPS_NS = "http://www.idpf.org/2007/ops"
NCX_NS = "http://www.daisy.org/z3986/2005/ncx/"
MARC_NS = "https://www.loc.gov/marc/relators/relacode.html"
XMLNS_NS = "http://www.w3.org/2000/xmlns/"

# URI -> canonical prefix. Fixed for the life of the process.
NAMESPACES: Mapping[str, str] = MappingProxyType(
    {
        OPF_NS: "opf",
        OPS_NS: "epub",
        NCX_NS: "ncx",
        DC_NS: "dc",
        DCTERMS_NS: "dcterms",
        CALIBRE_NS: "calibre",
        CONTAINER_NS: "oasis",
        FOAF_NS: "foaf",
        XMLNS_NS: "xmlns",
        MARC_NS: "marc",
    }
)
CANONICAL_URIS: Mapping[str, str] = MappingProxyType({prefix: uri for uri, prefix in NAMESPACES.items()})

# `alias$local` or `alias\:local` inside a selector.
_QUALIFIED_TOKEN_RE = re.compile(r"(?<![\w-])([A-Za-z_][\w.-]*)(?:\$|\\:)([A-Za-z_][\w.-]*)")
_QUALIFIED_NAME_RE = re.compile(r"^([^:]+)(?::(.*))?$")


def canonical_prefix(uri: Optional[str]) -> Optional[str]:
    if not uri:
        return None
    return NAMESPACES.get(uri)


@dataclass
class PrefixTable:
    """Per-document mapping between declared aliases and canonical prefixes."""

    alias_to_canonical: dict[str, str] = field(default_factory=dict)
    canonical_to_alias: dict[str, str] = field(default_factory=dict)
    # URIs the document binds to a prefix, where they differ from the registry.
    extra_uris: dict[str, str] = field(default_factory=dict)

    def register(self, alias: str, canonical: str, uri: Optional[str] = None) -> None:
        self.alias_to_canonical[alias] = canonical
        self.canonical_to_alias[canonical] = alias
        if uri and CANONICAL_URIS.get(canonical) != uri:
            self.extra_uris[canonical] = uri

    def declare(self, alias: str, uri: str) -> str:
        """Register ``alias`` as declared for ``uri`` in the document itself."""
        uri = (uri or "").strip()
        canonical = canonical_prefix(uri) or alias
        self.register(alias, canonical, uri)
        return canonical

    def canonical(self, alias: str) -> str:
        return self.alias_to_canonical.get(alias, alias)

    def alias(self, canonical: str) -> str:
        return self.canonical_to_alias.get(canonical, canonical)

    def namespaces(self) -> dict[str, str]:
        return {**CANONICAL_URIS, **self.extra_uris}

    def qualify(self, name: Optional[str]) -> Optional[str]:
        """Turn ``alias:local`` into ``canonical$local``; bare names pass through."""
        if not name:
            return name
        match = _QUALIFIED_NAME_RE.match(name)
        if not match:
            return name
        prefix, local = match.groups()
        if not local:
            return prefix
        return f"{self.canonical(prefix)}${local}"


class XmlQuery:
    """A parsed XML document queried with namespace-aware CSS selectors.

    ``query("dc$title")``, ``query(r"dc\\:title")`` and ``query("dc", "title")``
    are equivalent: the alias goes through the document's ``PrefixTable`` and
    the resulting canonical prefix is bound to its namespace URI for the
    selector engine.
    """

    def __init__(self, raw: Union[bytes, str]):
        self.soup = BeautifulSoup(raw, "lxml-xml")
        self.prefixes = PrefixTable()

    def prefix(self, alias: str, canonical: str) -> None:
        self.prefixes.register(alias, canonical)

    def selector(self, selector: str, local: Optional[str] = None) -> str:
        if local is not None:
            return f"{self.prefixes.canonical(selector)}|{local}"
        return _QUALIFIED_TOKEN_RE.sub(
            lambda match: f"{self.prefixes.canonical(match.group(1))}|{match.group(2)}",
            selector,
        )

    def query(self, selector: str, local: Optional[str] = None, *, scope: Optional[Tag] = None) -> list[Tag]:
        root = scope if scope is not None else self.soup
        return list(root.select(self.selector(selector, local), namespaces=self.prefixes.namespaces()))

    __call__ = query

    def first(self, selector: str, local: Optional[str] = None, *, scope: Optional[Tag] = None) -> Optional[Tag]:
        root = scope if scope is not None else self.soup
        return root.select_one(self.selector(selector, local), namespaces=self.prefixes.namespaces())

    def text(self, selector: str, local: Optional[str] = None) -> Optional[str]:
        node = self.first(selector, local)
        if node is None:
            return None
        return node.get_text().strip() or None

    def attr(self, selector: str, name: str) -> Optional[str]:
        node = self.first(selector)
        if node is None:
            return None
        value = node.get(name)
        return str(value) if value is not None else None


async def read_xml(archive: "EpubArchive", name: str) -> XmlQuery:
    return XmlQuery(archive.read_bytes(name))
