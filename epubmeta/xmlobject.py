from __future__ import annotations

from typing import Any, Optional, Union

from bs4 import CData, NavigableString, Tag

from .namespaces import canonical_prefix

ATTRIBUTES_KEY = "attributes"
TEXT_KEY = "_"

Node = dict[str, Any]


def _tag_key(tag: Tag) -> str:
    prefix = canonical_prefix(tag.namespace)
    local = (tag.name or "").rpartition(":")[2]
    return f"{prefix}${local}" if prefix else local


def _own_text(tag: Tag) -> str:
    parts = [
        str(child)
        for child in tag.children
        if isinstance(child, NavigableString) and (type(child) is NavigableString or isinstance(child, CData))
    ]
    return "".join(parts).strip()


def _child_tags(tag: Tag) -> list[Tag]:
    return [child for child in tag.children if isinstance(child, Tag)]


def _attributes(tag: Tag) -> dict[str, str]:
    return {str(name): str(value) for name, value in tag.attrs.items()}


def translate_tag(tag: Tag) -> Optional[Union[str, Node]]:
    """Translate a single element into its value under its parent's key."""
    children = _child_tags(tag)
    text = _own_text(tag)
    if not children and text:
        if tag.attrs:
            return {ATTRIBUTES_KEY: _attributes(tag), TEXT_KEY: text}
        return text
    node = translate_element(tag)
    if node is not None and text:
        node[TEXT_KEY] = text
    return node


def translate_element(element: Tag) -> Optional[Node]:
    """Flatten ``element`` into nested dicts keyed by ``prefix$local`` names.

    Sibling elements sharing a key become a list in document order. Elements
    without attributes, text or children translate to nothing and are left out.
    """

    result: Optional[Node] = None
    if element.attrs:
        result = {ATTRIBUTES_KEY: _attributes(element)}

    groups: dict[str, list[Tag]] = {}
    for child in _child_tags(element):
        groups.setdefault(_tag_key(child), []).append(child)

    for key, tags in groups.items():
        if result is None:
            result = {}
        if len(tags) > 1:
            values = [translate_tag(tag) for tag in tags]
            result[key] = [value if value is not None else {} for value in values]
            continue
        value = translate_tag(tags[0])
        if value is not None:
            result[key] = value
    return result
