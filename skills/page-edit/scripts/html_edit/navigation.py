"""Selector and path helpers for lxml.html trees."""

import re
from typing import Iterator, List, Optional

from html_utils import css_unescape

from .common import ROOT_SELECTOR

NTH_SEGMENT_RE = re.compile(r'^([a-zA-Z][a-zA-Z0-9-]*):nth-of-type\((\d+)\)$')
TAG_NAME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9-]*$')
PATH_SEPARATOR = " > "


def is_element(node) -> bool:
    """True for real elements; comments and processing instructions have non-str tags."""
    return node is not None and isinstance(node.tag, str)


def element_children(el) -> List:
    return [child for child in el if is_element(child)]


def iter_ancestors(el) -> Iterator:
    """Yield parents of el from nearest to the document root."""
    node = el.getparent()
    while node is not None:
        yield node
        node = node.getparent()


def class_list(el) -> List[str]:
    """Class names of el in attribute order, without duplicates."""
    seen = []
    for name in (el.get('class') or '').split():
        if name not in seen:
            seen.append(name)
    return seen


def matches_simple_selector(el, selector: str) -> bool:
    """
    Test el against a single simple selector: '#id', '.class' or 'tag'.

    Only the forms used for anchors are supported; anything else never matches.
    """
    if not is_element(el) or not selector:
        return False
    if selector.startswith('#'):
        return el.get('id') == css_unescape(selector[1:])
    if selector.startswith('.'):
        return css_unescape(selector[1:]) in class_list(el)
    if TAG_NAME_RE.match(selector):
        return el.tag.lower() == selector.lower()
    return False


def closest(el, selector: str):
    """Nearest element, starting at el itself, that matches selector."""
    node = el
    while node is not None:
        if matches_simple_selector(node, selector):
            return node
        node = node.getparent()
    return None


def select_anchor(doc, selector: str):
    """
    Resolve an anchor selector in a document, first match in document order.

    Args:
        doc: Root element of the parsed document (<html>)
        selector: '#id', '.class', a tag name, or 'body'

    Returns:
        Matching element, or None when nothing matches
    """
    if not selector:
        return None
    if selector == ROOT_SELECTOR:
        body = doc.find('body')
        return body if body is not None else doc
    if selector.startswith('#'):
        nodes = doc.xpath('//*[@id=$id]', id=css_unescape(selector[1:]))
    elif selector.startswith('.'):
        nodes = doc.xpath(
            "//*[contains(concat(' ', normalize-space(@class), ' '), $cls)]",
            cls=f" {css_unescape(selector[1:])} "
        )
    elif TAG_NAME_RE.match(selector):
        nodes = doc.xpath(f'//{selector.lower()}')
    else:
        return None
    return nodes[0] if nodes else None


def resolve_nth_path(anchor, path: str):
    """
    Walk 'tag:nth-of-type(n) > ...' segments down from anchor.

    An empty path resolves to the anchor itself.

    Returns:
        The element at the end of the path, or None when any step is missing
    """
    if anchor is None:
        return None
    node = anchor
    if not path:
        return node
    for segment in path.split(PATH_SEPARATOR):
        match = NTH_SEGMENT_RE.match(segment.strip())
        if not match:
            return None
        tag, index = match.group(1).lower(), int(match.group(2))
        same_tag = [c for c in element_children(node) if c.tag.lower() == tag]
        if index < 1 or index > len(same_tag):
            return None
        node = same_tag[index - 1]
    return node
