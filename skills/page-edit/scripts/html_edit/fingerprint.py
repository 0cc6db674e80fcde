"""
ABOUTME: Builds structural fingerprints for editable nodes in the live page
ABOUTME: Stable anchor, volatility-filtered id/classes, ancestor chain and sibling path
"""

from typing import List, Optional, Sequence

from html_utils import css_escape

from .common import (
    ANCESTOR_DEPTH,
    KNOWN_STABLE_ANCHORS,
    ROOT_SELECTOR,
    SOURCE_ATTR,
    VOLATILE_PATTERN,
    AncestorEntry,
    Fingerprint,
)
from .navigation import PATH_SEPARATOR, class_list, closest, element_children, is_element, select_anchor


def _is_body(el) -> bool:
    return is_element(el) and el.tag.lower() == 'body'


def _is_html(el) -> bool:
    return is_element(el) and el.tag.lower() == 'html'


def get_stable_id(el) -> str:
    el_id = el.get('id') or ''
    return el_id if el_id and not VOLATILE_PATTERN.search(el_id) else ''


def get_stable_classes(el) -> List[str]:
    return [c for c in class_list(el) if not VOLATILE_PATTERN.search(c)]


def find_stable_anchor_selector(el) -> str:
    """
    Selector of the nearest stable ancestor of el (el itself included).

    Resolution order:
        1. First node up to <body> carrying a non-volatile id -> '#<escaped id>'
        2. First known container selector that el sits inside
        3. The page root selector
    """
    node = el
    while is_element(node) and not _is_body(node) and not _is_html(node):
        stable_id = get_stable_id(node)
        if stable_id:
            return f"#{css_escape(stable_id)}"
        node = node.getparent()
    for selector in KNOWN_STABLE_ANCHORS:
        if closest(el, selector) is not None:
            return selector
    return ROOT_SELECTOR


def resolve_anchor_element(el, selector: str):
    """Anchor element in el's own tree for selector, falling back to the body."""
    anchor = None
    if selector != ROOT_SELECTOR:
        anchor = closest(el, selector)
    if anchor is None:
        anchor = select_anchor(el.getroottree().getroot(), ROOT_SELECTOR)
    return anchor


def ancestor_signature(el, root, depth: int = ANCESTOR_DEPTH) -> List[AncestorEntry]:
    """Tag/classes/id of el's parents, nearest first, up to root, <html> or depth."""
    sig = []
    node = el.getparent()
    while is_element(node) and node is not root and not _is_html(node) and len(sig) < depth:
        sig.append(AncestorEntry(
            tag=node.tag.upper(),
            classes=get_stable_classes(node),
            id=get_stable_id(node),
        ))
        node = node.getparent()
    return sig


def nth_path(el, root) -> str:
    """
    'tag:nth-of-type(n)' segments from just below root down to el.

    n is el's 1-based position among element siblings sharing its tag. The
    path always runs the full depth between root and el.
    Returns an empty string when el is root or lies outside root.
    """
    if el is None or root is None:
        return ''
    parts = []
    node = el
    while is_element(node) and node is not root:
        parent = node.getparent()
        if parent is None:
            return ''
        tag = node.tag.lower()
        idx = 1
        for sib in element_children(parent):
            if sib is node:
                break
            if sib.tag.lower() == tag:
                idx += 1
        parts.append(f"{tag}:nth-of-type({idx})")
        node = parent
    if node is not root:
        return ''
    return PATH_SEPARATOR.join(reversed(parts))


def resolve_source_file(el, default: str, source_attr: str = SOURCE_ATTR) -> str:
    """File owning el: the nearest fragment source marker, else default."""
    node = el
    while is_element(node):
        src = node.get(source_attr)
        if src:
            return src
        node = node.getparent()
    return default


def build_fingerprint(el, depth: int = ANCESTOR_DEPTH) -> Fingerprint:
    anchor_selector = find_stable_anchor_selector(el)
    root = resolve_anchor_element(el, anchor_selector)
    return Fingerprint(
        anchor_selector=anchor_selector,
        stable_id=get_stable_id(el),
        class_signature=get_stable_classes(el),
        ancestor_signature=ancestor_signature(el, root, depth),
        nth_path=nth_path(el, root),
    )


# ============================================================
# Similarity helpers (secondary signals, not part of matching order)
# ============================================================

def jaccard(a: Optional[Sequence[str]], b: Optional[Sequence[str]]) -> float:
    """Token-set overlap ratio; two empty sets score 0."""
    set_a = {v for v in (a or []) if v}
    set_b = {v for v in (b or []) if v}
    if not set_a and not set_b:
        return 0.0
    inter = len(set_a & set_b)
    return inter / (len(set_a) + len(set_b) - inter)


def levenshtein(a: str = '', b: str = '') -> int:
    a, b = a or '', b or ''
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        cur = [i]
        for j, cb in enumerate(b, 1):
            if ca == cb:
                cur.append(prev[j - 1])
            else:
                cur.append(min(prev[j - 1], cur[j - 1], prev[j]) + 1)
        prev = cur
    return prev[-1]


def similarity(a: str, b: str) -> float:
    """1 - normalized edit distance; 0 when either side is empty."""
    if not a or not b:
        return 0.0
    a, b = str(a), str(b)
    return 1 - (levenshtein(a, b) / max(len(a), len(b)))


def ancestor_overlap_score(a: Sequence[AncestorEntry], b: Sequence[AncestorEntry]) -> float:
    """Mean per-level agreement of two ancestor signatures over their common depth."""
    length = min(len(a), len(b))
    if not length:
        return 0.0
    total = 0.0
    for i in range(length):
        id_score = 1.0 if a[i].id and b[i].id and a[i].id == b[i].id else 0.0
        total += max(id_score, jaccard(a[i].classes, b[i].classes))
    return total / length
