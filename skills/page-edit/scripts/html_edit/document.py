"""Parse and serialize source documents with lxml.html."""

import lxml.html
from lxml import etree

from .common import DOCTYPE


def parse_document(text: str):
    """
    Parse markup into a mutable lxml tree rooted at <html>.

    Fragments (e.g. an included footer) are wrapped into html/body the way a
    browser's DOMParser would.

    Raises:
        ValueError: when the text holds no markup at all
    """
    if not text or not text.strip():
        raise ValueError("Document is empty")
    try:
        return lxml.html.document_fromstring(text)
    except etree.ParserError as e:
        raise ValueError(f"Cannot parse document: {e}") from e


def get_body(doc):
    """Return <body>, or the root when the tree has none."""
    body = doc.find('body')
    return body if body is not None else doc


def serialize_document(doc) -> str:
    """Serialize the whole <html> element prefixed with the HTML5 doctype."""
    return DOCTYPE + lxml.html.tostring(doc, encoding='unicode', method='html')


def inner_html(el) -> str:
    """Markup of an element's content, without the element's own tag."""
    parts = [el.text or '']
    for child in el:
        parts.append(lxml.html.tostring(child, encoding='unicode', method='html', with_tail=True))
    return ''.join(parts)
