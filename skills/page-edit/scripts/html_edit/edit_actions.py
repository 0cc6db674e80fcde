"""Write new text back into a matched source element."""

import re
from typing import Iterator, Tuple

import lxml.html
from lxml import etree

from html_utils import sanitize_text

from .common import ChangeRecord
from .navigation import is_element

_PADDING_RE = re.compile(r'^(\s*).*?(\s*)$', re.DOTALL)


def _iter_text_slots(el) -> Iterator[Tuple[object, str]]:
    """(node, 'text'|'tail') pairs inside el, in document order."""
    yield el, 'text'
    for child in el:
        if is_element(child):
            yield from _iter_text_slots(child)
        yield child, 'tail'


class EditActionsMixin:
        def _apply_text_update(self, el, record: ChangeRecord) -> None:
            """Rich records replace the whole content; plain ones the first text node."""
            if record.is_rich:
                self._replace_content(el, record.new_html, record.new_text)
            else:
                self._replace_first_text(el, record.new_text)

        def _replace_first_text(self, el, new_text: str) -> None:
            """
            Overwrite the first non-blank text node under el, keeping the
            whitespace that surrounded it. An element without any text gets
            new_text as its own text.
            """
            new_text = sanitize_text(new_text)
            for node, slot in _iter_text_slots(el):
                current = getattr(node, slot)
                if current and current.strip():
                    lead, trail = _PADDING_RE.match(current).groups()
                    setattr(node, slot, f"{lead}{new_text}{trail}")
                    return
            el.text = new_text

        def _replace_content(self, el, new_html: str, fallback_text: str) -> None:
            """Replace el's entire content with the parsed new_html fragment."""
            try:
                fragments = lxml.html.fragments_fromstring(sanitize_text(new_html))
            except etree.ParserError:
                if self.verbose:
                    print("  [Warning] Cannot parse rich content, writing plain text")
                fragments = [sanitize_text(fallback_text)]

            for child in list(el):
                el.remove(child)
            el.text = None

            for frag in fragments:
                if isinstance(frag, str):
                    if len(el):
                        el[-1].tail = (el[-1].tail or '') + frag
                    else:
                        el.text = (el.text or '') + frag
                else:
                    el.append(frag)
