"""Candidate resolution of change records against a freshly parsed document."""

from typing import List, Optional, Tuple

from html_utils import clean_text

from .common import STRATEGY_CLASS, STRATEGY_ID, STRATEGY_PATH, STRATEGY_TEXT, ChangeRecord
from .fingerprint import get_stable_classes
from .navigation import iter_ancestors, resolve_nth_path, select_anchor


class CandidateMatchMixin:
        def _elements_by_tag(self, doc, tag: str) -> List:
            """All elements named tag, in document order."""
            return list(doc.iter(tag.lower()))

        def _innermost(self, candidates: List) -> List:
            """Drop candidates that only wrap another candidate, keeping document order."""
            wrappers = set()
            for el in candidates:
                wrappers.update(iter_ancestors(el))
            return [el for el in candidates if el not in wrappers]

        def _match_by_id(self, doc, record: ChangeRecord) -> List:
            if not record.stable_id:
                return []
            return doc.xpath('//*[@id=$id]', id=record.stable_id)

        def _match_by_class_signature(self, doc, record: ChangeRecord) -> List:
            """
            Elements of the record's tag whose non-volatile classes equal the
            record's class signature and whose text still equals old_text.
            An empty signature matches classless elements.
            """
            wanted = set(record.class_signature)
            return self._innermost([
                el for el in self._elements_by_tag(doc, record.tag)
                if set(get_stable_classes(el)) == wanted
                and clean_text(el.text_content()) == record.old_text
            ])

        def _match_by_path(self, doc, record: ChangeRecord) -> List:
            """Anchor selector, then the nth-of-type path relative to it."""
            if not record.nth_path:
                # Node was its own anchor; the id strategy already covered it
                return []
            anchor = select_anchor(doc, record.anchor_selector)
            if anchor is None:
                return []
            el = resolve_nth_path(anchor, record.nth_path)
            if el is None or el.tag.lower() != record.tag.lower():
                return []
            return [el]

        def _match_by_text(self, doc, record: ChangeRecord) -> List:
            return self._innermost([
                el for el in self._elements_by_tag(doc, record.tag)
                if clean_text(el.text_content()) == record.old_text
            ])

        def _resolve_candidate(self, doc, record: ChangeRecord) -> Tuple[Optional[object], Optional[str]]:
            """
            Try strategies in priority order: id, class signature, structural
            path, tag+text scan. The first strategy yielding any candidate
            wins, and within it the first candidate in document order.

            Returns:
                (element, strategy name) or (None, None)
            """
            strategies = (
                (STRATEGY_ID, self._match_by_id),
                (STRATEGY_CLASS, self._match_by_class_signature),
                (STRATEGY_PATH, self._match_by_path),
                (STRATEGY_TEXT, self._match_by_text),
            )
            for name, strategy in strategies:
                candidates = strategy(doc, record)
                if candidates:
                    return candidates[0], name
            return None, None
