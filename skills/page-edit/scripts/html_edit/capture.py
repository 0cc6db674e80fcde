"""
ABOUTME: Captures edits to editable nodes and coalesces them into change records
ABOUTME: Per-node handle arena, debounce timers and last-committed text tracking
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from html_utils import clean_text, format_text_preview

from .change_log import ChangeLog
from .common import EDITABLE_TAGS, ChangeRecord
from .config import EditorSettings
from .document import inner_html
from .fingerprint import build_fingerprint, resolve_source_file
from .navigation import element_children, is_element

QUALIFYING_INPUT_PREFIXES = ('insert', 'delete')


def markup_shape(el) -> Tuple:
    """Tags, attributes and nesting of el's descendants, ignoring all text."""
    return tuple(
        (node.tag, tuple(node.attrib.items()), len(element_children(node)))
        for node in el.iterdescendants() if is_element(node)
    )


def text_slot_count(el) -> int:
    """Number of non-blank text runs inside el."""
    return sum(1 for text in el.itertext() if text.strip())


@dataclass
class MutationRecord:
    """A DOM mutation notification; target is the element owning the changed text."""
    type: str
    target: object
    old_value: Optional[str] = None


class ChangeCapture:
    """
    Turns edit notifications into ChangeRecords.

    Each editable element gets an integer handle when edit mode is enabled;
    baseline text, last committed text and the pending debounce timer are
    all keyed by that handle. Per node the flow is idle -> pending (timer
    armed, re-armed on every further edit) -> committed -> idle.

    The scheduler must provide call_later(delay, callback, *args) returning
    an object with cancel(); by default the running asyncio loop is used.
    """

    def __init__(self, change_log: ChangeLog, page_path: str,
                 settings: Optional[EditorSettings] = None, scheduler=None):
        self.change_log = change_log
        self.page_path = page_path
        self.settings = settings or EditorSettings()
        self._scheduler = scheduler

        self._next_handle = 1
        self._elements: Dict[int, object] = {}
        self._handles: Dict[object, int] = {}
        self._baseline: Dict[int, str] = {}
        self._baseline_shape: Dict[int, Tuple] = {}
        self._latest: Dict[int, str] = {}
        self._pending: Dict[int, object] = {}

    @property
    def verbose(self) -> bool:
        return self.settings.verbose

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _get_scheduler(self):
        if self._scheduler is None:
            try:
                self._scheduler = asyncio.get_running_loop()
            except RuntimeError as e:
                raise RuntimeError(
                    "No scheduler configured and no running event loop; "
                    "pass scheduler= or capture edits inside an asyncio task"
                ) from e
        return self._scheduler

    # ============================================================
    # Handle arena
    # ============================================================

    def enable_editing(self, root) -> int:
        """
        Register every editable element under root (root included).

        Baselines are recorded once per element; calling this again for an
        already registered element leaves its baseline untouched.

        Returns:
            Number of newly registered elements
        """
        added = 0
        for el in root.iter():
            if not is_element(el) or el.tag.upper() not in EDITABLE_TAGS:
                continue
            if el in self._handles:
                continue
            handle = self._next_handle
            self._next_handle += 1
            self._elements[handle] = el
            self._handles[el] = handle
            self._baseline[handle] = clean_text(el.text_content())
            self._baseline_shape[handle] = (markup_shape(el), text_slot_count(el))
            added += 1
        if self.verbose:
            print(f"[Capture] Editing enabled: {added} new nodes, {len(self._elements)} total")
        return added

    def handle_for(self, el) -> Optional[int]:
        return self._handles.get(el)

    def element_for(self, handle: int):
        return self._elements.get(handle)

    def baseline(self, handle: int) -> Optional[str]:
        return self._baseline.get(handle)

    def last_committed(self, handle: int) -> Optional[str]:
        return self._latest.get(handle)

    @staticmethod
    def record_key(handle: int) -> str:
        return f"node-{handle}"

    def _resolve_editable_handle(self, node) -> Optional[int]:
        """Handle of node or its nearest registered editable ancestor."""
        while node is not None:
            handle = self._handles.get(node)
            if handle is not None:
                return handle
            node = node.getparent()
        return None

    # ============================================================
    # Notifications
    # ============================================================

    def on_input(self, el, input_type: str = 'insertText') -> bool:
        """Input event on el (typed, deleted or pasted text). Returns True if queued."""
        if not input_type or not input_type.startswith(QUALIFYING_INPUT_PREFIXES):
            return False
        handle = self._resolve_editable_handle(el)
        if handle is None:
            return False
        self.node_changed(handle)
        return True

    def on_mutations(self, records: Iterable[MutationRecord]) -> int:
        """Feed characterData mutations; returns how many were queued."""
        queued = 0
        for rec in records:
            if rec.type != 'characterData':
                continue
            handle = self._resolve_editable_handle(rec.target)
            if handle is None:
                continue
            self.node_changed(handle)
            queued += 1
        return queued

    def node_changed(self, handle: int) -> None:
        """Single entry point for edits: (re)arm the node's debounce timer."""
        if handle not in self._elements:
            raise KeyError(f"Unknown node handle: {handle}")
        timer = self._pending.pop(handle, None)
        if timer is not None:
            timer.cancel()
        self._pending[handle] = self._get_scheduler().call_later(
            self.settings.debounce_seconds, self.commit, handle
        )

    # ============================================================
    # Commit
    # ============================================================

    def commit(self, handle: int) -> Optional[ChangeRecord]:
        """
        Timer expiry for one node: upsert a record if its text diverged.

        Returns:
            The created/updated record, or None when the text is empty or
            equal to the last committed value (baseline if never committed)
        """
        self._pending.pop(handle, None)
        el = self._elements[handle]
        current = clean_text(el.text_content())
        reference = self._latest.get(handle, self._baseline[handle])
        if not current or current == reference:
            return None

        new_html = inner_html(el) if self._needs_markup(handle, el) else None
        record, created = self.change_log.upsert(
            self.record_key(handle),
            lambda: self._new_record(handle, el),
            current,
            new_html,
        )
        self._latest[handle] = current
        if self.verbose:
            action = "Captured" if created else "Updated"
            print(f"[Capture] {action} {record.tag} in {record.source_file}: "
                  f"'{format_text_preview(record.old_text)}' -> '{format_text_preview(current)}'")
        return record

    def flush(self) -> List[ChangeRecord]:
        """Commit every pending node now instead of waiting for its timer."""
        committed = []
        for handle in list(self._pending):
            timer = self._pending.pop(handle)
            timer.cancel()
            record = self.commit(handle)
            if record is not None:
                committed.append(record)
        return committed

    def _needs_markup(self, handle: int, el) -> bool:
        """
        Whether the edit must be written back as markup.

        Plain write-back only rewrites the first text run, so markup is kept
        when inline elements were added or removed, or when text sits in more
        than one run now or at baseline. A node whose inline elements are
        untouched and whose text is one run stays plain, which keeps render-time
        attributes of those elements out of the source.
        """
        if not element_children(el):
            return False
        shape, baseline_slots = self._baseline_shape[handle]
        if markup_shape(el) != shape:
            return True
        return baseline_slots > 1 or text_slot_count(el) > 1

    def _new_record(self, handle: int, el) -> ChangeRecord:
        fp = build_fingerprint(el, self.settings.ancestor_depth)
        baseline = self._baseline[handle]
        return ChangeRecord(
            key=self.record_key(handle),
            source_file=resolve_source_file(el, self.page_path, self.settings.source_attr),
            tag=el.tag.upper(),
            old_text=baseline,
            new_text=baseline,
            anchor_selector=fp.anchor_selector,
            class_signature=fp.class_signature,
            stable_id=fp.stable_id,
            ancestor_signature=fp.ancestor_signature,
            nth_path=fp.nth_path,
        )
