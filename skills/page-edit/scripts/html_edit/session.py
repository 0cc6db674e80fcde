"""
ABOUTME: Explicit editing-session context tying capture, change log and apply pass together
ABOUTME: Several sessions can coexist without sharing any state
"""

from typing import Iterable, Iterator, List, Optional, Tuple

from .applier import PageEditApplier
from .capture import ChangeCapture, MutationRecord
from .change_log import ChangeLog
from .common import ChangeRecord, FileApplyResult
from .config import EditorSettings
from .file_cache import FileCache
from .sources import SourceFetchError


class EditSession:
    """
    One operator's editing session on one rendered page.

    Owns the change log, the file cache, the capture state and the page's
    original text. Nothing is module-global.
    """

    def __init__(self, page_path: str, fetcher, settings: Optional[EditorSettings] = None,
                 scheduler=None):
        self.page_path = page_path
        self.fetcher = fetcher
        self.settings = settings or EditorSettings()
        self.change_log = ChangeLog()
        self.file_cache = FileCache()
        self.capture = ChangeCapture(self.change_log, page_path, self.settings, scheduler)
        self.original_page_text: Optional[str] = None
        self.last_results: List[FileApplyResult] = []

    def load_page(self) -> Optional[str]:
        """Fetch and remember the page's original markup; None if unavailable."""
        try:
            self.original_page_text = self.fetcher.fetch(self.page_path)
        except SourceFetchError as e:
            print(f"[Warning] Error loading original page: {e}")
            return None
        if self.settings.verbose:
            print(f"[Fetch] Original page loaded: {self.page_path}")
        return self.original_page_text

    def enable_editing(self, root) -> int:
        return self.capture.enable_editing(root)

    def on_input(self, el, input_type: str = 'insertText') -> bool:
        return self.capture.on_input(el, input_type)

    def on_mutations(self, records: Iterable[MutationRecord]) -> int:
        return self.capture.on_mutations(records)

    def flush(self) -> List[ChangeRecord]:
        return self.capture.flush()

    def apply_changes(self) -> List[FileApplyResult]:
        """Commit pending edits, then run one apply pass over the change log."""
        self.flush()
        if not len(self.change_log):
            if self.settings.verbose:
                print("[Match] No text changes detected")
            self.last_results = []
            return self.last_results
        applier = PageEditApplier(
            self.fetcher,
            self.file_cache,
            page_path=self.page_path,
            original_page_text=self.original_page_text,
            verbose=self.settings.verbose,
        )
        self.last_results = applier.apply(self.change_log)
        return self.last_results

    def save_changes(self, path):
        """Export the change log for apply_page_edits.py."""
        self.flush()
        return self.change_log.save_jsonl(path, {'page_path': self.page_path})

    @property
    def updated_count(self) -> int:
        return sum(fr.updated for fr in self.last_results)

    def updated_files(self) -> Iterator[Tuple[str, str]]:
        """(path, fully updated text) pairs for the push collaborator."""
        return self.file_cache.items()
