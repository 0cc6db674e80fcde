"""Apply pass: resolve change records in re-parsed source files and write them back."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from html_utils import clean_text, format_text_preview

from .change_log import ChangeLog
from .common import ChangeRecord, EditResult, FileApplyResult
from .document import parse_document, serialize_document
from .edit_actions import EditActionsMixin
from .file_cache import FileCache
from .matching import CandidateMatchMixin
from .sources import SourceFetchError


class PageEditApplier(CandidateMatchMixin, EditActionsMixin):
        def __init__(self, fetcher, file_cache: Optional[FileCache] = None,
                     page_path: Optional[str] = None,
                     original_page_text: Optional[str] = None,
                     verbose: bool = False):
            self.fetcher = fetcher
            self.file_cache = file_cache if file_cache is not None else FileCache()
            self.page_path = page_path
            self.original_page_text = original_page_text
            self.verbose = verbose

            # Results tracking (reset on every apply())
            self.file_results: List[FileApplyResult] = []

        @property
        def results(self) -> List[EditResult]:
            return [r for fr in self.file_results for r in fr.results]

        @property
        def updated_count(self) -> int:
            return sum(fr.updated for fr in self.file_results)

        def _load_source(self, path: str) -> str:
            """
            Current text of path: the cache if it has an entry, else a fetch.

            A failed fetch of the page's own file falls back to the page text
            loaded at session start; any other failure propagates.
            """
            cached = self.file_cache.get(path)
            if cached is not None:
                if self.verbose:
                    print(f"  [Fetch] {path}: using cached copy")
                return cached
            try:
                return self.fetcher.fetch(path)
            except SourceFetchError as e:
                if path == self.page_path and self.original_page_text:
                    if self.verbose:
                        print(f"  [Warning] {e}; using original page text")
                    return self.original_page_text
                raise

        def _process_record(self, doc, record: ChangeRecord) -> EditResult:
            """Resolve one record in doc and write its new text."""
            el, strategy = self._resolve_candidate(doc, record)
            if el is None:
                return EditResult(
                    success=False,
                    record=record,
                    error_message="No matching element",
                )
            if clean_text(el.text_content()) == record.new_text:
                return EditResult(
                    success=True,
                    record=record,
                    strategy=strategy,
                    error_message="Already applied",
                    warning=True,
                )
            self._apply_text_update(el, record)
            return EditResult(success=True, record=record, strategy=strategy)

        def _apply_file(self, path: str, records: List[ChangeRecord]) -> FileApplyResult:
            """One fetch/parse/match/serialize cycle for a single source file."""
            file_result = FileApplyResult(source_file=path)
            try:
                doc = parse_document(self._load_source(path))
            except (SourceFetchError, ValueError) as e:
                file_result.error = str(e)
                file_result.results = [
                    EditResult(success=False, record=record, error_message=f"Source unavailable: {e}")
                    for record in records
                ]
                if self.verbose:
                    print(f"  [Skip] {path}: {e}")
                return file_result

            for record in records:
                result = self._process_record(doc, record)
                file_result.results.append(result)
                if result.success and not result.warning:
                    file_result.updated += 1
                if self.verbose:
                    preview = format_text_preview(record.old_text)
                    if not result.success:
                        print(f"  [✗] {record.tag} '{preview}': {result.error_message}")
                    elif result.warning:
                        print(f"  [=] {record.tag} '{preview}': {result.error_message} ({result.strategy})")
                    else:
                        print(f"  [✓] {record.tag} '{preview}' matched by {result.strategy}")

            file_result.text = serialize_document(doc)
            self.file_cache.set(path, file_result.text)
            return file_result

        def apply(self, change_log: ChangeLog) -> List[FileApplyResult]:
            """Run one apply pass over every source file the log touches, in order."""
            self.file_results = []
            groups = change_log.group_by_source()
            for i, (path, records) in enumerate(groups.items()):
                if self.verbose:
                    print(f"[{i+1}/{len(groups)}] Processing {path} ({len(records)} changes)")
                file_result = self._apply_file(path, records)
                self.file_results.append(file_result)
                if self.verbose and not file_result.skipped:
                    print(f"  [Match] Updated {file_result.updated} items in {path}")
            return self.file_results

        def save_failed_items(self, changes_path, meta: Optional[dict] = None) -> Optional[Path]:
            """
            Save unmatched records (and records of skipped files) for retry.

            Returns:
                Path to <changes>_fail.jsonl if any failures exist, None otherwise
            """
            failed = [
                (r.record, r.error_message) for r in self.results if not r.success
            ]
            if not failed:
                return None

            changes_path = Path(changes_path)
            fail_path = changes_path.with_stem(changes_path.stem + '_fail')
            with open(fail_path, 'w', encoding='utf-8') as f:
                meta_line = {
                    **(meta or {}),
                    'type': 'meta',
                    'original_export': changes_path.name,
                    'generated_at': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S%z'),
                    'failed_count': len(failed),
                }
                json.dump(meta_line, f, ensure_ascii=False)
                f.write('\n')
                for record, error in failed:
                    data = {**record.to_dict(), '_error': error}
                    json.dump(data, f, ensure_ascii=False)
                    f.write('\n')
            return fail_path
