"""
ABOUTME: Append-ordered change log keyed by per-node stable key
ABOUTME: Upserts coalesced edits in place and persists records as JSONL
"""

import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .common import ChangeRecord


class ChangeLog:
    """Ordered ChangeRecords plus a key -> index map; records are never removed."""

    def __init__(self):
        self._records: List[ChangeRecord] = []
        self._index: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ChangeRecord]:
        return iter(self._records)

    def __contains__(self, key: str) -> bool:
        return key in self._index

    @property
    def records(self) -> List[ChangeRecord]:
        return list(self._records)

    def get(self, key: str) -> Optional[ChangeRecord]:
        idx = self._index.get(key)
        return self._records[idx] if idx is not None else None

    def upsert(
        self,
        key: str,
        factory: Callable[[], ChangeRecord],
        new_text: str,
        new_html: Optional[str] = None,
    ) -> Tuple[ChangeRecord, bool]:
        """
        Insert a record for key, or supersede the existing one in place.

        On first sight the record comes from factory(); afterwards only
        new_text, new_html and timestamp are overwritten, so old_text keeps
        the pre-session baseline.

        Returns:
            (record, created)
        """
        now = time.time()
        idx = self._index.get(key)
        if idx is not None:
            record = self._records[idx]
            record.new_text = new_text
            record.new_html = new_html
            record.timestamp = now
            return record, False

        record = factory()
        if record.key != key:
            raise ValueError(f"Record key {record.key!r} does not match {key!r}")
        record.new_text = new_text
        record.new_html = new_html
        record.timestamp = now
        self._index[key] = len(self._records)
        self._records.append(record)
        return record, True

    def add(self, record: ChangeRecord) -> ChangeRecord:
        """Append a fully built record (used when loading a saved log)."""
        if record.key in self._index:
            raise ValueError(f"Duplicate change record key: {record.key}")
        self._index[record.key] = len(self._records)
        self._records.append(record)
        return record

    def group_by_source(self) -> Dict[str, List[ChangeRecord]]:
        """Records grouped by source file, files in order of first appearance."""
        groups: Dict[str, List[ChangeRecord]] = {}
        for record in self._records:
            groups.setdefault(record.source_file, []).append(record)
        return groups

    # ============================================================
    # JSONL persistence
    # ============================================================

    def save_jsonl(self, path, meta: Optional[Dict] = None) -> Path:
        """Write a meta line followed by one line per record."""
        path = Path(path)
        meta_line = {
            **(meta or {}),
            'type': 'meta',
            'generated_at': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S%z'),
            'record_count': len(self._records),
        }
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(meta_line, f, ensure_ascii=False)
            f.write('\n')
            for record in self._records:
                json.dump(record.to_dict(), f, ensure_ascii=False)
                f.write('\n')
        return path

    @classmethod
    def load_jsonl(cls, path) -> Tuple[Dict, "ChangeLog"]:
        """
        Load a change log written by save_jsonl.

        Raises:
            ValueError: missing meta line, malformed JSON or incomplete record
        """
        meta: Dict = {}
        log = cls()
        with open(path, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as e:
                    raise ValueError(f"Invalid JSON at line {line_num}: {e}") from e
                if data.get('type') == 'meta':
                    meta = data
                    continue
                log.add(ChangeRecord.from_dict(data))
        if not meta:
            raise ValueError("JSONL file missing meta line")
        return meta, log
