"""
ABOUTME: Shared constants and data classes for live page editing
ABOUTME: Change records, fingerprints and apply results used across the engine
"""

import re
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional


# ============================================================
# Constants
# ============================================================

# Tags that become editable when edit mode is enabled
EDITABLE_TAGS = frozenset({
    "H1", "H2", "H3", "H4", "H5", "H6",
    "P", "DIV", "SPAN", "A",
    "UL", "LI", "LABEL", "B",
})

# Container selectors tried in order when no ancestor carries a stable id
KNOWN_STABLE_ANCHORS = ("#page-content", ".pageWrapper", "#main", "main", "#content", "#root")

ROOT_SELECTOR = "body"

# Ids/classes that reflect transient UI state or library artifacts
VOLATILE_PATTERN = re.compile(
    r'(active|current|open|close|show|hide|hidden|visible|slick|swiper|lazy|clone|tmp'
    r'|draggable|loading|loaded|mount|hydr|portal)',
    re.IGNORECASE
)

# Attribute on an included fragment's root naming the file it was loaded from
SOURCE_ATTR = "data-src"

ANCESTOR_DEPTH = 8
DEBOUNCE_SECONDS = 0.3

DOCTYPE = "<!DOCTYPE html>\n"

# Strategy names reported in EditResult.strategy, in priority order
STRATEGY_ID = "id"
STRATEGY_CLASS = "class"
STRATEGY_PATH = "path"
STRATEGY_TEXT = "text"

# ============================================================
# Data Classes
# ============================================================

@dataclass
class AncestorEntry:
    """One step of an ancestor signature"""
    tag: str
    classes: List[str] = field(default_factory=list)
    id: str = ''

    @classmethod
    def from_dict(cls, data: Dict) -> "AncestorEntry":
        return cls(
            tag=data.get('tag', ''),
            classes=list(data.get('classes', [])),
            id=data.get('id', ''),
        )


@dataclass
class Fingerprint:
    """Structural identity of a live node"""
    anchor_selector: str
    stable_id: str
    class_signature: List[str]
    ancestor_signature: List[AncestorEntry]
    nth_path: str


@dataclass
class ChangeRecord:
    """One edited node; old_text is fixed at creation, new_text follows the latest edit"""
    key: str
    source_file: str
    tag: str
    old_text: str
    new_text: str
    anchor_selector: str = ''
    class_signature: List[str] = field(default_factory=list)
    stable_id: str = ''
    ancestor_signature: List[AncestorEntry] = field(default_factory=list)
    nth_path: str = ''
    timestamp: float = 0.0
    new_html: Optional[str] = None  # Inner markup when the live node holds inline elements

    @property
    def is_rich(self) -> bool:
        return self.new_html is not None

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "ChangeRecord":
        for required in ('key', 'source_file', 'tag', 'old_text', 'new_text'):
            if required not in data:
                raise ValueError(f"Change record missing '{required}' field: {data!r}")
        return cls(
            key=str(data['key']),
            source_file=data['source_file'],
            tag=data['tag'],
            old_text=data['old_text'],
            new_text=data['new_text'],
            anchor_selector=data.get('anchor_selector', ''),
            class_signature=list(data.get('class_signature', [])),
            stable_id=data.get('stable_id', ''),
            ancestor_signature=[
                AncestorEntry.from_dict(a) for a in data.get('ancestor_signature', [])
            ],
            nth_path=data.get('nth_path', ''),
            timestamp=float(data.get('timestamp', 0.0)),
            new_html=data.get('new_html'),
        )


@dataclass
class EditResult:
    """Result of resolving and applying one change record"""
    success: bool
    record: ChangeRecord
    strategy: Optional[str] = None
    error_message: Optional[str] = None
    warning: bool = False  # Candidate already carried new_text; nothing written


@dataclass
class FileApplyResult:
    """Outcome of one file's fetch/parse/match/serialize cycle"""
    source_file: str
    results: List[EditResult] = field(default_factory=list)
    updated: int = 0
    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.error is not None
