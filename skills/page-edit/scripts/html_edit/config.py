"""Environment-driven defaults for the page editing engine."""

import os
from dataclasses import dataclass
from typing import Optional

from .common import ANCESTOR_DEPTH, DEBOUNCE_SECONDS, SOURCE_ATTR


def _as_bool(val: Optional[str], default: bool = False) -> bool:
    if val is None:
        return default
    return str(val).lower() in {"1", "true", "yes", "y", "on"}


@dataclass
class EditorSettings:
    debounce_seconds: float = DEBOUNCE_SECONDS
    ancestor_depth: int = ANCESTOR_DEPTH
    source_attr: str = SOURCE_ATTR
    base_url: Optional[str] = None
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "EditorSettings":
        debounce_ms = os.getenv("PAGE_EDIT_DEBOUNCE_MS")
        return cls(
            debounce_seconds=int(debounce_ms) / 1000.0 if debounce_ms else DEBOUNCE_SECONDS,
            ancestor_depth=int(os.getenv("PAGE_EDIT_ANCESTOR_DEPTH", str(ANCESTOR_DEPTH))),
            source_attr=os.getenv("PAGE_EDIT_SOURCE_ATTR", SOURCE_ATTR),
            base_url=os.getenv("PAGE_EDIT_BASE_URL") or None,
            verbose=_as_bool(os.getenv("PAGE_EDIT_VERBOSE"), False),
        )
