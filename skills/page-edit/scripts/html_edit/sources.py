"""
ABOUTME: Fetch collaborators returning the persisted markup of a source file
ABOUTME: Local directory reads and HTTP GETs, both failing with SourceFetchError
"""

from pathlib import Path
from typing import Optional
from urllib.parse import urljoin

import requests


class SourceFetchError(Exception):
    """The current markup of a source path could not be retrieved."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot fetch {path}: {reason}")
        self.path = path
        self.reason = reason


class LocalSourceFetcher:
    """Reads source files from a site root directory."""

    def __init__(self, root):
        self.root = Path(root)

    def fetch(self, path: str) -> str:
        target = (self.root / path.lstrip('/')).resolve()
        root = self.root.resolve()
        if root != target and root not in target.parents:
            raise SourceFetchError(path, "path escapes the source root")
        try:
            return target.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise SourceFetchError(path, str(e)) from e


class HttpSourceFetcher:
    """GETs source files relative to the site's base URL, bypassing caches."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 10):
        self.base_url = base_url if base_url.endswith('/') else base_url + '/'
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, path: str) -> str:
        url = urljoin(self.base_url, path.lstrip('/'))
        try:
            resp = self.session.get(url, timeout=self.timeout, headers={"Cache-Control": "no-store"})
        except requests.RequestException as e:
            raise SourceFetchError(path, str(e)) from e
        if not resp.ok:
            raise SourceFetchError(path, f"HTTP {resp.status_code}")
        # requests assumes ISO-8859-1 for text/* without a charset; sources are UTF-8
        content_type = resp.headers.get('Content-Type', '').lower()
        encoding = (resp.encoding if 'charset=' in content_type else None) or 'utf-8'
        try:
            return resp.content.decode(encoding)
        except (LookupError, UnicodeDecodeError) as e:
            raise SourceFetchError(path, str(e)) from e
