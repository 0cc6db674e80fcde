"""
Tests for html_edit.file_cache
"""

from _page_edit_helpers import DictFetcher  # noqa: F401  (puts scripts dir on sys.path)

from html_edit.file_cache import FileCache  # type: ignore[import-not-found]


class TestFileCache:
    """Tests for FileCache get/set"""

    def test_miss_returns_none(self):
        cache = FileCache()
        assert cache.get('footer.html') is None
        assert 'footer.html' not in cache

    def test_set_fully_replaces(self):
        cache = FileCache()
        cache.set('footer.html', 'one')
        cache.set('footer.html', 'two')
        assert cache.get('footer.html') == 'two'
        assert len(cache) == 1

    def test_items_snapshot(self):
        cache = FileCache()
        cache.set('a.html', 'A')
        cache.set('b.html', 'B')
        items = cache.items()
        cache.set('c.html', 'C')
        assert list(items) == [('a.html', 'A'), ('b.html', 'B')]
