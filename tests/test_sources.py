"""
Tests for html_edit.sources - local and HTTP fetch collaborators
"""

from unittest.mock import Mock

import pytest
import requests

from _page_edit_helpers import FOOTER_SOURCE

from html_edit.sources import HttpSourceFetcher, LocalSourceFetcher, SourceFetchError  # type: ignore[import-not-found]


class TestLocalSourceFetcher:
    """Tests for LocalSourceFetcher"""

    def test_reads_relative_path(self, tmp_path):
        (tmp_path / 'partials').mkdir()
        (tmp_path / 'partials' / 'footer.html').write_text(FOOTER_SOURCE, encoding='utf-8')
        fetcher = LocalSourceFetcher(tmp_path)
        assert fetcher.fetch('partials/footer.html') == FOOTER_SOURCE
        assert fetcher.fetch('/partials/footer.html') == FOOTER_SOURCE

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceFetchError) as exc_info:
            LocalSourceFetcher(tmp_path).fetch('nope.html')
        assert exc_info.value.path == 'nope.html'

    def test_path_outside_root(self, tmp_path):
        root = tmp_path / 'site'
        root.mkdir()
        (tmp_path / 'secret.html').write_text('x', encoding='utf-8')
        with pytest.raises(SourceFetchError, match="escapes"):
            LocalSourceFetcher(root).fetch('../secret.html')


class TestHttpSourceFetcher:
    """Tests for HttpSourceFetcher with a mocked requests session"""

    def _session(self, body=b'', content_type='text/html', encoding='ISO-8859-1', **response_attrs):
        """Session whose GET returns body bytes; encoding mirrors requests' header guess"""
        response_attrs.setdefault('ok', True)
        response_attrs.setdefault('status_code', 200)
        session = Mock(spec=requests.Session)
        session.get.return_value = Mock(
            content=body,
            headers={'Content-Type': content_type},
            encoding=encoding,
            **response_attrs
        )
        return session

    def test_joins_base_url(self):
        session = self._session(FOOTER_SOURCE.encode('utf-8'))
        fetcher = HttpSourceFetcher('https://example.com/site', session=session)

        assert fetcher.fetch('footer.html') == FOOTER_SOURCE
        args, kwargs = session.get.call_args
        assert args[0] == 'https://example.com/site/footer.html'
        assert kwargs['headers'] == {'Cache-Control': 'no-store'}

    def test_http_error(self):
        session = self._session(ok=False, status_code=404)
        with pytest.raises(SourceFetchError, match="HTTP 404"):
            HttpSourceFetcher('https://example.com/', session=session).fetch('footer.html')

    def test_transport_error(self):
        session = Mock(spec=requests.Session)
        session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(SourceFetchError, match="refused"):
            HttpSourceFetcher('https://example.com/', session=session).fetch('footer.html')

    def test_html_without_charset_decoded_as_utf8(self):
        """text/html with no charset must not be read as ISO-8859-1"""
        body = '<p class="x">Contact</p><p>© Café</p>'
        session = self._session(body.encode('utf-8'), content_type='text/html')
        assert HttpSourceFetcher('https://example.com/', session=session).fetch('footer.html') == body

    def test_declared_charset_respected(self):
        body = '<p>Café</p>'
        session = self._session(body.encode('cp1252'), content_type='text/html; charset=windows-1252',
                                encoding='windows-1252')
        assert HttpSourceFetcher('https://example.com/', session=session).fetch('footer.html') == body

    def test_undecodable_body(self):
        session = self._session(b'<p>\xff\xfe</p>', content_type='text/html')
        with pytest.raises(SourceFetchError) as exc_info:
            HttpSourceFetcher('https://example.com/', session=session).fetch('footer.html')
        assert exc_info.value.path == 'footer.html'
