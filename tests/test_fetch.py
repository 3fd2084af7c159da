"""
Tests for GEO retrieval with the network stubbed out.
"""

import gzip
import io
import urllib.error

import pytest

from exprlab.geo import fetch
from exprlab.geo.fetch import GEOFetchError, get_geo, list_series_matrix_files, series_matrix_url


class FakeResponse(io.BytesIO):
    """Context-manager bytes stream standing in for an HTTP response."""

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


@pytest.fixture
def fake_geo(monkeypatch, series_matrix_text):
    """Serve one directory listing and one gzipped series matrix."""
    payload = gzip.compress(series_matrix_text.encode('utf-8'))
    listing = (
        '<html><body>'
        '<a href="GSE9999_series_matrix.txt.gz">GSE9999_series_matrix.txt.gz</a>'
        '</body></html>'
    ).encode('utf-8')
    requested = []

    def fake_urlopen(url, timeout=None):
        requested.append(url)
        if url.endswith('/matrix/'):
            return FakeResponse(listing)
        if url.endswith('GSE9999_series_matrix.txt.gz'):
            return FakeResponse(payload)
        raise urllib.error.URLError(f"unexpected URL {url}")

    monkeypatch.setattr(fetch.urllib.request, 'urlopen', fake_urlopen)
    return requested


class TestUrls:
    """Accession validation and directory layout."""

    def test_matrix_url_thousands(self):
        assert series_matrix_url("GSE5859") == (
            "https://ftp.ncbi.nlm.nih.gov/geo/series/GSE5nnn/GSE5859/matrix/"
        )

    def test_matrix_url_short_accession(self):
        assert series_matrix_url("GSE123").endswith("/series/GSEnnn/GSE123/matrix/")

    def test_lowercase_accepted(self):
        assert "GSE5859" in series_matrix_url("gse5859")

    @pytest.mark.parametrize("accession", ["GPL570", "GSM25302", "GSE", "5859"])
    def test_bad_accession(self, accession):
        with pytest.raises(ValueError, match="GSE"):
            series_matrix_url(accession)


class TestGetGeo:
    """Download, cache and parse."""

    def test_download_and_parse(self, tmp_path, fake_geo):
        datasets = get_geo("GSE9999", destdir=tmp_path)

        assert list(datasets) == ['GPL570']
        ds = datasets['GPL570']
        assert ds.shape == (4, 3)
        assert ds.metadata.pubmed_ids == ('17206142',)
        assert (tmp_path / "GSE9999_series_matrix.txt.gz").exists()
        assert len(fake_geo) == 2

    def test_cached_file_not_downloaded_again(self, tmp_path, fake_geo):
        get_geo("GSE9999", destdir=tmp_path)
        get_geo("GSE9999", destdir=tmp_path)
        downloads = [url for url in fake_geo if url.endswith('.gz')]
        assert len(downloads) == 1

    def test_listing(self, fake_geo):
        assert list_series_matrix_files("GSE9999") == ["GSE9999_series_matrix.txt.gz"]

    def test_network_failure(self, tmp_path, monkeypatch):
        def failing_urlopen(url, timeout=None):
            raise urllib.error.URLError("connection refused")

        monkeypatch.setattr(fetch.urllib.request, 'urlopen', failing_urlopen)
        with pytest.raises(GEOFetchError) as excinfo:
            get_geo("GSE9999", destdir=tmp_path)
        assert isinstance(excinfo.value.__cause__, urllib.error.URLError)

    def test_empty_listing(self, monkeypatch):
        monkeypatch.setattr(
            fetch.urllib.request, 'urlopen',
            lambda url, timeout=None: FakeResponse(b'<html></html>'),
        )
        with pytest.raises(GEOFetchError, match="No series matrix files"):
            list_series_matrix_files("GSE9999")

    def test_failed_download_leaves_no_file(self, tmp_path, monkeypatch, fake_geo):
        real = fetch.urllib.request.urlopen

        def flaky_urlopen(url, timeout=None):
            if url.endswith('.gz'):
                raise urllib.error.URLError("reset")
            return real(url, timeout=timeout)

        monkeypatch.setattr(fetch.urllib.request, 'urlopen', flaky_urlopen)
        with pytest.raises(GEOFetchError):
            get_geo("GSE9999", destdir=tmp_path)
        assert list(tmp_path.iterdir()) == []
