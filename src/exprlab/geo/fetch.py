"""
Retrieve series matrix files from NCBI GEO.

Given a series accession, lists the series' ``matrix/`` directory on the GEO
FTP mirror, downloads every ``*_series_matrix.txt.gz`` (one per platform)
into a cache directory, and parses each into a SynchronizedDataset.

Files already present in the cache directory are reused without touching
the network for the download itself.

Examples:
    >>> from exprlab.geo import get_geo
    >>> datasets = get_geo("GSE5859", destdir="data/geo")
    >>> ds = datasets["GPL570"]
    >>> ds.metadata.title
"""

from __future__ import annotations

import logging
import re
import tempfile
import urllib.error
import urllib.request
from pathlib import Path
from typing import Optional

from exprlab.core.dataset import SynchronizedDataset
from exprlab.geo.series_matrix import parse_series_matrix
from exprlab.utils.fileio import atomic_write_stream

__all__ = ['GEO_FTP_URL', 'GEOFetchError', 'get_geo', 'series_matrix_url', 'list_series_matrix_files']

logger = logging.getLogger(__name__)

GEO_FTP_URL = "https://ftp.ncbi.nlm.nih.gov/geo"
DEFAULT_TIMEOUT = 60

_ACCESSION = re.compile(r'^GSE\d+$')
_MATRIX_FILE = re.compile(r'(GSE\d+(?:-GPL\d+)?_series_matrix\.txt\.gz)')


class GEOFetchError(RuntimeError):
    """Listing or downloading a GEO series failed."""


def _validate_accession(accession: str) -> str:
    accession = str(accession).strip().upper()
    if not _ACCESSION.match(accession):
        raise ValueError(f"Not a GEO series accession (expected GSE<digits>): {accession!r}")
    return accession


def series_matrix_url(accession: str, base_url: str = GEO_FTP_URL) -> str:
    """
    URL of the ``matrix/`` directory for a series.

    GEO shards series by dropping the last three digits:
    GSE5859 -> GSE5nnn, GSE123 -> GSEnnn.

    Examples:
        >>> series_matrix_url("GSE5859")
        'https://ftp.ncbi.nlm.nih.gov/geo/series/GSE5nnn/GSE5859/matrix/'
    """
    accession = _validate_accession(accession)
    digits = accession[3:]
    stub = f"GSE{digits[:-3]}nnn"
    return f"{base_url.rstrip('/')}/series/{stub}/{accession}/matrix/"


def list_series_matrix_files(
    accession: str,
    base_url: str = GEO_FTP_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[str]:
    """
    File names of the series matrix files published for a series.

    Raises:
        GEOFetchError: If the directory listing cannot be retrieved or
            lists no series matrix files
    """
    url = series_matrix_url(accession, base_url)
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            listing = response.read().decode('utf-8', errors='ignore')
    except (urllib.error.URLError, OSError) as e:
        raise GEOFetchError(f"Failed to list {url}: {e}") from e

    names = list(dict.fromkeys(_MATRIX_FILE.findall(listing)))
    if not names:
        raise GEOFetchError(f"No series matrix files listed at {url}")
    return names


def _download(url: str, target: Path, timeout: float) -> None:
    logger.info(f"Downloading {url}")
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            n_bytes = atomic_write_stream(target, response)
    except (urllib.error.URLError, OSError) as e:
        raise GEOFetchError(f"Failed to download {url}: {e}") from e
    logger.info(f"Wrote {n_bytes:,} bytes to {target}")


def get_geo(
    accession: str,
    destdir: Optional[Path | str] = None,
    *,
    base_url: str = GEO_FTP_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, SynchronizedDataset]:
    """
    Download and parse every series matrix file of a GEO series.

    Args:
        accession: Series accession, e.g. "GSE5859"
        destdir: Cache directory for downloaded files (default: a fresh
            temporary directory)
        base_url: GEO FTP mirror root
        timeout: Seconds per network request

    Returns:
        Dict of platform accession -> dataset. When a file does not name
        its platform, the file name is used as key.

    Raises:
        ValueError: Malformed accession
        GEOFetchError: Network failure
        ValueError/AlignmentError: Malformed series matrix (see parse_series_matrix)
    """
    accession = _validate_accession(accession)
    if destdir is None:
        destdir = Path(tempfile.mkdtemp(prefix=f"{accession}_"))
    destdir = Path(destdir)
    destdir.mkdir(parents=True, exist_ok=True)

    directory_url = series_matrix_url(accession, base_url)
    names = list_series_matrix_files(accession, base_url, timeout)
    logger.info(f"{accession}: {len(names)} series matrix file(s)")

    datasets: dict[str, SynchronizedDataset] = {}
    for name in names:
        target = destdir / name
        if target.exists():
            logger.info(f"Using cached {target}")
        else:
            _download(directory_url + name, target, timeout)

        parsed = parse_series_matrix(target)
        key = parsed.platform or name
        if key in datasets:
            key = name
        datasets[key] = parsed.dataset

    return datasets
