"""
Retrieval of public datasets from NCBI GEO.

Key Functions:
    - get_geo: accession -> {platform: SynchronizedDataset}
    - parse_series_matrix: local series matrix file -> SeriesMatrix
"""

from exprlab.geo.fetch import GEO_FTP_URL, GEOFetchError, get_geo, list_series_matrix_files, series_matrix_url
from exprlab.geo.series_matrix import SeriesMatrix, parse_series_matrix

__all__ = [
    'get_geo',
    'list_series_matrix_files',
    'series_matrix_url',
    'GEO_FTP_URL',
    'GEOFetchError',
    'SeriesMatrix',
    'parse_series_matrix',
]
