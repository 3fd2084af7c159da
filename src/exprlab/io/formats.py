"""
Format configuration for tabular expression files.

Design philosophy: **auto-detect what's safe, require explicit config for
offsets**. A delimiter can be sniffed reliably; how many preamble lines a
lab export carries, or how many rows belong to the probeset table before a
footer starts, cannot. Those are fixed per file and are given explicitly.

Examples:
    >>> from exprlab.io.formats import TableFormat, PRESETS
    >>>
    >>> # Tab-separated export with 3 preamble lines, first 1000 probesets
    >>> fmt = TableFormat(name="Lab export", delimiter='\\t', skip_rows=3, n_rows=1000)
    >>>
    >>> # GEO series matrix table
    >>> fmt = PRESETS['geo_series_matrix']
"""

from __future__ import annotations

import csv
import gzip
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Pattern

__all__ = [
    'TableFormat',
    'PRESETS',
    'sniff_delimiter',
    'suggest_format',
    'open_text',
]


def open_text(path: Path, encoding: str = 'utf-8'):
    """
    Open a plain or gzip-compressed text file for reading.

    Decoding is strict: bytes invalid in ``encoding`` raise UnicodeDecodeError
    rather than altering identifiers.
    """
    path = Path(path)
    if path.suffix == '.gz':
        return gzip.open(path, 'rt', encoding=encoding)
    return open(path, 'r', encoding=encoding)


@dataclass
class TableFormat:
    """
    Configuration for reading an expression table.

    Attributes:
        name: Human-readable format name
        delimiter: Field delimiter (None = sniff from '\\t', ',', ';');
            r'\\s+' for whitespace-aligned text
        skip_rows: Preamble lines to skip before the header row
        n_rows: Number of data rows to read after the header (None = all)
        index_col: Column holding feature identifiers
        encoding: File encoding
        comment: Lines starting with this character are ignored
        id_pattern: Regex with named group 'id' applied to each feature label,
            e.g. r'^(?P<id>[^|]+)\\|' to keep the probe part of "probe|gene"
        na_values: Strings treated as missing
    """

    name: str = "Unknown Format"
    delimiter: Optional[str] = None
    skip_rows: int = 0
    n_rows: Optional[int] = None
    index_col: int = 0
    encoding: str = 'utf-8'
    comment: Optional[str] = None

    id_pattern: Optional[str] = None
    _compiled_id_pattern: Optional[Pattern] = field(default=None, repr=False, compare=False)

    na_values: list[str] = field(default_factory=lambda: ['', 'NA', 'NaN', 'nan', 'NULL', 'null'])

    def __post_init__(self):
        if self.skip_rows < 0:
            raise ValueError(f"skip_rows must be >= 0, got {self.skip_rows}")
        if self.n_rows is not None and self.n_rows < 0:
            raise ValueError(f"n_rows must be >= 0, got {self.n_rows}")
        if self.id_pattern:
            try:
                self._compiled_id_pattern = re.compile(self.id_pattern)
            except re.error as e:
                raise ValueError(f"Invalid id_pattern regex: {e}")
            if 'id' not in self._compiled_id_pattern.groupindex:
                raise ValueError(
                    f"id_pattern must contain named group 'id': {self.id_pattern}"
                )

    def extract_id(self, raw_index: str) -> str:
        """
        Extract the feature identifier from a raw row label.

        Raises:
            ValueError: If the pattern does not match
        """
        if not self._compiled_id_pattern:
            return str(raw_index).strip()

        match = self._compiled_id_pattern.search(str(raw_index))
        if not match:
            raise ValueError(
                f"ID pattern '{self.id_pattern}' did not match: '{raw_index}'"
            )
        return match.group('id')

    def with_overrides(self, **overrides) -> TableFormat:
        """Copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


# =============================================================================
# Format Presets
# =============================================================================

PRESETS: dict[str, TableFormat] = {
    'generic_csv': TableFormat(
        name="Generic CSV",
        delimiter=',',
    ),

    'generic_tsv': TableFormat(
        name="Generic TSV",
        delimiter='\t',
    ),

    # Space-aligned text as written by R's write.table(sep=" ")
    'whitespace': TableFormat(
        name="Whitespace-delimited text",
        delimiter=r'\s+',
    ),

    # Data block of a GEO series matrix; '!' lines are series/sample annotations
    'geo_series_matrix': TableFormat(
        name="GEO series matrix",
        delimiter='\t',
        comment='!',
    ),
}


# =============================================================================
# Utility Functions
# =============================================================================

def sniff_delimiter(path: Path, sample_size: int = 8192) -> str:
    """
    Auto-detect delimiter from file content.

    Uses Python's csv.Sniffer with a fallback count over the first line.

    Returns:
        Detected delimiter character ('\\t', ',' or ';'); ',' when the
        file has a single column
    """
    with open_text(path) as f:
        sample = f.read(sample_size)

    lines = [line for line in sample.splitlines() if line.strip() and not line.startswith('!')]
    sample = "\n".join(lines)

    try:
        dialect = csv.Sniffer().sniff(sample, delimiters='\t,;')
        return dialect.delimiter
    except csv.Error:
        pass

    first_line = lines[0] if lines else ''
    counts = {
        '\t': first_line.count('\t'),
        ',': first_line.count(','),
        ';': first_line.count(';'),
    }

    if max(counts.values()) == 0:
        return ','

    return max(counts, key=counts.get)


def suggest_format(path: Path) -> tuple[str, TableFormat]:
    """
    Suggest a format preset based on file inspection.

    Returns:
        Tuple of (preset_name, TableFormat)
    """
    with open_text(path) as f:
        first_line = f.readline()

    if first_line.startswith('!Series_') or first_line.startswith('!series_matrix'):
        return ('geo_series_matrix', PRESETS['geo_series_matrix'])

    delimiter = sniff_delimiter(path)
    if delimiter == '\t':
        return ('generic_tsv', PRESETS['generic_tsv'])
    if delimiter == ',':
        return ('generic_csv', PRESETS['generic_csv'])
    return ('custom', TableFormat(name=f"Delimited ({delimiter!r})", delimiter=delimiter))
