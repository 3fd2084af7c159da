"""
Parser for GEO series matrix files.

A series matrix is a tab-separated text file (usually gzip-compressed) with
three blocks:

    !Series_title             "Gene expression in ..."
    !Series_summary           "..."
    !Sample_title             "NA06985"     "NA06991"
    !Sample_geo_accession     "GSM25302"    "GSM25305"
    !Sample_characteristics_ch1  "sex: F"   "sex: M"
    !series_matrix_table_begin
    "ID_REF"    "GSM25302"    "GSM25305"
    "1007_s_at" 7.81          7.65
    !series_matrix_table_end

``!Series_*`` lines describe the experiment, ``!Sample_*`` lines hold one
value per sample (the covariate table), and the block between the table
markers is the expression matrix. One file covers one platform; a series
run on several platforms ships one file per platform.
"""

from __future__ import annotations

import csv
import io
import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, TextIO

import pandas as pd

from exprlab.core.covariates import CovariateTable
from exprlab.core.dataset import SynchronizedDataset
from exprlab.core.experiment import ExperimentInfo
from exprlab.io.formats import open_text

__all__ = ['SeriesMatrix', 'parse_series_matrix']

logger = logging.getLogger(__name__)

TABLE_BEGIN = '!series_matrix_table_begin'
TABLE_END = '!series_matrix_table_end'
NA_VALUES = ['', 'null', 'NULL', 'NA', 'NaN', 'nan']

# !Series_* keys mapped onto ExperimentInfo fields
_SERIES_FIELDS = {
    'title': 'title',
    'contact_name': 'name',
    'contact_institute': 'lab',
    'contact_email': 'contact',
    'summary': 'abstract',
    'web_link': 'url',
    'pubmed_id': 'pubmed_ids',
}


@dataclass
class SeriesMatrix:
    """
    One parsed series matrix file.

    Attributes:
        accession: Series accession (GSExxxx), if present in the file
        platform: Platform accession (GPLxxxx) of the samples
        dataset: Expression, covariates and experiment description
    """
    accession: Optional[str]
    platform: Optional[str]
    dataset: SynchronizedDataset


def _contact_name(raw: str) -> str:
    # GEO writes "First,Middle,Last" with empty middle names as ",,"
    return " ".join(part.strip() for part in raw.split(',') if part.strip())


def _experiment_info(series: dict[str, list[str]]) -> ExperimentInfo:
    fields: dict[str, Any] = {}
    other: dict[str, Any] = {}
    for key, values in series.items():
        values = [v for v in values if v != '']
        if not values:
            continue
        target = _SERIES_FIELDS.get(key)
        if target == 'pubmed_ids':
            fields[target] = tuple(values)
        elif target == 'abstract':
            fields[target] = " ".join(values)
        elif target == 'name':
            fields[target] = _contact_name(values[0])
        elif target is not None:
            fields[target] = values[0]
        else:
            other[key] = values[0] if len(values) == 1 else values
    return ExperimentInfo(**fields, other=other)


def _sample_frame(sample_rows: list[tuple[str, list[str]]]) -> pd.DataFrame:
    """Build the covariate frame from (key, values) rows, one value per sample."""
    accessions = [values for key, values in sample_rows if key == 'geo_accession']
    if not accessions:
        raise ValueError("Series matrix has no !Sample_geo_accession line")
    index = pd.Index(accessions[0], name='geo_accession')
    n_samples = len(index)

    columns: dict[str, list[Any]] = {}
    seen: dict[str, int] = defaultdict(int)
    characteristics: dict[str, list[Any]] = {}

    for key, values in sample_rows:
        if len(values) != n_samples:
            raise ValueError(
                f"!Sample_{key} has {len(values)} values for {n_samples} samples"
            )
        name = key if seen[key] == 0 else f"{key}.{seen[key]}"
        seen[key] += 1
        columns[name] = values

        if key.startswith('characteristics_ch'):
            channel = key[len('characteristics_'):]
            for j, cell in enumerate(values):
                if ':' not in cell:
                    continue
                label, value = cell.split(':', 1)
                column = f"{label.strip()}:{channel}"
                characteristics.setdefault(column, [None] * n_samples)[j] = value.strip()

    for name, values in characteristics.items():
        if name not in columns:
            columns[name] = values

    frame = pd.DataFrame(columns, index=index)
    for name in frame.columns:
        try:
            frame[name] = pd.to_numeric(frame[name])
        except (TypeError, ValueError):
            pass
    return frame


def _read_rows(handle: TextIO) -> tuple[dict[str, list[str]], list[tuple[str, list[str]]], str]:
    series: dict[str, list[str]] = defaultdict(list)
    sample_rows: list[tuple[str, list[str]]] = []
    table_lines: list[str] = []
    in_table = False
    saw_end = False

    for line in handle:
        if in_table:
            if line.startswith(TABLE_END):
                saw_end = True
                break
            table_lines.append(line)
            continue

        if not line.strip():
            continue
        if line.startswith(TABLE_BEGIN):
            in_table = True
            continue

        row = next(csv.reader([line.rstrip('\r\n')], delimiter='\t'))
        key, values = row[0], row[1:]
        if key.startswith('!Series_'):
            series[key[len('!Series_'):]].extend(values)
        elif key.startswith('!Sample_'):
            sample_rows.append((key[len('!Sample_'):], values))

    if not in_table:
        raise ValueError(f"Series matrix has no {TABLE_BEGIN} marker")
    if not saw_end:
        logger.warning(f"Series matrix has no {TABLE_END} marker; reading to end of file")

    return dict(series), sample_rows, "".join(table_lines)


def parse_series_matrix(source: Path | str | TextIO) -> SeriesMatrix:
    """
    Parse a GEO series matrix into a SynchronizedDataset.

    Args:
        source: Path (plain or .gz) or an open text handle

    Returns:
        SeriesMatrix with accession, platform and dataset

    Raises:
        ValueError: Missing table markers, missing sample accessions,
            ragged sample lines or non-numeric expression values
        AlignmentError: Table columns disagree with !Sample_geo_accession

    Examples:
        >>> parsed = parse_series_matrix("GSE5859_series_matrix.txt.gz")
        >>> parsed.platform
        'GPL570'
        >>> parsed.dataset.covariate('characteristics_ch1')
    """
    if isinstance(source, (str, Path)):
        with open_text(Path(source)) as handle:
            series, sample_rows, table_text = _read_rows(handle)
        origin = Path(source).name
    else:
        series, sample_rows, table_text = _read_rows(source)
        origin = getattr(source, 'name', '<stream>')

    if not table_text.strip():
        raise ValueError(f"Series matrix table is empty: {origin}")

    table = pd.read_csv(
        io.StringIO(table_text),
        sep='\t',
        index_col=0,
        na_values=NA_VALUES,
        keep_default_na=False,
    )
    table.index = table.index.astype(str)
    table.columns = table.columns.astype(str)
    try:
        table = table.astype(float)
    except ValueError as e:
        raise ValueError(f"Series matrix table has non-numeric values: {e}") from e

    frame = _sample_frame(sample_rows)
    platforms = [values for key, values in sample_rows if key == 'platform_id']
    platform = platforms[0][0] if platforms and platforms[0] else None
    if platform is None and series.get('platform_id'):
        platform = series['platform_id'][0]

    accession = series.get('geo_accession', [None])[0]
    dataset = SynchronizedDataset(
        table,
        covariates=CovariateTable(frame),
        metadata=_experiment_info(series),
    )
    logger.info(
        f"Parsed {origin}: {dataset.n_features:,} features x {dataset.n_samples} samples "
        f"(platform {platform})"
    )
    return SeriesMatrix(accession=accession, platform=platform, dataset=dataset)
