"""
Loaders for expression tables and sample sheets.

Biological Context:
    A microarray lab hands out two files:
    - an expression table: first column probeset IDs, one column per array
      (often with a few preamble lines, sometimes followed by a footer)
    - a sample sheet: one row per array with filename, group, date, sex...

    The sample sheet is joined to the expression table by one designated
    identifier column (usually the array filename). Joining is done by
    SynchronizedDataset construction, which refuses to proceed if the two
    files disagree about which samples exist.

Examples:
    >>> from exprlab.io.loaders import load_dataset
    >>>
    >>> ds = load_dataset(
    ...     "GSE5859Subset_expression.txt",
    ...     "GSE5859Subset_samples.csv",
    ...     id_column="filename",
    ...     delimiter="\\t",
    ...     skip_rows=2,
    ...     n_rows=8793,
    ... )
    >>> ds.covariate('group').value_counts()
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Any, Hashable, Mapping, Optional

import numpy as np
import pandas as pd

from exprlab.core.covariates import CovariateTable
from exprlab.core.dataset import SynchronizedDataset
from exprlab.core.experiment import ExperimentInfo
from exprlab.io.formats import PRESETS, TableFormat, sniff_delimiter, suggest_format

__all__ = [
    'read_expression_table',
    'load_covariates',
    'load_descriptions',
    'load_dataset',
]

logger = logging.getLogger(__name__)


def _resolve_format(path: Path, format: str | TableFormat | None) -> TableFormat:
    if format is None:
        preset_name, fmt = suggest_format(path)
        logger.debug(f"Auto-detected format: {preset_name} ({fmt.name})")
        return fmt
    if isinstance(format, str):
        if format not in PRESETS:
            raise KeyError(
                f"Unknown format preset: '{format}'. "
                f"Available: {list(PRESETS.keys())}"
            )
        return PRESETS[format]
    return format


def _check_path(path: Path | str) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")
    return path


def read_expression_table(
    path: Path | str,
    format: str | TableFormat | None = None,
    *,
    delimiter: Optional[str] = None,
    skip_rows: Optional[int] = None,
    n_rows: Optional[int] = None,
    index_col: Optional[int] = None,
) -> pd.DataFrame:
    """
    Read a numeric expression table with row and column labels.

    Expected layout (after ``skip_rows`` preamble lines):
    ```
    ID\tGSM136508.CEL.gz\tGSM136530.CEL.gz
    1007_s_at\t6.54\t7.12
    1053_at\t7.55\t7.39
    ```

    Args:
        path: Table file (plain or .gz)
        format: Preset name or TableFormat (None = auto-detect)
        delimiter: Overrides the format's delimiter
        skip_rows: Overrides the number of preamble lines before the header
        n_rows: Overrides the number of data rows to read
        index_col: Overrides the feature identifier column

    Returns:
        DataFrame of floats (features × samples); index and columns as str

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: Empty file, non-numeric cells or infinite values
    """
    path = _check_path(path)
    fmt = _resolve_format(path, format).with_overrides(
        delimiter=delimiter, skip_rows=skip_rows, n_rows=n_rows, index_col=index_col,
    )

    sep = fmt.delimiter
    if sep is None:
        sep = sniff_delimiter(path)
        logger.debug(f"Sniffed delimiter: {repr(sep)}")

    try:
        df = pd.read_csv(
            path,
            sep=sep,
            index_col=fmt.index_col,
            skiprows=fmt.skip_rows,
            nrows=fmt.n_rows,
            encoding=fmt.encoding,
            comment=fmt.comment,
            na_values=fmt.na_values,
        )
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Data file is empty: {path}") from e
    except Exception as e:
        raise ValueError(f"Failed to read data file {path}: {e}") from e

    if df.shape[0] == 0:
        raise ValueError(f"Data file contains no features (rows): {path}")

    if df.shape[1] == 0:
        raise ValueError(f"Data file contains no samples (columns): {path}")

    df.columns = df.columns.astype(str)
    df.index = df.index.astype(str)

    # Feature identifiers
    if fmt._compiled_id_pattern:
        extracted = []
        failures = []
        for raw_id in df.index:
            try:
                extracted.append(fmt.extract_id(raw_id))
            except ValueError as e:
                failures.append(str(e))
                extracted.append(raw_id)
        if failures:
            warnings.warn(
                f"ID extraction failed for {len(failures)} rows. "
                f"Examples: {failures[:3]}. Using raw labels for those rows.",
                UserWarning
            )
        df.index = pd.Index(extracted, name=df.index.name)

    if df.index.duplicated().any():
        n_duplicates = df.index.duplicated().sum()
        warnings.warn(
            f"Found {n_duplicates} duplicate feature IDs. "
            "Using first occurrence of each.",
            UserWarning
        )
        df = df[~df.index.duplicated(keep='first')]

    if df.columns.duplicated().any():
        n_duplicates = df.columns.duplicated().sum()
        warnings.warn(
            f"Found {n_duplicates} duplicate sample IDs. "
            "Using first occurrence of each.",
            UserWarning
        )
        df = df.loc[:, ~df.columns.duplicated(keep='first')]

    # Numeric conversion
    try:
        data = df.to_numpy(dtype=float)
    except (TypeError, ValueError) as e:
        non_numeric = []
        for i, row in enumerate(df.values):
            for j, val in enumerate(row):
                try:
                    float(val)
                except (ValueError, TypeError):
                    non_numeric.append(
                        f"row {i} ('{df.index[i]}'), col {j} ('{df.columns[j]}'): {val}"
                    )
                    if len(non_numeric) >= 5:
                        break
            if len(non_numeric) >= 5:
                break

        raise ValueError(
            f"Data contains non-numeric values:\n" +
            "\n".join(f"  - {x}" for x in non_numeric) +
            ("\n  ..." if len(non_numeric) >= 5 else "")
        ) from e

    if np.isnan(data).any():
        n_nan = int(np.isnan(data).sum())
        warnings.warn(
            f"Found {n_nan:,} NaN values ({100 * n_nan / data.size:.2f}% of data).",
            UserWarning
        )

    if np.isinf(data).any():
        n_inf = int(np.isinf(data).sum())
        raise ValueError(
            f"Data contains {n_inf} infinite values. "
            "Please clean data before loading."
        )

    result = pd.DataFrame(data, index=df.index, columns=df.columns)
    logger.info(f"Read {result.shape[0]:,} features x {result.shape[1]:,} samples from {path.name}")
    return result


def load_descriptions(path: Path | str, delimiter: Optional[str] = None) -> dict[str, str]:
    """
    Read a covariate data dictionary: two columns (covariate, description).

    Extra columns are ignored; rows with an empty description are skipped.
    """
    path = _check_path(path)
    sep = delimiter or sniff_delimiter(path)
    try:
        df = pd.read_csv(path, sep=sep, dtype=str)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Description file is empty: {path}") from e

    if df.shape[1] < 2:
        raise ValueError(
            f"Description file must have two columns (covariate, description): {path}"
        )

    names = df.iloc[:, 0]
    texts = df.iloc[:, 1]
    return {
        str(name).strip(): str(text).strip()
        for name, text in zip(names, texts)
        if pd.notna(name) and pd.notna(text) and str(text).strip()
    }


def load_covariates(
    path: Path | str,
    id_column: Optional[Hashable] = None,
    *,
    delimiter: Optional[str] = None,
    skip_rows: int = 0,
    descriptions: Optional[Mapping[str, str]] = None,
    description_path: Optional[Path | str] = None,
) -> CovariateTable:
    """
    Load a sample sheet as a CovariateTable.

    Args:
        path: Sample sheet (CSV/TSV)
        id_column: Column holding sample identifiers; None uses the first column
        delimiter: Field delimiter (None = sniff)
        skip_rows: Preamble lines before the header
        descriptions: Column -> description mapping
        description_path: Data dictionary file (see load_descriptions);
            entries in ``descriptions`` take precedence

    Raises:
        FileNotFoundError: If path does not exist
        KeyError: If id_column is not in the sheet
        ValueError: Empty sheet or duplicate identifiers
    """
    path = _check_path(path)
    sep = delimiter or sniff_delimiter(path)

    try:
        frame = pd.read_csv(path, sep=sep, skiprows=skip_rows)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Sample sheet is empty: {path}") from e
    except Exception as e:
        raise ValueError(f"Failed to read sample sheet {path}: {e}") from e

    if frame.shape[1] == 0:
        raise ValueError(f"Sample sheet has no columns: {path}")

    if id_column is None:
        id_column = frame.columns[0]

    merged: dict[str, str] = {}
    if description_path is not None:
        merged.update(load_descriptions(description_path))
    if descriptions:
        merged.update(descriptions)

    table_columns = set(frame.columns) - {id_column}
    unknown = [name for name in merged if name not in table_columns]
    if unknown:
        warnings.warn(
            f"Descriptions given for columns not in the sample sheet: {unknown}",
            UserWarning
        )
        merged = {k: v for k, v in merged.items() if k in table_columns}

    table = CovariateTable.from_frame(frame, id_column=id_column, descriptions=merged)
    logger.info(
        f"Loaded {len(table)} samples x {len(table.columns)} covariates from {path.name}"
    )
    return table


def load_dataset(
    expression_path: Path | str,
    covariates_path: Optional[Path | str] = None,
    *,
    id_column: Optional[Hashable] = None,
    format: str | TableFormat | None = None,
    delimiter: Optional[str] = None,
    skip_rows: Optional[int] = None,
    n_rows: Optional[int] = None,
    covariate_delimiter: Optional[str] = None,
    descriptions: Optional[Mapping[str, str]] = None,
    description_path: Optional[Path | str] = None,
    metadata: ExperimentInfo | Mapping[str, Any] | None = None,
) -> SynchronizedDataset:
    """
    Load an expression table and optional sample sheet into a dataset.

    A GEO series matrix file is recognized and parsed in full (covariates
    and experiment description included); ``covariates_path`` then replaces
    the covariates parsed from the file.

    Raises:
        AlignmentError: Sample sheet and expression columns disagree
        FileNotFoundError, ValueError, KeyError: See the individual loaders
    """
    expression_path = _check_path(expression_path)
    fmt = _resolve_format(expression_path, format)

    if fmt is PRESETS['geo_series_matrix']:
        from exprlab.geo.series_matrix import parse_series_matrix
        dataset = parse_series_matrix(expression_path).dataset
    else:
        table = read_expression_table(
            expression_path, fmt,
            delimiter=delimiter, skip_rows=skip_rows, n_rows=n_rows,
        )
        dataset = SynchronizedDataset(table)

    if metadata is not None:
        dataset = dataset.with_metadata(metadata)

    if covariates_path is not None:
        covariates = load_covariates(
            covariates_path,
            id_column,
            delimiter=covariate_delimiter,
            descriptions=descriptions,
            description_path=description_path,
        )
        dataset = dataset.with_covariates(covariates)

    return dataset
