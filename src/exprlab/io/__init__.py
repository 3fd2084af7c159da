"""
I/O module for loading expression tables and sample sheets.

Key Functions:
    - read_expression_table: numeric table with fixed skip/row offsets
    - load_covariates: sample sheet with one identifier column promoted to index
    - load_dataset: both of the above joined into a SynchronizedDataset

Design Philosophy:
    - Robust error handling for malformed data
    - Clear validation messages naming the offending cells
    - Offsets (preamble lines, row counts) are explicit, never guessed

Examples:
    >>> from exprlab.io import load_dataset
    >>> ds = load_dataset("expression.tsv", "samples.csv", id_column="filename")
    >>> print(f"Loaded {ds.n_features} features x {ds.n_samples} samples")
"""

from exprlab.io.formats import PRESETS, TableFormat, sniff_delimiter, suggest_format
from exprlab.io.loaders import (
    load_covariates,
    load_dataset,
    load_descriptions,
    read_expression_table,
)

__all__ = [
    'TableFormat',
    'PRESETS',
    'sniff_delimiter',
    'suggest_format',
    'read_expression_table',
    'load_covariates',
    'load_descriptions',
    'load_dataset',
]
