"""
Pytest configuration and shared fixtures.

Provides a synthetic microarray dataset generator shaped like a small GEO
subset (log2 intensities, two groups, processing-date batches, sex) and
helpers that write it to disk the way a lab would hand it out.
"""

import gzip
from pathlib import Path

import matplotlib
import numpy as np
import pandas as pd
import pytest

from exprlab.core.covariates import CovariateTable
from exprlab.core.dataset import SynchronizedDataset
from exprlab.core.experiment import ExperimentInfo

matplotlib.use("Agg")


def generate_synthetic_dataset(
    n_features: int = 200,
    n_samples: int = 12,
    n_batches: int = 3,
    batch_effect: float = 1.5,
    seed: int = 42,
) -> SynchronizedDataset:
    """
    Generate a synthetic expression dataset with realistic properties.

    Args:
        n_features: Number of probesets (rows)
        n_samples: Number of arrays (columns)
        n_batches: Number of processing dates
        batch_effect: Shift added to a random third of the probesets per batch
        seed: Random seed for reproducibility

    Returns:
        SynchronizedDataset with covariates 'group', 'date', 'sex'

    Design:
        - Baseline log2 intensities around 7, per-probeset offsets
        - Arrays alternate between group 0 and 1
        - Batches are contiguous blocks of arrays and shift expression, so
          PCA/clustering recover the batch rather than the group
    """
    rng = np.random.RandomState(seed)

    baseline = rng.normal(7.0, 1.5, size=(n_features, 1))
    values = baseline + rng.normal(0, 0.3, size=(n_features, n_samples))

    batches = np.array([i * n_batches // n_samples for i in range(n_samples)])
    for b in range(n_batches):
        affected = rng.rand(n_features) < 0.33
        values[np.ix_(affected, batches == b)] += batch_effect * b

    feature_ids = [f"{1000 + i}_at" for i in range(n_features)]
    sample_ids = [f"GSM{136500 + i}.CEL.gz" for i in range(n_samples)]

    covariates = pd.DataFrame({
        'group': [i % 2 for i in range(n_samples)],
        'date': [f"2005-06-{10 + b:02d}" for b in batches],
        'sex': ['M' if i % 3 else 'F' for i in range(n_samples)],
    }, index=pd.Index(sample_ids, name='filename'))

    table = CovariateTable(
        covariates,
        descriptions={'group': 'case (1) or control (0)', 'date': 'array processing date'},
    )
    return SynchronizedDataset(
        pd.DataFrame(values, index=feature_ids, columns=sample_ids),
        covariates=table,
        metadata=ExperimentInfo(name="A. Researcher", title="Synthetic subset"),
    )


@pytest.fixture
def tiny_dataset():
    """3 features x 3 samples (s1, s2, s3) with one covariate."""
    expression = pd.DataFrame(
        [[1.0, 2.0, 3.0],
         [4.0, 5.0, 6.0],
         [7.0, 8.0, 9.0]],
        index=['f1', 'f2', 'f3'],
        columns=['s1', 's2', 's3'],
    )
    covariates = pd.DataFrame(
        {'group': ['a', 'b', 'a'], 'age': [30, 40, 50]},
        index=['s1', 's2', 's3'],
    )
    return SynchronizedDataset(expression, covariates, metadata={'title': 'tiny'})


@pytest.fixture
def small_dataset():
    """Small dataset (200 probesets x 12 arrays) for fast unit tests."""
    return generate_synthetic_dataset(n_features=200, n_samples=12, seed=42)


@pytest.fixture
def medium_dataset():
    """Medium dataset (2000 probesets x 24 arrays) for analysis tests."""
    return generate_synthetic_dataset(n_features=2000, n_samples=24, seed=7)


def write_expression_table(dataset: SynchronizedDataset, path: Path, sep: str = '\t',
                           preamble: int = 0, footer: int = 0) -> Path:
    """
    Write a dataset's expression matrix as a lab export.

    Args:
        preamble: Number of free-text lines before the header
        footer: Number of free-text lines after the table
    """
    frame = dataset.to_frame()
    frame.index.name = 'ID'
    body = frame.to_csv(sep=sep)
    lines = [f"# export note {i}" for i in range(preamble)]
    text = "\n".join(lines + [body.rstrip("\n")] + [f"footer line {i}" for i in range(footer)])
    path.write_text(text + "\n")
    return path


def write_sample_sheet(dataset: SynchronizedDataset, path: Path, order=None) -> Path:
    """Write covariates as a CSV sample sheet with a 'filename' column."""
    frame = dataset.covariate_frame
    frame.index.name = 'filename'
    if order is not None:
        frame = frame.iloc[list(order)]
    frame.reset_index().to_csv(path, index=False)
    return path


SERIES_MATRIX = """\
!Series_title\t"Gene expression in lymphoblastoid cell lines"
!Series_geo_accession\t"GSE9999"
!Series_summary\t"First paragraph."
!Series_summary\t"Second paragraph."
!Series_pubmed_id\t"17206142"
!Series_web_link\t"http://example.org/study"
!Series_contact_name\t"Jane,,Doe"
!Series_contact_email\t"jane@example.org"
!Series_contact_institute\t"Example University"
!Series_platform_id\t"GPL570"
!Series_type\t"Expression profiling by array"

!Sample_title\t"NA06985"\t"NA06991"\t"NA06993"
!Sample_geo_accession\t"GSM25302"\t"GSM25305"\t"GSM25308"
!Sample_platform_id\t"GPL570"\t"GPL570"\t"GPL570"
!Sample_characteristics_ch1\t"sex: F"\t"sex: M"\t"sex: F"
!Sample_characteristics_ch1\t"age: 34"\t"age: 51"\t"age: 29"
!Sample_source_name_ch1\t"LCL"\t"LCL"\t"LCL"
!series_matrix_table_begin
"ID_REF"\t"GSM25302"\t"GSM25305"\t"GSM25308"
"1007_s_at"\t7.81\t7.65\t7.90
"1053_at"\t5.12\tnull\t5.30
"117_at"\t6.01\t6.22\t6.10
"121_at"\t8.44\t8.30\t8.52
!series_matrix_table_end
"""


@pytest.fixture
def series_matrix_text():
    """Text of a small three-sample GEO series matrix file."""
    return SERIES_MATRIX


@pytest.fixture
def series_matrix_gz(tmp_path):
    """The small series matrix written gzip-compressed."""
    path = tmp_path / "GSE9999_series_matrix.txt.gz"
    with gzip.open(path, 'wt') as f:
        f.write(SERIES_MATRIX)
    return path
