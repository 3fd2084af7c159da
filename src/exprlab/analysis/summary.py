"""
Descriptive statistics over a dataset.

These are the first numbers one looks at on a new microarray experiment:
is every array on the same scale (per-sample quantiles), which probesets
are bright or variable (per-feature mean/SD), and how balanced the design
is (counts per covariate level).

All functions are read-only consumers; NaN values are ignored.
"""

from __future__ import annotations

import logging
import warnings
from typing import Hashable

import numpy as np
import pandas as pd

from exprlab.core.dataset import SynchronizedDataset

logger = logging.getLogger(__name__)

__all__ = ['sample_summary', 'feature_summary', 'group_means', 'covariate_counts']


def _feature_index(dataset: SynchronizedDataset) -> pd.Index:
    if dataset.feature_ids is not None:
        return dataset.feature_ids
    return pd.RangeIndex(dataset.n_features)


def sample_summary(dataset: SynchronizedDataset) -> pd.DataFrame:
    """
    Per-sample distribution summary.

    Returns:
        DataFrame indexed by sample id with columns
        min, q1, median, mean, q3, max, sd, n_missing

    Examples:
        >>> stats = sample_summary(ds)
        >>> stats['median'].describe()  # arrays on the same scale?
    """
    columns = ['min', 'q1', 'median', 'mean', 'q3', 'max', 'sd', 'n_missing']
    values = dataset.expression
    if dataset.n_features == 0:
        summary = pd.DataFrame(np.nan, index=dataset.sample_ids, columns=columns)
        summary['n_missing'] = 0
        return summary

    with warnings.catch_warnings():
        # All-NaN columns produce NaN summaries, not warnings
        warnings.simplefilter('ignore', category=RuntimeWarning)
        q1, median, q3 = np.nanpercentile(values, [25, 50, 75], axis=0)
        summary = pd.DataFrame({
            'min': np.nanmin(values, axis=0),
            'q1': q1,
            'median': median,
            'mean': np.nanmean(values, axis=0),
            'q3': q3,
            'max': np.nanmax(values, axis=0),
            'sd': np.nanstd(values, axis=0, ddof=1),
            'n_missing': np.isnan(values).sum(axis=0),
        }, index=dataset.sample_ids)
    return summary[columns]


def feature_summary(dataset: SynchronizedDataset) -> pd.DataFrame:
    """
    Per-feature mean, standard deviation and missing count.

    Returns:
        DataFrame indexed by feature id (or row position) with columns
        mean, sd, n_missing
    """
    values = dataset.expression
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', category=RuntimeWarning)
        return pd.DataFrame({
            'mean': np.nanmean(values, axis=1),
            'sd': np.nanstd(values, axis=1, ddof=1),
            'n_missing': np.isnan(values).sum(axis=1),
        }, index=_feature_index(dataset))


def group_means(dataset: SynchronizedDataset, covariate: Hashable) -> pd.DataFrame:
    """
    Mean expression of every feature within each level of a covariate.

    Samples with a missing covariate value are left out.

    Returns:
        DataFrame features × levels (levels sorted)

    Raises:
        KeyError: If the covariate does not exist
    """
    groups = dataset.covariate(covariate)
    n_missing = int(groups.isna().sum())
    if n_missing:
        logger.info(f"{n_missing} samples have no '{covariate}' value; excluded from group means")

    frame = dataset.to_frame()
    present = groups.notna().to_numpy()
    grouped = frame.loc[:, present].T.groupby(groups[present].to_numpy(), sort=True).mean()
    result = grouped.T
    result.columns.name = covariate
    return result


def covariate_counts(dataset: SynchronizedDataset, covariate: Hashable) -> pd.Series:
    """
    Number of samples per level of a covariate (missing values counted as NaN).
    """
    return dataset.covariate(covariate).value_counts(dropna=False).sort_index()
