"""
Hierarchical clustering of samples.

Agglomerative clustering on sample-to-sample distances, then optionally
cutting the tree into groups. Cross-tabulating the groups against a
covariate (group, batch, sex) shows which of them the data "sees".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Hashable, Optional

import numpy as np
import pandas as pd
from scipy.cluster import hierarchy
from scipy.spatial.distance import pdist

from exprlab.core.dataset import SynchronizedDataset

logger = logging.getLogger(__name__)

__all__ = ['ClusteringResult', 'cluster_samples', 'cross_tabulate']

METHODS = ('single', 'complete', 'average', 'weighted', 'centroid', 'median', 'ward')


@dataclass(frozen=True)
class ClusteringResult:
    """
    Hierarchical clustering of a dataset's samples.

    Attributes:
        linkage: SciPy linkage matrix ((n-1) × 4)
        sample_ids: Samples in the order used for the linkage
        method: Linkage method
        metric: Distance metric
        assignments: Cluster label per sample (None if the tree was not cut)
    """
    linkage: np.ndarray
    sample_ids: pd.Index
    method: str
    metric: str
    assignments: Optional[pd.Series] = None

    def cut(self, n_clusters: Optional[int] = None, height: Optional[float] = None) -> pd.Series:
        """Cut the tree into ``n_clusters`` groups or at ``height``."""
        return _cut(self.linkage, self.sample_ids, n_clusters, height)


def _cut(
    linkage: np.ndarray,
    sample_ids: pd.Index,
    n_clusters: Optional[int],
    height: Optional[float],
) -> pd.Series:
    if (n_clusters is None) == (height is None):
        raise ValueError("Specify exactly one of n_clusters or height")
    if n_clusters is not None:
        if n_clusters < 1:
            raise ValueError(f"n_clusters must be >= 1, got {n_clusters}")
        labels = hierarchy.fcluster(linkage, t=n_clusters, criterion='maxclust')
    else:
        labels = hierarchy.fcluster(linkage, t=height, criterion='distance')
    return pd.Series(labels, index=sample_ids, name='cluster')


def cluster_samples(
    dataset: SynchronizedDataset,
    method: str = 'average',
    metric: str = 'euclidean',
    n_clusters: Optional[int] = None,
    height: Optional[float] = None,
) -> ClusteringResult:
    """
    Agglomerative clustering of samples on their expression profiles.

    Features with any missing value are excluded from the distances.

    Args:
        dataset: Input dataset
        method: Linkage method (see scipy.cluster.hierarchy.linkage)
        metric: Distance metric (see scipy.spatial.distance.pdist); ward,
            centroid and median require euclidean
        n_clusters: Cut the tree into this many clusters
        height: Cut the tree at this distance (alternative to n_clusters)

    Raises:
        ValueError: Unknown method, fewer than 2 samples, or no complete features

    Examples:
        >>> result = cluster_samples(ds, n_clusters=2)
        >>> cross_tabulate(result, ds, 'group')
    """
    if method not in METHODS:
        raise ValueError(f"Unknown linkage method '{method}'. Available: {list(METHODS)}")
    if method in ('ward', 'centroid', 'median') and metric != 'euclidean':
        raise ValueError(f"Linkage method '{method}' requires metric='euclidean'")
    if dataset.n_samples < 2:
        raise ValueError(f"Clustering needs at least 2 samples, got {dataset.n_samples}")

    values = dataset.expression
    complete = ~np.isnan(values).any(axis=1)
    if not complete.any():
        raise ValueError("No features without missing values")
    if not complete.all():
        logger.info(f"Excluding {int((~complete).sum())} features with missing values from distances")

    distances = pdist(values[complete].T, metric=metric)
    linkage = hierarchy.linkage(distances, method=method)

    assignments = None
    if n_clusters is not None or height is not None:
        assignments = _cut(linkage, dataset.sample_ids, n_clusters, height)

    return ClusteringResult(
        linkage=linkage,
        sample_ids=dataset.sample_ids,
        method=method,
        metric=metric,
        assignments=assignments,
    )


def cross_tabulate(
    result: ClusteringResult,
    dataset: SynchronizedDataset,
    covariate: Hashable,
) -> pd.DataFrame:
    """
    Contingency table of cluster assignments against a covariate.

    Raises:
        ValueError: If the clustering was not cut, or was computed on other samples
        KeyError: If the covariate does not exist
    """
    if result.assignments is None:
        raise ValueError("Clustering has no assignments; cut the tree first")
    if not result.sample_ids.equals(dataset.sample_ids):
        raise ValueError("Clustering was computed on a different set of samples")
    return pd.crosstab(result.assignments, dataset.covariate(covariate))
