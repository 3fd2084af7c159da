"""
Read-only statistical consumers of a SynchronizedDataset.

- summary: per-sample, per-feature and per-group descriptive statistics
- pca: principal-component projection of samples (scikit-learn)
- clustering: hierarchical clustering of samples (SciPy)
"""

from exprlab.analysis.clustering import ClusteringResult, cluster_samples, cross_tabulate
from exprlab.analysis.pca import PCAResult, principal_components
from exprlab.analysis.summary import covariate_counts, feature_summary, group_means, sample_summary

__all__ = [
    'sample_summary',
    'feature_summary',
    'group_means',
    'covariate_counts',
    'PCAResult',
    'principal_components',
    'ClusteringResult',
    'cluster_samples',
    'cross_tabulate',
]
