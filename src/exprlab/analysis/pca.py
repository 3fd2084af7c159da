"""
Principal-component projection of samples.

Each sample is a point in feature space; PCA finds the few directions along
which samples differ most. On microarray data the first components often
track batch (processing date) as strongly as biology, which is exactly what
exploratory analysis should reveal before any group comparison.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA

from exprlab.core.dataset import SynchronizedDataset

logger = logging.getLogger(__name__)

__all__ = ['PCAResult', 'principal_components']


@dataclass(frozen=True)
class PCAResult:
    """
    Principal components of a dataset's samples.

    Attributes:
        scores: Samples × components (index = sample ids, columns PC1..PCk)
        loadings: Features × components (index = feature ids used)
        explained_variance_ratio: Fraction of variance per component
        n_features_used: Features kept after dropping NaN/constant rows
    """
    scores: pd.DataFrame
    loadings: pd.DataFrame
    explained_variance_ratio: np.ndarray
    n_features_used: int

    def axis_label(self, component: int) -> str:
        """Axis label such as 'PC1 (34.2%)' for 1-based component number."""
        return f"PC{component} ({100 * self.explained_variance_ratio[component - 1]:.1f}%)"


def principal_components(
    dataset: SynchronizedDataset,
    n_components: int = 2,
    scale: bool = False,
) -> PCAResult:
    """
    Project samples onto their leading principal components.

    Features with missing values or zero variance are dropped first. Features
    are always centered (PCA requires it); ``scale=True`` also divides each
    feature by its standard deviation.

    Args:
        dataset: Input dataset (features × samples)
        n_components: Number of components; capped at min(samples, features)
        scale: Standardize features before projection

    Returns:
        PCAResult

    Raises:
        ValueError: Fewer than 2 samples, or no usable features

    Examples:
        >>> result = principal_components(ds, n_components=3)
        >>> result.scores.join(ds.covariate_frame)  # PCs next to group/date
    """
    if n_components < 1:
        raise ValueError(f"n_components must be >= 1, got {n_components}")
    if dataset.n_samples < 2:
        raise ValueError(f"PCA needs at least 2 samples, got {dataset.n_samples}")

    values = dataset.expression
    complete = ~np.isnan(values).any(axis=1)
    variable = np.zeros_like(complete)
    if complete.any():
        variable[complete] = np.nanstd(values[complete], axis=1) > 0
    keep = complete & variable

    n_dropped = int((~keep).sum())
    if n_dropped:
        logger.info(
            f"Dropping {n_dropped} of {dataset.n_features} features "
            f"({int((~complete).sum())} with missing values, "
            f"{int((complete & ~variable).sum())} constant)"
        )
    if not keep.any():
        raise ValueError("No features without missing values and with nonzero variance")

    # samples × features
    matrix = values[keep].T
    if scale:
        matrix = (matrix - matrix.mean(axis=0)) / matrix.std(axis=0, ddof=1)

    k = min(n_components, matrix.shape[0], matrix.shape[1])
    if k < n_components:
        logger.info(f"Reducing n_components from {n_components} to {k}")

    model = PCA(n_components=k)
    scores = model.fit_transform(matrix)

    columns = [f"PC{i + 1}" for i in range(k)]
    feature_index = (
        dataset.feature_ids[keep] if dataset.feature_ids is not None
        else pd.RangeIndex(dataset.n_features)[keep]
    )
    return PCAResult(
        scores=pd.DataFrame(scores, index=dataset.sample_ids, columns=columns),
        loadings=pd.DataFrame(model.components_.T, index=feature_index, columns=columns),
        explained_variance_ratio=model.explained_variance_ratio_,
        n_features_used=int(keep.sum()),
    )
