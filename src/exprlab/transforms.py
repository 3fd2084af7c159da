"""
Value transformations used before exploratory analysis.

- LogTransform: raw microarray intensities are right-skewed and
  multiplicative; log2 makes differences additive and boxplots readable.
- CenterFeatures: PCA and clustering of samples should not be driven by
  which probesets are simply bright; removing row means (optionally
  dividing by row SD) puts every feature on the same footing.
"""

from __future__ import annotations

import logging

import numpy as np

from exprlab.core.dataset import SynchronizedDataset
from exprlab.core.transform import Transform

logger = logging.getLogger(__name__)

__all__ = ['LogTransform', 'CenterFeatures']


class LogTransform(Transform):
    """
    Logarithm of expression values with an optional pseudocount.

    Args:
        base: Logarithm base (default 2, the microarray convention)
        pseudocount: Added before taking the log (0 for intensities,
            1 for count-like data)
    """

    def __init__(self, base: float = 2.0, pseudocount: float = 0.0):
        super().__init__(
            name="LogTransform",
            params={"base": base, "pseudocount": pseudocount},
        )
        if base <= 0 or base == 1:
            raise ValueError(f"base must be positive and != 1, got {base}")
        self.base = base
        self.pseudocount = pseudocount

    def validate(self, dataset: SynchronizedDataset) -> list[str]:
        errors = super().validate(dataset)
        shifted = dataset.expression + self.pseudocount
        n_nonpositive = int(np.sum(shifted[~np.isnan(shifted)] <= 0))
        if n_nonpositive:
            errors.append(
                f"{n_nonpositive} values are <= 0 after adding pseudocount "
                f"{self.pseudocount}; log is undefined"
            )
        return errors

    def apply(self, dataset: SynchronizedDataset) -> SynchronizedDataset:
        errors = self.validate(dataset)
        if errors:
            raise ValueError(f"Cannot apply {self!r}: " + "; ".join(errors))

        logger.info(f"Applying {self!r} to {dataset.n_features} x {dataset.n_samples} values")
        values = np.log(dataset.expression + self.pseudocount) / np.log(self.base)
        return dataset.with_expression(values)


class CenterFeatures(Transform):
    """
    Subtract each feature's mean; optionally divide by its standard deviation.

    NaN-aware. Features with zero (or undefined) standard deviation are left
    at zero rather than becoming NaN/inf when scaling.
    """

    def __init__(self, scale: bool = False):
        super().__init__(name="CenterFeatures", params={"scale": scale})
        self.scale = scale

    def apply(self, dataset: SynchronizedDataset) -> SynchronizedDataset:
        errors = self.validate(dataset)
        if errors:
            raise ValueError(f"Cannot apply {self!r}: " + "; ".join(errors))

        values = dataset.expression
        with np.errstate(invalid='ignore'):
            counts = np.sum(~np.isnan(values), axis=1, keepdims=True)
            sums = np.nansum(values, axis=1, keepdims=True)
            means = np.divide(sums, counts, out=np.zeros_like(sums), where=counts > 0)
            centered = values - means

            if self.scale:
                sq = np.nansum(centered ** 2, axis=1, keepdims=True)
                dof = counts - 1
                var = np.divide(sq, dof, out=np.zeros_like(sq), where=dof > 0)
                sd = np.sqrt(var)
                constant = (sd == 0).ravel()
                if constant.any():
                    logger.info(f"{int(constant.sum())} features have zero variance; left at 0")
                centered = np.divide(
                    centered, sd, out=np.zeros_like(centered), where=sd > 0
                )
                centered[np.isnan(values)] = np.nan

        return dataset.with_expression(centered)
