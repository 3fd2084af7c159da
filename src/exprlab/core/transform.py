"""
Base transformation framework for immutable dataset operations.

A transformation maps a dataset to a new dataset with different expression
values and everything else (identifiers, covariates, metadata) carried over.
Because only values change, a transformation can never desynchronize the
matrix from its sample sheet.

Biological Context:
    Microarray exploration applies a short chain of value transformations:
    1. Log transform raw intensities (multiplicative -> additive scale)
    2. Center or standardize probesets before PCA or clustering

    Each step must be:
    - Reproducible (same input -> same output)
    - Auditable (parameters visible in repr/logs)
    - Non-destructive (the input dataset is untouched)

Examples:
    >>> from exprlab.core.transform import Transform
    >>>
    >>> class Negate(Transform):
    ...     def __init__(self):
    ...         super().__init__(name="Negate", params={})
    ...
    ...     def apply(self, dataset):
    ...         return dataset.with_expression(-dataset.expression)
    >>>
    >>> flipped = Negate().apply(dataset)
    >>> # dataset is unchanged
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from exprlab.core.dataset import SynchronizedDataset

__all__ = ['Transform']


class Transform(ABC):
    """
    Abstract base class for all dataset transformations.

    Transformations take a dataset and parameters and return a new dataset.
    Implementations build their result with ``dataset.with_expression()``.

    Attributes:
        name: Human-readable transformation name (e.g., "LogTransform")
        params: Parameters used for this transformation
        timestamp: When this transform instance was created
    """

    def __init__(self, name: str, params: dict[str, Any]) -> None:
        self.name = name
        self.params = params
        self.timestamp = datetime.now()

    @abstractmethod
    def apply(self, dataset: SynchronizedDataset) -> SynchronizedDataset:
        """
        Execute transformation and return new dataset.

        Must never modify the input dataset.

        Raises:
            ValueError: If the transformation cannot be applied (see validate())
        """

    def validate(self, dataset: SynchronizedDataset) -> list[str]:
        """
        Check preconditions before applying transformation.

        Subclasses should override and call super().validate() first.

        Returns:
            List of error messages (empty list = valid)
        """
        errors: list[str] = []

        if dataset.expression.size == 0:
            errors.append("Cannot process empty dataset")

        return errors

    def __call__(self, dataset: SynchronizedDataset) -> SynchronizedDataset:
        return self.apply(dataset)

    def __repr__(self) -> str:
        """
        String representation for logging.

        Examples:
            >>> LogTransform(base=2.0)
            LogTransform(base=2.0, pseudocount=0.0)
        """
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params_str})"
