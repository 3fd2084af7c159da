"""
Core data structures for the expression lab.

1. SynchronizedDataset: expression matrix kept aligned with its sample sheet
   and feature identifiers under every subsetting operation
2. CovariateTable: per-sample attributes with column descriptions
3. ExperimentInfo: free-form experiment description
4. Transform: abstract base class for value-only transformations

Design Philosophy:
    - Immutability: operations return new instances
    - Validation on every path: nothing can split matrix from sheet
    - Fail fast, with the offending identifiers in the message

Examples:
    >>> from exprlab.core import SynchronizedDataset, AlignmentError
    >>>
    >>> try:
    ...     SynchronizedDataset(expression, covariates=sheet)
    ... except AlignmentError as e:
    ...     print(e.expression_only, e.covariate_only)
"""

from exprlab.core.covariates import CovariateTable
from exprlab.core.dataset import SynchronizedDataset
from exprlab.core.errors import AlignmentError, CardinalityError, MissingIdentifierError
from exprlab.core.experiment import ExperimentInfo
from exprlab.core.transform import Transform

__all__ = [
    'SynchronizedDataset',
    'CovariateTable',
    'ExperimentInfo',
    'Transform',
    'AlignmentError',
    'CardinalityError',
    'MissingIdentifierError',
]
