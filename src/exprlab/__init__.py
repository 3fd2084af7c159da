"""
exprlab - Exploratory analysis of microarray gene-expression data

Bundles an expression matrix with its sample covariates, feature
identifiers and experiment description, keeps them aligned under
subsetting, and provides the loaders, GEO fetcher, summaries, PCA,
clustering and plots used to explore such data.
"""

__version__ = "0.1.0"

from exprlab.core.dataset import SynchronizedDataset
from exprlab.core.covariates import CovariateTable
from exprlab.core.experiment import ExperimentInfo
from exprlab.core.errors import AlignmentError, CardinalityError, MissingIdentifierError
from exprlab.core.transform import Transform

__all__ = [
    "SynchronizedDataset",
    "CovariateTable",
    "ExperimentInfo",
    "AlignmentError",
    "CardinalityError",
    "MissingIdentifierError",
    "Transform",
]
