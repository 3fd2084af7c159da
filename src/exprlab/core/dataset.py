"""
Core data structure for microarray expression experiments.

SynchronizedDataset bundles an expression matrix with everything needed to
interpret it: which sample each column came from (covariate table), which
probe or gene each row measures (feature identifiers), and who produced the
experiment (free-form metadata).

Biological Context:
    Expression matrices are the fundamental data structure of a microarray lab:
    - Rows = features (probesets, genes)
    - Columns = samples (arrays, individuals)
    - Values = log-scale intensities

    The sample sheet lives in a separate file and is joined by filename or
    accession. The classic silent failure is dropping a sample from the
    matrix but a *different* sample from the sheet (say individual 9 from
    one and individual 10 from the other): every downstream group
    comparison is then quietly wrong.

Engineering Design:
    - No API mutates the matrix or the sheet on their own; every selection
      goes through the dataset and re-derives both parts together
    - Every path re-validates through the constructor
    - Immutable by convention: operations return new instances
    - replace_covariates is the one in-place operation; it validates first
      and assigns only on success

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from exprlab.core.dataset import SynchronizedDataset
    >>>
    >>> expression = pd.DataFrame(
    ...     np.arange(6, dtype=float).reshape(2, 3),
    ...     index=['1007_s_at', '1053_at'],
    ...     columns=['s1', 's2', 's3'],
    ... )
    >>> covariates = pd.DataFrame({'group': [0, 1, 1]}, index=['s1', 's2', 's3'])
    >>> ds = SynchronizedDataset(expression, covariates)
    >>>
    >>> cases = ds.select_samples(lambda row: row['group'] == 1)
    >>> list(cases.sample_ids)
    ['s2', 's3']
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Callable, Hashable, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from exprlab.core.covariates import CovariateTable
from exprlab.core.errors import AlignmentError, CardinalityError, MissingIdentifierError
from exprlab.core.experiment import ExperimentInfo

__all__ = ['SynchronizedDataset', 'Selection']

logger = logging.getLogger(__name__)

Selection = Union[
    None,
    slice,
    range,
    Callable[[Any], bool],
    Sequence[int],
    Sequence[Hashable],
    np.ndarray,
    pd.Series,
    pd.Index,
]


def _is_int(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


def _is_bool(value: Any) -> bool:
    return isinstance(value, (bool, np.bool_))


def _is_mask(values: Any) -> bool:
    """True for boolean values, allowing pd.NA from nullable boolean arrays."""
    dtype = getattr(values, 'dtype', None)
    if dtype is not None and pd.api.types.is_bool_dtype(dtype):
        return True
    return all(_is_bool(v) or v is pd.NA for v in values) and any(_is_bool(v) for v in values)


def _is_positional(index: pd.Index) -> bool:
    return isinstance(index, pd.RangeIndex) and index.equals(pd.RangeIndex(len(index)))


def _align_covariates(table: CovariateTable, sample_ids: pd.Index) -> CovariateTable:
    """
    Check covariate rows against expression columns and return an aligned table.

    Identifiers must match as a multiset. A pure reordering is resolved by
    reindexing the covariates to expression order.

    Raises:
        AlignmentError: If either side has identifiers the other lacks
    """
    covariate_ids = table.index
    if covariate_ids.equals(sample_ids):
        return table

    expression_counts = Counter(sample_ids)
    covariate_counts = Counter(covariate_ids)
    if expression_counts != covariate_counts:
        expression_only = list((expression_counts - covariate_counts).elements())
        covariate_only = list((covariate_counts - expression_counts).elements())
        detail = None
        if len(covariate_ids) != len(sample_ids):
            detail = f"{len(covariate_ids)} covariate rows for {len(sample_ids)} samples"
        raise AlignmentError(expression_only, covariate_only, detail)

    logger.debug(
        "Covariate rows are a permutation of the expression columns; "
        "reordering %d rows to expression order", len(sample_ids)
    )
    return table.reindex_like(sample_ids)


class SynchronizedDataset:
    """
    Expression matrix + covariate table + feature identifiers + metadata.

    The four parts are kept mutually consistent: column *j* of the matrix is
    the sample in row *j* of the covariate table, and row *i* is the feature
    ``feature_ids[i]``.

    Attributes:
        expression: Read-only expression matrix (features × samples)
        sample_ids: Column identifiers (samples, arrays)
        feature_ids: Row identifiers (probesets, genes), or None
        covariates: Per-sample attributes with column descriptions
        metadata: Experiment description (provenance only)

    Shape Invariants:
        - len(covariates) == expression.shape[1]
        - covariates.index equals sample_ids, in order
        - len(feature_ids) == expression.shape[0] when feature_ids is set

    Thread Safety:
        Instances are safe for concurrent readers. replace_covariates is not
        safe to call concurrently with any other access.
    """

    def __init__(
        self,
        expression: pd.DataFrame | np.ndarray | Sequence[Sequence[float]],
        covariates: CovariateTable | pd.DataFrame | None = None,
        feature_ids: Optional[Sequence[Hashable] | pd.Index] = None,
        metadata: ExperimentInfo | Mapping[str, Any] | None = None,
        sample_ids: Optional[Sequence[Hashable] | pd.Index] = None,
    ):
        """
        Initialize dataset with validation.

        Args:
            expression: Matrix (features × samples). A DataFrame supplies
                sample identifiers from its columns, and feature identifiers
                from its index unless that is a plain RangeIndex.
            covariates: Per-sample attributes indexed by sample identifier.
                None gives an empty table.
            feature_ids: One identifier per expression row (overrides the
                DataFrame index)
            metadata: ExperimentInfo or mapping of free-form fields
            sample_ids: Column identifiers for array input (overrides
                DataFrame columns). Defaults to "0".."n-1".

        Raises:
            AlignmentError: Covariate rows do not match expression columns
            CardinalityError: feature_ids length differs from row count
            ValueError: Non-2D expression, duplicate identifiers
            TypeError: Unsupported input types
        """
        if isinstance(expression, pd.DataFrame):
            frame_columns: Optional[pd.Index] = expression.columns
            frame_index: Optional[pd.Index] = expression.index
            values = expression.to_numpy(dtype=float, copy=True)
        else:
            frame_columns = frame_index = None
            try:
                values = np.array(expression, dtype=float)
            except (TypeError, ValueError) as e:
                raise TypeError(f"expression must be numeric, got {type(expression)}: {e}") from e

        if values.ndim != 2:
            raise ValueError(f"expression must be 2D, got shape {values.shape}")

        n_features, n_samples = values.shape

        # Sample identifiers
        if sample_ids is not None:
            sample_index = pd.Index(sample_ids).copy()
        elif frame_columns is not None:
            sample_index = frame_columns.copy()
        else:
            sample_index = pd.Index([str(i) for i in range(n_samples)])

        if len(sample_index) != n_samples:
            raise ValueError(
                f"sample_ids length ({len(sample_index)}) must match expression columns ({n_samples})"
            )
        if sample_index.has_duplicates:
            dups = sample_index[sample_index.duplicated()].unique().tolist()
            raise ValueError(f"Sample identifiers must be unique; duplicated: {dups[:10]}")

        # Feature identifiers
        if feature_ids is not None:
            feature_index: Optional[pd.Index] = pd.Index(feature_ids).copy()
        elif frame_index is not None and not isinstance(frame_index, pd.RangeIndex):
            feature_index = frame_index.copy()
        else:
            feature_index = None

        if feature_index is not None:
            if len(feature_index) != n_features:
                raise CardinalityError(expected=n_features, actual=len(feature_index))
            if feature_index.has_duplicates:
                dups = feature_index[feature_index.duplicated()].unique().tolist()
                raise ValueError(f"Feature identifiers must be unique; duplicated: {dups[:10]}")

        # Covariates
        if covariates is None:
            table = CovariateTable.empty(sample_index)
        elif isinstance(covariates, CovariateTable):
            table = covariates
        elif isinstance(covariates, pd.DataFrame):
            table = CovariateTable(covariates)
        else:
            raise TypeError(
                f"covariates must be CovariateTable or pd.DataFrame, got {type(covariates)}"
            )
        table = _align_covariates(table, sample_index)

        values.flags.writeable = False

        self._values = values
        self._sample_ids = sample_index
        self._feature_ids = feature_index
        self._covariates = table
        self._metadata = ExperimentInfo.coerce(metadata)

    @property
    def expression(self) -> np.ndarray:
        """Read-only expression matrix (features × samples)."""
        return self._values

    @property
    def sample_ids(self) -> pd.Index:
        """Column identifiers (samples)."""
        return self._sample_ids

    @property
    def feature_ids(self) -> Optional[pd.Index]:
        """Row identifiers (probesets, genes), or None if not supplied."""
        return self._feature_ids

    @property
    def covariates(self) -> CovariateTable:
        """Per-sample attributes, row-aligned with the expression columns."""
        return self._covariates

    @property
    def covariate_frame(self) -> pd.DataFrame:
        """Copy of the covariate DataFrame."""
        return self._covariates.frame

    @property
    def metadata(self) -> ExperimentInfo:
        return self._metadata

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_features, n_samples)."""
        return self._values.shape

    @property
    def n_features(self) -> int:
        return self._values.shape[0]

    @property
    def n_samples(self) -> int:
        return self._values.shape[1]

    def covariate(self, name: Hashable) -> pd.Series:
        """One covariate column as a Series indexed by sample identifier."""
        return self._covariates.column(name)

    def to_frame(self) -> pd.DataFrame:
        """
        Expression matrix as a labeled DataFrame copy.

        Index is feature_ids (or positions if none), columns are sample_ids.
        """
        index = self._feature_ids if self._feature_ids is not None else pd.RangeIndex(self.n_features)
        return pd.DataFrame(self._values.copy(), index=index, columns=self._sample_ids)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _resolve(self, selection: Selection, axis: str) -> np.ndarray:
        """Translate a selection on one axis into an ordered array of positions."""
        if axis == 'sample':
            n = self.n_samples
            labels: Optional[pd.Index] = self._sample_ids
        else:
            n = self.n_features
            labels = self._feature_ids

        if selection is None:
            return np.arange(n)

        if isinstance(selection, slice):
            return np.arange(n)[selection]

        if callable(selection):
            if axis == 'sample':
                frame = self._covariates.frame
                items = (frame.iloc[j] for j in range(n))
            else:
                items = iter(labels) if labels is not None else iter(range(n))
            mask = np.fromiter((bool(selection(item)) for item in items), dtype=bool, count=n)
            return np.flatnonzero(mask)

        if isinstance(selection, str):
            selection = [selection]

        if isinstance(selection, pd.Series):
            if len(selection) and _is_mask(selection) and not _is_positional(selection.index):
                selection = self._align_mask(selection, axis, labels)
            values = selection.to_numpy()
        elif isinstance(selection, (np.ndarray, pd.Index)):
            values = np.asarray(selection)
        else:
            try:
                values = list(selection)
            except TypeError:
                raise TypeError(
                    f"Unsupported {axis} selection of type {type(selection)}"
                ) from None

        if len(values) == 0:
            return np.arange(0)

        if _is_mask(values):
            if any(v is pd.NA for v in values):
                raise ValueError(f"{axis} mask contains missing values")
            mask = np.asarray(values, dtype=bool)
            if mask.ndim != 1 or len(mask) != n:
                raise ValueError(
                    f"mask length ({len(mask)}) must match n_{axis}s ({n})"
                )
            return np.flatnonzero(mask)

        if all(_is_int(v) for v in values):
            positions = np.asarray(values, dtype=int)
            out_of_range = positions[(positions < -n) | (positions >= n)]
            if len(out_of_range):
                raise IndexError(
                    f"{axis} position(s) {out_of_range.tolist()} out of range for {n} {axis}s"
                )
            positions = np.where(positions < 0, positions + n, positions)
        else:
            if labels is None:
                raise MissingIdentifierError(values, axis)
            positions = labels.get_indexer(values)
            missing = [v for v, p in zip(values, positions) if p == -1]
            if missing:
                raise MissingIdentifierError(missing, axis)

        if len(np.unique(positions)) != len(positions):
            raise ValueError(f"{axis} selection contains duplicates")
        return positions

    @staticmethod
    def _align_mask(mask: pd.Series, axis: str, labels: Optional[pd.Index]) -> pd.Series:
        """Reorder a labeled boolean mask to the axis order."""
        if labels is None:
            raise MissingIdentifierError(list(mask.index), axis)
        if mask.index.has_duplicates:
            raise ValueError(f"{axis} mask index contains duplicates")
        unknown = mask.index.difference(labels, sort=False)
        if len(unknown):
            raise MissingIdentifierError(list(unknown), axis)
        uncovered = labels.difference(mask.index, sort=False)
        if len(uncovered):
            raise ValueError(
                f"{axis} mask has no value for {len(uncovered)} {axis}(s): "
                f"{list(uncovered[:5])}"
            )
        return mask.reindex(labels)

    def _take(self, rows: np.ndarray, cols: np.ndarray) -> SynchronizedDataset:
        return SynchronizedDataset(
            expression=self._values[np.ix_(rows, cols)],
            covariates=self._covariates.take(cols),
            feature_ids=self._feature_ids[rows] if self._feature_ids is not None else None,
            metadata=self._metadata,
            sample_ids=self._sample_ids[cols],
        )

    def select_samples(self, selection: Selection) -> SynchronizedDataset:
        """
        Subset dataset by samples (columns).

        Returns new dataset with the selected columns and the matching
        covariate rows, in the requested order. Features and metadata are
        carried over unchanged.

        Args:
            selection: One of
                - callable: predicate over the sample's covariate row
                  (a Series whose ``name`` is the sample identifier)
                - boolean mask of length n_samples; a Series indexed by
                  sample identifiers is aligned by label, in any order
                - slice or range of positions
                - sequence of integer positions
                - sequence of sample identifiers

        Returns:
            New SynchronizedDataset

        Raises:
            MissingIdentifierError: An identifier is not a sample of this dataset
            IndexError: A position is out of range
            ValueError: Mask length mismatch or duplicate selections

        Examples:
            >>> cases = ds.select_samples(ds.covariate('group') == 1)
            >>> reordered = ds.select_samples([2, 0, 1])
            >>> pair = ds.select_samples(['GSM136530', 'GSM136517'])
        """
        cols = self._resolve(selection, 'sample')
        return self._take(np.arange(self.n_features), cols)

    def select_features(self, selection: Selection) -> SynchronizedDataset:
        """
        Subset dataset by features (rows).

        Same selection forms as select_samples, except a callable predicate
        receives the feature identifier (or the row position when the
        dataset has no feature identifiers).

        Examples:
            >>> controls = ds.select_features(lambda fid: fid.startswith('AFFX'))
            >>> first_ten = ds.select_features(slice(0, 10))
        """
        rows = self._resolve(selection, 'feature')
        return self._take(rows, np.arange(self.n_samples))

    def subset(
        self,
        features: Selection = None,
        samples: Selection = None,
    ) -> SynchronizedDataset:
        """
        Subset both axes at once.

        Both selections are resolved against this dataset independently;
        selecting on one axis never changes what is eligible on the other.
        None keeps the whole axis.
        """
        rows = self._resolve(features, 'feature')
        cols = self._resolve(samples, 'sample')
        return self._take(rows, cols)

    def __getitem__(self, key) -> SynchronizedDataset:
        """``ds[features, samples]`` or ``ds[features]``."""
        if isinstance(key, tuple):
            if len(key) != 2:
                raise IndexError(f"Expected ds[features, samples], got {len(key)} indexers")
            return self.subset(features=key[0], samples=key[1])
        return self.subset(features=key)

    # ------------------------------------------------------------------
    # Derived datasets
    # ------------------------------------------------------------------

    def with_covariates(self, covariates: CovariateTable | pd.DataFrame) -> SynchronizedDataset:
        """New dataset with the covariate table replaced."""
        return SynchronizedDataset(
            expression=self._values,
            covariates=covariates,
            feature_ids=self._feature_ids,
            metadata=self._metadata,
            sample_ids=self._sample_ids,
        )

    def replace_covariates(self, covariates: CovariateTable | pd.DataFrame) -> None:
        """
        Replace the covariate table in place.

        Validation happens before assignment: on AlignmentError this dataset
        is left exactly as it was. Not thread-safe.
        """
        if isinstance(covariates, pd.DataFrame):
            covariates = CovariateTable(covariates)
        elif not isinstance(covariates, CovariateTable):
            raise TypeError(
                f"covariates must be CovariateTable or pd.DataFrame, got {type(covariates)}"
            )
        aligned = _align_covariates(covariates, self._sample_ids)
        self._covariates = aligned

    def with_expression(self, values: np.ndarray) -> SynchronizedDataset:
        """
        New dataset with the expression values replaced.

        Used by transformations: identifiers, covariates and metadata carry
        over, so the new values must have exactly the same shape.
        """
        values = np.asarray(values, dtype=float)
        if values.shape != self.shape:
            raise ValueError(
                f"Replacement values shape {values.shape} must match dataset shape {self.shape}"
            )
        return SynchronizedDataset(
            expression=values,
            covariates=self._covariates,
            feature_ids=self._feature_ids,
            metadata=self._metadata,
            sample_ids=self._sample_ids,
        )

    def with_metadata(self, metadata: ExperimentInfo | Mapping[str, Any] | None) -> SynchronizedDataset:
        return SynchronizedDataset(
            expression=self._values,
            covariates=self._covariates,
            feature_ids=self._feature_ids,
            metadata=metadata,
            sample_ids=self._sample_ids,
        )

    def copy(self) -> SynchronizedDataset:
        return self.with_metadata(self._metadata)

    def equals(self, other: object) -> bool:
        """Same values, identifiers, order, covariates and metadata."""
        if not isinstance(other, SynchronizedDataset):
            return False
        if self.shape != other.shape:
            return False
        if not np.array_equal(self._values, other._values, equal_nan=True):
            return False
        if not self._sample_ids.equals(other._sample_ids):
            return False
        if (self._feature_ids is None) != (other._feature_ids is None):
            return False
        if self._feature_ids is not None and not self._feature_ids.equals(other._feature_ids):
            return False
        return self._covariates.equals(other._covariates) and self._metadata == other._metadata

    def __repr__(self) -> str:
        def _span(index: Optional[pd.Index]) -> str:
            if index is None:
                return "(none)"
            if len(index) == 0:
                return "(empty)"
            return f"{index[0]}...{index[-1]}"

        return (
            f"SynchronizedDataset({self.n_features} features × {self.n_samples} samples)\n"
            f"  Features: {_span(self._feature_ids)}\n"
            f"  Samples: {_span(self._sample_ids)}\n"
            f"  Covariates: {list(self._covariates.columns)}"
        )

    def __str__(self) -> str:
        return self.__repr__()
