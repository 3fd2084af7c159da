"""
Sample covariate table with per-column descriptions.

A covariate table is a DataFrame whose rows are samples (indexed by sample
identifier) and whose columns are arbitrary attributes: group, age, sex,
scan date. Each column may carry a human-readable description, the way a
phenotype sheet ships with a data dictionary.

Examples:
    >>> import pandas as pd
    >>> from exprlab.core.covariates import CovariateTable
    >>>
    >>> sheet = pd.DataFrame({
    ...     'filename': ['s1.CEL', 's2.CEL'],
    ...     'group': [0, 1],
    ... })
    >>> table = CovariateTable.from_frame(
    ...     sheet,
    ...     id_column='filename',
    ...     descriptions={'group': 'case (1) or control (0)'},
    ... )
    >>> table.description('group')
    'case (1) or control (0)'
"""

from __future__ import annotations

from typing import Hashable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

__all__ = ['CovariateTable']


class CovariateTable:
    """
    Row-indexed covariate table plus column descriptions.

    The table owns a private copy of its frame; the ``frame`` accessor hands
    out copies so callers cannot reorder or drop rows behind the owner's back.

    Attributes:
        frame: Copy of the underlying DataFrame (index = sample identifiers)
        descriptions: Copy of the column -> description mapping
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        descriptions: Optional[Mapping[Hashable, Optional[str]]] = None,
    ):
        if not isinstance(frame, pd.DataFrame):
            raise TypeError(f"frame must be pd.DataFrame, got {type(frame)}")

        descriptions = dict(descriptions or {})
        unknown = [c for c in descriptions if c not in frame.columns]
        if unknown:
            raise KeyError(f"Descriptions given for unknown covariate columns: {unknown}")

        self._frame = frame.copy()
        self._descriptions = {
            col: descriptions.get(col) for col in self._frame.columns
        }

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        id_column: Optional[Hashable] = None,
        descriptions: Optional[Mapping[Hashable, Optional[str]]] = None,
    ) -> CovariateTable:
        """
        Build a table, optionally promoting one column to the row index.

        Args:
            frame: Per-sample attributes
            id_column: Column holding sample identifiers. If None, the frame's
                existing index is used as-is.
            descriptions: Optional column -> description mapping

        Raises:
            KeyError: If id_column is not a column of frame
            ValueError: If id_column values are not unique
        """
        if id_column is not None:
            if id_column not in frame.columns:
                raise KeyError(
                    f"Identifier column '{id_column}' not in covariate table. "
                    f"Available: {list(frame.columns)}"
                )
            ids = frame[id_column]
            if ids.duplicated().any():
                dups = ids[ids.duplicated()].unique().tolist()
                raise ValueError(
                    f"Identifier column '{id_column}' has duplicate values: {dups[:10]}"
                )
            frame = frame.set_index(id_column)
            frame.index = frame.index.astype(str)
        return cls(frame, descriptions)

    @classmethod
    def empty(cls, index: pd.Index) -> CovariateTable:
        """Table with no columns for the given sample identifiers."""
        return cls(pd.DataFrame(index=index.copy()))

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def index(self) -> pd.Index:
        return self._frame.index

    @property
    def columns(self) -> pd.Index:
        return self._frame.columns

    @property
    def descriptions(self) -> dict[Hashable, Optional[str]]:
        return dict(self._descriptions)

    def description(self, column: Hashable) -> Optional[str]:
        """Description of one column (None if it has none)."""
        if column not in self._descriptions:
            raise KeyError(f"Covariate '{column}' not found. Available: {list(self.columns)}")
        return self._descriptions[column]

    def describe_columns(self) -> pd.DataFrame:
        """Data dictionary: one row per column with its description."""
        return pd.DataFrame({
            'column': list(self._descriptions.keys()),
            'description': list(self._descriptions.values()),
        })

    def column(self, name: Hashable) -> pd.Series:
        if name not in self._frame.columns:
            raise KeyError(f"Covariate '{name}' not found. Available: {list(self.columns)}")
        return self._frame[name].copy()

    def take(self, positions: Sequence[int] | np.ndarray) -> CovariateTable:
        """New table with rows at the given positions, descriptions kept."""
        return CovariateTable(self._frame.iloc[list(positions)], self._descriptions)

    def reindex_like(self, ids: pd.Index) -> CovariateTable:
        """New table with rows reordered to ``ids`` (which must all be present)."""
        return CovariateTable(self._frame.loc[ids], self._descriptions)

    def equals(self, other: CovariateTable) -> bool:
        if not isinstance(other, CovariateTable):
            return False
        return self._frame.equals(other._frame) and self._descriptions == other._descriptions

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        described = sum(1 for d in self._descriptions.values() if d)
        return (
            f"CovariateTable({len(self)} samples × {len(self.columns)} covariates, "
            f"{described} described)"
        )
