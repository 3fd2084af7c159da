"""
Error kinds raised by the dataset container.

All three are raised synchronously at the offending call. A failed
construction or replacement never leaves a dataset half-updated.
"""

from __future__ import annotations

from typing import Hashable, Sequence

__all__ = ['AlignmentError', 'CardinalityError', 'MissingIdentifierError']


def _format_ids(ids: Sequence[Hashable], limit: int = 20) -> str:
    shown = ", ".join(repr(i) for i in list(ids)[:limit])
    if len(ids) > limit:
        shown += f", ... ({len(ids) - limit} more)"
    return f"[{shown}]"


class AlignmentError(ValueError):
    """
    Covariate row identifiers do not match expression column identifiers.

    Attributes:
        expression_only: Sample identifiers present only on the expression side
        covariate_only: Sample identifiers present only on the covariate side
    """

    def __init__(
        self,
        expression_only: Sequence[Hashable],
        covariate_only: Sequence[Hashable],
        detail: str | None = None,
    ):
        self.expression_only = list(expression_only)
        self.covariate_only = list(covariate_only)
        message = (
            "Covariate rows do not align with expression columns: "
            f"expression-only {_format_ids(self.expression_only)}, "
            f"covariate-only {_format_ids(self.covariate_only)}"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CardinalityError(ValueError):
    """Feature identifier count does not match the expression row count."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"feature_ids length ({actual}) must match expression rows ({expected})"
        )


class MissingIdentifierError(KeyError):
    """
    A selection referenced identifiers absent from the relevant axis.

    Subclasses KeyError, so callers can catch it as LookupError.
    """

    def __init__(self, missing: Sequence[Hashable], axis: str):
        self.missing = list(missing)
        self.axis = axis
        super().__init__(f"{axis} identifier(s) not found: {_format_ids(self.missing)}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]
