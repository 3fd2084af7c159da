"""Utility modules for the expression lab."""

from exprlab.utils.fileio import atomic_write_stream

__all__ = [
    'atomic_write_stream',
]
