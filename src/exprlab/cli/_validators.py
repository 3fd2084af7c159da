"""Shared argparse type validators for CLI parameter checking.

Used as the ``type=`` argument in ``add_argument()`` so that bad values
(``--n-components 0``, ``--height -1``) fail with a clear message.
"""

from __future__ import annotations

import argparse

_DELIMITER_NAMES = {
    'tab': '\t',
    '\\t': '\t',
    'comma': ',',
    'semicolon': ';',
    'whitespace': r'\s+',
}


def _positive_int(value: str) -> int:
    """argparse type for positive integers (> 0)."""
    ivalue = int(value)
    if ivalue <= 0:
        raise argparse.ArgumentTypeError(f"{value} is not a positive integer")
    return ivalue


def _non_negative_int(value: str) -> int:
    """argparse type for integers >= 0."""
    ivalue = int(value)
    if ivalue < 0:
        raise argparse.ArgumentTypeError(f"{value} is not a non-negative integer")
    return ivalue


def _positive_float(value: str) -> float:
    """argparse type for positive floats (> 0)."""
    fvalue = float(value)
    if fvalue <= 0:
        raise argparse.ArgumentTypeError(f"{value} is not a positive float")
    return fvalue


def _delimiter(value: str) -> str:
    """argparse type for a field delimiter; accepts names and the escape '\\t'."""
    if value in _DELIMITER_NAMES:
        return _DELIMITER_NAMES[value]
    if len(value) != 1:
        raise argparse.ArgumentTypeError(
            f"{value!r} is not a single-character delimiter or one of {sorted(_DELIMITER_NAMES)}"
        )
    return value


def _components(value: str) -> tuple[int, int]:
    """argparse type for a pair of 1-based component numbers, e.g. '1,2'."""
    try:
        parts = tuple(int(p) for p in value.split(','))
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not a pair like '1,2'")
    if len(parts) != 2 or min(parts) < 1:
        raise argparse.ArgumentTypeError(f"{value!r} is not a pair of positive integers like '1,2'")
    return parts
