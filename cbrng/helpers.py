"""
This module contains various auxiliary functions which are used throughout the library.
"""

from __future__ import annotations

import functools
import warnings
from collections.abc import Iterable
from typing import Any

import numpy


def product(seq: Iterable[int]) -> int:
    """
    Returns the product of elements in the iterable ``seq``.
    """
    return functools.reduce(lambda x1, x2: x1 * x2, seq, 1)


def min_blocks(length: int, block: int) -> int:
    """
    Returns minimum number of blocks with length ``block``
    necessary to cover the array with length ``length``.
    """
    return (length - 1) // block + 1


def wrap_in_tuple(seq_or_elem: Any) -> tuple[Any, ...]:
    """
    If ``seq_or_elem`` is a sequence, converts it to a ``tuple``,
    otherwise returns a tuple with a single element ``seq_or_elem``.
    """
    if seq_or_elem is None:
        return ()
    if isinstance(seq_or_elem, str):
        return (seq_or_elem,)
    if isinstance(seq_or_elem, Iterable):
        return tuple(seq_or_elem)
    return (seq_or_elem,)


class IgnoreIntegerOverflow:
    """
    Context manager for ignoring integer overflow in numpy operations.
    Arrays wrap silently, but operations on scalars and 0-d arrays
    emit a ``RuntimeWarning``, which is not wanted when wrapping is the intended effect.
    """

    def __init__(self) -> None:
        self.catch = warnings.catch_warnings()
        self.errstate = numpy.errstate(over="ignore")

    def __enter__(self) -> None:
        self.catch.__enter__()
        self.errstate.__enter__()
        warnings.filterwarnings("ignore", "overflow encountered", RuntimeWarning)

    def __exit__(self, *args: Any, **kwds: Any) -> None:
        self.errstate.__exit__(*args, **kwds)
        self.catch.__exit__(*args, **kwds)
