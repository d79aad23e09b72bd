"""
Double-width multiplication of generator words.

The Philox round function needs the full product of two words,
split into the high and the low word.
For Python integers it is simply the arbitrary-precision product;
numpy has no 128-bit integers, so for ``uint64`` arrays the product is assembled
from 32-bit limbs.
"""

from __future__ import annotations

from typing import Any

import numpy
from numpy.typing import ArrayLike, NDArray


_HALF_MASK = numpy.uint64(0xFFFFFFFF)
_HALF_SHIFT = numpy.uint64(32)


def mulhilo(a: int, b: int, bitness: int) -> tuple[int, int]:
    """
    Multiplies two ``bitness``-bit unsigned integers and returns
    the pair ``(hi, lo)`` of the high and the low words of the product.
    """
    product = a * b
    return product >> bitness, product & ((1 << bitness) - 1)


def _mulhilo32(a: NDArray[Any], b: NDArray[Any]) -> tuple[NDArray[Any], NDArray[Any]]:
    product = a.astype(numpy.uint64) * b.astype(numpy.uint64)
    return (product >> _HALF_SHIFT).astype(numpy.uint32), product.astype(numpy.uint32)


def _mulhilo64(a: NDArray[Any], b: NDArray[Any]) -> tuple[NDArray[Any], NDArray[Any]]:
    a_lo = a & _HALF_MASK
    a_hi = a >> _HALF_SHIFT
    b_lo = b & _HALF_MASK
    b_hi = b >> _HALF_SHIFT

    # Each partial product of two 32-bit limbs fits in 64 bits.
    ll = a_lo * b_lo
    lh = a_lo * b_hi
    hl = a_hi * b_lo
    hh = a_hi * b_hi

    # At most 3 * (2**32 - 1), no carry is lost.
    mid = (ll >> _HALF_SHIFT) + (lh & _HALF_MASK) + (hl & _HALF_MASK)

    hi = hh + (lh >> _HALF_SHIFT) + (hl >> _HALF_SHIFT) + (mid >> _HALF_SHIFT)
    lo = (mid << _HALF_SHIFT) | (ll & _HALF_MASK)
    return hi, lo


def mulhilo_array(a: ArrayLike, b: ArrayLike) -> tuple[NDArray[Any], NDArray[Any]]:
    """
    Vectorized version of :py:func:`mulhilo`.

    :param a: an array of ``uint32`` or ``uint64`` words.
    :param b: an array (or a scalar) broadcastable to ``a``,
        converted to the data type of ``a``.
    :returns: a pair of arrays ``(hi, lo)`` with the data type of ``a``.
    """
    a = numpy.asarray(a)
    if a.dtype == numpy.uint32:
        func = _mulhilo32
    elif a.dtype == numpy.uint64:
        func = _mulhilo64
    else:
        raise ValueError(f"Unsupported word type: {a.dtype}")

    b = numpy.asarray(b, dtype=a.dtype)
    return func(a, b)
