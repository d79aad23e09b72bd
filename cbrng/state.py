"""
Sequential consumption of generator output.

A :py:class:`State` walks through the output of a number of independent generators
in lockstep, handing out 32- or 64-bit raw words and moving to the next counter
when the current output block is exhausted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy

from cbrng.dtypes import as_words, to_struct
from cbrng.helpers import IgnoreIntegerOverflow

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from cbrng.bijections import Philox


def increment_counters(counters: NDArray[Any]) -> NDArray[Any]:
    """
    Returns a copy of an array of shape ``(..., counter_words)`` with every counter incremented,
    treating the last word as the least significant one.
    The counter with all bits set wraps around to zero.
    """
    result = counters.copy()
    carry = numpy.ones(result.shape[:-1], numpy.bool_)
    with IgnoreIntegerOverflow():
        for i in reversed(range(result.shape[-1])):
            result[..., i] += carry.astype(result.dtype)
            carry = carry & (result[..., i] == 0)
    return result


def _split_to_uint32(words: NDArray[Any]) -> NDArray[Any]:
    if words.dtype == numpy.uint32:
        return words
    lo = (words & numpy.uint64(0xFFFFFFFF)).astype(numpy.uint32)
    hi = (words >> numpy.uint64(32)).astype(numpy.uint32)
    # Low half first, same as the memory layout on little-endian machines.
    return numpy.stack([lo, hi], axis=-1).reshape(words.shape[:-1] + (words.shape[-1] * 2,))


class State:
    """
    The state of a group of generators, each with its own key and counter.

    :param bijection: a generator class created by :py:func:`~cbrng.bijections.philox`.
    :param keys: an array of keys (see :py:meth:`~cbrng.bijections.Philox.bijection_array`).
    :param counters: an array of initial counters, broadcastable against ``keys``.
    """

    def __init__(self, bijection: type[Philox], keys: ArrayLike, counters: ArrayLike):
        self.bijection = bijection

        keys = as_words(keys, bijection.word_dtype, bijection.key_words, "key")
        counters = as_words(counters, bijection.word_dtype, bijection.counter_words, "counter")
        self.shape = numpy.broadcast_shapes(keys.shape[:-1], counters.shape[:-1])

        self._keys = numpy.broadcast_to(keys, self.shape + keys.shape[-1:]).copy()
        self._counters = numpy.broadcast_to(counters, self.shape + counters.shape[-1:]).copy()
        self._fill_buffer()

    def _fill_buffer(self) -> None:
        output = self.bijection.bijection_array(self._keys, self._counters)
        self._buffer = _split_to_uint32(output["v"])
        self._cursor = 0

    def get_raw_uint32(self) -> NDArray[numpy.uint32]:
        """
        Returns uniformly distributed unsigned 32-bit words (one per generator)
        and updates the state.
        """
        if self._cursor == self._buffer.shape[-1]:
            self._counters = increment_counters(self._counters)
            self._fill_buffer()
        result = self._buffer[..., self._cursor].copy()
        self._cursor += 1
        return result

    def get_raw_uint64(self) -> NDArray[numpy.uint64]:
        """
        Returns uniformly distributed unsigned 64-bit words (one per generator)
        and updates the state.
        """
        lo = self.get_raw_uint32().astype(numpy.uint64)
        hi = self.get_raw_uint32().astype(numpy.uint64)
        return (hi << numpy.uint64(32)) | lo

    def get_next_unused_counter(self) -> NDArray[Any]:
        """
        Returns the counters (as an array of :py:attr:`~cbrng.bijections.Philox.counter_dtype`)
        which have not been used in random sampling yet.
        """
        if self._cursor == 0:
            counters = self._counters.copy()
        else:
            counters = increment_counters(self._counters)
        return to_struct(counters, self.bijection.counter_dtype)
