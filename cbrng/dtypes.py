"""
Data type helpers for generator words, keys and counters.

Keys and counters are represented in arrays by structure types
with a single array field ``v`` containing the words.
"""

from __future__ import annotations

import operator
from collections.abc import Iterable
from typing import Any

import numpy
from numpy.typing import NDArray


WORD_DTYPES = {32: numpy.dtype("uint32"), 64: numpy.dtype("uint64")}


def word_dtype_for(bitness: int) -> numpy.dtype[Any]:
    """
    Returns the unsigned integer dtype for words of ``bitness`` bits.
    """
    if bitness not in WORD_DTYPES:
        raise ValueError(f"Unsupported word size: {bitness} (must be 32 or 64)")
    return WORD_DTYPES[bitness]


def create_struct_types(
    word_dtype: numpy.dtype[Any], key_words: int, counter_words: int
) -> tuple[numpy.dtype[Any], numpy.dtype[Any]]:
    key_dtype = numpy.dtype([("v", (word_dtype, (key_words,)))])
    counter_dtype = numpy.dtype([("v", (word_dtype, (counter_words,)))])
    return key_dtype, counter_dtype


def as_word_tuple(values: Iterable[int], words: int, bitness: int, name: str) -> tuple[int, ...]:
    """
    Converts an iterable of integers to a tuple of ``words`` Python integers,
    checking that each one fits in a word of ``bitness`` bits.
    """
    result = tuple(operator.index(value) for value in values)
    if len(result) != words:
        raise ValueError(f"A {name} must contain {words} words, got {len(result)}")
    for value in result:
        if value < 0 or value >> bitness != 0:
            raise ValueError(f"A {name} word does not fit in {bitness} bits: {value}")
    return result


def as_words(arr: Any, word_dtype: numpy.dtype[Any], words: int, name: str) -> NDArray[Any]:
    """
    Returns a view (or a converted copy) of ``arr`` as an array of shape ``(..., words)``
    with elements of ``word_dtype``.
    ``arr`` can be a structure array with the field ``v``
    (e.g. created with :py:attr:`~cbrng.bijections.Philox.counter_dtype`),
    or any array-like of integers with the last dimension equal to ``words``.
    """
    arr = numpy.asarray(arr)
    if arr.dtype.names is not None:
        arr = arr["v"]

    if arr.shape[-1:] != (words,):
        raise ValueError(
            f"The last dimension of a {name} array must be {words}, got shape {arr.shape}"
        )

    if arr.dtype != word_dtype:
        if arr.dtype.kind not in "iuO":
            raise ValueError(f"A {name} array must contain integers, got {arr.dtype}")
        max_word = 2 ** (word_dtype.itemsize * 8) - 1
        if arr.size > 0 and (int(arr.min()) < 0 or int(arr.max()) > max_word):
            raise ValueError(f"Some of the {name} words do not fit in {word_dtype}")
        arr = arr.astype(word_dtype)

    return arr


def to_struct(words_arr: NDArray[Any], struct_dtype: numpy.dtype[Any]) -> NDArray[Any]:
    """
    Packs an array of shape ``(..., n)`` into a structure array of shape ``(...)``.
    """
    result = numpy.empty(words_arr.shape[:-1], struct_dtype)
    result["v"] = words_arr
    return result
