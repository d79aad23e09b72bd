from __future__ import annotations

import functools
import logging
import operator
from collections.abc import Iterable
from typing import Any, ClassVar

import numpy
from numpy.typing import ArrayLike, NDArray

from cbrng.dtypes import as_word_tuple, as_words, create_struct_types, to_struct, word_dtype_for
from cbrng.helpers import IgnoreIntegerOverflow
from cbrng.mulhilo import mulhilo, mulhilo_array

logger = logging.getLogger(__name__)


W_CONSTANTS = {
    64: [
        0x9E3779B97F4A7C15,  # golden ratio
        0xBB67AE8584CAA73B,  # sqrt(3)-1
    ],
    32: [
        0x9E3779B9,  # golden ratio
        0xBB67AE85,  # sqrt(3)-1
    ],
}

M_CONSTANTS = {
    (64, 2): [0xD2B74407B1CE6E93],
    (64, 4): [0xD2E7470EE14C6C93, 0xCA5A826395121157],
    (32, 2): [0xD256D193],
    (32, 4): [0xD2511F53, 0xCD9E8D57],
}


class Philox:
    """
    A CBRNG based on a low number of slow rounds (multiplications).
    Instances hold a key; the transform of a counter is a pure function of the key
    and the counter, so an instance can be shared between threads
    as long as its key is not replaced concurrently.

    The class is not used directly: parameterized subclasses are created by :py:func:`philox`.
    Two generators are comparable only if they belong to the same parameterized class.

    .. py:attribute:: bitness

        The size of a word in bits (``32`` or ``64``).

    .. py:attribute:: counter_words

        The number of words used by the counter (``2`` or ``4``).

    .. py:attribute:: key_words

        The number of words used by the key (half of :py:attr:`counter_words`).

    .. py:attribute:: rounds

        The number of rounds applied to a counter.

    .. py:attribute:: word_dtype

        The data type of the integer word used by the generator.

    .. py:attribute:: key_dtype

        The ``numpy.dtype`` object representing a key.
        Contains a single array field ``v`` with ``key_words`` of ``word_dtype`` elements.

    .. py:attribute:: counter_dtype

        The ``numpy.dtype`` object representing a counter, or the generator output.
        Contains a single array field ``v`` with ``counter_words`` of ``word_dtype`` elements.

    .. py:attribute:: m_constants

        The multipliers used in the round function.

    .. py:attribute:: w_constants

        The Weyl sequence increments used to advance the key between rounds.
    """

    bitness: ClassVar[int]
    counter_words: ClassVar[int]
    key_words: ClassVar[int]
    rounds: ClassVar[int]
    word_dtype: ClassVar[numpy.dtype[Any]]
    key_dtype: ClassVar[numpy.dtype[Any]]
    counter_dtype: ClassVar[numpy.dtype[Any]]
    m_constants: ClassVar[tuple[int, ...]]
    w_constants: ClassVar[tuple[int, ...]]

    # Same as above, as numpy scalars of ``word_dtype``
    _m_words: ClassVar[tuple[Any, ...]]
    _w_words: ClassVar[tuple[Any, ...]]
    _mask: ClassVar[int]

    # The key can be replaced, so the hash would not be stable.
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, key: Philox | Iterable[int] | None = None):
        """
        :param key: ``None`` for a zero key, a sequence of :py:attr:`key_words` integers,
            or another generator of the same class to copy the key from.
        """
        if not hasattr(self, "rounds"):
            raise TypeError("Use philox() to create a parameterized generator class")

        if isinstance(key, Philox):
            if type(key) is not type(self):
                raise ValueError(
                    f"Cannot copy the key of {type(key).__name__} to {type(self).__name__}"
                )
            self._key = key._key
        elif key is None:
            self._key = (0,) * self.key_words
        else:
            self._key = self._key_tuple(key)

    @classmethod
    def _key_tuple(cls, key: Any) -> tuple[int, ...]:
        if isinstance(key, (numpy.ndarray, numpy.void)) and key.dtype.names is not None:
            key = key["v"]
        return as_word_tuple(key, cls.key_words, cls.bitness, "key")

    @classmethod
    def _counter_tuple(cls, counter: Any) -> tuple[int, ...]:
        if isinstance(counter, (numpy.ndarray, numpy.void)) and counter.dtype.names is not None:
            counter = counter["v"]
        return as_word_tuple(counter, cls.counter_words, cls.bitness, "counter")

    @classmethod
    def _round(
        cls, ctr: tuple[int, ...], key: tuple[int, ...]
    ) -> tuple[tuple[int, ...], tuple[int, ...]]:
        raise NotImplementedError

    @classmethod
    def _round_array(
        cls, ctr: tuple[NDArray[Any], ...], key: tuple[NDArray[Any], ...]
    ) -> tuple[tuple[NDArray[Any], ...], tuple[NDArray[Any], ...]]:
        raise NotImplementedError

    @classmethod
    def _bijection(cls, key: tuple[int, ...], ctr: tuple[int, ...]) -> tuple[int, ...]:
        # ``key`` is a local name, advancing it leaves the caller's tuple intact.
        for _ in range(cls.rounds):
            ctr, key = cls._round(ctr, key)
        return ctr

    @classmethod
    def bijection(cls, key: Iterable[int], counter: Iterable[int]) -> tuple[int, ...]:
        """
        The main bijection function: transforms ``counter`` with ``key``.

        :param key: a sequence of :py:attr:`key_words` integers.
        :param counter: a sequence of :py:attr:`counter_words` integers.
        :returns: a tuple of :py:attr:`counter_words` integers.
        """
        return cls._bijection(cls._key_tuple(key), cls._counter_tuple(counter))

    @classmethod
    def bijection_array(cls, keys: ArrayLike, counters: ArrayLike) -> NDArray[Any]:
        """
        Vectorized version of :py:meth:`bijection`.

        :param keys: an array of :py:attr:`key_dtype`,
            or an integer array with the last dimension of length :py:attr:`key_words`.
        :param counters: an array of :py:attr:`counter_dtype`,
            or an integer array with the last dimension of length :py:attr:`counter_words`.
            The outer shapes of ``keys`` and ``counters`` are broadcasted against each other.
        :returns: an array of :py:attr:`counter_dtype` with the broadcasted outer shape.
        """
        keys = as_words(keys, cls.word_dtype, cls.key_words, "key")
        counters = as_words(counters, cls.word_dtype, cls.counter_words, "counter")
        shape = numpy.broadcast_shapes(keys.shape[:-1], counters.shape[:-1])

        ctr = tuple(counters[..., i] for i in range(cls.counter_words))
        key = tuple(keys[..., i] for i in range(cls.key_words))

        with IgnoreIntegerOverflow():
            for _ in range(cls.rounds):
                ctr, key = cls._round_array(ctr, key)

        result = numpy.empty(shape + (cls.counter_words,), cls.word_dtype)
        for i, lane in enumerate(ctr):
            result[..., i] = lane
        return to_struct(result, cls.counter_dtype)

    @classmethod
    def make_counter_from_int(cls, x: int) -> tuple[int, ...]:
        """
        Creates a counter from a non-negative integer,
        with the last word being the least significant one.
        """
        x = operator.index(x)
        if x < 0 or x >> (cls.bitness * cls.counter_words) != 0:
            raise ValueError(f"Integer {x} does not fit in a counter")
        return tuple(
            (x >> (cls.bitness * (cls.counter_words - i - 1))) & cls._mask
            for i in range(cls.counter_words)
        )

    def generate(self, counter: Iterable[int]) -> tuple[int, ...]:
        """
        Transforms ``counter`` with the key of this generator.
        The key is not modified.
        """
        return self._bijection(self._key, self._counter_tuple(counter))

    def __call__(self, counter: Iterable[int]) -> tuple[int, ...]:
        return self.generate(counter)

    def generate_array(self, counters: ArrayLike) -> NDArray[Any]:
        """
        Transforms an array of counters (see :py:meth:`bijection_array`)
        with the key of this generator.
        """
        key = numpy.array(self._key, self.word_dtype)
        return self.bijection_array(key, counters)

    @property
    def key(self) -> tuple[int, ...]:
        return self._key

    def get_key(self) -> tuple[int, ...]:
        return self._key

    def set_key(self, key: Iterable[int]) -> None:
        self._key = self._key_tuple(key)

    def copy(self) -> Philox:
        return type(self)(self)

    def __copy__(self) -> Philox:
        return self.copy()

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._key == other._key  # type: ignore[attr-defined]

    def __reduce__(self) -> tuple[Any, ...]:
        return _restore_generator, (self.bitness, self.counter_words, self.rounds, self._key)

    def __repr__(self) -> str:
        key = ", ".join(f"0x{word:0{self.bitness // 4}x}" for word in self._key)
        return f"{type(self).__name__}(key=({key}))"


class Philox2(Philox):
    """
    Philox with two words in a counter and one word in a key.
    """

    @classmethod
    def _round(cls, ctr, key):
        hi, lo = mulhilo(cls.m_constants[0], ctr[0], cls.bitness)
        return (
            (hi ^ key[0] ^ ctr[1], lo),
            ((key[0] + cls.w_constants[0]) & cls._mask,),
        )

    @classmethod
    def _round_array(cls, ctr, key):
        hi, lo = mulhilo_array(ctr[0], cls._m_words[0])
        return (
            (hi ^ key[0] ^ ctr[1], lo),
            (key[0] + cls._w_words[0],),
        )


class Philox4(Philox):
    """
    Philox with four words in a counter and two words in a key.
    """

    @classmethod
    def _round(cls, ctr, key):
        hi0, lo0 = mulhilo(cls.m_constants[0], ctr[0], cls.bitness)
        hi1, lo1 = mulhilo(cls.m_constants[1], ctr[2], cls.bitness)
        return (
            (hi1 ^ ctr[1] ^ key[0], lo1, hi0 ^ ctr[3] ^ key[1], lo0),
            ((key[0] + cls.w_constants[0]) & cls._mask, (key[1] + cls.w_constants[1]) & cls._mask),
        )

    @classmethod
    def _round_array(cls, ctr, key):
        hi0, lo0 = mulhilo_array(ctr[0], cls._m_words[0])
        hi1, lo1 = mulhilo_array(ctr[2], cls._m_words[1])
        return (
            (hi1 ^ ctr[1] ^ key[0], lo1, hi0 ^ ctr[3] ^ key[1], lo0),
            (key[0] + cls._w_words[0], key[1] + cls._w_words[1]),
        )


_BASES = {2: Philox2, 4: Philox4}


@functools.lru_cache(maxsize=None)
def _philox_class(bitness: int, counter_words: int, rounds: int) -> type[Philox]:
    word_dtype = word_dtype_for(bitness)
    key_words = counter_words // 2
    key_dtype, counter_dtype = create_struct_types(word_dtype, key_words, counter_words)

    m_constants = tuple(M_CONSTANTS[(bitness, counter_words)])
    w_constants = tuple(W_CONSTANTS[bitness][:key_words])

    name = f"Philox{counter_words}x{bitness}_{rounds}"
    cls = type(
        name,
        (_BASES[counter_words],),
        dict(
            __module__=__name__,
            __qualname__=name,
            bitness=bitness,
            counter_words=counter_words,
            key_words=key_words,
            rounds=rounds,
            word_dtype=word_dtype,
            key_dtype=key_dtype,
            counter_dtype=counter_dtype,
            m_constants=m_constants,
            w_constants=w_constants,
            _m_words=tuple(word_dtype.type(m) for m in m_constants),
            _w_words=tuple(word_dtype.type(w) for w in w_constants),
            _mask=(1 << bitness) - 1,
        ),
    )
    logger.debug("Created generator class %s", name)
    return cls


def philox(bitness: int, counter_words: int, rounds: int = 10) -> type[Philox]:
    """
    Returns the generator class with the given parameters.
    Repeated calls with the same parameters return the same class.

    :param bitness: ``32`` or ``64``, corresponds to the size of generated random integers.
    :param counter_words: ``2`` or ``4``, number of integers generated in one go.
    :param rounds: a non-negative integer, the more rounds, the better randomness is achieved.
        The default value is big enough to qualify as PRNG.
        With ``0`` rounds the generator returns the counter unchanged.
    :returns: a subclass of :py:class:`Philox`.
    """
    if counter_words not in _BASES:
        raise ValueError(f"Unsupported number of counter words: {counter_words} (must be 2 or 4)")
    word_dtype_for(bitness)

    try:
        rounds = operator.index(rounds)
    except TypeError as exc:
        raise ValueError(f"The number of rounds must be an integer, got {rounds!r}") from exc
    if rounds < 0:
        raise ValueError(f"The number of rounds must be non-negative, got {rounds}")

    return _philox_class(bitness, counter_words, rounds)


def _restore_generator(
    bitness: int, counter_words: int, rounds: int, key: tuple[int, ...]
) -> Philox:
    return philox(bitness, counter_words, rounds=rounds)(key)


Philox2x32 = philox(32, 2)
Philox2x64 = philox(64, 2)
Philox4x32 = philox(32, 4)
Philox4x64 = philox(64, 4)
