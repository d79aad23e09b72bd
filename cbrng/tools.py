from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy

from cbrng.dtypes import to_struct
from cbrng.helpers import IgnoreIntegerOverflow

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from cbrng.bijections import Philox

logger = logging.getLogger(__name__)


class KeyGenerator:
    """
    Derives keys for independent generators (e.g. one per worker, or one per simulation path)
    from a common seed.
    The last word of the key is offset by the generator identifier,
    the rest of the key is the same for all generators.
    """

    def __init__(self, bijection: type[Philox], base_key: NDArray[Any], *, reserve_id_space: bool):
        """__init__()"""  # hide the signature from Sphinx
        self.bijection = bijection
        self.reserve_id_space = reserve_id_space
        self._base_key = base_key

    @classmethod
    def create(
        cls,
        bijection: type[Philox],
        seed: int | NDArray[numpy.uint32] | None = None,
        *,
        reserve_id_space: bool = True,
    ) -> KeyGenerator:
        """
        Creates a generator.

        :param bijection: a generator class created by :py:func:`~cbrng.bijections.philox`.
        :param seed: an integer, or numpy array of 32-bit unsigned integers.
        :param reserve_id_space: if ``True``, the last 32 bit of the key will be reserved
            for the generator identifier.
            As a result, the total size of the key should be 64 bit or more.
            If ``False``, the identifier will be just added to the key,
            which will still result in different keys for different generators,
            with the danger that different seeds produce the same sequences.
        """
        word_size = bijection.word_dtype.itemsize

        if reserve_id_space:
            if bijection.key_words == 1 and word_size == 4:  # noqa: PLR2004
                # It's too hard to compress both global and identifier-dependent part
                # in a single 32-bit word.
                raise ValueError("Cannot reserve ID space in a 32-bit key")

            if word_size == 4:  # noqa: PLR2004
                key_words32 = bijection.key_words - 1
            elif bijection.key_words > 1:
                key_words32 = (bijection.key_words - 1) * 2
            else:
                # Philox-2x64 case, the key is a single 64-bit integer.
                # We use first 32 bit for the key, and the remaining 32 bit for an identifier.
                key_words32 = 1
        else:
            key_words32 = bijection.key_words * (word_size // 4)

        if isinstance(seed, numpy.ndarray):
            # explicit key was provided
            if seed.size != key_words32 or seed.dtype != numpy.uint32:
                raise ValueError(f"Invalid seed: {seed}")
            key = seed.copy().flatten()
        else:
            # use numpy to generate the key from seed
            np_rng = numpy.random.RandomState(seed)
            key16 = np_rng.randint(0, 2**16, key_words32 * 2).astype(numpy.uint32)
            key = (key16[0::2] << numpy.uint32(16)) | key16[1::2]

        base_key = numpy.zeros(bijection.key_words, bijection.word_dtype)
        if word_size == 4:  # noqa: PLR2004
            base_key[:key_words32] = key
        else:
            for i in range(key_words32):
                shift = numpy.uint64(32 if i % 2 == 0 else 0)
                base_key[i // 2] |= numpy.uint64(key[i]) << shift

        logger.debug(
            "Key generator for %s: base key %s, ID space %s",
            bijection.__name__,
            [hex(int(word)) for word in base_key],
            "reserved" if reserve_id_space else "not reserved",
        )

        return cls(bijection, base_key, reserve_id_space=reserve_id_space)

    @property
    def base_key(self) -> tuple[int, ...]:
        """
        The key for the generator identifier ``0``.
        """
        return tuple(int(word) for word in self._base_key)

    def key_from_int(self, idx: ArrayLike) -> NDArray[Any]:
        """
        Returns the key(s) for the generator identifier(s) ``idx``
        as an array of :py:attr:`~cbrng.bijections.Philox.key_dtype` with the shape of ``idx``.
        """
        idx = numpy.asarray(idx)
        if idx.dtype.kind not in "iu":
            raise ValueError(f"Generator identifiers must be integers, got {idx.dtype}")
        if idx.size > 0:
            if int(idx.min()) < 0:
                raise ValueError("Generator identifiers must be non-negative")
            limit = 2**32 if self.reserve_id_space else 2 ** (self._base_key.itemsize * 8)
            if int(idx.max()) >= limit:
                raise ValueError(f"Generator identifiers must be less than {limit}")

        keys = numpy.broadcast_to(self._base_key, idx.shape + self._base_key.shape).copy()
        with IgnoreIntegerOverflow():
            keys[..., -1] += idx.astype(self._base_key.dtype)

        return to_struct(keys, self.bijection.key_dtype)
