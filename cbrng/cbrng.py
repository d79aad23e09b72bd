from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import numpy
from numpy.typing import NDArray

from cbrng import helpers
from cbrng.bijections import philox
from cbrng.samplers import SAMPLERS, Sampler
from cbrng.state import State
from cbrng.tools import KeyGenerator

logger = logging.getLogger(__name__)


class CBRNG:
    """
    Counter-based pseudo-random number generator class.
    Fills arrays with random numbers, using an independent generator
    for every element of the last ``generators_dim`` dimensions.

    :param randoms_shape: the shape of the arrays of generated random numbers.
    :param generators_dim: the number of dimensions (counting from the end)
        which will use independent generators.
        For example, if ``randoms_shape`` is ``(100, 200, 300)`` and
        ``generators_dim`` is ``2``, then in every sub-array ``(j, :, :)``,
        ``j = 0 .. 99``, every element will use an independent generator.
    :param sampler: a :py:class:`~cbrng.samplers.Sampler` object.
    :param seed: ``None`` for random seed, or an integer.

    .. py:classmethod:: sampler_name(randoms_shape, generators_dim, dtype, sampler_kwds=None, seed=None)

        A convenience constructor for the sampler ``sampler_name``
        from :py:mod:`~cbrng.samplers`.
        The contents of the dictionary ``sampler_kwds`` will be passed to the sampler constructor
        function (with ``bijection`` being ``Philox4x64`` with 10 rounds).

    .. py:method:: __call__(counters)

        :param counters: the RNG "state".
            Must have the same attributes as the result of :py:meth:`create_counters`.
        :returns: a tuple of updated counters and an array of generated random numbers.
            ``counters`` itself is not modified.
    """

    def __init__(
        self,
        randoms_shape: int | tuple[int, ...],
        generators_dim: int,
        sampler: Sampler,
        seed: int | NDArray[numpy.uint32] | None = None,
    ):
        shape = helpers.wrap_in_tuple(randoms_shape)
        if not 1 <= generators_dim <= len(shape):
            raise ValueError(
                f"generators_dim must be between 1 and {len(shape)}, got {generators_dim}"
            )

        self.shape = shape
        self.dtype = sampler.dtype
        self._sampler = sampler
        self._generators_dim = generators_dim
        self._keygen = KeyGenerator.create(sampler.bijection, seed=seed, reserve_id_space=True)

        self._counters_shape = shape[-generators_dim:]
        generators = helpers.product(self._counters_shape)
        if generators > 2**32:
            raise ValueError(f"Too many independent generators: {generators}")

        ids = numpy.arange(generators, dtype=numpy.uint64).reshape(self._counters_shape)
        self._keys = self._keygen.key_from_int(ids)

        logger.debug(
            "CBRNG with %d generators, %d random numbers each",
            generators,
            helpers.product(shape[:-generators_dim]),
        )

    def create_counters(self) -> NDArray[Any]:
        """
        Create a counter array for use in :py:class:`~cbrng.CBRNG`.
        """
        return numpy.zeros(self._counters_shape, self._sampler.bijection.counter_dtype)

    def __call__(self, counters: NDArray[Any]) -> tuple[NDArray[Any], NDArray[Any]]:
        counters = numpy.asarray(counters)
        counter_dtype = self._sampler.bijection.counter_dtype
        if counters.dtype != counter_dtype or counters.shape != self._counters_shape:
            raise ValueError(
                f"Expected counters of shape {self._counters_shape} and type {counter_dtype}, "
                f"got {counters.shape} and {counters.dtype}"
            )

        state = State(self._sampler.bijection, self._keys, counters)

        batch = helpers.product(self.shape[: -self._generators_dim])
        calls = helpers.min_blocks(batch, self._sampler.randoms_per_call)
        if calls > 0:
            samples = [self._sampler.sample(state) for _ in range(calls)]
            randoms = numpy.concatenate(samples)[:batch]
        else:
            randoms = numpy.empty((0,) + self._counters_shape, self.dtype)

        return state.get_next_unused_counter(), randoms.reshape(self.shape)


# For some reason, closure did not work correctly.
# This class encapsulates the context and provides a classmethod for a given sampler.
class _ConvenienceCtr:
    def __init__(self, sampler_name: str):
        self._sampler_func = SAMPLERS[sampler_name]

    def __call__(
        self,
        cls: type[CBRNG],
        randoms_shape: int | tuple[int, ...],
        generators_dim: int,
        dtype: Any,
        sampler_kwds: Mapping[str, Any] | None = None,
        seed: int | NDArray[numpy.uint32] | None = None,
    ) -> CBRNG:
        bijection = philox(64, 4)
        sampler_kwds = {} if sampler_kwds is None else sampler_kwds
        sampler = self._sampler_func(bijection, dtype, **sampler_kwds)
        return cls(randoms_shape, generators_dim, sampler, seed=seed)


# Add convenience constructors to CBRNG
for name in SAMPLERS:
    ctr = _ConvenienceCtr(name)
    setattr(CBRNG, name, classmethod(ctr))
