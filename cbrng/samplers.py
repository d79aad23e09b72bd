from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import numpy

from cbrng.helpers import IgnoreIntegerOverflow
from cbrng.mulhilo import mulhilo_array

if TYPE_CHECKING:
    from numpy.typing import DTypeLike, NDArray

    from cbrng.bijections import Philox
    from cbrng.state import State


class Sampler:
    """
    Contains a random distribution sampling function and accompanying metadata.

    .. py:attribute:: bijection

        The generator class the sampler draws raw words from.

    .. py:attribute:: deterministic

        If ``True``, every sampled random number consumes the same amount of counters.

    .. py:attribute:: randoms_per_call

        How many random numbers one call to :py:meth:`sample` creates.

    .. py:attribute:: dtype

        The data type of one random value produced by the sampler.
    """

    def __init__(
        self,
        bijection: type[Philox],
        sample_func: Callable[[State], NDArray[Any]],
        dtype: DTypeLike,
        randoms_per_call: int = 1,
        *,
        deterministic: bool = False,
    ):
        """__init__()"""  # hide the signature from Sphinx
        self.randoms_per_call = randoms_per_call
        self.dtype = numpy.dtype(dtype)
        self.deterministic = deterministic
        self.bijection = bijection
        self._sample_func = sample_func

    def sample(self, state: State) -> NDArray[Any]:
        """
        Performs the sampling, updating the state.
        Returns an array of shape ``(randoms_per_call,) + state.shape``.
        """
        if state.bijection is not self.bijection:
            raise ValueError(
                f"The state belongs to {state.bijection.__name__}, "
                f"the sampler expects {self.bijection.__name__}"
            )
        return self._sample_func(state)


def uniform_integer(
    bijection: type[Philox], dtype: DTypeLike, low: int, high: int | None = None
) -> Sampler:
    """
    Generates uniformly distributed integer numbers in the interval ``[low, high)``.
    If ``high`` is ``None``, the interval is ``[0, low)``.
    Supported dtypes: any numpy integers.
    Every number is produced from one 64-bit raw word by a multiply-shift mapping,
    so a fixed number of counters is used in each generator.
    Returns a :py:class:`~cbrng.samplers.Sampler` object.
    """
    if high is None:
        low, high = 0, low

    dtype = numpy.dtype(dtype)
    if dtype.kind not in "iu":
        raise ValueError(f"Unsupported integer type: {dtype}")

    info = numpy.iinfo(dtype)
    if low >= high:
        raise ValueError(f"Empty interval: [{low}, {high})")
    if low < info.min or high - 1 > info.max:
        raise ValueError(f"Interval [{low}, {high}) does not fit in {dtype}")

    num = high - low
    low_word = numpy.uint64(low % 2**64)

    def sample(state: State) -> NDArray[Any]:
        raw = state.get_raw_uint64()
        if num == 2**64:
            offset = raw
        else:
            # floor(raw * num / 2**64), bias is at most num / 2**64
            offset, _ = mulhilo_array(raw, num)

        # Modular addition gives the correct two's complement result for signed types.
        with IgnoreIntegerOverflow():
            result = (offset + low_word).astype(dtype)
        return result.reshape((1,) + result.shape)

    return Sampler(bijection, sample, dtype, deterministic=True)


def uniform_float(
    bijection: type[Philox], dtype: DTypeLike, low: float = 0, high: float = 1
) -> Sampler:
    """
    Generates uniformly distributed floating-points numbers in the interval ``[low, high)``.
    Supported dtypes: ``float(32/64)``.
    A fixed number of counters is used in each generator.
    Returns a :py:class:`~cbrng.samplers.Sampler` object.
    """
    if not low < high:
        raise ValueError(f"Empty interval: [{low}, {high})")

    dtype = numpy.dtype(dtype)
    if dtype == numpy.float32:
        # 24 bits of mantissa
        mantissa_bits = 24
        raw_getter = "get_raw_uint32"
        raw_bits = 32
    elif dtype == numpy.float64:
        # 53 bits of mantissa
        mantissa_bits = 53
        raw_getter = "get_raw_uint64"
        raw_bits = 64
    else:
        raise ValueError(f"Unsupported floating point type: {dtype}")

    shift = numpy.dtype(f"uint{raw_bits}").type(raw_bits - mantissa_bits)
    scale = dtype.type(2.0**-mantissa_bits)
    size = dtype.type(high - low)
    low = dtype.type(low)

    def sample(state: State) -> NDArray[Any]:
        raw = getattr(state, raw_getter)()
        # The conversion is exact since the shifted value fits in the mantissa.
        unit = (raw >> shift).astype(dtype) * scale
        result = low + unit * size
        return result.reshape((1,) + result.shape)

    return Sampler(bijection, sample, dtype, deterministic=True)


def normal_bm(
    bijection: type[Philox], dtype: DTypeLike, mean: complex = 0, std: float = 1
) -> Sampler:
    """
    Generates normally distributed random numbers with the mean ``mean`` and
    the standard deviation ``std`` using Box-Muller transform.
    Supported dtypes: ``float(32/64)``, ``complex(64/128)``.
    Produces two random numbers per call for real types and one number for complex types.
    Returns a :py:class:`~cbrng.samplers.Sampler` object.

    .. note::

        In case of a complex ``dtype``, ``std`` refers to the standard deviation of the
        complex numbers (same as ``numpy.std()`` returns), not real and imaginary components
        (which will be normally distributed with the standard deviation ``std / sqrt(2)``).
        Consequently, while ``mean`` is of type ``dtype``, ``std`` must be real.
    """
    dtype = numpy.dtype(dtype)
    if dtype.kind == "c":
        complex_res = True
        r_dtype = numpy.dtype(numpy.float32 if dtype == numpy.complex64 else numpy.float64)
    elif dtype.kind == "f":
        complex_res = False
        r_dtype = dtype
    else:
        raise ValueError(f"Unsupported type for a normal distribution: {dtype}")

    uf = uniform_float(bijection, r_dtype, low=0, high=1)
    two_pi = r_dtype.type(2 * numpy.pi)

    if complex_res:
        mean = dtype.type(mean)
        c_std = r_dtype.type(std / numpy.sqrt(2))
    else:
        mean = r_dtype.type(mean)
        r_std = r_dtype.type(std)

    def sample(state: State) -> NDArray[Any]:
        u1 = uf.sample(state)[0]
        u2 = uf.sample(state)[0]

        # 1 - u1 is in (0, 1], so the logarithm is finite
        radius = numpy.sqrt(r_dtype.type(-2) * numpy.log(r_dtype.type(1) - u1))
        angle = two_pi * u2
        x = radius * numpy.cos(angle)
        y = radius * numpy.sin(angle)

        if complex_res:
            result = mean + c_std * (x + 1j * y).astype(dtype)
            return result.reshape((1,) + result.shape)
        return numpy.stack([mean + r_std * x, mean + r_std * y])

    return Sampler(
        bijection,
        sample,
        dtype,
        deterministic=uf.deterministic,
        randoms_per_call=1 if complex_res else 2,
    )


# List of samplers that can be used as convenience constructors in CBRNG class
SAMPLERS = {
    "uniform_integer": uniform_integer,
    "uniform_float": uniform_float,
    "normal_bm": normal_bm,
}
