import numpy
import pytest

from cbrng import CBRNG, KeyGenerator, Philox2x32, Philox4x64, State
from cbrng.samplers import normal_bm, uniform_float, uniform_integer
from helpers import check_distribution, diff_is_negligible, uniform_discrete_mean_and_std


class UniformIntegerRef:
    def __init__(self, min_, max_):
        self.extent = (min_, max_)
        self.mean, self.std = uniform_discrete_mean_and_std(*self.extent)


class NormalRef:
    def __init__(self, mean, std):
        self.extent = None
        self.mean = mean
        self.std = std


def test_computation_general():
    size = 10000
    batch = 101

    ref = NormalRef(mean=-2, std=10)
    sampler = normal_bm(Philox4x64, numpy.float32, mean=ref.mean, std=ref.std)
    rng = CBRNG((batch, size), 1, sampler, seed=123)

    counters = rng.create_counters()
    assert counters.shape == (size,)
    assert counters.dtype == Philox4x64.counter_dtype

    _, randoms = rng(counters)
    assert randoms.shape == (batch, size)
    assert randoms.dtype == numpy.float32
    check_distribution(randoms, ref)


def test_computation_convenience():
    size = 10000
    batch = 101

    ref = UniformIntegerRef(0, 511)
    rng = CBRNG.uniform_integer(
        (batch, size),
        1,
        numpy.int32,
        sampler_kwds=dict(low=ref.extent[0], high=ref.extent[1] + 1),
        seed=456,
    )
    _, randoms = rng(rng.create_counters())
    assert randoms.dtype == numpy.int32
    check_distribution(randoms, ref)


def test_computation_uniqueness():
    """
    A regression test for the bug with a non-updating counter.
    """
    rng = CBRNG.normal_bm((1, 10000), 1, numpy.complex64, seed=789)

    counters = rng.create_counters()
    counters1, randoms1 = rng(counters)
    counters2, randoms2 = rng(counters1)

    assert not diff_is_negligible(randoms1, randoms2, verbose=False)
    assert (counters1 != counters2).all()


def test_computation_is_pure():
    rng = CBRNG.uniform_float((10, 100), 1, numpy.float64, seed=1)
    counters = rng.create_counters()
    counters_copy = counters.copy()

    counters1, randoms1 = rng(counters)
    counters2, randoms2 = rng(counters)

    assert (counters == counters_copy).all()
    assert (counters1 == counters2).all()
    assert diff_is_negligible(randoms1, randoms2)


def test_same_seed_same_randoms():
    shape = (5, 7, 9)
    _, randoms1 = CBRNG.uniform_float(shape, 2, numpy.float64, seed=10)(
        numpy.zeros((7, 9), Philox4x64.counter_dtype)
    )
    _, randoms2 = CBRNG.uniform_float(shape, 2, numpy.float64, seed=10)(
        numpy.zeros((7, 9), Philox4x64.counter_dtype)
    )
    _, randoms3 = CBRNG.uniform_float(shape, 2, numpy.float64, seed=11)(
        numpy.zeros((7, 9), Philox4x64.counter_dtype)
    )
    assert randoms1.shape == shape
    assert (randoms1 == randoms2).all()
    assert not (randoms1 == randoms3).any()


def test_matches_state():
    batch = 5
    generators = 3
    sampler = uniform_float(Philox4x64, numpy.float64)
    rng = CBRNG((batch, generators), 1, sampler, seed=42)
    counters, randoms = rng(rng.create_counters())

    keys = KeyGenerator.create(Philox4x64, seed=42).key_from_int(numpy.arange(generators))
    state = State(Philox4x64, keys, numpy.zeros(4, numpy.uint64))
    expected = numpy.concatenate([sampler.sample(state) for _ in range(batch)])

    assert (randoms == expected).all()
    assert (counters == state.get_next_unused_counter()).all()


def test_partial_last_call():
    # Two normal numbers per call, so the last one of 5 is discarded
    sampler = normal_bm(Philox4x64, numpy.float64)
    rng = CBRNG((5, 4), 1, sampler, seed=3)
    counters, randoms = rng(rng.create_counters())
    assert randoms.shape == (5, 4)

    keys = KeyGenerator.create(Philox4x64, seed=3).key_from_int(numpy.arange(4))
    state = State(Philox4x64, keys, numpy.zeros(4, numpy.uint64))
    expected = numpy.concatenate([sampler.sample(state) for _ in range(3)])[:5]
    assert (randoms == expected).all()
    # Three calls used 12 32-bit words, 8 from the first counter and 4 from the second
    assert (counters["v"][:, -1] == 2).all()


def test_all_dimensions_are_generators():
    rng = CBRNG.uniform_integer((4, 5), 2, numpy.int64, sampler_kwds=dict(low=100), seed=5)
    counters, randoms = rng(rng.create_counters())
    assert counters.shape == (4, 5)
    assert randoms.shape == (4, 5)
    assert ((randoms >= 0) & (randoms < 100)).all()


def test_invalid_arguments():
    sampler = uniform_float(Philox4x64, numpy.float32)
    with pytest.raises(ValueError):
        CBRNG((10, 10), 0, sampler)
    with pytest.raises(ValueError):
        CBRNG((10, 10), 3, sampler)

    rng = CBRNG((10, 10), 1, sampler)
    with pytest.raises(ValueError):
        rng(numpy.zeros(11, Philox4x64.counter_dtype))
    with pytest.raises(ValueError):
        rng(numpy.zeros((10, 4), numpy.uint64))

    # A 32-bit key has no space for generator identifiers
    with pytest.raises(ValueError):
        CBRNG((10, 10), 1, uniform_integer(Philox2x32, numpy.int32, 10))
