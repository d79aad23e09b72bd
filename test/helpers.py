import numpy


# Default tolerances for numpy.allclose().
SINGLE_RTOL = 1e-5
SINGLE_ATOL = 1e-8

DOUBLE_RTOL = 1e-11
DOUBLE_ATOL = 1e-11


def diff_is_negligible(m, m_ref, atol=None, rtol=None, *, verbose=True):
    if m.dtype.names is not None:
        return all(diff_is_negligible(m[name], m_ref[name]) for name in m.dtype.names)

    assert m.dtype == m_ref.dtype

    if m.dtype.kind in "iu":
        close = m == m_ref
    else:
        double = m.dtype in (numpy.float64, numpy.complex128)
        if atol is None:
            atol = DOUBLE_ATOL if double else SINGLE_ATOL
        if rtol is None:
            rtol = DOUBLE_RTOL if double else SINGLE_RTOL

        close = numpy.isclose(m, m_ref, atol=atol, rtol=rtol)

    if close.all():
        return True

    if verbose:
        far_idxs = numpy.vstack(numpy.where(~close)).T
        print(  # noqa: T201
            f"diff_is_negligible() with atol={atol} and rtol={rtol} "
            f"found {far_idxs.shape[0]} differences, first ones are:"
        )
        for idx in far_idxs[:10]:
            t_idx = tuple(idx)
            print(f"idx: {t_idx}, test: {m[t_idx]}, ref: {m_ref[t_idx]}")  # noqa: T201

    return False


def uniform_discrete_mean_and_std(min, max):
    return (min + max) / 2.0, numpy.sqrt(((max - min + 1) ** 2 - 1.0) / 12)


def uniform_mean_and_std(min, max):
    return (min + max) / 2.0, (max - min) / numpy.sqrt(12)


def check_distribution(arr, ref):
    extent = getattr(ref, "extent", None)
    mean = getattr(ref, "mean", None)
    std = getattr(ref, "std", None)

    if extent is not None:
        assert arr.min() >= extent[0]
        assert arr.max() <= extent[1]

    if mean is not None and std is not None:
        # expected std of the mean of the sample array
        m_std = std / numpy.sqrt(arr.size)

        diff = abs(arr.mean() - mean)
        assert diff < 5 * m_std  # about 1e-6 chance of fail

    if std is not None:
        # expected mean and std of the variance of the sample array
        v_mean = std**2
        v_std = numpy.sqrt(2.0 * std**4 / (arr.size - 1))

        diff = abs(arr.var() - v_mean)
        assert diff < 5 * v_std  # about 1e-6 chance of fail


def popcount(words):
    """
    Returns the number of set bits in each element of an unsigned integer array.
    """
    words = numpy.ascontiguousarray(words)
    as_bytes = words.view(numpy.uint8).reshape(words.shape + (words.itemsize,))
    return numpy.unpackbits(as_bytes, axis=-1).sum(axis=-1)


def random_words(rng, shape, bitness):
    """
    Returns an array of random unsigned integers covering the full range of the word.
    """
    dtype = numpy.uint32 if bitness == 32 else numpy.uint64
    return rng.integers(0, 2**bitness, size=shape, dtype=dtype, endpoint=False)
