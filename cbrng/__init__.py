"""
This package is based on the paper by Salmon et al.,
`P. Int. C. High. Perform. 16 (2011) <http://dx.doi.org/doi:10.1145/2063384.2063405>`_.
and the source code of `Random123 library <http://www.thesalmons.org/john/random123/>`_.

A counter-based random-number generator (CBRNG) is a parametrized function :math:`f_k(c)`,
where :math:`k` is the key, :math:`c` is the counter, and the function :math:`f_k` defines
a bijection in the set of integer numbers.
Being applied to successive counters, the function produces a sequence of pseudo-random numbers.
The key is an analogue of the seed of stateful RNGs;
if the CBRNG is used to generate random numbers in parallel workers, the key is a combination
of a seed and a unique worker number.
Since the output for any counter can be computed directly,
any position in the stream is available without generating the preceding ones.

The ``philox`` generators use a small number of rounds,
each one multiplying two words into a double-width product.
They can be specialized to use ``counter_words=2`` or ``counter_words=4``
``bitness=32``-bit or ``bitness=64``-bit counters.
The period of the generator equals to the cardinality of the set of possible counters.
For example, if the counter consists of 4 64-bit numbers,
then the period of the generator is :math:`2^{256}`.
The key is half the size of the counter.
With the default 10 rounds the output is bit-identical to the ``philox`` generators
of Random123 and Boost.Random.

The :py:class:`~cbrng.CBRNG` class sets the last word of the key to the generator number,
the rest are the same for all generators and are derived from the provided ``seed``
(except for ``philox-2x64``, where 32 bit of the only word in the key are used).
``philox-2x32`` has a 32-bit key and therefore cannot be used in :py:class:`~cbrng.CBRNG`
(although it can be used separately).

The :py:class:`~cbrng.CBRNG` class itself is stateless,
so you have to manage the generator state yourself.
The state is created by the :py:meth:`~cbrng.CBRNG.create_counters` method
and is returned updated along with the random numbers.
"""

from cbrng.bijections import Philox, Philox2x32, Philox2x64, Philox4x32, Philox4x64, philox
from cbrng.cbrng import CBRNG
from cbrng.mulhilo import mulhilo, mulhilo_array
from cbrng.samplers import Sampler, normal_bm, uniform_float, uniform_integer
from cbrng.state import State
from cbrng.tools import KeyGenerator

VERSION = (0, 1, 0)

__all__ = [
    "CBRNG",
    "KeyGenerator",
    "Philox",
    "Philox2x32",
    "Philox2x64",
    "Philox4x32",
    "Philox4x64",
    "Sampler",
    "State",
    "mulhilo",
    "mulhilo_array",
    "normal_bm",
    "philox",
    "uniform_float",
    "uniform_integer",
]
