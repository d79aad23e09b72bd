import itertools

import pytest

from cbrng import philox


def pytest_addoption(parser):
    parser.addoption(
        "--sample-size",
        dest="sample_size",
        action="store",
        type=int,
        default=10000,
        help="The number of random values per generator in statistical tests",
    )


def pytest_generate_tests(metafunc):
    if "bijection" in metafunc.fixturenames:
        vals = []
        ids = []
        for words, bitness in itertools.product([2, 4], [32, 64]):
            vals.append(philox(bitness, words))
            ids.append(f"philox-{words}x{bitness}-10")
        metafunc.parametrize("bijection", vals, ids=ids)


@pytest.fixture
def sample_size(request):
    return request.config.option.sample_size
