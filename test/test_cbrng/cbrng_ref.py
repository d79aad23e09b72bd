"""
Reference implementation of the counter-based RNG Philox from
Salmon et al., P. Int. C. High. Perform. 16 (2011), doi:10.1145/2063384.2063405.
Based on the source code of Random123 library (http://www.thesalmons.org/john/random123/).

This implementation favors simplicity over speed and therefore
is not for use in production.
It works on plain Python integers and computes the round key directly
instead of advancing it, so it shares no code paths with the library.
"""

PHILOX_W = {
    64: [
        0x9E3779B97F4A7C15,  # golden ratio
        0xBB67AE8584CAA73B,  # sqrt(3)-1
    ],
    32: [
        0x9E3779B9,  # golden ratio
        0xBB67AE85,  # sqrt(3)-1
    ],
}

PHILOX_M = {
    (64, 2): [0xD2B74407B1CE6E93],
    (64, 4): [0xD2E7470EE14C6C93, 0xCA5A826395121157],
    (32, 2): [0xD256D193],
    (32, 4): [0xD2511F53, 0xCD9E8D57],
}


def philox_mulhilo(bits, x, y):
    res = x * y
    return res // (2**bits), res % (2**bits)


def philox_round(bits, words, rnd, ctr, key):
    ctr = list(ctr)
    mod = 2**bits

    if words == 2:
        key0 = (key[0] + PHILOX_W[bits][0] * rnd) % mod
        hi, lo = philox_mulhilo(bits, PHILOX_M[(bits, words)][0], ctr[0])
        ctr = [hi ^ key0 ^ ctr[1], lo]
    else:
        key0 = (key[0] + PHILOX_W[bits][0] * rnd) % mod
        key1 = (key[1] + PHILOX_W[bits][1] * rnd) % mod
        hi0, lo0 = philox_mulhilo(bits, PHILOX_M[(bits, words)][0], ctr[0])
        hi1, lo1 = philox_mulhilo(bits, PHILOX_M[(bits, words)][1], ctr[2])
        ctr = [hi1 ^ ctr[1] ^ key0, lo1, hi0 ^ ctr[3] ^ key1, lo0]

    return ctr


def philox(bits, words, ctr, key, rounds=None):
    """
    bits: word length (32, 64)
    words: number of generated items, 2 or 4
    rounds: number of rounds
    ctr: counter, a sequence of ``words`` integers
    key: key, a sequence of ``words // 2`` integers
    returns: a tuple of ``words`` integers
    """
    assert bits in (32, 64)
    assert words in (2, 4)

    if rounds is None:
        rounds = 10

    for rnd in range(rounds):
        ctr = philox_round(bits, words, rnd, ctr, key)

    return tuple(ctr)
