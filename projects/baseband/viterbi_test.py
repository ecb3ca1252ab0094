# SPDX-License-Identifier: GPL-3.0-or-later
#
# viterbi_test.py -- Viterbi decoder test
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

import numpy as np
import pytest

from galois import GF2
from numpy.random import Generator

from bit import bit_errors
from coding import (
    STATES,
    ConvolutionalEncoder,
    conv_encode,
    poly2matrix,
)
from errors import InvalidConfiguration
from viterbi import (
    DECODE_DELAY,
    Trellis,
    Viterbi,
    align,
    viterbi_decode,
    viterbi_decode_soft,
)


def test_delay() -> None:
    assert DECODE_DELAY == 5

    x = np.zeros(32, dtype=np.uint8)
    x[3] = 1

    decoded = viterbi_decode(conv_encode(x))

    assert np.flatnonzero(np.array(decoded)).tolist() == [3 + DECODE_DELAY]


def test_erasures() -> None:
    decoded = viterbi_decode_soft(np.zeros(64))

    assert not np.any(decoded)


def test_hard_metric_nondecreasing(rng: Generator, random_count: int) -> None:
    v = Viterbi(poly2matrix((0o133, 0o171), 7))

    predecessors = v.trellis.predecessors

    x = np.array(conv_encode(GF2.Random(random_count, seed=rng)))
    x[rng.choice(x.size, x.size // 16, replace=False)] ^= 1

    cost = np.full(v.trellis.states, np.inf)
    cost[0] = 0

    for x_t in x.reshape(-1, 2):
        branch_metric = v._hamming(x_t)

        assert np.all(branch_metric >= 0)

        new_cost, survivor = v._forward_step(cost, branch_metric)

        assert np.all(new_cost >= cost[predecessors].min(axis=1))
        assert new_cost.min() >= cost.min()
        assert np.all(np.any(survivor[:, None] == predecessors, axis=1))

        cost = new_cost

    assert np.isfinite(cost).all()


@pytest.mark.parametrize("length", [0, 1])
def test_short(length: int) -> None:
    assert viterbi_decode(np.zeros(length, dtype=np.uint8)).size == 0
    assert viterbi_decode_soft(np.zeros(length)).size == 0


def test_odd_length() -> None:
    with pytest.raises(InvalidConfiguration):
        viterbi_decode(np.zeros(7, dtype=np.uint8))

    with pytest.raises(InvalidConfiguration):
        viterbi_decode_soft(np.zeros(9))


def test_scenario() -> None:
    bits = GF2([0, 1, 0, 1, 1, 0, 0, 1])

    coded = conv_encode(bits)

    assert coded.size == 16

    decoded = viterbi_decode(coded)

    assert decoded.size == bits.size
    assert not np.any(decoded[:DECODE_DELAY])

    decoded, expected = align(decoded, bits)

    assert np.all(decoded == expected)


def test_soft_beats_hard(rng: Generator) -> None:
    count = 4096
    ebn0_db = 2.0

    bits = GF2.Random(count, seed=rng)

    coded = np.array(conv_encode(bits), dtype=np.float64)

    esn0 = 10 ** (ebn0_db / 10) / 2
    sigma = np.sqrt(1 / (2 * esn0))

    received = (1 - 2 * coded) + rng.normal(0, sigma, coded.shape)

    hard = viterbi_decode((received < 0).astype(np.uint8))
    soft = viterbi_decode_soft(2 * received / sigma**2)

    hard_errors = bit_errors(*align(hard, bits))
    soft_errors = bit_errors(*align(soft, bits))

    assert hard_errors > 0
    assert soft_errors <= hard_errors


def test_soft_noiseless(rng: Generator, random_count: int) -> None:
    bits = GF2.Random(random_count, seed=rng)

    coded = np.array(conv_encode(bits), dtype=np.float64)

    decoded = viterbi_decode_soft(4 * (1 - 2 * coded))

    assert np.all(decoded == viterbi_decode(conv_encode(bits)))

    decoded, expected = align(decoded, bits)

    assert np.all(decoded == expected)


def test_trellis() -> None:
    G = poly2matrix((0o133, 0o171), 7)

    trellis = Trellis(G)

    assert trellis.states == STATES == 64

    counts = np.bincount(trellis.next_state.flatten(), minlength=64)

    assert np.all(counts == 2)

    for ns in range(trellis.states):
        for j, s in enumerate(trellis.predecessors[ns]):
            assert trellis.next_state[s, ns & 1] == ns
            expected = trellis.expected[s, ns & 1]

            assert np.all(trellis.incoming[ns, j] == expected)

    assert np.all(trellis.predecessors[:, 0] < trellis.predecessors[:, 1])


def test_unbounded_window(rng: Generator) -> None:
    bits = GF2.Random(1000, seed=rng)

    decoded = viterbi_decode(conv_encode(bits))

    assert decoded.size == 1000

    decoded, expected = align(decoded, bits)

    assert np.all(decoded == expected)


@pytest.mark.parametrize(
    "polynomials, k",
    (
        ((0b111, 0b101), 3),
        ((0o133, 0o171), 7),
    ),
)
def test_viterbi(
    rng: Generator,
    random_count: int,
    polynomials: tuple[int, int],
    k: int,
) -> None:
    G = poly2matrix(polynomials, k)

    x = GF2.Random(random_count, seed=rng)
    x = np.concatenate([x, GF2.Zeros(3 * k)])

    c = ConvolutionalEncoder(G)

    y = np.array(c(x))

    v = Viterbi(G)

    assert v.delay == k - 2

    bit_flips = np.arange(16, 2 * random_count, 64)

    y[bit_flips] ^= 1

    decoded = v(y)

    decoded, expected = align(decoded, x, v.delay)

    assert bit_errors(decoded, expected) == 0
