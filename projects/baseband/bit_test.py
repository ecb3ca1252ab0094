# SPDX-License-Identifier: GPL-3.0-or-later
#
# bit_test.py -- bit manipulation tests
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

import numpy as np
import pytest

from numpy import ndarray
from numpy.random import Generator
from pytest import FixtureRequest

from bit import (
    bit_errors,
    packbits,
    unpackbits,
)


@pytest.fixture(params=[2, 3, 5, 7, 8, 12], scope="module")
def count(request: FixtureRequest) -> int:
    return request.param


@pytest.fixture
def values(rng: Generator, random_count: int) -> ndarray:
    return rng.integers(0, 1 << 12, random_count, dtype=np.int64)


def test_bit_errors(rng: Generator, random_count: int) -> None:
    x = rng.integers(0, 2, random_count, dtype=np.uint8)
    y = x.copy()

    flips = rng.choice(random_count, 17, replace=False)

    y[flips] ^= 1

    assert bit_errors(x, x) == 0
    assert bit_errors(x, y) == 17


@pytest.mark.parametrize("shape", [(), (1,), (1, 1)])
def test_packing(values: ndarray, count: int, shape: tuple[int, ...]) -> None:
    values = values.reshape(shape + values.shape)

    unpacked = unpackbits(values, count=count)

    assert values.shape + (count,) == unpacked.shape

    packed = packbits(unpacked)

    assert np.all(packed == (values & (1 << count) - 1))


def test_unpackbits_order() -> None:
    assert np.all(np.array(unpackbits(0o133, count=7)) == [1, 1, 0, 1, 1, 0, 1])
