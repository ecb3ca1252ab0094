# SPDX-License-Identifier: GPL-3.0-or-later
#
# conftest.py -- pytest configuration
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

import numpy as np
import pytest

from dataclasses import dataclass

from numpy import ndarray
from numpy.random import Generator
from pytest import FixtureRequest

from modulate import bits_per_symbol
from ofdm import (
    OfdmParams,
    ofdm_init,
)


@dataclass(frozen=True)
class Data:
    scheme: str
    symbols: ndarray


@pytest.fixture
def data(rng: Generator, random_count: int, scheme: str) -> Data:
    bits = bits_per_symbol(scheme)

    symbols = rng.integers(0, (1 << bits), size=random_count, dtype=np.uint8)

    return Data(scheme, symbols)


@pytest.fixture(params=[0, 1, 4, 8], scope="session")
def n_pilot(request: FixtureRequest) -> int:
    return request.param


@pytest.fixture(scope="session")
def params(n_pilot: int) -> OfdmParams:
    return ofdm_init(64, 16, n_pilot)


@pytest.fixture(scope="session")
def random_count() -> int:
    return 1024


@pytest.fixture
def rng(seed) -> Generator:
    return np.random.default_rng(seed)


@pytest.fixture(params=["BPSK", "QPSK", "16-QAM", "64-QAM"], scope="session")
def scheme(request: FixtureRequest) -> str:
    return request.param


@pytest.fixture(scope="session")
def seed() -> int:
    return 0xBB485B7A
