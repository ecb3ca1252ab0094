# SPDX-License-Identifier: GPL-3.0-or-later
#
# bit.py -- bit manipulation
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

import numpy as np

from galois import GF2
from numpy import ndarray
from numpy.typing import ArrayLike


def bit_errors(x: ArrayLike, y: ArrayLike) -> int:
    x = np.array(x, dtype=np.uint8)
    y = np.array(y, dtype=np.uint8)

    assert x.shape == y.shape

    return int(np.count_nonzero(x != y))


def packbits(x: GF2) -> ndarray:
    x = np.array(x, dtype=np.int64)

    weights = 1 << np.arange(x.shape[-1], dtype=np.int64)

    return np.asarray(x @ weights)


def unpackbits(x: ArrayLike, *, count: int = 8) -> GF2:
    assert count >= 1

    x = np.asarray(x, dtype=np.int64)

    shift = np.arange(count, dtype=np.int64)

    return GF2(((x[..., None] >> shift) & 1).astype(np.uint8))
