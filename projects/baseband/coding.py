# SPDX-License-Identifier: GPL-3.0-or-later
#
# coding.py -- convolutional encoder and block interleaver
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

import galois
import numpy as np

from typing import Final

from galois import GF2
from numpy.lib.stride_tricks import sliding_window_view
from numpy.typing import ArrayLike

from errors import InvalidConfiguration

GENERATOR_CONSTRAINT_LENGTH: Final[int] = 7
GENERATOR_POLYNOMIALS: Final[tuple[int, int]] = (0o133, 0o171)
STATES: Final[int] = 1 << (GENERATOR_CONSTRAINT_LENGTH - 1)


class BlockInterleaver:
    """Write ``rows`` by ``cols`` blocks row by row, read them by column."""

    def __init__(self, rows: int, cols: int) -> None:
        if rows < 1 or cols < 1:
            raise InvalidConfiguration(
                f"interleaver dimensions must be positive: {rows}x{cols}"
            )

        self.rows = rows
        self.cols = cols

        self._permutation = np.arange(rows * cols).reshape(rows, cols).T
        self._permutation = self._permutation.flatten()

        self._inverse = np.argsort(self._permutation)

    def _apply(self, x: ArrayLike, permutation: np.ndarray) -> ArrayLike:
        x = np.asanyarray(x)

        size = self.rows * self.cols

        if len(x) % size:
            raise ValueError(f"length {len(x)} is not a multiple of {size}")

        x = x.reshape(-1, size)

        return x[:, permutation].flatten()

    def forward(self, x: ArrayLike) -> ArrayLike:
        return self._apply(x, self._permutation)

    def reverse(self, x: ArrayLike) -> ArrayLike:
        return self._apply(x, self._inverse)


class ConvolutionalEncoder:
    """Feed-forward convolutional encoder of rate ``1 / n``.

    Row ``i`` of the ``(k, n)`` generator matrix taps the register bit
    shifted in ``i`` steps ago, so row 0 is the newest input bit. Every
    call starts from the all-zero register.
    """

    def __call__(self, x: ArrayLike) -> GF2:
        x = np.array(x, dtype=np.uint8).reshape(-1) & 1

        if not x.size:
            return GF2.Zeros(0)

        k = self.k

        register = np.concatenate([np.zeros(k - 1, dtype=np.uint8), x])
        register = sliding_window_view(register, k)[:, ::-1]

        y = GF2(np.ascontiguousarray(register)) @ self.generator_matrix

        return y.flatten()

    def __init__(self, generator_matrix: GF2) -> None:
        if generator_matrix.ndim != 2 or generator_matrix.shape[0] < 2:
            raise InvalidConfiguration(
                f"bad generator matrix shape: {generator_matrix.shape}"
            )

        self.generator_matrix = generator_matrix

        self.k, self.n = generator_matrix.shape


def conv_encode(x: ArrayLike) -> GF2:
    return _ENCODER(x)


def poly2matrix(polynomials: tuple[int, ...], k: int) -> GF2:
    if k < 2:
        raise InvalidConfiguration(f"constraint length too short: {k}")

    if not polynomials:
        raise InvalidConfiguration("no generator polynomials")

    for polynomial in polynomials:
        if not 0 < polynomial < (1 << k):
            raise InvalidConfiguration(
                f"polynomial {polynomial:#o} does not fit constraint length {k}"
            )

    return GF2(
        [
            galois.Poly.Int(polynomial, field=GF2).coefficients(k, "asc")
            for polynomial in polynomials
        ]
    ).T


_ENCODER: Final[ConvolutionalEncoder] = ConvolutionalEncoder(
    poly2matrix(GENERATOR_POLYNOMIALS, GENERATOR_CONSTRAINT_LENGTH)
)
