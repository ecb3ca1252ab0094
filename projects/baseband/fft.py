# SPDX-License-Identifier: GPL-3.0-or-later
#
# fft.py -- radix-2 decimation-in-time fast Fourier transform
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

import numpy as np

from numpy import ndarray

from errors import InvalidConfiguration


def _check(x: ndarray) -> int:
    if not np.iscomplexobj(x):
        raise TypeError(f"in-place transform needs complex input: {x.dtype}")

    n = x.shape[-1]

    if not is_power_of_two(n):
        raise InvalidConfiguration(f"transform size is not a power of 2: {n}")

    return n


def bit_reverse(x: ndarray) -> ndarray:
    n = x.shape[-1]
    bits = n.bit_length() - 1

    i = np.arange(n)
    j = np.zeros(n, dtype=i.dtype)

    for b in range(bits):
        j |= ((i >> b) & 1) << (bits - 1 - b)

    x[...] = x[..., j]

    return x


def fft(x: ndarray) -> ndarray:
    """Forward DFT of the last axis of ``x``, computed in place.

    The length of the last axis must be a power of two. The input is
    permuted into bit-reversed order and then combined over ``log2(n)``
    butterfly stages, each joining pairs half a block apart with the
    twiddle factors ``exp(-2j * pi * k / size)``.
    """
    n = _check(x)

    y = np.ascontiguousarray(x)

    bit_reverse(y)

    size = 2

    while size <= n:
        half = size // 2

        w = np.exp(-2j * np.pi * np.arange(half) / size)

        blocks = y.reshape(y.shape[:-1] + (n // size, size))

        even = blocks[..., :half].copy()
        odd = w * blocks[..., half:]

        blocks[..., :half] = even + odd
        blocks[..., half:] = even - odd

        size *= 2

    if y is not x:
        x[...] = y

    return x


def ifft(x: ndarray) -> ndarray:
    """Inverse DFT of the last axis of ``x``, computed in place."""
    n = _check(x)

    np.conjugate(x, out=x)
    fft(x)
    np.conjugate(x, out=x)

    x /= n

    return x


def is_power_of_two(n: int) -> bool:
    return n > 0 and not n & (n - 1)
