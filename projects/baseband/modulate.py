# SPDX-License-Identifier: GPL-3.0-or-later
#
# modulate.py -- subcarrier modulation mapping
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

import numpy as np

from dataclasses import dataclass
from typing import Final

from numpy import ndarray

from bit import (
    packbits,
    unpackbits,
)


@dataclass(frozen=True, kw_only=True)
class _Mapping:
    mask: int
    shift: int
    k_mod: ndarray
    decode: ndarray
    encode: ndarray
    bits: int

    real: bool = False


_MAPPING_BPSK: _Mapping = _Mapping(
    mask=0x1,
    shift=0,
    bits=1,
    k_mod=1 / np.sqrt(1),
    decode=np.array(
        [
            0b0,  # -1
            0b1,  # +1
        ],
        dtype=np.uint8,
    ),
    encode=np.array(
        [
            -1,  # 0b0
            +1,  # 0b1
        ],
        dtype=np.int8,
    ),
    real=True,
)
_MAPPING_QPSK: _Mapping = _Mapping(
    mask=0x1,
    shift=1,
    bits=2,
    k_mod=1 / np.sqrt(2),
    decode=np.array(
        [
            0b0,  # -1
            0b1,  # +1
        ],
        dtype=np.uint8,
    ),
    encode=np.array(
        [
            -1,  # 0b0
            +1,  # 0b1
        ],
        dtype=np.int8,
    ),
)
_MAPPING_16_QAM: _Mapping = _Mapping(
    mask=0x3,
    shift=2,
    bits=4,
    k_mod=1 / np.sqrt(10),
    decode=np.array(
        [
            0b00,  # -3
            0b10,  # -1
            0b11,  # +1
            0b01,  # +3
        ],
        dtype=np.uint8,
    ),
    encode=np.array(
        [
            -3,  # 0b00
            +3,  # 0b01
            -1,  # 0b10
            +1,  # 0b11
        ],
        dtype=np.int8,
    ),
)
_MAPPING_64_QAM: _Mapping = _Mapping(
    mask=0x7,
    shift=3,
    bits=6,
    k_mod=1 / np.sqrt(42),
    decode=np.array(
        [
            0b000,  # -7
            0b100,  # -5
            0b110,  # -3
            0b010,  # -1
            0b011,  # +1
            0b111,  # +3
            0b101,  # +5
            0b001,  # +7
        ],
        dtype=np.uint8,
    ),
    encode=np.array(
        [
            -7,  # 0b000
            +7,  # 0b001
            -1,  # 0b010
            +1,  # 0b011
            -5,  # 0b100
            +5,  # 0b101
            -3,  # 0b110
            +3,  # 0b111
        ],
        dtype=np.int8,
    ),
)

_MAPPING: Final[dict[str, _Mapping]] = {
    "BPSK": _MAPPING_BPSK,
    "QPSK": _MAPPING_QPSK,
    "16-QAM": _MAPPING_16_QAM,
    "64-QAM": _MAPPING_64_QAM,
}


def _decode_component(x: ndarray, mapping: _Mapping) -> ndarray:
    mask = mapping.mask

    index = np.clip(np.rint(x), a_min=-mask, a_max=mask)
    index = (index + mask).astype(np.uint8) // 2

    return mapping.decode[index]


def _get_mapping(scheme: str) -> _Mapping:
    try:
        mapping = _MAPPING[scheme]

    except KeyError as _:
        raise KeyError(f"Unsupported modulation: {scheme}")

    return mapping


def bits_per_symbol(scheme: str) -> int:
    return _get_mapping(scheme).bits


def constellation(scheme: str) -> ndarray:
    return modulate(np.arange(1 << bits_per_symbol(scheme)), scheme)


def demodulate(d: ndarray, scheme: str) -> ndarray:
    mapping = _get_mapping(scheme)

    d = np.asarray(d) / mapping.k_mod

    if mapping.real:
        d = d.real

    i = _decode_component(d.real, mapping)
    q = _decode_component(d.imag, mapping)

    return (q << mapping.shift) | i


def demodulate_bits(d: ndarray, scheme: str) -> ndarray:
    bits = bits_per_symbol(scheme)

    x = unpackbits(demodulate(d, scheme), count=bits)

    return np.array(x).reshape(-1)


def demodulate_soft(d: ndarray, scheme: str, sigma: float) -> ndarray:
    """Max-log log-likelihood ratios of every bit of every symbol.

    ``sigma`` is the noise standard deviation per real dimension. A
    positive ratio favours a 0 bit. The ratios of one symbol are
    listed least significant bit first, matching
    :func:`modulate_bits`, and flattened into the last axis.
    """
    bits = bits_per_symbol(scheme)

    points = constellation(scheme)
    labels = np.array(unpackbits(np.arange(points.size), count=bits))

    variance = max(sigma**2, 1e-30)

    d = np.asarray(d)[..., None]

    metric = -np.abs(d - points) ** 2 / (2 * variance)

    llr = np.empty(d.shape[:-1] + (bits,))

    for b in range(bits):
        one = labels[:, b].astype(bool)

        llr[..., b] = np.max(metric[..., ~one], axis=-1)
        llr[..., b] -= np.max(metric[..., one], axis=-1)

    return llr.reshape(d.shape[:-2] + (-1,))


def modulate(x: ndarray, scheme: str) -> ndarray:
    mapping = _get_mapping(scheme)

    x = np.asarray(x)

    i = x & mapping.mask
    q = (x >> mapping.shift) & mapping.mask

    d = (mapping.encode[i] + 1j * mapping.encode[q]) * mapping.k_mod

    if mapping.real:
        d = d.real

    return d


def modulate_bits(x: ndarray, scheme: str) -> ndarray:
    """Map a flat bit stream onto symbols, least significant bit first."""
    bits = bits_per_symbol(scheme)

    x = np.asarray(x, dtype=np.uint8).reshape(-1)

    if x.size % bits:
        raise ValueError(
            f"{x.size} bits do not fill whole {scheme} symbols of {bits} bits"
        )

    return modulate(packbits(x.reshape(-1, bits)), scheme)
