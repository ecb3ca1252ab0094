# SPDX-License-Identifier: GPL-3.0-or-later
#
# ofdm.py -- orthogonal frequency-division multiplexing
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

import logging

import numpy as np

from dataclasses import (
    dataclass,
    field,
)
from enum import IntEnum
from typing import (
    Final,
    Optional,
    Union,
)

from numpy import ndarray
from numpy.typing import ArrayLike

from errors import InvalidConfiguration
from fft import (
    fft,
    ifft,
    is_power_of_two,
)

logger = logging.getLogger(__name__)

CHANNEL_EPSILON: Final[float] = 1e-12
GUARD_FRACTION: Final[int] = 8


class Role(IntEnum):
    GUARD = 0
    DC = 1
    PILOT = 2
    DATA = 3


@dataclass(frozen=True, eq=False)
class SubcarrierPlan:
    """Assignment of every FFT bin to exactly one :class:`Role`.

    The plan is the contract shared by transmitter and receiver: data
    symbols are carried on ``data_idx`` in ascending bin order and the
    reference symbol on ``pilot_idx``. Bins are numbered in natural FFT
    order with the DC null at ``n_fft // 2``.
    """

    roles: ndarray

    data_idx: ndarray = field(init=False)
    pilot_idx: ndarray = field(init=False)

    def __post_init__(self) -> None:
        roles = np.array(self.roles, dtype=np.int8)

        if roles.ndim != 1 or not is_power_of_two(roles.size):
            raise InvalidConfiguration(
                f"plan size is not a power of 2: {roles.shape}"
            )

        if np.any((roles < min(Role)) | (roles > max(Role))):
            raise InvalidConfiguration(f"unknown subcarrier roles: {roles}")

        if np.count_nonzero(roles == Role.DC) > 1:
            raise InvalidConfiguration("plan has more than one DC bin")

        data_idx = np.flatnonzero(roles == Role.DATA)
        pilot_idx = np.flatnonzero(roles == Role.PILOT)

        if not data_idx.size:
            raise InvalidConfiguration("plan has no data subcarriers")

        for array in (roles, data_idx, pilot_idx):
            array.flags.writeable = False

        object.__setattr__(self, "roles", roles)
        object.__setattr__(self, "data_idx", data_idx)
        object.__setattr__(self, "pilot_idx", pilot_idx)

    @classmethod
    def from_roles(cls, roles: ArrayLike) -> "SubcarrierPlan":
        return cls(np.asarray(roles))

    @classmethod
    def regular(cls, n_fft: int, n_pilot: int) -> "SubcarrierPlan":
        """Symmetric guard bands with evenly spaced pilots.

        ``n_fft // 8`` guard bins sit on each edge and the first bin
        past the lower guard is left empty as well. Pilots are placed at
        ``guard + 1 + (i + 1) * spacing``; a pilot falling on the DC
        null moves to the next free bin above it.
        """
        if not is_power_of_two(n_fft):
            raise InvalidConfiguration(f"FFT size is not a power of 2: {n_fft}")

        guard = n_fft // GUARD_FRACTION
        usable = n_fft - 2 * guard - 1

        if not 0 <= n_pilot < usable - 1:
            raise InvalidConfiguration(
                f"{n_pilot} pilots do not fit in {usable} usable subcarriers"
            )

        roles = np.full(n_fft, Role.GUARD, dtype=np.int8)
        roles[guard + 1 : n_fft - guard] = Role.DATA
        roles[n_fft // 2] = Role.DC

        if n_pilot:
            spacing = usable // (n_pilot + 1)

            for i in range(n_pilot):
                k = guard + 1 + (i + 1) * spacing

                while k < n_fft - guard and roles[k] != Role.DATA:
                    k += 1

                if k >= n_fft - guard:
                    raise InvalidConfiguration(
                        f"no room for pilot {i} of {n_pilot}"
                    )

                roles[k] = Role.PILOT

        return cls(roles)

    @property
    def dc_idx(self) -> Optional[int]:
        dc = np.flatnonzero(self.roles == Role.DC)

        return int(dc[0]) if dc.size else None

    @property
    def n_data(self) -> int:
        return self.data_idx.size

    @property
    def n_fft(self) -> int:
        return self.roles.size

    @property
    def n_guard_hi(self) -> int:
        return _run_length(self.roles[::-1], Role.GUARD)

    @property
    def n_guard_lo(self) -> int:
        return _run_length(self.roles, Role.GUARD)

    @property
    def n_pilot(self) -> int:
        return self.pilot_idx.size


@dataclass(frozen=True)
class OfdmParams:
    n_fft: int
    n_cp: int
    plan: SubcarrierPlan
    pilot_value: complex = 1 + 0j

    def __post_init__(self) -> None:
        if self.plan.n_fft != self.n_fft:
            raise InvalidConfiguration(
                f"plan covers {self.plan.n_fft} bins, not {self.n_fft}"
            )

        if not 0 <= self.n_cp <= self.n_fft:
            raise InvalidConfiguration(
                f"cyclic prefix length out of range: {self.n_cp}"
            )

        if self.plan.n_pilot and abs(self.pilot_value) < CHANNEL_EPSILON:
            raise InvalidConfiguration("pilot value must be non-zero")

    @property
    def data_idx(self) -> ndarray:
        return self.plan.data_idx

    @property
    def n_data(self) -> int:
        return self.plan.n_data

    @property
    def n_guard_hi(self) -> int:
        return self.plan.n_guard_hi

    @property
    def n_guard_lo(self) -> int:
        return self.plan.n_guard_lo

    @property
    def n_pilot(self) -> int:
        return self.plan.n_pilot

    @property
    def pilot_idx(self) -> ndarray:
        return self.plan.pilot_idx

    @property
    def symbol_size(self) -> int:
        return self.n_fft + self.n_cp


def _run_length(x: ndarray, value: int) -> int:
    mismatch = np.flatnonzero(x != value)

    return int(mismatch[0]) if mismatch.size else x.size


def add_cyclic_prefix(x: ndarray, size: int) -> ndarray:
    assert size >= 0
    assert size <= x.shape[-1]

    prefix = x[..., x.shape[-1] - size :]

    return np.concatenate((prefix, x), axis=-1)


def channel_estimate(params: OfdmParams, rx_freq: ndarray) -> ndarray:
    """Estimate the channel at every data bin from the pilot bins.

    Pilot bins give least-squares estimates ``Rx * conj(P) / |P|**2``.
    Each data bin then takes the linear interpolation between the
    nearest pilots below and above it, or the single nearest pilot when
    it lies outside the pilot span. Without pilots the channel is taken
    to be flat and unit gain.
    """
    data_idx = params.data_idx
    pilot_idx = params.pilot_idx

    rx_freq = np.asarray(rx_freq)

    shape = rx_freq.shape[:-1] + (data_idx.size,)

    if not pilot_idx.size:
        return np.ones(shape, dtype=np.complex128)

    pilot = params.pilot_value
    pilot_power = max(abs(pilot) ** 2, CHANNEL_EPSILON)

    h_pilot = rx_freq[..., pilot_idx] * np.conj(pilot) / pilot_power

    hi = np.searchsorted(pilot_idx, data_idx)
    lo = np.clip(hi - 1, 0, pilot_idx.size - 1)
    hi = np.clip(hi, 0, pilot_idx.size - 1)

    span = pilot_idx[hi] - pilot_idx[lo]

    alpha = np.zeros(data_idx.size)
    interior = span > 0
    alpha[interior] = (data_idx - pilot_idx[lo])[interior] / span[interior]

    return h_pilot[..., lo] * (1 - alpha) + h_pilot[..., hi] * alpha


def demodulate(
    params: OfdmParams,
    s: ArrayLike,
    *,
    return_channel: bool = False,
) -> Union[ndarray, tuple[ndarray, ndarray]]:
    s = np.asarray(s)

    assert s.shape[-1] == params.symbol_size

    r = np.array(remove_cyclic_prefix(s, params.n_cp), dtype=np.complex128)

    fft(r)

    h = channel_estimate(params, r)

    d = equalize_zf(r[..., params.data_idx], h)

    if return_channel:
        return d, h

    return d


def demodulate_block(params: OfdmParams, s: ArrayLike) -> ndarray:
    s = np.asarray(s)

    if s.size % params.symbol_size:
        raise ValueError(
            f"{s.size} samples is not a whole number of OFDM symbols"
        )

    d = demodulate(params, s.reshape(-1, params.symbol_size))

    return d.reshape(-1)


def equalize_zf(d: ArrayLike, h: ArrayLike) -> ndarray:
    h = np.asarray(h)

    h_power = np.maximum(np.abs(h) ** 2, CHANNEL_EPSILON)

    return np.asarray(d) * np.conj(h) / h_power


def modulate(params: OfdmParams, d: ArrayLike) -> ndarray:
    d = np.asarray(d)

    assert d.shape[-1] == params.n_data

    s = np.zeros(d.shape[:-1] + (params.n_fft,), dtype=np.complex128)

    s[..., params.data_idx] = d
    s[..., params.pilot_idx] = params.pilot_value

    ifft(s)

    return add_cyclic_prefix(s, params.n_cp)


def modulate_block(params: OfdmParams, d: ArrayLike) -> ndarray:
    d = np.asarray(d)

    if d.size % params.n_data:
        raise ValueError(
            f"{d.size} symbols is not a whole number of OFDM symbols"
        )

    s = modulate(params, d.reshape(-1, params.n_data))

    return s.reshape(-1)


def ofdm_init(
    n_fft: int,
    n_cp: int,
    n_pilot: int,
    *,
    pilot_value: complex = 1 + 0j,
) -> OfdmParams:
    plan = SubcarrierPlan.regular(n_fft, n_pilot)

    params = OfdmParams(n_fft, n_cp, plan, complex(pilot_value))

    logger.debug(
        "OFDM: n_fft=%d n_cp=%d n_data=%d pilots=%s",
        n_fft,
        n_cp,
        params.n_data,
        plan.pilot_idx.tolist(),
    )

    return params


def remove_cyclic_prefix(x: ndarray, size: int) -> ndarray:
    assert size >= 0
    assert size < x.shape[-1]

    return x[..., size:]
