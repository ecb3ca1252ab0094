# SPDX-License-Identifier: GPL-3.0-or-later
#
# viterbi.py -- Viterbi decoder
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

import logging

import numpy as np

from typing import (
    Callable,
    Final,
)

from galois import GF2
from numpy import ndarray
from numpy.typing import ArrayLike

from bit import unpackbits
from coding import (
    GENERATOR_CONSTRAINT_LENGTH,
    GENERATOR_POLYNOMIALS,
    poly2matrix,
)
from errors import InvalidConfiguration

logger = logging.getLogger(__name__)

DECODE_DELAY: Final[int] = GENERATOR_CONSTRAINT_LENGTH - 2


class Trellis:
    """State transitions of a feed-forward convolutional code.

    A state holds the last ``k - 1`` input bits with the newest in bit
    0. From state ``s`` the input bit ``b`` forms the full register
    ``(s << 1) | b``, moves to ``((s << 1) | b) & (states - 1)`` and
    emits the register's parity against each generator polynomial.

    Every state has exactly two incoming edges, from
    ``predecessors[ns] = (ns >> 1, (ns >> 1) | (states >> 1))``, listed
    in ascending order; ``incoming[ns, j]`` holds the outputs expected
    on edge ``j``.
    """

    def __init__(self, generator_matrix: GF2) -> None:
        if generator_matrix.ndim != 2 or generator_matrix.shape[0] < 2:
            raise InvalidConfiguration(
                f"bad generator matrix shape: {generator_matrix.shape}"
            )

        self.generator_matrix = generator_matrix
        self.k, self.n = k, n = generator_matrix.shape

        self.states = states = 1 << (k - 1)

        register = np.arange(2 * states)

        expected = np.array(unpackbits(register, count=k) @ generator_matrix)

        self.next_state = (register & (states - 1)).reshape(states, 2)
        self.expected = expected.reshape(states, 2, n)

        ns = np.arange(states)

        self.predecessors = np.stack([ns >> 1, (ns + states) >> 1], axis=-1)
        self.incoming = np.stack([expected[ns], expected[ns + states]], axis=1)


class Viterbi:
    """Maximum-likelihood decoder over a :class:`Trellis`.

    Path metrics start at zero for state 0 and infinity elsewhere. Each
    step keeps, per state, the incoming edge with the strictly smaller
    candidate metric, so ties resolve to the lower originating state.
    Decoding ends on the state with the smallest metric (lowest index
    on ties) without forcing the trellis back to zero.

    The traceback emits bit ``k - 2`` of each surviving state, so the
    decoded stream lags the input by :attr:`delay` bits: decoded bit
    ``t`` is input bit ``t - delay`` and the first ``delay`` outputs are
    the zeros of the initial register.
    """

    def __call__(self, x: ArrayLike) -> GF2:
        return self.decode(x)

    def __init__(self, generator_matrix: GF2) -> None:
        self.trellis = trellis = Trellis(generator_matrix)

        self._polarity = 1 - 2 * trellis.incoming.astype(np.float64)

        logger.debug(
            "trellis: k=%d outputs=%d states=%d",
            trellis.k,
            trellis.n,
            trellis.states,
        )

    @property
    def delay(self) -> int:
        return self.trellis.k - 2

    def _agreement(self, llr: ndarray) -> ndarray:
        return -np.sum(self._polarity * llr, axis=-1)

    def _decode(
        self,
        x: ndarray,
        branch_metric: Callable[[ndarray], ndarray],
    ) -> GF2:
        states = self.trellis.states

        cost = np.full(states, np.inf)
        cost[0] = 0

        path = np.zeros((len(x), states), dtype=np.min_scalar_type(states - 1))

        for t, x_t in enumerate(x):
            cost, path[t] = self._forward_step(cost, branch_metric(x_t))

        state = int(np.argmin(cost))

        return self._traceback(path, state)

    def _forward_step(
        self,
        cost: ndarray,
        branch_metric: ndarray,
    ) -> tuple[ndarray, ndarray]:
        predecessors = self.trellis.predecessors

        path_metric = cost[predecessors] + branch_metric

        upper = path_metric[:, 1] < path_metric[:, 0]

        new_cost = np.where(upper, path_metric[:, 1], path_metric[:, 0])
        survivor = np.where(upper, predecessors[:, 1], predecessors[:, 0])

        return new_cost, survivor

    def _hamming(self, x: ndarray) -> ndarray:
        return np.sum(self.trellis.incoming != x, axis=-1)

    def _reshape(self, x: ndarray) -> ndarray:
        n = self.trellis.n

        x = x.reshape(-1)

        if len(x) < n:
            return x[:0].reshape(0, n)

        if len(x) % n:
            raise InvalidConfiguration(
                f"coded length {len(x)} is not a multiple of {n}"
            )

        return x.reshape(-1, n)

    def _traceback(self, path: ndarray, state: int) -> GF2:
        shift = self.trellis.k - 2

        y = np.zeros(len(path), dtype=np.uint8)

        for t in range(len(path) - 1, -1, -1):
            y[t] = (state >> shift) & 1
            state = int(path[t, state])

        return GF2(y)

    def decode(self, x: ArrayLike) -> GF2:
        """Hard-decision decode of coded bits.

        The branch metric is the Hamming distance between the received
        and expected output bits of each edge.
        """
        x = self._reshape(np.array(x, dtype=np.uint8) & 1)

        return self._decode(x, self._hamming)

    def decode_soft(self, llr: ArrayLike) -> GF2:
        """Soft-decision decode of log-likelihood ratios.

        Positive ratios favour a 0 bit. Each edge scores the agreement
        ``sum(-l if e else l)`` between its expected bits ``e`` and the
        ratios ``l``, and the path metric subtracts it so the best path
        still has the lowest metric.
        """
        llr = self._reshape(np.array(llr, dtype=np.float64))

        return self._decode(llr, self._agreement)


def align(decoded: ArrayLike, bits: ArrayLike, delay: int = DECODE_DELAY):
    """Slices of ``decoded`` and ``bits`` that line up after ``delay``."""
    assert delay >= 0

    return decoded[delay:], bits[: max(len(bits) - delay, 0)]


def viterbi_decode(x: ArrayLike) -> GF2:
    return _DECODER.decode(x)


def viterbi_decode_soft(llr: ArrayLike) -> GF2:
    return _DECODER.decode_soft(llr)


_DECODER: Final[Viterbi] = Viterbi(
    poly2matrix(GENERATOR_POLYNOMIALS, GENERATOR_CONSTRAINT_LENGTH)
)
