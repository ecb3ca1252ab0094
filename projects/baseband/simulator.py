#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-3.0-or-later
#
# simulator.py -- bit error rate simulator
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

import logging
import sys

import numpy as np

import ofdm

from argparse import (
    ArgumentParser,
    Namespace,
)
from pathlib import Path
from typing import Optional

from galois import GF2
from numpy import ndarray
from numpy.random import Generator
from scipy.special import erfc
from tqdm import trange

from bit import bit_errors
from coding import conv_encode
from modulate import (
    bits_per_symbol,
    demodulate_bits,
    demodulate_soft,
    modulate_bits,
)
from ofdm import OfdmParams
from viterbi import (
    align,
    viterbi_decode,
    viterbi_decode_soft,
)

logger = logging.getLogger(__name__)


def awgn(rng: Generator, x: ndarray, snr_db: float) -> ndarray:
    power = np.mean(np.abs(x) ** 2) if x.size else 1.0

    if power < 1e-30:
        power = 1.0

    scale = noise_scale(power, snr_db)

    if not np.iscomplexobj(x):
        return x + rng.normal(0, np.sqrt(2) * scale, x.shape)

    noise = 0
    noise += rng.normal(0, scale, x.shape) + 0j
    noise += 1j * rng.normal(0, scale, x.shape)

    return x + noise


def calculate_ber(value: ndarray, expected: ndarray) -> float:
    value, expected = align(value, expected)

    return bit_errors(value, expected) / max(len(expected), 1)


def ebn0_to_snr(
    ebn0_db: float,
    bits_per_symbol: int = 1,
    code_rate: float = 1.0,
) -> float:
    return ebn0_db + 10 * np.log10(bits_per_symbol * code_rate)


def noise_scale(power: float, snr_db: float) -> float:
    snr = 10 ** (snr_db / 10)

    return np.sqrt((power / snr) / 2)


def run_ofdm(args: Namespace, rng: Generator) -> ndarray:
    params = ofdm.ofdm_init(args.fft, args.cp, args.pilots)

    snr = np.linspace(args.snr_min, args.snr_max, args.points)
    result = np.zeros((args.points, args.iterations, 2))

    for i in trange(args.points, ncols=80):
        for j in range(args.iterations):
            result[i, j] = simulate_ofdm(
                rng,
                params,
                args.symbols,
                snr[i],
                args.modulation,
            )

        mse, ber = np.mean(result[i], axis=0)

        logger.info("snr=%.1f dB mse=%.4e ber=%.4e", snr[i], mse, ber)

    return np.column_stack([snr, np.mean(result, axis=1)])


def run_viterbi(args: Namespace, rng: Generator) -> ndarray:
    ebn0 = np.linspace(args.ebn0_min, args.ebn0_max, args.points)
    ber = np.zeros((args.points, args.iterations, 3))

    for i in trange(args.points, ncols=80):
        for j in range(args.iterations):
            ber[i, j] = simulate_viterbi(rng, args.bits, ebn0[i])

        uncoded, hard, soft = np.mean(ber[i], axis=0)

        logger.info(
            "eb/n0=%.1f dB uncoded=%.4e hard=%.4e soft=%.4e",
            ebn0[i],
            uncoded,
            hard,
            soft,
        )

    return np.column_stack([ebn0, theoretical_ber(ebn0), np.mean(ber, axis=1)])


def simulate_ofdm(
    rng: Generator,
    params: OfdmParams,
    symbols: int,
    snr_db: float,
    scheme: str = "BPSK",
) -> tuple[float, float]:
    count = symbols * params.n_data * bits_per_symbol(scheme)

    bits = rng.integers(0, 2, count, dtype=np.uint8)

    d = modulate_bits(bits, scheme) + 0j

    s = ofdm.modulate_block(params, d)
    r = ofdm.demodulate_block(params, awgn(rng, s, snr_db))

    mse = np.mean(np.abs(r - d) ** 2)
    ber = bit_errors(demodulate_bits(r, scheme), bits) / bits.size

    return mse, ber


def simulate_viterbi(
    rng: Generator,
    count: int,
    ebn0_db: float,
) -> tuple[float, float, float]:
    """BPSK over AWGN: uncoded, hard-decision and soft-decision BER.

    The coded link spends the same energy per information bit, so its
    channel SNR is lowered by the code rate.
    """
    bits = GF2.Random(count, seed=rng)

    s = modulate_bits(bits, "BPSK") + 0j
    r = awgn(rng, s, ebn0_to_snr(ebn0_db))

    uncoded = bit_errors(demodulate_bits(r, "BPSK"), bits) / count

    snr_db = ebn0_to_snr(ebn0_db, code_rate=1 / 2)

    s = modulate_bits(conv_encode(bits), "BPSK") + 0j
    r = awgn(rng, s, snr_db)

    sigma = noise_scale(np.mean(np.abs(s) ** 2), snr_db)

    hard = viterbi_decode(demodulate_bits(r, "BPSK"))
    soft = viterbi_decode_soft(demodulate_soft(r, "BPSK", sigma))

    return uncoded, calculate_ber(hard, bits), calculate_ber(soft, bits)


def theoretical_ber(ebn0_db: ndarray) -> ndarray:
    ebn0 = 10 ** (np.asarray(ebn0_db) / 10)

    return erfc(np.sqrt(ebn0)) / 2


def main(argv: Optional[list[str]] = None) -> None:
    parser = ArgumentParser()

    parser.add_argument(
        "-i",
        "--iterations",
        default=64,
        type=int,
    )
    parser.add_argument(
        "-p",
        "--points",
        default=6,
        type=int,
    )
    parser.add_argument(
        "--seed",
        default=0x48F76461,
        type=int,
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    viterbi = subparsers.add_parser("viterbi")
    viterbi.set_defaults(
        run=run_viterbi,
        header="ebn0, theory, uncoded, hard, soft",
    )

    viterbi.add_argument(
        "-b",
        "--bits",
        default=100,
        type=int,
    )
    viterbi.add_argument(
        "--ebn0-min",
        default=0.0,
        type=float,
    )
    viterbi.add_argument(
        "--ebn0-max",
        default=10.0,
        type=float,
    )

    ofdm_parser = subparsers.add_parser("ofdm")
    ofdm_parser.set_defaults(
        run=run_ofdm,
        header="snr, mse, ber",
    )

    ofdm_parser.add_argument(
        "--fft",
        default=64,
        type=int,
    )
    ofdm_parser.add_argument(
        "--cp",
        default=16,
        type=int,
    )
    ofdm_parser.add_argument(
        "--pilots",
        default=4,
        type=int,
    )
    ofdm_parser.add_argument(
        "-m",
        "--modulation",
        choices=["BPSK", "QPSK", "16-QAM", "64-QAM"],
        default="BPSK",
    )
    ofdm_parser.add_argument(
        "-s",
        "--symbols",
        default=10,
        type=int,
    )
    ofdm_parser.add_argument(
        "--snr-min",
        default=0.0,
        type=float,
    )
    ofdm_parser.add_argument(
        "--snr-max",
        default=30.0,
        type=float,
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=[logging.WARNING, logging.INFO, logging.DEBUG][
            min(args.verbose, 2)
        ],
        format="%(levelname)s %(name)s: %(message)s",
    )

    rng = np.random.default_rng(args.seed)

    result = args.run(args, rng)

    output = (
        Path(f"{args.command}.csv") if args.output is None else args.output
    )

    np.savetxt(
        output,
        result,
        header=args.header,
        delimiter=",",
    )

    logger.info("wrote %d points to %s", len(result), output)


if __name__ == "__main__":
    sys.exit(main())
