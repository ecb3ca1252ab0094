# ---
# jupyter:
#   kernelspec:
#     display_name: Python 3 (ipykernel)
#     language: python
#     name: python3
# ---

# %%
# SPDX-License-Identifier: GPL-3.0-or-later
#
# report.py -- convolutional coding and OFDM baseband
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

# %%
import matplotlib.pyplot as plt
import numpy as np

import modulate
import ofdm

from galois import GF2

from coding import (
    GENERATOR_CONSTRAINT_LENGTH,
    GENERATOR_POLYNOMIALS,
    conv_encode,
    poly2matrix,
)
from simulator import (
    simulate_ofdm,
    simulate_viterbi,
    theoretical_ber,
)
from viterbi import (
    DECODE_DELAY,
    Trellis,
    align,
    viterbi_decode,
)

# %% tags=["parameters"]
seed = 0x48F76461
iterations = 16
bits = 1024

# %%
rng = np.random.default_rng(seed)

# %% [markdown]
# This report walks through a small baseband toolkit: a rate $R = 1/2$
# convolutional encoder paired with hard- and soft-decision Viterbi
# decoders, and an OFDM modulator with pilot-aided channel estimation
# built on top of a hand-written radix-2 FFT.

# %% [markdown]
# # Convolutional Code
#
# The encoder uses the generator polynomials $g_0 = 133_8$ and
# $g_1 = 171_8$ with a constraint length of $K = 7$. The register keeps
# the last six input bits, giving $2^6 = 64$ trellis states. Each row of
# the generator matrix taps one register position, newest bit first:

# %%
G = poly2matrix(GENERATOR_POLYNOMIALS, GENERATOR_CONSTRAINT_LENGTH)

G.T

# %% [markdown]
# ## Trellis
#
# From state $s$ an input bit $b$ moves the trellis to
# $((s \ll 1) \mid b) \bmod 64$. Each state is therefore reached from
# exactly two states, $\lfloor n / 2 \rfloor$ and
# $\lfloor n / 2 \rfloor + 32$, which is what lets the decoder perform
# its add-compare-select step on all states at once. The first few
# transitions and their expected outputs:

# %%
trellis = Trellis(G)

for s in range(4):
    for b in range(2):
        print(
            f"{s:2d} --{b}--> {trellis.next_state[s, b]:2d}"
            f"  {np.array(trellis.expected[s, b])}"
        )

# %% [markdown]
# ## Decoding Delay
#
# The decoder reads each decoded bit out of the surviving state's
# second-oldest register position, so the decoded stream lags the input
# by $K - 2$ bits. Encoding an impulse makes this visible:

# %%
x = GF2.Zeros(16)
x[2] = 1

decoded = viterbi_decode(conv_encode(x))

print(f"input:   {np.array(x)}")
print(f"decoded: {np.array(decoded)}")
print(f"delay:   {DECODE_DELAY}")

# %% [markdown]
# Once aligned, a noiseless stream decodes exactly:

# %%
x = GF2.Random(bits, seed=rng)

decoded, expected = align(viterbi_decode(conv_encode(x)), x)

np.all(decoded == expected)

# %% [markdown]
# ## Bit Error Rate
#
# We compare uncoded BPSK against the coded link with both hard and
# soft decisions. The coded link spends the same energy per information
# bit, so each coded bit sees 3 dB less SNR. Soft decisions feed the
# decoder log-likelihood ratios instead of sliced bits, buying back
# roughly 2 dB.

# %% tags=["hide-input"]
ebn0 = np.linspace(0, 8, 9)
ber = np.zeros((len(ebn0), iterations, 3))

for i, ebn0_i in enumerate(ebn0):
    for j in range(iterations):
        ber[i, j] = simulate_viterbi(rng, bits, ebn0_i)

ber = np.mean(ber, axis=1)

plt.figure(figsize=(8, 6))
plt.semilogy(ebn0, theoretical_ber(ebn0), "k--", label="Theory")
plt.semilogy(ebn0, ber[:, 0], "o-", label="Uncoded")
plt.semilogy(ebn0, ber[:, 1], "s-", label="Hard decision")
plt.semilogy(ebn0, ber[:, 2], "^-", label="Soft decision")
plt.xlabel("$E_b/N_0$ (dB)")
plt.ylabel("BER")
plt.title("Viterbi Decoding over AWGN")
plt.grid(True, which="both", alpha=0.3)
plt.legend()
plt.ylim(1e-5, 1)
plt.show()

# %% [markdown]
# # OFDM
#
# Each OFDM symbol spans $N = 64$ subcarriers with a cyclic prefix of
# 16 samples. Subcarriers at either edge are left empty as guard bands,
# the centre bin carries no energy (DC), and the rest are split between
# regularly spaced pilots and data.

# %%
params = ofdm.ofdm_init(64, 16, 4)

print(f"pilots:    {params.pilot_idx.tolist()}")
print(f"data:      {params.n_data} subcarriers")
print(f"guards:    {params.n_guard_lo} low, {params.n_guard_hi} high")
print(f"DC:        {params.plan.dc_idx}")

# %% tags=["hide-input"]
colors = ["lightgray", "black", "red", "tab:blue"]

plt.figure(figsize=(10, 2))
plt.bar(
    np.arange(params.n_fft),
    np.ones(params.n_fft),
    color=[colors[role] for role in params.plan.roles],
)
plt.xlabel("Subcarrier")
plt.yticks([])
plt.title("Subcarrier Plan (guard, DC, pilot, data)")
plt.show()

# %% [markdown]
# ## Channel Estimation
#
# The receiver divides each received pilot by its known value to get a
# least-squares channel estimate, then linearly interpolates between
# pilots to cover the data subcarriers. Data subcarriers outside the
# pilot span reuse the nearest pilot. Here we pass a symbol through a
# two-tap multipath channel:

# %% tags=["hide-input"]
h = np.array([1, 0, 0, 0.4 - 0.3j])

d = modulate.modulate(
    rng.integers(0, 2, params.n_data, dtype=np.uint8),
    "BPSK",
)

s = ofdm.modulate(params, d + 0j)
r = np.convolve(s, h)[: s.size]

_, estimate = ofdm.demodulate(params, r, return_channel=True)

H = np.fft.fft(h, params.n_fft)

plt.figure(figsize=(8, 4))
plt.plot(np.abs(H), "k-", label="Channel")
plt.plot(params.data_idx, np.abs(estimate), "o", label="Estimate")
plt.plot(params.pilot_idx, np.abs(H[params.pilot_idx]), "rx", label="Pilot")
plt.xlabel("Subcarrier")
plt.ylabel("$|H|$")
plt.title("Pilot-Aided Channel Estimate")
plt.grid(True, alpha=0.3)
plt.legend()
plt.show()

# %% [markdown]
# ## Mean Squared Error
#
# Over an AWGN channel the equalized symbols track the transmitted ones
# with an error that falls off with SNR:

# %% tags=["hide-input"]
snr = np.linspace(0, 30, 7)
result = np.zeros((len(snr), iterations, 2))

for i, snr_i in enumerate(snr):
    for j in range(iterations):
        result[i, j] = simulate_ofdm(rng, params, 10, snr_i)

result = np.mean(result, axis=1)

fig, ax = plt.subplots(1, 2, figsize=(12, 4))

ax[0].semilogy(snr, result[:, 0], "o-")
ax[0].set_xlabel("SNR (dB)")
ax[0].set_ylabel("MSE")
ax[0].grid(True, which="both", alpha=0.3)

ax[1].semilogy(snr, np.maximum(result[:, 1], 1e-6), "o-")
ax[1].set_xlabel("SNR (dB)")
ax[1].set_ylabel("BER")
ax[1].grid(True, which="both", alpha=0.3)

fig.suptitle("OFDM over AWGN")
plt.show()
