# SPDX-License-Identifier: GPL-3.0-or-later
#
# errors.py -- configuration errors
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>


class InvalidConfiguration(ValueError):
    """A coder or OFDM configuration that cannot be built."""
