# SPDX-License-Identifier: GPL-3.0-or-later
#
# Copyright (C) 2025  Jacob Koziej <jacobkoziej@gmail.com>

# ruff: noqa: F821

from pathlib import Path

from SCons.Script import (
    Import,
    Return,
)

Import("env")

sources = [
    source
    for source in env.Glob("*.py")
    if not source.name.endswith("_test.py") and source.name != "conftest.py"
]

report_raw = env.Jupytext("report-raw.ipynb", "report.py")[0]

report = env.Papermill("report.ipynb", report_raw)[0]
env.Depends(report, sources)

report = env.NbConvert(str(Path(str(report)).with_suffix(".html")), report)

Return("report")
