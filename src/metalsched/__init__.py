# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

"""
metalsched: schedules bare-metal hosts onto sub-cluster requests.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("metalsched")
except PackageNotFoundError:
    __version__ = "0.0.0"
