# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Version of the package; setup.py reads it from here."""
__version__ = "1.0.0"
