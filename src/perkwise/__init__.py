# src/perkwise/__init__.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Perkwise: recurring card-credit tracking and transaction reconciliation."""

__version__ = "0.1.0"
