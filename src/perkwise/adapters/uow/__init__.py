# src/perkwise/adapters/uow/__init__.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""
Unit of Work implementations (Adapters Layer)

Application code depends only on the `UnitOfWork` protocol from
`perkwise.application.uow`; wiring code picks the concrete class here.
"""

from __future__ import annotations

from .sqlalchemy_uow import SqlAlchemyUnitOfWork

__all__ = ["SqlAlchemyUnitOfWork"]
