"""Shared abstractions used across domain modules."""

from .exceptions import LedgerError

__all__ = ["LedgerError"]
