"""Convenience exports for shared schema types."""

from .check_types import CheckType

__all__ = [
    "CheckType",
]
