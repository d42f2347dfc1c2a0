"""Aggregate import for all API route modules."""

from . import (
    auth,
    family,
    children,
    transactions,
    schedules,
    allowance,
    interest,
)

__all__ = [
    "auth",
    "family",
    "children",
    "transactions",
    "schedules",
    "allowance",
    "interest",
]
