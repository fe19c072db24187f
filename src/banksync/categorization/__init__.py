"""Transaction categorization utilities.

This module provides deterministic, local categorization of transactions based on
their descriptions, counterparties, MCC hints and the user's own rules. It is
intentionally rule-based (no network calls) to keep syncing fast.
"""

from .overrides import MatchType, UserRule
from .rules import CATEGORIES, CategorizeInput, CategorizeOptions, categorize, normalize_merchant

__all__ = [
    "CATEGORIES",
    "CategorizeInput",
    "CategorizeOptions",
    "MatchType",
    "UserRule",
    "categorize",
    "normalize_merchant",
]
