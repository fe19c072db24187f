"""Canonical transaction mapping for upstream payloads."""

from .normalizer import NormalizedTransaction, clean_description, normalize

__all__ = ["NormalizedTransaction", "clean_description", "normalize"]
