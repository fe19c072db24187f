"""Aggregator access: token exchange, resilient HTTP and endpoint wrappers."""

from .aggregator import AggregatorClient
from .client import ResilientClient
from .tokens import TokenManager
from .utils import parse_retry_after

__all__ = ["AggregatorClient", "ResilientClient", "TokenManager", "parse_retry_after"]
