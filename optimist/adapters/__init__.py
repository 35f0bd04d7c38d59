"""
Value adapters: one per feed family.

- SingleFeedAdapter:  one feed, value = latest answer in WAD
- MinimumFeedAdapter: three feeds, value = smallest WAD answer
"""

from .base import ValidateResult, ValueAdapter, latest_value, push_spot, validate_rounds
from .minimum import FEEDS_PER_RATE, MinimumFeedAdapter
from .single import SingleFeedAdapter

__all__ = [
    "ValidateResult",
    "ValueAdapter",
    "latest_value",
    "validate_rounds",
    "push_spot",
    "SingleFeedAdapter",
    "MinimumFeedAdapter",
    "FEEDS_PER_RATE",
]
