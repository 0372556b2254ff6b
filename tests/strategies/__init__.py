# tests/strategies/__init__.py
"""Hypothesis strategies for property-based tests.

Re-exports commonly used strategies for convenience:
    from tests.strategies import binary_content, event_numbers, STANDARD_SETTINGS
"""

from tests.strategies.binary import binary_content, digests, event_numbers, versions
from tests.strategies.settings import DETERMINISM_SETTINGS, STANDARD_SETTINGS
from tests.strategies.values import cold_registrations, kernel_states

__all__ = [
    "DETERMINISM_SETTINGS",
    "STANDARD_SETTINGS",
    "binary_content",
    "cold_registrations",
    "digests",
    "event_numbers",
    "kernel_states",
    "versions",
]
