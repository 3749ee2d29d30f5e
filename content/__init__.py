"""Content-variant selection, caching and readiness waiting."""

from content.variant_selector import VariantSelector, InitialStudentState
from content.variant_cache import VariantCacheManager, VariantCacheError
from content.variant_waiter import (
    VariantReadinessWaiter,
    VariantWaitHandle,
    VariantWaitTracker,
)

__all__ = [
    'VariantSelector',
    'InitialStudentState',
    'VariantCacheManager',
    'VariantCacheError',
    'VariantReadinessWaiter',
    'VariantWaitHandle',
    'VariantWaitTracker',
]
