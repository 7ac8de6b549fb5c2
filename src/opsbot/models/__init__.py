"""
Data Models Package

Record, page and search configuration models plus the response shapes.
"""

from .data_models import (
    Record,
    Page,
    SearchConfig,
)

from .response_models import (
    SearchOption,
    CacheStatus,
)

__all__ = [
    # Data models
    "Record",
    "Page",
    "SearchConfig",

    # Response models
    "SearchOption",
    "CacheStatus",
]
