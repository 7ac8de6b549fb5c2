"""
Search Package

Type-ahead search over slow, rate-limited upstream directories:
- Text normalization and field rendering
- Additive relevance scoring
- Background-refreshed in-memory caches
- Deadline-bounded live fallback
- Merge, de-duplication and ranking
- Per-source search facade
"""

from .text import normalize, tokenize, collapse_whitespace, field_to_text
from .scoring import score_record, searchable_texts
from .source import RecordSource
from .cache import SourceCache
from .fallback import fetch_live
from .ranking import merge_rank
from .engine import SourceSearch

__all__ = [
    "normalize",
    "tokenize",
    "collapse_whitespace",
    "field_to_text",
    "score_record",
    "searchable_texts",
    "RecordSource",
    "SourceCache",
    "fetch_live",
    "merge_rank",
    "SourceSearch",
]
