"""
Search facade

Per-source entry point used by the chat layer's option loaders. A search
never raises: missing configuration and upstream failures degrade to
whatever hits are available (possibly none).

Flow for one query:
1. Collapse whitespace and reject queries shorter than the minimum.
2. Reject unconfigured sources and empty search field lists.
3. Sources with an upstream search endpoint query it first ("primary");
   a multi-word query with no hits is retried with its first word.
4. For the default configuration, start a background warm if the cache has
   never loaded and none is running, then scan the loaded snapshot.
5. Only when nothing was found so far, page the live listing under a deadline.
6. Merge, de-duplicate and rank everything.
"""

from typing import Any, List, Mapping, Optional

import structlog

from ..config.settings import SearchSettings
from ..errors import summarize_error
from ..models.data_models import Record, SearchConfig
from ..models.response_models import SearchOption
from .cache import SourceCache
from .fallback import fetch_live
from .ranking import merge_rank
from .source import RecordSource
from .text import collapse_whitespace

logger = structlog.get_logger(__name__)


class SourceSearch:
    """Cache-first, live-fallback search over one record source"""

    def __init__(
        self,
        source: RecordSource,
        cache: SourceCache,
        settings: Optional[SearchSettings] = None,
    ):
        self.source = source
        self.cache = cache
        self.settings = settings or SearchSettings()

    def trigger_warm(self):
        return self.cache.trigger_warm(
            max_pages=self.settings.warm_max_pages,
            page_size=self.settings.warm_page_size,
        )

    def resolve_config(self, overrides: Optional[Mapping[str, Any]] = None) -> SearchConfig:
        return self.source.default_config().with_overrides(overrides)

    async def search(
        self,
        raw_query: Optional[str],
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> List[Record]:
        query = collapse_whitespace(raw_query)
        if len(query) < self.settings.min_query_length:
            return []

        if not self.source.is_configured:
            logger.error("Search source is not configured", source=self.source.name)
            return []

        config = self.resolve_config(overrides)
        if not config.search_fields:
            logger.error("Search source has no search fields", source=self.source.name)
            return []

        primary: List[Record] = []
        if self.source.supports_server_search:
            primary = await self._server_search(query, config)

        # Cached snapshots only serve the default field configuration.
        use_cache = self.source.cacheable and not SearchConfig.changes_fields(overrides)
        if use_cache and not self.cache.loading and not self.cache.loaded:
            self.trigger_warm()

        cached = self.cache.lookup(query, config) if use_cache and self.cache.loaded else []

        fallback: List[Record] = []
        if not primary and not cached:
            fallback = await self._live_fallback(query, config)

        combined = merge_rank(
            primary,
            cached + fallback,
            query,
            config,
            limit=self.settings.result_limit,
            identity=self.source.record_identity,
            field_text=self.source.field_text,
        )

        logger.info(
            "Search results",
            source=self.source.name,
            primary=len(primary),
            cache=len(cached),
            fallback=len(fallback),
            combined=len(combined),
        )
        return combined

    async def search_options(
        self,
        raw_query: Optional[str],
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> List[SearchOption]:
        records = await self.search(raw_query, overrides)
        if not records:
            return []
        config = self.resolve_config(overrides)
        return [
            self.source.format_option(record, config, self.settings.label_max_length)
            for record in records
        ]

    async def _server_search(self, query: str, config: SearchConfig) -> List[Record]:
        try:
            results = await self.source.server_search(query, config)
            if not results and " " in query:
                results = await self.source.server_search(query.split(" ")[0], config)
            return results
        except Exception as e:
            logger.error("Upstream search failed", source=self.source.name, **summarize_error(e))
            return []

    async def _live_fallback(self, query: str, config: SearchConfig) -> List[Record]:
        try:
            return await fetch_live(
                self.source,
                query,
                config,
                min_matches=self.settings.min_live_matches,
                page_size=self.settings.live_page_size,
                max_millis=self.settings.live_budget_ms,
            )
        except Exception as e:
            logger.error("Live fallback failed", source=self.source.name, **summarize_error(e))
            return []
