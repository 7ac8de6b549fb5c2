"""
In-memory source cache

One cache per source, owned by the composition root for the lifetime of the
process. A warm is a full, strictly sequential pagination sweep. The
``loading`` flag is set before the first await, so overlapping warm calls on
the same event loop collapse into a single sweep.

A failed warm discards what it fetched: the previous complete snapshot (and
its ``loaded`` flag) stays in place until a later warm succeeds.
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

import structlog

from ..errors import summarize_error
from ..models.data_models import Record, SearchConfig
from ..models.response_models import CacheStatus
from .scoring import score_record
from .source import RecordSource

logger = structlog.get_logger(__name__)


class SourceCache:
    """Background-refreshed snapshot of every record a source lists"""

    def __init__(self, source: RecordSource):
        self.source = source
        self.loading = False
        self.loaded = False
        self.last_loaded_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.results: List[Record] = []
        self.sweeps = 0
        self._warm_task: Optional[asyncio.Task] = None

    async def warm(
        self,
        max_pages: int = 50,
        page_size: int = 100,
        timeout: Optional[float] = None,
    ) -> bool:
        """Refresh the snapshot. Returns True when a sweep completed."""
        if self.loading:
            return False
        if not self.source.cacheable:
            return False
        if not self.source.is_configured:
            return False
        config = self.source.default_config()
        if not config.search_fields:
            return False

        self.loading = True
        self.sweeps += 1
        staged: List[Record] = []
        request_timeout = timeout or self.source.warm_timeout

        try:
            cursor: Optional[str] = None
            for _ in range(max_pages):
                page = await self.source.list_page(
                    page_size=page_size,
                    cursor=cursor,
                    config=config,
                    timeout=request_timeout,
                )
                if not page.records:
                    break
                staged.extend(page.records)
                cursor = page.next_cursor
                if not cursor:
                    break

            self.results = staged
            self.loaded = True
            self.last_loaded_at = datetime.now(timezone.utc)
            self.last_error = None
            logger.info("Cache warmed", source=self.source.name, records=len(staged))
            return True

        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            logger.error(
                "Cache warm failed",
                source=self.source.name,
                fetched=len(staged),
                **summarize_error(e),
            )
            return False

        finally:
            self.loading = False

    def trigger_warm(self, **kwargs) -> Optional[asyncio.Task]:
        """Start a warm in the background unless one is already running"""
        if not self.source.cacheable:
            logger.debug("Skipping warm for live-only source", source=self.source.name)
            return None
        if self.loading:
            return None
        if self._warm_task is not None and not self._warm_task.done():
            return None
        self._warm_task = asyncio.create_task(self.warm(**kwargs))
        return self._warm_task

    def lookup(self, query: str, config: SearchConfig) -> List[Record]:
        """Every cached record scoring above zero; never mutates the cache"""
        return [
            record
            for record in self.results
            if score_record(record, query, config, self.source.field_text) > 0
        ]

    def status(self) -> CacheStatus:
        return CacheStatus(
            source=self.source.name,
            loading=self.loading,
            loaded=self.loaded,
            record_count=len(self.results),
            last_loaded_at=self.last_loaded_at,
            last_error=self.last_error,
        )
