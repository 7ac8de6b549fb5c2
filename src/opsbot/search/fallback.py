"""
Deadline-bounded live fallback

Used when the cache is cold or produced nothing. Pages through the live
listing endpoint until enough matches are found, the listing ends, or the
wall-clock budget runs out. The budget is only checked between pages; an
in-flight request is bounded by its own timeout.
"""

import time
from typing import Callable, List, Optional

import structlog
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt

from ..errors import is_transient_error, summarize_error
from ..models.data_models import Page, Record, SearchConfig
from .scoring import score_record
from .source import RecordSource
from .text import normalize

logger = structlog.get_logger(__name__)


async def fetch_page_with_retry(
    source: RecordSource,
    page_size: int,
    cursor: Optional[str],
    config: SearchConfig,
    query: Optional[str],
    timeout: Optional[float],
) -> Page:
    """One live page request, retried on transient failures without delay"""

    def log_retry(retry_state):
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Retrying live page request",
            source=source.name,
            attempt=retry_state.attempt_number,
            **(summarize_error(exc) if exc else {}),
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(source.live_retries + 1),
        retry=retry_if_exception(is_transient_error),
        before_sleep=log_retry,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            page = await source.list_page(
                page_size=page_size,
                cursor=cursor,
                config=config,
                query=query,
                timeout=timeout,
            )
    return page


async def fetch_live(
    source: RecordSource,
    query: str,
    config: SearchConfig,
    min_matches: int = 7,
    page_size: int = 100,
    max_millis: int = 1200,
    timeout: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> List[Record]:
    q = normalize(query)
    matches: List[Record] = []
    deadline = clock() + max_millis / 1000.0
    request_timeout = timeout or source.live_timeout
    cursor: Optional[str] = None
    pages = 0

    while clock() < deadline:
        try:
            page = await fetch_page_with_retry(
                source, page_size, cursor, config, q, request_timeout
            )
        except Exception as e:
            if not source.tolerate_live_errors:
                raise
            logger.warning(
                "Live fallback request failed; returning partial matches",
                source=source.name,
                pages=pages,
                matches=len(matches),
                **summarize_error(e),
            )
            return matches

        pages += 1
        if not page.records:
            break

        for record in page.records:
            if score_record(record, q, config, source.field_text) > 0:
                matches.append(record)

        if len(matches) >= min_matches:
            break

        cursor = page.next_cursor
        if not cursor:
            break

    if clock() >= deadline:
        logger.info(
            "Live fallback hit time budget; returning partial matches",
            source=source.name,
            pages=pages,
            matches=len(matches),
        )

    return matches
