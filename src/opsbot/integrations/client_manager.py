"""
Search Manager

Composition root for the integrations and the search layer:
- Builds one client per upstream service and one cache per searchable source
- Routes type-ahead queries to the right source
- Runs the periodic background cache warm
- Reports cache and client health
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from ..config.settings import Settings, get_settings
from ..models.data_models import SearchConfig
from ..models.response_models import CacheStatus, SearchOption
from ..search.cache import SourceCache
from ..search.engine import SourceSearch
from ..search.source import RecordSource
from .airtable_client import AirtableClient, AirtableRecordSource
from .base_client import BaseAPIClient
from .double_client import DoubleClient, DoubleClientSource
from .hubspot_client import HubSpotClient, HubSpotCompanySource
from .hubspot_properties import DealPropertyKind, DealPropertyOptions

logger = structlog.get_logger(__name__)

HUBSPOT_COMPANIES = "hubspot_companies"
DOUBLE_CLIENTS = "double_clients"
AIRTABLE_CLIENT_NAMES = "airtable_client_names"
AIRTABLE_CLIENT_SOFTWARE = "airtable_client_software"

# Sources whose default configuration is kept warm in memory.
CACHED_SOURCES = (HUBSPOT_COMPANIES, DOUBLE_CLIENTS, AIRTABLE_CLIENT_NAMES)


class SearchManager:
    """Owns every client, cache and search facade for the process"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        self.hubspot = HubSpotClient(self.settings.hubspot, user_agent=self._user_agent())
        self.double = DoubleClient(self.settings.double, user_agent=self._user_agent())
        self.airtable = AirtableClient(self.settings.airtable, user_agent=self._user_agent())

        self._searches: Dict[str, SourceSearch] = {}
        for source in self._build_sources():
            self.register_source(source)

        ttl = self.settings.search.option_cache_ttl_seconds
        self.deal_types = DealPropertyOptions(
            self.hubspot,
            DealPropertyKind.DEAL_TYPE,
            override=self.settings.hubspot.deal_type_property,
            ttl_seconds=ttl,
        )
        self.hear_about_us = DealPropertyOptions(
            self.hubspot,
            DealPropertyKind.HEAR_ABOUT_US,
            override=self.settings.hubspot.hear_about_us_property,
            ttl_seconds=ttl,
        )

        self._warm_task: Optional[asyncio.Task] = None

    async def __aenter__(self):
        """Async context manager entry"""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.shutdown()

    def _user_agent(self) -> str:
        return f"{self.settings.app_name}/{self.settings.app_version}"

    def _build_sources(self) -> List[RecordSource]:
        airtable_settings = self.settings.airtable
        software_field = airtable_settings.client_software_name_field
        return [
            HubSpotCompanySource(self.hubspot),
            DoubleClientSource(self.double),
            AirtableRecordSource(
                self.airtable,
                table_id=airtable_settings.client_names_table_id,
                name=AIRTABLE_CLIENT_NAMES,
            ),
            AirtableRecordSource(
                self.airtable,
                table_id=airtable_settings.client_software_table_id,
                name=AIRTABLE_CLIENT_SOFTWARE,
                config=SearchConfig(search_fields=[software_field], display_field=software_field),
                cacheable=False,
            ),
        ]

    def register_source(self, source: RecordSource) -> SourceSearch:
        """Create the cache and facade for a source"""
        search = SourceSearch(source, SourceCache(source), self.settings.search)
        self._searches[source.name] = search
        return search

    def get_search(self, source_id: str) -> Optional[SourceSearch]:
        return self._searches.get(source_id)

    @property
    def source_ids(self) -> List[str]:
        return list(self._searches.keys())

    async def search_by_source(
        self,
        source_id: str,
        raw_query: Optional[str],
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> List[SearchOption]:
        """Ranked, display-ready options for a type-ahead field"""
        search = self._searches.get(source_id)
        if search is None:
            logger.error("Unknown search source", source=source_id)
            return []
        return await search.search_options(raw_query, overrides)

    def trigger_warm(self, source_id: Optional[str] = None) -> List[asyncio.Task]:
        """Fire-and-forget warm for one source, or every cached source"""
        source_ids: Iterable[str] = [source_id] if source_id else CACHED_SOURCES
        tasks = []
        for sid in source_ids:
            search = self._searches.get(sid)
            if search is None:
                logger.warning("Cannot warm unknown source", source=sid)
                continue
            task = search.trigger_warm()
            if task is not None:
                tasks.append(task)
        return tasks

    async def search_deal_types(self, raw_query: Optional[str]) -> List[SearchOption]:
        # Client loss has its own form.
        return await self.deal_types.search(raw_query, exclude_terms=("client loss",))

    async def search_hear_about_us(self, raw_query: Optional[str]) -> List[SearchOption]:
        return await self.hear_about_us.search(raw_query)

    async def start(self):
        """Warm every cache now and then on a fixed interval"""
        logger.info("Starting search manager", sources=self.source_ids)
        if self._warm_task is None or self._warm_task.done():
            self._warm_task = asyncio.create_task(self._warm_loop())

    async def shutdown(self):
        """Stop the warm loop and close every HTTP client"""
        logger.info("Shutting down search manager")

        if self._warm_task:
            self._warm_task.cancel()
            try:
                await self._warm_task
            except asyncio.CancelledError:
                pass
            self._warm_task = None

        for client in self._clients():
            try:
                await client.close()
            except Exception as e:
                logger.error("Error closing client", provider=client.provider, error=str(e))

        logger.info("Search manager shutdown complete")

    async def _warm_loop(self):
        """Background task for periodic cache warms"""
        interval = self.settings.search.warm_interval_seconds
        while True:
            try:
                self.trigger_warm()
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Cache warm loop error", error=str(e))
                await asyncio.sleep(interval)

    def _clients(self) -> List[BaseAPIClient]:
        return [self.hubspot, self.double, self.airtable]

    def get_cache_status(self, source_id: Optional[str] = None) -> Dict[str, CacheStatus]:
        if source_id:
            search = self._searches.get(source_id)
            return {source_id: search.cache.status()} if search else {}
        return {sid: search.cache.status() for sid, search in self._searches.items()}

    async def get_overall_health(self) -> Dict[str, Any]:
        """Get overall health of caches and clients"""
        caches = self.get_cache_status()
        configured = {sid: search.source.is_configured for sid, search in self._searches.items()}
        clients = {}
        for client in self._clients():
            try:
                clients[client.provider] = await client.get_health_status()
            except Exception as e:
                clients[client.provider] = {"provider": client.provider, "status": "error", "error": str(e)}

        cached_ok = all(
            caches[sid].loaded for sid in CACHED_SOURCES if configured.get(sid)
        )
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "overall_health": "healthy" if cached_ok else "degraded",
            "sources": {
                sid: {"configured": configured[sid], **caches[sid].model_dump(mode="json")}
                for sid in self._searches
            },
            "clients": clients,
        }


# Global search manager instance
search_manager: Optional[SearchManager] = None


def get_search_manager() -> SearchManager:
    """Get the global search manager singleton"""
    global search_manager
    if search_manager is None:
        search_manager = SearchManager()
    return search_manager
