"""
Pytest configuration and shared fixtures for the opsbot search layer

This module provides:
- Settings with fake credentials for every integration
- An in-memory record source with scriptable failures and call tracking
- Sample records
"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional

import httpx
import pytest
import structlog

from opsbot.config.settings import (
    AirtableSettings,
    DoubleSettings,
    HubSpotSettings,
    SearchSettings,
    Settings,
)
from opsbot.models.data_models import Page, Record, SearchConfig
from opsbot.search.source import RecordSource

from fixtures.records import SAMPLE_COMPANIES

# Configure test logging
structlog.configure(
    processors=[structlog.processors.KeyValueRenderer()],
    cache_logger_on_first_use=False,
)


class InMemorySource(RecordSource):
    """Record source backed by a list, paged by numeric offset cursors.

    ``failures`` maps a zero-based page index to the number of times that
    page fails before succeeding.
    """

    def __init__(
        self,
        records: Iterable[Record] = (),
        name: str = "memory",
        config: Optional[SearchConfig] = None,
        configured: bool = True,
        failures: Optional[Dict[int, int]] = None,
        error: Optional[Exception] = None,
        server_results: Optional[Dict[str, List[Record]]] = None,
        server_error: Optional[Exception] = None,
    ):
        self.records = list(records)
        self.name = name
        self.configured = configured
        self.failures = dict(failures or {})
        self.error = error or httpx.ConnectError("connection reset")
        self.server_results = server_results
        self.server_error = server_error
        self.supports_server_search = server_results is not None or server_error is not None
        self._config = config or SearchConfig(
            search_fields=["name", "domain"],
            display_field="name",
            secondary_field="domain",
        )

        self.calls: List[Dict[str, Any]] = []
        self.server_queries: List[str] = []
        self.gate: Optional[asyncio.Event] = None

    @property
    def is_configured(self) -> bool:
        return self.configured

    def default_config(self) -> SearchConfig:
        return self._config

    async def list_page(self, page_size, cursor, config, query=None, timeout=None) -> Page:
        start = int(cursor or 0)
        index = start // page_size
        self.calls.append({"cursor": cursor, "query": query, "timeout": timeout, "page": index})

        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

        if self.failures.get(index, 0) > 0:
            self.failures[index] -= 1
            raise self.error

        end = start + page_size
        next_cursor = str(end) if end < len(self.records) else None
        return Page(records=self.records[start:end], next_cursor=next_cursor)

    async def server_search(self, query, config) -> List[Record]:
        self.server_queries.append(query)
        if self.server_error is not None:
            raise self.server_error
        return list((self.server_results or {}).get(query.lower(), []))


@pytest.fixture(scope="function")
def source_factory():
    """Build in-memory record sources"""
    return InMemorySource


@pytest.fixture(scope="function")
def sample_companies() -> List[Record]:
    return list(SAMPLE_COMPANIES)


@pytest.fixture(scope="function")
def company_config() -> SearchConfig:
    return SearchConfig(search_fields=["name", "domain"], display_field="name", secondary_field="domain")


@pytest.fixture(scope="function")
def search_settings() -> SearchSettings:
    return SearchSettings(
        min_query_length=3,
        result_limit=50,
        min_live_matches=7,
        live_page_size=100,
        live_budget_ms=1200,
        warm_max_pages=50,
        warm_page_size=100,
    )


@pytest.fixture(scope="function")
def test_settings(search_settings) -> Settings:
    """Settings with fake credentials for every integration"""
    return Settings(
        hubspot=HubSpotSettings(private_app_token="hs-test-token", portal_id="123"),
        double=DoubleSettings(client_id="double-id", client_secret="double-secret"),
        airtable=AirtableSettings(
            token="at-test-token",
            base_id="appBase",
            client_names_table_id="tblNames",
            client_software_table_id="tblSoftware",
            search_fields="Client Name,Owner",
        ),
        search=search_settings,
    )


@pytest.fixture(scope="function")
def unconfigured_settings(search_settings) -> Settings:
    return Settings(
        hubspot=HubSpotSettings(private_app_token=""),
        double=DoubleSettings(client_id="", client_secret=""),
        airtable=AirtableSettings(token="", base_id="", client_names_table_id="", client_software_table_id=""),
        search=search_settings,
    )

