"""
Unit tests for the per-source search facade
"""

import httpx
import pytest
from structlog.testing import capture_logs

from opsbot.models.data_models import SearchConfig
from opsbot.search.cache import SourceCache
from opsbot.search.engine import SourceSearch

from fixtures.records import company, generate_companies


def make_search(source, settings):
    return SourceSearch(source, SourceCache(source), settings)


async def drain(search):
    """Let a background warm triggered by a search run to completion"""
    task = search.cache._warm_task
    if task is not None:
        await task


class TestQueryGuards:
    """Inputs that never reach an upstream"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "ac", "  ac  ", None])
    async def test_short_queries_return_nothing_without_upstream_calls(self, source_factory, sample_companies, search_settings, query):
        source = source_factory(sample_companies, server_results={})
        search = make_search(source, search_settings)

        assert await search.search(query) == []
        assert source.calls == []
        assert source.server_queries == []
        assert search.cache._warm_task is None

    @pytest.mark.asyncio
    async def test_unconfigured_source_logs_and_returns_empty(self, source_factory, sample_companies, search_settings):
        source = source_factory(sample_companies, configured=False)
        search = make_search(source, search_settings)

        with capture_logs() as logs:
            assert await search.search("acme") == []

        assert source.calls == []
        assert any(e["event"] == "Search source is not configured" and e["log_level"] == "error" for e in logs)

    @pytest.mark.asyncio
    async def test_empty_search_fields_return_empty(self, source_factory, sample_companies, search_settings):
        source = source_factory(sample_companies, config=SearchConfig(search_fields=[]))
        search = make_search(source, search_settings)

        assert await search.search("acme") == []
        assert source.calls == []


class TestCacheAndFallback:
    """Cache-first lookups with live fallback"""

    @pytest.mark.asyncio
    async def test_cold_cache_triggers_warm_and_uses_fallback(self, source_factory, sample_companies, search_settings):
        source = source_factory(sample_companies)
        search = make_search(source, search_settings)

        results = await search.search("acm")

        assert [record.id for record in results] == ["1", "2", "4"]
        assert search.cache._warm_task is not None
        assert any(call["query"] == "acm" for call in source.calls)

        await drain(search)
        assert search.cache.loaded is True

    @pytest.mark.asyncio
    async def test_loaded_cache_skips_fallback(self, source_factory, sample_companies, search_settings):
        source = source_factory(sample_companies)
        search = make_search(source, search_settings)
        await search.cache.warm()
        source.calls.clear()

        results = await search.search("acm")

        assert [record.id for record in results] == ["1", "2", "4"]
        assert source.calls == []

    @pytest.mark.asyncio
    async def test_fallback_runs_when_cache_has_no_hits(self, source_factory, search_settings):
        source = source_factory([company(1, "Initech")])
        search = make_search(source, search_settings)
        await search.cache.warm()

        source.records.append(company(2, "Acme Newco"))
        source.calls.clear()

        results = await search.search("acme")

        assert [record.id for record in results] == ["2"]
        assert [call["query"] for call in source.calls] == ["acme"]

    @pytest.mark.asyncio
    async def test_warm_not_retriggered_while_loading(self, source_factory, sample_companies, search_settings):
        source = source_factory(sample_companies)
        search = make_search(source, search_settings)
        search.cache.loading = True

        await search.search("acme")

        assert search.cache._warm_task is None

    @pytest.mark.asyncio
    async def test_fallback_with_five_matches_returns_all_ranked(self, source_factory, search_settings):
        records = [company(i, f"Acme {'x' * i}") for i in range(1, 6)] + generate_companies(20)
        source = source_factory(records)
        search = make_search(source, search_settings)
        search.cache.loading = True

        results = await search.search("acme")

        assert [record.id for record in results] == ["1", "2", "3", "4", "5"]

    @pytest.mark.asyncio
    async def test_fallback_failure_degrades_to_empty(self, source_factory, sample_companies, search_settings):
        source = source_factory(sample_companies, failures={0: 10}, error=httpx.ConnectError("down"))
        search = make_search(source, search_settings)
        search.cache.loading = True

        with capture_logs() as logs:
            assert await search.search("acme") == []

        assert any(e["event"] == "Live fallback failed" for e in logs)

    @pytest.mark.asyncio
    async def test_overrides_bypass_cache(self, source_factory, search_settings):
        records = [company(1, "Acme Corp", "acme.com"), company(2, "Initech", "acme-partner.io")]
        source = source_factory(records)
        search = make_search(source, search_settings)
        await search.cache.warm()
        source.calls.clear()

        results = await search.search("acme", {"search_fields": ["domain"], "display_field": "domain"})

        assert {record.id for record in results} == {"1", "2"}
        assert source.calls, "overridden configuration must go to the live listing"
        assert search.cache._warm_task is None

    @pytest.mark.parametrize("overrides", [
        {"limit": 10},
        {"display_field": "", "secondary_field": ""},
    ])
    @pytest.mark.asyncio
    async def test_overrides_without_field_changes_use_cache(self, source_factory, sample_companies, search_settings, overrides):
        source = source_factory(sample_companies)
        search = make_search(source, search_settings)
        await search.cache.warm()
        source.calls.clear()

        results = await search.search("acm", overrides)

        assert [record.id for record in results] == ["1", "2", "4"]
        assert source.calls == []

    @pytest.mark.asyncio
    async def test_non_cacheable_source_never_warms(self, source_factory, sample_companies, search_settings):
        source = source_factory(sample_companies)
        source.cacheable = False
        search = make_search(source, search_settings)

        results = await search.search("acme")

        assert [record.id for record in results][:1] == ["1"]
        assert search.cache._warm_task is None
        assert search.cache.loaded is False

    @pytest.mark.asyncio
    async def test_result_limit(self, source_factory, search_settings):
        search_settings.result_limit = 3
        source = source_factory(generate_companies(20, prefix="Acme"))
        search = make_search(source, search_settings)
        await search.cache.warm()

        assert len(await search.search("acme")) == 3


class TestServerSearch:
    """Sources with an upstream search endpoint"""

    @pytest.mark.asyncio
    async def test_server_results_take_priority(self, source_factory, search_settings):
        fresh = company(1, "Acme Corp", "acme.com")
        stale = company(1, "Acme Corp (stale)", "acme.com")
        source = source_factory([stale, company(2, "Acme Labs")], server_results={"acme": [fresh]})
        search = make_search(source, search_settings)
        await search.cache.warm()

        results = await search.search("acme")

        assert results[0] is fresh
        assert {record.id for record in results} == {"1", "2"}

    @pytest.mark.asyncio
    async def test_multi_word_query_retries_with_first_word(self, source_factory, search_settings):
        hit = company(9, "Acme Corp")
        source = source_factory([], server_results={"acme": [hit]})
        search = make_search(source, search_settings)

        results = await search.search("acme corp")
        await drain(search)

        assert source.server_queries == ["acme corp", "acme"]
        assert results == [hit]

    @pytest.mark.asyncio
    async def test_server_hits_skip_live_fallback(self, source_factory, search_settings):
        source = source_factory([company(1, "Acme Corp")], server_results={"acme": [company(1, "Acme Corp")]})
        search = make_search(source, search_settings)
        search.cache.loading = True

        await search.search("acme")

        assert source.calls == []

    @pytest.mark.asyncio
    async def test_server_search_failure_falls_through(self, source_factory, sample_companies, search_settings):
        source = source_factory(sample_companies, server_error=httpx.ReadTimeout("slow"))
        search = make_search(source, search_settings)
        search.cache.loading = True

        with capture_logs() as logs:
            results = await search.search("acme")

        assert [record.id for record in results][:1] == ["1"]
        assert any(e["event"] == "Upstream search failed" for e in logs)


class TestSearchOptions:

    @pytest.mark.asyncio
    async def test_options_are_labelled_and_truncated(self, source_factory, search_settings):
        long_name = "Acme " + "Widgets " * 20
        source = source_factory([company(1, "Acme Corp", "acme.com"), company(2, long_name)])
        search = make_search(source, search_settings)
        await search.cache.warm()

        options = await search.search_options("acme")

        assert options[0].label == "Acme Corp • acme.com"
        assert options[0].value == "1"
        assert len(options[1].label) == 75
        assert options[1].value == "2"

    @pytest.mark.asyncio
    async def test_missing_title_uses_fallback_label(self, source_factory, search_settings):
        config = SearchConfig(search_fields=["domain", "name"], display_field="name", secondary_field="domain")
        source = source_factory([company(1, "", "acme.com")], config=config)
        search = make_search(source, search_settings)
        await search.cache.warm()

        options = await search.search_options("acme")

        assert options[0].label == "Unnamed record • acme.com"

    @pytest.mark.asyncio
    async def test_short_query_yields_no_options(self, source_factory, sample_companies, search_settings):
        search = make_search(source_factory(sample_companies), search_settings)
        assert await search.search_options("ac") == []
