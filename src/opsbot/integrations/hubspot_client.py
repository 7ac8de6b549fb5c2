"""
HubSpot CRM Client Implementation

This module provides the HubSpot integration used by the bot:
- Company listing with cursor pagination and property projection
- Company search via the CRM search endpoint (CONTAINS_TOKEN filters)
- Company property updates
- Deal property metadata and option lists
- A record source adapter for the type-ahead search layer
"""

from typing import Any, Dict, List, Optional

import structlog

from ..config.settings import HubSpotSettings
from ..models.data_models import Page, Record, SearchConfig
from ..search.source import RecordSource
from .base_client import BaseAPIClient, RateLimitConfig
from ..errors import ConfigurationError

logger = structlog.get_logger(__name__)

COMPANIES_ENDPOINT = "/crm/v3/objects/companies"
COMPANY_SEARCH_ENDPOINT = "/crm/v3/objects/companies/search"
DEAL_PROPERTIES_ENDPOINT = "/crm/v3/properties/deals"


def company_from_api_response(data: Dict[str, Any]) -> Record:
    """Create a Record from a CRM company object"""
    return Record(id=str(data.get("id") or ""), fields=dict(data.get("properties") or {}))


class HubSpotClient(BaseAPIClient):
    """HubSpot CRM v3 client using a private app token"""

    provider = "hubspot"

    def __init__(self, settings: Optional[HubSpotSettings] = None, **kwargs):
        self.settings = settings or HubSpotSettings()

        # Private apps get 100 requests per 10 seconds
        rate_limit_config = RateLimitConfig(requests_per_minute=600, burst_size=10)

        super().__init__(
            base_url=self.settings.base_url,
            rate_limit_config=rate_limit_config,
            timeout=self.settings.write_timeout_seconds,
            **kwargs
        )

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    async def _get_auth_headers(self) -> Dict[str, str]:
        if not self.settings.private_app_token:
            raise ConfigurationError("HubSpot token missing.")
        return {"Authorization": f"Bearer {self.settings.private_app_token}"}

    async def list_companies(
        self,
        limit: int = 100,
        after: Optional[str] = None,
        properties: Optional[List[str]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """One page of companies: ``{"results": [...], "after": cursor}``"""
        response = await self._make_request(
            "GET",
            COMPANIES_ENDPOINT,
            params={
                "limit": limit,
                "after": after,
                "properties": ",".join(properties or ["name", "domain"]),
            },
            timeout=timeout,
        )
        payload = response.json() or {}
        next_page = (payload.get("paging") or {}).get("next") or {}
        return {
            "results": [company_from_api_response(item) for item in payload.get("results") or []],
            "after": next_page.get("after"),
        }

    async def search_companies(
        self,
        query: str,
        properties: Optional[List[str]] = None,
        limit: int = 50,
        timeout: Optional[float] = None,
    ) -> List[Record]:
        """Search companies whose properties contain the query token"""
        properties = properties or ["name", "domain"]
        body = {
            "filterGroups": [
                {"filters": [{"propertyName": prop, "operator": "CONTAINS_TOKEN", "value": query}]}
                for prop in properties
            ],
            "properties": properties,
            "limit": limit,
        }
        response = await self._make_request(
            "POST",
            COMPANY_SEARCH_ENDPOINT,
            json=body,
            timeout=timeout or self.settings.search_timeout_seconds,
        )
        payload = response.json() or {}
        return [company_from_api_response(item) for item in payload.get("results") or []]

    async def update_company_properties(self, company_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        """Patch company properties"""
        if not company_id:
            raise ValueError("HubSpot company id is required.")
        response = await self._make_request(
            "PATCH",
            f"{COMPANIES_ENDPOINT}/{company_id}",
            json={"properties": properties},
            timeout=self.settings.write_timeout_seconds,
        )
        logger.info("Updated company properties", company_id=company_id, properties=sorted(properties))
        return response.json() or {}

    async def get_deal_properties(self) -> List[Dict[str, Any]]:
        """Metadata for every deal property"""
        response = await self._make_request(
            "GET",
            DEAL_PROPERTIES_ENDPOINT,
            timeout=self.settings.search_timeout_seconds,
        )
        return (response.json() or {}).get("results") or []

    async def get_deal_property_options(self, property_name: str) -> List[Dict[str, Any]]:
        """Visible options of one deal property, in display order"""
        response = await self._make_request(
            "GET",
            f"{DEAL_PROPERTIES_ENDPOINT}/{property_name}",
            timeout=self.settings.search_timeout_seconds,
        )
        options = (response.json() or {}).get("options") or []
        visible = [option for option in options if not option.get("hidden")]
        return sorted(visible, key=lambda option: option.get("displayOrder") or 0)

    def company_url(self, company_id: str) -> Optional[str]:
        if not self.settings.portal_id or not company_id:
            return None
        return f"https://app.hubspot.com/contacts/{self.settings.portal_id}/company/{company_id}"


class HubSpotCompanySource(RecordSource):
    """CRM companies as a searchable record source"""

    name = "hubspot_companies"
    fallback_label = "Unnamed company"
    supports_server_search = True
    tolerate_live_errors = True

    def __init__(self, client: HubSpotClient):
        self.client = client
        self.live_retries = client.settings.live_retries
        self.live_timeout = client.settings.live_timeout_seconds
        self.warm_timeout = client.settings.warm_timeout_seconds
        self._config = SearchConfig(
            search_fields=client.settings.search_field_list,
            display_field=client.settings.display_field,
            secondary_field=client.settings.secondary_field,
        )

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    def default_config(self) -> SearchConfig:
        return self._config

    async def list_page(
        self,
        page_size: int,
        cursor: Optional[str],
        config: SearchConfig,
        query: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Page:
        page = await self.client.list_companies(
            limit=page_size,
            after=cursor,
            properties=config.requested_fields,
            timeout=timeout,
        )
        return Page(records=page["results"], next_cursor=page["after"])

    async def server_search(self, query: str, config: SearchConfig) -> List[Record]:
        return await self.client.search_companies(query, properties=config.requested_fields)
