"""
Airtable Client Implementation

This module provides the Airtable integration used by the bot:
- Record listing with offset pagination, field projection and formulas
- Lookup by field value, record creation and field updates
- Formula builders with escaping
- A record source adapter per table for the type-ahead search layer
"""

import math
import re
from typing import Any, Dict, List, Optional, Sequence

import structlog

from ..config.settings import AirtableSettings
from ..models.data_models import Page, Record, SearchConfig
from ..search.source import RecordSource
from .base_client import BaseAPIClient, RateLimitConfig
from ..errors import ConfigurationError

logger = structlog.get_logger(__name__)

_REGEX_SPECIALS = re.compile(r"[.*+?^${}()|\[\]\\]")


def record_from_api_response(data: Dict[str, Any]) -> Record:
    """Create a Record from an Airtable record object"""
    return Record(id=str(data.get("id") or ""), fields=dict(data.get("fields") or {}))


def build_filter_formula(field_name: str, value: Any) -> str:
    """Equality formula; numeric-looking values also match numeric cells"""
    raw = "" if value is None else str(value)
    escaped = raw.replace("\\", "\\\\").replace("'", "\\'")
    string_expr = f"{{{field_name}}} = '{escaped}'"

    try:
        numeric = float(raw)
    except ValueError:
        return string_expr
    if not raw.strip() or not math.isfinite(numeric):
        return string_expr

    number = int(numeric) if numeric.is_integer() else numeric
    return f"OR({string_expr}, {{{field_name}}} = {number})"


def build_contains_formula(fields: Sequence[str], value: Any) -> str:
    """Case-insensitive contains filter over several fields"""
    raw = ("" if value is None else str(value)).strip().lower()
    if not raw or not fields:
        return ""
    escaped = _REGEX_SPECIALS.sub(lambda m: "\\" + m.group(0), raw)
    escaped = escaped.replace("\\", "\\\\").replace('"', '\\"')
    parts = [f'REGEX_MATCH(LOWER({{{name}}}), "{escaped}")' for name in fields]
    return parts[0] if len(parts) == 1 else f"OR({','.join(parts)})"


class AirtableClient(BaseAPIClient):
    """Airtable REST client using a personal access token"""

    provider = "airtable"

    def __init__(self, settings: Optional[AirtableSettings] = None, **kwargs):
        self.settings = settings or AirtableSettings()

        # Airtable allows 5 requests per second per base
        super().__init__(
            base_url=self.settings.base_url,
            rate_limit_config=RateLimitConfig(requests_per_minute=300, burst_size=5),
            timeout=self.settings.write_timeout_seconds,
            **kwargs
        )

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured()

    def is_table_configured(self, table_id: Optional[str]) -> bool:
        return self.settings.is_configured(table_id)

    async def _get_auth_headers(self) -> Dict[str, str]:
        if not self.settings.token:
            raise ConfigurationError("Airtable token missing.")
        return {"Authorization": f"Bearer {self.settings.token}"}

    def _table_endpoint(self, table_id: Optional[str]) -> str:
        table = table_id or self.settings.client_names_table_id
        if not self.settings.is_configured(table):
            raise ConfigurationError("Airtable config missing.")
        return f"/{self.settings.base_id}/{table}"

    async def list_records(
        self,
        table_id: Optional[str] = None,
        page_size: int = 100,
        offset: Optional[str] = None,
        fields: Optional[List[str]] = None,
        filter_formula: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """One page of records: ``{"records": [...], "offset": cursor}``"""
        params: Dict[str, Any] = {
            "pageSize": page_size,
            "offset": offset,
            "filterByFormula": filter_formula or None,
        }
        if fields:
            params["fields[]"] = list(fields)

        response = await self._make_request(
            "GET",
            self._table_endpoint(table_id),
            params=params,
            timeout=timeout,
        )
        payload = response.json() or {}
        return {
            "records": [record_from_api_response(item) for item in payload.get("records") or []],
            "offset": payload.get("offset"),
        }

    async def find_record_by_field(
        self,
        field_name: str,
        value: Any,
        table_id: Optional[str] = None,
    ) -> Optional[Record]:
        endpoint = self._table_endpoint(table_id)
        if not field_name:
            raise ValueError("Airtable field name is required.")
        if value is None or value == "":
            return None

        response = await self._make_request(
            "GET",
            endpoint,
            params={"maxRecords": 1, "filterByFormula": build_filter_formula(field_name, value)},
            timeout=self.settings.write_timeout_seconds,
        )
        records = (response.json() or {}).get("records") or []
        return record_from_api_response(records[0]) if records else None

    async def create_record(self, fields: Dict[str, Any], table_id: Optional[str] = None) -> Record:
        endpoint = self._table_endpoint(table_id)
        if not fields:
            raise ValueError("Airtable create requires at least one field.")

        response = await self._make_request(
            "POST",
            endpoint,
            json={"fields": fields},
            timeout=self.settings.write_timeout_seconds,
        )
        record = record_from_api_response(response.json() or {})
        logger.info("Created record", table=endpoint, record_id=record.id)
        return record

    async def update_record_fields(
        self,
        record_id: str,
        fields: Dict[str, Any],
        table_id: Optional[str] = None,
    ) -> Record:
        endpoint = self._table_endpoint(table_id)
        if not record_id:
            raise ValueError("Airtable record id is required.")
        if not fields:
            raise ValueError("Airtable update requires at least one field.")

        response = await self._make_request(
            "PATCH",
            f"{endpoint}/{record_id}",
            json={"fields": fields},
            timeout=self.settings.write_timeout_seconds,
        )
        logger.info("Updated record fields", table=endpoint, record_id=record_id, fields=sorted(fields))
        return record_from_api_response(response.json() or {})


class AirtableRecordSource(RecordSource):
    """One Airtable table as a searchable record source"""

    fallback_label = "Unnamed record"

    def __init__(
        self,
        client: AirtableClient,
        table_id: str,
        name: str = "airtable_records",
        config: Optional[SearchConfig] = None,
        cacheable: bool = True,
    ):
        self.client = client
        self.table_id = table_id
        self.name = name
        self.cacheable = cacheable
        self.live_retries = client.settings.live_retries
        self.live_timeout = client.settings.live_timeout_seconds
        self.warm_timeout = client.settings.warm_timeout_seconds
        self._config = config or SearchConfig(
            search_fields=client.settings.search_field_list,
            display_field=client.settings.default_display_field,
            secondary_field=client.settings.default_secondary_field,
        )

    @property
    def is_configured(self) -> bool:
        return self.client.is_table_configured(self.table_id)

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
        page = await self.client.list_records(
            table_id=self.table_id,
            page_size=page_size,
            offset=cursor,
            fields=config.requested_fields,
            filter_formula=build_contains_formula(config.search_fields, query) if query else None,
            timeout=timeout,
        )
        return Page(records=page["records"], next_cursor=page["offset"])
