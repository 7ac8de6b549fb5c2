"""
Double (client task system) Client Implementation

This module provides the Double integration used by the bot:
- OAuth2 client-credentials token, cached until shortly before expiry
- Client listing with offset pagination
- Client detail updates and task template application
- A record source adapter for the type-ahead search layer
"""

import asyncio
import time
from typing import Any, Dict, Iterable, List, Optional

import structlog

from ..config.settings import DoubleSettings
from ..models.data_models import Page, Record, SearchConfig
from ..search.source import RecordSource
from ..search.text import field_to_text
from .base_client import BaseAPIClient, RateLimitConfig
from ..errors import APIClientError, ConfigurationError

logger = structlog.get_logger(__name__)

TOKEN_ENDPOINT = "/oauth/token"
CLIENTS_ENDPOINT = "/api/clients"
TASK_TEMPLATES_ENDPOINT = "/api/task-templates"

TOKEN_EXPIRY_MARGIN_SECONDS = 60
DEFAULT_TOKEN_TTL_SECONDS = 23 * 60 * 60

EMAIL_FIELDS = ("email", "primaryEmail", "contactEmail")
EMAIL_LIST_FIELDS = ("emails", "emailAddresses")
CONTACT_FIELDS = ("contacts", "contact", "primaryContact")


def client_from_api_response(data: Dict[str, Any]) -> Record:
    """Create a Record from a Double client object"""
    ident = data.get("id")
    return Record(id="" if ident is None else str(ident), fields=dict(data))


def _first_present(fields: Dict[str, Any], names: Iterable[str]) -> Any:
    for name in names:
        value = fields.get(name)
        if value:
            return value
    return None


def _positive_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class DoubleClient(BaseAPIClient):
    """Double API client authenticated with client credentials"""

    provider = "double"

    def __init__(self, settings: Optional[DoubleSettings] = None, **kwargs):
        self.settings = settings or DoubleSettings()

        super().__init__(
            base_url=self.settings.base_url,
            rate_limit_config=RateLimitConfig(requests_per_minute=300, burst_size=5),
            timeout=self.settings.write_timeout_seconds,
            **kwargs
        )

        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_task: Optional[asyncio.Task] = None

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    async def get_access_token(self) -> str:
        """Cached access token; concurrent callers share one token request"""
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token
        if not self.is_configured:
            raise ConfigurationError("Double credentials are missing.")

        if self._token_task is None:
            self._token_task = asyncio.create_task(self._request_token())
        task = self._token_task
        try:
            return await asyncio.shield(task)
        finally:
            if task.done() and self._token_task is task:
                self._token_task = None

    async def _request_token(self) -> str:
        response = await self._make_request(
            "POST",
            TOKEN_ENDPOINT,
            data={
                "grant_type": "client_credentials",
                "client_id": self.settings.client_id,
                "client_secret": self.settings.client_secret,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=self.settings.token_timeout_seconds,
            authenticated=False,
        )
        payload = response.json() or {}
        token = payload.get("access_token")
        if not token:
            raise APIClientError("Double access token missing from response.")

        try:
            expires_in = float(payload.get("expires_in"))
        except (TypeError, ValueError):
            expires_in = 0
        ttl = (
            expires_in - TOKEN_EXPIRY_MARGIN_SECONDS
            if expires_in > TOKEN_EXPIRY_MARGIN_SECONDS
            else DEFAULT_TOKEN_TTL_SECONDS
        )

        self._token = token
        self._token_expires_at = time.monotonic() + ttl
        logger.info("Double access token refreshed", ttl_seconds=ttl)
        return token

    async def _get_auth_headers(self) -> Dict[str, str]:
        token = await self.get_access_token()
        return {"Authorization": f"Bearer {token}"}

    async def list_clients(
        self,
        limit: int = 100,
        offset: int = 0,
        timeout: Optional[float] = None,
    ) -> List[Record]:
        """One page of clients"""
        response = await self._make_request(
            "GET",
            CLIENTS_ENDPOINT,
            params={"limit": limit, "offset": offset},
            timeout=timeout,
        )
        payload = response.json()
        if not isinstance(payload, list):
            return []
        return [client_from_api_response(item) for item in payload if isinstance(item, dict)]

    async def update_client_details(self, client_id: str, details: Dict[str, Any]) -> None:
        if not client_id:
            raise ValueError("Double client id is required.")
        await self._make_request(
            "PUT",
            f"{CLIENTS_ENDPOINT}/{client_id}/details",
            json={"details": details},
            timeout=self.settings.write_timeout_seconds,
        )

    async def apply_task_template(self, task_template_id: Any, client_ids: Iterable[Any]) -> Dict[str, Any]:
        """Apply a task template to clients; invalid ids are skipped"""
        template_id = _positive_int(task_template_id)
        ids = [number for number in (_positive_int(cid) for cid in client_ids or []) if number]

        if template_id is None:
            return {"applied": False, "reason": "invalid_template_id"}
        if not ids:
            return {"applied": False, "reason": "missing_client_ids"}

        await self._make_request(
            "POST",
            TASK_TEMPLATES_ENDPOINT,
            json={"clientIds": ids, "taskTemplateId": template_id},
            timeout=self.settings.write_timeout_seconds,
        )
        return {"applied": True, "taskTemplateId": template_id, "clientIds": ids}


class DoubleClientSource(RecordSource):
    """Double clients as a searchable record source"""

    name = "double_clients"
    fallback_label = "Unnamed client"

    def __init__(self, client: DoubleClient):
        self.client = client
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
        offset = int(cursor or 0)
        records = await self.client.list_clients(limit=page_size, offset=offset, timeout=timeout)
        # A short page is the last one.
        next_cursor = str(offset + len(records)) if len(records) >= page_size else None
        return Page(records=records, next_cursor=next_cursor)

    def field_text(self, record: Record, field_name: str) -> str:
        # "contacts" and "emails" also cover the alternate keys clients use.
        if field_name == CONTACT_FIELDS[0]:
            value = _first_present(record.fields, CONTACT_FIELDS)
        elif field_name == EMAIL_LIST_FIELDS[0]:
            value = _first_present(record.fields, EMAIL_LIST_FIELDS)
        else:
            value = record.fields.get(field_name)

        if field_name in CONTACT_FIELDS:
            contacts = value if isinstance(value, list) else [value]
            parts = []
            for contact in contacts:
                if not isinstance(contact, dict):
                    continue
                for key in ("name", "email", "primaryEmail"):
                    text = contact.get(key)
                    if isinstance(text, str) and text.strip():
                        parts.append(text)
            return ", ".join(parts)
        return field_to_text(value)

    def secondary_text(self, record: Record, config: SearchConfig) -> str:
        if config.secondary_field and config.secondary_field != self._config.secondary_field:
            return super().secondary_text(record, config)

        for field_name in EMAIL_FIELDS:
            value = record.fields.get(field_name)
            if isinstance(value, str) and value:
                return value
        emails = _first_present(record.fields, EMAIL_LIST_FIELDS)
        if isinstance(emails, list) and emails and isinstance(emails[0], str):
            return emails[0]
        return ""
