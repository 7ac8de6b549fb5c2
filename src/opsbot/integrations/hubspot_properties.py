"""
Deal property option lists

Select fields in the intake forms ("Deal type", "How did you hear about
us?") are backed by HubSpot deal property options. The property name is
either configured or discovered from the property metadata, and both the
name and the option list are cached for a TTL.
"""

import time
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog

from ..models.response_models import SearchOption
from ..errors import summarize_error
from .hubspot_client import HubSpotClient

logger = structlog.get_logger(__name__)

MAX_OPTIONS = 100
MAX_OPTION_LENGTH = 75


class DealPropertyKind(str, Enum):
    DEAL_TYPE = "deal_type"
    HEAR_ABOUT_US = "hear_about_us"


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def pick_deal_type_property(properties: List[Dict[str, Any]]) -> Optional[str]:
    for prop in properties:
        if _norm(prop.get("label")) == "deal type" and prop.get("name"):
            return prop["name"]
    for prop in properties:
        if _norm(prop.get("name")) in ("dealtype", "deal_type") and prop.get("name"):
            return prop["name"]
    for prop in properties:
        if "deal type" in _norm(prop.get("label")) and prop.get("name"):
            return prop["name"]
    for prop in properties:
        if _norm(prop.get("fieldType")) == "select" and prop.get("options"):
            return prop.get("name") or None
    return None


def pick_hear_about_us_property(properties: List[Dict[str, Any]]) -> Optional[str]:
    for prop in properties:
        if "how did you hear" in _norm(prop.get("label")) and prop.get("name"):
            return prop["name"]
    for prop in properties:
        if "hear about" in _norm(prop.get("label")) and prop.get("name"):
            return prop["name"]
    for prop in properties:
        name = _norm(prop.get("name"))
        if "hear" in name and "about" in name:
            return prop["name"]
    return None


PICKERS: Dict[DealPropertyKind, Callable[[List[Dict[str, Any]]], Optional[str]]] = {
    DealPropertyKind.DEAL_TYPE: pick_deal_type_property,
    DealPropertyKind.HEAR_ABOUT_US: pick_hear_about_us_property,
}


def format_property_option(option: Dict[str, Any]) -> SearchOption:
    label = option.get("label") or option.get("value") or "Unknown"
    value = option.get("value") or label
    return SearchOption(label=label[:MAX_OPTION_LENGTH], value=value[:MAX_OPTION_LENGTH])


class DealPropertyOptions:
    """TTL-cached option list for one deal property"""

    def __init__(
        self,
        client: HubSpotClient,
        kind: DealPropertyKind,
        override: str = "",
        ttl_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.kind = kind
        self.override = (override or "").strip()
        self.ttl_seconds = ttl_seconds
        self.clock = clock

        self.loading = False
        self.loaded = False
        self.last_loaded_at = 0.0
        self.options: List[Dict[str, Any]] = []
        self.property_name: Optional[str] = None
        self.property_name_loaded_at = 0.0

    def _fresh(self, stamp: float) -> bool:
        return self.clock() - stamp < self.ttl_seconds

    async def resolve_property_name(self, ignore_override: bool = False) -> Optional[str]:
        if self.override and not ignore_override:
            return self.override

        if self.property_name and self._fresh(self.property_name_loaded_at):
            return self.property_name

        properties = await self.client.get_deal_properties()
        resolved = PICKERS[self.kind](properties)
        if resolved:
            self.property_name = resolved
            self.property_name_loaded_at = self.clock()
            logger.info("Resolved deal property", kind=self.kind.value, property=resolved)
        else:
            logger.error("Deal property not found", kind=self.kind.value)
        return resolved

    async def _fetch_options(self) -> List[Dict[str, Any]]:
        property_name = await self.resolve_property_name()
        if not property_name:
            return []

        try:
            options = await self.client.get_deal_property_options(property_name)
        except Exception:
            # A stale or mistyped override: fall back to discovery once.
            if not self.override:
                raise
            discovered = await self.resolve_property_name(ignore_override=True)
            if not discovered or discovered == property_name:
                raise
            options = await self.client.get_deal_property_options(discovered)
            property_name = discovered

        self.property_name = property_name
        self.property_name_loaded_at = self.clock()
        return options

    async def get_options(self) -> List[Dict[str, Any]]:
        if not self.client.is_configured:
            return []

        if self.loaded and self.options and self._fresh(self.last_loaded_at):
            return self.options

        if self.loading:
            return self.options

        self.loading = True
        try:
            self.options = await self._fetch_options()
            self.loaded = True
            self.last_loaded_at = self.clock()
        except Exception as e:
            logger.error("Deal property options load failed", kind=self.kind.value, **summarize_error(e))
        finally:
            self.loading = False

        return self.options

    async def search(self, raw_query: Optional[str], exclude_terms: Iterable[str] = ()) -> List[SearchOption]:
        if not self.client.is_configured:
            logger.error("HubSpot token missing; deal property search skipped", kind=self.kind.value)
            return []

        query = _norm(raw_query)
        excluded = [_norm(term) for term in exclude_terms if _norm(term)]
        options = await self.get_options()

        results = []
        for option in options:
            label = _norm(option.get("label"))
            value = _norm(option.get("value"))
            if query and query not in label and query not in value:
                continue
            if any(term in f"{label} {value}" for term in excluded):
                continue
            results.append(option)

        return [format_property_option(option) for option in results[:MAX_OPTIONS]]
