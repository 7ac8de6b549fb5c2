"""
Record source capability interface

Every searchable upstream directory (CRM companies, task-system clients,
spreadsheet tables) is adapted to this small interface so that caching,
scoring, live fallback and ranking are written once.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.data_models import Page, Record, SearchConfig
from ..models.response_models import SearchOption
from .text import field_to_text

OPTION_SEPARATOR = " • "


class RecordSource(ABC):
    """A paginated upstream listing that records can be searched in"""

    name: str = "source"
    fallback_label: str = "Unnamed record"

    # Extra attempts per live page request on transient failures.
    live_retries: int = 0
    # Return partial live matches instead of raising once retries run out.
    tolerate_live_errors: bool = False
    supports_server_search: bool = False
    # Whether the default configuration is served from a warmed cache.
    cacheable: bool = True

    warm_timeout: float = 8.0
    live_timeout: float = 1.5

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when credentials and identifiers are present"""

    @abstractmethod
    def default_config(self) -> SearchConfig:
        """Process-wide default search configuration"""

    @abstractmethod
    async def list_page(
        self,
        page_size: int,
        cursor: Optional[str],
        config: SearchConfig,
        query: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Page:
        """Fetch one page; ``query`` enables a server-side contains filter"""

    async def server_search(self, query: str, config: SearchConfig) -> List[Record]:
        """Upstream search endpoint, for sources that have one"""
        return []

    def record_identity(self, record: Record) -> str:
        return record.id

    def field_text(self, record: Record, field_name: str) -> str:
        return field_to_text(record.fields.get(field_name))

    def secondary_text(self, record: Record, config: SearchConfig) -> str:
        if not config.secondary_field:
            return ""
        return self.field_text(record, config.secondary_field)

    def format_option(self, record: Record, config: SearchConfig, max_length: int = 75) -> SearchOption:
        title = (self.field_text(record, config.display) if config.display else "") or self.fallback_label
        secondary = self.secondary_text(record, config)
        label = f"{title}{OPTION_SEPARATOR}{secondary}" if secondary else title
        return SearchOption(label=label[:max_length], value=str(self.record_identity(record)))
