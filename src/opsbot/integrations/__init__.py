"""
API Integrations Package

This package provides the upstream integrations used by the bot:
- HubSpot CRM client (companies, deal property options)
- Double client task system client (clients, task templates)
- Airtable client (table records, formulas)
- Base client with common functionality (rate limiting, timeouts, metrics)
- Search manager wiring every client into the search layer

Each client also exposes a record source adapter so the search layer can
cache and search it without knowing the upstream API.
"""

from .base_client import BaseAPIClient, RateLimitConfig
from .hubspot_client import HubSpotClient, HubSpotCompanySource
from .hubspot_properties import DealPropertyKind, DealPropertyOptions
from .double_client import DoubleClient, DoubleClientSource
from .airtable_client import (
    AirtableClient,
    AirtableRecordSource,
    build_contains_formula,
    build_filter_formula,
)
from .client_manager import (
    SearchManager,
    get_search_manager,
    HUBSPOT_COMPANIES,
    DOUBLE_CLIENTS,
    AIRTABLE_CLIENT_NAMES,
    AIRTABLE_CLIENT_SOFTWARE,
)

__all__ = [
    # Base functionality
    "BaseAPIClient",
    "RateLimitConfig",

    # Search wiring
    "SearchManager",
    "get_search_manager",
    "HUBSPOT_COMPANIES",
    "DOUBLE_CLIENTS",
    "AIRTABLE_CLIENT_NAMES",
    "AIRTABLE_CLIENT_SOFTWARE",

    # HubSpot integration
    "HubSpotClient",
    "HubSpotCompanySource",
    "DealPropertyKind",
    "DealPropertyOptions",

    # Double integration
    "DoubleClient",
    "DoubleClientSource",

    # Airtable integration
    "AirtableClient",
    "AirtableRecordSource",
    "build_contains_formula",
    "build_filter_formula",
]
