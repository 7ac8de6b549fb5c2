"""
Configuration Package

Environment-based settings for the upstream integrations and the search layer.
"""

from .settings import (
    Settings,
    Environment,
    LogLevel,
    HubSpotSettings,
    DoubleSettings,
    AirtableSettings,
    SearchSettings,
    parse_fields_list,
    log_env_status,
    get_settings,
    reload_settings
)

__all__ = [
    # Settings classes
    "Settings",
    "Environment",
    "LogLevel",
    "HubSpotSettings",
    "DoubleSettings",
    "AirtableSettings",
    "SearchSettings",

    # Settings functions
    "parse_fields_list",
    "log_env_status",
    "get_settings",
    "reload_settings"
]
