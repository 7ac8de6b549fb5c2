"""
Configuration Management

This module loads the bot's configuration from the environment (and an
optional .env file):
- Credentials and identifiers for each upstream service
- Default search field configuration per source
- Timeouts for the interactive search path and for background warms
- Search, cache and scheduling limits
"""

from typing import Dict, List, Optional
from enum import Enum

import structlog
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)


class Environment(str, Enum):
    """Application environment types"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def parse_fields_list(value: Optional[str]) -> List[str]:
    """Split a comma separated field list, dropping blanks"""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _section_config(prefix: str) -> SettingsConfigDict:
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class HubSpotSettings(BaseSettings):
    """HubSpot CRM settings"""

    model_config = _section_config("HUBSPOT_")

    private_app_token: str = Field(default="", description="Private app token")
    base_url: str = Field(default="https://api.hubapi.com", description="API base URL")
    portal_id: str = Field(default="", description="Portal id used for record links")
    deal_type_property: str = Field(default="dealtype", description="Deal type property override")
    hear_about_us_property: str = Field(default="", description="Hear-about-us property override")

    search_fields: str = Field(default="name,domain", description="Company search fields")
    display_field: str = Field(default="name")
    secondary_field: str = Field(default="domain")

    search_timeout_seconds: float = Field(default=1.5, gt=0)
    live_timeout_seconds: float = Field(default=0.9, gt=0)
    warm_timeout_seconds: float = Field(default=8.0, gt=0)
    write_timeout_seconds: float = Field(default=8.0, gt=0)
    live_retries: int = Field(default=1, ge=0, le=5)

    @property
    def is_configured(self) -> bool:
        return bool(self.private_app_token)

    @property
    def search_field_list(self) -> List[str]:
        return parse_fields_list(self.search_fields)


class DoubleSettings(BaseSettings):
    """Double (client task system) settings"""

    model_config = _section_config("DOUBLE_")

    client_id: str = Field(default="")
    client_secret: str = Field(default="")
    base_url: str = Field(default="https://api.doublehq.com")

    search_fields: str = Field(
        default="name,email,primaryEmail,contactEmail,domain,emails,contacts",
    )
    display_field: str = Field(default="name")
    secondary_field: str = Field(default="email")

    token_timeout_seconds: float = Field(default=1.5, gt=0)
    live_timeout_seconds: float = Field(default=0.9, gt=0)
    warm_timeout_seconds: float = Field(default=8.0, gt=0)
    write_timeout_seconds: float = Field(default=8.0, gt=0)

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def search_field_list(self) -> List[str]:
        return parse_fields_list(self.search_fields)


class AirtableSettings(BaseSettings):
    """Airtable settings. The client names table is the cached one."""

    model_config = _section_config("AIRTABLE_")

    token: str = Field(default="")
    base_id: str = Field(default="")
    base_url: str = Field(default="https://api.airtable.com/v0")
    client_names_table_id: str = Field(default="")
    client_software_table_id: str = Field(default="")
    client_software_name_field: str = Field(default="Name")

    search_fields: str = Field(default="", description="Comma separated search fields")
    display_field: str = Field(default="")
    secondary_field: str = Field(default="")

    live_timeout_seconds: float = Field(default=1.5, gt=0)
    warm_timeout_seconds: float = Field(default=20.0, gt=0)
    write_timeout_seconds: float = Field(default=8.0, gt=0)
    live_retries: int = Field(default=1, ge=0, le=5)

    def is_configured(self, table_id: Optional[str] = None) -> bool:
        table = self.client_names_table_id if table_id is None else table_id
        return bool(self.token and self.base_id and table)

    @property
    def search_field_list(self) -> List[str]:
        return parse_fields_list(self.search_fields)

    @property
    def default_display_field(self) -> str:
        fields = self.search_field_list
        return self.display_field or (fields[0] if fields else "")

    @property
    def default_secondary_field(self) -> str:
        fields = self.search_field_list
        return self.secondary_field or (fields[1] if len(fields) > 1 else "")


class SearchSettings(BaseSettings):
    """Type-ahead search, cache and scheduling limits"""

    model_config = _section_config("SEARCH_")

    min_query_length: int = Field(default=3, ge=1)
    result_limit: int = Field(default=50, ge=1, le=100)
    label_max_length: int = Field(default=75, ge=10)

    min_live_matches: int = Field(default=7, ge=1)
    live_page_size: int = Field(default=100, ge=1, le=100)
    live_budget_ms: int = Field(default=1200, ge=100, le=10000)

    warm_max_pages: int = Field(default=50, ge=1)
    warm_page_size: int = Field(default=100, ge=1, le=100)
    warm_interval_seconds: int = Field(default=15 * 60, ge=10)

    option_cache_ttl_seconds: int = Field(default=15 * 60, ge=0)


class Settings(BaseSettings):
    """Main application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = Field(default="opsbot", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Environment = Field(default=Environment.DEVELOPMENT)
    debug: bool = Field(default=False)

    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_json: bool = Field(default=False, description="Render logs as JSON lines")

    hubspot: HubSpotSettings = Field(default_factory=HubSpotSettings)
    double: DoubleSettings = Field(default_factory=DoubleSettings)
    airtable: AirtableSettings = Field(default_factory=AirtableSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment setting"""
        if isinstance(v, str):
            v = v.lower()
            if v in ["dev", "develop"]:
                return Environment.DEVELOPMENT
            elif v in ["stage", "stag"]:
                return Environment.STAGING
            elif v in ["prod", "production"]:
                return Environment.PRODUCTION
        return v

    @model_validator(mode="after")
    def validate_debug_in_production(self):
        """Ensure debug is disabled in production"""
        if self.environment == Environment.PRODUCTION and self.debug:
            raise ValueError("Debug mode cannot be enabled in production environment")
        return self

    def credential_status(self) -> Dict[str, bool]:
        """Which credentials are present, without exposing values"""
        return {
            "hubspot_token": bool(self.hubspot.private_app_token),
            "double_client_id": bool(self.double.client_id),
            "double_client_secret": bool(self.double.client_secret),
            "airtable_token": bool(self.airtable.token),
            "airtable_base_id": bool(self.airtable.base_id),
            "airtable_client_names_table": bool(self.airtable.client_names_table_id),
            "airtable_client_software_table": bool(self.airtable.client_software_table_id),
            "airtable_search_fields": bool(self.airtable.search_field_list),
        }


def log_env_status(settings: "Settings") -> None:
    """Log which integrations have credentials loaded"""
    logger.info(
        "Booting opsbot",
        version=settings.app_version,
        environment=settings.environment.value,
        **settings.credential_status(),
    )


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings singleton"""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from configuration"""
    global settings
    settings = Settings()
    return settings
