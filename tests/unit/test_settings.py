"""
Unit tests for configuration loading
"""

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from opsbot.config.settings import (
    AirtableSettings,
    DoubleSettings,
    Environment,
    HubSpotSettings,
    SearchSettings,
    Settings,
    get_settings,
    log_env_status,
    parse_fields_list,
    reload_settings,
)


class TestSectionSettings:

    def test_defaults(self):
        search = SearchSettings()

        assert search.min_query_length == 3
        assert search.result_limit == 50
        assert search.label_max_length == 75
        assert search.min_live_matches == 7
        assert search.live_budget_ms == 1200
        assert search.warm_max_pages == 50
        assert search.warm_interval_seconds == 900

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("SEARCH_MIN_LIVE_MATCHES", "3")
        monkeypatch.setenv("HUBSPOT_PRIVATE_APP_TOKEN", "pat-123")

        assert SearchSettings().min_live_matches == 3
        assert HubSpotSettings().is_configured is True

    def test_double_requires_id_and_secret(self):
        assert DoubleSettings(client_id="id", client_secret="").is_configured is False
        assert DoubleSettings(client_id="id", client_secret="s").is_configured is True

    def test_airtable_table_configuration(self):
        settings = AirtableSettings(token="t", base_id="b", client_names_table_id="tblNames")

        assert settings.is_configured() is True
        assert settings.is_configured("tblOther") is True
        assert settings.is_configured("") is False
        assert AirtableSettings(token="", base_id="b", client_names_table_id="x").is_configured() is False

    def test_airtable_display_defaults_follow_search_fields(self):
        settings = AirtableSettings(search_fields=" Client Name , Owner ,, Notes")

        assert settings.search_field_list == ["Client Name", "Owner", "Notes"]
        assert settings.default_display_field == "Client Name"
        assert settings.default_secondary_field == "Owner"

        explicit = AirtableSettings(search_fields="A,B", display_field="B", secondary_field="")
        assert explicit.default_display_field == "B"
        assert explicit.default_secondary_field == "B"

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            SearchSettings(live_page_size=0)


class TestSettings:

    @pytest.mark.parametrize("raw,expected", [
        ("dev", Environment.DEVELOPMENT),
        ("stage", Environment.STAGING),
        ("PROD", Environment.PRODUCTION),
    ])
    def test_environment_aliases(self, raw, expected):
        assert Settings(environment=raw).environment == expected

    def test_debug_forbidden_in_production(self):
        with pytest.raises(ValidationError):
            Settings(environment="production", debug=True)

    def test_credential_status_has_no_values(self, test_settings):
        status = test_settings.credential_status()

        assert status["hubspot_token"] is True
        assert status["airtable_search_fields"] is True
        assert "hs-test-token" not in str(status)

    def test_log_env_status(self, test_settings):
        with capture_logs() as logs:
            log_env_status(test_settings)

        event = logs[0]
        assert event["event"] == "Booting opsbot"
        assert event["double_client_secret"] is True
        assert "double-secret" not in str(event)


def test_parse_fields_list():
    assert parse_fields_list("name, domain ,") == ["name", "domain"]
    assert parse_fields_list("") == []
    assert parse_fields_list(None) == []


def test_reload_settings_rebuilds_singleton(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("APP_VERSION", "9.9.9")

    reloaded = reload_settings()

    assert reloaded is not first
    assert reloaded.app_version == "9.9.9"
    assert get_settings() is reloaded

    monkeypatch.delenv("APP_VERSION")
    reload_settings()
