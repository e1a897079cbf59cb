"""Tests for Settings loading."""

import pytest
from pydantic import ValidationError

from district_lookup.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DISTRICT_LOOKUP_PROVIDER_TIMEOUT", raising=False)
        settings = Settings(_env_file=None)

        assert settings.provider_timeout == 10.0
        assert settings.geometry_backend == "postgis"
        assert settings.default_methods == ["census"]
        assert settings.geocode_services.census.enabled is True
        assert settings.geocode_services.usps.client_id is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DISTRICT_LOOKUP_PROVIDER_TIMEOUT", "2.5")
        monkeypatch.setenv("DISTRICT_LOOKUP_GEOMETRY_BACKEND", "file")
        monkeypatch.setenv("DISTRICT_LOOKUP_GEOCODE_SERVICES__USPS__CLIENT_ID", "abc")
        monkeypatch.setenv("DISTRICT_LOOKUP_GEOCODE_SERVICES__USPS__CLIENT_SECRET", "xyz")

        settings = Settings(_env_file=None)

        assert settings.provider_timeout == 2.5
        assert settings.geometry_backend == "file"
        assert settings.geocode_services.usps.client_id == "abc"
        assert settings.geocode_services.usps.client_secret == "xyz"
        # Untouched siblings keep their defaults
        assert settings.geocode_services.usps.base_url == "https://apis.usps.com"

    def test_list_from_json(self, monkeypatch):
        monkeypatch.setenv("DISTRICT_LOOKUP_DEFAULT_METHODS", '["census", "usps"]')
        assert Settings(_env_file=None).default_methods == ["census", "usps"]

    def test_unknown_default_method_fails_on_load(self, monkeypatch):
        monkeypatch.setenv("DISTRICT_LOOKUP_DEFAULT_METHODS", '["census", "mapquest"]')

        with pytest.raises(ValidationError):
            Settings(_env_file=None)
