"""Tests for the geocoding provider adapters, against httpx.MockTransport."""

import asyncio

import httpx
import pytest

from district_lookup.config import (
    GeocodeServicesConfig,
    GoogleMapsConfig,
    Settings,
    SmartyConfig,
    USPSConfig,
)
from district_lookup.geocoding import Coordinates, GeocodeProviderRegistry, GeocodeResult
from district_lookup.geocoding.services.census import CensusGeocoder, smooth_casing
from district_lookup.geocoding.services.google_maps import GoogleMapsGeocoder
from district_lookup.geocoding.services.smarty import SmartyGeocoder
from district_lookup.geocoding.services.usps import USPSGeocoder, USPSOAuthTokenCache
from district_lookup.normalizer import NormalizedAddress


def geocode(provider, address, handler) -> GeocodeResult:
    """Run provider.geocode against a MockTransport handler."""

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await provider.geocode(address, client)

    return asyncio.run(run())


def unreachable(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"Unexpected request to {request.url}")


@pytest.fixture
def credentials() -> Settings:
    return Settings(
        geocode_services=GeocodeServicesConfig(
            usps=USPSConfig(client_id="usps-id", client_secret="usps-secret"),
            google=GoogleMapsConfig(api_key="google-key"),
            smarty=SmartyConfig(auth_id="smarty-id", auth_token="smarty-token"),
        )
    )


class TestRegistry:
    def test_all_providers_registered(self):
        assert GeocodeProviderRegistry.list_providers() == ["census", "google", "smarty", "usps"]

    def test_get_provider(self, credentials):
        assert isinstance(GeocodeProviderRegistry.get_provider("census", credentials), CensusGeocoder)

    def test_unknown_provider(self, credentials):
        with pytest.raises(ValueError, match="Unknown geocoding provider"):
            GeocodeProviderRegistry.get_provider("mapquest", credentials)

    def test_unconfigured_without_credentials(self):
        providers = GeocodeProviderRegistry.create_all(Settings())
        configured = {name: p.is_configured() for name, p in providers.items()}
        assert configured == {"census": True, "google": False, "smarty": False, "usps": False}


class TestGeocodeResult:
    def test_success_requires_coordinates(self):
        with pytest.raises(ValueError):
            GeocodeResult(provider_name="census", success=True)

    def test_failure_cannot_carry_coordinates(self):
        with pytest.raises(ValueError):
            GeocodeResult(
                provider_name="census", success=False, coordinates=Coordinates(lat=1.0, lon=2.0)
            )


class TestCensus:
    def test_match(self, credentials, lake_havasu, census_match):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=census_match)

        result = geocode(CensusGeocoder(credentials), lake_havasu, handler)

        assert seen["path"] == "/geocoder/locations/onelineaddress"
        assert seen["params"]["address"] == "2330 McCulloch Blvd, Lake Havasu City, AZ 86403"
        assert seen["params"]["benchmark"] == "Public_AR_Current"
        assert result.success is True
        assert result.coordinates == Coordinates(lat=34.48, lon=-114.33)
        assert result.zip4 is None
        assert result.standardized_address.street == "2330 Mcculloch Blvd N"
        assert result.standardized_address.city == "Lake Havasu City"
        assert result.match_type == "match"

    def test_no_match(self, credentials, lake_havasu):
        def handler(request):
            return httpx.Response(200, json={"result": {"addressMatches": []}})

        result = geocode(CensusGeocoder(credentials), lake_havasu, handler)

        assert result.success is False
        assert result.coordinates is None
        assert result.raw_error == "Address not found by Census geocoder"

    @pytest.mark.parametrize("body", [{"result": None}, []])
    def test_malformed_body(self, credentials, lake_havasu, body):
        result = geocode(
            CensusGeocoder(credentials), lake_havasu, lambda request: httpx.Response(200, json=body)
        )

        assert result.success is False
        assert result.raw_error == "Unexpected response from Census Geocoder"

    def test_http_error(self, credentials, lake_havasu):
        result = geocode(
            CensusGeocoder(credentials), lake_havasu, lambda request: httpx.Response(500)
        )
        assert result.success is False
        assert result.raw_error == "HTTP 500"

    def test_timeout(self, credentials, lake_havasu):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = geocode(CensusGeocoder(credentials), lake_havasu, handler)
        assert result.raw_error == "Request timeout"

    def test_network_error(self, credentials, lake_havasu):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = geocode(CensusGeocoder(credentials), lake_havasu, handler)
        assert result.success is False
        assert result.raw_error == "connection refused"

    def test_unexpected_payload(self, credentials, lake_havasu):
        def handler(request):
            return httpx.Response(200, json={"result": {"addressMatches": [{"coordinates": {}}]}})

        result = geocode(CensusGeocoder(credentials), lake_havasu, handler)
        assert result.success is False
        assert result.raw_error == "Unexpected response from Census Geocoder"

    def test_smooth_casing(self):
        assert smooth_casing("LAKE HAVASU CITY") == "Lake Havasu City"
        assert smooth_casing("McCulloch Blvd") == "McCulloch Blvd"


class TestUSPS:
    USPS_RESPONSE = {
        "address": {
            "streetAddress": "2330 MCCULLOCH BLVD N",
            "city": "LAKE HAVASU CITY",
            "state": "AZ",
            "ZIPCode": "86403",
            "ZIPPlus4": "5950",
        },
        "additionalInfo": {"DPVConfirmation": "Y", "carrierRoute": "C012"},
    }

    def _handler(self, census_payload, calls, usps_status=200, usps_body=None):
        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            if request.url.path == "/oauth2/v3/token":
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            if request.url.path == "/addresses/v3/address":
                assert request.headers["Authorization"] == "Bearer tok"
                calls.append(dict(request.url.params))
                return httpx.Response(usps_status, json=usps_body or self.USPS_RESPONSE)
            if request.url.host == "geocoding.geo.census.gov":
                return httpx.Response(200, json=census_payload)
            raise AssertionError(f"Unexpected request to {request.url}")

        return handler

    def test_standardized_and_located(self, credentials, lake_havasu, census_match):
        calls = []
        provider = USPSGeocoder(credentials, token_cache=USPSOAuthTokenCache())

        result = geocode(provider, lake_havasu, self._handler(census_match, calls))

        assert result.success is True
        assert result.zip4 == "5950"
        assert result.coordinates == Coordinates(lat=34.48, lon=-114.33)
        assert result.standardized_address.street == "2330 Mcculloch Blvd N"
        assert result.standardized_address.one_line() == (
            "2330 Mcculloch Blvd N, Lake Havasu City, AZ 86403-5950"
        )
        assert result.match_type == "standardized"
        assert result.raw_response["dpv_confirmation"] == "Y"

    def test_token_is_cached(self, credentials, lake_havasu, census_match):
        calls = []
        provider = USPSGeocoder(credentials, token_cache=USPSOAuthTokenCache())
        handler = self._handler(census_match, calls)

        geocode(provider, lake_havasu, handler)
        geocode(provider, lake_havasu, handler)

        assert calls.count("/oauth2/v3/token") == 1
        assert provider.status()["tokenValid"] is True

    def test_secondary_is_forwarded(self, credentials, census_match):
        calls = []
        provider = USPSGeocoder(credentials, token_cache=USPSOAuthTokenCache())
        address = NormalizedAddress(
            street="2330 McCulloch Blvd", city="Lake Havasu City", state="AZ", secondary="Apt 5"
        )

        geocode(provider, address, self._handler(census_match, calls))

        params = next(c for c in calls if isinstance(c, dict))
        assert params["secondaryAddress"] == "Apt 5"
        assert "ZIPCode" not in params

    def test_usps_error_message(self, credentials, lake_havasu, census_match):
        calls = []
        provider = USPSGeocoder(credentials, token_cache=USPSOAuthTokenCache())
        handler = self._handler(
            census_match,
            calls,
            usps_status=400,
            usps_body={"error": {"code": "400", "message": "Address Not Found."}},
        )

        result = geocode(provider, lake_havasu, handler)

        assert result.success is False
        assert result.raw_error == "HTTP 400: Address Not Found."

    def test_unauthorized_invalidates_token(self, credentials, lake_havasu, census_match):
        calls = []
        cache = USPSOAuthTokenCache()
        provider = USPSGeocoder(credentials, token_cache=cache)
        handler = self._handler(census_match, calls, usps_status=401, usps_body={"error": {}})

        result = geocode(provider, lake_havasu, handler)

        assert result.raw_error == "HTTP 401"
        assert cache.is_valid() is False

    def test_standardized_but_not_located(self, credentials, lake_havasu):
        calls = []
        provider = USPSGeocoder(credentials, token_cache=USPSOAuthTokenCache())
        handler = self._handler({"result": {"addressMatches": []}}, calls)

        result = geocode(provider, lake_havasu, handler)

        assert result.success is False
        assert result.coordinates is None
        assert result.zip4 == "5950"
        assert result.standardized_address.city == "Lake Havasu City"
        assert "could not be located" in result.raw_error

    def test_not_configured(self, lake_havasu):
        provider = USPSGeocoder(Settings(), token_cache=USPSOAuthTokenCache())

        result = geocode(provider, lake_havasu, unreachable)

        assert result.success is False
        assert result.raw_error == "USPS API not configured"


class TestGoogle:
    GOOGLE_RESPONSE = {
        "status": "OK",
        "results": [
            {
                "formatted_address": "2330 McCulloch Blvd N, Lake Havasu City, AZ 86403, USA",
                "place_id": "abc123",
                "address_components": [
                    {"long_name": "2330", "short_name": "2330", "types": ["street_number"]},
                    {
                        "long_name": "McCulloch Boulevard North",
                        "short_name": "McCulloch Blvd N",
                        "types": ["route"],
                    },
                    {
                        "long_name": "Lake Havasu City",
                        "short_name": "Lake Havasu City",
                        "types": ["locality", "political"],
                    },
                    {
                        "long_name": "Arizona",
                        "short_name": "AZ",
                        "types": ["administrative_area_level_1", "political"],
                    },
                    {"long_name": "86403", "short_name": "86403", "types": ["postal_code"]},
                    {"long_name": "5950", "short_name": "5950", "types": ["postal_code_suffix"]},
                ],
                "geometry": {
                    "location": {"lat": 34.4801, "lng": -114.3302},
                    "location_type": "ROOFTOP",
                },
            }
        ],
    }

    def test_match_with_zip4(self, credentials, lake_havasu):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=self.GOOGLE_RESPONSE)

        result = geocode(GoogleMapsGeocoder(credentials), lake_havasu, handler)

        assert seen["params"]["key"] == "google-key"
        assert result.success is True
        assert result.zip4 == "5950"
        assert result.coordinates == Coordinates(lat=34.4801, lon=-114.3302)
        assert result.match_type == "exact"
        assert result.standardized_address.state == "AZ"
        assert result.standardized_address.one_line().startswith("2330 McCulloch Blvd N")

    def test_zero_results(self, credentials, lake_havasu):
        def handler(request):
            return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})

        result = geocode(GoogleMapsGeocoder(credentials), lake_havasu, handler)
        assert result.raw_error == "Address not found by Google Maps"

    def test_request_denied(self, credentials, lake_havasu):
        def handler(request):
            return httpx.Response(
                200,
                json={"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."},
            )

        result = geocode(GoogleMapsGeocoder(credentials), lake_havasu, handler)
        assert result.success is False
        assert result.raw_error == "The provided API key is invalid."

    def test_not_configured(self, lake_havasu):
        result = geocode(GoogleMapsGeocoder(Settings()), lake_havasu, unreachable)
        assert result.raw_error == "Google Maps API not configured"


class TestSmarty:
    SMARTY_RESPONSE = [
        {
            "delivery_line_1": "2330 McCulloch Blvd N",
            "components": {
                "city_name": "Lake Havasu City",
                "state_abbreviation": "AZ",
                "zipcode": "86403",
                "plus4_code": "5950",
            },
            "metadata": {
                "latitude": 34.48012,
                "longitude": -114.33021,
                "precision": "Zip9",
                "county_fips": "04015",
                "congressional_district": "09",
            },
            "analysis": {"dpv_match_code": "Y"},
        }
    ]

    def test_match(self, credentials, lake_havasu):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=self.SMARTY_RESPONSE)

        result = geocode(SmartyGeocoder(credentials), lake_havasu, handler)

        assert seen["path"] == "/street-address"
        assert seen["params"]["auth-id"] == "smarty-id"
        assert seen["params"]["zipcode"] == "86403"
        assert result.success is True
        assert result.zip4 == "5950"
        assert result.coordinates == Coordinates(lat=34.48012, lon=-114.33021)
        assert result.raw_response["county_fips"] == "04015"

    def test_no_candidates(self, credentials, lake_havasu):
        result = geocode(
            SmartyGeocoder(credentials), lake_havasu, lambda request: httpx.Response(200, json=[])
        )
        assert result.success is False
        assert result.raw_error == "Address not found by Smarty"

    def test_rate_limited(self, credentials, lake_havasu):
        result = geocode(
            SmartyGeocoder(credentials), lake_havasu, lambda request: httpx.Response(429)
        )
        assert result.raw_error == "HTTP 429"
