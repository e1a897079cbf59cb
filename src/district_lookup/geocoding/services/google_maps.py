"""Google Maps Geocoding API provider implementation."""

from typing import Any

import httpx
from loguru import logger

from district_lookup.config import GoogleMapsConfig, Settings
from district_lookup.exceptions import ProviderFailure
from district_lookup.normalizer import NormalizedAddress

from ..base import (
    Coordinates,
    GeocodeProvider,
    GeocodeResult,
    StandardizedAddress,
)
from ..registry import GeocodeProviderRegistry

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

# location_type -> match_type reported on the result
LOCATION_TYPES = {
    "ROOFTOP": "exact",
    "RANGE_INTERPOLATED": "interpolated",
    "GEOMETRIC_CENTER": "approximate",
    "APPROXIMATE": "approximate",
}


def _components_by_type(address_components: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Index Google address_components by their first recognised type."""
    indexed: dict[str, dict[str, Any]] = {}
    for component in address_components:
        for component_type in component.get("types", []):
            indexed.setdefault(component_type, component)
    return indexed


@GeocodeProviderRegistry.register
class GoogleMapsGeocoder(GeocodeProvider):
    """Google Maps Geocoding API implementation.

    Requires an API key. Supplies ZIP+4 through ``postal_code_suffix`` when
    Google knows it.
    """

    def __init__(self, config: Settings):
        """Initialize Google Maps geocoder with configuration.

        Args:
            config: Application settings containing google maps configuration
        """
        super().__init__(config)
        self.google_config: GoogleMapsConfig = config.geocode_services.google

    @property
    def service_name(self) -> str:
        """Unique identifier for this provider."""
        return "google"

    @property
    def display_name(self) -> str:
        return "Google Maps"

    @property
    def requires_api_key(self) -> bool:
        """Google Maps requires an API key."""
        return True

    @property
    def service_config(self) -> GoogleMapsConfig:
        return self.google_config

    def is_configured(self) -> bool:
        api_key = self.google_config.api_key
        return super().is_configured() and bool(api_key and api_key.strip())

    def build_request(self, address: NormalizedAddress) -> dict[str, Any]:
        """Format the address for the Google Maps API.

        Args:
            address: Normalized address

        Returns:
            Query parameters
        """
        return {
            "address": address.one_line(include_secondary=True),
            "key": self.google_config.api_key,
            "region": self.google_config.region,  # Bias to region (e.g., "us")
        }

    async def submit_request(self, client: httpx.AsyncClient, request: dict[str, Any]) -> dict[str, Any]:
        """Submit the geocoding request to Google Maps.

        Args:
            client: Shared async HTTP client
            request: Query parameters from build_request()

        Returns:
            Decoded JSON response

        Raises:
            httpx.HTTPError: On HTTP errors
            ProviderFailure: On REQUEST_DENIED, OVER_QUERY_LIMIT or unknown statuses
        """
        response = await client.get(
            GOOGLE_GEOCODE_URL, params=request, timeout=self.google_config.timeout
        )
        response.raise_for_status()
        data = response.json()

        api_status = data.get("status", "")
        if api_status in ("OK", "ZERO_RESULTS"):
            return data
        if api_status == "REQUEST_DENIED":
            raise ProviderFailure(
                self.service_name,
                data.get("error_message") or "API request denied - check API key and permissions",
            )
        if api_status == "OVER_QUERY_LIMIT":
            raise ProviderFailure(self.service_name, "API query limit exceeded")
        raise ProviderFailure(
            self.service_name, data.get("error_message") or f"Unknown API status: {api_status}"
        )

    def parse_response(self, response: dict[str, Any], address: NormalizedAddress) -> GeocodeResult:
        """Parse a Google Maps response into a GeocodeResult.

        Google Maps returns JSON:
        {
            "status": "OK|ZERO_RESULTS|...",
            "results": [
                {
                    "formatted_address": "string",
                    "address_components": [{"long_name", "short_name", "types"}],
                    "geometry": {
                        "location": {"lat": float, "lng": float},
                        "location_type": "ROOFTOP|RANGE_INTERPOLATED|GEOMETRIC_CENTER|APPROXIMATE"
                    }
                }
            ]
        }

        Args:
            response: Decoded JSON from submit_request()
            address: The normalized address that was submitted

        Returns:
            GeocodeResult
        """
        results = response.get("results", [])
        if response.get("status") == "ZERO_RESULTS" or not results:
            return self.failure(
                response.get("error_message") or "Address not found by Google Maps"
            )

        # Use first (best) result
        best = results[0]
        geometry = best.get("geometry", {})
        location = geometry["location"]

        location_type = geometry.get("location_type", "")
        match_type = LOCATION_TYPES.get(location_type)
        if match_type is None:
            logger.warning("Unknown Google location_type '{}'", location_type)
            match_type = "approximate"

        components = _components_by_type(best.get("address_components", []))

        def long_name(component_type: str) -> str:
            return components.get(component_type, {}).get("long_name", "")

        street = f"{long_name('street_number')} {long_name('route')}".strip()
        city = long_name("locality") or long_name("postal_town") or long_name("sublocality")
        state = components.get("administrative_area_level_1", {}).get("short_name", "")
        zip5 = long_name("postal_code")
        zip4 = long_name("postal_code_suffix")

        standardized = StandardizedAddress(
            street=street or address.street,
            city=city or address.city,
            state=(state or address.state).upper(),
            zip5=zip5 or address.zip5,
            zip4=zip4,
            secondary=long_name("subpremise") or address.secondary,
            formatted=best.get("formatted_address"),
        )

        return GeocodeResult(
            provider_name=self.service_name,
            success=True,
            standardized_address=standardized,
            coordinates=Coordinates(lat=float(location["lat"]), lon=float(location["lng"])),
            zip4=zip4 or None,
            match_type=match_type,
            raw_response={"location_type": location_type, "place_id": best.get("place_id")},
        )
