"""Census Geocoder provider implementation."""

import string
from typing import Any

import httpx
from loguru import logger

from district_lookup.config import CensusConfig, Settings
from district_lookup.normalizer import NormalizedAddress

from ..base import (
    Coordinates,
    GeocodeProvider,
    GeocodeResult,
    StandardizedAddress,
)
from ..registry import GeocodeProviderRegistry


def smooth_casing(value: str) -> str:
    """Title-case an all-caps provider field ("LAKE HAVASU CITY" -> "Lake Havasu City")."""
    if value and value.isupper():
        return string.capwords(value)
    return value


@GeocodeProviderRegistry.register
class CensusGeocoder(GeocodeProvider):
    """US Census one-line address locator.

    Free, no credentials, US only. Never supplies ZIP+4.
    """

    def __init__(self, config: Settings):
        """Initialize Census geocoder with configuration.

        Args:
            config: Application settings containing census configuration
        """
        super().__init__(config)
        self.census_config: CensusConfig = config.geocode_services.census

    @property
    def service_name(self) -> str:
        """Unique identifier for this provider."""
        return "census"

    @property
    def display_name(self) -> str:
        return "Census Geocoder"

    @property
    def requires_api_key(self) -> bool:
        """Census geocoder is free and requires no API key."""
        return False

    @property
    def service_config(self) -> CensusConfig:
        return self.census_config

    def build_request(self, address: NormalizedAddress) -> dict[str, Any]:
        """Format the address as the Census one-line query.

        Args:
            address: Normalized address

        Returns:
            Query parameters for the locations/onelineaddress endpoint
        """
        return {
            "address": address.one_line(),
            "benchmark": self.census_config.benchmark,
            "format": "json",
        }

    async def submit_request(self, client: httpx.AsyncClient, request: dict[str, Any]) -> dict[str, Any]:
        """Submit the one-line lookup to the Census API.

        Args:
            client: Shared async HTTP client
            request: Query parameters from build_request()

        Returns:
            Decoded JSON response

        Raises:
            httpx.HTTPError: On HTTP errors
            httpx.TimeoutException: On request timeout
        """
        url = f"{self.census_config.base_url}/locations/onelineaddress"
        logger.debug("Census lookup: {}", request["address"])

        response = await client.get(url, params=request, timeout=self.census_config.timeout)
        response.raise_for_status()
        return response.json()

    def parse_response(self, response: dict[str, Any], address: NormalizedAddress) -> GeocodeResult:
        """Parse the Census JSON response.

        The response looks like:
        {
            "result": {
                "addressMatches": [
                    {
                        "matchedAddress": "2330 MCCULLOCH BLVD N, LAKE HAVASU CITY, AZ, 86403",
                        "coordinates": {"x": -114.33, "y": 34.48},
                        "addressComponents": {"city": "...", "state": "AZ", "zip": "86403", ...}
                    }
                ]
            }
        }

        Multiple matches (a "tie") use the first one.

        Args:
            response: Decoded JSON from submit_request()
            address: The normalized address that was submitted

        Returns:
            GeocodeResult
        """
        matches = response.get("result", {}).get("addressMatches", [])
        if not matches:
            return self.failure(
                "Address not found by Census geocoder",
                raw_response={"input": address.one_line()},
            )

        if len(matches) > 1:
            logger.debug("Census returned {} matches, using the first", len(matches))

        match = matches[0]
        coords = match["coordinates"]
        components = match.get("addressComponents", {})
        matched_address = match.get("matchedAddress", "")

        street = matched_address.split(",")[0].strip() if matched_address else address.street

        standardized = StandardizedAddress(
            street=smooth_casing(street),
            city=smooth_casing(components.get("city") or address.city),
            state=(components.get("state") or address.state).upper(),
            zip5=components.get("zip") or address.zip5,
            zip4="",
            secondary=address.secondary,
        )

        return GeocodeResult(
            provider_name=self.service_name,
            success=True,
            standardized_address=standardized,
            coordinates=Coordinates(lat=float(coords["y"]), lon=float(coords["x"])),
            zip4=None,
            match_type="tie" if len(matches) > 1 else "match",
            raw_response={
                "matched_address": matched_address,
                "tigerline": match.get("tigerLine"),
            },
        )
