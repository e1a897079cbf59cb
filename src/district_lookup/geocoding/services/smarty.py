"""Smarty US Street API provider implementation."""

from typing import Any

import httpx

from district_lookup.config import Settings, SmartyConfig
from district_lookup.normalizer import NormalizedAddress

from ..base import (
    Coordinates,
    GeocodeProvider,
    GeocodeResult,
    StandardizedAddress,
)
from ..registry import GeocodeProviderRegistry


@GeocodeProviderRegistry.register
class SmartyGeocoder(GeocodeProvider):
    """Smarty (formerly SmartyStreets) US Street address verification.

    Commercial, auth-id/auth-token based. Returns coordinates, ZIP+4 and
    county FIPS in a single call.
    """

    def __init__(self, config: Settings):
        super().__init__(config)
        self.smarty_config: SmartyConfig = config.geocode_services.smarty

    @property
    def service_name(self) -> str:
        """Unique identifier for this provider."""
        return "smarty"

    @property
    def display_name(self) -> str:
        return "Smarty"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def service_config(self) -> SmartyConfig:
        return self.smarty_config

    def is_configured(self) -> bool:
        return super().is_configured() and bool(
            self.smarty_config.auth_id and self.smarty_config.auth_token
        )

    def build_request(self, address: NormalizedAddress) -> dict[str, Any]:
        params: dict[str, Any] = {
            "auth-id": self.smarty_config.auth_id,
            "auth-token": self.smarty_config.auth_token,
            "street": address.street,
            "city": address.city,
            "state": address.state,
            "candidates": 1,
        }
        if address.zip5:
            params["zipcode"] = address.zip_code
        if address.secondary:
            params["secondary"] = address.secondary
        return params

    async def submit_request(self, client: httpx.AsyncClient, request: dict[str, Any]) -> list[dict[str, Any]]:
        response = await client.get(
            f"{self.smarty_config.base_url}/street-address",
            params=request,
            timeout=self.smarty_config.timeout,
        )
        response.raise_for_status()
        return response.json()

    def parse_response(self, response: list[dict[str, Any]], address: NormalizedAddress) -> GeocodeResult:
        """Parse the first Smarty candidate.

        An empty candidate list means the address could not be verified.
        """
        if not response:
            return self.failure("Address not found by Smarty")

        candidate = response[0]
        components = candidate.get("components", {})
        metadata = candidate.get("metadata", {})

        secondary = " ".join(
            part
            for part in (components.get("secondary_designator"), components.get("secondary_number"))
            if part
        )
        zip4 = components.get("plus4_code") or ""

        standardized = StandardizedAddress(
            street=candidate.get("delivery_line_1") or address.street,
            city=components.get("city_name") or address.city,
            state=(components.get("state_abbreviation") or address.state).upper(),
            zip5=components.get("zipcode") or address.zip5,
            zip4=zip4,
            secondary=secondary or address.secondary,
        )

        latitude = metadata.get("latitude")
        longitude = metadata.get("longitude")
        if latitude is None or longitude is None:
            return self.failure(
                "Smarty verified the address but returned no coordinates",
                standardized_address=standardized,
                zip4=zip4 or None,
            )

        return GeocodeResult(
            provider_name=self.service_name,
            success=True,
            standardized_address=standardized,
            coordinates=Coordinates(lat=float(latitude), lon=float(longitude)),
            zip4=zip4 or None,
            match_type=(metadata.get("precision") or "").lower() or None,
            raw_response={
                "county_fips": metadata.get("county_fips"),
                "congressional_district": metadata.get("congressional_district"),
                "dpv_match_code": candidate.get("analysis", {}).get("dpv_match_code"),
            },
        )
