"""USPS Addresses v3 provider implementation.

USPS standardizes the address and supplies ZIP+4 but returns no
coordinates, so the standardized address is located through the Census
geocoder before the result is handed back.
"""

import time
from typing import Any, Optional

import httpx
from loguru import logger

from district_lookup.config import Settings, USPSConfig
from district_lookup.exceptions import ProviderFailure
from district_lookup.normalizer import NormalizedAddress

from ..base import GeocodeProvider, GeocodeResult, StandardizedAddress
from ..registry import GeocodeProviderRegistry
from .census import CensusGeocoder, smooth_casing


class USPSOAuthTokenCache:
    """Simple token cache to avoid requesting a new token for every request."""

    def __init__(self):
        self.token: str | None = None
        self.expires_at: float = 0.0

    def is_valid(self) -> bool:
        return bool(self.token) and time.time() < self.expires_at

    def invalidate(self) -> None:
        self.token = None
        self.expires_at = 0.0

    async def get_token(self, client: httpx.AsyncClient, usps_config: USPSConfig) -> str:
        """Get cached token or fetch a new one if expired."""
        if self.is_valid():
            logger.debug("Using cached USPS OAuth token")
            return self.token  # type: ignore[return-value]

        logger.info("Fetching new USPS OAuth token")
        token, expires_in = await _fetch_oauth_token(client, usps_config)
        self.token = token
        self.expires_at = time.time() + max(expires_in - usps_config.token_refresh_buffer, 0)
        return token


# Global token cache instance
_token_cache = USPSOAuthTokenCache()


async def _fetch_oauth_token(client: httpx.AsyncClient, usps_config: USPSConfig) -> tuple[str, int]:
    """
    Fetch OAuth2 access token from USPS API using Client Credentials flow.

    Args:
        client: Shared async HTTP client
        usps_config: USPS credentials and base URL

    Returns:
        (access token, lifetime in seconds)

    Raises:
        httpx.HTTPError: If token request fails.
        ProviderFailure: If the response carries no access_token.
    """
    token_url = f"{usps_config.base_url}/oauth2/v3/token"
    data = {
        "grant_type": "client_credentials",
        "client_id": usps_config.client_id,
        "client_secret": usps_config.client_secret,
        "scope": "addresses",
    }

    response = await client.post(token_url, data=data, timeout=usps_config.timeout)
    response.raise_for_status()

    token_data = response.json()
    access_token = token_data.get("access_token")
    if not access_token:
        logger.error("No access_token in USPS OAuth response")
        raise ProviderFailure("usps", "OAuth token acquisition failed")

    # USPS tokens typically expire in 3600 seconds (1 hour)
    expires_in = int(token_data.get("expires_in", 3600))
    logger.debug("Obtained USPS OAuth token (expires in {}s)", expires_in)
    return access_token, expires_in


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a USPS error body."""
    message = f"HTTP {response.status_code}"
    try:
        error_data = response.json()
    except ValueError:
        return message
    if isinstance(error_data, dict):
        error = error_data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f"{message}: {error['message']}"
    return message


@GeocodeProviderRegistry.register
class USPSGeocoder(GeocodeProvider):
    """USPS Addresses v3 standardization, located through Census."""

    def __init__(self, config: Settings, token_cache: Optional[USPSOAuthTokenCache] = None):
        super().__init__(config)
        self.usps_config: USPSConfig = config.geocode_services.usps
        self.token_cache = token_cache or _token_cache
        self.locator = CensusGeocoder(config)

    @property
    def service_name(self) -> str:
        """Unique identifier for this provider."""
        return "usps"

    @property
    def display_name(self) -> str:
        return "USPS"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def service_config(self) -> USPSConfig:
        return self.usps_config

    def is_configured(self) -> bool:
        return super().is_configured() and bool(
            self.usps_config.client_id and self.usps_config.client_secret
        )

    def status(self) -> dict[str, Any]:
        status = super().status()
        status["tokenValid"] = self.token_cache.is_valid()
        return status

    def build_request(self, address: NormalizedAddress) -> dict[str, Any]:
        """Build USPS query parameters; USPS requires a state plus city or ZIP."""
        params: dict[str, Any] = {
            "streetAddress": address.street,
            "state": address.state,
        }
        if address.city:
            params["city"] = address.city
        if address.zip5:
            params["ZIPCode"] = address.zip5
        if address.zip4:
            params["ZIPPlus4"] = address.zip4
        if address.secondary:
            params["secondaryAddress"] = address.secondary
        return params

    async def submit_request(self, client: httpx.AsyncClient, request: dict[str, Any]) -> dict[str, Any]:
        """Standardize with USPS, then locate the standardized address.

        Returns:
            {"usps": <USPS JSON>, "census": <Census JSON or None>, "census_error": <str or None>}
        """
        token = await self.token_cache.get_token(client, self.usps_config)

        response = await client.get(
            f"{self.usps_config.base_url}/addresses/v3/address",
            params=request,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            timeout=self.usps_config.timeout,
        )
        if response.status_code == 401:
            self.token_cache.invalidate()
        if response.is_error:
            raise ProviderFailure(self.service_name, _error_message(response))

        usps_data = response.json()
        logger.debug("USPS response: {}", usps_data)

        standardized = self._standardized(usps_data, None)
        if standardized is None:
            raise ProviderFailure(self.service_name, "No address data returned from USPS")

        census_data = None
        census_error = None
        located = NormalizedAddress(
            street=standardized.street,
            city=standardized.city,
            state=standardized.state,
            zip5=standardized.zip5,
        )
        try:
            census_data = await self.locator.submit_request(
                client, self.locator.build_request(located)
            )
        except httpx.HTTPError as e:
            logger.warning("Census lookup for USPS-standardized address failed: {}", e)
            census_error = str(e) or e.__class__.__name__

        return {"usps": usps_data, "census": census_data, "census_error": census_error}

    def _standardized(
        self, usps_data: dict[str, Any], address: Optional[NormalizedAddress]
    ) -> Optional[StandardizedAddress]:
        usps_address = usps_data.get("address")
        if not usps_address:
            return None
        return StandardizedAddress(
            street=smooth_casing(usps_address.get("streetAddress") or ""),
            city=smooth_casing(usps_address.get("city") or ""),
            state=(usps_address.get("state") or "").upper(),
            zip5=usps_address.get("ZIPCode") or "",
            zip4=usps_address.get("ZIPPlus4") or "",
            secondary=smooth_casing(usps_address.get("secondaryAddress") or "")
            or (address.secondary if address else ""),
        )

    def parse_response(self, response: dict[str, Any], address: NormalizedAddress) -> GeocodeResult:
        """Combine the USPS standardization with the Census coordinates."""
        usps_data = response["usps"]
        standardized = self._standardized(usps_data, address)
        if standardized is None:
            return self.failure("No address data returned from USPS")

        zip4 = standardized.zip4 or None
        additional_info = usps_data.get("additionalInfo", {})
        raw_response = {
            "dpv_confirmation": additional_info.get("DPVConfirmation"),
            "carrier_route": additional_info.get("carrierRoute"),
            "delivery_point": additional_info.get("deliveryPoint"),
            "corrections": usps_data.get("corrections", []),
            "warnings": usps_data.get("warnings", []),
        }

        if response.get("census") is None:
            return self.failure(
                f"USPS standardized the address but it could not be located: {response.get('census_error')}",
                standardized_address=standardized,
                zip4=zip4,
                raw_response=raw_response,
            )

        located = self.locator.parse_response(response["census"], address)
        if not located.success:
            return self.failure(
                "USPS standardized the address but it could not be located",
                standardized_address=standardized,
                zip4=zip4,
                raw_response=raw_response,
            )

        return GeocodeResult(
            provider_name=self.service_name,
            success=True,
            standardized_address=standardized,
            coordinates=located.coordinates,
            zip4=zip4,
            match_type="standardized",
            raw_response=raw_response,
        )
