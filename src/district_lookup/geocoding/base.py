"""Abstract base classes for geocoding providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from loguru import logger

from district_lookup.config import ServiceConfig, Settings
from district_lookup.exceptions import ProviderFailure
from district_lookup.normalizer import NormalizedAddress


@dataclass(frozen=True)
class Coordinates:
    """WGS84 point."""

    lat: float
    lon: float

    def as_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}


@dataclass
class StandardizedAddress:
    """Address as returned by a provider, casing quirks smoothed out."""

    street: str
    city: str
    state: str
    zip5: str = ""
    zip4: str = ""
    secondary: str = ""
    formatted: Optional[str] = None  # Provider's own one-line rendering

    def one_line(self) -> str:
        if self.formatted:
            return self.formatted
        street = f"{self.street} {self.secondary}".strip()
        zip_code = f"{self.zip5}-{self.zip4}" if self.zip5 and self.zip4 else self.zip5
        return f"{street}, {self.city}, {self.state} {zip_code}".strip()

    def as_dict(self) -> dict[str, Any]:
        return {
            "street": self.street,
            "secondary": self.secondary,
            "city": self.city,
            "state": self.state,
            "zip5": self.zip5,
            "zip4": self.zip4,
            "formatted": self.one_line(),
        }


@dataclass
class GeocodeResult:
    """Normalized per-provider outcome.

    ``coordinates`` is present exactly when ``success`` is true.
    """

    provider_name: str
    success: bool
    standardized_address: Optional[StandardizedAddress] = None
    coordinates: Optional[Coordinates] = None
    zip4: Optional[str] = None
    raw_error: Optional[str] = None
    match_type: Optional[str] = None
    raw_response: dict[str, Any] = field(default_factory=dict)  # Service-specific data for debugging

    def __post_init__(self) -> None:
        if self.success and self.coordinates is None:
            raise ValueError(f"{self.provider_name}: successful result requires coordinates")
        if not self.success and self.coordinates is not None:
            raise ValueError(f"{self.provider_name}: failed result cannot carry coordinates")

    def as_dict(self) -> dict[str, Any]:
        return {
            "providerName": self.provider_name,
            "success": self.success,
            "standardizedAddress": (
                self.standardized_address.as_dict() if self.standardized_address else None
            ),
            "coordinates": self.coordinates.as_dict() if self.coordinates else None,
            "zip4": self.zip4,
            "rawError": self.raw_error,
            "matchType": self.match_type,
        }


class GeocodeProvider(ABC):
    """Abstract base class for all geocoding providers.

    Subclasses implement the three request stages; ``geocode`` runs them and
    guarantees a GeocodeResult comes back instead of an exception.
    """

    def __init__(self, config: Settings):
        """Initialize the provider with configuration.

        Args:
            config: Settings object containing provider-specific configuration
        """
        self.config = config

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Unique identifier for this provider."""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable provider name."""
        pass

    @property
    @abstractmethod
    def requires_api_key(self) -> bool:
        """Whether this provider requires credentials."""
        pass

    @property
    @abstractmethod
    def service_config(self) -> ServiceConfig:
        """This provider's section of ``Settings.geocode_services``."""
        pass

    def is_configured(self) -> bool:
        """Whether credentials needed to call the provider are present."""
        return self.service_config.enabled

    def status(self) -> dict[str, Any]:
        return {
            "name": self.display_name,
            "configured": self.is_configured(),
            "requiresApiKey": self.requires_api_key,
        }

    @abstractmethod
    def build_request(self, address: NormalizedAddress) -> dict[str, Any]:
        """Format the normalized address for this provider's API.

        Args:
            address: Normalized address

        Returns:
            Provider-specific request parameters
        """
        pass

    @abstractmethod
    async def submit_request(self, client: httpx.AsyncClient, request: dict[str, Any]) -> Any:
        """Send the request.

        Args:
            client: Shared async HTTP client
            request: Data prepared by build_request()

        Returns:
            Raw (decoded) provider response

        Raises:
            httpx.HTTPError: On transport or HTTP status errors
            ProviderFailure: When the provider rejects the request
        """
        pass

    @abstractmethod
    def parse_response(self, response: Any, address: NormalizedAddress) -> GeocodeResult:
        """Convert the raw response into a GeocodeResult.

        Args:
            response: Raw response from submit_request()
            address: The normalized address that was submitted

        Returns:
            GeocodeResult for this provider
        """
        pass

    def failure(
        self,
        message: str,
        standardized_address: Optional[StandardizedAddress] = None,
        zip4: Optional[str] = None,
        raw_response: Optional[dict[str, Any]] = None,
    ) -> GeocodeResult:
        """Build a failed result for this provider."""
        return GeocodeResult(
            provider_name=self.service_name,
            success=False,
            standardized_address=standardized_address,
            coordinates=None,
            zip4=zip4,
            raw_error=message,
            raw_response=raw_response or {},
        )

    async def geocode(self, address: NormalizedAddress, client: httpx.AsyncClient) -> GeocodeResult:
        """Main workflow: build → submit → parse.

        Never raises for provider-side problems; they come back as a result
        with ``success=False`` and ``raw_error`` set.

        Args:
            address: Normalized address
            client: Shared async HTTP client

        Returns:
            GeocodeResult for this provider
        """
        if not self.is_configured():
            logger.debug("{} skipped: not configured", self.service_name)
            return self.failure(f"{self.display_name} API not configured")

        try:
            request = self.build_request(address)
            response = await self.submit_request(client, request)
            result = self.parse_response(response, address)

        except httpx.TimeoutException:
            logger.warning(
                "{} request timed out after {}s", self.service_name, self.service_config.timeout
            )
            return self.failure("Request timeout")

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code in (401, 403):
                logger.error("{} authentication failed - check credentials", self.service_name)
            elif status_code == 429:
                logger.warning("{} rate limit exceeded", self.service_name)
            else:
                logger.warning("{} HTTP error: {}", self.service_name, e)
            return self.failure(f"HTTP {status_code}")

        except httpx.HTTPError as e:
            logger.warning("{} request failed: {}", self.service_name, e)
            return self.failure(str(e) or e.__class__.__name__)

        except ProviderFailure as e:
            logger.warning("{} rejected address: {}", self.service_name, e.message)
            return self.failure(e.message)

        except (KeyError, TypeError, ValueError) as e:
            logger.error("{} returned an unexpected response: {}", self.service_name, e)
            return self.failure(f"Unexpected response from {self.display_name}")

        except Exception:
            # One provider's bad payload must not abort the other providers
            logger.exception("{} response handling failed", self.service_name)
            return self.failure(f"Unexpected response from {self.display_name}")

        logger.debug(
            "{} result: success={}, coordinates={}",
            self.service_name,
            result.success,
            result.coordinates,
        )
        return result
