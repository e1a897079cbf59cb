"""Multi-provider address validation and district reconciliation.

One reconciliation normalizes the address once, fans out to every enabled
provider concurrently, resolves each successful geocode to a district and
scores how well the providers agree.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

import httpx
from loguru import logger

from district_lookup.exceptions import NoProviderEnabled
from district_lookup.geocoding import GeocodeProvider, GeocodeResult
from district_lookup.normalizer import AddressInput, NormalizedAddress, normalize
from district_lookup.spatial import DistrictMatch, SpatialResolver

CONFIDENCE_CONSENSUS = 100
CONFIDENCE_SINGLE_SOURCE = 90
CONFIDENCE_DISAGREEMENT = 50
CONFIDENCE_NONE = 0

# Degrees; roughly 100 m of latitude
COORDINATE_SPREAD_THRESHOLD = 0.001
BOUNDARY_PROXIMITY_METERS = 100

USER_AGENT = "district-lookup/0.1"


@dataclass
class Analysis:
    consistency: str
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "consistency": self.consistency,
            "issues": self.issues,
            "recommendations": self.recommendations,
        }


@dataclass
class ReconciliationReport:
    """Result of one reconciliation pass. Built per request, never persisted."""

    original_input: str
    parsed_address: NormalizedAddress
    per_provider_results: list[GeocodeResult]
    per_provider_districts: dict[str, DistrictMatch]
    agreement: bool
    confidence_percent: int
    consensus_district: Optional[DistrictMatch]
    analysis: Analysis

    @property
    def successful_providers(self) -> list[str]:
        return [r.provider_name for r in self.per_provider_results if r.success]

    def as_dict(self) -> dict[str, Any]:
        methods = {}
        for result in self.per_provider_results:
            entry = result.as_dict()
            district = self.per_provider_districts.get(result.provider_name)
            entry["district"] = district.as_dict() if district else None
            methods[result.provider_name] = entry

        return {
            "success": True,
            "originalInput": self.original_input,
            "parsedAddress": self.parsed_address.as_dict(),
            "perProviderResults": [r.as_dict() for r in self.per_provider_results],
            "perProviderDistricts": [
                self.per_provider_districts[r.provider_name].as_dict()
                for r in self.per_provider_results
                if r.provider_name in self.per_provider_districts
            ],
            "agreement": self.agreement,
            "confidencePercent": self.confidence_percent,
            "consensusDistrict": (
                self.consensus_district.as_dict() if self.consensus_district else None
            ),
            "methods": methods,
            "analysis": self.analysis.as_dict(),
        }


def score(matches: list[DistrictMatch]) -> tuple[bool, int, Optional[DistrictMatch]]:
    """Agreement, confidence and consensus for the successful providers' districts.

    Args:
        matches: One DistrictMatch per successful provider, in provider order

    Returns:
        (agreement, confidence_percent, consensus_district)
    """
    # An unresolved match (no geometries loaded) names no district to agree on
    matches = [m for m in matches if m.key is not None]
    if not matches:
        return False, CONFIDENCE_NONE, None
    if len(matches) == 1:
        return True, CONFIDENCE_SINGLE_SOURCE, matches[0]
    if len({m.key for m in matches}) == 1:
        return True, CONFIDENCE_CONSENSUS, matches[0]
    return False, CONFIDENCE_DISAGREEMENT, None


def analyze(results: list[GeocodeResult], districts: dict[str, DistrictMatch]) -> Analysis:
    """Describe consistency problems a reviewer should look at."""
    successful = [r for r in results if r.success]
    resolved = [districts[r.provider_name] for r in successful]
    labels = list(dict.fromkeys(m.label for m in resolved if m.key is not None))

    if not labels:
        analysis = Analysis("no_results", issues=["No successful district assignments found"])
    elif len(successful) == 1:
        analysis = Analysis(
            "single_source",
            recommendations=["Enable another validation method to cross-check this result"],
        )
    elif len(labels) == 1:
        analysis = Analysis(
            "consistent", recommendations=["All methods agree on district assignment"]
        )
    else:
        analysis = Analysis(
            "inconsistent",
            issues=[f"District mismatch: {', '.join(labels)}"],
            recommendations=["Review address for accuracy, check if near district boundary"],
        )

    coordinates = [r.coordinates for r in successful]
    if len(coordinates) > 1:
        lat_spread = max(c.lat for c in coordinates) - min(c.lat for c in coordinates)
        lon_spread = max(c.lon for c in coordinates) - min(c.lon for c in coordinates)
        if lat_spread > COORDINATE_SPREAD_THRESHOLD or lon_spread > COORDINATE_SPREAD_THRESHOLD:
            analysis.issues.append("Significant coordinate difference between geocoding services")

    near_boundary = [
        m
        for m in districts.values()
        if m.distance_to_boundary and m.distance_to_boundary.meters < BOUNDARY_PROXIMITY_METERS
    ]
    if near_boundary:
        analysis.issues.append(
            f"Address is very close to district boundary (< {BOUNDARY_PROXIMITY_METERS}m)"
        )
        analysis.recommendations.append(
            "Manual verification recommended for boundary-adjacent addresses"
        )
    return analysis


class ReconciliationEngine:
    """Runs enabled providers in parallel and reconciles their districts."""

    def __init__(
        self,
        providers: dict[str, GeocodeProvider],
        resolver: SpatialResolver,
        provider_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            providers: Provider instances keyed by service name
            resolver: Spatial resolver used for every successful geocode
            provider_timeout: Upper bound in seconds for one provider call
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.providers = providers
        self.resolver = resolver
        self.provider_timeout = provider_timeout
        self.transport = transport

    def provider_status(self) -> dict[str, dict[str, Any]]:
        return {name: provider.status() for name, provider in sorted(self.providers.items())}

    def configured_providers(self) -> list[str]:
        return [name for name, p in sorted(self.providers.items()) if p.is_configured()]

    async def _geocode(
        self, provider: GeocodeProvider, address: NormalizedAddress, client: httpx.AsyncClient
    ) -> GeocodeResult:
        try:
            return await asyncio.wait_for(
                provider.geocode(address, client), timeout=self.provider_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "{} did not settle within {}s", provider.service_name, self.provider_timeout
            )
            return provider.failure("Request timeout")

    async def reconcile(
        self, address: Union[AddressInput, str, None], enabled: Iterable[str]
    ) -> ReconciliationReport:
        """Validate an address with the enabled providers and compare the districts.

        Args:
            address: Free-text address or structured AddressInput
            enabled: Provider names to dispatch to

        Returns:
            ReconciliationReport; provider failures are folded into it

        Raises:
            NoProviderEnabled: If ``enabled`` is empty
            ValueError: If ``enabled`` names an unknown provider
            MalformedAddress: If the address cannot be normalized
            SpatialLookupFailure: If the geometry store is unavailable
        """
        names = list(dict.fromkeys(enabled or []))
        if not names:
            raise NoProviderEnabled()

        unknown = [n for n in names if n not in self.providers]
        if unknown:
            raise ValueError(
                f"Unknown validation method(s): {', '.join(unknown)}. "
                f"Available: {', '.join(sorted(self.providers))}"
            )

        if not isinstance(address, AddressInput):
            address = AddressInput.from_text(address)
        normalized = normalize(address)
        logger.info("Validating '{}' with {}", normalized.one_line(), ", ".join(names))

        async with httpx.AsyncClient(
            transport=self.transport, headers={"User-Agent": USER_AGENT}
        ) as client:
            results = list(
                await asyncio.gather(
                    *(self._geocode(self.providers[n], normalized, client) for n in names)
                )
            )

        successful = [r for r in results if r.success]
        matches = await asyncio.gather(
            *(asyncio.to_thread(self.resolver.resolve_district, r.coordinates) for r in successful)
        )
        districts = {r.provider_name: m for r, m in zip(successful, matches)}

        agreement, confidence, consensus = score(list(matches))
        report = ReconciliationReport(
            original_input=address.describe(),
            parsed_address=normalized,
            per_provider_results=results,
            per_provider_districts=districts,
            agreement=agreement,
            confidence_percent=confidence,
            consensus_district=consensus,
            analysis=analyze(results, districts),
        )

        logger.info(
            "Reconciled {}/{} providers: agreement={}, confidence={}%, district={}",
            len(successful),
            len(results),
            agreement,
            confidence,
            consensus.label if consensus else None,
        )
        return report
