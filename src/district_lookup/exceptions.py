"""Exception hierarchy for District Lookup."""


class DistrictLookupError(Exception):
    """Base class for all District Lookup errors."""

    code = "district_lookup_error"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MalformedAddress(DistrictLookupError):
    """Address input cannot be parsed into street, city and state."""

    code = "malformed_address"
    status_code = 400


class NoProviderEnabled(DistrictLookupError):
    """A reconciliation was requested with no geocoding provider enabled."""

    code = "no_provider_enabled"
    status_code = 400

    def __init__(self, message: str = "At least one validation method must be enabled"):
        super().__init__(message)


class SpatialLookupFailure(DistrictLookupError):
    """The district/county geometry store could not be queried."""

    code = "spatial_lookup_failure"
    status_code = 503


class ProviderFailure(DistrictLookupError):
    """A geocoding provider rejected or could not answer a request.

    Raised inside provider adapters only; the adapter base class folds it
    into a failed GeocodeResult.
    """

    code = "provider_failure"
    status_code = 502

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"[{provider}] {message}")
        self.message = message


class DistrictNotFound(DistrictLookupError):
    """A request named a state/district that has no geometry."""

    code = "district_not_found"
    status_code = 404
